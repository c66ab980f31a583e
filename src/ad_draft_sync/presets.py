from __future__ import annotations

from typing import Final

from .engine.base import SyncError
from .model import AdRecord


class PresetNotFoundError(SyncError):
    """Raised when a preset name is not one of `PRESETS`."""


PRESETS: Final[dict[str, AdRecord]] = {
    "ad1": AdRecord(
        headline="Summer Sale - 50% Off",
        call_to_action="Shop Now",
        description="Limited time offer on all summer items. Free shipping on orders over $50.",
        link="",
    ),
    "ad2": AdRecord(
        headline="New Product Launch",
        call_to_action="Learn More",
        description="Introducing our revolutionary new product that will change your life.",
        link="",
    ),
    "ad3": AdRecord(
        headline="Join Our Community",
        call_to_action="Sign Up Free",
        description="Connect with thousands of members and get exclusive benefits.",
        link="",
    ),
    "clear": AdRecord(),
    "speechify": AdRecord(
        headline="Try Listening to Books Today!",
        call_to_action="Learn More",
        description=(
            "Tired of reading long texts? 📚👀\n"
            "Speechify reads to you, so you can multitask while learning or relaxing. "
            "Available on all devices."
        ),
        link="",
    ),
}

PRESET_LABELS: Final[dict[str, str]] = {
    "ad1": "Ad Example 1 - Summer Sale",
    "ad2": "Ad Example 2 - Product Launch",
    "ad3": "Ad Example 3 - Community",
    "clear": "Clear All Data",
    "speechify": "Speechify Starter Copy",
}


def preset_record(name: str) -> AdRecord:
    key = name.strip().lower()
    record = PRESETS.get(key)
    if record is None:
        choices = ", ".join(PRESETS)
        raise PresetNotFoundError(f"Unknown preset {name!r}. Expected one of: {choices}.")
    return record
