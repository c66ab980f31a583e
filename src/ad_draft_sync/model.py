from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from typing import Final, Literal, cast

FieldName = Literal["headline", "call_to_action", "description", "link", "launch_as"]
FieldState = Literal["synced", "forked_pending"]
ViewMode = Literal["gallery", "table"]
CommitKind = Literal["debounced", "immediate"]
LaunchAs = Literal["active", "paused"]

FIELD_NAMES: Final[tuple[FieldName, ...]] = (
    "headline",
    "call_to_action",
    "description",
    "link",
    "launch_as",
)
GALLERY_FIELDS: Final[tuple[FieldName, ...]] = FIELD_NAMES[:4]
TABLE_FIELDS: Final[tuple[FieldName, ...]] = FIELD_NAMES

FIELD_LABELS: Final[dict[FieldName, str]] = {
    "headline": "Headline",
    "call_to_action": "Call to Action",
    "description": "Description",
    "link": "Link URL",
    "launch_as": "Launch As",
}

VIEW_MODES: Final[tuple[ViewMode, ...]] = ("gallery", "table")
LAUNCH_AS_VALUES: Final[tuple[LaunchAs, ...]] = ("active", "paused")
DEFAULT_DEBOUNCE_MS: Final[int] = 500


def is_field_name(name: str) -> bool:
    return name in FIELD_NAMES


@dataclass(frozen=True, slots=True)
class AdRecord:
    """One ad copy: the fixed set of string fields shared by every view."""

    headline: str = ""
    call_to_action: str = ""
    description: str = ""
    link: str = ""
    launch_as: str = "active"

    def get(self, name: FieldName) -> str:
        return cast(str, getattr(self, name))

    def with_field(self, name: FieldName, value: str) -> AdRecord:
        return replace(self, **{name: value})

    def as_dict(self) -> dict[str, str]:
        return asdict(self)

    def diff(self, other: AdRecord) -> tuple[FieldName, ...]:
        """Return the field names whose values differ between `self` and `other`."""

        return tuple(name for name in FIELD_NAMES if self.get(name) != other.get(name))

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> AdRecord:
        """Build a record from a plain mapping (JSON object, preset table).

        Missing keys keep their defaults; unknown keys are rejected.
        """

        unknown = sorted(key for key in data if not is_field_name(key))
        if unknown:
            raise ValueError(f"Unknown ad field(s): {', '.join(unknown)}")
        values = {key: str(value) for key, value in data.items() if value is not None}
        return cls(**values)


@dataclass(frozen=True, slots=True)
class CommitPolicy:
    kind: CommitKind
    delay_ms: int = 0

    @classmethod
    def debounced(cls, delay_ms: int = DEFAULT_DEBOUNCE_MS) -> CommitPolicy:
        if delay_ms <= 0:
            raise ValueError("delay_ms must be > 0 for a debounced policy")
        return cls(kind="debounced", delay_ms=delay_ms)

    @classmethod
    def immediate(cls) -> CommitPolicy:
        return cls(kind="immediate", delay_ms=0)

    @property
    def label(self) -> str:
        if self.kind == "immediate":
            return "immediate"
        return f"debounced {self.delay_ms}ms"
