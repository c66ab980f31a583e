from __future__ import annotations

from typing import Final

from .model import FieldName

_SCHEMES: Final[tuple[str, ...]] = ("http://", "https://")
_DEFAULT_SCHEME: Final[str] = "https://"


def normalize_link(raw: str) -> str:
    """Canonicalize a link URL.

    Empty input is returned as-is. A missing `http://`/`https://` prefix becomes
    `https://`, and the result always ends with exactly the trailing slash it
    already had or a single appended one. The function is idempotent, so it is
    safe to run on its own output.
    """

    if not raw:
        return raw
    text = raw if raw.startswith(_SCHEMES) else f"{_DEFAULT_SCHEME}{raw}"
    if not text.endswith("/"):
        text = f"{text}/"
    return text


def normalize_field(name: FieldName, value: str) -> str:
    if name == "link":
        return normalize_link(value)
    return value
