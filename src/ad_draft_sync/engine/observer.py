from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from ..model import AdRecord, FieldName

ChangeCause = Literal["edit", "external", "commit", "reseed"]


@dataclass(frozen=True, slots=True)
class DraftChange:
    """One change to a view's displayed record."""

    view_id: str
    record: AdRecord
    changed_fields: tuple[FieldName, ...]
    cause: ChangeCause


class DraftObserver(Protocol):
    """Observer for a fork controller's displayed record.

    The rendering layer implements this to re-render whenever a displayed value
    changes. Implementations must be fast and must not raise; they run inside
    store notifications and timer callbacks.
    """

    def __call__(self, change: DraftChange) -> None:
        """Receive the new displayed record and the fields that changed."""
