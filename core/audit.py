"""Edit history for snapshot editing sessions."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from core.dynamic import edit_field
from sellerfin.models import CalculatorConfig, OfferSnapshot, PropertyData
from sellerfin.presets import DEFAULT_CONFIG


@dataclass
class EditEntry:
    field: str
    old_value: Any
    new_value: Any
    timestamp: datetime


class EditLog:
    """In-memory edit log with undo and redo.

    Snapshots are not stored; any point in the session is rebuilt by replaying
    the recorded edits from the initial snapshot.
    """

    def __init__(
        self,
        initial: OfferSnapshot,
        property_data: PropertyData,
        config: CalculatorConfig = DEFAULT_CONFIG,
    ) -> None:
        self.initial = initial
        self.property_data = property_data
        self.config = config
        self.entries: List[EditEntry] = []
        self.cursor = 0
        self.current = initial

    def record(self, field: str, old_value: Any, new_value: Any) -> None:
        """Record an edit, dropping anything that was undone before it."""
        del self.entries[self.cursor:]
        self.entries.append(
            EditEntry(
                field=field,
                old_value=old_value,
                new_value=new_value,
                timestamp=datetime.now(timezone.utc),
            )
        )
        self.cursor = len(self.entries)

    def apply(self, field: str, value: float) -> OfferSnapshot:
        """Edit the current snapshot and record the change."""
        updated = edit_field(self.current, field, value, self.property_data, self.config)
        self.record(field, getattr(self.current, field), float(value))
        self.current = updated
        return updated

    def replay(self, upto: Optional[int] = None) -> OfferSnapshot:
        """Snapshot after the first ``upto`` edits (all active edits by default)."""
        snap = self.initial
        for e in self.entries[: self.cursor if upto is None else upto]:
            snap = edit_field(snap, e.field, e.new_value, self.property_data, self.config)
        return snap

    def can_undo(self) -> bool:
        return self.cursor > 0

    def can_redo(self) -> bool:
        return self.cursor < len(self.entries)

    def undo(self) -> OfferSnapshot:
        if self.can_undo():
            self.cursor -= 1
            self.current = self.replay()
        return self.current

    def redo(self) -> OfferSnapshot:
        if self.can_redo():
            self.cursor += 1
            self.current = self.replay()
        return self.current

    def as_dict(self) -> List[dict]:
        """Return active log entries as dictionaries for inspection."""
        return [
            {
                "field": e.field,
                "old": e.old_value,
                "new": e.new_value,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in self.entries[: self.cursor]
        ]
