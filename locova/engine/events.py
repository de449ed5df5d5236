"""
locova.engine.events — Toggle outcomes and the change-event envelope
======================================================================

``ToggleResult`` is what every like/save toggle reports.  ``ChangeEvent``
is the normalized form of a backend change notification; the realtime
trigger only ever sees this type, whatever transport delivered it.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

__all__ = ["ChangeEvent", "ChangeOp", "ToggleResult", "WATCHED_TABLES"]


class ToggleResult(enum.StrEnum):
    """State of the (entity, user) pair after a toggle."""
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"


class ChangeOp(enum.StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Tables whose changes invalidate an engagement snapshot.
WATCHED_TABLES: frozenset[str] = frozenset({
    "trends",
    "trend_likes",
    "trend_comments",
    "trend_saves",
    "comment_likes",
})


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One insert/update/delete on a watched table.

    ``entity_id`` is the trend (or comment, for ``comment_likes``) the
    change is about, when known.
    """

    table: str
    op: ChangeOp
    entity_id: str | None = None
    user_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> str:
        return json.dumps({
            "table": self.table,
            "op": self.op.value,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
        })

    @classmethod
    def from_payload(cls, raw: str) -> ChangeEvent:
        """Parse a JSON NOTIFY payload.

        Raises ValueError on malformed JSON, a missing table, or an
        unknown operation.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ValueError(f"Change payload is not JSON: {raw!r}") from exc
        if not isinstance(data, dict) or not data.get("table"):
            raise ValueError(f"Change payload missing 'table': {raw!r}")
        return cls(
            table=str(data["table"]),
            op=ChangeOp(str(data.get("op", "UPDATE")).upper()),
            entity_id=data.get("entity_id"),
            user_id=data.get("user_id"),
        )
