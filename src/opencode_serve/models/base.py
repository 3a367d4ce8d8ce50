"""Shared base for wire models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class OpenCodeModel(BaseModel):
    """Base for every model exchanged with the server.

    Fields use snake_case in Python and the server's spelling (``sessionID``,
    ``messageID``, ...) on the wire. Unknown fields are kept so a value
    read from the server serializes back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", protected_namespaces=())

    def to_wire(self) -> dict[str, Any]:
        """Serialize using wire field names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


def from_epoch_ms(value: float | None) -> datetime | None:
    """Convert a server timestamp (milliseconds since epoch) to a datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)
