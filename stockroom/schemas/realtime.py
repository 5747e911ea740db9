"""
Frames exchanged over the realtime WebSocket.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, field_validator

from stockroom.core.enums import ChangeOperation


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChangeEvent(BaseModel):
    """
    One row-level mutation as delivered by the change feed.
    Lives only while it is being relayed.
    """
    operation: ChangeOperation
    table: str
    row: Optional[Dict[str, Any]] = None
    old_row: Optional[Dict[str, Any]] = None
    commit_timestamp: Optional[str] = None

    @field_validator('operation', mode='before')
    @classmethod
    def normalise_operation(cls, v):
        # TG_OP arrives as INSERT/UPDATE/DELETE
        if isinstance(v, str):
            return v.lower()
        return v

    @classmethod
    def from_notification(cls, payload: Union[str, bytes, Dict[str, Any]]) -> "ChangeEvent":
        """Parse a NOTIFY payload. Raises ValueError on malformed input."""
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        return cls.model_validate(payload)

    def to_frame(self) -> Dict[str, Any]:
        return {
            "type": "change",
            "operation": self.operation.value,
            "table": self.table,
            "row": self.row,
            "old_row": self.old_row,
            "commit_timestamp": self.commit_timestamp,
        }


def welcome_frame() -> Dict[str, Any]:
    return {
        "type": "connection",
        "message": "WebSocket connection established",
        "timestamp": utc_timestamp(),
    }


def ping_frame() -> Dict[str, Any]:
    return {"type": "ping", "timestamp": utc_timestamp()}
