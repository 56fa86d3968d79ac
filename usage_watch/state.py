from dataclasses import dataclass
from typing import Any, Optional

from .models import MetricSnapshot, parse_snapshot, snapshot_to_dict


@dataclass
class RuntimeState:
    running: bool = False
    target_chat_id: Optional[int] = None
    poll_count: int = 0
    last_error: Optional[str] = None
    last_poll_ms: Optional[int] = None


@dataclass
class PersistedState:
    snapshot: Optional[MetricSnapshot] = None
    last_updated: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "usage": snapshot_to_dict(self.snapshot) if self.snapshot is not None else None,
            "lastUpdated": self.last_updated,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["PersistedState"]:
        if not isinstance(raw, dict):
            return None

        usage = raw.get("usage")
        snapshot = parse_snapshot(usage) if isinstance(usage, dict) else None

        last_updated = raw.get("lastUpdated")
        if not isinstance(last_updated, int) or isinstance(last_updated, bool):
            last_updated = None

        error = raw.get("error")
        if error is not None:
            error = str(error)

        return cls(snapshot=snapshot, last_updated=last_updated, error=error)
