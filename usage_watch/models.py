import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

USAGE_KEYS = [
    ("five_hour", "Current Session"),
    ("seven_day", "Weekly All Models"),
    ("seven_day_sonnet", "Weekly Sonnet"),
    ("seven_day_opus", "Weekly Opus"),
    ("seven_day_cowork", "Weekly Cowork"),
    ("seven_day_oauth", "Weekly OAuth"),
]

METRIC_KEYS = [key for key, _ in USAGE_KEYS]
KEY_LABELS = dict(USAGE_KEYS)

MetricSnapshot = Dict[str, Optional["MetricEntry"]]


@dataclass(frozen=True)
class MetricEntry:
    utilization: float
    resets_at: Optional[str] = None

    @property
    def percent(self) -> int:
        return round_pct(self.utilization)

    def to_dict(self) -> dict:
        return {"utilization": self.utilization, "resets_at": self.resets_at}


def round_pct(value: float) -> int:
    # half-up, 49.5 -> 50
    return int(math.floor(value + 0.5))


def label_for(key: str) -> str:
    return KEY_LABELS.get(key, key)


def _parse_entry(raw: Any) -> Optional[MetricEntry]:
    if not isinstance(raw, dict):
        return None

    util = raw.get("utilization")
    if isinstance(util, bool) or not isinstance(util, (int, float)):
        return None
    try:
        util = float(util)
    except OverflowError:
        return None
    if not math.isfinite(util):
        return None

    resets_at = raw.get("resets_at")
    if not isinstance(resets_at, str) or not resets_at:
        resets_at = None

    return MetricEntry(utilization=util, resets_at=resets_at)


def parse_snapshot(payload: Dict[str, Any]) -> MetricSnapshot:
    """Build a snapshot from the usage payload.

    Unknown keys are ignored; missing or unusable entries become None.
    """
    return {key: _parse_entry(payload.get(key)) for key in METRIC_KEYS}


def snapshot_to_dict(snapshot: MetricSnapshot) -> Dict[str, Any]:
    return {key: (entry.to_dict() if entry else None) for key, entry in snapshot.items()}
