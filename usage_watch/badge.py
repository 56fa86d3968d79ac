from dataclasses import dataclass
from typing import Optional, Sequence

from .models import METRIC_KEYS, MetricEntry, MetricSnapshot, round_pct

COLOR_OK = "#4CAF50"
COLOR_CAUTION = "#FFC107"
COLOR_WARNING = "#FF9800"
COLOR_CRITICAL = "#F44336"
COLOR_NEUTRAL = "#666666"
TEXT_COLOR = "#FFFFFF"

DEGRADED_TEXT = "!"


@dataclass(frozen=True)
class Badge:
    text: str
    background_color: str
    text_color: str = TEXT_COLOR


DEGRADED_BADGE = Badge(text=DEGRADED_TEXT, background_color=COLOR_NEUTRAL)
EMPTY_BADGE = Badge(text="", background_color=COLOR_NEUTRAL)


def band_color(pct: int) -> str:
    if pct < 50:
        return COLOR_OK
    if pct < 75:
        return COLOR_CAUTION
    if pct < 90:
        return COLOR_WARNING
    return COLOR_CRITICAL


def pick_entry(snapshot: Optional[MetricSnapshot], order: Sequence[str]) -> Optional[MetricEntry]:
    if not snapshot:
        return None

    primary = order[0] if order else METRIC_KEYS[0]
    entry = snapshot.get(primary)
    if entry is not None:
        return entry

    for key in list(order) + METRIC_KEYS:
        entry = snapshot.get(key)
        if entry is not None:
            return entry
    return None


def project(snapshot: Optional[MetricSnapshot], order: Sequence[str]) -> Badge:
    entry = pick_entry(snapshot, order)
    if entry is None:
        return EMPTY_BADGE

    pct = round_pct(entry.utilization)
    return Badge(text=str(pct), background_color=band_color(pct))
