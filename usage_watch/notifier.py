from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .models import MetricSnapshot, label_for

THRESHOLDS = (50, 75, 90)

NOTIFIED_KEY = "notifiedThresholds"


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    body: str


def notification_id(key: str, threshold: int) -> str:
    return f"{key}_{threshold}"


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_time_until_reset(resets_at: Optional[str], now: Optional[datetime] = None) -> str:
    if not resets_at:
        return "soon"

    reset_dt = _parse_iso(resets_at)
    if reset_dt is None:
        return "soon"

    now = now or datetime.now(timezone.utc)
    diff_seconds = (reset_dt - now).total_seconds()
    if diff_seconds <= 0:
        return "soon"

    total_minutes = int(diff_seconds // 60)
    hours, minutes = divmod(total_minutes, 60)

    if hours > 24:
        days, rem_hours = divmod(hours, 24)
        return f"{days}d {rem_hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def build_notification(key: str, threshold: int, pct: int, reset: str) -> Notification:
    label = label_for(key)
    reset_part = "Resets soon." if reset == "soon" else f"Resets in {reset}."
    return Notification(
        id=notification_id(key, threshold),
        title=f"{label} at {pct}%",
        body=f"Crossed {threshold}% of your {label} limit. {reset_part}",
    )


def evaluate(
        snapshot: MetricSnapshot,
        notified: Optional[Dict[str, bool]],
        primary_key: str,
        *,
        now: Optional[datetime] = None,
) -> Tuple[List[Notification], Dict[str, bool]]:
    updated = dict(notified or {})
    entry = snapshot.get(primary_key)
    if entry is None:
        return [], updated

    pct = entry.percent
    reset = format_time_until_reset(entry.resets_at, now)

    fired: List[Notification] = []
    for threshold in THRESHOLDS:
        nid = notification_id(primary_key, threshold)
        if pct >= threshold:
            if not updated.get(nid):
                updated[nid] = True
                fired.append(build_notification(primary_key, threshold, pct, reset))
        else:
            updated.pop(nid, None)

    return fired, updated
