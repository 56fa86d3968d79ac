import html
from datetime import datetime
from typing import List, Optional, Sequence

from .badge import COLOR_CAUTION, COLOR_CRITICAL, COLOR_NEUTRAL, COLOR_OK, COLOR_WARNING, band_color
from .models import MetricSnapshot, label_for
from .notifier import format_time_until_reset
from .state import PersistedState

COLOR_EMOJI = {
    COLOR_OK: "🟢",
    COLOR_CAUTION: "🟡",
    COLOR_WARNING: "🟠",
    COLOR_CRITICAL: "🔴",
    COLOR_NEUTRAL: "⚪",
}


def band_emoji(pct: int) -> str:
    return COLOR_EMOJI[band_color(pct)]


def progress_bar(pct: int, width: int = 10) -> str:
    filled = max(0, min(width, round(pct * width / 100)))
    return "█" * filled + "░" * (width - filled)


def reset_text(resets_at: Optional[str], now: Optional[datetime] = None) -> str:
    if not resets_at:
        return ""
    left = format_time_until_reset(resets_at, now)
    if left == "soon":
        return "Resetting soon..."
    return f"Resets in {left}"


def updated_ago(last_updated_ms: Optional[int], now_ms: int) -> str:
    if not last_updated_ms:
        return "—"
    seconds = max(0, (now_ms - last_updated_ms) // 1000)
    if seconds < 60:
        return f"{seconds}s ago"
    return f"{seconds // 60}m ago"


def error_message(code: Optional[str]) -> str:
    if code == "NO_COOKIES":
        return "Please sign in to claude.ai"
    if code == "NO_ORG_ID":
        return "Could not find organization. Visit claude.ai first."
    if code and code.startswith("API_ERROR_"):
        status = code[len("API_ERROR_"):]
        return f"API error ({status}). Try refreshing claude.ai."
    return "Something went wrong. Try again later."


def format_card(key: str, snapshot: MetricSnapshot, now: Optional[datetime] = None) -> str:
    entry = snapshot[key]
    pct = entry.percent
    lines = [
        f"{band_emoji(pct)} <b>{html.escape(label_for(key))}</b> <code>{pct}%</code>",
        f"<code>{progress_bar(pct)}</code>",
    ]
    reset = reset_text(entry.resets_at, now)
    if reset:
        lines.append(f"<i>{html.escape(reset)}</i>")
    return "\n".join(lines)


def status_html(
        state: Optional[PersistedState],
        order: Sequence[str],
        *,
        now_ms: int,
        now: Optional[datetime] = None,
) -> str:
    if state is None or (state.snapshot is None and not state.error):
        return "⏳ Loading usage data..."

    parts: List[str] = ["<b>Claude Usage</b>"]

    if state.error:
        parts.append(f"<blockquote>❗ {html.escape(error_message(state.error))}</blockquote>")

    if state.snapshot is not None:
        cards = [format_card(key, state.snapshot, now) for key in order]
        parts.append("\n\n".join(cards) if cards else "No usage data for this account.")

    parts.append(f"Updated {updated_ago(state.last_updated, now_ms)}")
    return "\n\n".join(parts)


def order_text(order: Sequence[str]) -> str:
    if not order:
        return "No usage cards to reorder yet."

    lines = ["<b>Card order</b> (top card shows on badge and alerts)", ""]
    for i, key in enumerate(order, start=1):
        lines.append(f"{i}. {html.escape(label_for(key))}")
    return "\n".join(lines)


def badge_text(text: str, background_color: str) -> str:
    if not text:
        return "⚪ Usage: no data"
    emoji = COLOR_EMOJI.get(background_color, "⚪")
    if text == "!":
        return f"{emoji} Usage: unavailable"
    return f"{emoji} Usage: {html.escape(text)}%"
