"""Test doubles for the poller's capabilities."""

from __future__ import annotations

from usage_watch.models import parse_snapshot


class Recorder:
    """Records calls made to a badge or notification sink."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    async def __call__(self, a: str, b: str, c: str) -> None:
        self.calls.append((a, b, c))

    @property
    def last(self) -> tuple[str, str, str] | None:
        return self.calls[-1] if self.calls else None


class StubFetcher:
    """Returns queued snapshots or raises queued errors, one per call."""

    def __init__(self) -> None:
        self.results: list = []
        self.calls = 0

    def push(self, result) -> None:
        self.results.append(result)

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_snapshot(**utilization):
    """Snapshot with the given keys set to ``{"utilization": value}``."""
    payload = {}
    for key, value in utilization.items():
        if isinstance(value, dict):
            payload[key] = value
        else:
            payload[key] = {"utilization": value, "resets_at": None}
    return parse_snapshot(payload)
