"""Shared fixtures for the usage_watch test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from usage_watch.storage import JsonStore

from .helpers import Recorder, StubFetcher


@pytest.fixture
def store(tmp_path: Path) -> JsonStore:
    return JsonStore(tmp_path / "state.json")


@pytest.fixture
def badge_sink() -> Recorder:
    return Recorder()


@pytest.fixture
def notify_sink() -> Recorder:
    return Recorder()


@pytest.fixture
def fetcher() -> StubFetcher:
    return StubFetcher()
