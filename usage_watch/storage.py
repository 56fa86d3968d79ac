"""Key-value store kept in one JSON file, with per-key change callbacks."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable

logger = logging.getLogger("usage_watch.storage")

ChangeCallback = Callable[[Any, Any], Awaitable[None]]


class JsonStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: dict[str, Any] = self._read()
        self._listeners: dict[str, list[ChangeCallback]] = {}

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("State file %s is unreadable, starting empty", self.path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        old = self._data.get(key)
        self._data[key] = copy.deepcopy(value)
        self._write()

        for callback in list(self._listeners.get(key, ())):
            await callback(copy.deepcopy(value), old)

    def subscribe(self, key: str, callback: ChangeCallback) -> None:
        self._listeners.setdefault(key, []).append(callback)
