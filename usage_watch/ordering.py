from typing import Iterable, List, Optional, Sequence

from .models import METRIC_KEYS, MetricSnapshot
from .storage import JsonStore

CARD_ORDER_KEY = "cardOrder"


def available_keys(snapshot: Optional[MetricSnapshot]) -> set[str]:
    if not snapshot:
        return set()
    return {key for key in METRIC_KEYS if snapshot.get(key) is not None}


def resolve_order(available: Iterable[str], preference: Optional[Sequence[str]]) -> List[str]:
    """Merge the saved preference with the keys that currently have data.

    Preferred keys come first in preference order, then every other available
    key in default order.  Stale preference entries are dropped.
    """
    avail = set(available)
    if not preference:
        return [key for key in METRIC_KEYS if key in avail]

    ordered: List[str] = []
    for key in preference:
        if key in avail and key not in ordered:
            ordered.append(key)
    for key in METRIC_KEYS:
        if key in avail and key not in ordered:
            ordered.append(key)
    return ordered


def move_key(order: Sequence[str], key: str, to_index: int) -> List[str]:
    new_order = list(order)
    if key not in new_order:
        return new_order

    new_order.remove(key)
    to_index = max(0, min(to_index, len(new_order)))
    new_order.insert(to_index, key)
    return new_order


class KeyOrderResolver:
    def __init__(self, store: JsonStore):
        self.store = store

    async def load(self) -> Optional[List[str]]:
        raw = await self.store.get(CARD_ORDER_KEY)
        if not isinstance(raw, list) or not raw:
            return None
        return [k for k in raw if isinstance(k, str)] or None

    async def resolve(self, snapshot: Optional[MetricSnapshot]) -> List[str]:
        return resolve_order(available_keys(snapshot), await self.load())

    async def primary_key(self, snapshot: Optional[MetricSnapshot]) -> str:
        order = await self.resolve(snapshot)
        return order[0] if order else METRIC_KEYS[0]

    async def save(self, order: Sequence[str]) -> None:
        await self.store.set(CARD_ORDER_KEY, list(order))
