"""Weighted random selection over a keyed, thread-safe table.

Each key maps to an :class:`Item` holding a positive integer weight and an
opaque payload. :meth:`WeightTable.get` draws one entry with probability
``weight / total_weight``.

The table is unbounded: entries only leave through :meth:`WeightTable.delete`
or :meth:`WeightTable.clean`.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Generic, TypeVar

from random_weight_table._rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class Item(Generic[V]):
    """A stored entry: its weight and the caller's payload."""

    weight: int
    value: V


def _percentage(weight: int, total: int) -> float:
    """Share of ``total`` as a percentage, rounded half away from zero to 0.01."""
    scaled = weight / total * 100 * 100
    whole = math.floor(scaled)
    if scaled - whole >= 0.5:
        whole += 1
    return whole / 100


class WeightTable(Generic[V]):
    """Thread-safe mapping of keys to weighted payloads.

    Mutations (``add``, ``delete``, ``clean``) take the lock exclusively;
    queries take it shared, so ``total_weight`` and the entries are always
    observed together.

    ``None`` means "no value supplied": it cannot create an entry, and it
    leaves an existing entry's payload untouched.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        if rng is None:
            rng = random.Random()
        elif not isinstance(rng, random.Random):
            raise TypeError(f"rng must be a random.Random, got {type(rng).__name__}")
        self._rng = rng
        self._lock = ReadWriteLock()
        self._items: dict[str, Item[V]] = {}
        self._total_weight = 0

    def add(self, key: str, value: V | None, weight: int) -> bool:
        """Add ``weight`` to ``key``, creating the entry if needed.

        Returns False, changing nothing, when the key is empty, the weight is
        not a positive integer, or the key is new and ``value`` is None.
        For an existing key the weights accumulate and a non-None ``value``
        replaces the stored payload.
        """
        if not isinstance(key, str) or not key:
            logger.debug("Rejected add: invalid key %r", key)
            return False
        if isinstance(weight, bool) or not isinstance(weight, int) or weight <= 0:
            logger.debug("Rejected add for %r: invalid weight %r", key, weight)
            return False

        with self._lock.write():
            item = self._items.get(key)
            if item is None:
                if value is None:
                    logger.debug("Rejected add for new key %r: no value", key)
                    return False
                self._items[key] = Item(weight=weight, value=value)
            else:
                item.weight += weight
                if value is not None:
                    item.value = value
            self._total_weight += weight
        return True

    def get(self) -> tuple[str, V | None]:
        """Draw one entry at random, weighted by its share of the total.

        Returns ``("", None)`` when the table is empty.
        """
        with self._lock.read():
            if self._total_weight <= 0:
                return "", None
            remaining = self._rng.randint(1, self._total_weight)
            for key, item in self._items.items():
                remaining -= item.weight
                if remaining <= 0:
                    return key, item.value
        return "", None

    def delete(self, key: str) -> None:
        """Remove ``key`` and its weight. Missing keys are ignored."""
        with self._lock.write():
            item = self._items.pop(key, None)
            if item is None:
                logger.debug("Delete of missing key %r ignored", key)
                return
            self._total_weight -= item.weight

    def get_probability(self, key: str) -> float:
        """Percentage chance of drawing ``key``, rounded to two decimals.

        0.0 when the table is empty or the key is absent.
        """
        with self._lock.read():
            if self._total_weight == 0:
                return 0.0
            item = self._items.get(key)
            if item is None:
                return 0.0
            return _percentage(item.weight, self._total_weight)

    def get_all_probabilities(self) -> dict[str, float]:
        """Percentage chance of drawing each key, rounded per key.

        The values are not renormalised, so they may not sum to exactly 100.
        """
        with self._lock.read():
            if self._total_weight == 0:
                return {}
            total = self._total_weight
            return {key: _percentage(item.weight, total) for key, item in self._items.items()}

    def clean(self) -> None:
        """Drop every entry and reset the total weight to zero."""
        with self._lock.write():
            dropped = len(self._items)
            self._items.clear()
            self._total_weight = 0
        logger.debug("Cleaned weight table, dropped %d entries", dropped)

    # -------------------------------------------------------------------------
    # Read-only helpers
    # -------------------------------------------------------------------------

    @property
    def total_weight(self) -> int:
        with self._lock.read():
            return self._total_weight

    def weight(self, key: str) -> int:
        """Stored weight of ``key``, or 0 if it is absent."""
        with self._lock.read():
            item = self._items.get(key)
            return 0 if item is None else item.weight

    def keys(self) -> list[str]:
        with self._lock.read():
            return list(self._items)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._items

    def __repr__(self) -> str:
        with self._lock.read():
            return f"WeightTable(entries={len(self._items)}, total_weight={self._total_weight})"

    def __enter__(self) -> WeightTable[V]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.clean()


def new(rng: random.Random | None = None) -> tuple[WeightTable[V], Callable[[], None]]:
    """Create an empty table together with its teardown callable."""
    table: WeightTable[V] = WeightTable(rng=rng)
    return table, table.clean
