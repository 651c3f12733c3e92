from __future__ import annotations

import logging
import math
from typing import Dict, Iterator, Optional, Tuple

import pandas as pd


logger = logging.getLogger(__name__)


class RatingStore:
    """Sparse ``userId -> {itemId -> rating}`` training observations.

    A repeated (user, item) pair overwrites the earlier rating. Iteration is
    in ascending user id, then ascending item id, independent of the order the
    ratings were added in, so every pass over the store sees the same order.
    """

    def __init__(self) -> None:
        self._by_user: Dict[int, Dict[int, float]] = {}
        self._item_counts: Dict[int, int] = {}

    @classmethod
    def from_frame(cls, ratings: pd.DataFrame) -> "RatingStore":
        """Build a store from a frame with columns userId, itemId, rating."""
        required = {"userId", "itemId", "rating"}
        missing = required - set(ratings.columns)
        if missing:
            raise ValueError(f"ratings missing required columns: {sorted(missing)}")

        store = cls()
        for u, i, r in ratings[["userId", "itemId", "rating"]].itertuples(index=False):
            store.add_or_replace(int(u), int(i), float(r))
        logger.info("RatingStore: users=%d items=%d ratings=%d", store.n_users, store.n_items, len(store))
        return store

    def add_or_replace(self, user: int, item: int, rating: float) -> None:
        uid, iid = int(user), int(item)
        items = self._by_user.setdefault(uid, {})
        if iid not in items:
            self._item_counts[iid] = self._item_counts.get(iid, 0) + 1
        items[iid] = float(rating)

    def remove(self, user: int, item: int) -> None:
        """Drop one observation; raises KeyError if it is not stored."""
        uid, iid = int(user), int(item)
        items = self._by_user[uid]
        del items[iid]
        if not items:
            del self._by_user[uid]
        self._item_counts[iid] -= 1
        if self._item_counts[iid] == 0:
            del self._item_counts[iid]

    def lookup(self, user: int, item: int) -> Optional[float]:
        items = self._by_user.get(int(user))
        if items is None:
            return None
        return items.get(int(item))

    def iter_users(self) -> Iterator[Tuple[int, Dict[int, float]]]:
        for u in sorted(self._by_user):
            items = self._by_user[u]
            yield u, {i: items[i] for i in sorted(items)}

    def iter_ratings(self) -> Iterator[Tuple[int, int, float]]:
        for u, items in self.iter_users():
            for i, r in items.items():
                yield u, i, r

    def global_mean(self, fallback: float = 3.5) -> float:
        n = len(self)
        if n == 0:
            return float(fallback)
        # fsum is exact, so the mean does not depend on insertion history.
        total = math.fsum(r for items in self._by_user.values() for r in items.values())
        return total / n

    def has_user(self, user: int) -> bool:
        return user in self._by_user

    def has_item(self, item: int) -> bool:
        return item in self._item_counts

    @property
    def n_users(self) -> int:
        return len(self._by_user)

    @property
    def n_items(self) -> int:
        return len(self._item_counts)

    @property
    def max_user_id(self) -> Optional[int]:
        return max(self._by_user) if self._by_user else None

    @property
    def max_item_id(self) -> Optional[int]:
        return max(self._item_counts) if self._item_counts else None

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_user.values())

    def __contains__(self, key: Tuple[int, int]) -> bool:
        user, item = key
        return self.lookup(user, item) is not None
