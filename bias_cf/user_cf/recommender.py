from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from ..config import ModelConfig
from ..errors import NotFittedError
from .bias import Biases, fit_biases
from .neighbors import NeighborSelector, NeighborTable
from .residuals import build_residual_index
from .similarity import compute_similarities
from .store import RatingStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimilarUser:
    userId: int
    similarity: float


class BiasAwareUserCF:
    """User-user CF on top of a global-mean + user/item bias baseline.

    Prediction for (u, i):

        baseline(u, i) + sum_v s(u, v) * (r(v, i) - baseline(v, i)) / sum_v |s(u, v)|

    where v ranges over u's top-K neighbors that rated i. Unknown users and
    items fall back to the baseline, and to the global mean when both are
    unknown.
    """

    def __init__(self, config: Optional[ModelConfig] = None) -> None:
        self.config = config or ModelConfig()
        self.store: Optional[RatingStore] = None
        self.biases: Optional[Biases] = None
        self.neighbors: Optional[NeighborTable] = None

    def fit(self, store: RatingStore) -> "BiasAwareUserCF":
        cfg = self.config
        global_mean = store.global_mean(fallback=cfg.fallback_mean)
        logger.info(
            "BiasAwareUserCF: users=%d items=%d ratings=%d global_mean=%.4f",
            store.n_users,
            store.n_items,
            len(store),
            global_mean,
        )

        biases = fit_biases(
            store,
            global_mean,
            iterations=cfg.num_iters,
            alpha=cfg.alpha,
            reg=cfg.reg,
        )
        index = build_residual_index(store, biases)
        sims = compute_similarities(index, shrink=cfg.shrink, amp_factor=cfg.amp_factor)

        selector = NeighborSelector(k=cfg.k)
        selector.add_edges(sims.edges)

        self.store = store
        self.biases = biases
        self.neighbors = selector.freeze()
        logger.info("Neighbor table built: users=%d k=%d", len(self.neighbors), cfg.k)
        return self

    def _check_fitted(self) -> None:
        if self.store is None or self.biases is None or self.neighbors is None:
            raise NotFittedError("Model not fitted. Call fit() first.")

    @property
    def global_mean(self) -> float:
        self._check_fitted()
        return self.biases.global_mean

    def has_user(self, userId: int) -> bool:
        self._check_fitted()
        return self.store.has_user(int(userId))

    def baseline(self, userId: int, itemId: int) -> float:
        self._check_fitted()
        return self.biases.baseline(int(userId), int(itemId))

    def predict(self, userId: int, itemId: int) -> float:
        self._check_fitted()
        uid, iid = int(userId), int(itemId)
        biases = self.biases
        baseline = biases.baseline(uid, iid)

        weighted_sum = 0.0
        weight_of_sum = 0.0
        for neighbor, sim in self.neighbors.neighbors_of(uid):
            r = self.store.lookup(neighbor, iid)
            if r is None:
                continue
            residual = r - biases.baseline(neighbor, iid)
            weighted_sum += residual * sim
            weight_of_sum += abs(sim)

        if weight_of_sum > 0.0:
            return baseline + weighted_sum / weight_of_sum
        return baseline

    def predict_batch(self, users: Iterable[int], items: Iterable[int]) -> np.ndarray:
        users = np.asarray(list(users), dtype=np.int64)
        items = np.asarray(list(items), dtype=np.int64)
        if users.shape != items.shape:
            raise ValueError(f"users/items length mismatch: {users.shape[0]} vs {items.shape[0]}")
        out = np.empty(users.shape[0], dtype=np.float64)
        for t, (u, i) in enumerate(zip(users, items)):
            out[t] = self.predict(int(u), int(i))
        return out

    def similar_users(self, userId: int, *, top_n: int = 10) -> list[SimilarUser]:
        """Most similar users from the neighbor table, best first.

        Unknown users (or users without any positive similarity) get an empty list.
        """
        self._check_fitted()
        if int(top_n) <= 0:
            return []
        return [
            SimilarUser(userId=int(v), similarity=float(s))
            for v, s in self.neighbors.neighbors_of(int(userId))[: int(top_n)]
        ]
