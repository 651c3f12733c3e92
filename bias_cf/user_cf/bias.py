from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping

from .store import RatingStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Biases:
    """Frozen result of bias fitting: global mean plus per-user/per-item offsets."""

    global_mean: float
    user: Mapping[int, float]
    item: Mapping[int, float]

    def baseline(self, user: int, item: int) -> float:
        """globalMean + userBias + itemBias, with unknown ids contributing 0."""
        return self.global_mean + self.user.get(user, 0.0) + self.item.get(item, 0.0)


def fit_biases(
    store: RatingStore,
    global_mean: float,
    *,
    iterations: int = 8,
    alpha: float = 0.01,
    reg: float = 0.02,
) -> Biases:
    """Fit user and item biases by sequential regularized gradient steps.

    Every pass walks the store in its fixed order and, for each observation,
    updates the user and item bias in place, so later observations in the same
    pass already see the new values. The number of passes is fixed; there is no
    convergence check.
    """
    user_bias: Dict[int, float] = {}
    item_bias: Dict[int, float] = {}
    for u, i, _ in store.iter_ratings():
        user_bias[u] = 0.0
        item_bias[i] = 0.0

    for it in range(int(iterations)):
        sq_err = 0.0
        n = 0
        for u, i, r in store.iter_ratings():
            bu = user_bias[u]
            bi = item_bias[i]
            err = r - (global_mean + bu + bi)

            user_bias[u] = bu + alpha * (err - reg * bu)
            item_bias[i] = bi + alpha * (err - reg * bi)

            sq_err += err * err
            n += 1
        if n:
            logger.debug("bias pass=%d train_rmse=%.4f", it + 1, (sq_err / n) ** 0.5)

    logger.info(
        "Biases fitted: users=%d items=%d iterations=%d global_mean=%.4f",
        len(user_bias),
        len(item_bias),
        int(iterations),
        global_mean,
    )
    return Biases(
        global_mean=float(global_mean),
        user=MappingProxyType(user_bias),
        item=MappingProxyType(item_bias),
    )
