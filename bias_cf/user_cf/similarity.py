"""User-user similarity from bias-corrected residuals.

Similarity between users a and b is a cosine over their residual vectors,
discounted by how few items they co-rated and sharpened by case amplification:

    raw   = dot(a, b) / (||a|| * ||b||)
    final = sign(raw) * |raw| ** amp_factor * count / (count + shrink)

The norms run over *all* items each user rated, not just the co-rated ones.
Dot products and co-rating counts come from sparse ``R @ R.T`` and ``B @ B.T``
over the users x items residual matrix R and its binary pattern B.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

import numpy as np
import scipy.sparse as sp

from .residuals import ResidualIndex


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimilarityEdge:
    user_a: int
    user_b: int
    value: float


@dataclass(frozen=True)
class SimilarityResult:
    edges: Tuple[SimilarityEdge, ...]
    magnitudes: Mapping[int, float]  # sum of squared residuals per user

    def as_dict(self) -> Dict[Tuple[int, int], float]:
        """Symmetric ``(a, b) -> value`` lookup containing both orientations."""
        out: Dict[Tuple[int, int], float] = {}
        for e in self.edges:
            out[(e.user_a, e.user_b)] = e.value
            out[(e.user_b, e.user_a)] = e.value
        return out


@dataclass(frozen=True)
class CoRatings:
    """Per user pair ``(users_a[j] < users_b[j])``: residual dot product and co-rated count."""

    users_a: np.ndarray
    users_b: np.ndarray
    dot: np.ndarray
    count: np.ndarray

    def __len__(self) -> int:
        return int(self.users_a.shape[0])


@dataclass(frozen=True)
class _ResidualMatrix:
    users: np.ndarray  # row -> userId, ascending
    R: sp.csr_matrix  # residuals
    B: sp.csr_matrix  # 1.0 where the user rated the item


def _residual_matrix(index: ResidualIndex) -> _ResidualMatrix:
    rows_u, cols_i, vals = [], [], []
    for item, entries in index.items():
        for u, res in entries:
            rows_u.append(u)
            cols_i.append(item)
            vals.append(res)

    users, rows = np.unique(np.asarray(rows_u, dtype=np.int64), return_inverse=True)
    items, cols = np.unique(np.asarray(cols_i, dtype=np.int64), return_inverse=True)
    shape = (users.shape[0], items.shape[0])
    data = np.asarray(vals, dtype=np.float64)

    R = sp.csr_matrix((data, (rows, cols)), shape=shape, dtype=np.float64)
    B = sp.csr_matrix((np.ones_like(data), (rows, cols)), shape=shape, dtype=np.float64)
    return _ResidualMatrix(users=users, R=R, B=B)


def _magnitudes(m: _ResidualMatrix) -> Dict[int, float]:
    sq = np.asarray(m.R.multiply(m.R).sum(axis=1)).ravel()
    return {int(u): float(v) for u, v in zip(m.users, sq)}


def _co_ratings(m: _ResidualMatrix) -> CoRatings:
    # count > 0 defines the pair set; R @ R.T drops pairs whose dot is exactly 0
    C = sp.triu(m.B @ m.B.T, k=1).tocoo()
    order = np.lexsort((C.col, C.row))
    rows, cols = C.row[order], C.col[order]

    D = (m.R @ m.R.T).tocsr()
    dot = np.asarray(D[rows, cols], dtype=np.float64).ravel() if rows.size else np.zeros(0)
    return CoRatings(
        users_a=m.users[rows],
        users_b=m.users[cols],
        dot=dot,
        count=np.rint(C.data[order]).astype(np.int64),
    )


def residual_magnitudes(index: ResidualIndex) -> Dict[int, float]:
    return _magnitudes(_residual_matrix(index))


def co_rating_dots(index: ResidualIndex) -> CoRatings:
    """Residual dot products and co-rated counts for every user pair sharing an item."""
    return _co_ratings(_residual_matrix(index))


def compute_similarities(
    index: ResidualIndex,
    *,
    shrink: float = 10.0,
    amp_factor: float = 1.3,
) -> SimilarityResult:
    if len(index) == 0:
        return SimilarityResult(edges=(), magnitudes={})

    m = _residual_matrix(index)
    mag = _magnitudes(m)
    pairs = _co_ratings(m)
    if len(pairs) == 0:
        return SimilarityResult(edges=(), magnitudes=mag)

    dot = pairs.dot
    count = pairs.count.astype(np.float64)
    mag_a = np.fromiter((mag[int(u)] for u in pairs.users_a), dtype=np.float64, count=len(pairs))
    mag_b = np.fromiter((mag[int(u)] for u in pairs.users_b), dtype=np.float64, count=len(pairs))

    denom = np.sqrt(mag_a) * np.sqrt(mag_b)
    has_norm = (mag_a != 0.0) & (mag_b != 0.0)
    raw = np.divide(dot, denom, out=np.zeros_like(dot), where=has_norm)

    keep = raw > 0.0
    factor = count / (count + float(shrink))
    amplified = np.sign(raw) * np.power(np.abs(raw), float(amp_factor))
    final = amplified * factor
    keep &= final > 0.0

    edges = tuple(
        SimilarityEdge(user_a=int(a), user_b=int(b), value=float(v))
        for a, b, v in zip(pairs.users_a[keep], pairs.users_b[keep], final[keep])
    )
    logger.info(
        "Similarities: pairs=%d kept=%d shrink=%.2f amp_factor=%.2f",
        len(pairs),
        len(edges),
        float(shrink),
        float(amp_factor),
    )
    return SimilarityResult(edges=edges, magnitudes=mag)
