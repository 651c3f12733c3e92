from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure `import bias_cf...` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from bias_cf.user_cf.store import RatingStore  # noqa: E402


def make_store(rows) -> RatingStore:
    store = RatingStore()
    for u, i, r in rows:
        store.add_or_replace(u, i, r)
    return store


@pytest.fixture
def small_rows() -> list[tuple[int, int, float]]:
    return [
        (1, 1, 5.0),
        (1, 2, 3.0),
        (1, 3, 4.0),
        (2, 1, 4.0),
        (2, 2, 2.0),
        (2, 3, 4.0),
        (3, 1, 1.0),
        (3, 2, 5.0),
        (3, 4, 2.0),
        (4, 2, 4.0),
        (4, 3, 5.0),
        (4, 4, 1.0),
    ]


@pytest.fixture
def small_store(small_rows) -> RatingStore:
    return make_store(small_rows)
