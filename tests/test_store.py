from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from bias_cf.user_cf.store import RatingStore


def test_last_write_wins_without_accumulating() -> None:
    store = RatingStore()
    store.add_or_replace(1, 10, 2.0)
    store.add_or_replace(1, 10, 4.5)

    assert store.lookup(1, 10) == 4.5
    assert len(store) == 1
    assert store.n_items == 1
    assert store.global_mean() == 4.5


def test_lookup_absent_returns_none() -> None:
    store = RatingStore()
    store.add_or_replace(1, 10, 2.0)

    assert store.lookup(1, 11) is None
    assert store.lookup(2, 10) is None
    assert (1, 10) in store
    assert (2, 10) not in store


def test_iteration_is_sorted_and_restartable() -> None:
    store = RatingStore()
    for u, i, r in [(3, 2, 1.0), (1, 5, 2.0), (3, 1, 3.0), (1, 4, 4.0)]:
        store.add_or_replace(u, i, r)

    first = list(store.iter_ratings())
    second = list(store.iter_ratings())

    assert first == second
    assert first == [(1, 4, 4.0), (1, 5, 2.0), (3, 1, 3.0), (3, 2, 1.0)]
    assert [u for u, _ in store.iter_users()] == [1, 3]


def test_global_mean_and_fallback() -> None:
    store = RatingStore()
    assert store.global_mean() == 3.5
    assert store.global_mean(fallback=2.0) == 2.0

    for u, i, r in [(1, 1, 5.0), (1, 2, 3.0), (2, 1, 4.0), (2, 2, 2.0)]:
        store.add_or_replace(u, i, r)
    assert store.global_mean() == 3.5
    store.add_or_replace(3, 3, 1.0)
    assert store.global_mean() == pytest.approx(3.0)


def test_remove_drops_empty_users_and_items() -> None:
    store = RatingStore()
    store.add_or_replace(1, 1, 5.0)
    store.add_or_replace(2, 1, 3.0)

    store.remove(1, 1)

    assert not store.has_user(1)
    assert store.has_item(1)
    assert store.n_users == 1

    store.remove(2, 1)
    assert not store.has_item(1)
    assert len(store) == 0
    assert store.max_user_id is None

    with pytest.raises(KeyError):
        store.remove(2, 1)


def test_sizing_statistics(small_store: RatingStore) -> None:
    assert small_store.n_users == 4
    assert small_store.n_items == 4
    assert small_store.max_user_id == 4
    assert small_store.max_item_id == 4
    assert len(small_store) == 12


def test_from_frame_keeps_last_duplicate() -> None:
    df = pd.DataFrame({"userId": [1, 2, 1], "itemId": [7, 7, 7], "rating": [1.0, 2.0, 3.0]})

    store = RatingStore.from_frame(df)

    assert store.lookup(1, 7) == 3.0
    assert store.lookup(2, 7) == 2.0
    assert len(store) == 2


def test_from_frame_requires_columns() -> None:
    with pytest.raises(ValueError, match="itemId"):
        RatingStore.from_frame(pd.DataFrame({"userId": [1], "rating": [1.0]}))


def test_numpy_ids_are_normalized() -> None:
    store = RatingStore()
    store.add_or_replace(np.int64(1), np.int64(10), np.float64(2.5))

    u, i, r = next(store.iter_ratings())

    assert (type(u), type(i), type(r)) == (int, int, float)
    assert store.lookup(np.int64(1), np.int64(10)) == 2.5
    store.remove(np.int64(1), np.int64(10))
    assert len(store) == 0
