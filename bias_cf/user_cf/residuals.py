from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Tuple

from .bias import Biases
from .store import RatingStore


@dataclass(frozen=True)
class ResidualIndex:
    """Inverted index ``itemId -> ((userId, residual), ...)``.

    Each item's entries are ordered by ascending user id.
    """

    by_item: Mapping[int, Tuple[Tuple[int, float], ...]]

    def __len__(self) -> int:
        return len(self.by_item)

    def items(self) -> Iterator[Tuple[int, Tuple[Tuple[int, float], ...]]]:
        for item in sorted(self.by_item):
            yield item, self.by_item[item]

    @classmethod
    def from_lists(cls, by_item: Mapping[int, List[Tuple[int, float]]]) -> "ResidualIndex":
        return cls(
            by_item=MappingProxyType(
                {int(i): tuple((int(u), float(res)) for u, res in entries) for i, entries in by_item.items()}
            )
        )


def build_residual_index(store: RatingStore, biases: Biases) -> ResidualIndex:
    """residual = rating - baseline, grouped by item."""
    by_item: Dict[int, List[Tuple[int, float]]] = {}
    for u, i, r in store.iter_ratings():
        by_item.setdefault(i, []).append((u, r - biases.baseline(u, i)))
    return ResidualIndex.from_lists(by_item)
