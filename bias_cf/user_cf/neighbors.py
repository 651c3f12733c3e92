from __future__ import annotations

import heapq
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple

from .similarity import SimilarityEdge


Neighbor = Tuple[int, float]  # (neighbor userId, similarity)


@dataclass(frozen=True)
class NeighborTable:
    """Read-only top-K neighbors per user, best first."""

    k: int
    by_user: Mapping[int, Tuple[Neighbor, ...]]

    def neighbors_of(self, user: int) -> Tuple[Neighbor, ...]:
        return self.by_user.get(user, ())

    def __len__(self) -> int:
        return len(self.by_user)


class NeighborSelector:
    """Bounded min-heap of candidate neighbors per user.

    Heap entries are ``(similarity, -neighbor)`` so the root is the weakest
    candidate and, among equal similarities, the one with the higher id. That
    entry is evicted first, which makes the kept set independent of insertion
    order: lower neighbor ids win ties.
    """

    def __init__(self, k: int = 190) -> None:
        if int(k) < 0:
            raise ValueError(f"k must be >= 0, got {k}")
        self.k = int(k)
        self._heaps: Dict[int, List[Tuple[float, int]]] = {}

    def insert(self, user: int, neighbor: int, similarity: float) -> None:
        if self.k == 0:
            return
        heap = self._heaps.setdefault(user, [])
        entry = (float(similarity), -int(neighbor))
        if len(heap) < self.k:
            heapq.heappush(heap, entry)
        else:
            heapq.heappushpop(heap, entry)

    def add_edge(self, edge: SimilarityEdge) -> None:
        self.insert(edge.user_a, edge.user_b, edge.value)
        self.insert(edge.user_b, edge.user_a, edge.value)

    def add_edges(self, edges: Iterable[SimilarityEdge]) -> None:
        for edge in edges:
            self.add_edge(edge)

    def size_of(self, user: int) -> int:
        return len(self._heaps.get(user, ()))

    def freeze(self) -> NeighborTable:
        by_user = {
            user: tuple((-neg_id, sim) for sim, neg_id in sorted(heap, reverse=True))
            for user, heap in self._heaps.items()
        }
        return NeighborTable(k=self.k, by_user=MappingProxyType(by_user))
