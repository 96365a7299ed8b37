"""
Locally indexed projection of a node subset of a GraphStore.

Each recursion level works through one of these views. Building it touches
only the adjacency rows of the active nodes and translates neighbour ids with
a binary search over a sorted copy of the active set, so its memory is
O(k + local edges) no matter how large the underlying store is.
"""

from typing import List, Optional, Tuple

import numpy as np

from .graph_store import GraphStore


class SubgraphView:
    def __init__(self, store: GraphStore, node_ids):
        node_ids = np.asarray(node_ids, dtype=np.int64)
        if node_ids.ndim != 1 or node_ids.size < 2:
            raise ValueError("a subgraph view needs at least two nodes")

        sorter = np.argsort(node_ids, kind="stable")
        sorted_ids = node_ids[sorter]
        if np.any(sorted_ids[1:] == sorted_ids[:-1]):
            raise ValueError("subgraph node ids must be distinct")

        self.store = store
        self.node_ids = node_ids
        self._sorter = sorter
        self._sorted_ids = sorted_ids
        self.coordinates = store.coordinate_array()[node_ids]
        self._build_adjacency()

    def _build_adjacency(self) -> None:
        store = self.store
        k = self.node_ids.size
        starts = store.offsets[self.node_ids]
        lengths = store.offsets[self.node_ids + 1] - starts

        # flat positions of all arcs leaving the active nodes
        total = int(lengths.sum())
        row_of_arc = np.repeat(np.arange(k, dtype=np.int64), lengths)
        first_of_row = np.cumsum(lengths) - lengths
        arc_index = np.repeat(starts - first_of_row, lengths) + np.arange(total, dtype=np.int64)

        targets = store.targets[arc_index]
        local_targets = self._lookup(targets)
        inside = local_targets >= 0

        rows = row_of_arc[inside]
        self.targets = local_targets[inside]
        self.capacities = store.capacities[arc_index][inside]
        self.reverse_capacities = store.reverse_capacities[arc_index][inside]

        self.offsets = np.zeros(k + 1, dtype=np.int64)
        np.cumsum(np.bincount(rows, minlength=k), out=self.offsets[1:])

    def _lookup(self, original_ids: np.ndarray) -> np.ndarray:
        """Local ids for the given original ids, -1 where not active."""
        positions = np.searchsorted(self._sorted_ids, original_ids)
        clipped = np.minimum(positions, self._sorted_ids.size - 1)
        found = self._sorted_ids[clipped] == original_ids
        return np.where(found, self._sorter[clipped], -1)

    def __len__(self) -> int:
        return int(self.node_ids.size)

    def node_count(self) -> int:
        return int(self.node_ids.size)

    def edge_count(self) -> int:
        """Node pairs inside the view."""
        return int(self.targets.size // 2)

    def to_original(self, local_id: int) -> int:
        return int(self.node_ids[local_id])

    def from_original(self, original_id: int) -> Optional[int]:
        local = int(self._lookup(np.asarray([original_id], dtype=np.int64))[0])
        return local if local >= 0 else None

    def arcs(self, local_id: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        start, end = self.offsets[local_id], self.offsets[local_id + 1]
        return (
            self.targets[start:end],
            self.capacities[start:end],
            self.reverse_capacities[start:end],
        )

    def neighbors(self, local_id: int) -> List[Tuple[int, int]]:
        targets, capacities, _ = self.arcs(local_id)
        return [(int(v), int(c)) for v, c in zip(targets, capacities)]

    def allocated_size(self) -> int:
        """Number of array entries retained by the view."""
        arrays = (
            self.node_ids,
            self._sorter,
            self._sorted_ids,
            self.coordinates,
            self.offsets,
            self.targets,
            self.capacities,
            self.reverse_capacities,
        )
        return int(sum(a.size for a in arrays))
