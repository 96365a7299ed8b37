"""
Immutable in-memory graph with per-node planar coordinates.

Adjacency is kept in compressed sparse rows. Every node pair is stored once
per endpoint, so each neighbourhood lists the capacity towards the neighbour
and the capacity coming back from it (zero when an edge is one-way).
"""

from typing import Iterator, List, Optional, Tuple

import networkx as nx
import numpy as np
import structlog

from .exceptions import FormatError

logger = structlog.get_logger()


def _as_node_ids(values: np.ndarray, n: int, label: str) -> np.ndarray:
    if values.size and not np.issubdtype(values.dtype, np.integer):
        if not np.all(np.isfinite(values)) or np.any(np.mod(values, 1) != 0):
            raise FormatError(f"{label} ids must be integers")
    ids = values.astype(np.int64)
    out_of_range = np.flatnonzero((ids < 0) | (ids >= n))
    if out_of_range.size:
        position = int(out_of_range[0])
        raise FormatError(
            f"{label} id out of range",
            edge=position,
            node=int(ids[position]),
            node_count=n,
        )
    return ids


def _as_capacities(values: np.ndarray) -> np.ndarray:
    if values.dtype == np.bool_:
        values = values.astype(np.int64)
    if values.size and not np.issubdtype(values.dtype, np.integer):
        if not np.all(np.isfinite(values)):
            raise FormatError("capacities must be finite")
        if np.any(np.mod(values, 1) != 0):
            raise FormatError(
                "capacities must be integral; scale real weights to fixed point first"
            )
    capacities = values.astype(np.int64)
    negative = np.flatnonzero(capacities < 0)
    if negative.size:
        raise FormatError(
            "capacities must not be negative",
            edge=int(negative[0]),
            capacity=int(capacities[negative[0]]),
        )
    return capacities


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class GraphStore:
    def __init__(self, coordinates, sources, targets, capacities=None, directed: bool = False):
        coords = np.array(coordinates, dtype=np.float64)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise FormatError("coordinates must be an array of shape (n, 2)", shape=coords.shape)
        if not np.all(np.isfinite(coords)):
            raise FormatError("coordinates must be finite")
        n = coords.shape[0]

        sources = np.asarray(sources)
        targets = np.asarray(targets)
        if sources.ndim != 1 or sources.shape != targets.shape:
            raise FormatError(
                "source and target arrays must be one-dimensional and of equal length",
                sources=sources.shape,
                targets=targets.shape,
            )
        if capacities is None:
            capacities = np.ones(sources.shape, dtype=np.int64)
        capacities = np.asarray(capacities)
        if capacities.shape != sources.shape:
            raise FormatError(
                "capacity array does not match the edge list",
                edges=sources.shape,
                capacities=capacities.shape,
            )

        sources = _as_node_ids(sources, n, "source")
        targets = _as_node_ids(targets, n, "target")
        capacities = _as_capacities(capacities)

        # self loops never cross a cut
        keep = sources != targets
        sources, targets, capacities = sources[keep], targets[keep], capacities[keep]

        low = np.minimum(sources, targets)
        high = np.maximum(sources, targets)
        forward = sources == low
        if directed:
            low_to_high = np.where(forward, capacities, 0)
            high_to_low = np.where(forward, 0, capacities)
        else:
            low_to_high = capacities
            high_to_low = capacities

        # merge parallel edges by summing their capacities
        keys, inverse = np.unique(low * max(n, 1) + high, return_inverse=True)
        pair_low = keys // max(n, 1)
        pair_high = keys % max(n, 1)
        cap_low_high = np.zeros(keys.size, dtype=np.int64)
        cap_high_low = np.zeros(keys.size, dtype=np.int64)
        np.add.at(cap_low_high, inverse, low_to_high)
        np.add.at(cap_high_low, inverse, high_to_low)

        nodes = np.concatenate([pair_low, pair_high])
        neighbors = np.concatenate([pair_high, pair_low])
        caps = np.concatenate([cap_low_high, cap_high_low])
        reverse_caps = np.concatenate([cap_high_low, cap_low_high])
        order = np.lexsort((neighbors, nodes))

        offsets = np.zeros(n + 1, dtype=np.int64)
        np.cumsum(np.bincount(nodes, minlength=n), out=offsets[1:])

        self.directed = directed
        self.offsets = _frozen(offsets)
        self.targets = _frozen(neighbors[order])
        self.capacities = _frozen(caps[order])
        self.reverse_capacities = _frozen(reverse_caps[order])
        self._coordinates = _frozen(coords)
        self._pairs = tuple(_frozen(a) for a in (pair_low, pair_high, cap_low_high, cap_high_low))

        logger.debug("Graph store built", nodes=n, edges=int(keys.size), directed=directed)

    def node_count(self) -> int:
        return self._coordinates.shape[0]

    def edge_count(self) -> int:
        """Number of distinct node pairs joined by at least one edge."""
        return int(self._pairs[0].size)

    def coordinates(self, node: int) -> Tuple[float, float]:
        x, y = self._coordinates[node]
        return float(x), float(y)

    def coordinate_array(self) -> np.ndarray:
        return self._coordinates

    def degree(self, node: int) -> int:
        return int(self.offsets[node + 1] - self.offsets[node])

    def arcs(self, node: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Neighbours, capacities towards them and capacities back from them."""
        start, end = self.offsets[node], self.offsets[node + 1]
        return (
            self.targets[start:end],
            self.capacities[start:end],
            self.reverse_capacities[start:end],
        )

    def neighbors(self, node: int) -> List[Tuple[int, int]]:
        targets, capacities, _ = self.arcs(node)
        return [(int(v), int(c)) for v, c in zip(targets, capacities)]

    def edge_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """(low, high, capacity low->high, capacity high->low) per node pair."""
        return self._pairs

    def edges(self) -> Iterator[Tuple[int, int, int, int]]:
        for u, v, forward, backward in zip(*self._pairs):
            yield int(u), int(v), int(forward), int(backward)

    def total_capacity(self) -> int:
        return int(self._pairs[2].sum() + self._pairs[3].sum())

    def to_networkx(self) -> nx.Graph:
        """Undirected networkx view for analysis; capacities kept as attributes."""
        G = nx.Graph()
        for node, (x, y) in enumerate(self._coordinates):
            G.add_node(node, pos=(float(x), float(y)))
        for u, v, forward, backward in self.edges():
            G.add_edge(u, v, capacity=forward, reverse_capacity=backward)
        return G

    @classmethod
    def from_networkx(cls, G: nx.Graph, weight: Optional[str] = None,
                      scale: float = 1.0, pos: str = "pos") -> "GraphStore":
        """
        Build a store from a networkx graph labelled 0..n-1.

        Real valued weights are rounded to fixed point as round(w * scale) so
        the flow computation stays exact.
        """
        n = G.number_of_nodes()
        if set(G.nodes()) != set(range(n)):
            raise FormatError("networkx nodes must be labelled 0..n-1")

        coordinates = np.zeros((n, 2), dtype=np.float64)
        for node, data in G.nodes(data=True):
            if pos not in data:
                raise FormatError("node has no coordinate attribute", node=node, attribute=pos)
            coordinates[node] = data[pos]

        sources, targets, capacities = [], [], []
        for u, v, data in G.edges(data=True):
            sources.append(u)
            targets.append(v)
            capacities.append(1 if weight is None else round(data.get(weight, 1) * scale))

        return cls(coordinates, sources, targets, capacities, directed=G.is_directed())
