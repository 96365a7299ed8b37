"""
Capacitated flow networks with two virtual terminals.

Arcs are stored in pairs: arc ``a`` and its residual twin ``a ^ 1``. The
builder maps a SubgraphView onto local ids ``0..k-1`` and appends the
super-source ``k`` and the super-sink ``k + 1``.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np

from .exceptions import InvalidTerminals
from .subgraph import SubgraphView

CapacityFn = Callable[[int, int, int], int]


def unit_capacity(u: int, v: int, capacity: int) -> int:
    """Ignore stored weights; every existing direction gets capacity one."""
    return 1 if capacity > 0 else 0


class FlowNetwork:
    def __init__(self, node_count: int, source: int, sink: int):
        if source == sink:
            raise InvalidTerminals("source and sink must differ", source=source)
        self.node_count = node_count
        self.source = source
        self.sink = sink
        self.heads: List[int] = []
        self.residual: List[int] = []
        self.initial: List[int] = []
        self.adjacency: List[List[int]] = [[] for _ in range(node_count)]
        self.terminal_capacity = 0

    def add_arc(self, u: int, v: int, capacity: int, reverse_capacity: int = 0) -> int:
        """Add u->v together with its twin v->u; returns the index of u->v."""
        arc = len(self.heads)
        self.heads.extend((v, u))
        self.residual.extend((capacity, reverse_capacity))
        self.initial.extend((capacity, reverse_capacity))
        self.adjacency[u].append(arc)
        self.adjacency[v].append(arc + 1)
        return arc

    def tail(self, arc: int) -> int:
        return self.heads[arc ^ 1]

    def arc_count(self) -> int:
        return len(self.heads)


def _terminal_set(ids: Sequence[int], k: int, label: str) -> np.ndarray:
    ids = np.unique(np.asarray(ids, dtype=np.int64))
    if ids.size == 0:
        raise InvalidTerminals(f"{label} set is empty")
    if ids[0] < 0 or ids[-1] >= k:
        raise InvalidTerminals(f"{label} set contains ids outside the view", view_size=k)
    return ids


def build_flow_network(view: SubgraphView, head_set: Sequence[int], tail_set: Sequence[int],
                       capacity_fn: Optional[CapacityFn] = None) -> FlowNetwork:
    """
    Wire a view into a flow network between head_set and tail_set (local ids).

    Terminal arcs get the total arc capacity of the view plus one, which no
    flow through the view can reach.
    """
    k = view.node_count()
    head = _terminal_set(head_set, k, "head")
    tail = _terminal_set(tail_set, k, "tail")
    overlap = np.intersect1d(head, tail)
    if overlap.size:
        raise InvalidTerminals(
            "head and tail sets intersect", overlap=int(overlap.size), view_size=k
        )

    network = FlowNetwork(k + 2, source=k, sink=k + 1)
    node_ids = view.node_ids
    total = 0
    for u in range(k):
        targets, capacities, reverse_capacities = view.arcs(u)
        for v, forward, backward in zip(targets.tolist(), capacities.tolist(),
                                        reverse_capacities.tolist()):
            # each pair appears in both rows, wire it from the lower end only
            if v < u:
                continue
            if capacity_fn is not None:
                original_u, original_v = int(node_ids[u]), int(node_ids[v])
                forward = capacity_fn(original_u, original_v, forward)
                backward = capacity_fn(original_v, original_u, backward)
            network.add_arc(u, v, forward, backward)
            total += forward + backward

    network.terminal_capacity = total + 1
    for u in head.tolist():
        network.add_arc(network.source, u, network.terminal_capacity)
    for v in tail.tolist():
        network.add_arc(v, network.sink, network.terminal_capacity)
    return network
