"""
Maximum flow / minimum cut with Dinic's algorithm.

Each phase labels the residual graph by BFS distance from the source and
saturates it with a blocking flow found by an iterative DFS that keeps a
current-arc pointer per node. The minimum cut is read off as the set of nodes
still reachable from the source once no augmenting path is left.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np
import structlog

from .exceptions import SolverNonConvergence
from .flow_network import FlowNetwork

logger = structlog.get_logger()


@dataclass
class Cut:
    flow: int
    capacity: int
    source_side: np.ndarray  # bool mask over the non-terminal nodes

    @property
    def source_size(self) -> int:
        return int(self.source_side.sum())

    @property
    def sink_size(self) -> int:
        return int(self.source_side.size - self.source_side.sum())


def _levels(network: FlowNetwork) -> List[int]:
    level = [-1] * network.node_count
    level[network.source] = 0
    queue = deque([network.source])
    heads, residual, adjacency = network.heads, network.residual, network.adjacency
    while queue:
        u = queue.popleft()
        for arc in adjacency[u]:
            v = heads[arc]
            if residual[arc] > 0 and level[v] < 0:
                level[v] = level[u] + 1
                queue.append(v)
    return level


def _blocking_flow(network: FlowNetwork, level: List[int]) -> int:
    heads, residual, adjacency = network.heads, network.residual, network.adjacency
    source, sink = network.source, network.sink
    pointer = [0] * network.node_count
    pushed = 0

    while True:
        path: List[int] = []
        u = source
        while u != sink:
            arcs = adjacency[u]
            while pointer[u] < len(arcs):
                arc = arcs[pointer[u]]
                v = heads[arc]
                if residual[arc] > 0 and level[v] == level[u] + 1:
                    break
                pointer[u] += 1
            else:
                if u == source:
                    return pushed
                # dead end, retreat and never come back here in this phase
                level[u] = -1
                arc = path.pop()
                u = heads[arc ^ 1]
                pointer[u] += 1
                continue
            path.append(arc)
            u = v

        bottleneck = min(residual[arc] for arc in path)
        for arc in path:
            residual[arc] -= bottleneck
            residual[arc ^ 1] += bottleneck
        pushed += bottleneck


def _reachable_from_source(network: FlowNetwork) -> List[bool]:
    seen = [False] * network.node_count
    seen[network.source] = True
    stack = [network.source]
    heads, residual, adjacency = network.heads, network.residual, network.adjacency
    while stack:
        u = stack.pop()
        for arc in adjacency[u]:
            v = heads[arc]
            if not seen[v] and residual[arc] > 0:
                seen[v] = True
                stack.append(v)
    return seen


def _reaching_sink(network: FlowNetwork) -> List[bool]:
    seen = [False] * network.node_count
    seen[network.sink] = True
    stack = [network.sink]
    heads, residual, adjacency = network.heads, network.residual, network.adjacency
    while stack:
        v = stack.pop()
        for arc in adjacency[v]:
            # arc ^ 1 runs from heads[arc] into v
            u = heads[arc]
            if not seen[u] and residual[arc ^ 1] > 0:
                seen[u] = True
                stack.append(u)
    return seen


def cut_capacity(network: FlowNetwork, source_side: List[bool]) -> int:
    """Total initial capacity of arcs leaving the source side."""
    heads, initial = network.heads, network.initial
    total = 0
    for arc, v in enumerate(heads):
        if source_side[network.tail(arc)] and not source_side[v]:
            total += initial[arc]
    return total


def _inner_mask(network: FlowNetwork, side: List[bool]) -> np.ndarray:
    mask = np.array(side, dtype=bool)
    keep = np.ones(network.node_count, dtype=bool)
    keep[[network.source, network.sink]] = False
    return mask[keep]


def solve(network: FlowNetwork) -> Cut:
    """
    Saturate the network and return the source-reachable minimum cut.

    The residual capacities stay in the network so the cut can be rebalanced
    afterwards.
    """
    flow = 0
    phases = 0
    while True:
        level = _levels(network)
        if level[network.sink] < 0:
            break
        phases += 1
        # every phase strictly increases the source-sink distance
        if phases > network.node_count:
            raise SolverNonConvergence(
                "max-flow exceeded its phase bound", phases=phases, nodes=network.node_count
            )
        flow += _blocking_flow(network, level)
        if network.terminal_capacity and flow >= network.terminal_capacity:
            raise SolverNonConvergence(
                "flow reached the terminal capacity sentinel",
                flow=flow,
                sentinel=network.terminal_capacity,
            )

    source_side = _reachable_from_source(network)
    capacity = cut_capacity(network, source_side)
    if capacity != flow:
        raise SolverNonConvergence("flow value and cut capacity disagree", flow=flow, cut=capacity)

    logger.debug("Max-flow finished", flow=flow, phases=phases, arcs=network.arc_count())
    return Cut(flow=flow, capacity=capacity, source_side=_inner_mask(network, source_side))


def rebalance_cut(network: FlowNetwork, cut: Cut, order: Iterable[int]) -> Cut:
    """
    Grow the source side of a solved network towards an even split.

    Nodes are visited in ``order``. Adding a node together with everything it
    reaches in the residual graph keeps the source side closed, so the result
    is still a minimum cut of the same capacity. Nodes that reach the sink
    are never added. Growth stops at the first node whose closure would make
    the split less even.
    """
    side = _reachable_from_source(network)
    reaches_sink = _reaching_sink(network)
    heads, residual, adjacency = network.heads, network.residual, network.adjacency

    inner = network.node_count - 2
    size = int(cut.source_side.sum())
    target = inner / 2.0

    for start in order:
        if size >= target:
            break
        if side[start] or reaches_sink[start]:
            continue

        closure = [start]
        seen = {start}
        stack = [start]
        while stack:
            u = stack.pop()
            for arc in adjacency[u]:
                v = heads[arc]
                if residual[arc] > 0 and not side[v] and v not in seen:
                    seen.add(v)
                    closure.append(v)
                    stack.append(v)

        grown = size + len(closure)
        if abs(grown - target) >= abs(size - target):
            break
        for u in closure:
            side[u] = True
        size = grown

    return Cut(flow=cut.flow, capacity=cut.capacity, source_side=_inner_mask(network, side))
