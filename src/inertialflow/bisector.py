"""
Inertial Flow bisection of a single cell.

For every candidate direction the active nodes are projected onto the
direction, the first and last ``ceil(b * k)`` nodes become the head and tail
terminals, and a minimum cut between them is computed. The winning cut is
the one with the smallest capacity, then the smallest deviation from an even
split, then the lowest direction index. There is no separate balance
tolerance: both sides always contain their ``ceil(b * k)`` terminals, so
every candidate is at least that balanced and ties in capacity go to the
more even split.
"""

import math
from dataclasses import dataclass
from functools import partial
from multiprocessing.pool import ThreadPool
from typing import List, Optional, Sequence

import numpy as np
import structlog

from .config import PartitionConfig
from .exceptions import DegenerateCut, SolverNonConvergence, UngraphableCell
from .flow_network import CapacityFn, build_flow_network
from .graph_store import GraphStore
from .max_flow import rebalance_cut, solve
from .subgraph import SubgraphView

logger = structlog.get_logger()


@dataclass
class CandidateCut:
    direction: int
    head_size: int
    capacity: int
    source_side: np.ndarray
    balance: float

    @property
    def deviation(self) -> float:
        return abs(self.balance - 0.5)

    @property
    def degenerate(self) -> bool:
        return not 0 < int(self.source_side.sum()) < self.source_side.size

    def rank(self):
        return self.capacity, self.deviation, self.direction


@dataclass
class Bisection:
    source_nodes: np.ndarray
    sink_nodes: np.ndarray
    cut_capacity: int
    balance: float
    direction: int
    head_size: int


def direction_vectors(count: int) -> np.ndarray:
    """Unit vectors at angles i * pi / count, i = 0..count-1."""
    angles = np.arange(count) * math.pi / count
    # snap cos(pi/2) and friends to exact zero so axis projections tie cleanly
    return np.round(np.column_stack([np.cos(angles), np.sin(angles)]), 12)


def terminal_size(balance_factor: float, k: int) -> int:
    # the epsilon keeps b * k from rounding up on representation noise (0.3 * 10)
    size = math.ceil(balance_factor * k - 1e-9)
    return max(1, min(size, k // 2))


def projection_order(coordinates: np.ndarray, node_ids: np.ndarray,
                     direction: np.ndarray) -> np.ndarray:
    """Local ids sorted by projected key, ties broken by original id."""
    keys = coordinates @ direction
    return np.lexsort((node_ids, keys))


class InertialFlowBisector:
    def __init__(self, config: Optional[PartitionConfig] = None,
                 capacity_fn: Optional[CapacityFn] = None):
        self.config = config or PartitionConfig()
        self.capacity_fn = capacity_fn
        self.directions = direction_vectors(self.config.candidate_direction_count)

    def _evaluate_direction(self, view: SubgraphView, head_size: int, index: int) -> CandidateCut:
        order = projection_order(view.coordinates, view.node_ids, self.directions[index])
        head = order[:head_size]
        tail = order[-head_size:]

        network = build_flow_network(view, head, tail, self.capacity_fn)
        try:
            cut = solve(network)
        except SolverNonConvergence as exc:
            raise exc.with_context(direction=index, cell_size=len(view))
        cut = rebalance_cut(network, cut, order.tolist())

        k = len(view)
        candidate = CandidateCut(
            direction=index,
            head_size=head_size,
            capacity=cut.capacity,
            source_side=cut.source_side,
            balance=cut.source_size / k,
        )
        logger.debug(
            "Evaluated direction",
            direction=index,
            cut=candidate.capacity,
            balance=round(candidate.balance, 3),
            cell_size=k,
        )
        return candidate

    def evaluate(self, view: SubgraphView) -> List[CandidateCut]:
        """Candidate cuts for every direction, in direction order."""
        head_size = terminal_size(self.config.balance_factor, len(view))
        worker = partial(self._evaluate_direction, view, head_size)
        indices = range(len(self.directions))

        if self.config.direction_workers > 1:
            with ThreadPool(min(self.config.direction_workers, len(indices))) as pool:
                return pool.map(worker, indices)
        return [worker(index) for index in indices]

    def bisect(self, store: GraphStore, node_ids: Sequence[int], depth: int = 0) -> Bisection:
        node_ids = np.asarray(node_ids, dtype=np.int64)
        k = int(node_ids.size)
        if k < 2:
            raise UngraphableCell("cell has fewer than two nodes", cell_size=k, depth=depth)

        view = SubgraphView(store, node_ids)
        try:
            candidates = self.evaluate(view)
        except SolverNonConvergence as exc:
            raise exc.with_context(depth=depth)

        valid = [c for c in candidates if not c.degenerate]
        if not valid:
            raise DegenerateCut(
                "no direction produced a two-sided cut",
                cell_size=k,
                depth=depth,
                directions=len(candidates),
            )

        best = min(valid, key=CandidateCut.rank)
        return Bisection(
            source_nodes=node_ids[best.source_side],
            sink_nodes=node_ids[~best.source_side],
            cut_capacity=best.capacity,
            balance=best.balance,
            direction=best.direction,
            head_size=best.head_size,
        )
