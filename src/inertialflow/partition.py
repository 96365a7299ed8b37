"""
Recursive Inertial Flow partitioning.

Cells are processed from an explicit stack. Left children are handled before
right children, so leaf ids follow the left-to-right order of the leaves in
the cell tree. With several workers the tree is first expanded level by level
until enough independent subtrees exist, the subtrees are mapped over a
process pool in order and their leaves are spliced back in place, which gives
exactly the ids of a sequential run.
"""

from dataclasses import dataclass, field
from multiprocessing import Pool
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

import numpy as np
import structlog
from tqdm import tqdm

from .bisector import InertialFlowBisector
from .config import PartitionConfig
from .exceptions import DegenerateCut, PartitionError, UngraphableCell
from .flow_network import CapacityFn
from .graph_store import GraphStore
from .partition_id import PartitionID

logger = structlog.get_logger()


@dataclass
class Cell:
    node_ids: np.ndarray
    depth: int
    partition_id: PartitionID


@dataclass
class SplitRecord:
    partition_id: int
    depth: int
    size: int
    head_size: int
    direction: int
    cut_capacity: int
    source_size: int
    sink_size: int


@dataclass
class SubtreeResult:
    leaves: List[Cell] = field(default_factory=list)
    splits: List[SplitRecord] = field(default_factory=list)


@dataclass
class PartitionResult:
    cell_ids: np.ndarray
    partition_ids: np.ndarray
    splits: List[SplitRecord]

    @property
    def cell_count(self) -> int:
        return int(self.cell_ids.max()) + 1 if self.cell_ids.size else 0

    def assignment(self) -> Iterator[Tuple[int, int]]:
        """(original node id, cell id) for every node."""
        for node, cell in enumerate(self.cell_ids.tolist()):
            yield node, cell

    def cells(self) -> List[np.ndarray]:
        order = np.argsort(self.cell_ids, kind="stable")
        boundaries = np.flatnonzero(np.diff(self.cell_ids[order])) + 1
        return np.split(order, boundaries) if order.size else []

    def to_cell_sets(self) -> List[Set[int]]:
        return [set(cell.tolist()) for cell in self.cells()]

    def cell_partition_ids(self) -> Dict[int, int]:
        return {int(c): int(p) for c, p in zip(self.cell_ids, self.partition_ids)}


# per-process partitioner used by pool workers
_worker_partitioner: Optional["RecursivePartitioner"] = None


def _init_worker(graph: GraphStore, config: PartitionConfig,
                 capacity_fn: Optional[CapacityFn]) -> None:
    global _worker_partitioner
    _worker_partitioner = RecursivePartitioner(graph, config, capacity_fn)


def _run_subtree(cell: Cell) -> SubtreeResult:
    return _worker_partitioner.partition_subtree(cell)


class RecursivePartitioner:
    def __init__(self, graph: GraphStore, config: Optional[PartitionConfig] = None,
                 capacity_fn: Optional[CapacityFn] = None):
        self.graph = graph
        self.config = config or PartitionConfig()
        self.capacity_fn = capacity_fn
        self.bisector = InertialFlowBisector(self.config, capacity_fn)

    def _is_leaf(self, cell: Cell) -> bool:
        return (cell.depth >= self.config.max_recursion_depth
                or cell.node_ids.size <= self.config.min_cell_size)

    def _split(self, cell: Cell) -> Optional[Tuple[Cell, Cell, SplitRecord]]:
        """Children and split record, or None when the cell stays a leaf."""
        if self._is_leaf(cell):
            return None
        try:
            bisection = self.bisector.bisect(self.graph, cell.node_ids, cell.depth)
        except (UngraphableCell, DegenerateCut) as exc:
            logger.warning(
                "Cell demoted to leaf",
                reason=type(exc).__name__,
                cell_size=int(cell.node_ids.size),
                depth=cell.depth,
                partition_id=cell.partition_id.value,
            )
            return None
        except PartitionError as exc:
            raise exc.with_context(partition_id=cell.partition_id.value)

        left = Cell(bisection.source_nodes, cell.depth + 1, cell.partition_id.left_child())
        right = Cell(bisection.sink_nodes, cell.depth + 1, cell.partition_id.right_child())
        record = SplitRecord(
            partition_id=cell.partition_id.value,
            depth=cell.depth,
            size=int(cell.node_ids.size),
            head_size=bisection.head_size,
            direction=bisection.direction,
            cut_capacity=bisection.cut_capacity,
            source_size=int(left.node_ids.size),
            sink_size=int(right.node_ids.size),
        )
        logger.debug("Bisected cell", **record.__dict__)
        return left, right, record

    def partition_subtree(self, cell: Cell,
                          on_leaf: Optional[Callable[[Cell], None]] = None) -> SubtreeResult:
        """Leaves of the subtree below ``cell`` in left-to-right order."""
        result = SubtreeResult()
        stack = [cell]
        while stack:
            current = stack.pop()
            split = self._split(current)
            if split is None:
                result.leaves.append(current)
                if on_leaf is not None:
                    on_leaf(current)
                continue
            left, right, record = split
            result.splits.append(record)
            stack.append(right)
            stack.append(left)
        return result

    def _expand_frontier(self, root: Cell) -> Tuple[List[Tuple[bool, Cell]], List[SplitRecord]]:
        """Split level by level until there are enough open cells for the pool."""
        entries = [(True, root)]
        splits = []
        while 0 < sum(is_open for is_open, _ in entries) < self.config.workers:
            expanded = []
            for is_open, cell in entries:
                split = self._split(cell) if is_open else None
                if split is None:
                    expanded.append((False, cell))
                    continue
                left, right, record = split
                splits.append(record)
                expanded.extend([(True, left), (True, right)])
            entries = expanded
        return entries, splits

    def _partition_parallel(self, root: Cell) -> SubtreeResult:
        entries, splits = self._expand_frontier(root)
        open_cells = [cell for is_open, cell in entries if is_open]
        logger.info("Dispatching subtrees", subtrees=len(open_cells), workers=self.config.workers)

        subtrees: List[SubtreeResult] = []
        if open_cells:
            with Pool(self.config.workers, initializer=_init_worker,
                      initargs=(self.graph, self.config, self.capacity_fn)) as pool:
                subtrees = list(tqdm(
                    pool.imap(_run_subtree, open_cells),
                    total=len(open_cells),
                    desc="Cell subtrees",
                    disable=not self.config.show_progress,
                ))

        result = SubtreeResult(splits=splits)
        remaining = iter(subtrees)
        for is_open, cell in entries:
            if is_open:
                subtree = next(remaining)
                result.leaves.extend(subtree.leaves)
                result.splits.extend(subtree.splits)
            else:
                result.leaves.append(cell)
        return result

    def _partition_sequential(self, root: Cell) -> SubtreeResult:
        with tqdm(total=root.node_ids.size, desc="Assigned nodes", unit="node",
                  disable=not self.config.show_progress) as progress:
            return self.partition_subtree(root, on_leaf=lambda c: progress.update(c.node_ids.size))

    def partition(self) -> PartitionResult:
        n = self.graph.node_count()
        logger.info(
            "Partitioning graph",
            nodes=n,
            edges=self.graph.edge_count(),
            balance_factor=self.config.balance_factor,
            max_recursion_depth=self.config.max_recursion_depth,
            min_cell_size=self.config.min_cell_size,
        )
        root = Cell(np.arange(n, dtype=np.int64), 0, PartitionID.root())

        if self.config.workers > 1:
            subtree = self._partition_parallel(root)
        else:
            subtree = self._partition_sequential(root)

        cell_ids = np.full(n, -1, dtype=np.int64)
        partition_ids = np.zeros(n, dtype=np.int64)
        for cell_id, leaf in enumerate(subtree.leaves):
            cell_ids[leaf.node_ids] = cell_id
            partition_ids[leaf.node_ids] = leaf.partition_id.value

        unassigned = np.flatnonzero(cell_ids < 0)
        if unassigned.size:
            raise PartitionError("nodes left without a cell", unassigned=int(unassigned.size))

        splits = sorted(subtree.splits, key=lambda record: record.partition_id)
        logger.info("Partitioning finished", cells=len(subtree.leaves), splits=len(splits))
        return PartitionResult(cell_ids=cell_ids, partition_ids=partition_ids, splits=splits)
