"""Tests for recursive partitioning."""

import math

import numpy as np
import pytest

from inertialflow.config import PartitionConfig
from inertialflow.exceptions import SolverNonConvergence
from inertialflow.partition import RecursivePartitioner
from inertialflow.partition_id import PartitionID

from conftest import make_grid


def assert_exact_cover(result, n):
    cells = result.cells()
    assert sum(cell.size for cell in cells) == n
    assert sorted(np.concatenate(cells).tolist()) == list(range(n))
    assert all(cell.size > 0 for cell in cells)


class TestRecursivePartitioner:
    """Test the cell tree and the final assignment."""

    def test_grid_cells_cover_every_node(self, grid):
        result = RecursivePartitioner(grid, PartitionConfig(min_cell_size=10)).partition()
        assert_exact_cover(result, 100)
        assert result.cell_count > 1
        assert max(cell.size for cell in result.cells()) <= 10

    def test_split_records(self, grid):
        config = PartitionConfig(min_cell_size=10, balance_factor=0.3)
        result = RecursivePartitioner(grid, config).partition()
        assert result.splits[0].partition_id == 1
        assert result.splits[0].size == 100
        assert len(result.splits) == result.cell_count - 1
        for split in result.splits:
            assert split.head_size == max(1, min(math.ceil(0.3 * split.size - 1e-9), split.size // 2))
            assert split.source_size + split.sink_size == split.size
            assert min(split.source_size, split.sink_size) >= split.head_size

    def test_deterministic(self, grid):
        config = PartitionConfig(min_cell_size=7)
        first = RecursivePartitioner(grid, config).partition()
        second = RecursivePartitioner(grid, config).partition()
        assert first.cell_ids.tolist() == second.cell_ids.tolist()
        assert first.partition_ids.tolist() == second.partition_ids.tolist()

    def test_zero_depth_gives_single_cell(self, grid):
        result = RecursivePartitioner(grid, PartitionConfig(max_recursion_depth=0, min_cell_size=1)).partition()
        assert result.cell_count == 1
        assert result.splits == []
        assert set(result.partition_ids.tolist()) == {1}

    def test_depth_limit(self, grid):
        config = PartitionConfig(max_recursion_depth=2, min_cell_size=1)
        result = RecursivePartitioner(grid, config).partition()
        assert result.cell_count == 4
        assert sorted(set(result.partition_ids.tolist())) == [4, 5, 6, 7]

    def test_small_graph_is_one_cell(self, two_components):
        result = RecursivePartitioner(two_components, PartitionConfig(min_cell_size=100)).partition()
        assert result.cell_count == 1
        assert_exact_cover(result, 100)

    def test_components_become_cells(self, two_components):
        result = RecursivePartitioner(two_components, PartitionConfig(min_cell_size=50)).partition()
        assert result.to_cell_sets() == [set(range(50)), set(range(50, 100))]
        assert result.splits[0].cut_capacity == 0

    def test_leaf_ids_follow_tree_order(self, grid):
        result = RecursivePartitioner(grid, PartitionConfig(min_cell_size=10)).partition()
        by_cell = result.cell_partition_ids()
        ordered = [PartitionID(by_cell[cell]) for cell in range(result.cell_count)]
        # below their common ancestor the left leaf turns left, the right leaf turns right
        for left, right in zip(ordered, ordered[1:]):
            depth = left.lowest_common_ancestor(right).level() + 1
            assert (left.value >> (left.level() - depth)) & 1 == 0
            assert (right.value >> (right.level() - depth)) & 1 == 1

        # ids left-aligned to the deepest level increase from leaf to leaf
        top = max(pid.level() for pid in ordered)
        keys = [pid.value << (top - pid.level()) for pid in ordered]
        assert keys == sorted(keys)
        assert len(set(keys)) == len(keys)

    def test_partition_ids_nest(self, grid):
        result = RecursivePartitioner(grid, PartitionConfig(min_cell_size=10)).partition()
        split_ids = {split.partition_id for split in result.splits}
        for value in set(result.partition_ids.tolist()):
            pid = PartitionID(value)
            while pid != PartitionID.root():
                pid = pid.parent()
                assert pid.value in split_ids

    def test_assignment_pairs(self, cycle):
        result = RecursivePartitioner(cycle, PartitionConfig(min_cell_size=2)).partition()
        assert list(result.assignment()) == [(0, 0), (1, 1), (2, 1), (3, 0)]

    def test_solver_failure_propagates(self, grid, monkeypatch):
        def broken(network):
            raise SolverNonConvergence("flow value and cut capacity disagree")

        monkeypatch.setattr("inertialflow.bisector.solve", broken)
        with pytest.raises(SolverNonConvergence) as info:
            RecursivePartitioner(grid, PartitionConfig(min_cell_size=10)).partition()
        assert info.value.context['partition_id'] == 1
        assert info.value.context['direction'] == 0


class TestParallel:
    """Worker processes must reproduce the sequential assignment."""

    @pytest.mark.parametrize("workers", [2, 3])
    def test_matches_sequential(self, workers):
        store = make_grid(12, 12)
        sequential = RecursivePartitioner(store, PartitionConfig(min_cell_size=9)).partition()
        parallel = RecursivePartitioner(
            store, PartitionConfig(min_cell_size=9, workers=workers)
        ).partition()
        assert parallel.cell_ids.tolist() == sequential.cell_ids.tolist()
        assert parallel.partition_ids.tolist() == sequential.partition_ids.tolist()
        assert parallel.splits == sequential.splits
