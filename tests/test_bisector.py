"""Tests for single-cell Inertial Flow bisection."""

import numpy as np
import pytest

from inertialflow.bisector import (
    InertialFlowBisector,
    direction_vectors,
    projection_order,
    terminal_size,
)
from inertialflow.config import PartitionConfig
from inertialflow.exceptions import UngraphableCell
from inertialflow.subgraph import SubgraphView


class TestHelpers:
    """Test directions, terminal sizes and projections."""

    def test_four_directions(self):
        directions = direction_vectors(4)
        assert directions.shape == (4, 2)
        assert directions[0].tolist() == [1.0, 0.0]
        assert directions[2].tolist() == [0.0, 1.0]
        assert np.allclose(np.linalg.norm(directions, axis=1), 1.0)

    @pytest.mark.parametrize("b,k,expected", [
        (0.25, 4, 1),
        (0.25, 100, 25),
        (0.3, 10, 3),
        (0.01, 10, 1),
        (0.49, 3, 1),
        (0.25, 2, 1),
    ])
    def test_terminal_size(self, b, k, expected):
        assert terminal_size(b, k) == expected

    def test_ties_broken_by_original_id(self):
        coordinates = np.array([[1.0, 0.0], [0.0, 5.0], [0.0, 1.0]])
        node_ids = np.array([9, 4, 2])
        order = projection_order(coordinates, node_ids, np.array([1.0, 0.0]))
        assert order.tolist() == [2, 1, 0]


class TestInertialFlowBisector:
    """Test choosing the best direction."""

    def test_cycle_splits_two_and_two(self, cycle):
        bisection = InertialFlowBisector().bisect(cycle, [0, 1, 2, 3])
        assert bisection.cut_capacity == 2
        assert bisection.direction == 0
        assert bisection.balance == 0.5
        assert sorted(bisection.source_nodes.tolist()) == [0, 3]
        assert sorted(bisection.sink_nodes.tolist()) == [1, 2]

    def test_every_direction_evaluated(self, grid):
        bisector = InertialFlowBisector(PartitionConfig(candidate_direction_count=6))
        candidates = bisector.evaluate(SubgraphView(grid, range(100)))
        assert [c.direction for c in candidates] == list(range(6))
        assert all(c.head_size == 25 for c in candidates)

    def test_grid_cut_along_an_axis(self, grid):
        bisection = InertialFlowBisector().bisect(grid, np.arange(100))
        assert bisection.cut_capacity == 10
        assert bisection.source_nodes.size == bisection.sink_nodes.size == 50

    def test_sides_partition_the_cell(self, grid):
        cell = np.arange(0, 100, 2)
        bisection = InertialFlowBisector(PartitionConfig(balance_factor=0.1)).bisect(grid, cell)
        joined = np.concatenate([bisection.source_nodes, bisection.sink_nodes])
        assert sorted(joined.tolist()) == cell.tolist()
        assert min(bisection.source_nodes.size, bisection.sink_nodes.size) >= bisection.head_size

    def test_thread_pool_gives_same_cut(self, grid):
        sequential = InertialFlowBisector().bisect(grid, np.arange(100))
        threaded = InertialFlowBisector(PartitionConfig(direction_workers=4)).bisect(
            grid, np.arange(100)
        )
        assert threaded.direction == sequential.direction
        assert threaded.source_nodes.tolist() == sequential.source_nodes.tolist()

    def test_single_node_cell(self, cycle):
        with pytest.raises(UngraphableCell) as info:
            InertialFlowBisector().bisect(cycle, [2], depth=3)
        assert info.value.context == {'cell_size': 1, 'depth': 3}

    def test_disconnected_cell_has_zero_cut(self, two_components):
        bisection = InertialFlowBisector().bisect(two_components, np.arange(100))
        assert bisection.cut_capacity == 0
        assert sorted(bisection.source_nodes.tolist()) == list(range(50))
