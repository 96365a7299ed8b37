"""Tests for partition quality metrics."""

import numpy as np

from inertialflow.evaluation import cell_sizes, compute_metrics, evaluate_partition


class TestEvaluatePartition:
    def test_cycle_halves(self, cycle):
        metrics = evaluate_partition(cycle, np.array([0, 1, 1, 0]))
        assert metrics['cell_count'] == 2
        assert metrics['connected_cells'] == 2
        assert metrics['cut_edges'] == 2
        assert metrics['cut_capacity'] == 4
        assert metrics['balance'] == 1.0

    def test_disconnected_cell_detected(self, cycle):
        metrics = evaluate_partition(cycle, np.array([0, 1, 0, 1]))
        assert metrics['connected_cells'] == 0
        assert metrics['cut_edges'] == 4

    def test_single_cell(self, grid):
        metrics = evaluate_partition(grid, np.zeros(100, dtype=int))
        assert metrics['cut_edges'] == 0
        assert metrics['connected_cells'] == 1


class TestComputeMetrics:
    def test_size_statistics(self, grid):
        cell_ids = (np.arange(100) % 10 >= 3).astype(int)
        metrics = compute_metrics(grid, cell_ids)
        assert metrics['min_cell_size'] == 30
        assert metrics['max_cell_size'] == 70
        assert metrics['max_size_deviation'] == 20.0
        assert metrics['cut_edges'] == 10
        assert metrics['cut_ratio'] == 10 / 180

    def test_target_size(self, grid):
        cell_ids = np.arange(100) // 25
        metrics = compute_metrics(grid, cell_ids, target_size=20)
        assert metrics['avg_size_deviation'] == 5.0


def test_cell_sizes():
    assert cell_sizes(np.array([2, 0, 2, 1, 2])) == [1, 1, 3]
