"""Shared fixtures for the partitioning tests."""

import matplotlib
import numpy as np
import pytest

from inertialflow.graph_store import GraphStore

matplotlib.use("Agg")


def make_grid(rows: int, cols: int, capacity: int = 1) -> GraphStore:
    """Undirected grid graph; node r * cols + c sits at (c, r)."""
    coordinates = [(c, r) for r in range(rows) for c in range(cols)]
    sources, targets = [], []
    for r in range(rows):
        for c in range(cols):
            node = r * cols + c
            if c + 1 < cols:
                sources.append(node)
                targets.append(node + 1)
            if r + 1 < rows:
                sources.append(node)
                targets.append(node + cols)
    capacities = [capacity] * len(sources)
    return GraphStore(coordinates, sources, targets, capacities)


def make_cycle() -> GraphStore:
    """Four nodes on the corners of a unit square, joined in a cycle."""
    coordinates = [(0, 0), (1, 0), (1, 1), (0, 1)]
    return GraphStore(coordinates, [0, 1, 2, 3], [1, 2, 3, 0])


@pytest.fixture
def grid():
    return make_grid(10, 10)


@pytest.fixture
def cycle():
    return make_cycle()


@pytest.fixture
def two_components():
    """Two 5x10 grids far apart, 50 nodes each, no edge between them."""
    left = make_grid(5, 10)
    low, high, forward, _ = left.edge_arrays()
    coordinates = np.vstack([left.coordinate_array(), left.coordinate_array() + [100.0, 0.0]])
    sources = np.concatenate([low, low + 50])
    targets = np.concatenate([high, high + 50])
    capacities = np.concatenate([forward, forward])
    return GraphStore(coordinates, sources, targets, capacities)
