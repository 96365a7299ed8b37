from typing import Any, Dict, List, Optional

import networkx as nx
import numpy as np

from .graph_store import GraphStore


def evaluate_partition(store: GraphStore, cell_ids: np.ndarray) -> Dict[str, Any]:
    """
    Evaluate partition quality metrics

    Args:
        store: Partitioned graph
        cell_ids: Cell id of every node

    Returns:
        Dictionary with metrics:
        - cell_count: Number of distinct cells
        - connected_cells: Number of cells whose induced subgraph is connected
        - cut_edges: Number of node pairs split between cells
        - cut_capacity: Capacity summed over both directions of the cut pairs
        - balance: Measure of size balance between cells
        - modularity: Newman-Girvan modularity (simplified)
    """
    cell_ids = np.asarray(cell_ids)
    metrics: Dict[str, Any] = {}
    cells = np.unique(cell_ids)
    metrics['cell_count'] = int(cells.size)

    # Check connectivity for each cell
    G = store.to_networkx()
    connected = 0
    for cell in cells:
        members = np.flatnonzero(cell_ids == cell).tolist()
        if nx.is_connected(G.subgraph(members)):
            connected += 1
    metrics['connected_cells'] = connected

    # Count cut edges
    low, high, forward, backward = store.edge_arrays()
    crossing = cell_ids[low] != cell_ids[high]
    total_edges = store.edge_count()
    metrics['cut_edges'] = int(crossing.sum())
    metrics['cut_capacity'] = int(forward[crossing].sum() + backward[crossing].sum())

    # Compute modularity Q
    sizes = np.bincount(np.searchsorted(cells, cell_ids))
    if total_edges > 0:
        internal_edges = total_edges - metrics['cut_edges']
        metrics['modularity'] = float(
            internal_edges / total_edges - np.sum((sizes / (2 * total_edges)) ** 2)
        )
    else:
        metrics['modularity'] = 0.0

    # Compute balance measure
    avg_size = np.mean(sizes)
    max_dev = np.max(np.abs(sizes - avg_size))
    metrics['balance'] = float(1 - (max_dev / avg_size))

    return metrics


def compute_metrics(store: GraphStore, cell_ids: np.ndarray,
                    target_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Compute a comprehensive set of partition quality metrics

    Args:
        store: Partitioned graph
        cell_ids: Cell id of every node
        target_size: Desired cell size, defaults to the mean cell size

    Returns:
        Dictionary of quality metrics
    """
    metrics = evaluate_partition(store, cell_ids)

    # Add size deviation metrics
    sizes = np.unique(np.asarray(cell_ids), return_counts=True)[1]
    target = np.mean(sizes) if target_size is None else target_size
    size_diffs = np.abs(sizes - target)

    metrics.update({
        'min_cell_size': int(sizes.min()),
        'max_cell_size': int(sizes.max()),
        'max_size_deviation': float(size_diffs.max()),
        'avg_size_deviation': float(np.mean(size_diffs)),
        'size_dev_std': float(np.std(size_diffs)),
    })

    # Add edge cut ratio
    if store.edge_count() > 0:
        metrics['cut_ratio'] = metrics['cut_edges'] / store.edge_count()
    else:
        metrics['cut_ratio'] = 0.0

    return metrics


def cell_sizes(cell_ids: np.ndarray) -> List[int]:
    return np.bincount(np.asarray(cell_ids)).tolist()
