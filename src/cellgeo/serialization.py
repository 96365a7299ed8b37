"""
Persistence of normalized graphs and cell assignments.

Binary files are numpy ``.npz`` archives written to the exact path given.
CSV exports use latitude/longitude columns, the coordinate x axis being the
longitude.
"""

import os
from typing import Tuple

import numpy as np
import pandas as pd
import structlog

from inertialflow.exceptions import FormatError
from inertialflow.graph_store import GraphStore

logger = structlog.get_logger()

GRAPH_KEYS = ("coordinates", "low", "high", "forward", "backward")
ASSIGNMENT_KEYS = ("cell_ids", "partition_ids")


def _load_archive(path: str, keys: Tuple[str, ...]):
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")
    with np.load(path) as archive:
        missing = [key for key in keys if key not in archive.files]
        if missing:
            raise FormatError("archive is missing arrays", file=path, missing=",".join(missing))
        return [archive[key] for key in keys]


def save_graph(store: GraphStore, path: str) -> None:
    low, high, forward, backward = store.edge_arrays()
    with open(path, "wb") as f:
        np.savez_compressed(
            f,
            coordinates=store.coordinate_array(),
            low=low,
            high=high,
            forward=forward,
            backward=backward,
        )
    logger.info("Wrote graph", file=path, nodes=store.node_count(), edges=store.edge_count())


def load_graph_file(path: str) -> GraphStore:
    coordinates, low, high, forward, backward = _load_archive(path, GRAPH_KEYS)
    store = GraphStore(
        coordinates,
        np.concatenate([low, high]),
        np.concatenate([high, low]),
        np.concatenate([forward, backward]),
        directed=True,
    )
    logger.info("Loaded graph", file=path, nodes=store.node_count(), edges=store.edge_count())
    return store


def save_assignment(path: str, cell_ids: np.ndarray, partition_ids: np.ndarray) -> None:
    cell_ids = np.asarray(cell_ids, dtype=np.int64)
    partition_ids = np.asarray(partition_ids, dtype=np.int64)
    if cell_ids.shape != partition_ids.shape:
        raise ValueError("cell ids and partition ids must have the same length")
    with open(path, "wb") as f:
        np.savez_compressed(f, cell_ids=cell_ids, partition_ids=partition_ids)
    logger.info("Wrote partition file", file=path, nodes=int(cell_ids.size))


def load_assignment(path: str) -> Tuple[np.ndarray, np.ndarray]:
    cell_ids, partition_ids = _load_archive(path, ASSIGNMENT_KEYS)
    logger.info("Loaded partition file", file=path, nodes=int(cell_ids.size))
    return cell_ids, partition_ids


def assignment_csv(path: str, partition_ids: np.ndarray, coordinates: np.ndarray) -> None:
    """One row per node: partition id and position."""
    coordinates = np.asarray(coordinates)
    frame = pd.DataFrame({
        'partition_id': np.asarray(partition_ids),
        'latitude': coordinates[:, 1],
        'longitude': coordinates[:, 0],
    })
    frame.to_csv(path, index=False)
    logger.info("Wrote assignment csv", file=path, rows=len(frame))


def cut_csv(path: str, store: GraphStore, cell_ids: np.ndarray) -> None:
    """Both endpoints of every edge whose endpoints lie in different cells."""
    cell_ids = np.asarray(cell_ids)
    low, high, _, _ = store.edge_arrays()
    crossing = cell_ids[low] != cell_ids[high]
    endpoints = np.column_stack([low[crossing], high[crossing]]).ravel()
    coordinates = store.coordinate_array()[endpoints]
    frame = pd.DataFrame({
        'latitude': coordinates[:, 1],
        'longitude': coordinates[:, 0],
    })
    frame.to_csv(path, index=False)
    logger.info("Wrote cut csv", file=path, cut_edges=int(crossing.sum()))
