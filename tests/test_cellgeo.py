"""Tests for persistence and cell geometry."""

import json

import numpy as np
import pandas as pd
import pytest

from cellgeo.hulls import cell_hulls, write_hulls_geojson, zorder_keys
from cellgeo.serialization import (
    assignment_csv,
    cut_csv,
    load_assignment,
    load_graph_file,
    save_assignment,
    save_graph,
)
from cellgeo.visualization import plot_cells, plot_cut_distribution
from inertialflow.exceptions import FormatError
from inertialflow.graph_store import GraphStore


class TestGraphFile:
    def test_round_trip_keeps_directions(self, tmp_path):
        store = GraphStore([(0, 0), (1, 0), (2, 0)], [0, 1, 2], [1, 2, 1], [3, 4, 5], directed=True)
        path = str(tmp_path / "graph.npz")
        save_graph(store, path)
        loaded = load_graph_file(path)
        assert list(loaded.edges()) == list(store.edges())
        assert np.array_equal(loaded.coordinate_array(), store.coordinate_array())

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph_file(str(tmp_path / "missing.npz"))

    def test_wrong_archive(self, tmp_path):
        path = str(tmp_path / "other.npz")
        with open(path, "wb") as f:
            np.savez(f, something=np.zeros(3))
        with pytest.raises(FormatError, match="missing arrays"):
            load_graph_file(path)


class TestAssignment:
    def test_round_trip(self, tmp_path):
        path = str(tmp_path / "cells.npz")
        save_assignment(path, [0, 0, 1], [2, 2, 3])
        cell_ids, partition_ids = load_assignment(path)
        assert cell_ids.tolist() == [0, 0, 1]
        assert partition_ids.tolist() == [2, 2, 3]

    def test_length_mismatch(self, tmp_path):
        with pytest.raises(ValueError):
            save_assignment(str(tmp_path / "cells.npz"), [0, 1], [2])

    def test_assignment_csv(self, tmp_path, cycle):
        path = tmp_path / "assignment.csv"
        assignment_csv(str(path), np.array([2, 3, 3, 2]), cycle.coordinate_array())
        frame = pd.read_csv(path)
        assert list(frame.columns) == ['partition_id', 'latitude', 'longitude']
        assert frame['partition_id'].tolist() == [2, 3, 3, 2]
        assert frame.loc[3, 'latitude'] == 1.0
        assert frame.loc[3, 'longitude'] == 0.0

    def test_cut_csv(self, tmp_path, cycle):
        path = tmp_path / "cut.csv"
        cut_csv(str(path), cycle, np.array([0, 1, 1, 0]))
        frame = pd.read_csv(path)
        # two cut edges, both endpoints each
        assert len(frame) == 4
        assert list(frame.columns) == ['latitude', 'longitude']


class TestHulls:
    def test_zorder(self):
        points = np.array([[0, 0], [1, 1], [0, 1], [1, 0]])
        assert np.argsort(zorder_keys(points)).tolist() == [0, 3, 2, 1]

    def test_grid_halves(self, grid):
        cell_ids = (grid.coordinate_array()[:, 0] >= 5).astype(int)
        hulls = cell_hulls(grid.coordinate_array(), cell_ids, cell_ids + 2)
        assert hulls.index.tolist() == [0, 1]
        assert hulls['size'].tolist() == [50, 50]
        assert hulls['partition_id'].tolist() == [2, 3]
        assert hulls.geometry.area.tolist() == [36.0, 36.0]

    def test_small_cells(self):
        coordinates = np.array([[0.0, 0.0], [5.0, 5.0], [6.0, 5.0]])
        hulls = cell_hulls(coordinates, np.array([0, 1, 1]))
        assert hulls.loc[0].geometry.geom_type == "Point"
        assert hulls.loc[1].geometry.geom_type == "LineString"

    def test_geojson(self, tmp_path, grid):
        cell_ids = np.arange(100) // 50
        hulls = cell_hulls(grid.coordinate_array(), cell_ids)
        path = tmp_path / "cells.geojson"
        write_hulls_geojson(hulls, str(path))
        collection = json.loads(path.read_text())
        assert len(collection['features']) == 2
        assert {feature['id'] for feature in collection['features']} == {"0", "1"}
        assert all('bbox' in feature for feature in collection['features'])


class TestPlots:
    def test_plot_cells_saved(self, tmp_path, grid):
        cell_ids = np.arange(100) // 25
        coordinates = grid.coordinate_array()
        path = tmp_path / "cells.png"
        plot_cells(coordinates, cell_ids, cell_hulls(coordinates, cell_ids), save_path=str(path))
        assert path.stat().st_size > 0

    def test_plot_cut_distribution_saved(self, tmp_path):
        path = tmp_path / "cuts.png"
        plot_cut_distribution([10, 5, 5, 3], save_path=str(path))
        assert path.exists()
