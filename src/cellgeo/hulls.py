from pathlib import Path
from typing import Optional

import geopandas as gpd
import numpy as np
import structlog
from shapely.geometry import MultiPoint

logger = structlog.get_logger()


def _spread_bits(values: np.ndarray) -> np.ndarray:
    """Insert a zero bit between each of the lower 16 bits."""
    v = values.astype(np.uint64) & np.uint64(0xFFFF)
    v = (v | (v << np.uint64(8))) & np.uint64(0x00FF00FF)
    v = (v | (v << np.uint64(4))) & np.uint64(0x0F0F0F0F)
    v = (v | (v << np.uint64(2))) & np.uint64(0x33333333)
    v = (v | (v << np.uint64(1))) & np.uint64(0x55555555)
    return v


def zorder_keys(points: np.ndarray) -> np.ndarray:
    """Morton keys of points snapped to a 2^16 x 2^16 grid over their extent."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if not len(points):
        return np.zeros(0, dtype=np.uint64)
    low = points.min(axis=0)
    extent = points.max(axis=0) - low
    extent[extent == 0] = 1.0
    grid = np.floor((points - low) / extent * 0xFFFF).astype(np.uint64)
    return _spread_bits(grid[:, 0]) | (_spread_bits(grid[:, 1]) << np.uint64(1))


def cell_hulls(coordinates: np.ndarray, cell_ids: np.ndarray,
               partition_ids: Optional[np.ndarray] = None,
               crs: Optional[str] = "EPSG:4326") -> gpd.GeoDataFrame:
    """
    Convex hull of every cell, ordered along a Z-order curve of the hull centres.

    Cells with fewer than three distinct points get a point or a segment
    instead of a polygon.
    """
    coordinates = np.asarray(coordinates, dtype=np.float64)
    cell_ids = np.asarray(cell_ids)
    order = np.argsort(cell_ids, kind="stable")
    boundaries = np.flatnonzero(np.diff(cell_ids[order])) + 1

    groups = np.split(order, boundaries) if order.size else []
    columns = {
        'cell_id': [int(cell_ids[members[0]]) for members in groups],
        'size': [int(members.size) for members in groups],
    }
    if partition_ids is not None:
        columns['partition_id'] = [int(partition_ids[members[0]]) for members in groups]
    geometry = [MultiPoint(coordinates[members]).convex_hull for members in groups]

    hulls = gpd.GeoDataFrame(columns, geometry=geometry, crs=crs)
    if len(hulls):
        bounds = hulls.geometry.bounds.to_numpy()
        centers = np.column_stack([
            (bounds[:, 0] + bounds[:, 2]) / 2,
            (bounds[:, 1] + bounds[:, 3]) / 2,
        ])
        hulls = hulls.iloc[np.argsort(zorder_keys(centers), kind="stable")]
        # feature ids in the GeoJSON output are the cell ids
        hulls.index = hulls['cell_id'].to_numpy()
    logger.info("Computed cell hulls", cells=len(hulls))
    return hulls


def write_hulls_geojson(hulls: gpd.GeoDataFrame, path: str) -> None:
    """Write one feature per cell, with its id and bounding box."""
    Path(path).write_text(hulls.to_json(show_bbox=True))
    logger.info("Wrote cell hulls", file=path, cells=len(hulls))
