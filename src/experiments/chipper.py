"""Chip a road network into inertial flow cells."""

import argparse
import time
from typing import List, Optional

import structlog

from cellgeo.hulls import cell_hulls, write_hulls_geojson
from cellgeo.serialization import assignment_csv, cut_csv, save_assignment
from cellgeo.visualization import plot_cells
from inertialflow.config import PartitionConfig
from inertialflow.exceptions import InvalidConfiguration
from inertialflow.flow_network import unit_capacity
from inertialflow.partition import RecursivePartitioner

from .common import add_graph_arguments, read_graph
from .logging_setup import configure_logging

logger = structlog.get_logger()

# command line option -> config field
CONFIG_OPTIONS = {
    'balance_factor': 'balance_factor',
    'max_depth': 'max_recursion_depth',
    'min_cell_size': 'min_cell_size',
    'directions': 'candidate_direction_count',
    'workers': 'workers',
    'direction_workers': 'direction_workers',
    'log_level': 'log_level',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Partition a graph with recursive Inertial Flow.")
    add_graph_arguments(parser)
    parser.add_argument("--balance-factor", type=float, help="Terminal fraction b in (0, 0.5).")
    parser.add_argument("--max-depth", type=int, help="Maximum recursion depth.")
    parser.add_argument("--min-cell-size", type=int, help="Cells of at most this size are kept.")
    parser.add_argument("--directions", type=int, help="Number of projection directions.")
    parser.add_argument("--workers", type=int, help="Processes for independent subtrees.")
    parser.add_argument("--direction-workers", type=int, help="Threads per bisection.")
    parser.add_argument("--partition-file", help="Binary cell assignment output.")
    parser.add_argument("--assignment-csv", help="CSV of partition id and position per node.")
    parser.add_argument("--cut-csv", help="CSV of cut edge endpoints.")
    parser.add_argument("--hulls-geojson", help="GeoJSON of convex cell hulls.")
    parser.add_argument("--plot", help="Image of the cells.")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars.")
    parser.add_argument("--log-level", help="Log level.")
    return parser


def config_from_args(args: argparse.Namespace) -> PartitionConfig:
    values = {
        field: getattr(args, option)
        for option, field in CONFIG_OPTIONS.items()
        if getattr(args, option) is not None
    }
    values['show_progress'] = not args.no_progress
    return PartitionConfig(**values)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except InvalidConfiguration as exc:
        parser.error(str(exc))

    configure_logging(config.log_level)
    logger.info("chipping road networks into pieces", **config.model_dump())

    store = read_graph(args, parser)
    partitioner = RecursivePartitioner(
        store, config, capacity_fn=None if args.weighted else unit_capacity
    )
    start_time = time.time()
    result = partitioner.partition()
    logger.info("Partition computed", cells=result.cell_count,
                runtime=round(time.time() - start_time, 3))

    coordinates = store.coordinate_array()
    if args.partition_file:
        save_assignment(args.partition_file, result.cell_ids, result.partition_ids)
    if args.assignment_csv:
        assignment_csv(args.assignment_csv, result.partition_ids, coordinates)
    if args.cut_csv:
        cut_csv(args.cut_csv, store, result.cell_ids)
    if args.hulls_geojson or args.plot:
        hulls = cell_hulls(coordinates, result.cell_ids, result.partition_ids)
        if args.hulls_geojson:
            write_hulls_geojson(hulls, args.hulls_geojson)
        if args.plot:
            plot_cells(coordinates, result.cell_ids, hulls,
                       title=f"{result.cell_count} cells", save_path=args.plot)
    logger.info("done.")


if __name__ == "__main__":
    main()
