"""Turn a partition file into convex cell geometry."""

import argparse
from typing import List, Optional

import structlog

from cellgeo.hulls import cell_hulls, write_hulls_geojson
from cellgeo.serialization import load_assignment
from inertialflow.exceptions import FormatError

from .common import add_graph_arguments, read_graph
from .logging_setup import configure_logging

logger = structlog.get_logger()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Emit convex hulls of partition cells as GeoJSON.")
    parser.add_argument("--partition-file", required=True, help="Cell assignment from chipper.")
    add_graph_arguments(parser)
    parser.add_argument("--convex-cells-geojson", required=True, help="GeoJSON output.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    cell_ids, partition_ids = load_assignment(args.partition_file)
    store = read_graph(args, parser)
    if cell_ids.size != store.node_count():
        raise FormatError(
            "partition file does not match the graph",
            nodes=store.node_count(),
            assignments=int(cell_ids.size),
        )

    hulls = cell_hulls(store.coordinate_array(), cell_ids, partition_ids)
    write_hulls_geojson(hulls, args.convex_cells_geojson)
    logger.info("done.")


if __name__ == "__main__":
    main()
