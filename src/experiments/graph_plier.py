"""Convert a text format graph into the binary intermediate format."""

import argparse
from typing import List, Optional

import structlog

from cellgeo.serialization import save_graph
from inertialflow.graph_loader import InputFormat, load_graph

from .logging_setup import configure_logging

logger = structlog.get_logger()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Normalize DIMACS / METIS / DDSG graphs.")
    parser.add_argument("--graph", required=True, help="Graph file.")
    parser.add_argument("--coordinates", required=True, help="Coordinate file.")
    parser.add_argument("--format", choices=[f.value for f in InputFormat],
                        default=InputFormat.DIMACS.value, help="Input format.")
    parser.add_argument("--unit-weights", action="store_true",
                        help="Replace edge weights by unit capacities.")
    parser.add_argument("--output", help="Output file, defaults to <graph>.toolbox.npz.")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    store = load_graph(args.graph, args.coordinates, InputFormat(args.format),
                       weighted=not args.unit_weights)
    output = args.output or f"{args.graph}.toolbox.npz"
    save_graph(store, output)
    logger.info("done.")


if __name__ == "__main__":
    main()
