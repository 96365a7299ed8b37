import argparse
from typing import Optional

from cellgeo.serialization import load_graph_file
from inertialflow.graph_loader import InputFormat, load_graph
from inertialflow.graph_store import GraphStore

BINARY_FORMAT = "binary"
FORMAT_CHOICES = [f.value for f in InputFormat] + [BINARY_FORMAT]


def add_graph_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--graph", required=True, help="Graph file.")
    parser.add_argument("--coordinates", help="Coordinate file (not needed for binary graphs).")
    parser.add_argument("--format", choices=FORMAT_CHOICES, default=InputFormat.DIMACS.value,
                        help="Input format of the graph and coordinate files.")
    parser.add_argument("--weighted", action="store_true",
                        help="Use the stored edge weights as capacities instead of unit capacities.")


def read_graph(args: argparse.Namespace, parser: Optional[argparse.ArgumentParser] = None) -> GraphStore:
    if args.format == BINARY_FORMAT:
        return load_graph_file(args.graph)
    if not args.coordinates:
        message = f"--coordinates is required for the {args.format} format"
        if parser is not None:
            parser.error(message)
        raise ValueError(message)
    return load_graph(args.graph, args.coordinates, InputFormat(args.format), weighted=args.weighted)
