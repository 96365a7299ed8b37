from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Tuple

import networkx as nx
import numpy as np
import structlog

from .exceptions import FormatError
from .graph_store import GraphStore

logger = structlog.get_logger()

EdgeList = Tuple[List[int], List[int], List[int]]


class InputFormat(str, Enum):
    DIMACS = "dimacs"
    METIS = "metis"
    DDSG = "ddsg"


class DdsgDirection(int, Enum):
    BOTH = 0
    FORWARD = 1
    REVERSE = 2
    CLOSED = 3


def _tokens(path: str) -> Iterator[Tuple[int, List[str]]]:
    """Non-empty lines of a file as (line number, tokens)."""
    with open(path, "r") as f:
        for number, line in enumerate(f, start=1):
            tokens = line.split()
            if tokens:
                yield number, tokens


def _parse(path: str, number: int, convert: Callable[[str], Any], token: str):
    try:
        return convert(token)
    except ValueError:
        raise FormatError("unparsable token", file=path, line=number, token=token) from None


def read_dimacs_graph(path: str, weighted: bool = True) -> Tuple[int, EdgeList]:
    """
    Load a DIMACS shortest path graph.
    'c' lines are comments, 'p sp <n> <m>' is the problem line and
    'a <u> <v> <w>' are directed arcs with node ids starting from 1.
    """
    n = None
    sources, targets, capacities = [], [], []
    for number, tokens in _tokens(path):
        kind = tokens[0]
        if kind == "p":
            if len(tokens) < 4:
                raise FormatError("incomplete problem line", file=path, line=number)
            n = _parse(path, number, int, tokens[2])
            logger.info("DIMACS header", file=path, nodes=n, arcs=tokens[3])
        elif kind == "a":
            if len(tokens) != 4:
                raise FormatError("arc line needs three fields", file=path, line=number)
            u, v, w = (_parse(path, number, int, t) for t in tokens[1:])
            sources.append(u - 1)
            targets.append(v - 1)
            capacities.append(w if weighted else 1)
        elif kind != "c":
            raise FormatError("unknown line type", file=path, line=number, kind=kind)
    if n is None:
        raise FormatError("missing problem line", file=path)
    return n, (sources, targets, capacities)


def read_dimacs_coordinates(path: str) -> np.ndarray:
    """'v <id> <lon> <lat>' lines with integer micro-degrees, ids from 1."""
    coordinates = []
    for number, tokens in _tokens(path):
        if tokens[0] == "v":
            if len(tokens) != 4:
                raise FormatError("coordinate line needs three fields", file=path, line=number)
            node = _parse(path, number, int, tokens[1])
            if node != len(coordinates) + 1:
                raise FormatError("coordinates out of order", file=path, line=number, node=node)
            lon = _parse(path, number, int, tokens[2])
            lat = _parse(path, number, int, tokens[3])
            coordinates.append((lon / 1_000_000, lat / 1_000_000))
        elif tokens[0] not in ("c", "p"):
            raise FormatError("unknown line type", file=path, line=number, kind=tokens[0])
    return np.array(coordinates, dtype=np.float64).reshape(-1, 2)


def read_metis_graph(path: str, weighted: bool = True) -> Tuple[int, EdgeList]:
    """
    Load an unweighted METIS graph.
    First line: <num_nodes> <num_edges> [fmt]
    Following lines: neighbours of node i, ids starting from 1.
    Lines starting with '%' are comments.
    """
    n = None
    node = 0
    sources, targets, capacities = [], [], []
    with open(path, "r") as f:
        for number, line in enumerate(f, start=1):
            if line.startswith("%"):
                continue
            tokens = line.split()
            if n is None:
                if not tokens:
                    continue
                n = _parse(path, number, int, tokens[0])
                logger.info("METIS header", file=path, nodes=n)
                continue
            if node >= n:
                if tokens:
                    raise FormatError("more adjacency lines than nodes", file=path, line=number)
                continue
            for token in tokens:
                sources.append(node)
                targets.append(_parse(path, number, int, token) - 1)
                capacities.append(1)
            node += 1
    if n is None:
        raise FormatError("missing header line", file=path)
    return n, (sources, targets, capacities)


def read_metis_coordinates(path: str) -> np.ndarray:
    """One '<x> <y> [<z>]' line per node, scaled by 1e-5."""
    coordinates = []
    for number, tokens in _tokens(path):
        if len(tokens) < 2:
            raise FormatError("coordinate line needs two fields", file=path, line=number)
        x = _parse(path, number, float, tokens[0])
        y = _parse(path, number, float, tokens[1])
        coordinates.append((x / 100_000, y / 100_000))
    return np.array(coordinates, dtype=np.float64).reshape(-1, 2)


def read_ddsg_graph(path: str, weighted: bool = True) -> Tuple[int, EdgeList]:
    """
    Load a DDSG graph.
    First line: 'd'
    Second line: <num_nodes> <num_edges>
    Following lines: <u> <v> <weight> <direction>, ids starting from 0,
    direction 0 = both ways, 1 = forward, 2 = reverse, 3 = closed.
    """
    lines = _tokens(path)
    number, tokens = next(lines, (1, []))
    if tokens != ["d"]:
        raise FormatError("DDSG files start with a 'd' line", file=path, line=number)
    number, tokens = next(lines, (2, []))
    if len(tokens) != 2:
        raise FormatError("missing size line", file=path, line=number)
    n = _parse(path, number, int, tokens[0])
    logger.info("DDSG header", file=path, nodes=n, edges=tokens[1])

    sources, targets, capacities = [], [], []
    for number, tokens in lines:
        if len(tokens) != 4:
            raise FormatError("edge line needs four fields", file=path, line=number)
        u, v, w, code = (_parse(path, number, int, t) for t in tokens)
        try:
            direction = DdsgDirection(code)
        except ValueError:
            raise FormatError("unknown direction", file=path, line=number, direction=code) from None
        w = w if weighted else 1
        if direction in (DdsgDirection.BOTH, DdsgDirection.FORWARD):
            sources.append(u)
            targets.append(v)
            capacities.append(w)
        if direction in (DdsgDirection.BOTH, DdsgDirection.REVERSE):
            sources.append(v)
            targets.append(u)
            capacities.append(w)
    return n, (sources, targets, capacities)


def read_ddsg_coordinates(path: str) -> np.ndarray:
    """Count line, then '<id> <lon> <lat>' lines scaled by 1e-5."""
    lines = _tokens(path)
    number, tokens = next(lines, (1, []))
    if len(tokens) != 1:
        raise FormatError("missing coordinate count", file=path, line=number)
    count = _parse(path, number, int, tokens[0])
    coordinates = []
    for number, tokens in lines:
        if len(tokens) != 3:
            raise FormatError("coordinate line needs three fields", file=path, line=number)
        node = _parse(path, number, int, tokens[0])
        if node != len(coordinates):
            raise FormatError("coordinates out of order", file=path, line=number, node=node)
        lon = _parse(path, number, float, tokens[1])
        lat = _parse(path, number, float, tokens[2])
        coordinates.append((lon / 100_000, lat / 100_000))
    if len(coordinates) != count:
        raise FormatError("coordinate count mismatch", file=path, expected=count, found=len(coordinates))
    return np.array(coordinates, dtype=np.float64).reshape(-1, 2)


READERS: Dict[InputFormat, Tuple[Callable, Callable]] = {
    InputFormat.DIMACS: (read_dimacs_graph, read_dimacs_coordinates),
    InputFormat.METIS: (read_metis_graph, read_metis_coordinates),
    InputFormat.DDSG: (read_ddsg_graph, read_ddsg_coordinates),
}


def load_graph(graph_file: str, coordinates_file: str,
               input_format: InputFormat = InputFormat.DIMACS,
               weighted: bool = True) -> GraphStore:
    """Parse a graph and its coordinates into a GraphStore."""
    read_graph, read_coordinates = READERS[InputFormat(input_format)]
    n, (sources, targets, capacities) = read_graph(graph_file, weighted=weighted)
    coordinates = read_coordinates(coordinates_file)
    if coordinates.shape[0] != n:
        raise FormatError(
            "coordinate count does not match the graph",
            nodes=n,
            coordinates=coordinates.shape[0],
        )

    # all three formats list each direction explicitly
    store = GraphStore(coordinates, sources, targets, capacities, directed=True)
    logger.info(
        "Loaded graph",
        file=graph_file,
        format=InputFormat(input_format).value,
        nodes=store.node_count(),
        edges=store.edge_count(),
    )
    return store


def get_graph_stats(store: GraphStore) -> Dict[str, Any]:
    """
    Compute basic graph statistics
    """
    G = store.to_networkx()
    n = G.number_of_nodes()
    degrees = [d for _, d in G.degree()]
    stats = {
        'num_nodes': n,
        'num_edges': G.number_of_edges(),
        'density': nx.density(G),
        'num_components': nx.number_connected_components(G) if n else 0,
        'total_capacity': store.total_capacity(),
    }
    if degrees:
        stats['degree_distribution'] = {
            'min': min(degrees),
            'max': max(degrees),
            'avg': sum(degrees) / len(degrees),
            'histogram': nx.degree_histogram(G)[:10]  # First 10 values
        }
    return stats
