"""
Recursive Inertial Flow partitioning of road-style graphs.
"""

import logging

import structlog

from .bisector import Bisection, InertialFlowBisector
from .config import PartitionConfig
from .evaluation import compute_metrics, evaluate_partition
from .exceptions import (
    DegenerateCut,
    FormatError,
    InvalidConfiguration,
    InvalidTerminals,
    PartitionError,
    SolverNonConvergence,
    UngraphableCell,
)
from .flow_network import FlowNetwork, build_flow_network, unit_capacity
from .graph_loader import InputFormat, get_graph_stats, load_graph
from .graph_store import GraphStore
from .max_flow import Cut, rebalance_cut, solve
from .partition import PartitionResult, RecursivePartitioner
from .partition_id import PartitionID
from .subgraph import SubgraphView


def configure_default_logging(level: int = logging.INFO) -> None:
    """Filter out debug events unless the application configured structlog itself."""
    if not structlog.is_configured():
        structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


configure_default_logging()

__all__ = [
    'configure_default_logging',
    'Bisection',
    'InertialFlowBisector',
    'PartitionConfig',
    'compute_metrics',
    'evaluate_partition',
    'DegenerateCut',
    'FormatError',
    'InvalidConfiguration',
    'InvalidTerminals',
    'PartitionError',
    'SolverNonConvergence',
    'UngraphableCell',
    'FlowNetwork',
    'build_flow_network',
    'unit_capacity',
    'InputFormat',
    'get_graph_stats',
    'load_graph',
    'GraphStore',
    'Cut',
    'rebalance_cut',
    'solve',
    'PartitionResult',
    'RecursivePartitioner',
    'PartitionID',
    'SubgraphView',
]
