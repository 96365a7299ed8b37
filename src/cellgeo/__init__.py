"""
Persistence and geometry of inertial flow cells.
"""

from .hulls import cell_hulls, write_hulls_geojson, zorder_keys
from .serialization import (
    assignment_csv,
    cut_csv,
    load_assignment,
    load_graph_file,
    save_assignment,
    save_graph,
)
from .visualization import plot_cells, plot_cut_distribution

__all__ = [
    'cell_hulls',
    'write_hulls_geojson',
    'zorder_keys',
    'assignment_csv',
    'cut_csv',
    'load_assignment',
    'load_graph_file',
    'save_assignment',
    'save_graph',
    'plot_cells',
    'plot_cut_distribution',
]
