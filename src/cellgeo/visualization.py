from typing import List, Optional

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np


def plot_cells(coordinates: np.ndarray, cell_ids: np.ndarray,
               hulls: Optional[gpd.GeoDataFrame] = None,
               title: str = "Inertial Flow Cells",
               figsize: tuple = (12, 8),
               save_path: Optional[str] = None) -> None:
    """
    Plot a cell assignment.

    Args:
        coordinates: Node positions, shape (n, 2)
        cell_ids: Cell id of every node
        hulls: Optional cell hulls drawn as outlines
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save the figure
    """
    coordinates = np.asarray(coordinates)
    cell_ids = np.asarray(cell_ids)

    fig, ax = plt.subplots(figsize=figsize)
    cell_count = int(cell_ids.max()) + 1 if cell_ids.size else 1
    # shuffle colours so neighbouring cells rarely share a hue
    palette = plt.cm.rainbow(np.linspace(0, 1, cell_count))
    palette = palette[np.random.default_rng(42).permutation(cell_count)]
    ax.scatter(coordinates[:, 0], coordinates[:, 1], c=palette[cell_ids], s=2, linewidths=0)

    if hulls is not None and len(hulls):
        hulls.boundary.plot(ax=ax, color='black', linewidth=0.5)

    ax.set_title(title)
    ax.set_aspect('equal', adjustable='datalim')
    ax.axis('off')

    if save_path:
        plt.savefig(save_path, bbox_inches='tight', dpi=300)
    else:
        plt.show()

    plt.close(fig)


def plot_cut_distribution(cut_capacities: List[int],
                          title: str = "Cut Capacity Distribution",
                          figsize: tuple = (10, 6),
                          save_path: Optional[str] = None) -> None:
    """
    Plot histogram of the cut capacities of all bisections.

    Args:
        cut_capacities: Cut capacity of every split
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure
    """
    plt.figure(figsize=figsize)

    plt.hist(cut_capacities, bins=30, edgecolor='black')
    plt.xlabel('Cut Capacity')
    plt.ylabel('Frequency')
    plt.title(title)

    if cut_capacities:
        plt.axvline(x=float(np.median(cut_capacities)), color='r', linestyle='--',
                    label=f'Median: {np.median(cut_capacities):.1f}')
        plt.legend()

    if save_path:
        plt.savefig(save_path, bbox_inches='tight', dpi=300)
    else:
        plt.show()

    plt.close()
