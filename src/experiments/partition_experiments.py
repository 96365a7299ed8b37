import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import structlog

from cellgeo.hulls import cell_hulls, write_hulls_geojson
from cellgeo.visualization import plot_cells, plot_cut_distribution
from inertialflow.config import PartitionConfig
from inertialflow.evaluation import cell_sizes, compute_metrics
from inertialflow.graph_loader import InputFormat, get_graph_stats, load_graph
from inertialflow.partition import RecursivePartitioner

from .logging_setup import configure_logging

logger = structlog.get_logger()


def run_partition_experiments(
        graphs: List[Dict[str, str]],
        balance_factors: List[float],
        base_config: Optional[PartitionConfig] = None,
        num_trials: int = 1,
        output_dir: str = "results/partitions"
) -> Dict[str, Any]:
    """
    Run partitioning experiments.
    For each graph (dict with 'graph', 'coordinates' and optional 'format'),
    partitions once per balance factor and records quality metrics.
    Repeated trials measure runtime and confirm the assignment is reproducible.
    """
    base_config = base_config or PartitionConfig()
    results = {}

    for entry in graphs:
        graph_name = Path(entry['graph']).stem
        results[graph_name] = {}

        store = load_graph(entry['graph'], entry['coordinates'],
                           InputFormat(entry.get('format', InputFormat.DIMACS.value)))
        results[graph_name]['stats'] = get_graph_stats(store)

        for b in balance_factors:
            logger.info("Running experiment", graph=graph_name, balance_factor=b)
            config = PartitionConfig(**{**base_config.model_dump(), 'balance_factor': b})
            runtimes = []
            reference = None
            reproducible = True

            for trial in range(num_trials):
                start_time = time.time()
                result = RecursivePartitioner(store, config).partition()
                runtimes.append(time.time() - start_time)

                if reference is None:
                    reference = result
                elif not np.array_equal(reference.cell_ids, result.cell_ids):
                    reproducible = False

            metrics = compute_metrics(store, reference.cell_ids)
            cut_capacities = [split.cut_capacity for split in reference.splits]
            results[graph_name][b] = {
                'metrics': metrics,
                'avg_runtime': float(np.mean(runtimes)),
                'std_runtime': float(np.std(runtimes)),
                'reproducible': reproducible,
                'splits': len(reference.splits),
                'cell_sizes': cell_sizes(reference.cell_ids),
                'avg_split_cut': float(np.mean(cut_capacities)) if cut_capacities else 0.0,
            }

            out_dir = os.path.join(output_dir, graph_name)
            os.makedirs(out_dir, exist_ok=True)
            coordinates = store.coordinate_array()
            hulls = cell_hulls(coordinates, reference.cell_ids, reference.partition_ids)
            write_hulls_geojson(hulls, os.path.join(out_dir, f"cells_b{b}.geojson"))
            plot_cells(coordinates, reference.cell_ids, hulls,
                       title=f"Cells (b={b})",
                       save_path=os.path.join(out_dir, f"cells_b{b}.png"))
            plot_cut_distribution(cut_capacities,
                                  title=f"Cut Capacities (b={b})",
                                  save_path=os.path.join(out_dir, f"cuts_b{b}.png"))

    os.makedirs(output_dir, exist_ok=True)
    out_file = os.path.join(output_dir, "partition_results.json")
    with open(out_file, "w", encoding='utf-8') as f:
        json.dump(results, f, indent=2, default=lambda x: x.item() if hasattr(x, 'item') else str(x))

    return results


def plot_metrics(results: Dict[str, Any], output_dir: str):
    """
    Plot experimental results from run_partition_experiments.
    Generates line charts of cut_capacity, cell_count, balance and runtime vs b.
    """
    for graph_name, graph_results in results.items():
        balance_factors = sorted(b for b in graph_results if b != 'stats')
        series = {
            'cut_capacity': [graph_results[b]['metrics']['cut_capacity'] for b in balance_factors],
            'cell_count': [graph_results[b]['metrics']['cell_count'] for b in balance_factors],
            'balance': [graph_results[b]['metrics']['balance'] for b in balance_factors],
            'runtime': [graph_results[b]['avg_runtime'] for b in balance_factors],
        }
        errors = {'runtime': [graph_results[b]['std_runtime'] for b in balance_factors]}

        os.makedirs(os.path.join(output_dir, graph_name), exist_ok=True)
        for metric, values in series.items():
            plt.figure(figsize=(10, 6))
            plt.errorbar(balance_factors, values, yerr=errors.get(metric), marker='o', capsize=4)

            plt.xlabel('Balance Factor (b)')
            plt.ylabel(metric.replace('_', ' ').title())
            plt.title(f'{metric.replace("_", " ").title()} vs b - {graph_name}')
            plt.grid(True)

            save_path = os.path.join(output_dir, graph_name, f'{metric}_vs_b.png')
            plt.savefig(save_path, bbox_inches='tight', dpi=300)
            plt.close()


if __name__ == "__main__":
    configure_logging("INFO")
    graphs = [{
        'graph': "data/graphs/road.gr",
        'coordinates': "data/graphs/road.co",
        'format': InputFormat.DIMACS.value,
    }]
    balance_factors = [0.1, 0.25, 0.4]

    output_dir = "results/partitions"
    os.makedirs(output_dir, exist_ok=True)

    results_data = run_partition_experiments(graphs, balance_factors, num_trials=2,
                                             output_dir=output_dir)
    plot_metrics(results_data, output_dir=output_dir)

    logger.info("Experiments complete", output_dir=output_dir)
