# Contains utility functions for creating visualizations of optimization results.
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from ..domain.models import OptimizationResult
from ..domain.pipeline import PipelineNetwork
from .reporting import pressures_to_dataframe, result_to_dataframe


def visualize_result(result: OptimizationResult, network: PipelineNetwork,
                     path: Optional[str] = "optimization_results.png", show: bool = False):
    """Segment utilization, point pressures against their bounds, compressor boosts and a summary"""
    sns.set_theme(style="whitegrid")
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))

    # 1. Segment utilization
    ax1 = axes[0, 0]
    segments = result_to_dataframe(result, network)
    colors = ['red' if bad else 'steelblue' for bad in segments['infeasible']]
    ax1.bar(segments.index, segments['utilization'] * 100, color=colors)
    ax1.axhline(y=100, color='black', linestyle='--', alpha=0.5)
    ax1.set_title('Segment Capacity Utilization')
    ax1.set_ylabel('Utilization (%)')
    ax1.tick_params(axis='x', rotation=45)

    # 2. Pressures with their bounds
    ax2 = axes[0, 1]
    pressures = pressures_to_dataframe(result, network).dropna(subset=['pressure'])
    x = np.arange(len(pressures))
    ax2.bar(x, pressures['pressure'], color='skyblue', label='Pressure')
    ax2.scatter(x, pressures['min_pressure'], marker='_', s=400, color='orange', label='Min')
    ax2.scatter(x, pressures['max_pressure'], marker='_', s=400, color='red', label='Max')
    ax2.set_xticks(x)
    ax2.set_xticklabels(pressures.index, rotation=45, ha='right')
    ax2.set_title('Point Pressures')
    ax2.set_ylabel('Pressure (psia)')
    ax2.legend()

    # 3. Compressor boosts
    ax3 = axes[1, 0]
    if result.compressor_usage:
        ax3.bar(list(result.compressor_usage), list(result.compressor_usage.values()), color='seagreen')
    else:
        ax3.text(0.5, 0.5, 'No compressor boost applied', ha='center', va='center', transform=ax3.transAxes)
    ax3.set_title('Compressor Usage')
    ax3.set_ylabel('Boost (psi)')

    # 4. Summary
    ax4 = axes[1, 1]
    ax4.axis('off')
    summary_text = f"""
    OPTIMIZATION SUMMARY

    Algorithm: {result.algorithm}
    Status: {result.status.value}
    Total Throughput: {result.metrics.total_throughput:,.2f}
    Total Demand: {result.metrics.total_demand:,.2f}
    Total Cost: ${result.total_cost:,.2f}
    Average Utilization: {result.metrics.average_capacity_utilization:.1%}
    Solution Time: {result.metrics.solution_time_ms:.0f} ms
    """
    ax4.text(0.1, 0.5, summary_text, transform=ax4.transAxes,
             fontsize=11, verticalalignment='center',
             bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))

    plt.tight_layout()
    if path:
        plt.savefig(path, dpi=150, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
    return fig


def compare_algorithms(results: Dict[str, OptimizationResult], path: Optional[str] = "algorithm_comparison.png",
                       show: bool = False):
    """Throughput and cost of several algorithms side by side"""
    sns.set_theme(style="whitegrid")
    names = list(results)
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    throughputs = [results[n].metrics.total_throughput for n in names]
    costs = [results[n].total_cost for n in names]
    palette = sns.color_palette("muted", len(names))

    axes[0].bar(names, throughputs, color=palette)
    axes[0].set_title('Total Throughput')
    axes[1].bar(names, costs, color=palette)
    axes[1].set_title('Total Cost')
    for ax in axes:
        ax.tick_params(axis='x', rotation=30)

    plt.tight_layout()
    if path:
        plt.savefig(path, dpi=150)
    if show:
        plt.show()
    plt.close(fig)
    return fig
