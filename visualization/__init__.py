"""
Visualization package - Plotting and visualization tools.

Contains:
- Throughput vs timeout curves
- Throughput heatmaps
"""

from .throughput_plot import ThroughputPlot

__all__ = [
    'ThroughputPlot'
]
