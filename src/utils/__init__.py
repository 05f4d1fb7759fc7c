"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Throughput calculation and metrics collection
- Logging utilities
"""

from .metrics import MetricsCollector, ThroughputReport, calculate_throughput
from .logger import SimulationLogger, LogLevel

__all__ = [
    'MetricsCollector',
    'ThroughputReport',
    'calculate_throughput',
    'SimulationLogger',
    'LogLevel'
]
