"""
Simulation package - ABP simulation engine and runners.

Contains:
- Simulation parameters and the ABP simulator
- Batch runner for parameter sweeps
- Parameter sweep definition and result tables
"""

from .simulator import ABPSimulator, SimulationParameters, SimulationResult, RoundOutcome
from .runner import BatchRunner
from .parameter_sweep import ParameterSweep, SweepPoint, results_table

__all__ = [
    'ABPSimulator',
    'SimulationParameters',
    'SimulationResult',
    'RoundOutcome',
    'BatchRunner',
    'ParameterSweep',
    'SweepPoint',
    'results_table'
]
