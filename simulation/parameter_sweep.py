"""
Parameter Sweep Configuration

This module defines the parameter space explored by the batch runner
(ack mode x propagation delay x timeout x BER) and turns sweep results
into the throughput tables used for analysis.
"""

import os
import sys
from typing import List, Dict, Tuple
from dataclasses import dataclass

import pandas as pd

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    ACK_MODES, PROPAGATION_DELAYS, TIMEOUT_MULTIPLIERS, BIT_ERROR_RATES,
    RUNS_PER_CONFIGURATION, calculate_timeout
)


@dataclass(frozen=True)
class SweepPoint:
    """A single point in the parameter space."""
    ack_nak: bool
    propagation_delay: float
    timeout_multiplier: float
    bit_error_rate: float

    @property
    def timeout(self) -> float:
        """Timeout in ms: multiplier * 2 * TAU."""
        return calculate_timeout(self.timeout_multiplier, self.propagation_delay)

    @property
    def channel_key(self) -> Tuple[float, float, float]:
        """Identifies the channel conditions, independent of the ack mode."""
        return (self.propagation_delay, self.timeout_multiplier, self.bit_error_rate)


class ParameterSweep:
    """
    Parameter sweep configuration and analysis.

    Defines the parameter space:
    - ack mode in {ACK, ACK/NAK}
    - TAU in {5, 250} ms
    - DELTA = k * 2 * TAU, k in {2.5, 5, 7.5, 10, 12.5}
    - BER in {0, 1e-5, 1e-4}
    """

    def __init__(
        self,
        ack_modes: List[bool] = None,
        propagation_delays: List[float] = None,
        timeout_multipliers: List[float] = None,
        bit_error_rates: List[float] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION
    ):
        """
        Initialize parameter sweep.

        Args:
            ack_modes: Ack policies (False = ACK, True = ACK/NAK)
            propagation_delays: One-way propagation delays (ms)
            timeout_multipliers: Timeouts as multiples of 2 * TAU
            bit_error_rates: Bit error rates
            runs_per_config: Number of runs per point
        """
        self.ack_modes = ack_modes if ack_modes is not None else ACK_MODES
        self.propagation_delays = propagation_delays or PROPAGATION_DELAYS
        self.timeout_multipliers = timeout_multipliers or TIMEOUT_MULTIPLIERS
        self.bit_error_rates = bit_error_rates if bit_error_rates is not None else BIT_ERROR_RATES
        self.runs_per_config = runs_per_config

    @property
    def total_configurations(self) -> int:
        return (len(self.ack_modes) * len(self.propagation_delays) *
                len(self.timeout_multipliers) * len(self.bit_error_rates))

    @property
    def total_simulations(self) -> int:
        return self.total_configurations * self.runs_per_config

    def get_all_points(self) -> List[SweepPoint]:
        """Get all parameter points, ack mode outermost."""
        points = []
        for ack_nak in self.ack_modes:
            for tau in self.propagation_delays:
                for multiplier in self.timeout_multipliers:
                    for ber in self.bit_error_rates:
                        points.append(SweepPoint(ack_nak, tau, multiplier, ber))
        return points

    def channel_index(self, point: SweepPoint) -> int:
        """
        Position of the point's channel conditions in the grid.

        Both ack modes share the index, so their runs use the same seeds.
        """
        keys = [
            (tau, multiplier, ber)
            for tau in self.propagation_delays
            for multiplier in self.timeout_multipliers
            for ber in self.bit_error_rates
        ]
        return keys.index(point.channel_key)


def results_table(
    results: List[Dict],
    ack_nak: bool = False,
    value: str = 'throughput'
) -> pd.DataFrame:
    """
    Pivot sweep results into the classic ABP results table.

    Rows are timeout multipliers, columns are (TAU, BER) pairs and each
    cell holds the mean of ``value`` over all runs of that point.

    Args:
        results: Result rows from the batch runner
        ack_nak: Which ack mode to tabulate
        value: Result column to aggregate

    Returns:
        Pivoted DataFrame (empty if there are no matching rows)
    """
    df = pd.DataFrame(results)
    if df.empty:
        return df

    if 'error' in df.columns:
        df = df[df['error'].isna()]
    df = df[df['ack_nak'] == ack_nak]
    if df.empty:
        return pd.DataFrame()

    return df.pivot_table(
        index='timeout_multiplier',
        columns=['propagation_delay', 'bit_error_rate'],
        values=value,
        aggfunc='mean'
    )


if __name__ == "__main__":
    sweep = ParameterSweep()
    print(f"Configurations: {sweep.total_configurations}")
    print(f"Simulations: {sweep.total_simulations}")
    for point in sweep.get_all_points()[:5]:
        print(f"  {point} -> timeout {point.timeout} ms")
