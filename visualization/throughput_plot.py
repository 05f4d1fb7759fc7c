"""
Throughput Visualization

This module plots ABP throughput against the timeout for every
(propagation delay, BER) pair, for both acknowledgment policies.
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR
from simulation.parameter_sweep import results_table


class ThroughputPlot:
    """
    Generates throughput curves and heatmaps from sweep results.

    Attributes:
        data: One row per simulation run
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize plot generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.data = pd.DataFrame(results)
        elif csv_file:
            self.data = pd.read_csv(csv_file)
        else:
            self.data = pd.DataFrame()

        if not self.data.empty and 'error' in self.data.columns:
            self.data = self.data[self.data['error'].isna()]

    def _mean_curves(self) -> pd.DataFrame:
        """Mean throughput per (mode, TAU, BER, timeout multiplier)."""
        return (self.data
                .groupby(['ack_nak', 'propagation_delay', 'bit_error_rate', 'timeout_multiplier'])
                ['throughput'].mean()
                .reset_index())

    @staticmethod
    def _save(output_file: Optional[str], default_name: str) -> str:
        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, default_name)
        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close()
        return output_file

    def plot_curves(
        self,
        output_file: Optional[str] = None,
        title: str = "ABP Throughput vs Timeout",
        figsize: Tuple[int, int] = (14, 6)
    ) -> str:
        """
        Plot throughput against timeout, one subplot per propagation delay.

        ABP (plain ACK) curves are solid, ABP-NAK curves dashed.

        Args:
            output_file: Output file path (auto-generated if None)
            title: Plot title
            figsize: Figure size (width, height)

        Returns:
            Path to saved figure
        """
        if self.data.empty:
            raise ValueError("No results to plot")

        curves = self._mean_curves()
        taus = sorted(curves['propagation_delay'].unique())
        bers = sorted(curves['bit_error_rate'].unique())
        colors = sns.color_palette("viridis", len(bers))

        fig, axes = plt.subplots(1, len(taus), figsize=figsize, squeeze=False)

        for ax, tau in zip(axes[0], taus):
            for color, ber in zip(colors, bers):
                for ack_nak, style in ((False, '-'), (True, '--')):
                    subset = curves[(curves['propagation_delay'] == tau) &
                                    (curves['bit_error_rate'] == ber) &
                                    (curves['ack_nak'] == ack_nak)]
                    if subset.empty:
                        continue
                    subset = subset.sort_values('timeout_multiplier')
                    label = f"{'ABP-NAK' if ack_nak else 'ABP'}, BER={ber:g}"
                    ax.plot(
                        subset['timeout_multiplier'],
                        subset['throughput'] / 1e6,
                        linestyle=style,
                        marker='o',
                        color=color,
                        label=label
                    )

            ax.set_xlabel('Timeout (multiples of 2τ)', fontsize=12)
            ax.set_ylabel('Throughput (Mbps)', fontsize=12)
            ax.set_title(f"2τ = {2 * tau:g} ms")
            ax.grid(True, alpha=0.3)
            ax.legend(fontsize=8)

        plt.suptitle(title, fontsize=14, fontweight='bold')
        plt.tight_layout()

        output_file = self._save(output_file, 'throughput_curves.png')
        print(f"Throughput curves saved to: {output_file}")
        return output_file

    def plot_heatmap(
        self,
        ack_nak: bool = False,
        output_file: Optional[str] = None,
        cmap: str = "viridis"
    ) -> str:
        """
        Heatmap of mean throughput (Mbps), timeout rows x (TAU, BER) columns.

        Args:
            ack_nak: Which ack policy to plot
            output_file: Output file path (auto-generated if None)
            cmap: Colormap name

        Returns:
            Path to saved figure
        """
        table = results_table(self.data.to_dict('records'), ack_nak=ack_nak)
        if table.empty:
            raise ValueError("No results to plot")

        matrix = table.to_numpy() / 1e6
        column_labels = [f"τ={tau:g}\nBER={ber:g}" for tau, ber in table.columns]

        fig, ax = plt.subplots(figsize=(12, 6))
        sns.heatmap(
            matrix,
            annot=True,
            fmt='.3f',
            cmap=cmap,
            xticklabels=column_labels,
            yticklabels=[f"{k:g}" for k in table.index],
            ax=ax,
            cbar_kws={'label': 'Throughput (Mbps)'}
        )

        mode = 'ABP-NAK' if ack_nak else 'ABP'
        ax.set_xlabel('Channel conditions', fontsize=12)
        ax.set_ylabel('Timeout (multiples of 2τ)', fontsize=12)
        ax.set_title(f"{mode} Throughput (Mbps)", fontsize=14, fontweight='bold')
        plt.tight_layout()

        name = 'throughput_heatmap_nak.png' if ack_nak else 'throughput_heatmap_ack.png'
        output_file = self._save(output_file, name)
        print(f"Heatmap saved to: {output_file}")
        return output_file

    def nak_gain(self) -> pd.DataFrame:
        """
        Relative throughput gain of ABP-NAK over ABP, in percent.

        Returns:
            Table shaped like ``results_table``
        """
        records = self.data.to_dict('records')
        ack = results_table(records, ack_nak=False)
        nak = results_table(records, ack_nak=True)
        if ack.empty or nak.empty:
            return pd.DataFrame()
        return (nak - ack) / ack.replace(0, np.nan) * 100
