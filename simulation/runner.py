"""
Batch Runner for Parameter Sweep Simulations

This module runs every point of the ABP parameter sweep several times,
collects one result row per run and aggregates throughput per point.
"""

import os
import csv
import time
import statistics
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

from tqdm import tqdm

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    HEADER_LENGTH, PACKET_LENGTH, CHANNEL_CAPACITY, SUCCESS_PACKETS,
    RNG_SEED_BASE, MAX_IDLE_ROUNDS, OUTPUT_DIR, RESULTS_CSV
)
from simulation.simulator import ABPSimulator, SimulationParameters
from simulation.parameter_sweep import ParameterSweep, SweepPoint
from src.abp.errors import SimulationError, NoProgressError
from src.utils.logger import LogLevel


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    point: SweepPoint
    run_id: int
    seed: int
    success_packets: int
    header_length: int = HEADER_LENGTH
    packet_length: int = PACKET_LENGTH
    channel_capacity: float = CHANNEL_CAPACITY
    max_idle_rounds: Optional[int] = MAX_IDLE_ROUNDS


def _base_row(run_config: RunConfig) -> Dict:
    point = run_config.point
    return {
        'ack_nak': point.ack_nak,
        'propagation_delay': point.propagation_delay,
        'timeout_multiplier': point.timeout_multiplier,
        'timeout': point.timeout,
        'bit_error_rate': point.bit_error_rate,
        'run_id': run_config.run_id,
        'seed': run_config.seed,
    }


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results; ``error`` holds the message of a failed run
    """
    row = _base_row(run_config)
    point = run_config.point

    try:
        params = SimulationParameters(
            ack_nak=point.ack_nak,
            header_length=run_config.header_length,
            packet_length=run_config.packet_length,
            timeout=point.timeout,
            channel_capacity=run_config.channel_capacity,
            propagation_delay=point.propagation_delay,
            bit_error_rate=point.bit_error_rate
        )
        sim = ABPSimulator(
            params,
            seed=run_config.seed,
            vectorized_channel=True,
            max_idle_rounds=run_config.max_idle_rounds,
            log_level=LogLevel.CRITICAL  # Minimal logging for batch runs
        )
        result = sim.run(run_config.success_packets)
    except NoProgressError as e:
        partial = e.result
        row.update({
            'throughput': partial.throughput if partial else 0.0,
            'total_time': partial.elapsed_ms if partial else 0.0,
            'success_count': partial.success_count if partial else 0,
            'complete': False,
            'error': str(e)
        })
        return row
    except SimulationError as e:
        row.update({'throughput': 0.0, 'complete': False, 'error': str(e)})
        return row

    metrics = result.metrics
    row.update({
        'throughput': result.throughput,
        'total_time': result.elapsed_ms,
        'success_count': result.success_count,
        'rounds': result.rounds,
        'utilization': metrics['utilization'],
        'efficiency': metrics['efficiency'],
        'retransmissions': metrics['retransmissions'],
        'timeouts': metrics['timeouts'],
        'nak_retransmissions': metrics['nak_retransmissions'],
        'frames_lost': metrics['frames_lost'],
        'frames_corrupted': metrics['frames_corrupted'],
        'acks_lost': metrics['acks_lost'],
        'acks_corrupted': metrics['acks_corrupted'],
        'frame_error_rate': metrics['frame_error_rate'],
        'complete': result.complete,
        'error': None
    })
    return row


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes every sweep point with multiple runs each.

    Attributes:
        sweep: Parameter space to explore
        success_packets: Packets to deliver per run
        output_file: CSV destination
    """

    def __init__(
        self,
        sweep: Optional[ParameterSweep] = None,
        success_packets: int = SUCCESS_PACKETS,
        header_length: int = HEADER_LENGTH,
        packet_length: int = PACKET_LENGTH,
        channel_capacity: float = CHANNEL_CAPACITY,
        max_idle_rounds: Optional[int] = MAX_IDLE_ROUNDS,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None,
        show_progress: bool = True
    ):
        """
        Initialize batch runner.

        Args:
            sweep: Parameter sweep (default grid from config)
            success_packets: Packets to deliver per run
            header_length: Header length in bits
            packet_length: Packet length in bits
            channel_capacity: Channel capacity in bps
            max_idle_rounds: No-progress ceiling per run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
            show_progress: Display a tqdm progress bar
        """
        self.sweep = sweep or ParameterSweep()
        self.success_packets = success_packets
        self.header_length = header_length
        self.packet_length = packet_length
        self.channel_capacity = channel_capacity
        self.max_idle_rounds = max_idle_rounds
        self.output_file = output_file
        self.on_progress = on_progress
        self.show_progress = show_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = self.sweep.total_simulations
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for point in self.sweep.get_all_points():
            index = self.sweep.channel_index(point)
            for run_id in range(self.sweep.runs_per_config):
                # Same seed for both ack modes at the same channel point
                seed = RNG_SEED_BASE + index * 1000 + run_id

                configs.append(RunConfig(
                    point=point,
                    run_id=run_id,
                    seed=seed,
                    success_packets=self.success_packets,
                    header_length=self.header_length,
                    packet_length=self.packet_length,
                    channel_capacity=self.channel_capacity,
                    max_idle_rounds=self.max_idle_rounds
                ))

        return configs

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        for config in tqdm(configs, desc="Simulations", disable=not self.show_progress):
            self._record(run_single_simulation(config))

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations with {max_workers} workers...")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(run_single_simulation, config): config
                for config in configs
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations", disable=not self.show_progress):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None) -> Optional[str]:
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)

        Returns:
            Path written, or None when there is nothing to save
        """
        filepath = filepath or self.output_file

        if not self.results:
            print("No results to save!")
            return None

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # Union of keys, failed runs carry fewer columns
        fieldnames = []
        for result in self.results:
            for key in result:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        print(f"Results saved to: {filepath}")
        return filepath

    def get_aggregated_results(self) -> Dict:
        """
        Get aggregated results by sweep point.

        Returns:
            Dictionary keyed by (ack_nak, tau, timeout multiplier, BER)
        """
        aggregated = {}

        for result in self.results:
            if result.get('error'):
                continue

            key = (result['ack_nak'], result['propagation_delay'],
                   result['timeout_multiplier'], result['bit_error_rate'])
            if key not in aggregated:
                aggregated[key] = {
                    'ack_nak': result['ack_nak'],
                    'propagation_delay': result['propagation_delay'],
                    'timeout_multiplier': result['timeout_multiplier'],
                    'timeout': result['timeout'],
                    'bit_error_rate': result['bit_error_rate'],
                    'throughputs': [],
                    'retransmissions': []
                }

            aggregated[key]['throughputs'].append(result['throughput'])
            aggregated[key]['retransmissions'].append(result['retransmissions'])

        for data in aggregated.values():
            throughputs = data['throughputs']
            data['throughput_mean'] = statistics.mean(throughputs)
            data['throughput_std'] = (statistics.stdev(throughputs)
                                      if len(throughputs) > 1 else 0)
            data['throughput_min'] = min(throughputs)
            data['throughput_max'] = max(throughputs)
            data['retx_mean'] = statistics.mean(data['retransmissions'])

        return aggregated

    def get_best_timeouts(self) -> Dict:
        """
        Find the best timeout multiplier for each (ack mode, TAU, BER).

        Returns:
            Dictionary keyed by (ack_nak, tau, BER)
        """
        best = {}
        for data in self.get_aggregated_results().values():
            key = (data['ack_nak'], data['propagation_delay'], data['bit_error_rate'])
            if key not in best or data['throughput_mean'] > best[key]['throughput_mean']:
                best[key] = {
                    'timeout_multiplier': data['timeout_multiplier'],
                    'timeout': data['timeout'],
                    'throughput_mean': data['throughput_mean']
                }
        return best


if __name__ == "__main__":
    # Test batch runner with small parameter space
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        sweep=ParameterSweep(
            propagation_delays=[5.0],
            timeout_multipliers=[2.5, 5.0],
            bit_error_rates=[0.0, 1e-4],
            runs_per_config=2
        ),
        success_packets=500,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTotal runs: {runner.total_runs}")
    runner.run_sequential()
    runner.save_results()

    print("\nAggregated results:")
    for key, data in runner.get_aggregated_results().items():
        print(f"  NAK={key[0]}, TAU={key[1]}, k={key[2]}, BER={key[3]}: "
              f"Throughput={data['throughput_mean']:.2f} bps")
