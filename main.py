#!/usr/bin/env python3
"""
Alternating Bit Protocol Simulator - Main Entry Point

This is the main CLI interface for the ABP simulator.
It provides options for:
- Single simulation runs
- Full parameter sweep
- Visualization generation

Usage:
    python main.py --single --ber 1e-5 --timeout 25 --tau 5
    python main.py --single --nak --ber 1e-4
    python main.py --sweep --runs 5
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    HEADER_LENGTH, PACKET_LENGTH, TIMEOUT, CHANNEL_CAPACITY,
    PROPAGATION_DELAY, BIT_ERROR_RATE, SUCCESS_PACKETS,
    RUNS_PER_CONFIGURATION, MAX_IDLE_ROUNDS, RESULTS_CSV, PLOTS_DIR
)


def print_parameters(params, success_packets):
    """Print the run parameters banner."""
    print("ABP simulator")
    print(f"  {'ACK_NAK:':<11} {'true' if params.ack_nak else 'false'}")
    print("Sender-side parameters")
    print(f"  {'H (bits):':<11} {params.header_length}")
    print(f"  {'l (bits):':<11} {params.packet_length}")
    print(f"  {'DELTA (ms):':<11} {params.timeout:f}")
    print("Channel parameters")
    print(f"  {'C (bps):':<11} {params.channel_capacity:g}")
    print(f"  {'TAU (ms):':<11} {params.propagation_delay:f}")
    print(f"  {'BER:':<11} {params.bit_error_rate:g}")
    print("Experiment Duration")
    print(f"  {'Successful Packets:':<11} {success_packets}")


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import ABPSimulator, SimulationParameters
    from src.abp.errors import NoProgressError
    from src.utils.logger import LogLevel

    params = SimulationParameters(
        ack_nak=args.nak,
        header_length=args.header,
        packet_length=args.packet,
        timeout=args.timeout,
        channel_capacity=args.capacity,
        propagation_delay=args.tau,
        bit_error_rate=args.ber
    )

    print_parameters(params, args.packets)

    sim = ABPSimulator(
        params,
        seed=args.seed,
        vectorized_channel=args.fast,
        max_idle_rounds=args.max_idle_rounds,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING
    )

    start_time = time.time()
    try:
        result = sim.run(args.packets)
    except NoProgressError as e:
        print(f"\nSimulation stopped without progress: {e}")
        result = e.result
    elapsed = time.time() - start_time

    print(f"Time to complete (ms): {result.elapsed_ms:f}")
    print(f"Throughput (bps): {result.throughput:f}")

    metrics = result.metrics
    print(f"\nFrame Statistics:")
    print(f"  Packets delivered: {result.success_count}/{result.target}")
    print(f"  Frames sent: {metrics['data_frames_sent']}")
    print(f"  Retransmissions: {metrics['retransmissions']}")
    print(f"  Timeouts: {metrics['timeouts']}")
    print(f"  NAK retransmissions: {metrics['nak_retransmissions']}")
    print(f"  Frames lost / corrupted: {metrics['frames_lost']} / {metrics['frames_corrupted']}")
    print(f"  ACKs lost / corrupted: {metrics['acks_lost']} / {metrics['acks_corrupted']}")
    print(f"  Utilization: {metrics['utilization'] * 100:.2f}%")
    print(f"  Real time: {elapsed:.2f} s")

    return result


def run_parameter_sweep(args):
    """Run full parameter sweep."""
    from simulation.runner import BatchRunner
    from simulation.parameter_sweep import ParameterSweep, results_table

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        sweep = ParameterSweep(runs_per_config=1)
        success_packets = 1000
    else:
        sweep = ParameterSweep(runs_per_config=args.runs)
        success_packets = args.packets

    runner = BatchRunner(
        sweep=sweep,
        success_packets=success_packets,
        max_idle_rounds=args.max_idle_rounds,
        output_file=args.output or RESULTS_CSV
    )

    print(f"\nConfiguration:")
    print(f"  Ack modes: {sweep.ack_modes}")
    print(f"  Propagation delays (ms): {sweep.propagation_delays}")
    print(f"  Timeout multipliers: {sweep.timeout_multipliers}")
    print(f"  Bit error rates: {sweep.bit_error_rates}")
    print(f"  Runs per config: {sweep.runs_per_config}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Packets per run: {success_packets}")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    for ack_nak in sweep.ack_modes:
        table = results_table(results, ack_nak=ack_nak)
        if table.empty:
            continue
        print("\n" + "=" * 60)
        print(f"{'ABP-NAK' if ack_nak else 'ABP'} THROUGHPUT (bps)")
        print("=" * 60)
        print(table.round(1).to_string())

    failed = [r for r in results if r.get('error')]
    if failed:
        print(f"\n{len(failed)} runs did not complete")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    from visualization.throughput_plot import ThroughputPlot

    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return

    os.makedirs(PLOTS_DIR, exist_ok=True)

    plot = ThroughputPlot(csv_file=csv_file)
    print(f"Loaded {len(plot.data)} results from {csv_file}")

    plot.plot_curves(output_file=os.path.join(PLOTS_DIR, 'throughput_curves.png'))
    plot.plot_heatmap(ack_nak=False, output_file=os.path.join(PLOTS_DIR, 'throughput_heatmap_ack.png'))
    plot.plot_heatmap(ack_nak=True, output_file=os.path.join(PLOTS_DIR, 'throughput_heatmap_nak.png'))

    gain = plot.nak_gain()
    if not gain.empty:
        print("\nABP-NAK gain over ABP (%):")
        print(gain.round(2).to_string())


def show_config(args):
    """Display current configuration."""
    import config as cfg

    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    print(f"\nSender-side Parameters:")
    print(f"  H: {cfg.HEADER_LENGTH} bits")
    print(f"  l: {cfg.PACKET_LENGTH} bits")
    print(f"  Timeout: {cfg.TIMEOUT} ms")

    print(f"\nChannel Parameters:")
    print(f"  C: {cfg.CHANNEL_CAPACITY / 1e6:.0f} Mbps")
    print(f"  TAU: {cfg.PROPAGATION_DELAY} ms")
    print(f"  BER: {cfg.BIT_ERROR_RATE:.2e}")
    print(f"  Loss threshold: {cfg.LOSS_THRESHOLD_BITS} bit errors")

    print(f"\nParameter Sweep:")
    print(f"  Timeout multipliers: {cfg.TIMEOUT_MULTIPLIERS}")
    print(f"  Propagation delays: {cfg.PROPAGATION_DELAYS}")
    print(f"  Bit error rates: {cfg.BIT_ERROR_RATES}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")

    print(f"\nError-free round duration per propagation delay:")
    for tau in cfg.PROPAGATION_DELAYS:
        rtt = cfg.calculate_round_trip_time(propagation_delay=tau)
        print(f"  TAU {tau} ms: {rtt:.3f} ms")


def main():
    parser = argparse.ArgumentParser(
        description="Alternating Bit Protocol Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation:
    python main.py --single --ber 1e-5 --timeout 25 --tau 5

  Single simulation with NAK-aware sender:
    python main.py --single --nak --ber 1e-4

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Parallel parameter sweep:
    python main.py --sweep --parallel --workers 4

  Generate visualizations:
    python main.py --visualize

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Single simulation options
    parser.add_argument('--nak', action='store_true',
                        help='NAK-aware sender (retransmit on mismatched ACK)')
    parser.add_argument('--header', type=int, default=HEADER_LENGTH,
                        help=f'Header length in bits (default: {HEADER_LENGTH})')
    parser.add_argument('--packet', type=int, default=PACKET_LENGTH,
                        help=f'Packet length in bits (default: {PACKET_LENGTH})')
    parser.add_argument('--timeout', '-t', type=float, default=TIMEOUT,
                        help=f'Timeout in ms (default: {TIMEOUT})')
    parser.add_argument('--capacity', '-c', type=float, default=CHANNEL_CAPACITY,
                        help=f'Channel capacity in bps (default: {CHANNEL_CAPACITY})')
    parser.add_argument('--tau', type=float, default=PROPAGATION_DELAY,
                        help=f'Propagation delay in ms (default: {PROPAGATION_DELAY})')
    parser.add_argument('--ber', type=float, default=BIT_ERROR_RATE,
                        help=f'Bit error rate (default: {BIT_ERROR_RATE})')
    parser.add_argument('--seed', '-s', type=int, default=None,
                        help='Random seed (default: random)')
    parser.add_argument('--fast', action='store_true',
                        help='Sample frame errors with one binomial draw per frame')

    # Shared options
    parser.add_argument('--packets', '-n', type=int, default=SUCCESS_PACKETS,
                        help=f'Successful packets per run (default: {SUCCESS_PACKETS})')
    parser.add_argument('--max-idle-rounds', type=int, default=MAX_IDLE_ROUNDS,
                        help=f'Stop a run after this many rounds without progress (default: {MAX_IDLE_ROUNDS})')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick sweep with one short run per point')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    if args.single:
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.visualize:
        generate_visualizations(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
