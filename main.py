#!/usr/bin/env python3
"""
Selective Repeat ARQ Session Simulator - Main Entry Point

This is the main CLI interface for the selective repeat session.
It provides options for:
- A paced demo replaying two batches over a lossy channel
- Single virtual-time simulation runs
- Parameter sweep over window size and loss probability
- Visualization generation

Usage:
    python main.py --demo
    python main.py --single --window 4 --loss 0.3
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
    WINDOW_SIZE, SEQUENCE_SPACE_SIZE, TIMEOUT, LOSS_PROBABILITY, MAX_DELAY,
    WINDOW_SIZES, LOSS_PROBABILITIES, RUNS_PER_CONFIGURATION, ITEMS_PER_RUN,
    RNG_SEED_BASE, RESULTS_CSV, PLOTS_DIR,
    DEMO_DATA, DEMO_DURATION, DEMO_STATUS_INTERVAL,
    minimum_sequence_space
)


def print_status(status):
    """Print a session status snapshot."""
    delivered = ", ".join(item.decode('utf-8', errors='replace')
                          for item in status.delivered_items)
    print("\n=== PROTOCOL STATUS ===")
    print(f"Sender Window: base={status.sender_base}, nextSeqNum={status.sender_next}")
    print(f"Receiver Expected: {status.receiver_expected}")
    print(f"Delivered Data: [{delivered}]")
    print("======================\n")


def protocol_config(args):
    """Build the protocol config the command-line options describe."""
    from srarq.session import ProtocolConfig

    seq_space = args.seq_space
    if seq_space is None:
        seq_space = minimum_sequence_space(args.window)
    return ProtocolConfig.from_defaults(
        window_size=args.window,
        seq_space_size=seq_space,
        timeout=args.timeout
    )


def run_demo(args):
    """Replay the two-batch demo against the wall clock."""
    from srarq.session import ProtocolSession
    from srarq.arq.timer import EventScheduler
    from srarq.channel.lossy import LossyChannel
    from srarq.utils.logger import SimulationLogger, LogLevel

    config = protocol_config(args)
    logger = SimulationLogger(
        name="Demo",
        level=LogLevel.DEBUG if args.verbose else LogLevel.INFO
    )

    scheduler = EventScheduler()
    channel = LossyChannel(
        clock=scheduler.time,
        loss_probability=args.loss,
        max_delay=args.max_delay,
        seed=args.seed,
        logger=logger
    )
    session = ProtocolSession(config, channel, scheduler, logger=logger)

    print("Starting Sliding Window Protocol Simulation...\n")
    session.start()

    def first_batch():
        print("\nSending first batch of data...")
        session.send_data(DEMO_DATA[:4])

    def second_batch():
        print("\nSending second batch of data...")
        session.send_data(DEMO_DATA[4:])

    def report():
        print_status(session.snapshot_status())
        scheduler.call_later(DEMO_STATUS_INTERVAL, report)

    scheduler.call_later(0.1, first_batch)
    scheduler.call_later(2.0, second_batch)
    scheduler.call_later(DEMO_STATUS_INTERVAL, report)

    duration = args.duration
    if args.fast:
        scheduler.run_until(duration)
    else:
        scheduler.run_realtime(duration)

    print("Stopping simulation...")
    session.stop()
    print_status(session.snapshot_status())
    return session.get_statistics()


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig
    from srarq.utils.logger import LogLevel

    config = SimulatorConfig(
        window_size=args.window,
        seq_space_size=args.seq_space,
        timeout=args.timeout,
        loss_probability=args.loss,
        max_delay=args.max_delay,
        burst_loss=args.burst,
        num_items=args.items,
        seed=args.seed,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Window size: {config.window_size}")
    print(f"  Sequence space: {config.get_seq_space_size()}")
    print(f"  Timeout: {config.timeout * 1000:.0f} ms")
    print(f"  Loss: {'Gilbert-Elliot' if config.burst_loss else config.loss_probability}")
    print(f"  Max delay: {config.max_delay * 1000:.0f} ms")
    print(f"  Items: {config.num_items}")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivered: {results['delivered_items']}/{results['config']['num_items']}")
    print(f"  Data Valid: {results['delivered_valid']}")
    print(f"  Simulation Time: {results['simulation_time']:.4f} s")
    print(f"  Real Time: {elapsed:.2f} s")

    stats = results['stats']
    print(f"\nPacket Statistics:")
    print(f"  Data Packets Sent: {stats['channel']['data_sent']}")
    print(f"  Data Packets Lost: {stats['channel']['data_dropped']}")
    print(f"  ACKs Lost: {stats['channel']['acks_dropped']}")
    print(f"  Retransmissions: {stats['sender']['retransmissions']}")
    print(f"  Duplicates at Receiver: {stats['receiver']['duplicate_packets']}")
    print(f"  Efficiency: {results['efficiency'] * 100:.2f}%")

    return results


def run_parameter_sweep(args):
    """Run full parameter sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        window_sizes = [2, 4, 8]
        loss_probabilities = [0.0, 0.2, 0.4]
        runs = 2
        num_items = 50
    else:
        window_sizes = WINDOW_SIZES
        loss_probabilities = LOSS_PROBABILITIES
        runs = args.runs
        num_items = args.items

    runner = BatchRunner(
        window_sizes=window_sizes,
        loss_probabilities=loss_probabilities,
        runs_per_config=runs,
        num_items=num_items,
        burst_loss=args.burst,
        output_file=args.output or RESULTS_CSV
    )

    print(f"\nConfiguration:")
    print(f"  Window sizes: {window_sizes}")
    print(f"  Loss probabilities: {loss_probabilities}")
    print(f"  Runs per config: {runs}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Items per run: {num_items}")
    print(f"  Output: {args.output or RESULTS_CSV}")

    print("\nStarting parameter sweep...")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    print("\n" + "=" * 60)
    print("BEST WINDOW PER LOSS PROBABILITY")
    print("=" * 60)
    for loss_probability in loss_probabilities:
        best = runner.get_best_configuration(loss_probability)
        if 'error' in best:
            print(f"  p={loss_probability}: {best['error']}")
            continue
        print(f"  p={loss_probability}: W={best['best_window_size']}, "
              f"{best['mean_completion_time']:.3f} s "
              f"(efficiency {best['mean_efficiency'] * 100:.1f}%)")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return None

    from visualization.heatmap import CompletionHeatmap

    heatmap = CompletionHeatmap(csv_file=csv_file)
    print(f"Loaded {len(heatmap.results)} results from {csv_file}")

    os.makedirs(PLOTS_DIR, exist_ok=True)

    print("\nGenerating heatmap...")
    heatmap_file = heatmap.plot(
        output_file=args.output or os.path.join(PLOTS_DIR, 'completion_heatmap.png'),
        highlight_best=True
    )

    print("\n" + "=" * 60)
    print("VISUALIZATIONS GENERATED")
    print("=" * 60)
    print(f"  Heatmap: {heatmap_file}")
    return heatmap_file


def show_config(args):
    """Display current configuration."""
    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    import config as cfg

    print(f"\nProtocol:")
    print(f"  Window Size: {cfg.WINDOW_SIZE}")
    print(f"  Sequence Space: {cfg.SEQUENCE_SPACE_SIZE} "
          f"(minimum safe: {cfg.minimum_sequence_space(cfg.WINDOW_SIZE)})")
    print(f"  Timeout: {cfg.TIMEOUT * 1000:.0f} ms")
    print(f"  Max Pending Items: {cfg.MAX_PENDING_ITEMS}")
    print(f"  Tick Interval: {cfg.TICK_INTERVAL * 1000:.0f} ms")
    print(f"  Packet Header: {cfg.PACKET_HEADER_SIZE} bytes")

    print(f"\nChannel:")
    print(f"  Loss Probability: {cfg.LOSS_PROBABILITY}")
    print(f"  Max Delay: {cfg.MAX_DELAY * 1000:.0f} ms")
    print(f"  Expected transmissions/item: "
          f"{cfg.calculate_expected_transmissions(cfg.LOSS_PROBABILITY):.2f}")

    pi_good, pi_bad = cfg.calculate_steady_state_probabilities()
    print(f"\nGilbert-Elliot Loss Model:")
    print(f"  Good State Loss: {cfg.GOOD_STATE_LOSS}")
    print(f"  Bad State Loss: {cfg.BAD_STATE_LOSS}")
    print(f"  P(Good→Bad): {cfg.P_GOOD_TO_BAD}")
    print(f"  P(Bad→Good): {cfg.P_BAD_TO_GOOD}")
    print(f"  Steady-state P(Good): {pi_good:.4f}, P(Bad): {pi_bad:.4f}")
    print(f"  Average Loss: {cfg.calculate_average_burst_loss():.4f}")

    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {cfg.WINDOW_SIZES}")
    print(f"  Loss Probabilities: {cfg.LOSS_PROBABILITIES}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: "
          f"{len(cfg.WINDOW_SIZES) * len(cfg.LOSS_PROBABILITIES) * cfg.RUNS_PER_CONFIGURATION}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Session Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Paced demo (10 s, two batches):
    python main.py --demo

  Single simulation:
    python main.py --single --window 4 --loss 0.3 --items 200

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
    mode.add_argument('--demo', action='store_true',
                      help='Run the paced two-batch demo')
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Protocol and channel options
    parser.add_argument('--window', '-w', type=int, default=WINDOW_SIZE,
                        help=f'Window size (default: {WINDOW_SIZE})')
    parser.add_argument('--seq-space', type=int, default=None,
                        help=f'Sequence space size (demo default: {SEQUENCE_SPACE_SIZE}, '
                             f'simulation default: 2 × window)')
    parser.add_argument('--timeout', type=float, default=TIMEOUT,
                        help=f'Retransmission timeout in seconds (default: {TIMEOUT})')
    parser.add_argument('--loss', '-l', type=float, default=LOSS_PROBABILITY,
                        help=f'Loss probability (default: {LOSS_PROBABILITY})')
    parser.add_argument('--max-delay', type=float, default=MAX_DELAY,
                        help=f'Maximum one-way delay in seconds (default: {MAX_DELAY})')
    parser.add_argument('--burst', action='store_true',
                        help='Use Gilbert-Elliot burst loss instead of Bernoulli loss')
    parser.add_argument('--seed', '-s', type=int, default=RNG_SEED_BASE,
                        help=f'Random seed (default: {RNG_SEED_BASE})')

    # Demo options
    parser.add_argument('--duration', type=float, default=DEMO_DURATION,
                        help=f'Demo duration in seconds (default: {DEMO_DURATION})')
    parser.add_argument('--fast', action='store_true',
                        help='Run the demo in virtual time instead of real time')

    # Data options
    parser.add_argument('--items', type=int, default=ITEMS_PER_RUN,
                        help=f'Items per simulation (default: {ITEMS_PER_RUN})')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.demo and args.seq_space is None:
        args.seq_space = SEQUENCE_SPACE_SIZE

    if args.demo or args.single:
        try:
            protocol_config(args)
        except ValueError as e:
            parser.error(str(e))

    # Execute selected mode
    if args.demo:
        run_demo(args)
    elif args.single:
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.visualize:
        generate_visualizations(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
