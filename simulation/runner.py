"""
Batch Runner for Parameter Sweep Simulations

This module implements the batch runner that executes every
(window size, loss probability) pair several times and aggregates
the completion times.
"""

import os
import csv
import time
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

import pandas as pd
from tqdm import tqdm

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    WINDOW_SIZES, LOSS_PROBABILITIES, RUNS_PER_CONFIGURATION,
    ITEMS_PER_RUN, RNG_SEED_BASE, OUTPUT_DIR, RESULTS_CSV
)
from simulation.simulator import Simulator, SimulatorConfig
from srarq.utils.logger import LogLevel


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    window_size: int
    loss_probability: float
    run_id: int
    seed: int
    num_items: int
    burst_loss: bool = False


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results
    """
    try:
        config = SimulatorConfig(
            window_size=run_config.window_size,
            loss_probability=run_config.loss_probability,
            burst_loss=run_config.burst_loss,
            num_items=run_config.num_items,
            seed=run_config.seed,
            log_level=LogLevel.CRITICAL  # Batch runs stay quiet
        )

        results = Simulator(config).run()
        stats = results['stats']

        return {
            'window_size': run_config.window_size,
            'loss_probability': run_config.loss_probability,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'num_items': run_config.num_items,
            'completion_time': results['simulation_time'],
            'efficiency': results['efficiency'],
            'retransmissions': stats['sender']['retransmissions'],
            'data_sent': stats['channel']['data_sent'],
            'data_dropped': stats['channel']['data_dropped'],
            'acks_dropped': stats['channel']['acks_dropped'],
            'duplicate_packets': stats['receiver']['duplicate_packets'],
            'data_valid': results['delivered_valid'],
            'complete': results['complete'],
            'error': None
        }

    except Exception as e:
        return {
            'window_size': run_config.window_size,
            'loss_probability': run_config.loss_probability,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'num_items': run_config.num_items,
            'complete': False,
            'error': str(e)
        }


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes all (W, p) combinations with multiple runs each.

    Attributes:
        window_sizes: List of window sizes to test
        loss_probabilities: List of channel loss probabilities to test
        runs_per_config: Number of runs per configuration
        num_items: Items transferred in each run
    """

    def __init__(
        self,
        window_sizes: Optional[List[int]] = None,
        loss_probabilities: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_items: int = ITEMS_PER_RUN,
        burst_loss: bool = False,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            window_sizes: List of window sizes (default from config)
            loss_probabilities: List of loss probabilities (default from config)
            runs_per_config: Number of runs per (W, p) pair
            num_items: Items transferred in each run
            burst_loss: Use the Gilbert-Elliot model instead of Bernoulli loss
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.window_sizes = window_sizes or WINDOW_SIZES
        self.loss_probabilities = (loss_probabilities if loss_probabilities is not None
                                   else LOSS_PROBABILITIES)
        self.runs_per_config = runs_per_config
        self.num_items = num_items
        self.burst_loss = burst_loss
        self.output_file = output_file
        self.on_progress = on_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = (len(self.window_sizes) *
                           len(self.loss_probabilities) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for window_size in self.window_sizes:
            for loss_idx, loss_probability in enumerate(self.loss_probabilities):
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run
                    seed = (RNG_SEED_BASE +
                            window_size * 1000 +
                            loss_idx * 100 +
                            run_id * 10000)

                    configs.append(RunConfig(
                        window_size=window_size,
                        loss_probability=loss_probability,
                        run_id=run_id,
                        seed=seed,
                        num_items=self.num_items,
                        burst_loss=self.burst_loss
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

        print(f"Running {self.total_runs} simulations sequentially...")

        for config in tqdm(configs, desc="Simulations"):
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
                               desc="Simulations"):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if not self.results:
            print("No results to save!")
            return

        # Error rows carry fewer columns than successful ones
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

    @staticmethod
    def load_results(filepath: str = RESULTS_CSV) -> pd.DataFrame:
        """Load a results CSV written by ``save_results``."""
        return pd.read_csv(filepath)

    def get_aggregated_results(self) -> pd.DataFrame:
        """
        Get aggregated results by (W, p) pair.

        Returns:
            DataFrame with one row per (window_size, loss_probability)
        """
        df = pd.DataFrame(self.results)
        if df.empty:
            return df

        if 'error' in df.columns:
            df = df[df['error'].isna()]
        if df.empty:
            return df

        grouped = df.groupby(['window_size', 'loss_probability'])
        aggregated = grouped.agg(
            completion_time_mean=('completion_time', 'mean'),
            completion_time_std=('completion_time', 'std'),
            completion_time_min=('completion_time', 'min'),
            completion_time_max=('completion_time', 'max'),
            efficiency_mean=('efficiency', 'mean'),
            retx_mean=('retransmissions', 'mean'),
            completion_rate=('complete', 'mean'),
            runs=('run_id', 'count')
        ).reset_index()

        aggregated['completion_time_std'] = aggregated['completion_time_std'].fillna(0.0)
        return aggregated

    def get_best_configuration(self, loss_probability: Optional[float] = None) -> Dict:
        """
        Find the window size with the lowest mean completion time.

        Only configurations whose every run completed are considered.

        Args:
            loss_probability: Restrict the search to one loss probability

        Returns:
            Dictionary with best configuration info
        """
        aggregated = self.get_aggregated_results()

        if aggregated.empty:
            return {'error': 'No results available'}

        if loss_probability is not None:
            aggregated = aggregated[aggregated['loss_probability'] == loss_probability]

        candidates = aggregated[aggregated['completion_rate'] == 1.0]
        if candidates.empty:
            return {'error': 'No configuration completed every run'}

        best = candidates.loc[candidates['completion_time_mean'].idxmin()]

        return {
            'best_window_size': int(best['window_size']),
            'loss_probability': float(best['loss_probability']),
            'mean_completion_time': float(best['completion_time_mean']),
            'completion_time_std': float(best['completion_time_std']),
            'mean_efficiency': float(best['efficiency_mean']),
            'mean_retransmissions': float(best['retx_mean'])
        }


if __name__ == "__main__":
    # Test batch runner with small parameter space
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        window_sizes=[2, 4],
        loss_probabilities=[0.0, 0.3],
        runs_per_config=2,
        num_items=20,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTest configuration:")
    print(f"  Window sizes: {runner.window_sizes}")
    print(f"  Loss probabilities: {runner.loss_probabilities}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    runner.run_sequential()
    runner.save_results()

    print("\nAggregated results:")
    print(runner.get_aggregated_results().to_string(index=False))

    best = runner.get_best_configuration()
    print(f"\nBest configuration:")
    print(f"  Window size: {best.get('best_window_size')}")
    print(f"  Mean completion time: {best.get('mean_completion_time', 0):.3f} s")
