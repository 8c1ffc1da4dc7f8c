"""
Completion Time Heatmap Visualization

This module generates 2D heatmaps showing completion time = f(W, p).
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR


class CompletionHeatmap:
    """
    Generates 2D heatmaps of mean completion time over window size and
    loss probability.

    Runs that did not complete are left out of the mean. A cell with no
    completed run is drawn blank.
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.results = pd.DataFrame(results)
        elif csv_file:
            self.results = pd.read_csv(csv_file)
        else:
            self.results = pd.DataFrame()

        if self.results.empty:
            self.window_sizes = []
            self.loss_probabilities = []
        else:
            self.window_sizes = sorted(self.results['window_size'].unique())
            self.loss_probabilities = sorted(self.results['loss_probability'].unique())

    def _completed_runs(self) -> pd.DataFrame:
        df = self.results
        if 'complete' in df.columns:
            df = df[df['complete'].astype(bool)]
        return df.dropna(subset=['completion_time'])

    def _create_completion_matrix(self) -> Tuple[np.ndarray, Tuple[int, int]]:
        """
        Create matrix of mean completion times.

        Returns:
            Tuple of (matrix, best_indices); cells without data are NaN
        """
        means = (self._completed_runs()
                 .groupby(['window_size', 'loss_probability'])['completion_time']
                 .mean())

        matrix = np.full((len(self.window_sizes), len(self.loss_probabilities)), np.nan)
        for i, w in enumerate(self.window_sizes):
            for j, p in enumerate(self.loss_probabilities):
                if (w, p) in means.index:
                    matrix[i, j] = means.loc[(w, p)]

        if np.all(np.isnan(matrix)):
            best_idx = (0, 0)
        else:
            best_idx = np.unravel_index(np.nanargmin(matrix), matrix.shape)
        return matrix, (int(best_idx[0]), int(best_idx[1]))

    def plot(
        self,
        output_file: Optional[str] = None,
        title: str = "Completion Time vs Window Size and Loss Probability",
        figsize: Tuple[int, int] = (10, 7),
        cmap: str = "viridis_r",
        show_values: bool = True,
        highlight_best: bool = False
    ) -> str:
        """
        Generate and save heatmap.

        Args:
            output_file: Output file path (auto-generated if None)
            title: Plot title
            figsize: Figure size (width, height)
            cmap: Colormap name
            show_values: Show values in cells
            highlight_best: Outline the fastest window per the whole grid

        Returns:
            Path to saved figure
        """
        if self.results.empty:
            raise ValueError("No results to plot")

        matrix, best_idx = self._create_completion_matrix()

        # Larger W at the top
        matrix_display = np.flipud(matrix)
        window_sizes_display = list(reversed(self.window_sizes))
        best_idx = (len(self.window_sizes) - 1 - best_idx[0], best_idx[1])

        fig, ax = plt.subplots(figsize=figsize)

        sns.heatmap(
            matrix_display,
            annot=show_values,
            fmt='.2f',
            cmap=cmap,
            mask=np.isnan(matrix_display),
            xticklabels=[f"{p:g}" for p in self.loss_probabilities],
            yticklabels=window_sizes_display,
            ax=ax,
            cbar_kws={'label': 'Mean completion time (s)'}
        )

        if highlight_best and not np.all(np.isnan(matrix)):
            best_i, best_j = best_idx
            rect = plt.Rectangle(
                (best_j, best_i), 1, 1,
                fill=False, edgecolor='red', linewidth=3
            )
            ax.add_patch(rect)

        ax.set_xlabel('Loss Probability', fontsize=12)
        ax.set_ylabel('Window Size', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')

        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, 'completion_heatmap.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Heatmap saved to: {output_file}")
        return output_file
