"""
Visualization package - Plotting and visualization tools.

Contains:
- Completion time heatmap
"""

from .heatmap import CompletionHeatmap

__all__ = [
    'CompletionHeatmap'
]
