"""
Simulation package - Virtual-time simulation engine and runners.

Contains:
- Session simulator over a lossy channel
- Batch runner for parameter sweeps
"""

from .simulator import Simulator, SimulatorConfig, generate_items
from .runner import BatchRunner, RunConfig, run_single_simulation

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'generate_items',
    'BatchRunner',
    'RunConfig',
    'run_single_simulation'
]
