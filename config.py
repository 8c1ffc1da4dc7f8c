"""
Configuration file for the Selective Repeat ARQ session simulator.
Contains the baseline protocol, channel and sweep parameters.
"""

import os

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Send window size (maximum unacknowledged packets in flight)
WINDOW_SIZE = 4

# Sequence numbers are taken modulo this value (0-7)
SEQUENCE_SPACE_SIZE = 8

# Retransmission timeout (seconds)
TIMEOUT = 1.0  # 1000 ms

# Pending (not yet windowed) items before enqueue is refused
MAX_PENDING_ITEMS = 10

# Period of the channel arrival tick (seconds)
TICK_INTERVAL = 0.050  # 50 ms

# Wire header: seq(4) + ack flag(1) + payload length(4)
PACKET_HEADER_SIZE = 9  # bytes

# =============================================================================
# CHANNEL PARAMETERS
# =============================================================================

# Independent per-packet loss probability
LOSS_PROBABILITY = 0.3

# Uniform one-way delay in [0, MAX_DELAY) (seconds)
MAX_DELAY = 0.200  # 200 ms

# =============================================================================
# GILBERT-ELLIOT BURST LOSS MODEL PARAMETERS
# =============================================================================

# Per-packet loss probability in each state
GOOD_STATE_LOSS = 0.01
BAD_STATE_LOSS = 0.6

# State transition probabilities (evaluated once per packet)
P_GOOD_TO_BAD = 0.05    # P(G → B)
P_BAD_TO_GOOD = 0.25    # P(B → G)

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

# Send window sizes to evaluate (sequence space is 2 × W for each)
WINDOW_SIZES = [1, 2, 4, 8, 16]

# Channel loss probabilities to evaluate
LOSS_PROBABILITIES = [0.0, 0.1, 0.2, 0.3, 0.5]

# Number of simulation runs per (W, p) pair
RUNS_PER_CONFIGURATION = 5

# Items streamed in each run
ITEMS_PER_RUN = 200

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + run offset)
RNG_SEED_BASE = 42

# Simulation time limit (seconds) - failsafe against unbounded retransmission
MAX_SIMULATION_TIME = 3600  # 1 hour

# Demo schedule (seconds, real time)
DEMO_DURATION = 10.0
DEMO_STATUS_INTERVAL = 3.0
DEMO_DATA = [
    "Hello", "World", "Sliding", "Window",
    "Protocol", "Python", "Implementation"
]

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

# Results CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS (calculated from fixed parameters)
# =============================================================================

def minimum_sequence_space(window_size):
    """Smallest sequence space in which selective repeat is unambiguous."""
    return 2 * window_size

def calculate_expected_transmissions(loss_probability):
    """
    Expected transmissions per item when data and ACK are lost independently.
    E[T] = 1 / (1 - p)^2
    """
    if loss_probability >= 1.0:
        return float('inf')
    return 1.0 / (1.0 - loss_probability) ** 2

def calculate_steady_state_probabilities():
    """
    Calculate steady-state probabilities for Good and Bad states.
    π_G = P(B→G) / (P(G→B) + P(B→G))
    π_B = P(G→B) / (P(G→B) + P(B→G))
    """
    sum_transitions = P_GOOD_TO_BAD + P_BAD_TO_GOOD
    pi_good = P_BAD_TO_GOOD / sum_transitions
    pi_bad = P_GOOD_TO_BAD / sum_transitions
    return pi_good, pi_bad

def calculate_average_burst_loss():
    """
    Calculate average packet loss based on steady-state probabilities.
    Loss_avg = π_G * l_g + π_B * l_b
    """
    pi_good, pi_bad = calculate_steady_state_probabilities()
    return pi_good * GOOD_STATE_LOSS + pi_bad * BAD_STATE_LOSS


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SESSION - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOW_SIZE}")
    print(f"  Sequence Space: {SEQUENCE_SPACE_SIZE}")
    print(f"  Timeout: {TIMEOUT * 1000:.0f} ms")
    print(f"  Max Pending Items: {MAX_PENDING_ITEMS}")
    print(f"  Tick Interval: {TICK_INTERVAL * 1000:.0f} ms")

    print(f"\nChannel:")
    print(f"  Loss Probability: {LOSS_PROBABILITY}")
    print(f"  Max Delay: {MAX_DELAY * 1000:.0f} ms")
    print(f"  Expected transmissions/item: "
          f"{calculate_expected_transmissions(LOSS_PROBABILITY):.2f}")

    pi_good, pi_bad = calculate_steady_state_probabilities()
    print(f"\nGilbert-Elliot Model:")
    print(f"  Steady-state P(Good): {pi_good:.4f}")
    print(f"  Steady-state P(Bad): {pi_bad:.4f}")
    print(f"  Average Loss: {calculate_average_burst_loss():.4f}")

    print(f"\nParameter Sweep:")
    print(f"  Window Sizes: {WINDOW_SIZES}")
    print(f"  Loss Probabilities: {LOSS_PROBABILITIES}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: {len(WINDOW_SIZES) * len(LOSS_PROBABILITIES) * RUNS_PER_CONFIGURATION}")
