"""
Configuration file for the Alternating Bit Protocol (ABP) Simulator.
Contains the baseline link parameters and the parameter sweep grid.
"""

import math
import os

# =============================================================================
# SENDER-SIDE PARAMETERS
# =============================================================================

# Frame header length H (bits)
HEADER_LENGTH = 54 * 8      # 432 bits

# Packet length l (bits)
PACKET_LENGTH = 1500 * 8    # 12000 bits

# Default timeout DELTA (milliseconds)
TIMEOUT = 25.0

# =============================================================================
# CHANNEL PARAMETERS
# =============================================================================

# Channel capacity C (bits per second)
CHANNEL_CAPACITY = 5_000_000  # 5 Mbps

# One-way propagation delay TAU (milliseconds)
PROPAGATION_DELAY = 5.0

# Bit error rate
BIT_ERROR_RATE = 1e-5

# =============================================================================
# ERROR MODEL
# =============================================================================

# A frame with this many flipped bits (or more) is lost.
# Frames with 1..LOSS_THRESHOLD_BITS-1 errors arrive flagged as corrupted.
LOSS_THRESHOLD_BITS = 5

# =============================================================================
# EXPERIMENT DURATION
# =============================================================================

# Number of successfully delivered packets per run
SUCCESS_PACKETS = 10_000

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

# Timeout = multiplier * (2 * TAU)
TIMEOUT_MULTIPLIERS = [2.5, 5.0, 7.5, 10.0, 12.5]

# One-way propagation delays (ms): 2*TAU = 10 ms and 500 ms
PROPAGATION_DELAYS = [5.0, 250.0]

# Bit error rates
BIT_ERROR_RATES = [0.0, 1e-5, 1e-4]

# Acknowledgment policies: False = plain ACK, True = NAK-aware
ACK_MODES = [False, True]

# Number of simulation runs per sweep point
RUNS_PER_CONFIGURATION = 5

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + offset)
RNG_SEED_BASE = 42

# Consecutive rounds without an accepted ACK before giving up
MAX_IDLE_ROUNDS = 100_000

# Simulated time limit (ms) - failsafe, None disables it
MAX_SIMULATION_TIME = None

# Logging verbosity (0=DEBUG, 1=INFO, 2=WARNING, 3=ERROR, 4=CRITICAL)
DEFAULT_LOG_LEVEL = 1

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

def calculate_transmission_delay(frame_bits, capacity=CHANNEL_CAPACITY):
    """Calculate transmission delay (ms) for a frame of given size."""
    return 1000 * frame_bits / capacity

def calculate_round_trip_time(
    header_length=HEADER_LENGTH,
    packet_length=PACKET_LENGTH,
    capacity=CHANNEL_CAPACITY,
    propagation_delay=PROPAGATION_DELAY
):
    """
    Duration (ms) of one error-free ABP exchange.
    RTT = Tx_data + Tx_ack + 2 * TAU
    """
    data_frame_bits = header_length + packet_length
    return (calculate_transmission_delay(data_frame_bits + header_length, capacity) +
            2 * propagation_delay)

def calculate_timeout(multiplier, propagation_delay=PROPAGATION_DELAY):
    """Timeout (ms) expressed as a multiple of the round-trip propagation time."""
    return multiplier * 2 * propagation_delay

def calculate_frame_loss_probability(frame_bits, bit_error_rate=BIT_ERROR_RATE):
    """
    Probability that a frame is lost.
    P(loss) = 1 - sum_{k<5} C(n, k) p^k (1-p)^(n-k)
    """
    p_survive = sum(
        math.comb(frame_bits, k) * bit_error_rate ** k *
        (1 - bit_error_rate) ** (frame_bits - k)
        for k in range(min(LOSS_THRESHOLD_BITS, frame_bits + 1))
    )
    return max(0.0, 1 - p_survive)


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("ALTERNATING BIT PROTOCOL SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nSender-side:")
    print(f"  H: {HEADER_LENGTH} bits")
    print(f"  l: {PACKET_LENGTH} bits")
    print(f"  Timeout: {TIMEOUT} ms")

    print(f"\nChannel:")
    print(f"  C: {CHANNEL_CAPACITY / 1e6:.0f} Mbps")
    print(f"  TAU: {PROPAGATION_DELAY} ms")
    print(f"  BER: {BIT_ERROR_RATE:.2e}")

    print(f"\nParameter Sweep:")
    print(f"  Timeout multipliers: {TIMEOUT_MULTIPLIERS}")
    print(f"  Propagation delays: {PROPAGATION_DELAYS}")
    print(f"  Bit error rates: {BIT_ERROR_RATES}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")

    print(f"\nFrame loss probabilities (data frame, {HEADER_LENGTH + PACKET_LENGTH} bits):")
    for ber in BIT_ERROR_RATES:
        p_loss = calculate_frame_loss_probability(HEADER_LENGTH + PACKET_LENGTH, ber)
        print(f"  BER {ber:.0e}: P(loss) = {p_loss:.3e}")
