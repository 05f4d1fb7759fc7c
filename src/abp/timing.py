"""
Frame Timing Arithmetic

Converts frame sizes, channel capacity and propagation delay into
transmission delays, ACK arrival times and timeout deadlines. All times
are in milliseconds; the link is half-duplex, so data and ACK
transmission times are charged one after the other.
"""


def transmission_delay(frame_bits: int, capacity: float) -> float:
    """Time (ms) to push ``frame_bits`` onto a link of ``capacity`` bps."""
    return 1000 * frame_bits / capacity


def ack_arrival_time(
    send_time: float,
    data_frame_bits: int,
    ack_frame_bits: int,
    capacity: float,
    propagation_delay: float
) -> float:
    """
    Time at which the ACK for a frame sent at ``send_time`` reaches the sender.

    arrival = send + Tx(data + ack) + 2 * TAU
    """
    return (send_time +
            transmission_delay(data_frame_bits + ack_frame_bits, capacity) +
            2 * propagation_delay)


def timeout_deadline(
    send_time: float,
    data_frame_bits: int,
    capacity: float,
    timeout: float
) -> float:
    """The sender's timer starts once the last bit of the frame is out."""
    return send_time + transmission_delay(data_frame_bits, capacity) + timeout


def round_duration(
    header_length: int,
    packet_length: int,
    capacity: float,
    propagation_delay: float
) -> float:
    """Duration (ms) of one error-free send/ACK exchange."""
    data_frame_bits = header_length + packet_length
    return ack_arrival_time(0.0, data_frame_bits, header_length, capacity, propagation_delay)
