"""
Metrics Collection and Calculation

This module provides the throughput calculation and the counters
tracked over one ABP run (transmissions, losses, timeouts, NAKs).
"""

from dataclasses import dataclass
from typing import Dict, Optional
import sys
sys.path.insert(0, '..')
from config import CHANNEL_CAPACITY


def calculate_throughput(success_count: int, elapsed_ms: float, packet_length: int) -> float:
    """
    Calculate throughput in bits per second.

    Throughput = Delivered Payload Bits / Elapsed Time

    Header bits are not counted as useful data; the time they occupy on
    the link is already part of ``elapsed_ms``.

    Args:
        success_count: Packets delivered and acknowledged
        elapsed_ms: Total simulated time (ms)
        packet_length: Payload length per packet (bits)

    Returns:
        Throughput in bps (0.0 when no time has elapsed)
    """
    if elapsed_ms <= 0:
        return 0.0
    return success_count * packet_length / (elapsed_ms / 1000)


@dataclass
class ThroughputReport:
    """Final figures handed to the reporting layer."""
    throughput: float
    elapsed_ms: float
    success_count: int
    bits_delivered: int


class MetricsCollector:
    """
    Collects counters for one ABP run.

    Primary metric: Throughput = Delivered Payload Bits / Simulated Time

    Attributes:
        capacity: Channel capacity in bps
        header_length: Frame header length in bits
        packet_length: Packet payload length in bits
    """

    def __init__(
        self,
        capacity: float = CHANNEL_CAPACITY,
        header_length: int = 0,
        packet_length: int = 0
    ):
        """
        Initialize metrics collector.

        Args:
            capacity: Channel capacity in bps
            header_length: Header bits per frame
            packet_length: Payload bits per data frame
        """
        self.capacity = capacity
        self.header_length = header_length
        self.packet_length = packet_length

        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        self.reset()

    def start(self, time: float):
        """Mark simulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark simulation end."""
        self.end_time = time

    def record_transmission(self, retransmission: bool):
        """Record a data frame put on the link."""
        self.data_frames_sent += 1
        if retransmission:
            self.retransmissions += 1

    def record_frame_lost(self):
        self.frames_lost += 1

    def record_frame_corrupted(self):
        self.frames_corrupted += 1

    def record_duplicate(self):
        self.duplicate_frames += 1

    def record_ack_sent(self):
        self.ack_frames_sent += 1

    def record_ack_lost(self):
        self.acks_lost += 1

    def record_ack_corrupted(self):
        self.acks_corrupted += 1

    def record_ack_accepted(self):
        self.acks_accepted += 1

    def record_ack_ignored(self):
        self.acks_ignored += 1

    def record_nak(self):
        """Record a retransmission triggered by a mismatched/corrupted ACK."""
        self.nak_retransmissions += 1

    def record_timeout(self):
        self.timeouts += 1

    @property
    def elapsed(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def calculate_throughput(self) -> float:
        """Throughput in bps over the recorded interval."""
        return calculate_throughput(self.acks_accepted, self.elapsed, self.packet_length)

    def calculate_utilization(self) -> float:
        """
        Calculate channel utilization.

        Utilization = Throughput / Capacity

        Returns:
            Utilization ratio (0-1)
        """
        if self.capacity <= 0:
            return 0.0
        return self.calculate_throughput() / self.capacity

    def calculate_efficiency(self) -> float:
        """
        Calculate transmission efficiency.

        Efficiency = Payload Bits Delivered / Total Bits Put On The Link

        Returns:
            Efficiency ratio (0-1)
        """
        data_bits = self.data_frames_sent * (self.header_length + self.packet_length)
        ack_bits = self.ack_frames_sent * self.header_length
        total_bits = data_bits + ack_bits
        if total_bits <= 0:
            return 0.0
        return self.acks_accepted * self.packet_length / total_bits

    def calculate_frame_error_rate(self) -> float:
        """
        Calculate data frame error rate.

        FER = (Lost + Corrupted Frames) / Frames Sent
        """
        if self.data_frames_sent <= 0:
            return 0.0
        return (self.frames_lost + self.frames_corrupted) / self.data_frames_sent

    def calculate_retransmission_rate(self) -> float:
        """Retransmissions / Packets Delivered."""
        if self.acks_accepted <= 0:
            return 0.0
        return self.retransmissions / self.acks_accepted

    def report(self) -> ThroughputReport:
        return ThroughputReport(
            throughput=self.calculate_throughput(),
            elapsed_ms=self.elapsed,
            success_count=self.acks_accepted,
            bits_delivered=self.acks_accepted * self.packet_length
        )

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        return {
            # Time
            'total_time': self.elapsed,
            'start_time': self.start_time,
            'end_time': self.end_time,

            # Primary metric
            'throughput': self.calculate_throughput(),
            'throughput_mbps': self.calculate_throughput() / 1e6,

            # Secondary metrics
            'utilization': self.calculate_utilization(),
            'efficiency': self.calculate_efficiency(),
            'frame_error_rate': self.calculate_frame_error_rate(),
            'retransmission_rate': self.calculate_retransmission_rate(),

            # Frame counts
            'data_frames_sent': self.data_frames_sent,
            'retransmissions': self.retransmissions,
            'frames_lost': self.frames_lost,
            'frames_corrupted': self.frames_corrupted,
            'duplicate_frames': self.duplicate_frames,

            # ACK counts
            'ack_frames_sent': self.ack_frames_sent,
            'acks_lost': self.acks_lost,
            'acks_corrupted': self.acks_corrupted,
            'acks_accepted': self.acks_accepted,
            'acks_ignored': self.acks_ignored,

            # Recovery
            'timeouts': self.timeouts,
            'nak_retransmissions': self.nak_retransmissions,
        }

    def to_csv_row(self) -> Dict:
        """Flat metrics dictionary suitable for CSV export."""
        summary = self.get_summary()
        summary.pop('start_time')
        summary.pop('end_time')
        return summary

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.data_frames_sent = 0
        self.retransmissions = 0
        self.frames_lost = 0
        self.frames_corrupted = 0
        self.duplicate_frames = 0
        self.ack_frames_sent = 0
        self.acks_lost = 0
        self.acks_corrupted = 0
        self.acks_accepted = 0
        self.acks_ignored = 0
        self.nak_retransmissions = 0
        self.timeouts = 0
