"""
The atomic measurement unit.

A Sample is one probe of the target: when it was taken, how long the
round trip took, and its position in the probe sequence. A missing
latency means the probe was lost or timed out; it is never encoded as 0.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Sample:
    """A single round-trip-time sample."""
    timestamp: int  # Unix epoch milliseconds
    latency: Optional[float]  # milliseconds, None = loss
    seq: int

    @property
    def is_loss(self) -> bool:
        return self.latency is None

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'latency': self.latency,
            'seq': self.seq,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Sample':
        latency = data.get('latency')
        return cls(
            timestamp=int(data['timestamp']),
            latency=float(latency) if latency is not None else None,
            seq=int(data.get('seq', 0)),
        )
