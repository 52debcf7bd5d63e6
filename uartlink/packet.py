"""
Packet layout, checksum and frame result types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from . import START_MARKER, END_MARKER, MAX_PAYLOAD


class PayloadOverflowError(ValueError):
    """Raised when a payload does not fit in a single frame."""


class XorChecksum:
    """
    Longitudinal XOR checksum.
    Every payload byte is XORed into an 8-bit accumulator.
    Initial value: 0x00
    """

    INITIAL = 0x00

    @classmethod
    def compute(cls, data: bytes) -> int:
        """Compute the XOR checksum of data."""
        checksum = cls.INITIAL
        for byte in data:
            checksum ^= byte
        return checksum

    @classmethod
    def verify(cls, data: bytes, checksum: int) -> bool:
        """Verify data against a checksum."""
        return cls.compute(data) == checksum


class FrameError(Enum):
    """Reasons a received frame is rejected."""

    CHECKSUM = "checksum"
    FRAMING = "framing"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class FrameResult:
    """
    Outcome of one parsed frame.

    A result is produced once per frame, whether it was accepted or not, so
    callers can tell "nothing yet" (no result) from "a frame arrived and
    failed validation" (valid is False and error says why).
    """

    payload: bytes
    valid: bool
    error: Optional[FrameError] = None
    checksum: Optional[int] = None
    # Length byte as received, kept for rejected frames
    declared_length: Optional[int] = None

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def status(self) -> str:
        if self.valid:
            return "ok"
        return self.error.value if self.error is not None else "invalid"

    def __repr__(self) -> str:
        declared = ""
        if self.declared_length is not None and self.declared_length != self.length:
            declared = f", declared={self.declared_length}"
        return (
            f"FrameResult(length={self.length}{declared}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'}, "
            f"status={self.status})"
        )


def bit_period(tick_rate: int, bit_rate: int) -> int:
    """
    Number of reference ticks per line bit.

    Args:
        tick_rate: Reference ticks per second
        bit_rate: Line bits per second

    Returns:
        Ticks per bit (at least 1)
    """
    if tick_rate <= 0 or bit_rate <= 0:
        raise ValueError("tick_rate and bit_rate must be positive")
    period = tick_rate // bit_rate
    if period < 1:
        raise ValueError(
            f"tick_rate ({tick_rate}) must be at least bit_rate ({bit_rate})"
        )
    return period


def encode_frame(payload: bytes) -> bytes:
    """
    Build the full byte sequence of a frame.

    Frame structure:
    - Start marker: 1 byte (0xAA)
    - Length: 1 byte, number of payload bytes
    - Payload: `length` bytes
    - Checksum: 1 byte, XOR of the payload
    - End marker: 1 byte (0x55)

    Args:
        payload: 0 to 255 payload bytes

    Returns:
        len(payload) + 4 bytes
    """
    payload = bytes(payload)
    if len(payload) > MAX_PAYLOAD:
        raise PayloadOverflowError(
            f"payload is {len(payload)} bytes, maximum is {MAX_PAYLOAD}"
        )
    return (
        bytes([START_MARKER, len(payload)])
        + payload
        + bytes([XorChecksum.compute(payload), END_MARKER])
    )
