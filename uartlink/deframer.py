"""
Packet deframer - Recovers payloads from a received byte stream.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from . import START_MARKER, END_MARKER, MAX_PAYLOAD
from .packet import FrameError, FrameResult, XorChecksum

_logger = logging.getLogger(__name__)


class DeframerStage(Enum):
    SEEK_START = "seek_start"
    LENGTH = "length"
    PAYLOAD = "payload"
    CHECKSUM = "checksum"
    END = "end"


class PacketDeframer:
    """
    Frame parser advancing one stage per received byte.

    Bytes are ignored until a start marker appears. The length byte, that
    many payload bytes, the checksum and the end marker follow. Every frame
    that gets past the start marker produces exactly one FrameResult: valid,
    or rejected with a FrameError. The parser then searches for the next
    start marker. A rejected byte that is itself a start marker opens the
    next frame, so a frame right behind a damaged one is not lost.
    """

    def __init__(self, max_payload: int = MAX_PAYLOAD):
        """
        Initialize deframer.

        Args:
            max_payload: Largest accepted declared length (0 to 255)
        """
        if not 0 <= max_payload <= MAX_PAYLOAD:
            raise ValueError(f"max_payload must be between 0 and {MAX_PAYLOAD}")

        self.max_payload = max_payload

        # Statistics
        self.frames_valid = 0
        self.checksum_errors = 0
        self.framing_errors = 0
        self.overflow_errors = 0

        self.reset()

    def reset(self):
        """Drop any partial frame and search for a start marker."""
        self._stage = DeframerStage.SEEK_START
        self._length = 0
        self._payload = bytearray()
        self._checksum = 0

    @property
    def stage(self) -> DeframerStage:
        return self._stage

    def _reject(self, error: FrameError, byte: int) -> FrameResult:
        if error is FrameError.CHECKSUM:
            self.checksum_errors += 1
        elif error is FrameError.FRAMING:
            self.framing_errors += 1
        else:
            self.overflow_errors += 1

        result = FrameResult(
            bytes(self._payload), False, error, self._checksum, self._length
        )
        _logger.debug(f"Frame rejected: {result}")
        self.reset()
        if byte == START_MARKER:
            self._stage = DeframerStage.LENGTH
        return result

    def step(self, byte_valid: bool, byte: int = 0) -> Optional[FrameResult]:
        """
        Advance the deframer by one tick.

        Args:
            byte_valid: A received byte is available this tick
            byte: The received byte

        Returns:
            FrameResult on the tick a frame ends, otherwise None
        """
        if not byte_valid:
            return None

        stage = self._stage

        if stage is DeframerStage.SEEK_START:
            if byte == START_MARKER:
                self._stage = DeframerStage.LENGTH
            return None

        if stage is DeframerStage.LENGTH:
            if byte > self.max_payload:
                _logger.debug(f"Declared length {byte} exceeds {self.max_payload}")
                self._length = byte
                return self._reject(FrameError.OVERFLOW, byte)
            self._length = byte
            self._payload = bytearray()
            self._stage = DeframerStage.PAYLOAD if byte else DeframerStage.CHECKSUM
            return None

        if stage is DeframerStage.PAYLOAD:
            self._payload.append(byte)
            if len(self._payload) == self._length:
                self._stage = DeframerStage.CHECKSUM
            return None

        if stage is DeframerStage.CHECKSUM:
            self._checksum = byte
            self._stage = DeframerStage.END
            return None

        if byte != END_MARKER:
            return self._reject(FrameError.FRAMING, byte)
        if not XorChecksum.verify(self._payload, self._checksum):
            return self._reject(FrameError.CHECKSUM, byte)

        result = FrameResult(
            bytes(self._payload), True, None, self._checksum, self._length
        )
        self.frames_valid += 1
        self.reset()
        return result

    def feed(self, data: Iterable[int]) -> list[FrameResult]:
        """
        Feed received bytes and return any completed frames.

        Args:
            data: Received bytes

        Returns:
            Frame results, in order
        """
        results = []
        for byte in data:
            result = self.step(True, byte)
            if result is not None:
                results.append(result)
        return results

    def get_statistics(self) -> dict:
        """
        Get deframer statistics.

        Returns:
            Dict with: frames_valid, checksum_errors, framing_errors, overflow_errors
        """
        return {
            "frames_valid": self.frames_valid,
            "checksum_errors": self.checksum_errors,
            "framing_errors": self.framing_errors,
            "overflow_errors": self.overflow_errors,
        }
