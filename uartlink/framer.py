"""
Packet framer - Buffers a payload and hands its frame to the transmitter.
"""

import logging
from enum import Enum
from typing import Optional

from . import START_MARKER, END_MARKER, MAX_PAYLOAD
from .packet import FrameError, PayloadOverflowError, XorChecksum

_logger = logging.getLogger(__name__)


class FramerStage(Enum):
    ACCEPT = "accept"
    START = "start"
    LENGTH = "length"
    PAYLOAD = "payload"
    CHECKSUM = "checksum"
    END = "end"


class PacketFramer:
    """
    Frame builder driven by transmitter backpressure.

    Payload bytes are appended one at a time into a fixed-capacity buffer
    while a running XOR checksum is kept. Appending the final byte starts
    transmission: on each :meth:`step` where the transmitter is not busy the
    framer issues the next frame byte (start marker, length, payload,
    checksum, end marker). Once the end marker has been handed over the
    buffer is cleared and appends are accepted again.
    """

    def __init__(self, max_payload: int = MAX_PAYLOAD):
        """
        Initialize framer.

        Args:
            max_payload: Buffer capacity in bytes (1 to 255)
        """
        if not 1 <= max_payload <= MAX_PAYLOAD:
            raise ValueError(f"max_payload must be between 1 and {MAX_PAYLOAD}")

        self.max_payload = max_payload
        self._buffer = bytearray(max_payload)

        # Statistics
        self.frames_sent = 0
        self.overflows = 0

        self.reset()

    def reset(self):
        """Discard any buffered payload and return to accepting bytes."""
        self._stage = FramerStage.ACCEPT
        self._length = 0
        self._checksum = XorChecksum.INITIAL
        self._cursor = 0
        self.error: Optional[FrameError] = None

    @property
    def stage(self) -> FramerStage:
        return self._stage

    @property
    def busy(self) -> bool:
        """True while a frame is being handed to the transmitter."""
        return self._stage is not FramerStage.ACCEPT

    @property
    def ready(self) -> bool:
        return not self.busy

    @property
    def length(self) -> int:
        return self._length

    @property
    def checksum(self) -> int:
        return self._checksum

    @property
    def payload(self) -> bytes:
        return bytes(self._buffer[:self._length])

    def append(self, byte: int, is_last: bool = False) -> bool:
        """
        Append one payload byte.

        Args:
            byte: Payload byte (0 to 255)
            is_last: Mark this byte as the end of the payload and start sending

        Returns:
            True if the byte was stored, False if it was rejected because a
            frame is in flight or the buffer is full

        A final byte that does not fit is rejected like any other overflow,
        but still starts sending the payload already buffered.
        """
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"byte must be 0-255, got {byte}")

        if self.busy:
            _logger.debug(f"Append rejected while sending (byte=0x{byte:02X})")
            return False

        if self._length >= self.max_payload:
            self.error = FrameError.OVERFLOW
            self.overflows += 1
            _logger.warning(f"Payload buffer full ({self.max_payload} bytes), append rejected")
            if is_last:
                self._start_frame()
            return False

        self._buffer[self._length] = byte
        self._checksum ^= byte
        self._length += 1
        self.error = None

        if is_last:
            self._start_frame()

        return True

    def _start_frame(self):
        self._cursor = 0
        self._stage = FramerStage.START
        _logger.debug(f"Framing {self._length} byte payload, checksum 0x{self._checksum:02X}")

    def send(self, payload: bytes) -> bool:
        """
        Append a whole payload and start sending it.

        Args:
            payload: 1 to max_payload bytes

        Returns:
            True if accepted, False if a frame is already in flight
        """
        payload = bytes(payload)
        if not 1 <= len(payload) <= self.max_payload:
            raise PayloadOverflowError(
                f"payload must be 1-{self.max_payload} bytes, got {len(payload)}"
            )
        if self.busy or self._length:
            return False

        last = len(payload) - 1
        for i, byte in enumerate(payload):
            self.append(byte, is_last=(i == last))
        return True

    def step(self, tx_busy: bool) -> Optional[int]:
        """
        Advance the framer by one tick.

        Args:
            tx_busy: Transmitter busy flag for this tick

        Returns:
            Byte to start transmitting this tick, or None
        """
        stage = self._stage
        if stage is FramerStage.ACCEPT or tx_busy:
            return None

        if stage is FramerStage.START:
            byte = START_MARKER
            self._stage = FramerStage.LENGTH
        elif stage is FramerStage.LENGTH:
            byte = self._length
            self._stage = FramerStage.PAYLOAD
        elif stage is FramerStage.PAYLOAD:
            byte = self._buffer[self._cursor]
            self._cursor += 1
            if self._cursor == self._length:
                self._stage = FramerStage.CHECKSUM
        elif stage is FramerStage.CHECKSUM:
            byte = self._checksum
            self._stage = FramerStage.END
        else:
            byte = END_MARKER
            self.frames_sent += 1
            self.reset()

        return byte
