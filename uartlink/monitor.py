"""
Line monitor - Real-time decodes a serial line captured from audio input.
"""

import logging
import queue
from typing import Callable, Optional

import numpy as np

from . import TICK_RATE, BIT_RATE, MAX_PAYLOAD
from .capture import samples_to_levels
from .deframer import PacketDeframer
from .packet import FrameResult
from .receiver import BitReceiver

_logger = logging.getLogger(__name__)


class LineMonitor:
    """
    Live frame decoder for a line wired into an audio input.

    The audio device runs at the tick rate, so every sample is one tick of
    the receiver. Frames are decoded on the audio thread and handed to the
    consumer through a queue.
    """

    def __init__(
        self,
        tick_rate: int = TICK_RATE,
        bit_rate: int = BIT_RATE,
        max_payload: int = MAX_PAYLOAD,
        threshold: float = 0.0,
        check_stop_bit: bool = False,
        callback: Optional[Callable[[FrameResult], None]] = None,
        device: Optional[int] = None,
        max_queued: int = 64,
    ):
        """
        Initialize monitor.

        Args:
            tick_rate: Audio sample rate, one tick per sample
            bit_rate: Line bits per second
            max_payload: Largest accepted payload
            threshold: Level slicing threshold
            check_stop_bit: Drop bytes with a low stop bit
            callback: Optional callback for each frame result
            device: Audio input device (None = default)
            max_queued: Frame results held; newer results are dropped when full
        """
        self.tick_rate = tick_rate
        self.threshold = threshold
        self.callback = callback
        self.device = device

        self.receiver = BitReceiver(tick_rate, bit_rate, check_stop_bit=check_stop_bit)
        self.deframer = PacketDeframer(max_payload)

        self._frames: queue.Queue[FrameResult] = queue.Queue(maxsize=max_queued)
        self._stream = None

        # Statistics
        self.samples_processed = 0
        self.frames_dropped = 0

    def _audio_callback(self, indata: np.ndarray, frames, time_info, status):
        """Called by sounddevice for each audio block."""
        try:
            self._audio_callback_impl(indata, frames, time_info, status)
        except Exception as e:
            # Audio callbacks must not raise
            _logger.error(f"Error in audio callback: {e}")

    def _audio_callback_impl(self, indata: np.ndarray, frames, time_info, status):
        if status:
            _logger.warning(f"Audio status: {status}")

        samples = np.asarray(indata, dtype=np.float32)
        if samples.ndim > 1:
            samples = samples[:, 0]

        for level in samples_to_levels(samples, self.threshold):
            output = self.receiver.step(level)
            result = self.deframer.step(output.done, output.data)
            if result is not None:
                self._publish(result)

        self.samples_processed += len(samples)

    def _publish(self, result: FrameResult):
        try:
            self._frames.put_nowait(result)
        except queue.Full:
            self.frames_dropped += 1
            _logger.warning("Frame queue full, dropping result")

        if self.callback:
            try:
                self.callback(result)
            except Exception as e:
                # Keep feeding the rest of the block to the receiver
                _logger.error(f"Error in frame callback: {e}")

    def start(self):
        """Start decoding from audio input."""
        if self._stream is not None:
            return

        import sounddevice as sd

        self._stream = sd.InputStream(
            device=self.device,
            channels=1,
            samplerate=self.tick_rate,
            dtype='float32',
            callback=self._audio_callback,
        )
        self._stream.start()
        _logger.info(f"Monitoring line at {self.tick_rate} Hz (device: {self.device})")

    def stop(self):
        """Stop decoding."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def get_frame(self, timeout: Optional[float] = None) -> Optional[FrameResult]:
        """
        Wait for the next frame result.

        Args:
            timeout: Seconds to wait (None = block)

        Returns:
            FrameResult, or None if the timeout expired
        """
        try:
            return self._frames.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_statistics(self) -> dict:
        """
        Get monitor statistics.

        Returns:
            Dict with sample and frame counters plus receiver and deframer statistics
        """
        stats = {
            "samples_processed": self.samples_processed,
            "frames_dropped": self.frames_dropped,
        }
        stats.update(self.receiver.get_statistics())
        stats.update(self.deframer.get_statistics())
        return stats
