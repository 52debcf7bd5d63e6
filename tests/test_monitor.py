"""
Tests for the live line monitor, driven without an audio device.
"""

import numpy as np

from uartlink import FrameError, encode_line
from uartlink.capture import levels_to_samples
from uartlink.monitor import LineMonitor

TICK_RATE = 40
BIT_RATE = 10


def audio_block(payload: bytes) -> np.ndarray:
    """Line samples shaped like a mono sounddevice input block."""
    samples = levels_to_samples(encode_line(payload, TICK_RATE, BIT_RATE))
    return samples.reshape(-1, 1)


class TestLineMonitor:
    """Test monitor callback processing."""

    def test_decodes_block(self):
        monitor = LineMonitor(TICK_RATE, BIT_RATE)
        block = audio_block(b"HI")
        monitor._audio_callback(block, len(block), None, None)

        result = monitor.get_frame(timeout=0.1)
        assert result is not None
        assert result.valid is True
        assert result.payload == b"HI"
        assert monitor.samples_processed == len(block)

    def test_frame_split_across_blocks(self):
        monitor = LineMonitor(TICK_RATE, BIT_RATE)
        block = audio_block(b"split")
        for chunk in np.array_split(block, 7):
            monitor._audio_callback(chunk, len(chunk), None, None)

        assert monitor.get_frame(timeout=0.1).payload == b"split"

    def test_no_frame(self):
        monitor = LineMonitor(TICK_RATE, BIT_RATE)
        assert monitor.get_frame(timeout=0.01) is None

    def test_callback(self):
        received = []
        monitor = LineMonitor(TICK_RATE, BIT_RATE, callback=received.append)
        block = audio_block(b"cb")
        monitor._audio_callback(block, len(block), None, None)
        assert [r.payload for r in received] == [b"cb"]

    def test_queue_full_drops(self):
        monitor = LineMonitor(TICK_RATE, BIT_RATE, max_queued=1)
        block = np.concatenate([audio_block(b"a"), audio_block(b"b")])
        monitor._audio_callback(block, len(block), None, None)

        assert monitor.frames_dropped == 1
        assert monitor.get_frame(timeout=0.1).payload == b"a"

    def test_callback_errors_do_not_escape(self):
        calls = []

        def broken(result):
            calls.append(result.payload)
            if len(calls) == 1:
                raise RuntimeError("consumer failed")

        monitor = LineMonitor(TICK_RATE, BIT_RATE, callback=broken)
        block = np.concatenate([audio_block(b"a"), audio_block(b"b")])
        monitor._audio_callback(block, len(block), None, None)

        assert calls == [b"a", b"b"]
        assert monitor.get_frame(timeout=0.1).payload == b"a"
        assert monitor.get_frame(timeout=0.1).payload == b"b"
        assert monitor.samples_processed == len(block)

    def test_checksum_error_surfaced(self):
        levels = encode_line(b"HI", TICK_RATE, BIT_RATE).copy()
        # Idle padding, framer pulse, then two 41-tick frame bytes; mid data bit 0
        levels[2 * 4 + 1 + 2 * 41 + 4 + 2] ^= 1
        monitor = LineMonitor(TICK_RATE, BIT_RATE)
        block = levels_to_samples(levels).reshape(-1, 1)
        monitor._audio_callback(block, len(block), None, None)

        result = monitor.get_frame(timeout=0.1)
        assert result.valid is False
        assert result.error is FrameError.CHECKSUM

    def test_statistics(self):
        monitor = LineMonitor(TICK_RATE, BIT_RATE)
        block = audio_block(b"HI")
        monitor._audio_callback(block, len(block), None, None)

        stats = monitor.get_statistics()
        assert stats["samples_processed"] == len(block)
        assert stats["frames_valid"] == 1
        assert stats["bytes_received"] == 6

    def test_stop_without_start(self):
        LineMonitor(TICK_RATE, BIT_RATE).stop()
