"""
Tests for the packet deframer.
"""

import pytest

from uartlink import DeframerStage, FrameError, PacketDeframer, encode_frame

HI_FRAME = bytes.fromhex("AA 02 48 49 01 55")


class TestPacketDeframer:
    """Test frame parsing."""

    def test_hi_frame(self):
        results = PacketDeframer().feed(HI_FRAME)

        assert len(results) == 1
        assert results[0].valid is True
        assert results[0].error is None
        assert results[0].payload == b"HI"
        assert results[0].length == 2
        assert results[0].checksum == 0x01

    def test_result_on_last_byte_only(self):
        deframer = PacketDeframer()
        for byte in HI_FRAME[:-1]:
            assert deframer.step(True, byte) is None
        assert deframer.step(True, HI_FRAME[-1]).valid is True

    def test_byte_valid_low_is_ignored(self):
        deframer = PacketDeframer()
        assert deframer.step(False, 0xAA) is None
        assert deframer.stage is DeframerStage.SEEK_START

    def test_leading_noise_ignored(self):
        results = PacketDeframer().feed(b"\x00\x13\x55\xFF" + HI_FRAME)
        assert [r.payload for r in results] == [b"HI"]

    def test_bad_checksum(self):
        results = PacketDeframer().feed(bytes.fromhex("AA 02 48 49 00 55"))

        assert len(results) == 1
        assert results[0].valid is False
        assert results[0].error is FrameError.CHECKSUM
        assert results[0].payload == b"HI"

    def test_bad_end_marker(self):
        results = PacketDeframer().feed(bytes.fromhex("AA 02 48 49 01 54"))

        assert len(results) == 1
        assert results[0].valid is False
        assert results[0].error is FrameError.FRAMING

    @pytest.mark.parametrize("index", range(5))
    @pytest.mark.parametrize("bit", range(8))
    def test_single_bit_flip(self, index, bit):
        """Any single flipped payload bit fails the checksum."""
        frame = bytearray(encode_frame(b"HELLO"))
        frame[2 + index] ^= 1 << bit

        results = PacketDeframer().feed(frame)
        assert len(results) == 1
        assert results[0].valid is False
        assert results[0].error is FrameError.CHECKSUM

    def test_declared_length_over_capacity(self):
        deframer = PacketDeframer(max_payload=4)
        results = deframer.feed(encode_frame(b"12345"))

        assert len(results) == 1
        assert results[0].error is FrameError.OVERFLOW
        assert deframer.stage is DeframerStage.SEEK_START

    def test_zero_length_frame(self):
        results = PacketDeframer().feed(bytes.fromhex("AA 00 00 55"))
        assert len(results) == 1
        assert results[0].valid is True
        assert results[0].payload == b""

    def test_max_length_frame(self):
        payload = bytes(range(255))
        results = PacketDeframer().feed(encode_frame(payload))
        assert results[0].valid is True
        assert results[0].payload == payload

    def test_spurious_start_marker(self):
        """A stray 0xAA inside unrelated bytes never yields a valid frame."""
        stream = bytes.fromhex("01 02 AA 03 04 05 06 07 08 09")
        results = PacketDeframer().feed(stream)
        assert not any(r.valid for r in results)

    def test_resync_after_spurious_start(self):
        stream = bytes.fromhex("11 AA 01 33 44 66") + HI_FRAME
        results = PacketDeframer().feed(stream)

        assert len(results) == 2
        assert results[0].error is FrameError.FRAMING
        assert results[1].valid is True
        assert results[1].payload == b"HI"

    def test_back_to_back_frames(self):
        stream = encode_frame(b"A") + encode_frame(b"BC") + encode_frame(b"\xAA\x55")
        results = PacketDeframer().feed(stream)
        assert [r.payload for r in results] == [b"A", b"BC", b"\xAA\x55"]
        assert all(r.valid for r in results)

    def test_reset(self):
        deframer = PacketDeframer()
        deframer.feed(HI_FRAME[:3])
        assert deframer.stage is DeframerStage.PAYLOAD

        deframer.reset()
        assert deframer.stage is DeframerStage.SEEK_START
        assert deframer.feed(HI_FRAME)[0].valid is True

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            PacketDeframer(max_payload=256)

    def test_statistics(self):
        deframer = PacketDeframer(max_payload=4)
        deframer.feed(HI_FRAME)
        deframer.feed(bytes.fromhex("AA 02 48 49 00 55"))
        deframer.feed(bytes.fromhex("AA 02 48 49 01 00"))
        deframer.feed(bytes.fromhex("AA 09"))

        assert deframer.get_statistics() == {
            "frames_valid": 1,
            "checksum_errors": 1,
            "framing_errors": 1,
            "overflow_errors": 1,
        }

    def test_frame_after_truncated_frame(self):
        """A start marker in the end-marker position opens the next frame."""
        results = PacketDeframer().feed(bytes.fromhex("AA 00 00") + HI_FRAME)

        assert len(results) == 2
        assert results[0].error is FrameError.FRAMING
        assert results[1].valid is True
        assert results[1].payload == b"HI"

    def test_start_marker_as_oversize_length(self):
        deframer = PacketDeframer(max_payload=16)
        results = deframer.feed(bytes.fromhex("AA AA 02 48 49 01 55"))

        assert results[0].error is FrameError.OVERFLOW
        assert results[1].valid is True
        assert results[1].payload == b"HI"

    def test_overflow_keeps_declared_length(self):
        results = PacketDeframer(max_payload=4).feed(bytes.fromhex("AA 09"))

        assert results[0].length == 0
        assert results[0].declared_length == 9
        assert "declared=9" in repr(results[0])
