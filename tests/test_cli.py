"""
Tests for the encode/decode command-line tools.
"""

import numpy as np
from click.testing import CliRunner

from uartlink.capture import write_line
from uartlink.cli.decode import format_result, main as decode_main
from uartlink.cli.encode import main as encode_main, parse_payload
from uartlink import FrameError, FrameResult


class TestParsePayload:
    """Test payload argument parsing."""

    def test_text(self):
        assert parse_payload("HI", hex_input=False) == b"HI"

    def test_hex(self):
        assert parse_payload("48 49", hex_input=True) == b"HI"
        assert parse_payload("4849", hex_input=True) == b"HI"


class TestFormatResult:
    """Test result formatting."""

    def test_valid(self):
        line = format_result(FrameResult(b"HI", True))
        assert line.startswith("OK")
        assert "len=2" in line
        assert "48 49" in line

    def test_error(self):
        line = format_result(FrameResult(b"HI", False, FrameError.CHECKSUM))
        assert line.startswith("ERR(checksum)")

    def test_invalid_without_error(self):
        assert format_result(FrameResult(b"", False)).startswith("ERR(invalid)")

    def test_overflow_shows_declared_length(self):
        line = format_result(FrameResult(b"", False, FrameError.OVERFLOW, declared_length=200))
        assert "len=200" in line


class TestCLI:
    """Test the encode and decode commands end to end."""

    def test_encode_then_decode(self, tmp_path):
        output = tmp_path / "hi.wav"
        runner = CliRunner()

        result = runner.invoke(encode_main, ["HI", "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert output.exists()

        result = runner.invoke(decode_main, ["-i", str(output)])
        assert result.exit_code == 0, result.output
        assert "1 frames (1 valid)" in result.output
        assert "48 49" in result.output

    def test_encode_hex_custom_rates(self, tmp_path):
        output = tmp_path / "hex.wav"
        runner = CliRunner()

        result = runner.invoke(
            encode_main,
            ["--hex", "00 ff aa 55", "-t", "16000", "-b", "2000", "-o", str(output), "-v"],
        )
        assert result.exit_code == 0, result.output
        assert "aa 04 00 ff aa 55 00 55" in result.output

        result = runner.invoke(decode_main, ["-i", str(output), "-t", "16000", "-b", "2000"])
        assert result.exit_code == 0, result.output
        assert "00 ff aa 55" in result.output

    def test_encode_bad_hex(self, tmp_path):
        result = CliRunner().invoke(encode_main, ["--hex", "zz", "-o", str(tmp_path / "x.wav")])
        assert result.exit_code == 1

    def test_encode_oversize(self, tmp_path):
        result = CliRunner().invoke(encode_main, ["A" * 256, "-o", str(tmp_path / "x.wav")])
        assert result.exit_code == 1

    def test_encode_empty(self, tmp_path):
        result = CliRunner().invoke(encode_main, ["", "-o", str(tmp_path / "x.wav")])
        assert result.exit_code == 1

    def test_decode_no_frames(self, tmp_path):
        path = tmp_path / "idle.wav"
        write_line(path, np.ones(2000, dtype=np.uint8), 48000)

        result = CliRunner().invoke(decode_main, ["-i", str(path)])
        assert result.exit_code == 1
        assert "No frames detected" in result.output
