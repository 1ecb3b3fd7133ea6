"""Tests for CLI parsing functions and commands."""

import hashlib

import pytest
import typer
from typer.testing import CliRunner

from rtd266x_logo_flasher import cli
from rtd266x_logo_flasher.core.actions import identify_image_file

runner = CliRunner()


class TestParseOffset:
    """Test offset parsing from various input formats."""

    def test_parse_offset_none(self):
        """None input returns None."""
        assert cli.parse_offset(None) is None

    def test_parse_offset_empty_string(self):
        """Empty string returns None."""
        assert cli.parse_offset("") is None
        assert cli.parse_offset("   ") is None

    def test_parse_offset_decimal(self):
        assert cli.parse_offset("4096") == 4096
        assert cli.parse_offset("0") == 0

    def test_parse_offset_hex_prefix(self):
        assert cli.parse_offset("0x260D8") == 0x260D8
        assert cli.parse_offset("0X1000") == 0x1000

    def test_parse_offset_hex_suffix(self):
        assert cli.parse_offset("1000h") == 0x1000
        assert cli.parse_offset("FFH") == 0xFF

    def test_parse_offset_invalid_raises_bad_parameter(self):
        """Invalid input raises typer.BadParameter."""
        with pytest.raises(typer.BadParameter):
            cli.parse_offset("not_a_number")
        with pytest.raises(typer.BadParameter):
            cli.parse_offset("0xZZZ")

    def test_parse_offset_negative(self):
        with pytest.raises(typer.BadParameter):
            cli.parse_offset("-16")


class TestParseSize:
    def test_valid(self):
        assert cli.parse_size("96x96") == (96, 96)
        assert cli.parse_size("128X64") == (128, 64)

    @pytest.mark.parametrize("value", ["96", "96x", "x96", "0x96", "96x-1", "axb"])
    def test_invalid(self, value):
        with pytest.raises(typer.BadParameter):
            cli.parse_size(value)


class TestParseSkip:
    def test_valid(self):
        assert cli.parse_skip("0x260D8:903") == (0x260D8, 903)
        assert cli.parse_skip("100:0x10") == (100, 16)

    @pytest.mark.parametrize("value", ["0x260D8", "0x260D8:", ":903", "0x100:0", "a:b"])
    def test_invalid(self, value):
        with pytest.raises(typer.BadParameter):
            cli.parse_skip(value)


class TestCommands:
    """Commands that work on files only."""

    def test_list_firmwares(self):
        result = runner.invoke(cli.app, ["list-firmwares"])
        assert result.exit_code == 0
        assert "KeDei v1.0" in result.output
        assert "0x260D8" in result.output

    def test_hash_region(self, tmp_path):
        data = bytes(range(256))
        path = tmp_path / "dump.bin"
        path.write_bytes(data)

        result = runner.invoke(cli.app, ["hash-region", str(path), "--end", "64", "--skip", "10:4"])

        assert result.exit_code == 0
        expected = hashlib.sha256(data[:10] + data[14:64]).hexdigest().upper()
        assert expected in result.output

    def test_hash_region_rejects_overlapping_skips(self, tmp_path):
        path = tmp_path / "dump.bin"
        path.write_bytes(bytes(64))

        result = runner.invoke(
            cli.app, ["hash-region", str(path), "--skip", "10:4", "--skip", "12:4"],
        )

        assert result.exit_code == 1

    def test_hash_region_missing_file(self, tmp_path):
        result = runner.invoke(cli.app, ["hash-region", str(tmp_path / "missing.bin")])
        assert result.exit_code == 1

    def test_identify_unknown(self, tmp_path):
        path = tmp_path / "blank.bin"
        path.write_bytes(b"\xFF" * 0x80000)

        result = runner.invoke(cli.app, ["identify", str(path)])

        assert result.exit_code == 1
        assert "E_FIRMWARE_UNIDENTIFIED" in result.output

    def test_identify_json(self, tmp_path, monkeypatch, firmware_image, make_descriptor):
        catalog = [make_descriptor(firmware_image)]
        monkeypatch.setattr(cli, "identify_image_file", lambda path: identify_image_file(path, catalog))
        path = tmp_path / "dump.bin"
        path.write_bytes(firmware_image)

        result = runner.invoke(cli.app, ["identify", str(path), "--json"])

        assert result.exit_code == 0
        assert '"firmware": "Test build"' in result.output

    def test_preview_logo(self, tmp_path, logo_path):
        out = tmp_path / "preview.png"
        result = runner.invoke(cli.app, ["preview-logo", logo_path, str(out)])
        assert result.exit_code == 0
        assert out.is_file()

    def test_change_logo_needs_one_target(self, logo_path):
        result = runner.invoke(cli.app, ["change-logo", logo_path])
        assert result.exit_code != 0

    def test_change_logo_dry_run_on_dump(self, tmp_path, logo_path):
        dump = tmp_path / "blank.bin"
        dump.write_bytes(b"\xFF" * 0x80000)

        result = runner.invoke(
            cli.app,
            ["change-logo", logo_path, "--image", str(dump), "--dry-run", "--backup-dir", str(tmp_path / "bk")],
        )

        # blank flash is never identified
        assert result.exit_code == 1
        assert "Could not detect firmware." in result.output
        assert dump.read_bytes() == b"\xFF" * 0x80000
