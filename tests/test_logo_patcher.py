"""Tests for sector-aligned patch planning and firmware backups."""

from datetime import datetime
from pathlib import Path

import pytest

from rtd266x_logo_flasher.errors import (
    BackupWriteError,
    MalformedRegion,
    PatchSpansMultipleSectors,
    PatchTooLarge,
)
from rtd266x_logo_flasher.logo_patcher import (
    FirmwareBackup,
    backup_file_name,
    plan_patch,
    sector_address,
)
from rtd266x_logo_flasher.models import CATALOG, FirmwareDescriptor

SECTOR = 4096


def _descriptor(logo_offset=0x260D8, max_patch_length=1507) -> FirmwareDescriptor:
    return FirmwareDescriptor(
        name="Contrived",
        logo_offset=logo_offset,
        variant_string_offset=0x12346,
        max_patch_length=max_patch_length,
    )


class TestPlanPatch:
    """Patch planning keeps every byte outside the logo window intact."""

    def test_aligned_block_address(self):
        assert sector_address(0x260D8, SECTOR) == 0x26000
        assert sector_address(0x26000, SECTOR) == 0x26000
        assert sector_address(0x26FFF, SECTOR) == 0x26000

    def test_patch_lands_in_block_without_collateral_damage(self, firmware_image):
        original = bytes(firmware_image)
        image = bytearray(firmware_image)
        patch = bytes((i * 7) & 0xFF for i in range(903))

        block = plan_patch(image, CATALOG[0], patch, SECTOR)

        assert block.address == 0x26000
        assert len(block.data) == SECTOR
        assert 0x260D8 + len(patch) <= block.end

        window = 0x260D8 - block.address
        assert block.data[window:window + len(patch)] == patch
        assert block.data[:window] == original[0x26000:0x260D8]
        assert block.data[window + len(patch):] == original[0x260D8 + len(patch):0x27000]

    def test_image_mutated_only_inside_window(self, firmware_image):
        original = bytes(firmware_image)
        image = bytearray(firmware_image)
        patch = b"\xAA" * 100

        plan_patch(image, CATALOG[0], patch, SECTOR)

        assert image[:0x260D8] == original[:0x260D8]
        assert image[0x260D8:0x260D8 + 100] == patch
        assert image[0x260D8 + 100:] == original[0x260D8 + 100:]

    def test_patch_of_max_length_accepted(self, firmware_image):
        image = bytearray(firmware_image)
        block = plan_patch(image, CATALOG[0], b"\x11" * 1507, SECTOR)
        assert block.address == 0x26000

    def test_too_large_rejected_without_mutation(self, firmware_image):
        image = bytearray(firmware_image)

        with pytest.raises(PatchTooLarge):
            plan_patch(image, CATALOG[0], b"\x55" * 1508, SECTOR)

        assert bytes(image) == firmware_image

    def test_spanning_sectors_rejected_without_mutation(self, firmware_image):
        image = bytearray(firmware_image)

        with pytest.raises(PatchSpansMultipleSectors):
            plan_patch(image, _descriptor(max_patch_length=10000), b"\x55" * 6000, SECTOR)

        assert bytes(image) == firmware_image

    def test_patch_ending_exactly_at_sector_boundary(self):
        image = bytearray(0x27000)
        length = 0x27000 - 0x260D8
        block = plan_patch(image, _descriptor(max_patch_length=length), b"\x01" * length, SECTOR)
        assert block.end == 0x27000
        assert block.data[-1] == 0x01

    def test_one_byte_past_boundary_rejected(self):
        image = bytearray(0x28000)
        length = 0x27000 - 0x260D8 + 1
        with pytest.raises(PatchSpansMultipleSectors):
            plan_patch(image, _descriptor(max_patch_length=length), b"\x01" * length, SECTOR)

    def test_sector_past_image_end(self):
        image = bytearray(0x26800)
        with pytest.raises(MalformedRegion):
            plan_patch(image, _descriptor(), b"\x01" * 16, SECTOR)
        assert image == bytearray(0x26800)

    def test_empty_patch_returns_unchanged_sector(self, firmware_image):
        image = bytearray(firmware_image)
        block = plan_patch(image, CATALOG[0], b"", SECTOR)
        assert block.data == firmware_image[0x26000:0x27000]


class TestFirmwareBackup:
    """Raw image backups."""

    def test_backup_file_name(self):
        name = backup_file_name(datetime(2024, 3, 5, 7, 8, 9))
        assert name == "firmware-2024-03-05-07-08-09.bin"

    def test_save_writes_bytes(self, tmp_path):
        backup = FirmwareBackup(tmp_path / "backups")
        info = backup.save("firmware.bin", b"\x01\x02\x03")

        assert Path(info["path"]).read_bytes() == b"\x01\x02\x03"
        assert info["length"] == 3
        assert len(info["hash"]) == 64

    def test_unwritable_directory_raises_backup_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_bytes(b"")
        backup = FirmwareBackup(blocker)

        with pytest.raises(BackupWriteError):
            backup.save("firmware.bin", b"\x00")

    def test_existing_backup_is_never_overwritten(self, tmp_path):
        backup = FirmwareBackup(tmp_path)
        name = backup_file_name(datetime(2024, 3, 5, 7, 8, 9))

        first = backup.save(name, b"original")
        second = backup.save(name, b"patched")
        third = backup.save(name, b"again")

        assert Path(first["path"]).read_bytes() == b"original"
        assert Path(second["path"]).name == "firmware-2024-03-05-07-08-09-1.bin"
        assert Path(second["path"]).read_bytes() == b"patched"
        assert Path(third["path"]).name == "firmware-2024-03-05-07-08-09-2.bin"
