"""
Logo patch planning and firmware backup.

Embeds an encoded logo into an in-memory firmware image and cuts out the
single sector that has to be rewritten on the device. Everything outside
the patched window stays byte-identical.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .errors import BackupWriteError, MalformedRegion, PatchSpansMultipleSectors, PatchTooLarge
from .models.catalog import DEFAULT_PROFILE, FirmwareDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchBlock:
    """One sector-aligned erase/write unit ready for the transport."""
    address: int
    data: bytes

    @property
    def end(self) -> int:
        """Return end address (exclusive)."""
        return self.address + len(self.data)

    @property
    def region(self) -> str:
        """Return region description for display."""
        return f"0x{self.address:06X}-0x{self.end:06X}"


def sector_address(offset: int, sector_size: int) -> int:
    """Return the start of the sector containing offset."""
    return (offset // sector_size) * sector_size


def plan_patch(
    image: bytearray,
    descriptor: FirmwareDescriptor,
    patch: bytes,
    sector_size: int = DEFAULT_PROFILE.sector_size,
) -> PatchBlock:
    """
    Embed a logo into the image and return the sector to rewrite.

    All checks run before the image is touched, so a rejected patch leaves
    the image unchanged. The only mutation is the copy of patch into
    [logo_offset, logo_offset + len(patch)).

    Args:
        image: Firmware image, patched in place
        descriptor: Identified firmware build
        patch: Encoded logo bytes
        sector_size: Flash erase/write unit

    Returns:
        PatchBlock covering exactly one sector of the patched image

    Raises:
        PatchTooLarge: If patch is longer than descriptor.max_patch_length
        PatchSpansMultipleSectors: If the patched window crosses a sector boundary
        MalformedRegion: If the sector reaches past the end of the image
    """
    offset = descriptor.logo_offset
    length = len(patch)

    if length > descriptor.max_patch_length:
        raise PatchTooLarge(
            f"Encoded logo is {length} bytes, {descriptor.name} allows "
            f"{descriptor.max_patch_length}; it would overwrite other firmware parts",
            details={"length": length, "max_length": descriptor.max_patch_length},
        )

    address = sector_address(offset, sector_size)
    if offset + length > address + sector_size:
        raise PatchSpansMultipleSectors(
            f"Logo window 0x{offset:06X}-0x{offset + length:06X} crosses the "
            f"sector boundary at 0x{address + sector_size:06X}",
            details={"offset": offset, "length": length, "sector_address": address},
        )

    if address + sector_size > len(image):
        raise MalformedRegion(
            f"Sector 0x{address:06X} lies past the end of the "
            f"{len(image)}-byte image",
        )

    image[offset:offset + length] = patch

    block = PatchBlock(address=address, data=bytes(image[address:address + sector_size]))

    logger.info(
        f"Planned logo patch: offset=0x{offset:06X}, length={length}, "
        f"sector {block.region} (sha256 {hashlib.sha256(block.data).hexdigest()[:16]}...)"
    )
    return block


def backup_file_name(now: Optional[datetime] = None) -> str:
    """Return a timestamped backup file name."""
    now = now or datetime.now()
    return f"firmware-{now.strftime('%Y-%m-%d-%H-%M-%S')}.bin"


class FirmwareBackup:
    """Save raw firmware images before anything is modified."""

    def __init__(self, backup_dir: Optional[Path] = None):
        """
        Initialize backup sink.

        Args:
            backup_dir: Directory for backups (default: ./backups/)
        """
        self.backup_dir = Path(backup_dir) if backup_dir is not None else Path("backups")

    def save(self, file_name: str, data: bytes) -> Dict:
        """
        Write raw bytes to a new backup file.

        Existing backups are never overwritten: if file_name is taken, a
        numeric suffix is added ("firmware-...-1.bin").

        Args:
            file_name: Backup file name inside backup_dir
            data: Raw bytes to back up

        Returns:
            Dict with backup info:
                - path: Path to backup file
                - length: Length of backed up data
                - hash: SHA256 of backed up data

        Raises:
            BackupWriteError: If the directory or file cannot be written
        """
        name = Path(file_name)
        backup_path = self.backup_dir / name

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            counter = 0
            while True:
                try:
                    with open(backup_path, "xb") as f:
                        f.write(data)
                    break
                except FileExistsError:
                    counter += 1
                    backup_path = self.backup_dir / f"{name.stem}-{counter}{name.suffix}"
        except OSError as e:
            logger.error(f"Failed to write backup: {e}")
            raise BackupWriteError(
                f'Could not save file "{backup_path}". {e}',
                details={"path": str(backup_path)},
            ) from e

        data_hash = hashlib.sha256(data).hexdigest()

        logger.info(f"Backed up {len(data)} bytes to {backup_path} (hash: {data_hash[:16]}...)")

        return {
            "path": str(backup_path),
            "length": len(data),
            "hash": data_hash,
        }
