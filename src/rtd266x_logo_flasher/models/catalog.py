"""
Firmware catalog for RTD266x display controllers.

Provides a single source of truth for:
- The supported flash device (identity, size, sector size, logo dimensions)
- Known firmware builds and the fingerprints that identify them
- The offsets needed to patch each build's boot logo

Usage:
    from rtd266x_logo_flasher.models import (
        CATALOG, list_firmwares, get_firmware, DEFAULT_PROFILE
    )

    # List all known firmware builds
    names = list_firmwares()

    # Get the descriptor for a specific build
    descriptor = get_firmware("KeDei v1.0")

Adding support for a new firmware build means appending one descriptor in
_init_catalog(); the identification algorithm never changes.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..fingerprint import RegionFingerprint, SkipRange, skips_from_pairs


@dataclass(frozen=True)
class DeviceProfile:
    """Static description of the supported flash device."""
    manufacturer_id: int = 0xC8
    device_id: int = 0x12
    flash_size: int = 512 * 1024
    sector_size: int = 4096
    # 96x72 packs to 864 bytes, inside the 903-byte logo skip of every catalog entry
    logo_width: int = 96
    logo_height: int = 72

    @property
    def identity(self) -> Tuple[int, int]:
        """Return (manufacturer_id, device_id) tuple."""
        return (self.manufacturer_id, self.device_id)


DEFAULT_PROFILE = DeviceProfile()


@dataclass(frozen=True)
class FirmwareDescriptor:
    """
    One known firmware build.

    Attributes:
        name: Human-readable build name
        logo_offset: Offset of the boot logo asset in the image
        variant_string_offset: Offset of the variant ("HDMI") string,
            informational only
        max_patch_length: Longest logo that fits before adjacent firmware code
        fingerprints: Regions that must all match for the build to be identified
    """
    name: str
    logo_offset: int
    variant_string_offset: int
    max_patch_length: int
    fingerprints: Tuple[RegionFingerprint, ...] = field(default_factory=tuple)

    @property
    def logo_end(self) -> int:
        """Return end offset (exclusive) of the largest allowed logo."""
        return self.logo_offset + self.max_patch_length


# ============================================================================
# CATALOG - All known firmware builds
# ============================================================================

_CATALOG: List[FirmwareDescriptor] = []

# Common to all KeDei builds
_KEDEI_LOGO_OFFSET = 0x260D8
_KEDEI_HDMI_STRING_OFFSET = 0x12346
_KEDEI_MAX_LOGO_LENGTH = 1507
_KEDEI_SHARED_SKIPS = (
    (0x12346, 16),   # "HDMI" string
    (0x13A31, 48),   # palette
    (0x14733, 1),    # CShowNote
    (0x260D8, 903),  # logo
)


def _register_firmware(descriptor: FirmwareDescriptor) -> None:
    """Register a firmware descriptor. Order is match priority."""
    _CATALOG.append(descriptor)


def _kedei(name: str, digest: str, background_color_offsets: Tuple[int, int]) -> FirmwareDescriptor:
    """Build a KeDei descriptor hashing the whole 512 KiB image."""
    # CAdjustBackgroundColor constants differ per panel build
    skips = tuple(SkipRange(offset, 1) for offset in background_color_offsets)
    skips += skips_from_pairs(_KEDEI_SHARED_SKIPS)

    return FirmwareDescriptor(
        name=name,
        logo_offset=_KEDEI_LOGO_OFFSET,
        variant_string_offset=_KEDEI_HDMI_STRING_OFFSET,
        max_patch_length=_KEDEI_MAX_LOGO_LENGTH,
        fingerprints=(
            RegionFingerprint(
                start=0,
                end=0x80000,
                expected_digest=digest,
                skips=skips,
            ),
        ),
    )


def _init_catalog() -> None:
    """Initialize the catalog with known firmware builds."""

    # Identification is first-match: a new entry whose skips are too
    # permissive can shadow every entry registered after it.
    _register_firmware(_kedei(
        "KeDei v1.0",
        "2319EE74B6A09F62484C62B9500FFD356C2A7142BB6D00A5DDFD9E562562F8F4",
        (0xD263, 0xD273),
    ))

    _register_firmware(_kedei(
        "KeDei v1.1, panel type 1 (SKY035S13B00-14439)",
        "B980A13D3472C422FB8E101F6A2BA95DCA0CC2C3D133B8B8B68DF7D5F8FD4AEA",
        (0xD45E, 0xD46E),
    ))

    _register_firmware(_kedei(
        "KeDei v1.1, panel type 2 (SKY035S13D-199)",
        "F206FB3C359FE9BB57BEADA1D79E054DCD7727A898E800C0EDED27F3183BF79B",
        (0xD2D1, 0xD2E1),
    ))


# Initialize catalog on module load
_init_catalog()

CATALOG: Tuple[FirmwareDescriptor, ...] = tuple(_CATALOG)


# ============================================================================
# PUBLIC API
# ============================================================================

def list_firmwares() -> List[str]:
    """
    List all catalog entry names.

    Returns:
        Names in catalog (match priority) order.
    """
    return [descriptor.name for descriptor in CATALOG]


def get_firmware(name: str) -> Optional[FirmwareDescriptor]:
    """
    Get the descriptor for a specific firmware build.

    Args:
        name: Firmware name (case-sensitive)

    Returns:
        FirmwareDescriptor or None if not found.
    """
    for descriptor in CATALOG:
        if descriptor.name == name:
            return descriptor
    return None


def read_variant_string(
    image: bytes,
    descriptor: FirmwareDescriptor,
    length: int = 16,
) -> str:
    """
    Decode the variant string stored at the descriptor's informational offset.

    Never used for identification; the string varies between devices.
    """
    raw = bytes(image[descriptor.variant_string_offset:descriptor.variant_string_offset + length])
    return raw.split(b"\x00", 1)[0].decode("latin-1").strip()
