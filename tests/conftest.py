"""Shared fixtures: synthetic firmware images, catalogs and logos."""

import random

import pytest
from PIL import Image

from rtd266x_logo_flasher.fingerprint import RegionFingerprint, hash_region, skips_from_pairs
from rtd266x_logo_flasher.models import DEFAULT_PROFILE, FirmwareDescriptor

LOGO_OFFSET = 0x260D8
KEDEI_SKIPS = (
    (0xD263, 1),
    (0xD273, 1),
    (0x12346, 16),
    (0x13A31, 48),
    (0x14733, 1),
    (0x260D8, 903),
)


@pytest.fixture(scope="session")
def firmware_image() -> bytes:
    """Deterministic pseudo-random 512 KiB image with an 'HDMI' string."""
    rng = random.Random(0x2660)
    data = bytearray(rng.randbytes(DEFAULT_PROFILE.flash_size))
    data[0x12346:0x12346 + 16] = b"HDMI".ljust(16, b"\x00")
    return bytes(data)


@pytest.fixture
def make_descriptor():
    """Factory building a descriptor whose digest matches the given image."""

    def _make(
        image: bytes,
        name: str = "Test build",
        skips=KEDEI_SKIPS,
        start: int = 0,
        end: int = 0x80000,
        logo_offset: int = LOGO_OFFSET,
        max_patch_length: int = 1507,
    ) -> FirmwareDescriptor:
        return FirmwareDescriptor(
            name=name,
            logo_offset=logo_offset,
            variant_string_offset=0x12346,
            max_patch_length=max_patch_length,
            fingerprints=(
                RegionFingerprint(
                    start=start,
                    end=end,
                    expected_digest=hash_region(image, start, end, skips),
                    skips=skips_from_pairs(skips),
                ),
            ),
        )

    return _make


@pytest.fixture
def logo_path(tmp_path) -> str:
    """Black-and-white logo at the default profile size."""
    size = (DEFAULT_PROFILE.logo_width, DEFAULT_PROFILE.logo_height)
    img = Image.new("RGB", size, "white")
    for x in range(size[0] // 2):
        for y in range(size[1]):
            img.putpixel((x, y), (0, 0, 0))
    path = tmp_path / "logo.png"
    img.save(path)
    return str(path)
