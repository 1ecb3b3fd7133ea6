"""Firmware identification against the static catalog."""

import logging
from typing import Optional, Sequence

from .errors import MalformedRegion
from .fingerprint import compute_digest
from .models.catalog import CATALOG, FirmwareDescriptor

logger = logging.getLogger(__name__)


def descriptor_matches(image: bytes, descriptor: FirmwareDescriptor) -> bool:
    """
    Check whether every fingerprint of a descriptor matches the image.

    Stops at the first fingerprint that fails. A fingerprint reaching past
    the end of the image counts as a non-match.
    """
    for region in descriptor.fingerprints:
        try:
            digest = compute_digest(image, region)
        except MalformedRegion as e:
            logger.debug(f"{descriptor.name}: {e}")
            return False

        if digest != region.expected_digest.lower():
            logger.debug(
                f"{descriptor.name}: region [0x{region.start:X}, 0x{region.end:X}) "
                f"hash {digest[:16]}... does not match"
            )
            return False

    return True


def identify_firmware(
    image: bytes,
    catalog: Sequence[FirmwareDescriptor] = CATALOG,
) -> Optional[FirmwareDescriptor]:
    """
    Identify a firmware image.

    First match wins: descriptors are tried in catalog order and the first
    one whose fingerprints all match is returned. Ambiguous catalogs (two
    entries matching the same image) are not detected.

    Args:
        image: Raw firmware image
        catalog: Ordered descriptors to try

    Returns:
        Matching FirmwareDescriptor, or None if the image is not identified.
    """
    for descriptor in catalog:
        if descriptor_matches(image, descriptor):
            logger.info(f"Identified firmware: {descriptor.name}")
            return descriptor

    logger.info(f"No catalog entry matches {len(image)}-byte image")
    return None
