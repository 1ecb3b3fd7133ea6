"""
Skip-aware region hashing for firmware fingerprinting.

A RegionFingerprint hashes every byte of [start, end) except the bytes
covered by its skip ranges. Skipped bytes are elided from the hash input
stream entirely (they are not masked or zero-filled), so two images that
differ only inside skip ranges produce identical digests.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence, Tuple

from .errors import MalformedRegion

logger = logging.getLogger(__name__)

# Hash family used for every region in the catalog
HASH_NAME = "sha256"


@dataclass(frozen=True)
class SkipRange:
    """Contiguous byte span excluded from a region digest."""
    offset: int
    length: int

    @property
    def end(self) -> int:
        """Return end offset (exclusive)."""
        return self.offset + self.length


@dataclass(frozen=True)
class RegionFingerprint:
    """
    Hashed byte region of a firmware image with an expected digest.

    Skip ranges are validated and sorted once, at construction time, so
    compute_digest can walk them in a single forward pass.

    Attributes:
        start: First offset of the region
        end: End offset of the region (exclusive)
        expected_digest: Hex digest the region must hash to
        skips: Byte spans excluded from hashing

    Raises:
        MalformedRegion: If the region is empty, a skip lies outside it,
            or two skips overlap
    """
    start: int
    end: int
    expected_digest: str
    skips: Tuple[SkipRange, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.start < 0 or self.start >= self.end:
            raise MalformedRegion(
                f"Invalid region [0x{self.start:X}, 0x{self.end:X})",
            )

        ordered = tuple(sorted(self.skips, key=lambda s: s.offset))
        previous_end = self.start
        for skip in ordered:
            if skip.length <= 0:
                raise MalformedRegion(f"Skip at 0x{skip.offset:X} has no length")
            if skip.offset < self.start or skip.end > self.end:
                raise MalformedRegion(
                    f"Skip 0x{skip.offset:X}+{skip.length} lies outside "
                    f"region [0x{self.start:X}, 0x{self.end:X})",
                )
            if skip.offset < previous_end:
                raise MalformedRegion(f"Skip at 0x{skip.offset:X} overlaps the previous skip")
            previous_end = skip.end

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "skips", ordered)

    def hashed_spans(self) -> Iterator[Tuple[int, int]]:
        """Yield the (start, end) spans that enter the hash, in offset order."""
        cursor = self.start
        for skip in self.skips:
            if skip.offset > cursor:
                yield cursor, skip.offset
            cursor = skip.end
        if cursor < self.end:
            yield cursor, self.end

    @property
    def hashed_length(self) -> int:
        """Number of bytes that enter the hash."""
        return sum(end - start for start, end in self.hashed_spans())

    def matches(self, image: bytes) -> bool:
        """Check whether image hashes to the expected digest (case-insensitive)."""
        return compute_digest(image, self) == self.expected_digest.lower()


def compute_digest(image: bytes, region: RegionFingerprint) -> str:
    """
    Compute the skip-aware digest of a region.

    Args:
        image: Raw firmware image
        region: Region to hash

    Returns:
        Lowercase hex digest

    Raises:
        MalformedRegion: If the region ends past the end of the image
    """
    if region.end > len(image):
        raise MalformedRegion(
            f"Region end 0x{region.end:X} exceeds image length 0x{len(image):X}",
            details={"end": region.end, "image_len": len(image)},
        )

    hasher = hashlib.new(HASH_NAME)
    view = memoryview(image)
    for start, end in region.hashed_spans():
        hasher.update(view[start:end])

    return hasher.hexdigest()


def hash_region(
    image: bytes,
    start: int,
    end: int,
    skips: Iterable[Tuple[int, int]] = (),
) -> str:
    """
    Digest an ad-hoc region, for building new catalog entries.

    Args:
        image: Raw firmware image
        start: Region start offset
        end: Region end offset (exclusive)
        skips: (offset, length) pairs to exclude

    Returns:
        Lowercase hex digest
    """
    region = RegionFingerprint(
        start=start,
        end=end,
        expected_digest="",
        skips=tuple(SkipRange(offset, length) for offset, length in skips),
    )
    digest = compute_digest(image, region)
    logger.debug(
        f"Region [0x{start:X}, 0x{end:X}) with {len(region.skips)} skips "
        f"hashed {region.hashed_length} bytes: {digest}"
    )
    return digest


def skips_from_pairs(pairs: Sequence[Tuple[int, int]]) -> Tuple[SkipRange, ...]:
    """Build a skip tuple from (offset, length) pairs."""
    return tuple(SkipRange(offset, length) for offset, length in pairs)
