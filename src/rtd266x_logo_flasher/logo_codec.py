"""
Logo image encoder for RTD266x boot logos.

Converts PNG/BMP/JPG images to the packed 1-bit bitmap embedded in the
firmware, and back again for previews.
"""

import logging
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import InputValidationError

logger = logging.getLogger(__name__)


def packed_length(width: int, height: int) -> int:
    """Return encoded size in bytes for a width x height logo."""
    return ((width + 7) // 8) * height


class LogoEncoder:
    """Validate, load and encode logo images to packed bitmap format."""

    def __init__(self, width: int, height: int, dither: bool = False):
        """
        Initialize encoder.

        Args:
            width: Required logo width in pixels
            height: Required logo height in pixels
            dither: Apply dithering when converting to monochrome (default False)
        """
        self.width = width
        self.height = height
        self.dither = dither
        self._image: Optional[Image.Image] = None

    def validate(self, image_path: str, width: Optional[int] = None, height: Optional[int] = None) -> None:
        """
        Check that image_path is a readable image with the exact dimensions.

        Raises:
            InputValidationError: If the file is missing, unreadable, or sized wrong
        """
        width = width or self.width
        height = height or self.height

        path = Path(image_path)
        if not path.is_file():
            raise InputValidationError(f"Logo file not found: {image_path}")

        try:
            with Image.open(path) as img:
                size = img.size
        except (UnidentifiedImageError, OSError) as e:
            raise InputValidationError(f"Cannot read logo file {image_path}: {e}") from e

        if size != (width, height):
            raise InputValidationError(
                f"Logo must be {width}x{height} pixels, got {size[0]}x{size[1]}",
                details={"expected": (width, height), "actual": size},
            )

    def load(self, image_path: str) -> None:
        """
        Load image and convert to 1-bit.

        Raises:
            InputValidationError: If the image cannot be loaded
        """
        try:
            with Image.open(image_path) as img:
                rgb = img.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise InputValidationError(f'Cannot load logo from "{image_path}": {e}') from e

        if rgb.size != (self.width, self.height):
            raise InputValidationError(
                f"Logo must be {self.width}x{self.height} pixels, got {rgb.size[0]}x{rgb.size[1]}"
            )

        if self.dither:
            self._image = rgb.convert("1", dither=Image.Dither.FLOYDSTEINBERG)
        else:
            self._image = rgb.convert("1", dither=Image.Dither.NONE)

        logger.debug(f"Loaded logo: {rgb.size} -> {self._image.mode}")

    def encode(self) -> bytes:
        """
        Pack the loaded image as row-major, MSB-first (dark pixel = 1).

        Raises:
            RuntimeError: If load() has not been called
        """
        if self._image is None:
            raise RuntimeError("No logo loaded; call load() first")

        width, height = self._image.size
        pixels = self._image.load()

        data = bytearray()

        for y in range(height):
            for x in range(0, width, 8):
                byte_val = 0
                for bit in range(8):
                    if x + bit < width:
                        # pixel is 0 (black) or 255 (white) in 1-bit image
                        bit_val = 1 if pixels[x + bit, y] == 0 else 0
                        byte_val |= (bit_val << (7 - bit))
                data.append(byte_val)

        logger.info(f"Encoded {width}x{height} logo to {len(data)} packed bytes")
        return bytes(data)

    def decode(self, data: bytes) -> Image.Image:
        """Unpack encoded logo bytes to a 1-bit image for preview."""
        bytes_per_row = (self.width + 7) // 8
        img = Image.new("1", (self.width, self.height), 1)
        pixels = img.load()

        for y in range(self.height):
            for x in range(self.width):
                byte_idx = y * bytes_per_row + (x // 8)
                if byte_idx < len(data):
                    bit = (data[byte_idx] >> (7 - (x % 8))) & 1
                    pixels[x, y] = 0 if bit else 1

        return img
