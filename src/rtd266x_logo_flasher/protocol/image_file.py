"""
File-backed flash emulation.

Lets the change-logo workflow run against a saved firmware dump instead of
a live device. Writes are applied to the in-memory copy and persisted to
the file.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from ..models.catalog import DEFAULT_PROFILE
from .transport import BlockError, FlashTransportError, ProgressCallback

logger = logging.getLogger(__name__)


class ImageFileTransport:
    """Serve flash reads and writes from an image file."""

    def __init__(
        self,
        image_path: str,
        identity: Tuple[int, int] = DEFAULT_PROFILE.identity,
        persist: bool = True,
    ):
        """
        Initialize file transport.

        Args:
            image_path: Path to the firmware dump
            identity: (manufacturer_id, device_id) to report
            persist: Write changes back to image_path (default True)
        """
        self.image_path = Path(image_path)
        self.identity = identity
        self.persist = persist
        self._data: Optional[bytearray] = None
        self.writes = []

    @property
    def data(self) -> bytearray:
        """Emulated flash contents, loaded on first access."""
        if self._data is None:
            try:
                self._data = bytearray(self.image_path.read_bytes())
            except OSError as e:
                raise FlashTransportError(f"Cannot read image {self.image_path}: {e}")
            logger.debug(f"Loaded {len(self._data)} bytes from {self.image_path}")
        return self._data

    def query_identity(self) -> Tuple[int, int]:
        return self.identity

    def read_region(
        self,
        offset: int,
        length: int,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> bytes:
        data = self.data
        if offset < 0 or offset + length > len(data):
            raise BlockError(
                f"Read 0x{offset:06X}+{length} outside {len(data)}-byte image"
            )

        chunk = bytes(data[offset:offset + length])
        if progress_cb:
            progress_cb(length, length)
        return chunk

    def write_region(
        self,
        offset: int,
        data: bytes,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        image = self.data
        if offset < 0 or offset + len(data) > len(image):
            raise BlockError(
                f"Write 0x{offset:06X}+{len(data)} outside {len(image)}-byte image"
            )

        image[offset:offset + len(data)] = data
        self.writes.append((offset, len(data)))

        if self.persist:
            try:
                with open(self.image_path, "r+b") as f:
                    f.seek(offset)
                    f.write(data)
            except OSError as e:
                raise FlashTransportError(f"Cannot write image {self.image_path}: {e}")

        if progress_cb:
            progress_cb(len(data), len(data))

        logger.info(f"Wrote 0x{offset:06X}-0x{offset + len(data):06X} to {self.image_path}")
