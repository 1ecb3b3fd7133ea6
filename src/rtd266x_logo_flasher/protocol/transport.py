"""
Flash transport interface.

The change-logo workflow only needs three primitives from whatever sits
between the host and the flash chip. Implementations handle their own
erase-before-write and retry policy.
"""

from typing import Callable, Optional, Protocol, Tuple

from ..errors import TransportError

ProgressCallback = Callable[[int, int], None]


class FlashTransportError(TransportError):
    """Base exception for transport layer errors"""
    pass


class NoResponseError(FlashTransportError):
    """Bridge did not respond"""
    pass


class BlockError(FlashTransportError):
    """Error during chunk read/erase/program"""
    pass


class FlashTransport(Protocol):
    """Primitives the workflow consumes from a flash transport."""

    def query_identity(self) -> Tuple[int, int]:
        """Return (manufacturer_id, device_id) of the flash chip."""
        ...

    def read_region(
        self,
        offset: int,
        length: int,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Read length bytes starting at offset."""
        ...

    def write_region(
        self,
        offset: int,
        data: bytes,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        """Erase and program data at offset."""
        ...
