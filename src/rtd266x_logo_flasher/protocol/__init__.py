"""Flash transport layer - serial bridge and file-backed emulation."""

from .transport import (
    FlashTransport,
    FlashTransportError,
    NoResponseError,
    BlockError,
    ProgressCallback,
)
from .serial_bridge import SerialBridgeTransport
from .image_file import ImageFileTransport

__all__ = [
    # Interface
    "FlashTransport",
    "FlashTransportError",
    "NoResponseError",
    "BlockError",
    "ProgressCallback",
    # Implementations
    "SerialBridgeTransport",
    "ImageFileTransport",
]
