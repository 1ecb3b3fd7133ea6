"""
Error taxonomy for RTD266x Logo Flasher.

Every failure the change-logo workflow can report maps to exactly one
exception class here. Each class carries a stable ErrorCode so the CLI and
the result objects can attach remediation hints without string matching.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Stable error codes for known failure conditions."""
    E_INPUT_INVALID = "E_INPUT_INVALID"
    E_DEVICE_MISMATCH = "E_DEVICE_MISMATCH"
    E_TRANSPORT = "E_TRANSPORT"
    E_BACKUP_WRITE = "E_BACKUP_WRITE"
    E_FIRMWARE_UNIDENTIFIED = "E_FIRMWARE_UNIDENTIFIED"
    E_PATCH_TOO_LARGE = "E_PATCH_TOO_LARGE"
    E_PATCH_SPANS_SECTORS = "E_PATCH_SPANS_SECTORS"
    E_PATCH_BREAKS_IDENTIFICATION = "E_PATCH_BREAKS_IDENTIFICATION"
    E_MALFORMED_REGION = "E_MALFORMED_REGION"
    E_WRITE_DENIED = "E_WRITE_DENIED"
    E_UNKNOWN = "E_UNKNOWN"


class FlasherError(Exception):
    """
    Base class for all workflow errors.

    Attributes:
        message: Human-readable explanation
        details: Additional context (offsets, lengths, names)
    """
    code = ErrorCode.E_UNKNOWN

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InputValidationError(FlasherError):
    """Logo input file is missing, unreadable or has the wrong dimensions."""
    code = ErrorCode.E_INPUT_INVALID


class DeviceIdentityMismatch(FlasherError):
    """Flash chip identity is not the supported one (or could not be read)."""
    code = ErrorCode.E_DEVICE_MISMATCH


class TransportError(FlasherError):
    """Read, write or identity query failed in the transport layer."""
    code = ErrorCode.E_TRANSPORT


class BackupWriteError(FlasherError):
    """Raw firmware backup could not be written to disk."""
    code = ErrorCode.E_BACKUP_WRITE


class UnidentifiedFirmware(FlasherError):
    """No catalog entry matched the firmware image."""
    code = ErrorCode.E_FIRMWARE_UNIDENTIFIED


class PatchError(FlasherError):
    """Base class for patch planning rejections."""


class PatchTooLarge(PatchError):
    """Encoded logo is longer than the descriptor allows."""
    code = ErrorCode.E_PATCH_TOO_LARGE


class PatchSpansMultipleSectors(PatchError):
    """Patched window does not fit in the single sector holding the logo offset."""
    code = ErrorCode.E_PATCH_SPANS_SECTORS


class PatchBreaksIdentification(PatchError):
    """Patched image would no longer be identified as the same firmware build."""
    code = ErrorCode.E_PATCH_BREAKS_IDENTIFICATION


class MalformedRegion(FlasherError):
    """Catalog region is inconsistent with itself or with the image."""
    code = ErrorCode.E_MALFORMED_REGION
