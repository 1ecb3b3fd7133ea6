"""
Standardized error and status messages for RTD266x Logo Flasher.

Provides structured message items with stable codes so the CLI can show
the failing phase together with a remediation hint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List

from ..errors import ErrorCode, FlasherError


class MessageLevel(Enum):
    """Severity level for messages."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


# Default remediation hints for each error code
ERROR_REMEDIATIONS: Dict[ErrorCode, str] = {
    ErrorCode.E_INPUT_INVALID:
        "Check the logo path and resize the image to the exact required dimensions.",
    ErrorCode.E_DEVICE_MISMATCH:
        "Check the bridge wiring and that the display board is powered.",
    ErrorCode.E_TRANSPORT:
        "Check the serial port and cable. Try a lower baud rate.",
    ErrorCode.E_BACKUP_WRITE:
        "Ensure the backup directory is writable. Nothing was written to the device.",
    ErrorCode.E_FIRMWARE_UNIDENTIFIED:
        "This firmware build is not in the catalog. Keep the backup and do not patch it.",
    ErrorCode.E_PATCH_TOO_LARGE:
        "Simplify the logo so it encodes to fewer bytes.",
    ErrorCode.E_PATCH_SPANS_SECTORS:
        "The logo would cross a flash sector boundary; use a smaller logo.",
    ErrorCode.E_PATCH_BREAKS_IDENTIFICATION:
        "The logo overwrites bytes the catalog fingerprints. Use a smaller logo so the firmware stays identifiable.",
    ErrorCode.E_MALFORMED_REGION:
        "Catalog entry does not fit this image. Report the firmware dump.",
    ErrorCode.E_WRITE_DENIED:
        "Add --write --confirm WRITE to perform the actual write.",
    ErrorCode.E_UNKNOWN:
        "Check logs for more details.",
}


@dataclass
class MessageItem:
    """
    Structured message with stable code.

    Attributes:
        level: Severity (INFO, WARN, ERROR)
        code: Stable error code for programmatic handling
        title: Short, user-facing title
        remediation: Suggested action to resolve the issue
    """
    level: MessageLevel
    code: ErrorCode
    title: str
    remediation: str = ""

    def __post_init__(self):
        """Set default remediation if not provided."""
        if not self.remediation:
            self.remediation = ERROR_REMEDIATIONS.get(self.code, "")

    @classmethod
    def from_error(cls, error: FlasherError) -> "MessageItem":
        """Create an ERROR-level message from a workflow exception."""
        return cls(MessageLevel.ERROR, error.code, error.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/display."""
        return {
            "level": self.level.value,
            "code": self.code.value,
            "title": self.title,
            "remediation": self.remediation,
        }

    def to_cli_string(self, verbose: bool = False) -> str:
        """Format for CLI output."""
        if verbose and self.remediation:
            return f"[{self.code.value}] {self.title}\n   → {self.remediation}"
        return f"[{self.code.value}] {self.title}"


def result_to_messages(result: "OperationResult") -> List[MessageItem]:
    """
    Convert a result's errors to MessageItem list.

    Args:
        result: OperationResult from core operations
    """
    items = []

    for err, code in zip(result.errors, result.error_codes):
        try:
            error_code = ErrorCode(code)
        except ValueError:
            error_code = ErrorCode.E_UNKNOWN
        items.append(MessageItem(MessageLevel.ERROR, error_code, err))

    return items
