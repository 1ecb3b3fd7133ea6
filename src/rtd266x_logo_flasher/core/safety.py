"""
Safety context and write gating for flash operations.

Centralizes the confirmation rules so every entry point enforces the same
checks before the patched sector is written.
"""

from dataclasses import dataclass
from typing import Optional

from ..errors import ErrorCode, FlasherError

# Confirmation token required before the patched sector is written
CONFIRMATION_TOKEN = "WRITE"


class WritePermissionError(FlasherError):
    """
    Raised when a write operation is not permitted.

    Attributes:
        reason: Human-readable explanation of why write was denied
        details: Additional context (firmware, region, etc.)
    """
    code = ErrorCode.E_WRITE_DENIED

    def __init__(self, reason: str, details: Optional[dict] = None):
        self.reason = reason
        super().__init__(reason, details)


@dataclass
class SafetyContext:
    """
    Safety context for write operations.

    Attributes:
        write_enabled: Whether the --write flag was provided
        confirmation_token: Must match CONFIRMATION_TOKEN
        firmware_detected: Identified firmware build name
        simulate: Whether this is a dry run (stop before writing)
    """
    write_enabled: bool = False
    confirmation_token: Optional[str] = None
    firmware_detected: str = ""
    simulate: bool = False

    def to_details_dict(
        self,
        target_region: str = "",
        bytes_length: int = 0,
        offset: Optional[int] = None,
    ) -> dict:
        """Create a details dictionary for display."""
        details = {
            "firmware": self.firmware_detected or "Unknown",
            "target_region": target_region,
            "bytes_length": bytes_length,
        }
        if offset is not None:
            details["offset"] = f"0x{offset:06X}"
        return details


def require_write_permission(
    ctx: SafetyContext,
    target_region: str = "",
    bytes_length: int = 0,
    offset: Optional[int] = None,
) -> None:
    """
    Enforce write permission rules.

    Rules enforced:
    1. If simulate mode: always allowed (no actual write)
    2. If write not enabled: raise with instructions
    3. If firmware not identified: deny
    4. Confirmation token must be present and match

    Args:
        ctx: Safety context with all required information
        target_region: Description of target flash region
        bytes_length: Number of bytes to write
        offset: Optional offset being written to

    Raises:
        WritePermissionError: If write is not permitted
    """
    details = ctx.to_details_dict(target_region, bytes_length, offset)

    # Rule 1: Simulation mode is always allowed
    if ctx.simulate:
        return

    # Rule 2: Write must be explicitly enabled
    if not ctx.write_enabled:
        raise WritePermissionError(
            "Write operation requires explicit permission. Use the --write flag.",
            details=details,
        )

    # Rule 3: Never write to an unidentified firmware
    if not ctx.firmware_detected:
        raise WritePermissionError(
            "Cannot write: firmware was not identified.",
            details=details,
        )

    # Rule 4: Token-based confirmation
    if ctx.confirmation_token is None:
        raise WritePermissionError(
            f"Write requires confirmation. Pass --confirm {CONFIRMATION_TOKEN}.",
            details=details,
        )
    if ctx.confirmation_token.strip().upper() != CONFIRMATION_TOKEN:
        raise WritePermissionError(
            f"Confirmation token mismatch. Expected '{CONFIRMATION_TOKEN}'.",
            details=details,
        )


def create_cli_safety_context(
    write_flag: bool,
    simulate: bool = False,
    confirmation_token: Optional[str] = None,
) -> SafetyContext:
    """
    Create a SafetyContext configured for CLI usage.

    The CLI prompts for a missing token before the worker starts.
    """
    return SafetyContext(
        write_enabled=write_flag,
        confirmation_token=confirmation_token,
        simulate=simulate,
    )
