"""
Core module for RTD266x Logo Flasher.

This module provides the single source of truth for:
- Write gating / confirmation (safety.py)
- Offset, size and skip parsing (parsing.py)
- Result objects (results.py)
- The change-logo workflow and its background worker (actions.py)
- Standardized error messages (messages.py)

The CLI calls into this module rather than implementing its own logic.
"""

from .safety import SafetyContext, require_write_permission, WritePermissionError, CONFIRMATION_TOKEN
from .parsing import parse_offset, parse_size, parse_skip
from .results import OperationResult, ResultCode
from .messages import (
    MessageLevel,
    MessageItem,
    result_to_messages,
    ERROR_REMEDIATIONS,
)
from .actions import (
    WorkflowState,
    StatusChannel,
    ChangeLogoWorker,
    change_logo,
    identify_image_file,
)

__all__ = [
    # Safety
    "SafetyContext",
    "require_write_permission",
    "WritePermissionError",
    "CONFIRMATION_TOKEN",
    # Parsing
    "parse_offset",
    "parse_size",
    "parse_skip",
    # Results
    "OperationResult",
    "ResultCode",
    # Messages
    "MessageLevel",
    "MessageItem",
    "result_to_messages",
    "ERROR_REMEDIATIONS",
    # Actions
    "WorkflowState",
    "StatusChannel",
    "ChangeLogoWorker",
    "change_logo",
    "identify_image_file",
]
