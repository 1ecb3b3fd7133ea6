"""
Result objects for core operations.

Provides a unified result structure that the CLI and the background worker
use to report operation outcomes consistently.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any


class ResultCode(Enum):
    """Coarse final outcome of an operation."""
    OK = "ok"
    FAILED = "failed"


@dataclass
class OperationResult:
    """
    Unified result object for all core operations.

    Attributes:
        ok: Whether the operation completed successfully
        operation: Name of the operation (e.g., "change_logo", "identify")
        firmware: Identified firmware build name
        region: Target region description (e.g., "0x026000-0x027000")
        bytes_len: Number of bytes processed
        hashes: Dict of hash values (image, sector, logo)
        warnings: Non-blocking issues encountered
        errors: Blocking errors that caused failure
        error_codes: Stable codes of the errors, in the same order
        metadata: Additional operation-specific data
        status: Human-readable status trail, in order
        logs: Captured log lines from the operation
    """
    ok: bool
    operation: str
    firmware: str = ""
    region: str = ""
    bytes_len: int = 0
    hashes: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error_codes: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    status: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)

    @property
    def code(self) -> ResultCode:
        """Coarse result code."""
        return ResultCode.OK if self.ok else ResultCode.FAILED

    def add_error(self, message: str, code: str = "E_UNKNOWN") -> None:
        """Add an error message and mark result as failed."""
        self.errors.append(message)
        self.error_codes.append(code)
        self.ok = False

    def to_summary(self) -> str:
        """
        Generate a human-readable summary string.

        Suitable for CLI output or simple logging.
        """
        status = "SUCCESS" if self.ok else "FAILED"
        lines = [f"[{status}] {self.operation}"]

        if self.firmware:
            lines.append(f"  Firmware: {self.firmware}")
        if self.region:
            lines.append(f"  Region: {self.region}")
        if self.bytes_len:
            lines.append(f"  Bytes: {self.bytes_len:,}")

        for name, value in self.hashes.items():
            lines.append(f"  {name}: {value[:16]}...")

        if self.warnings:
            lines.append("  Warnings:")
            for warn in self.warnings:
                lines.append(f"    - {warn}")

        if self.errors:
            lines.append("  Errors:")
            for err in self.errors:
                lines.append(f"    - {err}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.ok,
            "code": self.code.value,
            "operation": self.operation,
            "firmware": self.firmware,
            "region": self.region,
            "bytes_len": self.bytes_len,
            "hashes": self.hashes,
            "warnings": self.warnings,
            "errors": self.errors,
            "error_codes": self.error_codes,
            "metadata": {k: v for k, v in self.metadata.items() if not isinstance(v, (bytes, bytearray))},
            "status": self.status,
            "logs": self.logs,
        }

    @classmethod
    def success(
        cls,
        operation: str,
        firmware: str = "",
        region: str = "",
        bytes_len: int = 0,
        **kwargs,
    ) -> "OperationResult":
        """Create a successful result."""
        return cls(
            ok=True,
            operation=operation,
            firmware=firmware,
            region=region,
            bytes_len=bytes_len,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        operation: str,
        error: str,
        code: str = "E_UNKNOWN",
        firmware: str = "",
        **kwargs,
    ) -> "OperationResult":
        """Create a failed result."""
        result = cls(
            ok=False,
            operation=operation,
            firmware=firmware,
            **kwargs,
        )
        result.add_error(error, code)
        return result
