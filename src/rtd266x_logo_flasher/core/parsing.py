"""
Centralized parsing helpers for offsets, sizes and skip ranges.

The CLI imports these helpers rather than re-implementing them.
"""

from typing import Optional, Tuple


def parse_offset(value: Optional[str]) -> Optional[int]:
    """
    Parse offset value from string, supporting multiple formats.

    Accepts:
        - Decimal: "4096"
        - Hex with 0x prefix: "0x1000" or "0X1000"
        - Hex with h suffix: "1000h" or "1000H"
        - None for "not given"

    Returns:
        Parsed integer offset, or None if value is None or empty.

    Raises:
        ValueError: If value cannot be parsed or is negative.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        if value.lower().startswith("0x"):
            result = int(value, 16)
        elif value.lower().endswith("h"):
            result = int(value[:-1], 16)
        else:
            result = int(value)
    except ValueError:
        raise ValueError(
            f"Invalid offset '{value}'. Use decimal (4096), hex (0x1000), or suffix (1000h)."
        )

    if result < 0:
        raise ValueError(f"Offset must not be negative: '{value}'")
    return result


def parse_size(value: str) -> Tuple[int, int]:
    """
    Parse size string in WxH format.

    Args:
        value: Size string like "96x96"

    Returns:
        Tuple of (width, height)

    Raises:
        ValueError: If format is invalid
    """
    try:
        parts = value.lower().split("x")
        if len(parts) != 2:
            raise ValueError()
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid size format '{value}'. Use WxH format like '96x96'.")

    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid size '{value}': dimensions must be positive.")
    return (width, height)


def parse_skip(value: str) -> Tuple[int, int]:
    """
    Parse a skip range in OFFSET:LENGTH format.

    Both parts accept the formats of parse_offset, e.g. "0x260D8:903".

    Raises:
        ValueError: If format is invalid or length is zero
    """
    offset_str, sep, length_str = value.partition(":")
    if not sep:
        raise ValueError(f"Invalid skip '{value}'. Use OFFSET:LENGTH like '0x260D8:903'.")

    offset = parse_offset(offset_str)
    length = parse_offset(length_str)
    if offset is None or not length:
        raise ValueError(f"Invalid skip '{value}'. Use OFFSET:LENGTH like '0x260D8:903'.")
    return (offset, length)
