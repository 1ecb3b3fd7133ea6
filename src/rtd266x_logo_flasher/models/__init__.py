"""
Firmware catalog for RTD266x display controllers.

Provides the static table of known firmware builds and the device profile.
"""

from .catalog import (
    CATALOG,
    DEFAULT_PROFILE,
    DeviceProfile,
    FirmwareDescriptor,
    list_firmwares,
    get_firmware,
    read_variant_string,
)

__all__ = [
    "CATALOG",
    "DEFAULT_PROFILE",
    "DeviceProfile",
    "FirmwareDescriptor",
    "list_firmwares",
    "get_firmware",
    "read_variant_string",
]
