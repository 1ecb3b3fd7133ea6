"""
RTD266x Logo Flasher - boot logo replacement for RTD266x display controllers

Identifies the firmware stored in the controller's SPI flash and rewrites
the single sector holding its boot logo.
"""

__version__ = "0.1.0"

from rtd266x_logo_flasher.identify import identify_firmware
from rtd266x_logo_flasher.logo_patcher import plan_patch, PatchBlock
from rtd266x_logo_flasher.models import CATALOG, FirmwareDescriptor

__all__ = [
    "identify_firmware",
    "plan_patch",
    "PatchBlock",
    "CATALOG",
    "FirmwareDescriptor",
    "__version__",
]
