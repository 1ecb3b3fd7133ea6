"""
Core workflow actions for RTD266x Logo Flasher.

change_logo() runs the complete sequence against a flash transport:

    Validating Input -> Identifying Device -> Reading Image -> Backing Up ->
    Identifying Firmware -> Preparing Replacement Asset -> Planning Patch ->
    Writing Patch -> Done

Every phase has one failure exit. Nothing is retried here and the only
write is the single sector returned by the patch planner. ChangeLogoWorker
runs the same sequence on a background thread, streaming status lines
through a StatusChannel and delivering one final result through a Future.
"""

import hashlib
import logging
import queue
import threading
from concurrent.futures import Future
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from ..errors import (
    DeviceIdentityMismatch,
    ErrorCode,
    FlasherError,
    InputValidationError,
    PatchBreaksIdentification,
    TransportError,
    UnidentifiedFirmware,
)
from ..identify import identify_firmware
from ..logo_codec import LogoEncoder
from ..logo_patcher import FirmwareBackup, backup_file_name, plan_patch
from ..models.catalog import CATALOG, DEFAULT_PROFILE, DeviceProfile, FirmwareDescriptor, read_variant_string
from ..protocol.transport import FlashTransport
from .results import OperationResult
from .safety import SafetyContext, require_write_permission

logger = logging.getLogger(__name__)

StepProgress = Callable[[str, int, int], None]


class WorkflowState(Enum):
    """Phases of the change-logo sequence, in order."""
    VALIDATING_INPUT = "Validating Input"
    IDENTIFYING_DEVICE = "Identifying Device"
    READING_IMAGE = "Reading Image"
    BACKING_UP = "Backing Up"
    IDENTIFYING_FIRMWARE = "Identifying Firmware"
    PREPARING_ASSET = "Preparing Replacement Asset"
    PLANNING_PATCH = "Planning Patch"
    WRITING_PATCH = "Writing Patch"
    DONE = "Done"


class StatusChannel:
    """
    One-way, append-only stream of status lines.

    The producer calls report() and finally close(); a consumer iterates
    the channel, which blocks for new lines and stops after close().
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: "queue.Queue" = queue.Queue()

    def report(self, message: str) -> None:
        self._queue.put(message)

    def close(self) -> None:
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[str]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item

    def drain(self) -> List[str]:
        """Return all lines available right now without blocking."""
        lines = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return lines
            if item is not self._CLOSED:
                lines.append(item)


class _ListLogHandler(logging.Handler):
    """Capture log records into a list of formatted strings."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records = []
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


@contextmanager
def _capture_logs(logger_name: str = "rtd266x_logo_flasher"):
    """Capture logs for core operations into a list."""
    target_logger = logging.getLogger(logger_name)
    handler = _ListLogHandler()
    previous_level = target_logger.level
    if previous_level in (logging.NOTSET, logging.WARNING, logging.ERROR, logging.CRITICAL):
        target_logger.setLevel(logging.INFO)
    target_logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        target_logger.removeHandler(handler)
        target_logger.setLevel(previous_level)


def change_logo(
    transport: FlashTransport,
    logo_path: str,
    encoder: Optional[LogoEncoder] = None,
    backup: Optional[FirmwareBackup] = None,
    profile: DeviceProfile = DEFAULT_PROFILE,
    catalog: Sequence[FirmwareDescriptor] = CATALOG,
    safety_ctx: Optional[SafetyContext] = None,
    status: Optional[StatusChannel] = None,
    progress_cb: Optional[StepProgress] = None,
) -> OperationResult:
    """
    Replace the boot logo of the firmware on an attached flash device.

    Args:
        transport: Flash transport (serial bridge or image file)
        logo_path: Path to the logo image
        encoder: Logo encoder (default: LogoEncoder sized from profile)
        backup: Backup sink (default: FirmwareBackup in ./backups)
        profile: Supported device description
        catalog: Ordered firmware descriptors to identify against
        safety_ctx: Write gating; None writes without confirmation
        status: Channel receiving human-readable status lines
        progress_cb: Optional callback(step_name, current, total)

    Returns:
        OperationResult with:
            - ok / code: single final outcome
            - status: the full status trail
            - metadata["state"]: last phase entered (the failing one on error)
            - metadata["backup_path"], metadata["sector_address"]
            - hashes["image"], hashes["logo"], hashes["sector"]
    """
    encoder = encoder or LogoEncoder(profile.logo_width, profile.logo_height)
    backup = backup or FirmwareBackup()
    if status is None:
        status = StatusChannel()

    trail: List[str] = []
    hashes = {}
    metadata = {}
    firmware_name = ""
    region = ""
    state = WorkflowState.VALIDATING_INPUT

    def report(message: str) -> None:
        trail.append(message)
        status.report(message)

    def enter(next_state: WorkflowState, message: str) -> None:
        nonlocal state
        state = next_state
        logger.debug(f"Entering {state.value}")
        report(message)

    def step_progress(step: str) -> Optional[Callable[[int, int], None]]:
        if progress_cb is None:
            return None
        return lambda current, total: progress_cb(step, current, total)

    with _capture_logs() as logs:
        try:
            enter(WorkflowState.VALIDATING_INPUT, "Checking logo file...")
            if not logo_path:
                raise InputValidationError("No logo input file specified.")
            encoder.validate(logo_path, profile.logo_width, profile.logo_height)

            enter(WorkflowState.IDENTIFYING_DEVICE, "Identifying device...")
            try:
                identity = tuple(transport.query_identity())
            except TransportError as e:
                raise DeviceIdentityMismatch(f"Cannot identify chip. {e.message}") from e

            if identity != profile.identity:
                raise DeviceIdentityMismatch(
                    "Cannot identify chip. Expected "
                    f"0x{profile.manufacturer_id:02X}/0x{profile.device_id:02X}, got "
                    + "/".join(f"0x{part:02X}" for part in identity),
                    details={"identity": identity},
                )

            enter(WorkflowState.READING_IMAGE, "Reading firmware...")
            image = bytearray(transport.read_region(0, profile.flash_size, step_progress("Reading firmware")))
            if len(image) != profile.flash_size:
                raise TransportError(
                    f"Short read: got {len(image)} of {profile.flash_size} bytes"
                )
            hashes["image"] = hashlib.sha256(image).hexdigest()

            file_name = backup_file_name()
            enter(WorkflowState.BACKING_UP, f'Creating firmware backup file "{file_name}"...')
            backup_info = backup.save(file_name, bytes(image))
            metadata["backup_path"] = backup_info["path"]

            enter(WorkflowState.IDENTIFYING_FIRMWARE, "Checking firmware...")
            descriptor = identify_firmware(image, catalog)
            if descriptor is None:
                raise UnidentifiedFirmware("Could not detect firmware.")
            firmware_name = descriptor.name
            metadata["variant_string"] = read_variant_string(image, descriptor)
            report(f"Detected firmware is {descriptor.name}")

            enter(WorkflowState.PREPARING_ASSET, "Converting logo...")
            encoder.load(logo_path)
            logo_bytes = encoder.encode()
            hashes["logo"] = hashlib.sha256(logo_bytes).hexdigest()
            metadata["logo_length"] = len(logo_bytes)

            enter(WorkflowState.PLANNING_PATCH, "Embedding the new logo...")
            block = plan_patch(image, descriptor, logo_bytes, profile.sector_size)
            if identify_firmware(image, catalog) is not descriptor:
                raise PatchBreaksIdentification(
                    f"A {len(logo_bytes)}-byte logo would overwrite fingerprinted bytes of "
                    f"{descriptor.name}; the patched firmware could not be identified again",
                    details={"length": len(logo_bytes)},
                )
            region = block.region
            hashes["sector"] = hashlib.sha256(block.data).hexdigest()
            metadata["sector_address"] = block.address

            enter(WorkflowState.WRITING_PATCH, f"Writing patched sector {block.region}...")
            if safety_ctx is not None:
                safety_ctx.firmware_detected = descriptor.name
                require_write_permission(
                    safety_ctx,
                    target_region=block.region,
                    bytes_length=len(block.data),
                    offset=block.address,
                )

            warnings = []
            if safety_ctx is not None and safety_ctx.simulate:
                warnings.append("Dry run - patched sector was not written")
                report("Dry run: skipping write.")
            else:
                transport.write_region(block.address, block.data, step_progress("Writing sector"))

            state = WorkflowState.DONE
            report("Finished! Now reboot the display and enjoy your new boot logo :)")

            result = OperationResult.success(
                operation="change_logo",
                firmware=firmware_name,
                region=region,
                bytes_len=len(logo_bytes),
                hashes=hashes,
                warnings=warnings,
            )
            if warnings:
                metadata["simulated"] = True

        except FlasherError as e:
            logger.error(f"change_logo halted at {state.value}: {e.message}")
            report(f"Error! {e.message}")
            result = OperationResult.failure(
                operation="change_logo",
                error=e.message,
                code=e.code.value,
                firmware=firmware_name,
                region=region,
                hashes=hashes,
            )
        except Exception as e:
            logger.exception("change_logo failed")
            report(f"Error! {e}")
            result = OperationResult.failure(
                operation="change_logo",
                error=str(e),
                code=ErrorCode.E_UNKNOWN.value,
                firmware=firmware_name,
                region=region,
                hashes=hashes,
            )

        metadata["state"] = state.value
        result.metadata.update(metadata)
        result.status = trail
        result.logs = logs
        return result


class ChangeLogoWorker:
    """
    Run change_logo on a dedicated background thread.

    Example:
        worker = ChangeLogoWorker(transport, "logo.png")
        future = worker.start()
        for line in worker.status:
            print(line)
        result = future.result()

    The Future is set exactly once, before the status channel is closed.
    There is no cancellation: once started, the sequence runs to completion
    or to its first failing phase.
    """

    def __init__(self, transport: FlashTransport, logo_path: str, **kwargs) -> None:
        self.transport = transport
        self.logo_path = logo_path
        self.kwargs = kwargs
        self.status = StatusChannel()
        self.result: Future = Future()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> Future:
        """Start the background run. May be called once."""
        if self._thread is not None:
            raise RuntimeError("ChangeLogoWorker can only be started once")

        # Mark running so the caller cannot cancel the result slot
        self.result.set_running_or_notify_cancel()
        self._thread = threading.Thread(target=self._run, name="change-logo", daemon=True)
        self._thread.start()
        return self.result

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            outcome = change_logo(self.transport, self.logo_path, status=self.status, **self.kwargs)
        except Exception as e:
            # change_logo converts its own failures; this only catches bad kwargs
            logger.exception("change_logo worker crashed")
            outcome = OperationResult.failure(operation="change_logo", error=str(e))
        try:
            self.result.set_result(outcome)
        finally:
            self.status.close()


def identify_image_file(
    image_path: str,
    catalog: Sequence[FirmwareDescriptor] = CATALOG,
) -> OperationResult:
    """
    Identify a saved firmware dump (offline, no device).

    Returns:
        OperationResult with firmware name, image sha256, and
        metadata["logo_offset"], metadata["variant_string"] on success
    """
    path = Path(image_path)
    if not path.is_file():
        return OperationResult.failure(
            operation="identify",
            error=f"Image not found: {image_path}",
            code=ErrorCode.E_INPUT_INVALID.value,
        )

    with _capture_logs() as logs:
        image = path.read_bytes()
        hashes = {"image": hashlib.sha256(image).hexdigest()}
        descriptor = identify_firmware(image, catalog)

        if descriptor is None:
            result = OperationResult.failure(
                operation="identify",
                error="Could not detect firmware.",
                code=UnidentifiedFirmware.code.value,
                bytes_len=len(image),
                hashes=hashes,
            )
        else:
            result = OperationResult.success(
                operation="identify",
                firmware=descriptor.name,
                region=f"0x{descriptor.logo_offset:06X}-0x{descriptor.logo_end:06X}",
                bytes_len=len(image),
                hashes=hashes,
            )
            result.metadata["logo_offset"] = descriptor.logo_offset
            result.metadata["max_patch_length"] = descriptor.max_patch_length
            result.metadata["variant_string"] = read_variant_string(image, descriptor)

        result.logs = logs
        return result
