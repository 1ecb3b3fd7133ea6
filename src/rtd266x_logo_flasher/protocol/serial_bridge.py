"""
Serial-to-I2C Bridge Transport

Handles low-level serial communication with a microcontroller bridge that
drives the RTD266x ISP interface and its SPI flash.

This module provides:
- Serial port initialization and configuration
- Chunked read / sector erase / page program operations
- ACK/NAK handling
- Per-chunk retry
"""

import logging
import struct
import time
from typing import Optional, Tuple

import serial

from .transport import BlockError, FlashTransportError, NoResponseError, ProgressCallback

logger = logging.getLogger(__name__)

ACK = b"\x06"
NAK = b"\x15"

CMD_IDENTIFY = ord("I")
CMD_READ = ord("R")
CMD_ERASE = ord("E")
CMD_PROGRAM = ord("W")

READ_CHUNK = 1024
PAGE_SIZE = 256
SECTOR_SIZE = 4096


def _address_bytes(addr: int) -> bytes:
    """Encode a 24-bit flash address, big-endian."""
    if not 0 <= addr <= 0xFFFFFF:
        raise ValueError(f"Address out of range: 0x{addr:X}")
    return addr.to_bytes(3, "big")


class SerialBridgeTransport:
    """
    Serial transport for an RTD266x ISP bridge.

    Protocol (host -> bridge, every command answered with ACK or NAK):
        IDENTIFY: [I]                           -> ACK | manufacturer | device
        READ:     [R | addr (3) | size (2)]     -> ACK | data
        ERASE:    [E | addr (3)]                -> ACK (4 KiB sector erased)
        PROGRAM:  [W | addr (3) | size (2) | data] -> ACK (size <= 256)

    Example:
        transport = SerialBridgeTransport(port="/dev/ttyUSB0")
        transport.open()
        manufacturer, device = transport.query_identity()
        data = transport.read_region(0x0000, 0x80000)
        transport.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 2.0,
        retries: int = 3,
        erase_timeout: float = 5.0,
    ):
        """
        Initialize transport layer.

        Args:
            port: Serial port (e.g., "/dev/ttyUSB0", "COM3")
            baudrate: Serial baud rate (default 115200)
            timeout: Read/write timeout in seconds (default 2.0)
            retries: Extra attempts for a failing chunk (default 3)
            erase_timeout: Timeout while waiting for a sector erase
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.retries = retries
        self.erase_timeout = erase_timeout
        self.ser: Optional[serial.Serial] = None

    def __enter__(self) -> "SerialBridgeTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        """
        Open serial port.

        Raises:
            FlashTransportError: If port cannot be opened
        """
        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=8,
                parity="N",
                stopbits=1,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            self.ser.reset_input_buffer()
            self.ser.reset_output_buffer()

            logger.debug(f"Opened {self.port} at {self.baudrate} bps (timeout={self.timeout}s)")
        except serial.SerialException as e:
            raise FlashTransportError(f"Cannot open port {self.port}: {e}")

    def close(self) -> None:
        """Close serial port."""
        if self.ser and self.ser.is_open:
            self.ser.close()
            logger.debug(f"Closed {self.port}")

    def send_raw(self, data: bytes) -> None:
        """
        Send raw bytes to the bridge.

        Raises:
            FlashTransportError: If write fails
        """
        if not self.ser or not self.ser.is_open:
            raise FlashTransportError("Serial port not open")

        try:
            written = self.ser.write(data)
            if written != len(data):
                raise FlashTransportError(f"Incomplete write: sent {written}/{len(data)} bytes")
            logger.debug(f">>> {data[:16].hex().upper()}{'...' if len(data) > 16 else ''}")
        except serial.SerialException as e:
            raise FlashTransportError(f"Write error: {e}")

    def recv_raw(self, length: int, timeout_override: Optional[float] = None) -> bytes:
        """
        Receive exactly length bytes from the bridge.

        Raises:
            NoResponseError: If nothing arrives before the timeout
            BlockError: If fewer than length bytes arrive
        """
        if not self.ser or not self.ser.is_open:
            raise FlashTransportError("Serial port not open")

        old_timeout = self.ser.timeout
        try:
            if timeout_override is not None:
                self.ser.timeout = timeout_override
            data = self.ser.read(length)
        except serial.SerialException as e:
            raise FlashTransportError(f"Read error: {e}")
        finally:
            self.ser.timeout = old_timeout

        if len(data) == 0:
            raise NoResponseError("Bridge did not respond (timeout)")
        if len(data) != length:
            raise BlockError(f"Incomplete response: expected {length} bytes, got {len(data)}")

        logger.debug(f"<<< {data[:16].hex().upper()}{'...' if len(data) > 16 else ''}")
        return data

    def _expect_ack(self, what: str, timeout_override: Optional[float] = None) -> None:
        reply = self.recv_raw(1, timeout_override)
        if reply == NAK:
            raise BlockError(f"NAK for {what}")
        if reply != ACK:
            raise BlockError(f"No ACK for {what} (got {reply.hex()})")

    def _with_retries(self, what: str, func):
        """Run func, retrying block-level failures."""
        for attempt in range(self.retries + 1):
            try:
                return func()
            except FlashTransportError as e:
                if attempt < self.retries:
                    logger.warning(f"{what} attempt {attempt + 1} failed: {e}, retrying...")
                    if self.ser and self.ser.is_open:
                        self.ser.reset_input_buffer()
                    time.sleep(0.1)
                else:
                    raise BlockError(f"{what} failed after {self.retries + 1} attempts: {e}")

    def query_identity(self) -> Tuple[int, int]:
        """
        Read the flash chip identity.

        Returns:
            (manufacturer_id, device_id)
        """
        def _identify():
            self.send_raw(bytes([CMD_IDENTIFY]))
            self._expect_ack("identify")
            manufacturer, device = struct.unpack(">BB", self.recv_raw(2))
            return manufacturer, device

        manufacturer, device = self._with_retries("Identify", _identify)
        logger.info(f"Flash identity: manufacturer=0x{manufacturer:02X}, device=0x{device:02X}")
        return manufacturer, device

    def read_chunk(self, addr: int, size: int) -> bytes:
        """Read one chunk of at most READ_CHUNK bytes."""
        if not 0 < size <= READ_CHUNK:
            raise ValueError(f"Chunk size must be 1..{READ_CHUNK}, got {size}")

        self.send_raw(bytes([CMD_READ]) + _address_bytes(addr) + struct.pack(">H", size))
        self._expect_ack(f"read at 0x{addr:06X}")
        return self.recv_raw(size)

    def erase_sector(self, addr: int) -> None:
        """Erase the sector starting at addr."""
        if addr % SECTOR_SIZE:
            raise ValueError(f"Sector address 0x{addr:06X} is not {SECTOR_SIZE}-aligned")

        self.send_raw(bytes([CMD_ERASE]) + _address_bytes(addr))
        self._expect_ack(f"erase at 0x{addr:06X}", timeout_override=self.erase_timeout)

    def program_page(self, addr: int, data: bytes) -> None:
        """Program at most one page of data."""
        if not 0 < len(data) <= PAGE_SIZE:
            raise ValueError(f"Page data must be 1..{PAGE_SIZE} bytes, got {len(data)}")

        self.send_raw(bytes([CMD_PROGRAM]) + _address_bytes(addr) + struct.pack(">H", len(data)) + data)
        self._expect_ack(f"program at 0x{addr:06X}")

    def read_region(
        self,
        offset: int,
        length: int,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Read length bytes starting at offset, in READ_CHUNK pieces.

        Args:
            offset: Start address
            length: Number of bytes
            progress_cb: Optional progress callback(bytes_read, total)
        """
        out = bytearray()
        end = offset + length

        for addr in range(offset, end, READ_CHUNK):
            size = min(READ_CHUNK, end - addr)
            out.extend(self._with_retries(
                f"Read at 0x{addr:06X}",
                lambda: self.read_chunk(addr, size),
            ))
            if progress_cb:
                progress_cb(len(out), length)

        logger.debug(f"Read 0x{offset:06X}-0x{end:06X}: {len(out)} bytes")
        return bytes(out)

    def write_region(
        self,
        offset: int,
        data: bytes,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Erase every sector covered by data, then program it page by page.

        offset and len(data) must both be sector-aligned; a partial sector
        write would erase bytes the caller did not supply.
        """
        if offset % SECTOR_SIZE or len(data) % SECTOR_SIZE:
            raise ValueError(
                f"Write 0x{offset:06X}+{len(data)} is not aligned to {SECTOR_SIZE}-byte sectors"
            )

        total = len(data)
        written = 0

        for sector in range(offset, offset + total, SECTOR_SIZE):
            self._with_retries(f"Erase at 0x{sector:06X}", lambda: self.erase_sector(sector))

            for addr in range(sector, sector + SECTOR_SIZE, PAGE_SIZE):
                page = data[addr - offset:addr - offset + PAGE_SIZE]
                self._with_retries(
                    f"Program at 0x{addr:06X}",
                    lambda: self.program_page(addr, page),
                )
                written += len(page)
                if progress_cb:
                    progress_cb(written, total)

        logger.info(f"Wrote 0x{offset:06X}-0x{offset + total:06X}: {total} bytes")

