from __future__ import annotations

import logging
import sys
import time
from typing import Final, Optional, Tuple, Type

import serial

_logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE: Final[int] = 115200
DEFAULT_QUIESCENCE: Final[float] = 0.5
DEFAULT_MAX_MESSAGE: Final[int] = 512

# pyserial lets raw OS errors through (ioctl, tcdrain) on top of its own exceptions
_IO_ERRORS: Tuple[Type[BaseException], ...] = (serial.SerialException, OSError)
if sys.platform != "win32":
    import termios

    _IO_ERRORS += (termios.error,)


class TransportError(serial.SerialException):
    """Hard failure of the underlying serial transport during a read or write."""


class Comm:
    """
    Serial channel with quiescence framing.
    A message is whatever accumulates until the line stays silent for the
    quiescence window, so no delimiter or length prefix is sent on the wire.
    Features:
        - 8N1, no flow control
        - Writes loop until every byte has been accepted
        - Reads stop at max_message bytes or on inter-byte silence
    """

    _serial: serial.Serial
    _quiescence: float
    _max_message: int

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE, quiescence: float = DEFAULT_QUIESCENCE, *, max_message: int = DEFAULT_MAX_MESSAGE, **serial_kwargs) -> None:
        """
        Open the serial port.
        Args:
            port (str): Device path (e.g. /dev/ttyUSB0, COM3) or pyserial URL (e.g. loop://)
            baudrate (int): Baud rate
            quiescence (float): Inter-byte silence, in seconds, that ends a message
            max_message (int): Maximum message size in bytes
            serial_kwargs: Additional serial.Serial arguments
        Raises:
            serial.SerialException: If the port cannot be opened
        """
        self._serial = serial.serial_for_url(
            port,
            baudrate=baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=quiescence,
            write_timeout=1.0,
            **serial_kwargs,
        )
        self._quiescence = float(quiescence)
        self._max_message = int(max_message)
        _logger.debug("Opened %s at %d baud (quiescence %.2fs)", port, baudrate, self._quiescence)

    @property
    def port(self) -> Optional[str]:
        return self._serial.port

    @property
    def max_message(self) -> int:
        return self._max_message

    def close(self) -> None:
        """
        Close the serial port. Safe to call more than once.
        """
        if self._serial.is_open:
            self._serial.close()

    def __enter__(self) -> "Comm":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, data: bytes) -> int:
        """
        Write all of `data` to the serial port.
        Args:
            data (bytes): Bytes to send
        Returns:
            int: Number of bytes written
        Raises:
            ValueError: If data exceeds max_message
            TransportError: If the port fails or stops accepting bytes
        """
        raw = bytes(data)
        if len(raw) > self._max_message:
            raise ValueError(f"message too large (max {self._max_message} bytes)")
        total = 0
        try:
            while total < len(raw):
                n = self._serial.write(raw[total:])
                if not n:
                    raise TransportError(f"wrote {total} of {len(raw)} bytes")
                total += n
            self._serial.flush()
        except TransportError:
            raise
        except _IO_ERRORS as ex:
            raise TransportError(str(ex)) from ex
        return total

    def read(self, count: Optional[int] = None, timeout: Optional[float] = None) -> bytes:
        """
        Read one message from the serial port.
        Args:
            count (int, optional): Maximum bytes to collect (default: max_message)
            timeout (float, optional): How long to wait for the first byte; None waits forever
        Returns:
            bytes: The collected message, or b"" if no byte arrived within timeout
        Raises:
            TransportError: If the port fails
        """
        limit = self._max_message if count is None else int(count)
        deadline = time.time() + timeout if timeout is not None else None
        buf = bytearray()
        try:
            # block until the first byte
            while not buf:
                if deadline is not None and time.time() >= deadline:
                    return b""
                buf += self._serial.read(1)

            # then collect until the line goes quiet
            while len(buf) < limit:
                n = min(self._serial.in_waiting or 1, limit - len(buf))
                chunk = self._serial.read(n)
                if not chunk:
                    break
                buf += chunk
        except _IO_ERRORS as ex:
            raise TransportError(str(ex)) from ex
        return bytes(buf)

    def send_message(self, text: str) -> int:
        """Send one ASCII message."""
        return self.write(text.encode("ascii", errors="replace"))

    def receive_message(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Receive one ASCII message with NUL padding and surrounding whitespace removed.
        Returns:
            str or None: The message, or None on timeout
        """
        data = self.read(timeout=timeout)
        if not data:
            return None
        return data.decode("ascii", errors="replace").replace("\x00", "").strip()
