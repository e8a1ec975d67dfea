"""
Line transports for the uArm link.

LineTransport allows transparent substitution between real hardware and the
simulator. SerialLineTransport talks to the arm through pyserial.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

import serial
from serial import SerialException

from uarm_client.config.models import SerialConfig
from uarm_client.utils.exceptions import (
    PortInUseError,
    PortNotFoundError,
    TransportFault,
)


logger = logging.getLogger(__name__)


LineHandler = Callable[[str], None]
FaultHandler = Callable[[Exception], None]
OpenHandler = Callable[[], None]


class LineTransport(ABC):
    """Abstract base class for newline-delimited transports."""

    def __init__(self):
        self._on_line: Optional[LineHandler] = None
        self._on_fault: Optional[FaultHandler] = None
        self._on_open: Optional[OpenHandler] = None

    def bind(
        self,
        on_line: LineHandler,
        on_fault: Optional[FaultHandler] = None,
        on_open: Optional[OpenHandler] = None,
    ) -> None:
        """
        Register the callbacks driven by this transport.

        Args:
            on_line: Called once per received line (without line terminator).
            on_fault: Called when reading fails; the transport stops reading.
            on_open: Called once the device handle is open, before any line
                is delivered.
        """
        self._on_line = on_line
        self._on_fault = on_fault
        self._on_open = on_open

    def _emit_line(self, line: str) -> None:
        if self._on_line is not None:
            self._on_line(line)

    def _emit_fault(self, error: Exception) -> None:
        if self._on_fault is not None:
            self._on_fault(error)

    def _emit_open(self) -> None:
        if self._on_open is not None:
            self._on_open()

    @abstractmethod
    def open(self) -> None:
        """
        Open the device and start delivering lines.

        Raises:
            PortNotFoundError: If serial port does not exist.
            PortInUseError: If port is already open.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop reading and close the device."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def write_line(self, line: str) -> None:
        """
        Write one line; the newline terminator is appended here.

        Raises:
            TransportFault: If the device write fails.
        """
        pass


class SerialLineTransport(LineTransport):
    """Newline-delimited transport over an RS-232/USB serial port."""

    DATA_BITS = serial.EIGHTBITS
    PARITY = serial.PARITY_NONE
    STOP_BITS = serial.STOPBITS_ONE
    ENCODING = "ascii"

    def __init__(self, config: SerialConfig):
        """
        Args:
            config: Serial port configuration. `config.port` must be set.
        """
        super().__init__()
        self._config = config
        self._port: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()
        self._reader_thread: Optional[threading.Thread] = None
        self._running = threading.Event()

    @property
    def port_name(self) -> str:
        return self._config.port

    def open(self) -> None:
        if self.is_open():
            logger.warning("Already open")
            return

        port_name = self._config.port
        logger.info(f"Opening serial port {port_name} at {self._config.baud} baud")

        try:
            self._port = serial.Serial(
                port=port_name,
                baudrate=self._config.baud,
                bytesize=self.DATA_BITS,
                parity=self.PARITY,
                stopbits=self.STOP_BITS,
                timeout=self._config.read_timeout_seconds,
                write_timeout=self._config.read_timeout_seconds,
            )
        except SerialException as e:
            error_msg = str(e).lower()
            if "access" in error_msg or "permission" in error_msg or "in use" in error_msg or "busy" in error_msg:
                raise PortInUseError(f"{port_name} is already in use by another application") from e
            raise PortNotFoundError(f"Failed to open {port_name}: {e}") from e

        self._port.reset_input_buffer()
        self._port.reset_output_buffer()

        self._emit_open()

        self._running.set()
        self._reader_thread = threading.Thread(
            target=self._read_loop,
            name=f"uarm-reader-{port_name}",
            daemon=True,
        )
        self._reader_thread.start()

    def close(self) -> None:
        self._running.clear()

        port = self._port
        if port is not None and port.is_open:
            port.close()
            logger.info("Serial port closed")

        thread = self._reader_thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)

        self._reader_thread = None
        self._port = None

    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    def write_line(self, line: str) -> None:
        with self._write_lock:
            if not self.is_open():
                raise TransportFault("Serial port not open")
            try:
                self._port.write(f"{line}\n".encode(self.ENCODING))
                self._port.flush()
            except (SerialException, OSError) as e:
                raise TransportFault(f"Write to {self._config.port} failed: {e}") from e

    def _read_loop(self) -> None:
        """Reader thread: deliver lines until closed or the device fails."""
        logger.debug("Reader thread started")
        try:
            while self._running.is_set():
                port = self._port
                if port is None:
                    break
                raw = port.readline()
                if not raw:
                    # Read timeout, no data
                    continue
                line = raw.decode(self.ENCODING, errors="replace").strip("\r\n")
                if line:
                    self._emit_line(line)
        except (SerialException, OSError, TypeError, AttributeError) as e:
            # pyserial raises TypeError/AttributeError when the port is closed under a blocking read
            if self._running.is_set():
                logger.error(f"Serial read failed: {e}")
                self._running.clear()
                self._emit_fault(TransportFault(f"Read from {self._config.port} failed: {e}"))
        finally:
            logger.debug("Reader thread finished")
