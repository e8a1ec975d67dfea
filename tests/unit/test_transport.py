"""Unit tests for SerialLineTransport with a mocked pyserial port."""

import threading
import time
from unittest.mock import Mock, patch

import pytest
from serial import SerialException

from uarm_client.config.models import SerialConfig
from uarm_client.protocol.transport import SerialLineTransport
from uarm_client.utils.exceptions import PortInUseError, PortNotFoundError, TransportFault


def scripted_readline(*chunks):
    """readline() replacement returning `chunks` once, then idling like a read timeout."""
    remaining = list(chunks)

    def readline():
        if remaining:
            item = remaining.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        time.sleep(0.01)
        return b""

    return readline


@pytest.fixture
def config():
    return SerialConfig(port="/dev/ttyACM0", read_timeout_seconds=0.1)


@pytest.fixture
def mock_port():
    port = Mock()
    port.is_open = True
    port.readline.side_effect = scripted_readline()
    return port


@pytest.fixture
def transport(config):
    transport = SerialLineTransport(config)
    yield transport
    transport.close()


class TestOpen:
    """Test opening the serial port."""

    @patch("serial.Serial")
    def test_opens_with_8n1(self, mock_serial, transport, mock_port):
        mock_serial.return_value = mock_port

        transport.open()

        kwargs = mock_serial.call_args.kwargs
        assert kwargs["port"] == "/dev/ttyACM0"
        assert kwargs["baudrate"] == 115200
        assert kwargs["bytesize"] == 8
        assert kwargs["parity"] == "N"
        assert kwargs["stopbits"] == 1
        assert transport.is_open()
        mock_port.reset_input_buffer.assert_called_once()

    @patch("serial.Serial")
    def test_on_open_called(self, mock_serial, transport, mock_port):
        mock_serial.return_value = mock_port
        on_open = Mock()
        transport.bind(Mock(), on_open=on_open)

        transport.open()

        on_open.assert_called_once_with()

    @patch("serial.Serial")
    def test_permission_denied_is_port_in_use(self, mock_serial, transport):
        mock_serial.side_effect = SerialException("[Errno 13] Permission denied: '/dev/ttyACM0'")

        with pytest.raises(PortInUseError):
            transport.open()

    @patch("serial.Serial")
    def test_missing_port(self, mock_serial, transport):
        mock_serial.side_effect = SerialException("[Errno 2] No such file or directory: '/dev/ttyACM0'")

        with pytest.raises(PortNotFoundError):
            transport.open()
        assert not transport.is_open()


class TestReadWrite:
    """Test line framing in both directions."""

    @patch("serial.Serial")
    def test_write_appends_newline(self, mock_serial, transport, mock_port):
        mock_serial.return_value = mock_port
        transport.open()

        transport.write_line("#1 P2220")

        mock_port.write.assert_called_once_with(b"#1 P2220\n")

    def test_write_when_closed(self, transport):
        with pytest.raises(TransportFault):
            transport.write_line("#1 P2220")

    @patch("serial.Serial")
    def test_write_failure_is_transport_fault(self, mock_serial, transport, mock_port):
        mock_serial.return_value = mock_port
        mock_port.write.side_effect = SerialException("write failed")
        transport.open()

        with pytest.raises(TransportFault):
            transport.write_line("#1 P2220")

    @patch("serial.Serial")
    def test_reader_delivers_stripped_lines(self, mock_serial, transport, mock_port):
        mock_port.readline.side_effect = scripted_readline(b"@5 V1\r\n", b"\r\n", b"$1 ok\n")
        mock_serial.return_value = mock_port
        lines = []
        done = threading.Event()

        def on_line(line):
            lines.append(line)
            if len(lines) == 2:
                done.set()

        transport.bind(on_line)
        transport.open()

        assert done.wait(timeout=2.0)
        assert lines == ["@5 V1", "$1 ok"]

    @patch("serial.Serial")
    def test_read_failure_reports_fault(self, mock_serial, transport, mock_port):
        mock_port.readline.side_effect = scripted_readline(SerialException("device disconnected"))
        mock_serial.return_value = mock_port
        faults = []
        done = threading.Event()

        def on_fault(error):
            faults.append(error)
            done.set()

        transport.bind(Mock(), on_fault=on_fault)
        transport.open()

        assert done.wait(timeout=2.0)
        assert isinstance(faults[0], TransportFault)
        assert "device disconnected" in str(faults[0])

    @patch("serial.Serial")
    def test_close(self, mock_serial, transport, mock_port):
        mock_serial.return_value = mock_port
        transport.open()

        transport.close()

        mock_port.close.assert_called_once()
        assert not transport.is_open()
