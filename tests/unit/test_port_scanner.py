"""Unit tests for serial port discovery with mocked pyserial."""

from unittest.mock import Mock, patch

import pytest

from uarm_client.protocol.port_scanner import (
    PortInfo,
    find_port,
    list_available_ports,
    manufacturer_matches,
)
from uarm_client.utils.exceptions import DeviceNotFoundError


def fake_port(device, manufacturer=None, description="n/a", hwid="USB"):
    port = Mock()
    port.device = device
    port.manufacturer = manufacturer
    port.description = description
    port.hwid = hwid
    return port


class TestListAvailablePorts:
    """Test port enumeration."""

    @patch("serial.tools.list_ports.comports")
    def test_sorted_and_normalized(self, mock_comports):
        mock_comports.return_value = [
            fake_port("/dev/ttyUSB1", None, None, None),
            fake_port("/dev/ttyACM0", "Arduino (www.arduino.cc)", "Arduino Mega 2560"),
        ]

        ports = list_available_ports()

        assert [p.name for p in ports] == ["/dev/ttyACM0", "/dev/ttyUSB1"]
        assert ports[1].description == "Unknown"
        assert ports[1].hardware_id == ""
        assert ports[1].manufacturer == ""

    @patch("serial.tools.list_ports.comports", return_value=[])
    def test_no_ports(self, mock_comports):
        assert list_available_ports() == []


class TestFindPort:
    """Test predicate-based discovery."""

    PORTS = [
        PortInfo("COM3", "Bluetooth link", "BTH", "Microsoft"),
        PortInfo("COM5", "Arduino Mega 2560", "USB VID:PID=2341:0042", "Arduino LLC"),
        PortInfo("COM7", "Arduino Uno", "USB VID:PID=2341:0043", "arduino srl"),
    ]

    def test_default_predicate_matches_arduino(self):
        assert find_port(ports=self.PORTS).name == "COM5"

    def test_custom_predicate(self):
        port = find_port(lambda p: p.hardware_id.endswith("0043"), ports=self.PORTS)

        assert port.name == "COM7"

    def test_manufacturer_pattern_case_insensitive(self):
        assert find_port(manufacturer_matches("SRL"), ports=self.PORTS).name == "COM7"

    def test_not_found_lists_ports(self):
        with pytest.raises(DeviceNotFoundError) as exc_info:
            find_port(lambda p: False, ports=self.PORTS)

        assert "COM3, COM5, COM7" in str(exc_info.value)

    def test_not_found_without_ports(self):
        with pytest.raises(DeviceNotFoundError) as exc_info:
            find_port(ports=[])

        assert "none" in str(exc_info.value)

    def test_predicate_must_be_callable(self):
        with pytest.raises(TypeError):
            find_port("Arduino", ports=self.PORTS)

    @patch("serial.tools.list_ports.comports")
    def test_scans_system_ports_by_default(self, mock_comports):
        mock_comports.return_value = [fake_port("/dev/ttyACM0", "Arduino (www.arduino.cc)")]

        assert find_port().name == "/dev/ttyACM0"
