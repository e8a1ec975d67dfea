"""
Serial port enumeration and uArm discovery.

The arm enumerates as an Arduino (Mega 2560) USB device, so by default the
first port whose manufacturer mentions "Arduino" is taken.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

import serial.tools.list_ports

from uarm_client.utils.exceptions import DeviceNotFoundError


logger = logging.getLogger(__name__)

DEFAULT_MANUFACTURER_PATTERN = "Arduino"


@dataclass
class PortInfo:
    """Information about an available serial port."""

    name: str
    description: str
    hardware_id: str
    manufacturer: str = ""


PortPredicate = Callable[[PortInfo], bool]


def list_available_ports() -> List[PortInfo]:
    """
    List all serial ports on the system, sorted by name.
    """
    ports = [
        PortInfo(
            name=port.device,
            description=port.description or "Unknown",
            hardware_id=port.hwid or "",
            manufacturer=port.manufacturer or "",
        )
        for port in serial.tools.list_ports.comports()
    ]
    ports.sort(key=lambda p: p.name)

    logger.debug(f"Found {len(ports)} serial ports")
    return ports


def manufacturer_matches(pattern: str = DEFAULT_MANUFACTURER_PATTERN) -> PortPredicate:
    """Predicate accepting ports whose manufacturer matches `pattern` (case-insensitive)."""
    regexp = re.compile(pattern, re.IGNORECASE)
    return lambda port: bool(regexp.search(port.manufacturer))


def find_port(
    accept: Optional[PortPredicate] = None,
    ports: Optional[List[PortInfo]] = None,
) -> PortInfo:
    """
    Find the first serial port accepted by `accept`.

    Args:
        accept: Predicate over PortInfo. Defaults to an "Arduino" manufacturer match.
        ports: Ports to search. Defaults to list_available_ports().

    Returns:
        First accepted port.

    Raises:
        TypeError: If `accept` is not callable.
        DeviceNotFoundError: If no port is accepted.
    """
    if accept is None:
        accept = manufacturer_matches()
    if not callable(accept):
        raise TypeError(f"accept must be callable, got {type(accept).__name__}")

    if ports is None:
        ports = list_available_ports()

    for port in ports:
        if accept(port):
            logger.info(f"Found uArm serial port: {port.name} ({port.description})")
            return port

    seen = ", ".join(p.name for p in ports) or "none"
    raise DeviceNotFoundError(f"No acceptable serial port found. Available ports: {seen}")
