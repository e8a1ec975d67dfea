"""
Command line entry point for the uArm client.

Usage:
    python -m uarm_client [--config CONFIG_PATH] [--port PORT] [--simulator] {info,position,buzz,ports}
"""

import argparse
import logging
import sys
from typing import Optional

from uarm_client import __version__
from uarm_client.config.loader import ConfigurationError, load_config
from uarm_client.config.models import AppConfig
from uarm_client.protocol.link import StatusReport, UArmLink
from uarm_client.protocol.port_scanner import find_port, list_available_ports, manufacturer_matches
from uarm_client.protocol.transport import LineTransport, SerialLineTransport
from uarm_client.robot.arm import UArm
from uarm_client.simulator.mock_serial import MockLineTransport
from uarm_client.utils.exceptions import DeviceError, DriverError, UArmException
from uarm_client.utils.logging_setup import setup_logging


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="uArm Swift serial client")
    parser.add_argument(
        "--config",
        type=str,
        default="uarm_config.json",
        help="Path to configuration file (default: uarm_config.json)"
    )
    parser.add_argument("--port", type=str, default=None, help="Serial port, overrides config and discovery")
    parser.add_argument("--simulator", action="store_true", help="Use the simulated arm")
    parser.add_argument(
        "action",
        choices=["info", "position", "buzz", "ports"],
        nargs="?",
        default="info",
        help="What to do once connected (default: info)"
    )
    return parser


def create_transport(config: AppConfig, port: Optional[str] = None, use_simulator: bool = False) -> LineTransport:
    """
    Pick the transport: simulator, explicit port, configured port, or discovery.

    Raises:
        DeviceNotFoundError: If discovery finds no matching port.
        DriverError: If no port is given and discovery is disabled.
    """
    if use_simulator or config.simulator.enabled:
        logger.info("Using SIMULATOR mode")
        return MockLineTransport(
            config.simulator,
            sentinel=config.protocol.ready_sentinel,
            send_prefix=config.protocol.send_prefix,
        )

    port_to_use = port or config.serial.port

    if not port_to_use:
        if not config.serial.auto_discover:
            raise DriverError("No serial port specified and auto-discover is disabled")

        logger.info("Auto-discovering uArm...")
        port_to_use = find_port(manufacturer_matches(config.serial.manufacturer_pattern)).name

    serial_config = config.serial.model_copy(update={"port": port_to_use})
    return SerialLineTransport(serial_config)


def _log_status(report: StatusReport) -> None:
    logger.info(f"UARM REPORTED: {report.message_id} {report.payload}")


def _log_error(error: Exception) -> None:
    logger.debug(f"Link error observed: {error!r}")


def run_action(arm: UArm, action: str) -> None:
    if action == "info":
        print(f"Device:   {arm.get_device_name()}")
        print(f"Hardware: {arm.get_hardware_version()}")
        print(f"Firmware: {arm.get_software_version()}")
        print(f"API:      {arm.get_api_version()}")
        print(f"UID:      {arm.get_uid()}")
    elif action == "position":
        position = arm.get_position()
        print(f"X={position.x:.2f} Y={position.y:.2f} Z={position.z:.2f}")
    elif action == "buzz":
        arm.buzz()


def main(argv=None) -> int:
    """Main application entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)
    logger.info(f"uArm client v{__version__}")

    if args.action == "ports":
        for port in list_available_ports():
            print(f"{port.name}\t{port.manufacturer or '-'}\t{port.description}")
        return 0

    try:
        transport = create_transport(config, port=args.port, use_simulator=args.simulator)
    except DriverError as e:
        logger.error(str(e))
        return 1

    link = UArmLink(transport, config.protocol, on_error=_log_error, on_status=_log_status)

    try:
        link.open()
        run_action(UArm(link, config.robot), args.action)
    except DeviceError as e:
        logger.error(f"Device error: {e}")
        return 1
    except UArmException as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        link.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
