"""
uArm command catalogue.

Each method encodes one G-code/M-code/P-code template, sends it over the
link and parses the reply payload.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Optional, Union

from uarm_client.config.models import RobotConfig
from uarm_client.protocol.link import UArmLink
from uarm_client.robot import constants as c
from uarm_client.utils.exceptions import ResponseParseError


logger = logging.getLogger(__name__)

_NUMBER = r"(-?\d+(?:\.\d+)?)"
_CARTESIAN_REPLY = re.compile(rf"^ok\sX{_NUMBER}\sY{_NUMBER}\sZ{_NUMBER}")
_POLAR_REPLY = re.compile(rf"^ok\sS{_NUMBER}\sR{_NUMBER}\sH{_NUMBER}")
_JOINTS_REPLY = re.compile(rf"^ok\sB{_NUMBER}\sL{_NUMBER}\sR{_NUMBER}")
_SWITCH_REPLY = re.compile(r"^ok\sV([01])\b")
_MODE_REPLY = re.compile(r"^ok\sV([0-3])\b")


@dataclass(frozen=True)
class CartesianPosition:
    """Position in mm."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class PolarPosition:
    """Stretch (mm), rotation (degrees), height (mm)."""
    stretch: float
    rotation: float
    height: float


@dataclass(frozen=True)
class JointAngles:
    """Bottom, left and right joint angles in degrees."""
    bottom: float
    left: float
    right: float


def _expect_ok(command: str, payload: str) -> None:
    if payload != "ok":
        raise ResponseParseError(f"Didn't get \"ok\" as response to {command}, got {payload!r}")


def _match(regexp: "re.Pattern", command: str, payload: str) -> "re.Match":
    if not payload.startswith("ok"):
        raise ResponseParseError(f"Didn't get \"ok\" as response to {command}, got {payload!r}")
    match = regexp.match(payload)
    if not match:
        raise ResponseParseError(f"Unable to parse response to {command}: {payload!r}")
    return match


def _value(command: str, payload: str) -> str:
    """Extract the value of an "ok V<value>" reply."""
    if payload == "ok":
        return ""
    if not payload.startswith("ok "):
        raise ResponseParseError(f"Didn't get \"ok\" as response to {command}, got {payload!r}")
    value = payload[3:].strip()
    return value[1:] if value.startswith("V") else value


class UArm:
    """
    High-level uArm Swift API.

    All methods block until the controller replies and raise the classified
    DeviceError when it reports one.
    """

    def __init__(self, link: UArmLink, config: Optional[RobotConfig] = None):
        """
        Args:
            link: An open (READY) link.
            config: Speed and gripper timing defaults.
        """
        self.link = link
        self.config = config or RobotConfig()

    def _request(self, command: str) -> str:
        return self.link.request(command)

    def _speed(self, speed: Optional[int]) -> int:
        return speed or self.config.default_speed

    # Queries

    def get_position(self, mode: int = c.CARTESIAN_MODE) -> Union[CartesianPosition, PolarPosition]:
        """
        Get current position of the arm.

        Args:
            mode: CARTESIAN_MODE or POLAR_MODE.
        """
        if mode == c.CARTESIAN_MODE:
            payload = self._request(c.CMD_GET_POSITION_CARTESIAN)
            x, y, z = _match(_CARTESIAN_REPLY, c.CMD_GET_POSITION_CARTESIAN, payload).groups()
            return CartesianPosition(float(x), float(y), float(z))

        if mode == c.POLAR_MODE:
            payload = self._request(c.CMD_GET_POSITION_POLAR)
            s, r, h = _match(_POLAR_REPLY, c.CMD_GET_POSITION_POLAR, payload).groups()
            return PolarPosition(float(s), float(r), float(h))

        raise ValueError(f"Invalid position mode: {mode}. Must be CARTESIAN_MODE or POLAR_MODE")

    def get_joints_angle(self) -> JointAngles:
        payload = self._request(c.CMD_GET_JOINTS_ANGLE)
        b, l, r = _match(_JOINTS_REPLY, c.CMD_GET_JOINTS_ANGLE, payload).groups()
        return JointAngles(float(b), float(l), float(r))

    def get_device_name(self) -> str:
        return _value(c.CMD_GET_DEVICE_NAME, self._request(c.CMD_GET_DEVICE_NAME))

    def get_hardware_version(self) -> str:
        return _value(c.CMD_GET_HARDWARE_VERSION, self._request(c.CMD_GET_HARDWARE_VERSION))

    def get_software_version(self) -> str:
        return _value(c.CMD_GET_SOFTWARE_VERSION, self._request(c.CMD_GET_SOFTWARE_VERSION))

    def get_api_version(self) -> str:
        return _value(c.CMD_GET_API_VERSION, self._request(c.CMD_GET_API_VERSION))

    def get_uid(self) -> str:
        return _value(c.CMD_GET_UID, self._request(c.CMD_GET_UID))

    def get_pump_status(self) -> bool:
        payload = self._request(c.CMD_GET_PUMP_STATUS)
        return _match(_SWITCH_REPLY, c.CMD_GET_PUMP_STATUS, payload).group(1) == "1"

    def get_gripper_status(self) -> bool:
        payload = self._request(c.CMD_GET_GRIPPER_STATUS)
        return _match(_SWITCH_REPLY, c.CMD_GET_GRIPPER_STATUS, payload).group(1) == "1"

    def get_current_mode(self) -> int:
        """Work mode: MODE_NORMAL, MODE_LASER, MODE_3D_PRINTING or MODE_UNIVERSAL_HOLDER."""
        payload = self._request(c.CMD_GET_MODE)
        return int(_match(_MODE_REPLY, c.CMD_GET_MODE, payload).group(1))

    # Motion

    def move(self, x: float, y: float, z: float, speed: Optional[int] = None) -> None:
        """Move to absolute Cartesian coordinates (mm, speed in mm/min)."""
        command = f"G0 X{x:.4f} Y{y:.4f} Z{z:.4f} F{self._speed(speed)}"
        _expect_ok(command, self._request(command))

    def move_polar(self, stretch: float, rotation: float, height: float, speed: Optional[int] = None) -> None:
        """Move to absolute polar coordinates."""
        command = f"G2201 S{stretch} R{rotation} H{height} F{self._speed(speed)}"
        _expect_ok(command, self._request(command))

    def move_relative(self, x: float = 0, y: float = 0, z: float = 0, speed: Optional[int] = None) -> None:
        """Move relative to the current Cartesian position."""
        command = f"G2204 X{x:.4f} Y{y:.4f} Z{z:.4f} F{self._speed(speed)}"
        _expect_ok(command, self._request(command))

    def move_polar_relative(
        self, stretch: float = 0, rotation: float = 0, height: float = 0, speed: Optional[int] = None
    ) -> None:
        command = f"G2205 S{stretch} R{rotation} H{height} F{self._speed(speed)}"
        _expect_ok(command, self._request(command))

    def move_motor(self, joint_id: int, angle: float) -> None:
        """
        Set one servo to an angle.

        Args:
            joint_id: Servo id (0-3).
            angle: Angle in degrees (0-180).

        Raises:
            ValueError: If joint_id or angle is out of range.
        """
        if joint_id not in (c.SERVO_BOTTOM, c.SERVO_LEFT, c.SERVO_RIGHT, c.SERVO_HAND):
            raise ValueError(f"Invalid joint id: {joint_id}. Must be 0-3")
        if angle < 0 or angle > 180:
            raise ValueError(f"Angle must be 0-180, got {angle}")

        command = f"G2202 N{joint_id} V{angle}"
        _expect_ok(command, self._request(command))

    def set_wrist(self, angle: float) -> None:
        self.move_motor(c.SERVO_HAND, angle)

    def delay(self, milliseconds: int) -> None:
        """Make the controller pause its command queue."""
        command = f"G2004 P{milliseconds}"
        _expect_ok(command, self._request(command))

    # End effectors

    def buzz(self, frequency: int = 1000, duration_ms: int = 300) -> None:
        command = f"M2210 F{frequency} T{duration_ms}"
        _expect_ok(command, self._request(command))

    def set_pump(self, on: bool) -> None:
        command = f"M2231 V{1 if on else 0}"
        _expect_ok(command, self._request(command))

    def set_gripper(self, on: bool, delay_ms: Optional[int] = None) -> None:
        """
        Close (on) or open the gripper.

        The controller answers "ok" as soon as the gripper starts moving, so
        this waits `delay_ms` (or the configured close/open delay) before
        returning.
        """
        command = f"M2232 V{1 if on else 0}"
        _expect_ok(command, self._request(command))

        if delay_ms is None:
            delay_ms = self.config.gripper_close_delay_ms if on else self.config.gripper_open_delay_ms
        if delay_ms > 0:
            logger.debug(f"Waiting {delay_ms}ms for gripper to {'close' if on else 'open'}")
            time.sleep(delay_ms / 1000.0)
