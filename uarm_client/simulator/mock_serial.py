"""
Mock line transport for the uArm simulator.

Emulates the controller firmware without a physical device: prints a boot
banner and the ready sentinel on open, then answers every framed command
(``#<id> <command>``) with ``$<id> <payload>``.
"""

import logging
import math
import re
import threading
from typing import Callable, Dict, List, Optional, Tuple

from uarm_client.config.models import SimulatorConfig
from uarm_client.protocol.transport import LineTransport
from uarm_client.utils.exceptions import TransportFault


logger = logging.getLogger(__name__)

_PARAM = re.compile(r"([A-Z])(-?[0-9.]+)")

ERROR_COMMAND_NOT_EXIST = 20
ERROR_PARAMETER = 21


class MockLineTransport(LineTransport):
    """
    Simulated uArm Swift controller.

    Replies are delivered synchronously from write_line() unless
    `hold_replies` is set, in which case they queue until release_replies().
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        sentinel: str = "@5 V1",
        send_prefix: str = "#",
        send_ready: bool = True,
    ):
        """
        Args:
            config: Simulator configuration.
            sentinel: Ready line printed after the boot banner.
            send_prefix: Prefix of framed command lines.
            send_ready: If False, the simulated controller never becomes ready.
        """
        super().__init__()
        self.config = config or SimulatorConfig()
        self._sentinel = sentinel
        self._framed = re.compile(rf"^{re.escape(send_prefix)}(\d+)\s+(.*)$")
        self._send_ready = send_ready
        self._open = False
        self._lock = threading.Lock()

        # Virtual hardware state
        self._x = self.config.initial_x
        self._y = self.config.initial_y
        self._z = self.config.initial_z
        self._pump = False
        self._gripper = False
        self._mode = 0
        self._wrist = 90.0

        self.hold_replies = False
        self._held: List[str] = []
        self.received: List[str] = []

        self._handlers: Dict[str, Callable[[Dict[str, float]], str]] = {
            "P2200": self._handle_joints,
            "P2201": lambda p: f"ok V{self.config.device_name}",
            "P2202": lambda p: f"ok V{self.config.hardware_version}",
            "P2203": lambda p: f"ok V{self.config.software_version}",
            "P2204": lambda p: f"ok V{self.config.api_version}",
            "P2205": lambda p: f"ok V{self.config.uid}",
            "P2220": lambda p: f"ok X{self._x:.4f} Y{self._y:.4f} Z{self._z:.4f}",
            "P2221": self._handle_polar_position,
            "P2231": lambda p: f"ok V{int(self._pump)}",
            "P2232": lambda p: f"ok V{int(self._gripper)}",
            "P2400": lambda p: f"ok V{self._mode}",
            "G0": self._handle_move,
            "G2201": self._handle_move_polar,
            "G2202": self._handle_servo,
            "G2204": self._handle_move_relative,
            "G2205": self._handle_move_polar_relative,
            "G2004": self._handle_ok,
            "M2210": self._handle_ok,
            "M2231": self._handle_pump,
            "M2232": self._handle_gripper,
        }

        logger.info("MockLineTransport initialized")

    @property
    def position(self) -> Tuple[float, float, float]:
        return (self._x, self._y, self._z)

    def open(self) -> None:
        with self._lock:
            if self._open:
                logger.warning("Already open")
                return
            self._open = True

        logger.info("Simulator port opened")
        self._emit_open()

        for line in self.config.boot_banner:
            self._emit_line(line)
        if self._send_ready:
            self._emit_line(self._sentinel)

    def close(self) -> None:
        with self._lock:
            if not self._open:
                return
            self._open = False
            self._held.clear()
        logger.info("Simulator port closed")

    def is_open(self) -> bool:
        return self._open

    def write_line(self, line: str) -> None:
        if not self._open:
            raise TransportFault("Simulator port not open")

        self.received.append(line)
        reply = self._respond(line)
        if reply is None:
            return

        if self.hold_replies:
            self._held.append(reply)
        else:
            self._emit_line(reply)

    def release_replies(self, order: Optional[List[int]] = None) -> None:
        """
        Deliver held replies.

        Args:
            order: Indexes into the held list giving delivery order. Defaults
                to arrival order.
        """
        held, self._held = self._held, []
        if order is None:
            order = list(range(len(held)))
        for index in order:
            self._emit_line(held[index])

    def emit_status(self, payload: str, status_id: int = 3) -> None:
        """Push an unsolicited status tick, e.g. ``@3 ...``."""
        self._emit_line(f"@{status_id} {payload}")

    def emit_raw(self, line: str) -> None:
        self._emit_line(line)

    def fail(self, error: Exception) -> None:
        """Simulate the device disappearing."""
        self._open = False
        self._emit_fault(error)

    def _respond(self, line: str) -> Optional[str]:
        match = self._framed.match(line)
        if not match:
            logger.warning(f"[SIMULATOR] Unframed line ignored: {line!r}")
            return None

        message_id = int(match.group(1))
        words = match.group(2).split()
        code = words[0]

        if self.config.inject_error_code is not None:
            logger.warning("[SIMULATOR] Injected error for testing")
            return f"E{message_id} {self.config.inject_error_code}"

        handler = self._handlers.get(code)
        if handler is None:
            logger.warning(f"[SIMULATOR] Unknown command: {code}")
            return f"${message_id} E{ERROR_COMMAND_NOT_EXIST}"

        try:
            params = {key: float(value) for key, value in _PARAM.findall(" ".join(words[1:]))}
            payload = handler(params)
        except (KeyError, ValueError) as e:
            logger.warning(f"[SIMULATOR] Bad or missing parameter {e} for {code}")
            return f"E{message_id} {ERROR_PARAMETER}"

        logger.debug(f"[SIMULATOR] RX: {line} -> TX: ${message_id} {payload}")
        return f"${message_id} {payload}"

    def _handle_ok(self, params: Dict[str, float]) -> str:
        return "ok"

    def _polar(self) -> Tuple[float, float, float]:
        stretch = math.hypot(self._x, self._y)
        rotation = math.degrees(math.atan2(self._y, self._x)) + 90.0
        return stretch, rotation, self._z

    def _handle_polar_position(self, params: Dict[str, float]) -> str:
        s, r, h = self._polar()
        return f"ok S{s:.4f} R{r:.4f} H{h:.4f}"

    def _handle_joints(self, params: Dict[str, float]) -> str:
        _, rotation, _ = self._polar()
        return f"ok B{rotation:.4f} L{90.0:.4f} R{self._wrist:.4f}"

    def _handle_move(self, params: Dict[str, float]) -> str:
        self._x, self._y, self._z = params["X"], params["Y"], params["Z"]
        return "ok"

    def _handle_move_relative(self, params: Dict[str, float]) -> str:
        self._x += params.get("X", 0.0)
        self._y += params.get("Y", 0.0)
        self._z += params.get("Z", 0.0)
        return "ok"

    def _set_polar(self, stretch: float, rotation: float, height: float) -> None:
        angle = math.radians(rotation - 90.0)
        self._x = stretch * math.cos(angle)
        self._y = stretch * math.sin(angle)
        self._z = height

    def _handle_move_polar(self, params: Dict[str, float]) -> str:
        self._set_polar(params["S"], params["R"], params["H"])
        return "ok"

    def _handle_move_polar_relative(self, params: Dict[str, float]) -> str:
        s, r, h = self._polar()
        self._set_polar(s + params.get("S", 0.0), r + params.get("R", 0.0), h + params.get("H", 0.0))
        return "ok"

    def _handle_servo(self, params: Dict[str, float]) -> str:
        joint, angle = int(params["N"]), params["V"]
        if joint == 3:
            self._wrist = angle
        return "ok"

    def _handle_pump(self, params: Dict[str, float]) -> str:
        self._pump = params["V"] == 1
        return "ok"

    def _handle_gripper(self, params: Dict[str, float]) -> str:
        self._gripper = params["V"] == 1
        return "ok"
