"""
Readiness gate for the uArm link.

The controller prints a boot banner after the port opens and only accepts
commands once it has sent the ready sentinel (``@5 V1``). Until then every
inbound line is swallowed here.
"""

import logging
import threading
import time
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class LinkState(Enum):
    """Link state machine."""
    CLOSED = "closed"
    OPENING = "opening"                # Transport asked to open
    AWAITING_READY = "awaiting_ready"  # Port open, controller still booting
    READY = "ready"


class ReadinessGate:
    """
    Owns the LinkState and filters boot-banner lines.

    Transitions:
        CLOSED -> OPENING           begin_open()
        OPENING -> AWAITING_READY   transport_opened()
        AWAITING_READY -> READY     feed(sentinel)
        any -> CLOSED               close()
    """

    def __init__(self, sentinel: str):
        self._sentinel = sentinel
        self._state = LinkState.CLOSED
        self._lock = threading.Lock()
        self._ready_event = threading.Event()
        self._closed_event = threading.Event()
        self._closed_event.set()

    @property
    def state(self) -> LinkState:
        return self._state

    def is_ready(self) -> bool:
        return self._state == LinkState.READY

    def begin_open(self) -> None:
        """
        Move CLOSED -> OPENING.

        Raises:
            RuntimeError: If the gate is not CLOSED.
        """
        with self._lock:
            if self._state != LinkState.CLOSED:
                raise RuntimeError(f"Cannot open link in state {self._state.value}")
            self._ready_event.clear()
            self._closed_event.clear()
            self._state = LinkState.OPENING
        logger.debug("Link opening")

    def transport_opened(self) -> None:
        """Device handle is open; the controller is booting."""
        with self._lock:
            if self._state != LinkState.OPENING:
                logger.debug(f"Ignoring transport open in state {self._state.value}")
                return
            self._state = LinkState.AWAITING_READY
        logger.info("Serial port open, waiting for controller to become ready")

    def feed(self, line: str) -> Optional[str]:
        """
        Pass one inbound line through the gate.

        Returns:
            The line if it should reach the classifier, None if it was consumed
            (boot banner, the sentinel itself, or anything while not open).
        """
        with self._lock:
            state = self._state
            if state == LinkState.READY:
                return line

            if state == LinkState.AWAITING_READY and line == self._sentinel:
                self._state = LinkState.READY
                self._ready_event.set()
                logger.info("uArm is READY")
                return None

        if state in (LinkState.OPENING, LinkState.AWAITING_READY):
            logger.info(f"Boot: {line}")
        else:
            logger.debug(f"Dropping line received while {state.value}: {line}")
        return None

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until READY, the gate closes, or `timeout` elapses.

        Returns:
            True if READY was reached.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._ready_event.is_set() and not self._closed_event.is_set():
            step = 0.1
            if deadline is not None:
                step = min(step, deadline - time.monotonic())
                if step <= 0:
                    break
            self._ready_event.wait(step)
        return self.is_ready()

    def close(self) -> LinkState:
        """
        Move to CLOSED from any state.

        Returns:
            The state the gate was in before closing.
        """
        with self._lock:
            previous = self._state
            self._state = LinkState.CLOSED
            self._ready_event.clear()
            self._closed_event.set()
        if previous != LinkState.CLOSED:
            logger.debug(f"Link closed (was {previous.value})")
        return previous
