"""
Protocol message logger for debugging serial communication.

Keeps the last N lines sent to and received from the arm, with timestamps.
"""

import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional


@dataclass
class ProtocolMessage:
    """A single protocol line (TX, RX or ERR)."""
    timestamp: str
    direction: str  # "TX", "RX" or "ERR"
    line: str
    kind: Optional[str] = None
    message_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class ProtocolLogger:
    """
    Thread-safe ring buffer of protocol lines.
    """

    DEFAULT_MAX_MESSAGES = 500

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES):
        self._messages: deque = deque(maxlen=max_messages)
        self._lock = threading.Lock()
        self._enabled = True
        self._tx_count = 0
        self._rx_count = 0
        self._error_count = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @staticmethod
    def _now() -> str:
        return datetime.now().isoformat(timespec="milliseconds")

    def log_tx(self, line: str) -> None:
        """Record a line written to the arm."""
        if not self._enabled:
            return
        with self._lock:
            self._tx_count += 1
            self._messages.append(ProtocolMessage(self._now(), "TX", line, kind="command"))

    def log_rx(self, line: str, kind: Optional[str] = None, message_id: Optional[int] = None) -> None:
        """Record a line received from the arm, with its classification if known."""
        if not self._enabled:
            return
        with self._lock:
            self._rx_count += 1
            self._messages.append(
                ProtocolMessage(self._now(), "RX", line, kind=kind, message_id=message_id)
            )

    def log_error(self, error_msg: str, line: str = "") -> None:
        """Record a protocol or device error."""
        if not self._enabled:
            return
        with self._lock:
            self._error_count += 1
            self._messages.append(
                ProtocolMessage(self._now(), "ERR", line, error=error_msg)
            )

    def get_messages(self, limit: int = 100) -> List[dict]:
        """
        Get the most recent messages.

        Returns:
            Up to `limit` message dicts, oldest first.
        """
        with self._lock:
            messages = list(self._messages)
        if len(messages) > limit:
            messages = messages[-limit:]
        return [m.to_dict() for m in messages]

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "total_messages": len(self._messages),
                "tx_count": self._tx_count,
                "rx_count": self._rx_count,
                "error_count": self._error_count,
                "max_messages": self._messages.maxlen,
                "enabled": self._enabled,
            }

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            self._tx_count = 0
            self._rx_count = 0
            self._error_count = 0


# Global instance
_logger: Optional[ProtocolLogger] = None


def get_protocol_logger() -> ProtocolLogger:
    """Get or create the global protocol logger."""
    global _logger
    if _logger is None:
        _logger = ProtocolLogger()
    return _logger
