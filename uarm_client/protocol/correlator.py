"""
Request/reply correlation by message id.

Every outgoing command is framed as ``<prefix><id> <command>`` with a fresh
id. The controller echoes the id in its reply, which may arrive in any
order, so pending requests are looked up by id only.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from uarm_client.utils.exceptions import UnmatchedReplyError


logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """
    One in-flight command awaiting its reply.

    `completion` is a one-shot future: settling it a second time raises
    InvalidStateError.
    """
    message_id: int
    command: str
    issued_at: float
    completion: Future = field(default_factory=Future, repr=False)

    def done(self) -> bool:
        return self.completion.done()

    def result(self, timeout: Optional[float] = None) -> str:
        """
        Block until the request settles.

        Returns:
            Reply payload (text after the id).

        Raises:
            The classified error the request failed with.
            concurrent.futures.TimeoutError: If `timeout` elapses first.
        """
        return self.completion.result(timeout)


class RequestCorrelator:
    """
    Allocates message ids and settles pending requests when replies arrive.

    The pending table and the id counter are guarded by one lock; the write
    itself happens outside it so a reply delivered synchronously by the
    transport can settle the request without deadlocking.
    """

    def __init__(self, write_line: Callable[[str], None], send_prefix: str = "#"):
        """
        Args:
            write_line: Callable writing one line to the transport.
            send_prefix: Marker prepended to every outgoing line.
        """
        self._write_line = write_line
        self._send_prefix = send_prefix
        self._lock = threading.Lock()
        self._next_id = 1
        self._pending: Dict[int, PendingRequest] = {}

    def frame(self, message_id: int, command: str) -> str:
        """Build the wire line for a command, e.g. ``#1 P2220``."""
        return f"{self._send_prefix}{message_id} {command}"

    def send(self, command: str) -> PendingRequest:
        """
        Register and write one command.

        Args:
            command: Command text without prefix or id (e.g. "P2220").

        Returns:
            PendingRequest settled when the matching reply arrives.

        Raises:
            ValueError: If the command is empty or spans several lines.
            Whatever the transport raises on write. The request is then
            dropped from the pending table.
        """
        if not command.strip() or "\n" in command or "\r" in command:
            raise ValueError(f"Command must be a single non-empty line, got: {command!r}")

        with self._lock:
            message_id = self._next_id
            self._next_id += 1
            request = PendingRequest(message_id, command, time.time())
            self._pending[message_id] = request

        line = self.frame(message_id, command)
        logger.debug(f"Sending: {line}")

        try:
            self._write_line(line)
        except Exception:
            with self._lock:
                self._pending.pop(message_id, None)
            raise

        return request

    def _take(self, message_id: Optional[int]) -> Optional[PendingRequest]:
        if message_id is None:
            return None
        with self._lock:
            return self._pending.pop(message_id, None)

    def has_pending(self, message_id: Optional[int]) -> bool:
        with self._lock:
            return message_id in self._pending

    def resolve(self, message_id: Optional[int], payload: str) -> PendingRequest:
        """
        Settle request `message_id` with a successful payload.

        Raises:
            UnmatchedReplyError: If no request is pending under that id.
        """
        request = self._take(message_id)
        if request is None:
            raise UnmatchedReplyError(message_id)
        request.completion.set_result(payload)
        return request

    def fail(self, message_id: Optional[int], error: BaseException) -> PendingRequest:
        """
        Settle request `message_id` with an error.

        Raises:
            UnmatchedReplyError: If no request is pending under that id.
        """
        request = self._take(message_id)
        if request is None:
            raise UnmatchedReplyError(message_id)
        request.completion.set_exception(error)
        return request

    def fail_all(self, error: BaseException) -> int:
        """
        Fail every pending request with `error`.

        Returns:
            Number of requests failed.
        """
        with self._lock:
            requests = list(self._pending.values())
            self._pending.clear()

        for request in requests:
            request.completion.set_exception(error)

        if requests:
            logger.warning(f"Failed {len(requests)} pending request(s): {error}")
        return len(requests)

    def pending(self) -> List[PendingRequest]:
        """Snapshot of pending requests, oldest first."""
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: r.message_id)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def next_id(self) -> int:
        return self._next_id
