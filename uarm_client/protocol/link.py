"""
The uArm link: one serial connection to one arm controller.

Wires a LineTransport to the readiness gate, the line classifier and the
request correlator:

    send():   caller -> correlator -> transport.write_line
    inbound:  transport line -> gate -> classifier -> correlator / observers

Inbound lines are processed one at a time. Error reporting and request
failure are orthogonal: a device error settles its own request (if any)
and is always reported to the link-level error observer.
"""

import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, List, Optional

from uarm_client.config.models import ProtocolConfig
from uarm_client.protocol.classifier import (
    InboundMessage,
    LineClassifier,
    MessageKind,
    parse_error_payload,
)
from uarm_client.protocol.correlator import PendingRequest, RequestCorrelator
from uarm_client.protocol.error_codes import classify_error
from uarm_client.protocol.logger import ProtocolLogger, get_protocol_logger
from uarm_client.protocol.readiness import LinkState, ReadinessGate
from uarm_client.protocol.transport import LineTransport
from uarm_client.utils.exceptions import (
    HandshakeError,
    LinkClosedError,
    MalformedLineError,
    NotReadyError,
    ProtocolViolation,
    ReplyTimeoutError,
    TransportFault,
    UnmatchedReplyError,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusReport:
    """Unsolicited status tick from the controller (e.g. ``@3 ...``)."""
    message_id: Optional[int]
    payload: Optional[str]
    raw: str


ErrorObserver = Callable[[Exception], None]
StatusObserver = Callable[[StatusReport], None]


class UArmLink:
    """
    Call/response API over the uArm line protocol.

    A link is single-use: once closed it cannot be reopened.
    """

    def __init__(
        self,
        transport: LineTransport,
        config: Optional[ProtocolConfig] = None,
        on_error: Optional[ErrorObserver] = None,
        on_status: Optional[StatusObserver] = None,
        protocol_logger: Optional[ProtocolLogger] = None,
    ):
        """
        Args:
            transport: Line transport (serial port or simulator).
            config: Protocol framing and timeouts.
            on_error: Link-level error observer. Receives DeviceError,
                ProtocolViolation and TransportFault instances.
            on_status: Observer for unsolicited status ticks.
            protocol_logger: TX/RX ring buffer. Defaults to the global one.

        Raises:
            TypeError: If an observer is not callable.
        """
        for name, observer in (("on_error", on_error), ("on_status", on_status)):
            if observer is not None and not callable(observer):
                raise TypeError(f"{name} is not a function, got {type(observer).__name__!r}")

        self._config = config or ProtocolConfig()
        self._transport = transport
        self._on_error = on_error
        self._on_status = on_status
        self._protocol_logger = protocol_logger or get_protocol_logger()

        self._gate = ReadinessGate(self._config.ready_sentinel)
        self._classifier = LineClassifier(
            {marker: MessageKind(kind) for marker, kind in self._config.markers.items()}
        )
        self._correlator = RequestCorrelator(self._write_line, self._config.send_prefix)

        # Reentrant so an observer may send a command that is answered synchronously
        self._inbound_lock = threading.RLock()
        self._opened_once = False

        self._transport.bind(
            on_line=self.handle_line,
            on_fault=self._handle_fault,
            on_open=self._gate.transport_opened,
        )

    @property
    def state(self) -> LinkState:
        return self._gate.state

    def is_ready(self) -> bool:
        return self._gate.is_ready()

    def pending(self) -> List[PendingRequest]:
        """Requests still waiting for a reply, oldest first."""
        return self._correlator.pending()

    def open(self, timeout: Optional[float] = None) -> None:
        """
        Open the transport and block until the controller is ready.

        Args:
            timeout: Seconds to wait for the ready sentinel. Defaults to
                config.ready_timeout_seconds.

        Raises:
            LinkClosedError: If this link was opened before.
            PortNotFoundError, PortInUseError: From the transport.
            HandshakeError: If the sentinel did not arrive in time.
        """
        if self._gate.is_ready():
            logger.warning("Already connected")
            return
        if self._opened_once:
            raise LinkClosedError("Link was already used; create a new link to reconnect")

        self._opened_once = True
        self._gate.begin_open()

        try:
            self._transport.open()
        except Exception:
            self._gate.close()
            raise

        if timeout is None:
            timeout = self._config.ready_timeout_seconds

        if not self._gate.wait_ready(timeout):
            self.close()
            raise HandshakeError(
                f"Controller did not send ready sentinel {self._config.ready_sentinel!r} within {timeout}s"
            )

    def close(self) -> None:
        """Close the link. Outstanding requests fail with LinkClosedError."""
        previous = self._gate.close()

        if self._transport.is_open():
            self._transport.close()

        self._correlator.fail_all(LinkClosedError("Link closed"))

        if previous != LinkState.CLOSED:
            logger.info("Link closed")

    def __enter__(self) -> "UArmLink":
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def send(self, command: str) -> PendingRequest:
        """
        Send one command without waiting for its reply.

        Returns:
            PendingRequest whose completion settles with the reply payload
            or the classified error.

        Raises:
            NotReadyError: If the link is not READY or closes before the write.
            TransportFault: If the write fails (the link is closed).
        """
        if not self._gate.is_ready():
            raise NotReadyError(f"Cannot send {command!r}: link is {self._gate.state.value}")
        return self._correlator.send(command)

    def request(self, command: str, timeout: Optional[float] = None) -> str:
        """
        Send one command and block until its reply.

        Args:
            command: Command text, e.g. "P2220".
            timeout: Seconds to wait. Defaults to config.reply_timeout_seconds
                (None waits forever).

        Returns:
            Reply payload, e.g. "ok X200.0000 Y0.0000 Z150.0000".

        Raises:
            DeviceError: If the controller reported an error for this command.
            ReplyTimeoutError: If `timeout` elapsed. The request stays pending.
            LinkClosedError, TransportFault: If the link went down meanwhile.
        """
        pending = self.send(command)

        if timeout is None:
            timeout = self._config.reply_timeout_seconds

        try:
            return pending.result(timeout)
        except FutureTimeoutError:
            raise ReplyTimeoutError(pending.message_id, command, timeout) from None

    def _write_line(self, line: str) -> None:
        # close() may run on another thread between send()'s check and here
        if not self._gate.is_ready():
            raise NotReadyError(f"Cannot send {line!r}: link is {self._gate.state.value}")

        self._protocol_logger.log_tx(line)
        try:
            self._transport.write_line(line)
        except TransportFault as e:
            if not self._gate.is_ready():
                raise NotReadyError(f"Link closed while sending {line!r}") from e
            self._handle_fault(e)
            raise

    def handle_line(self, line: str) -> None:
        """
        Process one inbound line. Called by the transport.

        Never raises: every failure is logged and reported to the error observer.
        """
        with self._inbound_lock:
            try:
                self._process_line(line)
            except Exception:
                logger.exception(f"Unexpected error processing line {line!r}")

    def _process_line(self, line: str) -> None:
        forwarded = self._gate.feed(line)
        if forwarded is None:
            self._protocol_logger.log_rx(line, kind="boot")
            return

        try:
            message = self._classifier.classify(forwarded)
        except MalformedLineError as e:
            self._protocol_logger.log_rx(line)
            self._report_violation(e)
            return

        self._protocol_logger.log_rx(line, kind=message.kind.value, message_id=message.message_id)
        logger.debug(f"Incoming: <{line}>")

        if message.kind == MessageKind.STATUS:
            self._handle_status(message)
        elif message.kind == MessageKind.ERROR:
            self._handle_error(message)
        else:
            self._handle_reply(message)

    def _handle_status(self, message: InboundMessage) -> None:
        logger.debug(f"Status {message.message_id}: {message.payload}")
        if self._on_status is not None:
            self._notify(self._on_status, StatusReport(message.message_id, message.payload, message.raw))

    def _handle_error(self, message: InboundMessage) -> None:
        parsed = parse_error_payload(message.payload)
        if parsed is not None:
            code, detail = parsed
            message_id = message.message_id
        elif message.payload is None and message.message_id is not None:
            # "E22": bare code, no request reference
            code, detail, message_id = message.message_id, None, None
        else:
            self._report_violation(ProtocolViolation(f"Error line without error code: {message.raw!r}", message.raw))
            return

        error = classify_error(code, message_id=message_id, detail=detail)

        try:
            self._correlator.fail(message_id, error)
        except UnmatchedReplyError:
            logger.error(f"uArm reported: {error}")
        else:
            logger.error(f"Request {message_id} failed: {error}")

        self._protocol_logger.log_error(str(error), message.raw)
        self._notify_error(error)

    def _handle_reply(self, message: InboundMessage) -> None:
        payload = message.payload or ""

        # A reply can carry an error token instead of "ok", e.g. "$3 E21"
        parsed = parse_error_payload(payload) if payload.startswith("E") else None
        if parsed is not None:
            code, detail = parsed
            error = classify_error(code, message_id=message.message_id, detail=detail)
            try:
                self._correlator.fail(message.message_id, error)
            except UnmatchedReplyError as e:
                e.line = message.raw
                self._report_violation(e)
                return
            logger.error(f"Request {message.message_id} failed: {error}")
            self._protocol_logger.log_error(str(error), message.raw)
            self._notify_error(error)
            return

        try:
            self._correlator.resolve(message.message_id, payload)
        except UnmatchedReplyError as e:
            e.line = message.raw
            self._report_violation(e)

    def _report_violation(self, error: ProtocolViolation) -> None:
        logger.warning(f"Protocol violation: {error}")
        self._protocol_logger.log_error(str(error), error.line or "")
        self._notify_error(error)

    def _handle_fault(self, error: Exception) -> None:
        """The transport failed: the link goes down."""
        logger.error(f"Transport fault: {error}")
        self._gate.close()
        self._protocol_logger.log_error(str(error))
        if self._transport.is_open():
            self._transport.close()
        self._correlator.fail_all(error)
        self._notify_error(error)

    def _notify_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._notify(self._on_error, error)

    @staticmethod
    def _notify(observer: Callable, argument) -> None:
        try:
            observer(argument)
        except Exception:
            logger.exception(f"Observer {observer!r} raised")
