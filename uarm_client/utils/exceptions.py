"""
Custom exception classes for the uArm client.
"""

from typing import Optional


class UArmException(Exception):
    """Base exception for all uArm client errors."""
    pass


class NotConnectedError(UArmException):
    """Raised when operation requires a usable link but there is none."""
    pass


class NotReadyError(NotConnectedError):
    """Command sent before the controller announced readiness."""
    pass


class LinkClosedError(NotConnectedError):
    """The link was closed; outstanding and future requests fail with this."""
    pass


class DriverError(UArmException):
    """General driver error (port handling, handshake, transport)."""
    pass


class PortNotFoundError(DriverError):
    """Serial port does not exist."""
    pass


class PortInUseError(DriverError):
    """Serial port is already open by another application."""
    pass


class DeviceNotFoundError(DriverError):
    """No serial port was accepted by the discovery predicate."""
    pass


class HandshakeError(DriverError):
    """The controller did not send its ready sentinel in time."""
    pass


class TransportFault(DriverError):
    """Underlying device read/write failure. Fatal to the link."""
    pass


class ProtocolError(UArmException):
    """Serial protocol error (malformed line, unexpected reply, etc.)."""
    pass


class ProtocolViolation(ProtocolError):
    """Inbound line breaks the protocol. Recoverable at link level."""

    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class UnmatchedReplyError(ProtocolViolation):
    """Reply references a message id with no pending request."""

    def __init__(self, message_id: Optional[int], line: Optional[str] = None):
        super().__init__(f"Unable to find message id: {message_id}", line)
        self.message_id = message_id


class MalformedLineError(ProtocolViolation):
    """Line matches none of the known markers."""

    def __init__(self, line: str):
        super().__init__(f"Got message not matching grammar: {line!r}", line)


class ResponseParseError(ProtocolError):
    """Reply payload does not have the shape the command expects."""
    pass


class DeviceError(UArmException):
    """
    Error reported by the controller, classified through the error table.

    Attributes:
        code: Numeric error code sent by the device.
        kind: Symbolic name (e.g. "PARAMETER").
        description: Human readable message from the error table.
        message_id: Id of the request that caused it, None for link-level faults.
        detail: Raw trailing text of the error line.
    """

    def __init__(
        self,
        code: int,
        kind: str,
        description: str,
        message_id: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        text = f"[E{code}] {kind}: {description}"
        if message_id is not None:
            text += f" (message {message_id})"
        super().__init__(text)
        self.code = code
        self.kind = kind
        self.description = description
        self.message_id = message_id
        self.detail = detail


class UnclassifiedDeviceError(DeviceError):
    """Device error whose code is not in the error table."""

    def __init__(self, code: int, message_id: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(
            code,
            "UNKNOWN",
            f"Unknown error [E{code}]" + (f": {detail}" if detail else ""),
            message_id=message_id,
            detail=detail,
        )


class SerialTimeoutError(UArmException):
    """Serial timeout (no response from hardware)."""
    pass


class ReplyTimeoutError(SerialTimeoutError):
    """A caller-bounded wait for a reply elapsed. The request stays pending."""

    def __init__(self, message_id: int, command: str, timeout: float):
        super().__init__(f"No reply to #{message_id} {command!r} within {timeout}s")
        self.message_id = message_id
        self.command = command
        self.timeout = timeout
