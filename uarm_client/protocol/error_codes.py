"""
Error code table for the uArm Swift protocol.

Codes as documented in the uArm Swift Pro Developer Guide v1.0.6.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from uarm_client.utils.exceptions import DeviceError, UnclassifiedDeviceError


@dataclass(frozen=True)
class ErrorEntry:
    """A known device error."""
    kind: str
    message: str


ERROR_TABLE: Mapping[int, ErrorEntry] = MappingProxyType({
    20: ErrorEntry("COMMAND_NOT_EXIST", "Command not exist."),
    21: ErrorEntry("PARAMETER", "Parameter error."),
    22: ErrorEntry("ADDRESS_OUT_OF_RANGE", "The address is out of range."),
    23: ErrorEntry("COMMAND_BUFFER_FULL", "Command buffer is full."),
    24: ErrorEntry("POWER_DISCONNECTED", "UArm lost power."),
    25: ErrorEntry("OPERATION_FAILURE", "Operation failed."),
})


def lookup_error(code: int) -> Optional[ErrorEntry]:
    """Return the table entry for `code`, or None if the code is unknown."""
    return ERROR_TABLE.get(code)


def classify_error(
    code: int,
    message_id: Optional[int] = None,
    detail: Optional[str] = None,
) -> DeviceError:
    """
    Build the exception describing a device error code.

    Args:
        code: Numeric error code from the error line.
        message_id: Id of the failed request, if any.
        detail: Raw trailing text after the code.

    Returns:
        DeviceError for known codes, UnclassifiedDeviceError otherwise.
    """
    entry = lookup_error(code)
    if entry is None:
        return UnclassifiedDeviceError(code, message_id=message_id, detail=detail)
    return DeviceError(code, entry.kind, entry.message, message_id=message_id, detail=detail)
