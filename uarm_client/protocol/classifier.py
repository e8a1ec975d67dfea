"""
Inbound line classification for the uArm protocol.

Every line the controller sends starts with a marker naming its kind:

    @5 V1                      status tick (id 5, payload "V1")
    E7 21                      error 21 caused by message 7
    $1 ok X10.0 Y20.0 Z30.0    reply to message 1
    refer:1 ok                 reply to message 1 (older firmware spelling)

The marker set is a table so another framing revision can be plugged in
without touching the correlation logic.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from uarm_client.utils.exceptions import MalformedLineError


class MessageKind(str, Enum):
    """Kind of an inbound line, selected by its marker."""
    STATUS = "status"
    ERROR = "error"
    REPLY = "reply"


DEFAULT_MARKERS: Dict[str, MessageKind] = {
    "@": MessageKind.STATUS,
    "E": MessageKind.ERROR,
    "$": MessageKind.REPLY,
    "refer:": MessageKind.REPLY,
}

_ERROR_PAYLOAD = re.compile(r"^E?(\d+)(?:\s+(.*))?$")


@dataclass(frozen=True)
class InboundMessage:
    """A classified inbound line."""
    kind: MessageKind
    marker: str
    message_id: Optional[int]
    payload: Optional[str]
    raw: str


def parse_error_payload(payload: Optional[str]) -> Optional[Tuple[int, Optional[str]]]:
    """
    Split an error payload into its numeric code and trailing text.

    Args:
        payload: Text after the id, e.g. "21" or "E21 bad value".

    Returns:
        (code, trailing text or None), or None if the payload carries no code.

    Example:
        >>> parse_error_payload("E21 bad value")
        (21, 'bad value')
    """
    if not payload:
        return None
    match = _ERROR_PAYLOAD.match(payload.strip())
    if not match:
        return None
    return int(match.group(1)), match.group(2) or None


class LineClassifier:
    """Parse raw lines into InboundMessage according to a marker table."""

    def __init__(self, markers: Optional[Mapping[str, MessageKind]] = None):
        """
        Args:
            markers: Marker -> kind table. Defaults to DEFAULT_MARKERS.

        Raises:
            ValueError: If the table is empty.
        """
        table = dict(markers if markers is not None else DEFAULT_MARKERS)
        if not table:
            raise ValueError("Marker table must not be empty")

        self._markers = {marker: MessageKind(kind) for marker, kind in table.items()}

        # Longest first so a marker never shadows a longer one sharing its prefix
        alternatives = "|".join(
            re.escape(marker) for marker in sorted(self._markers, key=len, reverse=True)
        )
        self._pattern = re.compile(rf"^({alternatives})(\d+)?(?:\s+(.*?))?\s*$")

    @property
    def markers(self) -> Dict[str, MessageKind]:
        return dict(self._markers)

    def classify(self, line: str) -> InboundMessage:
        """
        Classify one inbound line.

        Raises:
            MalformedLineError: If the line matches no marker or breaks the grammar.
        """
        match = self._pattern.match(line)
        if not match:
            raise MalformedLineError(line)

        marker, message_id, payload = match.groups()
        return InboundMessage(
            kind=self._markers[marker],
            marker=marker,
            message_id=int(message_id) if message_id is not None else None,
            payload=payload or None,
            raw=line,
        )
