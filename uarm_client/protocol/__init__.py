"""
Protocol package for uArm serial communication.
"""

from uarm_client.protocol.classifier import (
    DEFAULT_MARKERS,
    InboundMessage,
    LineClassifier,
    MessageKind,
    parse_error_payload,
)
from uarm_client.protocol.correlator import PendingRequest, RequestCorrelator
from uarm_client.protocol.error_codes import ERROR_TABLE, ErrorEntry, classify_error, lookup_error
from uarm_client.protocol.link import StatusReport, UArmLink
from uarm_client.protocol.port_scanner import (
    PortInfo,
    find_port,
    list_available_ports,
    manufacturer_matches,
)
from uarm_client.protocol.readiness import LinkState, ReadinessGate
from uarm_client.protocol.transport import LineTransport, SerialLineTransport

__all__ = [
    "DEFAULT_MARKERS",
    "InboundMessage",
    "LineClassifier",
    "MessageKind",
    "parse_error_payload",
    "PendingRequest",
    "RequestCorrelator",
    "ERROR_TABLE",
    "ErrorEntry",
    "classify_error",
    "lookup_error",
    "StatusReport",
    "UArmLink",
    "PortInfo",
    "find_port",
    "list_available_ports",
    "manufacturer_matches",
    "LinkState",
    "ReadinessGate",
    "LineTransport",
    "SerialLineTransport",
]
