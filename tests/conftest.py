"""Shared fixtures: a simulated arm and a link wired to it."""

import pytest

from uarm_client.config.models import ProtocolConfig, SimulatorConfig
from uarm_client.protocol.link import UArmLink
from uarm_client.protocol.logger import ProtocolLogger
from uarm_client.simulator.mock_serial import MockLineTransport


@pytest.fixture
def sim():
    """Simulated controller with a one-line boot banner."""
    return MockLineTransport(SimulatorConfig(boot_banner=["Device Name: uArm Swift Pro"]))


@pytest.fixture
def errors():
    return []


@pytest.fixture
def statuses():
    return []


@pytest.fixture
def protocol_logger():
    return ProtocolLogger()


@pytest.fixture
def link(sim, errors, statuses, protocol_logger):
    """Link to the simulator, not yet opened."""
    link = UArmLink(
        sim,
        ProtocolConfig(ready_timeout_seconds=1.0),
        on_error=errors.append,
        on_status=statuses.append,
        protocol_logger=protocol_logger,
    )
    yield link
    link.close()


@pytest.fixture
def ready_link(link):
    link.open()
    return link
