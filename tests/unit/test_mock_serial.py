"""Tests for the simulated controller transport."""

import pytest

from uarm_client.config.models import SimulatorConfig
from uarm_client.simulator.mock_serial import MockLineTransport
from uarm_client.utils.exceptions import TransportFault


@pytest.fixture
def opened():
    lines = []
    sim = MockLineTransport(SimulatorConfig(boot_banner=["hello"]))
    sim.bind(lines.append)
    sim.open()
    return sim, lines


class TestMockLineTransport:
    """Test the simulator in isolation."""

    def test_open_emits_banner_then_sentinel(self, opened):
        sim, lines = opened

        assert lines == ["hello", "@5 V1"]
        assert sim.is_open()

    def test_on_open_called_before_lines(self):
        events = []
        sim = MockLineTransport(SimulatorConfig(boot_banner=["hello"]))
        sim.bind(lambda line: events.append(line), on_open=lambda: events.append("<open>"))

        sim.open()

        assert events[0] == "<open>"

    def test_reply_echoes_id(self, opened):
        sim, lines = opened

        sim.write_line("#17 P2205")

        assert lines[-1] == "$17 ok VC0FFEE0042"

    def test_unknown_command(self, opened):
        sim, lines = opened

        sim.write_line("#3 M9999")

        assert lines[-1] == "$3 E20"

    def test_missing_parameter(self, opened):
        sim, lines = opened

        sim.write_line("#4 G0 X1")

        assert lines[-1] == "E4 21"

    def test_malformed_number(self, opened):
        sim, lines = opened

        sim.write_line("#5 G0 X1.2.3 Y0 Z0")

        assert lines[-1] == "E5 21"
        assert sim.position == (200.0, 0.0, 150.0)

    def test_injected_error(self):
        lines = []
        sim = MockLineTransport(SimulatorConfig(inject_error_code=25))
        sim.bind(lines.append)
        sim.open()

        sim.write_line("#2 P2220")

        assert lines[-1] == "E2 25"

    def test_unframed_line_gets_no_reply(self, opened):
        sim, lines = opened
        count = len(lines)

        sim.write_line("P2220")

        assert len(lines) == count

    def test_custom_prefix_and_sentinel(self):
        lines = []
        sim = MockLineTransport(SimulatorConfig(boot_banner=[]), sentinel="@1 READY", send_prefix="!")
        sim.bind(lines.append)
        sim.open()

        sim.write_line("!1 P2400")

        assert lines == ["@1 READY", "$1 ok V0"]

    def test_write_when_closed(self):
        with pytest.raises(TransportFault):
            MockLineTransport().write_line("#1 P2220")

    def test_hold_and_release(self, opened):
        sim, lines = opened
        sim.hold_replies = True
        sim.write_line("#1 P2231")
        sim.write_line("#2 P2232")
        count = len(lines)

        sim.release_replies(order=[1, 0])

        assert lines[count:] == ["$2 ok V0", "$1 ok V0"]
