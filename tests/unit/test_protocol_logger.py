"""Tests for the protocol line ring buffer."""

from uarm_client.protocol.logger import ProtocolLogger, get_protocol_logger


class TestProtocolLogger:

    def test_records_directions(self):
        log = ProtocolLogger()

        log.log_tx("#1 P2220")
        log.log_rx("$1 ok X1 Y2 Z3", kind="reply", message_id=1)
        log.log_error("Unable to find message id: 9", "$9 ok")

        messages = log.get_messages()
        assert [m["direction"] for m in messages] == ["TX", "RX", "ERR"]
        assert messages[1]["message_id"] == 1
        assert messages[2]["error"] == "Unable to find message id: 9"
        assert log.get_stats()["error_count"] == 1

    def test_ring_buffer_drops_oldest(self):
        log = ProtocolLogger(max_messages=3)

        for i in range(5):
            log.log_tx(f"#{i} P2220")

        assert [m["line"] for m in log.get_messages()] == ["#2 P2220", "#3 P2220", "#4 P2220"]
        assert log.get_stats()["tx_count"] == 5

    def test_limit_returns_newest(self):
        log = ProtocolLogger()
        for i in range(10):
            log.log_rx(f"@3 tick {i}")

        assert [m["line"] for m in log.get_messages(limit=2)] == ["@3 tick 8", "@3 tick 9"]

    def test_disabled(self):
        log = ProtocolLogger()
        log.enabled = False

        log.log_tx("#1 P2220")

        assert log.get_messages() == []

    def test_clear(self):
        log = ProtocolLogger()
        log.log_tx("#1 P2220")

        log.clear()

        assert log.get_stats()["total_messages"] == 0
        assert log.get_stats()["tx_count"] == 0

    def test_global_instance(self):
        assert get_protocol_logger() is get_protocol_logger()
