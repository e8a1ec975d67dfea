"""Unit tests for message id correlation."""

from concurrent.futures import InvalidStateError, ThreadPoolExecutor

import pytest

from uarm_client.protocol.correlator import RequestCorrelator
from uarm_client.utils.exceptions import DeviceError, TransportFault, UnmatchedReplyError


@pytest.fixture
def written():
    return []


@pytest.fixture
def correlator(written):
    return RequestCorrelator(written.append, send_prefix="#")


class TestSend:
    """Test id allocation and framing."""

    def test_first_id_is_one(self, correlator, written):
        request = correlator.send("P2220")

        assert request.message_id == 1
        assert request.command == "P2220"
        assert request.issued_at > 0
        assert not request.done()
        assert written == ["#1 P2220"]

    def test_ids_strictly_increasing_without_gaps(self, correlator, written):
        ids = [correlator.send(f"G2004 P{i}").message_id for i in range(10)]

        assert ids == list(range(1, 11))
        assert written[3] == "#4 G2004 P3"
        assert correlator.next_id == 11

    def test_ids_not_reused_after_resolve(self, correlator):
        first = correlator.send("P2220")
        correlator.resolve(first.message_id, "ok")

        assert correlator.send("P2220").message_id == 2

    def test_custom_prefix(self, written):
        correlator = RequestCorrelator(written.append, send_prefix="!")
        correlator.send("P2201")

        assert written == ["!1 P2201"]

    @pytest.mark.parametrize("command", ["", "   ", "P2220\nP2221", "P2220\r"])
    def test_invalid_command(self, correlator, written, command):
        with pytest.raises(ValueError):
            correlator.send(command)

        assert written == []
        assert correlator.next_id == 1

    def test_write_failure_drops_pending(self):
        def broken_write(line):
            raise TransportFault("gone")

        correlator = RequestCorrelator(broken_write)

        with pytest.raises(TransportFault):
            correlator.send("P2220")

        assert correlator.pending_count == 0

    def test_pending_registered_before_write(self):
        seen = []
        correlator = None

        def write(line):
            seen.append(correlator.has_pending(1))

        correlator = RequestCorrelator(write)
        correlator.send("P2220")

        assert seen == [True]


class TestSettle:
    """Test resolve/fail semantics."""

    def test_resolve(self, correlator):
        request = correlator.send("P2220")

        correlator.resolve(1, "ok X10.0000 Y20.0000 Z30.0000")

        assert request.result(0) == "ok X10.0000 Y20.0000 Z30.0000"
        assert correlator.pending_count == 0

    def test_fail(self, correlator):
        request = correlator.send("G2202 N1 V45")
        error = DeviceError(21, "PARAMETER", "Parameter error.", message_id=1)

        correlator.fail(1, error)

        with pytest.raises(DeviceError) as exc_info:
            request.result(0)
        assert exc_info.value is error

    def test_out_of_order_resolution(self, correlator):
        first = correlator.send("P2220")
        second = correlator.send("P2221")
        order = []
        first.completion.add_done_callback(lambda f: order.append(1))
        second.completion.add_done_callback(lambda f: order.append(2))

        correlator.resolve(2, "ok S1 R2 H3")
        assert not first.done()
        correlator.resolve(1, "ok X1 Y2 Z3")

        assert order == [2, 1]
        assert first.result(0) == "ok X1 Y2 Z3"
        assert second.result(0) == "ok S1 R2 H3"

    def test_unknown_id(self, correlator):
        with pytest.raises(UnmatchedReplyError) as exc_info:
            correlator.resolve(99, "ok")

        assert exc_info.value.message_id == 99

    def test_none_id(self, correlator):
        correlator.send("P2220")

        with pytest.raises(UnmatchedReplyError):
            correlator.resolve(None, "ok")
        assert correlator.pending_count == 1

    def test_second_reply_is_unmatched(self, correlator):
        request = correlator.send("P2220")
        correlator.resolve(1, "ok")

        with pytest.raises(UnmatchedReplyError):
            correlator.resolve(1, "ok again")
        with pytest.raises(UnmatchedReplyError):
            correlator.fail(1, RuntimeError("late"))

        assert request.result(0) == "ok"

    def test_completion_rejects_double_settlement(self, correlator):
        request = correlator.send("P2220")
        correlator.resolve(1, "ok")

        with pytest.raises(InvalidStateError):
            request.completion.set_result("again")


class TestFailAll:
    """Test failing every outstanding request."""

    def test_fail_all(self, correlator):
        requests = [correlator.send("P2220") for _ in range(3)]
        error = TransportFault("unplugged")

        assert correlator.fail_all(error) == 3

        for request in requests:
            assert request.completion.exception(0) is error
        assert correlator.pending() == []

    def test_fail_all_empty(self, correlator):
        assert correlator.fail_all(TransportFault("x")) == 0

    def test_pending_snapshot_sorted(self, correlator):
        for _ in range(3):
            correlator.send("P2220")
        correlator.resolve(2, "ok")

        assert [r.message_id for r in correlator.pending()] == [1, 3]


class TestConcurrency:
    """Test id allocation under concurrent senders."""

    def test_concurrent_sends_get_unique_ids_without_gaps(self, correlator, written):
        with ThreadPoolExecutor(max_workers=8) as pool:
            requests = list(pool.map(lambda i: correlator.send(f"G2004 P{i}"), range(400)))

        assert sorted(r.message_id for r in requests) == list(range(1, 401))
        assert len(written) == 400
        assert correlator.pending_count == 400
        assert correlator.next_id == 401
