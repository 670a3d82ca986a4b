"""Unit tests for Signal, Edge and Sensitivity bindings."""

import pytest

from deltasim.core.process import Process
from deltasim.core.signal import Edge, Sensitivity, Signal, Trigger


def _noop():
    yield


def make_process(name: str = "p") -> Process:
    return Process(name, _noop())


class TestEdge:
    @pytest.mark.parametrize(
        "edge, old, new, expected",
        [
            (Edge.POSEDGE, 0, 1, True),
            (Edge.POSEDGE, 1, 1, False),
            (Edge.POSEDGE, 1, 0, False),
            (Edge.POSEDGE, 3, 7, False),
            (Edge.NEGEDGE, 1, 0, True),
            (Edge.NEGEDGE, 0, 1, False),
            (Edge.NEGEDGE, 5, 2, False),
            (Edge.BOTH, 0, 9, True),
            (Edge.BOTH, 9, 0, True),
            (Edge.BOTH, 4, 9, False),
            (Edge.ANY, 4, 9, True),
            (Edge.ANY, 0, 1, True),
            (Edge.ANY, 1, 1, True),  # only reachable via a write reverted in-cycle
        ],
    )
    def test_matches(self, edge, old, new, expected):
        assert edge.matches(old, new) is expected

    def test_both_is_union_of_edges(self):
        assert Edge.BOTH == Edge.POSEDGE | Edge.NEGEDGE
        assert not Edge.ANY


class TestSignal:
    def test_defaults(self):
        sig = Signal("clk")
        assert sig.value == 0
        assert sig.pending_value == 0
        assert not sig.is_pending
        assert sig.get() == 0
        assert sig.bindings == []

    def test_initial_value(self):
        sig = Signal("bus", value=0xFF)
        assert sig.get() == 0xFF
        assert sig.pending_value == 0xFF

    def test_trigger_properties(self):
        sig = Signal("clk")
        assert sig.posedge == Trigger(sig, Edge.POSEDGE)
        assert sig.negedge == Trigger(sig, Edge.NEGEDGE)
        assert sig.bothedges == Trigger(sig, Edge.BOTH)
        assert sig.changed == Trigger(sig, Edge.ANY)

    def test_repr_shows_pending(self):
        sig = Signal("a")
        assert repr(sig) == "Signal('a', value=0)"
        sig.pending_value = 1
        sig.is_pending = True
        assert "pending=1" in repr(sig)


class TestSensitivity:
    def test_attach_pushes_at_head(self):
        sig = Signal("a")
        first = Sensitivity(make_process("p1"), sig).attach()
        second = Sensitivity(make_process("p2"), sig).attach()

        assert sig.bindings == [second, first]
        assert first.attached and second.attached

    def test_attach_twice_is_noop(self):
        sig = Signal("a")
        binding = Sensitivity(make_process(), sig)
        binding.attach()
        binding.attach()
        assert sig.bindings == [binding]

    def test_detach_head(self):
        sig = Signal("a")
        b1, b2, b3 = (Sensitivity(make_process(f"p{i}"), sig).attach() for i in range(3))
        # list is b3, b2, b1
        b3.detach()
        assert sig.bindings == [b2, b1]
        assert b2.prev is None

    def test_detach_middle(self):
        sig = Signal("a")
        b1, b2, b3 = (Sensitivity(make_process(f"p{i}"), sig).attach() for i in range(3))
        b2.detach()
        assert sig.bindings == [b3, b1]
        assert b3.next is b1
        assert b1.prev is b3

    def test_detach_tail(self):
        sig = Signal("a")
        b1, b2 = (Sensitivity(make_process(f"p{i}"), sig).attach() for i in range(2))
        b1.detach()
        assert sig.bindings == [b2]
        assert b2.next is None

    def test_detach_is_idempotent(self):
        sig = Signal("a")
        binding = Sensitivity(make_process(), sig).attach()
        binding.detach()
        binding.detach()
        assert sig.bindings == []
        assert not binding.attached

    def test_context_manager_releases_on_error(self):
        sig = Signal("a")
        with pytest.raises(RuntimeError):
            with Sensitivity(make_process(), sig, Edge.POSEDGE):
                assert len(sig.bindings) == 1
                raise RuntimeError("boom")
        assert sig.bindings == []

    def test_fires_uses_edge_filter(self):
        binding = Sensitivity(make_process(), Signal("a"), Edge.NEGEDGE)
        assert binding.fires(1, 0)
        assert not binding.fires(0, 1)

    def test_edge_is_coerced(self):
        binding = Sensitivity(make_process(), Signal("a"), 1)
        assert binding.edge is Edge.POSEDGE
