"""Unit tests for signal settlement: edges, coalescing and wakeup guards."""

import pytest

from deltasim.core.process import ProcessState
from deltasim.core.signal import Edge, Signal
from deltasim.core.simulator import Simulator
from deltasim.tracing.recorder import InMemoryTraceRecorder


def driver(sim, sig, values):
    """Write one value per tick."""
    for value in values:
        sim.write(sig, value)
        yield sim.delay(1)


def watcher(sim, sig, edge, log):
    """Log (now, committed value) every time the edge filter matches."""
    while True:
        yield sim.wait_on(sig, edge=edge)
        log.append((sim.now, sim.read(sig)))


def run_edge_scenario(edge, values, initial=0):
    sig = Signal("sig", value=initial)
    log = []
    sim = Simulator()
    sim.register_process("driver", driver, sig, values)
    sim.register_process("watcher", watcher, sig, edge, log)
    sim.run()
    return sig, log


class TestEdgeSemantics:
    @pytest.mark.parametrize(
        "edge, expected",
        [
            (Edge.POSEDGE, [(0, 1), (3, 1)]),
            (Edge.NEGEDGE, [(2, 0)]),
            (Edge.BOTH, [(0, 1), (2, 0), (3, 1)]),
            (Edge.ANY, [(0, 1), (2, 0), (3, 1)]),
        ],
    )
    def test_binary_transitions(self, edge, expected):
        # 0 -> 1 at t0, no-op at t1, 1 -> 0 at t2, 0 -> 1 at t3
        sig, log = run_edge_scenario(edge, [1, 1, 0, 1])
        assert log == expected
        assert sig.value == 1

    @pytest.mark.parametrize(
        "edge, expected",
        [
            (Edge.POSEDGE, [(0, 5)]),
            (Edge.NEGEDGE, [(3, 0)]),
            (Edge.ANY, [(0, 5), (1, 7), (3, 0)]),
        ],
    )
    def test_multi_valued_transitions(self, edge, expected):
        # 0 -> 5 -> 7 -> 7 -> 0: only zero crossings are edges
        _, log = run_edge_scenario(edge, [5, 7, 7, 0])
        assert log == expected

    def test_noop_write_never_wakes(self):
        for edge in (Edge.ANY, Edge.POSEDGE, Edge.NEGEDGE, Edge.BOTH):
            sig, log = run_edge_scenario(edge, [0, 0, 0])
            assert log == []
            assert not sig.is_pending

    def test_write_reverted_within_cycle_wakes_any_change_watchers(self):
        """The signal stays active after the revert, so ANY watchers fire."""

        def flicker(sim, sig):
            sim.write(sig, 1)
            sim.write(sig, 0)
            yield sim.delay(1)

        sig = Signal("sig")
        log = []
        sim = Simulator()
        sim.register_process("flicker", flicker, sig)
        sim.register_process("watcher", watcher, sig, Edge.ANY, log)
        summary = sim.run()

        assert log == [(0, 0)]
        assert sig.value == 0
        assert not sig.is_pending
        assert summary.signal_commits == 0

    @pytest.mark.parametrize("edge", [Edge.POSEDGE, Edge.NEGEDGE, Edge.BOTH])
    def test_write_reverted_within_cycle_is_not_an_edge(self, edge):
        def flicker(sim, sig):
            sim.write(sig, 1)
            sim.write(sig, 0)
            yield sim.delay(1)

        sig = Signal("sig")
        log = []
        sim = Simulator()
        sim.register_process("flicker", flicker, sig)
        sim.register_process("watcher", watcher, sig, edge, log)
        sim.run()

        assert log == []

    def test_trigger_helpers(self):
        def edge_watcher(sim, clk, log):
            while True:
                changed = yield sim.wait_on(clk.negedge)
                log.append((sim.now, changed.name))

        clk = Signal("clk")
        log = []
        sim = Simulator()
        sim.register_process("driver", driver, clk, [1, 0, 1, 0])
        sim.register_process("edge_watcher", edge_watcher, clk, log)
        sim.run()

        assert log == [(1, "clk"), (3, "clk")]


class TestDeferredCommit:
    def test_writes_invisible_until_settlement(self):
        seen = []

        def writer(sim, sig):
            sim.write(sig, 1)
            seen.append((sim.read(sig), sig.pending_value, sig.is_pending))
            yield sim.delay(0)
            # Same tick, no time advance: still no settlement.
            seen.append((sim.read(sig), sig.pending_value, sig.is_pending))
            yield sim.delay(1)
            seen.append((sim.read(sig), sig.pending_value, sig.is_pending))

        sig = Signal("sig")
        sim = Simulator()
        sim.register_process("writer", writer, sig)
        sim.run()

        assert seen == [(0, 1, True), (0, 1, True), (1, 1, False)]

    def test_same_tick_readers_see_same_value(self):
        seen = []

        def writer(sim, sig):
            sim.write(sig, 1)
            yield sim.delay(1)

        def reader(sim, sig):
            seen.append(sim.read(sig))
            yield sim.delay(1)

        sig = Signal("sig")
        sim = Simulator()
        # Initial activation runs reader2, writer, reader1 at tick 0.
        sim.register_process("reader1", reader, sig)
        sim.register_process("writer", writer, sig)
        sim.register_process("reader2", reader, sig)
        sim.run()

        assert seen == [0, 0]

    def test_coalescing_keeps_last_value(self):
        def writer(sim, sig):
            sim.write(sig, 1)
            sim.write(sig, 2)
            sim.write(sig, 3)
            yield sim.delay(1)

        trace = InMemoryTraceRecorder()
        sig = Signal("sig")
        log = []
        sim = Simulator(trace_recorder=trace)
        sim.register_process("writer", writer, sig)
        sim.register_process("watcher", watcher, sig, Edge.ANY, log)
        sim.run()

        commits = trace.filter_by_kind("signal.commit")
        assert len(commits) == 1
        assert commits[0]["data"] == {"old": 0, "new": 3}
        assert log == [(0, 3)]

    def test_writes_in_same_cycle_share_one_settlement(self):
        def writer(sim, a, b):
            sim.write(a, 1)
            sim.write(b, 1)
            sim.write(a, 2)
            yield sim.delay(1)

        trace = InMemoryTraceRecorder()
        a, b = Signal("a"), Signal("b")
        sim = Simulator(trace_recorder=trace)
        sim.register_process("writer", writer, a, b)
        summary = sim.run()

        assert [s["signal"] for s in trace.filter_by_kind("signal.commit")] == ["a", "b"]
        assert summary.delta_cycles == 1
        assert (a.value, b.value) == (2, 1)


class TestWakeups:
    def test_process_watching_two_changed_signals_wakes_once(self):
        woken = []

        def both(sim, a, b):
            while True:
                changed = yield sim.wait_on(a, b)
                woken.append((sim.now, changed.name))

        def writer(sim, a, b):
            sim.write(a, 1)
            sim.write(b, 1)
            yield sim.delay(1)

        trace = InMemoryTraceRecorder()
        a, b = Signal("a"), Signal("b")
        sim = Simulator(trace_recorder=trace)
        sim.register_process("writer", writer, a, b)
        proc = sim.register_process("both", both, a, b)
        sim.run()

        assert woken == [(0, "a")]
        assert proc.activations == 2
        assert len(trace.filter_by_kind("queue.wake")) == 1

    def test_bindings_released_on_resume(self):
        seen = []

        def waiter(sim, a, b):
            yield sim.wait_on(a.posedge, b.posedge)
            seen.append((len(a.bindings), len(b.bindings)))

        def writer(sim, a):
            sim.write(a, 1)
            yield sim.delay(1)

        a, b = Signal("a"), Signal("b")
        sim = Simulator()
        sim.register_process("writer", writer, a)
        sim.register_process("waiter", waiter, a, b)
        sim.run()

        assert seen == [(0, 0)]
        assert a.bindings == [] and b.bindings == []

    def test_queued_process_is_not_woken(self):
        """A process sleeping on a delay ignores its persistent bindings."""
        log = []

        def sleeper(sim, sig):
            with sim.sensitive(sig):
                yield sim.delay(5)
                log.append(("slept", sim.now))
                yield sim.wait()
                log.append(("woken", sim.now))

        def writer(sim, sig):
            sim.write(sig, 1)
            yield sim.delay(7)
            sim.write(sig, 0)
            yield sim.delay(1)

        sig = Signal("sig")
        sim = Simulator()
        sim.register_process("writer", writer, sig)
        proc = sim.register_process("sleeper", sleeper, sig)
        sim.run()

        assert log == [("slept", 5), ("woken", 7)]
        assert proc.state is ProcessState.FINISHED
        assert sig.bindings == []

    def test_woken_processes_run_before_time_advances(self):
        """A chain of gates settles within one tick over several delta cycles."""
        log = []

        def stimulus(sim, a):
            sim.write(a, 1)
            yield sim.delay(5)

        def buffer(sim, a, b):
            while True:
                yield sim.wait_on(a)
                sim.write(b, sim.read(a))

        def probe(sim, b):
            while True:
                yield sim.wait_on(b)
                log.append((sim.now, sim.read(b)))

        a, b = Signal("a"), Signal("b")
        sim = Simulator()
        sim.register_process("stimulus", stimulus, a)
        sim.register_process("buffer", buffer, a, b)
        sim.register_process("probe", probe, b)
        summary = sim.run()

        assert log == [(0, 1)]
        assert summary.delta_cycles == 2
        assert sim.now == 5

    def test_settlement_uses_pre_commit_values_for_every_binding(self):
        hits = []

        def rising(sim, sig, tag):
            while True:
                yield sim.wait_on(sig.posedge)
                hits.append(tag)

        def writer(sim, sig):
            sim.write(sig, 1)
            yield sim.delay(1)

        sig = Signal("sig")
        sim = Simulator()
        sim.register_process("writer", writer, sig)
        for tag in ("r1", "r2", "r3"):
            sim.register_process(tag, rising, sig, tag)
        sim.run()

        assert sorted(hits) == ["r1", "r2", "r3"]
