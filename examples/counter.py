"""4-bit up-counter driven by a free-running clock.

A clock process toggles ``clk`` every tick. The counter process is
sensitive to the rising edge of the clock for its whole life; on each edge
it either clears the count (synchronous reset) or increments it modulo 16
when ``enable`` is high. A master process sequences reset and enable and
then stops the simulation.

## Timeline

```
    tick   0         10                  30        40                            80
           |          |                   |         |                             |
    clk    _|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_|‾|_
    reset  ___________|‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾|___________________________________________
    enable _________________________________________|‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾‾
    count  0                                         1 2 3 ... 15 0 1 2 3 4
```

Rising edges arrive every two ticks, so twenty edges fall inside the
enable window (ticks 40..78) and the 4-bit count wraps once, ending at 4.
The master calls finish() at tick 80 before the final enable write
settles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from deltasim import Edge, Signal, SimulationSummary, Simulator, Waveform


COUNTER_MASK = 0xF


# =============================================================================
# Processes
# =============================================================================


def clock(sim: Simulator, clk: Signal, half_period: int = 1):
    """Toggle the clock forever."""
    while True:
        sim.write(clk, 1)
        yield sim.delay(half_period)
        sim.write(clk, 0)
        yield sim.delay(half_period)


def counter(sim: Simulator, clk: Signal, reset: Signal, enable: Signal, count: Signal, log: list):
    """Synchronous reset, active-high enable, wraps at 16."""
    with sim.sensitive(clk, Edge.POSEDGE):
        while True:
            yield sim.wait()

            if sim.read(reset):
                sim.write(count, 0)
            elif sim.read(enable):
                log.append((sim.now, sim.read(count)))
                sim.write(count, (sim.read(count) + 1) & COUNTER_MASK)


def master(sim: Simulator, reset: Signal, enable: Signal, phases: CounterPhases, log: list):
    """Assert reset, release it, enable counting, then stop."""
    log.append((sim.now, "started"))
    yield sim.delay(phases.reset_at)

    sim.write(reset, 1)
    log.append((sim.now, "reset asserted"))
    yield sim.delay(phases.reset_ticks)

    sim.write(reset, 0)
    log.append((sim.now, "reset released"))
    yield sim.delay(phases.idle_ticks)

    sim.write(enable, 1)
    log.append((sim.now, "enable asserted"))
    yield sim.delay(phases.enable_ticks)

    sim.write(enable, 0)
    log.append((sim.now, "enable released"))
    log.append((sim.now, "terminating"))
    sim.finish()


# =============================================================================
# Simulation
# =============================================================================


@dataclass(frozen=True)
class CounterPhases:
    """Master schedule, in ticks between successive steps."""

    reset_at: int = 10
    reset_ticks: int = 20
    idle_ticks: int = 10
    enable_ticks: int = 40


@dataclass
class CounterResult:
    clk: Signal
    reset: Signal
    enable: Signal
    count: Signal
    waveform: Waveform
    summary: SimulationSummary
    increments: list[tuple[int, int]] = field(default_factory=list)
    events: list[tuple[int, str]] = field(default_factory=list)


def run_counter_simulation(phases: CounterPhases | None = None) -> CounterResult:
    phases = phases or CounterPhases()

    clk = Signal("clock")
    reset = Signal("reset")
    enable = Signal("enable")
    count = Signal("count")

    increments: list[tuple[int, int]] = []
    events: list[tuple[int, str]] = []

    waveform = Waveform([clk, reset, enable, count])
    with Simulator() as sim:
        sim.add_observer(waveform)
        sim.register_process("clock", clock, clk)
        sim.register_process("counter", counter, clk, reset, enable, count, increments)
        sim.register_process("master", master, reset, enable, phases, events)
        summary = sim.run()

    return CounterResult(
        clk=clk,
        reset=reset,
        enable=enable,
        count=count,
        waveform=waveform,
        summary=summary,
        increments=increments,
        events=events,
    )


def print_summary(result: CounterResult) -> None:
    print("\n" + "=" * 60)
    print("4-BIT COUNTER")
    print("=" * 60)

    for tick, message in result.events:
        print(f"  ({tick}) {message}")

    print(f"\nIncrements: {len(result.increments)}")
    for tick, value in result.increments:
        print(f"  ({tick}) increment counter {value}")

    print(f"\nFinal count: {result.count.value}")
    print()
    print(result.summary)
    print("=" * 60)


def visualize_results(result: CounterResult, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / "counter_waveform.png"
    result.waveform.plot(path, end_time=result.summary.final_time)
    print(f"Saved: {path}")


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    import argparse

    import deltasim

    parser = argparse.ArgumentParser(description="4-bit counter simulation")
    parser.add_argument("--enable-ticks", type=int, default=40, help="Ticks the counter stays enabled")
    parser.add_argument("--output", type=str, default="output/counter", help="Output directory")
    parser.add_argument("--no-viz", action="store_true", help="Skip visualization generation")
    parser.add_argument("--log-level", type=str, default=None, help="Enable console logging at this level")
    args = parser.parse_args()

    if args.log_level:
        deltasim.enable_console_logging(level=args.log_level)
    else:
        deltasim.configure_from_env()

    result = run_counter_simulation(CounterPhases(enable_ticks=args.enable_ticks))
    print_summary(result)

    if not args.no_viz:
        visualize_results(result, Path(args.output))
