"""Random combinational logic network, used as a scheduler benchmark.

Three banks of ``gates`` signals are wired as two levels of two-input
gates with randomly chosen inputs and operators:

```
    a[0..n)  ──►  b[i] = op(a[x], a[y])  ──►  c[i] = op(b[x], b[y])
       ▲                                            │
       └──────────── master: a[k] = not c[k] ◄──────┘
```

Every gate is a process holding persistent sensitivity to both of its
inputs and recomputing its output whenever either one changes. The master
clears the ``a`` bank, then replays a seeded stream of feedback writes
``a[k] = not c[k]``, occasionally letting a tick pass so the network
settles. All signals start at all-ones.

The run is fully deterministic for a given seed, so the final packed
values of the three banks act as a checksum.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from deltasim import Signal, SimulationSummary, Simulator


ALL_ONES = (1 << 64) - 1

GATE_OPS: dict[str, Callable[[int, int], int]] = {
    "and": lambda x, y: x & y,
    "nand": lambda x, y: int(not (x & y)),
    "or": lambda x, y: x | y,
    "nor": lambda x, y: int(not (x | y)),
    "xor": lambda x, y: x ^ y,
    "xnor": lambda x, y: int(not (x ^ y)),
}


@dataclass(frozen=True)
class RandomLogicConfig:
    gates: int = 64
    steps: int = 2000
    loops: int = 10
    pause_probability: float = 0.2
    seed: int = 123


@dataclass(frozen=True)
class Gate:
    """One two-input gate: ``output = op(inputs[x], inputs[y])``."""

    output: int
    x: int
    y: int
    op: str


@dataclass
class Network:
    a: list[Signal]
    b: list[Signal]
    c: list[Signal]
    b_gates: list[Gate]
    c_gates: list[Gate]
    # (pause before the write, index k) for each write a[k] = not c[k]
    script: list[tuple[bool, int]]


@dataclass
class RandomLogicResult:
    network: Network
    summary: SimulationSummary
    packed: tuple[int, int, int]
    wall_clock_seconds: float
    snapshots: list[tuple[int, int, int]] = field(default_factory=list)


# =============================================================================
# Network construction
# =============================================================================


def _other_index(rng: random.Random, i: int, gates: int) -> int:
    """A random index different from ``i``."""
    return (i + 1 + rng.randrange(gates - 1)) % gates


def _random_gates(rng: random.Random, gates: int) -> list[Gate]:
    ops = list(GATE_OPS)
    result = []
    for i in range(gates):
        x = _other_index(rng, i, gates)
        y = _other_index(rng, i, gates)
        result.append(Gate(output=i, x=x, y=y, op=ops[rng.randrange(len(ops))]))
    return result


def build_network(config: RandomLogicConfig) -> Network:
    if config.gates < 2:
        raise ValueError("A random logic network needs at least 2 gates")

    rng = random.Random(config.seed)
    n = config.gates
    a = [Signal(f"a{i}", value=ALL_ONES) for i in range(n)]
    b = [Signal(f"b{i}", value=ALL_ONES) for i in range(n)]
    c = [Signal(f"c{i}", value=ALL_ONES) for i in range(n)]

    b_gates = _random_gates(rng, n)
    c_gates = _random_gates(rng, n)
    script = [(rng.random() < config.pause_probability, rng.randrange(n)) for _ in range(config.steps)]
    return Network(a=a, b=b, c=c, b_gates=b_gates, c_gates=c_gates, script=script)


def pack(signals: list[Signal]) -> int:
    """Pack the low bit of every signal into one integer, signal i at bit i."""
    value = 0
    for i, sig in enumerate(signals):
        value |= (sig.value & 1) << i
    return value


# =============================================================================
# Processes
# =============================================================================


def gate(sim: Simulator, output: Signal, op: Callable[[int, int], int], x: Signal, y: Signal):
    with sim.sensitive(x), sim.sensitive(y):
        while True:
            yield sim.wait()
            sim.write(output, op(sim.read(x), sim.read(y)))


def master(sim: Simulator, network: Network, loops: int, snapshots: list):
    for sig in network.a:
        sim.write(sig, 0)
    yield sim.delay(1)

    for _ in range(loops):
        for pause, k in network.script:
            if pause:
                yield sim.delay(1)
            sim.write(network.a[k], int(not sim.read(network.c[k])))
        yield sim.delay(1)
        snapshots.append((pack(network.a), pack(network.b), pack(network.c)))

    sim.finish()


# =============================================================================
# Simulation
# =============================================================================


def run_random_logic_simulation(config: RandomLogicConfig | None = None) -> RandomLogicResult:
    config = config or RandomLogicConfig()
    network = build_network(config)
    snapshots: list[tuple[int, int, int]] = []

    with Simulator() as sim:
        banks = (
            ("b", network.a, network.b, network.b_gates),
            ("c", network.b, network.c, network.c_gates),
        )
        for bank, inputs, outputs, gates in banks:
            for g in gates:
                sim.register_process(
                    f"{bank}{g.output}",
                    gate,
                    outputs[g.output],
                    GATE_OPS[g.op],
                    inputs[g.x],
                    inputs[g.y],
                )
        sim.register_process("master", master, network, config.loops, snapshots)

        start = time.perf_counter()
        summary = sim.run()
        elapsed = time.perf_counter() - start

    return RandomLogicResult(
        network=network,
        summary=summary,
        packed=(pack(network.a), pack(network.b), pack(network.c)),
        wall_clock_seconds=elapsed,
        snapshots=snapshots,
    )


def print_summary(result: RandomLogicResult) -> None:
    a, b, c = result.packed
    print("\n" + "=" * 60)
    print("RANDOM LOGIC NETWORK")
    print("=" * 60)
    print(f"  {a:016x} {b:016x} {c:016x}")
    print()
    print(result.summary)
    rate = result.summary.resumptions / result.wall_clock_seconds if result.wall_clock_seconds else 0.0
    print(f"\n  Throughput: {rate:,.0f} resumptions/s")
    print("=" * 60)


def visualize_results(result: RandomLogicResult, output_dir: Path) -> None:
    """Plot how many bits of each bank are set after every loop."""
    import matplotlib.pyplot as plt

    output_dir.mkdir(parents=True, exist_ok=True)
    loops = list(range(1, len(result.snapshots) + 1))

    fig, ax = plt.subplots(figsize=(10, 4))
    for index, label in enumerate(("a", "b", "c")):
        ax.plot(loops, [bin(s[index]).count("1") for s in result.snapshots], marker="o", label=label)
    ax.set_xlabel("Loop")
    ax.set_ylabel("Bits set")
    ax.set_title("Random logic network state per loop")
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(output_dir / "random_logic_bits.png", dpi=150)
    plt.close(fig)
    print(f"Saved: {output_dir / 'random_logic_bits.png'}")


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    import argparse

    import deltasim

    parser = argparse.ArgumentParser(description="Random logic network benchmark")
    parser.add_argument("--gates", type=int, default=64, help="Gates per bank")
    parser.add_argument("--steps", type=int, default=2000, help="Feedback writes per loop")
    parser.add_argument("--loops", type=int, default=10, help="Number of loops")
    parser.add_argument("--seed", type=int, default=123, help="Random seed")
    parser.add_argument("--output", type=str, default="output/random_logic", help="Output directory")
    parser.add_argument("--no-viz", action="store_true", help="Skip visualization generation")
    args = parser.parse_args()

    deltasim.configure_from_env()

    config = RandomLogicConfig(gates=args.gates, steps=args.steps, loops=args.loops, seed=args.seed)
    print(f"Running {config.loops} loops of {config.steps} writes over {config.gates} gates...")
    result = run_random_logic_simulation(config)
    print_summary(result)

    if not args.no_viz:
        visualize_results(result, Path(args.output))
