"""Waveform recording of committed signal values.

A Waveform is a signal observer: attach it to a Simulator and it keeps the
history of every watched signal as (tick, value) change points. The history
can be exported to a pandas DataFrame or drawn as a step plot.

Example::

    wave = Waveform([clk, count])
    sim.add_observer(wave)
    sim.run()
    wave.to_dataframe()
    wave.plot(output_dir / "counter.png")
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from deltasim.core.signal import Signal

logger = logging.getLogger(__name__)


class Waveform:
    """History of committed values for a fixed set of signals.

    The value each signal holds when the Waveform is created is recorded at
    ``start_time``. Later samples are appended in commit order, which is
    non-decreasing in time. Each tick contributes at most one sample, the
    value at the end of the tick, and only if it differs from the previous
    sample, so a glitch that returns within one tick is not recorded.
    """

    TIME = "time"
    SIGNAL = "signal"
    VALUE = "value"

    def __init__(self, signals: Iterable[Signal], start_time: int = 0) -> None:
        self._signals: dict[str, Signal] = {}
        self._samples: dict[str, list[tuple[int, Any]]] = {}
        for signal in signals:
            if signal.name in self._signals:
                raise ValueError(f"Duplicate signal name {signal.name!r} in waveform")
            self._signals[signal.name] = signal
            self._samples[signal.name] = [(start_time, signal.value)]

    @property
    def signal_names(self) -> list[str]:
        return list(self._signals)

    def on_commit(self, time: int, signal: Signal, old: Any, new: Any) -> None:
        watched = self._signals.get(signal.name)
        if watched is not signal:
            return
        samples = self._samples[signal.name]
        if samples[-1][0] == time:
            # Several delta cycles at one tick: keep the value at its end.
            if len(samples) == 1:
                samples[0] = (time, new)
                return
            samples.pop()
        if samples[-1][1] != new:
            samples.append((time, new))

    def changes(self, signal: Signal | str) -> list[tuple[int, Any]]:
        """All (tick, value) change points of a signal, initial value first."""
        return list(self._samples[self._name(signal)])

    def value_at(self, signal: Signal | str, time: int) -> Any:
        """The committed value of a signal at the end of the given tick."""
        samples = self._samples[self._name(signal)]
        times = [t for t, _ in samples]
        index = bisect.bisect_right(times, time) - 1
        if index < 0:
            raise ValueError(f"No value recorded for {self._name(signal)!r} at tick {time}")
        return samples[index][1]

    def to_dataframe(self) -> pd.DataFrame:
        """Long-format DataFrame with columns time, signal, value."""
        rows = [
            (t, name, v)
            for name, samples in self._samples.items()
            for t, v in samples
        ]
        df = pd.DataFrame(rows, columns=[self.TIME, self.SIGNAL, self.VALUE])
        return df.sort_values([self.TIME, self.SIGNAL], kind="stable").reset_index(drop=True)

    def plot(self, path: str | Path | None = None, end_time: int | None = None):
        """Draw one step trace per signal.

        Args:
            path: If given, the figure is saved there and closed.
            end_time: Right edge of the time axis; defaults to the last change.

        Returns:
            The matplotlib Figure (already closed when ``path`` is given).
        """
        import matplotlib.pyplot as plt

        names = self.signal_names
        if not names:
            raise ValueError("Waveform has no signals to plot")
        last = max(samples[-1][0] for samples in self._samples.values())
        end = last + 1 if end_time is None else end_time

        fig, axes = plt.subplots(len(names), 1, figsize=(12, 1.2 * len(names) + 1), sharex=True, squeeze=False)
        for ax, name in zip(axes[:, 0], names):
            samples = self._samples[name]
            times = [t for t, _ in samples] + [end]
            values = [v for _, v in samples]
            values.append(values[-1])
            ax.step(times, values, where="post", linewidth=1.5)
            ax.set_ylabel(name, rotation=0, ha="right", va="center")
            ax.grid(True, alpha=0.3)
        axes[-1, 0].set_xlabel("Time (ticks)")
        axes[-1, 0].set_xlim(0, end)
        fig.tight_layout()

        if path is not None:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(path, dpi=150)
            plt.close(fig)
            logger.info("Saved waveform plot to %s", path)
        return fig

    def _name(self, signal: Signal | str) -> str:
        return signal if isinstance(signal, str) else signal.name
