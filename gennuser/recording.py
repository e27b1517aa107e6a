"""Input, state and clock helpers for the single-population and Poisson-Izhikevich runs.

The input current is stored in single precision, as the simulators keep it.
State lines are written as ``"%f "`` separated values starting with the
current time and ending with a newline.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator

import numpy as np

__all__ = [
    "ONECOMP_DT",
    "ONECOMP_REPORT_TIME",
    "ONECOMP_TOTAL_TIME",
    "POISSON_IZH_DT",
    "POISSON_IZH_REPORT_TIME",
    "POISSON_IZH_SYN_OUT_TIME",
    "POISSON_IZH_TOTAL_TIME",
    "POISSON_IZH_BASE_RATE",
    "INPUT_FREQUENCY",
    "INPUT_OUTPUT_LIMIT",
    "SimClock",
    "sinusoidal_input",
    "format_input",
    "read_input_values",
    "format_onecomp_state",
    "format_poisson_izh_state",
]

ONECOMP_DT = 1.0
ONECOMP_REPORT_TIME = 100.0
ONECOMP_TOTAL_TIME = 5000.0

POISSON_IZH_DT = 1.0
POISSON_IZH_REPORT_TIME = 1000.0
POISSON_IZH_SYN_OUT_TIME = 2000.0
POISSON_IZH_TOTAL_TIME = 5000.0
POISSON_IZH_BASE_RATE = 2e-02

INPUT_FREQUENCY = 5.0
INPUT_OUTPUT_LIMIT = 10

_FLOAT_SIZE = np.dtype(np.float32).itemsize


def sinusoidal_input(n: int, t: float, frequency: float = INPUT_FREQUENCY) -> np.ndarray:
    """Input currents ``5 * sin(frequency * (t + 10 * (x + 1)) * 0.001 * 2 * pi)`` for neurons ``x``.

    Times are in milliseconds and ``frequency`` in hertz; each neuron lags its
    successor by 10 ms. The result is single precision.
    """
    if n < 0:
        raise ValueError(f"n must not be negative, got {n}")
    t = float(np.float32(t))
    frequency = float(np.float32(frequency))
    x = np.arange(n, dtype=np.float64)
    phase = frequency * (t + 10.0 * (x + 1.0)) * 0.001 * 2.0 * math.pi
    return (5.0 * np.sin(phase).astype(np.float32)).astype(np.float32)


def _line(t: float, values: Iterable[float]) -> str:
    return "".join([f"{float(t):f} ", *(f"{float(v):f} " for v in values)]) + "\n"


def format_input(t: float, values: Iterable[float], limit: int = INPUT_OUTPUT_LIMIT) -> str:
    """Input line: the time followed by at most ``limit`` input values."""
    if limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")
    shown = list(values)[:limit]
    return _line(t, shown)


def read_input_values(stream: BinaryIO, n: int) -> np.ndarray:
    """Read ``n`` native single-precision input values from a binary stream."""
    if n < 0:
        raise ValueError(f"n must not be negative, got {n}")
    raw = stream.read(n * _FLOAT_SIZE)
    if len(raw) != n * _FLOAT_SIZE:
        raise ValueError(
            f"expected {n * _FLOAT_SIZE} bytes of input values, got {len(raw)}"
        )
    return np.frombuffer(raw, dtype=np.float32).copy()


def format_onecomp_state(t: float, voltages: Iterable[float]) -> str:
    """State line of the single-population model.

    As in the simulator's output, the last neuron's voltage is not written.
    """
    return _line(t, list(voltages)[:-1])


def format_poisson_izh_state(t: float, v_pn: Iterable[float], v_izh: Iterable[float]) -> str:
    """State line of the Poisson-Izhikevich model: all PN voltages, then all Izhikevich voltages."""
    return _line(t, [*v_pn, *v_izh])


@dataclass
class SimClock:
    """Simulation time in milliseconds and the number of steps taken."""

    t: float = 0.0
    step: int = 0

    def _tick(self, dt: float) -> None:
        self.t = float(np.float32(self.t + dt))
        self.step += 1

    @staticmethod
    def _step_count(runtime: float, dt: float) -> int:
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        return max(int(runtime / dt), 0)

    def steps(self, runtime: float, dt: float) -> Iterator[tuple[int, float]]:
        """Yield ``(step, t)`` before each of the ``int(runtime / dt)`` steps, advancing after each."""
        count = self._step_count(runtime, dt)
        for _ in range(count):
            yield self.step, self.t
            self._tick(dt)

    def advance(self, runtime: float, dt: float) -> int:
        """Advance by ``int(runtime / dt)`` steps; returns the number of steps taken."""
        count = self._step_count(runtime, dt)
        for _ in range(count):
            self._tick(dt)
        return count