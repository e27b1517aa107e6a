"""Host-side helpers for the mushroom body simulation.

This module reads conductance and pattern files and turns dense conductance
matrices into sparse projections. It also covers the learning synapse's raw
conductances, the schedule that switches between input patterns and baseline
rates, the text output of states and spikes, and running spike totals.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Mapping, Optional, Sequence

import numpy as np

from .synapse_gen import SparseConnectivity

__all__ = [
    "DT",
    "PATTERN_NO",
    "INPUT_BASE_RATE",
    "PAT_TIME",
    "PATF_TIME",
    "T_REPORT_TME",
    "SYN_OUT_TME",
    "TOTAL_TME",
    "RateSource",
    "SparseProjection",
    "PatternSchedule",
    "SpikeCounts",
    "read_doubles",
    "count_entries_above",
    "dense_to_sparse",
    "graw_from_g",
    "read_sparse_projection",
    "format_state",
    "format_spikes",
]

DT = 0.1
PATTERN_NO = 100
INPUT_BASE_RATE = 2e-04
PAT_TIME = 100.0
PATF_TIME = 1.5
T_REPORT_TME = 10000.0
SYN_OUT_TME = 20000.0
TOTAL_TME = 5000.0


def read_doubles(stream: BinaryIO, count: int) -> np.ndarray:
    """Read up to ``count`` native doubles; fewer are returned if the stream ends early."""
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    raw = stream.read(count * 8)
    whole = len(raw) // 8
    return np.frombuffer(raw[: whole * 8], dtype=np.float64).copy()


def count_entries_above(values: Iterable[float], threshold: float) -> int:
    """Number of entries whose magnitude exceeds ``threshold``."""
    return int(np.count_nonzero(np.abs(np.asarray(values, dtype=np.float64)) > threshold))


@dataclass
class SparseProjection(SparseConnectivity):
    """Row-compressed projection with a helper to build the reverse (post to pre) index."""

    def post_to_pre(self, n_post: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(rev_ind_in_g, rev_ind, remap)``.

        For postsynaptic neuron ``j`` the entries ``rev_ind_in_g[j]`` to
        ``rev_ind_in_g[j + 1]`` of ``rev_ind`` list its presynaptic neurons in
        ascending order, and ``remap`` gives the matching positions in ``g``.
        """
        if n_post < 0:
            raise ValueError(f"n_post must not be negative, got {n_post}")
        ind = self.ind.astype(np.int64)
        if len(ind) and int(ind.max()) >= n_post:
            raise ValueError("post index out of range for n_post")
        rows = np.repeat(np.arange(self.n_pre), np.diff(self.ind_in_g.astype(np.int64)))
        order = np.argsort(ind, kind="stable")
        counts = np.bincount(ind, minlength=n_post)
        rev_ind_in_g = np.concatenate(([0], np.cumsum(counts))).astype(np.uint32)
        return rev_ind_in_g, rows[order].astype(np.uint32), order.astype(np.uint32)


def dense_to_sparse(
    dense: Iterable[float], n_pre: int, n_post: int, threshold: float
) -> SparseProjection:
    """Keep the entries of an ``n_pre`` by ``n_post`` matrix whose magnitude exceeds ``threshold``."""
    if n_pre < 0 or n_post < 0:
        raise ValueError("population sizes must not be negative")
    matrix = np.asarray(dense, dtype=np.float64).reshape(n_pre, n_post)
    mask = np.abs(matrix) > threshold
    _, cols = np.nonzero(mask)
    offsets = np.concatenate(([0], np.cumsum(mask.sum(axis=1))))
    return SparseProjection(
        g=matrix[mask].astype(np.float64),
        ind=cols.astype(np.uint32),
        ind_in_g=offsets.astype(np.uint32),
    )


def graw_from_g(g, gmax: float, gmid: float, gslope: float) -> np.ndarray:
    """Invert ``g = gmax / 2 * (tanh(gslope * (graw - gmid)) + 1)`` for the raw conductance."""
    tmp = np.asarray(g, dtype=np.float64) / gmax * 2.0
    with np.errstate(divide="ignore", invalid="ignore"):
        return 0.5 * np.log(tmp / (2.0 - tmp)) / gslope + gmid


def _read_exact(stream: BinaryIO, count: int, dtype, what: str) -> np.ndarray:
    size = np.dtype(dtype).itemsize
    raw = stream.read(count * size)
    if len(raw) != count * size:
        raise ValueError(
            f"expected {count * size} bytes of {what}, got {len(raw)}"
        )
    return np.frombuffer(raw, dtype=dtype).copy()


def read_sparse_projection(
    f_ind: BinaryIO, f_ind_in_g: BinaryIO, f_g: BinaryIO, n_pre: int, conn_n: int
) -> SparseProjection:
    """Read a sparse projection: ``conn_n`` doubles, ``n_pre + 1`` offsets and ``conn_n`` indices."""
    if n_pre < 0 or conn_n < 0:
        raise ValueError("n_pre and conn_n must not be negative")
    g = _read_exact(f_g, conn_n, np.float64, "conductances")
    ind_in_g = _read_exact(f_ind_in_g, n_pre + 1, np.uint32, "row offsets")
    ind = _read_exact(f_ind, conn_n, np.uint32, "post indices")
    return SparseProjection(g=g, ind=ind, ind_in_g=ind_in_g)


class RateSource(enum.Enum):
    """Where the Poisson input neurons take their rates from."""

    PATTERN = "pattern"
    BASE = "base"


@dataclass(frozen=True)
class PatternSchedule:
    """Presents input pattern after pattern, each for ``pat_fire_time`` steps every ``pat_set_time`` steps."""

    pat_set_time: int
    pat_fire_time: int
    n_inputs: int
    pattern_count: int = PATTERN_NO

    def __post_init__(self) -> None:
        if self.pat_set_time <= 0:
            raise ValueError("pat_set_time must be positive")
        if self.pat_fire_time < 0:
            raise ValueError("pat_fire_time must not be negative")
        if self.n_inputs < 0:
            raise ValueError("n_inputs must not be negative")
        if self.pattern_count <= 0:
            raise ValueError("pattern_count must be positive")

    @classmethod
    def from_times(
        cls,
        pat_time: float = PAT_TIME,
        fire_time: float = PATF_TIME,
        dt: float = DT,
        n_inputs: int = 0,
        pattern_count: int = PATTERN_NO,
    ) -> "PatternSchedule":
        """Build a schedule from durations in milliseconds."""
        return cls(int(pat_time / dt), int(fire_time / dt), n_inputs, pattern_count)

    def rates_at(self, step: int) -> tuple[RateSource, int]:
        """Rate source and offset into it used at time step ``step``."""
        if step < 0:
            raise ValueError(f"step must not be negative, got {step}")
        if step % self.pat_set_time < self.pat_fire_time:
            pattern = (step // self.pat_set_time) % self.pattern_count
            return RateSource.PATTERN, pattern * self.n_inputs
        return RateSource.BASE, 0

    def steps(self, start: int, runtime: float, dt: float = DT):
        """Yield ``(step, source, offset)`` for the steps covering ``runtime``."""
        for step in range(start, start + int(runtime / dt)):
            yield (step, *self.rates_at(step))


def format_state(t: float, *args: Iterable[float]) -> str:
    """One state line: the time followed by every value of every array."""
    parts = [f"{t:f} "]
    for values in args:
        parts.extend(f"{float(v):f} " for v in values)
    return "".join(parts) + "\n"


def format_spikes(
    t: float, spikes: Sequence[Iterable[int]], offsets: Sequence[int]
) -> str:
    """Spike lines ``"t id"``; ids of each population are shifted by its offset."""
    if len(spikes) != len(offsets):
        raise ValueError("need one offset for every spike population")
    return "".join(
        f"{t:f} {offset + int(neuron)}\n"
        for population, offset in zip(spikes, offsets)
        for neuron in population
    )


@dataclass
class SpikeCounts:
    """Running spike totals per population."""

    totals: dict[str, int] = field(default_factory=dict)

    def add(self, counts: Mapping[str, int]) -> None:
        """Add the spike counts of one time step."""
        for name, count in counts.items():
            if count < 0:
                raise ValueError(f"spike count of {name!r} must not be negative")
        for name, count in counts.items():
            self.totals[name] = self.totals.get(name, 0) + int(count)

    def __getitem__(self, name: str) -> int:
        return self.totals.get(name, 0)