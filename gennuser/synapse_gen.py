"""Generators for the connectivity and input-pattern files used by the example models.

Every generator returns numpy arrays. The ``write_*`` helpers store them as raw
binary files in native byte order, which is what the simulators read back.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

PathLike = Union[str, Path]

__all__ = [
    "SparseConnectivity",
    "structured_input_patterns",
    "kcdn_weights",
    "pnkc_weights",
    "pnkc_bitmask",
    "pnlhi_weights",
    "sparse_synapses",
    "write_doubles",
    "write_uint32",
    "write_sparse",
]


def _generator(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def _check_counts(**counts: int) -> None:
    for name, value in counts.items():
        if value < 0:
            raise ValueError(f"{name} must not be negative, got {value}")


def structured_input_patterns(
    n_inputs: int,
    n_classes: int,
    patterns_per_class: int,
    p_active: float,
    p_perturb: float,
    rate_on: float,
    rate_off: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Build rate patterns grouped into classes of perturbed copies of a mother pattern.

    Each class has a mother pattern with exactly ``int(p_active * n_inputs)``
    active inputs. Every pattern of the class switches off
    ``int(p_perturb * n_active)`` randomly chosen active inputs and switches on
    the same number of inputs that are inactive in the mother pattern.
    The result has shape ``(n_classes * patterns_per_class, n_inputs)``.
    """
    _check_counts(
        n_inputs=n_inputs, n_classes=n_classes, patterns_per_class=patterns_per_class
    )
    rng = _generator(rng)
    n_active = int(p_active * n_inputs)
    n_perturb = int(p_perturb * n_active)
    if n_active < 0 or n_active > n_inputs:
        raise ValueError("p_active must select between 0 and n_inputs active inputs")
    if n_perturb > 0 and n_active >= n_inputs:
        raise ValueError("perturbation needs at least one inactive input")

    patterns = np.empty((n_classes * patterns_per_class, n_inputs), dtype=np.float64)
    row = 0
    for _ in range(n_classes):
        mother = np.zeros(n_inputs, dtype=bool)
        active: list[int] = []
        while len(active) < n_active:
            candidate = int(rng.random() * n_inputs)
            if not mother[candidate]:
                mother[candidate] = True
                active.append(candidate)

        for _ in range(patterns_per_class):
            pattern = mother.copy()
            for _ in range(n_perturb):
                switched_off = active[int(rng.random() * n_active)]
                while True:
                    replacement = int(rng.random() * n_inputs)
                    if not mother[replacement]:
                        break
                pattern[switched_off] = False
                pattern[replacement] = True
            patterns[row] = np.where(pattern, rate_on, rate_off)
            row += 1
    return patterns


def kcdn_weights(
    n_mb: int,
    n_lobes: int,
    mean: float,
    jitter: float,
    minimum: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """All-to-all KC to DN conductances: Gaussian around ``mean``, clipped below at ``minimum``."""
    _check_counts(n_mb=n_mb, n_lobes=n_lobes)
    rng = _generator(rng)
    g = mean + jitter * rng.standard_normal((n_mb, n_lobes))
    return np.where(g < minimum, minimum, g)


def pnkc_weights(
    n_al: int,
    n_mb: int,
    p_syn: float,
    mean: float,
    jitter: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Random PN to KC conductances; each pair is connected with probability ``p_syn``."""
    _check_counts(n_al=n_al, n_mb=n_mb)
    rng = _generator(rng)
    connected = rng.random((n_al, n_mb)) < p_syn
    g = np.zeros((n_al, n_mb), dtype=np.float64)
    g[connected] = mean + jitter * rng.standard_normal(int(connected.sum()))
    return g


def pnkc_bitmask(
    n_al: int,
    n_mb: int,
    p_syn: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Random PN to KC connectivity packed as bits into 32-bit words.

    Synapse ``k = i * n_mb + j`` is bit ``k & 31`` of word ``k >> 5``. The array
    always has ``n_al * n_mb // 32 + 1`` words.
    """
    _check_counts(n_al=n_al, n_mb=n_mb)
    rng = _generator(rng)
    total = n_al * n_mb
    words = np.zeros(total // 32 + 1, dtype=np.uint32)
    connected = np.flatnonzero(rng.random(total) < p_syn)
    bits = np.left_shift(np.uint32(1), (connected & 31).astype(np.uint32))
    np.bitwise_or.at(words, connected >> 5, bits)
    return words


def pnlhi_weights(n_al: int, n_lhi: int, theta: float, min_act: float) -> np.ndarray:
    """PN to LHI conductances ``theta / (min_act + j)`` for every PN and LHI ``j``."""
    _check_counts(n_al=n_al, n_lhi=n_lhi)
    with np.errstate(divide="ignore", invalid="ignore"):
        row = theta / (min_act + np.arange(n_lhi, dtype=np.float64))
    return np.tile(row, (n_al, 1))


@dataclass
class SparseConnectivity:
    """Row-compressed connectivity: values, post indices and per-pre offsets."""

    g: np.ndarray
    ind: np.ndarray
    ind_in_g: np.ndarray

    @property
    def n_pre(self) -> int:
        return len(self.ind_in_g) - 1

    @property
    def conn_n(self) -> int:
        return len(self.g)

    def to_dense(self, n_post: int) -> np.ndarray:
        """Expand into an ``(n_pre, n_post)`` matrix with zeros where unconnected."""
        dense = np.zeros((self.n_pre, n_post), dtype=np.float64)
        rows = np.repeat(np.arange(self.n_pre), np.diff(self.ind_in_g.astype(np.int64)))
        dense[rows, self.ind.astype(np.int64)] = self.g
        return dense


def sparse_synapses(
    n_pre: int,
    n_post: int,
    p_conn: float,
    mean: float,
    jitter: float,
    rng: Optional[np.random.Generator] = None,
) -> SparseConnectivity:
    """Random sparse connectivity with Gaussian conductances, in row-compressed form."""
    _check_counts(n_pre=n_pre, n_post=n_post)
    rng = _generator(rng)
    connected = rng.random((n_pre, n_post)) < p_conn
    rows, cols = np.nonzero(connected)
    g = mean + jitter * rng.standard_normal(len(rows))
    offsets = np.concatenate(([0], np.cumsum(connected.sum(axis=1))))
    return SparseConnectivity(
        g=g.astype(np.float64),
        ind=cols.astype(np.uint32),
        ind_in_g=offsets.astype(np.uint32),
    )


def write_doubles(path: PathLike, values: Iterable[float]) -> int:
    """Write values as native doubles; returns the number of bytes written."""
    data = np.ascontiguousarray(np.asarray(values, dtype=np.float64))
    raw = data.tobytes()
    Path(path).write_bytes(raw)
    return len(raw)


def write_uint32(path: PathLike, values: Iterable[int]) -> int:
    """Write values as native unsigned 32-bit integers; returns the number of bytes written."""
    data = np.ascontiguousarray(np.asarray(values, dtype=np.uint32))
    raw = data.tobytes()
    Path(path).write_bytes(raw)
    return len(raw)


def write_sparse(
    base_path: PathLike, connectivity: SparseConnectivity, dense: np.ndarray
) -> dict[str, Path]:
    """Write the sparse connectivity files next to ``base_path``.

    Files: ``base`` (values), ``base_postind`` (post indices),
    ``base_revIndInG`` (offsets), ``base_nonopt`` (dense matrix) and
    ``base_info`` (number of connections as a native ``size_t``).
    """
    base = str(base_path)
    paths = {
        "g": Path(base),
        "postind": Path(base + "_postind"),
        "revIndInG": Path(base + "_revIndInG"),
        "nonopt": Path(base + "_nonopt"),
        "info": Path(base + "_info"),
    }
    paths["info"].write_bytes(struct.pack("N", connectivity.conn_n))
    write_doubles(paths["g"], connectivity.g)
    write_uint32(paths["postind"], connectivity.ind)
    write_uint32(paths["revIndInG"], connectivity.ind_in_g)
    write_doubles(paths["nonopt"], np.asarray(dense, dtype=np.float64).ravel())
    return paths