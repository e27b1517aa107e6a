"""Sparse random network of excitatory and inhibitory Izhikevich neurons.

Every neuron projects to exactly ``n_conn`` distinct targets, chosen by
reservoir sampling. The first four fifths of the neurons are excitatory. The
connections are then split into the four projections exc-exc ("ee"),
exc-inh ("ei"), inh-exc ("ie") and inh-inh ("ii"). Each projection is stored in
row-compressed form with post indices local to the target population.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .synapse_gen import SparseConnectivity, write_doubles, write_uint32

PathLike = Union[str, Path]

PROJECTION_NAMES = ("ee", "ei", "ie", "ii")

__all__ = [
    "PROJECTION_NAMES",
    "Projection",
    "IzhNetwork",
    "izh_network",
    "write_izh_network",
]


@dataclass
class Projection(SparseConnectivity):
    """Row-compressed connectivity of one sub-projection, labelled by name."""

    name: str


def _split(
    name: str, targets: np.ndarray, weights: np.ndarray, n_exc: int, to_exc: bool
) -> Projection:
    mask = targets < n_exc if to_exc else targets >= n_exc
    shift = 0 if to_exc else n_exc
    ind = targets[mask].astype(np.int64) - shift
    offsets = np.concatenate(([0], np.cumsum(mask.sum(axis=1))))
    return Projection(
        g=weights[mask].astype(np.float64),
        ind=ind.astype(np.uint32),
        ind_in_g=offsets.astype(np.uint32),
        name=name,
    )


@dataclass
class IzhNetwork:
    """Targets and weights of every neuron, one row of ``n_conn`` slots per neuron."""

    n_exc: int
    targets: np.ndarray
    weights: np.ndarray

    @property
    def n_neurons(self) -> int:
        return int(self.targets.shape[0])

    @property
    def n_inh(self) -> int:
        return self.n_neurons - self.n_exc

    @property
    def n_conn(self) -> int:
        return int(self.targets.shape[1])

    def projections(self) -> dict[str, Projection]:
        """Split into the "ee", "ei", "ie" and "ii" projections, in that order."""
        exc_t, inh_t = self.targets[: self.n_exc], self.targets[self.n_exc :]
        exc_w, inh_w = self.weights[: self.n_exc], self.weights[self.n_exc :]
        return {
            "ee": _split("ee", exc_t, exc_w, self.n_exc, to_exc=True),
            "ei": _split("ei", exc_t, exc_w, self.n_exc, to_exc=False),
            "ie": _split("ie", inh_t, inh_w, self.n_exc, to_exc=True),
            "ii": _split("ii", inh_t, inh_w, self.n_exc, to_exc=False),
        }


def izh_network(
    n_neurons: int,
    n_conn: int,
    mean_exc: float,
    mean_inh: float,
    rng: Optional[np.random.Generator] = None,
) -> IzhNetwork:
    """Draw ``n_conn`` random targets per neuron with uniform weights.

    Weights of excitatory neurons are uniform in ``[0, mean_exc)``, those of
    inhibitory neurons uniform in ``[0, 1) * mean_inh``.
    """
    if n_neurons < 0 or n_conn < 0:
        raise ValueError("neuron and connection counts must not be negative")
    if n_conn > n_neurons:
        raise ValueError(
            f"cannot choose {n_conn} targets among {n_neurons} neurons"
        )
    rng = rng if rng is not None else np.random.default_rng()
    n_exc = (4 * n_neurons) // 5
    targets = np.empty((n_neurons, n_conn), dtype=np.uint32)
    weights = np.empty((n_neurons, n_conn), dtype=np.float64)
    candidates = np.arange(n_conn, n_neurons)

    for i, (row_targets, row_weights) in enumerate(zip(targets, weights)):
        mean = mean_exc if i < n_exc else mean_inh
        row_targets[:] = np.arange(n_conn)
        row_weights[:] = rng.random(n_conn) * mean
        slots = (rng.random(len(candidates)) * (candidates + 1)).astype(np.int64)
        hits = np.flatnonzero(slots < n_conn)
        replacements = rng.random(len(hits)) * mean
        for hit, weight in zip(hits, replacements):
            slot = slots[hit]
            row_targets[slot] = candidates[hit]
            row_weights[slot] = weight

    return IzhNetwork(n_exc=n_exc, targets=targets, weights=weights)


def write_izh_network(
    base_path: PathLike, network: IzhNetwork
) -> dict[str, dict[str, Path]]:
    """Write the four projections next to ``base_path``.

    For each projection ``p`` the files are ``base_p`` (weights as doubles),
    ``base_ind_p`` and ``base_indInG_p`` (unsigned 32-bit integers) and
    ``base_info_p`` (number of connections as a native ``size_t``).
    """
    base = str(base_path)
    written: dict[str, dict[str, Path]] = {}
    for name, projection in network.projections().items():
        paths = {
            "g": Path(f"{base}_{name}"),
            "ind": Path(f"{base}_ind_{name}"),
            "indInG": Path(f"{base}_indInG_{name}"),
            "info": Path(f"{base}_info_{name}"),
        }
        paths["info"].write_bytes(struct.pack("N", projection.conn_n))
        write_doubles(paths["g"], projection.g)
        write_uint32(paths["ind"], projection.ind)
        write_uint32(paths["indInG"], projection.ind_in_g)
        written[name] = paths
    return written