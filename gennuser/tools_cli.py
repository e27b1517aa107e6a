"""Command line front end for the connectivity and input-pattern generators."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import numpy as np

from .izh_network import izh_network, write_izh_network
from .synapse_gen import (
    kcdn_weights,
    pnkc_bitmask,
    pnkc_weights,
    pnlhi_weights,
    sparse_synapses,
    structured_input_patterns,
    write_doubles,
    write_sparse,
    write_uint32,
)

__all__ = ["main"]


class _Parser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _rng(args: argparse.Namespace) -> np.random.Generator:
    return np.random.default_rng(args.seed)


def _input_structured(args: argparse.Namespace) -> None:
    patterns = structured_input_patterns(
        args.n_al,
        args.n_classes,
        args.patterns_per_class,
        args.p_active,
        args.p_perturb,
        args.rate_on,
        args.rate_off,
        _rng(args),
    )
    write_doubles(args.outfile, patterns.ravel())


def _kcdn(args: argparse.Namespace) -> None:
    g = kcdn_weights(
        args.n_mb, args.n_lobes, args.mean, args.jitter, args.minimum, _rng(args)
    )
    write_doubles(args.outfile, g.ravel())


def _pnkc(args: argparse.Namespace) -> None:
    g = pnkc_weights(args.n_al, args.n_mb, args.p_syn, args.mean, args.jitter, _rng(args))
    write_doubles(args.outfile, g.ravel())


def _pnkc_individ(args: argparse.Namespace) -> None:
    write_uint32(args.outfile, pnkc_bitmask(args.n_al, args.n_mb, args.p_syn, _rng(args)))


def _pnlhi(args: argparse.Namespace) -> None:
    g = pnlhi_weights(args.n_al, args.n_lhi, args.theta, args.min_act)
    write_doubles(args.outfile, g.ravel())


def _sparse(args: argparse.Namespace) -> None:
    conn = sparse_synapses(args.n1, args.n2, args.p_conn, args.mean, args.jitter, _rng(args))
    write_sparse(args.outfile, conn, conn.to_dense(args.n2))
    print(f"vect.size: {conn.conn_n}")
    print(f"ind size: {len(conn.ind)}")
    print(f"count size: {len(conn.ind_in_g)}")
    print(f"ctr: {int(conn.ind_in_g[-1])}")


def _izh(args: argparse.Namespace) -> None:
    net = izh_network(args.n_neurons, args.n_conn, args.mean_exc, args.mean_inh, _rng(args))
    write_izh_network(args.outfile, net)
    for name, projection in net.projections().items():
        print(f"{name} vect.size: {projection.conn_n}")
        print(f"{name} ind size: {len(projection.ind)}")
        print(f"{name} count size: {len(projection.ind_in_g)}")


def _build_parser() -> _Parser:
    parser = _Parser(prog="gennuser-tools", description=__doc__)
    sub = parser.add_subparsers(dest="tool", required=True)

    def command(name, func, help_text, arguments):
        p = sub.add_parser(name, help=help_text)
        for arg_name, arg_type, arg_help in arguments:
            p.add_argument(arg_name, type=arg_type, help=arg_help)
        p.add_argument("--seed", type=int, default=None, help="random seed")
        p.set_defaults(func=func)

    command(
        "input-structured",
        _input_structured,
        "input rate patterns grouped into classes",
        [
            ("n_al", int, "number of inputs"),
            ("n_classes", int, "number of classes"),
            ("patterns_per_class", int, "patterns per input class"),
            ("p_active", float, "probability to be active"),
            ("p_perturb", float, "perturbation probability in class"),
            ("rate_on", float, "'on' rate"),
            ("rate_off", float, "baseline rate"),
            ("outfile", str, "output file"),
        ],
    )
    command(
        "kcdn-syns",
        _kcdn,
        "KC to DN conductances",
        [
            ("n_mb", int, "number of KCs"),
            ("n_lobes", int, "number of DNs"),
            ("mean", float, "mean strength"),
            ("jitter", float, "strength jitter"),
            ("minimum", float, "minimum strength"),
            ("outfile", str, "output file"),
        ],
    )
    command(
        "pnkc-syns",
        _pnkc,
        "PN to KC conductances",
        [
            ("n_al", int, "number of PNs"),
            ("n_mb", int, "number of KCs"),
            ("p_syn", float, "probability of a PN-KC synapse"),
            ("mean", float, "mean strength"),
            ("jitter", float, "strength jitter"),
            ("outfile", str, "output file"),
        ],
    )
    command(
        "pnkc-syns-individ",
        _pnkc_individ,
        "PN to KC connectivity as a bit mask",
        [
            ("n_al", int, "number of PNs"),
            ("n_mb", int, "number of KCs"),
            ("p_syn", float, "probability of a PN-KC synapse"),
            ("outfile", str, "output file"),
        ],
    )
    command(
        "pnlhi-syns",
        _pnlhi,
        "PN to LHI conductances",
        [
            ("n_al", int, "number of PNs"),
            ("n_lhi", int, "number of LHIs"),
            ("theta", float, "PN-LHI theta"),
            ("min_act", float, "PN-LHI minimal activity"),
            ("outfile", str, "output file"),
        ],
    )
    command(
        "syns-sparse",
        _sparse,
        "sparse random connectivity",
        [
            ("n1", int, "number of presynaptic neurons"),
            ("n2", int, "number of postsynaptic neurons"),
            ("p_conn", float, "probability of connection"),
            ("mean", float, "mean strength"),
            ("jitter", float, "strength jitter"),
            ("outfile", str, "output file base name"),
        ],
    )
    command(
        "syns-sparse-izh",
        _izh,
        "sparse excitatory/inhibitory Izhikevich network",
        [
            ("n_neurons", int, "number of neurons"),
            ("n_conn", int, "connections per neuron"),
            ("mean_exc", float, "mean excitatory strength"),
            ("mean_inh", float, "mean inhibitory strength"),
            ("outfile", str, "output file base name"),
        ],
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one generator; returns the exit status."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    args = _build_parser().parse_args(arguments)
    print("# call was: " + " ".join([args.tool, *arguments[1:]]), file=sys.stderr)
    try:
        args.func(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())