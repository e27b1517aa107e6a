"""One-command drivers that prepare, build and run the example models.

Each driver writes the population sizes into ``$GENN_PATH/userproject/include/sizes.h``,
builds the model with the project's build script, creates the output directory,
generates the connectivity and input files the model needs and finally starts
the simulator.
"""

from __future__ import annotations

import os
import subprocess
import sys
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from .tools_cli import main as tools_main

__all__ = [
    "CommandFailed",
    "MBodyDerived",
    "mbody_derived",
    "poisson_izh_derived",
    "mbody_sizes_header",
    "onecomp_sizes_header",
    "poisson_izh_sizes_header",
    "build_command",
    "sim_command",
    "run_command",
    "run_mbody",
    "run_onecomp",
    "run_poisson_izh",
    "main",
]

_WINDOWS = os.name == "nt"
_OUTDIR_MODE = 0o771

MBODY_USAGE = (
    'usage: generate_run <CPU=0, AUTO GPU=1, GPU n= "n+2"> <nAL> <nMB> <nLHI> <nLB> '
    "<gscale> <outdir> <model name> <debug mode? (0/1)> "
    '<ftype "FLOAT" or "DOUBLE"> <use previous connectivity?(optional atm) (0/1)>'
)
ONECOMP_USAGE = (
    "usage: generate_run <CPU=0, GPU=1> <nC1> <outdir> <model name> <debug mode? (0/1)>"
)
POISSON_IZH_USAGE = (
    "usage: generate_run <CPU=0, GPU=1> <nPoisson> <nIzh> <pConn> <gscale> "
    "<outdir> <model name> <debug mode? (0/1)>"
)


class CommandFailed(Exception):
    """A step of the tool chain finished with a non-zero status."""

    def __init__(self, status: int, cmd: str) -> None:
        super().__init__(f"Following call failed with status {status}:\n{cmd}")
        self.status = status
        self.cmd = cmd


@dataclass(frozen=True)
class MBodyDerived:
    """Connectivity parameters of the mushroom body model derived from its sizes."""

    pnkc_gsyn: float
    pnkc_gsyn_sigma: float
    kcdn_gsyn: float
    kcdn_gsyn_sigma: float
    pnlhi_theta: float


def mbody_derived(n_al: int, n_mb: int, gscale: float) -> MBodyDerived:
    """Synaptic strengths scaled by population size, in single-precision intermediate steps."""
    f = np.float32
    with np.errstate(divide="ignore", invalid="ignore"):
        per_pn = f(100.0) / f(n_al)
        kcdn_base = f(2500.0) / f(n_mb) * f(0.1)
        kcdn_sigma_base = f(2500.0) / f(n_mb) * f(0.01)
        pnlhi_base = per_pn * f(14.0)
    pnkc = float(per_pn) * gscale
    return MBodyDerived(
        pnkc_gsyn=pnkc,
        pnkc_gsyn_sigma=pnkc / 15.0,
        kcdn_gsyn=float(kcdn_base) * gscale,
        kcdn_gsyn_sigma=float(kcdn_sigma_base) * gscale,
        pnlhi_theta=float(pnlhi_base) * gscale,
    )


def poisson_izh_derived(n_poisson: int, gscale: float) -> tuple[float, float]:
    """Mean conductance and its jitter for the Poisson to Izhikevich projection."""
    f = np.float32
    with np.errstate(divide="ignore", invalid="ignore"):
        mean = f(100.0) / f(n_poisson) * f(gscale)
        sigma = mean / f(15.0)
    return float(mean), float(sigma)


def mbody_sizes_header(n_al: int, n_mb: int, n_lhi: int, n_lb: int, ftype: str) -> str:
    """Text of ``sizes.h`` for the mushroom body model."""
    limits = "DBL" if ftype.lower() == "double" else "FLT"
    lines = [
        f"#define _NAL {n_al}",
        f"#define _NMB {n_mb}",
        f"#define _NLHI {n_lhi}",
        f"#define _NLB {n_lb}",
        f"#define _FTYPE {ftype.upper()}",
        f"#define scalar {ftype.lower()}",
        f"#define SCALAR_MIN {limits}_MIN",
        f"#define SCALAR_MAX {limits}_MAX",
    ]
    return "\n".join(lines) + "\n"


def onecomp_sizes_header(n_c1: int) -> str:
    """Text of ``sizes.h`` for the single-compartment model."""
    return f"#define _NC1 {n_c1}\n"


def poisson_izh_sizes_header(n_poisson: int, n_izh: int) -> str:
    """Text of ``sizes.h`` for the Poisson-Izhikevich model."""
    return f"#define _NPoisson {n_poisson}\n#define _NIzh {n_izh}\n"


def build_command(model_name: str, debug: int, windows: bool) -> str:
    """Shell command that generates and compiles the model in ``model/``."""
    if windows:
        cmd = f"cd model && buildmodel.bat {model_name} {debug}"
        cmd += " && nmake /nologo /f WINmakefile clean && nmake /nologo /f WINmakefile"
        if debug == 1:
            cmd += " DEBUG=1"
        return cmd
    cmd = f"cd model && buildmodel.sh {model_name} {debug}"
    cmd += " && make clean && make"
    cmd += " debug" if debug == 1 else " release"
    return cmd


def sim_command(executable: str, outname: str, which: int, debug: int, windows: bool) -> str:
    """Shell command that starts the compiled simulator, under a debugger if asked."""
    if windows:
        program = f"model\\{executable}.exe"
        prefix = "devenv /debugexe " if debug == 1 else ""
    else:
        program = f"model/{executable}"
        prefix = "cuda-gdb -tui --args " if debug == 1 else ""
    return f"{prefix}{program} {outname} {which}"


def run_command(cmd: str) -> None:
    """Run a shell command; raise :class:`CommandFailed` if it does not succeed."""
    sys.stdout.flush()
    sys.stderr.flush()
    result = subprocess.run(cmd, shell=True)
    if result.returncode != 0:
        raise CommandFailed(result.returncode, cmd)


def _number(value: float, showpoint: bool = False) -> str:
    return f"{value:#.6g}" if showpoint else f"{value:.6g}"


def _genn_path() -> Path:
    value = os.environ.get("GENN_PATH")
    if not value:
        raise ValueError("GENN_PATH is not set")
    return Path(value)


def _write_sizes(genn: Path, text: str) -> None:
    (genn / "userproject" / "include" / "sizes.h").write_text(text)


def _make_outdir(outdir: str) -> None:
    try:
        os.mkdir(outdir, _OUTDIR_MODE)
    except OSError:
        print("Directory cannot be created. It may exist already.", file=sys.stderr)


def _call_tools(args: list[str]) -> int:
    try:
        return tools_main(args)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1


def _generate(args: list[str], msg_path: Optional[str] = None) -> None:
    display = "gennuser-tools " + " ".join(args)
    if msg_path is None:
        status = _call_tools(args)
    else:
        display += f" 1> {msg_path} 2>&1"
        sys.stdout.flush()
        sys.stderr.flush()
        with open(msg_path, "w") as messages, redirect_stdout(messages), redirect_stderr(
            messages
        ):
            status = _call_tools(args)
    if status != 0:
        raise CommandFailed(status, display)


def _report_failure(exc: CommandFailed) -> int:
    print(f"ERROR: {exc}", file=sys.stderr)
    print("Exiting...", file=sys.stderr)
    return 1


def _arguments(argv: Optional[Sequence[str]]) -> list[str]:
    return list(sys.argv[1:] if argv is None else argv)


def run_mbody(argv: Optional[Sequence[str]] = None) -> int:
    """Prepare, build and run the mushroom body model; returns the exit status."""
    args = _arguments(argv)
    if len(args) not in (10, 11):
        print(MBODY_USAGE, file=sys.stderr)
        return 1
    try:
        which, n_al, n_mb, n_lhi, n_lb = (int(a) for a in args[:5])
        gscale = float(args[5])
        outname, model_name = args[6], args[7]
        debug = int(args[8])
        ftype = args[9]
        fix_synapses = int(args[10]) if len(args) == 11 else 0
    except ValueError:
        print(MBODY_USAGE, file=sys.stderr)
        return 1

    derived = mbody_derived(n_al, n_mb, gscale)
    outdir = f"{outname}_output"
    base = f"{outdir}/{outname}"
    try:
        _write_sizes(_genn_path(), mbody_sizes_header(n_al, n_mb, n_lhi, n_lb, ftype))
        cmd = build_command(model_name, debug, _WINDOWS)
        print(cmd, file=sys.stderr)
        run_command(cmd)
        _make_outdir(outdir)

        if fix_synapses == 0:
            _generate(
                [
                    "pnkc-syns", str(n_al), str(n_mb), "0.5",
                    _number(derived.pnkc_gsyn, True),
                    _number(derived.pnkc_gsyn_sigma, True),
                    f"{base}.pnkc",
                ],
                f"{base}.pnkc.msg",
            )
            _generate(
                [
                    "kcdn-syns", str(n_mb), str(n_lb),
                    _number(derived.kcdn_gsyn, True),
                    _number(derived.kcdn_gsyn_sigma, True),
                    _number(derived.kcdn_gsyn_sigma, True),
                    f"{base}.kcdn",
                ],
                f"{base}.kcdn.msg",
            )
            _generate(
                [
                    "pnlhi-syns", str(n_al), str(n_lhi),
                    _number(derived.pnlhi_theta, True), "15",
                    f"{base}.pnlhi",
                ],
                f"{base}.pnlhi.msg",
            )
            _generate(
                [
                    "input-structured", str(n_al),
                    "10", "10", "0.1", "0.05", "1.0", "2e-04",
                    f"{base}.inpat",
                ],
                f"{base}.inpat.msg",
            )
        else:
            print("Skipping network generation....")

        print("running test...")
        run_command(sim_command("classol_sim", outname, which, debug, _WINDOWS))
    except CommandFailed as exc:
        return _report_failure(exc)
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def run_onecomp(argv: Optional[Sequence[str]] = None) -> int:
    """Prepare, build and run the single-compartment model; returns the exit status."""
    args = _arguments(argv)
    if len(args) != 5:
        print(ONECOMP_USAGE, file=sys.stderr)
        return 1
    try:
        which, n_c1 = int(args[0]), int(args[1])
        outname, model_name = args[2], args[3]
        debug = int(args[4])
    except ValueError:
        print(ONECOMP_USAGE, file=sys.stderr)
        return 1

    try:
        _write_sizes(_genn_path(), onecomp_sizes_header(n_c1))
        run_command(build_command(model_name, debug, _WINDOWS))
        _make_outdir(f"{outname}_output")
        print("running test...")
        run_command(sim_command("OneComp_sim", outname, which, debug, _WINDOWS))
    except CommandFailed as exc:
        return _report_failure(exc)
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def run_poisson_izh(argv: Optional[Sequence[str]] = None) -> int:
    """Prepare, build and run the Poisson-Izhikevich model; returns the exit status."""
    args = _arguments(argv)
    if len(args) != 8:
        print(POISSON_IZH_USAGE, file=sys.stderr)
        return 1
    try:
        which, n_poisson, n_izh = int(args[0]), int(args[1]), int(args[2])
        p_conn = float(np.float32(float(args[3])))
        gscale = float(args[4])
        outname, model_name = args[5], args[6]
        debug = int(args[7])
    except ValueError:
        print(POISSON_IZH_USAGE, file=sys.stderr)
        return 1

    mean, sigma = poisson_izh_derived(n_poisson, gscale)
    outdir = f"{outname}_output"
    try:
        _write_sizes(_genn_path(), poisson_izh_sizes_header(n_poisson, n_izh))
        run_command(build_command(model_name, debug, _WINDOWS))
        _make_outdir(outdir)
        _generate(
            [
                "syns-sparse", str(n_poisson), str(n_izh),
                _number(p_conn), _number(mean), _number(sigma),
                f"{outdir}/g{model_name}",
            ]
        )
        print("running test...")
        run_command(sim_command("PoissonIzh_sim", outname, which, debug, _WINDOWS))
    except CommandFailed as exc:
        return _report_failure(exc)
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


_DRIVERS = {
    "mbody": run_mbody,
    "onecomp": run_onecomp,
    "poisson-izh": run_poisson_izh,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Dispatch to one of the model drivers: ``mbody``, ``onecomp`` or ``poisson-izh``."""
    args = _arguments(argv)
    if not args or args[0] not in _DRIVERS:
        print(
            "usage: generate_run {" + ",".join(_DRIVERS) + "} <arguments...>",
            file=sys.stderr,
        )
        return 1
    return _DRIVERS[args[0]](args[1:])


if __name__ == "__main__":
    sys.exit(main())