import os
import subprocess
import sys
from unittest import mock

import numpy as np
import pytest

from gennuser.generate_run import (
    CommandFailed,
    build_command,
    main,
    mbody_derived,
    mbody_sizes_header,
    onecomp_sizes_header,
    poisson_izh_derived,
    poisson_izh_sizes_header,
    run_command,
    run_mbody,
    run_onecomp,
    run_poisson_izh,
    sim_command,
)

WINDOWS = os.name == "nt"


@pytest.fixture
def genn_env(tmp_path, monkeypatch):
    (tmp_path / "userproject" / "include").mkdir(parents=True)
    monkeypatch.setenv("GENN_PATH", str(tmp_path))
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return tmp_path


def _ok(returncode=0):
    def fake(cmd, shell=True):
        return subprocess.CompletedProcess(cmd, returncode)

    return fake


def _commands(fake_run):
    return [c.args[0] for c in fake_run.call_args_list]


def test_mbody_derived_relations():
    d = mbody_derived(100, 1000, 1.0)
    assert d.pnkc_gsyn == pytest.approx(1.0)
    assert d.pnkc_gsyn_sigma == pytest.approx(d.pnkc_gsyn / 15.0)
    assert d.pnlhi_theta == pytest.approx(14.0 * d.pnkc_gsyn, rel=1e-6)
    assert d.kcdn_gsyn_sigma == pytest.approx(d.kcdn_gsyn / 10.0, rel=1e-6)


def test_mbody_derived_linear_in_gscale():
    one = mbody_derived(50, 200, 1.0)
    three = mbody_derived(50, 200, 3.0)
    assert three.pnkc_gsyn == pytest.approx(3 * one.pnkc_gsyn)
    assert three.kcdn_gsyn == pytest.approx(3 * one.kcdn_gsyn)
    assert three.pnlhi_theta == pytest.approx(3 * one.pnlhi_theta)


def test_poisson_izh_derived():
    mean, sigma = poisson_izh_derived(100, 1.0)
    assert mean == pytest.approx(1.0)
    assert sigma == pytest.approx(mean / 15.0, rel=1e-6)
    double_mean, _ = poisson_izh_derived(100, 2.0)
    assert double_mean == pytest.approx(2 * mean)


def test_mbody_sizes_header_float_and_double():
    text = mbody_sizes_header(100, 1000, 20, 100, "float")
    lines = text.splitlines()
    assert lines[:4] == [
        "#define _NAL 100",
        "#define _NMB 1000",
        "#define _NLHI 20",
        "#define _NLB 100",
    ]
    assert "#define _FTYPE FLOAT" in lines
    assert "#define scalar float" in lines
    assert "#define SCALAR_MIN FLT_MIN" in lines
    dbl = mbody_sizes_header(1, 2, 3, 4, "DOUBLE").splitlines()
    assert "#define scalar double" in dbl
    assert "#define SCALAR_MAX DBL_MAX" in dbl


def test_small_headers():
    assert onecomp_sizes_header(7) == "#define _NC1 7\n"
    assert poisson_izh_sizes_header(3, 5) == "#define _NPoisson 3\n#define _NIzh 5\n"


def test_build_command_variants():
    assert build_command("OneComp", 0, False) == (
        "cd model && buildmodel.sh OneComp 0 && make clean && make release"
    )
    assert build_command("OneComp", 1, False).endswith("make debug")
    win = build_command("OneComp", 1, True)
    assert win.startswith("cd model && buildmodel.bat OneComp 1")
    assert win.endswith("nmake /nologo /f WINmakefile DEBUG=1")
    assert not build_command("OneComp", 0, True).endswith("DEBUG=1")


def test_sim_command_variants():
    assert sim_command("OneComp_sim", "out", 1, 0, False) == "model/OneComp_sim out 1"
    assert sim_command("OneComp_sim", "out", 1, 1, False) == (
        "cuda-gdb -tui --args model/OneComp_sim out 1"
    )
    assert sim_command("OneComp_sim", "out", 0, 0, True) == "model\\OneComp_sim.exe out 0"
    assert sim_command("OneComp_sim", "out", 0, 1, True) == (
        "devenv /debugexe model\\OneComp_sim.exe out 0"
    )


def test_run_command_raises_on_failure():
    cmd = f'"{sys.executable}" -c "import sys; sys.exit(3)"'
    with pytest.raises(CommandFailed) as info:
        run_command(cmd)
    assert info.value.status == 3
    assert info.value.cmd == cmd


def test_run_command_success_returns_none():
    assert run_command(f'"{sys.executable}" -c "pass"') is None


def test_onecomp_usage_error(capsys):
    assert run_onecomp(["1"]) == 1
    assert "usage: generate_run" in capsys.readouterr().err


def test_onecomp_full_run(genn_env, capsys):
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()) as fake:
        status = run_onecomp(["1", "12", "res", "OneComp", "0"])
    assert status == 0
    assert (genn_env / "userproject" / "include" / "sizes.h").read_text() == (
        "#define _NC1 12\n"
    )
    assert os.path.isdir("res_output")
    assert _commands(fake) == [
        build_command("OneComp", 0, WINDOWS),
        sim_command("OneComp_sim", "res", 1, 0, WINDOWS),
    ]
    assert "running test..." in capsys.readouterr().out


def test_onecomp_build_failure_stops(genn_env, capsys):
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok(2)) as fake:
        status = run_onecomp(["0", "4", "res", "OneComp", "0"])
    assert status == 1
    assert len(fake.call_args_list) == 1
    err = capsys.readouterr().err
    assert "ERROR: Following call failed with status 2" in err
    assert "Exiting..." in err


def test_missing_genn_path(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("GENN_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    assert run_onecomp(["0", "4", "res", "OneComp", "0"]) == 1
    assert "GENN_PATH" in capsys.readouterr().err


def test_existing_outdir_is_reported(genn_env, capsys):
    os.mkdir("res_output")
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()):
        status = run_onecomp(["0", "4", "res", "OneComp", "0"])
    assert status == 0
    assert "Directory cannot be created" in capsys.readouterr().err


def test_mbody_generates_network(genn_env):
    n_al, n_mb, n_lhi, n_lb = 20, 30, 5, 4
    argv = ["1", str(n_al), str(n_mb), str(n_lhi), str(n_lb), "1.0",
            "out", "MBody_userdef", "0", "FLOAT"]
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()) as fake:
        status = run_mbody(argv)
    assert status == 0
    sizes = (genn_env / "userproject" / "include" / "sizes.h").read_text()
    assert sizes == mbody_sizes_header(n_al, n_mb, n_lhi, n_lb, "FLOAT")
    base = os.path.join("out_output", "out")
    assert os.path.getsize(base + ".pnkc") == n_al * n_mb * 8
    assert os.path.getsize(base + ".kcdn") == n_mb * n_lb * 8
    assert os.path.getsize(base + ".pnlhi") == n_al * n_lhi * 8
    assert os.path.getsize(base + ".inpat") == 100 * n_al * 8
    pnlhi = np.fromfile(base + ".pnlhi", dtype=np.float64).reshape(n_al, n_lhi)
    theta = mbody_derived(n_al, n_mb, 1.0).pnlhi_theta
    assert pnlhi[0] == pytest.approx(theta / (15 + np.arange(n_lhi)), rel=1e-5)
    kcdn = np.fromfile(base + ".kcdn", dtype=np.float64)
    assert kcdn.min() >= mbody_derived(n_al, n_mb, 1.0).kcdn_gsyn_sigma * (1 - 1e-5)
    with open(base + ".pnkc.msg") as fh:
        assert "# call was:" in fh.read()
    assert _commands(fake)[-1] == sim_command("classol_sim", "out", 1, 0, WINDOWS)


def test_mbody_skips_network_generation(genn_env, capsys):
    argv = ["0", "20", "30", "5", "4", "1.0", "out", "MBody_userdef", "0", "DOUBLE", "1"]
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()):
        status = run_mbody(argv)
    assert status == 0
    assert not os.path.exists(os.path.join("out_output", "out.pnkc"))
    assert "Skipping network generation...." in capsys.readouterr().out


def test_mbody_usage(capsys):
    assert run_mbody(["1", "2"]) == 1
    assert "usage:" in capsys.readouterr().err


def test_poisson_izh_generates_sparse(genn_env):
    argv = ["0", "10", "8", "0.5", "1.0", "res", "PoissonIzh", "0"]
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()) as fake:
        status = run_poisson_izh(argv)
    assert status == 0
    base = os.path.join("res_output", "gPoissonIzh")
    offsets = np.fromfile(base + "_revIndInG", dtype=np.uint32)
    assert len(offsets) == 11
    assert os.path.getsize(base) == int(offsets[-1]) * 8
    assert os.path.getsize(base + "_nonopt") == 10 * 8 * 8
    assert _commands(fake)[-1] == sim_command("PoissonIzh_sim", "res", 0, 0, WINDOWS)
    sizes = (genn_env / "userproject" / "include" / "sizes.h").read_text()
    assert sizes == poisson_izh_sizes_header(10, 8)


def test_main_dispatch(genn_env):
    with mock.patch("gennuser.generate_run.subprocess.run", side_effect=_ok()):
        assert main(["onecomp", "0", "3", "res", "OneComp", "0"]) == 0
    assert (genn_env / "userproject" / "include" / "sizes.h").read_text() == (
        "#define _NC1 3\n"
    )


@pytest.mark.parametrize("argv", [[], ["bogus"]])
def test_main_rejects_unknown(argv, capsys):
    assert main(argv) == 1
    assert "usage: generate_run" in capsys.readouterr().err