import io

import numpy as np
import pytest

from gennuser.classol import (
    PatternSchedule,
    RateSource,
    SparseProjection,
    SpikeCounts,
    count_entries_above,
    dense_to_sparse,
    format_spikes,
    format_state,
    graw_from_g,
    read_doubles,
    read_sparse_projection,
)
from gennuser.synapse_gen import sparse_synapses, write_sparse


def test_read_doubles_round_trip():
    values = np.array([1.5, -2.25, 3.0])
    out = read_doubles(io.BytesIO(values.tobytes()), 3)
    assert out.tolist() == values.tolist()


def test_read_doubles_short_stream():
    values = np.array([1.0, 2.0])
    out = read_doubles(io.BytesIO(values.tobytes() + b"\x01\x02"), 5)
    assert out.tolist() == [1.0, 2.0]


def test_read_doubles_negative_count():
    with pytest.raises(ValueError):
        read_doubles(io.BytesIO(b""), -1)


def test_count_entries_above_uses_magnitude():
    assert count_entries_above([0.0, -1.0, 0.5, 1e-40], 0.1) == 2


def test_dense_to_sparse_layout():
    dense = [[0.0, 1.5, 0.0], [2.0, 0.0, 3.0]]
    proj = dense_to_sparse(dense, 2, 3, 0.0)
    assert proj.g.tolist() == [1.5, 2.0, 3.0]
    assert proj.ind.tolist() == [1, 0, 2]
    assert proj.ind_in_g.tolist() == [0, 1, 3]
    assert np.array_equal(proj.to_dense(3), np.array(dense))


def test_dense_to_sparse_shape_mismatch():
    with pytest.raises(ValueError):
        dense_to_sparse([1.0, 2.0, 3.0], 2, 2, 0.0)


def test_post_to_pre_consistent_with_dense():
    rng = np.random.default_rng(5)
    dense = np.where(rng.random((6, 4)) < 0.5, rng.random((6, 4)) + 0.1, 0.0)
    proj = dense_to_sparse(dense, 6, 4, 0.0)
    rev_ind_in_g, rev_ind, remap = proj.post_to_pre(4)
    assert int(rev_ind_in_g[-1]) == proj.conn_n
    for j in range(4):
        lo, hi = int(rev_ind_in_g[j]), int(rev_ind_in_g[j + 1])
        pres = rev_ind[lo:hi]
        assert pres.tolist() == np.flatnonzero(dense[:, j]).tolist()
        assert proj.g[remap[lo:hi]].tolist() == dense[pres, j].tolist()


def test_post_to_pre_rejects_out_of_range():
    proj = SparseProjection(
        g=np.array([1.0]), ind=np.array([3], dtype=np.uint32),
        ind_in_g=np.array([0, 1], dtype=np.uint32),
    )
    with pytest.raises(ValueError):
        proj.post_to_pre(2)


def test_graw_round_trip():
    gmax, gmid, gslope = 0.015, 0.0075, 33.33
    graw = np.array([0.0, 0.005, 0.01, 0.02])
    g = gmax / 2.0 * (np.tanh(gslope * (graw - gmid)) + 1.0)
    assert np.allclose(graw_from_g(g, gmax, gmid, gslope), graw)


def test_graw_midpoint():
    assert graw_from_g(0.0075, 0.015, 0.0075, 33.33) == pytest.approx(0.0075)


def test_read_sparse_projection_from_written_files(tmp_path):
    conn = sparse_synapses(5, 7, 0.4, 1.0, 0.1, np.random.default_rng(2))
    paths = write_sparse(tmp_path / "g", conn, conn.to_dense(7))
    with open(paths["postind"], "rb") as f_ind, open(
        paths["revIndInG"], "rb"
    ) as f_off, open(paths["g"], "rb") as f_g:
        proj = read_sparse_projection(f_ind, f_off, f_g, 5, conn.conn_n)
    assert proj.g.tolist() == conn.g.tolist()
    assert proj.ind.tolist() == conn.ind.tolist()
    assert proj.ind_in_g.tolist() == conn.ind_in_g.tolist()


def test_read_sparse_projection_short_file():
    with pytest.raises(ValueError):
        read_sparse_projection(
            io.BytesIO(b""), io.BytesIO(b""), io.BytesIO(b"\x00" * 8), 1, 2
        )


def test_pattern_schedule_switches():
    sched = PatternSchedule(pat_set_time=100, pat_fire_time=15, n_inputs=4)
    assert sched.rates_at(0) == (RateSource.PATTERN, 0)
    assert sched.rates_at(14) == (RateSource.PATTERN, 0)
    assert sched.rates_at(15) == (RateSource.BASE, 0)
    assert sched.rates_at(100) == (RateSource.PATTERN, 4)
    assert sched.rates_at(100 * 100) == (RateSource.PATTERN, 0)


def test_pattern_schedule_from_times_and_steps():
    sched = PatternSchedule.from_times(10.0, 2.0, 1.0, 3)
    assert (sched.pat_set_time, sched.pat_fire_time) == (10, 2)
    steps = list(sched.steps(9, 3.0, 1.0))
    assert [s[0] for s in steps] == [9, 10, 11]
    assert steps[0][1] is RateSource.BASE
    assert steps[1][1:] == (RateSource.PATTERN, 3)


def test_pattern_schedule_invalid():
    with pytest.raises(ValueError):
        PatternSchedule(pat_set_time=0, pat_fire_time=1, n_inputs=1)
    with pytest.raises(ValueError):
        PatternSchedule(10, 1, 1).rates_at(-1)


def test_format_state():
    assert format_state(1.0, [2.0], [3.5]) == "1.000000 2.000000 3.500000 \n"


def test_format_spikes():
    text = format_spikes(2.0, [[1, 3], [0]], [0, 10])
    assert text == "2.000000 1\n2.000000 3\n2.000000 10\n"


def test_format_spikes_mismatch():
    with pytest.raises(ValueError):
        format_spikes(0.0, [[1]], [0, 1])


def test_spike_counts_accumulate():
    counts = SpikeCounts()
    counts.add({"PN": 3, "KC": 1})
    counts.add({"PN": 2})
    assert counts["PN"] == 5
    assert counts["KC"] == 1
    assert counts["DN"] == 0
    with pytest.raises(ValueError):
        counts.add({"PN": -1})
    assert counts["PN"] == 5