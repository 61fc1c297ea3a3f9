# -*- coding: utf-8 -*-
"""
快照 I/O 测试：HDF5 与 NPZ（含旁侧 parameters.json）
"""

import json
import sys
from pathlib import Path

import h5py
import numpy as np
import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from coin_dos.data.results_io import (
    load_snapshot_hdf5,
    load_snapshot_npz,
    save_snapshot_hdf5,
    save_snapshot_npz,
    tempering_snapshot,
    wang_landau_snapshot,
)
from coin_dos.simulation.parallel_tempering import ReplicaSet
from coin_dos.simulation.wang_landau import WangLandauEngine
from coin_dos.utils.config import TemperingConfig, WangLandauConfig


@pytest.fixture
def wl_snapshot():
    wl = WangLandauEngine(WangLandauConfig(num_coins=8, seed=1))
    wl.sample_steps(3000)
    return wang_landau_snapshot(wl)


@pytest.fixture
def pt_snapshot():
    rs = ReplicaSet(TemperingConfig(num_coins=12, seed=2, temperatures=[0.1, -0.1, 0.3]))
    rs.sample(max_ticks=600)
    return tempering_snapshot(rs, shifts=[0.0, 0.1])


def _assert_same(a, b):
    assert a["kind"] == b["kind"]
    assert set(a["arrays"]) == set(b["arrays"])
    for k, v in a["arrays"].items():
        np.testing.assert_array_equal(np.asarray(v), np.asarray(b["arrays"][k]))
    for k, v in a["parameters"].items():
        assert b["parameters"][k] == v


def test_wang_landau_snapshot_contents(wl_snapshot):
    assert wl_snapshot["kind"] == "wang_landau"
    arrays = wl_snapshot["arrays"]
    assert arrays["log10_density"].shape == (9,)
    assert arrays["exact_log10"].shape == (9,)
    assert "simple_sampling_log10" in arrays
    assert wl_snapshot["parameters"]["step_counter"] == 3000


def test_tempering_snapshot_contents(pt_snapshot):
    arrays = pt_snapshot["arrays"]
    assert arrays["histograms"].shape == (3, 13)
    np.testing.assert_array_equal(arrays["shifts"], [0.0, 0.1, 0.0])
    assert arrays["pair_ids"].shape == (2, 2)
    assert pt_snapshot["parameters"]["exchange_rounds"] == 600 // 12


def test_tempering_snapshot_histories(pt_snapshot):
    arrays = pt_snapshot["arrays"]
    ids = arrays["replica_ids"].tolist()
    assert sorted(k for k in arrays if k.startswith("history_")) == sorted(f"history_{i}" for i in ids)
    # 600 次局部步 + 50 轮交换：链端副本每轮 +1，中间副本每轮 +2
    lens = [arrays[f"history_{i}"].shape[0] for i in ids]
    assert lens == [650, 700, 650]
    for i in ids:
        hist = arrays[f"history_{i}"]
        assert hist.shape[1] == 2
        assert hist[:, 1].min() >= 0 and hist[:, 1].max() <= 12


def test_hdf5_roundtrip(tmp_path, wl_snapshot, pt_snapshot):
    for name, snap in (("wl.h5", wl_snapshot), ("pt.h5", pt_snapshot)):
        path = save_snapshot_hdf5(snap, tmp_path / "out" / name)
        with h5py.File(path, "r") as f:
            assert f.attrs["kind"] == snap["kind"]
        _assert_same(snap, load_snapshot_hdf5(path))


def test_npz_roundtrip(tmp_path, wl_snapshot, pt_snapshot):
    for name, snap in (("wl", wl_snapshot), ("pt.npz", pt_snapshot)):
        path = save_snapshot_npz(snap, tmp_path / name)
        assert path.suffix == ".npz"
        side = path.parent / (path.stem + "_parameters.json")
        assert json.loads(side.read_text(encoding="utf-8"))["kind"] == snap["kind"]
        _assert_same(snap, load_snapshot_npz(path))


def test_load_missing_hdf5(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_snapshot_hdf5(tmp_path / "nope.h5")
