# -*- coding: utf-8 -*-
"""
引擎快照与 HDF5 / NPZ 读写

实现功能：
    - wang_landau_snapshot(engine): log10 估计、精确参考、直方图、简单采样估计与标量状态
    - tempering_snapshot(replica_set, shifts): 温度、id、直方图、局部曲线、合并估计与相邻对交换统计，
      以及每个副本的 (tag, heads) 滚动历史（history_<id>）
    - 快照格式：{'kind': str, 'arrays': {name: ndarray}, 'parameters': {name: scalar}}
    - HDF5：arrays → datasets（可压缩），parameters → 根 attrs，kind 写入 attrs
    - NPZ：arrays → npz 条目，parameters 写入旁侧 <stem>_parameters.json（与 kind 一起）
"""

from __future__ import annotations

import datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import h5py
import numpy as np

from ..analysis.merged_estimator import MergedEstimator

logger = logging.getLogger(__name__)

__all__ = [
    "wang_landau_snapshot",
    "tempering_snapshot",
    "save_snapshot_hdf5",
    "load_snapshot_hdf5",
    "save_snapshot_npz",
    "load_snapshot_npz",
]

PathLike = Union[str, Path]
Snapshot = Dict[str, Any]


def _native(v: Any) -> Any:
    """numpy 标量 → Python 原生类型。"""
    if isinstance(v, np.generic):
        return v.item()
    if isinstance(v, bytes):
        return v.decode("utf-8")
    return v


# -----------------------------------------------------------------------------
# 快照
# -----------------------------------------------------------------------------
def wang_landau_snapshot(engine) -> Snapshot:
    arrays = {
        "log10_density": engine.log_density_base10(),
        "exact_log10": engine.exact_log10(),
        "histogram": engine.histogram.hist(),
    }
    simple = engine.simple_sample_estimate(log=True)
    if simple is not None:
        arrays["simple_sampling_log10"] = simple
    params = {
        "num_coins": int(engine.num_coins),
        "step_counter": int(engine.step_counter),
        "log_f": float(engine.log_f),
        "threshold": float(engine.threshold),
        "variant": str(engine.variant),
        "mode": str(engine.mode),
        "refinements": int(engine.refinements),
        "finished": bool(engine.is_finished),
        "created_at": str(datetime.datetime.now()),
    }
    return {"kind": "wang_landau", "arrays": arrays, "parameters": params}


def tempering_snapshot(replica_set, shifts: Optional[Sequence[float]] = None) -> Snapshot:
    est = MergedEstimator.from_replica_set(replica_set, shifts)
    pairs = replica_set.pairs.keys()
    counters = [replica_set.get_pair_acceptance(a, b) for a, b in pairs]
    arrays = {
        "temperatures": np.asarray(replica_set.temperatures, dtype=np.float64),
        "replica_ids": np.asarray(replica_set.replica_ids, dtype=np.int64),
        "heads_rates": replica_set.heads_rates(),
        "acceptance_rates": replica_set.acceptance_rates(),
        "histograms": replica_set.histograms(),
        "shifts": est.shifts,
        "curves": est.curves,
        "merged_log10": est.merged(),
        "pair_ids": np.asarray(pairs, dtype=np.int64).reshape(-1, 2),
        "pair_accepted": np.asarray([c.accepted for c in counters], dtype=np.int64),
        "pair_rejected": np.asarray([c.rejected for c in counters], dtype=np.int64),
    }
    for rid, hist in replica_set.histories().items():
        arrays[f"history_{rid}"] = hist
    params = {
        "num_coins": int(replica_set.num_coins),
        "num_replicas": len(replica_set),
        "ticks": int(replica_set.ticks),
        "exchange_rounds": int(replica_set.exchange_rounds),
        "exchange_interval": int(replica_set.exchange_interval),
        "created_at": str(datetime.datetime.now()),
    }
    return {"kind": "tempering", "arrays": arrays, "parameters": params}


# -----------------------------------------------------------------------------
# HDF5
# -----------------------------------------------------------------------------
def save_snapshot_hdf5(snapshot: Snapshot, filepath: PathLike, compression: Optional[str] = "gzip") -> Path:
    """保存快照到 HDF5；标量数组不压缩。"""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(filepath, "w") as f:
        f.attrs["kind"] = str(snapshot.get("kind", "unknown"))
        for name, arr in (snapshot.get("arrays") or {}).items():
            a = np.asarray(arr)
            if compression and a.ndim > 0 and a.size > 1:
                f.create_dataset(name, data=a, compression=compression)
            else:
                f.create_dataset(name, data=a)
        for k, v in (snapshot.get("parameters") or {}).items():
            if v is None:
                continue
            f.attrs[k] = _native(v)
    logger.info("Snapshot (%s) saved: %s", snapshot.get("kind"), filepath)
    return filepath


def load_snapshot_hdf5(filepath: PathLike) -> Snapshot:
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"文件不存在: {filepath}")
    with h5py.File(filepath, "r") as f:
        arrays = {name: f[name][()] for name in f.keys()}
        params = {k: _native(v) for k, v in f.attrs.items() if k != "kind"}
        kind = _native(f.attrs.get("kind", "unknown"))
    return {"kind": str(kind), "arrays": arrays, "parameters": params}


# -----------------------------------------------------------------------------
# NPZ
# -----------------------------------------------------------------------------
def _sidecar(filepath: Path) -> Path:
    stem = filepath.name[:-4] if filepath.name.endswith(".npz") else filepath.name
    return filepath.parent / (stem + "_parameters.json")


def save_snapshot_npz(snapshot: Snapshot, filepath: PathLike, compressed: bool = True) -> Path:
    """保存为 NPZ，并写一个可读的 parameters.json 旁侧文件。"""
    filepath = Path(filepath)
    if filepath.suffix != ".npz":
        filepath = filepath.with_name(filepath.name + ".npz")
    filepath.parent.mkdir(parents=True, exist_ok=True)
    arrays = {k: np.asarray(v) for k, v in (snapshot.get("arrays") or {}).items()}
    if compressed:
        np.savez_compressed(filepath, **arrays)
    else:
        np.savez(filepath, **arrays)
    meta = {"kind": snapshot.get("kind", "unknown"),
            "parameters": {k: _native(v) for k, v in (snapshot.get("parameters") or {}).items()}}
    _sidecar(filepath).write_text(json.dumps(meta, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Snapshot (%s) saved: %s", snapshot.get("kind"), filepath)
    return filepath


def load_snapshot_npz(filepath: PathLike) -> Snapshot:
    """加载 NPZ；旁侧 parameters.json 缺失时 kind 记为 'unknown'。"""
    filepath = Path(filepath)
    with np.load(filepath, allow_pickle=False) as data:
        arrays = {k: data[k] for k in data.files}
    side = _sidecar(filepath)
    meta: Dict[str, Any] = {}
    if side.exists():
        meta = json.loads(side.read_text(encoding="utf-8"))
    return {"kind": meta.get("kind", "unknown"), "arrays": arrays, "parameters": meta.get("parameters", {})}
