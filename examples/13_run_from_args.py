# examples/13_run_from_args.py
"""
使用 from_args() + 命令行 --preset / --config / --set / ENV 来驱动两个引擎。

    python examples/13_run_from_args.py --preset quick --set wang_landau.num_coins=20
    COIN_DOS__tempering__num_coins=80 python examples/13_run_from_args.py --preset standard
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    s = str(p)
    if s not in sys.path:
        sys.path.insert(0, s)

from coin_dos.data.results_io import (
    save_snapshot_npz,
    tempering_snapshot,
    wang_landau_snapshot,
)
from coin_dos.simulation.parallel_tempering import ReplicaSet
from coin_dos.simulation.wang_landau import WangLandauEngine
from coin_dos.utils.config import from_args
from coin_dos.utils.logger import setup_logger


def main():
    cfg = from_args()
    logger = setup_logger(cfg.project_name, level=cfg.log_level, log_file=cfg.log_file)
    logger.info("Config: WL L=%d variant=%s | PT L=%d temps=%s",
                cfg.wang_landau.num_coins, cfg.wang_landau.variant,
                cfg.tempering.num_coins, cfg.tempering.temperatures)

    wl = WangLandauEngine(cfg.wang_landau)
    wl.run(time_limit=60.0)

    rs = ReplicaSet(cfg.tempering)
    rs.sample(time_budget=5.0)

    out_dir = ROOT / "runs" / "from_args"
    save_snapshot_npz(wang_landau_snapshot(wl), out_dir / "wang_landau.npz")
    save_snapshot_npz(tempering_snapshot(rs), out_dir / "tempering.npz")
    print("Run finished. Output dir:", out_dir)


if __name__ == "__main__":
    main()
