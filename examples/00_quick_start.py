# examples/00_quick_start.py
"""
Quick start: Wang-Landau 估计 L 枚硬币的正面数分布

- 不依赖 Config 文件，直接用裸参数构造 WangLandauConfig
- 收敛后与精确二项分布逐点比较
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    s = str(p)
    if s not in sys.path:
        sys.path.insert(0, s)

import numpy as np

from coin_dos.simulation.wang_landau import WangLandauEngine
from coin_dos.utils.config import WangLandauConfig
from coin_dos.utils.logger import setup_logger


def main():
    setup_logger("coin_dos", level="INFO")

    cfg = WangLandauConfig(num_coins=16, seed=42, threshold=1e-5, variant="1t")
    wl = WangLandauEngine(cfg)
    converged = wl.run(log_every=1.0)

    est = wl.log_density_base10()
    exact = wl.exact_log10()
    simple = wl.simple_sample_estimate()

    print(f"\nconverged = {converged}, steps = {wl.step_counter}, log_f = {wl.log_f:.3e}")
    print(f"{'k':>3} {'WL':>10} {'exact':>10} {'simple':>10}")
    for k in range(cfg.num_coins + 1):
        s = "nan" if np.isnan(simple[k]) else f"{simple[k]:.4f}"
        print(f"{k:>3} {est[k]:>10.4f} {exact[k]:>10.4f} {s:>10}")
    print(f"\nmax |WL - exact| (log10) = {wl.max_abs_error():.4f}")


if __name__ == "__main__":
    main()
