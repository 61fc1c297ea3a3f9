# -*- coding: utf-8 -*-
"""
合并估计器：由各副本直方图重建 log10 态密度

实现功能：
    - 局部曲线：curve_i(k) = log10(h_i(k) / n_i) + (k/L) / T_i · log10(e) + z_i，h_i(k) = 0 处为 NaN
    - 合并：merged(k) = Σ_i (h_i(k) / H(k)) · curve_i(k)，H(k) = Σ_i h_i(k)；无人访问的 bin 为 NaN
    - 归一化：平移使有限项 Σ 10**merged = 1
    - shifts 可为 None（全 0）、较短（补 0）或较长（截断）
    - estimate_shifts(): 沿链序用重叠 bin 的加权平均差给出建议 z
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..core.observables import LOG10_E, norm_log10_sum_to_1

logger = logging.getLogger(__name__)

__all__ = ["MergedEstimator", "align_shifts"]


def align_shifts(shifts: Optional[Sequence[float]], n: int) -> np.ndarray:
    """补 0 或截断到长度 n。"""
    z = np.zeros(int(n), dtype=np.float64)
    if shifts is None:
        return z
    s = np.asarray(list(shifts), dtype=np.float64).reshape(-1)
    m = min(z.size, s.size)
    z[:m] = s[:m]
    return z


class MergedEstimator:
    def __init__(self, hits: np.ndarray, temperatures: Sequence[float],
                 shifts: Optional[Sequence[float]] = None):
        h = np.asarray(hits, dtype=np.int64)
        if h.ndim != 2:
            raise ValueError(f"hits must be 2-D (replicas x bins), got shape {h.shape}")
        temps = np.asarray(list(temperatures), dtype=np.float64)
        if temps.size != h.shape[0]:
            raise ValueError(f"{h.shape[0]} histograms but {temps.size} temperatures")
        if h.shape[1] < 2:
            raise ValueError("need at least two bins (num_coins >= 1)")
        self.hits = h
        self.temperatures = temps
        self.num_coins = h.shape[1] - 1
        self.shifts = align_shifts(shifts, temps.size)

    @classmethod
    def from_histograms(cls, hits: np.ndarray, temperatures: Sequence[float],
                        shifts: Optional[Sequence[float]] = None) -> "MergedEstimator":
        return cls(hits, temperatures, shifts)

    @classmethod
    def from_replica_set(cls, replica_set, shifts: Optional[Sequence[float]] = None) -> "MergedEstimator":
        return cls(replica_set.histograms(), replica_set.temperatures, shifts)

    @staticmethod
    def compute(replica_set, shifts: Optional[Sequence[float]] = None) -> np.ndarray:
        return MergedEstimator.from_replica_set(replica_set, shifts).merged()

    # -------------------------
    # 曲线
    # -------------------------
    def raw_curves(self) -> np.ndarray:
        """未加 z 的局部 log10 曲线，形状 (n_replicas, L+1)。"""
        n_rep, n_bins = self.hits.shape
        out = np.full((n_rep, n_bins), np.nan)
        if n_rep == 0:
            return out
        totals = self.hits.sum(axis=1)
        rate = np.arange(n_bins, dtype=np.float64) / self.num_coins
        for i in range(n_rep):
            if totals[i] == 0:
                continue
            hit = self.hits[i] > 0
            prob = self.hits[i, hit] / float(totals[i])
            out[i, hit] = np.log10(prob) + rate[hit] / self.temperatures[i] * LOG10_E
        return out

    @property
    def curves(self) -> np.ndarray:
        return self.raw_curves() + self.shifts[:, None]

    def merged(self) -> np.ndarray:
        n_bins = self.hits.shape[1]
        if self.hits.shape[0] == 0:
            return np.full(n_bins, np.nan)
        curves = self.curves
        weights = self.hits.astype(np.float64)
        H = weights.sum(axis=0)
        contrib = np.where(weights > 0, weights * np.nan_to_num(curves, nan=0.0), 0.0).sum(axis=0)
        out = np.full(n_bins, np.nan)
        seen = H > 0
        out[seen] = contrib[seen] / H[seen]
        return norm_log10_sum_to_1(out)

    def estimate_shifts(self) -> np.ndarray:
        """
        沿链序逐对对齐：z_0 = 0，z_i 使 curve_i 与 curve_{i-1} 在共同访问的 bin 上
        的 min(h) 加权平均差为 0。无重叠时沿用前一个 z 并告警。
        """
        raw = self.raw_curves()
        n_rep = raw.shape[0]
        z = np.zeros(n_rep, dtype=np.float64)
        for i in range(1, n_rep):
            prev = raw[i - 1] + z[i - 1]
            both = np.isfinite(prev) & np.isfinite(raw[i])
            if not both.any():
                logger.warning("No overlap between replicas %d and %d; shift left unchanged", i - 1, i)
                z[i] = z[i - 1]
                continue
            w = np.minimum(self.hits[i - 1, both], self.hits[i, both]).astype(np.float64)
            z[i] = float(np.average(prev[both] - raw[i, both], weights=w))
        return z
