# -*- coding: utf-8 -*-
"""
简单采样参考：独立抛 L 枚公平硬币、统计正面数的直方图。

与 Wang-Landau 并排展示时，样本数跟随 Wang-Landau 的步数（catch_up）。
"""

from __future__ import annotations

import logging

import numpy as np

from ..core.histogram import Histogram
from ..core.rng import RandomStream
from ..utils.config import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["SimpleSampler"]

_CHUNK = 1 << 20


class SimpleSampler:
    def __init__(self, num_coins: int, rng: RandomStream):
        if isinstance(num_coins, bool) or int(num_coins) <= 0:
            raise ConfigError(f"num_coins must be positive, got {num_coins!r}")
        self.num_coins = int(num_coins)
        self.rng = rng
        self.histogram = Histogram.for_coins(self.num_coins)

    @property
    def samples(self) -> int:
        return self.histogram.total

    def draw(self, n: int) -> None:
        """追加 n 个独立样本。"""
        remaining = int(n)
        while remaining > 0:
            k = min(remaining, _CHUNK)
            heads = self.rng.generator.binomial(self.num_coins, 0.5, size=k)
            self.histogram.increment_many(heads)
            remaining -= k

    def catch_up(self, total: int) -> int:
        """补齐到 total 个样本，返回新增数量。"""
        missing = int(total) - self.samples
        if missing > 0:
            self.draw(missing)
            return missing
        return 0

    def estimate(self, log: bool = True) -> np.ndarray:
        """
        概率估计 hits/total；log=True 时返回 log10，零命中 bin 为 NaN。
        """
        counts = self.histogram.hist().astype(np.float64)
        total = counts.sum()
        if total == 0:
            return np.full(counts.size, np.nan)
        prob = counts / total
        if not log:
            return prob
        out = np.full(counts.size, np.nan)
        hit = counts > 0
        out[hit] = np.log10(prob[hit])
        return out

    def reset(self) -> None:
        self.histogram.reset()
