# -*- coding: utf-8 -*-
"""
整数区间直方图（闭区间 [left, right]，int64 计数）。
"""

from __future__ import annotations

import numpy as np

__all__ = ["Histogram"]


class Histogram:
    def __init__(self, left: int, right: int):
        left, right = int(left), int(right)
        if right < left:
            raise ValueError(f"histogram range must satisfy left <= right, got [{left}, {right}]")
        self.left = left
        self.right = right
        self.counts = np.zeros(right - left + 1, dtype=np.int64)
        self._total = 0

    @classmethod
    def for_coins(cls, n: int) -> "Histogram":
        """正面数 0..=n 的直方图。"""
        return cls(0, n)

    def __len__(self) -> int:
        return int(self.counts.size)

    @property
    def bin_count(self) -> int:
        return int(self.counts.size)

    def index_of(self, value: int) -> int:
        v = int(value)
        if v < self.left or v > self.right:
            raise IndexError(f"value {v} outside histogram range [{self.left}, {self.right}]")
        return v - self.left

    def increment(self, value: int) -> None:
        self.counts[self.index_of(value)] += 1
        self._total += 1

    def increment_quiet(self, value: int) -> bool:
        """越界时静默忽略，返回是否计数。"""
        v = int(value)
        if v < self.left or v > self.right:
            return False
        self.counts[v - self.left] += 1
        self._total += 1
        return True

    def increment_many(self, values: np.ndarray) -> None:
        idx = np.asarray(values, dtype=np.int64) - self.left
        if idx.size and (idx.min() < 0 or idx.max() >= self.counts.size):
            raise IndexError("values outside histogram range")
        self.counts += np.bincount(idx, minlength=self.counts.size)
        self._total += int(idx.size)

    def reset(self) -> None:
        self.counts[:] = 0
        self._total = 0

    def hist(self) -> np.ndarray:
        """计数副本。"""
        return self.counts.copy()

    @property
    def total(self) -> int:
        return self._total

    def any_bin_zero(self) -> bool:
        return bool(np.any(self.counts == 0))

    def is_flat(self, tolerance: float) -> bool:
        """所有 bin 均被命中，且 min >= tolerance * mean。"""
        if self._total == 0 or self.any_bin_zero():
            return False
        return bool(self.counts.min() >= tolerance * self.counts.mean())
