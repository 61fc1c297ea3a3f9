# -*- coding: utf-8 -*-
"""
抛硬币序列系综

实现功能：
    - CoinFlipSequence: 定长布尔序列（True = 正面），能量 = 正面数
    - 单点移动：均匀选位，用一枚新抛的公平硬币覆盖（可能不改变构型）
    - O(1) 增量更新正面数，精确撤销；撤销计数与拒绝计数必须一致（显式检查）
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import numpy as np

from .markov import AcceptanceCounter
from .rng import RandomStream
from ..utils.config import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["CoinFlipMove", "CoinFlipSequence"]


class CoinFlipMove(NamedTuple):
    index: int
    previous: bool


class CoinFlipSequence:
    """
    定长抛硬币序列，实现 MarkovChain 协议。
    """

    def __init__(self, bits: np.ndarray):
        arr = np.asarray(bits, dtype=bool).reshape(-1)
        if arr.size == 0:
            raise ConfigError("a coin sequence needs at least one coin")
        self.bits = np.ascontiguousarray(arr.copy())
        self.counter = AcceptanceCounter()
        self.steps = 0
        self.undo_count = 0

    @classmethod
    def random(cls, n: int, rng: RandomStream) -> "CoinFlipSequence":
        """n 枚独立公平硬币。"""
        if isinstance(n, bool) or int(n) != n or int(n) <= 0:
            raise ConfigError(f"number of coins must be a positive integer, got {n!r}")
        return cls(rng.bits(int(n)))

    def __len__(self) -> int:
        return int(self.bits.size)

    def __repr__(self) -> str:
        return f"CoinFlipSequence(len={len(self)}, heads={self.head_count()})"

    # -------------------------
    # 能量
    # -------------------------
    def head_count(self) -> int:
        """全量扫描计数。"""
        return int(np.count_nonzero(self.bits))

    energy = head_count

    def update_head_count(self, step: CoinFlipMove, heads: int) -> int:
        """按刚执行的单点移动更新正面数：+1 / -1 / 不变。"""
        new_value = bool(self.bits[step.index])
        if step.previous == new_value:
            return heads
        return heads + 1 if new_value else heads - 1

    update_energy = update_head_count

    # -------------------------
    # 移动 / 撤销
    # -------------------------
    def propose_step(self, rng: RandomStream) -> CoinFlipMove:
        idx = rng.integers(self.bits.size)
        step = CoinFlipMove(idx, bool(self.bits[idx]))
        self.bits[idx] = rng.coin()
        self.steps += 1
        return step

    def undo_step(self, step: CoinFlipMove) -> None:
        self.bits[step.index] = step.previous
        self.undo_count += 1

    def undo_step_quiet(self, step: CoinFlipMove) -> None:
        self.bits[step.index] = step.previous

    def step_accepted(self, step: CoinFlipMove) -> None:
        self.counter.count_acceptance()

    def step_rejected(self, step: CoinFlipMove) -> None:
        self.counter.count_rejected()
        if self.counter.rejected != self.undo_count:
            raise RuntimeError(
                f"undo/reject bookkeeping mismatch: rejected={self.counter.rejected}, "
                f"undo_count={self.undo_count}"
            )

    # -------------------------
    # 其它
    # -------------------------
    def resized(self, n: int, rng: RandomStream) -> "CoinFlipSequence":
        """返回长度为 n 的新序列：截断，或以新抛硬币补齐。"""
        if isinstance(n, bool) or int(n) != n or int(n) <= 0:
            raise ConfigError(f"number of coins must be a positive integer, got {n!r}")
        n = int(n)
        if n <= self.bits.size:
            return CoinFlipSequence(self.bits[:n])
        return CoinFlipSequence(np.concatenate([self.bits, rng.bits(n - self.bits.size)]))

    def reset_statistics(self) -> None:
        self.counter.reset()
        self.steps = 0
        self.undo_count = 0

    def copy(self) -> "CoinFlipSequence":
        return CoinFlipSequence(self.bits)
