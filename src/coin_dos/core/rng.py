# -*- coding: utf-8 -*-
"""
随机流（显式资源，由引擎持有并传入每一步）

实现功能：
    - make_generator(seed): 优先 Philox 位生成器构造 numpy Generator
    - spawn_seeds(master_seed, n): 通过 SeedSequence.spawn 派生 n 个独立 32-bit 子种子
    - RandomStream: 批量预取 uniform 的标量随机流，热循环中按需取 random()/integers()/coin()
"""

from __future__ import annotations

import logging
from typing import List, Union

import numpy as np
from numpy.random import Generator, Philox, SeedSequence

logger = logging.getLogger(__name__)

__all__ = ["make_generator", "spawn_seeds", "RandomStream"]

_DEFAULT_BLOCK = 4096

SeedLike = Union[int, SeedSequence, Generator, None]


def _seed32(seed: int) -> int:
    """将任意整数截断为 32-bit 无符号整数。"""
    try:
        s = int(seed)
    except (TypeError, ValueError):
        raise ValueError(f"seed must be convertible to int, got {seed!r}")
    return s & 0xFFFFFFFF


def make_generator(seed: SeedLike = None) -> Generator:
    """
    根据种子构造 numpy.random.Generator（Philox 位生成器）。

    seed 可以是 int / SeedSequence / 已有 Generator（原样返回）/ None（取系统熵）。
    """
    if isinstance(seed, Generator):
        return seed
    if isinstance(seed, SeedSequence):
        return Generator(Philox(seed))
    if seed is None:
        return Generator(Philox())
    return Generator(Philox(_seed32(seed)))


def spawn_seeds(master_seed: int, n: int) -> List[int]:
    """
    使用 SeedSequence.spawn 从主种子派生 n 个 32-bit 子种子。
    同一 master_seed 总得到同一列表，可用于复现。
    """
    if master_seed is None:
        raise ValueError("master_seed must be provided")
    if int(n) < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    children = SeedSequence(int(master_seed)).spawn(int(n))
    return [int(ch.generate_state(1, dtype=np.uint32)[0]) for ch in children]


class RandomStream:
    """
    标量随机流。

    Generator 的逐次标量调用开销较大，这里按块预取 [0, 1) 均匀数，
    热循环只做数组索引。底层 generator 通过 ``.generator`` 暴露，供向量化抽样使用。
    """

    def __init__(self, seed: SeedLike = None, block_size: int = _DEFAULT_BLOCK):
        if int(block_size) <= 0:
            raise ValueError("block_size must be positive")
        self.generator: Generator = make_generator(seed)
        self._block = int(block_size)
        self._buf = self.generator.random(self._block)
        self._pos = 0

    def _refill(self) -> None:
        self._buf = self.generator.random(self._block)
        self._pos = 0

    def random(self) -> float:
        """均匀分布 [0, 1)。"""
        if self._pos >= self._block:
            self._refill()
        u = self._buf[self._pos]
        self._pos += 1
        return float(u)

    def integers(self, n: int) -> int:
        """均匀整数 [0, n)。"""
        k = int(self.random() * n)
        return k if k < n else n - 1

    def coin(self) -> bool:
        """公平硬币。"""
        return self.random() < 0.5

    def bits(self, n: int) -> np.ndarray:
        """n 枚独立公平硬币（bool 数组）。"""
        return self.generator.random(int(n)) < 0.5
