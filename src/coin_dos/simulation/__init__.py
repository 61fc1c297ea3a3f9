# -*- coding: utf-8 -*-
"""
模拟层
======

子模块
------
- wang_landau: Wang-Landau 平直直方图引擎（含 1/t 变体）
- simple_sampling: 简单采样参考直方图
- parallel_tempering: 副本集合（并行回火）引擎
- pair_acceptance: 按稳定 id 记录的相邻对交换接受率

示例
----
>>> from coin_dos.simulation.parallel_tempering import ReplicaSet
>>> from coin_dos.utils.config import TemperingConfig
>>> rs = ReplicaSet(TemperingConfig(num_coins=50, temperatures=[0.1, -0.1]))
>>> rs.sample(max_ticks=1000)
"""


# coin_dos/simulation/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["wang_landau", "simple_sampling", "parallel_tempering", "pair_acceptance"]

_lazy = {
    "wang_landau": ".wang_landau",
    "simple_sampling": ".simple_sampling",
    "parallel_tempering": ".parallel_tempering",
    "pair_acceptance": ".pair_acceptance",
}

def __getattr__(name: str):
    if name in _lazy:
        mod = import_module(_lazy[name], __name__)
        globals()[name] = mod
        return mod
    raise AttributeError(f"{__name__} has no attribute {name!r}")

def __dir__():
    return sorted(list(__all__))

if TYPE_CHECKING:
    from . import wang_landau, simple_sampling, parallel_tempering, pair_acceptance
