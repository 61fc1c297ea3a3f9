# -*- coding: utf-8 -*-
"""
核心层
======

提供二元系综、移动/撤销协议、直方图、随机流与解析参考分布。

子模块
------
- rng: 随机流（Philox Generator + SeedSequence 派生）
- markov: MarkovChain 协议与 AcceptanceCounter
- coin_sequence: 抛硬币序列系综（能量 = 正面数）
- histogram: 整数区间直方图
- observables: 精确二项分布 / 正则分布 / 对数空间工具

示例
----
>>> from coin_dos.core.coin_sequence import CoinFlipSequence
>>> from coin_dos.core.rng import RandomStream
>>> rng = RandomStream(seed=42)
>>> seq = CoinFlipSequence.random(16, rng)
>>> move = seq.propose_step(rng)
>>> seq.undo_step(move)
"""


# coin_dos/core/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["rng", "markov", "coin_sequence", "histogram", "observables"]

_lazy = {
    "rng": ".rng",
    "markov": ".markov",
    "coin_sequence": ".coin_sequence",
    "histogram": ".histogram",
    "observables": ".observables",
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
    from . import rng, markov, coin_sequence, histogram, observables
