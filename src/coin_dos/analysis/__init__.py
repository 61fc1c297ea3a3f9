# -*- coding: utf-8 -*-
"""
分析层
======

子模块
------
- merged_estimator: 将各副本的局部 log10 估计按命中数加权合并
"""


# coin_dos/analysis/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["merged_estimator"]

_lazy = {
    "merged_estimator": ".merged_estimator",
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
    from . import merged_estimator
