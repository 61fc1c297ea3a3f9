# -*- coding: utf-8 -*-
"""
Coin-flip Density-of-States Monte Carlo Toolkit
===============================================

二元（抛硬币）系综的态密度蒙特卡洛估计工具包。

主要功能
--------
- Wang-Landau 平直直方图采样（经典减半 / 1/t 变体）
- 并行回火（副本交换），支持负温度排序
- 副本局部估计的直方图加权合并
- 按时间预算执行的步进接口（适配重绘驱动的主循环）
- 快照导出（HDF5 / NPZ）

快速开始
--------
>>> from coin_dos.simulation.wang_landau import WangLandauEngine
>>> from coin_dos.utils.config import WangLandauConfig
>>> wl = WangLandauEngine(WangLandauConfig(num_coins=16, seed=1))
>>> wl.run()
>>> est = wl.log_density_base10()

模块组织
--------
- core: 系综、移动/撤销协议、直方图、随机流与解析参考
- simulation: Wang-Landau / 并行回火引擎与交换统计
- analysis: 合并估计器
- data: 快照 I/O
- utils: 日志与配置工具
"""

__author__ = "Li"
__license__ = "MIT"

# coin_dos/__init__.py
import logging
from importlib import import_module
from typing import TYPE_CHECKING

# ---- version ----
try:
    from importlib.metadata import version as _pkg_version, PackageNotFoundError
    try:
        __version__ = _pkg_version("coin-dos")
    except PackageNotFoundError:
        __version__ = "0.1.0"
except ImportError:  # pragma: no cover
    __version__ = "0.1.0"

__all__ = [
    "core",
    "simulation",
    "analysis",
    "data",
    "utils",
    "__version__",
]

_lazy_subpackages = {
    "core": ".core",
    "simulation": ".simulation",
    "analysis": ".analysis",
    "data": ".data",
    "utils": ".utils",
}

def __getattr__(name: str):
    if name in _lazy_subpackages:
        mod = import_module(_lazy_subpackages[name], __name__)
        globals()[name] = mod  # cache
        return mod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(__all__))

if TYPE_CHECKING:  # for IDE/static type checkers only
    from . import core, simulation, analysis, data, utils

# 设置默认日志（仅在用户未配置时）
if not logging.getLogger(__name__).handlers:
    logging.getLogger(__name__).addHandler(logging.NullHandler())
