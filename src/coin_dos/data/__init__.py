# -*- coding: utf-8 -*-
"""
数据层
======

子模块
------
- results_io: 引擎快照（dict of ndarray + 标量）与 HDF5 / NPZ 读写
"""


# coin_dos/data/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["results_io"]

_lazy = {
    "results_io": ".results_io",
}

_dep_hints = {
    "results_io": "h5py",
}

def __getattr__(name: str):
    if name in _lazy:
        try:
            mod = import_module(_lazy[name], __name__)
        except ModuleNotFoundError as e:
            hint = _dep_hints.get(name)
            if hint and (hint in str(e) or hint in (getattr(e, "name", "") or "")):
                raise ModuleNotFoundError(
                    f"`coin_dos.data.{name}` 需要依赖 `{hint}`。请先安装：pip install {hint}"
                ) from e
            raise
        globals()[name] = mod
        return mod
    raise AttributeError(f"{__name__} has no attribute {name!r}")

def __dir__():
    return sorted(list(__all__))

if TYPE_CHECKING:
    from . import results_io
