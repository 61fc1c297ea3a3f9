# -*- coding: utf-8 -*-
"""
工具层
======

提供日志配置与全局配置管理。

子模块
------
- logger: 日志工具
- config: 配置数据类、预设、分层合并

示例
----
>>> from coin_dos.utils.logger import setup_logger
>>> from coin_dos.utils.config import from_args
>>> logger = setup_logger('coin_dos', level='INFO')
>>> cfg = from_args(['--preset', 'quick'])
"""


# coin_dos/utils/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["logger", "config"]

_lazy = {
    "logger": ".logger",
    "config": ".config",
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
    from . import logger, config
