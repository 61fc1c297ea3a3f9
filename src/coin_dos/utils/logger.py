# -*- coding: utf-8 -*-
"""
日志记录器

实现功能：
    - 格式化: 控制台输出支持彩色高亮（仅真实终端），文件输出保持纯文本结构化格式。
    - 轮转: 可选按大小（maxBytes / backupCount）轮转日志文件。
    - 幂等: 重复 setup_logger 会替换同名 logger 的 handlers，避免重复输出。
    - 进度: ProgressLogger 按固定间隔节流输出引擎进度（步数、log_f 等）。
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any, Union

from logging.handlers import RotatingFileHandler

__all__ = ['ColoredFormatter', 'setup_logger', 'get_logger', 'ProgressLogger']

# -----------------------------------------------------------------------------
# Colored terminal formatter (only affects console handler)
# -----------------------------------------------------------------------------
class ColoredFormatter(logging.Formatter):
    """
    控制台彩色格式化器：仅临时包装 levelname 字段以添加颜色码，
    并在返回前恢复，避免对 record 做持久性修改。
    """
    COLORS = {
        'DEBUG': '\033[36m',    # cyan
        'INFO': '\033[32m',     # green
        'WARNING': '\033[33m',  # yellow
        'ERROR': '\033[31m',    # red
        'CRITICAL': '\033[35m', # magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        orig_levelname = record.levelname
        try:
            color = self.COLORS.get(orig_levelname)
            if color:
                record.levelname = f"{color}{orig_levelname}{self.RESET}"
            return super().format(record)
        finally:
            record.levelname = orig_levelname  # restore

# -----------------------------------------------------------------------------
# Handler 工厂
# -----------------------------------------------------------------------------
_DATEFMT = '%Y-%m-%d %H:%M:%S'

def _make_console_handler(level: int, use_color: bool, utc: bool) -> logging.Handler:
    if use_color:
        formatter: logging.Formatter = ColoredFormatter(
            '%(asctime)s | %(levelname)s | %(message)s', datefmt=_DATEFMT)
    else:
        formatter = logging.Formatter('%(asctime)s | %(levelname)-8s | %(message)s', datefmt=_DATEFMT)
    if utc:
        formatter.converter = time.gmtime  # type: ignore
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(formatter)
    return ch

def _make_file_handler(log_path: Path, rotate: Optional[Dict[str, Any]], utc: bool) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if rotate:
        fh: logging.Handler = RotatingFileHandler(
            str(log_path),
            maxBytes=int(rotate.get('maxBytes', 10_000_000)),
            backupCount=int(rotate.get('backupCount', 5)),
            encoding='utf-8'
        )
    else:
        fh = logging.FileHandler(str(log_path), mode='a', encoding='utf-8')
    fh.setLevel(logging.DEBUG)  # logger.level controls emission
    formatter = logging.Formatter('%(asctime)s | %(levelname)-8s | %(name)s | %(message)s', datefmt=_DATEFMT)
    if utc:
        formatter.converter = time.gmtime  # type: ignore
    fh.setFormatter(formatter)
    return fh

def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        lv = logging.getLevelName(level.upper())
        if not isinstance(lv, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return lv
    return int(level)

# -----------------------------------------------------------------------------
# setup_logger / get_logger
# -----------------------------------------------------------------------------
def setup_logger(
    name: str = 'coin_dos',
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    use_color: bool = True,
    utc: bool = False,
    rotate: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    配置并返回 logger。重复调用会关闭并替换同名 logger 的 handlers。
    """
    lv = _coerce_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(lv)

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False

    # 仅在真实终端时启用颜色
    use_color = bool(use_color and hasattr(sys.stdout, "isatty") and sys.stdout.isatty())

    logger.addHandler(_make_console_handler(lv, use_color, utc))
    if log_file:
        logger.addHandler(_make_file_handler(Path(log_file), rotate, utc))
    return logger

def get_logger(name: str = 'coin_dos') -> logging.Logger:
    """获取 logger（若未 setup，返回同名 logger 对象，但不自动配置 handlers）。"""
    return logging.getLogger(name)

# -----------------------------------------------------------------------------
# ProgressLogger：节流输出
# -----------------------------------------------------------------------------
class ProgressLogger:
    """
    按墙钟间隔节流的进度输出。

    >>> prog = ProgressLogger(logger, every=2.0)
    >>> prog.maybe_log("steps=%d log_f=%.3g", n, log_f)
    """

    def __init__(self, logger: logging.Logger, every: float = 5.0, level: int = logging.INFO):
        self.logger = logger
        self.every = float(every)
        self.level = level
        self._last = time.perf_counter()

    def maybe_log(self, msg: str, *args: Any) -> bool:
        now = time.perf_counter()
        if self.every <= 0 or now - self._last >= self.every:
            self._last = now
            self.logger.log(self.level, msg, *args)
            return True
        return False
