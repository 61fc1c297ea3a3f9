# -*- coding: utf-8 -*-
"""
统一配置管理系统（支持预设、分层覆盖、构造期一致性检查）

实现功能：
    - WangLandauConfig / TemperingConfig / Config 三个数据类，构造时 __post_init__ 校验，
      违规立即抛出 ConfigError（ValueError 子类），不会产生半初始化的引擎
    - 派生默认值：check_interval → 10 * num_coins；init_max_steps → 1000 * (num_coins + 1)；
      exchange_interval → num_coins
    - YAML / JSON 读写，内置预设（quick / standard / precise）
    - 环境变量与 CLI --set 覆盖，优先级：默认/预设 < 文件 < 环境变量 < CLI --set
    - validate_config() 仅返回跨块提示，不抛错

注意：
1) 温度不可为 0 或非有限值（β = 1/T 必须有定义）；重复温度在构造期即被拒绝
2) variant 取 '1t'（默认，1/t 细化）或 'classic'（仅在平直时减半）
"""

from __future__ import annotations

import os
import sys
import json
import ast
import copy
import math
import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple

import yaml

logger = logging.getLogger(__name__)

__all__ = [
    'ConfigError', 'WangLandauConfig', 'TemperingConfig', 'Config',
    'DEFAULT_TEMPERATURES', 'check_temperature',
    'load_config', 'save_config', 'get_preset_config',
    'load_from_env', 'merge_configs', 'validate_config', 'from_args'
]


class ConfigError(ValueError):
    """非法配置或非法变更；抛出时不修改任何状态。"""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
_SUPPORTED_VARIANTS = ('1t', 'classic')
DEFAULT_TEMPERATURES: Tuple[float, ...] = (0.1, 0.025, 0.005, 0.0075, -0.1, -0.01, -0.0075, -0.005)

def _to_serializable(obj: Any):
    """将对象递归转换为 JSON/YAML 友好格式。"""
    import numpy as _np

    if isinstance(obj, (tuple, list)):
        return [_to_serializable(v) for v in obj]
    if isinstance(obj, dict):
        return {k: _to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, _np.generic):
        return obj.item()
    return obj

def _deep_merge(d1: Dict[str, Any], d2: Dict[str, Any]) -> Dict[str, Any]:
    """将 d2 深度合并到 d1（原地修改 d1 并返回它）。"""
    for k, v in (d2 or {}).items():
        if k in d1 and isinstance(d1[k], dict) and isinstance(v, dict):
            _deep_merge(d1[k], v)
        else:
            d1[k] = v
    return d1

def _set_by_path(d: Dict[str, Any], path: List[str], value: Any):
    """按照 path（list）在嵌套 dict 中设置 value。"""
    cur = d
    for key in path[:-1]:
        if key not in cur or not isinstance(cur[key], dict):
            cur[key] = {}
        cur = cur[key]
    cur[path[-1]] = value

def _parse_env_value(s: Optional[str]):
    """将环境变量字符串解析为 Python 值（literal_eval 优先，兼容 true/false/none）。"""
    if s is None:
        return None
    try:
        return ast.literal_eval(s)
    except (ValueError, SyntaxError):
        sl = s.strip()
        sl_l = sl.lower()
        if sl_l == 'true':
            return True
        if sl_l == 'false':
            return False
        if sl_l in ('none', 'null'):
            return None
        return sl

def _require_int(name: str, v: Any, minimum: int) -> None:
    if isinstance(v, bool) or not isinstance(v, int) or v < minimum:
        raise ConfigError(f"{name} must be an integer >= {minimum}, got {v!r}")

def _require_positive_float(name: str, v: Any) -> None:
    try:
        fv = float(v)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be numeric, got {v!r}")
    if not (math.isfinite(fv) and fv > 0.0):
        raise ConfigError(f"{name} must be a positive finite number, got {v!r}")

def check_temperature(T: Any) -> float:
    """返回 float(T)；T 为 0 / 非有限 / 非数值时抛出 ConfigError。"""
    try:
        t = float(T)
    except (TypeError, ValueError):
        raise ConfigError(f"temperature must be numeric, got {T!r}")
    if not math.isfinite(t) or t == 0.0:
        raise ConfigError(f"temperature must be finite and non-zero, got {T!r}")
    return t

# -----------------------------------------------------------------------------
# Dataclasses
# -----------------------------------------------------------------------------
@dataclass
class WangLandauConfig:
    # 系综
    num_coins: int = 100
    seed: Optional[int] = 0

    # 细化与终止
    threshold: float = 4e-4            # log_f <= threshold 即收敛
    log_f_init: float = 1.0
    variant: str = '1t'                # '1t' | 'classic'
    flatness: float = 0.8              # min(hist) >= flatness * mean(hist)
    check_interval: Optional[int] = None   # None → 10 * num_coins

    # 贪心初始化努力上限
    init_max_steps: Optional[int] = None   # None → 1000 * (num_coins + 1)

    # 时间预算执行
    time_budget: float = 0.005         # 秒；每次 sample() 的墙钟预算
    slow_motion: bool = False
    slow_motion_steps: int = 1

    # 简单采样参考
    simple_sampling: bool = True

    def __post_init__(self):
        _require_int('num_coins', self.num_coins, 1)
        if self.seed is not None:
            _require_int('seed', self.seed, 0)
        _require_positive_float('threshold', self.threshold)
        _require_positive_float('log_f_init', self.log_f_init)
        try:
            flat = float(self.flatness)
        except (TypeError, ValueError):
            raise ConfigError(f"flatness must be numeric, got {self.flatness!r}")
        if not (0.0 <= flat < 1.0):
            raise ConfigError(f"flatness must be in [0, 1), got {self.flatness}")
        v = str(self.variant).strip().lower().replace('/', '')
        if v in ('1t', 'one_over_t', 'bp'):
            v = '1t'
        if v not in _SUPPORTED_VARIANTS:
            raise ConfigError(f"variant must be one of {_SUPPORTED_VARIANTS}, got {self.variant!r}")
        self.variant = v
        if self.check_interval is not None:
            _require_int('check_interval', self.check_interval, 1)
        if self.init_max_steps is not None:
            _require_int('init_max_steps', self.init_max_steps, 0)
        _require_positive_float('time_budget', self.time_budget)
        _require_int('slow_motion_steps', self.slow_motion_steps, 1)

    @property
    def effective_check_interval(self) -> int:
        return int(self.check_interval) if self.check_interval is not None else 10 * self.num_coins

    @property
    def effective_init_max_steps(self) -> int:
        if self.init_max_steps is not None:
            return int(self.init_max_steps)
        return 1000 * (self.num_coins + 1)

@dataclass
class TemperingConfig:
    num_coins: int = 100
    seed: Optional[int] = 832147
    temperatures: List[float] = field(default_factory=list)
    history_length: int = 2000
    exchange_interval: Optional[int] = None  # None → num_coins（每 L 次局部步尝试一轮交换）
    time_budget: float = 0.005

    def __post_init__(self):
        _require_int('num_coins', self.num_coins, 1)
        if self.seed is not None:
            _require_int('seed', self.seed, 0)
        temps = [check_temperature(t) for t in (self.temperatures or [])]
        if len(set(temps)) != len(temps):
            raise ConfigError(f"temperatures contain duplicates: {temps}")
        self.temperatures = temps
        _require_int('history_length', self.history_length, 1)
        if self.exchange_interval is not None:
            _require_int('exchange_interval', self.exchange_interval, 1)
        _require_positive_float('time_budget', self.time_budget)

    @property
    def effective_exchange_interval(self) -> int:
        return int(self.exchange_interval) if self.exchange_interval is not None else self.num_coins

@dataclass
class Config:
    wang_landau: WangLandauConfig = field(default_factory=WangLandauConfig)
    tempering: TemperingConfig = field(default_factory=TemperingConfig)

    project_name: str = 'coin_dos'
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    version: int = 1

    def __post_init__(self):
        if str(self.log_level).upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigError(f"log_level must be a logging level name, got {self.log_level!r}")
        self.log_level = str(self.log_level).upper()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'wang_landau': asdict(self.wang_landau),
            'tempering': asdict(self.tempering),
            'project_name': self.project_name,
            'log_level': self.log_level,
            'log_file': self.log_file,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Config':
        d = d or {}
        wl_d = d.get('wang_landau', {}) or {}
        pt_d = d.get('tempering', {}) or {}
        try:
            wl = WangLandauConfig(**wl_d)
            pt = TemperingConfig(**pt_d)
        except TypeError as e:
            raise ConfigError(f"unknown configuration key: {e}") from e
        return cls(
            wang_landau=wl,
            tempering=pt,
            project_name=d.get('project_name', 'coin_dos'),
            log_level=d.get('log_level', 'INFO'),
            log_file=d.get('log_file'),
            version=int(d.get('version', 1)),
        )

# -----------------------------------------------------------------------------
# I/O
# -----------------------------------------------------------------------------
def load_config(filepath: str | Path) -> Config:
    """从 YAML 或 JSON 文件加载配置并返回 Config 对象。"""
    p = Path(filepath)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")
    suf = p.suffix.lower()
    if suf in ('.yaml', '.yml'):
        with open(p, 'r', encoding='utf-8') as f:
            cfg = yaml.safe_load(f) or {}
    elif suf == '.json':
        with open(p, 'r', encoding='utf-8') as f:
            cfg = json.load(f) or {}
    else:
        raise ConfigError(f"Unsupported config file extension: {suf}")
    return Config.from_dict(cfg)

def save_config(config: Config, filepath: str | Path, format: Optional[str] = None) -> Path:
    """将 Config 保存为 YAML 或 JSON。默认根据后缀判断格式。"""
    p = Path(filepath)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = _to_serializable(config.to_dict())
    fmt = format
    if fmt is None:
        fmt = 'json' if p.suffix.lower() == '.json' else 'yaml'

    if fmt == 'yaml':
        with open(p, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    elif fmt == 'json':
        with open(p, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    else:
        raise ConfigError(f"Unsupported format: {fmt}")
    logger.info("Config saved: %s", p)
    return p

# -----------------------------------------------------------------------------
# Presets
# -----------------------------------------------------------------------------
def get_preset_config(name: str) -> Config:
    """返回内置预设配置的副本（deepcopy）。"""
    presets: Dict[str, Config] = {
        'quick': Config(
            wang_landau=WangLandauConfig(num_coins=16, threshold=1e-3, variant='1t'),
            tempering=TemperingConfig(num_coins=20, temperatures=[0.1, -0.1], history_length=500),
        ),
        'standard': Config(
            wang_landau=WangLandauConfig(num_coins=100),
            tempering=TemperingConfig(num_coins=100, temperatures=list(DEFAULT_TEMPERATURES)),
        ),
        'precise': Config(
            wang_landau=WangLandauConfig(num_coins=100, threshold=1e-6, flatness=0.9, time_budget=0.05),
            tempering=TemperingConfig(num_coins=100, temperatures=list(DEFAULT_TEMPERATURES),
                                      history_length=5000, time_budget=0.05),
        ),
    }
    if name not in presets:
        raise ConfigError(f"Unknown preset: {name}. Available: {list(presets.keys())}")
    return copy.deepcopy(presets[name])

# -----------------------------------------------------------------------------
# Environment variables (nested via sep, e.g., COIN_DOS__wang_landau__num_coins=64)
# -----------------------------------------------------------------------------
def load_from_env(prefix: str = 'COIN_DOS', sep: str = '__') -> Dict[str, Any]:
    """
    从环境变量读取以 prefix 开头、用 sep 分层的键，返回嵌套 dict。
    例： COIN_DOS__wang_landau__num_coins=64  → {'wang_landau': {'num_coins': 64}}
    """
    out: Dict[str, Any] = {}
    pfx = prefix + sep
    for k, v in os.environ.items():
        if not k.startswith(pfx):
            continue
        parts = [p for p in k[len(pfx):].split(sep) if p]
        if not parts:
            continue
        _set_by_path(out, parts, _parse_env_value(v))
    return out

# -----------------------------------------------------------------------------
# Merge & validate
# -----------------------------------------------------------------------------
def merge_configs(base: Config, override: Dict[str, Any]) -> Config:
    """将 override（nested dict）深度合并到 base Config 的字典表示上，并返回新的 Config。"""
    base_dict = base.to_dict()
    _deep_merge(base_dict, override or {})
    return Config.from_dict(base_dict)

def validate_config(cfg: Config) -> Tuple[bool, List[str]]:
    """
    跨块一致性检查（仅返回 issues，不抛错；硬约束已在 __post_init__ 完成）。
    """
    issues: List[str] = []
    wl = cfg.wang_landau
    pt = cfg.tempering

    if wl.threshold >= wl.log_f_init:
        issues.append(f"wang_landau.threshold ({wl.threshold}) >= log_f_init ({wl.log_f_init}) -- "
                      "引擎构造后即视为已收敛")
    if wl.effective_check_interval < wl.num_coins + 1:
        issues.append("wang_landau.check_interval < 能级数 -- 平直判据几乎不可能满足")
    if wl.variant == 'classic' and wl.threshold < 1e-6:
        issues.append("classic 变体 + 极小 threshold 会导致很长的运行时间；可考虑 variant='1t'")
    if len(pt.temperatures) == 1:
        issues.append("tempering.temperatures 仅含 1 个温度 -- 不会发生任何副本交换")
    if pt.history_length < pt.effective_exchange_interval:
        issues.append("tempering.history_length 小于交换周期 -- 历史窗口看不到完整一轮交换")

    ok = len(issues) == 0
    return ok, issues

# -----------------------------------------------------------------------------
# CLI helpers
# -----------------------------------------------------------------------------
def _parse_cli_overrides(kv_list: List[str]) -> Dict[str, Any]:
    """
    解析 --set key=value（点分路径）列表，返回 nested dict。
    例：--set wang_landau.num_coins=64 → {'wang_landau': {'num_coins': 64}}
    """
    out: Dict[str, Any] = {}
    for kv in (kv_list or []):
        if '=' not in kv:
            raise ConfigError(f"--set expects key=value pairs, got: {kv}")
        key, val = kv.split('=', 1)
        path = [p.strip() for p in key.split('.') if p.strip()]
        if not path:
            continue
        _set_by_path(out, path, _parse_env_value(val))
    return out

def build_arg_parser(env_prefix: str = 'COIN_DOS', description: str = "Load & merge configuration"):
    import argparse
    ap = argparse.ArgumentParser(description=description)
    ap.add_argument('--preset', type=str, choices=['quick', 'standard', 'precise'], help='preset name')
    ap.add_argument('--config', type=str, help='config file (yaml|json)')
    ap.add_argument('--env-prefix', type=str, default=env_prefix,
                    help=f'environment variable prefix (default {env_prefix})')
    ap.add_argument('--set', dest='sets', action='append', default=[],
                    help='override key=value (dot notation, can repeat)')
    return ap

def from_args(args: Optional[List[str]] = None, env_prefix: str = 'COIN_DOS') -> Config:
    """
    从命令行加载并合并配置（优先级从低到高）:
      默认/预设 <- 文件 (--config) <- 环境变量 (--env-prefix) <- CLI --set
    """
    ns, _ = build_arg_parser(env_prefix).parse_known_args(args=args)

    cfg = get_preset_config(ns.preset) if ns.preset else Config()

    if ns.config:
        cfg = merge_configs(cfg, load_config(ns.config).to_dict())

    env_over = load_from_env(prefix=ns.env_prefix)
    if env_over:
        cfg = merge_configs(cfg, env_over)

    cli_over = _parse_cli_overrides(ns.sets)
    if cli_over:
        cfg = merge_configs(cfg, cli_over)

    ok, issues = validate_config(cfg)
    if not ok:
        for it in issues:
            logger.warning("Config validation: %s", it)
    return cfg

# -----------------------------------------------------------------------------
# Module quick demo
# -----------------------------------------------------------------------------
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, stream=sys.stdout)
    cfg = from_args(sys.argv[1:])
    print(yaml.safe_dump(_to_serializable(cfg.to_dict()), sort_keys=False))
