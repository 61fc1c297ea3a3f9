# -*- coding: utf-8 -*-
"""
配置系统测试：默认值、构造期校验、YAML/JSON 往返、环境变量与 CLI 覆盖优先级
"""

import sys
from pathlib import Path

import pytest
import yaml

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from coin_dos.utils.config import (
    Config,
    ConfigError,
    TemperingConfig,
    WangLandauConfig,
    from_args,
    get_preset_config,
    load_config,
    load_from_env,
    merge_configs,
    save_config,
    validate_config,
)


def test_defaults_and_derived_values():
    wl = WangLandauConfig()
    assert wl.num_coins == 100 and wl.threshold == 4e-4 and wl.variant == "1t"
    assert wl.effective_check_interval == 1000
    assert wl.effective_init_max_steps == 1000 * 101
    pt = TemperingConfig(num_coins=30)
    assert pt.seed == 832147 and pt.history_length == 2000
    assert pt.effective_exchange_interval == 30
    assert TemperingConfig(exchange_interval=7).effective_exchange_interval == 7


def test_variant_synonyms():
    assert WangLandauConfig(variant="1/t").variant == "1t"
    assert WangLandauConfig(variant="CLASSIC").variant == "classic"


@pytest.mark.parametrize("kw", [
    {"num_coins": 0},
    {"num_coins": 2.5},
    {"num_coins": True},
    {"seed": -1},
    {"threshold": float("inf")},
    {"flatness": -0.1},
    {"time_budget": 0},
    {"slow_motion_steps": 0},
])
def test_wang_landau_config_rejects(kw):
    with pytest.raises(ConfigError):
        WangLandauConfig(**kw)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_yaml_and_json_roundtrip(tmp_path):
    cfg = get_preset_config("quick")
    for name in ("cfg.yaml", "cfg.json"):
        p = save_config(cfg, tmp_path / name)
        loaded = load_config(p)
        assert loaded.to_dict() == cfg.to_dict()
    with open(tmp_path / "cfg.yaml", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    assert raw["wang_landau"]["num_coins"] == 16


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")
    bad = tmp_path / "cfg.toml"
    bad.write_text("x = 1")
    with pytest.raises(ConfigError):
        load_config(bad)
    unknown = tmp_path / "cfg.json"
    unknown.write_text('{"wang_landau": {"not_a_field": 1}}')
    with pytest.raises(ConfigError):
        load_config(unknown)


def test_unknown_preset():
    with pytest.raises(ConfigError):
        get_preset_config("nope")


def test_env_and_cli_priority(monkeypatch):
    monkeypatch.setenv("COIN_DOS__wang_landau__num_coins", "24")
    monkeypatch.setenv("COIN_DOS__tempering__temperatures", "[0.2, -0.2]")
    monkeypatch.setenv("COIN_DOS__log_level", "debug")
    env = load_from_env()
    assert env["wang_landau"]["num_coins"] == 24

    cfg = from_args(["--preset", "quick", "--set", "wang_landau.num_coins=32",
                     "--set", "wang_landau.variant=classic"])
    assert cfg.wang_landau.num_coins == 32  # CLI 覆盖环境变量
    assert cfg.wang_landau.variant == "classic"
    assert cfg.tempering.temperatures == [0.2, -0.2]
    assert cfg.log_level == "DEBUG"


def test_cli_bad_override():
    with pytest.raises(ConfigError):
        from_args(["--set", "wang_landau.num_coins"])


def test_merge_revalidates():
    with pytest.raises(ConfigError):
        merge_configs(Config(), {"tempering": {"temperatures": [0.0]}})


def test_validate_config_warnings():
    ok, issues = validate_config(Config())
    assert ok and issues == []
    cfg = merge_configs(Config(), {"tempering": {"temperatures": [0.3]},
                                   "wang_landau": {"threshold": 2.0}})
    ok, issues = validate_config(cfg)
    assert not ok
    assert len(issues) == 2
