# -*- coding: utf-8 -*-
"""
并行回火（副本集合）单元测试

覆盖范围：
- β 升序排序（负温度在前）与成员变更（add / remove / set_temperature / resize / clear）
- 重复温度拒绝、零温度报错
- 交换接受概率取值范围、链序检查、交换前后构型守恒
- 端到端：{0.1, -0.1}、L=50、10000 次 tick
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from coin_dos.core.observables import canonical_log10_distribution
from coin_dos.simulation.parallel_tempering import (
    ExchangeOrderError,
    NUM_TAGS,
    ReplicaSet,
    RollingHistory,
    exchange_acceptance_probability,
)
from coin_dos.utils.config import ConfigError, DEFAULT_TEMPERATURES, TemperingConfig


def make_set(temps, L=20, seed=5, **kw):
    return ReplicaSet(TemperingConfig(num_coins=L, seed=seed, temperatures=list(temps), **kw))


# ----------------------------- 排序与成员 -----------------------------
def test_sorted_by_inverse_temperature():
    rs = make_set([0.1, -0.1, -0.01, 0.025])
    assert rs.temperatures == [-0.01, -0.1, 0.1, 0.025]
    betas = [1.0 / t for t in rs.temperatures]
    assert betas == sorted(betas)
    assert rs.pairs.keys() == sorted(
        tuple(sorted(p)) for p in zip(rs.replica_ids, rs.replica_ids[1:])
    )


def test_duplicate_temperature_rejected():
    rs = make_set([0.1, -0.1])
    ids = rs.replica_ids
    keys = rs.pairs.keys()
    assert rs.add_replica(0.1) is False
    assert rs.replica_ids == ids
    assert rs.pairs.keys() == keys
    assert rs.add_replica(0.05) is True
    assert len(rs) == 3


@pytest.mark.parametrize("bad", [0.0, float("nan"), float("inf"), "x"])
def test_invalid_temperature_raises(bad):
    rs = make_set([0.1])
    with pytest.raises(ConfigError):
        rs.add_replica(bad)
    assert rs.temperatures == [0.1]


def test_config_rejects_duplicates():
    with pytest.raises(ConfigError):
        TemperingConfig(temperatures=[0.1, 0.1])


def test_ids_stable_and_tags_cycle():
    rs = ReplicaSet(TemperingConfig(num_coins=5, seed=1))
    for i in range(NUM_TAGS + 2):
        rs.add_replica(0.01 * (i + 1))
    ids = sorted(rs.replica_ids)
    assert ids == list(range(NUM_TAGS + 2))
    tags = {r.replica_id: r.tag for r in rs.replicas}
    assert tags[NUM_TAGS] == 0 and tags[NUM_TAGS + 1] == 1
    rs.remove("bottom")
    rs.add_replica(5.0)
    assert max(rs.replica_ids) == NUM_TAGS + 2  # ids 不复用


def test_remove_selectors():
    rs = make_set([0.1, 0.2, 0.3, -0.1])
    order = rs.temperatures
    top = rs.remove("top")
    assert top.temperature == order[-1]
    bottom = rs.remove("bottom")
    assert bottom.temperature == order[0]
    before = (rs.temperatures, rs.pairs.keys())
    with pytest.raises(IndexError):
        rs.remove(5)
    with pytest.raises(IndexError):
        rs.remove(-1)
    assert (rs.temperatures, rs.pairs.keys()) == before
    assert rs.remove(None) is None
    rs.remove(0)
    assert len(rs) == 1
    assert len(rs.pairs) == 0
    rs.remove("top")
    with pytest.raises(IndexError):
        rs.remove("top")


def test_pair_counts_survive_removal_of_other_replica():
    rs = make_set([0.1, -0.1, 0.05], L=10)
    rs.sample(max_ticks=200)
    a, b = rs.replica_ids[0], rs.replica_ids[1]
    before = rs.get_pair_acceptance(a, b)
    assert before is not None and before.total > 0
    rs.remove("top")
    after = rs.get_pair_acceptance(a, b)
    assert after == before


def test_set_temperature_resorts():
    rs = make_set([0.1, 0.2, -0.1])
    rid = rs.replicas[0].replica_id  # T = -0.1
    rs.set_temperature(0, 0.05)
    assert rs.temperatures == [0.2, 0.1, 0.05]
    assert rs.replica_ids[-1] == rid
    with pytest.raises(ConfigError):
        rs.set_temperature(0, 0.1)
    with pytest.raises(ConfigError):
        rs.set_temperature(0, 0.0)
    with pytest.raises(IndexError):
        rs.set_temperature(7, 1.0)


def test_add_defaults_and_clear():
    rs = ReplicaSet(TemperingConfig(num_coins=10))
    assert rs.add_default_temperatures() == len(DEFAULT_TEMPERATURES)
    assert rs.add_default_temperatures() == 0
    rs.clear()
    assert len(rs) == 0 and len(rs.pairs) == 0
    assert rs.sample(max_ticks=10) == 0


def test_resize_resets_statistics():
    rs = make_set([0.1, -0.1], L=30)
    rs.sample(max_ticks=300)
    rs.resize(12)
    assert rs.num_coins == 12
    for rep in rs.replicas:
        assert len(rep.ensemble) == 12
        assert rep.heads == rep.ensemble.head_count()
        assert rep.histogram.bin_count == 13 and rep.histogram.total == 0
        assert rep.counter.total == 0
        assert len(rep.history) == 0
    c = rs.get_pair_acceptance(*rs.replica_ids)
    assert c.total == 0
    assert rs.exchange_rounds == 0
    with pytest.raises(ConfigError):
        rs.resize(0)
    rs.resize(40)
    assert all(len(r.ensemble) == 40 for r in rs.replicas)


# ----------------------------- 交换 -----------------------------
def test_exchange_probability_bounds_and_order():
    rs = make_set([-0.05, -0.5, 0.5, 0.05], L=16)
    for _ in range(50):
        rs.markov_step_all()
        reps = rs.replicas
        for a, b in zip(reps, reps[1:]):
            p = exchange_acceptance_probability(a, b)
            assert 0.0 <= p <= 1.0
            expected = min(1.0, math.exp((a.beta - b.beta) * (a.heads_rate - b.heads_rate)))
            assert p == pytest.approx(expected)
    reps = rs.replicas
    with pytest.raises(ExchangeOrderError):
        exchange_acceptance_probability(reps[1], reps[0])


def test_exchange_conserves_configurations():
    rs = make_set([0.3, 0.1, -0.1, -0.3, 1.0], L=12)
    for _ in range(200):
        rs.markov_step_all()
        before_heads = sorted(r.heads for r in rs.replicas)
        before_tags = sorted(r.tag for r in rs.replicas)
        before_bits = sorted(r.ensemble.bits.tobytes() for r in rs.replicas)
        lens = [len(r.history) for r in rs.replicas]
        rs.try_exchanges()
        assert sorted(r.heads for r in rs.replicas) == before_heads
        assert sorted(r.tag for r in rs.replicas) == before_tags
        assert sorted(r.ensemble.bits.tobytes() for r in rs.replicas) == before_bits
        for r in rs.replicas:
            assert r.heads == r.ensemble.head_count()
        # 每个副本在每轮里被访问 1 或 2 次，每次历史各 +1
        new_lens = [len(r.history) for r in rs.replicas]
        inner = [1] + [2] * (len(lens) - 2) + [1]
        assert [n - o for n, o in zip(new_lens, lens)] == inner


def test_rolling_history_push_and_capacity():
    h = RollingHistory(3)
    assert len(h) == 0
    assert h.as_array().shape == (0, 2)
    for tag, heads in ((1, 5), (1, 5), (2, 7), (2, 8)):
        h.push(tag, heads)
    assert len(h) == 3
    assert h.as_array().tolist() == [[1, 5], [2, 7], [2, 8]]
    with pytest.raises(ConfigError):
        RollingHistory(0)


def _pin_extremes(rs, heads_first):
    """链首副本全正面 / 全反面，链尾相反；返回 (a, b)。"""
    a, b = rs.replicas
    L = rs.num_coins
    a.ensemble.bits[:] = heads_first
    b.ensemble.bits[:] = not heads_first
    a.heads, b.heads = a.ensemble.head_count(), b.ensemble.head_count()
    assert {a.heads, b.heads} == {0, L}
    return a, b


@pytest.mark.parametrize("heads_first, expected_accepted", [(True, 0), (False, 1)])
def test_exchange_on_fresh_set_records_history(heads_first, expected_accepted):
    # β: -100 在前、+100 在后；r_a - r_b = ±1 使 p 为 exp(-200) 或 1
    rs = make_set([0.01, -0.01], L=50, seed=0)
    _pin_extremes(rs, heads_first)
    assert all(len(r.history) == 0 for r in rs.replicas)
    assert rs.try_exchanges() == expected_accepted
    assert [len(r.history) for r in rs.replicas] == [1, 1]
    for r in rs.replicas:
        assert r.history.as_array().tolist() == [[r.tag, r.heads]]
        assert r.heads == r.ensemble.head_count()


def test_rejected_exchange_after_reset_records_history():
    rs = make_set([0.01, -0.01], L=50, seed=0)
    rs.sample(max_ticks=120)
    rs.reset_statistics()
    _pin_extremes(rs, True)
    assert rs.try_exchanges() == 0
    assert [len(r.history) for r in rs.replicas] == [1, 1]
    c = rs.get_pair_acceptance(*rs.replica_ids)
    assert (c.accepted, c.rejected) == (0, 1)


# ----------------------------- 端到端 -----------------------------
def test_two_replica_scenario():
    L = 50
    rs = ReplicaSet(TemperingConfig(num_coins=L, temperatures=[0.1, -0.1]))
    assert rs.exchange_interval == L
    assert rs.sample(max_ticks=10_000) == 10_000
    assert rs.ticks == 10_000

    ids = rs.replica_ids
    counter = rs.get_pair_acceptance(*ids)
    assert counter.total == rs.exchange_rounds == 10_000 // L
    assert counter.accepted > 0

    for rep in rs.replicas:
        assert rep.histogram.total >= 10_000
        assert rep.counter.total == 10_000
        expected = 10.0 ** canonical_log10_distribution(L, rep.temperature)
        likely = expected > 1e-2
        assert np.all(rep.histogram.hist()[likely] > 0)
    # 正温度副本偏少正面，负温度副本偏多正面
    hists = rs.histograms()
    k = np.arange(L + 1)
    mean_heads = (hists * k).sum(axis=1) / hists.sum(axis=1)
    assert mean_heads[0] > L / 2 > mean_heads[1]


def test_time_budget_sampling():
    rs = make_set([0.1, -0.1], L=20, time_budget=0.01)
    n = rs.sample()
    assert n > 0
    assert rs.ticks == n
