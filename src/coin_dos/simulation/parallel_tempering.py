# -*- coding: utf-8 -*-
"""
副本集合（并行回火）引擎

实现功能：
    - 每个副本：温度 T（非零有限）、抛硬币系综、跟踪正面数、接受计数、直方图、滚动历史、稳定 id
    - 局部步：Metropolis 判据 u < exp((old - new) / (T * L))，负温度偏好更多正面
    - 排序：按 β = 1/T 升序（负温度在前，由接近 0 向外；正温度随后，由热到冷），只交换相邻对
    - 交换：每轮对 n-1 个相邻对各尝试一次（随机顺序），
      接受概率 min(1, exp((1/T_a - 1/T_b) * (r_a - r_b)))，r = heads / L
    - 接受：交换构型、正面数与显示标签，两个副本各记一次直方图与历史；拒绝：两侧历史重复最后一项
    - 成员变更：add_replica / remove / set_temperature / resize，交换统计按 id 增量同步

注意：
1) RNG 由 ReplicaSet 独占，显式传入每个局部步
2) 交换对必须满足 β_a <= β_b，否则抛 ExchangeOrderError（排序不变量被破坏）
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple, Union

import numpy as np

from ..core.coin_sequence import CoinFlipSequence
from ..core.histogram import Histogram
from ..core.markov import AcceptanceCounter
from ..core.rng import RandomStream
from ..utils.config import ConfigError, DEFAULT_TEMPERATURES, TemperingConfig, check_temperature
from .pair_acceptance import PairAcceptance

logger = logging.getLogger(__name__)

__all__ = [
    "ExchangeOrderError",
    "RollingHistory",
    "Replica",
    "ReplicaSet",
    "exchange_acceptance_probability",
    "NUM_TAGS",
]

NUM_TAGS = 11
_MIN_EXP_ARG = -700.0
_TIME_CHECK_MASK = 0x0F

Selector = Union[str, int, None]


class ExchangeOrderError(RuntimeError):
    """交换对不满足链序（β_a > β_b）。"""


# -------------------------
# 滚动历史
# -------------------------
class RollingHistory:
    """定长 (tag, heads) 历史；满后丢弃最旧项。"""

    def __init__(self, capacity: int):
        if int(capacity) <= 0:
            raise ConfigError(f"history capacity must be positive, got {capacity}")
        self._buf: Deque[Tuple[int, int]] = deque(maxlen=int(capacity))

    def __len__(self) -> int:
        return len(self._buf)

    def push(self, tag: int, heads: int) -> None:
        self._buf.append((int(tag), int(heads)))

    def clear(self) -> None:
        self._buf.clear()

    def as_array(self) -> np.ndarray:
        """形状 (n, 2) 的 int64 数组：列为 tag、heads。"""
        if not self._buf:
            return np.zeros((0, 2), dtype=np.int64)
        return np.asarray(self._buf, dtype=np.int64)


# -------------------------
# 副本
# -------------------------
@dataclass
class Replica:
    replica_id: int
    temperature: float
    ensemble: CoinFlipSequence
    heads: int
    tag: int
    histogram: Histogram
    history: RollingHistory
    counter: AcceptanceCounter = field(default_factory=AcceptanceCounter)

    @property
    def beta(self) -> float:
        return 1.0 / self.temperature

    @property
    def num_coins(self) -> int:
        return len(self.ensemble)

    @property
    def heads_rate(self) -> float:
        return self.heads / len(self.ensemble)

    def reset_statistics(self) -> None:
        self.counter.reset()
        self.histogram.reset()
        self.history.clear()
        self.ensemble.reset_statistics()


def exchange_acceptance_probability(a: Replica, b: Replica) -> float:
    """
    相邻对 (a, b)（链序 β_a <= β_b）的交换接受概率
    min(1, exp((β_a - β_b) * (r_a - r_b)))。
    """
    if a.beta > b.beta:
        raise ExchangeOrderError(
            f"replicas out of chain order: T_a={a.temperature} (β={a.beta:.4g}) "
            f"before T_b={b.temperature} (β={b.beta:.4g})"
        )
    arg = (a.beta - b.beta) * (a.heads_rate - b.heads_rate)
    if arg >= 0.0:
        return 1.0
    return math.exp(max(arg, _MIN_EXP_ARG))


# -------------------------
# 副本集合
# -------------------------
class ReplicaSet:
    """
    并行回火引擎。

    >>> rs = ReplicaSet(TemperingConfig(num_coins=50, temperatures=[0.1, -0.1]))
    >>> rs.sample(max_ticks=10_000)
    >>> rs.get_pair_acceptance(*rs.replica_ids)
    """

    def __init__(self, config: Optional[TemperingConfig] = None):
        cfg = config if config is not None else TemperingConfig()
        if not isinstance(cfg, TemperingConfig):
            raise ConfigError(f"expected TemperingConfig, got {type(cfg).__name__}")
        self.config = cfg
        self.num_coins = cfg.num_coins
        self.history_length = cfg.history_length
        self.rng = RandomStream(cfg.seed)
        self.pairs = PairAcceptance()
        self._replicas: List[Replica] = []
        self._next_id = 0
        self._ticks_since_exchange = 0
        self.ticks = 0

        for t in cfg.temperatures:
            self.add_replica(t)

    # -------------------------
    # 只读
    # -------------------------
    def __len__(self) -> int:
        return len(self._replicas)

    @property
    def replicas(self) -> Tuple[Replica, ...]:
        return tuple(self._replicas)

    @property
    def exchange_interval(self) -> int:
        if self.config.exchange_interval is not None:
            return int(self.config.exchange_interval)
        return self.num_coins

    @property
    def temperatures(self) -> List[float]:
        return [r.temperature for r in self._replicas]

    @property
    def replica_ids(self) -> List[int]:
        return [r.replica_id for r in self._replicas]

    @property
    def exchange_rounds(self) -> int:
        return self.pairs.exchange_rounds

    def heads_rates(self) -> np.ndarray:
        return np.array([r.heads_rate for r in self._replicas], dtype=np.float64)

    def acceptance_rates(self) -> np.ndarray:
        return np.array([r.counter.acceptance_rate() for r in self._replicas], dtype=np.float64)

    def histograms(self) -> np.ndarray:
        """形状 (n_replicas, L+1) 的命中计数。"""
        if not self._replicas:
            return np.zeros((0, self.num_coins + 1), dtype=np.int64)
        return np.stack([r.histogram.hist() for r in self._replicas])

    def histories(self) -> Dict[int, np.ndarray]:
        """按副本 id 给出 (n, 2) 的 (tag, heads) 历史。"""
        return {r.replica_id: r.history.as_array() for r in self._replicas}

    def adjacent_pair_acceptance(self) -> List[Tuple[int, int, float]]:
        """按链序列出 (id_a, id_b, 接受率)；尚无尝试的对为 NaN。"""
        out = []
        for a, b in zip(self._replicas, self._replicas[1:]):
            c = self.pairs.get_pair_acceptance(a.replica_id, b.replica_id)
            rate = c.acceptance_rate() if c is not None else math.nan
            out.append((a.replica_id, b.replica_id, rate))
        return out

    def get_pair_acceptance(self, id_a: int, id_b: int) -> Optional[AcceptanceCounter]:
        return self.pairs.get_pair_acceptance(id_a, id_b)

    # -------------------------
    # 成员变更
    # -------------------------
    def _resync(self) -> None:
        self._replicas.sort(key=lambda r: r.beta)
        self.pairs.update_pairs(self.replica_ids)

    def _new_replica(self, temperature: float) -> Replica:
        rid = self._next_id
        self._next_id += 1
        ens = CoinFlipSequence.random(self.num_coins, self.rng)
        return Replica(
            replica_id=rid,
            temperature=temperature,
            ensemble=ens,
            heads=ens.head_count(),
            tag=rid % NUM_TAGS,
            histogram=Histogram.for_coins(self.num_coins),
            history=RollingHistory(self.history_length),
        )

    def contains_temperature(self, temperature: float) -> bool:
        t = float(temperature)
        return any(r.temperature == t for r in self._replicas)

    def add_replica(self, temperature: float) -> bool:
        """新增温度；重复温度返回 False 且不改变任何状态。"""
        t = check_temperature(temperature)
        if self.contains_temperature(t):
            logger.info("Temperature %g already present; ignored", t)
            return False
        rep = self._new_replica(t)
        self._replicas.append(rep)
        self._resync()
        logger.info("Added replica id=%d T=%g (n=%d)", rep.replica_id, t, len(self._replicas))
        return True

    def add_default_temperatures(self) -> int:
        """加入示例温度梯；返回实际新增个数。"""
        return sum(1 for t in DEFAULT_TEMPERATURES if self.add_replica(t))

    def remove(self, selector: Selector = "top") -> Optional[Replica]:
        """
        删除一个副本：'top'（链尾）/ 'bottom'（链首）/ int 下标 / None（不操作）。
        越界抛 IndexError 且不改变状态。
        """
        if selector is None:
            return None
        n = len(self._replicas)
        if isinstance(selector, str):
            key = selector.strip().lower()
            if key not in ("top", "bottom"):
                raise ValueError(f"selector must be 'top', 'bottom', an index or None, got {selector!r}")
            if n == 0:
                raise IndexError("cannot remove from an empty replica set")
            idx = n - 1 if key == "top" else 0
        else:
            idx = int(selector)
            if not (0 <= idx < n):
                raise IndexError(f"replica index {selector} out of range for {n} replicas")
        rep = self._replicas.pop(idx)
        self.pairs.update_pairs(self.replica_ids)
        logger.info("Removed replica id=%d T=%g (n=%d)", rep.replica_id, rep.temperature, len(self._replicas))
        return rep

    def clear(self) -> None:
        self._replicas.clear()
        self.pairs.update_pairs([])
        self.pairs.reset_counts()
        self._ticks_since_exchange = 0
        logger.info("Removed all replicas")

    def set_temperature(self, index: int, temperature: float) -> None:
        """修改第 index 个副本的温度（校验同 add_replica），随后重新排序。"""
        t = check_temperature(temperature)
        n = len(self._replicas)
        if not (0 <= int(index) < n):
            raise IndexError(f"replica index {index} out of range for {n} replicas")
        rep = self._replicas[int(index)]
        if rep.temperature == t:
            return
        if self.contains_temperature(t):
            raise ConfigError(f"temperature {t} already present")
        old = rep.temperature
        rep.temperature = t
        self._resync()
        logger.info("Replica id=%d temperature %g -> %g", rep.replica_id, old, t)

    def resize(self, num_coins: int) -> None:
        """
        改变硬币数：截断或以新抛硬币补齐构型；直方图、计数器、历史与交换统计全部重置。
        """
        if isinstance(num_coins, bool) or not isinstance(num_coins, (int, np.integer)) or num_coins < 1:
            raise ConfigError(f"num_coins must be an integer >= 1, got {num_coins!r}")
        n = int(num_coins)
        for rep in self._replicas:
            rep.ensemble = rep.ensemble.resized(n, self.rng)
            rep.heads = rep.ensemble.head_count()
            rep.histogram = Histogram.for_coins(n)
            rep.counter.reset()
            rep.history.clear()
        self.num_coins = n
        self.pairs.reset_counts()
        self._ticks_since_exchange = 0
        logger.info("Resized replica set to L=%d (%d replicas)", n, len(self._replicas))

    def reset_statistics(self) -> None:
        for rep in self._replicas:
            rep.reset_statistics()
        self.pairs.reset_counts()
        self.ticks = 0
        self._ticks_since_exchange = 0

    # -------------------------
    # 采样
    # -------------------------
    def _local_step(self, rep: Replica) -> None:
        rng = self.rng
        ens = rep.ensemble
        old = rep.heads
        step = ens.propose_step(rng)
        new = ens.update_head_count(step, old)
        arg = (old - new) / (rep.temperature * self.num_coins)
        if arg >= 0.0 or rng.random() < math.exp(arg):
            ens.step_accepted(step)
            rep.heads = new
            rep.counter.count_acceptance()
        else:
            ens.undo_step(step)
            ens.step_rejected(step)
            rep.counter.count_rejected()
        rep.history.push(rep.tag, rep.heads)
        rep.histogram.increment(rep.heads)

    def markov_step_all(self) -> None:
        for rep in self._replicas:
            self._local_step(rep)

    def try_exchanges(self) -> int:
        """对每个相邻对各尝试一次交换（随机顺序），返回接受数。"""
        reps = self._replicas
        if len(reps) < 2:
            return 0
        accepted = 0
        for i in self.rng.generator.permutation(len(reps) - 1):
            a, b = reps[i], reps[i + 1]
            p = exchange_acceptance_probability(a, b)
            if p >= 1.0 or self.rng.random() < p:
                a.ensemble, b.ensemble = b.ensemble, a.ensemble
                a.heads, b.heads = b.heads, a.heads
                a.tag, b.tag = b.tag, a.tag
                for rep in (a, b):
                    rep.histogram.increment(rep.heads)
                    rep.history.push(rep.tag, rep.heads)
                self.pairs.count_acceptance(a.replica_id, b.replica_id)
                accepted += 1
            else:
                for rep in (a, b):
                    rep.history.push(rep.tag, rep.heads)
                self.pairs.count_rejected(a.replica_id, b.replica_id)
        self.pairs.count_exchange_try()
        return accepted

    def tick(self) -> None:
        """一次局部步；每 exchange_interval 次后尝试一轮交换。"""
        self.markov_step_all()
        self.ticks += 1
        self._ticks_since_exchange += 1
        if self._ticks_since_exchange >= self.exchange_interval:
            self._ticks_since_exchange = 0
            self.try_exchanges()

    def sample(self, time_budget: Optional[float] = None, max_ticks: Optional[int] = None) -> int:
        """
        在墙钟预算（默认 config.time_budget；给定 max_ticks 且未给预算时不限时）
        和 / 或 tick 数上限内推进，返回执行的 tick 数。
        """
        if not self._replicas:
            return 0
        if time_budget is None and max_ticks is None:
            time_budget = self.config.time_budget
        t0 = time.perf_counter()
        done = 0
        while max_ticks is None or done < max_ticks:
            self.tick()
            done += 1
            if (time_budget is not None and (done & _TIME_CHECK_MASK) == 0
                    and time.perf_counter() - t0 >= time_budget):
                break
        return done
