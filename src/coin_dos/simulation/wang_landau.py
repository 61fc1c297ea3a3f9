# -*- coding: utf-8 -*-
"""
Wang-Landau 平直直方图引擎（抛硬币系综，能量 = 正面数）

实现功能：
    - 贪心初始化：先让行走者尽快访问所有能级（不记录接受统计，撤销不计数），有努力上限
    - 采样步：Metropolis 判据 min(1, exp(ld[old] - ld[new]))，随后在当前能级累加直方图与 log_f
    - 细化：每 check_interval 步检查平直（所有 bin 被命中且 min >= flatness * mean），
      平直则清空直方图并将 log_f 减半
    - 1/t 变体：一旦减半后 log_f < bins / t，进入 1/t 模式，此后每步 log_f = min(log_f, bins / t)
    - 终止：log_f <= threshold 即完成，之后 sample*() 为空操作
    - 时间预算执行：sample(time_budget) / sample_steps(n) / 慢动作模式

注意：
1) log_f 单调不增；log_density 的归一化只作用于 log_density_base10() 返回的副本
2) set_threshold 可以在运行中调整；调低阈值会使已完成的引擎恢复采样
"""

from __future__ import annotations

import logging
import math
import time
from typing import Optional

import numpy as np
from numpy.random import SeedSequence

from ..core.coin_sequence import CoinFlipSequence
from ..core.histogram import Histogram
from ..core.observables import exact_log10_pmf, ln_to_log10, norm_log10_sum_to_1
from ..core.rng import RandomStream
from ..utils.config import ConfigError, WangLandauConfig
from ..utils.logger import ProgressLogger
from .simple_sampling import SimpleSampler

logger = logging.getLogger(__name__)

__all__ = ["WangLandauEngine"]

_TIME_CHECK_MASK = 0x1F  # 每 32 步读一次时钟
_MODE_HALVING = "halving"
_MODE_1T = "1t"


class WangLandauEngine:
    """
    单行走者 Wang-Landau 采样器。

    >>> wl = WangLandauEngine(WangLandauConfig(num_coins=16, seed=1))
    >>> while not wl.is_finished:
    ...     wl.sample()
    >>> est = wl.log_density_base10()
    """

    def __init__(self, config: Optional[WangLandauConfig] = None):
        cfg = config if config is not None else WangLandauConfig()
        if not isinstance(cfg, WangLandauConfig):
            raise ConfigError(f"expected WangLandauConfig, got {type(cfg).__name__}")
        self.config = cfg
        self.num_coins = cfg.num_coins
        self.num_bins = cfg.num_coins + 1
        self.check_interval = cfg.effective_check_interval
        self.flatness = float(cfg.flatness)
        self.variant = cfg.variant
        self._threshold = float(cfg.threshold)

        walker_ss, coins_ss, simple_ss = SeedSequence(cfg.seed).spawn(3)
        self.rng = RandomStream(walker_ss)
        self.ensemble = CoinFlipSequence.random(self.num_coins, RandomStream(coins_ss))
        self.simple: Optional[SimpleSampler] = (
            SimpleSampler(self.num_coins, RandomStream(simple_ss)) if cfg.simple_sampling else None
        )

        self.log_density = np.zeros(self.num_bins, dtype=np.float64)
        self.histogram = Histogram.for_coins(self.num_coins)
        self._log_f = float(cfg.log_f_init)
        self._mode = _MODE_HALVING
        self._step_counter = 0
        self._refinements = 0
        self._energy = self.ensemble.head_count()

        self.init_steps = self._init_greedy(cfg.effective_init_max_steps)
        logger.info("WangLandau ready: L=%d bins=%d variant=%s threshold=%.3g check_interval=%d "
                    "greedy_steps=%d", self.num_coins, self.num_bins, self.variant,
                    self._threshold, self.check_interval, self.init_steps)

    # -------------------------
    # 初始化
    # -------------------------
    def _init_greedy(self, max_steps: int) -> int:
        """
        贪心访问所有能级：新能级未访问过则接受；否则仅当离最近未访问能级不更远时接受。
        返回使用的提议数。
        """
        visited = np.zeros(self.num_bins, dtype=bool)
        visited[self._energy] = True
        unvisited = np.flatnonzero(~visited)
        steps = 0
        while unvisited.size and steps < max_steps:
            steps += 1
            old = self._energy
            step = self.ensemble.propose_step(self.rng)
            new = self.ensemble.update_head_count(step, old)
            if visited[new]:
                d_old = int(np.abs(unvisited - old).min())
                d_new = int(np.abs(unvisited - new).min())
                if d_new > d_old:
                    self.ensemble.undo_step_quiet(step)
                    continue
            else:
                visited[new] = True
                unvisited = np.flatnonzero(~visited)
            self._energy = new
        if unvisited.size:
            logger.warning("Greedy initialisation stopped after %d proposals with %d unvisited bins",
                           steps, unvisited.size)
        self.ensemble.reset_statistics()
        return steps

    # -------------------------
    # 只读属性
    # -------------------------
    @property
    def step_counter(self) -> int:
        return self._step_counter

    @property
    def log_f(self) -> float:
        return self._log_f

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def refinements(self) -> int:
        """log_f 减半次数。"""
        return self._refinements

    @property
    def current_energy(self) -> int:
        return self._energy

    @property
    def is_finished(self) -> bool:
        return self._log_f <= self._threshold

    def set_threshold(self, value: float) -> None:
        try:
            v = float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"threshold must be numeric, got {value!r}")
        if not (math.isfinite(v) and v > 0.0):
            raise ConfigError(f"threshold must be a positive finite number, got {value!r}")
        self._threshold = v
        logger.info("WangLandau threshold set to %.3g (finished=%s)", v, self.is_finished)

    # -------------------------
    # 采样
    # -------------------------
    def _refine(self) -> None:
        if not self.histogram.is_flat(self.flatness):
            return
        self.histogram.reset()
        self._log_f *= 0.5
        self._refinements += 1
        logger.debug("Flat histogram at step %d; log_f -> %.3g", self._step_counter, self._log_f)
        if self.variant == _MODE_1T and self._log_f < self.num_bins / self._step_counter:
            self._mode = _MODE_1T
            logger.info("Switching to 1/t refinement at step %d (log_f=%.3g)",
                        self._step_counter, self._log_f)

    def _step(self) -> None:
        ensemble = self.ensemble
        ld = self.log_density
        old = self._energy
        step = ensemble.propose_step(self.rng)
        new = ensemble.update_head_count(step, old)
        diff = ld[old] - ld[new]
        if diff >= 0.0 or self.rng.random() < math.exp(diff):
            ensemble.step_accepted(step)
            self._energy = new
        else:
            ensemble.undo_step(step)
            ensemble.step_rejected(step)

        self._step_counter += 1
        e = self._energy
        self.histogram.increment(e)
        ld[e] += self._log_f

        if self._mode == _MODE_1T:
            self._log_f = min(self._log_f, self.num_bins / self._step_counter)
        elif self._step_counter % self.check_interval == 0:
            self._refine()

        if self.is_finished:
            logger.info("WangLandau converged: log_f=%.3g <= threshold=%.3g after %d steps",
                        self._log_f, self._threshold, self._step_counter)

    def _after_sampling(self) -> None:
        if self.simple is not None:
            self.simple.catch_up(self._step_counter)

    def sample(self, time_budget: Optional[float] = None) -> int:
        """
        在墙钟预算内执行尽可能多的步（慢动作模式下另有步数上限），返回执行的步数。
        已完成时为空操作。
        """
        if self.is_finished:
            return 0
        budget = self.config.time_budget if time_budget is None else float(time_budget)
        cap = self.config.slow_motion_steps if self.config.slow_motion else None
        t0 = time.perf_counter()
        done = 0
        while not self.is_finished:
            self._step()
            done += 1
            if cap is not None and done >= cap:
                break
            if (done & _TIME_CHECK_MASK) == 0 and time.perf_counter() - t0 >= budget:
                break
        self._after_sampling()
        return done

    def sample_steps(self, n: int) -> int:
        """执行至多 n 步（完成即停），返回执行的步数。"""
        done = 0
        n = int(n)
        while done < n and not self.is_finished:
            self._step()
            done += 1
        self._after_sampling()
        return done

    def run(self, max_steps: Optional[int] = None, time_limit: Optional[float] = None,
            chunk: int = 10_000, log_every: float = 5.0) -> bool:
        """
        阻塞运行直到收敛或达到步数 / 时间上限，返回是否收敛。
        """
        prog = ProgressLogger(logger, every=log_every)
        t0 = time.perf_counter()
        while not self.is_finished:
            n = chunk if max_steps is None else min(chunk, max_steps - self._step_counter)
            if n <= 0:
                break
            self.sample_steps(n)
            prog.maybe_log("WangLandau steps=%d log_f=%.3g mode=%s refinements=%d",
                           self._step_counter, self._log_f, self._mode, self._refinements)
            if time_limit is not None and time.perf_counter() - t0 >= time_limit:
                break
        if not self.is_finished:
            logger.warning("WangLandau stopped before convergence: steps=%d log_f=%.3g",
                           self._step_counter, self._log_f)
        return self.is_finished

    # -------------------------
    # 输出
    # -------------------------
    def log_density_base10(self) -> np.ndarray:
        """log10 估计，已归一化使概率之和为 1（副本）。"""
        return norm_log10_sum_to_1(ln_to_log10(self.log_density))

    def exact_log10(self) -> np.ndarray:
        return exact_log10_pmf(self.num_coins)

    def max_abs_error(self) -> float:
        return float(np.max(np.abs(self.log_density_base10() - self.exact_log10())))

    def simple_sample_estimate(self, log: bool = True) -> Optional[np.ndarray]:
        if self.simple is None:
            return None
        return self.simple.estimate(log=log)

    def acceptance_rate(self) -> float:
        return self.ensemble.counter.acceptance_rate()
