# -*- coding: utf-8 -*-
"""
解析参考分布与对数空间工具

实现功能：
    - exact_log10_pmf(n): Binomial(n, 1/2) 的精确 log10 概率（公平硬币态密度的归一化形式）
    - canonical_log10_distribution(n, T): 温度 T 下正面数的正则分布（能量按 heads/n 归一）
    - ln_to_log10 / norm_log10_sum_to_1: 对数空间换底与 NaN 友好的归一化
"""

from __future__ import annotations

import math

import numpy as np
from scipy.special import logsumexp
from scipy.stats import binom

__all__ = [
    "LOG10_E",
    "exact_log10_pmf",
    "canonical_log10_distribution",
    "ln_to_log10",
    "norm_log10_sum_to_1",
]

LOG10_E = math.log10(math.e)
_LN10 = math.log(10.0)


def exact_log10_pmf(n: int) -> np.ndarray:
    """长度 n+1 的数组：log10 P(heads = k)，k = 0..n。"""
    k = np.arange(int(n) + 1)
    return binom.logpmf(k, int(n), 0.5) * LOG10_E


def canonical_log10_distribution(n: int, temperature: float) -> np.ndarray:
    """log10 P_T(k) ∝ C(n, k) · exp(-(k/n)/T)，已归一化。"""
    k = np.arange(int(n) + 1)
    ln_w = binom.logpmf(k, int(n), 0.5) - (k / float(n)) / float(temperature)
    return (ln_w - logsumexp(ln_w)) * LOG10_E


def ln_to_log10(values: np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.float64) * LOG10_E


def norm_log10_sum_to_1(values: np.ndarray) -> np.ndarray:
    """
    平移 log10 数组使有限项的 10**v 之和为 1；NaN / -inf 项保持原样。
    全部非有限时原样返回副本。
    """
    out = np.array(values, dtype=np.float64, copy=True)
    finite = np.isfinite(out)
    if not finite.any():
        return out
    shift = logsumexp(out[finite] * _LN10) / _LN10
    out[finite] -= shift
    return out
