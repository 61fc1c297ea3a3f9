# -*- coding: utf-8 -*-
"""
相邻副本对的交换接受统计（按稳定副本 id 记录）

键为 (min_id, max_id)；键集合始终等于当前排序后相邻对的集合。
成员变化时只增删差集，保留存活对的计数。
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.markov import AcceptanceCounter

logger = logging.getLogger(__name__)

__all__ = ["PairAcceptance", "pair_key"]

PairKey = Tuple[int, int]


def pair_key(a: int, b: int) -> PairKey:
    return (a, b) if a <= b else (b, a)


class PairAcceptance:
    def __init__(self) -> None:
        self._pairs: Dict[PairKey, AcceptanceCounter] = {}
        self.exchange_rounds = 0

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, key: PairKey) -> bool:
        return pair_key(*key) in self._pairs

    def keys(self) -> List[PairKey]:
        return sorted(self._pairs)

    def update_pairs(self, ids_in_order: Iterable[int]) -> None:
        """按排序后的 id 列表同步相邻对：删去消失的对，新增出现的对（计数为 0）。"""
        ids = list(ids_in_order)
        wanted = {pair_key(a, b) for a, b in zip(ids, ids[1:])}
        current = set(self._pairs)
        for k in current - wanted:
            del self._pairs[k]
        for k in wanted - current:
            self._pairs[k] = AcceptanceCounter()
        if current != wanted:
            logger.debug("Pair tracker resync: -%d +%d pairs", len(current - wanted), len(wanted - current))

    def _counter(self, a: int, b: int) -> AcceptanceCounter:
        key = pair_key(a, b)
        try:
            return self._pairs[key]
        except KeyError:
            raise KeyError(f"pair {key} is not tracked") from None

    def count_acceptance(self, a: int, b: int) -> None:
        self._counter(a, b).count_acceptance()

    def count_rejected(self, a: int, b: int) -> None:
        self._counter(a, b).count_rejected()

    def get_pair_acceptance(self, a: int, b: int) -> Optional[AcceptanceCounter]:
        """副本；未跟踪的对返回 None。"""
        c = self._pairs.get(pair_key(a, b))
        return None if c is None else c.copy()

    def count_exchange_try(self) -> None:
        self.exchange_rounds += 1

    def reset_counts(self) -> None:
        for c in self._pairs.values():
            c.reset()
        self.exchange_rounds = 0
