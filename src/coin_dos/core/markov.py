# -*- coding: utf-8 -*-
"""
可逆移动抽象（MarkovChain 协议）与接受计数器。

约定：
    - propose_step(rng) 立刻修改构型并返回移动记录；
    - undo_step(move) 精确恢复修改前的构型（计数），undo_step_quiet 不计数；
    - step_accepted / step_rejected 仅做统计；
    - energy() 为全量扫描，update_energy(move, old) 为 O(1) 增量更新。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from .rng import RandomStream

__all__ = ["MarkovChain", "AcceptanceCounter"]

MoveT = TypeVar("MoveT")


@runtime_checkable
class MarkovChain(Protocol[MoveT]):
    def propose_step(self, rng: RandomStream) -> MoveT: ...

    def undo_step(self, step: MoveT) -> None: ...

    def undo_step_quiet(self, step: MoveT) -> None: ...

    def step_accepted(self, step: MoveT) -> None: ...

    def step_rejected(self, step: MoveT) -> None: ...

    def energy(self) -> int: ...

    def update_energy(self, step: MoveT, old_energy: int) -> int: ...


@dataclass
class AcceptanceCounter:
    """接受 / 拒绝计数。"""

    accepted: int = 0
    rejected: int = 0

    def count_acceptance(self) -> None:
        self.accepted += 1

    def count_rejected(self) -> None:
        self.rejected += 1

    def count(self, accepted: bool) -> None:
        if accepted:
            self.accepted += 1
        else:
            self.rejected += 1

    @property
    def total(self) -> int:
        return self.accepted + self.rejected

    def acceptance_rate(self) -> float:
        """接受率；尚无尝试时返回 NaN。"""
        total = self.total
        if total == 0:
            return math.nan
        return self.accepted / total

    def reset(self) -> None:
        self.accepted = 0
        self.rejected = 0

    def copy(self) -> "AcceptanceCounter":
        return AcceptanceCounter(self.accepted, self.rejected)
