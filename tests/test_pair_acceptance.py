# -*- coding: utf-8 -*-
"""
相邻对交换统计（PairAcceptance）测试
"""

import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from coin_dos.simulation.pair_acceptance import PairAcceptance, pair_key


def test_pair_key_normalised():
    assert pair_key(3, 1) == (1, 3)
    assert pair_key(1, 3) == (1, 3)


def test_update_pairs_prunes_and_extends():
    pa = PairAcceptance()
    pa.update_pairs([4, 0, 7])
    assert pa.keys() == [(0, 4), (0, 7)]

    pa.count_acceptance(4, 0)
    pa.count_rejected(0, 4)
    pa.count_rejected(7, 0)

    # 7 被移除，5 接在链尾
    pa.update_pairs([4, 0, 5])
    assert pa.keys() == [(0, 4), (0, 5)]
    c = pa.get_pair_acceptance(0, 4)
    assert (c.accepted, c.rejected) == (1, 1)
    assert pa.get_pair_acceptance(0, 5).total == 0
    assert pa.get_pair_acceptance(0, 7) is None


def test_untracked_pair_raises():
    pa = PairAcceptance()
    pa.update_pairs([1, 2])
    with pytest.raises(KeyError):
        pa.count_acceptance(1, 3)
    with pytest.raises(KeyError):
        pa.count_rejected(2, 9)


def test_returned_counter_is_a_copy():
    pa = PairAcceptance()
    pa.update_pairs([0, 1])
    pa.count_acceptance(0, 1)
    c = pa.get_pair_acceptance(1, 0)
    c.count_acceptance()
    assert pa.get_pair_acceptance(0, 1).accepted == 1


def test_reset_counts_and_rounds():
    pa = PairAcceptance()
    pa.update_pairs([0, 1, 2])
    pa.count_acceptance(0, 1)
    pa.count_exchange_try()
    pa.count_exchange_try()
    assert pa.exchange_rounds == 2
    pa.reset_counts()
    assert pa.exchange_rounds == 0
    assert all(pa.get_pair_acceptance(*k).total == 0 for k in pa.keys())
    assert len(pa) == 2
    pa.update_pairs([])
    assert len(pa) == 0
