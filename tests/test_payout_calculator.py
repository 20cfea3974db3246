from types import SimpleNamespace

import pytest

from predictapi.services.payout_calculator import (
    calculate_pool,
    floor_fee,
    proportional_share,
)


def _stake(id, prediction, amount, user_id=None):
    return SimpleNamespace(
        id=id, user_id=user_id or id, prediction=prediction, amount=amount
    )


def test_three_winners_share_net_pool_with_floor():
    stakes = [
        _stake(1, "UP", 100),
        _stake(2, "UP", 200),
        _stake(3, "UP", 300),
        _stake(4, "DOWN", 400),
    ]

    breakdown = calculate_pool(stakes, "UP", 0.05)

    assert breakdown.total_pool == 1000
    assert breakdown.winning_pool == 600
    assert breakdown.platform_fee == 50
    assert breakdown.net_pool == 950
    assert [line.payout for line in breakdown.payouts] == [158, 316, 475]
    assert breakdown.distributed == 949
    assert breakdown.residue == 1


def test_single_winner_takes_whole_net_pool():
    stakes = [_stake(1, "YES", 1000), _stake(2, "NO", 1000)]

    breakdown = calculate_pool(stakes, "YES", 0.05)

    assert breakdown.platform_fee == 100
    assert breakdown.net_pool == 1900
    assert len(breakdown.payouts) == 1
    assert breakdown.payouts[0].payout == 1900
    assert breakdown.residue == 0


def test_no_winners_leaves_net_pool_undistributed():
    stakes = [_stake(1, "A", 100), _stake(2, "B", 200)]

    breakdown = calculate_pool(stakes, "C", 0.05)

    assert breakdown.winning_pool == 0
    assert breakdown.platform_fee == 15
    assert breakdown.payouts == []
    assert breakdown.distributed == 0
    assert breakdown.residue == breakdown.net_pool == 285


def test_nominal_fee_is_per_stake_and_need_not_match_pool_fee():
    # 3 x 110 = 330 -> pool fee floor(16.5)=16, per-stake floor(5.5)=5 each (15)
    stakes = [_stake(i, "UP", 110) for i in range(1, 4)]

    breakdown = calculate_pool(stakes, "UP", 0.05)

    assert breakdown.platform_fee == 16
    assert sum(line.nominal_fee for line in breakdown.payouts) == 15


@pytest.mark.parametrize(
    "amount, expected",
    [(0, 0), (19, 0), (20, 1), (999, 49), (1000, 50), (1010, 50)],
)
def test_floor_fee_truncates(amount, expected):
    assert floor_fee(amount, 0.05) == expected


def test_proportional_share_uses_floor_not_rounding():
    # 2/3 * 100 = 66.67 -> 66
    assert proportional_share(200, 300, 100) == 66
    assert proportional_share(100, 0, 100) == 0


def test_payouts_never_exceed_net_pool():
    amounts = [100, 200, 500, 1000, 100, 200, 500]
    stakes = [_stake(i, "W" if i % 2 else "L", a) for i, a in enumerate(amounts, 1)]

    breakdown = calculate_pool(stakes, "W", 0.05)

    assert breakdown.distributed <= breakdown.net_pool
    assert breakdown.platform_fee + breakdown.distributed + breakdown.residue == breakdown.total_pool
