"""
Payout Calculator

Parimutuel pool split with a platform cut. Pure functions, no DB access.

Formulas (integer points, floor everywhere):
- platform_fee = floor(total_pool * fee_rate)
- net_pool     = total_pool - platform_fee
- payout(bet)  = floor(bet.amount * net_pool / winning_pool)   (winners only)
- nominal_fee  = floor(bet.amount * fee_rate)                  (per winning stake, informational)
- winning_pool == 0: no payouts, net_pool stays undistributed

Rounding remainders are never redistributed, so sum(payouts) <= net_pool.
"""

from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, Protocol

from predictapi.schemas.settlement import PayoutLine, PoolBreakdown


class Stake(Protocol):
    id: int
    user_id: int
    prediction: str
    amount: int


def _rate(fee_rate: float) -> Decimal:
    # str() 경유로 0.05 같은 값을 이진 부동소수 오차 없이 다룬다
    return Decimal(str(fee_rate))


def floor_fee(amount: int, fee_rate: float) -> int:
    return int((Decimal(amount) * _rate(fee_rate)).to_integral_value(rounding=ROUND_FLOOR))


def proportional_share(amount: int, winning_pool: int, net_pool: int) -> int:
    """floor((amount / winning_pool) * net_pool) 를 정수 연산으로 계산"""
    if winning_pool <= 0:
        return 0
    return (amount * net_pool) // winning_pool


def calculate_pool(
    stakes: Iterable[Stake], winning_outcome: str, fee_rate: float
) -> PoolBreakdown:
    stakes = list(stakes)
    total_pool = sum(int(s.amount) for s in stakes)
    winners = [s for s in stakes if s.prediction == winning_outcome]
    winning_pool = sum(int(s.amount) for s in winners)

    platform_fee = floor_fee(total_pool, fee_rate)
    net_pool = total_pool - platform_fee

    payouts = [
        PayoutLine(
            participant_id=s.id,
            user_id=s.user_id,
            amount=int(s.amount),
            payout=proportional_share(int(s.amount), winning_pool, net_pool),
            nominal_fee=floor_fee(int(s.amount), fee_rate),
        )
        for s in winners
    ]

    return PoolBreakdown(
        total_pool=total_pool,
        winning_pool=winning_pool,
        platform_fee=platform_fee,
        net_pool=net_pool,
        payouts=payouts,
    )
