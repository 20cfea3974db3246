import asyncio
from decimal import Decimal
from unittest.mock import patch

import pytest

from predictapi.core.exceptions import (
    AlreadyResolvedError,
    BusinessLogicError,
    ConflictError,
    EventNotFoundError,
    NoBetsError,
)
from predictapi.models.event import (
    AuditLog,
    Event,
    EventOutcome,
    EventStatusEnum,
    OutcomeResultEnum,
    PlatformFee,
    ResolutionStatusEnum,
)
from predictapi.models.points import PointsHistory, PointsReason
from predictapi.models.user import User
from predictapi.services.settlement_service import SettlementService


class FakeBroadcaster:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def publish_resolution(self, event_id, correct_answer, final_price, status):
        if self.fail:
            raise RuntimeError("redis down")
        self.messages.append(
            {
                "event_id": event_id,
                "correct_answer": correct_answer,
                "final_price": final_price,
                "status": status,
            }
        )
        return True


def _balance(db, user_id):
    return db.query(User.points).filter(User.id == user_id).scalar()


def _count(db, model):
    return db.query(model).count()


@pytest.fixture
def scenario_one(db, make_user, make_event, stake):
    """winning pool 600 (100/200/300) + losing pool 400"""
    event = make_event(options=["UP", "DOWN"])
    users = [make_user(points=1000) for _ in range(4)]
    for user, (prediction, amount) in zip(
        users, [("UP", 100), ("UP", 200), ("UP", 300), ("DOWN", 400)]
    ):
        stake(event, user, prediction, amount)
    return event, users


def test_settle_event_pays_winners_proportionally(db, settings, scenario_one):
    event, users = scenario_one
    service = SettlementService(db, settings=settings)

    result = service.settle_event(event.id, "UP", final_price=Decimal("101.5"))

    assert result.total_pool == 1000
    assert result.winning_pool == 600
    assert result.platform_fee == 50
    assert result.total_winners == 3
    assert result.total_losers == 1
    assert result.distributed == 949
    assert result.residue == 1

    assert _balance(db, users[0].id) == 1000 - 100 + 158
    assert _balance(db, users[1].id) == 1000 - 200 + 316
    assert _balance(db, users[2].id) == 1000 - 300 + 475
    assert _balance(db, users[3].id) == 1000 - 400

    db.expire_all()
    stored = db.get(Event, event.id)
    assert stored.resolution_status == ResolutionStatusEnum.RESOLVED
    assert stored.status == EventStatusEnum.RESOLVED
    assert stored.correct_answer == "UP"
    assert stored.final_price == Decimal("101.5")
    assert stored.platform_fee == 50


def test_settle_event_records_outcomes_fees_and_audit(db, settings, scenario_one):
    event, users = scenario_one
    SettlementService(db, settings=settings).settle_event(
        event.id, "UP", resolved_by="admin:1"
    )

    outcomes = db.query(EventOutcome).all()
    assert len(outcomes) == 4
    assert sorted(o.points_awarded for o in outcomes if o.result == OutcomeResultEnum.WIN) == [158, 316, 475]
    assert [o.points_awarded for o in outcomes if o.result == OutcomeResultEnum.LOSS] == [0]

    # 명목 수수료: floor(100*.05)+floor(200*.05)+floor(300*.05)
    fees = db.query(PlatformFee).all()
    assert sorted(f.fee_amount for f in fees) == [5, 10, 15]

    win_entries = (
        db.query(PointsHistory).filter(PointsHistory.reason == PointsReason.EVENT_WIN).all()
    )
    assert len(win_entries) == 3
    assert all(entry.event_id == event.id for entry in win_entries)

    audit = db.query(AuditLog).filter(AuditLog.event_id == event.id).one()
    assert audit.action == "event_resolution"
    assert audit.details["total_participants"] == 4
    assert audit.details["total_winners"] == 3
    assert audit.details["total_pool"] == 1000
    assert audit.details["platform_fee"] == 50
    assert audit.details["distributed"] == 949
    assert audit.details["resolved_by"] == "admin:1"


def test_single_winner_gets_entire_net_pool(db, settings, make_user, make_event, stake):
    event = make_event(options=["YES", "NO"], entry_fee=1000)
    winner = make_user(points=1000)
    loser = make_user(points=1000)
    stake(event, winner, "YES", 1000)
    stake(event, loser, "NO", 1000)

    result = SettlementService(db, settings=settings).settle_event(event.id, "YES")

    assert result.platform_fee == 100
    assert result.payouts[0].payout == 1900
    assert _balance(db, winner.id) == 1900
    assert _balance(db, loser.id) == 0


def test_second_settlement_is_rejected_without_side_effects(db, settings, scenario_one):
    event, _ = scenario_one
    service = SettlementService(db, settings=settings)
    service.settle_event(event.id, "UP")

    ledger_before = _count(db, PointsHistory)
    outcomes_before = _count(db, EventOutcome)
    fees_before = _count(db, PlatformFee)

    with pytest.raises(AlreadyResolvedError) as exc_info:
        service.settle_event(event.id, "DOWN")

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == "SETTLE_001"
    assert _count(db, PointsHistory) == ledger_before
    assert _count(db, EventOutcome) == outcomes_before
    assert _count(db, PlatformFee) == fees_before
    assert db.get(Event, event.id).correct_answer == "UP"


def test_no_winners_records_losses_and_keeps_fee(db, settings, make_user, make_event, stake):
    event = make_event(options=["A", "B", "C"])
    a = make_user(points=500)
    b = make_user(points=500)
    stake(event, a, "A", 100)
    stake(event, b, "B", 200)

    result = SettlementService(db, settings=settings).settle_event(event.id, "C")

    assert result.total_winners == 0
    assert result.platform_fee == 15
    assert result.distributed == 0
    assert result.residue == 285
    assert _balance(db, a.id) == 400
    assert _balance(db, b.id) == 300

    outcomes = db.query(EventOutcome).all()
    assert len(outcomes) == 2
    assert all(o.result == OutcomeResultEnum.LOSS and o.points_awarded == 0 for o in outcomes)
    assert _count(db, PlatformFee) == 0
    assert db.get(Event, event.id).platform_fee == 15


def test_no_bets_raises(db, settings, make_event):
    event = make_event()

    with pytest.raises(NoBetsError):
        SettlementService(db, settings=settings).settle_event(event.id, "UP")

    db.expire_all()
    assert db.get(Event, event.id).resolution_status == ResolutionStatusEnum.PENDING


def test_unknown_event_raises(db, settings):
    with pytest.raises(EventNotFoundError):
        SettlementService(db, settings=settings).settle_event(999, "UP")


def test_outcome_must_be_an_option(db, settings, scenario_one):
    event, _ = scenario_one

    with pytest.raises(BusinessLogicError) as exc_info:
        SettlementService(db, settings=settings).settle_event(event.id, "SIDEWAYS")

    assert exc_info.value.error_code == "SETTLE_003"
    assert _count(db, EventOutcome) == 0


def test_failure_mid_payout_rolls_back_everything(db, settings, scenario_one):
    event, users = scenario_one
    balances_before = {u.id: _balance(db, u.id) for u in users}
    ledger_before = _count(db, PointsHistory)

    service = SettlementService(db, settings=settings)
    original = service.points_repo.apply_points_change
    calls = {"n": 0}

    def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("write failed")
        return original(*args, **kwargs)

    with patch.object(service.points_repo, "apply_points_change", side_effect=flaky):
        with pytest.raises(RuntimeError):
            service.settle_event(event.id, "UP")

    db.expire_all()
    assert {u.id: _balance(db, u.id) for u in users} == balances_before
    assert _count(db, PointsHistory) == ledger_before
    assert _count(db, EventOutcome) == 0
    assert _count(db, PlatformFee) == 0
    assert _count(db, AuditLog) == 0
    stored = db.get(Event, event.id)
    assert stored.resolution_status == ResolutionStatusEnum.PENDING
    assert stored.platform_fee == 0

    # 재시도는 정상적으로 완료된다
    result = service.settle_event(event.id, "UP")
    assert result.distributed == 949


def test_resolve_event_broadcasts_after_commit(db, settings, scenario_one):
    event, _ = scenario_one
    broadcaster = FakeBroadcaster()
    service = SettlementService(db, settings=settings, broadcaster=broadcaster)

    asyncio.run(service.resolve_event(event.id, "DOWN", final_price=Decimal("99")))

    assert broadcaster.messages == [
        {
            "event_id": event.id,
            "correct_answer": "DOWN",
            "final_price": Decimal("99"),
            "status": "resolved",
        }
    ]


def test_broadcast_failure_does_not_undo_settlement(db, settings, scenario_one):
    event, users = scenario_one
    service = SettlementService(db, settings=settings, broadcaster=FakeBroadcaster(fail=True))

    result = asyncio.run(service.resolve_event(event.id, "UP"))

    assert result.total_winners == 3
    db.expire_all()
    assert db.get(Event, event.id).resolution_status == ResolutionStatusEnum.RESOLVED
    assert _balance(db, users[0].id) == 1058


def test_close_without_bets_marks_event_resolved(db, settings, make_event):
    event = make_event()
    service = SettlementService(db, settings=settings)

    result = service.close_without_bets(event.id, "UP", resolved_by="scheduler")

    assert result.total_participants == 0
    assert result.correct_answer == "UP"
    stored = db.get(Event, event.id)
    assert stored.resolution_status == ResolutionStatusEnum.RESOLVED
    assert stored.correct_answer == "UP"
    audit = db.query(AuditLog).one()
    assert audit.action == "event_resolution_no_bets"
    assert _count(db, PointsHistory) == 0

    with pytest.raises(AlreadyResolvedError):
        service.close_without_bets(event.id, "UP")


def test_close_without_bets_refuses_events_with_participants(db, settings, scenario_one):
    event, _ = scenario_one

    with pytest.raises(ConflictError) as exc_info:
        SettlementService(db, settings=settings).close_without_bets(event.id, "UP")

    assert exc_info.value.error_code == "SETTLE_004"
    assert exc_info.value.status_code == 409
