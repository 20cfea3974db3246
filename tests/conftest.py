"""Pytest configuration and fixtures for predictapi tests."""

import os
import sys
from datetime import timedelta
from pathlib import Path

import pytest

# Ensure project root is on path for `predictapi` imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# 모듈 import 시점에 생성되는 엔진/설정이 운영 DB 와 Redis 를 보지 않도록
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BROADCAST_ENABLED", "false")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from predictapi.config import Settings
from predictapi.models import Base
from predictapi.models.points import PointsReason
from predictapi.repositories.participant_repository import ParticipantRepository
from predictapi.repositories.points_repository import PointsRepository
from predictapi.repositories.user_repository import UserRepository
from predictapi.repositories.event_repository import EventRepository
from predictapi.utils.timezone_utils import utc_now


@pytest.fixture
def settings():
    """테스트용 설정 (재시도 대기 없음, 브로드캐스트 비활성)"""
    return Settings(
        DATABASE_URL="sqlite://",
        BROADCAST_ENABLED=False,
        SETTLEMENT_RETRY_BACKOFF_SECONDS=0,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """원장을 통해 초기 잔액을 가진 사용자를 만든다"""
    counter = {"n": 0}

    def _make_user(points: int = 1000, is_admin: bool = False, username: str = None):
        counter["n"] += 1
        name = username or f"user{counter['n']}"
        user = UserRepository(db).create_user(
            name, email=f"{name}@example.com", is_admin=is_admin
        )
        if points:
            PointsRepository(db).apply_points_change(
                user.id, points, PointsReason.ADMIN_ADJUSTMENT
            )
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_event(db):
    counter = {"n": 0}

    def _make_event(
        options=None,
        entry_fee: int = 100,
        starts_in: timedelta = timedelta(hours=-1),
        ends_in: timedelta = timedelta(hours=1),
        **overrides,
    ):
        counter["n"] += 1
        now = utc_now()
        fields = dict(
            title=overrides.pop("title", f"Event {counter['n']}"),
            options=options if options is not None else ["UP", "DOWN"],
            entry_fee=entry_fee,
            start_time=now + starts_in,
            end_time=now + ends_in,
        )
        fields.update(overrides)
        event = EventRepository(db).add(**fields)
        db.commit()
        return event

    return _make_event


@pytest.fixture
def stake(db):
    """참가 검증을 거치지 않고 임의 금액으로 참가 행을 만든다 (정산 시나리오용)"""

    def _stake(event, user, prediction: str, amount: int):
        participant = ParticipantRepository(db).create_participant(
            event_id=event.id, user_id=user.id, prediction=prediction, amount=amount
        )
        PointsRepository(db).apply_points_change(
            user.id, -amount, PointsReason.EVENT_ENTRY, event_id=event.id
        )
        EventRepository(db).recompute_stats(event)
        db.commit()
        return participant

    return _stake
