import sys
import os
from datetime import timedelta

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from predictapi.config import settings
from predictapi.database.connection import SessionLocal
from predictapi.repositories.user_repository import UserRepository
from predictapi.schemas.event import EventCreate
from predictapi.services.event_service import EventService
from predictapi.services.point_service import PointService
from predictapi.utils.timezone_utils import utc_now


def seed_users():
    """관리자 1명 + 데모 사용자 생성, 가입 보너스 지급"""
    db = SessionLocal()
    try:
        user_repo = UserRepository(db)
        point_service = PointService(db, settings=settings)

        seeds = [
            ("admin", "admin@example.com", True),
            ("alice", "alice@example.com", False),
            ("bob", "bob@example.com", False),
        ]
        for username, email, is_admin in seeds:
            if user_repo.get_by_username(username):
                print(f"  ℹ️  {username}: already exists")
                continue
            user = user_repo.create_user(username, email=email, is_admin=is_admin)
            db.commit()
            point_service.grant_registration_bonus(user.id)
            print(f"  ✅ {username}: created with {settings.REGISTRATION_BONUS_POINTS} points")

    except Exception as e:
        db.rollback()
        print(f"❌ 사용자 시드 데이터 생성 실패: {str(e)}")
        raise
    finally:
        db.close()


def seed_events():
    """샘플 이벤트 생성"""
    db = SessionLocal()
    try:
        event_service = EventService(db, settings=settings)
        now = utc_now()
        samples = [
            EventCreate(
                title="BTC above 100k by Friday close?",
                options=["Yes", "No"],
                entry_fee=100,
                start_time=now,
                end_time=now + timedelta(days=3),
            ),
            EventCreate(
                title="Final score bucket",
                options=[
                    {"label": "0-1 goals", "value": "low"},
                    {"label": "2-3 goals", "value": "mid"},
                    {"label": "4+ goals", "value": "high"},
                ],
                entry_fee=200,
                start_time=now,
                end_time=now + timedelta(hours=12),
            ),
        ]
        for payload in samples:
            if event_service.event_repo.title_exists(payload.title):
                print(f"  ℹ️  '{payload.title}': already exists")
                continue
            event = event_service.create_event(payload)
            print(f"  ✅ event {event.id}: '{event.title}' {event.options}")

    finally:
        db.close()


def main():
    """시드 데이터 실행"""
    print("🌱 시드 데이터 생성을 시작합니다...")
    print()

    print("👤 사용자 시드 중...")
    seed_users()
    print()

    print("🎯 이벤트 시드 중...")
    seed_events()
    print()

    print("🎉 모든 시드 데이터 생성이 완료되었습니다!")


if __name__ == "__main__":
    main()
