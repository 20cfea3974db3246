from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from predictapi.database.connection import SessionLocal


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context(
    session_factory: Optional[Callable[[], Session]] = None,
) -> Iterator[Session]:
    """컨텍스트 매니저를 사용한 데이터베이스 세션 관리

    스케줄러/스크립트처럼 요청 범위 밖에서 세션이 필요할 때 사용한다.
    서비스가 직접 commit 하므로 여기서는 남은 트랜잭션만 정리한다.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        if db.in_transaction():
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
