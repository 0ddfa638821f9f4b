from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from .logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    One SQLAlchemy session per block of work.

    Example:
        >>> uow = UnitOfWork(SessionLocal)
        >>> with uow.begin() as s:
        ...     submit_self_assessment(s, leader_id, {1: 4, 2: 5})
    """

    def __init__(self, SessionLocal: sessionmaker):
        self.SessionLocal = SessionLocal

    @contextmanager
    def begin(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            logger.debug("Rolling back unit of work")
            s.rollback()
            raise
        finally:
            s.close()
