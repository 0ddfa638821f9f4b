from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class UserORM(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), default="leader", nullable=False)
    project: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'leader', 'manager')", name="ck_user_role"),
    )

    scores: Mapped[list[ScoreEntryORM]] = relationship(
        back_populates="leader",
        cascade="all, delete",
        foreign_keys="ScoreEntryORM.leader_id",
    )


class ScoreEntryORM(Base):
    """One row per (leader, question) holding both the self and manager rating."""

    __tablename__ = "score_entries"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    leader_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    question_id: Mapped[int] = mapped_column(Integer, nullable=False)
    leader_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    manager_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    leader_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    manager_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("leader_id", "question_id", name="uq_score_leader_question"),
        CheckConstraint(
            "(leader_score IS NULL OR (leader_score BETWEEN 1 AND 5)) "
            "AND (manager_score IS NULL OR (manager_score BETWEEN 1 AND 5))",
            name="ck_score_range",
        ),
    )

    leader: Mapped[UserORM] = relationship(back_populates="scores", foreign_keys=[leader_id])
    manager: Mapped[UserORM | None] = relationship(foreign_keys=[manager_id])


class AssessmentRequestORM(Base):
    __tablename__ = "assessment_requests"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    leader_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed')", name="ck_request_status"),
    )

    leader: Mapped[UserORM] = relationship(foreign_keys=[leader_id])
    manager: Mapped[UserORM | None] = relationship(foreign_keys=[manager_id])
