# leadership360/infrastructure/repositories_score.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.models import ScoreEntry
from ..domain.schemas import ScoreSubmissionInput
from .exceptions import InvalidScoreError, ValidationError
from .logging import log_database_operation as log_op
from .models import ScoreEntryORM, utcnow
from .repositories_base import BaseRepository as GenericBaseRepository

ROLE_COLUMNS = {
    "Self": ("leader_score", "leader_submitted_at"),
    "Manager": ("manager_score", "manager_submitted_at"),
}


def _validated_answer(question_id: int, score: int) -> ScoreSubmissionInput:
    try:
        return ScoreSubmissionInput(question_id=question_id, score=score)
    except PydanticValidationError as e:
        failed = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        if "score" in failed:
            raise InvalidScoreError(score) from None
        raise ValidationError("question_id", "Question ID must be positive", question_id) from None


class ScoreRepo(GenericBaseRepository[ScoreEntryORM]):
    """
    Stores one row per (leader, question).

    A self answer fills the leader columns and a manager answer fills the
    manager columns of the same row; answering again overwrites that side.
    """

    model = ScoreEntryORM

    def __init__(self, session: Session):
        super().__init__(session)

    def _row_for(self, leader_id: int, question_id: int) -> ScoreEntryORM:
        obj = (
            self.s.query(ScoreEntryORM)
            .filter_by(leader_id=leader_id, question_id=question_id)
            .one_or_none()
        )
        if obj is None:
            obj = ScoreEntryORM(leader_id=leader_id, question_id=question_id)
            self.s.add(obj)
        return obj

    @log_op("score.record_leader")
    def record_leader_score(
        self,
        leader_id: int,
        question_id: int,
        score: int,
        submitted_at: datetime | None = None,
    ) -> ScoreEntryORM:
        answer = _validated_answer(question_id, score)
        try:
            obj = self._row_for(leader_id, answer.question_id)
            obj.leader_score = answer.score
            obj.leader_submitted_at = submitted_at or utcnow()
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            raise self._handle_error(e, "score.record_leader") from e

    @log_op("score.record_manager")
    def record_manager_score(
        self,
        leader_id: int,
        manager_id: int,
        question_id: int,
        score: int,
        submitted_at: datetime | None = None,
    ) -> ScoreEntryORM:
        answer = _validated_answer(question_id, score)
        try:
            obj = self._row_for(leader_id, answer.question_id)
            obj.manager_id = manager_id
            obj.manager_score = answer.score
            obj.manager_submitted_at = submitted_at or utcnow()
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            raise self._handle_error(e, "score.record_manager") from e

    @log_op("score.list_for_leader")
    def list_for_leader(self, leader_id: int) -> builtins.list[ScoreEntryORM]:
        if leader_id <= 0:
            raise ValidationError("leader_id", "Leader ID must be positive", leader_id)
        return super().list(
            ScoreEntryORM.leader_id == leader_id,
            order_by=[ScoreEntryORM.question_id, ScoreEntryORM.id],
        )

    @log_op("score.entries_for_leader")
    def entries_for_leader(self, leader_id: int) -> builtins.list[ScoreEntry]:
        """Stored rows for a leader as engine records, ordered by question id."""
        return [
            ScoreEntry(
                question_id=row.question_id,
                leader_score=row.leader_score,
                manager_score=row.manager_score,
                entry_id=row.id,
                leader_submitted_at=row.leader_submitted_at,
                manager_submitted_at=row.manager_submitted_at,
            )
            for row in self.list_for_leader(leader_id)
        ]

    @log_op("score.clear")
    def clear_scores(self, leader_id: int, entry_ids: Iterable[int], role: str) -> int:
        """
        Remove one side's answers from the given rows of a leader.

        Rows left without any answer are deleted. Returns the number of rows
        whose answer was cleared.
        """
        if role not in ROLE_COLUMNS:
            raise ValidationError("session_type", "Must be 'Self' or 'Manager'", role)
        score_column, submitted_column = ROLE_COLUMNS[role]
        ids = list(entry_ids)
        if not ids:
            return 0

        try:
            rows = super().list(
                ScoreEntryORM.leader_id == leader_id,
                ScoreEntryORM.id.in_(ids),
            )
            cleared = 0
            for row in rows:
                if getattr(row, score_column) is None:
                    continue
                setattr(row, score_column, None)
                setattr(row, submitted_column, None)
                if role == "Manager":
                    row.manager_id = None
                cleared += 1
                if row.leader_score is None and row.manager_score is None:
                    self.s.delete(row)
            self.s.flush()
            return cleared
        except SQLAlchemyError as e:
            raise self._handle_error(e, "score.clear") from e
