# leadership360/infrastructure/repositories_request.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import RequestNotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentRequestORM, utcnow
from .repositories_base import BaseRepository as GenericBaseRepository


class RequestRepo(GenericBaseRepository[AssessmentRequestORM]):
    """Requests from leaders asking a manager to assess them."""

    model = AssessmentRequestORM

    def __init__(self, session: Session):
        super().__init__(session)

    def _not_found(self, id_: Any) -> Exception:
        return RequestNotFoundError(id_)

    @log_op("request.get_required")
    def get_by_id_required(self, id_: Any) -> AssessmentRequestORM:
        return super().get_by_id_required(id_)

    @log_op("request.create")
    def create(self, leader_id: int, manager_id: int | None = None) -> AssessmentRequestORM:
        try:
            return super().create(leader_id=leader_id, manager_id=manager_id, status="pending")
        except SQLAlchemyError as e:
            raise self._handle_error(e, "request.create") from e

    @log_op("request.list_pending")
    def list_pending(self) -> builtins.list[AssessmentRequestORM]:
        return super().list(
            AssessmentRequestORM.status == "pending",
            order_by=[AssessmentRequestORM.created_at, AssessmentRequestORM.id],
        )

    @log_op("request.list_pending_for_leader")
    def list_pending_for_leader(self, leader_id: int) -> builtins.list[AssessmentRequestORM]:
        return super().list(
            AssessmentRequestORM.status == "pending",
            AssessmentRequestORM.leader_id == leader_id,
            order_by=[AssessmentRequestORM.created_at, AssessmentRequestORM.id],
        )

    @log_op("request.mark_completed")
    def mark_completed(self, request_id: int) -> AssessmentRequestORM:
        request = self.get_by_id_required(request_id)
        if request.status == "completed":
            return request
        return super().update(request, status="completed", completed_at=utcnow())

    @log_op("request.complete_for_leader")
    def complete_for_leader(self, leader_id: int, manager_id: int | None = None) -> int:
        """
        Complete a leader's pending requests answered by `manager_id`.

        Requests addressed to another manager stay pending; open requests with
        no manager are assigned to the one who answered.
        """
        pending = [
            request
            for request in self.list_pending_for_leader(leader_id)
            if request.manager_id is None or request.manager_id == manager_id
        ]
        now = utcnow()
        for request in pending:
            request.status = "completed"
            request.completed_at = now
            if request.manager_id is None and manager_id is not None:
                request.manager_id = manager_id
        self.s.flush()
        return len(pending)
