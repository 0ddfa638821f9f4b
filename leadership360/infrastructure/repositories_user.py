# leadership360/infrastructure/repositories_user.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import UserNotFoundError
from .logging import log_database_operation as log_op
from .models import UserORM
from .repositories_base import BaseRepository as GenericBaseRepository


class UserRepo(GenericBaseRepository[UserORM]):
    model = UserORM

    def __init__(self, session: Session):
        super().__init__(session)

    def _not_found(self, id_: Any) -> Exception:
        return UserNotFoundError(id_)

    # -------- Read --------

    @log_op("user.get")
    def get(self, id_: Any) -> UserORM | None:
        return super().get(id_)

    @log_op("user.get_required")
    def get_by_id_required(self, id_: Any) -> UserORM:
        return super().get_by_id_required(id_)

    @log_op("user.get_by_email")
    def get_by_email(self, email: str) -> UserORM | None:
        return self.s.query(UserORM).filter(UserORM.email == email.strip().lower()).one_or_none()

    @log_op("user.list_all")
    def list_all(self, order_by=None) -> builtins.list[UserORM]:
        return super().list(order_by=order_by or [UserORM.id])

    @log_op("user.list_by_role")
    def list_by_role(self, role: str) -> builtins.list[UserORM]:
        return super().list(UserORM.role == role, order_by=[UserORM.name, UserORM.id])

    # -------- Write --------

    @log_op("user.create")
    def create(
        self, email: str, name: str, role: str = "leader", project: str | None = None
    ) -> UserORM:
        try:
            return super().create(
                email=email.strip().lower(), name=name, role=role, project=project
            )
        except SQLAlchemyError as e:
            raise self._handle_error(e, "user.create") from e
