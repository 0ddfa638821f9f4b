"""
Application API layer with error handling and validation.

Each use case validates its input, records logging context, talks to the
repositories and the scoring engine, and converts unexpected failures into
``LeadershipAssessmentError`` subclasses with user-friendly messages.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, NoReturn

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..domain.catalog import QuestionCatalog, get_catalog, themes_for_catalog, validate_themes
from ..domain.levels import DEFAULT_LEVELS, LevelTable, explain_result
from ..domain.models import (
    AssessmentResult,
    AssessmentSessionSummary,
    CalculationBreakdown,
    LeadershipTheme,
    LevelBand,
    ThemeScore,
)
from ..domain.schemas import (
    AssessmentRequestInput,
    AssessmentSubmissionInput,
    ExportFormat,
    ScoreSubmissionInput,
    SessionDeletionInput,
    UserCreationInput,
    validate_input,
)
from ..domain.services import ScoringService
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    DataImportError,
    ExportError,
    LeadershipAssessmentError,
    MultipleValidationError,
    ValidationError,
    create_user_friendly_error_message,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.models import AssessmentRequestORM, ScoreEntryORM, UserORM
from ..infrastructure.repositories import RequestRepo, ScoreRepo, UserRepo
from ..utils.exports import make_json_export_payload, make_xlsx_export_bytes

logger = get_logger(__name__)

IMPORT_COLUMNS = [
    "LeaderEmail",
    "LeaderName",
    "ManagerEmail",
    "ManagerName",
    "QuestionID",
    "LeaderScore",
    "ManagerScore",
]


def _active_catalog(catalog: QuestionCatalog | None = None) -> QuestionCatalog:
    if catalog is not None:
        return catalog
    return get_catalog(get_settings().assessment.catalog_version)


def _raise_api_error(
    e: Exception, message: str, context: dict[str, Any], user_message: str | None = None
) -> NoReturn:
    """Log a failed use case and re-raise it inside the application taxonomy."""
    error_details = log_error_details(e, context)
    logger.error(message, extra=error_details)

    if isinstance(e, LeadershipAssessmentError):
        raise e

    raise LeadershipAssessmentError(
        f"{message}: {str(e)}",
        details=error_details,
        user_message=user_message or create_user_friendly_error_message(e),
    ) from e


def _check_validation(result, field: str) -> dict[str, Any]:
    if not result.success:
        error_msg = "; ".join([f"{e.field}: {e.message}" for e in result.errors])
        logger.warning(f"Validation failed for {field}: {error_msg}")
        raise ValidationError(field, error_msg)
    if result.data is None:
        raise RuntimeError("Validation succeeded but returned no data")
    return result.data


def _validate_responses(
    responses: Mapping[Any, Any], catalog: QuestionCatalog
) -> dict[int, int]:
    """Check every answer against the catalog and the 1-5 scale, reporting all problems."""
    errors: list[ValidationError] = []
    validated: dict[int, int] = {}
    for raw_id, raw_score in responses.items():
        field = f"question_{raw_id}"
        try:
            answer = ScoreSubmissionInput(question_id=raw_id, score=raw_score)
        except PydanticValidationError as exc:
            messages = "; ".join(err["msg"] for err in exc.errors())
            errors.append(ValidationError(field, messages, raw_score))
            continue
        if not catalog.contains(answer.question_id):
            errors.append(
                ValidationError(field, "Question is not part of the assessment", raw_id)
            )
            continue
        validated[answer.question_id] = answer.score

    if errors:
        raise MultipleValidationError(errors)
    return validated


# ----------------------------- Users ---------------------------------------


@log_operation("create_user")
def create_user(
    session: Session,
    email: str,
    name: str,
    role: str = "leader",
    project: str | None = None,
) -> UserORM:
    """
    Register a leader, manager or admin.

    Raises:
        ValidationError: If input is invalid or the email is already registered

    Example:
        >>> leader = create_user(session, "ada@example.com", "Ada", "leader", "Apollo")
    """
    data = _check_validation(
        validate_input(
            UserCreationInput, {"email": email, "name": name, "role": role, "project": project}
        ),
        "user_data",
    )

    try:
        repo = UserRepo(session)
        if repo.get_by_email(data["email"]) is not None:
            raise ValidationError("email", "Email address is already registered", data["email"])
        user = repo.create(
            email=data["email"], name=data["name"], role=data["role"], project=data["project"]
        )
        logger.info(f"Created {user.role} user with ID {user.id}")
        return user
    except Exception as e:
        _raise_api_error(e, "Failed to create user", {"email": email, "role": role})


@log_operation("get_user")
def get_user(session: Session, user_id: int) -> UserORM:
    try:
        return UserRepo(session).get_by_id_required(user_id)
    except Exception as e:
        _raise_api_error(e, "Failed to load user", {"user_id": user_id})


@log_operation("list_users")
def list_users(session: Session, role: str | None = None) -> list[UserORM]:
    try:
        repo = UserRepo(session)
        return repo.list_by_role(role) if role else repo.list_all()
    except Exception as e:
        _raise_api_error(e, "Failed to list users", {"role": role})


# ----------------------------- Submissions ---------------------------------


@log_operation("submit_self_assessment")
def submit_self_assessment(
    session: Session,
    leader_id: int,
    responses: Mapping[int, int],
    catalog: QuestionCatalog | None = None,
    submitted_at: datetime | None = None,
) -> list[ScoreEntryORM]:
    """
    Record a leader's answers about themselves.

    Every question id must belong to the active catalog and every score must
    be an integer from 1 to 5; all problems are reported together.

    Raises:
        ValidationError: If the submission itself is malformed
        MultipleValidationError: If any answer is invalid
        UserNotFoundError: If the leader does not exist

    Example:
        >>> submit_self_assessment(session, leader.id, {1: 4, 2: 5, 3: 3})
    """
    _check_validation(
        validate_input(
            AssessmentSubmissionInput,
            {"leader_id": leader_id, "role": "Self", "responses": dict(responses or {})},
        ),
        "submission",
    )
    active = _active_catalog(catalog)
    answers = _validate_responses(responses, active)

    try:
        set_context(leader_id=leader_id)
        UserRepo(session).get_by_id_required(leader_id)

        repo = ScoreRepo(session)
        rows = [
            repo.record_leader_score(leader_id, question_id, score, submitted_at=submitted_at)
            for question_id, score in answers.items()
        ]
        logger.info(f"Recorded {len(rows)} self-assessment answers for leader {leader_id}")
        return rows
    except Exception as e:
        _raise_api_error(
            e,
            "Failed to submit self assessment",
            {"leader_id": leader_id, "answers": len(answers)},
            user_message="Unable to save your assessment. Please try again.",
        )


@log_operation("submit_manager_assessment")
def submit_manager_assessment(
    session: Session,
    leader_id: int,
    manager_id: int,
    responses: Mapping[int, int],
    catalog: QuestionCatalog | None = None,
    submitted_at: datetime | None = None,
) -> list[ScoreEntryORM]:
    """
    Record a manager's answers about a leader and close the leader's open requests.

    Example:
        >>> submit_manager_assessment(session, leader.id, manager.id, {1: 3, 2: 4})
    """
    _check_validation(
        validate_input(
            AssessmentSubmissionInput,
            {
                "leader_id": leader_id,
                "manager_id": manager_id,
                "role": "Manager",
                "responses": dict(responses or {}),
            },
        ),
        "submission",
    )
    active = _active_catalog(catalog)
    answers = _validate_responses(responses, active)

    try:
        set_context(leader_id=leader_id, manager_id=manager_id)
        users = UserRepo(session)
        users.get_by_id_required(leader_id)
        users.get_by_id_required(manager_id)

        repo = ScoreRepo(session)
        rows = [
            repo.record_manager_score(
                leader_id, manager_id, question_id, score, submitted_at=submitted_at
            )
            for question_id, score in answers.items()
        ]
        completed = RequestRepo(session).complete_for_leader(leader_id, manager_id)
        logger.info(
            f"Recorded {len(rows)} manager answers for leader {leader_id}; "
            f"completed {completed} pending requests"
        )
        return rows
    except Exception as e:
        _raise_api_error(
            e,
            "Failed to submit manager assessment",
            {"leader_id": leader_id, "manager_id": manager_id, "answers": len(answers)},
            user_message="Unable to save the manager assessment. Please try again.",
        )


# ----------------------------- Results -------------------------------------


@log_operation("get_assessment_result")
def get_assessment_result(
    session: Session,
    leader_id: int,
    catalog: QuestionCatalog | None = None,
    bands: LevelTable | Sequence[LevelBand] | None = None,
    top_n: int | None = None,
) -> AssessmentResult:
    """
    Aggregate everything stored for a leader.

    A leader without answers gets a zeroed result at the lowest level.

    Example:
        >>> result = get_assessment_result(session, leader.id)
        >>> result.level.label
        'Production (Results)'
    """
    try:
        set_context(leader_id=leader_id)
        UserRepo(session).get_by_id_required(leader_id)
        return ScoringService(session).compute_result(
            leader_id,
            _active_catalog(catalog),
            bands if bands is not None else DEFAULT_LEVELS,
            top_n if top_n is not None else get_settings().assessment.top_n,
        )
    except Exception as e:
        _raise_api_error(
            e,
            "Failed to compute assessment result",
            {"leader_id": leader_id},
            user_message="Failed to load assessment data. Please try again.",
        )


@log_operation("get_calculation_breakdown")
def get_calculation_breakdown(
    session: Session,
    leader_id: int,
    catalog: QuestionCatalog | None = None,
    bands: LevelTable | Sequence[LevelBand] | None = None,
) -> CalculationBreakdown:
    """Explain how a leader's combined score, percentage and level were derived."""
    table = bands if bands is not None else DEFAULT_LEVELS
    result = get_assessment_result(session, leader_id, catalog=catalog, bands=table)
    return explain_result(result, table)


@log_operation("get_theme_breakdown")
def get_theme_breakdown(
    session: Session,
    leader_id: int,
    themes: Sequence[LeadershipTheme] | None = None,
    catalog: QuestionCatalog | None = None,
) -> tuple[ThemeScore, ...]:
    """
    Leader and manager averages per leadership theme.

    Without explicit ``themes`` the default themes are fitted to the active catalog.
    """
    try:
        set_context(leader_id=leader_id)
        active = _active_catalog(catalog)
        selected = themes_for_catalog(active) if themes is None else validate_themes(themes, active)
        UserRepo(session).get_by_id_required(leader_id)
        return ScoringService(session).compute_themes(leader_id, selected)
    except Exception as e:
        _raise_api_error(e, "Failed to compute theme breakdown", {"leader_id": leader_id})


# ----------------------------- Requests ------------------------------------


@log_operation("request_manager_assessment")
def request_manager_assessment(
    session: Session, leader_id: int, manager_id: int | None = None
) -> AssessmentRequestORM:
    """Open a request asking a manager (or any manager) to assess a leader."""
    _check_validation(
        validate_input(
            AssessmentRequestInput, {"leader_id": leader_id, "manager_id": manager_id}
        ),
        "assessment_request",
    )

    try:
        set_context(leader_id=leader_id, manager_id=manager_id)
        users = UserRepo(session)
        users.get_by_id_required(leader_id)
        if manager_id is not None:
            users.get_by_id_required(manager_id)
        request = RequestRepo(session).create(leader_id=leader_id, manager_id=manager_id)
        logger.info(f"Opened assessment request {request.id} for leader {leader_id}")
        return request
    except Exception as e:
        _raise_api_error(
            e,
            "Failed to request manager assessment",
            {"leader_id": leader_id, "manager_id": manager_id},
        )


@log_operation("list_pending_requests")
def list_pending_requests(session: Session) -> list[AssessmentRequestORM]:
    try:
        return RequestRepo(session).list_pending()
    except Exception as e:
        _raise_api_error(e, "Failed to list pending requests", {})


@log_operation("complete_assessment_request")
def complete_assessment_request(session: Session, request_id: int) -> AssessmentRequestORM:
    try:
        set_context(request_id=request_id)
        return RequestRepo(session).mark_completed(request_id)
    except Exception as e:
        _raise_api_error(e, "Failed to complete assessment request", {"request_id": request_id})


# ----------------------------- Session history -----------------------------


@log_operation("list_assessment_sessions")
def list_assessment_sessions(
    session: Session,
    leader_id: int,
    session_size: int | None = None,
    catalog: QuestionCatalog | None = None,
) -> tuple[AssessmentSessionSummary, ...]:
    """
    Past self and manager sessions for a leader, newest first.

    ``session_size`` defaults to the number of questions in the active catalog.
    """
    try:
        set_context(leader_id=leader_id)
        UserRepo(session).get_by_id_required(leader_id)
        size = session_size if session_size is not None else len(_active_catalog(catalog))
        return ScoringService(session).compute_sessions(leader_id, size)
    except Exception as e:
        _raise_api_error(e, "Failed to list assessment sessions", {"leader_id": leader_id})


@log_operation("delete_assessment_session")
def delete_assessment_session(
    session: Session, leader_id: int, entry_ids: Sequence[int], session_type: str
) -> int:
    """
    Remove one role's answers from the given entries.

    Rows left with no answers are deleted. Returns the number of answers removed.
    """
    data = _check_validation(
        validate_input(
            SessionDeletionInput,
            {"leader_id": leader_id, "entry_ids": list(entry_ids), "session_type": session_type},
        ),
        "session_deletion",
    )

    try:
        set_context(leader_id=leader_id)
        UserRepo(session).get_by_id_required(leader_id)
        cleared = ScoreRepo(session).clear_scores(
            leader_id, data["entry_ids"], data["session_type"]
        )
        logger.info(f"Deleted {cleared} {session_type} answers for leader {leader_id}")
        return cleared
    except Exception as e:
        _raise_api_error(
            e,
            "Failed to delete assessment session",
            {"leader_id": leader_id, "entry_ids": list(entry_ids)},
            user_message="Failed to delete the assessment session. Please try again.",
        )


# ----------------------------- Import / export -----------------------------


@log_operation("export_assessment_result")
def export_assessment_result(
    session: Session,
    leader_id: int,
    format_type: str = "json",
    catalog: QuestionCatalog | None = None,
) -> str | bytes:
    """Export a leader's result as a JSON string or xlsx bytes."""
    _check_validation(validate_input(ExportFormat, {"format_type": format_type}), "format_type")
    result = get_assessment_result(session, leader_id, catalog=catalog)

    try:
        if format_type == "json":
            return make_json_export_payload(leader_id, result)
        return make_xlsx_export_bytes(result)
    except Exception as e:
        error_details = log_error_details(e, {"leader_id": leader_id, "format": format_type})
        logger.error("Failed to export assessment result", extra=error_details)
        raise ExportError(
            f"Failed to export result for leader {leader_id}: {str(e)}",
            export_format=format_type,
            details=error_details,
        ) from e


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _as_int(value: Any, field: str) -> int | None:
    value = _cell(value)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, "Must be a whole number", value) from None
    if not number.is_integer():
        raise ValidationError(field, "Must be a whole number", value)
    return int(number)


def _import_user(email: Any, name: Any, role: str) -> dict[str, Any]:
    email = _cell(email)
    if email is None:
        raise ValidationError(f"{role}_email", "Email is required", email)
    return _check_validation(
        validate_input(
            UserCreationInput,
            {"email": str(email), "name": str(_cell(name) or email), "role": role},
        ),
        f"{role}_email",
    )


def _get_or_create_user(session: Session, data: dict[str, Any]) -> UserORM:
    user = UserRepo(session).get_by_email(data["email"])
    if user is not None:
        return user
    return create_user(session, data["email"], data["name"], data["role"])


@log_operation("import_score_rows")
def import_score_rows(
    session: Session,
    dataframe: pd.DataFrame,
    catalog: QuestionCatalog | None = None,
) -> tuple[int, list[dict[str, Any]]]:
    """
    Import leader/manager scores from a DataFrame.

    Expected columns: LeaderEmail, LeaderName, ManagerEmail, ManagerName,
    QuestionID, LeaderScore, ManagerScore. Users are created on first sight.
    A row is checked completely before anything is written; invalid rows are
    skipped and reported.

    Returns:
        (number of imported rows, list of {"row": index, "error": message})
    """
    if dataframe is None or dataframe.empty:
        logger.info("No rows provided for import; skipping")
        return 0, []

    missing = [col for col in IMPORT_COLUMNS if col not in dataframe.columns]
    if missing:
        raise DataImportError(
            f"Missing required columns: {', '.join(missing)}",
            details={"missing_columns": missing},
        )

    active = _active_catalog(catalog)
    imported = 0
    problems: list[dict[str, Any]] = []

    for index, row in dataframe.iterrows():
        try:
            question_id = _as_int(row["QuestionID"], "QuestionID")
            if question_id is None:
                raise ValidationError("QuestionID", "Question ID is required")
            leader_score = _as_int(row["LeaderScore"], "LeaderScore")
            manager_score = _as_int(row["ManagerScore"], "ManagerScore")
            if leader_score is None and manager_score is None:
                raise ValidationError("scores", "Row has neither a leader nor a manager score")
            for score in (leader_score, manager_score):
                if score is not None:
                    _validate_responses({question_id: score}, active)

            leader_data = _import_user(row["LeaderEmail"], row["LeaderName"], "leader")
            manager_data = None
            if manager_score is not None:
                manager_data = _import_user(row["ManagerEmail"], row["ManagerName"], "manager")
                if manager_data["email"] == leader_data["email"]:
                    raise ValidationError(
                        "ManagerEmail", "A leader cannot assess themselves as manager"
                    )

            leader = _get_or_create_user(session, leader_data)
            if leader_score is not None:
                submit_self_assessment(session, leader.id, {question_id: leader_score}, active)
            if manager_data is not None:
                manager = _get_or_create_user(session, manager_data)
                submit_manager_assessment(
                    session, leader.id, manager.id, {question_id: manager_score}, active
                )
            imported += 1
        except (ValidationError, MultipleValidationError) as exc:
            logger.warning(f"Skipping import row {index}: {exc.message}")
            problems.append({"row": int(index), "error": exc.message})

    logger.info(f"Imported {imported} score rows; {len(problems)} rejected")
    return imported, problems
