"""
Tests for the ambient infrastructure: configuration, logging, error taxonomy
and database helpers.
"""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from leadership360.infrastructure.config import (
    ApplicationConfig,
    AssessmentConfig,
    DatabaseConfig,
    get_settings,
    load_settings_from_file,
    override_settings,
    reset_settings,
)
from leadership360.infrastructure.db import (
    initialise_database,
    is_database_configured,
    make_engine_and_session,
)
from leadership360.infrastructure.exceptions import (
    ConnectionError,
    DatabaseError,
    IntegrityError,
    InvalidScoreError,
    LeadershipAssessmentError,
    MultipleValidationError,
    ValidationError,
    create_user_friendly_error_message,
    handle_database_error,
    log_error_details,
)
from leadership360.infrastructure.logging import (
    LogContext,
    StructuredFormatter,
    configure_logging_from_settings,
    configure_test_logging,
    context_filter,
    get_logger,
    log_operation,
    set_context,
    setup_logging,
)
from leadership360.infrastructure.models import Base


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []
        self.addFilter(context_filter)

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    """Collect records from a child logger without touching global handlers."""
    logger = get_logger("tests.capture")
    handler = _Capture()
    logger.addHandler(handler)
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    yield logger, handler
    logger.removeHandler(handler)
    logger.setLevel(previous)


class TestConfiguration:
    """Test centralized configuration management."""

    def test_database_config_sqlite(self):
        config = DatabaseConfig(backend="sqlite", sqlite_path="./scores")
        assert config.get_connection_url() == "sqlite:///scores.db"
        assert DatabaseConfig(sqlite_path=":memory:").get_connection_url() == "sqlite:///:memory:"

    def test_database_config_postgres(self):
        """PostgreSQL URLs use the psycopg driver."""
        config = DatabaseConfig(
            backend="postgresql",
            postgres_host="db.internal",
            postgres_user="scorer",
            postgres_password="secret",
            postgres_database="l360",
        )
        url = config.get_connection_url()
        assert url.startswith("postgresql+psycopg://")
        assert "scorer:secret@db.internal:5432/l360" in url

    def test_postgres_requires_host(self):
        with pytest.raises(PydanticValidationError):
            DatabaseConfig(backend="postgresql", postgres_host="")

    def test_assessment_defaults(self):
        config = AssessmentConfig()
        assert config.catalog_version == "v2"
        assert config.top_n == 3

    def test_assessment_bounds(self):
        with pytest.raises(PydanticValidationError):
            AssessmentConfig(top_n=0)
        with pytest.raises(PydanticValidationError):
            AssessmentConfig(catalog_version="v3")

    def test_no_debug_in_production(self):
        with pytest.raises(PydanticValidationError):
            ApplicationConfig(environment="production", debug=True)

    def test_settings_override(self, monkeypatch):
        monkeypatch.setenv("ASSESSMENT_TOP_N", "3")
        settings = override_settings(assessment_top_n=5)
        assert settings.assessment.top_n == 5
        assert get_settings() is settings

    def test_load_settings_from_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASSESSMENT_CATALOG_VERSION", "v2")
        monkeypatch.setenv("DB_SQLITE_PATH", "./leadership360.db")
        path = tmp_path / "settings.json"
        path.write_text(
            json.dumps(
                {"assessment": {"catalog_version": "v1"}, "database": {"sqlite_path": ":memory:"}}
            )
        )

        settings = load_settings_from_file(str(path))

        assert settings.assessment.catalog_version == "v1"
        assert settings.database.sqlite_path == ":memory:"
        assert os.environ["ASSESSMENT_CATALOG_VERSION"] == "v1"

    def test_load_settings_rejects_other_formats(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("assessment: {}")
        with pytest.raises(ValueError):
            load_settings_from_file(str(path))
        with pytest.raises(FileNotFoundError):
            load_settings_from_file(str(tmp_path / "missing.json"))

    def test_environment_info(self):
        info = get_settings().get_environment_info()
        assert info["environment"] == "testing"
        assert info["assessment"] == {"catalog_version": "v2", "top_n": 3}


class TestLogging:
    """Test logging helpers."""

    def test_logger_namespace(self):
        assert get_logger("domain.services").name == "leadership360.domain.services"
        assert get_logger("leadership360.api").name == "leadership360.api"

    def test_context_is_attached_to_records(self, captured):
        logger, handler = captured
        set_context(leader_id=12)
        with LogContext(operation="scoring"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = handler.records
        assert inside.leader_id == 12
        assert inside.operation == "scoring"
        assert outside.leader_id == 12
        assert not hasattr(outside, "operation")

    def test_structured_formatter_emits_json(self, captured):
        logger, handler = captured
        set_context(manager_id=3)
        logger.warning("gap of %d", 3)

        entry = json.loads(StructuredFormatter().format(handler.records[0]))
        assert entry["level"] == "WARNING"
        assert entry["message"] == "gap of 3"
        assert entry["manager_id"] == 3
        assert entry["logger"] == "leadership360.tests.capture"

    def test_log_operation_reports_failures(self, captured):
        logger, handler = captured

        @log_operation("explode", logger=logger)
        def explode():
            raise InvalidScoreError(9)

        with pytest.raises(InvalidScoreError):
            explode()
        messages = [r.getMessage() for r in handler.records]
        assert messages[0] == "Starting explode"
        assert messages[-1].startswith("Failed explode")
        assert handler.records[-1].levelno == logging.ERROR

    def test_setup_logging_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        try:
            setup_logging(level="INFO", log_file=str(log_file), enable_console=False)
            get_logger("tests.file").info("written to disk")
            for handler in logging.getLogger("leadership360").handlers:
                handler.flush()

            lines = log_file.read_text(encoding="utf-8").splitlines()
            assert json.loads(lines[-1])["message"] == "written to disk"
        finally:
            configure_test_logging()

    def test_configure_from_settings(self, tmp_path, monkeypatch):
        log_file = tmp_path / "settings.log"
        monkeypatch.setenv("APP_ENVIRONMENT", "development")
        monkeypatch.setenv("LOG_FILE_PATH", str(log_file))
        monkeypatch.setenv("LOG_CONSOLE_ENABLED", "false")
        reset_settings()
        try:
            configure_logging_from_settings()
            get_logger("tests.settings").warning("from settings")
            for handler in logging.getLogger("leadership360").handlers:
                handler.flush()

            entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
            assert entry["message"] == "from settings"
        finally:
            configure_test_logging()

    def test_import_writes_no_log_files(self, tmp_path):
        repo_root = Path(__file__).resolve().parents[1]
        env = {**os.environ, "APP_ENVIRONMENT": "development", "PYTHONPATH": str(repo_root)}
        subprocess.run(
            [sys.executable, "-c", "import leadership360.infrastructure.logging"],
            cwd=tmp_path,
            env=env,
            check=True,
        )
        assert list(tmp_path.iterdir()) == []


class TestErrorHandling:
    """Test the application error taxonomy."""

    def test_validation_error(self):
        error = ValidationError("leader_id", "must be positive", -1)
        assert error.field == "leader_id"
        assert error.user_message == "Invalid leader id: must be positive"
        assert str(error).startswith("ValidationError:")

    def test_multiple_validation_errors(self):
        error = MultipleValidationError(
            [ValidationError("question_1", "too high", 6), ValidationError("question_2", "x")]
        )
        assert len(error.details["errors"]) == 2
        assert "2 invalid answers" in error.user_message

    def test_invalid_score_is_value_error(self):
        error = InvalidScoreError(7)
        assert isinstance(error, ValueError)
        assert isinstance(error, LeadershipAssessmentError)
        assert "1 (Strongly Disagree)" in error.user_message

    @pytest.mark.parametrize(
        "message,expected_type,constraint",
        [
            ("UNIQUE constraint failed: users.email", IntegrityError, "unique"),
            ("FOREIGN KEY constraint failed", IntegrityError, "foreign_key"),
            ("CHECK constraint failed: ck_score_range", IntegrityError, "check"),
            ("connection refused", ConnectionError, None),
        ],
    )
    def test_database_error_mapping(self, message, expected_type, constraint):
        error = handle_database_error(Exception(message), "score.record_leader")
        assert isinstance(error, expected_type)
        if constraint:
            assert error.constraint == constraint

    def test_generic_database_error(self):
        error = handle_database_error(Exception("disk full"), "user.create")
        assert type(error) is DatabaseError
        assert error.operation == "user.create"

    def test_user_friendly_messages(self):
        assert create_user_friendly_error_message(KeyError("x")).startswith("Required")
        assert create_user_friendly_error_message(RuntimeError("x")).startswith("An unexpected")
        assert (
            create_user_friendly_error_message(ValidationError("email", "cannot be empty"))
            == "Invalid email: cannot be empty"
        )

    def test_log_error_details(self):
        details = log_error_details(InvalidScoreError(0), {"leader_id": 4})
        assert details["error_type"] == "InvalidScoreError"
        assert details["context"] == {"leader_id": 4}
        assert details["error_details"] == {"score": 0}


class TestDatabaseHelpers:
    def test_explicit_url_and_initialise(self, tmp_path):
        engine, SessionLocal = make_engine_and_session(f"sqlite:///{tmp_path / 'l360.db'}")
        initialise_database(engine)
        try:
            with SessionLocal() as session:
                assert session.execute(text("SELECT COUNT(*) FROM users")).scalar() == 0
        finally:
            engine.dispose()

    def test_database_configured_from_settings(self):
        assert is_database_configured()

    def test_initialise_wraps_driver_errors(self, monkeypatch):
        engine, _ = make_engine_and_session("sqlite:///:memory:")

        def fail(*args, **kwargs):
            raise OperationalError("CREATE TABLE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Base.metadata, "create_all", fail)
        with pytest.raises(DatabaseError):
            initialise_database(engine)
