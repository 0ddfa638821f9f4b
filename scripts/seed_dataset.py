from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import pandas as pd

from leadership360.application.api import IMPORT_COLUMNS, import_score_rows
from leadership360.domain.catalog import get_catalog
from leadership360.infrastructure.config import DatabaseConfig
from leadership360.infrastructure.db import initialise_database, make_engine_and_session
from leadership360.infrastructure.exceptions import DataImportError
from leadership360.infrastructure.logging import configure_logging_from_settings
from leadership360.infrastructure.uow import UnitOfWork


def clean_header(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().replace(" ", "")


def load_score_rows(path: Path) -> pd.DataFrame:
    """
    Read a CSV or Excel sheet of score rows.

    Headers are matched without spaces, so "Leader Email" and "LeaderEmail"
    both work.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix in (".xlsx", ".xlsm"):
        df = pd.read_excel(path, engine="openpyxl")
    else:
        raise DataImportError(f"Unsupported file type: {path.suffix}", file_path=str(path))

    df = df.rename(columns={col: clean_header(col) for col in df.columns})
    missing = [col for col in IMPORT_COLUMNS if col not in df.columns]
    if missing:
        raise DataImportError(
            f"Missing required columns: {', '.join(missing)}",
            file_path=str(path),
            details={"missing_columns": missing},
        )
    return df[IMPORT_COLUMNS]


def main() -> None:
    configure_logging_from_settings()
    parser = argparse.ArgumentParser(
        description="Import leader and manager scores from a CSV or Excel file"
    )

    backend_default = os.environ.get("DB_BACKEND", "sqlite")
    sqlite_default = os.environ.get("DB_SQLITE_PATH", "./leadership360.db")

    parser.add_argument("path", help="CSV or xlsx file with one row per leader and question")
    parser.add_argument("--backend", choices=["sqlite", "postgresql"], default=backend_default)
    parser.add_argument("--sqlite-path", default=sqlite_default)
    parser.add_argument("--postgres-host", default=os.environ.get("DB_POSTGRES_HOST", "localhost"))
    parser.add_argument(
        "--postgres-port", type=int, default=int(os.environ.get("DB_POSTGRES_PORT") or 5432)
    )
    parser.add_argument("--postgres-user", default=os.environ.get("DB_POSTGRES_USER", "postgres"))
    parser.add_argument("--postgres-password", default=os.environ.get("DB_POSTGRES_PASSWORD", ""))
    parser.add_argument(
        "--postgres-database", default=os.environ.get("DB_POSTGRES_DATABASE", "leadership360")
    )
    parser.add_argument(
        "--catalog-version",
        choices=["v1", "v2"],
        default=os.environ.get("ASSESSMENT_CATALOG_VERSION", "v2"),
    )
    args = parser.parse_args()

    source = Path(args.path)
    if not source.exists():
        print(f"ERROR: file not found at {source}", file=sys.stderr)
        sys.exit(1)

    cfg = DatabaseConfig(
        backend=args.backend,
        sqlite_path=args.sqlite_path,
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
        postgres_database=args.postgres_database,
    )
    engine, SessionLocal = make_engine_and_session(cfg.get_connection_url())
    initialise_database(engine)

    try:
        rows = load_score_rows(source)
    except DataImportError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        sys.exit(1)

    with UnitOfWork(SessionLocal).begin() as session:
        imported, problems = import_score_rows(
            session, rows, catalog=get_catalog(args.catalog_version)
        )

    for problem in problems:
        print(f"Row {problem['row']}: {problem['error']}", file=sys.stderr)
    print(f"Imported {imported} rows, rejected {len(problems)}.")


if __name__ == "__main__":
    main()
