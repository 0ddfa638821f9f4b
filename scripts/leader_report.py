from __future__ import annotations

import argparse
import sys
from pathlib import Path

from leadership360.application.api import export_assessment_result, get_user
from leadership360.domain.catalog import get_catalog
from leadership360.infrastructure.db import make_engine_and_session
from leadership360.infrastructure.exceptions import LeadershipAssessmentError
from leadership360.infrastructure.logging import configure_logging_from_settings
from leadership360.infrastructure.uow import UnitOfWork


def main() -> None:
    configure_logging_from_settings()
    parser = argparse.ArgumentParser(description="Print or save one leader's assessment result")
    parser.add_argument("leader_id", type=int)
    parser.add_argument("--format", choices=["json", "xlsx"], default="json")
    parser.add_argument("--output", help="File to write instead of stdout (required for xlsx)")
    parser.add_argument("--catalog-version", choices=["v1", "v2"], default=None)
    parser.add_argument(
        "--database-url", default=None, help="SQLAlchemy URL; defaults to DB_* settings"
    )
    args = parser.parse_args()

    if args.format == "xlsx" and not args.output:
        parser.error("--output is required for xlsx reports")

    _engine, SessionLocal = make_engine_and_session(args.database_url)
    catalog = get_catalog(args.catalog_version) if args.catalog_version else None

    try:
        with UnitOfWork(SessionLocal).begin() as session:
            leader = get_user(session, args.leader_id)
            report = export_assessment_result(
                session, leader.id, format_type=args.format, catalog=catalog
            )
    except LeadershipAssessmentError as exc:
        print(f"ERROR: {exc.user_message}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        output = Path(args.output)
        if isinstance(report, bytes):
            output.write_bytes(report)
        else:
            output.write_text(report, encoding="utf-8")
        print(f"Report written to {output}")
    else:
        print(report)


if __name__ == "__main__":
    main()
