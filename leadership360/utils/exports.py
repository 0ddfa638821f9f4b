from __future__ import annotations

import io
import json
from dataclasses import asdict
from enum import Enum

import pandas as pd

from ..domain.models import AssessmentResult

CATEGORY_COLUMNS = [
    "Category",
    "LeaderAvg",
    "ManagerAvg",
    "CombinedAvg",
    "Gap",
    "LeaderAnswered",
    "ManagerAnswered",
]
GAP_COLUMNS = ["QuestionID", "Category", "Question", "LeaderScore", "ManagerScore", "Gap"]


def _to_iso(val):
    if hasattr(val, "isoformat"):
        return val.isoformat()
    return str(val)


def _plain_dict(items):
    return {key: value.value if isinstance(value, Enum) else value for key, value in items}


def result_to_frames(result: AssessmentResult) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Per-category averages and significant gaps as two DataFrames."""
    categories_df = pd.DataFrame(
        [
            {
                "Category": agg.category.value,
                "LeaderAvg": agg.leader_avg,
                "ManagerAvg": agg.manager_avg,
                "CombinedAvg": agg.combined_avg,
                "Gap": agg.gap,
                "LeaderAnswered": agg.leader_count,
                "ManagerAnswered": agg.manager_count,
            }
            for agg in result.category_aggregates
        ],
        columns=CATEGORY_COLUMNS,
    )
    gaps_df = pd.DataFrame(
        [
            {
                "QuestionID": gap.question_id,
                "Category": gap.category.value,
                "Question": gap.question,
                "LeaderScore": gap.leader_score,
                "ManagerScore": gap.manager_score,
                "Gap": gap.gap,
            }
            for gap in result.significant_gaps
        ],
        columns=GAP_COLUMNS,
    )
    return categories_df, gaps_df


def make_json_export_payload(leader_id: int, result: AssessmentResult) -> str:
    """
    Serialise a result without rounding; unanswered scores stay ``null``.

    Example:
        >>> payload = json.loads(make_json_export_payload(7, result))
        >>> payload["level"]["label"]
        'Production (Results)'
    """
    payload = {"leader_id": leader_id, **asdict(result, dict_factory=_plain_dict)}
    payload["categories"] = [category.value for category in result.categories]
    return json.dumps(payload, indent=2, default=_to_iso)


def make_xlsx_export_bytes(result: AssessmentResult) -> bytes:
    """Workbook with a ``Categories`` and a ``Gaps`` sheet, scores rounded for display."""
    categories_df, gaps_df = result_to_frames(result)
    categories_df = categories_df.round(
        {"LeaderAvg": 2, "ManagerAvg": 2, "CombinedAvg": 2, "Gap": 2}
    )

    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        categories_df.to_excel(writer, index=False, sheet_name="Categories")
        gaps_df.to_excel(writer, index=False, sheet_name="Gaps")
    return bio.getvalue()
