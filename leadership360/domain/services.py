from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from numbers import Real

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..infrastructure.exceptions import ConfigurationError, InvalidScoreError
from ..infrastructure.logging import get_logger
from ..infrastructure.repositories_score import ScoreRepo
from .catalog import QuestionCatalog
from .levels import DEFAULT_LEVELS, LevelTable, as_level_table, classify
from .models import (
    AssessmentResult,
    AssessmentSessionSummary,
    Category,
    CategoryAggregate,
    CategoryRanking,
    LeadershipTheme,
    LevelBand,
    QuestionScore,
    ScoreEntry,
    SessionType,
    SignificantGap,
    ThemeScore,
)

SCORE_MIN = 1
SCORE_MAX = 5
SIGNIFICANT_GAP_THRESHOLD = 2
DEFAULT_TOP_N = 3

logger = get_logger(__name__)


def clamp_rating(score: int | None) -> int | None:
    """
    Validate a rating at the ingestion boundary.

    ``None`` means "not submitted" and passes through; anything that is not an
    integer in 1..5 is rejected.
    """
    if score is None:
        return None
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScoreError(score)
    if not (SCORE_MIN <= score <= SCORE_MAX):
        raise InvalidScoreError(score)
    return int(score)


def _sanitize_score(score, side: str, question_id: int, log: logging.Logger) -> float | None:
    # Aggregation never rejects a record: unusable values count as not submitted,
    # out-of-range values are pulled back onto the 1..5 scale.
    if score is None:
        return None
    if (
        isinstance(score, bool)
        or not isinstance(score, Real)
        or (isinstance(score, float) and math.isnan(score))
    ):
        log.warning("Ignoring non-numeric %s score %r for question %s", side, score, question_id)
        return None
    if score < SCORE_MIN or score > SCORE_MAX:
        clamped = min(max(score, SCORE_MIN), SCORE_MAX)
        log.warning(
            "Clamped out-of-range %s score %s to %s for question %s",
            side,
            score,
            clamped,
            question_id,
        )
        return clamped
    return score


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def aggregate(
    score_entries: Iterable[ScoreEntry],
    catalog: QuestionCatalog,
    bands: LevelTable | Sequence[LevelBand] = DEFAULT_LEVELS,
    top_n: int = DEFAULT_TOP_N,
    log: logging.Logger | None = None,
) -> AssessmentResult:
    """
    Turn per-question (leader, manager) score pairs into an assessment result.

    - Entries for questions outside ``catalog`` are dropped and counted.
    - Category averages use non-null scores only; an empty category averages 0.
    - Overall self / manager scores are flat means over every non-null score.
    - Combined score halves the sum only when both sides have answered; a lone
      side's score is used as is.
    - Rankings use the pooled category average and keep catalog order on ties.
    - Category gaps only rank categories scored by both sides with a non-zero
      gap; a category only one side has answered has no gap to report.

    The function is pure: the same input always yields an equal result.
    """
    log = log or logger
    if top_n < 1:
        raise ConfigurationError(f"top_n must be at least 1, got {top_n}", config_key="top_n")
    table = as_level_table(bands)

    usable: list[tuple[int, float | None, float | None]] = []
    dropped = 0
    for entry in score_entries:
        if not catalog.contains(entry.question_id):
            dropped += 1
            continue
        usable.append(
            (
                entry.question_id,
                _sanitize_score(entry.leader_score, "leader", entry.question_id, log),
                _sanitize_score(entry.manager_score, "manager", entry.question_id, log),
            )
        )
    if dropped:
        log.warning("Dropped %d score entries with unknown question ids", dropped)

    leader_by_category: dict[Category, list[float]] = {c: [] for c in catalog.categories}
    manager_by_category: dict[Category, list[float]] = {c: [] for c in catalog.categories}
    latest: dict[int, tuple[float | None, float | None]] = {}
    for question_id, leader, manager in usable:
        category = catalog.category_of(question_id)
        if leader is not None:
            leader_by_category[category].append(leader)
        if manager is not None:
            manager_by_category[category].append(manager)
        latest[question_id] = (leader, manager)

    aggregates: list[CategoryAggregate] = []
    for category in catalog.categories:
        leaders = leader_by_category[category]
        managers = manager_by_category[category]
        leader_avg = _mean(leaders)
        manager_avg = _mean(managers)
        aggregates.append(
            CategoryAggregate(
                category=category,
                leader_avg=leader_avg,
                manager_avg=manager_avg,
                combined_avg=_mean(leaders + managers),
                gap=abs(leader_avg - manager_avg),
                leader_count=len(leaders),
                manager_count=len(managers),
            )
        )

    all_leader = [leader for _, leader, _ in usable if leader is not None]
    all_manager = [manager for _, _, manager in usable if manager is not None]
    self_score = _mean(all_leader)
    manager_score = _mean(all_manager)
    if all_leader and all_manager:
        combined = (self_score + manager_score) / 2
    elif all_leader:
        combined = self_score
    elif all_manager:
        combined = manager_score
    else:
        combined = 0.0
    percentage = min(max(combined / SCORE_MAX * 100, 0.0), 100.0)

    significant: list[tuple[int, int, SignificantGap]] = []
    for index, (question_id, leader, manager) in enumerate(usable):
        if leader is None or manager is None:
            continue
        gap = abs(leader - manager)
        if gap >= SIGNIFICANT_GAP_THRESHOLD:
            question = catalog.get_question(question_id)
            significant.append(
                (
                    catalog.position_of(question_id),
                    index,
                    SignificantGap(
                        question_id=question_id,
                        category=question.category,
                        question=question.text,
                        leader_score=leader,
                        manager_score=manager,
                        gap=gap,
                    ),
                )
            )
    significant.sort(key=lambda item: (item[0], item[1]))

    rankings: list[CategoryRanking] = []
    two_sided: list[CategoryRanking] = []
    for agg in aggregates:
        if not (agg.leader_count or agg.manager_count):
            continue
        ranking = CategoryRanking(
            category=agg.category,
            avg_score=agg.combined_avg,
            leader_avg=agg.leader_avg,
            manager_avg=agg.manager_avg,
            gap=agg.gap,
            questions=tuple(
                QuestionScore(
                    question_id=q.id,
                    text=q.text,
                    leader_score=latest.get(q.id, (None, None))[0],
                    manager_score=latest.get(q.id, (None, None))[1],
                )
                for q in catalog.questions_by_category(agg.category)
            ),
        )
        rankings.append(ranking)
        if agg.leader_count and agg.manager_count and agg.gap != 0:
            two_sided.append(ranking)

    # sorted() is stable, so equal scores keep catalog order
    strengths = sorted(rankings, key=lambda r: -r.avg_score)[:top_n]
    opportunities = sorted(rankings, key=lambda r: r.avg_score)[:top_n]
    category_gaps = sorted(two_sided, key=lambda r: -r.gap)[:top_n]

    level = classify(percentage, table)
    log.debug(
        "Aggregated %d entries: combined=%.2f percentage=%.1f level=%s",
        len(usable),
        combined,
        percentage,
        level.name,
    )

    return AssessmentResult(
        categories=tuple(catalog.categories),
        leader_scores=tuple(a.leader_avg for a in aggregates),
        manager_scores=tuple(a.manager_avg for a in aggregates),
        category_aggregates=tuple(aggregates),
        self_score=self_score,
        manager_score=manager_score,
        combined_score=combined,
        percentage=percentage,
        level=level,
        strengths=tuple(strengths),
        opportunities=tuple(opportunities),
        category_gaps=tuple(category_gaps),
        significant_gaps=tuple(gap for _, _, gap in significant),
        leader_answered=len(all_leader),
        manager_answered=len(all_manager),
        dropped_entries=dropped,
    )


def theme_breakdown(
    score_entries: Iterable[ScoreEntry], themes: Sequence[LeadershipTheme]
) -> tuple[ThemeScore, ...]:
    """Mean leader and manager score per theme; themes may share questions."""
    entries = list(score_entries)
    results: list[ThemeScore] = []
    for theme in themes:
        ids = set(theme.question_ids)
        leaders: list[float] = []
        managers: list[float] = []
        for entry in entries:
            if entry.question_id not in ids:
                continue
            leader = _sanitize_score(entry.leader_score, "leader", entry.question_id, logger)
            manager = _sanitize_score(entry.manager_score, "manager", entry.question_id, logger)
            if leader is not None:
                leaders.append(leader)
            if manager is not None:
                managers.append(manager)
        results.append(ThemeScore(theme.name, _mean(leaders), _mean(managers)))
    return tuple(results)


def summarize_sessions(
    score_entries: Iterable[ScoreEntry], session_size: int = 50
) -> tuple[AssessmentSessionSummary, ...]:
    """
    Group submitted answers into assessment sessions.

    A session is the answers one role submitted on one calendar day; once a
    session holds ``session_size`` answers the next answer on that day starts a
    new one. Newest days come first, Self before Manager within a day.
    """
    if session_size < 1:
        raise ValueError("session_size must be at least 1")

    sessions: dict[tuple, list[dict]] = {}
    for entry in score_entries:
        sides: tuple[tuple[SessionType, int | None, object], ...] = (
            ("Self", entry.leader_score, entry.leader_submitted_at),
            ("Manager", entry.manager_score, entry.manager_submitted_at),
        )
        for session_type, score, submitted_at in sides:
            if score is None or submitted_at is None:
                continue
            key = (submitted_at.date(), session_type)
            bucket = sessions.setdefault(key, [])
            if not bucket or bucket[-1]["count"] >= session_size:
                bucket.append({"average": 0.0, "count": 0, "ids": []})
            current = bucket[-1]
            current["average"] = (current["average"] * current["count"] + score) / (
                current["count"] + 1
            )
            current["count"] += 1
            if entry.entry_id is not None:
                current["ids"].append(entry.entry_id)

    type_order = {"Self": 0, "Manager": 1}
    ordered_keys = sorted(sessions, key=lambda k: (-k[0].toordinal(), type_order[k[1]]))
    return tuple(
        AssessmentSessionSummary(
            session_date=session_date,
            session_type=session_type,
            average_score=item["average"],
            questions_answered=item["count"],
            entry_ids=tuple(item["ids"]),
        )
        for session_date, session_type in ordered_keys
        for item in sessions[(session_date, session_type)]
    )


class ScoringService:
    """Loads a leader's stored answers and runs them through the aggregator."""

    def __init__(self, s: Session, logger: logging.Logger | None = None):
        self.s = s
        self.logger = logger or get_logger(__name__)
        self.scores = ScoreRepo(s)

    def load_entries(self, leader_id: int) -> list[ScoreEntry]:
        try:
            entries = self.scores.entries_for_leader(leader_id)
        except SQLAlchemyError:
            self.logger.exception("Database error loading score entries for leader %s", leader_id)
            raise
        self.logger.debug("Loaded %d score entries for leader %s", len(entries), leader_id)
        return entries

    def compute_result(
        self,
        leader_id: int,
        catalog: QuestionCatalog,
        bands: LevelTable | Sequence[LevelBand] = DEFAULT_LEVELS,
        top_n: int = DEFAULT_TOP_N,
    ) -> AssessmentResult:
        result = aggregate(self.load_entries(leader_id), catalog, bands, top_n, log=self.logger)
        self.logger.info(
            "Computed assessment result for leader %s: %.1f%% (%s)",
            leader_id,
            result.percentage,
            result.level.label,
        )
        return result

    def compute_themes(
        self, leader_id: int, themes: Sequence[LeadershipTheme]
    ) -> tuple[ThemeScore, ...]:
        return theme_breakdown(self.load_entries(leader_id), themes)

    def compute_sessions(
        self, leader_id: int, session_size: int
    ) -> tuple[AssessmentSessionSummary, ...]:
        return summarize_sessions(self.load_entries(leader_id), session_size)
