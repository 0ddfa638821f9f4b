from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Literal


class Category(str, Enum):
    POSITION = "Position"
    PERMISSION = "Permission"
    PRODUCTION = "Production"
    PEOPLE_DEVELOPMENT = "People Development"
    PINNACLE = "Pinnacle"


@dataclass(frozen=True, slots=True)
class Question:
    id: int
    category: Category
    text: str


@dataclass(frozen=True, slots=True)
class LeadershipTheme:
    name: str
    question_ids: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class ScoreEntry:
    question_id: int
    leader_score: int | None  # 1..5, None until the leader answers
    manager_score: int | None  # 1..5, None until the manager answers
    entry_id: int | None = None
    leader_submitted_at: datetime | None = None
    manager_submitted_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CategoryAggregate:
    category: Category
    leader_avg: float
    manager_avg: float
    combined_avg: float  # pooled mean over both sides' scores
    gap: float
    leader_count: int
    manager_count: int


@dataclass(frozen=True, slots=True)
class QuestionScore:
    question_id: int
    text: str
    leader_score: int | None
    manager_score: int | None


@dataclass(frozen=True, slots=True)
class CategoryRanking:
    category: Category
    avg_score: float
    leader_avg: float
    manager_avg: float
    gap: float
    questions: tuple[QuestionScore, ...]


@dataclass(frozen=True, slots=True)
class SignificantGap:
    question_id: int
    category: Category
    question: str
    leader_score: int
    manager_score: int
    gap: int


@dataclass(frozen=True, slots=True)
class LevelBand:
    name: str  # e.g. "Production"
    label: str  # e.g. "Production (Results)"
    description: str
    low: int
    high: int


@dataclass(frozen=True, slots=True)
class AssessmentResult:
    categories: tuple[Category, ...]
    leader_scores: tuple[float, ...]
    manager_scores: tuple[float, ...]
    category_aggregates: tuple[CategoryAggregate, ...]
    self_score: float
    manager_score: float
    combined_score: float
    percentage: float
    level: LevelBand
    strengths: tuple[CategoryRanking, ...]
    opportunities: tuple[CategoryRanking, ...]
    category_gaps: tuple[CategoryRanking, ...]
    significant_gaps: tuple[SignificantGap, ...]
    leader_answered: int
    manager_answered: int
    dropped_entries: int = 0


@dataclass(frozen=True, slots=True)
class LevelRange:
    band: LevelBand
    is_current: bool


@dataclass(frozen=True, slots=True)
class CalculationBreakdown:
    self_score: float
    manager_score: float
    combined_score: float
    percentage: float
    level: LevelBand
    combined_formula: str
    combined_expression: str
    percentage_formula: str
    percentage_expression: str
    level_statement: str
    level_ranges: tuple[LevelRange, ...]


@dataclass(frozen=True, slots=True)
class ThemeScore:
    theme: str
    leader_avg: float
    manager_avg: float


SessionType = Literal["Self", "Manager"]


@dataclass(frozen=True, slots=True)
class AssessmentSessionSummary:
    session_date: date
    session_type: SessionType
    average_score: float
    questions_answered: int
    entry_ids: tuple[int, ...]
