"""
Question catalog for the leadership self-assessment.

The catalog is an explicitly constructed, validated configuration object.
Aggregation receives it as an argument; nothing in the engine reads a global
question list.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..infrastructure.exceptions import ConfigurationError, QuestionNotFoundError
from .models import Category, LeadershipTheme, Question


class QuestionCatalog:
    """
    Ordered, immutable set of questions grouped into ordered categories.

    Example:
        >>> catalog = get_catalog("v2")
        >>> catalog.category_of(12)
        <Category.PERMISSION: 'Permission'>
        >>> len(catalog.questions_by_category(Category.PINNACLE))
        10
    """

    __slots__ = ("_categories", "_questions", "_by_id", "_position", "_by_category", "version")

    def __init__(
        self,
        questions: Iterable[Question],
        categories: Sequence[Category] | None = None,
        version: str | None = None,
    ):
        questions = tuple(questions)
        if not questions:
            raise ConfigurationError("Question catalog cannot be empty", config_key="questions")

        if categories is None:
            # Category order follows first appearance in the question list
            categories = tuple(dict.fromkeys(q.category for q in questions))
        categories = tuple(categories)

        if len(set(categories)) != len(categories):
            raise ConfigurationError(
                "Question catalog declares a category more than once",
                config_key="categories",
                details={"categories": [c.value for c in categories]},
            )

        by_id: dict[int, Question] = {}
        for question in questions:
            if question.id <= 0:
                raise ConfigurationError(
                    f"Question id must be positive, got {question.id}",
                    config_key="questions",
                )
            if question.id in by_id:
                raise ConfigurationError(
                    f"Duplicate question id {question.id} in catalog",
                    config_key="questions",
                    details={"question_id": question.id},
                )
            if question.category not in categories:
                raise ConfigurationError(
                    f"Question {question.id} uses undeclared category {question.category.value}",
                    config_key="categories",
                )
            by_id[question.id] = question

        by_category: dict[Category, tuple[Question, ...]] = {
            category: tuple(q for q in questions if q.category == category)
            for category in categories
        }
        empty = [c.value for c, qs in by_category.items() if not qs]
        if empty:
            raise ConfigurationError(
                f"Categories without questions: {', '.join(empty)}",
                config_key="categories",
                details={"empty_categories": empty},
            )

        self._categories = categories
        self._questions = questions
        self._by_id = by_id
        self._position = {q.id: index for index, q in enumerate(questions)}
        self._by_category = by_category
        self.version = version

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    def all_questions(self) -> tuple[Question, ...]:
        return self._questions

    def questions_by_category(self, category: Category) -> tuple[Question, ...]:
        return self._by_category.get(category, ())

    def get_question(self, question_id: int) -> Question:
        try:
            return self._by_id[question_id]
        except (KeyError, TypeError):
            raise QuestionNotFoundError(question_id) from None

    def category_of(self, question_id: int) -> Category:
        return self.get_question(question_id).category

    def contains(self, question_id: int) -> bool:
        try:
            return question_id in self._by_id
        except TypeError:
            return False

    def position_of(self, question_id: int) -> int:
        """Zero-based index of a question in catalog order."""
        self.get_question(question_id)
        return self._position[question_id]

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def __repr__(self) -> str:
        return (
            f"QuestionCatalog(version={self.version!r}, categories={len(self._categories)}, "
            f"questions={len(self._questions)})"
        )


def _section(category: Category, first_id: int, texts: Sequence[str]) -> list[Question]:
    return [Question(first_id + offset, category, text) for offset, text in enumerate(texts)]


POSITION_QUESTIONS = _section(
    Category.POSITION,
    1,
    [
        "I clearly understand my responsibilities as a leader.",
        "I consistently communicate expectations to my team.",
        "I take ownership of decisions that fall within my role.",
        "I explain the reasons behind the direction I set.",
        "I make timely decisions even when information is incomplete.",
        "I act consistently with the values I ask of others.",
        "I listen to my team before giving instructions.",
        "I hold myself accountable when results fall short.",
        "I keep the commitments I make to my team.",
        "I use my authority fairly and transparently.",
    ],
)

PERMISSION_QUESTIONS = _section(
    Category.PERMISSION,
    11,
    [
        "I communicate openly about the challenges facing the team.",
        "I build strong relationships with my team members.",
        "I recognise how my emotions affect the people around me.",
        "I create an environment where people want to contribute.",
        "I adapt my communication style to the person I am speaking with.",
        "I recognise and celebrate the contributions of others.",
        "I handle conflict in a calm and constructive way.",
        "I show genuine interest in the wellbeing of my team.",
        "I am approachable when team members need support.",
        "My team trusts me to have their best interests at heart.",
    ],
)

PRODUCTION_QUESTIONS = _section(
    Category.PRODUCTION,
    21,
    [
        "I set clear, measurable goals for my team.",
        "I follow through on plans until they are delivered.",
        "I prioritise the work that has the greatest impact.",
        "I make difficult decisions when the situation requires it.",
        "My team consistently delivers results on time.",
        "I look for better ways to get work done.",
        "I adjust plans quickly when circumstances change.",
        "I remove obstacles that slow my team down.",
        "I hold team members accountable for their commitments.",
        "I lead by example in producing high-quality work.",
    ],
)

PEOPLE_DEVELOPMENT_QUESTIONS = _section(
    Category.PEOPLE_DEVELOPMENT,
    31,
    [
        "I invest time in coaching individual team members.",
        "I give regular, specific feedback that helps people grow.",
        "I identify and develop the strengths of each team member.",
        "I encourage team members to experiment and learn from mistakes.",
        "I build a culture where people support one another's growth.",
        "I delegate responsibility to help others build their skills.",
        "I actively prepare team members to take on leadership roles.",
        "I am open to learning new approaches from my team.",
        "I treat every team member with fairness and respect.",
        "I connect individual development to the team's long-term direction.",
    ],
)

PINNACLE_QUESTIONS = _section(
    Category.PINNACLE,
    41,
    [
        "I communicate a compelling vision for the future.",
        "My influence extends beyond my own team.",
        "I champion change across the wider organisation.",
        "I think strategically about long-term opportunities and risks.",
        "I align my team's work with the organisation's strategy.",
        "I inspire others to give their best.",
        "I am known as a leader others want to follow.",
        "I am respected by peers and senior leaders across the organisation.",
        "I make decisions I would be proud to see made public.",
        "I am building a legacy that will outlast my role.",
    ],
)

CATALOG_VERSIONS: dict[str, tuple[Category, ...]] = {
    # Earlier three-level questionnaire
    "v1": (Category.POSITION, Category.PERMISSION, Category.PRODUCTION),
    "v2": tuple(Category),
}

_SECTIONS: dict[Category, list[Question]] = {
    Category.POSITION: POSITION_QUESTIONS,
    Category.PERMISSION: PERMISSION_QUESTIONS,
    Category.PRODUCTION: PRODUCTION_QUESTIONS,
    Category.PEOPLE_DEVELOPMENT: PEOPLE_DEVELOPMENT_QUESTIONS,
    Category.PINNACLE: PINNACLE_QUESTIONS,
}

_catalog_cache: dict[str, QuestionCatalog] = {}


def build_catalog(version: str) -> QuestionCatalog:
    """Construct a fresh catalog for a known questionnaire version."""
    if version not in CATALOG_VERSIONS:
        raise ConfigurationError(
            f"Unknown catalog version '{version}'",
            config_key="catalog_version",
            details={"known_versions": sorted(CATALOG_VERSIONS)},
        )
    categories = CATALOG_VERSIONS[version]
    questions = [q for category in categories for q in _SECTIONS[category]]
    return QuestionCatalog(questions, categories=categories, version=version)


def get_catalog(version: str = "v2") -> QuestionCatalog:
    """Shared, read-only catalog instance for a questionnaire version."""
    catalog = _catalog_cache.get(version)
    if catalog is None:
        catalog = build_catalog(version)
        _catalog_cache[version] = catalog
    return catalog


DEFAULT_THEMES: tuple[LeadershipTheme, ...] = (
    LeadershipTheme("Character & Integrity", (1, 9, 49, 39, 6)),
    LeadershipTheme("Communication & Influence", (7, 4, 15, 11, 42)),
    LeadershipTheme("Vision & Strategic Thinking", (44, 45, 40, 41, 50)),
    LeadershipTheme("Accountability & Decision-Making", (3, 8, 29, 24, 5)),
    LeadershipTheme("Emotional Intelligence & Relationships", (12, 18, 13, 19, 17)),
    LeadershipTheme("Coaching & Development", (31, 32, 33, 37, 36)),
    LeadershipTheme("Motivation & Team Culture", (16, 14, 20, 46, 35)),
    LeadershipTheme("Execution & Results", (21, 23, 22, 25, 30)),
    LeadershipTheme("Innovation & Adaptability", (26, 27, 34, 38, 43)),
    LeadershipTheme("Reputation & Influence", (47, 48, 43, 42, 41)),
)


def validate_themes(
    themes: Sequence[LeadershipTheme], catalog: QuestionCatalog
) -> tuple[LeadershipTheme, ...]:
    """
    Check that every theme is named once and only references catalog questions.

    Themes may share questions.
    """
    names = [theme.name for theme in themes]
    if len(set(names)) != len(names):
        raise ConfigurationError("Duplicate leadership theme names", config_key="themes")
    for theme in themes:
        if not theme.question_ids:
            raise ConfigurationError(
                f"Theme '{theme.name}' has no questions", config_key="themes"
            )
        unknown = [qid for qid in theme.question_ids if not catalog.contains(qid)]
        if unknown:
            raise ConfigurationError(
                f"Theme '{theme.name}' references unknown questions {unknown}",
                config_key="themes",
                details={"theme": theme.name, "unknown_question_ids": unknown},
            )
    return tuple(themes)


def themes_for_catalog(
    catalog: QuestionCatalog, themes: Sequence[LeadershipTheme] = DEFAULT_THEMES
) -> tuple[LeadershipTheme, ...]:
    """
    Restrict themes to the questions a catalog actually has.

    Lets the default themes work with the shorter ``v1`` questionnaire;
    themes left without questions are dropped.
    """
    fitted = []
    for theme in themes:
        ids = tuple(qid for qid in theme.question_ids if catalog.contains(qid))
        if ids:
            fitted.append(LeadershipTheme(theme.name, ids))
    return validate_themes(fitted, catalog)
