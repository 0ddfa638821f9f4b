"""
Leadership level bands and the percentage classifier.

Also builds the "show your work" breakdown that explains how the combined
score and percentage behind a level placement were derived.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence

from ..infrastructure.exceptions import ConfigurationError
from .models import AssessmentResult, CalculationBreakdown, LevelBand, LevelRange


class LevelTable:
    """
    Ordered, contiguous level bands covering 1..100 percent.

    Example:
        >>> DEFAULT_LEVELS.lowest.label
        'Position (Rights)'
    """

    __slots__ = ("_bands",)

    def __init__(self, bands: Iterable[LevelBand]):
        bands = tuple(bands)
        if not bands:
            raise ConfigurationError("Level table cannot be empty", config_key="levels")
        if bands[0].low != 1:
            raise ConfigurationError(
                f"First level band must start at 1, got {bands[0].low}", config_key="levels"
            )
        if bands[-1].high != 100:
            raise ConfigurationError(
                f"Last level band must end at 100, got {bands[-1].high}", config_key="levels"
            )
        for index, band in enumerate(bands):
            if band.low > band.high:
                raise ConfigurationError(
                    f"Level band '{band.label}' has low {band.low} above high {band.high}",
                    config_key="levels",
                )
            if index and band.low != bands[index - 1].high + 1:
                raise ConfigurationError(
                    f"Level band '{band.label}' does not follow '{bands[index - 1].label}'",
                    config_key="levels",
                    details={"previous_high": bands[index - 1].high, "low": band.low},
                )
        self._bands = bands

    @property
    def bands(self) -> tuple[LevelBand, ...]:
        return self._bands

    @property
    def lowest(self) -> LevelBand:
        return self._bands[0]

    def __iter__(self) -> Iterator[LevelBand]:
        return iter(self._bands)

    def __len__(self) -> int:
        return len(self._bands)

    def __getitem__(self, index: int) -> LevelBand:
        return self._bands[index]

    def __repr__(self) -> str:
        return f"LevelTable({[band.name for band in self._bands]!r})"


DEFAULT_LEVELS = LevelTable(
    [
        LevelBand(
            "Position", "Position (Rights)", "Authority and formal leadership role", 1, 39
        ),
        LevelBand(
            "Permission", "Permission (Relationships)", "Building trust and influence", 40, 59
        ),
        LevelBand(
            "Production", "Production (Results)", "Driving outcomes and achievements", 60, 79
        ),
        LevelBand(
            "People Development",
            "People Development (Reproduction)",
            "Developing and empowering others",
            80,
            94,
        ),
        LevelBand(
            "Pinnacle", "Pinnacle (Legacy & Influence)", "Creating lasting impact", 95, 100
        ),
    ]
)


def as_level_table(bands: LevelTable | Sequence[LevelBand]) -> LevelTable:
    return bands if isinstance(bands, LevelTable) else LevelTable(bands)


def classify(
    percentage: float, bands: LevelTable | Sequence[LevelBand] = DEFAULT_LEVELS
) -> LevelBand:
    """
    Return the first band containing ``percentage``.

    Integer bounds are read as contiguous ranges over the reals, so 39.5 falls
    in 1..39 rather than between bands. Anything outside 1..100 (including
    NaN) maps to the lowest band.
    """
    table = as_level_table(bands)
    if percentage is None or math.isnan(percentage):
        return table.lowest

    last = len(table) - 1
    for index, band in enumerate(table):
        upper_ok = percentage <= band.high if index == last else percentage < band.high + 1
        if band.low <= percentage and upper_ok:
            return band
    return table.lowest


def _format_score(value: float) -> str:
    return f"{value:.2f}"


def explain_calculation(
    self_score: float,
    manager_score: float,
    combined_score: float,
    percentage: float,
    level: LevelBand,
    bands: LevelTable | Sequence[LevelBand] = DEFAULT_LEVELS,
) -> CalculationBreakdown:
    """
    Describe the arithmetic behind a level placement.

    No values are recomputed; a side counts as present when its score is above 0,
    which mirrors how the aggregator combines one-sided results.

    Example:
        >>> b = explain_calculation(3.6, 3.4, 3.5, 70.0, DEFAULT_LEVELS[2])
        >>> b.combined_expression
        '(3.60 + 3.40) ÷ 2 = 3.50'
    """
    table = as_level_table(bands)
    has_self = self_score > 0
    has_manager = manager_score > 0

    if has_self and has_manager:
        combined_formula = "Combined Score = (Self Assessment + Manager Assessment) ÷ 2"
        combined_expression = (
            f"({_format_score(self_score)} + {_format_score(manager_score)}) ÷ 2 = "
            f"{_format_score(combined_score)}"
        )
    elif has_self:
        combined_formula = "Combined Score = Self Assessment"
        combined_expression = f"{_format_score(self_score)} = {_format_score(combined_score)}"
    elif has_manager:
        combined_formula = "Combined Score = Manager Assessment"
        combined_expression = f"{_format_score(manager_score)} = {_format_score(combined_score)}"
    else:
        combined_formula = "Combined Score = 0 (no assessments submitted)"
        combined_expression = _format_score(combined_score)

    percentage_formula = "Percentage Score = (Overall Score ÷ 5) × 100"
    percentage_expression = f"({_format_score(combined_score)} ÷ 5) × 100 = {percentage:.1f}%"
    level_statement = (
        f"Your score of {percentage:.1f}% falls within the {level.label} range "
        f"({level.low}% - {level.high}%)"
    )

    return CalculationBreakdown(
        self_score=self_score,
        manager_score=manager_score,
        combined_score=combined_score,
        percentage=percentage,
        level=level,
        combined_formula=combined_formula,
        combined_expression=combined_expression,
        percentage_formula=percentage_formula,
        percentage_expression=percentage_expression,
        level_statement=level_statement,
        level_ranges=tuple(LevelRange(band, band == level) for band in table),
    )


def explain_result(
    result: AssessmentResult, bands: LevelTable | Sequence[LevelBand] = DEFAULT_LEVELS
) -> CalculationBreakdown:
    return explain_calculation(
        result.self_score,
        result.manager_score,
        result.combined_score,
        result.percentage,
        result.level,
        bands,
    )
