import math

import pytest

from leadership360.domain.levels import (
    DEFAULT_LEVELS,
    LevelTable,
    classify,
    explain_calculation,
    explain_result,
)
from leadership360.domain.models import LevelBand
from leadership360.domain.services import aggregate
from leadership360.infrastructure.exceptions import ConfigurationError


class TestClassify:
    @pytest.mark.parametrize(
        "percentage,expected",
        [
            (1, "Position"),
            (39, "Position"),
            (40, "Permission"),
            (59, "Permission"),
            (60, "Production"),
            (70.0, "Production"),
            (79, "Production"),
            (80, "People Development"),
            (94, "People Development"),
            (95, "Pinnacle"),
            (100, "Pinnacle"),
        ],
    )
    def test_band_boundaries(self, percentage, expected):
        assert classify(percentage).name == expected

    def test_every_integer_percentage_has_exactly_one_band(self):
        for p in range(1, 101):
            matches = [b for b in DEFAULT_LEVELS if b.low <= p <= b.high]
            assert len(matches) == 1
            assert classify(p) == matches[0]

    def test_fractional_percentages_fall_in_lower_band(self):
        assert classify(39.5).name == "Position"
        assert classify(79.99).name == "Production"
        assert classify(94.9).name == "People Development"

    @pytest.mark.parametrize("percentage", [0, 0.5, -10, 100.5, 250, math.nan])
    def test_out_of_range_maps_to_lowest(self, percentage):
        assert classify(percentage) == DEFAULT_LEVELS.lowest

    def test_custom_bands(self):
        bands = [
            LevelBand("Low", "Low", "", 1, 50),
            LevelBand("High", "High", "", 51, 100),
        ]
        assert classify(50.5, bands).name == "Low"
        assert classify(51, bands).name == "High"


class TestLevelTable:
    def test_default_labels(self):
        assert [b.label for b in DEFAULT_LEVELS] == [
            "Position (Rights)",
            "Permission (Relationships)",
            "Production (Results)",
            "People Development (Reproduction)",
            "Pinnacle (Legacy & Influence)",
        ]

    def test_gap_between_bands_rejected(self):
        with pytest.raises(ConfigurationError):
            LevelTable([LevelBand("A", "A", "", 1, 40), LevelBand("B", "B", "", 42, 100)])

    def test_overlap_rejected(self):
        with pytest.raises(ConfigurationError):
            LevelTable([LevelBand("A", "A", "", 1, 40), LevelBand("B", "B", "", 40, 100)])

    def test_must_cover_full_range(self):
        with pytest.raises(ConfigurationError):
            LevelTable([LevelBand("A", "A", "", 5, 100)])
        with pytest.raises(ConfigurationError):
            LevelTable([LevelBand("A", "A", "", 1, 90)])

    def test_empty_rejected(self):
        with pytest.raises(ConfigurationError):
            LevelTable([])


class TestCalculationBreakdown:
    def test_both_sides(self):
        breakdown = explain_calculation(3.6, 3.4, 3.5, 70.0, DEFAULT_LEVELS[2])

        assert breakdown.combined_formula == (
            "Combined Score = (Self Assessment + Manager Assessment) ÷ 2"
        )
        assert breakdown.combined_expression == "(3.60 + 3.40) ÷ 2 = 3.50"
        assert breakdown.percentage_expression == "(3.50 ÷ 5) × 100 = 70.0%"
        assert breakdown.level_statement == (
            "Your score of 70.0% falls within the Production (Results) range (60% - 79%)"
        )

    def test_current_range_is_flagged(self):
        breakdown = explain_calculation(3.6, 3.4, 3.5, 70.0, DEFAULT_LEVELS[2])
        flags = [r.is_current for r in breakdown.level_ranges]
        assert flags == [False, False, True, False, False]

    def test_self_only(self):
        breakdown = explain_calculation(3.6, 0.0, 3.6, 72.0, DEFAULT_LEVELS[2])
        assert breakdown.combined_formula == "Combined Score = Self Assessment"
        assert breakdown.combined_expression == "3.60 = 3.60"

    def test_manager_only(self):
        breakdown = explain_calculation(0.0, 2.0, 2.0, 40.0, DEFAULT_LEVELS[1])
        assert breakdown.combined_formula == "Combined Score = Manager Assessment"

    def test_nothing_submitted(self):
        breakdown = explain_calculation(0.0, 0.0, 0.0, 0.0, DEFAULT_LEVELS.lowest)
        assert breakdown.combined_formula == "Combined Score = 0 (no assessments submitted)"
        assert breakdown.percentage_expression == "(0.00 ÷ 5) × 100 = 0.0%"

    def test_explain_result_uses_aggregate_values(self, catalog, make_entries):
        result = aggregate(make_entries((1, 5, 2)), catalog)
        breakdown = explain_result(result)
        assert breakdown.combined_expression == "(5.00 + 2.00) ÷ 2 = 3.50"
        assert breakdown.level == result.level
