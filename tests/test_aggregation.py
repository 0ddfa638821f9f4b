import math

import pytest

from leadership360.domain.catalog import get_catalog
from leadership360.domain.levels import DEFAULT_LEVELS
from leadership360.domain.models import Category, ScoreEntry
from leadership360.domain.services import SIGNIFICANT_GAP_THRESHOLD, aggregate
from leadership360.infrastructure.exceptions import ConfigurationError


class TestScenarios:
    def test_five_category_example_lands_in_production(self, catalog, make_entries):
        # one question per category: leader [4,3,5,2,4], manager [3,3,4,2,5]
        result = aggregate(
            make_entries((1, 4, 3), (11, 3, 3), (21, 5, 4), (31, 2, 2), (41, 4, 5)), catalog
        )

        assert result.leader_scores == (4, 3, 5, 2, 4)
        assert result.manager_scores == (3, 3, 4, 2, 5)
        assert result.self_score == pytest.approx(3.6)
        assert result.manager_score == pytest.approx(3.4)
        assert result.combined_score == pytest.approx(3.5)
        assert result.percentage == pytest.approx(70.0)
        assert result.level.label == "Production (Results)"

    def test_five_category_example_rankings(self, catalog, make_entries):
        result = aggregate(
            make_entries((1, 4, 3), (11, 3, 3), (21, 5, 4), (31, 2, 2), (41, 4, 5)), catalog
        )

        # ties keep catalog order: Production before Pinnacle
        assert [r.category for r in result.strengths] == [
            Category.PRODUCTION,
            Category.PINNACLE,
            Category.POSITION,
        ]
        assert [r.category for r in result.opportunities] == [
            Category.PEOPLE_DEVELOPMENT,
            Category.PERMISSION,
            Category.POSITION,
        ]
        # zero-gap categories are excluded
        assert [r.category for r in result.category_gaps] == [
            Category.POSITION,
            Category.PRODUCTION,
            Category.PINNACLE,
        ]
        assert result.significant_gaps == ()

    def test_single_entry_with_significant_gap(self, catalog, make_entries):
        result = aggregate(make_entries((1, 5, 2)), catalog)

        assert len(result.significant_gaps) == 1
        gap = result.significant_gaps[0]
        assert gap.question_id == 1
        assert gap.gap == 3
        assert gap.category == Category.POSITION
        assert gap.question == catalog.get_question(1).text
        assert (gap.leader_score, gap.manager_score) == (5, 2)
        assert result.combined_score == pytest.approx(3.5)
        assert result.percentage == pytest.approx(70.0)

    def test_self_only_is_not_halved(self, catalog):
        entries = [ScoreEntry(q.id, 4, None) for q in catalog.all_questions()]
        result = aggregate(entries, catalog)

        assert result.leader_answered == 50
        assert result.manager_answered == 0
        assert result.manager_score == 0
        assert result.combined_score == result.self_score == 4
        assert result.percentage == pytest.approx(80.0)
        assert result.level.name == "People Development"
        assert result.category_gaps == ()

    def test_manager_only_uses_manager_score(self, catalog, make_entries):
        result = aggregate(make_entries((1, None, 3), (2, None, 5)), catalog)
        assert result.self_score == 0
        assert result.combined_score == 4
        assert result.percentage == pytest.approx(80.0)

    def test_no_entries_returns_zeroed_result(self, catalog):
        result = aggregate([], catalog)

        assert result.percentage == 0
        assert result.combined_score == 0
        assert result.level == DEFAULT_LEVELS.lowest
        assert result.strengths == ()
        assert result.opportunities == ()
        assert result.category_gaps == ()
        assert result.significant_gaps == ()
        assert all(score == 0 for score in result.leader_scores + result.manager_scores)
        assert len(result.categories) == 5


class TestProperties:
    def test_category_averages_within_scale_or_zero(self, catalog, make_entries):
        result = aggregate(make_entries((1, 1, 5), (2, 5, None), (12, None, 2)), catalog)
        for agg in result.category_aggregates:
            sides = ((agg.leader_avg, agg.leader_count), (agg.manager_avg, agg.manager_count))
            for avg, count in sides:
                if count:
                    assert 1 <= avg <= 5
                else:
                    assert avg == 0

    def test_significant_gap_threshold_is_exact(self, catalog, make_entries):
        result = aggregate(
            make_entries((1, 5, 4), (2, 5, 3), (3, 1, 5), (4, 5, None), (5, None, 1)), catalog
        )
        ids = [g.question_id for g in result.significant_gaps]
        assert ids == [2, 3]
        assert all(g.gap >= SIGNIFICANT_GAP_THRESHOLD for g in result.significant_gaps)

    def test_significant_gaps_follow_catalog_order(self, catalog, make_entries):
        result = aggregate(make_entries((21, 5, 1), (3, 1, 4), (12, 2, 5)), catalog)
        assert [g.question_id for g in result.significant_gaps] == [3, 12, 21]

    def test_aggregate_is_idempotent(self, catalog, make_entries):
        data = make_entries((1, 4, 2), (15, 3, 3), (27, 5, 1), (38, 2, None), (44, None, 4))
        assert aggregate(data, catalog) == aggregate(data, catalog)

    def test_strengths_and_opportunities_may_overlap(self, make_entries):
        v1 = get_catalog("v1")
        result = aggregate(make_entries((1, 3, 3), (11, 4, 4), (21, 5, 5)), v1)
        assert {r.category for r in result.strengths} == {r.category for r in result.opportunities}

    def test_pooled_category_average(self, catalog, make_entries):
        # leader 5,5 and manager 2 in the same category: pool = 4, not (5 + 2) / 2
        result = aggregate(make_entries((1, 5, 2), (2, 5, None)), catalog)
        position = result.category_aggregates[0]
        assert position.combined_avg == pytest.approx(4.0)
        assert result.strengths[0].avg_score == pytest.approx(4.0)

    def test_empty_categories_are_not_ranked(self, catalog, make_entries):
        result = aggregate(make_entries((1, 3, 3)), catalog)
        assert [r.category for r in result.strengths] == [Category.POSITION]
        assert [r.category for r in result.opportunities] == [Category.POSITION]

    def test_overall_is_flat_mean_not_mean_of_categories(self, catalog, make_entries):
        result = aggregate(make_entries((1, 5, None), (2, 5, None), (11, 2, None)), catalog)
        assert result.self_score == pytest.approx(4.0)

    def test_top_n_limits_lists(self, catalog, make_entries):
        data = make_entries((1, 4, 3), (11, 3, 1), (21, 5, 4), (31, 2, 5), (41, 4, 5))
        result = aggregate(data, catalog, top_n=1)
        assert len(result.strengths) == 1
        assert len(result.opportunities) == 1
        assert len(result.category_gaps) == 1
        assert result.category_gaps[0].category == Category.PEOPLE_DEVELOPMENT

    def test_category_gaps_skip_one_sided_categories(self, catalog, make_entries):
        result = aggregate(make_entries((1, 5, 2), (11, 4, None), (21, None, 3)), catalog)
        assert [r.category for r in result.category_gaps] == [Category.POSITION]
        assert abs(result.category_gaps[0].gap) == pytest.approx(3.0)

    def test_invalid_top_n(self, catalog):
        with pytest.raises(ConfigurationError):
            aggregate([], catalog, top_n=0)

    def test_ranking_carries_question_breakdown(self, catalog, make_entries):
        result = aggregate(make_entries((1, 4, 2)), catalog)
        questions = result.strengths[0].questions
        assert len(questions) == 10
        assert (questions[0].leader_score, questions[0].manager_score) == (4, 2)
        assert questions[1].leader_score is None


class TestMalformedEntries:
    def test_unknown_question_is_dropped(self, catalog, make_entries):
        result = aggregate(make_entries((1, 4, 4), (999, 1, 5)), catalog)
        assert result.dropped_entries == 1
        assert result.leader_answered == 1
        assert result.significant_gaps == ()

    def test_out_of_range_scores_are_clamped(self, catalog, make_entries):
        result = aggregate(make_entries((1, 9, 0)), catalog)
        gap = result.significant_gaps[0]
        assert (gap.leader_score, gap.manager_score) == (5, 1)
        assert result.self_score == 5
        assert result.manager_score == 1

    def test_huge_integer_scores_are_clamped(self, catalog, make_entries):
        result = aggregate(make_entries((1, 10**400, 3)), catalog)
        gap = result.significant_gaps[0]
        assert (gap.leader_score, gap.manager_score) == (5, 3)
        assert result.self_score == 5

    def test_non_numeric_scores_count_as_missing(self, catalog, make_entries):
        result = aggregate(make_entries((1, "high", 3), (2, math.nan, 4)), catalog)
        assert result.leader_answered == 0
        assert result.manager_answered == 2
        assert result.combined_score == pytest.approx(3.5)

    def test_entries_for_other_catalog_version(self, make_entries):
        v1 = get_catalog("v1")
        result = aggregate(make_entries((1, 4, 4), (45, 5, 5)), v1)
        assert result.dropped_entries == 1
        assert result.categories == v1.categories
