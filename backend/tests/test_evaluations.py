"""
Tests for evaluation aggregation and submission checks.
"""
import itertools
from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.errors import ValidationError
from marketplace.evaluations import (
    EvaluationAggregator,
    has_already_evaluated,
    validate_evaluation,
)
from marketplace.grading import GradeClassifier
from marketplace.models import Evaluation, RecentTrend
from marketplace.utils import format_timestamp


@pytest.fixture
def aggregator():
    return EvaluationAggregator()


class TestAggregate:
    """Average rating, counts and exclusions."""

    def test_worked_example_below_minimum_sample(self, aggregator, make_evaluation, now):
        evaluations = [make_evaluation(5), make_evaluation(4), make_evaluation(3)]
        stats = aggregator.aggregate(evaluations, now=now)

        assert stats.average_rating == Decimal('4.0')
        assert stats.total_evaluations == 3
        assert stats.recent_negative_count == 0
        assert GradeClassifier().classify(stats) is None

    def test_mean_of_per_evaluation_means(self, aggregator, make_evaluation, now):
        # per-evaluation means 4.5 and 4 -> 4.25 -> 4.3 (half-up)
        evaluations = [
            make_evaluation({'quality': 4, 'punctuality': 5}),
            make_evaluation({'quality': 4, 'punctuality': 4, 'communication': 4}),
        ]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.average_rating == Decimal('4.3')
        assert stats.total_evaluations == 2

    def test_repeating_means_round_to_one_decimal(self, aggregator, make_evaluation, now):
        stats = aggregator.aggregate([make_evaluation({'quality': 4, 'punctuality': 4, 'costSaving': 5})], now=now)
        assert stats.average_rating == Decimal('4.3')

    def test_empty_input_has_no_average(self, aggregator, now):
        stats = aggregator.aggregate([], now=now)
        assert stats.average_rating is None
        assert stats.total_evaluations == 0

    def test_evaluations_without_categories_are_excluded(self, aggregator, make_evaluation, now):
        evaluations = [make_evaluation({}), make_evaluation(4), make_evaluation({})]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.total_evaluations == 1
        assert stats.average_rating == Decimal('4.0')

    def test_only_empty_evaluations(self, aggregator, make_evaluation, now):
        stats = aggregator.aggregate([make_evaluation({})], now=now)
        assert stats.average_rating is None
        assert stats.total_evaluations == 0

    def test_order_independent(self, aggregator, make_evaluation, now):
        evaluations = [
            make_evaluation({'quality': 5, 'punctuality': 4}, days_ago=3),
            make_evaluation({'quality': 2}, days_ago=10),
            make_evaluation({'quality': 3, 'communication': 4, 'costSaving': 4}, days_ago=200),
            make_evaluation(1, days_ago=5),
            make_evaluation(5, days_ago=40),
        ]
        expected = aggregator.aggregate(evaluations, now=now)
        for permutation in itertools.permutations(evaluations):
            assert aggregator.aggregate(list(permutation), now=now) == expected

    def test_stored_fractional_ratings_kept_exact(self, aggregator, now):
        evaluation = Evaluation.from_item({
            'evaluationId': 'wo-1#seller-1#worker-1',
            'targetWorkerId': 'worker-1',
            'evaluatorId': 'seller-1',
            'workOrderId': 'wo-1',
            'categoryRatings': {'quality': Decimal('4.5'), 'punctuality': Decimal('5')},
            'createdAt': format_timestamp(now - timedelta(days=2)),
        })
        assert evaluation.category_ratings == {'quality': Decimal('4.5'), 'punctuality': 5}
        assert isinstance(evaluation.category_ratings['punctuality'], int)

        stats = aggregator.aggregate([evaluation], now=now)
        assert stats.average_rating == Decimal('4.8')
        assert stats.category_averages == {'punctuality': Decimal('5.0'), 'quality': Decimal('4.5')}


class TestRecentNegatives:
    """Negative evaluations inside the recency window."""

    def test_counts_only_recent_below_threshold(self, aggregator, make_evaluation, now):
        evaluations = [
            make_evaluation(2, days_ago=10),
            make_evaluation(1, days_ago=89),
            make_evaluation(2, days_ago=91),
            make_evaluation(3, days_ago=5),
            make_evaluation(5, days_ago=1),
        ]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.recent_negative_count == 2

    def test_window_boundary_is_inclusive(self, aggregator, make_evaluation, now):
        stats = aggregator.aggregate([make_evaluation(2, days_ago=90)], now=now)
        assert stats.recent_negative_count == 1

    def test_negative_ages_out_as_time_passes(self, aggregator, make_evaluation, now):
        evaluations = [make_evaluation(2, days_ago=10)]
        assert aggregator.aggregate(evaluations, now=now).recent_negative_count == 1
        later = now + timedelta(days=81)
        assert aggregator.aggregate(evaluations, now=later).recent_negative_count == 0

    def test_configurable_window_and_threshold(self, make_evaluation, now):
        aggregator = EvaluationAggregator(recent_window_days=7, negative_rating_threshold=Decimal('4.0'))
        evaluations = [make_evaluation(3, days_ago=3), make_evaluation(3, days_ago=30), make_evaluation(4)]
        assert aggregator.aggregate(evaluations, now=now).recent_negative_count == 1


class TestCategoryAveragesAndTrend:
    """Supplementary statistics for the contractor profile."""

    def test_category_averages(self, aggregator, make_evaluation, now):
        evaluations = [
            make_evaluation({'quality': 5, 'punctuality': 3}),
            make_evaluation({'quality': 4}),
        ]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.category_averages == {'punctuality': Decimal('3.0'), 'quality': Decimal('4.5')}

    def test_improving_trend(self, aggregator, make_evaluation, now):
        evaluations = [make_evaluation(1, days_ago=60)] + [make_evaluation(5, days_ago=d) for d in range(1, 6)]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.recent_trend == RecentTrend.IMPROVING
        assert stats.trend_change == Decimal('4.0')

    def test_declining_trend(self, aggregator, make_evaluation, now):
        evaluations = [make_evaluation(5, days_ago=60)] + [make_evaluation(3, days_ago=d) for d in range(1, 6)]
        stats = aggregator.aggregate(evaluations, now=now)
        assert stats.recent_trend == RecentTrend.DECLINING
        assert stats.trend_change == Decimal('-2.0')

    def test_stable_when_history_too_short(self, aggregator, make_evaluation, now):
        stats = aggregator.aggregate([make_evaluation(1), make_evaluation(5)], now=now)
        assert stats.recent_trend == RecentTrend.STABLE
        assert stats.trend_change == Decimal('0.0')


class TestValidateEvaluation:
    """Submission-time checks."""

    def test_valid_evaluation(self, make_evaluation):
        validate_evaluation(make_evaluation())

    @pytest.mark.parametrize('ratings,field', [
        ({}, 'category_ratings'),
        ({'quality': 0}, 'category_ratings.quality'),
        ({'quality': 6}, 'category_ratings.quality'),
        ({'quality': 4.5}, 'category_ratings.quality'),
        ({'quality': '5'}, 'category_ratings.quality'),
        ({'quality': True}, 'category_ratings.quality'),
        ({'': 3}, 'category_ratings'),
    ])
    def test_invalid_ratings(self, make_evaluation, ratings, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_evaluation(make_evaluation(ratings))
        assert exc_info.value.field == field

    @pytest.mark.parametrize('comment', ['', 'too short', '   short   ', 'x' * 501])
    def test_comment_length(self, make_evaluation, comment):
        with pytest.raises(ValidationError) as exc_info:
            validate_evaluation(make_evaluation(comment=comment))
        assert exc_info.value.field == 'comment'

    def test_comment_length_bounds_accepted(self, make_evaluation):
        validate_evaluation(make_evaluation(comment='x' * 10))
        validate_evaluation(make_evaluation(comment='x' * 500))

    def test_missing_target(self, make_evaluation):
        with pytest.raises(ValidationError) as exc_info:
            validate_evaluation(make_evaluation(worker_id=''))
        assert exc_info.value.field == 'target_worker_id'

    def test_self_evaluation_rejected(self, make_evaluation):
        with pytest.raises(ValidationError):
            validate_evaluation(make_evaluation(worker_id='w-1', evaluator_id='w-1'))


class TestHasAlreadyEvaluated:
    """One evaluation per (contractor, evaluator, work order)."""

    def test_detects_same_triple(self, make_evaluation):
        existing = [make_evaluation(evaluator_id='seller-9', work_order_id='wo-9')]
        assert has_already_evaluated(existing, 'worker-1', 'seller-9', 'wo-9')

    def test_other_work_order_allowed(self, make_evaluation):
        existing = [make_evaluation(evaluator_id='seller-9', work_order_id='wo-9')]
        assert not has_already_evaluated(existing, 'worker-1', 'seller-9', 'wo-10')
        assert not has_already_evaluated(existing, 'worker-2', 'seller-9', 'wo-9')
        assert not has_already_evaluated([], 'worker-1', 'seller-9', 'wo-9')
