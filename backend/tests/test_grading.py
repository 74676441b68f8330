"""
Tests for grade classification, multipliers and recalculation.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.errors import ValidationError
from marketplace.evaluations import EvaluationAggregator
from marketplace.grading import (
    GradeClassifier,
    GradeMultiplierResolver,
    grade_progress,
    recalculate_worker_grade,
)
from marketplace.models import EvaluationStats, GradeTier
from marketplace.policies import GradeMultiplierTable, GradeThresholds


def stats(rating, count, negatives=0):
    return EvaluationStats(
        average_rating=Decimal(rating) if rating is not None else None,
        total_evaluations=count,
        recent_negative_count=negatives,
    )


@pytest.fixture
def classifier():
    return GradeClassifier()


class TestClassify:
    """Top-down tier thresholds."""

    @pytest.mark.parametrize('rating,count,negatives,expected', [
        ('4.5', 10, 0, GradeTier.A),
        ('5.0', 50, 0, GradeTier.A),
        ('4.5', 9, 0, GradeTier.B),
        ('4.9', 10, 1, GradeTier.B),
        ('4.4', 10, 0, GradeTier.B),
        ('3.5', 5, 1, GradeTier.B),
        ('4.9', 12, 2, GradeTier.C),
        ('3.4', 20, 0, GradeTier.C),
        ('2.5', 5, 0, GradeTier.C),
        ('2.4', 5, 0, GradeTier.D),
        ('1.0', 30, 5, GradeTier.D),
    ])
    def test_thresholds(self, classifier, rating, count, negatives, expected):
        assert classifier.classify(stats(rating, count, negatives)) == expected

    @pytest.mark.parametrize('rating', ['5.0', '3.0', '1.0'])
    @pytest.mark.parametrize('count', [0, 1, 4])
    def test_insufficient_sample_is_ungraded(self, classifier, rating, count):
        assert classifier.classify(stats(rating, count)) is None

    def test_no_average_is_ungraded(self, classifier):
        assert classifier.classify(stats(None, 0)) is None

    def test_custom_thresholds(self):
        classifier = GradeClassifier(GradeThresholds(min_evaluations=1, a_min_evaluations=1))
        assert classifier.classify(stats('4.8', 1)) == GradeTier.A

    def test_invalid_thresholds_rejected(self):
        with pytest.raises(ValidationError):
            GradeThresholds(a_min_rating=Decimal('3.0'))
        with pytest.raises(ValidationError):
            GradeThresholds(min_evaluations=-1)


class TestRecencyDemotion:
    """Recent negatives override the lifetime average."""

    def test_recent_negative_demotes_a_to_b(self, make_evaluation, now):
        evaluations = [make_evaluation(5, days_ago=100 + i) for i in range(11)]
        evaluations.append(make_evaluation(2, days_ago=10))

        grade = recalculate_worker_grade('worker-1', evaluations, now=now)

        assert grade.average_rating == Decimal('4.8')
        assert grade.recent_negative_count == 1
        assert grade.tier == GradeTier.B

    def test_promotion_when_negative_ages_out(self, make_evaluation, now):
        evaluations = [make_evaluation(5, days_ago=100 + i) for i in range(11)]
        evaluations.append(make_evaluation(2, days_ago=10))

        later = now + timedelta(days=81)
        grade = recalculate_worker_grade('worker-1', evaluations, now=later)

        assert grade.recent_negative_count == 0
        assert grade.tier == GradeTier.A
        assert grade.last_recalculated_at == later

    def test_two_recent_negatives_demote_to_c(self, make_evaluation, now):
        evaluations = [make_evaluation(5, days_ago=200) for _ in range(8)]
        evaluations += [make_evaluation(2, days_ago=3), make_evaluation(2, days_ago=4)]

        grade = recalculate_worker_grade('worker-1', evaluations, now=now)

        assert grade.average_rating == Decimal('4.4')
        assert grade.tier == GradeTier.C


class TestRecalculateWorkerGrade:
    """Full recomputation from the evaluation set."""

    def test_idempotent(self, make_evaluation, now):
        evaluations = [make_evaluation(r) for r in (5, 4, 4, 3, 5, 4)]
        aggregator = EvaluationAggregator()
        classifier = GradeClassifier()

        first = classifier.classify(aggregator.aggregate(evaluations, now=now))
        second = classifier.classify(aggregator.aggregate(evaluations, now=now))
        assert first == second == GradeTier.B

    def test_new_contractor_has_no_grade(self, now):
        grade = recalculate_worker_grade('worker-new', [], now=now)
        assert grade.tier is None
        assert not grade.is_graded
        assert grade.average_rating is None
        assert grade.total_evaluations == 0

    def test_worker_grade_item(self, make_evaluation, now):
        grade = recalculate_worker_grade('worker-1', [make_evaluation(4) for _ in range(5)], now=now)
        item = grade.to_item()
        assert item['workerId'] == 'worker-1'
        assert item['tier'] == GradeTier.B
        assert item['averageRating'] == Decimal('4.0')
        assert item['totalEvaluations'] == 5


class TestMultiplierResolver:
    """Tier to commission multiplier."""

    @pytest.mark.parametrize('tier,expected', [
        (GradeTier.A, Decimal('0.60')),
        (GradeTier.B, Decimal('0.80')),
        (GradeTier.C, Decimal('0.90')),
        (GradeTier.D, Decimal('1.00')),
        (None, Decimal('1.00')),
    ])
    def test_default_table(self, tier, expected):
        assert GradeMultiplierResolver().multiplier_for(tier) == expected

    def test_discount_never_decreases_with_better_tier(self):
        resolver = GradeMultiplierResolver()
        multipliers = [resolver.multiplier_for(t) for t in (None, GradeTier.D, GradeTier.C, GradeTier.B, GradeTier.A)]
        assert multipliers == sorted(multipliers, reverse=True)
        assert all(Decimal('0') < m <= Decimal('1') for m in multipliers)

    def test_unknown_tier(self):
        with pytest.raises(ValidationError):
            GradeMultiplierResolver().multiplier_for('E')

    @pytest.mark.parametrize('overrides', [
        {'a': Decimal('0')},
        {'d': Decimal('1.2')},
        {'a': Decimal('0.95')},
        {'b': Decimal('0.95')},
    ])
    def test_invalid_tables(self, overrides):
        with pytest.raises(ValidationError):
            GradeMultiplierTable(**overrides)


class TestGradeProgress:
    """Progress toward the next tier."""

    def test_top_tier(self):
        progress = grade_progress(stats('4.9', 30), GradeTier.A)
        assert progress['next_tier'] is None
        assert progress['progress_pct'] == 100.0

    def test_ungraded_needs_more_evaluations(self):
        progress = grade_progress(stats('4.0', 2), None)
        assert progress['requirements'][0]['name'] == 'totalEvaluations'
        assert progress['progress_pct'] == 40.0
        assert not progress['requirements_met']

    def test_b_to_a_blocked_by_recent_negative(self):
        progress = grade_progress(stats('4.6', 12, negatives=1), GradeTier.B)
        assert progress['next_tier'] == GradeTier.A
        unmet = [r['name'] for r in progress['requirements'] if not r['met']]
        assert unmet == ['recentNegativeCount']

    def test_d_to_c(self):
        progress = grade_progress(stats('2.0', 6), GradeTier.D)
        assert progress['next_tier'] == GradeTier.C
        assert progress['progress_pct'] == 80.0
