"""
Contractor grading - tier classification and commission multipliers.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .errors import ValidationError
from .evaluations import EvaluationAggregator
from .models import Evaluation, EvaluationStats, GradeTier, WorkerGrade
from .policies import GradeMultiplierTable, GradeThresholds
from .utils import utc_now

# Tier hierarchy for comparison (higher = better)
TIER_HIERARCHY = {
    GradeTier.D: 0,
    GradeTier.C: 1,
    GradeTier.B: 2,
    GradeTier.A: 3,
}


class GradeClassifier:
    """Maps evaluation statistics to a tier, or None while data is insufficient."""

    def __init__(self, thresholds: GradeThresholds = None):
        self.thresholds = thresholds or GradeThresholds()

    def classify(self, stats: EvaluationStats) -> Optional[str]:
        """
        Classify a contractor.

        Rules (first match wins):
        - fewer than min_evaluations: None (not yet graded)
        - A: rating >= 4.5 AND evaluations >= 10 AND no recent negatives
        - B: rating >= 3.5 AND evaluations >= 5 AND at most 1 recent negative
        - C: rating >= 2.5
        - D: default

        Args:
            stats: Output of EvaluationAggregator.aggregate

        Returns:
            GradeTier constant or None
        """
        t = self.thresholds
        if stats.average_rating is None or stats.total_evaluations < t.min_evaluations:
            return None

        rating = stats.average_rating
        count = stats.total_evaluations
        negatives = stats.recent_negative_count

        if (rating >= t.a_min_rating and count >= t.a_min_evaluations
                and negatives <= t.a_max_recent_negative):
            return GradeTier.A
        if (rating >= t.b_min_rating and count >= t.b_min_evaluations
                and negatives <= t.b_max_recent_negative):
            return GradeTier.B
        if rating >= t.c_min_rating:
            return GradeTier.C
        return GradeTier.D


class GradeMultiplierResolver:
    """Resolves the platform commission multiplier for a tier."""

    def __init__(self, table: GradeMultiplierTable = None):
        self.table = table or GradeMultiplierTable()

    def multiplier_for(self, tier: Optional[str]) -> Decimal:
        if tier is not None and tier not in TIER_HIERARCHY:
            raise ValidationError('tier', f'unknown grade tier {tier!r}')
        return self.table.for_tier(tier)


def recalculate_worker_grade(
    worker_id: str,
    evaluations: Iterable[Evaluation],
    now: datetime = None,
    aggregator: EvaluationAggregator = None,
    classifier: GradeClassifier = None
) -> WorkerGrade:
    """
    Rebuild a contractor's grade from the full evaluation set.

    Used by both the evaluation stream trigger and the scheduled
    recalculation, so recency-window expiry is picked up either way.
    """
    now = now or utc_now()
    aggregator = aggregator or EvaluationAggregator()
    classifier = classifier or GradeClassifier()

    stats = aggregator.aggregate(evaluations, now=now)
    return WorkerGrade(
        worker_id=worker_id,
        tier=classifier.classify(stats),
        average_rating=stats.average_rating,
        total_evaluations=stats.total_evaluations,
        recent_negative_count=stats.recent_negative_count,
        last_recalculated_at=now,
    )


def _ratio(current, required) -> float:
    if required <= 0:
        return 1.0
    return min(float(current) / float(required), 1.0)


def grade_progress(stats: EvaluationStats, tier: Optional[str], thresholds: GradeThresholds = None) -> dict:
    """
    Get progress information toward the next tier.

    Args:
        stats: Current evaluation statistics
        tier: Current tier (None if not yet graded)
        thresholds: Tier requirements

    Returns:
        Dict with the next tier, each requirement and an overall percentage
    """
    t = thresholds or GradeThresholds()
    rating = stats.average_rating if stats.average_rating is not None else Decimal('0')
    count = stats.total_evaluations
    negatives = stats.recent_negative_count

    if tier == GradeTier.A:
        return {
            'current_tier': tier,
            'next_tier': None,
            'progress_pct': 100.0,
            'requirements_met': True,
            'requirements': []
        }

    if tier is None:
        next_tier = None
        requirements = [
            {'name': 'totalEvaluations', 'required': t.min_evaluations, 'current': count,
             'progress': _ratio(count, t.min_evaluations)},
        ]
    elif tier == GradeTier.D:
        next_tier = GradeTier.C
        requirements = [
            {'name': 'averageRating', 'required': t.c_min_rating, 'current': rating,
             'progress': _ratio(rating, t.c_min_rating)},
        ]
    else:
        if tier == GradeTier.C:
            next_tier = GradeTier.B
            min_rating, min_count, max_negative = t.b_min_rating, t.b_min_evaluations, t.b_max_recent_negative
        else:
            next_tier = GradeTier.A
            min_rating, min_count, max_negative = t.a_min_rating, t.a_min_evaluations, t.a_max_recent_negative
        requirements = [
            {'name': 'averageRating', 'required': min_rating, 'current': rating,
             'progress': _ratio(rating, min_rating)},
            {'name': 'totalEvaluations', 'required': min_count, 'current': count,
             'progress': _ratio(count, min_count)},
            {'name': 'recentNegativeCount', 'required': max_negative, 'current': negatives,
             'progress': 1.0 if negatives <= max_negative else 0.0},
        ]

    for requirement in requirements:
        requirement['met'] = requirement['progress'] >= 1.0

    progress = sum(r['progress'] for r in requirements) / len(requirements) * 100
    return {
        'current_tier': tier,
        'next_tier': next_tier,
        'progress_pct': round(progress, 1),
        'requirements_met': all(r['met'] for r in requirements),
        'requirements': requirements
    }
