"""
Evaluation validation and aggregation.

A contractor's statistics are always rebuilt from the full evaluation set.
Means are accumulated as exact fractions so the result does not depend on
the order the store returns evaluations in.
"""
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ValidationError
from .models import Evaluation, EvaluationStats, RecentTrend, to_decimal
from .utils import utc_now

MIN_RATING = 1
MAX_RATING = 5
MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 500

ONE_DECIMAL = Decimal('0.1')


def evaluation_average(evaluation: Evaluation) -> Optional[Fraction]:
    """Mean of one evaluation's category ratings, or None when it has no categories."""
    ratings = list(evaluation.category_ratings.values())
    if not ratings:
        return None
    return sum((Fraction(r) for r in ratings), Fraction(0)) / len(ratings)


def round_rating(value: Fraction) -> Decimal:
    """Round an exact rating to one decimal place, half-up."""
    exact = Decimal(value.numerator) / Decimal(value.denominator)
    return exact.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def _mean(values: List[Fraction]) -> Fraction:
    return sum(values, Fraction(0)) / len(values)


class EvaluationAggregator:
    """Folds a contractor's evaluation history into grading statistics."""

    def __init__(
        self,
        recent_window_days: int = 90,
        negative_rating_threshold=Decimal('3.0'),
        trend_sample_size: int = 5,
        trend_threshold=Decimal('0.5')
    ):
        self.recent_window = timedelta(days=recent_window_days)
        self.negative_rating_threshold = Fraction(to_decimal(negative_rating_threshold))
        self.trend_sample_size = trend_sample_size
        self.trend_threshold = Fraction(to_decimal(trend_threshold))

    def aggregate(self, evaluations: Iterable[Evaluation], now: datetime = None) -> EvaluationStats:
        """
        Aggregate one contractor's evaluations.

        Args:
            evaluations: All evaluations of the contractor, any order
            now: Reference time for the recency window (defaults to current UTC time)

        Returns:
            EvaluationStats; average_rating is None when nothing could be considered
        """
        now = now or utc_now()

        considered: List[Tuple[Evaluation, Fraction]] = []
        for evaluation in evaluations:
            average = evaluation_average(evaluation)
            if average is not None:
                considered.append((evaluation, average))

        if not considered:
            return EvaluationStats(average_rating=None, total_evaluations=0)

        averages = [average for _, average in considered]
        window_start = now - self.recent_window
        recent_negative = sum(
            1 for evaluation, average in considered
            if evaluation.created_at >= window_start and average < self.negative_rating_threshold
        )
        trend, change = self._recent_trend(considered)

        return EvaluationStats(
            average_rating=round_rating(_mean(averages)),
            total_evaluations=len(considered),
            recent_negative_count=recent_negative,
            category_averages=self._category_averages(considered),
            recent_trend=trend,
            trend_change=round_rating(change),
        )

    def _category_averages(self, considered: List[Tuple[Evaluation, Fraction]]) -> Dict[str, Decimal]:
        totals: Dict[str, List[Fraction]] = {}
        for evaluation, _ in considered:
            for category, rating in evaluation.category_ratings.items():
                totals.setdefault(category, []).append(Fraction(rating))
        return {
            category: round_rating(_mean(values))
            for category, values in sorted(totals.items())
        }

    def _recent_trend(self, considered: List[Tuple[Evaluation, Fraction]]) -> Tuple[str, Fraction]:
        # Latest N evaluations against everything older; ties broken on content
        ordered = sorted(
            considered,
            key=lambda pair: (pair[0].created_at, pair[1], pair[0].evaluation_id or '')
        )
        if len(ordered) <= self.trend_sample_size:
            return RecentTrend.STABLE, Fraction(0)

        recent = [average for _, average in ordered[-self.trend_sample_size:]]
        older = [average for _, average in ordered[:-self.trend_sample_size]]
        change = _mean(recent) - _mean(older)

        if change > self.trend_threshold:
            return RecentTrend.IMPROVING, change
        if change < -self.trend_threshold:
            return RecentTrend.DECLINING, change
        return RecentTrend.STABLE, change


def validate_evaluation(evaluation: Evaluation) -> None:
    """
    Submission-time checks for a new evaluation.

    Raises:
        ValidationError: identifying the first offending field
    """
    for field_name in ('target_worker_id', 'evaluator_id', 'work_order_id'):
        if not getattr(evaluation, field_name):
            raise ValidationError(field_name, 'is required')

    if evaluation.target_worker_id == evaluation.evaluator_id:
        raise ValidationError('evaluator_id', 'contractors cannot evaluate themselves')

    if not evaluation.category_ratings:
        raise ValidationError('category_ratings', 'at least one category rating is required')

    for category, rating in evaluation.category_ratings.items():
        if not isinstance(category, str) or not category.strip():
            raise ValidationError('category_ratings', 'category names must be non-empty strings')
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError(f'category_ratings.{category}', 'rating must be an integer')
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f'category_ratings.{category}',
                f'rating must be between {MIN_RATING} and {MAX_RATING}'
            )

    comment = (evaluation.comment or '').strip()
    if not MIN_COMMENT_LENGTH <= len(comment) <= MAX_COMMENT_LENGTH:
        raise ValidationError(
            'comment',
            f'comment must be {MIN_COMMENT_LENGTH}-{MAX_COMMENT_LENGTH} characters'
        )


def has_already_evaluated(
    existing: Iterable[Evaluation],
    target_worker_id: str,
    evaluator_id: str,
    work_order_id: str
) -> bool:
    """True if the evaluator already rated this contractor for this work order."""
    return any(
        e.target_worker_id == target_worker_id
        and e.evaluator_id == evaluator_id
        and e.work_order_id == work_order_id
        for e in existing
    )
