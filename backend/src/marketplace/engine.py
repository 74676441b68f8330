"""
Wiring between configuration, the pure pricing/grading components and the store.
"""
from datetime import datetime
from typing import Optional, Tuple

from . import store
from .config import Config, config
from .evaluations import EvaluationAggregator
from .grading import GradeClassifier, GradeMultiplierResolver, recalculate_worker_grade
from .logging import logger
from .models import WorkerGrade, to_decimal
from .payment import PaymentBreakdownCalculator
from .policies import (
    escalation_policy_from_config,
    grade_thresholds_from_config,
    multiplier_table_from_config,
)
from .utils import utc_now


def build_payment_calculator(cfg: Config = config) -> PaymentBreakdownCalculator:
    return PaymentBreakdownCalculator(
        escalation=escalation_policy_from_config(cfg),
        multipliers=GradeMultiplierResolver(multiplier_table_from_config(cfg)),
    )


def build_aggregator(cfg: Config = config) -> EvaluationAggregator:
    return EvaluationAggregator(
        recent_window_days=cfg.RECENT_WINDOW_DAYS,
        negative_rating_threshold=to_decimal(cfg.NEGATIVE_RATING_THRESHOLD),
    )


def build_classifier(cfg: Config = config) -> GradeClassifier:
    return GradeClassifier(grade_thresholds_from_config(cfg))


def refresh_worker_grade(
    worker_id: str,
    source: str,
    now: datetime = None,
    aggregator: EvaluationAggregator = None,
    classifier: GradeClassifier = None
) -> Tuple[Optional[WorkerGrade], WorkerGrade]:
    """
    Recompute and store a contractor's grade from the full evaluation set.

    Args:
        worker_id: Contractor to recompute
        source: What triggered the recomputation ('evaluation' or 'schedule')
        now: Reference time for the recency window

    Returns:
        (previous grade or None, new grade)
    """
    now = now or utc_now()
    evaluations = store.load_evaluations_for_worker(worker_id)
    previous = store.load_worker_grade(worker_id)

    grade = recalculate_worker_grade(
        worker_id,
        evaluations,
        now=now,
        aggregator=aggregator or build_aggregator(),
        classifier=classifier or build_classifier(),
    )
    store.save_worker_grade(grade)

    old_tier = previous.tier if previous else None
    if old_tier != grade.tier:
        store.record_grade_change(previous, grade, source)
        logger.info(f"Worker {worker_id} grade changed: {old_tier or 'ungraded'} -> {grade.tier or 'ungraded'}")

    logger.info(
        f"Worker {worker_id} grade recalculated: tier={grade.tier}, "
        f"average={grade.average_rating}, evaluations={grade.total_evaluations}"
    )
    return previous, grade
