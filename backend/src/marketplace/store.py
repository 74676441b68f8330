"""
Record-level reads and writes for work orders, evaluations, grades and payments.
"""
from typing import List, Optional

from boto3.dynamodb.conditions import Key

from . import dynamo
from .config import config
from .models import Evaluation, PaymentBreakdown, WorkOrder, WorkerGrade
from .utils import format_timestamp, utc_now


def load_work_order(work_order_id: str) -> Optional[WorkOrder]:
    item = dynamo.get_item(config.WORK_ORDERS_TABLE, {'workOrderId': work_order_id})
    return WorkOrder.from_item(item) if item else None


def load_worker_grade(worker_id: Optional[str]) -> Optional[WorkerGrade]:
    """Stored grade for a contractor, or None if never graded (or no contractor)."""
    if not worker_id:
        return None
    item = dynamo.get_item(config.WORKER_GRADES_TABLE, {'workerId': worker_id})
    return WorkerGrade.from_item(item) if item else None


def load_evaluations_for_worker(worker_id: str) -> List[Evaluation]:
    """Full evaluation history of one contractor (consistent snapshot per page)."""
    items = dynamo.query_all(
        config.EVALUATIONS_TABLE,
        key_condition=Key('targetWorkerId').eq(worker_id),
        index_name=config.EVALUATIONS_WORKER_INDEX,
    )
    return [Evaluation.from_item(item) for item in items]


def save_evaluation(evaluation: Evaluation) -> None:
    """Store a new evaluation; fails with ConditionalCheckFailedException on id reuse."""
    dynamo.put_item(
        config.EVALUATIONS_TABLE,
        evaluation.to_item(),
        condition_expression='attribute_not_exists(evaluationId)',
    )


def save_worker_grade(grade: WorkerGrade) -> None:
    """Overwrite the contractor's grade record (last write wins)."""
    dynamo.put_item(config.WORKER_GRADES_TABLE, grade.to_item())


def record_grade_change(old_grade: Optional[WorkerGrade], new_grade: WorkerGrade, source: str) -> None:
    """Append a grade change log entry to the grade history table."""
    dynamo.put_item(config.GRADE_HISTORY_TABLE, {
        'workerId': new_grade.worker_id,
        'changedAt': format_timestamp(new_grade.last_recalculated_at),
        'fromTier': old_grade.tier if old_grade else None,
        'toTier': new_grade.tier,
        'averageRating': new_grade.average_rating,
        'totalEvaluations': new_grade.total_evaluations,
        'recentNegativeCount': new_grade.recent_negative_count,
        'source': source,
    })


def save_payment_breakdown(breakdown: PaymentBreakdown, worker_id: Optional[str]) -> None:
    """
    Record a finalized breakdown once per work order.

    Raises:
        ClientError: ConditionalCheckFailedException if already recorded
    """
    item = breakdown.to_item()
    item['workerId'] = worker_id
    item['recordedAt'] = format_timestamp(utc_now())
    dynamo.put_item(
        config.PAYMENTS_TABLE,
        item,
        condition_expression='attribute_not_exists(workOrderId)',
    )


def load_payment_breakdowns() -> List[PaymentBreakdown]:
    return [PaymentBreakdown.from_item(item) for item in dynamo.scan_all(config.PAYMENTS_TABLE)]
