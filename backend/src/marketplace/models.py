"""
Data models and status constants for the installation marketplace.
Based on the work order lifecycle: Registered → Assigned → InProgress → Completed (or Cancelled)
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from .utils import format_timestamp, parse_timestamp


class WorkOrderStatus:
    """Work order lifecycle statuses."""
    REGISTERED = 'registered'
    ASSIGNED = 'assigned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class GradeTier:
    """Contractor grade tiers, best first."""
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'


class RecentTrend:
    """Direction of a contractor's latest evaluations against older ones."""
    IMPROVING = 'improving'
    DECLINING = 'declining'
    STABLE = 'stable'


def to_decimal(value: Any, default: str = '0') -> Decimal:
    """Convert DynamoDB / JSON numbers to Decimal without float artifacts."""
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def _rating(value: Any) -> Any:
    """Stored rating as int when whole; anything else stays an exact Decimal."""
    rating = to_decimal(value)
    return int(rating) if rating.is_finite() and rating % 1 == 0 else rating


@dataclass(frozen=True)
class WorkOrder:
    """A single installation job posted by a seller."""
    work_order_id: str
    base_fee: Any
    urgent_fee_base_percent: Decimal
    urgent_fee_max_percent: Decimal
    discount_percent: Decimal
    tax_percent: Decimal
    platform_fee_base_percent: Decimal
    created_at: datetime
    status: str = WorkOrderStatus.REGISTERED
    seller_id: Optional[str] = None
    assigned_worker_id: Optional[str] = None
    urgent_fee_enabled: bool = True
    # Set when a contractor takes the job; the urgent fee stops rising there
    assigned_at: Optional[datetime] = None
    urgent_fee_locked_percent: Optional[Decimal] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'WorkOrder':
        base_percent = to_decimal(item.get('urgentFeeBasePercent'))
        base_fee = item.get('baseFee', 0)
        if isinstance(base_fee, Decimal) and base_fee % 1 == 0:
            base_fee = int(base_fee)
        return cls(
            work_order_id=item.get('workOrderId', ''),
            base_fee=base_fee,
            urgent_fee_base_percent=base_percent,
            urgent_fee_max_percent=to_decimal(item.get('urgentFeeMaxPercent'), str(base_percent)),
            discount_percent=to_decimal(item.get('discountPercent')),
            tax_percent=to_decimal(item.get('taxPercent')),
            platform_fee_base_percent=to_decimal(item.get('platformFeeBasePercent')),
            created_at=parse_timestamp(item['createdAt']),
            status=item.get('status', WorkOrderStatus.REGISTERED),
            seller_id=item.get('sellerId'),
            assigned_worker_id=item.get('assignedWorkerId'),
            urgent_fee_enabled=bool(item.get('urgentFeeEnabled', True)),
            assigned_at=parse_timestamp(item['assignedAt']) if item.get('assignedAt') else None,
            urgent_fee_locked_percent=_optional_decimal(item.get('urgentFeeLockedPercent')),
        )


@dataclass(frozen=True)
class Evaluation:
    """A seller's or customer's rating of a contractor after a completed job."""
    target_worker_id: str
    evaluator_id: str
    work_order_id: str
    category_ratings: Dict[str, int]
    comment: str
    created_at: datetime
    evaluation_id: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'Evaluation':
        ratings = item.get('categoryRatings') or {}
        return cls(
            evaluation_id=item.get('evaluationId'),
            target_worker_id=item.get('targetWorkerId', ''),
            evaluator_id=item.get('evaluatorId', ''),
            work_order_id=item.get('workOrderId', ''),
            category_ratings={k: _rating(v) for k, v in ratings.items()},
            comment=item.get('comment', ''),
            created_at=parse_timestamp(item['createdAt']),
        )

    def to_item(self) -> Dict[str, Any]:
        return {
            'evaluationId': self.evaluation_id,
            'targetWorkerId': self.target_worker_id,
            'evaluatorId': self.evaluator_id,
            'workOrderId': self.work_order_id,
            'categoryRatings': dict(self.category_ratings),
            'comment': self.comment,
            'createdAt': format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class EvaluationStats:
    """Aggregated view of a contractor's evaluation history."""
    average_rating: Optional[Decimal]
    total_evaluations: int
    recent_negative_count: int = 0
    category_averages: Dict[str, Decimal] = field(default_factory=dict)
    recent_trend: str = RecentTrend.STABLE
    trend_change: Decimal = Decimal('0')


@dataclass(frozen=True)
class WorkerGrade:
    """Derived grade record, one per contractor, overwritten on every recalculation."""
    worker_id: str
    tier: Optional[str]
    average_rating: Optional[Decimal]
    total_evaluations: int
    last_recalculated_at: datetime
    recent_negative_count: int = 0

    @property
    def is_graded(self) -> bool:
        return self.tier is not None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'WorkerGrade':
        return cls(
            worker_id=item.get('workerId', ''),
            tier=item.get('tier'),
            average_rating=_optional_decimal(item.get('averageRating')),
            total_evaluations=int(item.get('totalEvaluations', 0)),
            recent_negative_count=int(item.get('recentNegativeCount', 0)),
            last_recalculated_at=parse_timestamp(item['lastRecalculatedAt']),
        )

    def to_item(self) -> Dict[str, Any]:
        return {
            'workerId': self.worker_id,
            'tier': self.tier,
            'averageRating': self.average_rating,
            'totalEvaluations': self.total_evaluations,
            'recentNegativeCount': self.recent_negative_count,
            'lastRecalculatedAt': format_timestamp(self.last_recalculated_at),
        }


@dataclass(frozen=True)
class PaymentBreakdown:
    """Full price breakdown for a work order. Amounts are whole currency units."""
    work_order_id: str
    base_fee: int
    discount_percent: Decimal
    discount_amount: int
    discounted_base_fee: int
    urgent_fee_percent: Decimal
    urgent_fee_amount: int
    total_fee: int
    platform_fee_base_percent: Decimal
    grade_tier: Optional[str]
    grade_multiplier: Decimal
    platform_fee_percent: Decimal
    platform_fee_amount: int
    worker_payment: int
    tax_percent: Decimal
    tax_amount: int
    customer_total_payment: int
    calculated_at: datetime

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> 'PaymentBreakdown':
        def amount(key):
            return int(item.get(key, 0))

        return cls(
            work_order_id=item.get('workOrderId', ''),
            base_fee=amount('baseFee'),
            discount_percent=to_decimal(item.get('discountPercent')),
            discount_amount=amount('discountAmount'),
            discounted_base_fee=amount('discountedBaseFee'),
            urgent_fee_percent=to_decimal(item.get('urgentFeePercent')),
            urgent_fee_amount=amount('urgentFeeAmount'),
            total_fee=amount('totalFee'),
            platform_fee_base_percent=to_decimal(item.get('platformFeeBasePercent')),
            grade_tier=item.get('gradeTier'),
            grade_multiplier=to_decimal(item.get('gradeMultiplier'), '1'),
            platform_fee_percent=to_decimal(item.get('platformFeePercent')),
            platform_fee_amount=amount('platformFeeAmount'),
            worker_payment=amount('workerPayment'),
            tax_percent=to_decimal(item.get('taxPercent')),
            tax_amount=amount('taxAmount'),
            customer_total_payment=amount('customerTotalPayment'),
            calculated_at=parse_timestamp(item['calculatedAt']),
        )

    def to_item(self) -> Dict[str, Any]:
        return {
            'workOrderId': self.work_order_id,
            'baseFee': self.base_fee,
            'discountPercent': self.discount_percent,
            'discountAmount': self.discount_amount,
            'discountedBaseFee': self.discounted_base_fee,
            'urgentFeePercent': self.urgent_fee_percent,
            'urgentFeeAmount': self.urgent_fee_amount,
            'totalFee': self.total_fee,
            'platformFeeBasePercent': self.platform_fee_base_percent,
            'gradeTier': self.grade_tier,
            'gradeMultiplier': self.grade_multiplier,
            'platformFeePercent': self.platform_fee_percent,
            'platformFeeAmount': self.platform_fee_amount,
            'workerPayment': self.worker_payment,
            'taxPercent': self.tax_percent,
            'taxAmount': self.tax_amount,
            'customerTotalPayment': self.customer_total_payment,
            'calculatedAt': format_timestamp(self.calculated_at),
        }
