"""
Payment breakdown for work orders.

Stages run in a fixed order because each stage's rounding feeds the next:
urgent fee percent -> discounted base -> urgent amount -> total ->
grade-adjusted platform fee -> worker payment -> tax -> customer total.
Amounts are whole currency units rounded half-up; the worker payment is
a subtraction so platform fee + worker payment always equals the total.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from .errors import ValidationError
from .escalation import current_urgent_fee_percent
from .grading import GradeMultiplierResolver
from .models import PaymentBreakdown, WorkOrder, WorkOrderStatus, WorkerGrade, to_decimal
from .policies import EscalationPolicy
from .utils import utc_now

HUNDRED = Decimal('100')

PERCENT_FIELDS = (
    'urgent_fee_base_percent',
    'urgent_fee_max_percent',
    'discount_percent',
    'tax_percent',
    'platform_fee_base_percent',
)

# Advisory limits shown to sellers; not enforced
URGENT_FEE_WARNING_PERCENT = Decimal('30')
PLATFORM_FEE_WARNING_PERCENT = Decimal('20')


def round_half_up(value: Decimal) -> int:
    """Round to whole currency units, halves away from zero."""
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _percent_of(amount, percent: Decimal) -> Decimal:
    return Decimal(amount) * percent / HUNDRED


def validate_work_order(work_order: WorkOrder) -> None:
    """
    Reject out-of-domain fee parameters. Nothing is clamped.

    Raises:
        ValidationError: naming the first offending field
    """
    base_fee = work_order.base_fee
    if isinstance(base_fee, bool) or not isinstance(base_fee, (int, Decimal)):
        raise ValidationError('base_fee', 'must be a whole currency amount')
    if isinstance(base_fee, Decimal) and (not base_fee.is_finite() or base_fee % 1 != 0):
        raise ValidationError('base_fee', 'must be a whole currency amount')
    if base_fee < 0:
        raise ValidationError('base_fee', 'must not be negative')

    fields = PERCENT_FIELDS
    if work_order.urgent_fee_locked_percent is not None:
        fields += ('urgent_fee_locked_percent',)

    for field_name in fields:
        value = getattr(work_order, field_name)
        if isinstance(value, bool):
            raise ValidationError(field_name, 'must be a number')
        try:
            percent = to_decimal(value)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(field_name, 'must be a number')
        if percent.is_nan() or not Decimal('0') <= percent <= HUNDRED:
            raise ValidationError(field_name, 'must be between 0 and 100')


def payment_warnings(work_order: WorkOrder) -> List[str]:
    """Non-blocking advisories for a seller reviewing the price."""
    warnings = []
    if to_decimal(work_order.urgent_fee_base_percent) > URGENT_FEE_WARNING_PERCENT:
        warnings.append(
            f'Urgent fee exceeds {URGENT_FEE_WARNING_PERCENT}%; the customer may need to confirm it.'
        )
    if to_decimal(work_order.platform_fee_base_percent) > PLATFORM_FEE_WARNING_PERCENT:
        warnings.append(f'Platform fee exceeds {PLATFORM_FEE_WARNING_PERCENT}%.')
    return warnings


class PaymentBreakdownCalculator:
    """Computes PaymentBreakdown values. Holds configuration only, no state."""

    def __init__(
        self,
        escalation: Optional[EscalationPolicy] = None,
        multipliers: GradeMultiplierResolver = None
    ):
        self.escalation = escalation
        self.multipliers = multipliers or GradeMultiplierResolver()

    def urgent_fee_percent(self, work_order: WorkOrder, now: datetime) -> Decimal:
        """
        Urgent fee percentage at ``now``.

        The fee only rises while the work order is open. Once a contractor
        takes it, the percentage locked at assignment applies; without one,
        escalation is evaluated at the assignment time, or not at all when
        that is unknown.
        """
        base = to_decimal(work_order.urgent_fee_base_percent)
        if work_order.urgent_fee_locked_percent is not None:
            return to_decimal(work_order.urgent_fee_locked_percent)
        if self.escalation is None or not work_order.urgent_fee_enabled:
            return base
        if work_order.status != WorkOrderStatus.REGISTERED:
            if work_order.assigned_at is None:
                return base
            now = min(now, work_order.assigned_at)
        return current_urgent_fee_percent(
            base_percent=base,
            max_percent=work_order.urgent_fee_max_percent,
            created_at=work_order.created_at,
            now=now,
            interval_seconds=self.escalation.interval_seconds,
            increment_percent=self.escalation.increment_percent,
            start_delay_seconds=self.escalation.start_delay_seconds,
        )

    def compute_breakdown(
        self,
        work_order: WorkOrder,
        now: datetime = None,
        worker_grade: Optional[WorkerGrade] = None
    ) -> PaymentBreakdown:
        """
        Full payment breakdown for a work order.

        Args:
            work_order: The work order being priced
            now: Evaluation time for urgent fee escalation (defaults to current UTC time)
            worker_grade: Assigned contractor's grade; None pays the base commission

        Returns:
            PaymentBreakdown

        Raises:
            ValidationError: if any fee parameter is out of range
        """
        validate_work_order(work_order)
        now = now or utc_now()

        base_fee = int(work_order.base_fee)
        discount_percent = to_decimal(work_order.discount_percent)
        tax_percent = to_decimal(work_order.tax_percent)
        platform_base_percent = to_decimal(work_order.platform_fee_base_percent)

        urgent_percent = self.urgent_fee_percent(work_order, now)

        discounted_base_fee = round_half_up(_percent_of(base_fee, HUNDRED - discount_percent))
        if discounted_base_fee < 0:
            raise ValidationError('discount_percent', 'discount exceeds the base fee')

        # Urgency is charged on the original base fee, not the discounted one
        urgent_fee_amount = round_half_up(_percent_of(base_fee, urgent_percent))
        total_fee = discounted_base_fee + urgent_fee_amount

        tier = worker_grade.tier if worker_grade is not None else None
        multiplier = self.multipliers.multiplier_for(tier)
        platform_fee_percent = platform_base_percent * multiplier
        platform_fee_amount = round_half_up(_percent_of(total_fee, platform_fee_percent))
        worker_payment = total_fee - platform_fee_amount

        tax_amount = round_half_up(_percent_of(total_fee, tax_percent))
        customer_total_payment = total_fee + tax_amount

        return PaymentBreakdown(
            work_order_id=work_order.work_order_id,
            base_fee=base_fee,
            discount_percent=discount_percent,
            discount_amount=base_fee - discounted_base_fee,
            discounted_base_fee=discounted_base_fee,
            urgent_fee_percent=urgent_percent,
            urgent_fee_amount=urgent_fee_amount,
            total_fee=total_fee,
            platform_fee_base_percent=platform_base_percent,
            grade_tier=tier,
            grade_multiplier=multiplier,
            platform_fee_percent=platform_fee_percent,
            platform_fee_amount=platform_fee_amount,
            worker_payment=worker_payment,
            tax_percent=tax_percent,
            tax_amount=tax_amount,
            customer_total_payment=customer_total_payment,
            calculated_at=now,
        )


def summarize_platform_revenue(breakdowns: Iterable[PaymentBreakdown]) -> Dict[str, object]:
    """
    Platform revenue summary over recorded breakdowns.

    Args:
        breakdowns: Finalized payment breakdowns

    Returns:
        Dict of totals, the average platform fee per order, and the
        platform fee collected per grade tier ('ungraded' for None)
    """
    totals = {
        'totalOrders': 0,
        'totalFee': 0,
        'totalPlatformFee': 0,
        'totalWorkerPayment': 0,
        'totalTaxAmount': 0,
        'totalCustomerPayment': 0,
    }
    by_tier: Dict[str, int] = {}

    for breakdown in breakdowns:
        totals['totalOrders'] += 1
        totals['totalFee'] += breakdown.total_fee
        totals['totalPlatformFee'] += breakdown.platform_fee_amount
        totals['totalWorkerPayment'] += breakdown.worker_payment
        totals['totalTaxAmount'] += breakdown.tax_amount
        totals['totalCustomerPayment'] += breakdown.customer_total_payment
        tier_key = breakdown.grade_tier or 'ungraded'
        by_tier[tier_key] = by_tier.get(tier_key, 0) + breakdown.platform_fee_amount

    if totals['totalOrders']:
        average = round_half_up(Decimal(totals['totalPlatformFee']) / totals['totalOrders'])
    else:
        average = 0

    totals['averagePlatformFee'] = average
    totals['platformFeeByTier'] = by_tier
    return totals
