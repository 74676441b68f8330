"""
Policy objects handed to the pricing and grading components.

Components never read the environment themselves; handlers build these
from ``config`` once per cold start and pass them in, so tests can vary
thresholds freely.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .config import Config
from .errors import ValidationError
from .models import GradeTier, to_decimal


@dataclass(frozen=True)
class EscalationPolicy:
    """Urgent fee escalation schedule."""
    interval_seconds: int = 600
    increment_percent: Decimal = Decimal('5')
    start_delay_seconds: int = 0

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0 and self.increment_percent > 0


@dataclass(frozen=True)
class GradeThresholds:
    """Tier requirements, evaluated top-down (A first)."""
    min_evaluations: int = 5
    a_min_rating: Decimal = Decimal('4.5')
    a_min_evaluations: int = 10
    a_max_recent_negative: int = 0
    b_min_rating: Decimal = Decimal('3.5')
    b_min_evaluations: int = 5
    b_max_recent_negative: int = 1
    c_min_rating: Decimal = Decimal('2.5')

    def __post_init__(self):
        if self.min_evaluations < 0:
            raise ValidationError('min_evaluations', 'must not be negative')
        if not self.a_min_rating >= self.b_min_rating >= self.c_min_rating:
            raise ValidationError('a_min_rating', 'tier ratings must not increase from A to C')


@dataclass(frozen=True)
class GradeMultiplierTable:
    """Platform commission multiplier per tier. Ungraded contractors use ``d``."""
    a: Decimal = Decimal('0.60')
    b: Decimal = Decimal('0.80')
    c: Decimal = Decimal('0.90')
    d: Decimal = Decimal('1.00')

    def __post_init__(self):
        for name in ('a', 'b', 'c', 'd'):
            value = getattr(self, name)
            if not Decimal('0') < value <= Decimal('1'):
                raise ValidationError(f'multiplier_{name}', 'must be greater than 0 and at most 1.0')
        if not self.a <= self.b <= self.c <= self.d:
            raise ValidationError('multiplier_a', 'multipliers must not decrease from A to D')

    def for_tier(self, tier: Optional[str]) -> Decimal:
        return {
            GradeTier.A: self.a,
            GradeTier.B: self.b,
            GradeTier.C: self.c,
        }.get(tier, self.d)


def escalation_policy_from_config(cfg: Config) -> Optional[EscalationPolicy]:
    """Return the configured escalation policy, or None when escalation is switched off."""
    if not cfg.URGENT_FEE_ENABLED:
        return None
    return EscalationPolicy(
        interval_seconds=cfg.URGENT_FEE_INTERVAL_SECONDS,
        increment_percent=to_decimal(cfg.URGENT_FEE_INCREMENT_PERCENT),
        start_delay_seconds=cfg.URGENT_FEE_START_DELAY_SECONDS,
    )


def grade_thresholds_from_config(cfg: Config) -> GradeThresholds:
    return GradeThresholds(
        min_evaluations=cfg.GRADE_MIN_EVALUATIONS,
        a_min_rating=to_decimal(cfg.GRADE_A_MIN_RATING),
        a_min_evaluations=cfg.GRADE_A_MIN_EVALUATIONS,
        a_max_recent_negative=cfg.GRADE_A_MAX_RECENT_NEGATIVE,
        b_min_rating=to_decimal(cfg.GRADE_B_MIN_RATING),
        b_min_evaluations=cfg.GRADE_B_MIN_EVALUATIONS,
        b_max_recent_negative=cfg.GRADE_B_MAX_RECENT_NEGATIVE,
        c_min_rating=to_decimal(cfg.GRADE_C_MIN_RATING),
    )


def multiplier_table_from_config(cfg: Config) -> GradeMultiplierTable:
    return GradeMultiplierTable(
        a=to_decimal(cfg.GRADE_MULTIPLIER_A),
        b=to_decimal(cfg.GRADE_MULTIPLIER_B),
        c=to_decimal(cfg.GRADE_MULTIPLIER_C),
        d=to_decimal(cfg.GRADE_MULTIPLIER_D),
    )
