"""
Shared fixtures. Environment is set before any marketplace module is imported.
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

os.environ.setdefault('AWS_REGION', 'ap-northeast-2')
os.environ.setdefault('AWS_DEFAULT_REGION', 'ap-northeast-2')
os.environ.setdefault('WORK_ORDERS_TABLE', 'test-work-orders')
os.environ.setdefault('EVALUATIONS_TABLE', 'test-evaluations')
os.environ.setdefault('WORKER_GRADES_TABLE', 'test-worker-grades')
os.environ.setdefault('PAYMENTS_TABLE', 'test-payments')
os.environ.setdefault('GRADE_HISTORY_TABLE', 'test-grade-history')

# Add src to path for import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from marketplace.models import Evaluation, WorkOrder, WorkOrderStatus  # noqa: E402

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_work_order():
    """Factory for work orders with the platform's default fee parameters."""
    def _make(**overrides):
        fields = {
            'work_order_id': 'wo-1',
            'base_fee': 150000,
            'urgent_fee_base_percent': Decimal('15'),
            'urgent_fee_max_percent': Decimal('50'),
            'discount_percent': Decimal('0'),
            'tax_percent': Decimal('10'),
            'platform_fee_base_percent': Decimal('10'),
            'created_at': NOW,
            'status': WorkOrderStatus.REGISTERED,
            'seller_id': 'seller-1',
            'assigned_worker_id': None,
        }
        fields.update(overrides)
        return WorkOrder(**fields)
    return _make


@pytest.fixture
def make_evaluation():
    """Factory for evaluations; ratings default to 5 in every category."""
    counter = {'n': 0}

    def _make(ratings=None, days_ago=1, worker_id='worker-1', **overrides):
        counter['n'] += 1
        if ratings is None:
            ratings = {'quality': 5, 'punctuality': 5, 'costSaving': 5,
                       'communication': 5, 'professionalism': 5}
        elif isinstance(ratings, int):
            ratings = {'quality': ratings}
        fields = {
            'evaluation_id': f"eval-{counter['n']}",
            'target_worker_id': worker_id,
            'evaluator_id': f"seller-{counter['n']}",
            'work_order_id': f"wo-{counter['n']}",
            'category_ratings': ratings,
            'comment': 'Clean installation, arrived on time.',
            'created_at': NOW - timedelta(days=days_ago),
        }
        fields.update(overrides)
        return Evaluation(**fields)
    return _make
