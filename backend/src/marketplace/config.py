"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the marketplace.
"""
import os


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'ap-northeast-2')

    # DynamoDB Tables
    WORK_ORDERS_TABLE = os.environ.get('WORK_ORDERS_TABLE', '')
    EVALUATIONS_TABLE = os.environ.get('EVALUATIONS_TABLE', '')
    WORKER_GRADES_TABLE = os.environ.get('WORKER_GRADES_TABLE', '')
    PAYMENTS_TABLE = os.environ.get('PAYMENTS_TABLE', '')
    GRADE_HISTORY_TABLE = os.environ.get('GRADE_HISTORY_TABLE', '')

    # GSI on EvaluationsTable keyed by targetWorkerId
    EVALUATIONS_WORKER_INDEX = os.environ.get('EVALUATIONS_WORKER_INDEX', 'TargetWorkerIndex')

    # Urgent fee escalation (every 10 minutes, +5%)
    URGENT_FEE_ENABLED = _env_bool('URGENT_FEE_ENABLED', 'true')
    URGENT_FEE_INTERVAL_SECONDS = int(os.environ.get('URGENT_FEE_INTERVAL_SECONDS', '600'))
    URGENT_FEE_INCREMENT_PERCENT = os.environ.get('URGENT_FEE_INCREMENT_PERCENT', '5')
    URGENT_FEE_START_DELAY_SECONDS = int(os.environ.get('URGENT_FEE_START_DELAY_SECONDS', '0'))

    # Grade thresholds
    GRADE_MIN_EVALUATIONS = int(os.environ.get('GRADE_MIN_EVALUATIONS', '5'))
    GRADE_A_MIN_RATING = os.environ.get('GRADE_A_MIN_RATING', '4.5')
    GRADE_A_MIN_EVALUATIONS = int(os.environ.get('GRADE_A_MIN_EVALUATIONS', '10'))
    GRADE_A_MAX_RECENT_NEGATIVE = int(os.environ.get('GRADE_A_MAX_RECENT_NEGATIVE', '0'))
    GRADE_B_MIN_RATING = os.environ.get('GRADE_B_MIN_RATING', '3.5')
    GRADE_B_MIN_EVALUATIONS = int(os.environ.get('GRADE_B_MIN_EVALUATIONS', '5'))
    GRADE_B_MAX_RECENT_NEGATIVE = int(os.environ.get('GRADE_B_MAX_RECENT_NEGATIVE', '1'))
    GRADE_C_MIN_RATING = os.environ.get('GRADE_C_MIN_RATING', '2.5')

    # Recency window for negative evaluations
    RECENT_WINDOW_DAYS = int(os.environ.get('RECENT_WINDOW_DAYS', '90'))
    NEGATIVE_RATING_THRESHOLD = os.environ.get('NEGATIVE_RATING_THRESHOLD', '3.0')

    # Platform commission multiplier per grade (lower = contractor keeps more)
    GRADE_MULTIPLIER_A = os.environ.get('GRADE_MULTIPLIER_A', '0.60')
    GRADE_MULTIPLIER_B = os.environ.get('GRADE_MULTIPLIER_B', '0.80')
    GRADE_MULTIPLIER_C = os.environ.get('GRADE_MULTIPLIER_C', '0.90')
    GRADE_MULTIPLIER_D = os.environ.get('GRADE_MULTIPLIER_D', '1.00')


config = Config()
