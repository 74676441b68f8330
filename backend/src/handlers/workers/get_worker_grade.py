"""
Get Worker Grade Handler.
GET /workers/{workerId}/grade

Returns the stored grade, its commission multiplier, category averages and
progress toward the next tier. Ungraded contractors get "no grade yet"
rather than an error.
"""
from botocore.exceptions import ClientError
from marketplace import store
from marketplace.config import config
from marketplace.engine import build_aggregator
from marketplace.errors import ValidationError
from marketplace.grading import GradeMultiplierResolver, grade_progress
from marketplace.logging import logger, log_event
from marketplace.policies import grade_thresholds_from_config, multiplier_table_from_config
from marketplace.utils import format_response, get_path_param

aggregator = build_aggregator()
resolver = GradeMultiplierResolver(multiplier_table_from_config(config))
thresholds = grade_thresholds_from_config(config)


def handler(event, context):
    log_event(event)

    worker_id = get_path_param(event, 'workerId')
    if not worker_id:
        return format_response(400, {'message': 'Missing workerId'})

    try:
        grade = store.load_worker_grade(worker_id)
        evaluations = store.load_evaluations_for_worker(worker_id)
    except ClientError as e:
        logger.error(f"Error loading grade for worker {worker_id}: {e}")
        return format_response(500, {'message': 'Internal Server Error'})

    stats = aggregator.aggregate(evaluations)
    tier = grade.tier if grade else None

    try:
        multiplier = resolver.multiplier_for(tier)
    except ValidationError as e:
        logger.error(f"Stored grade of worker {worker_id} is invalid: {e}")
        return format_response(500, {'message': 'Internal Server Error'})

    return format_response(200, {
        'workerId': worker_id,
        'tier': tier,
        'label': tier if tier else 'No grade yet',
        'averageRating': grade.average_rating if grade else None,
        'totalEvaluations': grade.total_evaluations if grade else 0,
        'lastRecalculatedAt': grade.last_recalculated_at if grade else None,
        'commissionMultiplier': multiplier,
        'categoryAverages': stats.category_averages,
        'recentTrend': {'trend': stats.recent_trend, 'change': stats.trend_change},
        'progress': grade_progress(stats, tier, thresholds),
    })
