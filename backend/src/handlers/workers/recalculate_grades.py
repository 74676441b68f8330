"""
Recalculate Grades Handler.
Triggered by EventBridge scheduler (daily) to recompute every graded
contractor, so evaluations leaving the recency window take effect without a
new evaluation being written.
"""
from botocore.exceptions import ClientError
from marketplace import dynamo
from marketplace.config import config
from marketplace.engine import build_aggregator, build_classifier, refresh_worker_grade
from marketplace.logging import logger
from marketplace.utils import utc_now

aggregator = build_aggregator()
classifier = build_classifier()


def handler(event, context):
    """
    Scheduled handler to recompute all contractor grades.

    Every contractor is recomputed against the same reference time.
    """
    logger.info("Running scheduled grade recalculation...")

    now = utc_now()
    grade_items = dynamo.scan_all(config.WORKER_GRADES_TABLE)
    logger.info(f"Found {len(grade_items)} contractors with grade records")

    recalculated = 0
    changed = 0
    errors = 0

    for item in grade_items:
        worker_id = item.get('workerId')
        if not worker_id:
            continue
        try:
            previous, grade = refresh_worker_grade(
                worker_id,
                source='schedule',
                now=now,
                aggregator=aggregator,
                classifier=classifier,
            )
            recalculated += 1
            if (previous.tier if previous else None) != grade.tier:
                changed += 1
        except (ClientError, KeyError, ValueError) as e:
            errors += 1
            logger.error(f"Error recalculating grade for worker {worker_id}: {e}")

    return {
        'checked': len(grade_items),
        'recalculated': recalculated,
        'changed': changed,
        'errors': errors
    }
