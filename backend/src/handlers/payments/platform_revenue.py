"""
Platform Revenue Handler.
GET /admin/revenue - admin-only summary of recorded payment breakdowns.
"""
from botocore.exceptions import ClientError
from marketplace import store
from marketplace.auth import is_admin
from marketplace.logging import logger, log_event
from marketplace.payment import summarize_platform_revenue
from marketplace.utils import format_response, get_query_param, parse_timestamp


def handler(event, context):
    log_event(event)

    if not is_admin(event):
        return format_response(403, {'message': 'Admin access required'})

    since_param = get_query_param(event, 'since')
    try:
        since = parse_timestamp(since_param) if since_param else None
    except (TypeError, ValueError):
        return format_response(400, {'message': 'Invalid since timestamp', 'field': 'since'})

    try:
        breakdowns = store.load_payment_breakdowns()
    except ClientError as e:
        logger.error(f"Error loading payments: {e}")
        return format_response(500, {'message': 'Internal Server Error'})

    if since:
        breakdowns = [b for b in breakdowns if b.calculated_at >= since]

    summary = summarize_platform_revenue(breakdowns)
    summary['since'] = since
    return format_response(200, summary)
