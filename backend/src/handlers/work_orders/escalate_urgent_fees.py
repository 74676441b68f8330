"""
Escalate Urgent Fees Handler.
Triggered by EventBridge scheduler every 10 minutes.

Stores the current escalated urgent fee on open work orders so listings can
show it without recomputing. The value written is always the pure function
of (createdAt, now), so a missed or repeated run cannot drift.
"""
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from marketplace import dynamo
from marketplace.config import config
from marketplace.dynamo import is_conditional_check_failure
from marketplace.escalation import current_urgent_fee_percent, escalation_steps
from marketplace.logging import logger
from marketplace.models import WorkOrder, WorkOrderStatus, to_decimal
from marketplace.policies import escalation_policy_from_config
from marketplace.utils import format_timestamp, utc_now

policy = escalation_policy_from_config(config)


def handler(event, context):
    """
    Scheduled handler to raise urgent fees on registered work orders.

    For each open work order with urgent fee enabled:
    1. Compute the current percentage from its creation time
    2. If it is higher than the stored one, store it with the step count
    """
    if policy is None or not policy.enabled:
        logger.info("Urgent fee escalation disabled, nothing to do")
        return {'checked': 0, 'increased': 0, 'errors': 0}

    now = utc_now()
    items = dynamo.scan_all(
        config.WORK_ORDERS_TABLE,
        filter_expression=Attr('status').eq(WorkOrderStatus.REGISTERED) & Attr('urgentFeeEnabled').eq(True),
    )
    logger.info(f"Checking urgent fees on {len(items)} open work orders")

    increased = 0
    errors = 0
    for item in items:
        try:
            if escalate_work_order(item, now):
                increased += 1
        except (ClientError, KeyError, ValueError) as e:
            errors += 1
            logger.error(f"Error escalating urgent fee for {item.get('workOrderId')}: {e}")

    logger.info(f"Urgent fee escalation complete: {increased}/{len(items)} increased, {errors} errors")
    return {'checked': len(items), 'increased': increased, 'errors': errors}


def escalate_work_order(item: dict, now) -> bool:
    """Store the escalated percentage for one work order. Returns True if it increased."""
    work_order = WorkOrder.from_item(item)
    stored = to_decimal(item.get('currentUrgentFeePercent'), str(work_order.urgent_fee_base_percent))

    new_percent = current_urgent_fee_percent(
        base_percent=work_order.urgent_fee_base_percent,
        max_percent=work_order.urgent_fee_max_percent,
        created_at=work_order.created_at,
        now=now,
        interval_seconds=policy.interval_seconds,
        increment_percent=policy.increment_percent,
        start_delay_seconds=policy.start_delay_seconds,
    )
    if new_percent <= stored:
        return False

    steps = escalation_steps(
        work_order.created_at, now, policy.interval_seconds, policy.start_delay_seconds
    )
    ceiling = max(work_order.urgent_fee_max_percent, work_order.urgent_fee_base_percent)

    update_expression = 'SET currentUrgentFeePercent = :pct, urgentFeeIncreaseCount = :steps, lastUrgentFeeUpdate = :ts'
    values = {
        ':pct': new_percent,
        ':steps': steps,
        ':ts': format_timestamp(now),
        ':registered': WorkOrderStatus.REGISTERED,
    }
    if new_percent >= ceiling:
        update_expression += ', urgentFeeMaxReachedAt = :ts'

    try:
        dynamo.update_item(
            config.WORK_ORDERS_TABLE,
            key={'workOrderId': work_order.work_order_id},
            update_expression=update_expression,
            expression_values=values,
            expression_names={'#status': 'status'},
            # Never lower a stored value; skip orders that left 'registered' meanwhile
            condition_expression='#status = :registered AND '
                                 '(attribute_not_exists(currentUrgentFeePercent) OR currentUrgentFeePercent < :pct)',
        )
    except ClientError as e:
        if is_conditional_check_failure(e):
            return False
        raise

    logger.info(f"Work order {work_order.work_order_id}: urgent fee {stored}% -> {new_percent}%")
    return True
