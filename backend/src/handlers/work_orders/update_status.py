"""
Update Work Order Status Handler.
PUT /work-orders/{workOrderId}/status
Body: { "status": "assigned", "assignedWorkerId": "...", "reason": "..." }

Status only moves forward; the write is conditional on the status that was
read, so two concurrent changes cannot both succeed.
Assignment locks the urgent fee at its current percentage.
"""
from botocore.exceptions import ClientError
from marketplace import dynamo, store
from marketplace.auth import get_user_sub, is_admin, is_seller, is_worker
from marketplace.config import config
from marketplace.dynamo import is_conditional_check_failure
from marketplace.engine import build_payment_calculator
from marketplace.errors import InvalidStatusTransition
from marketplace.lifecycle import is_terminal, status_history_entry, validate_transition
from marketplace.logging import logger, log_event
from marketplace.models import WorkOrderStatus
from marketplace.utils import format_response, format_timestamp, get_path_param, parse_body, utc_now

calculator = build_payment_calculator()


def handler(event, context):
    log_event(event)

    user_id = get_user_sub(event)
    if not user_id:
        return format_response(401, {'message': 'Unauthorized'})

    work_order_id = get_path_param(event, 'workOrderId')
    body = parse_body(event)
    new_status = body.get('status')
    if not work_order_id or not new_status:
        return format_response(400, {'message': 'Missing workOrderId or status'})

    try:
        work_order = store.load_work_order(work_order_id)
        if not work_order:
            return format_response(404, {'message': 'Work order not found'})

        # Contractors may only move their own work orders
        if is_worker(event) and not (is_seller(event) or is_admin(event)):
            if work_order.assigned_worker_id != user_id:
                return format_response(403, {'message': 'Work order is not assigned to you'})

        if is_terminal(work_order.status):
            return format_response(400, {
                'message': f"Work order is already {work_order.status}",
                'field': 'status'
            })

        validate_transition(work_order.status, new_status)

        assigned_worker_id = body.get('assignedWorkerId')
        if new_status == WorkOrderStatus.ASSIGNED and not assigned_worker_id:
            return format_response(400, {
                'message': 'assignedWorkerId is required to assign a work order',
                'field': 'assignedWorkerId'
            })

        now = utc_now()
        entry = status_history_entry(work_order.status, new_status, user_id, body.get('reason'), now)

        update_expression = ('SET #status = :new, updatedAt = :ts, '
                             'statusChangeHistory = list_append(if_not_exists(statusChangeHistory, :empty), :entry)')
        values = {
            ':new': new_status,
            ':old': work_order.status,
            ':ts': format_timestamp(now),
            ':empty': [],
            ':entry': [entry],
        }
        if new_status == WorkOrderStatus.ASSIGNED:
            update_expression += ', assignedWorkerId = :worker, assignedAt = :ts, urgentFeeLockedPercent = :locked'
            values[':worker'] = assigned_worker_id
            values[':locked'] = calculator.urgent_fee_percent(work_order, now)

        updated = dynamo.update_item(
            config.WORK_ORDERS_TABLE,
            key={'workOrderId': work_order_id},
            update_expression=update_expression,
            expression_values=values,
            expression_names={'#status': 'status'},
            condition_expression='#status = :old',
        )

        logger.info(f"Work order {work_order_id}: {work_order.status} -> {new_status} by {user_id}")
        return format_response(200, {
            'workOrderId': work_order_id,
            'status': updated.get('status', new_status),
            'previousStatus': work_order.status,
        })

    except InvalidStatusTransition as e:
        return format_response(400, {'message': str(e), 'field': 'status'})
    except ClientError as e:
        if is_conditional_check_failure(e):
            return format_response(409, {'message': 'Work order status changed concurrently, reload and retry'})
        logger.error(f"Error updating status of {work_order_id}: {e}")
        return format_response(500, {'message': 'Internal Server Error'})
