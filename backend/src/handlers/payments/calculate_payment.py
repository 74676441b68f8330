"""
Calculate Payment Handler.
GET /work-orders/{workOrderId}/payment

Returns the current price breakdown of a work order. The urgent fee is
evaluated at request time and the platform fee uses the assigned
contractor's current grade.
"""
from botocore.exceptions import ClientError
from marketplace import store
from marketplace.engine import build_payment_calculator
from marketplace.errors import ValidationError
from marketplace.logging import logger, log_event
from marketplace.payment import payment_warnings
from marketplace.utils import format_response, get_path_param

calculator = build_payment_calculator()


def handler(event, context):
    log_event(event)

    work_order_id = get_path_param(event, 'workOrderId')
    if not work_order_id:
        return format_response(400, {'message': 'Missing workOrderId'})

    try:
        work_order = store.load_work_order(work_order_id)
        if not work_order:
            return format_response(404, {'message': 'Work order not found'})

        grade = store.load_worker_grade(work_order.assigned_worker_id)
        breakdown = calculator.compute_breakdown(work_order, worker_grade=grade)

        return format_response(200, {
            'payment': breakdown.to_item(),
            'warnings': payment_warnings(work_order),
            'graded': bool(grade and grade.is_graded),
        })

    except ValidationError as e:
        logger.warning(f"Invalid work order {work_order_id}: {e}")
        return format_response(400, {'message': e.message, 'field': e.field})
    except ClientError as e:
        logger.error(f"Error calculating payment for {work_order_id}: {e}")
        return format_response(500, {'message': 'Internal Server Error'})
