"""
Submit Evaluation Handler.
POST /work-orders/{workOrderId}/evaluations
Body: { "targetWorkerId": "...", "categoryRatings": {"quality": 5, ...}, "comment": "..." }

The contractor's grade is recomputed by update_worker_grade from the
EvaluationsTable stream, not here.
"""
from botocore.exceptions import ClientError
from marketplace import store
from marketplace.auth import get_user_sub, is_admin, is_seller
from marketplace.dynamo import is_conditional_check_failure
from marketplace.errors import ValidationError
from marketplace.evaluations import has_already_evaluated, validate_evaluation
from marketplace.logging import logger, log_event
from marketplace.models import Evaluation, WorkOrderStatus
from marketplace.utils import format_response, get_path_param, parse_body, utc_now


def evaluation_id_for(work_order_id: str, evaluator_id: str, target_worker_id: str) -> str:
    """One id per (work order, evaluator, contractor) so a duplicate write collides."""
    return f"{work_order_id}#{evaluator_id}#{target_worker_id}"


def handler(event, context):
    log_event(event)

    evaluator_id = get_user_sub(event)
    if not evaluator_id:
        return format_response(401, {'message': 'Unauthorized'})

    if not (is_seller(event) or is_admin(event)):
        return format_response(403, {'message': 'Only sellers can evaluate contractors'})

    work_order_id = get_path_param(event, 'workOrderId')
    if not work_order_id:
        return format_response(400, {'message': 'Missing workOrderId'})

    body = parse_body(event)

    try:
        work_order = store.load_work_order(work_order_id)
        if not work_order:
            return format_response(404, {'message': 'Work order not found'})

        if work_order.status != WorkOrderStatus.COMPLETED:
            return format_response(400, {
                'message': 'Only completed work orders can be evaluated',
                'field': 'status'
            })

        if work_order.seller_id != evaluator_id and not is_admin(event):
            return format_response(403, {'message': 'Only the seller of this work order can evaluate it'})

        target_worker_id = body.get('targetWorkerId') or work_order.assigned_worker_id
        if not target_worker_id or target_worker_id != work_order.assigned_worker_id:
            raise ValidationError('target_worker_id', 'must be the contractor assigned to this work order')

        ratings = body.get('categoryRatings')
        if not isinstance(ratings, dict):
            raise ValidationError('category_ratings', 'must be an object of category ratings')

        evaluation = Evaluation(
            evaluation_id=evaluation_id_for(work_order_id, evaluator_id, target_worker_id or ''),
            target_worker_id=target_worker_id,
            evaluator_id=evaluator_id,
            work_order_id=work_order_id,
            category_ratings=ratings,
            comment=body.get('comment') or '',
            created_at=utc_now(),
        )
        validate_evaluation(evaluation)

        existing = store.load_evaluations_for_worker(target_worker_id)
        if has_already_evaluated(existing, target_worker_id, evaluator_id, work_order_id):
            return format_response(409, {'message': 'You have already evaluated this contractor for this work order'})

        store.save_evaluation(evaluation)
        logger.info(f"Evaluation {evaluation.evaluation_id} stored for worker {target_worker_id}")

        return format_response(201, {
            'evaluationId': evaluation.evaluation_id,
            'message': 'Evaluation submitted'
        })

    except ValidationError as e:
        return format_response(400, {'message': e.message, 'field': e.field})
    except ClientError as e:
        if is_conditional_check_failure(e):
            return format_response(409, {'message': 'You have already evaluated this contractor for this work order'})
        logger.error(f"Error submitting evaluation for {work_order_id}: {e}")
        return format_response(500, {'message': 'Internal Server Error'})
