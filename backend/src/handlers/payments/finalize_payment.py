"""
Finalize Payment Handler.
Triggered by DynamoDB Stream on WorkOrdersTable.
Records the payment breakdown when a work order is completed. No money is
moved here; the record is what settlement reads later.
"""
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError
from marketplace import store
from marketplace.dynamo import is_conditional_check_failure
from marketplace.engine import build_payment_calculator
from marketplace.errors import ValidationError
from marketplace.logging import logger
from marketplace.models import WorkOrder, WorkOrderStatus

calculator = build_payment_calculator()
deserializer = TypeDeserializer()


def handler(event, context):
    """
    Handler triggered by DynamoDB Stream on Work Orders Table.
    Listens for MODIFY events where status changes to 'completed'.
    """
    if 'Records' not in event:
        return {'processed': 0}

    processed = 0
    failed = 0
    for record in event['Records']:
        if record.get('eventName') != 'MODIFY':
            continue
        try:
            if process_record(record):
                processed += 1
        except (ValidationError, ClientError, KeyError, ValueError) as e:
            failed += 1
            logger.error(f"Error processing record {record.get('eventID')}: {e}")

    logger.info(f"Finalized {processed} payments ({failed} failed)")
    return {'processed': processed, 'failed': failed}


def _image(record, name) -> dict:
    raw = record['dynamodb'].get(name) or {}
    return {k: deserializer.deserialize(v) for k, v in raw.items()}


def process_record(record) -> bool:
    """Process a single stream record. Returns True if a breakdown was recorded."""
    new_image = _image(record, 'NewImage')
    old_image = _image(record, 'OldImage')

    # Only when status CHANGED to completed, so later edits never re-record
    if new_image.get('status') != WorkOrderStatus.COMPLETED:
        return False
    if old_image.get('status') == WorkOrderStatus.COMPLETED:
        return False

    work_order = WorkOrder.from_item(new_image)
    grade = store.load_worker_grade(work_order.assigned_worker_id)
    breakdown = calculator.compute_breakdown(work_order, worker_grade=grade)

    try:
        store.save_payment_breakdown(breakdown, work_order.assigned_worker_id)
    except ClientError as e:
        if is_conditional_check_failure(e):
            logger.info(f"Payment for work order {work_order.work_order_id} already recorded")
            return False
        raise

    logger.info(
        f"Recorded payment for {work_order.work_order_id}: total={breakdown.total_fee}, "
        f"platform={breakdown.platform_fee_amount} ({breakdown.platform_fee_percent}%), "
        f"worker={breakdown.worker_payment}, customer={breakdown.customer_total_payment}"
    )
    return True
