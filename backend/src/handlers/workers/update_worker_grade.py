"""
Update Worker Grade Handler.
Triggered by DynamoDB Streams on EvaluationsTable.
Recomputes the evaluated contractor's grade from their full evaluation set
whenever a new evaluation is inserted.
"""
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError
from marketplace.engine import build_aggregator, build_classifier, refresh_worker_grade
from marketplace.logging import logger

aggregator = build_aggregator()
classifier = build_classifier()
deserializer = TypeDeserializer()


def handler(event, context):
    """
    Handler triggered by DynamoDB Stream on Evaluations Table.
    Listens for INSERT events; several inserts for one contractor in the same
    batch trigger a single recomputation.
    """
    if 'Records' not in event:
        return {'message': 'No records to process'}

    worker_ids = []
    for record in event['Records']:
        worker_id = worker_id_from_record(record)
        if worker_id and worker_id not in worker_ids:
            worker_ids.append(worker_id)

    updated = 0
    failed = []
    for worker_id in worker_ids:
        try:
            refresh_worker_grade(
                worker_id,
                source='evaluation',
                aggregator=aggregator,
                classifier=classifier,
            )
            updated += 1
        except (ClientError, KeyError, ValueError) as e:
            failed.append(worker_id)
            logger.error(f"Error updating grade for worker {worker_id}: {e}")

    if failed:
        # Let the stream retry the batch; recomputation is idempotent
        raise RuntimeError(f"Grade update failed for workers: {', '.join(failed)}")

    return {'message': f'Updated {updated} worker grades'}


def worker_id_from_record(record) -> str:
    """Evaluated contractor of an INSERT record, or None for other events."""
    if record.get('eventName') != 'INSERT':
        return None
    new_image = record['dynamodb'].get('NewImage') or {}
    if 'targetWorkerId' not in new_image:
        logger.warning("No targetWorkerId found in record")
        return None
    return deserializer.deserialize(new_image['targetWorkerId'])
