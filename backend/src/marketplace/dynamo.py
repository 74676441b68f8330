"""
DynamoDB utility functions shared by the handlers.

Reads that fail are logged and re-raised: grade recalculation must never
mistake a failed query for an empty evaluation history.
"""
import boto3
from typing import List, Dict, Any, Optional
from botocore.exceptions import ClientError
from .config import config
from .logging import logger

dynamodb = boto3.resource('dynamodb', region_name=config.AWS_REGION)


def get_item(table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Get a single item from DynamoDB."""
    try:
        table = dynamodb.Table(table_name)
        response = table.get_item(Key=key)
        return response.get('Item')
    except ClientError as e:
        logger.error(f"Error getting item from {table_name}: {e}")
        raise


def put_item(
    table_name: str,
    item: Dict[str, Any],
    condition_expression: Optional[str] = None
) -> None:
    """
    Put an item, optionally guarded by a condition expression.

    Raises:
        ClientError: ConditionalCheckFailedException when the guard fails
    """
    table = dynamodb.Table(table_name)
    params = {'Item': item}
    if condition_expression:
        params['ConditionExpression'] = condition_expression

    try:
        table.put_item(**params)
    except ClientError as e:
        if not is_conditional_check_failure(e):
            logger.error(f"Error writing item to {table_name}: {e}")
        raise


def update_item(
    table_name: str,
    key: Dict[str, Any],
    update_expression: str,
    expression_values: Dict[str, Any],
    expression_names: Optional[Dict[str, str]] = None,
    condition_expression: Optional[str] = None
) -> Dict[str, Any]:
    """Update an item in DynamoDB and return its new attributes."""
    table = dynamodb.Table(table_name)

    params = {
        'Key': key,
        'UpdateExpression': update_expression,
        'ExpressionAttributeValues': expression_values,
        'ReturnValues': 'ALL_NEW'
    }
    if expression_names:
        params['ExpressionAttributeNames'] = expression_names
    if condition_expression:
        params['ConditionExpression'] = condition_expression

    try:
        response = table.update_item(**params)
        return response.get('Attributes', {})
    except ClientError as e:
        if not is_conditional_check_failure(e):
            logger.error(f"Error updating item in {table_name}: {e}")
        raise


def query_all(
    table_name: str,
    key_condition: Any,
    index_name: Optional[str] = None,
    filter_expression: Optional[Any] = None
) -> List[Dict[str, Any]]:
    """
    Query a table or index, following LastEvaluatedKey until exhausted.

    Args:
        table_name: Name of the DynamoDB table
        key_condition: Key condition expression
        index_name: Optional GSI name
        filter_expression: Optional filter expression

    Returns:
        Every item matching the query
    """
    table = dynamodb.Table(table_name)
    params = {'KeyConditionExpression': key_condition}
    if index_name:
        params['IndexName'] = index_name
    if filter_expression is not None:
        params['FilterExpression'] = filter_expression

    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = table.query(**params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            params['ExclusiveStartKey'] = last_key
    except ClientError as e:
        logger.error(f"Error querying {table_name}: {e}")
        raise


def scan_all(table_name: str, filter_expression: Optional[Any] = None) -> List[Dict[str, Any]]:
    """Scan a whole table, following LastEvaluatedKey until exhausted."""
    table = dynamodb.Table(table_name)
    params = {}
    if filter_expression is not None:
        params['FilterExpression'] = filter_expression

    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = table.scan(**params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            params['ExclusiveStartKey'] = last_key
    except ClientError as e:
        logger.error(f"Error scanning {table_name}: {e}")
        raise


def is_conditional_check_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'
