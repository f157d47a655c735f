"""
Utility wrapper for storing verification records and guild settings in DynamoDB.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Key


class DynamoDBClient:
    """Item operations against a single table keyed by (pk, sk)."""

    def __init__(self, table_name: str, region_name: str = "us-east-1") -> None:
        self._resource = boto3.resource("dynamodb", region_name=region_name)
        self._table = self._resource.Table(table_name)

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        self._table.put_item(Item=item)

    def upsert_item(
        self,
        *,
        partition_key: str,
        sort_key: str,
        attributes: Dict[str, Any],
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Atomically update an item, creating it when absent.

        ``defaults`` are applied with ``if_not_exists`` so an existing value is
        never overwritten.
        """
        clauses: list[str] = []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        for index, (field, value) in enumerate(attributes.items()):
            names[f"#a{index}"] = field
            values[f":a{index}"] = value
            clauses.append(f"#a{index} = :a{index}")
        for index, (field, value) in enumerate((defaults or {}).items()):
            names[f"#d{index}"] = field
            values[f":d{index}"] = value
            clauses.append(f"#d{index} = if_not_exists(#d{index}, :d{index})")

        response = self._table.update_item(
            Key={"pk": partition_key, "sk": sort_key},
            UpdateExpression="SET " + ", ".join(clauses),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        return response.get("Attributes", {})

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        return response.get("Item")

    def count_items(self, *, partition_key: str) -> int:
        """Count items that share the same partition key."""
        response = self._table.query(
            KeyConditionExpression=Key("pk").eq(partition_key),
            Select="COUNT",
        )
        return int(response.get("Count", 0))


__all__ = ["DynamoDBClient"]
