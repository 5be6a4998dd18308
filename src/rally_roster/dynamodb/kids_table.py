import logging
import typing
from datetime import datetime, timezone

import boto3
import pydantic
from botocore.exceptions import ClientError

from rally_roster.models.kid_models import KidModel
from rally_roster.utils.base_types import IsoTimestamp, KidId

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class KidsTable:
    """
    A repository class for the Kids DynamoDB table. Reads are parsed into KidModel;
    this class performs no access checks, callers gate every read and write.

    Table Schema:
      - PK: kidId
    """

    def __init__(self, table_name: str) -> None:
        self.client = boto3.resource("dynamodb")
        self.table = self.client.Table(table_name)

    def _parse_items(self, ddb_items: list[dict[str, typing.Any]]) -> list[KidModel]:
        parsed_items = []
        for item in ddb_items:
            try:
                parsed_items.append(KidModel.model_validate(item))
            except pydantic.ValidationError as e:
                _LOGGER.error(f"Validation error for kid item (kidId: {item.get('kidId')}): {e}", exc_info=True)
        return parsed_items

    def get_kid(self, kid_id: KidId) -> typing.Optional[KidModel]:
        """
        :return: The kid, or None if there is no such item or it fails validation.
        """
        try:
            response = self.table.get_item(Key={"kidId": kid_id})
        except ClientError as e:
            _LOGGER.error(f"Failed to get kid {kid_id}: {e.response['Error']['Message']}")
            raise

        item = response.get("Item")
        if not item:
            _LOGGER.debug(f"No kid found for kidId: {kid_id}")
            return None
        parsed = self._parse_items([item])
        return parsed[0] if parsed else None

    def list_kids(self) -> list[KidModel]:
        """Scans the whole table, following pagination."""
        scan_kwargs: dict[str, typing.Any] = {}
        ddb_items: list[dict[str, typing.Any]] = []
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                ddb_items.extend(response.get("Items", []))
                last_evaluated_key = response.get("LastEvaluatedKey")
                if not last_evaluated_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_evaluated_key
        except ClientError as e:
            _LOGGER.error(f"Failed to scan kids table: {e.response['Error']['Message']}", exc_info=True)
            raise

        _LOGGER.info(f"Scanned {len(ddb_items)} kid items.")
        return self._parse_items(ddb_items)

    def save_kid(self, kid: KidModel) -> KidModel:
        timestamp = IsoTimestamp(datetime.now(timezone.utc).isoformat())
        updates: dict[str, typing.Any] = {"updatedAt": timestamp}
        if kid.createdAt is None:
            updates["createdAt"] = timestamp
        kid = kid.model_copy(update=updates)

        try:
            self.table.put_item(Item=kid.model_dump(exclude_none=True))
        except ClientError as e:
            _LOGGER.error(f"Error saving kid {kid.kidId}: {e.response['Error']['Message']}", exc_info=True)
            raise
        _LOGGER.info(f"Successfully saved kid {kid.kidId}")
        return kid

    def _ensure_parent_maps(self, kid_id: KidId, field_paths: typing.Iterable[str]) -> bool:
        """
        Creates any missing intermediate maps for the given dotted paths, one nesting level
        per request (DynamoDB rejects overlapping paths within a single update expression).
        Older items may lack whole sub-objects such as secondParentInfo.

        :return: False if the kid does not exist.
        """
        parent_paths = {
            tuple(segments[:depth])
            for segments in (field_path.split(".") for field_path in field_paths)
            for depth in range(1, len(segments))
        }
        max_depth = max((len(parent_path) for parent_path in parent_paths), default=0)

        for depth in range(1, max_depth + 1):
            level_paths = sorted(parent_path for parent_path in parent_paths if len(parent_path) == depth)
            update_parts = []
            expression_attribute_names: dict[str, str] = {"#kidId": "kidId"}
            for index, parent_path in enumerate(level_paths):
                name_placeholders = []
                for segment_depth, segment in enumerate(parent_path):
                    placeholder = f"#p{index}_{segment_depth}"
                    expression_attribute_names[placeholder] = segment
                    name_placeholders.append(placeholder)
                document_path = ".".join(name_placeholders)
                update_parts.append(f"{document_path} = if_not_exists({document_path}, :emptyMap)")

            try:
                self.table.update_item(
                    Key={"kidId": kid_id},
                    UpdateExpression="SET " + ", ".join(update_parts),
                    ConditionExpression="attribute_exists(#kidId)",
                    ExpressionAttributeNames=expression_attribute_names,
                    ExpressionAttributeValues={":emptyMap": {}},
                )
            except ClientError as e:
                if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                    return False
                _LOGGER.error(f"Error preparing maps on kid {kid_id}: {e.response['Error']['Message']}", exc_info=True)
                raise
        return True

    def update_fields(self, kid_id: KidId, changes: typing.Mapping[str, typing.Any]) -> typing.Optional[KidModel]:
        """
        Applies changes keyed by dotted field path (e.g. "comments.parent") to an existing kid
        and refreshes updatedAt. Missing intermediate maps are created first.

        :return: The updated kid, or None if the kid does not exist.
        """
        if not self._ensure_parent_maps(kid_id, changes):
            _LOGGER.warning(f"Cannot update kid {kid_id}: it does not exist")
            return None

        timestamp = IsoTimestamp(datetime.now(timezone.utc).isoformat())
        all_changes = {**changes, "updatedAt": timestamp}

        update_parts = []
        expression_attribute_names: dict[str, str] = {"#kidId": "kidId"}
        expression_attribute_values: dict[str, typing.Any] = {}
        for index, (field_path, value) in enumerate(all_changes.items()):
            name_placeholders = []
            for depth, segment in enumerate(field_path.split(".")):
                placeholder = f"#f{index}_{depth}"
                expression_attribute_names[placeholder] = segment
                name_placeholders.append(placeholder)
            update_parts.append(f"{'.'.join(name_placeholders)} = :v{index}")
            expression_attribute_values[f":v{index}"] = value

        try:
            response = self.table.update_item(
                Key={"kidId": kid_id},
                UpdateExpression="SET " + ", ".join(update_parts),
                ConditionExpression="attribute_exists(#kidId)",
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=expression_attribute_values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                _LOGGER.warning(f"Cannot update kid {kid_id}: it does not exist")
                return None
            _LOGGER.error(f"Error updating kid {kid_id}: {e.response['Error']['Message']}", exc_info=True)
            raise

        _LOGGER.info(f"Updated fields {sorted(changes)} on kid {kid_id}")
        return KidModel.model_validate(response["Attributes"])
