import logging
import typing

import boto3
from botocore.exceptions import ClientError
from pydantic import ValidationError

from rally_roster.models.user_profile_models import UserProfileModel
from rally_roster.utils.base_types import UserId

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class UserProfileTable:
    """
    Data Abstraction Layer for reading the UserProfile DynamoDB table.
    Holds each user's role, instructor id and contact details; profiles are
    maintained by the club's admin tooling, this service only reads them.

    Table Schema:
      - PK: userId (the account id issued by the authentication provider)
    """

    def __init__(self, table_name: str) -> None:
        self.client = boto3.resource("dynamodb")
        self.table = self.client.Table(table_name)

    def get_profile(self, user_id: UserId) -> typing.Optional[UserProfileModel]:
        """
        Retrieves a user's profile from DynamoDB.

        :param user_id: The ID of the user.
        :return: UserProfileModel instance if found, else None.
        :raises ClientError: If DynamoDB cannot be reached.
        """
        _LOGGER.debug(f"Fetching profile for user_id: {user_id}")
        try:
            response = self.table.get_item(Key={"userId": user_id})
            item_data = response.get("Item")
            if item_data:
                return UserProfileModel.model_validate(item_data)
            _LOGGER.debug(f"No profile found for user_id: {user_id}")
            return None
        except ClientError as e:
            _LOGGER.error(f"Failed to get profile for user_id {user_id}: {e.response['Error']['Message']}")
            raise
        except ValidationError as ve:
            _LOGGER.error(f"Failed to validate profile data for user_id {user_id}: {ve}", exc_info=True)
            return None
