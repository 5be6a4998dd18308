import logging
import typing

import boto3
from botocore.exceptions import ClientError

_LOGGER = logging.getLogger(__name__)


class SecretsTable:
    """
    DynamoDB table for storing application secrets (read-only with caching).

    Schema:
        - PK: secretKey (String) - e.g., "JWT_SECRET"
        - Attributes:
            - secretValue (String) - The actual secret value

    Secrets are populated by deployment scripts, not through this class, and cached
    in memory for the lifetime of the Lambda container.
    """

    _cache: typing.ClassVar[dict[str, str]] = {}

    def __init__(self, table_name: str):
        self.client = boto3.resource("dynamodb")
        self.table = self.client.Table(table_name)

    def __get_secret(self, secret_key: str) -> str:
        """
        :raises KeyError: If the secret is missing or cannot be read.
        """
        if secret_key in self._cache:
            _LOGGER.debug(f"Returning secret '{secret_key}' from cache.")
            return self._cache[secret_key]

        try:
            _LOGGER.info(f"Fetching secret '{secret_key}' from DynamoDB.")
            response = self.table.get_item(Key={"secretKey": secret_key})
        except ClientError as e:
            _LOGGER.error(f"Error retrieving secret {secret_key}: {e}")
            raise KeyError(f"Failed to retrieve secret '{secret_key}' from DynamoDB") from e

        secret_value = response.get("Item", {}).get("secretValue")
        if not secret_value:
            _LOGGER.error(f"Secret not found or empty: {secret_key}")
            raise KeyError(f"Secret '{secret_key}' not found in secrets table")

        self._cache[secret_key] = secret_value
        return secret_value

    def get_jwt_secret_key(self) -> str:
        return self.__get_secret("JWT_SECRET")
