import logging
import typing

from rally_roster.dynamodb.secrets_table import SecretsTable
from rally_roster.utils.aws_env_vars import get_secrets_table_name
from rally_roster.utils.jwt_utils import JwtWrapper

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

# Claims forwarded to downstream lambdas. Authorizer context values must be scalars.
FORWARDED_CLAIMS = ("sub", "role", "email")


class AuthorizerLambda:
    """
    Simple-response Lambda authorizer for the HTTP API. A valid bearer token yields
    isAuthorized=True and its claims in the context; the role claim is optional.
    """

    def __init__(self, jwt_wrapper: JwtWrapper, secrets_table: SecretsTable) -> None:
        self.jwt_wrapper = jwt_wrapper
        self.secrets_table = secrets_table

    def handle(self, event: dict) -> dict:
        try:
            token = event["headers"]["authorization"].split(" ")[1]
        except (KeyError, IndexError, AttributeError):
            _LOGGER.warning("Authorization token missing or malformed.")
            return {"isAuthorized": False, "context": {}}

        try:
            payload = self.jwt_wrapper.verify_token(token, self.secrets_table)
        except Exception as e:
            _LOGGER.error(f"Error during token validation: {e}", exc_info=True)
            return {"isAuthorized": False, "context": {}}

        if not payload or "sub" not in payload:
            _LOGGER.warning("Token is invalid or expired.")
            return {"isAuthorized": False, "context": {}}

        context = {claim: str(payload[claim]) for claim in FORWARDED_CLAIMS if payload.get(claim)}
        _LOGGER.info(f"Token validated successfully for user: {payload['sub']}")
        return {"isAuthorized": True, "context": context}


def authorizer_lambda_handler(event: dict, context: typing.Any) -> dict:
    _LOGGER.info("Authorizer lambda handler invoked.")

    try:
        handler = AuthorizerLambda(
            jwt_wrapper=JwtWrapper(),
            secrets_table=SecretsTable(get_secrets_table_name()),
        )
        return handler.handle(event)
    except Exception as e:
        _LOGGER.critical(f"Critical error in authorizer_lambda_handler: {e}", exc_info=True)
        return {"isAuthorized": False, "context": {}}
