import base64
import enum
import json
import logging
import re
import typing

from rally_roster.models.auth_models import AuthenticatedUser
from rally_roster.utils.base_types import UserId

_LOGGER = logging.getLogger(__name__)


PathParams = typing.NewType("PathParams", dict[str, str])
QueryParams = typing.NewType("QueryParams", dict[str, str])


class ErrorCode(enum.Enum):
    VALIDATION_ERROR = (400, "Invalid request.")
    AUTHENTICATION_FAILED = (401, "User identification failed.")
    AUTHORIZATION_FAILED = (403, "Access denied.")
    RESOURCE_NOT_FOUND = (404, "Resource not found or method not allowed.")
    INTERNAL_ERROR = (500, "Internal server error.")

    def __init__(self, status_code: int, default_message: str) -> None:
        self.status_code = status_code
        self.default_message = default_message


def get_event_body(event: dict) -> bytes:
    if "isBase64Encoded" in event and event["isBase64Encoded"]:
        return base64.b64decode(event["body"])
    else:
        return event["body"].encode("utf-8")


def get_method(event: dict) -> str:
    return event.get("requestContext", {}).get("http", {}).get("method", "UNKNOWN")


def get_path(event: dict) -> str:
    return event.get("requestContext", {}).get("http", {}).get("path", "")


def get_path_parameters(event: dict) -> dict[str, str]:
    return event.get("pathParameters") or {}


def get_query_string_parameters(event: dict) -> QueryParams:
    return event.get("queryStringParameters") or QueryParams({})


def _get_authorizer_context(event: dict[str, typing.Any]) -> dict[str, typing.Any]:
    # The Lambda Authorizer on an HTTP API places its context under 'lambda'.
    return (event.get("requestContext") or {}).get("authorizer", {}).get("lambda", {}) or {}


def get_user_id_from_event(event: dict[str, typing.Any]) -> typing.Optional[UserId]:
    """
    Extracts user ID from the Lambda event context provided by the custom Lambda Authorizer.
    """
    try:
        user_id = _get_authorizer_context(event).get("sub")
        if user_id:
            return UserId(str(user_id))

        _LOGGER.warning("User ID ('sub') not found in authorizer's lambda context.")
        return None
    except Exception as e:
        _LOGGER.error("Error extracting user_id from event: %s", str(e))
        return None


def get_authenticated_user_from_event(event: dict[str, typing.Any]) -> typing.Optional[AuthenticatedUser]:
    """
    Builds the AuthenticatedUser from the authorizer context: 'sub' is the account id,
    'role' the optional role claim.
    """
    user_id = get_user_id_from_event(event)
    if not user_id:
        return None

    context = _get_authorizer_context(event)
    token_role = context.get("role")
    email = context.get("email")
    return AuthenticatedUser(
        accountId=user_id,
        tokenRole=str(token_role) if token_role else None,
        email=str(email) if email else None,
    )


def get_allowed_origin(event: dict[str, typing.Any]) -> str:
    """
    Validates the Origin header against allowed patterns and returns it if valid.

    Allowed Origins:
    - localhost/127.0.0.1 (any port) - for local development
    - *.web.app / *.firebaseapp.com - hosted frontend

    :returns: The origin if valid, otherwise "null" (which causes browser to deny the response)
    """
    origin = (event.get("headers") or {}).get("origin", "")

    if not origin:
        return "*"

    if origin.startswith("http://localhost:") or origin.startswith("http://127.0.0.1:"):
        return origin

    allowed_patterns = [r"^https://[\w-]+\.web\.app$", r"^https://[\w-]+\.firebaseapp\.com$"]
    for pattern in allowed_patterns:
        if re.match(pattern, origin):
            return origin

    _LOGGER.warning(f"Origin not in allowed patterns: {origin}")
    return "null"


def format_lambda_response(
    status_code: int,
    body: typing.Any,
    *,
    event: typing.Optional[dict[str, typing.Any]] = None,
    additional_headers: typing.Optional[dict[str, str]] = None,
) -> dict[str, typing.Any]:
    """
    Formats API Gateway proxy responses with CORS headers.
    """
    allowed_origin = get_allowed_origin(event) if event else "*"

    headers = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token",
        "Access-Control-Allow-Methods": "OPTIONS,GET,PUT",
    }
    if additional_headers:
        headers.update(additional_headers)

    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(body, default=str) if body is not None else None,
    }


def create_error_response(
    error_code: ErrorCode,
    message: typing.Optional[str] = None,
    *,
    details: typing.Any = None,
    event: typing.Optional[dict[str, typing.Any]] = None,
) -> dict[str, typing.Any]:
    body: dict[str, typing.Any] = {
        "errorCode": error_code.name,
        "message": message or error_code.default_message,
    }
    if details is not None:
        body["details"] = details
    return format_lambda_response(error_code.status_code, body, event=event)
