import logging
import typing

from rally_roster.access.evaluator import AccessEvaluator
from rally_roster.access.identity_resolver import IdentityResolver
from rally_roster.dynamodb.user_profile_table import UserProfileTable
from rally_roster.models.identity_models import PermissionsResponseModel
from rally_roster.utils.apig_utils import (
    ErrorCode,
    create_error_response,
    format_lambda_response,
    get_authenticated_user_from_event,
    get_method,
    get_path,
)
from rally_roster.utils.aws_env_vars import get_fallback_role, get_user_profile_table_name

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class PermissionsApiHandler:
    """
    Serves GET /permissions: the caller's resolved identity and what it may see and edit,
    so the frontend can decide which fields to render and which inputs to enable.
    """

    def __init__(self, identity_resolver: IdentityResolver):
        self.identity_resolver = identity_resolver

    def _handle_get_permissions(self, event: dict) -> dict:
        user = get_authenticated_user_from_event(event)
        identity = self.identity_resolver.resolve(user)
        if identity.resolution_failed:
            _LOGGER.warning(f"Serving {identity.role.value} permissions after a failed lookup for {identity.accountId}")

        evaluator = AccessEvaluator(identity)
        response_model = PermissionsResponseModel(
            identity=identity,
            canCreate=evaluator.can_create,
            canEdit=evaluator.can_edit,
            canDelete=evaluator.can_delete,
            canViewAll=evaluator.can_view_all,
            visible=evaluator.visible_fields(),
            editable=evaluator.editable_fields(),
            hidden=evaluator.hidden_fields(),
        )
        return format_lambda_response(200, response_model.model_dump(mode="json"), event=event)

    def handle(self, event: dict) -> dict:
        if get_authenticated_user_from_event(event) is None:
            return create_error_response(ErrorCode.AUTHENTICATION_FAILED, event=event)

        http_method = get_method(event).upper()
        path = get_path(event)

        try:
            if http_method == "GET" and path == "/permissions":
                return self._handle_get_permissions(event)
            else:
                _LOGGER.warning(f"Unsupported path or method for Permissions: {http_method} {path}")
                return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, event=event)

        except Exception as e:
            _LOGGER.error(f"Unexpected error in PermissionsApiHandler: {str(e)}", exc_info=True)
            return create_error_response(ErrorCode.INTERNAL_ERROR, event=event)


def permissions_lambda_handler(event: dict[str, typing.Any], context: typing.Any) -> dict[str, typing.Any]:
    try:
        api_handler = PermissionsApiHandler(
            identity_resolver=IdentityResolver(
                user_profile_table=UserProfileTable(get_user_profile_table_name()),
                fallback_role=get_fallback_role(),
            ),
        )
        return api_handler.handle(event)

    except ValueError as ve:
        _LOGGER.critical(f"Configuration error in permissions_lambda_handler: {str(ve)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR, "Server configuration error")
    except Exception as e:
        _LOGGER.critical(f"Error during PermissionsApiHandler: {str(e)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR)
