import logging
import typing

from pydantic import ValidationError

from rally_roster.access.errors import AccessDeniedError, FieldAccessDenied
from rally_roster.access.evaluator import AccessEvaluator
from rally_roster.access.identity_resolver import IdentityResolver
from rally_roster.dynamodb.kids_table import KidsTable
from rally_roster.dynamodb.user_profile_table import UserProfileTable
from rally_roster.models.kid_models import KidModel, KidUpdateRequestModel
from rally_roster.utils.apig_utils import (
    ErrorCode,
    create_error_response,
    format_lambda_response,
    get_authenticated_user_from_event,
    get_method,
    get_path,
    get_path_parameters,
)
from rally_roster.utils.aws_env_vars import get_fallback_role, get_kids_table_name, get_user_profile_table_name
from rally_roster.utils.base_types import KidId
from rally_roster.utils.field_paths import get_path_value, set_path_value

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class KidsApiHandler:
    def __init__(self, kids_table: KidsTable, identity_resolver: IdentityResolver):
        self.kids_table = kids_table
        self.identity_resolver = identity_resolver

    def _handle_list_kids(self, evaluator: AccessEvaluator, event: dict) -> dict:
        kids = self.kids_table.list_kids()
        visible_kids = [evaluator.filter_record(kid) for kid in kids if evaluator.can_view_record(kid)]
        _LOGGER.info(
            f"Role '{evaluator.role.value}' may view {len(visible_kids)} of {len(kids)} kids "
            f"(account: {evaluator.identity.accountId})"
        )
        return format_lambda_response(200, {"kids": visible_kids}, event=event)

    def _handle_get_kid(self, evaluator: AccessEvaluator, kid_id: KidId, event: dict) -> dict:
        kid = self.kids_table.get_kid(kid_id)
        if kid is None:
            return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, f"Kid {kid_id} not found.", event=event)

        if not evaluator.can_view_record(kid):
            _LOGGER.warning(f"Forbidden: account {evaluator.identity.accountId} may not view kid {kid_id}.")
            return create_error_response(ErrorCode.AUTHORIZATION_FAILED, event=event)

        return format_lambda_response(200, evaluator.filter_record(kid), event=event)

    def _handle_put_kid(self, evaluator: AccessEvaluator, kid_id: KidId, event: dict) -> dict:
        raw_body = event.get("body")
        if not raw_body:
            return create_error_response(ErrorCode.VALIDATION_ERROR, "Request body is missing.", event=event)

        try:
            update_request = KidUpdateRequestModel.model_validate_json(raw_body)
        except ValidationError as e:
            _LOGGER.error(f"Kid update request body validation error: {e.errors()}")
            return create_error_response(ErrorCode.VALIDATION_ERROR, details=e.errors(), event=event)

        if not update_request.changes:
            return create_error_response(ErrorCode.VALIDATION_ERROR, "No changes provided.", event=event)

        kid = self.kids_table.get_kid(kid_id)
        if kid is None:
            return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, f"Kid {kid_id} not found.", event=event)

        try:
            accepted_changes = evaluator.filter_update(kid, update_request.changes)
        except FieldAccessDenied as e:
            return create_error_response(
                ErrorCode.AUTHORIZATION_FAILED, str(e), details={"fields": e.field_paths}, event=event
            )
        except AccessDeniedError:
            _LOGGER.warning(f"Forbidden: account {evaluator.identity.accountId} may not edit kid {kid_id}.")
            return create_error_response(ErrorCode.AUTHORIZATION_FAILED, event=event)

        # Validate the resulting document before writing anything.
        updated_document = kid.model_dump()
        for field_path, value in accepted_changes.items():
            set_path_value(updated_document, field_path, value)
        try:
            validated_document = KidModel.model_validate(updated_document).model_dump()
        except ValidationError as e:
            _LOGGER.error(f"Kid update for {kid_id} produces an invalid record: {e.errors()}")
            return create_error_response(ErrorCode.VALIDATION_ERROR, details=e.errors(), event=event)

        # Store the coerced values (e.g. "yes" -> True), not the raw request values.
        validated_changes = {
            field_path: get_path_value(validated_document, field_path) for field_path in accepted_changes
        }
        updated_kid = self.kids_table.update_fields(kid_id, validated_changes)
        if updated_kid is None:
            return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, f"Kid {kid_id} not found.", event=event)

        return format_lambda_response(200, evaluator.filter_record(updated_kid), event=event)

    def handle(self, event: dict) -> dict:
        user = get_authenticated_user_from_event(event)
        if not user:
            return create_error_response(ErrorCode.AUTHENTICATION_FAILED, event=event)

        http_method = get_method(event).upper()
        path = get_path(event)
        _LOGGER.info(f"KidsApiHandler: {http_method} {path} for user: {user.accountId}")

        try:
            identity = self.identity_resolver.resolve(user)
            evaluator = AccessEvaluator(identity)
            kid_id = get_path_parameters(event).get("kidId")

            if path == "/kids" and http_method == "GET":
                return self._handle_list_kids(evaluator, event)
            elif path.startswith("/kids/") and kid_id and http_method == "GET":
                return self._handle_get_kid(evaluator, KidId(kid_id), event)
            elif path.startswith("/kids/") and kid_id and http_method == "PUT":
                return self._handle_put_kid(evaluator, KidId(kid_id), event)
            else:
                _LOGGER.warning(f"Unsupported path or method for Kids: {http_method} {path}")
                return create_error_response(ErrorCode.RESOURCE_NOT_FOUND, event=event)

        except Exception as e:
            _LOGGER.error(f"Unexpected error in KidsApiHandler for user {user.accountId}: {str(e)}", exc_info=True)
            return create_error_response(ErrorCode.INTERNAL_ERROR, event=event)


def kids_lambda_handler(event: dict[str, typing.Any], context: typing.Any) -> dict[str, typing.Any]:
    _LOGGER.debug("Global kids_lambda_handler received event.")

    try:
        api_handler = KidsApiHandler(
            kids_table=KidsTable(get_kids_table_name()),
            identity_resolver=IdentityResolver(
                user_profile_table=UserProfileTable(get_user_profile_table_name()),
                fallback_role=get_fallback_role(),
            ),
        )
        return api_handler.handle(event)

    except ValueError as ve:
        _LOGGER.critical(f"Configuration error in kids_lambda_handler: {str(ve)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR, "Server configuration error")
    except Exception as e:
        _LOGGER.critical(f"Error during KidsApiHandler: {str(e)}", exc_info=True)
        return create_error_response(ErrorCode.INTERNAL_ERROR)
