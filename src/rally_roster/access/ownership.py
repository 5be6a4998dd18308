"""
Record-level access: whether an identity may view or edit a particular kid at all,
independent of which fields it may see.
"""

import typing

from rally_roster.models.identity_models import IdentityContext
from rally_roster.models.role_models import Role
from rally_roster.utils.field_paths import get_path_value


def _is_identifier(value: typing.Any) -> bool:
    return isinstance(value, str) and value != ""


def is_parent_of(record: typing.Any, account_id: typing.Optional[str]) -> bool:
    """True if the account is the legacy parentId or one of the parentIds of the record."""
    if not _is_identifier(account_id):
        return False

    if get_path_value(record, "parentInfo.parentId") == account_id:
        return True

    parent_ids = get_path_value(record, "parentInfo.parentIds")
    if isinstance(parent_ids, (list, tuple)):
        return account_id in parent_ids
    return False


def is_instructor_of(record: typing.Any, instructor_id: typing.Optional[str]) -> bool:
    """True if the record is assigned to the given instructor id (not the instructor's account id)."""
    if not _is_identifier(instructor_id):
        return False
    return get_path_value(record, "instructorId") == instructor_id


def has_record_access(role: typing.Any, record: typing.Any, identity: typing.Optional[IdentityContext]) -> bool:
    """
    The single ownership rule shared by view and edit checks.

    admin is always allowed. Guests may open any existing record, parents need to own
    the kid and instructors need the kid assigned to them. Unknown roles are denied.
    """
    parsed_role = Role.parse(role)

    if parsed_role == Role.ADMIN:
        return True
    if record is None:
        return False
    if parsed_role == Role.GUEST:
        return True
    if parsed_role == Role.PARENT:
        return is_parent_of(record, getattr(identity, "accountId", None))
    if parsed_role == Role.INSTRUCTOR:
        return is_instructor_of(record, getattr(identity, "instructorId", None))
    return False


def can_view_record(role: typing.Any, record: typing.Any, identity: typing.Optional[IdentityContext]) -> bool:
    return has_record_access(role, record, identity)


def can_edit_record(role: typing.Any, record: typing.Any, identity: typing.Optional[IdentityContext]) -> bool:
    # Edit rights are narrowed per field, not here.
    return has_record_access(role, record, identity)
