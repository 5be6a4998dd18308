import logging
import typing

from pydantic import BaseModel

from rally_roster.access.errors import FieldAccessDenied, RecordAccessDenied
from rally_roster.access.field_permissions import DEFAULT_PERMISSION_TABLE, FieldPermissionTable
from rally_roster.access.ownership import can_edit_record, can_view_record
from rally_roster.models.identity_models import IdentityContext
from rally_roster.models.kid_models import KEY_FIELDS
from rally_roster.models.role_models import Role

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


def can_view_field(
    field_path: str,
    role: typing.Any,
    record: typing.Any = None,
    identity: typing.Optional[IdentityContext] = None,
    table: FieldPermissionTable = DEFAULT_PERMISSION_TABLE,
) -> bool:
    """
    Whether `field_path` may be shown to the identity. Hidden always wins, then the
    record-level gate (only when a record is given), then membership in visible.
    """
    permissions = table.get_permission_set(role)

    if field_path in permissions.hidden:
        return False

    if record is not None and not can_view_record(role, record, identity):
        return False

    return field_path in permissions.visible


def can_edit_field(
    field_path: str,
    role: typing.Any,
    record: typing.Any = None,
    identity: typing.Optional[IdentityContext] = None,
    table: FieldPermissionTable = DEFAULT_PERMISSION_TABLE,
) -> bool:
    """
    Whether `field_path` may be changed by the identity. A field has to be visible
    before it can be editable, whatever the editable set says.
    """
    permissions = table.get_permission_set(role)

    if field_path not in permissions.visible:
        return False

    if field_path in permissions.hidden:
        return False

    if record is not None and not can_edit_record(role, record, identity):
        return False

    return field_path in permissions.editable


class AccessEvaluator:
    """
    Access decisions for one resolved identity. Holds no per-record state, so a
    single instance can be reused for every record in a request.
    """

    def __init__(self, identity: IdentityContext, table: FieldPermissionTable = DEFAULT_PERMISSION_TABLE) -> None:
        self.identity = identity
        self.table = table
        self.role: Role = identity.role
        self.permissions = table.get_permission_set(self.role)

    @property
    def can_create(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_edit(self) -> bool:
        return self.role in (Role.ADMIN, Role.INSTRUCTOR)

    @property
    def can_delete(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_view_all(self) -> bool:
        return self.role == Role.ADMIN

    def can_view_record(self, record: typing.Any) -> bool:
        return can_view_record(self.role, record, self.identity)

    def can_edit_record(self, record: typing.Any) -> bool:
        return can_edit_record(self.role, record, self.identity)

    def can_view_field(self, field_path: str, record: typing.Any = None) -> bool:
        return can_view_field(field_path, self.role, record, self.identity, self.table)

    def can_edit_field(self, field_path: str, record: typing.Any = None) -> bool:
        return can_edit_field(field_path, self.role, record, self.identity, self.table)

    def visible_fields(self) -> list[str]:
        return sorted(self.permissions.visible - self.permissions.hidden)

    def editable_fields(self) -> list[str]:
        return sorted((self.permissions.editable & self.permissions.visible) - self.permissions.hidden)

    def hidden_fields(self) -> list[str]:
        return sorted(self.permissions.hidden)

    def filter_record(self, record: typing.Any) -> dict[str, typing.Any]:
        """
        Returns a copy of the record containing only the fields the identity may see.
        Fields that are not viewable are left out entirely rather than blanked.

        :raises RecordAccessDenied: If the identity may not view the record at all.
        """
        if not self.can_view_record(record):
            raise RecordAccessDenied(f"Role '{self.role.value}' may not view this record")

        document = record.model_dump() if isinstance(record, BaseModel) else dict(record)
        filtered = self._filter_branch(document, "")
        for key in KEY_FIELDS:
            if key in document:
                filtered[key] = document[key]
        return filtered

    def _filter_branch(self, branch: typing.Mapping[str, typing.Any], prefix: str) -> dict[str, typing.Any]:
        filtered: dict[str, typing.Any] = {}
        for key, value in branch.items():
            field_path = f"{prefix}.{key}" if prefix else key
            if field_path in self.permissions.hidden:
                continue
            # The record gate was checked once in filter_record.
            if self.can_view_field(field_path):
                filtered[key] = value
            elif isinstance(value, typing.Mapping):
                sub_branch = self._filter_branch(value, field_path)
                if sub_branch:
                    filtered[key] = sub_branch
        return filtered

    def filter_update(self, record: typing.Any, changes: typing.Mapping[str, typing.Any]) -> dict[str, typing.Any]:
        """
        Validates a set of changes keyed by dotted field path against the record.

        :raises RecordAccessDenied: If the identity may not edit the record at all.
        :raises FieldAccessDenied: If any of the changed fields is not editable.
        :return: The accepted changes.
        """
        if not self.can_edit_record(record):
            raise RecordAccessDenied(f"Role '{self.role.value}' may not edit this record")

        denied = [field_path for field_path in changes if not self.can_edit_field(field_path, record)]
        if denied:
            _LOGGER.warning(f"Role '{self.role.value}' attempted to edit non-editable fields: {sorted(denied)}")
            raise FieldAccessDenied(denied)

        return dict(changes)
