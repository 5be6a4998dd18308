"""
Field-level permission table for kid records.

Each role declares three sets of dotted field paths:

* ``visible``: every field the role may ever see. Anything not listed is denied.
* ``editable``: the fields the role may change. Must be a subset of ``visible``.
* ``hidden``: explicit denials. A hidden path is never visible or editable, even
  when it is also listed in ``visible``. Listing an umbrella path such as
  ``parentInfo`` hides the whole branch when records are filtered.

Paths are matched by exact string equality. When a field is added to the kid
schema it stays invisible to every role until it is added to a ``visible`` set
here; ``find_unassigned_fields`` reports such gaps.
"""

import logging
import types
import typing

from pydantic import BaseModel, ConfigDict, Field

from rally_roster.access.errors import PermissionTableError
from rally_roster.models.role_models import Role
from rally_roster.utils.base_types import FieldPath

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)

DEFAULT_ROLE = Role.GUEST


class RolePermissionSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    visible: frozenset[FieldPath] = Field(default_factory=frozenset)
    editable: frozenset[FieldPath] = Field(default_factory=frozenset)
    hidden: frozenset[FieldPath] = Field(default_factory=frozenset)


class AuditFinding(typing.NamedTuple):
    role: Role
    severity: typing.Literal["error", "override"]
    field_paths: frozenset[FieldPath]
    message: str


def audit_permission_set(role: Role, permission_set: RolePermissionSet) -> list[AuditFinding]:
    """
    Checks one role's sets for authoring mistakes.

    Errors: editable fields that are not visible, and editable fields that are hidden.
    Overrides: hidden fields that are also listed as visible (hidden wins).
    """
    findings: list[AuditFinding] = []

    not_visible = permission_set.editable - permission_set.visible
    if not_visible:
        findings.append(AuditFinding(role, "error", not_visible, "editable fields missing from visible"))

    editable_hidden = permission_set.editable & permission_set.hidden
    if editable_hidden:
        findings.append(AuditFinding(role, "error", editable_hidden, "editable fields are also hidden"))

    overridden = (permission_set.visible & permission_set.hidden) - editable_hidden
    if overridden:
        findings.append(AuditFinding(role, "override", overridden, "visible fields suppressed by hidden"))

    return findings


class FieldPermissionTable:
    """
    Immutable mapping from Role to RolePermissionSet, audited on construction.
    Unknown roles resolve to the guest set.
    """

    def __init__(self, permission_sets: typing.Mapping[Role, RolePermissionSet], strict: bool = True) -> None:
        problems: list[str] = []

        missing_roles = [role.value for role in Role if role not in permission_sets]
        if missing_roles:
            problems.append(f"no permission set for roles: {', '.join(missing_roles)}")

        self.findings: list[AuditFinding] = []
        for role, permission_set in permission_sets.items():
            self.findings.extend(audit_permission_set(role, permission_set))

        for finding in self.findings:
            paths = ", ".join(sorted(finding.field_paths))
            if finding.severity == "error":
                problems.append(f"{finding.role.value}: {finding.message} ({paths})")
            else:
                _LOGGER.warning(f"Permission table override for role '{finding.role.value}': {finding.message} ({paths})")

        if problems and strict:
            raise PermissionTableError(problems)
        for problem in problems:
            _LOGGER.error(f"Permission table problem (non-strict): {problem}")

        self._permission_sets = types.MappingProxyType(dict(permission_sets))

    def get_permission_set(self, role: typing.Any) -> RolePermissionSet:
        parsed_role = Role.parse(role)
        if parsed_role is None or parsed_role not in self._permission_sets:
            _LOGGER.warning(f"Unknown role {role!r}, using the {DEFAULT_ROLE.value} permission set.")
            parsed_role = DEFAULT_ROLE
        return self._permission_sets.get(parsed_role, RolePermissionSet())

    def roles(self) -> list[Role]:
        return list(self._permission_sets.keys())


def _permission_set(
    visible: typing.Iterable[str],
    editable: typing.Iterable[str],
    hidden: typing.Iterable[str],
) -> RolePermissionSet:
    return RolePermissionSet(
        visible=frozenset(FieldPath(path) for path in visible),
        editable=frozenset(FieldPath(path) for path in editable),
        hidden=frozenset(FieldPath(path) for path in hidden),
    )


FIELD_PERMISSIONS: dict[Role, RolePermissionSet] = {
    Role.ADMIN: _permission_set(
        visible=[
            "participantNumber",
            "personalInfo.firstName",
            "personalInfo.lastName",
            "personalInfo.dateOfBirth",
            "personalInfo.address",
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "personalInfo.photo",
            "parentInfo.name",
            "parentInfo.email",
            "parentInfo.phone",
            "parentInfo.parentId",
            "parentInfo.parentIds",
            "parentInfo.grandparentsInfo.names",
            "parentInfo.grandparentsInfo.phone",
            "secondParentInfo.name",
            "secondParentInfo.email",
            "secondParentInfo.phone",
            "secondParentInfo.grandparentsInfo.names",
            "secondParentInfo.grandparentsInfo.phone",
            "teamId",
            "instructorId",
            "vehicleId",
            "signedDeclaration",
            "signedFormStatus",
            "additionalComments",
            "comments.organization",
            "comments.teamLeader",
            "comments.parent",
            "comments.familyContact",
            "instructorsComments",
            "createdAt",
            "updatedAt",
        ],
        editable=[
            "participantNumber",
            "personalInfo.address",
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "personalInfo.photo",
            "parentInfo.name",
            "parentInfo.phone",
            "parentInfo.parentId",
            "parentInfo.parentIds",
            "parentInfo.grandparentsInfo.names",
            "parentInfo.grandparentsInfo.phone",
            "secondParentInfo.name",
            "secondParentInfo.email",
            "secondParentInfo.phone",
            "secondParentInfo.grandparentsInfo.names",
            "secondParentInfo.grandparentsInfo.phone",
            "teamId",
            "instructorId",
            "vehicleId",
            "signedDeclaration",
            "signedFormStatus",
            "additionalComments",
            "comments.organization",
        ],
        hidden=[],
    ),
    Role.INSTRUCTOR: _permission_set(
        visible=[
            "participantNumber",
            "personalInfo.firstName",
            "personalInfo.lastName",
            "personalInfo.dateOfBirth",
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "parentInfo.name",
            "parentInfo.phone",
            "teamId",
            "instructorId",
            "vehicleId",
            "signedFormStatus",
            "additionalComments",
            "comments.teamLeader",
            "comments.organization",
            "instructorsComments",
        ],
        editable=[
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "comments.teamLeader",
            "instructorsComments",
            "vehicleId",
        ],
        hidden=[
            "parentInfo.email",
            "parentInfo.parentId",
            "parentInfo.parentIds",
            "parentInfo.grandparentsInfo",
            "secondParentInfo",
            "comments.parent",
            "comments.familyContact",
            "personalInfo.address",
        ],
    ),
    Role.PARENT: _permission_set(
        visible=[
            "participantNumber",
            "personalInfo.firstName",
            "personalInfo.lastName",
            "personalInfo.dateOfBirth",
            "personalInfo.address",
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "personalInfo.photo",
            "parentInfo.name",
            "parentInfo.email",
            "parentInfo.phone",
            "parentInfo.grandparentsInfo.names",
            "parentInfo.grandparentsInfo.phone",
            "secondParentInfo.name",
            "secondParentInfo.email",
            "secondParentInfo.phone",
            "secondParentInfo.grandparentsInfo.names",
            "secondParentInfo.grandparentsInfo.phone",
            "teamId",
            "signedDeclaration",
            "signedFormStatus",
            "additionalComments",
            "comments.parent",
        ],
        editable=[
            "comments.parent",
        ],
        hidden=[
            "parentInfo.parentId",
            "parentInfo.parentIds",
            "comments.organization",
            "comments.teamLeader",
            "comments.familyContact",
            "instructorId",
            "instructorsComments",
        ],
    ),
    # Temporary guests (event hosts) see only what is needed on race day.
    Role.GUEST: _permission_set(
        visible=[
            "participantNumber",
            "personalInfo.firstName",
            "personalInfo.lastName",
            "personalInfo.capabilities",
            "personalInfo.announcersNotes",
            "teamId",
            "signedFormStatus",
            "additionalComments",
            "comments.organization",
        ],
        editable=[
            "comments.organization",
        ],
        hidden=[
            "personalInfo.dateOfBirth",
            "personalInfo.address",
            "personalInfo.photo",
            "parentInfo",
            "secondParentInfo",
            "instructorId",
            "vehicleId",
            "signedDeclaration",
            "comments.parent",
            "comments.teamLeader",
            "comments.familyContact",
            "instructorsComments",
        ],
    ),
}

DEFAULT_PERMISSION_TABLE = FieldPermissionTable(FIELD_PERMISSIONS)


def get_permission_set(role: typing.Any) -> RolePermissionSet:
    """
    Returns the permission set of a role from the built-in table.
    Never raises; unknown roles get the guest set.
    """
    return DEFAULT_PERMISSION_TABLE.get_permission_set(role)


def find_unassigned_fields(
    field_paths: typing.Iterable[str],
    table: FieldPermissionTable = DEFAULT_PERMISSION_TABLE,
) -> list[str]:
    """
    Returns the field paths that no role can see. These are configuration gaps:
    usually a field added to the schema without updating this table.
    """
    visible_anywhere: set[str] = set()
    for role in table.roles():
        visible_anywhere.update(table.get_permission_set(role).visible)
    return [path for path in field_paths if path not in visible_anywhere]
