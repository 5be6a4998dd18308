import enum
import typing

from pydantic import BaseModel, ConfigDict

from rally_roster.models.role_models import Role
from rally_roster.utils.base_types import InstructorId, UserId


class ResolutionStatus(str, enum.Enum):
    RESOLVED = "resolved"
    UNAUTHENTICATED = "unauthenticated"
    PROFILE_MISSING = "profile_missing"
    LOOKUP_FAILED = "lookup_failed"


RoleSource = typing.Literal["token", "profile", "fallback"]


class IdentityContext(BaseModel):
    """
    The acting principal for one session. Immutable once resolved.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    accountId: typing.Optional[UserId] = None
    instructorId: typing.Optional[InstructorId] = None
    email: typing.Optional[str] = None
    displayName: typing.Optional[str] = None
    roleSource: RoleSource = "fallback"
    status: ResolutionStatus = ResolutionStatus.RESOLVED

    @property
    def resolution_failed(self) -> bool:
        return self.status == ResolutionStatus.LOOKUP_FAILED

    @property
    def is_authenticated(self) -> bool:
        return self.status != ResolutionStatus.UNAUTHENTICATED


class PermissionsResponseModel(BaseModel):
    identity: IdentityContext
    canCreate: bool
    canEdit: bool
    canDelete: bool
    canViewAll: bool
    visible: list[str]
    editable: list[str]
    hidden: list[str]