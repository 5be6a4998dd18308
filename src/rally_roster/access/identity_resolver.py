import logging
import typing

from botocore.exceptions import ClientError

from rally_roster.dynamodb.user_profile_table import UserProfileTable
from rally_roster.models.auth_models import AuthenticatedUser
from rally_roster.models.identity_models import IdentityContext, ResolutionStatus
from rally_roster.models.role_models import Role
from rally_roster.models.user_profile_models import UserProfileModel

_LOGGER = logging.getLogger(__name__)
_LOGGER.setLevel(logging.INFO)


class IdentityResolver:
    """
    Builds the IdentityContext for a session from the authorizer claims and the user's profile.

    Role precedence: the token's role claim, then the profile's role, then the fallback role.
    The profile is always read because it carries the instructor id used for ownership.
    A failed lookup never raises; it resolves to the fallback role with status LOOKUP_FAILED.
    """

    def __init__(self, user_profile_table: UserProfileTable, fallback_role: Role = Role.GUEST) -> None:
        if fallback_role == Role.ADMIN:
            raise ValueError("The fallback role must not be admin")
        self.user_profile_table = user_profile_table
        self.fallback_role = fallback_role

    def _fallback_identity(self, user: AuthenticatedUser, status: ResolutionStatus) -> IdentityContext:
        return IdentityContext(
            role=self.fallback_role,
            accountId=user.accountId,
            email=user.email,
            roleSource="fallback",
            status=status,
        )

    def resolve(self, user: typing.Optional[AuthenticatedUser]) -> IdentityContext:
        if user is None:
            _LOGGER.info("No authenticated user, resolving to an unauthenticated guest.")
            return IdentityContext(role=Role.GUEST, status=ResolutionStatus.UNAUTHENTICATED)

        token_role = Role.parse(user.tokenRole) if user.tokenRole else None
        if user.tokenRole and token_role is None:
            _LOGGER.warning(f"Unrecognised role claim '{user.tokenRole}' for user {user.accountId}")

        profile: typing.Optional[UserProfileModel] = None
        try:
            profile = self.user_profile_table.get_profile(user.accountId)
        except ClientError as e:
            _LOGGER.error(f"Profile lookup failed for user {user.accountId}: {e}", exc_info=True)
            if token_role is not None:
                # The role is still known from the token; only the profile details are missing.
                return IdentityContext(
                    role=token_role,
                    accountId=user.accountId,
                    email=user.email,
                    roleSource="token",
                    status=ResolutionStatus.LOOKUP_FAILED,
                )
            return self._fallback_identity(user, ResolutionStatus.LOOKUP_FAILED)

        if profile is None:
            if token_role is not None:
                return IdentityContext(
                    role=token_role,
                    accountId=user.accountId,
                    email=user.email,
                    roleSource="token",
                    status=ResolutionStatus.RESOLVED,
                )
            _LOGGER.warning(f"No profile for user {user.accountId}, using fallback role {self.fallback_role.value}")
            return self._fallback_identity(user, ResolutionStatus.PROFILE_MISSING)

        if token_role is not None:
            role = token_role
            role_source: typing.Literal["token", "profile"] = "token"
        else:
            profile_role = Role.parse(profile.role)
            if profile_role is None:
                _LOGGER.warning(
                    f"Profile for user {user.accountId} has no usable role ({profile.role!r}), "
                    f"using fallback role {self.fallback_role.value}"
                )
                return self._fallback_identity(user, ResolutionStatus.PROFILE_MISSING)
            role = profile_role
            role_source = "profile"

        return IdentityContext(
            role=role,
            accountId=user.accountId,
            instructorId=profile.instructorId,
            email=user.email or profile.email,
            displayName=profile.displayName,
            roleSource=role_source,
            status=ResolutionStatus.RESOLVED,
        )
