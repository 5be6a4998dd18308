import typing

from pydantic import BaseModel

from rally_roster.utils.base_types import UserId


class AuthenticatedUser(BaseModel):
    """Claims forwarded by the authorizer for the calling user."""

    accountId: UserId
    tokenRole: typing.Optional[str] = None
    email: typing.Optional[str] = None
