import typing

import pydantic

from rally_roster.utils.base_types import InstructorId, IsoTimestamp, UserId


class UserProfileModel(pydantic.BaseModel):
    """
    Pydantic model representing a user profile stored in DynamoDB.
    The role is kept as the raw stored string; it is interpreted during identity resolution.
    """

    userId: UserId = pydantic.Field(description="Partition Key - the user's account id")
    role: typing.Optional[str] = pydantic.Field(default=None, description="admin, instructor, parent or guest")
    instructorId: typing.Optional[InstructorId] = pydantic.Field(
        default=None, description="Instructor document id, set only for instructors"
    )
    displayName: typing.Optional[str] = None
    email: typing.Optional[str] = None
    name: typing.Optional[str] = None
    phone: typing.Optional[str] = None
    createdAt: typing.Optional[IsoTimestamp] = pydantic.Field(
        default=None, description="ISO8601 timestamp of when the profile was created"
    )
    lastLoginAt: typing.Optional[IsoTimestamp] = pydantic.Field(
        default=None, description="ISO8601 timestamp of most recent login"
    )
