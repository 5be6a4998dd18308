import datetime
import typing

import pydantic

from rally_roster.utils.base_types import FieldPath, InstructorId, IsoTimestamp, KidId, TeamId, UserId, VehicleId

MAX_PARENTS_PER_KID = 2

SignedFormStatus = typing.Literal[
    "pending",
    "completed",
    "needs_review",
    "cancelled",
]


class GrandparentsInfoModel(pydantic.BaseModel):
    names: str = ""
    phone: str = ""


class PersonalInfoModel(pydantic.BaseModel):
    firstName: str = ""
    lastName: str = ""
    address: str = ""
    dateOfBirth: str = pydantic.Field(default="", description="ISO date string (YYYY-MM-DD)")
    capabilities: str = ""
    announcersNotes: str = ""
    photo: str = pydantic.Field(default="", description="URL of the kid's photo in storage")


class ParentInfoModel(pydantic.BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    parentId: str = pydantic.Field(default="", description="Legacy single owner. Superseded by parentIds.")
    parentIds: list[UserId] = pydantic.Field(default_factory=list, description="Account ids of co-owning parents")
    grandparentsInfo: GrandparentsInfoModel = pydantic.Field(default_factory=GrandparentsInfoModel)

    @pydantic.model_validator(mode="after")
    def _sync_legacy_parent_id(self) -> "ParentInfoModel":
        # Older documents only carry parentId; fold it into parentIds.
        if self.parentId and self.parentId not in self.parentIds:
            self.parentIds = [UserId(self.parentId), *self.parentIds]
        if len(self.parentIds) > MAX_PARENTS_PER_KID:
            raise ValueError(f"A kid can have at most {MAX_PARENTS_PER_KID} parents, got {len(self.parentIds)}")
        return self


class SecondParentInfoModel(pydantic.BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    grandparentsInfo: GrandparentsInfoModel = pydantic.Field(default_factory=GrandparentsInfoModel)


class CommentsModel(pydantic.BaseModel):
    parent: str = ""
    organization: str = ""
    teamLeader: str = ""
    familyContact: str = ""


class KidModel(pydantic.BaseModel):
    """
    Pydantic model representing a kid (race participant) stored in DynamoDB.
    Nested objects are stored as DynamoDB maps so dotted field paths address them directly.
    """

    kidId: KidId = pydantic.Field(description="Partition Key")
    participantNumber: str = ""
    personalInfo: PersonalInfoModel = pydantic.Field(default_factory=PersonalInfoModel)
    parentInfo: ParentInfoModel = pydantic.Field(default_factory=ParentInfoModel)
    secondParentInfo: SecondParentInfoModel = pydantic.Field(default_factory=SecondParentInfoModel)
    comments: CommentsModel = pydantic.Field(default_factory=CommentsModel)
    instructorId: typing.Optional[InstructorId] = None
    teamId: typing.Optional[TeamId] = None
    vehicleId: typing.Optional[VehicleId] = None
    signedDeclaration: bool = False
    signedFormStatus: SignedFormStatus = "pending"
    additionalComments: str = ""
    instructorsComments: list[str] = pydantic.Field(default_factory=list)
    createdAt: typing.Optional[IsoTimestamp] = None
    updatedAt: typing.Optional[IsoTimestamp] = None

    @property
    def full_name(self) -> str:
        full_name = f"{self.personalInfo.firstName} {self.personalInfo.lastName}".strip()
        return full_name or "Unnamed Kid"

    def age_on(self, on_date: datetime.date) -> typing.Optional[int]:
        """
        Returns the kid's age in whole years on the given date, or None if the
        date of birth is missing or unparseable.
        """
        try:
            birth_date = datetime.date.fromisoformat(self.personalInfo.dateOfBirth)
        except ValueError:
            return None

        age = on_date.year - birth_date.year
        if (on_date.month, on_date.day) < (birth_date.month, birth_date.day):
            age -= 1
        return age


# Identifiers of the record itself, not subject to field permissions.
KEY_FIELDS: frozenset[str] = frozenset({"kidId"})


def _leaf_paths(model_cls: type[pydantic.BaseModel], prefix: str) -> list[FieldPath]:
    paths: list[FieldPath] = []
    for name, field_info in model_cls.model_fields.items():
        path = f"{prefix}.{name}" if prefix else name
        annotation = field_info.annotation
        is_model = (
            typing.get_origin(annotation) is None
            and isinstance(annotation, type)
            and issubclass(annotation, pydantic.BaseModel)
        )
        if is_model:
            paths.extend(_leaf_paths(annotation, path))
        else:
            paths.append(FieldPath(path))
    return paths


def kid_field_paths() -> list[FieldPath]:
    """Every leaf field path of the kid schema, in declaration order."""
    return [path for path in _leaf_paths(KidModel, "") if path not in KEY_FIELDS]


class KidUpdateRequestModel(pydantic.BaseModel):
    """Body of a kid update: dotted field path -> new value."""

    changes: dict[str, typing.Any]
