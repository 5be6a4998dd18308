import typing

UserId = typing.NewType("UserId", str)
InstructorId = typing.NewType("InstructorId", str)

KidId = typing.NewType("KidId", str)
TeamId = typing.NewType("TeamId", str)
VehicleId = typing.NewType("VehicleId", str)
FieldPath = typing.NewType("FieldPath", str)
IsoTimestamp = typing.NewType("IsoTimestamp", str)
