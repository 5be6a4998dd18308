import enum
import typing

# Legacy role names stored in older user documents and token claims.
ROLE_ALIASES: dict[str, str] = {
    "host": "guest",
}


class Role(str, enum.Enum):
    """
    The closed set of principal categories. Any other value is treated as unknown.
    """

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    PARENT = "parent"
    GUEST = "guest"

    @classmethod
    def parse(cls, value: typing.Any) -> typing.Optional["Role"]:
        """
        Converts a raw role value (token claim, profile attribute) into a Role.
        Aliases are resolved here and nowhere else.

        :return: The matching Role, or None if the value is not a recognised role.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None

        # Exact match only: "Admin" or " admin" are unknown, not admin.
        normalized = ROLE_ALIASES.get(value, value)
        try:
            return cls(normalized)
        except ValueError:
            return None
