import typing


class PermissionTableError(ValueError):
    """Raised when a field permission table fails its startup audit."""

    def __init__(self, problems: typing.Sequence[str]):
        self.problems = list(problems)
        super().__init__("Invalid field permission table: " + "; ".join(self.problems))


class AccessDeniedError(PermissionError):
    pass


class RecordAccessDenied(AccessDeniedError):
    pass


class FieldAccessDenied(AccessDeniedError):
    def __init__(self, field_paths: typing.Iterable[str]):
        self.field_paths = sorted(field_paths)
        super().__init__(f"Not allowed to edit fields: {', '.join(self.field_paths)}")
