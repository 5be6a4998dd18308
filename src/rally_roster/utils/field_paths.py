import typing

from pydantic import BaseModel

_MISSING = object()


def get_path_value(record: typing.Any, field_path: str, default: typing.Any = None) -> typing.Any:
    """
    Reads a dotted field path from a mapping or pydantic model.
    Returns `default` when any segment is missing or the record has an unexpected shape.
    """
    current = record
    for segment in field_path.split("."):
        if isinstance(current, typing.Mapping):
            current = current.get(segment, _MISSING)
        elif isinstance(current, BaseModel):
            current = getattr(current, segment, _MISSING)
        else:
            return default
        if current is _MISSING:
            return default
    return current


def set_path_value(document: dict[str, typing.Any], field_path: str, value: typing.Any) -> None:
    """Writes a dotted field path into a nested dict, creating intermediate maps."""
    *parents, leaf = field_path.split(".")
    current = document
    for segment in parents:
        child = current.get(segment)
        if not isinstance(child, dict):
            child = {}
            current[segment] = child
        current = child
    current[leaf] = value
