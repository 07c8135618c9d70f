"""
Field introspection shared by the decoder, the environment updater and the
validators.

A settings value is either a pydantic model or a dataclass instance. Both
expose the same view here: attribute name, document key, optional
environment segment and type annotation.
"""

import dataclasses
import types
import typing
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Union

from pydantic import BaseModel, TypeAdapter


@dataclass(frozen=True)
class SettingsField:
    """One field of a settings value."""
    name: str
    key: str
    env: Optional[str]
    annotation: Any


def is_structured(value: Any) -> bool:
    """Check whether a value is a pydantic model or dataclass instance."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_structured_type(annotation: Any) -> bool:
    if not isinstance(annotation, type):
        return False
    return issubclass(annotation, BaseModel) or dataclasses.is_dataclass(annotation)


def settings_fields(settings: Any) -> Iterator[SettingsField]:
    """
    Iterate over the fields of a settings value.

    Pydantic models take their document key from the field alias and their
    environment segment from ``json_schema_extra={"env": ...}``. Dataclasses
    use the ``"json"`` and ``"env"`` metadata entries.

    Raises:
        TypeError: If the value is neither a pydantic model nor a dataclass.
    """
    if isinstance(settings, BaseModel):
        for name, info in type(settings).model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            yield SettingsField(name, info.alias or name, extra.get("env"), info.annotation)
    elif is_structured(settings):
        hints = typing.get_type_hints(type(settings), include_extras=True)
        for f in dataclasses.fields(settings):
            yield SettingsField(
                f.name,
                f.metadata.get("json", f.name),
                f.metadata.get("env"),
                hints.get(f.name, f.type)
            )
    else:
        raise TypeError(f"unsupported settings type: {type(settings).__name__}")


def _union_args(annotation: Any) -> Optional[tuple]:
    if typing.get_origin(annotation) in (Union, types.UnionType):
        return typing.get_args(annotation)
    return None


def _strip_annotated(annotation: Any) -> Any:
    if typing.get_origin(annotation) is typing.Annotated:
        return typing.get_args(annotation)[0]
    return annotation


def nested_type(annotation: Any) -> Optional[type]:
    """Get the model or dataclass type a field holds, unwrapping Optional."""
    annotation = _strip_annotated(annotation)
    if is_structured_type(annotation):
        return annotation
    args = _union_args(annotation)
    if args:
        candidates = [arg for arg in args if arg is not type(None)]
        if len(candidates) == 1 and is_structured_type(candidates[0]):
            return candidates[0]
    return None


def accepts_none(annotation: Any) -> bool:
    annotation = _strip_annotated(annotation)
    if annotation is Any or annotation is None or annotation is type(None):
        return True
    args = _union_args(annotation)
    return bool(args) and type(None) in args


def is_sequence_type(annotation: Any) -> bool:
    annotation = _strip_annotated(annotation)
    args = _union_args(annotation)
    if args:
        candidates = [arg for arg in args if arg is not type(None)]
        if len(candidates) != 1:
            return False
        annotation = candidates[0]
    origin = typing.get_origin(annotation) or annotation
    return origin in (list, tuple, set, frozenset)


def coerce(annotation: Any, value: Any) -> Any:
    """Convert a raw value to the field annotation using pydantic."""
    return TypeAdapter(annotation).validate_python(value)


def match_key(document: Mapping[str, Any], key: str) -> Optional[str]:
    """Find a document key, preferring an exact match over a case-insensitive one."""
    if key in document:
        return key
    folded = key.casefold()
    for candidate in document:
        if isinstance(candidate, str) and candidate.casefold() == folded:
            return candidate
    return None


def find_field(settings: Any, segment: str) -> Optional[SettingsField]:
    """Find a field by attribute name or document key, case-insensitively."""
    folded = segment.casefold()
    for field in settings_fields(settings):
        if field.name.casefold() == folded or field.key.casefold() == folded:
            return field
    return None


MISSING = object()


def resolve_path(settings: Any, path: str) -> Any:
    """
    Resolve a dotted path such as ``global.log.level`` against a settings value.

    Returns ``MISSING`` when a segment does not exist.
    """
    current = settings
    segments: List[str] = path.split(".")
    for segment in segments:
        if isinstance(current, Mapping):
            key = match_key(current, segment)
            if key is None:
                return MISSING
            current = current[key]
        elif is_structured(current):
            field = find_field(current, segment)
            if field is None:
                return MISSING
            current = getattr(current, field.name, None)
        else:
            return MISSING
    return current
