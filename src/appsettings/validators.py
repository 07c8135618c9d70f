"""
Validation stage plugins.

A validator inspects the merged settings value and raises when invariants
are violated. Violations are reported together as an ``AggregateError`` so
each message stays individually inspectable.
"""

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Sized
from typing import Any, Iterable, List, Mapping

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.fields import FieldInfo

from .exceptions import AggregateError
from .fields import MISSING, is_structured, resolve_path


class SettingsValidator(ABC):
    """Abstract base class for settings validators."""

    @abstractmethod
    def validate(self, settings: Any) -> None:
        """Check the settings value. Raise to report violations."""
        pass


class NoOpValidator(SettingsValidator):
    """Validator that accepts every settings value."""

    def validate(self, settings: Any) -> None:
        return None


class RequiredFieldsValidator(SettingsValidator):
    """Requires a non-empty value at each of the given dotted paths."""

    def __init__(self, paths: Iterable[str]):
        self.paths = list(paths)

    def validate(self, settings: Any) -> None:
        violations = []
        for path in self.paths:
            value = resolve_path(settings, path)
            if value is MISSING:
                violations.append(f"{path} is not a known settings field")
            elif self._is_empty(value):
                violations.append(f"{path} is required")

        if violations:
            raise AggregateError(violations)

    @staticmethod
    def _is_empty(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, Sized):
            return len(value) == 0
        return False


class PydanticSettingsValidator(SettingsValidator):
    """
    Re-validates the settings value with pydantic.

    Model constraints (``Field(min_length=1)``, custom validators) and
    ``Annotated`` constraints on dataclass fields are checked against the
    current state, which decode and override never do.
    """

    def validate(self, settings: Any) -> None:
        try:
            if isinstance(settings, BaseModel):
                type(settings).model_validate(self._raw(settings))
            elif is_structured(settings):
                TypeAdapter(type(settings)).validate_python(self._raw(settings))
            else:
                raise TypeError(f"unsupported settings type: {type(settings).__name__}")
        except ValidationError as e:
            raise AggregateError(self._format(error) for error in e.errors()) from e

    @classmethod
    def _raw(cls, value: Any) -> Any:
        """
        Unwrap a settings value into the plain data pydantic validates.

        Fields are read directly instead of serialized so excluded fields and
        serialization aliases do not hide values from validation.
        """
        if isinstance(value, BaseModel):
            return {
                _validation_key(name, info): cls._raw(getattr(value, name))
                for name, info in type(value).model_fields.items()
            }
        if is_structured(value):
            return {f.name: cls._raw(getattr(value, f.name)) for f in dataclasses.fields(value)}
        if isinstance(value, Mapping):
            return {k: cls._raw(v) for k, v in value.items()}
        if isinstance(value, list):
            return [cls._raw(v) for v in value]
        if isinstance(value, tuple):
            return tuple(cls._raw(v) for v in value)
        return value

    @staticmethod
    def _format(error: dict) -> str:
        location = " -> ".join(str(loc) for loc in error.get('loc', []))
        msg = error.get('msg', 'Unknown error')
        return f"{location}: {msg}" if location else msg


def _validation_key(name: str, info: FieldInfo) -> str:
    if isinstance(info.validation_alias, str):
        return info.validation_alias
    return info.alias or name


class CompositeValidator(SettingsValidator):
    """Runs every validator and reports all violations together."""

    def __init__(self, *validators: SettingsValidator):
        self.validators = list(validators)

    def validate(self, settings: Any) -> None:
        errors: List[BaseException] = []
        for validator in self.validators:
            try:
                validator.validate(settings)
            except AggregateError as e:
                errors.extend(e.errors)
            except Exception as e:
                errors.append(e)

        if errors:
            raise AggregateError(errors)
