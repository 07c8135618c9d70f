"""
Override stage plugins.

An updater mutates a settings value after the document has been decoded.
The pipeline only calls ``update(settings)``; how values are sourced is up
to the implementation.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import dotenv_values
from pydantic import ValidationError

from .exceptions import AggregateError
from .fields import coerce, is_sequence_type, is_structured, nested_type, settings_fields

logger = logging.getLogger(__name__)


class SettingsUpdater(ABC):
    """Abstract base class for override sources."""

    @abstractmethod
    def update(self, settings: Any) -> None:
        """Apply overrides to the settings value. Raise to report a failure."""
        pass


class NoOpUpdater(SettingsUpdater):
    """Updater that leaves the settings value untouched."""

    def update(self, settings: Any) -> None:
        return None


class EnvironmentUpdater(SettingsUpdater):
    """
    Environment variable override source.

    The variable for a field is its path upper-cased and joined with the
    separator: ``global.log.level`` is read from ``GLOBAL_LOG_LEVEL``, or
    ``APP_GLOBAL_LOG_LEVEL`` with ``prefix="APP"``. A field may declare its
    own segment (pydantic ``json_schema_extra={"env": ...}``, dataclass
    metadata ``"env"``). Trailing underscores of field names such as
    ``global_`` are dropped. List fields are read as comma-separated values.
    """

    def __init__(
        self,
        prefix: str = "",
        env_file: Optional[Union[str, Path]] = None,
        all_optional: bool = True,
        separator: str = "_",
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Args:
            prefix: Variable name prefix, with or without the trailing separator
            env_file: Optional .env file loaded beneath the process environment
            all_optional: Whether absent variables are ignored rather than reported
            separator: Separator between path segments
            environ: Environment to read instead of os.environ
        """
        self.separator = separator
        self.prefix = prefix.upper().rstrip(separator) if prefix else ""
        self.env_file = Path(env_file) if env_file is not None else None
        self.all_optional = all_optional
        self._environ = environ

    def update(self, settings: Any) -> None:
        """
        Override settings fields from environment variables.

        Raises:
            TypeError: If the settings value is not a model or dataclass
            AggregateError: If variables are missing (all_optional=False) or
                cannot be converted to their field types
        """
        if not is_structured(settings):
            raise TypeError(f"unsupported settings type: {type(settings).__name__}")

        environ = self._load_environment()
        errors: List[str] = []
        applied = self._apply(settings, [self.prefix] if self.prefix else [], environ, errors)

        if errors:
            raise AggregateError(errors, "environment overrides failed")

        logger.debug(f"Applied {applied} environment override(s)")

    def _load_environment(self) -> Dict[str, str]:
        environ: Dict[str, str] = {}
        if self.env_file is not None:
            if self.env_file.exists():
                environ.update({k: v for k, v in dotenv_values(self.env_file).items() if v is not None})
                logger.debug(f"Loaded environment variables from {self.env_file}")
            else:
                logger.warning(f"Env file not found: {self.env_file}")
        environ.update(self._environ if self._environ is not None else os.environ)
        return environ

    def _apply(self, settings: Any, path: List[str], environ: Mapping[str, str], errors: List[str]) -> int:
        applied = 0
        for field in settings_fields(settings):
            segment = (field.env or field.name.rstrip("_")).upper().replace("-", "_")
            names = path + [segment]
            current = getattr(settings, field.name, None)

            group_type = nested_type(field.annotation)
            if group_type is not None and is_structured(current):
                applied += self._apply(current, names, environ, errors)
                continue
            if group_type is not None and current is None:
                group = self._new_group(group_type)
                if group is not None:
                    group_applied = self._apply(group, names, environ, errors)
                    if group_applied:
                        setattr(settings, field.name, group)
                        applied += group_applied
                    continue

            variable = self.separator.join(names)
            if variable not in environ:
                if not self.all_optional:
                    errors.append(f"required environment variable {variable} is not set")
                continue

            try:
                setattr(settings, field.name, self._convert(field.annotation, environ[variable]))
                applied += 1
            except (ValidationError, ValueError, TypeError) as e:
                errors.append(f"invalid value for {variable}: {e}")
        return applied

    @staticmethod
    def _new_group(group_type: type) -> Any:
        # Groups without defaults for every field are overridden as a whole value
        try:
            return group_type()
        except (ValidationError, TypeError):
            return None

    def _convert(self, annotation: Any, raw: str) -> Any:
        if is_sequence_type(annotation):
            return coerce(annotation, [item.strip() for item in raw.split(",") if item.strip()])
        return coerce(annotation, raw)
