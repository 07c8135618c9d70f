"""
Core settings composition.

Builds one settings value from a settings document, optional overrides and
optional validation, always in that order:

    1. Decode - read the whole document source, close it, decode into settings
    2. Update - apply the attached updater (skipped when none is attached)
    3. Validate - run the attached validator (skipped when none is attached)

The first failing stage ends the call and is reported as the single result.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from .decoding import Decoder, decode_json, decoder_for, populate
from .exceptions import (
    AppSettingsError,
    AppSettingsNilError,
    CloseFileError,
    OpenFileError,
    ReadFileError,
    ReaderNilError,
    SettingsParamNilError,
    UnmarshalError,
    UpdateError,
    ValidateError,
)
from .updaters import EnvironmentUpdater
from .validators import PydanticSettingsValidator

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "appsettings.json"


@contextmanager
def _owned_source(reader: Any) -> Iterator[Any]:
    """
    Hold the document source for the duration of the decode stage.

    The source is closed on every exit path. A close failure after a
    successful decode is raised as CloseFileError; on a failure path the
    original error is kept and the close failure is only logged.
    """
    try:
        yield reader
    except BaseException:
        try:
            reader.close()
        except Exception as close_error:
            logger.warning(f"Failed to close settings source after an earlier error: {close_error}")
        raise

    try:
        reader.close()
    except Exception as e:
        raise CloseFileError(cause=e) from e


class AppSettings:
    """
    Composes a settings value from a document source, an updater and a validator.

    The document source is owned by the instance and consumed by the first
    call to ``read``; build a new instance for every composition. The
    updater and validator are only referenced, never closed or reset.
    """

    def __init__(self, reader: Any = None, decoder: Decoder = decode_json):
        """
        Args:
            reader: Object with ``read()`` and ``close()``; None leaves the
                instance without a source and every ``read`` fails
            decoder: Parses the raw document content
        """
        self._reader = reader
        self._decoder = decoder
        self._updater: Any = None
        self._validator: Any = None

    @property
    def reader(self) -> Any:
        return self._reader

    @property
    def updater(self) -> Any:
        return self._updater

    @property
    def validator(self) -> Any:
        return self._validator

    def with_updater(self, updater: Any) -> 'AppSettings':
        """Attach an updater, replacing any previous one. None disables the update stage."""
        self._updater = updater
        return self

    def with_validator(self, validator: Any) -> 'AppSettings':
        """Attach a validator, replacing any previous one. None disables the validate stage."""
        self._validator = validator
        return self

    def read(self, settings: Any) -> None:
        """
        Decode, update and validate the settings value in place.

        Raises:
            SettingsParamNilError: If settings is None
            ReaderNilError: If no document source is bound
            ReadFileError: If the source cannot be read
            UnmarshalError: If the document does not decode into settings
            CloseFileError: If the source fails to close after decoding
            UpdateError: If the updater fails
            ValidateError: If the validator reports violations
        """
        read_settings(self, settings)

    def _decode(self, settings: Any) -> None:
        with _owned_source(self._reader) as reader:
            try:
                data = reader.read()
            except Exception as e:
                raise ReadFileError(cause=e) from e

            try:
                populate(settings, self._decoder(data))
            except Exception as e:
                raise UnmarshalError(cause=e) from e

    def _update(self, settings: Any) -> None:
        if self._updater is None:
            logger.debug("No updater attached, skipping update stage")
            return
        try:
            self._updater.update(settings)
        except Exception as e:
            raise UpdateError(cause=e, context={"updater": type(self._updater).__name__}) from e

    def _validate(self, settings: Any) -> None:
        if self._validator is None:
            logger.debug("No validator attached, skipping validate stage")
            return
        try:
            self._validator.validate(settings)
        except Exception as e:
            raise ValidateError(cause=e, context={"validator": type(self._validator).__name__}) from e


def read_settings(app_settings: Optional[AppSettings], settings: Any) -> None:
    """
    Run the settings pipeline of an AppSettings instance.

    Preconditions are checked in order: a usable instance, a settings value,
    a bound document source. Nothing else is touched when one of them fails.

    Raises:
        AppSettingsNilError: If app_settings is None or not an AppSettings
        AppSettingsError: Any error ``AppSettings.read`` documents
    """
    if not isinstance(app_settings, AppSettings):
        raise AppSettingsNilError()
    if settings is None:
        raise SettingsParamNilError()
    if app_settings._reader is None:
        raise ReaderNilError()

    settings_type = type(settings).__name__
    try:
        logger.debug(f"Decoding settings document into {settings_type}")
        app_settings._decode(settings)

        logger.debug(f"Applying overrides to {settings_type}")
        app_settings._update(settings)

        logger.debug(f"Validating {settings_type}")
        app_settings._validate(settings)
    except Exception as e:
        extra = {"error": e.to_dict()} if isinstance(e, AppSettingsError) else {}
        logger.error(f"Failed to compose settings {settings_type}: {e}", extra=extra)
        raise

    logger.info(f"Settings {settings_type} composed successfully")


def open_app_settings(path: Union[str, Path]) -> AppSettings:
    """
    Create an AppSettings instance bound to a settings file.

    The decoder is chosen from the file suffix (YAML for .yaml/.yml, JSON
    otherwise).

    Raises:
        OpenFileError: If the file cannot be opened; the OSError is kept as cause
    """
    path = Path(path)
    try:
        reader = path.open("rb")
    except OSError as e:
        raise OpenFileError(path=str(path), cause=e) from e

    logger.debug(f"Opened settings file {path}")
    return AppSettings(reader, decoder_for(path))


def new_app_settings(reader: Any = None) -> AppSettings:
    """
    Create an AppSettings instance.

    Args:
        reader: Document source; None opens appsettings.json in the
            current working directory

    Raises:
        OpenFileError: If the default settings file cannot be opened
    """
    if reader is None:
        return open_app_settings(DEFAULT_SETTINGS_FILE)
    return AppSettings(reader)


def read_settings_from_file_and_env(
    settings: Any,
    prefix: str = "",
    validator: Any = None,
    path: Union[str, Path] = DEFAULT_SETTINGS_FILE
) -> None:
    """
    Read settings from a file, override them with environment variables and validate them.

    Args:
        settings: Settings value to populate in place
        prefix: Environment variable prefix
        validator: Validator to run; defaults to PydanticSettingsValidator
        path: Settings file, appsettings.json by default
    """
    (open_app_settings(path)
        .with_updater(EnvironmentUpdater(prefix))
        .with_validator(validator or PydanticSettingsValidator())
        .read(settings))
