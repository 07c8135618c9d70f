"""
Layered application settings

Composes one validated settings value from a settings document
(appsettings.json by default), pluggable overrides such as environment
variables, and pluggable validation.
"""

from .exceptions import (
    AggregateError,
    AppSettingsError,
    AppSettingsNilError,
    SettingsParamNilError,
    ReaderNilError,
    OpenFileError,
    ReadFileError,
    CloseFileError,
    UnmarshalError,
    UpdateError,
    ValidateError
)

from .decoding import (
    Decoder,
    decode_json,
    decode_yaml,
    decoder_for,
    populate
)

from .updaters import (
    SettingsUpdater,
    NoOpUpdater,
    EnvironmentUpdater
)

from .validators import (
    SettingsValidator,
    NoOpValidator,
    RequiredFieldsValidator,
    PydanticSettingsValidator,
    CompositeValidator
)

from .composer import (
    DEFAULT_SETTINGS_FILE,
    AppSettings,
    new_app_settings,
    open_app_settings,
    read_settings,
    read_settings_from_file_and_env
)

from .logging_setup import setup_logging

__all__ = [
    # Errors
    'AggregateError',
    'AppSettingsError',
    'AppSettingsNilError',
    'SettingsParamNilError',
    'ReaderNilError',
    'OpenFileError',
    'ReadFileError',
    'CloseFileError',
    'UnmarshalError',
    'UpdateError',
    'ValidateError',

    # Decoding
    'Decoder',
    'decode_json',
    'decode_yaml',
    'decoder_for',
    'populate',

    # Updaters
    'SettingsUpdater',
    'NoOpUpdater',
    'EnvironmentUpdater',

    # Validators
    'SettingsValidator',
    'NoOpValidator',
    'RequiredFieldsValidator',
    'PydanticSettingsValidator',
    'CompositeValidator',

    # Core
    'DEFAULT_SETTINGS_FILE',
    'AppSettings',
    'new_app_settings',
    'open_app_settings',
    'read_settings',
    'read_settings_from_file_and_env',

    # Logging
    'setup_logging'
]
