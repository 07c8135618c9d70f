"""
Structured Exception Hierarchy

Every failure of the settings pipeline is reported as one of the exceptions
below. Each kind carries a stable error code, contextual data and the
low-level cause it wraps, so callers can tell "file missing" from
"malformed document" from "override failed" from "validation failed" and
still inspect the original error.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union


class AggregateError(Exception):
    """
    An ordered bundle of independent errors.

    Validators and updaters raise this to report several problems at once.
    The string form lists every error on its own line so no message is lost
    when the aggregate is wrapped.
    """

    def __init__(
        self,
        errors: Iterable[Union[BaseException, str]],
        message: Optional[str] = None
    ):
        self.errors: List[BaseException] = [
            error if isinstance(error, BaseException) else ValueError(error)
            for error in errors
        ]
        self.message = message
        super().__init__(str(self))

    def messages(self) -> List[str]:
        """Get the message of every bundled error, in order."""
        return [str(error) for error in self.errors]

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __str__(self) -> str:
        lines = [self.message] if self.message else []
        lines.extend(self.messages())
        return "\n".join(lines)


class AppSettingsError(Exception):
    """
    Base exception class for all settings pipeline exceptions.

    Provides structured error information including error codes,
    context data, the wrapped cause and a correlation ID for tracing.
    """

    error_code = "APPSETTINGS_ERROR"
    default_message = "settings pipeline failed"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        correlation_id: Optional[str] = None
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.error_code = error_code or self.error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}\n{self.cause}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class AppSettingsNilError(AppSettingsError):
    """Raised when the pipeline is invoked without a usable AppSettings instance."""

    error_code = "APPSETTINGS_NIL"
    default_message = "app settings instance is None"


class SettingsParamNilError(AppSettingsError):
    """Raised when the settings value to populate is None."""

    error_code = "SETTINGS_PARAM_NIL"
    default_message = "settings parameter is None"


class ReaderNilError(AppSettingsError):
    """Raised when no document source is bound."""

    error_code = "READER_NIL"
    default_message = "settings reader is None"


class OpenFileError(AppSettingsError):
    """Raised when the settings file cannot be opened."""

    error_code = "OPEN_FILE_ERROR"
    default_message = "failed to open settings file"

    def __init__(self, message: Optional[str] = None, path: Optional[str] = None, **kwargs):
        context = dict(kwargs.pop('context', None) or {})
        if path:
            context['path'] = path
        super().__init__(message=message, context=context, **kwargs)


class ReadFileError(AppSettingsError):
    """Raised when the document source cannot be read to completion."""

    error_code = "READ_FILE_ERROR"
    default_message = "failed to read settings file"


class CloseFileError(AppSettingsError):
    """Raised when the document source fails to close after a successful read."""

    error_code = "CLOSE_FILE_ERROR"
    default_message = "failed to close settings file"


class UnmarshalError(AppSettingsError):
    """Raised when the document does not decode into the settings value."""

    error_code = "UNMARSHAL_ERROR"
    default_message = "failed to unmarshal settings file"


class UpdateError(AppSettingsError):
    """Raised when the override stage reports a failure."""

    error_code = "UPDATE_ERROR"
    default_message = "failed to update settings"


class ValidateError(AppSettingsError):
    """Raised when the validator reports one or more violations."""

    error_code = "VALIDATE_ERROR"
    default_message = "failed to validate settings"

    @property
    def violations(self) -> List[str]:
        """Get every violation message reported by the validator."""
        if isinstance(self.cause, AggregateError):
            return self.cause.messages()
        if self.cause is None:
            return []
        return [str(self.cause)]
