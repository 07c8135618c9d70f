"""
Shared fixtures for the settings pipeline tests.
"""

from typing import List, Optional

import pytest
from pydantic import BaseModel, ConfigDict, Field

from appsettings import SettingsUpdater, SettingsValidator


VALID_DOCUMENT = """{
    "global": {
        "log": {
            "msg-level": "Debug"
        }
    },
    "cors": {
        "origins": ["*"]
    }
}"""

MALFORMED_DOCUMENT = """{
    "global": {
        "log": {
            "msg-level" "Debug"
        }}
    },
    cors": {
        "origins": ["*"]
    ]
"""


class LogSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    level: str = Field(default="", alias="msg-level", min_length=1)


class GlobalSettings(BaseModel):
    log: LogSettings = Field(default_factory=LogSettings)


class CorsSettings(BaseModel):
    origins: List[str] = Field(default_factory=list)


class ServiceSettings(BaseModel):
    name: str = ""


class CustomSettings(BaseModel):
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    enabled: bool = False
    retries: Optional[int] = None


class GoogleAppSettings(BaseModel):
    credentials: str = Field(default="", min_length=1)


class GoogleSettings(BaseModel):
    app: GoogleAppSettings = Field(default_factory=GoogleAppSettings)


class SampleSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")
    cors: CorsSettings = Field(default_factory=CorsSettings)
    custom: CustomSettings = Field(default_factory=CustomSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)


class FakeReader:
    """Document source with switchable read and close failures."""

    def __init__(self, content: bytes = b"", read_error: bool = False, close_error: bool = False):
        self.content = content
        self.read_error = read_error
        self.close_error = close_error
        self.read_calls = 0
        self.close_calls = 0

    def read(self) -> bytes:
        self.read_calls += 1
        if self.read_error:
            raise OSError("read error")
        return self.content

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error:
            raise OSError("close error")


class CredentialsUpdater(SettingsUpdater):
    """Updater that fills in credentials and the log level when configured."""

    def __init__(self, credentials: str = "", log_level: str = "", error: Optional[Exception] = None):
        self.credentials = credentials
        self.log_level = log_level
        self.error = error
        self.calls = 0

    def update(self, settings: SampleSettings) -> None:
        self.calls += 1
        if self.log_level:
            settings.global_.log.level = self.log_level
        if self.credentials:
            settings.google.app.credentials = self.credentials
        if self.error is not None:
            raise self.error


class RecordingValidator(SettingsValidator):
    """Validator that only records how often it ran."""

    def __init__(self):
        self.calls = 0

    def validate(self, settings) -> None:
        self.calls += 1


@pytest.fixture
def settings():
    return SampleSettings()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside an empty temporary working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings_file(workdir):
    """Write a well-formed appsettings.json into the working directory."""
    path = workdir / "appsettings.json"
    path.write_text(VALID_DOCUMENT, encoding="utf-8")
    return path
