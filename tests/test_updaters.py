"""
Tests for the override stage plugins.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from unittest.mock import patch

import pytest
from pydantic import BaseModel, Field

from appsettings import AggregateError, EnvironmentUpdater, NoOpUpdater

from conftest import SampleSettings


class VaultSettings(BaseModel):
    token: str = Field(default="", json_schema_extra={"env": "VAULT_TOKEN"})
    hosts: List[str] = Field(default_factory=list)


class DatabaseSettings(BaseModel):
    host: str = "localhost"
    port: int = 5432


class StorageSettings(BaseModel):
    db: Optional[DatabaseSettings] = None


@dataclass
class WorkerSettings:
    concurrency: int = 1
    queue_name: str = field(default="default", metadata={"env": "queue"})


class TestNoOpUpdater:
    """Test the null updater."""

    def test_leaves_settings_untouched(self):
        """Test that the null updater changes nothing."""
        settings = SampleSettings()

        NoOpUpdater().update(settings)

        assert settings == SampleSettings()


class TestEnvironmentUpdater:
    """Test environment variable overrides."""

    def test_nested_fields(self):
        """Test that nested fields are read from underscore-joined paths."""
        settings = SampleSettings()
        environ = {
            "GLOBAL_LOG_LEVEL": "Warning",
            "CUSTOM_SERVICE_NAME": "billing",
            "GOOGLE_APP_CREDENTIALS": "secret",
        }

        EnvironmentUpdater(environ=environ).update(settings)

        assert settings.global_.log.level == "Warning"
        assert settings.custom.service.name == "billing"
        assert settings.google.app.credentials == "secret"

    def test_prefix(self):
        """Test that a prefix is applied with or without its separator."""
        for prefix in ("APP", "app_"):
            settings = SampleSettings()

            EnvironmentUpdater(prefix, environ={"APP_CUSTOM_SERVICE_NAME": "api", "CUSTOM_ENABLED": "true"}).update(settings)

            assert settings.custom.service.name == "api"
            assert settings.custom.enabled is False

    def test_absent_variables_leave_values(self):
        """Test that absent variables keep decoded values."""
        settings = SampleSettings()
        settings.global_.log.level = "Debug"

        EnvironmentUpdater(environ={}).update(settings)

        assert settings.global_.log.level == "Debug"

    def test_value_conversion(self):
        """Test that values are converted to the field types."""
        settings = SampleSettings()
        environ = {"CUSTOM_ENABLED": "true", "CUSTOM_RETRIES": "5", "CORS_ORIGINS": "https://a.example, https://b.example"}

        EnvironmentUpdater(environ=environ).update(settings)

        assert settings.custom.enabled is True
        assert settings.custom.retries == 5
        assert settings.cors.origins == ["https://a.example", "https://b.example"]

    def test_single_list_value(self):
        """Test that a single value becomes a one-element list."""
        settings = SampleSettings()

        EnvironmentUpdater(environ={"CORS_ORIGINS": "*"}).update(settings)

        assert settings.cors.origins == ["*"]

    def test_invalid_values_are_aggregated(self):
        """Test that every conversion failure is reported."""
        settings = SampleSettings()
        environ = {"CUSTOM_ENABLED": "maybe", "CUSTOM_RETRIES": "many"}

        with pytest.raises(AggregateError) as exc_info:
            EnvironmentUpdater(environ=environ).update(settings)

        messages = exc_info.value.messages()
        assert len(messages) == 2
        assert any("CUSTOM_ENABLED" in message for message in messages)
        assert any("CUSTOM_RETRIES" in message for message in messages)

    def test_required_variables(self):
        """Test that absent variables are reported when not all optional."""
        settings = WorkerSettings()

        with pytest.raises(AggregateError) as exc_info:
            EnvironmentUpdater("worker", all_optional=False, environ={"WORKER_CONCURRENCY": "4"}).update(settings)

        assert exc_info.value.messages() == ["required environment variable WORKER_QUEUE is not set"]
        assert "environment overrides failed" in str(exc_info.value)

    def test_declared_env_segment(self):
        """Test that fields can declare their own variable segment."""
        settings = VaultSettings()
        worker = WorkerSettings()

        EnvironmentUpdater(environ={"VAULT_TOKEN": "t0k3n", "HOSTS": "a,b"}).update(settings)
        EnvironmentUpdater(environ={"QUEUE": "priority", "CONCURRENCY": "8"}).update(worker)

        assert settings.token == "t0k3n"
        assert settings.hosts == ["a", "b"]
        assert worker.queue_name == "priority"
        assert worker.concurrency == 8

    def test_process_environment(self):
        """Test that os.environ is read by default."""
        settings = SampleSettings()

        with patch.dict(os.environ, {"TEST_GOOGLE_APP_CREDENTIALS": "from-process"}):
            EnvironmentUpdater("TEST_").update(settings)

        assert settings.google.app.credentials == "from-process"

    def test_env_file(self, tmp_path):
        """Test that a .env file is loaded beneath the environment."""
        env_file = tmp_path / ".env"
        env_file.write_text("CUSTOM_SERVICE_NAME=from-file\nGLOBAL_LOG_LEVEL=Info\n")
        settings = SampleSettings()

        EnvironmentUpdater(env_file=env_file, environ={"GLOBAL_LOG_LEVEL": "Error"}).update(settings)

        assert settings.custom.service.name == "from-file"
        assert settings.global_.log.level == "Error"

    def test_missing_env_file(self, tmp_path):
        """Test that a missing .env file is skipped."""
        settings = SampleSettings()

        EnvironmentUpdater(env_file=tmp_path / "missing.env", environ={"CUSTOM_ENABLED": "1"}).update(settings)

        assert settings.custom.enabled is True

    def test_unsupported_settings(self):
        """Test that mappings are rejected."""
        with pytest.raises(TypeError, match="unsupported settings type"):
            EnvironmentUpdater(environ={}).update({"a": 1})

    def test_absent_optional_group_is_built(self):
        """Test that overrides reach a nested group that was never decoded."""
        settings = StorageSettings()

        EnvironmentUpdater(environ={"DB_HOST": "db.example", "DB_PORT": "6543"}).update(settings)

        assert settings.db == DatabaseSettings(host="db.example", port=6543)

    def test_absent_optional_group_without_overrides(self):
        """Test that a nested group stays None when no variable targets it."""
        settings = StorageSettings()

        EnvironmentUpdater(environ={"CACHE_HOST": "ignored"}).update(settings)

        assert settings.db is None
