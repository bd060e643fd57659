"""
Unit tests for settings, logging, security and exceptions.
"""

import json
import logging

import pytest
from pydantic import ValidationError as SchemaValidationError

from app.core.config import DocumentStoreEnum, EnvironmentEnum, LogFormatEnum, Settings
from app.core.logging import JsonFormatter, RequestIdFilter, request_id_var, setup_logging
from app.core.security import LocalIdentityProvider
from app.exceptions.ai import (
    AIContentFilterError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    map_ai_error,
)
from app.exceptions.base import AuthenticationError, NotFoundError, ValidationError
from app.exceptions.sync import RequestTimeoutError, TransientNetworkError
from app.schemas.task import TaskCreate


class TestSettings:
    """Test cases for Settings."""

    def test_environment_aliases(self):
        """Test short environment names are normalized."""
        assert Settings(environment="prod").environment == EnvironmentEnum.production
        assert Settings(environment="dev").is_development

    def test_sql_store_gets_default_url(self):
        """Test the sql store falls back to a local SQLite file."""
        config = Settings(document_store="sql", database_url=None)

        assert config.document_store == DocumentStoreEnum.sql
        assert config.database_url.startswith("sqlite+aiosqlite://")

    def test_delays_must_be_positive(self):
        """Test non-positive client delays are rejected."""
        with pytest.raises(SchemaValidationError):
            Settings(autosave_delay=0)
        with pytest.raises(SchemaValidationError):
            Settings(request_timeout=-1)

    def test_allowed_origins_list(self):
        """Test CORS origins parsing."""
        config = Settings(allowed_origins="http://a.test, http://b.test,")

        assert config.allowed_origins_list == ["http://a.test", "http://b.test"]

    def test_ai_enabled_follows_key(self):
        """Test AI is only enabled with an API key."""
        assert not Settings(gemini_api_key="").has_ai_enabled
        assert Settings(gemini_api_key="key").has_ai_enabled


class TestLogging:
    """Test cases for logging setup."""

    def test_json_formatter(self):
        """Test JSON log lines carry the message and logger."""
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == "hello world"
        assert entry["logger"] == "app.test"
        assert entry["level"] == "INFO"

    def test_request_id_is_attached_inside_a_request(self):
        """Test the request ID set for the current request reaches JSON log lines."""
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "handled", (), None)
        token = request_id_var.set("req-123")
        try:
            RequestIdFilter().filter(record)
        finally:
            request_id_var.reset(token)

        entry = json.loads(JsonFormatter().format(record))

        assert entry["request_id"] == "req-123"

    def test_no_request_id_outside_a_request(self):
        """Test log lines outside a request carry no request ID."""
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "startup", (), None)

        RequestIdFilter().filter(record)

        assert record.request_id is None
        assert "request_id" not in json.loads(JsonFormatter().format(record))

    def test_setup_logging_installs_one_handler(self):
        """Test repeated setup does not stack handlers."""
        setup_logging("DEBUG", LogFormatEnum.json)
        logger = setup_logging("INFO", LogFormatEnum.simple)

        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO


class TestLocalIdentity:
    """Test cases for LocalIdentityProvider."""

    def test_valid_credentials(self):
        """Test the configured credentials map to the fixed user id."""
        provider = LocalIdentityProvider(
            Settings(local_username="ada", local_password="secret", local_user_id="uid-1")
        )

        assert provider.authenticate("ada", "secret") == "uid-1"

    @pytest.mark.parametrize("username,password", [("ada", "wrong"), ("bob", "secret"), ("", "")])
    def test_invalid_credentials(self, username, password):
        """Test any mismatch is rejected."""
        provider = LocalIdentityProvider(
            Settings(local_username="ada", local_password="secret", local_user_id="uid-1")
        )

        with pytest.raises(AuthenticationError):
            provider.authenticate(username, password)


class TestExceptions:
    """Test cases for the exception hierarchy."""

    def test_status_codes(self):
        """Test each error carries its HTTP status and code."""
        assert NotFoundError().status_code == 404
        assert ValidationError().error_code == "VALIDATION_ERROR"
        assert AuthenticationError().status_code == 401
        assert TransientNetworkError().status_code == 503
        assert RequestTimeoutError().error_code == "REQUEST_TIMEOUT"
        assert isinstance(RequestTimeoutError(), TransientNetworkError)

    def test_validation_error_from_schema_error(self):
        """Test pydantic errors become a serializable details list."""
        with pytest.raises(SchemaValidationError) as exc_info:
            TaskCreate.model_validate({"content": "x"})

        error = ValidationError.from_schema_error(exc_info.value, "project_id and content are required")

        assert error.message == "project_id and content are required"
        assert error.details["errors"][0]["loc"] == ["project_id"]
        json.dumps(error.details)

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("429 Resource has been exhausted (quota)", AIRateLimitError),
            ("Response blocked by safety settings", AIContentFilterError),
            ("503 Service Unavailable", AIServiceUnavailableError),
            ("something odd", AIServiceError),
        ],
    )
    def test_map_ai_error(self, text, expected):
        """Test SDK errors are mapped by their message."""
        assert type(map_ai_error(RuntimeError(text))) is expected
