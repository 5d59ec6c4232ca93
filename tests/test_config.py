"""Tests for settings and logging setup."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from observation_store.config import Settings
from observation_store.observability import configure_logging


@pytest.fixture
def restore_logging():
    yield
    configure_logging()


class TestLogLevel:
    def test_level_name_is_case_insensitive(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_level_is_rejected_by_settings(self):
        with pytest.raises(PydanticValidationError):
            Settings(log_level="FOO")

    def test_unknown_level_is_rejected_by_configure(self, restore_logging):
        with pytest.raises(ValueError, match="unknown log level: FOO"):
            configure_logging("foo")

    def test_known_level_configures(self, restore_logging):
        configure_logging("warning")
