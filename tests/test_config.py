"""Tests for config module."""

import pytest

from restage.config import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, Settings
from restage.errors import ConfigurationError


class TestSettings:
    """Tests for the Settings dataclass."""

    def test_missing_api_key_raises(self):
        """An empty credential is a configuration error."""
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            Settings(api_key='')

    def test_blank_api_key_raises(self):
        """A whitespace-only credential is treated as missing."""
        with pytest.raises(ConfigurationError):
            Settings(api_key='   ')

    def test_non_positive_timeout_raises(self):
        with pytest.raises(ConfigurationError, match="Timeout"):
            Settings(api_key='key', timeout_seconds=0)

    def test_timeout_ms(self):
        assert Settings(api_key='key', timeout_seconds=2.5).timeout_ms == 2500
        assert Settings(api_key='key', timeout_seconds=None).timeout_ms is None

    def test_settings_are_immutable(self):
        settings = Settings(api_key='key')
        with pytest.raises(AttributeError):
            settings.api_key = 'other'


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_reads_gemini_api_key(self):
        settings = Settings.from_env({'GEMINI_API_KEY': 'abc'})

        assert settings.api_key == 'abc'
        assert settings.text_model == DEFAULT_TEXT_MODEL
        assert settings.image_model == DEFAULT_IMAGE_MODEL

    def test_falls_back_to_api_key(self):
        """API_KEY is accepted when GEMINI_API_KEY is absent."""
        settings = Settings.from_env({'API_KEY': 'fallback'})

        assert settings.api_key == 'fallback'

    def test_missing_key_raises_before_anything_else(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env({})

    def test_model_overrides(self):
        settings = Settings.from_env({
            'GEMINI_API_KEY': 'abc',
            'GEMINI_TEXT_MODEL': 'custom-text',
            'GEMINI_IMAGE_MODEL': 'custom-image',
        })

        assert settings.text_model == 'custom-text'
        assert settings.image_model == 'custom-image'

    def test_timeout_parsing(self):
        settings = Settings.from_env({'GEMINI_API_KEY': 'abc', 'RESTAGE_TIMEOUT_SECONDS': '30'})

        assert settings.timeout_seconds == 30.0

    def test_timeout_can_be_disabled(self):
        settings = Settings.from_env({'GEMINI_API_KEY': 'abc', 'RESTAGE_TIMEOUT_SECONDS': 'off'})

        assert settings.timeout_seconds is None

    def test_invalid_timeout_raises(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            Settings.from_env({'GEMINI_API_KEY': 'abc', 'RESTAGE_TIMEOUT_SECONDS': 'soon'})

    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv('GEMINI_API_KEY', 'from-env')

        assert Settings.from_env().api_key == 'from-env'
