#!/usr/bin/env python3
"""
RESTAGE Config - Runtime settings resolved from the environment.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from restage.errors import ConfigurationError

DEFAULT_TEXT_MODEL = 'gemini-2.5-flash'
DEFAULT_IMAGE_MODEL = 'gemini-2.5-flash-image'
DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class Settings:
    """Immutable configuration injected into the invoker and pipeline."""

    api_key: str
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    timeout_seconds: Optional[float] = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable not set. Please ensure it is configured."
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout_seconds}")

    @property
    def timeout_ms(self) -> Optional[int]:
        """Per-call HTTP timeout in the unit the Gemini client expects."""
        if self.timeout_seconds is None:
            return None
        return int(self.timeout_seconds * 1000)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If the API key is missing or the timeout is malformed
        """
        if env is None:
            env = os.environ

        # API_KEY is accepted for deployments that only expose a generic name
        api_key = env.get('GEMINI_API_KEY') or env.get('API_KEY') or ''

        timeout_env = env.get('RESTAGE_TIMEOUT_SECONDS', '').strip()
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS
        if timeout_env:
            if timeout_env.lower() in {'0', 'none', 'off'}:
                timeout = None
            else:
                try:
                    timeout = float(timeout_env)
                except ValueError:
                    raise ConfigurationError(
                        f"RESTAGE_TIMEOUT_SECONDS must be a number, got '{timeout_env}'"
                    ) from None

        return cls(
            api_key=api_key,
            text_model=env.get('GEMINI_TEXT_MODEL') or DEFAULT_TEXT_MODEL,
            image_model=env.get('GEMINI_IMAGE_MODEL') or DEFAULT_IMAGE_MODEL,
            timeout_seconds=timeout,
        )
