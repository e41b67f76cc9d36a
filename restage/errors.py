"""
RESTAGE Errors - Exception hierarchy shared by every pipeline stage.
"""

from typing import Optional, Tuple


class RestageError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(RestageError):
    """Raised when the API credential or another setting is missing or invalid."""


class InputFormatError(RestageError):
    """Raised when an uploaded image cannot be turned into a model part."""


class AnalysisError(RestageError):
    """Raised when a text or structured analysis call fails or returns unusable output."""


class GenerationError(RestageError):
    """
    Raised when the image generation stage does not produce an image.

    Attributes:
        text: Explanation returned by the model instead of an image, if any
        log: Transparency log entries recorded before the failure
    """

    def __init__(self, message: str, text: Optional[str] = None, log: Tuple = ()):
        super().__init__(message)
        self.text = text
        self.log = log
