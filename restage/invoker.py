#!/usr/bin/env python3
"""
RESTAGE Invoker - Gemini model calls.
Sends ordered image parts plus a prompt and parses text, structured verdicts,
or generated images out of the response.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from restage.config import Settings
from restage.errors import AnalysisError, ConfigurationError, GenerationError
from restage.gate import QualityVerdict
from restage.images import ImageFile

log = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = (
    "The AI model did not return an image. This can be an intermittent issue. Please try again."
)


class SuitabilityResponse(BaseModel):
    """Response schema for the reference-quality stage."""

    areImagesSuitable: bool = Field(
        ..., description="True if the reference images are good enough for product replacement."
    )
    reasoning: str = Field(
        ..., description="Short explanation of the verdict."
    )


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str = 'image/png'


@dataclass(frozen=True)
class TextPart:
    text: str


ResponsePart = Union[ImagePart, TextPart]


@dataclass(frozen=True)
class GenerationResult:
    """Output of the image stage: the first image and the first text returned."""

    image: ImagePart
    text: Optional[str] = None


def strip_code_fences(response_text: str) -> str:
    """Remove markdown code fences that models sometimes wrap JSON in."""
    response_text = response_text.strip()
    if response_text.startswith('```'):
        lines = response_text.split('\n')
        response_text = '\n'.join(lines[1:-1])
    if response_text.startswith('json'):
        response_text = response_text[4:].strip()
    return response_text


def to_response_part(part: Any) -> Optional[ResponsePart]:
    """Tag a raw Gemini part as image or text; thought and empty parts yield None."""
    if getattr(part, 'thought', False):
        return None
    inline_data = getattr(part, 'inline_data', None)
    if inline_data is not None and getattr(inline_data, 'data', None):
        return ImagePart(
            data=inline_data.data,
            mime_type=getattr(inline_data, 'mime_type', None) or 'image/png'
        )
    text = getattr(part, 'text', None)
    if text:
        return TextPart(text=text)
    return None


class ModelInvoker:
    """Wraps the Gemini client with the three call shapes the pipeline needs."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        """Initialize the invoker; fails before any network access if no key is configured."""
        if not settings.api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable not set")
        self.settings = settings

        if client is None:
            http_options = None
            if settings.timeout_ms:
                http_options = types.HttpOptions(timeout=settings.timeout_ms)
            client = genai.Client(api_key=settings.api_key, http_options=http_options)
        self.client = client

    @property
    def text_model(self) -> str:
        return self.settings.text_model

    @property
    def image_model(self) -> str:
        return self.settings.image_model

    def _build_contents(self, prompt: str, images: Sequence[ImageFile]) -> List[types.Content]:
        """Images first, in order, followed by the prompt text."""
        parts = [image.to_part() for image in images]
        parts.append(types.Part.from_text(text=prompt))
        return [types.Content(role='user', parts=parts)]

    def _generate(self, model_name: str, contents: List[types.Content], config=None):
        start = time.monotonic()
        response = self.client.models.generate_content(
            model=model_name,
            contents=contents,
            config=config
        )
        log.debug(
            "%s answered in %.2fs (%d image parts)",
            model_name, time.monotonic() - start, len(contents[0].parts) - 1
        )
        return response

    def _iter_response_parts(self, response) -> Iterable[Any]:
        """Yield parts of the first candidate, tolerating partial responses."""
        candidates = getattr(response, 'candidates', None)
        if candidates:
            content = getattr(candidates[0], 'content', None)
            if content is not None and getattr(content, 'parts', None):
                return content.parts
        return []

    def analyze_text(self, prompt: str, images: Sequence[ImageFile]) -> str:
        """
        Run a text-only analysis over the given images.

        Returns:
            The trimmed response text

        Raises:
            AnalysisError: If the call fails or the model returns no text
        """
        contents = self._build_contents(prompt, images)
        try:
            response = self._generate(self.text_model, contents)
            response_text = response.text
        except Exception as e:
            raise AnalysisError(f"The AI failed to analyze the images: {e}") from e

        response_text = (response_text or '').strip()
        if not response_text:
            raise AnalysisError("The AI failed to analyze the images: empty response")
        return response_text

    def check_suitability(self, prompt: str, images: Sequence[ImageFile]) -> QualityVerdict:
        """
        Ask for a structured verdict on the reference images.

        Raises:
            AnalysisError: If the call fails or the JSON does not match the schema
        """
        contents = self._build_contents(prompt, images)
        config = types.GenerateContentConfig(
            response_mime_type='application/json',
            response_schema=SuitabilityResponse,
        )
        try:
            response = self._generate(self.text_model, contents, config)
            response_text = response.text
        except Exception as e:
            raise AnalysisError(f"The AI failed to assess the reference images: {e}") from e

        try:
            parsed = SuitabilityResponse.model_validate_json(strip_code_fences(response_text or ''))
        except ValidationError as e:
            log.warning("Unparseable quality verdict: %r", response_text)
            raise AnalysisError(f"The AI returned an invalid quality verdict: {e}") from e

        return QualityVerdict(suitable=parsed.areImagesSuitable, reasoning=parsed.reasoning)

    def generate_image(self, prompt: str, images: Sequence[ImageFile]) -> GenerationResult:
        """
        Ask the image model for an edited image.

        Returns:
            GenerationResult with the first image part and the first text part

        Raises:
            GenerationError: If the call fails or no image is returned
        """
        contents = self._build_contents(prompt, images)
        config = types.GenerateContentConfig(response_modalities=['IMAGE', 'TEXT'])
        try:
            response = self._generate(self.image_model, contents, config)
        except Exception as e:
            raise GenerationError(f"The image generation request failed: {e}") from e

        image: Optional[ImagePart] = None
        text: Optional[str] = None
        for raw_part in self._iter_response_parts(response):
            part = to_response_part(raw_part)
            if part is None:
                continue
            if isinstance(part, ImagePart):
                if image is None:
                    image = part
            elif isinstance(part, TextPart):
                # Kept verbatim; callers trim for display
                if text is None and part.text.strip():
                    text = part.text
            else:
                raise TypeError(f"Unhandled response part: {part!r}")

        if image is None:
            log.warning("Model did not return an image (text: %r)", text)
            if text:
                raise GenerationError(
                    f'The AI model failed to generate an image and responded with: "{text}"',
                    text=text
                )
            raise GenerationError(NO_IMAGE_MESSAGE)

        return GenerationResult(image=image, text=text)
