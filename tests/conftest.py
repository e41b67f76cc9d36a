"""Shared fixtures for RESTAGE tests."""

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from restage.config import Settings
from restage.images import ImageFile


def make_png(color='red', size=(64, 48)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color=color).save(buffer, format='PNG')
    return buffer.getvalue()


def make_jpeg(color='blue', size=(40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color=color).save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def settings():
    return Settings(api_key='test-key', text_model='text-model', image_model='image-model')


@pytest.fixture
def product_images():
    return [ImageFile.from_bytes(make_png('red')), ImageFile.from_bytes(make_png('green'))]


@pytest.fixture
def target_image():
    return ImageFile.from_bytes(make_jpeg('blue', size=(120, 80)))
