"""
Shared fixtures and fakes for the test suite.
"""

import io
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from cardscan.pipeline import ExtractionPipeline
from cardscan.vlm_ocr import VisionCascade


VALID_JSON = (
    '{"name": "Jane Doe", "company": "Acme Corp", "title": "CEO", '
    '"phone": "+1 415-555-0132", "email": "jane.doe@example.com", '
    '"address": "1 Market St, San Francisco", "website": "www.acme.co"}'
)

CARD_TEXT = """@@@@
Jane Doe
Chief Executive Officer - CEO
Acme Solutions Inc
1 Market Street
San Francisco CA
+1 415-555-0132
Contact: jane.doe@example.com
Visit www.acme.co"""


class FakeBackend:
    """Vision backend double with a scripted answer or failure."""

    def __init__(self, name, text=None, error=None):
        self.name = name
        self.invoke = AsyncMock(return_value=text, side_effect=error)


class HTTPError(Exception):
    """Exception carrying an HTTP-like status, like google.genai.errors.APIError."""

    def __init__(self, code, message="request failed"):
        super().__init__(f"{code} {message}")
        self.code = code


def make_pipeline(backends=(), ocr_text="", ocr_error=None):
    ocr = Mock()
    ocr.languages = ["en"]
    if ocr_error is not None:
        ocr.recognize.side_effect = ocr_error
    else:
        ocr.recognize.return_value = ocr_text
    return ExtractionPipeline(cascade=VisionCascade(backends), ocr=ocr)


def make_image_bytes(size=(400, 200), mode="RGB", fmt="PNG"):
    img = Image.new(mode, size, color="white")
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def card_text():
    return CARD_TEXT


@pytest.fixture
def image_bytes():
    return make_image_bytes()
