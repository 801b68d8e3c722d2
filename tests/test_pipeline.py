"""
Tests for ExtractionPipeline.

Tests the full cascade -> fallback -> normalize flow with fake collaborators.
"""

import asyncio
from unittest.mock import Mock

import pytest

from cardscan.normalizer import ContactRecord
from cardscan.ocr import OCRError
from cardscan.pipeline import (
    SOURCE_OCR,
    SOURCE_VISION,
    ExtractionPipeline,
    parse_model_text,
)
from cardscan.settings import CONTACT_FIELDS, ExtractionSettings
from cardscan.vlm_ocr import VisionCascade
from conftest import CARD_TEXT, VALID_JSON, FakeBackend, HTTPError, make_pipeline


class TestParseModelText:
    """Test cases for parse_model_text()."""

    def test_plain_json(self):
        assert parse_model_text(VALID_JSON)["name"] == "Jane Doe"

    def test_fenced_json(self):
        text = "```json\n" + VALID_JSON + "\n```"

        assert parse_model_text(text)["email"] == "jane.doe@example.com"

    def test_bare_fence(self):
        assert parse_model_text('```\n{"name": "A"}\n```') == {"name": "A"}

    @pytest.mark.parametrize("text", ["not json", "", "[1, 2]", '"just a string"', "{broken"])
    def test_malformed_gives_empty(self, text):
        assert parse_model_text(text) == {}


class TestExtractionPipeline:
    """Test cases for ExtractionPipeline."""

    def test_vision_success(self):
        """First successful backend's JSON becomes the record."""
        b1 = FakeBackend("b1", error=HTTPError(403))
        b2 = FakeBackend("b2", text="```json\n" + VALID_JSON + "\n```")
        b3 = FakeBackend("b3", text='{"name": "Never"}')
        pipeline = make_pipeline([b1, b2, b3])

        result = asyncio.run(pipeline.extract(b"compressed", "image/jpeg", b"original"))

        assert result.source == SOURCE_VISION
        assert result.backend == "b2"
        assert result.record.name == "Jane Doe"
        assert result.record.website == "www.acme.co"
        b3.invoke.assert_not_called()
        pipeline.ocr.recognize.assert_not_called()

    def test_exhaustion_triggers_ocr_fallback(self):
        """All backends fail -> OCR on the original image -> heuristics."""
        backends = [FakeBackend("b1", error=HTTPError(500)), FakeBackend("b2", text="")]
        pipeline = make_pipeline(backends, ocr_text=CARD_TEXT)
        pipeline.extractor = Mock(wraps=pipeline.extractor)

        result = asyncio.run(pipeline.extract(b"compressed", "image/jpeg", b"original"))

        pipeline.ocr.recognize.assert_called_once_with(b"original")
        pipeline.extractor.extract.assert_called_once_with(CARD_TEXT)
        assert result.source == SOURCE_OCR
        assert result.backend is None
        assert result.record.name == "Jane Doe"
        assert result.record.email == "jane.doe@example.com"
        assert len(result.attempts) == 2

    def test_ocr_uses_payload_without_original(self):
        pipeline = make_pipeline([], ocr_text="")

        asyncio.run(pipeline.run(b"payload", "image/jpeg"))

        pipeline.ocr.recognize.assert_called_once_with(b"payload")

    def test_ocr_output_reaches_normalizer(self):
        """Heuristic output is normalized like any other candidate."""
        pipeline = make_pipeline([], ocr_text="")
        pipeline.extractor = Mock()
        pipeline.extractor.extract.return_value = {"name": "  Jane  ", "email": ""}

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        assert record.name == "Jane"
        assert record.email == "N/A"

    def test_malformed_output_degrades_to_defaults(self):
        """'not json' gives an all-defaults record and does not raise."""
        pipeline = make_pipeline([FakeBackend("b1", text="not json")])

        result = asyncio.run(pipeline.extract(b"img", "image/jpeg"))

        assert result.source == SOURCE_VISION
        assert result.record.name == "Unknown"
        assert all(v for v in result.record.to_dict().values())

    def test_malformed_output_does_not_trigger_ocr(self):
        """A present but unparseable answer never falls back to OCR."""
        b1 = FakeBackend("b1", text="Sorry, I cannot read this card.")
        b2 = FakeBackend("b2", text=VALID_JSON)
        pipeline = make_pipeline([b1, b2], ocr_text=CARD_TEXT)

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        pipeline.ocr.recognize.assert_not_called()
        b2.invoke.assert_not_called()
        assert record.name == "Unknown"

    def test_empty_ocr_text(self):
        """Empty OCR output still yields a fully populated record."""
        pipeline = make_pipeline([FakeBackend("b1", error=RuntimeError("down"))], ocr_text="")

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        assert record.name == "Found with OCR"
        assert record.phone == "N/A"
        assert record.email == "N/A"
        assert record.website == "N/A"

    def test_ocr_failure_propagates(self):
        pipeline = make_pipeline([], ocr_error=OCRError("unreadable"))

        with pytest.raises(OCRError):
            asyncio.run(pipeline.run(b"img", "image/jpeg"))

    def test_partial_model_answer_filled(self):
        pipeline = make_pipeline([FakeBackend("b1", text='{"name": "Jane", "phone": ["1", "2"]}')])

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        assert isinstance(record, ContactRecord)
        assert record.phone == "1, 2"
        assert record.company == "N/A"
        assert tuple(record.to_dict()) == CONTACT_FIELDS

    def test_custom_defaults(self):
        settings = ExtractionSettings(field_defaults={
            "name": "Anonymous", "company": "-", "title": "-", "phone": "-",
            "email": "-", "address": "-", "website": "-"
        })
        pipeline = ExtractionPipeline(
            cascade=VisionCascade([FakeBackend("b1", text="{}")]),
            ocr=Mock(),
            settings=settings
        )

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        assert record.name == "Anonymous"
        assert record.email == "-"

    def test_partial_field_defaults(self):
        settings = ExtractionSettings(field_defaults={"name": "Anonymous"})
        pipeline = ExtractionPipeline(
            cascade=VisionCascade([FakeBackend("b1", text="{}")]),
            ocr=Mock(),
            settings=settings
        )

        record = asyncio.run(pipeline.run(b"img", "image/jpeg"))

        assert record.name == "Anonymous"
        assert record.company == "N/A"
        assert all(record.to_dict().values())

    def test_concurrent_invocations_are_independent(self):
        """One pipeline serves parallel requests without sharing results."""
        async def invoke(prompt, image, mime):
            await asyncio.sleep(0)
            return '{"name": "%s"}' % image.decode()

        backend = Mock()
        backend.name = "echo"
        backend.invoke = invoke
        pipeline = make_pipeline([backend])

        async def run_all():
            return await asyncio.gather(*(
                pipeline.run(name.encode(), "image/jpeg") for name in ("Alice", "Bob", "Carol")
            ))

        records = asyncio.run(run_all())

        assert [r.name for r in records] == ["Alice", "Bob", "Carol"]

    def test_extract_text(self, card_text):
        pipeline = make_pipeline([])

        record = pipeline.extract_text(card_text)

        assert record.phone == "+1 415-555-0132"
        pipeline.ocr.recognize.assert_not_called()

    def test_result_to_dict(self):
        pipeline = make_pipeline([FakeBackend("b1", text=VALID_JSON)])

        data = asyncio.run(pipeline.extract(b"img", "image/jpeg")).to_dict()

        assert data["source"] == "vision"
        assert data["backend"] == "b1"
        assert data["extracted"]["name"] == "Jane Doe"
        assert data["attempts"][0]["success"] is True

    def test_get_status(self):
        pipeline = make_pipeline([FakeBackend("b1"), FakeBackend("b2")])

        status = pipeline.get_status()

        assert status["vision_backends"] == ["b1", "b2"]
        assert status["ocr_languages"] == ["en"]
