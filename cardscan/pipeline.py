"""
Business Card Extraction Pipeline

CASCADE APPROACH:
1. Try each configured Gemini model in order (first answer wins)
2. If every model fails -> EasyOCR on the original image + text heuristics
3. Whatever came out is normalized into a seven-field ContactRecord
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .normalizer import ContactRecord, normalize
from .parser import HeuristicExtractor
from .settings import ExtractionSettings
from .vlm_ocr import EXTRACTION_PROMPT, BackendOutcome, VisionCascade

logger = logging.getLogger(__name__)

SOURCE_VISION = "vision"
SOURCE_OCR = "ocr"

_CODE_FENCE = re.compile(r"```json|```")


def parse_model_text(text: str) -> Dict:
    """
    Parse a model answer into a candidate dict.

    Code fences are stripped first. Anything that does not parse into a
    JSON object yields an empty dict, i.e. all defaults after normalization.
    """
    json_str = _CODE_FENCE.sub("", text or "").strip()
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError:
        logger.error(f"Model JSON parse error: {text!r}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Model answer is not a JSON object: {text!r}")
        return {}
    return data


@dataclass
class ExtractionResult:
    """Final record plus where it came from."""
    record: ContactRecord
    source: str
    backend: Optional[str] = None
    attempts: List[BackendOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "extracted": self.record.to_dict(),
            "source": self.source,
            "backend": self.backend,
            "attempts": [a.to_dict() for a in self.attempts],
        }


class ExtractionPipeline:
    """Cascade -> (model JSON | OCR heuristics) -> normalizer.

    Holds only configuration and collaborators, so one instance can serve
    any number of concurrent invocations.
    """

    def __init__(
        self,
        cascade: VisionCascade,
        ocr,
        settings: Optional[ExtractionSettings] = None,
        extractor: Optional[HeuristicExtractor] = None,
        prompt: str = EXTRACTION_PROMPT
    ):
        """
        Args:
            cascade: Vision backends in priority order
            ocr: Collaborator with a blocking ``recognize(image_bytes) -> str``
            settings: Extraction settings (defaults, keywords, lengths)
            extractor: Heuristic text extractor for the OCR branch
            prompt: Instruction sent to every vision backend
        """
        self.cascade = cascade
        self.ocr = ocr
        self.settings = settings or ExtractionSettings()
        self.extractor = extractor or HeuristicExtractor(self.settings)
        self.prompt = prompt

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        original_bytes: Optional[bytes] = None
    ) -> ExtractionResult:
        """
        Run the extraction for one card.

        Args:
            image_bytes: Size-bounded payload for the vision backends
            mime_type: Media type of ``image_bytes``
            original_bytes: Uncompressed image for OCR (defaults to image_bytes)

        Returns:
            ExtractionResult with a fully populated record

        Raises:
            OCRError: If the fallback OCR collaborator fails
        """
        cascade_result = await self.cascade.run(image_bytes, mime_type, self.prompt)

        if not cascade_result.exhausted:
            candidate = parse_model_text(cascade_result.text)
            source = SOURCE_VISION
        else:
            logger.warning("Vision backends exhausted, using OCR fallback")
            raw_text = await asyncio.to_thread(self.ocr.recognize, original_bytes or image_bytes)
            candidate = self.extractor.extract(raw_text)
            source = SOURCE_OCR

        record = normalize(candidate, self.settings.field_defaults)
        logger.info(f"Extracted contact via {source}: {record.name}")

        return ExtractionResult(
            record=record,
            source=source,
            backend=cascade_result.backend,
            attempts=cascade_result.attempts
        )

    async def run(
        self,
        image_bytes: bytes,
        mime_type: str,
        original_bytes: Optional[bytes] = None
    ) -> ContactRecord:
        result = await self.extract(image_bytes, mime_type, original_bytes)
        return result.record

    def extract_text(self, raw_text: str) -> ContactRecord:
        """Heuristic extraction + normalization for text that is already recognized."""
        return normalize(self.extractor.extract(raw_text), self.settings.field_defaults)

    def get_status(self) -> Dict:
        """Get pipeline status information."""
        return {
            "vision_backends": self.cascade.backend_names,
            "ocr_engine": "easyocr",
            "ocr_languages": getattr(self.ocr, "languages", None),
        }
