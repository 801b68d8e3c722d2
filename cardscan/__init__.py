"""
Package initialization for the business card contact extractor.
"""

from .normalizer import ContactRecord, normalize
from .parser import HeuristicExtractor
from .settings import CONTACT_FIELDS, ExtractionSettings
from .vlm_ocr import BackendOutcome, GeminiBackend, VisionCascade, build_gemini_cascade
from .ocr import OCRError, OCRExtractor
from .pipeline import ExtractionPipeline, ExtractionResult, parse_model_text

__all__ = [
    "CONTACT_FIELDS",
    "ContactRecord",
    "normalize",
    "HeuristicExtractor",
    "ExtractionSettings",
    "BackendOutcome",
    "GeminiBackend",
    "VisionCascade",
    "build_gemini_cascade",
    "OCRError",
    "OCRExtractor",
    "ExtractionPipeline",
    "ExtractionResult",
    "parse_model_text",
]
