"""
EasyOCR text recognition used when every vision backend has failed.
"""
import logging
import os
import re
from typing import List, Optional

import cv2
import numpy as np
import easyocr

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.15


class OCRError(RuntimeError):
    """Raised when the image cannot be read or recognized."""


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Decode raw image bytes into a BGR array."""
    if not image_bytes:
        raise OCRError("Empty image payload")
    img = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise OCRError("Cannot decode image payload")
    return img


def correct_ocr_text(text: str) -> str:
    """
    Fix common EasyOCR character confusions inside words.

    EasyOCR often reads 'l' as '1' and 'o' as '0' when surrounded by
    letters; digits standing alone (phone numbers, zip codes) are untouched.
    """
    text = re.sub(r'([a-zA-Z])11([a-zA-Z])', r'\1ll\2', text)
    text = re.sub(r'([a-zA-Z])1([a-zA-Z])', r'\1l\2', text)
    text = re.sub(r'([a-zA-Z]{2,})1\b', r'\1l', text)
    text = re.sub(r'([a-zA-Z])0([a-zA-Z])', r'\1o\2', text)

    # Email domains and websites
    text = re.sub(r'@(\w+)\s*\.\s*com\b', r'@\1.com', text, flags=re.IGNORECASE)
    text = re.sub(r'www\s*\.\s*', 'www.', text, flags=re.IGNORECASE)
    text = re.sub(r'\.c[o0]m\b', '.com', text, flags=re.IGNORECASE)

    return ' '.join(text.split())


class OCRExtractor:
    """OCR collaborator: image bytes in, raw multi-line text out."""

    def __init__(
        self,
        languages: List[str] = None,
        gpu: bool = False,
        model_dir: str = "./models"
    ):
        """
        Initialize OCR extractor.

        The EasyOCR reader downloads and loads its models on first use.

        Args:
            languages: List of languages for OCR
            gpu: Use GPU for OCR
            model_dir: Directory for model storage
        """
        self.languages = languages or ['en']
        self.gpu = gpu
        self.model_dir = model_dir
        self._reader: Optional[easyocr.Reader] = None

    @property
    def reader(self) -> easyocr.Reader:
        if self._reader is None:
            os.makedirs(self.model_dir, exist_ok=True)
            logger.info(f"Initializing EasyOCR with languages: {self.languages}")
            self._reader = easyocr.Reader(
                lang_list=self.languages,
                gpu=self.gpu,
                model_storage_directory=self.model_dir,
                download_enabled=True,
                verbose=False
            )
        return self._reader

    def _preprocess_image(self, img: np.ndarray) -> np.ndarray:
        """Resize, denoise and sharpen a card photo for EasyOCR."""
        h, w = img.shape[:2]

        # 1600px wide is the sweet spot for EasyOCR
        if w < 1600:
            scale = 1600 / w
            img = cv2.resize(img, (1600, int(h * scale)), interpolation=cv2.INTER_CUBIC)
        elif w > 2400:
            scale = 2400 / w
            img = cv2.resize(img, (2400, int(h * scale)), interpolation=cv2.INTER_AREA)

        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        gray = cv2.fastNlMeansDenoising(gray, None, h=8, templateWindowSize=7, searchWindowSize=21)

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(12, 12))
        gray = clahe.apply(gray)

        # Unsharp mask
        blurred = cv2.GaussianBlur(gray, (0, 0), 1.0)
        gray = cv2.addWeighted(gray, 1.5, blurred, -0.5, 0)

        return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)

    def recognize(self, image_bytes: bytes) -> str:
        """
        Recognize the text on a card image.

        Args:
            image_bytes: Original (uncompressed) image bytes

        Returns:
            Recognized lines, top to bottom, joined with newlines

        Raises:
            OCRError: If the image cannot be decoded or EasyOCR fails
        """
        img = self._preprocess_image(decode_image(image_bytes))

        try:
            results = self.reader.readtext(img, detail=1, paragraph=False)
        except Exception as e:
            logger.error(f"OCR extraction error: {e}", exc_info=True)
            raise OCRError(f"OCR failed: {e}") from e

        # Sort by top-left Y coordinate so lines come out top to bottom
        results.sort(key=lambda r: r[0][0][1])

        lines = []
        for bbox, text, confidence in results:
            text = correct_ocr_text(text.strip())
            if confidence >= MIN_CONFIDENCE and text:
                lines.append(text)

        logger.info(f"Extracted {len(lines)} lines with EasyOCR")
        return "\n".join(lines)
