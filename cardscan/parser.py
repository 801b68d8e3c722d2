import re
import logging
from typing import List, Optional, Sequence

from .normalizer import ContactRecord
from .settings import ExtractionSettings

logger = logging.getLogger(__name__)


# =========================
# PATTERNS
# =========================

PATTERNS = {
    "name": re.compile(r"[A-Z][a-z]+(\s[A-Z][a-z]+)+"),
    "name_caps": re.compile(r"[A-Z\s]{5,}"),
    "garbage": re.compile(r"[\W_0-9]+", re.ASCII),
    "email": re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    "phone": re.compile(r"[+\d][\d\s-]{8,}"),
    "website": re.compile(r"(https?://)?(www\.)?[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
}


def _keyword_pattern(keywords: Sequence[str]) -> re.Pattern:
    return re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE)


# =========================
# LINE HANDLING
# =========================

def split_lines(raw_text: str, min_length: int = 4) -> List[str]:
    """Split OCR text into stripped lines, dropping the too-short ones."""
    lines = [line.strip() for line in (raw_text or "").split("\n")]
    return [line for line in lines if len(line) >= min_length]


def looks_like_garbage(line: str, min_length: int = 3) -> bool:
    """True for lines made only of symbols/digits, or too short to mean anything."""
    line = line.strip()
    return len(line) < min_length or bool(PATTERNS["garbage"].fullmatch(line))


def clean_lines(lines: Sequence[str], min_length: int = 3) -> List[str]:
    return [line for line in lines if not looks_like_garbage(line, min_length)]


def clean_field(text: Optional[str]) -> str:
    """Strip stray symbols from an OCR'd name or title."""
    if not text:
        return ""
    text = re.sub(r"^[\W_]+", "", text, flags=re.ASCII)
    text = re.sub(r"[^a-zA-Z0-9\s.-]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


# =========================
# FIELD EXTRACTORS
# =========================

def extract_name(cleaned: Sequence[str], settings: ExtractionSettings) -> str:
    """Pick the first name-shaped line ("John Smith" or "JOHN SMITH")."""
    raw_name = next(
        (
            line for line in cleaned
            if PATTERNS["name"].fullmatch(line) or PATTERNS["name_caps"].fullmatch(line)
        ),
        None,
    )
    if raw_name is None:
        raw_name = cleaned[0] if cleaned else settings.ocr_name_default
    return clean_field(raw_name) or settings.ocr_name_fallback


def extract_title(lines: Sequence[str], settings: ExtractionSettings) -> str:
    pattern = _keyword_pattern(settings.title_keywords)
    line = next((l for l in lines if pattern.search(l)), None)
    return clean_field(line) or settings.ocr_title_default


def extract_company(lines: Sequence[str], settings: ExtractionSettings) -> str:
    pattern = _keyword_pattern(settings.company_keywords)
    line = next((l for l in lines if pattern.search(l)), None)
    if line is None:
        return settings.ocr_company_default
    return line[:settings.company_max_length]


def extract_phone(raw_text: str, settings: ExtractionSettings) -> str:
    m = PATTERNS["phone"].search(raw_text or "")
    return m.group(0).strip() if m else settings.not_found


def extract_email(raw_text: str, settings: ExtractionSettings) -> str:
    m = PATTERNS["email"].search(raw_text or "")
    return m.group(0) if m else settings.not_found


def extract_website(raw_text: str, settings: ExtractionSettings) -> str:
    """
    First domain-shaped token outside email addresses.

    A card whose only domain is in its email address ("info@acme.com")
    yields that domain.
    """
    raw_text = raw_text or ""
    m = PATTERNS["website"].search(PATTERNS["email"].sub(" ", raw_text))
    if m:
        return m.group(0)
    email = PATTERNS["email"].search(raw_text)
    if email:
        return email.group(0).split("@", 1)[1]
    return settings.not_found


def extract_address(cleaned: Sequence[str], settings: ExtractionSettings) -> str:
    """Lines two to four of the card, which is where addresses usually sit."""
    if len(cleaned) < 2:
        return settings.ocr_address_default
    address = " ".join(cleaned[1:4])[:settings.address_max_length]
    return address + settings.address_suffix


# =========================
# EXTRACTOR
# =========================

class HeuristicExtractor:
    """Derives contact fields from raw OCR text using line cues and regexes."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def extract(self, raw_text: str) -> ContactRecord:
        """
        Extract a contact from unstructured OCR text.

        Args:
            raw_text: Text returned by the OCR collaborator

        Returns:
            ContactRecord; fields that could not be found hold the
            OCR sentinels from the settings
        """
        s = self.settings
        raw_text = raw_text or ""
        lines = split_lines(raw_text, s.min_line_length)
        cleaned = clean_lines(lines, s.min_clean_length)

        logger.debug(f"Parsing {len(lines)} lines ({len(cleaned)} after garbage filter)")

        contact = ContactRecord(
            name=extract_name(cleaned, s),
            company=extract_company(lines, s),
            title=extract_title(lines, s),
            phone=extract_phone(raw_text, s),
            email=extract_email(raw_text, s),
            address=extract_address(cleaned, s),
            website=extract_website(raw_text, s),
        )

        logger.debug(f"Extracted - Name: {contact.name}, Company: {contact.company}")
        return contact
