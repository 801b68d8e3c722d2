"""
Extraction settings injected into the contact extraction pipeline.

Everything environment- or policy-specific (backend order, default values,
keyword lists, truncation lengths) lives here so the core stays free of
literals. ``config.Config.extraction_settings()`` builds one from the
environment.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


CONTACT_FIELDS: Tuple[str, ...] = (
    "name", "company", "title", "phone", "email", "address", "website"
)

DEFAULT_GEMINI_MODELS: Tuple[str, ...] = (
    "gemini-3-flash-preview",
    "gemini-1.5-flash",
    "gemini-3.1-pro-preview",
)

NOT_AVAILABLE = "N/A"


def default_field_values() -> Dict[str, str]:
    """Defaults used by the normalizer for missing or blank fields."""
    defaults = {name: NOT_AVAILABLE for name in CONTACT_FIELDS}
    defaults["name"] = "Unknown"
    return defaults


@dataclass(frozen=True)
class ExtractionSettings:
    """Tunable options of the extraction pipeline.

    Attributes:
        backend_models: Vision model identifiers, tried in this order
        field_defaults: Normalizer default per contact field (merged over the built-ins)
        title_keywords: Words that mark a line as a job title
        company_keywords: Words that mark a line as a company name
        min_line_length: OCR lines shorter than this are dropped
        min_clean_length: Lines shorter than this count as garbage
        company_max_length: Company line truncation
        address_max_length: Address truncation (before the suffix)
        address_suffix: Marker appended to OCR addresses
        ocr_name_default: Name when OCR produced no usable line
        ocr_name_fallback: Name when cleaning left nothing
        ocr_title_default: Title when no keyword line is found
        ocr_company_default: Company when no keyword line is found
        ocr_address_default: Address when too few lines exist
        not_found: Value for phone/email/website without a match
    """

    backend_models: Tuple[str, ...] = DEFAULT_GEMINI_MODELS
    field_defaults: Dict[str, str] = field(default_factory=default_field_values)
    title_keywords: Tuple[str, ...] = (
        "CEO", "Manager", "Founder", "Director", "Owner", "President", "Lead"
    )
    company_keywords: Tuple[str, ...] = (
        "Inc", "Ltd", "Corp", "Company", "Solutions", "Industries"
    )
    min_line_length: int = 4
    min_clean_length: int = 3
    company_max_length: int = 50
    address_max_length: int = 100
    address_suffix: str = "..."
    ocr_name_default: str = "Found with OCR"
    ocr_name_fallback: str = "Unknown Contact"
    ocr_title_default: str = "Professional"
    ocr_company_default: str = "OCR Extraction"
    ocr_address_default: str = "Not found"
    not_found: str = NOT_AVAILABLE
