"""
Field normalization for extracted contact data.

Whatever an upstream step produced (parsed model JSON, heuristic output,
an empty dict) leaves here as a fully populated ContactRecord.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

from .settings import CONTACT_FIELDS, default_field_values

logger = logging.getLogger(__name__)


@dataclass
class ContactRecord:
    """Seven-field contact record produced by the pipeline."""
    name: str
    company: str
    title: str
    phone: str
    email: str
    address: str
    website: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _coerce(value: Any) -> str:
    """Turn a candidate value into a stripped string ("" when unusable)."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        # Models sometimes answer phone as a list of numbers
        return ", ".join(str(item).strip() for item in value if item is not None and str(item).strip())
    return str(value).strip()


def normalize(candidate: Any, defaults: Optional[Mapping[str, str]] = None) -> ContactRecord:
    """
    Build a ContactRecord from an arbitrary candidate.

    Args:
        candidate: Mapping (or ContactRecord) with any subset of the fields
        defaults: Per-field overrides of settings.default_field_values;
            missing or blank entries keep the built-in default

    Returns:
        ContactRecord with every field non-empty
    """
    merged = default_field_values()
    for name, value in (defaults or {}).items():
        value = _coerce(value)
        if value:
            merged[name] = value
    defaults = merged

    if isinstance(candidate, ContactRecord):
        candidate = candidate.to_dict()
    if not isinstance(candidate, Mapping):
        logger.debug(f"Candidate of type {type(candidate).__name__} replaced by defaults")
        candidate = {}

    values = {}
    for name in CONTACT_FIELDS:
        value = _coerce(candidate.get(name))
        values[name] = value or defaults[name]

    return ContactRecord(**values)
