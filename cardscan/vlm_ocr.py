"""
Vision Language Model extraction using Gemini.

A cascade of Gemini models is tried in order; the first one that answers
with non-empty text wins. Failures of individual models are recorded and
logged, never raised.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

PERMISSION_DENIED = 403

# Extraction prompt - optimized for business cards
EXTRACTION_PROMPT = """Extract ALL details from this business card image.
SCAN EVERY PIXEL: Small text (Email, Website) is often near the very bottom or hidden in icons (globe, mail icon).
Search for any text containing '@' or starting with 'www.' or 'http'.
Search for job titles (e.g., 'CEO', 'Founder', 'Manager').
Ignore non-contact text (like wood/table patterns).

Return ONLY a valid JSON object:
{
    "name": "Full Name",
    "company": "Company Name",
    "title": "Job Title",
    "phone": "Full Phone Number",
    "email": "Email Address",
    "address": "Full Physical Address (from the card)",
    "website": "Full Website URL"
}"""


@dataclass
class BackendOutcome:
    """Result of a single backend attempt."""
    backend: str
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "success": self.success,
            "error": self.error,
            "status_code": self.status_code,
        }


@dataclass
class CascadeResult:
    """Outcome of one pass over the backend list."""
    text: Optional[str] = None
    backend: Optional[str] = None
    attempts: List[BackendOutcome] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.text is None


class GeminiBackend:
    """
    One Gemini model used as a vision extraction backend.
    """

    def __init__(self, client: "genai.Client", model_name: str,
                 temperature: float = 0.1, max_output_tokens: int = 1024):
        self.client = client
        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @property
    def name(self) -> str:
        return self.model_name

    async def invoke(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """Send prompt and image to the model and return its text answer."""
        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_text(text=prompt),
                        types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
                    ]
                )
            ],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens
            )
        )
        return response.text or ""


def _status_code(error: Exception) -> Optional[int]:
    """Pull an HTTP-like status off an exception, if it carries one."""
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


async def attempt_backend(backend, image_bytes: bytes, mime_type: str, prompt: str) -> BackendOutcome:
    """
    Submit one attempt and turn whatever happens into a BackendOutcome.

    Args:
        backend: Object with a ``name`` and an async ``invoke(prompt, image, mime)``
        image_bytes: Size-bounded image payload
        mime_type: Media type of the payload
        prompt: Extraction instruction

    Returns:
        Successful outcome carrying the text, or a failed one with the reason
    """
    try:
        text = await backend.invoke(prompt, image_bytes, mime_type)
    except Exception as e:
        return BackendOutcome(
            backend=backend.name,
            success=False,
            error=str(e) or type(e).__name__,
            status_code=_status_code(e)
        )

    if not text or not text.strip():
        return BackendOutcome(backend=backend.name, success=False, error="empty response")

    return BackendOutcome(backend=backend.name, success=True, text=text)


class VisionCascade:
    """Ordered list of vision backends; first non-empty answer wins."""

    def __init__(self, backends: Sequence = ()):
        self.backends = list(backends)

    @property
    def backend_names(self) -> List[str]:
        return [b.name for b in self.backends]

    async def run(self, image_bytes: bytes, mime_type: str, prompt: str = EXTRACTION_PROMPT) -> CascadeResult:
        """
        Try each backend in turn, stopping at the first success.

        Returns:
            CascadeResult; ``text`` is None when every backend failed
        """
        result = CascadeResult()

        for backend in self.backends:
            outcome = await attempt_backend(backend, image_bytes, mime_type, prompt)
            result.attempts.append(outcome)

            if outcome.success:
                logger.info(f"Vision response received using {outcome.backend}")
                result.text = outcome.text
                result.backend = outcome.backend
                return result

            logger.warning(f"Model {outcome.backend} failed: {outcome.status_code or outcome.error}")
            if outcome.status_code == PERMISSION_DENIED:
                logger.warning("TIP: the API key might lack permission for this specific model.")

        if self.backends:
            logger.warning(f"All {len(self.backends)} vision backends failed")
        return result

    async def attempt(self, image_bytes: bytes, mime_type: str, prompt: str = EXTRACTION_PROMPT) -> Optional[str]:
        """Text of the first successful backend, or None on exhaustion."""
        result = await self.run(image_bytes, mime_type, prompt)
        return result.text


def build_gemini_cascade(api_key: Optional[str], model_names: Sequence[str]) -> VisionCascade:
    """
    Build a cascade with one GeminiBackend per model name.

    Args:
        api_key: Google API key; without one the cascade is empty
        model_names: Model identifiers in priority order

    Returns:
        VisionCascade (possibly empty)
    """
    if not api_key:
        logger.warning("No Gemini API key provided. Set GOOGLE_API_KEY or GEMINI_API_KEY env var")
        return VisionCascade()

    client = genai.Client(api_key=api_key)
    backends = [GeminiBackend(client, name) for name in model_names]
    logger.info(f"Gemini cascade initialized with models: {', '.join(model_names)}")
    return VisionCascade(backends)
