"""
Configuration management for the Business Card Extraction API.

Handles environment variables, API keys, and application settings.
"""

import os
import logging
from typing import List, Optional
from dotenv import load_dotenv

from cardscan.settings import DEFAULT_GEMINI_MODELS, ExtractionSettings

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _split_list(value: Optional[str], default: tuple) -> List[str]:
    """Parse a comma-separated env value, ignoring blanks."""
    if not value:
        return list(default)
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or list(default)


class Config:
    """Application configuration class.

    Attributes:
        DEBUG: Enable debug mode
        TESTING: Enable testing mode
        SECRET_KEY: Flask secret key
        MAX_CONTENT_LENGTH: Maximum upload file size (16MB default)
        ALLOWED_EXTENSIONS: Allowed image file extensions
        GEMINI_MODELS: Vision models, tried in this order
        SQLALCHEMY_DATABASE_URI: Job/contact store
    """

    # Flask Settings
    DEBUG: bool = os.getenv("CARD_API_DEBUG", "False").lower() == "true"
    TESTING: bool = os.getenv("CARD_API_TESTING", "False").lower() == "true"
    SECRET_KEY: str = os.getenv("CARD_API_SECRET_KEY", "dev-secret-key-change-in-production")

    # File Upload Settings
    MAX_CONTENT_LENGTH: int = 16 * 1024 * 1024  # 16MB max file size
    UPLOAD_FIELDS: tuple = ("card", "file")
    ALLOWED_EXTENSIONS: set = {"png", "jpg", "jpeg", "gif", "bmp", "webp"}

    # Image compression before the vision backends
    JPEG_QUALITY: int = int(os.getenv("CARD_API_JPEG_QUALITY", "90"))
    MAX_PAYLOAD_BYTES: int = int(os.getenv("CARD_API_MAX_PAYLOAD_BYTES", str(10 * 1024 * 1024)))
    RESIZE_WIDTH: int = int(os.getenv("CARD_API_RESIZE_WIDTH", "2000"))
    RESIZED_JPEG_QUALITY: int = int(os.getenv("CARD_API_RESIZED_JPEG_QUALITY", "80"))

    # Vision backends (Gemini)
    GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    GEMINI_MODELS: List[str] = _split_list(os.getenv("CARD_API_GEMINI_MODELS"), DEFAULT_GEMINI_MODELS)

    # OCR fallback
    OCR_LANGUAGES: list = ["en"]  # EasyOCR language codes
    OCR_GPU: bool = os.getenv("CARD_API_OCR_GPU", "False").lower() == "true"

    # Database
    SQLALCHEMY_DATABASE_URI: str = os.getenv("CARD_API_DATABASE_URL", "sqlite:///cards.db")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    # Logging
    LOG_LEVEL: str = os.getenv("CARD_API_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def init_app(cls, app) -> None:
        """Initialize Flask app with configuration.

        Args:
            app: Flask application instance
        """
        app.config.from_object(cls)

        # Configure logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper()),
            format=cls.LOG_FORMAT
        )

        logger.info("Configuration initialized successfully")

    @classmethod
    def is_allowed_file(cls, filename: str) -> bool:
        """Check if file extension is allowed.

        Args:
            filename: Name of the file to check

        Returns:
            True if file extension is allowed, False otherwise
        """
        return "." in filename and \
            filename.rsplit(".", 1)[1].lower() in cls.ALLOWED_EXTENSIONS

    @classmethod
    def get_api_status(cls) -> dict:
        """Get status of configured API keys.

        Returns:
            Dictionary with API availability status
        """
        return {
            "gemini_api": cls.GOOGLE_API_KEY is not None,
            "gemini_models": list(cls.GEMINI_MODELS)
        }

    @classmethod
    def extraction_settings(cls, models=None) -> ExtractionSettings:
        """Build the settings injected into the extraction pipeline.

        Args:
            models: Backend model order; defaults to GEMINI_MODELS
        """
        models = cls.GEMINI_MODELS if models is None else models
        return ExtractionSettings(backend_models=tuple(models))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_LEVEL = "INFO"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    SQLALCHEMY_DATABASE_URI = "sqlite://"


# Configuration mapping
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration class by name.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configuration class
    """
    if config_name is None:
        config_name = os.getenv("CARD_API_ENV", "development")
    return config_by_name.get(config_name, DevelopmentConfig)
