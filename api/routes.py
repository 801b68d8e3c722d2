"""
API routes for the Business Card Extraction API.

Flask REST API endpoints for extracting contacts from business cards.
"""

import asyncio
import logging
from typing import Optional

from flask import Blueprint, request, jsonify, current_app

from cardscan.ocr import OCRExtractor
from cardscan.pipeline import ExtractionPipeline
from cardscan.preprocessing import ImagePreprocessor
from cardscan.storage import db, create_job, save_contact, list_archive
from cardscan.vlm_ocr import build_gemini_cascade
from config import Config

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

# Pipeline instance (lazy initialization)
_pipeline: Optional[ExtractionPipeline] = None


def get_pipeline() -> ExtractionPipeline:
    """Get or create pipeline instance.

    Returns:
        ExtractionPipeline instance
    """
    global _pipeline

    if _pipeline is None:
        cfg = current_app.config
        settings = Config.extraction_settings(cfg.get("GEMINI_MODELS"))
        _pipeline = ExtractionPipeline(
            cascade=build_gemini_cascade(cfg.get("GOOGLE_API_KEY"), settings.backend_models),
            ocr=OCRExtractor(
                languages=cfg.get("OCR_LANGUAGES"),
                gpu=cfg.get("OCR_GPU", False)
            ),
            settings=settings
        )
        logger.info(f"Pipeline initialized with vision backends: {_pipeline.cascade.backend_names}")

    return _pipeline


def get_preprocessor() -> ImagePreprocessor:
    cfg = current_app.config
    return ImagePreprocessor(
        quality=cfg["JPEG_QUALITY"],
        max_bytes=cfg["MAX_PAYLOAD_BYTES"],
        resize_width=cfg["RESIZE_WIDTH"],
        resized_quality=cfg["RESIZED_JPEG_QUALITY"]
    )


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed.

    Args:
        filename: Name of the file

    Returns:
        True if allowed, False otherwise
    """
    return Config.is_allowed_file(filename)


def _uploaded_file():
    for field_name in Config.UPLOAD_FIELDS:
        if field_name in request.files:
            return request.files[field_name]
    return None


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns:
        JSON with health status
    """
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Business Card Extraction API is running",
        "version": "1.0.0"
    }), 200


@api_bp.route("/status", methods=["GET"])
def get_status():
    """Get API and pipeline status.

    Returns:
        JSON with status information
    """
    try:
        pipeline = get_pipeline()
        status = pipeline.get_status()

        return jsonify({
            "success": True,
            "data": {
                "api_status": "running",
                "pipeline_status": status,
                "api_keys_configured": Config.get_api_status()
            }
        }), 200

    except Exception as e:
        logger.error(f"Error getting status: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500


@api_bp.route("/upload", methods=["POST"])
def upload_card():
    """Extract a contact from one business card image and store it.

    Expects:
        - multipart/form-data with 'card' field ('file' also accepted)

    Returns:
        JSON with job id and extracted contact data
    """
    file = _uploaded_file()

    if file is None:
        return jsonify({
            "success": False,
            "error": "No image provided. Use 'card' field in form-data."
        }), 400

    if file.filename == "":
        return jsonify({
            "success": False,
            "error": "No file selected"
        }), 400

    if not allowed_file(file.filename):
        return jsonify({
            "success": False,
            "error": f"File type not allowed. Allowed: {', '.join(sorted(Config.ALLOWED_EXTENSIONS))}"
        }), 400

    original = file.read()
    logger.info(f"Processing uploaded file: {file.filename} ({len(original)} bytes)")

    try:
        compressed, mime_type = get_preprocessor().compress(original)
    except ValueError as e:
        return jsonify({
            "success": False,
            "error": str(e)
        }), 400

    try:
        job = create_job(original)
        pipeline = get_pipeline()
        result = asyncio.run(pipeline.extract(compressed, mime_type, original_bytes=original))

        save_contact(job, result.record, compressed)
        db.session.commit()
        logger.info(f"Stored contact for job {job.id} ({result.source})")

        return jsonify({
            "success": True,
            "message": "Success",
            "job_id": job.id,
            "extracted": result.record.to_dict(),
            "source": result.source,
            "backend": result.backend
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "success": False,
            "error": "AI Processing Failed",
            "details": str(e)
        }), 500


@api_bp.route("/parse-text", methods=["POST"])
def parse_text():
    """Extract a contact from already recognized text (skip OCR).

    Expects:
        - JSON body with 'text' field

    Returns:
        JSON with extracted contact data
    """
    data = request.get_json(silent=True)

    if not data or not isinstance(data.get("text"), str):
        return jsonify({
            "success": False,
            "error": "No text provided. Send JSON with 'text' field."
        }), 400

    try:
        record = get_pipeline().extract_text(data["text"])

        return jsonify({
            "success": True,
            "extracted": record.to_dict()
        }), 200

    except Exception as e:
        logger.error(f"Error parsing text: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500


@api_bp.route("/archive", methods=["GET"])
def archive():
    """List stored contacts, newest first."""
    try:
        return jsonify({
            "success": True,
            "data": list_archive()
        }), 200

    except Exception as e:
        logger.error(f"Error fetching archive: {str(e)}")
        return jsonify({
            "success": False,
            "error": "Failed to fetch archive",
            "details": str(e)
        }), 500


# Error handlers
@api_bp.errorhandler(400)
def bad_request(error):
    """Handle 400 errors."""
    return jsonify({
        "success": False,
        "error": "Bad request"
    }), 400


@api_bp.errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({
        "success": False,
        "error": "Resource not found"
    }), 404


@api_bp.errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    return jsonify({
        "success": False,
        "error": "Internal server error"
    }), 500
