"""
    05 service

service.py

Stateless HTTP handler in front of the vision model.

POST /extract-document  {"imageBase64": "data:image/png;base64,..."}
    -> 200 with the model's JSON object verbatim
    -> 4xx/5xx with {"error": "..."} (plus "rawContent" when the reply was not JSON)

Run locally with: python -m marksheet.service
"""

import math
import re
import logging
from typing import Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from marksheet import gateway
from marksheet.config import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

IMAGE_DATA_URL_RE = re.compile(r"^data:image/(jpeg|jpg|png|webp|gif|bmp);base64,")
MAX_IMAGE_BYTES = 10 * 1024 * 1024

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

NO_IMAGE = "No image provided"
BAD_FORMAT = "Invalid image format. Only JPEG, PNG, WEBP, GIF, and BMP supported."
TOO_LARGE = "Image too large. Maximum size is 10MB."
NO_API_KEY = "API key not configured"
RATE_LIMITED = "Rate limit exceeded. Please try again later."
NO_CREDITS = "AI credits exhausted. Please add credits."
UPSTREAM_FAILED = "Failed to process document"
PARSE_FAILED = "Failed to parse extracted data"


def _error(message: str, status: int, **extra):
    return jsonify({"error": message, **extra}), status


def estimated_size(image_base64: str) -> int:
    """Approximate decoded size of a data URL from its base64 payload length."""
    parts = image_base64.split(",", 1)
    payload = parts[1] if len(parts) > 1 else ""
    return math.ceil(len(payload) * 0.75)


def check_image(image_base64) -> Optional[str]:
    """Return the first validation failure for the payload, or None."""
    if not image_base64:
        return NO_IMAGE
    if not isinstance(image_base64, str) or not IMAGE_DATA_URL_RE.match(image_base64):
        return BAD_FORMAT
    if estimated_size(image_base64) > MAX_IMAGE_BYTES:
        return TOO_LARGE
    return None


def extract_document():
    if request.method == "OPTIONS":
        return "", 200

    try:
        data = request.get_json(force=True, silent=True)
        image_base64 = data.get("imageBase64") if isinstance(data, dict) else None

        problem = check_image(image_base64)
        if problem:
            return _error(problem, 400)

        logger.info("Processing image: %s bytes", estimated_size(image_base64))

        settings: Settings = current_app.config["MARKSHEET_SETTINGS"]
        if not settings.api_key:
            logger.error("AI_GATEWAY_API_KEY not configured")
            return _error(NO_API_KEY, 500)

        try:
            extracted = gateway.extract_document_json(
                settings.api_key,
                image_base64,
                gateway_url=settings.gateway_url,
                model=settings.model,
                timeout=settings.gateway_timeout,
            )
        except gateway.GatewayError as e:
            if e.status == 429:
                return _error(RATE_LIMITED, 429)
            if e.status == 402:
                return _error(NO_CREDITS, 402)
            return _error(UPSTREAM_FAILED, 500)
        except gateway.ReplyParseError as e:
            if e.raw is None:
                return _error(PARSE_FAILED, 500)
            return _error(PARSE_FAILED, 500, rawContent=e.raw)

        return jsonify(extracted), 200

    except Exception as e:
        logger.exception("Error in extract-document handler")
        return _error(str(e) or "Unknown error", 500)


def health():
    return jsonify({"ok": True})


def _http_error(e: HTTPException):
    return _error(e.description or e.name, e.code or 500)


def create_app(settings: Optional[Settings] = None) -> Flask:
    app = Flask(__name__)
    app.config["MARKSHEET_SETTINGS"] = settings or load_settings()
    app.json.sort_keys = False
    CORS(app, origins="*", send_wildcard=True, allow_headers=CORS_ALLOW_HEADERS)

    app.add_url_rule("/extract-document", "extract_document", extract_document, methods=["POST", "OPTIONS"])
    app.add_url_rule("/health", "health", health, methods=["GET"])
    app.register_error_handler(HTTPException, _http_error)
    return app


if __name__ == "__main__":
    configure_logging()
    create_app().run(host="0.0.0.0", port=8080)
