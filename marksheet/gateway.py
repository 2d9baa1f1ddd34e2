"""
    04 gateway

gateway.py

Talks to the hosted vision model through an OpenAI-compatible
chat-completions gateway.

Main entrypoint: extract_document_json(api_key, image_data_url, ...)
"""

import re
import json
import logging
from typing import Any, Dict, Optional

import requests

from marksheet.config import DEFAULT_GATEWAY_URL, DEFAULT_MODEL

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Analyze this document image and extract all information.

IMPORTANT: Extract EXACTLY what you see - handwritten text, printed text, and table data.

Return a JSON object with this exact structure:
{
  "headerInfo": {
    // Extract any header/metadata fields like exam name, date, subject, branch, student info, etc.
    // Use the actual field names you see in the document
  },
  "tableData": [
    // If there's a marks/scores table, extract each row with:
    { "qNo": "question number", "a": "part a marks", "b": "part b marks", "c": "part c marks", "total": "row total" }
    // Include ALL rows, even empty ones
  ],
  "writtenTotal": // The total marks written/shown in the document (number)
  "bubbleDigits": // The bubble digits or final total shown (number)
}

If there's no table, return empty tableData array.
If certain fields don't exist, use empty strings.
Extract ALL text you can read - both printed and handwritten.
For handwritten numbers, do your best to interpret them accurately.

Return ONLY the JSON object, no markdown or explanation."""

_JSON_FENCE_RE = re.compile(r"```json\n?")
_FENCE_RE = re.compile(r"```\n?")


class GatewayError(RuntimeError):
    """The gateway answered with a non-success status."""

    def __init__(self, status: int, detail: str = ""):
        super().__init__(f"AI gateway returned HTTP {status}")
        self.status = status
        self.detail = detail


class ReplyParseError(ValueError):
    """The model reply was not valid JSON after fence stripping."""

    def __init__(self, raw: Optional[str], reason: str = ""):
        super().__init__(f"Model did not return valid JSON: {reason}")
        self.raw = raw


def build_request(image_data_url: str, model: str = DEFAULT_MODEL) -> Dict[str, Any]:
    """Single user turn carrying the prompt and the image inline."""
    return {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": EXTRACTION_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_data_url}},
                ],
            }
        ],
    }


def clean_json_output(raw_text: str) -> str:
    """
    Removes markdown code fences (```json, ```) the model sometimes wraps
    its answer in and trims surrounding whitespace.
    """
    cleaned = raw_text
    if "```json" in cleaned:
        cleaned = _FENCE_RE.sub("", _JSON_FENCE_RE.sub("", cleaned))
    elif "```" in cleaned:
        cleaned = _FENCE_RE.sub("", cleaned)
    return cleaned.strip()


def parse_reply(raw_text: Optional[str]) -> Any:
    if not isinstance(raw_text, str):
        raise ReplyParseError(raw_text, "model returned no text content")
    try:
        return json.loads(clean_json_output(raw_text))
    except json.JSONDecodeError as e:
        raise ReplyParseError(raw_text, str(e))


def reply_text(body: Dict[str, Any]) -> Optional[str]:
    """choices[0].message.content, or None when the gateway sent something else."""
    try:
        return body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None


def call_vision_model(
    api_key: str,
    image_data_url: str,
    gateway_url: str = DEFAULT_GATEWAY_URL,
    model: str = DEFAULT_MODEL,
    timeout: float = 120.0,
) -> Optional[str]:
    """Post the extraction request and return the model's text reply."""
    response = requests.post(
        gateway_url,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        json=build_request(image_data_url, model),
        timeout=timeout,
    )
    if not response.ok:
        logger.error("AI gateway error: %s %s", response.status_code, response.text)
        raise GatewayError(response.status_code, response.text)

    content = reply_text(response.json())
    logger.info("AI response: %s", content)
    return content


def extract_document_json(
    api_key: str,
    image_data_url: str,
    gateway_url: str = DEFAULT_GATEWAY_URL,
    model: str = DEFAULT_MODEL,
    timeout: float = 120.0,
) -> Any:
    """Send one image to the model and return its parsed JSON answer.

    Raises GatewayError for non-2xx statuses and ReplyParseError when the
    reply is not JSON.
    """
    raw_text = call_vision_model(api_key, image_data_url, gateway_url, model, timeout)
    try:
        parsed = parse_reply(raw_text)
    except ReplyParseError:
        logger.error("Failed to parse AI response as JSON. Raw content: %s", raw_text)
        raise
    logger.debug("Extracted data: %s", json.dumps(parsed))
    return parsed
