"""
    06 client

Posts one encoded image to the extraction service and normalizes the reply
into an ExtractionResult.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from marksheet.config import DEFAULT_SERVICE_URL
from marksheet.models import ExtractionResult, ImageItem, TableRow
from marksheet.validation import validate_totals
from marksheet import encoder

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """The service could not produce a result for one image."""


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_rows(table_data: Any):
    if not isinstance(table_data, list):
        return ()
    rows = []
    for raw in table_data:
        raw = raw if isinstance(raw, Mapping) else {}
        rows.append(TableRow(
            q_no=_cell(raw.get("qNo")),
            a=_cell(raw.get("a")),
            b=_cell(raw.get("b")),
            c=_cell(raw.get("c")),
            total=_cell(raw.get("total")),
        ))
    return tuple(rows)


def normalize(body: Mapping[str, Any], image_id: str = "", image_name: str = "") -> ExtractionResult:
    """Coerce the model's free-form fields and apply the checksum rule."""
    header = body.get("headerInfo")
    header_info: Dict[str, str] = (
        {str(k): _cell(v) for k, v in header.items()} if isinstance(header, Mapping) else {}
    )
    rows = normalize_rows(body.get("tableData"))
    totals, is_valid = validate_totals(rows, body.get("writtenTotal"), body.get("bubbleDigits"))
    return ExtractionResult(
        header_info=header_info,
        table_data=rows,
        totals=totals,
        is_valid=is_valid,
        image_id=image_id,
        image_name=image_name,
    )


class ExtractionClient:
    def __init__(self, service_url: str = DEFAULT_SERVICE_URL, timeout: float = 180.0,
                 session: Optional[requests.Session] = None):
        self.service_url = service_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def extract(self, image_data_url: str) -> Dict[str, Any]:
        """Return the service's JSON body, raising ExtractionError on any failure."""
        try:
            response = self.session.post(
                self.service_url,
                json={"imageBase64": image_data_url},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExtractionError(f"Failed to extract document: {e}") from e

        try:
            body = response.json()
        except ValueError:
            raise ExtractionError(
                f"Extraction service returned a non-JSON response (HTTP {response.status_code})"
            )

        if isinstance(body, Mapping) and body.get("error"):
            raise ExtractionError(str(body["error"]))
        if not response.ok:
            raise ExtractionError(f"Extraction service returned HTTP {response.status_code}")
        if not isinstance(body, Mapping):
            raise ExtractionError("Extraction service returned an unexpected payload")
        return dict(body)

    def extract_result(self, image_data_url: str, image_id: str = "", image_name: str = "") -> ExtractionResult:
        return normalize(self.extract(image_data_url), image_id, image_name)

    def extract_item(self, item: ImageItem) -> ExtractionResult:
        """Encode one ImageItem, send it, and normalize the answer."""
        data_url = encoder.item_to_data_url(item)
        return self.extract_result(data_url, item.id, item.name)
