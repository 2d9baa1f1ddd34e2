"""
    01 models

Plain value types passed between the encoder, client, batch loop and page.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class ImageItem:
    """One uploaded file held in the page's working set."""
    id: str
    name: str
    data: bytes = field(repr=False)
    mime_type: str
    preview: str = field(default="", repr=False)


@dataclass(frozen=True)
class TableRow:
    q_no: str = ""
    a: str = ""
    b: str = ""
    c: str = ""
    total: str = ""

    def to_wire(self) -> Dict[str, str]:
        return {"qNo": self.q_no, "a": self.a, "b": self.b, "c": self.c, "total": self.total}


@dataclass(frozen=True)
class TotalsSummary:
    calculated: int
    written: int
    bubble_digits: int


@dataclass(frozen=True)
class ExtractionResult:
    header_info: Dict[str, str]
    table_data: Tuple[TableRow, ...]
    totals: TotalsSummary
    is_valid: bool
    image_id: str
    image_name: str

    def to_dict(self) -> dict:
        return {
            "headerInfo": dict(self.header_info),
            "tableData": [row.to_wire() for row in self.table_data],
            "totalMarks": {
                "calculated": self.totals.calculated,
                "written": self.totals.written,
                "bubbleDigits": self.totals.bubble_digits,
            },
            "isValid": self.is_valid,
            "imageId": self.image_id,
            "imageName": self.image_name,
        }


class Stage(Enum):
    SCANNING = "scanning"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    COMPLETE = "complete"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    Stage.SCANNING: "Scanning document...",
    Stage.EXTRACTING: "Extracting table data...",
    Stage.VALIDATING: "Validating totals...",
    Stage.COMPLETE: "Processing complete!",
}


@dataclass(frozen=True)
class Progress:
    current: int
    total: int

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total else 0.0


@dataclass
class BatchOutcome:
    results: List[ExtractionResult]
    failed: int
    attempted: int

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.is_valid)
