"""
    08 render

Projection of ExtractionResult into display tables, CSV, charts and a
downloadable composed PNG. Nothing here changes a result.
"""

import io
import zipfile
from pathlib import Path
from typing import List, Sequence, Tuple

import pandas as pd
import matplotlib.pyplot as plt
from PIL import Image, ImageDraw, ImageFont

from marksheet.models import ExtractionResult

TABLE_COLUMNS = ["Q.No", "A", "B", "C", "Total"]
FAILED_HINT = "The calculated sum does not match the bubble digits. Please verify the marks manually."

# Composed image layout
CANVAS_WIDTH = 800
MARGIN = 32
LINE_HEIGHT = 22
ROW_HEIGHT = 28
TITLE_HEIGHT = 56
BANNER_HEIGHT = 64

WHITE = (255, 255, 255)
INK = (15, 23, 42)
MUTED = (100, 116, 139)
GRID = (203, 213, 225)
HEADER_FILL = (241, 245, 249)
ACCENT = (13, 148, 136)
PASS_FILL = (22, 163, 74)
FAIL_FILL = (220, 38, 38)


def _dash(value: str) -> str:
    return value if value else "-"


def header_frame(result: ExtractionResult) -> pd.DataFrame:
    rows = [{"Field": k, "Value": _dash(v)} for k, v in result.header_info.items()]
    return pd.DataFrame(rows, columns=["Field", "Value"])


def table_frame(result: ExtractionResult) -> pd.DataFrame:
    rows = [
        [row.q_no, _dash(row.a), _dash(row.b), _dash(row.c), _dash(row.total)]
        for row in result.table_data
    ]
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def verdict(result: ExtractionResult) -> Tuple[str, str]:
    if result.is_valid:
        return "Validation Passed", ""
    return "Validation Failed", FAILED_HINT


def results_csv(results: Sequence[ExtractionResult]) -> bytes:
    """One line per marks-table row, with the sheet's totals repeated on each."""
    records = []
    for r in results:
        base = {
            "image_name": r.image_name,
            "calculated": r.totals.calculated,
            "written": r.totals.written,
            "bubble_digits": r.totals.bubble_digits,
            "is_valid": r.is_valid,
        }
        if not r.table_data:
            records.append({**base, "q_no": "", "a": "", "b": "", "c": "", "total": ""})
        for row in r.table_data:
            records.append({**base, "q_no": row.q_no, "a": row.a, "b": row.b, "c": row.c, "total": row.total})
    columns = ["image_name", "q_no", "a", "b", "c", "total", "calculated", "written", "bubble_digits", "is_valid"]
    return pd.DataFrame(records, columns=columns).to_csv(index=False).encode("utf-8-sig")


def validity_chart(results: Sequence[ExtractionResult]):
    """Pie chart of passed vs failed sheets, or None for an empty batch."""
    if not results:
        return None
    passed = sum(1 for r in results if r.is_valid)
    failed = len(results) - passed
    fig, ax = plt.subplots(figsize=(4, 4))
    ax.pie(
        [passed, failed],
        labels=["Passed", "Failed"],
        colors=["#16a34a", "#dc2626"],
        autopct="%1.1f%%",
        startangle=90,
    )
    ax.set_title("Validation Split")
    fig.tight_layout()
    # detached from pyplot; savefig still works on the returned figure
    plt.close(fig)
    return fig


def _font(size: int):
    try:
        return ImageFont.load_default(size=size)
    except (TypeError, OSError, ImportError):
        # older Pillow or no FreeType: single bitmap font
        return ImageFont.load_default()


def _canvas_height(result: ExtractionResult) -> int:
    header_lines = max(len(result.header_info), 1)
    table_rows = len(result.table_data) + 1
    return (
        TITLE_HEIGHT
        + MARGIN + LINE_HEIGHT + header_lines * LINE_HEIGHT
        + MARGIN + LINE_HEIGHT + table_rows * ROW_HEIGHT
        + MARGIN + 2 * LINE_HEIGHT
        + MARGIN + BANNER_HEIGHT + MARGIN
    )


def compose_result_image(result: ExtractionResult) -> bytes:
    """Draw the extracted data into a fixed-layout PNG and return its bytes."""
    height = _canvas_height(result)
    img = Image.new("RGB", (CANVAS_WIDTH, height), WHITE)
    draw = ImageDraw.Draw(img)
    title_font, section_font, body_font = _font(22), _font(16), _font(14)

    # Title bar
    draw.rectangle([0, 0, CANVAS_WIDTH, TITLE_HEIGHT], fill=ACCENT)
    draw.text((MARGIN, 16), f"Extraction Result: {result.image_name}", fill=WHITE, font=title_font)
    y = TITLE_HEIGHT + MARGIN

    # Document information
    draw.text((MARGIN, y), "DOCUMENT INFORMATION", fill=ACCENT, font=section_font)
    y += LINE_HEIGHT
    if not result.header_info:
        draw.text((MARGIN, y), "-", fill=MUTED, font=body_font)
        y += LINE_HEIGHT
    for key, value in result.header_info.items():
        draw.text((MARGIN, y), f"{key}:", fill=MUTED, font=body_font)
        draw.text((MARGIN + 220, y), _dash(value), fill=INK, font=body_font)
        y += LINE_HEIGHT
    y += MARGIN

    # Marks table
    draw.text((MARGIN, y), "MARKS TABLE", fill=ACCENT, font=section_font)
    y += LINE_HEIGHT
    col_width = (CANVAS_WIDTH - 2 * MARGIN) // len(TABLE_COLUMNS)
    grid = [TABLE_COLUMNS] + [
        [row.q_no, _dash(row.a), _dash(row.b), _dash(row.c), _dash(row.total)]
        for row in result.table_data
    ]
    for i, cells in enumerate(grid):
        top = y + i * ROW_HEIGHT
        if i == 0:
            draw.rectangle([MARGIN, top, CANVAS_WIDTH - MARGIN, top + ROW_HEIGHT], fill=HEADER_FILL)
        draw.line([MARGIN, top + ROW_HEIGHT, CANVAS_WIDTH - MARGIN, top + ROW_HEIGHT], fill=GRID)
        for j, cell in enumerate(cells):
            draw.text((MARGIN + j * col_width + 8, top + 6), cell, fill=MUTED if i == 0 else INK, font=body_font)
    y += len(grid) * ROW_HEIGHT + MARGIN

    # Totals
    totals = [
        ("Calculated Sum", result.totals.calculated),
        ("Written Total", result.totals.written),
        ("Bubble Digits", result.totals.bubble_digits),
    ]
    third = (CANVAS_WIDTH - 2 * MARGIN) // 3
    for j, (label, value) in enumerate(totals):
        draw.text((MARGIN + j * third, y), label.upper(), fill=MUTED, font=body_font)
        draw.text((MARGIN + j * third, y + LINE_HEIGHT), str(value), fill=INK, font=section_font)
    y += 2 * LINE_HEIGHT + MARGIN

    # Verdict banner
    title, hint = verdict(result)
    fill = PASS_FILL if result.is_valid else FAIL_FILL
    draw.rectangle([MARGIN, y, CANVAS_WIDTH - MARGIN, y + BANNER_HEIGHT], fill=fill)
    draw.text((MARGIN + 16, y + 10), title, fill=WHITE, font=section_font)
    if hint:
        draw.text((MARGIN + 16, y + 36), hint, fill=WHITE, font=_font(12))

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def result_filename(result: ExtractionResult) -> str:
    stem = Path(result.image_name).stem or "result"
    return f"{stem}-result.png"


def bundle_result_images(results: Sequence[ExtractionResult]) -> bytes:
    """Zip of one composed PNG per result, named after the source image."""
    buf = io.BytesIO()
    used: List[str] = []
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for r in results:
            name = result_filename(r)
            if name in used:
                name = f"{Path(name).stem}-{len(used) + 1}.png"
            used.append(name)
            zf.writestr(name, compose_result_image(r))
    return buf.getvalue()
