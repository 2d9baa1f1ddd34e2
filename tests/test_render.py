import io
import zipfile

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from PIL import Image

from marksheet import render
from marksheet.client import normalize


def sheet(name="sheet1.jpg", bubble=12):
    return normalize({
        "headerInfo": {"Exam": "Midterm", "Student ID": "S-042", "Remarks": ""},
        "tableData": [
            {"qNo": "1", "a": "2", "b": "3", "c": "", "total": "5"},
            {"qNo": "2", "a": "", "b": "", "c": "", "total": "-"},
            {"qNo": "3", "a": "7", "b": "", "c": "", "total": "7"},
        ],
        "writtenTotal": 12,
        "bubbleDigits": bubble,
    }, f"{name}-1-x", name)


def test_header_frame_keeps_insertion_order():
    frame = render.header_frame(sheet())
    assert list(frame["Field"]) == ["Exam", "Student ID", "Remarks"]
    assert list(frame["Value"]) == ["Midterm", "S-042", "-"]


def test_table_frame_keeps_row_order_and_dashes_blanks():
    frame = render.table_frame(sheet())
    assert list(frame.columns) == render.TABLE_COLUMNS
    assert list(frame["Q.No"]) == ["1", "2", "3"]
    assert list(frame["C"]) == ["-", "-", "-"]


def test_verdict():
    assert render.verdict(sheet()) == ("Validation Passed", "")
    title, hint = render.verdict(sheet(bubble=13))
    assert title == "Validation Failed"
    assert hint == render.FAILED_HINT


def test_composed_image_is_a_png():
    png = render.compose_result_image(sheet())
    img = Image.open(io.BytesIO(png))
    assert img.format == "PNG"
    assert img.width == render.CANVAS_WIDTH


def test_composed_image_grows_with_rows():
    short = normalize({"tableData": []}, "a", "a.png")
    tall = sheet()
    h_short = Image.open(io.BytesIO(render.compose_result_image(short))).height
    h_tall = Image.open(io.BytesIO(render.compose_result_image(tall))).height
    assert h_tall > h_short


def test_bundle_has_one_png_per_result():
    data = render.bundle_result_images([sheet("a.jpg"), sheet("b.jpg"), sheet("a.jpg")])
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        names = zf.namelist()
    assert names[:2] == ["a-result.png", "b-result.png"]
    assert len(set(names)) == 3


def test_results_csv_has_a_line_per_row():
    data = render.results_csv([sheet("a.jpg"), sheet("b.jpg", bubble=1)])
    frame = pd.read_csv(io.BytesIO(data), encoding="utf-8-sig", dtype=str)
    assert len(frame) == 6
    assert list(frame["image_name"].unique()) == ["a.jpg", "b.jpg"]
    assert list(frame.groupby("image_name")["is_valid"].first()) == ["True", "False"]


def test_validity_chart():
    assert render.validity_chart([]) is None
    fig = render.validity_chart([sheet(), sheet(bubble=1)])
    assert fig is not None
    assert fig.axes[0].get_title() == "Validation Split"


def test_validity_chart_does_not_accumulate_figures():
    before = len(plt.get_fignums())
    for _ in range(25):
        fig = render.validity_chart([sheet(), sheet(bubble=1)])
    assert len(plt.get_fignums()) == before
    buf = io.BytesIO()
    fig.savefig(buf, format="png")
    assert buf.getvalue().startswith(b"\x89PNG")
