import streamlit as st

from marksheet.batch import COMPLETE_PAUSE, VALIDATING_PAUSE
from marksheet.service import MAX_IMAGE_BYTES

st.set_page_config(page_title="Extraction Decisions & Trade-offs", layout="centered")

st.title("Extraction Decisions & Trade-offs")

st.markdown("""
This panel explains how a score sheet travels through the pipeline and how its totals are checked,
so reviewers know what a **Validation Passed** badge does and does not mean.
""")

st.header("Pipeline")
st.markdown(f"""
1. Each uploaded image is encoded as a base64 data URL in the browser session.
2. The extraction service checks the payload (supported image type, at most {MAX_IMAGE_BYTES // (1024 * 1024)} MB).
3. The image and a fixed prompt go to a hosted vision model in a single request.
4. The model's reply is stripped of markdown fences and parsed as JSON.
5. The page normalizes every table cell to text and applies the checksum rule.
""")

st.header("Key decisions and why")

st.subheader("1) The model does the OCR")
st.markdown("""
- Handwritten marks, printed headers and bubble grids are read by one multimodal call.
- Header fields are whatever the model finds on the sheet (exam name, branch, roll number, ...), so they are shown as an open list rather than a fixed form.
- The model reply is returned verbatim; no schema is enforced server-side beyond valid JSON.
""")

st.subheader("2) Sequential batches")
st.markdown(f"""
- Images are processed one at a time. The next image is sent only after the previous reply arrived.
- Progress therefore moves strictly forward, one step per image, and the model gateway never sees a burst.
- Trade-off: total time grows linearly with the number of sheets.
- The short pauses before *Validating* ({VALIDATING_PAUSE}s) and *Complete* ({COMPLETE_PAUSE}s) only pace the status display.
""")

st.subheader("3) One bad sheet never sinks the batch")
st.markdown("""
- Network failures, rate limits, exhausted credits and unreadable replies are counted as failures for that image only.
- Failed images simply have no result; the summary reports how many were processed and how many passed.
- Nothing is retried automatically.
""")

st.header("The checksum rule")
st.markdown("""
- **Calculated Sum**: the leading integer of every row's *Total* cell, added up (blank or unreadable cells count as 0).
- **Bubble Digits**: the total read from the bubbled region of the sheet.
- **Written Total**: the handwritten/printed total. It is displayed next to the others but does **not** take part in the verdict.
- A sheet passes when the calculated sum equals the bubble digits exactly.
""")

st.header("Error responses from the service")
st.markdown("""
| Status | Meaning |
|---|---|
| 400 | No image, unsupported format, or image larger than 10MB |
| 402 | Model gateway credits exhausted |
| 429 | Model gateway rate limit hit, try again later |
| 500 | Missing API key, gateway failure, or a reply that was not JSON (includes `rawContent`) |
""")
