import streamlit as st

from marksheet.batch import EmptyBatchError, run_batch, summarize
from marksheet.client import ExtractionClient
from marksheet.config import configure_logging, load_settings
from marksheet.encoder import make_image_item, preview_bytes
from marksheet import render

logger = configure_logging()
settings = load_settings()

SUPPORTED_TYPES = ["jpg", "jpeg", "png", "webp", "gif", "bmp"]

# -------------------------------
# Session state
# -------------------------------
st.session_state.setdefault("images", [])
st.session_state.setdefault("results", [])
st.session_state.setdefault("current", 0)
st.session_state.setdefault("busy", False)
st.session_state.setdefault("uploader_key", 0)
st.session_state.setdefault("notice", None)


def add_uploads():
    key = f"uploader_{st.session_state.uploader_key}"
    uploaded = st.session_state.get(key) or []
    new_items = []
    for f in uploaded:
        try:
            new_items.append(make_image_item(f))
        except Exception as e:
            logger.error("Could not read %s: %s", getattr(f, "name", "upload"), e)
            st.session_state["upload_error"] = f"Could not read {getattr(f, 'name', 'upload')}: {e}"
    st.session_state.images = st.session_state.images + new_items
    st.session_state.results = []
    st.session_state.current = 0
    st.session_state.notice = None
    # fresh widget so the same file can be added again
    st.session_state.uploader_key += 1


def remove_image(image_id: str):
    st.session_state.images = [img for img in st.session_state.images if img.id != image_id]


def clear_all():
    st.session_state.images = []
    st.session_state.results = []
    st.session_state.current = 0
    st.session_state.notice = None


def start_batch():
    st.session_state.busy = True
    st.session_state.results = []
    st.session_state.current = 0
    st.session_state.notice = None


def step(delta: int):
    last = len(st.session_state.results) - 1
    st.session_state.current = min(max(st.session_state.current + delta, 0), last)


# -------------------------------
# Main Streamlit Page
# -------------------------------
st.title("Document Extractor")
st.markdown(
    "Extract handwritten text, tables, and validate totals from exam sheets and documents. "
    "Each sheet's row totals are summed and checked against its **bubble digits**."
)
st.divider()

with st.sidebar:
    service_url = st.text_input("Extraction service URL", value=settings.service_url,
                                key="service_url", disabled=st.session_state.busy)

st.file_uploader(
    "Upload document images:",
    type=SUPPORTED_TYPES,
    accept_multiple_files=True,
    key=f"uploader_{st.session_state.uploader_key}",
    on_change=add_uploads,
    disabled=st.session_state.busy,
    help="Supports: JPG, PNG, WEBP, GIF, BMP. Max 10MB per image.",
)

if "upload_error" in st.session_state:
    st.error(st.session_state.pop("upload_error"))

images = st.session_state.images
if images:
    head_left, head_right = st.columns([4, 1])
    head_left.markdown(f"**{len(images)} image{'s' if len(images) > 1 else ''} selected**")
    head_right.button("Clear all", key="clear_all", on_click=clear_all, disabled=st.session_state.busy)

    cols = st.columns(3)
    for idx, img in enumerate(images):
        with cols[idx % 3]:
            st.image(preview_bytes(img), caption=img.name, use_container_width=True)
            st.button("Remove", key=f"remove_{img.id}", on_click=remove_image, args=(img.id,),
                      disabled=st.session_state.busy)
else:
    st.info("Please upload document images to begin.")

label = f"Extract All ({len(images)})" if len(images) > 1 else "Extract Data"
st.button(label, key="extract", type="primary", on_click=start_batch,
          disabled=st.session_state.busy or not images)

# The batch runs on the rerun that start_batch triggered, after every
# mutating widget above has been drawn disabled.
if st.session_state.busy:
    client = ExtractionClient(service_url, timeout=settings.service_timeout)
    progress = st.progress(0.0)
    status = st.empty()
    try:
        outcome = run_batch(
            list(images),
            client.extract_item,
            on_progress=lambda p: progress.progress(p.fraction, text=f"Image {p.current} of {p.total}"),
            on_stage=lambda stage: status.info(stage.label),
        )
        st.session_state.results = outcome.results
        notice = summarize(outcome)
        st.session_state.notice = (notice.level, f"**{notice.title}**: {notice.body}")
    except EmptyBatchError:
        st.session_state.notice = ("warning", "No images selected. Please upload at least one image.")
    finally:
        st.session_state.busy = False
    st.rerun()

if st.session_state.notice:
    level, text = st.session_state.notice
    getattr(st, level)(text)

# -------------------------------
# Results
# -------------------------------
results = st.session_state.results
if results:
    st.divider()
    current = min(st.session_state.current, len(results) - 1)
    result = results[current]

    if len(results) > 1:
        prev_col, mid_col, next_col = st.columns([1, 3, 1])
        prev_col.button("Previous", on_click=step, args=(-1,), disabled=current == 0)
        marks = " ".join("●" if i == current else ("✅" if r.is_valid else "❌") for i, r in enumerate(results))
        mid_col.markdown(f"<div style='text-align:center'>{marks}</div>", unsafe_allow_html=True)
        next_col.button("Next", on_click=step, args=(1,), disabled=current == len(results) - 1)

    position = f" • {current + 1} of {len(results)}" if len(results) > 1 else ""
    st.caption(f"**{result.image_name}**{position}")

    st.markdown("#### Document Information")
    st.dataframe(render.header_frame(result), hide_index=True)

    st.markdown("#### Marks Table")
    st.dataframe(render.table_frame(result), hide_index=True)

    title, hint = render.verdict(result)
    if result.is_valid:
        st.success(f"✅ {title}")
    else:
        st.error(f"❌ {title}")
    m1, m2, m3 = st.columns(3)
    m1.metric("Calculated Sum", result.totals.calculated)
    m2.metric("Written Total", result.totals.written)
    m3.metric("Bubble Digits", result.totals.bubble_digits)
    if hint:
        st.warning(hint)

    st.markdown("#### Result Image")
    png = render.compose_result_image(result)
    st.image(png, use_container_width=True)
    dl1, dl2, dl3 = st.columns(3)
    dl1.download_button("Download", data=png, file_name=render.result_filename(result), mime="image/png")
    if len(results) > 1:
        dl2.download_button(f"All ({len(results)})", data=render.bundle_result_images(results),
                            file_name="results.zip", mime="application/zip")
    dl3.download_button("Results CSV", data=render.results_csv(results), file_name="results.csv", mime="text/csv")

    if len(results) > 1:
        st.markdown("### Validation Split")
        fig = render.validity_chart(results)
        if fig is not None:
            st.pyplot(fig)
