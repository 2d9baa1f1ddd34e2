"""
    03 encoder

encoder.py

Turns user-supplied images into base64 data URLs for transport.

Accepts:
 * a Streamlit UploadedFile (best-effort detection through getvalue())
 * bytes / bytearray
 * a filesystem path (str or pathlib.Path)
 * any file-like object with read()

No format or size checks happen here; the extraction service owns those.
Read failures propagate to the caller.
"""

from __future__ import annotations

import io
import time
import base64
import random
import string
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from marksheet.models import ImageItem

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
PREVIEW_SIZE = (320, 320)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _read_source(source: Union[str, Path, bytes, bytearray, Any]) -> Tuple[bytes, str]:
    """Return (raw bytes, display name) for any supported source."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), ""
    if isinstance(source, (str, Path)):
        path = Path(str(source).replace("\\", "/"))
        # FileNotFoundError / PermissionError go straight to the caller
        return path.read_bytes(), path.name
    name = getattr(source, "name", None) or ""
    if hasattr(source, "getvalue") and callable(getattr(source, "getvalue")):
        data = source.getvalue()
    elif hasattr(source, "read"):
        data = source.read()
    else:
        raise TypeError(f"Unsupported image source: {type(source).__name__}")
    if isinstance(data, str):
        data = data.encode("utf-8")
    return bytes(data), Path(str(name)).name


def guess_mime_type(source: Any, name: str = "") -> str:
    """Resolve the MIME type from the upload, the file name, or the default."""
    declared = getattr(source, "type", None)
    if isinstance(declared, str) and declared.startswith("image/"):
        return declared
    if name:
        guessed, _ = mimetypes.guess_type(name)
        if guessed and guessed.startswith("image/"):
            return guessed
    return DEFAULT_MIME_TYPE


def encode_bytes(data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def to_data_url(source: Any, mime_type: Optional[str] = None) -> str:
    """Encode an image source as ``data:image/<subtype>;base64,<payload>``."""
    data, name = _read_source(source)
    return encode_bytes(data, mime_type or guess_mime_type(source, name))


def new_image_id(name: str) -> str:
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{name}-{int(time.time() * 1000)}-{suffix}"


def make_preview(data: bytes, mime_type: str) -> str:
    """Downscaled PNG preview; falls back to the original bytes if Pillow can't decode them."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            thumb = im.convert("RGB")
            thumb.thumbnail(PREVIEW_SIZE)
            buf = io.BytesIO()
            thumb.save(buf, format="PNG")
            return encode_bytes(buf.getvalue(), "image/png")
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Preview generation failed, using original bytes: %s", e)
        return encode_bytes(data, mime_type)


def make_image_item(source: Any, name: Optional[str] = None) -> ImageItem:
    """Read an upload once and wrap it as an ImageItem with a session-unique id."""
    data, source_name = _read_source(source)
    display_name = name or source_name or "image"
    mime_type = guess_mime_type(source, display_name)
    return ImageItem(
        id=new_image_id(display_name),
        name=display_name,
        data=data,
        mime_type=mime_type,
        preview=make_preview(data, mime_type),
    )


def item_to_data_url(item: ImageItem) -> str:
    return encode_bytes(item.data, item.mime_type)


def preview_bytes(item: ImageItem) -> bytes:
    """Decoded thumbnail bytes for display widgets that want raw image data."""
    source = item.preview or item_to_data_url(item)
    return base64.b64decode(source.split(",", 1)[1])
