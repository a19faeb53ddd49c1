"""
Receipt Image Preparation

This service turns an uploaded photo into the data URI that is shown as
the draft preview, sent to the analyzer, and stored on the Expense:
1. Size and format checks
2. Decode with Pillow (rejects anything that is not an image)
3. Fix camera orientation from EXIF
4. Downscale to a bounded size and re-encode as JPEG

DESIGN DECISION: Images are embedded in the persisted blob, so they are
kept small. A 1024px JPEG is plenty for a receipt thumbnail and for the
AI to read the total.
"""

import base64
import re
from io import BytesIO
from pathlib import PurePath
from typing import Optional

import structlog
from PIL import Image, ImageOps, UnidentifiedImageError
from PIL.Image import DecompressionBombError

from snap_expense.config import AppSettings, get_settings

logger = structlog.get_logger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>image/[A-Za-z0-9.+-]+);base64,")

JPEG_QUALITY = 85


class InvalidImageError(Exception):
    """Uploaded file is not a usable receipt image."""
    pass


class ImageTooLargeError(InvalidImageError):
    """Uploaded file exceeds the configured size limit."""
    pass


def to_data_uri(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw image bytes as a base64 data URI."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def split_data_uri(data_uri: str) -> tuple[Optional[str], str]:
    """
    Split a data URI into (mime_type, base64_payload).

    A string without a data-URI prefix is returned as (None, payload).
    """
    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        return None, data_uri
    return match.group("mime").lower(), data_uri[match.end():]


class ReceiptImageProcessor:
    """
    Normalises captured receipt photos.

    Usage:
        processor = ReceiptImageProcessor()
        preview_uri = processor.prepare(uploaded.getvalue(), uploaded.name)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _check_upload(self, image_bytes: bytes, filename: Optional[str]) -> None:
        if not image_bytes:
            raise InvalidImageError("The uploaded file is empty.")

        if len(image_bytes) > self._settings.max_upload_size_bytes:
            raise ImageTooLargeError(
                f"Image is larger than {self._settings.max_upload_size_mb} MB. "
                "Please upload a smaller photo."
            )

        if filename:
            suffix = PurePath(filename).suffix.lstrip(".").lower()
            if suffix and suffix not in self._settings.supported_formats_list:
                raise InvalidImageError(
                    f"Unsupported image type: .{suffix}. "
                    f"Allowed: {', '.join(self._settings.supported_formats_list)}"
                )

    def prepare(self, image_bytes: bytes, filename: Optional[str] = None) -> str:
        """
        Validate, orient, downscale and re-encode a photo.

        Args:
            image_bytes: Raw uploaded file contents
            filename: Original filename, used for the extension check

        Returns:
            A "data:image/jpeg;base64,..." URI

        Raises:
            InvalidImageError: If the file is empty, too large, of an
                unsupported type, or cannot be decoded as an image
        """
        self._check_upload(image_bytes, filename)

        try:
            with Image.open(BytesIO(image_bytes)) as img:
                img.load()
                original_size = img.size
                img = ImageOps.exif_transpose(img)
                if img.mode != "RGB":
                    img = img.convert("RGB")

                limit = self._settings.max_image_dimension
                img.thumbnail((limit, limit))

                buffer = BytesIO()
                img.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
        except (UnidentifiedImageError, DecompressionBombError, OSError) as e:
            raise InvalidImageError(
                "This file could not be read as an image. "
                "Please upload a JPG, PNG or WEBP photo of your receipt."
            ) from e

        encoded = buffer.getvalue()
        logger.info(
            "receipt_image_prepared",
            original_size=list(original_size),
            stored_size=list(img.size),
            stored_bytes=len(encoded),
        )
        return to_data_uri(encoded, "image/jpeg")
