"""Tests for receipt image preparation."""

import base64
from io import BytesIO

import pytest
from PIL import Image

from snap_expense.config import AppSettings
from snap_expense.services.image import (
    ImageTooLargeError,
    InvalidImageError,
    ReceiptImageProcessor,
    split_data_uri,
    to_data_uri,
)


def image_bytes(size=(200, 100), mode="RGB", fmt="PNG") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, color="white" if mode != "RGBA" else (255, 255, 255, 128)).save(buffer, format=fmt)
    return buffer.getvalue()


def decode(uri: str) -> bytes:
    _, payload = split_data_uri(uri)
    return base64.b64decode(payload)


class TestDataUris:
    """Tests for data-URI helpers."""

    def test_to_data_uri(self):
        """Test encoding."""
        assert to_data_uri(b"ABC") == "data:image/jpeg;base64,QUJD"
        assert to_data_uri(b"ABC", "image/png") == "data:image/png;base64,QUJD"

    def test_split(self):
        """Test splitting header and payload."""
        assert split_data_uri("data:image/PNG;base64,QUJD") == ("image/png", "QUJD")
        assert split_data_uri("QUJD") == (None, "QUJD")


class TestReceiptImageProcessor:
    """Tests for ReceiptImageProcessor.prepare()."""

    def test_small_image_reencoded_as_jpeg(self):
        """Test that output is a JPEG data URI at the original size."""
        uri = ReceiptImageProcessor(AppSettings()).prepare(image_bytes(), "receipt.png")
        assert uri.startswith("data:image/jpeg;base64,")
        with Image.open(BytesIO(decode(uri))) as img:
            assert img.format == "JPEG"
            assert img.size == (200, 100)

    def test_large_image_downscaled(self):
        """Test that the longest side is capped, keeping the aspect ratio."""
        uri = ReceiptImageProcessor(AppSettings()).prepare(image_bytes((3000, 1500)))
        with Image.open(BytesIO(decode(uri))) as img:
            assert img.size == (1024, 512)

    def test_configured_dimension(self):
        """Test a custom size limit."""
        settings = AppSettings(max_image_dimension=256)
        uri = ReceiptImageProcessor(settings).prepare(image_bytes((100, 1000)))
        with Image.open(BytesIO(decode(uri))) as img:
            assert max(img.size) == 256

    def test_transparent_image_converted(self):
        """Test that RGBA input becomes an RGB JPEG."""
        uri = ReceiptImageProcessor(AppSettings()).prepare(image_bytes(mode="RGBA"), "r.png")
        with Image.open(BytesIO(decode(uri))) as img:
            assert img.mode == "RGB"

    def test_empty_file_rejected(self):
        """Test that an empty upload is rejected."""
        with pytest.raises(InvalidImageError):
            ReceiptImageProcessor(AppSettings()).prepare(b"", "r.jpg")

    def test_not_an_image_rejected(self):
        """Test that arbitrary bytes are rejected."""
        with pytest.raises(InvalidImageError):
            ReceiptImageProcessor(AppSettings()).prepare(b"%PDF-1.4 not an image", "r.jpg")

    def test_unsupported_extension_rejected(self):
        """Test the extension allow-list."""
        with pytest.raises(InvalidImageError, match="Unsupported"):
            ReceiptImageProcessor(AppSettings()).prepare(image_bytes(), "receipt.gif")

    def test_oversize_rejected(self):
        """Test the upload size limit."""
        settings = AppSettings(max_upload_size_mb=1)
        too_big = b"\x00" * (1024 * 1024 + 1)
        with pytest.raises(ImageTooLargeError):
            ReceiptImageProcessor(settings).prepare(too_big, "r.jpg")
