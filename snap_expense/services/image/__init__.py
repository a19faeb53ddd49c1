"""Image services package."""

from snap_expense.services.image.receipt_image import (
    ImageTooLargeError,
    InvalidImageError,
    ReceiptImageProcessor,
    split_data_uri,
    to_data_uri,
)

__all__ = [
    "ImageTooLargeError",
    "InvalidImageError",
    "ReceiptImageProcessor",
    "split_data_uri",
    "to_data_uri",
]
