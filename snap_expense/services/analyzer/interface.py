"""
Abstract Receipt Analyzer Interface

The controller only depends on this interface, so tests (and a future
non-Gemini provider) can plug in any object with an async analyze().
"""

from abc import ABC, abstractmethod
from typing import Union

from snap_expense.models.expense import ReceiptAnalysis

ImageInput = Union[str, bytes]


class ReceiptAnalyzerInterface(ABC):
    """Reads best-effort amount/merchant/date from a receipt image."""

    @abstractmethod
    async def analyze(self, image: ImageInput) -> ReceiptAnalysis:
        """
        Analyze one receipt image.

        Args:
            image: A data URI, a bare base64 string, or raw image bytes

        Returns:
            A partial ReceiptAnalysis; any field may be None

        Raises:
            AnalysisError: On any failure of the call
        """
        pass


class AnalysisError(Exception):
    """The external analysis call failed or returned an unusable response."""
    pass
