"""Receipt analyzer package."""

from snap_expense.services.analyzer.interface import (
    AnalysisError,
    ImageInput,
    ReceiptAnalyzerInterface,
)
from snap_expense.services.analyzer.gemini_service import (
    ANALYSIS_PROMPT,
    GeminiReceiptAnalyzer,
    parse_analysis_response,
    strip_data_uri_prefix,
)

__all__ = [
    "ANALYSIS_PROMPT",
    "AnalysisError",
    "GeminiReceiptAnalyzer",
    "ImageInput",
    "ReceiptAnalyzerInterface",
    "parse_analysis_response",
    "strip_data_uri_prefix",
]
