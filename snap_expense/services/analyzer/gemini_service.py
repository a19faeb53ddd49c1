"""
Receipt Analysis using Gemini

This service handles:
1. Stripping the data-URI prefix from the captured image
2. Sending the image plus a fixed instruction to Gemini in ONE request
3. Parsing the JSON reply into a partial ReceiptAnalysis

CRITICAL BOUNDARIES:
- The result is a SUGGESTION used to pre-fill the form, never saved directly
- Any field may come back missing; that is not an error
- Anything else going wrong is an AnalysisError, and the caller falls back
  to manual entry

DESIGN DECISION: No retries. A failed analysis costs the user nothing
(they can type the fields), while a retry loop would keep the Save button
blocked for longer. The call is bounded by a timeout instead.
"""

import asyncio
import base64
import binascii
import json
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from snap_expense.config import GeminiSettings, get_settings
from snap_expense.models.expense import ReceiptAnalysis
from snap_expense.services.analyzer.interface import (
    AnalysisError,
    ImageInput,
    ReceiptAnalyzerInterface,
)
from snap_expense.services.image import split_data_uri

logger = structlog.get_logger(__name__)

ANALYSIS_PROMPT = (
    "Analyze this receipt image. Extract the total amount, "
    "the merchant name, and the date."
)

DEFAULT_MIME_TYPE = "image/jpeg"

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "amount": {
            "type": "NUMBER",
            "description": "The total amount paid.",
            "nullable": True,
        },
        "merchant": {
            "type": "STRING",
            "description": "The name of the business or merchant.",
            "nullable": True,
        },
        "date": {
            "type": "STRING",
            "description": "The date on the receipt in YYYY-MM-DD format.",
            "nullable": True,
        },
    },
}


def strip_data_uri_prefix(image: str) -> str:
    """Return the bare base64 payload of a data URI (or the input unchanged)."""
    _, payload = split_data_uri(image)
    return payload


def _image_part(image: ImageInput) -> dict[str, Any]:
    """Build the inline-data part for the request."""
    if isinstance(image, bytes):
        if not image:
            raise AnalysisError("No image data to analyze")
        return {"mime_type": DEFAULT_MIME_TYPE, "data": image}

    image = image.strip()
    mime_type, _ = split_data_uri(image)
    payload = strip_data_uri_prefix(image)
    if mime_type == "image/jpg":
        mime_type = "image/jpeg"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AnalysisError(f"Image is not valid base64: {e}") from e
    if not data:
        raise AnalysisError("No image data to analyze")
    return {"mime_type": mime_type or DEFAULT_MIME_TYPE, "data": data}


def parse_analysis_response(text: Optional[str]) -> ReceiptAnalysis:
    """
    Parse the model's JSON reply.

    Unknown keys are ignored and unusable field values become None.

    Raises:
        AnalysisError: If the body is missing, not JSON, or not an object
    """
    if text is None or not text.strip():
        raise AnalysisError("No response from AI")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"AI response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisError(
            f"AI response must be a JSON object, got {type(data).__name__}"
        )

    try:
        return ReceiptAnalysis.model_validate(
            {key: data.get(key) for key in ("amount", "merchant", "date")}
        )
    except ValidationError as e:
        raise AnalysisError(f"AI response has an unexpected shape: {e}") from e


class GeminiReceiptAnalyzer(ReceiptAnalyzerInterface):
    """
    Receipt analyzer backed by a Gemini multimodal model.

    Only construct this when GEMINI_API_KEY is configured;
    create_app_components() takes care of that.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        if not self._settings.is_configured and model is None:
            raise AnalysisError("GEMINI_API_KEY is not configured")
        self._model = model or self._configure_genai()

    def _configure_genai(self) -> Any:
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMA,
            }
        )

    async def analyze(self, image: ImageInput) -> ReceiptAnalysis:
        """
        Analyze one receipt image with a single Gemini request.

        Raises:
            AnalysisError: On transport failure, timeout, or an
                empty/malformed response
        """
        part = _image_part(image)

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async([part, ANALYSIS_PROMPT]),
                timeout=self._settings.timeout_seconds,
            )
            # .text raises ValueError when the reply has no text part.
            text = response.text
        except asyncio.TimeoutError as e:
            raise AnalysisError(
                f"Receipt analysis timed out after {self._settings.timeout_seconds:g}s"
            ) from e
        except Exception as e:
            raise AnalysisError(f"Receipt analysis failed: {e}") from e

        result = parse_analysis_response(text)
        logger.info(
            "receipt_analyzed",
            amount_found=result.amount is not None,
            merchant_found=result.merchant is not None,
            date_found=result.date is not None,
        )
        return result
