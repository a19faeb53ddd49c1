"""
Core Data Models for SnapExpense

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce the Expense invariants before anything reaches the Store
2. Serialize to the exact JSON layout of the persisted blob
3. Keep AI output (ReceiptAnalysis) separate from confirmed data (Expense)

DESIGN DECISION: Amounts are Decimal in memory and plain JSON numbers
on disk. Summing Decimals keeps the dashboard total exact to the penny.
"""

import time
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

CENT = Decimal("0.01")

# Alias so model fields can be named `date` without shadowing the type.
DateType = date


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def to_money(value: Any) -> Optional[Decimal]:
    """
    Convert a user- or AI-supplied value to a non-negative Decimal.

    Returns None for anything that is not a finite, non-negative number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string (or pass a date through). None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


# =============================================================================
# ENUMS
# =============================================================================

class ViewState(str, Enum):
    """
    The three screens of the app.

    Navigation is a flat selector: switching is an unconditional jump,
    there is no back stack.
    """
    DASHBOARD = "DASHBOARD"
    ADD = "ADD"
    HISTORY = "HISTORY"


# =============================================================================
# PERSISTED RECORD
# =============================================================================

class Expense(BaseModel):
    """
    A confirmed expense record.

    CRITICAL: Only Expense objects are persisted.
    Construction fails for an empty merchant or a negative amount, so an
    invalid record can never reach the Store.

    Records are frozen: there is no edit operation, only delete.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Unique record ID (lookup and delete key)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount claimed"
    )
    merchant: str = Field(
        ...,
        min_length=1,
        description="Payee"
    )
    date: DateType = Field(
        default_factory=date.today,
        description="Transaction date (user editable, not the creation time)"
    )
    timestamp: int = Field(
        default_factory=now_millis,
        ge=0,
        description="Creation instant in epoch milliseconds"
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional category or note"
    )
    image_url: Optional[str] = Field(
        default=None,
        alias="imageUrl",
        description="Receipt image as a data URI"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def quantize_amount(cls, v: Any) -> Any:
        """Round to pennies; leave invalid input for the ge=0 check to reject."""
        amount = to_money(v)
        return amount if amount is not None else v

    @field_validator('description', 'image_url')
    @classmethod
    def empty_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    def to_storage_dict(self) -> dict:
        """JSON-ready dict with the persisted field names (imageUrl etc.)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def created_at(self) -> datetime:
        """Creation time in local time."""
        return datetime.fromtimestamp(self.timestamp / 1000)


# =============================================================================
# AI ANALYSIS RESULT
# =============================================================================

class ReceiptAnalysis(BaseModel):
    """
    Best-effort fields read from a receipt image.

    CRITICAL: This is PROPOSED data, NOT confirmed.
    Every field is optional; a field the service could not determine
    (or returned in an unusable shape) is None and must not overwrite
    anything the user typed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = None
    merchant: Optional[str] = Field(default=None, max_length=200)
    date: Optional[DateType] = None

    @field_validator('amount', mode='before')
    @classmethod
    def lenient_amount(cls, v: Any) -> Optional[Decimal]:
        return to_money(v)

    @field_validator('merchant', mode='before')
    @classmethod
    def lenient_merchant(cls, v: Any) -> Optional[str]:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()[:200]

    @field_validator('date', mode='before')
    @classmethod
    def lenient_date(cls, v: Any) -> Optional[DateType]:
        return to_date(v)


# =============================================================================
# DRAFT (ADD FORM)
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    The in-progress Add form.

    Fields mirror the form inputs, so amount is kept as the raw text
    the user typed (or the AI suggested).
    """

    amount: str = ""
    merchant: str = ""
    date: DateType = Field(default_factory=date.today)
    description: str = ""
    image: Optional[str] = Field(
        default=None,
        description="Preview data URI of the captured receipt"
    )

    @property
    def parsed_amount(self) -> Optional[Decimal]:
        return to_money(self.amount)

    @property
    def can_save(self) -> bool:
        """Amount and merchant are both filled in and the amount is a number."""
        return bool(self.merchant.strip()) and self.parsed_amount is not None

    def to_expense(self) -> Expense:
        """
        Build the Expense this draft describes.

        Raises:
            ValueError: If the draft is not savable
        """
        amount = self.parsed_amount
        if amount is None or not self.merchant.strip():
            raise ValueError("Amount and merchant are required")
        return Expense(
            amount=amount,
            merchant=self.merchant,
            date=self.date,
            description=self.description.strip() or None,
            image_url=self.image,
        )
