"""
Data Models Package

This package contains all Pydantic models used in SnapExpense.
All data flowing through the system must conform to these schemas.
"""

from snap_expense.models.expense import (
    Expense,
    ExpenseDraft,
    ReceiptAnalysis,
    ViewState,
    now_millis,
    to_date,
    to_money,
)

__all__ = [
    "Expense",
    "ExpenseDraft",
    "ReceiptAnalysis",
    "ViewState",
    "now_millis",
    "to_date",
    "to_money",
]
