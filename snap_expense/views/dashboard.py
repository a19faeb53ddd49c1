"""
Dashboard and History View Models

Pure functions from the current records to what the screens show.
Rendering (Streamlit, plotly) lives in app/main.py; nothing here knows
about it, which keeps these easy to test.

Records arrive newest first, as the Store keeps them.
"""

from decimal import Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from snap_expense.models.expense import Expense

CHART_SIZE = 7
RECENT_SIZE = 3
CHART_LABEL_LENGTH = 5


def format_currency(amount: Decimal, symbol: str = "£") -> str:
    """Format an amount with two decimals, e.g. £9.99."""
    return f"{symbol}{amount:.2f}"


class ChartPoint(BaseModel):
    """One bar of the recent-activity chart."""
    model_config = ConfigDict(frozen=True)

    label: str
    amount: Decimal
    is_latest: bool = False


class ExpenseRow(BaseModel):
    """One expense as shown in a list."""
    model_config = ConfigDict(frozen=True)

    id: str
    merchant: str
    amount: Decimal
    amount_display: str
    date_display: str
    time_display: str
    description: Optional[str] = None
    image_url: Optional[str] = None


class DashboardSummary(BaseModel):
    """Everything the dashboard needs."""
    model_config = ConfigDict(frozen=True)

    total: Decimal
    total_display: str
    count: int
    chart: list[ChartPoint]
    recent: list[ExpenseRow]

    @property
    def is_empty(self) -> bool:
        return self.count == 0


def total_claimable(records: Sequence[Expense]) -> Decimal:
    return sum((r.amount for r in records), Decimal("0"))


def build_chart_series(records: Sequence[Expense], size: int = CHART_SIZE) -> list[ChartPoint]:
    """
    The most recent `size` records, oldest on the left.

    The right-most bar (the newest record) is flagged is_latest.
    """
    window = list(records[:size])
    window.reverse()
    return [
        ChartPoint(
            label=record.merchant[:CHART_LABEL_LENGTH],
            amount=record.amount,
            is_latest=index == len(window) - 1,
        )
        for index, record in enumerate(window)
    ]


def to_row(record: Expense, currency_symbol: str = "£") -> ExpenseRow:
    return ExpenseRow(
        id=record.id,
        merchant=record.merchant,
        amount=record.amount,
        amount_display=format_currency(record.amount, currency_symbol),
        date_display=record.date.isoformat(),
        time_display=record.created_at.strftime("%H:%M"),
        description=record.description,
        image_url=record.image_url,
    )


def build_dashboard(records: Sequence[Expense], currency_symbol: str = "£") -> DashboardSummary:
    total = total_claimable(records)
    return DashboardSummary(
        total=total,
        total_display=format_currency(total, currency_symbol),
        count=len(records),
        chart=build_chart_series(records),
        recent=[to_row(r, currency_symbol) for r in records[:RECENT_SIZE]],
    )


def build_history(records: Sequence[Expense], currency_symbol: str = "£") -> list[ExpenseRow]:
    """All records, newest first."""
    return [to_row(r, currency_symbol) for r in records]
