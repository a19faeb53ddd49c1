"""View model builders for the Dashboard and History screens."""

from snap_expense.views.dashboard import (
    ChartPoint,
    DashboardSummary,
    ExpenseRow,
    build_chart_series,
    build_dashboard,
    build_history,
    format_currency,
    total_claimable,
)

__all__ = [
    "ChartPoint",
    "DashboardSummary",
    "ExpenseRow",
    "build_chart_series",
    "build_dashboard",
    "build_history",
    "format_currency",
    "total_claimable",
]
