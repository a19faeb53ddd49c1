"""
Shared fixtures.

Tests never touch the network or the user's real data directory:
- GEMINI_API_KEY is removed from the environment
- APP_DATA_DIR points at a per-test temporary directory
- the cached settings are cleared around every test
"""

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest

from snap_expense.config import get_settings
from snap_expense.models.expense import Expense, ReceiptAnalysis
from snap_expense.services.analyzer import ReceiptAnalyzerInterface
from snap_expense.services.storage import ExpenseStore, InMemoryKeyValueStore


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Hermetic configuration for every test."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class StubAnalyzer(ReceiptAnalyzerInterface):
    """Analyzer double: returns a fixed result or raises a fixed error."""

    def __init__(
        self,
        result: Optional[ReceiptAnalysis] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.result = result or ReceiptAnalysis()
        self.error = error
        self.gate = gate
        self.calls: list = []

    async def analyze(self, image):
        self.calls.append(image)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class StubGeminiModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None, delay: float = 0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: list = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def make_expense(
    merchant: str = "Costa",
    amount: str = "9.99",
    timestamp: int = 1_700_000_000_000,
    **extra,
) -> Expense:
    return Expense(
        merchant=merchant,
        amount=Decimal(amount),
        date=extra.pop("date", date(2024, 1, 5)),
        timestamp=timestamp,
        **extra,
    )


@pytest.fixture
def backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(backend) -> ExpenseStore:
    store = ExpenseStore(backend)
    store.load()
    return store
