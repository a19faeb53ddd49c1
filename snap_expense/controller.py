"""
View Controller for SnapExpense

This module ties together the Store, the Analyzer and the screens:
1. Navigation (Dashboard / Add / History, a flat selector)
2. The Add-form draft and its lifecycle
3. Capture (image → preview → optional AI pre-fill)
4. Save and delete

DESIGN DECISION: The controller enforces the boundaries:
- Nothing is saved without an explicit save_expense() call
- AI results only ever fill fields the AI actually determined
- A failed or slow analysis never blocks manual entry

Stale results: every reset_form() starts a new draft generation. An
analysis result is applied only if it belongs to the current generation
and to the most recent capture. Anything else is dropped, even if the user
has come back to the Add screen with a fresh form.
"""

from typing import Callable, Optional

import structlog

from snap_expense.config import Settings, get_settings
from snap_expense.models.expense import (
    Expense,
    ExpenseDraft,
    ReceiptAnalysis,
    ViewState,
)
from snap_expense.services.analyzer import (
    AnalysisError,
    GeminiReceiptAnalyzer,
    ReceiptAnalyzerInterface,
)
from snap_expense.services.image import ReceiptImageProcessor
from snap_expense.services.storage import ExpenseStore, JsonFileKeyValueStore

logger = structlog.get_logger(__name__)

EDITABLE_DRAFT_FIELDS = frozenset({"amount", "merchant", "date", "description"})


def merge_analysis(draft: ExpenseDraft, analysis: ReceiptAnalysis) -> ExpenseDraft:
    """
    Overlay an analysis result on a draft.

    A draft field is replaced only when the analysis has a value for it;
    fields the analysis could not determine keep whatever the user typed.
    """
    updates = {}
    if analysis.amount is not None:
        updates["amount"] = format(analysis.amount, "f")
    if analysis.merchant is not None:
        updates["merchant"] = analysis.merchant
    if analysis.date is not None:
        updates["date"] = analysis.date
    return draft.model_copy(update=updates)


class ExpenseController:
    """
    Holds the UI state and mediates between Store, Analyzer and views.

    Flow (Add screen):
    1. capture_image() → preview set immediately
    2. Analyzer runs (if configured) → is_analyzing gates Save
    3. merge_analysis() → pre-filled fields
    4. User edits via update_draft()
    5. save_expense() → Store.add → reset → Dashboard
    """

    def __init__(
        self,
        store: ExpenseStore,
        analyzer: Optional[ReceiptAnalyzerInterface] = None,
        image_processor: Optional[ReceiptImageProcessor] = None,
    ):
        self._store = store
        self._analyzer = analyzer
        self._image_processor = image_processor
        self._view = ViewState.DASHBOARD
        self._draft = ExpenseDraft()
        self._draft_generation = 0
        self._draft_revision = 0
        self._capture_seq = 0
        # (draft generation, capture sequence) of the in-flight analysis
        self._pending_analysis: Optional[tuple[int, int]] = None
        self._listeners: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def store(self) -> ExpenseStore:
        return self._store

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def draft(self) -> ExpenseDraft:
        return self._draft

    @property
    def draft_revision(self) -> int:
        """Bumped whenever the draft is replaced by anything other than update_draft()."""
        return self._draft_revision

    @property
    def records(self) -> list[Expense]:
        return self._store.records

    @property
    def analysis_enabled(self) -> bool:
        return self._analyzer is not None

    @property
    def is_analyzing(self) -> bool:
        return (
            self._pending_analysis is not None
            and self._pending_analysis[0] == self._draft_generation
        )

    @property
    def can_save(self) -> bool:
        return self._draft.can_save and not self.is_analyzing

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Call listener after any state change, including Store mutations.

        The Store is shared, so the controller only hooks into it while it
        has listeners of its own. Call the returned function to detach.
        """
        self._listeners.append(listener)
        store_unsubscribe = self._store.subscribe(lambda _records: listener())

        def unsubscribe() -> None:
            store_unsubscribe()
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Navigation and draft
    # ------------------------------------------------------------------

    def navigate(self, view: ViewState) -> None:
        """Jump to a screen. The draft is kept until cancel or save."""
        self._view = ViewState(view)
        self._notify()

    def update_draft(self, **fields) -> ExpenseDraft:
        """
        Apply user edits to the draft.

        Raises:
            ValueError: For fields that are not user-editable
        """
        unknown = set(fields) - EDITABLE_DRAFT_FIELDS
        if unknown:
            raise ValueError(f"Not editable draft fields: {', '.join(sorted(unknown))}")
        self._draft = ExpenseDraft.model_validate(
            {**self._draft.model_dump(), **fields}
        )
        self._notify()
        return self._draft

    def reset_form(self) -> None:
        """Clear the draft back to defaults and orphan any in-flight analysis."""
        self._draft = ExpenseDraft()
        self._draft_generation += 1
        self._draft_revision += 1
        self._notify()

    def cancel(self) -> None:
        self.reset_form()
        self.navigate(ViewState.DASHBOARD)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def capture_upload(self, image_bytes: bytes, filename: Optional[str] = None) -> bool:
        """
        Normalise an uploaded photo and capture it.

        Raises:
            InvalidImageError: If the upload is not a usable image
                (the draft is left untouched)
        """
        processor = self._image_processor or ReceiptImageProcessor()
        data_uri = processor.prepare(image_bytes, filename)
        return await self.capture_image(data_uri)

    async def capture_image(self, image: str) -> bool:
        """
        Set the draft preview and, when enabled, pre-fill from the analyzer.

        Never raises for analysis problems; the form stays usable.

        Returns:
            True if an analysis result was merged into the draft
        """
        self._draft = self._draft.model_copy(update={"image": image})
        self._notify()

        if self._analyzer is None:
            return False

        self._capture_seq += 1
        token = (self._draft_generation, self._capture_seq)
        self._pending_analysis = token
        self._notify()

        analysis: Optional[ReceiptAnalysis] = None
        try:
            analysis = await self._analyzer.analyze(image)
        except AnalysisError as e:
            logger.warning("analysis_failed", error=str(e))
        finally:
            if self._pending_analysis == token:
                self._pending_analysis = None

        applied = False
        if analysis is not None:
            if token == (self._draft_generation, self._capture_seq):
                self._draft = merge_analysis(self._draft, analysis)
                self._draft_revision += 1
                applied = True
            else:
                logger.info("analysis_result_discarded", reason="draft_replaced")

        self._notify()
        return applied

    # ------------------------------------------------------------------
    # Save / delete
    # ------------------------------------------------------------------

    def save_expense(self) -> Optional[Expense]:
        """
        Turn the draft into an Expense and add it to the Store.

        CRITICAL: This is the only path that creates records.

        Returns:
            The saved Expense, or None if saving is not allowed right now
            (missing amount/merchant, or analysis in progress)

        Raises:
            PersistenceWriteError: If the Store could not write; the draft
                is kept so the user can retry
        """
        if not self.can_save:
            logger.info(
                "save_rejected",
                has_amount=bool(self._draft.amount.strip()),
                has_merchant=bool(self._draft.merchant.strip()),
                is_analyzing=self.is_analyzing,
            )
            return None

        expense = self._draft.to_expense()
        self._store.add(expense)
        self.reset_form()
        self.navigate(ViewState.DASHBOARD)
        return expense

    def delete_expense(self, expense_id: str) -> list[Expense]:
        """Delete immediately, no confirmation step."""
        return self._store.delete_by_id(expense_id)


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[ExpenseStore] = None,
) -> ExpenseController:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Pre-built store; a JSON file store under APP_DATA_DIR
               is created and loaded when omitted

    Returns:
        The ExpenseController, with its Store already loaded
    """
    settings = settings or get_settings()
    app_settings = settings.app

    if store is None:
        backend = JsonFileKeyValueStore(app_settings.data_dir)
        store = ExpenseStore(backend, storage_key=app_settings.storage_key)
        store.load()

    analyzer: Optional[ReceiptAnalyzerInterface] = None
    gemini_settings = settings.gemini
    if gemini_settings.is_configured:
        analyzer = GeminiReceiptAnalyzer(gemini_settings)
        logger.info("analysis_enabled", model=gemini_settings.model_name)
    else:
        logger.info("analysis_disabled", reason="GEMINI_API_KEY not set")

    return ExpenseController(
        store=store,
        analyzer=analyzer,
        image_processor=ReceiptImageProcessor(app_settings),
    )
