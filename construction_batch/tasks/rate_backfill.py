"""
RateBackfillJob -- batched, idempotent correction of stored expense rates.

Contract:
    Scans every project's local-currency expenses whose stored exchange
    rate is missing or implausible (at or below the plausibility
    threshold), resolves the rate for the expense date, and writes it when
    the resolved rate is plausible and differs from the stored one.

Architecture: construction_batch/tasks.  Imports from construction_kernel
    (selectors, models, exceptions, logging) and the rates module.  This is
    the only write path of the financial core.

Invariants enforced:
    - Idempotency: a second run with unchanged feed data updates nothing,
      because every corrected row now holds a plausible rate.
    - Batch commits: at most ``batch_size`` updates per transaction; a new
      batch starts after each commit.
    - Single runner: one backfill per process (``BackfillAlreadyRunningError``).
    - Plausibility: a resolved rate at or below the threshold (including the
      unresolved sentinel 0) is never written.

Failure modes:
    - Feed failure or commit failure -> the pending (uncommitted) batch is
      rolled back, committed batches stay applied, and
      ``BackfillAbortedError`` carries the partial ``BackfillResult``.
"""

from __future__ import annotations

import threading
from decimal import Decimal
from typing import NoReturn
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from construction_batch.domain.types import BackfillResult, RateCorrection
from construction_kernel.domain.currency import CurrencyPair
from construction_kernel.domain.money import to_decimal
from construction_kernel.domain.records import Expense
from construction_kernel.exceptions import (
    BackfillAbortedError,
    BackfillAlreadyRunningError,
    RateFeedError,
)
from construction_kernel.logging_config import LogContext, get_logger
from construction_kernel.models import ExpenseModel
from construction_kernel.selectors import RecordSelector
from construction_modules.rates import RateResolver

logger = get_logger("batch.rate_backfill")

DEFAULT_PLAUSIBILITY_THRESHOLD = Decimal("5")
DEFAULT_BATCH_SIZE = 400
DEFAULT_ACTOR = "system:rate-backfill"

# Process-wide single-runner guard.
_RUN_LOCK = threading.Lock()


class _Progress:
    __slots__ = (
        "updated", "scanned", "batches", "projects", "stopped", "corrections",
    )

    def __init__(self) -> None:
        self.updated = 0
        self.scanned = 0
        self.batches = 0
        self.projects = 0
        self.stopped = False
        self.corrections: list[RateCorrection] = []

    def snapshot(self, dry_run: bool) -> BackfillResult:
        return BackfillResult(
            updated_count=self.updated,
            scanned_count=self.scanned,
            batches_committed=self.batches,
            projects_scanned=self.projects,
            stopped=self.stopped,
            dry_run=dry_run,
            corrections=tuple(self.corrections),
        )


class RateBackfillJob:
    """Backfills ``Expense.exchange_rate`` from the historical rate feed.

    Contract:
        - ``run()`` performs one full scan and returns a ``BackfillResult``.
        - ``request_stop()`` may be called from any thread; the pending
          batch commits and no further rows are processed.

    Non-goals:
        - Does NOT touch foreign-currency expenses or any other collection.
        - Does NOT retry a failed run -- run it again.
    """

    job_name = "rates.expense_backfill"

    def __init__(
        self,
        session: Session,
        rate_resolver: RateResolver,
        *,
        currency: CurrencyPair | None = None,
        plausibility_threshold: Decimal | int = DEFAULT_PLAUSIBILITY_THRESHOLD,
        batch_size: int = DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
        actor_id: str = DEFAULT_ACTOR,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._session = session
        self._selector = RecordSelector(session)
        self._resolver = rate_resolver
        self._currency = currency or CurrencyPair()
        self._threshold = to_decimal(plausibility_threshold, field="plausibility_threshold")
        self._batch_size = batch_size
        self._dry_run = dry_run
        self._actor_id = actor_id
        self._stop_event = threading.Event()

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def request_stop(self) -> None:
        """Ask a running scan to stop after committing its pending batch."""
        self._stop_event.set()
        logger.info("rate_backfill_stop_requested")

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> BackfillResult:
        if not _RUN_LOCK.acquire(blocking=False):
            logger.warning("rate_backfill_already_running")
            raise BackfillAlreadyRunningError(self.job_name)
        try:
            with LogContext.bind(job_id=str(uuid4()), actor_id=self._actor_id):
                return self._run()
        finally:
            self._stop_event.clear()
            _RUN_LOCK.release()

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(self) -> BackfillResult:
        logger.info(
            "rate_backfill_started",
            extra={
                "currency": self._currency.local,
                "threshold": self._threshold,
                "batch_size": self._batch_size,
                "dry_run": self._dry_run,
            },
        )
        progress = _Progress()
        pending: list[RateCorrection] = []

        for project in self._selector.projects():
            if self.stop_requested:
                break
            progress.projects += 1
            candidates = self._selector.expenses_missing_rate(
                project.id, self._currency.local, self._threshold,
            )
            for expense in candidates:
                if self.stop_requested:
                    break
                progress.scanned += 1
                correction = self._correction_for(expense, progress)
                if correction is None:
                    continue
                pending.append(correction)
                if len(pending) >= self._batch_size:
                    self._flush(pending, progress)

        self._flush(pending, progress)
        progress.stopped = self.stop_requested

        result = progress.snapshot(self._dry_run)
        logger.info(
            "rate_backfill_completed",
            extra={
                "updated_count": result.updated_count,
                "scanned_count": result.scanned_count,
                "batches_committed": result.batches_committed,
                "projects_scanned": result.projects_scanned,
                "stopped": result.stopped,
                "dry_run": result.dry_run,
            },
        )
        return result

    def _correction_for(self, expense: Expense, progress: _Progress) -> RateCorrection | None:
        try:
            rate = self._resolver.resolve(expense.date)
        except RateFeedError as exc:
            self._abort(f"rate feed failure: {exc.reason}", progress)

        if rate <= self._threshold or rate == expense.exchange_rate:
            return None
        return RateCorrection(
            expense_id=expense.id,
            project_id=expense.project_id,
            expense_date=expense.date,
            old_rate=expense.exchange_rate,
            new_rate=rate,
        )

    def _flush(self, pending: list[RateCorrection], progress: _Progress) -> None:
        if not pending:
            return

        if self._dry_run:
            for correction in pending:
                self._log_correction(correction)
            progress.corrections.extend(pending)
            progress.updated += len(pending)
            pending.clear()
            return

        try:
            for correction in pending:
                self._session.execute(
                    update(ExpenseModel)
                    .where(ExpenseModel.id == correction.expense_id)
                    .values(exchange_rate=correction.new_rate, updated_by=self._actor_id)
                )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._abort(f"commit failed: {exc}", progress)

        for correction in pending:
            self._log_correction(correction)
        progress.corrections.extend(pending)
        progress.updated += len(pending)
        progress.batches += 1
        logger.info(
            "rate_backfill_batch_committed",
            extra={"batch_number": progress.batches, "batch_size": len(pending)},
        )
        pending.clear()

    def _log_correction(self, correction: RateCorrection) -> None:
        logger.info(
            "expense_rate_corrected",
            extra={
                "expense_id": correction.expense_id,
                "expense_project_id": correction.project_id,
                "expense_date": correction.expense_date,
                "old_rate": correction.old_rate,
                "new_rate": correction.new_rate,
                "dry_run": self._dry_run,
            },
        )

    def _abort(self, reason: str, progress: _Progress) -> NoReturn:
        self._session.rollback()
        partial = progress.snapshot(self._dry_run)
        logger.error(
            "rate_backfill_aborted",
            extra={"reason": reason, "updated_count": partial.updated_count},
        )
        raise BackfillAbortedError(reason, partial)
