"""
Typed Exception Hierarchy for the Construction Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers catch by type and read structured attributes instead of parsing
messages.  Every exception carries a CODE attribute (machine-readable,
API-safe) and the data that describes the failure.

    try:
        summary = aggregator.aggregate_by_id(week_id)
    except PayrollWeekNotFoundError as e:
        api_response(code=e.code, week=e.payroll_week_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ConstructionKernelError (base)
    |
    +-- RateError
    |   +-- RateFeedError
    |   +-- InvalidExchangeRateError
    |
    +-- PayrollError
    |   +-- InvalidPayrollWeekError
    |   +-- PayrollWeekNotFoundError
    |
    +-- ProjectError
    |   +-- ProjectNotFoundError
    |
    +-- RecordError
    |   +-- UnknownCollectionError
    |
    +-- BatchError
    |   +-- BackfillAlreadyRunningError
    |   +-- BackfillAbortedError
    |
    +-- ConfigError
        +-- InvalidConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                      | When Raised
-----------|---------------------------|----------------------------------------
Rate       | RATE_FEED_FAILURE         | Feed unreachable, HTTP error, bad JSON
           | INVALID_EXCHANGE_RATE     | Configured/stored rate is not positive
-----------|---------------------------|----------------------------------------
Payroll    | INVALID_PAYROLL_WEEK      | Week has no id or an inverted range
           | PAYROLL_WEEK_NOT_FOUND    | No payroll week with the given id
-----------|---------------------------|----------------------------------------
Project    | PROJECT_NOT_FOUND         | No project with the given id
-----------|---------------------------|----------------------------------------
Record     | UNKNOWN_COLLECTION        | Selector asked for an unmapped collection
-----------|---------------------------|----------------------------------------
Batch      | BACKFILL_ALREADY_RUNNING  | Second concurrent backfill run
           | BACKFILL_ABORTED          | Feed or commit failure mid-scan
-----------|---------------------------|----------------------------------------
Config     | INVALID_CONFIGURATION     | YAML value out of range or malformed

===============================================================================
WHAT IS *NOT* AN EXCEPTION
===============================================================================

Financial summaries must always render.  An unresolvable conversion rate
is the sentinel ``Decimal("0")`` and aggregators substitute the global
default rate; a missing wage history falls back to the base wage; an
implausible stored rate is simply eligible for backfill.
"""

from __future__ import annotations

from typing import Any


class ConstructionKernelError(Exception):
    """
    Base exception for all construction kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CONSTRUCTION_KERNEL_ERROR"


# Rate-related exceptions


class RateError(ConstructionKernelError):
    """Base exception for exchange-rate errors."""

    code: str = "RATE_ERROR"


class RateFeedError(RateError):
    """The historical exchange-rate feed could not be fetched or parsed."""

    code: str = "RATE_FEED_FAILURE"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Exchange-rate feed {source} failed: {reason}")


class InvalidExchangeRateError(RateError):
    """An exchange rate that must be positive is zero, negative or malformed."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate: Any, context: str):
        self.rate = str(rate)
        self.context = context
        super().__init__(f"Invalid exchange rate {rate!r} for {context}")


# Payroll-related exceptions


class PayrollError(ConstructionKernelError):
    """Base exception for payroll errors."""

    code: str = "PAYROLL_ERROR"


class InvalidPayrollWeekError(PayrollError):
    """The payroll week is structurally invalid."""

    code: str = "INVALID_PAYROLL_WEEK"

    def __init__(self, payroll_week_id: str | None, reason: str):
        self.payroll_week_id = payroll_week_id
        self.reason = reason
        super().__init__(f"Invalid payroll week {payroll_week_id!r}: {reason}")


class PayrollWeekNotFoundError(PayrollError):
    """Payroll week with the given id was not found."""

    code: str = "PAYROLL_WEEK_NOT_FOUND"

    def __init__(self, payroll_week_id: str):
        self.payroll_week_id = payroll_week_id
        super().__init__(f"Payroll week not found: {payroll_week_id}")


# Project-related exceptions


class ProjectError(ConstructionKernelError):
    """Base exception for project errors."""

    code: str = "PROJECT_ERROR"


class ProjectNotFoundError(ProjectError):
    """Project with the given id was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


# Record-store exceptions


class RecordError(ConstructionKernelError):
    """Base exception for record-store errors."""

    code: str = "RECORD_ERROR"


class UnknownCollectionError(RecordError):
    """The requested collection is not mapped to a table."""

    code: str = "UNKNOWN_COLLECTION"

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


# Batch-related exceptions


class BatchError(ConstructionKernelError):
    """Base exception for batch job errors."""

    code: str = "BATCH_ERROR"


class BackfillAlreadyRunningError(BatchError):
    """A rate backfill is already running in this process."""

    code: str = "BACKFILL_ALREADY_RUNNING"

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Batch job already running: {job_name}")


class BackfillAbortedError(BatchError):
    """
    The backfill stopped before finishing the scan.

    Batches committed before the failure stay applied.  ``partial``
    carries the progress reached (a ``BackfillResult``).
    """

    code: str = "BACKFILL_ABORTED"

    def __init__(self, reason: str, partial: Any):
        self.reason = reason
        self.partial = partial
        super().__init__(
            f"Rate backfill aborted after {partial.updated_count} committed "
            f"updates: {reason}"
        )


# Configuration exceptions


class ConfigError(ConstructionKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigurationError(ConfigError):
    """A configuration value is missing, malformed or out of range."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key}: {reason}")
