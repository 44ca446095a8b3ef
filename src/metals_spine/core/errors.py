"""
Structured error types for Metals Spine.

Provides a hierarchy of typed errors with metadata for retry decisions,
error categorization, audit reason codes, and root cause analysis through
error chaining.

Instead of generic exceptions that lose context, SpineError and its
subclasses carry:
- **Category:** What kind of error (source, parse, validation, database, etc.)
- **Retryable:** Whether the operation can be retried automatically
- **Reason code:** Stable snake_case code written verbatim to the audit trail
- **Context:** Structured metadata (run id, source, url, custom fields)
- **Cause:** Chained underlying exception for root cause analysis

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       SpineError                                 │
        │  (category, retryable, reason_code, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  SourceError         ValidationError        ConfigError          │
        │  (SOURCE)            (VALIDATION)           (CONFIG)             │
        │     │                   │                      │                 │
        │  FetchError          SchemaError            MissingConfigError   │
        │                        SchemaMismatchError    SourceNot-         │
        │                      ConstraintError          ConfiguredError    │
        │                        DuplicateCurveKeyError                    │
        │                      BatchPolicyError                            │
        │                        AmbiguousAsOfDateError                    │
        │                        DateMismatchError                         │
        │                      NoRowsError                                 │
        │                                                                  │
        │  DatabaseError       TransientError                              │
        │  (DATABASE)          (NETWORK, retryable)                        │
        │     │                   │                                        │
        │  TransactionFailure  DatabaseConnectionError                     │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise plain Exception for batch-level defects
    ✅ DO: Raise the SpineError subclass whose reason_code the audit log expects

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Usage:
    from metals_spine.core.errors import DateMismatchError

    raise DateMismatchError(sheet_date="2024-01-01", expected_date="2024-01-02")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories are grouped by their typical retry behavior:
    - **Infrastructure (usually transient):** NETWORK, DATABASE
    - **Source/data errors:** SOURCE, PARSE, VALIDATION
    - **Configuration (never retryable):** CONFIG, AUTH
    - **Application errors:** PIPELINE
    - **Internal errors:** INTERNAL, UNKNOWN
    """

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Connection, timeout, DNS
    DATABASE = "DATABASE"         # Connection, query, transaction

    # Source/data errors
    SOURCE = "SOURCE"             # Upstream URL, file not found
    PARSE = "PARSE"               # Data parsing, format errors
    VALIDATION = "VALIDATION"     # Schema, batch policy violations

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing config, invalid settings
    AUTH = "AUTH"                 # Authentication, authorization

    # Application errors
    PIPELINE = "PIPELINE"         # Pipeline execution failures

    # Internal errors
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields for the metadata every ingestion error may need, with a
    free-form ``metadata`` dict for anything else. ``to_dict()`` serializes
    the non-None fields for logging.

    Attributes:
        pipeline: Name of the pipeline where the error occurred
        step: Step within the pipeline (parse, validate, write, ...)
        run_id: Ingest run identifier
        source_name: Name of data source (file path or URL label)
        source_type: Type of source ("file", "http", "text")
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    pipeline: str | None = None
    step: str | None = None
    run_id: str | None = None

    source_name: str | None = None
    source_type: str | None = None

    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["pipeline", "step", "run_id", "source_name", "source_type", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpineError(Exception):
    """
    Base exception for all Metals Spine errors.

    Subclasses set ``default_category``, ``default_retryable`` and
    ``reason_code`` class attributes. The reason code is the machine-readable
    value the pipeline writes to the ``reason`` column of the audit log, so
    it must stay stable once released.

    Examples:
        >>> error = SpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.reason_code
        'unhandled_exception'

        >>> error = SpineError("Fetch failed").with_context(source_name="sheet")
        >>> error.context.source_name
        'sheet'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    reason_code: str = "unhandled_exception"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FetchError("HTTP 500").with_context(url=url, http_status=500)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def details(self) -> dict[str, Any]:
        """Structured, caller-facing details for the run outcome."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "reason_code": self.reason_code,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(SpineError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """Database connection could not be established."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(SpineError):
    """
    Error from a data source.

    Default not retryable (e.g., file not found, 404).
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False
    reason_code = "fetch_failed"


class FetchError(SourceError):
    """Source content could not be fetched (HTTP failure, unreadable file)."""

    pass


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(SpineError):
    """
    Data validation error.

    Never retryable - data must be fixed (or, for policy violations,
    explicitly overridden with force).
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False
    reason_code = "validation_failed"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class SchemaError(ValidationError):
    """Schema validation error."""

    reason_code = "schema_error"


class SchemaMismatchError(SchemaError):
    """Source header is missing one or more required column labels."""

    reason_code = "schema_mismatch"

    def __init__(self, missing: list[str], found: list[str] | None = None):
        self.missing = list(missing)
        self.found = list(found or [])
        super().__init__(
            f"Source header missing required columns: {', '.join(self.missing)}",
            constraint="required_columns",
        )

    def details(self) -> dict[str, Any]:
        return {"missing_columns": self.missing, "found_columns": self.found}


class NoRowsError(ValidationError):
    """Source parsed cleanly but yielded no usable rows."""

    reason_code = "no_rows_in_source"

    def __init__(self, dropped_count: int = 0):
        self.dropped_count = dropped_count
        super().__init__(f"No parseable rows in source ({dropped_count} dropped)")

    def details(self) -> dict[str, Any]:
        return {"dropped_count": self.dropped_count}


class ConstraintError(ValidationError):
    """Constraint violation error."""

    reason_code = "constraint_violation"


class DuplicateCurveKeyError(ConstraintError):
    """Batch contains the same (metal, tenor_months) pair more than once."""

    reason_code = "duplicate_curve_key"

    def __init__(self, duplicates: list[tuple[str, int]]):
        self.duplicates = sorted(duplicates)
        shown = ", ".join(f"{metal}/{tenor}" for metal, tenor in self.duplicates)
        super().__init__(
            f"Duplicate curve keys in batch: {shown}",
            field="metal,tenor_months",
            constraint="unique_curve_key",
        )

    def details(self) -> dict[str, Any]:
        return {"duplicate_keys": [{"metal": m, "tenor_months": t} for m, t in self.duplicates]}


class BatchPolicyError(ValidationError):
    """Batch violates an as-of date policy that force may override."""

    reason_code = "batch_policy_violation"


class AmbiguousAsOfDateError(BatchPolicyError):
    """Batch rows do not share exactly one as-of date."""

    reason_code = "ambiguous_as_of_date"

    def __init__(self, dates: list[str]):
        self.dates = sorted(dates)
        super().__init__(
            f"Expected exactly one as-of date in batch, found {len(self.dates)}: {', '.join(self.dates)}",
            field="as_of_date",
        )

    def details(self) -> dict[str, Any]:
        return {"unique_dates": self.dates}


class DateMismatchError(BatchPolicyError):
    """Batch as-of date differs from the expected run date."""

    reason_code = "date_mismatch"

    def __init__(self, sheet_date: str, expected_date: str):
        self.sheet_date = sheet_date
        self.expected_date = expected_date
        super().__init__(
            f"sheet_date_mismatch: sheet={sheet_date}, expected={expected_date}",
            field="as_of_date",
            value=sheet_date,
        )

    def details(self) -> dict[str, Any]:
        return {"sheet_date": self.sheet_date, "expected_date": self.expected_date}


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SpineError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False
    reason_code = "config_error"


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class SourceNotConfiguredError(MissingConfigError):
    """No source location was given and none is configured."""

    reason_code = "source_not_configured"


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(SpineError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class TransactionFailure(DatabaseError):
    """The ingest write transaction failed and was rolled back."""

    reason_code = "unhandled_exception"

    def __init__(self, sheet_date: str, cause: Exception):
        self.sheet_date = sheet_date
        super().__init__(str(cause) or type(cause).__name__, cause=cause)

    def details(self) -> dict[str, Any]:
        return {"error_type": type(self.cause).__name__, "sheet_date": self.sheet_date}


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def reason_code_for(error: BaseException) -> str:
    """Audit reason code for any exception."""
    if isinstance(error, SpineError):
        return error.reason_code
    return SpineError.reason_code


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "TransientError",
    "DatabaseConnectionError",
    "SourceError",
    "FetchError",
    "ValidationError",
    "SchemaError",
    "SchemaMismatchError",
    "NoRowsError",
    "ConstraintError",
    "DuplicateCurveKeyError",
    "BatchPolicyError",
    "AmbiguousAsOfDateError",
    "DateMismatchError",
    "ConfigError",
    "MissingConfigError",
    "SourceNotConfiguredError",
    "DatabaseError",
    "TransactionFailure",
    "reason_code_for",
]
