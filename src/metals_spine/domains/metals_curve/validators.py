"""Batch-level checks for metals curve ingestion: date consistency and key uniqueness."""

from collections import Counter
from dataclasses import dataclass, field

from metals_spine.core.errors import (
    AmbiguousAsOfDateError,
    DateMismatchError,
    DuplicateCurveKeyError,
)
from metals_spine.domains.metals_curve.connector import CurveRow
from metals_spine.domains.metals_curve.schema import Reason
from metals_spine.framework.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ForceOverride:
    """
    Operator-asserted override of the batch safety policies.

    One value is created per run and handed to every check that may be
    bypassed.  A check asks ``force.allows(reason)`` instead of reading a
    bare boolean, so the set of overridable policies lives in one place.

    Overridable:
        already_ingested_today, ambiguous_as_of_date, date_mismatch,
        history_exists_for_date

    Never overridable:
        duplicate_curve_key (two rows for one key cannot both be "latest")
    """

    enabled: bool = False

    OVERRIDABLE = frozenset(
        {
            Reason.ALREADY_INGESTED_TODAY.value,
            Reason.AMBIGUOUS_AS_OF_DATE.value,
            Reason.DATE_MISMATCH.value,
            Reason.HISTORY_EXISTS_FOR_DATE.value,
        }
    )

    def allows(self, reason: str | Reason) -> bool:
        """True when this override bypasses the check that would raise ``reason``."""
        code = reason.value if isinstance(reason, Reason) else reason
        return self.enabled and code in self.OVERRIDABLE

    def __bool__(self) -> bool:
        return self.enabled

    @classmethod
    def coerce(cls, value: "ForceOverride | bool") -> "ForceOverride":
        return value if isinstance(value, ForceOverride) else cls(enabled=bool(value))


NO_FORCE = ForceOverride(enabled=False)


@dataclass
class DateResolution:
    """Outcome of the date consistency check."""

    sheet_date: str
    rows: list[CurveRow]
    overridden: bool = False
    original_dates: list[str] = field(default_factory=list)

    def audit_detail(self) -> dict:
        if not self.overridden:
            return {}
        return {"as_of_date_overridden": True, "original_dates": self.original_dates}


def distinct_dates(rows: list[CurveRow]) -> list[str]:
    return sorted({row.as_of_date for row in rows})


def resolve_sheet_date(
    rows: list[CurveRow],
    expected_run_date: str,
    force: ForceOverride | bool = NO_FORCE,
) -> DateResolution:
    """
    Decide the batch's as-of date.

    Not forced:
        - zero or several distinct dates -> AmbiguousAsOfDateError
        - one date != expected_run_date -> DateMismatchError
        - otherwise the batch keeps its date

    Forced:
        every row is re-dated to ``expected_run_date`` and both checks are
        skipped; the original dates are kept for the audit record.
    """
    force = ForceOverride.coerce(force)
    dates = distinct_dates(rows)

    if len(dates) != 1 and not force.allows(Reason.AMBIGUOUS_AS_OF_DATE):
        raise AmbiguousAsOfDateError(dates)

    if len(dates) == 1 and dates[0] == expected_run_date:
        return DateResolution(sheet_date=dates[0], rows=list(rows))

    if not force.allows(Reason.DATE_MISMATCH):
        raise DateMismatchError(sheet_date=dates[0], expected_date=expected_run_date)

    log.warning(
        "curve.as_of_date.overridden",
        original_dates=dates,
        forced_date=expected_run_date,
        rows=len(rows),
    )
    return DateResolution(
        sheet_date=expected_run_date,
        rows=[row.with_as_of_date(expected_run_date) for row in rows],
        overridden=True,
        original_dates=dates,
    )


def check_unique_keys(rows: list[CurveRow]) -> None:
    """
    Reject a batch that repeats a (metal, tenor_months) pair.

    Raises:
        DuplicateCurveKeyError: listing every repeated key once.
    """
    counts = Counter(row.key for row in rows)
    duplicates = [key for key, n in counts.items() if n > 1]
    if duplicates:
        raise DuplicateCurveKeyError(duplicates)
