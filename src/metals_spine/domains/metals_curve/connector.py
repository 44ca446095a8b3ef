"""
Metals curve connector - parsing the CSV export.

Turns raw CSV text into typed ``CurveRow`` records.  Tokenizing is done by
the stdlib ``csv`` module (quotes, embedded commas, CRLF); this module owns
header matching and the row validation policy.

Header matching:
- labels are trimmed, unquoted, whitespace-collapsed and lower-cased
- all of REQUIRED_COLUMNS must be present, extra columns are ignored
- a missing label is a batch-level failure (SchemaMismatchError)

Row policy (a failing row is dropped and counted, never raised):
- as-of date blank or not YYYY-MM-DD, YYYY/MM/DD or M/D/YYYY
- metal blank
- tenor not an integral, non-negative number
- price missing or non-finite

Optional fields never drop a row:
- 10yr real yield, dollar index: blank or non-finite -> None
- deficit flag: true/t/yes/y/1, false/f/no/n/0, other numerics (!= 0), else None

Example:
    As Of Date,Metal,Tenor Months,Price,10 Yr Real Yld,Dollar Index,Deficit GDP Flag
    2024-01-02,Gold,0,"2,050.10",1.72,101.3,true
    2024-01-02,Gold,3,2071.45,1.72,101.3,true
"""

import csv
import io
import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation

from metals_spine.core.errors import SchemaMismatchError
from metals_spine.domains.metals_curve.schema import (
    COL_AS_OF_DATE,
    COL_DEFICIT_FLAG,
    COL_DOLLAR_INDEX,
    COL_METAL,
    COL_PRICE,
    COL_REAL_YIELD,
    COL_TENOR,
    REQUIRED_COLUMNS,
)
from metals_spine.framework.logging import get_logger

log = get_logger(__name__)

# Drop reason codes
DROP_INVALID_DATE = "invalid_as_of_date"
DROP_MISSING_METAL = "missing_metal"
DROP_INVALID_TENOR = "invalid_tenor"
DROP_INVALID_PRICE = "invalid_price"

_TRUE_TOKENS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_TOKENS = frozenset({"false", "f", "no", "n", "0"})

_ISO_DATE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CurveRow:
    """One validated curve point."""

    as_of_date: str  # ISO YYYY-MM-DD
    metal: str  # lower-cased
    tenor_months: int
    price: Decimal
    real_10yr_yld: Decimal | None = None
    dollar_index: Decimal | None = None
    deficit_gdp_flag: bool | None = None
    source_line: int = 0

    @property
    def key(self) -> tuple[str, int]:
        return (self.metal, self.tenor_months)

    def with_as_of_date(self, as_of_date: str) -> "CurveRow":
        return replace(self, as_of_date=as_of_date)

    def to_params(self) -> tuple:
        """Values in CURVE_COLUMNS order."""
        return (
            self.as_of_date,
            self.metal,
            self.tenor_months,
            self.price,
            self.real_10yr_yld,
            self.dollar_index,
            self.deficit_gdp_flag,
        )


@dataclass(frozen=True)
class RowDrop:
    """A data row that failed the row policy."""

    line: int
    reason: str
    value: str = ""


@dataclass
class ParseResult:
    """Rows kept (source order) and rows dropped."""

    rows: list[CurveRow] = field(default_factory=list)
    drops: list[RowDrop] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.drops)

    @property
    def row_count(self) -> int:
        return len(self.rows)


# =============================================================================
# Field parsing
# =============================================================================


def clean_field(value: str | None) -> str:
    """Trim whitespace and any stray surrounding quotes."""
    if value is None:
        return ""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1].strip()
    return value


def normalise_label(label: str) -> str:
    """Header label as compared against REQUIRED_COLUMNS."""
    return _WHITESPACE.sub(" ", clean_field(label.lstrip("\ufeff"))).lower()


def parse_decimal(value: str) -> Decimal | None:
    """Finite decimal with thousands separators stripped, else None."""
    text = clean_field(value).replace(",", "")
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_tenor(value: str) -> int | None:
    """Integral, non-negative tenor in months ("3" and "3.0" both give 3)."""
    number = parse_decimal(value)
    if number is None or number < 0 or number != number.to_integral_value():
        return None
    return int(number)


def parse_flag(value: str) -> bool | None:
    text = clean_field(value).lower()
    if not text:
        return None
    if text in _TRUE_TOKENS:
        return True
    if text in _FALSE_TOKENS:
        return False
    number = parse_decimal(text)
    if number is None:
        return None
    return number != 0


def parse_as_of_date(value: str) -> str | None:
    """ISO date string for YYYY-MM-DD, YYYY/MM/DD or M/D/YYYY input, else None."""
    text = clean_field(value)
    if not text:
        return None

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _US_DATE.match(text)
        if not match:
            return None
        month, day, year = (int(g) for g in match.groups())

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


# =============================================================================
# Row and file parsing
# =============================================================================


def _parse_row(values: dict[str, str], line: int) -> CurveRow | RowDrop:
    raw_date = values.get(COL_AS_OF_DATE, "")
    as_of_date = parse_as_of_date(raw_date)
    if as_of_date is None:
        return RowDrop(line, DROP_INVALID_DATE, clean_field(raw_date))

    metal = clean_field(values.get(COL_METAL)).lower()
    if not metal:
        return RowDrop(line, DROP_MISSING_METAL)

    raw_tenor = values.get(COL_TENOR, "")
    tenor = parse_tenor(raw_tenor)
    if tenor is None:
        return RowDrop(line, DROP_INVALID_TENOR, clean_field(raw_tenor))

    raw_price = values.get(COL_PRICE, "")
    price = parse_decimal(raw_price)
    if price is None:
        return RowDrop(line, DROP_INVALID_PRICE, clean_field(raw_price))

    return CurveRow(
        as_of_date=as_of_date,
        metal=metal,
        tenor_months=tenor,
        price=price,
        real_10yr_yld=parse_decimal(values.get(COL_REAL_YIELD, "")),
        dollar_index=parse_decimal(values.get(COL_DOLLAR_INDEX, "")),
        deficit_gdp_flag=parse_flag(values.get(COL_DEFICIT_FLAG, "")),
        source_line=line,
    )


def map_header(header: list[str]) -> dict[str, int]:
    """
    Column index for each required label.

    The first occurrence wins when a label repeats.

    Raises:
        SchemaMismatchError: listing every required label that is absent.
    """
    positions: dict[str, int] = {}
    for index, label in enumerate(header):
        positions.setdefault(normalise_label(label), index)

    missing = [col for col in REQUIRED_COLUMNS if col not in positions]
    if missing:
        raise SchemaMismatchError(missing, found=[normalise_label(h) for h in header])
    return {col: positions[col] for col in REQUIRED_COLUMNS}


def parse_curve_csv(text: str) -> ParseResult:
    """
    Parse a curve CSV export.

    Blank lines are skipped without being counted.  Line numbers in
    ``RowDrop`` and ``CurveRow.source_line`` are 1-based physical lines.

    Raises:
        SchemaMismatchError: header missing required labels (zero rows kept).
    """
    reader = csv.reader(io.StringIO(text, newline=""))
    result = ParseResult()
    columns: dict[str, int] | None = None

    for record in reader:
        if not any(cell.strip() for cell in record):
            continue

        if columns is None:
            columns = map_header(record)
            continue

        values = {col: (record[idx] if idx < len(record) else "") for col, idx in columns.items()}
        parsed = _parse_row(values, reader.line_num)
        if isinstance(parsed, RowDrop):
            result.drops.append(parsed)
            log.debug("curve.row.dropped", line=parsed.line, reason=parsed.reason, value=parsed.value)
        else:
            result.rows.append(parsed)

    if columns is None:
        raise SchemaMismatchError(list(REQUIRED_COLUMNS))

    log.info("curve.parsed", rows=result.row_count, dropped=result.dropped_count)
    return result


def dropped_by_reason(drops: list[RowDrop]) -> dict[str, int]:
    """Count of drops per reason code (for audit detail)."""
    counts: dict[str, int] = {}
    for drop in drops:
        counts[drop.reason] = counts.get(drop.reason, 0) + 1
    return counts
