"""
Schema and constants for the metals curve domain.

Three tables:

- ``metals_curve_latest``: one row per (metal, tenor_months), newest batch wins
- ``metals_curve_history``: append-only, one entry per ingested row
- ``metals_ingest_log``: one immutable record per ingest invocation
"""

from __future__ import annotations

from enum import Enum

from metals_spine.core.dialect import Dialect, dialect_for
from metals_spine.core.protocols import Connection

DOMAIN = "metals_curve"

TABLE_LATEST = "metals_curve_latest"
TABLE_HISTORY = "metals_curve_history"
TABLE_INGEST_LOG = "metals_ingest_log"

TABLES = (TABLE_LATEST, TABLE_HISTORY, TABLE_INGEST_LOG)

# Header labels, normalised (lower-case, single spaces)
COL_AS_OF_DATE = "as of date"
COL_METAL = "metal"
COL_TENOR = "tenor months"
COL_PRICE = "price"
COL_REAL_YIELD = "10 yr real yld"
COL_DOLLAR_INDEX = "dollar index"
COL_DEFICIT_FLAG = "deficit gdp flag"

REQUIRED_COLUMNS = (
    COL_AS_OF_DATE,
    COL_METAL,
    COL_TENOR,
    COL_PRICE,
    COL_REAL_YIELD,
    COL_DOLLAR_INDEX,
    COL_DEFICIT_FLAG,
)

CURVE_KEY = ("metal", "tenor_months")

CURVE_COLUMNS = (
    "as_of_date",
    "metal",
    "tenor_months",
    "price",
    "real_10yr_yld",
    "dollar_index",
    "deficit_gdp_flag",
)


class RunStatus(str, Enum):
    """Status stored on an ingest log record."""

    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class Reason(str, Enum):
    """Reason codes written verbatim to ``metals_ingest_log.reason``."""

    ALREADY_INGESTED_TODAY = "already_ingested_today"
    SOURCE_NOT_CONFIGURED = "source_not_configured"
    FETCH_FAILED = "fetch_failed"
    SCHEMA_MISMATCH = "schema_mismatch"
    NO_ROWS_IN_SOURCE = "no_rows_in_source"
    DUPLICATE_CURVE_KEY = "duplicate_curve_key"
    AMBIGUOUS_AS_OF_DATE = "ambiguous_as_of_date"
    DATE_MISMATCH = "date_mismatch"
    HISTORY_EXISTS_FOR_DATE = "history_exists_for_date"
    UNHANDLED_EXCEPTION = "unhandled_exception"


def ddl_statements(dialect: Dialect) -> list[str]:
    """CREATE TABLE / INDEX statements for the domain (idempotent)."""
    flag = dialect.boolean_type()
    num = dialect.decimal_type()
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE_LATEST} (
            metal TEXT NOT NULL,
            tenor_months INTEGER NOT NULL,
            as_of_date TEXT NOT NULL,
            price {num} NOT NULL,
            real_10yr_yld {num},
            dollar_index {num},
            deficit_gdp_flag {flag},
            updated_at TEXT NOT NULL,
            UNIQUE (metal, tenor_months)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE_HISTORY} (
            id {dialect.auto_increment()},
            as_of_date TEXT NOT NULL,
            metal TEXT NOT NULL,
            tenor_months INTEGER NOT NULL,
            price {num} NOT NULL,
            real_10yr_yld {num},
            dollar_index {num},
            deficit_gdp_flag {flag},
            inserted_at TEXT NOT NULL,
            UNIQUE (as_of_date, metal, tenor_months, inserted_at)
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{TABLE_HISTORY}_date ON {TABLE_HISTORY} (as_of_date)",
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE_INGEST_LOG} (
            id TEXT PRIMARY KEY,
            run_date TEXT NOT NULL,
            trigger_source TEXT NOT NULL,
            status TEXT NOT NULL,
            reason TEXT,
            detail TEXT,
            row_count INTEGER NOT NULL DEFAULT 0,
            dropped_count INTEGER NOT NULL DEFAULT 0,
            forced {flag} NOT NULL,
            run_timestamp TEXT NOT NULL
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{TABLE_INGEST_LOG}_run_date ON {TABLE_INGEST_LOG} (run_date, status)",
    ]


def create_tables(conn: Connection) -> list[str]:
    """Create the domain tables if missing and commit. Returns the table names."""
    for statement in ddl_statements(dialect_for(conn)):
        conn.execute(statement)
    conn.commit()
    return list(TABLES)
