"""
Metals curve domain.

Ingests a daily commodity-curve CSV export into a latest-state projection
(``metals_curve_latest``) and an append-only history log
(``metals_curve_history``), with a per-run audit trail
(``metals_ingest_log``).

Modules:
    schema      Tables, header labels, reason codes
    connector   CSV parsing and the row validation policy
    validators  Date consistency, key uniqueness, ForceOverride
    guards      Duplicate-run guard, history conflict lookup
    writer      Transactional dual write
    audit       Ingest run records
    status      Status and health reporting
    pipelines   IngestCurvePipeline
"""

from metals_spine.domains.metals_curve.pipelines import (
    IngestCurvePipeline,
    IngestOutcome,
    OutcomeStatus,
)
from metals_spine.domains.metals_curve.schema import Reason, RunStatus, create_tables
from metals_spine.domains.metals_curve.validators import ForceOverride

__all__ = [
    "ForceOverride",
    "IngestCurvePipeline",
    "IngestOutcome",
    "OutcomeStatus",
    "Reason",
    "RunStatus",
    "create_tables",
]
