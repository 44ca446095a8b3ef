"""
Metals Spine - idempotent commodity-curve ingestion.

This package is organised in three layers:
- metals_spine.core: Platform primitives (errors, connections, dialects, run dates)
- metals_spine.framework: Application framework (logging, sources)
- metals_spine.domains.metals_curve: Curve ingestion engine

The CLI in metals_spine.cli is a thin transport over the engine.
"""

__version__ = "0.1.0"

from metals_spine.domains.metals_curve.pipelines import (
    IngestCurvePipeline,
    IngestOutcome,
    OutcomeStatus,
)
from metals_spine.framework.logging import configure_logging, get_logger

__all__ = [
    "IngestCurvePipeline",
    "IngestOutcome",
    "OutcomeStatus",
    "__version__",
    "configure_logging",
    "get_logger",
]
