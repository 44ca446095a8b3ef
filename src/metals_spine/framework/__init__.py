"""Application framework: structured logging and source adapters."""
