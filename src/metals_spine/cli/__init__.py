"""Command-line interface for Metals Spine (``metals-spine``)."""

from metals_spine.cli.app import app, main

__all__ = ["app", "main"]
