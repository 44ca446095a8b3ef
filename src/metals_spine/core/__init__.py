"""Platform primitives: errors, connections, dialects, run dates, settings."""
