"""Domain packages built on the core and framework layers."""
