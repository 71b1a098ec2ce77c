"""Infrastructure layer package.

Implements Port interfaces with concrete adapters (PostgreSQL, in-memory).
Only the composition root (src/main.py) picks which adapter backs a port.
"""
