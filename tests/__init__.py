"""
kvtree Test Suite.

This package contains:
- unit/: Unit tests (in-memory store, httpx mock transport)
- integration/: Database facade end to end over the HTTP store
"""
