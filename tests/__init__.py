"""
glue-serde Test Suite.

This package contains:
- fixtures.py: Wire fixtures and schemas shared by tests
- unit/: Unit tests (in-memory registry, mocked Glue client)
"""
