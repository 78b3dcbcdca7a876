"""
Schema registry clients.

This package provides a pluggable registry backend interface supporting:
- AWS Glue Schema Registry (production)
- In-memory (for testing)

The registry is the source of truth for schema definitions. The codec only
caches what the registry returns.

Invariants:
    - Clients are stateless apart from their transport
    - A schema version id always maps to the same definition

How to change safely:
    - New backends must implement RegistryClient protocol
    - Verify error translation matches the Glue client
"""

from .base import (
    RegistryClient,
    RegistryConnectionError,
    RegistryError,
    RegistryThrottledError,
    SchemaAlreadyExistsError,
    SchemaVersionNotFoundError,
)
from .glue import GlueRegistryClient
from .memory import InMemoryRegistryClient

__all__ = [
    # Protocol
    "RegistryClient",
    # Errors
    "RegistryError",
    "RegistryConnectionError",
    "RegistryThrottledError",
    "SchemaAlreadyExistsError",
    "SchemaVersionNotFoundError",
    # Implementations
    "GlueRegistryClient",
    "InMemoryRegistryClient",
]
