"""
Base protocol and errors for schema registry clients.

This module defines the RegistryClient protocol that every backend must
implement. The codec only talks to the registry through this protocol, so a
Glue-backed client and the in-memory client are interchangeable.

Invariants:
    - Clients return plain SchemaVersion / RegistrationResult values
    - Clients never interpret statuses, callers decide what FAILURE means
    - Transport failures surface as RegistryError subclasses

How to change safely:
    - Protocol changes require updating all implementations
    - Keep clients free of caching, the resolver owns the cache
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from ..types import Compatibility, DataFormat, RegistrationResult, SchemaVersion


class RegistryError(Exception):
    """Base exception for registry client operations."""
    pass


class RegistryConnectionError(RegistryError):
    """Connection to the registry failed."""
    pass


class RegistryThrottledError(RegistryError):
    """Registry rejected the call because of throttling."""
    pass


class SchemaAlreadyExistsError(RegistryError):
    """Schema with this name already exists in the registry."""
    pass


class SchemaVersionNotFoundError(RegistryError):
    """Registry has no schema (version) with the requested id or name."""

    def __init__(self, message: str, schema_id: str | None = None) -> None:
        super().__init__(message)
        self.schema_id = schema_id


@runtime_checkable
class RegistryClient(Protocol):
    """Protocol for schema registry backends.

    Example:
        >>> client = GlueRegistryClient(settings)
        >>> version = await client.get_schema_version("b7912285-527d-42de-88ee-e389a763225f")
        >>> print(version.definition)
    """

    @abstractmethod
    async def create_schema(
        self,
        registry_name: str,
        schema_name: str,
        data_format: DataFormat,
        compatibility: Compatibility,
        definition: str,
    ) -> RegistrationResult:
        """Create a new schema with its first version.

        Raises:
            RegistryError: If the call fails
        """
        ...

    @abstractmethod
    async def register_schema_version(
        self,
        registry_name: str,
        schema_name: str,
        definition: str,
    ) -> RegistrationResult:
        """Register a new version of an existing schema.

        Registering a definition identical to an existing version returns
        that version's id.

        Raises:
            SchemaVersionNotFoundError: If the schema does not exist
            RegistryError: If the call fails
        """
        ...

    @abstractmethod
    async def get_schema_version(self, schema_version_id: str) -> SchemaVersion:
        """Fetch a schema version by its id.

        Raises:
            SchemaVersionNotFoundError: If the id is unknown
            RegistryError: If the call fails
        """
        ...

    @abstractmethod
    async def get_latest_schema_version(
        self,
        registry_name: str,
        schema_name: str,
    ) -> SchemaVersion:
        """Fetch the latest version of a schema.

        Raises:
            SchemaVersionNotFoundError: If the schema does not exist
            RegistryError: If the call fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...
