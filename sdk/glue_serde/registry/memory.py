"""
In-memory schema registry client for testing.

This module provides a registry backend that keeps schemas in memory for:
- Unit tests
- Integration tests of producers/consumers
- Local development without AWS credentials

Invariants:
    - All data is lost on process exit
    - Identical definitions registered twice return the same version id
    - Unknown ids raise SchemaVersionNotFoundError, like Glue's
      EntityNotFoundException

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with RegistryClient protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..types import (
    Compatibility,
    DataFormat,
    RegistrationResult,
    SchemaVersion,
    SchemaVersionStatus,
)
from .base import SchemaAlreadyExistsError, SchemaVersionNotFoundError

logger = logging.getLogger(__name__)

ARN_TEMPLATE = "arn:aws:glue:eu-central-1:123456789012:schema/{registry}/{schema}"


@dataclass
class InMemorySchema:
    """In-memory schema with its versions in registration order."""

    registry_name: str
    schema_name: str
    data_format: DataFormat
    compatibility: Compatibility
    version_ids: List[str] = field(default_factory=list)

    @property
    def arn(self) -> str:
        return ARN_TEMPLATE.format(registry=self.registry_name, schema=self.schema_name)


class InMemoryRegistryClient:
    """In-memory implementation of RegistryClient for testing.

    Besides storing schemas, the client records what was asked of it:
    - calls: number of calls per operation name
    - max_concurrency: highest number of calls in progress at once

    Attributes:
        latency: Seconds each call sleeps, to make concurrency observable
        failing_ids: Version ids reported with status FAILURE

    Example:
        >>> client = InMemoryRegistryClient()
        >>> await client.create_schema("reg", "Testschema", DataFormat.AVRO,
        ...                            Compatibility.BACKWARD, definition)
        >>> version = await client.get_latest_schema_version("reg", "Testschema")
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self.failing_ids: set[str] = set()
        self.calls: Counter[str] = Counter()
        self.in_flight = 0
        self.max_concurrency = 0
        self.closed = False
        self._schemas: Dict[tuple[str, str], InMemorySchema] = {}
        self._versions: Dict[str, SchemaVersion] = {}

    def add_version(
        self,
        registry_name: str,
        schema_name: str,
        definition: str,
        data_format: DataFormat = DataFormat.AVRO,
        schema_version_id: Optional[str] = None,
        status: SchemaVersionStatus = SchemaVersionStatus.AVAILABLE,
    ) -> SchemaVersion:
        """Store a version directly (no call is recorded).

        Useful to seed well-known ids such as those embedded in fixtures.
        """
        key = (registry_name, schema_name)
        schema = self._schemas.get(key)
        if schema is None:
            schema = InMemorySchema(registry_name, schema_name, data_format, Compatibility.BACKWARD)
            self._schemas[key] = schema

        version = SchemaVersion(
            schema_version_id=schema_version_id or str(uuid.uuid4()),
            definition=definition,
            data_format=schema.data_format.value,
            status=status.value,
            schema_arn=schema.arn,
            version_number=len(schema.version_ids) + 1,
        )
        schema.version_ids.append(version.schema_version_id)
        self._versions[version.schema_version_id] = version
        return version

    async def create_schema(
        self,
        registry_name: str,
        schema_name: str,
        data_format: DataFormat,
        compatibility: Compatibility,
        definition: str,
    ) -> RegistrationResult:
        async with self._track("create_schema"):
            key = (registry_name, schema_name)
            if key in self._schemas:
                raise SchemaAlreadyExistsError(f"Schema already exists: {schema_name}")
            self._schemas[key] = InMemorySchema(
                registry_name, schema_name, DataFormat(data_format), Compatibility(compatibility)
            )
            version = self.add_version(registry_name, schema_name, definition)
            return RegistrationResult(
                version_id=version.schema_version_id,
                status=version.status,
                version_number=version.version_number,
            )

    async def register_schema_version(
        self,
        registry_name: str,
        schema_name: str,
        definition: str,
    ) -> RegistrationResult:
        async with self._track("register_schema_version"):
            schema = self._schemas.get((registry_name, schema_name))
            if schema is None:
                raise SchemaVersionNotFoundError(f"Schema not found: {schema_name}")

            for version_id in schema.version_ids:
                existing = self._versions[version_id]
                if existing.definition == definition:
                    return RegistrationResult(
                        version_id=version_id,
                        status=existing.status,
                        version_number=existing.version_number,
                    )

            version = self.add_version(registry_name, schema_name, definition)
            return RegistrationResult(
                version_id=version.schema_version_id,
                status=version.status,
                version_number=version.version_number,
            )

    async def get_schema_version(self, schema_version_id: str) -> SchemaVersion:
        async with self._track("get_schema_version"):
            if schema_version_id in self.failing_ids:
                return SchemaVersion(
                    schema_version_id=schema_version_id,
                    status=SchemaVersionStatus.FAILURE.value,
                )
            version = self._versions.get(schema_version_id)
            if version is None:
                raise SchemaVersionNotFoundError(
                    f"Schema version not found: {schema_version_id}", schema_version_id
                )
            return version

    async def get_latest_schema_version(
        self,
        registry_name: str,
        schema_name: str,
    ) -> SchemaVersion:
        async with self._track("get_latest_schema_version"):
            schema = self._schemas.get((registry_name, schema_name))
            if schema is None or not schema.version_ids:
                raise SchemaVersionNotFoundError(f"Schema not found: {schema_name}")
            return self._versions[schema.version_ids[-1]]

    async def close(self) -> None:
        self.closed = True
        logger.debug("InMemoryRegistryClient closed")

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def clear_calls(self) -> None:
        """Reset call bookkeeping, keeping stored schemas."""
        self.calls.clear()
        self.max_concurrency = 0

    def _track(self, operation: str) -> _CallTracker:
        return _CallTracker(self, operation)


class _CallTracker:
    """Counts a call and its concurrency, sleeping for the configured latency."""

    def __init__(self, client: InMemoryRegistryClient, operation: str) -> None:
        self._client = client
        self._operation = operation

    async def __aenter__(self) -> None:
        client = self._client
        client.calls[self._operation] += 1
        client.in_flight += 1
        client.max_concurrency = max(client.max_concurrency, client.in_flight)
        try:
            await asyncio.sleep(client.latency)
        except BaseException:
            client.in_flight -= 1
            raise

    async def __aexit__(self, *exc) -> None:
        self._client.in_flight -= 1
