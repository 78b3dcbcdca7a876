"""
Schema resolution and caching.

The SchemaResolver maps schema version ids to compiled schemas. It is the
only component that talks to the registry, always through the
ConcurrencyLimiter.

Resolution of an id:
    1. Cache hit -> return it, no network call
    2. Fetch in flight for the id -> wait for it
    3. Otherwise start the fetch, register it as in flight, wait for it
    4. Compile the definition (once, off the event loop) and cache it

Invariants:
    - At most one registry fetch per schema id is outstanding at any time
    - At most one registration per (schema name, definition) is outstanding
    - The miss check and the in-flight registration happen without an await
      in between
    - A cached id is never fetched or compiled again for the process lifetime
    - A failed fetch leaves no cache entry and is raised to every waiter
    - The in-flight entry is removed before any waiter resumes
    - Abandoning a wait does not cancel the shared fetch
    - A registry call uses the client current when the limiter admits it

How to change safely:
    - The cache never evicts; it grows with the number of distinct schema
      versions the process sees
    - Keep registry error translation here, not in the facade
    - Route every registry call through _call(), wait_client_idle() relies
      on its bookkeeping
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from .compiler import CompiledSchema, compile_schema
from .errors import InvalidSchemaError, RegistrationFailureError
from .limiter import ConcurrencyLimiter
from .registry.base import RegistryClient, RegistryError
from .types import Compatibility, DataFormat, SchemaVersion

logger = logging.getLogger(__name__)

T = TypeVar("T")


def registration_hash(schema_name: str, definition: str) -> str:
    """Stable key for a (schema name, definition) pair."""
    return hashlib.sha256(f"{schema_name}.{definition}".encode("utf-8")).hexdigest()


class SchemaResolver:
    """Resolves schema ids for one registry.

    Attributes:
        registry_name: Registry this resolver is bound to
        client: Registry client used for new remote calls
        limiter: Bound on concurrent registry calls

    Example:
        >>> resolver = SchemaResolver("events", InMemoryRegistryClient())
        >>> schema_id = await resolver.register("Testschema", definition)
        >>> compiled = await resolver.resolve(schema_id)
    """

    def __init__(
        self,
        registry_name: str,
        client: RegistryClient,
        limiter: Optional[ConcurrencyLimiter] = None,
    ) -> None:
        self.registry_name = registry_name
        self.client = client
        self.limiter = limiter or ConcurrencyLimiter(1)
        self._cache: Dict[str, CompiledSchema] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}  # registry fetches
        self._loading: Dict[str, asyncio.Task] = {}  # fetch + compile
        self._registering: Dict[str, asyncio.Task] = {}  # keyed by registration_hash
        self._registrations: Dict[str, str] = {}
        self._busy: Dict[int, int] = {}  # id(client) -> running calls
        self._idle_waiters: List[asyncio.Future] = []

    def cached(self, schema_id: str) -> Optional[CompiledSchema]:
        """Compiled schema for schema_id if already cached."""
        return self._cache.get(schema_id)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # =========================================================================
    # Registry calls
    # =========================================================================

    async def _call(self, fn: Callable[[RegistryClient], Awaitable[T]]) -> T:
        """Run fn(client) through the limiter, tracking which client it uses."""

        async def invoke() -> T:
            client = self.client
            key = id(client)
            self._busy[key] = self._busy.get(key, 0) + 1
            try:
                return await fn(client)
            finally:
                self._busy[key] -= 1
                if not self._busy[key]:
                    del self._busy[key]
                    self._wake_idle_waiters()

        return await self.limiter.run(invoke)

    def _wake_idle_waiters(self) -> None:
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def wait_client_idle(self, client: RegistryClient) -> None:
        """Wait until no registry call is running on client."""
        while id(client) in self._busy:
            waiter = asyncio.get_running_loop().create_future()
            self._idle_waiters.append(waiter)
            logger.debug(
                "Waiting for registry calls on replaced client",
                extra={"running": self._busy.get(id(client), 0)},
            )
            await waiter

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(self, schema_id: str) -> CompiledSchema:
        """Compiled schema for a schema version id.

        Raises:
            InvalidSchemaError: If the registry reports a failure or the call fails
            UnsupportedFormatError: If the registry names an unknown data format
        """
        compiled = self._cache.get(schema_id)
        if compiled is not None:
            return compiled

        task = self._loading.get(schema_id)
        if task is None:
            task = asyncio.ensure_future(self._load_compiled(schema_id))
            self._loading[schema_id] = task
        return await asyncio.shield(task)

    async def _load_compiled(self, schema_id: str) -> CompiledSchema:
        try:
            version = await self.fetch_schema_version(schema_id)
            compiled = self._cache.setdefault(schema_id, await self._compile(schema_id, version))
            logger.debug(
                "Schema cached",
                extra={"schema_id": schema_id, "data_format": compiled.data_format.value},
            )
            return compiled
        finally:
            self._loading.pop(schema_id, None)

    async def fetch_schema_version(self, schema_id: str) -> SchemaVersion:
        """Registry metadata for a schema version id (single-flighted).

        Raises:
            InvalidSchemaError: If the registry reports a failure or the call fails
        """
        task = self._in_flight.get(schema_id)
        if task is None:
            task = asyncio.ensure_future(self._load(schema_id))
            self._in_flight[schema_id] = task
        else:
            logger.debug("Joining in-flight schema fetch", extra={"schema_id": schema_id})
        return await asyncio.shield(task)

    async def _load(self, schema_id: str) -> SchemaVersion:
        try:
            try:
                version = await self._call(lambda client: client.get_schema_version(schema_id))
            except RegistryError as e:
                raise InvalidSchemaError(
                    f"Failed to load schema version {schema_id}: {e}", schema_id
                ) from e

            if version is None:
                raise InvalidSchemaError(f"Schema not found: {schema_id}", schema_id)
            if version.failed:
                logger.warning(
                    "Registry reported schema version failure",
                    extra={"schema_id": schema_id, "status": version.status},
                )
                raise InvalidSchemaError(
                    f"Schema version {schema_id} has status {version.status}", schema_id
                )
            return version
        finally:
            self._in_flight.pop(schema_id, None)

    async def _compile(self, schema_id: str, version: SchemaVersion) -> CompiledSchema:
        if not version.definition:
            raise InvalidSchemaError("Registry returned undefined schema definition", schema_id)
        try:
            return await _compile_in_executor(
                version.data_format, version.definition, version.schema_name
            )
        except InvalidSchemaError as e:
            raise InvalidSchemaError(f"Schema version {schema_id}: {e.message}", schema_id) from e

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(
        self,
        schema_name: str,
        definition: str,
        data_format: DataFormat = DataFormat.AVRO,
    ) -> str:
        """Register a schema version, returning its id.

        Identical (schema_name, definition) pairs are registered remotely only
        once per resolver, concurrent callers included. The definition is
        compiled and cached right away.

        Raises:
            RegistrationFailureError: If the registry rejects the version
            InvalidSchemaError: If the definition does not compile
        """
        key = registration_hash(schema_name, definition)
        known = self._registrations.get(key)
        if known is not None:
            return known

        task = self._registering.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._register(key, schema_name, definition, data_format)
            )
            self._registering[key] = task
        return await asyncio.shield(task)

    async def _register(
        self,
        key: str,
        schema_name: str,
        definition: str,
        data_format: DataFormat,
    ) -> str:
        try:
            try:
                result = await self._call(
                    lambda client: client.register_schema_version(
                        self.registry_name, schema_name, definition
                    )
                )
            except RegistryError as e:
                raise RegistrationFailureError(
                    f"Schema registration failed for {schema_name}: {e}", schema_name
                ) from e

            if not result.version_id:
                raise RegistrationFailureError(
                    f"Registry returned no schema version id for {schema_name}", schema_name
                )
            if result.failed:
                raise RegistrationFailureError(
                    f"Schema registration failure for {schema_name}", schema_name
                )

            compiled = await _compile_in_executor(data_format, definition, schema_name)
            self._registrations[key] = result.version_id
            self._cache.setdefault(result.version_id, compiled)
            logger.info(
                "Registered schema version",
                extra={
                    "registry_name": self.registry_name,
                    "schema_name": schema_name,
                    "schema_id": result.version_id,
                    "version_number": result.version_number,
                },
            )
            return result.version_id
        finally:
            self._registering.pop(key, None)

    async def create_schema(
        self,
        schema_name: str,
        definition: str,
        data_format: DataFormat = DataFormat.AVRO,
        compatibility: Compatibility = Compatibility.BACKWARD,
    ) -> Optional[str]:
        """Create a schema with its first version.

        Nothing is memoized or cached; later use goes through resolve().

        Raises:
            RegistrationFailureError: If the registry rejects the schema
        """
        try:
            result = await self._call(
                lambda client: client.create_schema(
                    self.registry_name, schema_name, data_format, compatibility, definition
                )
            )
        except RegistryError as e:
            raise RegistrationFailureError(
                f"Schema creation failed for {schema_name}: {e}", schema_name
            ) from e

        if result.failed:
            raise RegistrationFailureError("Schema registration failure", schema_name)

        logger.info(
            "Created schema",
            extra={
                "registry_name": self.registry_name,
                "schema_name": schema_name,
                "schema_id": result.version_id,
            },
        )
        return result.version_id

    async def get_latest_schema_id(self, schema_name: str) -> str:
        """Id of the latest version of schema_name, with its schema cached.

        Raises:
            InvalidSchemaError: If the schema is unknown or in failure state
        """
        try:
            version = await self._call(
                lambda client: client.get_latest_schema_version(self.registry_name, schema_name)
            )
        except RegistryError as e:
            raise InvalidSchemaError(f"Failed to load latest version of {schema_name}: {e}") from e

        if version.failed or not version.schema_version_id:
            raise InvalidSchemaError(
                f"Latest version of {schema_name} is not available (status {version.status})",
                version.schema_version_id,
            )

        schema_id = version.schema_version_id
        if schema_id not in self._cache:
            self._cache.setdefault(schema_id, await self._compile(schema_id, version))
        return schema_id


async def _compile_in_executor(
    data_format: Optional[str],
    definition: str,
    schema_name: Optional[str],
) -> CompiledSchema:
    """compile_schema on the default executor; protoc and its file I/O block."""
    return await asyncio.get_running_loop().run_in_executor(
        None, compile_schema, data_format, definition, schema_name
    )
