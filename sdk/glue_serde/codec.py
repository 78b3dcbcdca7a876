"""
Glue schema registry codec.

GlueSchemaRegistry is the entry point of the package. It encodes values into
self-describing envelopes bound to a registry schema version, decodes such
envelopes back, and analyzes envelopes of unknown provenance.

Message stages (decode / analyze_message):

    Start -> HeaderChecked -> CompressionChecked -> SchemaResolved
          -> Decompressed -> Deserialized -> Done

Each stage has its own failure kind. analyze_message stops after the schema
stage and never decompresses or deserializes.

Invariants:
    - encode/decode/register/create_schema raise, analyze_message never does
    - decode picks decompression from the envelope byte, never from arguments
    - One resolver (and cache) per GlueSchemaRegistry instance

How to change safely:
    - The envelope layout is shared with the Java and Node serializers
    - Keep the stage order, callers rely on which error a bad message yields
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from . import envelope
from .compiler import AvroSchema, CompiledSchema
from .compression import CompressionType, strategy_for_byte, strategy_for_intent
from .config import RegistrySettings
from .errors import GlueSerdeError, InvalidCompressionError, UnsupportedFormatError
from .limiter import ConcurrencyLimiter
from .registry.base import RegistryClient
from .registry.glue import GlueRegistryClient
from .resolver import SchemaResolver
from .types import AnalysisResult, Compatibility, DataFormat

logger = logging.getLogger(__name__)

ConsumerSchema = Union[AvroSchema, dict, str, None]


class GlueSchemaRegistry:
    """Codec bound to one Glue schema registry.

    Attributes:
        registry_name: Name of the registry schemas are registered in
        settings: Registry settings
        resolver: Schema resolver and cache

    Example:
        >>> async with GlueSchemaRegistry("events") as registry:
        ...     schema_id = await registry.register("Testschema", definition)
        ...     message = await registry.encode(schema_id, {"demo": "Hello world!"})
        ...     value = await registry.decode(message)
    """

    HEADER_VERSION = envelope.HEADER_VERSION
    COMPRESSION_DEFAULT = int(CompressionType.IDENTITY)
    COMPRESSION_ZLIB = int(CompressionType.DEFLATE)

    def __init__(
        self,
        registry_name: Optional[str] = None,
        settings: Optional[RegistrySettings] = None,
        *,
        client: Optional[RegistryClient] = None,
        max_concurrent_calls: Optional[int] = None,
    ) -> None:
        """Initialize the codec.

        Args:
            registry_name: Registry name (overrides settings.registry_name)
            settings: Registry settings (loaded from env if not provided)
            client: Registry client (a GlueRegistryClient is built if not provided)
            max_concurrent_calls: Registry call bound (overrides settings)
        """
        self.settings = settings or RegistrySettings()
        self.registry_name = registry_name or self.settings.registry_name
        limit = (
            max_concurrent_calls
            if max_concurrent_calls is not None
            else self.settings.max_concurrent_calls
        )
        self._client = client or GlueRegistryClient(self.settings)
        self.resolver = SchemaResolver(
            self.registry_name, self._client, ConcurrencyLimiter(limit)
        )

    @property
    def client(self) -> RegistryClient:
        return self._client

    async def __aenter__(self) -> GlueSchemaRegistry:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the registry client."""
        await self._client.close()

    async def update_client(
        self,
        settings: Optional[RegistrySettings] = None,
        *,
        client: Optional[RegistryClient] = None,
    ) -> None:
        """Replace the registry client, e.g. after credentials were refreshed.

        Cached schemas and registrations are kept. Calls admitted after the
        swap use the new client. The old client is closed once the calls
        already running on it have settled, so this waits for them.
        """
        old = self._client
        if settings is not None:
            self.settings = settings
        self._client = client or GlueRegistryClient(self.settings)
        self.resolver.client = self._client
        logger.info("Registry client updated", extra={"registry_name": self.registry_name})

        await self.resolver.wait_client_idle(old)
        await old.close()

    # =========================================================================
    # Schema management
    # =========================================================================

    async def create_schema(
        self,
        schema_name: str,
        definition: str,
        *,
        data_format: DataFormat = DataFormat.AVRO,
        compatibility: Compatibility = Compatibility.BACKWARD,
    ) -> Optional[str]:
        """Create a new schema in the registry.

        Args:
            schema_name: Name of the schema
            definition: Schema definition text
            data_format: Data format of the definition
            compatibility: Compatibility mode enforced by the registry

        Returns:
            Id of the first schema version

        Raises:
            RegistrationFailureError: If the registry reports a failure
        """
        return await self.resolver.create_schema(schema_name, definition, data_format, compatibility)

    async def register(
        self,
        schema_name: str,
        definition: str,
        *,
        data_format: DataFormat = DataFormat.AVRO,
    ) -> str:
        """Register a new version of an existing schema.

        Returns the id of the existing version if an identical definition was
        registered before.

        Raises:
            RegistrationFailureError: If the schema does not exist or the
                registry compatibility check fails
        """
        return await self.resolver.register(schema_name, definition, data_format)

    async def get_latest_schema_id(self, schema_name: str) -> str:
        """Id of the latest version of a schema.

        Raises:
            InvalidSchemaError: If the schema is unknown or unavailable
        """
        return await self.resolver.get_latest_schema_id(schema_name)

    # =========================================================================
    # Serialization
    # =========================================================================

    async def encode(self, schema_id: str, value: Any, *, compress: bool = True) -> bytes:
        """Encode a value with a schema version.

        Args:
            schema_id: Schema version id to encode with (any UUID spelling)
            value: Value conforming to the schema
            compress: Deflate the payload (default) or store it as-is

        Returns:
            The binary envelope

        Raises:
            InvalidSchemaIdError: If schema_id is not a UUID
            InvalidSchemaError: If the schema cannot be resolved
            SerializationError: If value does not conform to the schema
        """
        # rejects malformed ids before any registry call
        schema_id = envelope.canonical_schema_id(schema_id)
        compiled = await self.resolver.resolve(schema_id)
        strategy = strategy_for_intent(compress)
        payload = strategy.compress(compiled.serialize(value))
        return envelope.assemble(envelope.HEADER_VERSION, strategy.byte, schema_id, payload)

    async def decode(self, message: bytes, consumer_schema: ConsumerSchema = None) -> Any:
        """Decode an envelope.

        Args:
            message: The binary envelope
            consumer_schema: Avro reader schema (compiled, dict or JSON text)
                to resolve the producer schema into. Ignored for Protobuf.

        Returns:
            The decoded value (dict for Avro, message instance for Protobuf)

        Raises:
            InvalidHeaderVersionError, InvalidCompressionError, InvalidSchemaIdError,
            InvalidSchemaError, UnsupportedFormatError, SerializationError
        """
        _, compression = envelope.parse_header(message)
        schema_id = envelope.extract_schema_id(message)
        producer = await self.resolver.resolve(schema_id)
        data = strategy_for_byte(compression).decompress(envelope.extract_payload(message))
        return self._deserialize(producer, data, consumer_schema)

    def _deserialize(self, producer: CompiledSchema, data: bytes, consumer_schema: ConsumerSchema) -> Any:
        if producer.data_format is DataFormat.AVRO:
            reader = None
            if consumer_schema is not None:
                reader = (
                    consumer_schema
                    if isinstance(consumer_schema, AvroSchema)
                    else AvroSchema.from_definition(consumer_schema)
                )
            return producer.deserialize(data, reader)
        elif producer.data_format is DataFormat.PROTOBUF:
            return producer.deserialize(data)
        raise UnsupportedFormatError(producer.data_format)

    async def analyze_message(self, message: bytes) -> AnalysisResult:
        """Analyze an envelope without decoding it.

        Never raises: every failure is reported in the result, with the
        underlying exception kept in AnalysisResult.exception.
        """
        try:
            header_version, compression = envelope.parse_header(message)
        except InvalidCompressionError as e:
            # header byte was read and accepted
            return AnalysisResult.failure(e, header_version=envelope.HEADER_VERSION)
        except GlueSerdeError as e:
            return AnalysisResult.failure(e)

        try:
            schema_id = envelope.extract_schema_id(message)
        except GlueSerdeError as e:
            return AnalysisResult.failure(
                e, header_version=header_version, compression=compression
            )

        try:
            version = await self.resolver.fetch_schema_version(schema_id)
        except Exception as e:
            logger.debug(
                "Message references unresolvable schema",
                extra={"schema_id": schema_id, "error": str(e)},
            )
            return AnalysisResult.failure(
                e, header_version=header_version, compression=compression, schema_id=schema_id
            )

        return AnalysisResult(
            valid=True,
            header_version=header_version,
            compression=compression,
            schema_id=schema_id,
            schema=version,
        )
