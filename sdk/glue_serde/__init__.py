"""
glue-serde - Schema registry codec for AWS Glue.

This package encodes and decodes records bound to schema versions of the AWS
Glue Schema Registry, using the same binary envelope as the Java and Node
serializers:
- Envelope codec (header, compression, schema version id, payload)
- Schema resolution with a per-instance cache and single-flighted fetches
- A bound on concurrent registry calls
- Avro (fastavro) and Protobuf (protoc) compiled schemas

Example:
    >>> from glue_serde import GlueSchemaRegistry
    >>>
    >>> async with GlueSchemaRegistry("events") as registry:
    ...     schema_id = await registry.register("Testschema", definition)
    ...     message = await registry.encode(schema_id, {"demo": "Hello world!"})
    ...     result = await registry.analyze_message(message)
    ...     value = await registry.decode(message)

Invariants:
    - Schema version ids are immutable once issued by the registry
    - Cached schemas are never fetched again for the process lifetime
    - analyze_message never raises

Version: 1.0.0
"""

__version__ = "1.0.0"

from .codec import GlueSchemaRegistry
from .compiler import AvroSchema, CompiledSchema, ProtobufSchema, compile_schema
from .compression import CompressionType
from .config import RegistrySettings
from .envelope import HEADER_VERSION, Envelope
from .errors import (
    ErrorKind,
    GlueSerdeError,
    InvalidCompressionError,
    InvalidHeaderVersionError,
    InvalidSchemaError,
    InvalidSchemaIdError,
    RegistrationFailureError,
    SerializationError,
    UnsupportedFormatError,
)
from .limiter import ConcurrencyLimiter
from .registry import GlueRegistryClient, InMemoryRegistryClient, RegistryClient
from .resolver import SchemaResolver
from .types import (
    AnalysisResult,
    Compatibility,
    DataFormat,
    RegistrationResult,
    SchemaVersion,
    SchemaVersionStatus,
)

__all__ = [
    # Version
    "__version__",
    # Codec
    "GlueSchemaRegistry",
    "SchemaResolver",
    "ConcurrencyLimiter",
    "RegistrySettings",
    # Envelope
    "Envelope",
    "HEADER_VERSION",
    "CompressionType",
    # Compiled schemas
    "AvroSchema",
    "ProtobufSchema",
    "CompiledSchema",
    "compile_schema",
    # Registry clients
    "RegistryClient",
    "GlueRegistryClient",
    "InMemoryRegistryClient",
    # Types
    "AnalysisResult",
    "Compatibility",
    "DataFormat",
    "RegistrationResult",
    "SchemaVersion",
    "SchemaVersionStatus",
    # Errors
    "ErrorKind",
    "GlueSerdeError",
    "InvalidHeaderVersionError",
    "InvalidCompressionError",
    "InvalidSchemaIdError",
    "InvalidSchemaError",
    "RegistrationFailureError",
    "UnsupportedFormatError",
    "SerializationError",
]
