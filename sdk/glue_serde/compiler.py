"""
Schema compilers.

A compiled schema is a tagged variant:

    CompiledSchema = AvroSchema | ProtobufSchema

Each variant carries its data_format tag and knows how to turn a value into
bytes and back. Callers dispatch on data_format, never on the Python type.

Avro schemas are compiled with fastavro. Protobuf schemas are compiled from
.proto text with protoc (grpcio-tools) into a private descriptor pool, and the
message type is chosen by its fully-qualified name `<package>.<schema name>`.

Invariants:
    - One compiled schema per schema version id, built once and reused
    - Avro values are validated before they are written
    - Avro decoding may resolve the writer schema into a consumer schema
    - Compiling is synchronous and may block (protoc writes temp files), so
      async callers run compile_schema in an executor

How to change safely:
    - Adding a format means a new variant, a new DataFormat member and a new
      branch in compile_schema()
"""

from __future__ import annotations

import io
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import fastavro
from fastavro.read import SchemaResolutionError
from fastavro.schema import SchemaParseException
from fastavro.validation import ValidationError, validate
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.json_format import ParseDict, ParseError
from google.protobuf.message import DecodeError, Message
from grpc_tools import protoc

from .errors import InvalidSchemaError, SerializationError, UnsupportedFormatError
from .types import DataFormat

logger = logging.getLogger(__name__)

# google/protobuf/*.proto shipped with grpcio-tools
_WELL_KNOWN_PROTOS = os.path.join(os.path.dirname(protoc.__file__), "_proto")


@dataclass(frozen=True)
class AvroSchema:
    """Compiled Avro schema.

    Attributes:
        definition: Schema as parsed JSON
        parsed: fastavro parsed schema
    """

    definition: Any
    parsed: Any = field(repr=False, compare=False)
    data_format: DataFormat = field(default=DataFormat.AVRO, init=False)

    @classmethod
    def from_definition(cls, definition: Union[str, Dict[str, Any], list]) -> AvroSchema:
        """Compile Avro schema text or an already parsed schema.

        Raises:
            InvalidSchemaError: If the definition is not a valid Avro schema
        """
        try:
            raw = json.loads(definition) if isinstance(definition, (str, bytes)) else definition
            return cls(definition=raw, parsed=fastavro.parse_schema(raw))
        except (ValueError, TypeError, KeyError, SchemaParseException) as e:
            raise InvalidSchemaError(f"Invalid Avro schema: {e}") from e

    @property
    def name(self) -> Optional[str]:
        if isinstance(self.parsed, dict):
            return self.parsed.get("name")
        return None

    def serialize(self, value: Any) -> bytes:
        try:
            validate(value, self.parsed, raise_errors=True)
            buf = io.BytesIO()
            fastavro.schemaless_writer(buf, self.parsed, value)
        except (ValidationError, ValueError, TypeError) as e:
            raise SerializationError(f"Value does not match Avro schema {self.name}: {e}") from e
        return buf.getvalue()

    def deserialize(self, data: bytes, reader: Optional[AvroSchema] = None) -> Any:
        """Decode data written with this schema.

        Args:
            data: Avro binary payload
            reader: Optional consumer schema to resolve into
        """
        try:
            return fastavro.schemaless_reader(
                io.BytesIO(data),
                self.parsed,
                reader.parsed if reader is not None else None,
            )
        except (SchemaResolutionError, EOFError, ValueError, TypeError) as e:
            raise SerializationError(f"Failed to decode Avro payload: {e}") from e


@dataclass(frozen=True)
class ProtobufSchema:
    """Compiled Protobuf schema.

    Attributes:
        definition: .proto source text
        message_class: Generated message class for the selected type
    """

    definition: str
    message_class: Any = field(repr=False, compare=False)
    data_format: DataFormat = field(default=DataFormat.PROTOBUF, init=False)

    @property
    def name(self) -> str:
        return self.message_class.DESCRIPTOR.full_name

    def serialize(self, value: Any) -> bytes:
        try:
            if isinstance(value, Message):
                if value.DESCRIPTOR.full_name != self.name:
                    raise TypeError(f"expected {self.name}, got {value.DESCRIPTOR.full_name}")
                return value.SerializeToString()
            msg = self.message_class()
            ParseDict(value, msg)
            return msg.SerializeToString()
        except (ParseError, TypeError, AttributeError) as e:
            raise SerializationError(f"Value does not match Protobuf message {self.name}: {e}") from e

    def deserialize(self, data: bytes) -> Message:
        try:
            return self.message_class.FromString(data)
        except DecodeError as e:
            raise SerializationError(f"Failed to decode Protobuf payload: {e}") from e

    @classmethod
    def from_definition(cls, definition: str, schema_name: Optional[str] = None) -> ProtobufSchema:
        """Compile .proto text and select the message for schema_name.

        The message is looked up as `<package>.<schema_name>`. If schema_name
        is not given or names no message in the file, the first message
        declared in the file is used.

        Raises:
            InvalidSchemaError: If protoc rejects the definition or it
                declares no message
        """
        file_proto = _run_protoc(definition)
        pool = descriptor_pool.DescriptorPool()
        for fd in file_proto.file:
            pool.AddSerializedFile(fd.SerializeToString())

        target = file_proto.file[-1]
        if not target.message_type:
            raise InvalidSchemaError("Protobuf schema declares no message type")

        candidates = []
        if schema_name:
            candidates.append(f"{target.package}.{schema_name}" if target.package else schema_name)
        first = target.message_type[0].name
        candidates.append(f"{target.package}.{first}" if target.package else first)

        for full_name in candidates:
            try:
                descriptor = pool.FindMessageTypeByName(full_name)
            except KeyError:
                continue
            return cls(definition=definition, message_class=message_factory.GetMessageClass(descriptor))

        raise InvalidSchemaError(f"Protobuf message {candidates[0]} not found")


CompiledSchema = Union[AvroSchema, ProtobufSchema]


def _run_protoc(definition: str) -> descriptor_pb2.FileDescriptorSet:
    """Compile .proto text to a FileDescriptorSet (dependencies first)."""
    with tempfile.TemporaryDirectory(prefix="glue-serde-") as tmp:
        src = os.path.join(tmp, "schema.proto")
        out = os.path.join(tmp, "schema.desc")
        with open(src, "w", encoding="utf-8") as f:
            f.write(definition)

        rc = protoc.main(
            [
                "grpc_tools.protoc",
                f"--proto_path={tmp}",
                f"--proto_path={_WELL_KNOWN_PROTOS}",
                "--include_imports",
                f"--descriptor_set_out={out}",
                src,
            ]
        )
        if rc != 0:
            raise InvalidSchemaError(f"protoc failed to compile Protobuf schema (exit code {rc})")

        with open(out, "rb") as f:
            return descriptor_pb2.FileDescriptorSet.FromString(f.read())


def compile_schema(
    data_format: Union[DataFormat, str, None],
    definition: str,
    schema_name: Optional[str] = None,
) -> CompiledSchema:
    """Compile a registry definition into a schema handle.

    Args:
        data_format: Registry data format (None is treated as AVRO)
        definition: Schema definition text
        schema_name: Schema name, used to pick the Protobuf message type

    Raises:
        UnsupportedFormatError: If no compiler exists for data_format
        InvalidSchemaError: If the definition does not compile
    """
    if data_format is None:
        fmt = DataFormat.AVRO
    else:
        try:
            fmt = DataFormat(data_format)
        except ValueError:
            raise UnsupportedFormatError(data_format) from None

    logger.debug(f"Compiling {fmt.value} schema", extra={"schema_name": schema_name})
    if fmt is DataFormat.AVRO:
        return AvroSchema.from_definition(definition)
    elif fmt is DataFormat.PROTOBUF:
        return ProtobufSchema.from_definition(definition, schema_name)
    raise UnsupportedFormatError(fmt.value)
