"""
Binary envelope codec.

Every message produced by the codec is framed as:

    offset  size  field
    0       1     header version (always 3)
    1       1     compression (0 = none, 5 = deflate)
    2       16    schema version id (UUID bytes, registry byte order)
    18      rest  payload

The payload is not length-prefixed, it runs to the end of the buffer.

Invariants:
    - The header byte is checked before the compression byte
    - The schema id slot is exactly 16 bytes, a short slot is never padded
    - Framing overhead is always ENVELOPE_OVERHEAD bytes

How to change safely:
    - The layout is shared with the Java and Node serializers, keep it bit-exact
    - A new layout needs a new header version, not a change to version 3
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from .compression import SUPPORTED_COMPRESSION
from .errors import InvalidCompressionError, InvalidHeaderVersionError, InvalidSchemaIdError

HEADER_VERSION = 3

HEADER_OFFSET = 0
COMPRESSION_OFFSET = 1
SCHEMA_ID_OFFSET = 2
SCHEMA_ID_SIZE = 16
PAYLOAD_OFFSET = SCHEMA_ID_OFFSET + SCHEMA_ID_SIZE
ENVELOPE_OVERHEAD = PAYLOAD_OFFSET


@dataclass(frozen=True)
class Envelope:
    """A parsed envelope.

    Attributes:
        header_version: Protocol version byte
        compression: Compression byte
        schema_id: Schema version id (canonical UUID string)
        payload: Serialized, possibly compressed, record bytes
    """

    header_version: int
    compression: int
    schema_id: str
    payload: bytes

    def to_bytes(self) -> bytes:
        return assemble(self.header_version, self.compression, self.schema_id, self.payload)


def _parse_schema_id(schema_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(schema_id))
    except ValueError as e:
        raise InvalidSchemaIdError(f"Invalid schema id '{schema_id}': {e}", schema_id) from e


def canonical_schema_id(schema_id: str) -> str:
    """Lower-case hyphenated form of a schema id.

    Any spelling uuid.UUID accepts (upper case, braces, urn:uuid:) maps to the
    form the registry issues and the cache is keyed by.

    Raises:
        InvalidSchemaIdError: If schema_id is not a UUID
    """
    return str(_parse_schema_id(schema_id))


def schema_id_to_bytes(schema_id: str) -> bytes:
    """Convert a UUID string to its 16 wire bytes.

    Raises:
        InvalidSchemaIdError: If schema_id is not a UUID
    """
    return _parse_schema_id(schema_id).bytes


def assemble(header_version: int, compression: int, schema_id: str, payload: bytes) -> bytes:
    """Build an envelope from its fields."""
    return (
        bytes((header_version, compression))
        + schema_id_to_bytes(schema_id)
        + bytes(payload)
    )


def parse_header(message: bytes) -> tuple[int, int]:
    """Read and validate the header and compression bytes.

    Returns:
        (header_version, compression)

    Raises:
        InvalidHeaderVersionError: If byte 0 is not HEADER_VERSION
        InvalidCompressionError: If byte 1 is not a known compression
    """
    header_version = message[HEADER_OFFSET] if len(message) > HEADER_OFFSET else None
    if header_version != HEADER_VERSION:
        raise InvalidHeaderVersionError(header_version, HEADER_VERSION)

    compression = message[COMPRESSION_OFFSET] if len(message) > COMPRESSION_OFFSET else None
    if compression not in SUPPORTED_COMPRESSION:
        raise InvalidCompressionError(compression, SUPPORTED_COMPRESSION)

    return header_version, compression


def extract_schema_id(message: bytes) -> str:
    """Read the schema version id from bytes 2..17.

    Raises:
        InvalidSchemaIdError: If fewer than 16 bytes are available
    """
    raw = bytes(message[SCHEMA_ID_OFFSET:PAYLOAD_OFFSET])
    if len(raw) != SCHEMA_ID_SIZE:
        raise InvalidSchemaIdError(
            f"Schema id slot holds {len(raw)} bytes, expected {SCHEMA_ID_SIZE}"
        )
    return str(uuid.UUID(bytes=raw))


def extract_payload(message: bytes) -> bytes:
    """Bytes following the envelope header."""
    return bytes(message[PAYLOAD_OFFSET:])


def parse(message: bytes) -> Envelope:
    """Parse and validate a complete envelope.

    Raises:
        InvalidHeaderVersionError, InvalidCompressionError, InvalidSchemaIdError
    """
    header_version, compression = parse_header(message)
    schema_id = extract_schema_id(message)
    return Envelope(
        header_version=header_version,
        compression=compression,
        schema_id=schema_id,
        payload=extract_payload(message),
    )
