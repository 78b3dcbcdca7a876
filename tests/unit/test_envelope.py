"""
Unit tests for the binary envelope and compression strategies.

Tests cover:
- Header and compression byte validation (and their order)
- Schema id extraction
- Envelope assembly
- Compression strategy selection
"""

import zlib

import pytest

from sdk.glue_serde import envelope
from sdk.glue_serde.compression import (
    DEFLATE,
    IDENTITY,
    CompressionType,
    strategy_for_byte,
    strategy_for_intent,
)
from sdk.glue_serde.errors import (
    ErrorKind,
    InvalidCompressionError,
    InvalidHeaderVersionError,
    InvalidSchemaIdError,
    SerializationError,
)
from tests.fixtures import (
    COMPRESSED_HELLO_WORLD,
    MALFORMED_COMPRESSION,
    MALFORMED_HEADER,
    SCHEMA_ID,
    UNCOMPRESSED_HELLO_WORLD,
)


class TestParseHeader:
    """Tests for header and compression validation."""

    def test_valid_compressed(self):
        assert envelope.parse_header(COMPRESSED_HELLO_WORLD) == (3, 5)

    def test_valid_uncompressed(self):
        assert envelope.parse_header(UNCOMPRESSED_HELLO_WORLD) == (3, 0)

    def test_wrong_header_version(self):
        with pytest.raises(InvalidHeaderVersionError) as exc_info:
            envelope.parse_header(MALFORMED_HEADER)

        assert str(exc_info.value) == "Only header version 3 is supported, received 0"
        assert exc_info.value.kind == ErrorKind.INVALID_HEADER_VERSION
        assert exc_info.value.received == 0

    def test_wrong_compression(self):
        with pytest.raises(InvalidCompressionError) as exc_info:
            envelope.parse_header(MALFORMED_COMPRESSION)

        assert str(exc_info.value) == "Only compression type 0 and 5 are supported, received 1"
        assert exc_info.value.kind == ErrorKind.INVALID_COMPRESSION

    def test_header_checked_before_compression(self):
        """Both bytes wrong reports the header."""
        with pytest.raises(InvalidHeaderVersionError):
            envelope.parse_header(bytes([0, 1]) + bytes(16))

    def test_empty_message(self):
        with pytest.raises(InvalidHeaderVersionError) as exc_info:
            envelope.parse_header(b"")

        assert exc_info.value.received is None

    def test_missing_compression_byte(self):
        with pytest.raises(InvalidCompressionError):
            envelope.parse_header(b"\x03")


class TestSchemaId:
    """Tests for schema id extraction and conversion."""

    def test_extract_schema_id(self):
        assert envelope.extract_schema_id(COMPRESSED_HELLO_WORLD) == SCHEMA_ID

    def test_short_slot_rejected(self):
        """A truncated id slot is never zero-padded."""
        message = COMPRESSED_HELLO_WORLD[:10]

        with pytest.raises(InvalidSchemaIdError) as exc_info:
            envelope.extract_schema_id(message)

        assert exc_info.value.kind == ErrorKind.INVALID_SCHEMA_ID

    def test_exact_overhead_has_empty_payload(self):
        message = UNCOMPRESSED_HELLO_WORLD[: envelope.ENVELOPE_OVERHEAD]

        parsed = envelope.parse(message)

        assert parsed.schema_id == SCHEMA_ID
        assert parsed.payload == b""

    def test_schema_id_to_bytes(self):
        assert envelope.schema_id_to_bytes(SCHEMA_ID) == bytes.fromhex(
            "b7912285527d42de88eee389a763225f"
        )

    def test_schema_id_to_bytes_rejects_garbage(self):
        with pytest.raises(InvalidSchemaIdError):
            envelope.schema_id_to_bytes("not-a-uuid")

    @pytest.mark.parametrize(
        "spelling",
        [
            SCHEMA_ID,
            SCHEMA_ID.upper(),
            "{" + SCHEMA_ID + "}",
            "urn:uuid:" + SCHEMA_ID,
            SCHEMA_ID.replace("-", ""),
        ],
    )
    def test_canonical_schema_id(self, spelling):
        assert envelope.canonical_schema_id(spelling) == SCHEMA_ID

    def test_canonical_schema_id_rejects_garbage(self):
        with pytest.raises(InvalidSchemaIdError):
            envelope.canonical_schema_id("b7912285-527d")


class TestAssemble:
    """Tests for envelope assembly."""

    def test_assemble_matches_fixture(self):
        payload = UNCOMPRESSED_HELLO_WORLD[envelope.PAYLOAD_OFFSET:]

        message = envelope.assemble(3, 0, SCHEMA_ID, payload)

        assert message == UNCOMPRESSED_HELLO_WORLD

    def test_parse_then_to_bytes(self):
        parsed = envelope.parse(COMPRESSED_HELLO_WORLD)

        assert parsed.header_version == envelope.HEADER_VERSION
        assert parsed.compression == CompressionType.DEFLATE
        assert parsed.to_bytes() == COMPRESSED_HELLO_WORLD

    def test_overhead(self):
        message = envelope.assemble(3, 0, SCHEMA_ID, b"abc")

        assert len(message) == envelope.ENVELOPE_OVERHEAD + 3


class TestCompression:
    """Tests for compression strategies."""

    def test_strategy_for_intent(self):
        assert strategy_for_intent(True) is DEFLATE
        assert strategy_for_intent(False) is IDENTITY

    def test_strategy_for_byte(self):
        assert strategy_for_byte(0) is IDENTITY
        assert strategy_for_byte(5) is DEFLATE

    @pytest.mark.parametrize("value", [1, 2, 4, 6, 255])
    def test_unknown_byte(self, value):
        with pytest.raises(InvalidCompressionError):
            strategy_for_byte(value)

    def test_deflate_matches_zlib_default(self):
        payload = b"\x18Hello world!"

        assert DEFLATE.compress(payload) == zlib.compress(payload)
        assert DEFLATE.compress(payload) == COMPRESSED_HELLO_WORLD[envelope.PAYLOAD_OFFSET:]

    def test_deflate_symmetry(self):
        data = bytes(range(256)) * 4

        assert DEFLATE.decompress(DEFLATE.compress(data)) == data
        assert IDENTITY.decompress(IDENTITY.compress(data)) == data

    def test_corrupt_stream(self):
        with pytest.raises(SerializationError):
            DEFLATE.decompress(b"\x00\x01\x02 not zlib")

    def test_strategy_bytes(self):
        assert IDENTITY.byte == 0
        assert DEFLATE.byte == 5
