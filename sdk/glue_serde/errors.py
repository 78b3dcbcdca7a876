"""
Error types for the Glue schema registry codec.

This module defines all exception types raised by the codec:
- GlueSerdeError: Base exception
- InvalidHeaderVersionError: Envelope header byte is not the supported version
- InvalidCompressionError: Envelope compression byte is not recognized
- InvalidSchemaIdError: Schema id slot is malformed
- InvalidSchemaError: Registry reported a failure or could not be reached
- RegistrationFailureError: Schema creation/registration failed
- UnsupportedFormatError: Registry names a data format with no compiler
- SerializationError: Value or payload does not match the compiled schema

Invariants:
    - All errors inherit from GlueSerdeError
    - Every error carries an ErrorKind, the same value analyze_message reports
    - The first ErrorKind values are wire-stable with other runtimes
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorKind(IntEnum):
    """Classification of codec failures."""

    NO_ERROR = 0
    INVALID_HEADER_VERSION = 1
    INVALID_COMPRESSION = 2
    INVALID_SCHEMA_ID = 3
    INVALID_SCHEMA = 4
    REGISTRATION_FAILURE = 5
    UNSUPPORTED_FORMAT = 6
    SERIALIZATION_FAILURE = 7


class GlueSerdeError(Exception):
    """Base exception for all codec errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    kind: ErrorKind = ErrorKind.NO_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.kind.name
        self.details = details or {}


class InvalidHeaderVersionError(GlueSerdeError):
    """Envelope header version byte is not supported."""

    kind = ErrorKind.INVALID_HEADER_VERSION

    def __init__(self, received: Optional[int], supported: int) -> None:
        super().__init__(
            f"Only header version {supported} is supported, received {received}",
            details={"received": received, "supported": supported},
        )
        self.received = received


class InvalidCompressionError(GlueSerdeError):
    """Envelope compression byte is not one of the known strategies."""

    kind = ErrorKind.INVALID_COMPRESSION

    def __init__(self, received: Optional[int], supported: tuple[int, ...]) -> None:
        names = " and ".join(str(s) for s in supported)
        super().__init__(
            f"Only compression type {names} are supported, received {received}",
            details={"received": received, "supported": list(supported)},
        )
        self.received = received


class InvalidSchemaIdError(GlueSerdeError):
    """Schema id is malformed.

    Raised when:
    - The envelope is too short to hold a 16 byte schema id
    - A schema id string passed to encode is not a UUID
    """

    kind = ErrorKind.INVALID_SCHEMA_ID

    def __init__(self, message: str, schema_id: Optional[str] = None) -> None:
        super().__init__(message, details={"schema_id": schema_id})
        self.schema_id = schema_id


class InvalidSchemaError(GlueSerdeError):
    """Schema version could not be resolved.

    Raised when:
    - The registry reports the schema version with status FAILURE
    - The registry call itself fails (unknown id, network, throttling)
    - The returned definition is missing or cannot be compiled
    """

    kind = ErrorKind.INVALID_SCHEMA

    def __init__(self, message: str, schema_id: Optional[str] = None) -> None:
        super().__init__(message, details={"schema_id": schema_id})
        self.schema_id = schema_id


class RegistrationFailureError(GlueSerdeError):
    """Creating or registering a schema version failed."""

    kind = ErrorKind.REGISTRATION_FAILURE

    def __init__(self, message: str, schema_name: Optional[str] = None) -> None:
        super().__init__(message, details={"schema_name": schema_name})
        self.schema_name = schema_name


class UnsupportedFormatError(GlueSerdeError):
    """Registry metadata names a data format with no known compiler."""

    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(self, data_format: Any) -> None:
        super().__init__(
            f"Unsupported schema data format: {data_format}",
            details={"data_format": str(data_format)},
        )
        self.data_format = data_format


class SerializationError(GlueSerdeError):
    """Value or payload does not conform to the compiled schema.

    Raised when:
    - encode() gets a value the schema cannot serialize
    - decode() gets a corrupt compressed stream or undecodable payload
    """

    kind = ErrorKind.SERIALIZATION_FAILURE

    def __init__(self, message: str, schema_id: Optional[str] = None) -> None:
        super().__init__(message, details={"schema_id": schema_id})
        self.schema_id = schema_id
