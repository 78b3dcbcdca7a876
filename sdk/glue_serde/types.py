"""
Data model for the Glue schema registry codec.

These types describe what the registry returns and what the codec reports.
They are plain dataclasses; the registry clients translate their transport
responses into them so the rest of the package never sees raw API payloads.

Invariants:
    - SchemaVersion content never changes for a given schema_version_id
    - Only SchemaVersionStatus.FAILURE indicates a failure
    - AnalysisResult.error is None exactly when valid is True
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .errors import ErrorKind


class DataFormat(str, Enum):
    """Schema data formats known to the registry."""

    AVRO = "AVRO"
    PROTOBUF = "PROTOBUF"
    JSON = "JSON"


class Compatibility(str, Enum):
    """Registry compatibility modes applied when new versions are registered."""

    NONE = "NONE"
    DISABLED = "DISABLED"
    BACKWARD = "BACKWARD"
    BACKWARD_ALL = "BACKWARD_ALL"
    FORWARD = "FORWARD"
    FORWARD_ALL = "FORWARD_ALL"
    FULL = "FULL"
    FULL_ALL = "FULL_ALL"


class SchemaVersionStatus(str, Enum):
    """Schema version status as reported by the registry."""

    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    FAILURE = "FAILURE"
    DELETING = "DELETING"


def is_failure(status: Optional[str]) -> bool:
    """Whether a registry status string indicates failure."""
    return status == SchemaVersionStatus.FAILURE.value


@dataclass(frozen=True)
class SchemaVersion:
    """Registry metadata for one schema version.

    Attributes:
        schema_version_id: UUID of the version
        definition: Schema definition text (None if the registry omitted it)
        data_format: Format name as returned by the registry
        status: Version status string
        schema_arn: ARN of the owning schema
        version_number: Version number within the schema
    """

    schema_version_id: Optional[str]
    definition: Optional[str] = None
    data_format: Optional[str] = None
    status: Optional[str] = None
    schema_arn: Optional[str] = None
    version_number: Optional[int] = None

    @property
    def failed(self) -> bool:
        return is_failure(self.status)

    @property
    def schema_name(self) -> Optional[str]:
        """Schema name, taken from the last segment of the schema ARN."""
        if not self.schema_arn:
            return None
        return self.schema_arn.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class RegistrationResult:
    """Result of a create or register call."""

    version_id: Optional[str]
    status: Optional[str] = None
    version_number: Optional[int] = None

    @property
    def failed(self) -> bool:
        return is_failure(self.status)


@dataclass
class AnalysisResult:
    """Outcome of analyze_message().

    Attributes:
        valid: True if the envelope is well formed and its schema is known
        error: Failure classification when valid is False
        exception: Underlying exception, kept for diagnostics
        header_version: Envelope header byte (once it passed validation)
        compression: Envelope compression byte (once it passed validation)
        schema_id: Embedded schema version id (once it was extracted)
        schema: Registry metadata of the embedded schema version (when valid)
    """

    valid: bool
    error: Optional[ErrorKind] = None
    exception: Optional[BaseException] = None
    header_version: Optional[int] = None
    compression: Optional[int] = None
    schema_id: Optional[str] = None
    schema: Optional[SchemaVersion] = None

    @classmethod
    def failure(
        cls,
        exc: BaseException,
        kind: Optional[ErrorKind] = None,
        **fields: Any,
    ) -> AnalysisResult:
        """Build an invalid result from the exception that caused it.

        fields carries the envelope fields validated before the failure
        (header_version, compression, schema_id).
        """
        if kind is None:
            kind = getattr(exc, "kind", ErrorKind.INVALID_SCHEMA)
        return cls(valid=False, error=kind, exception=exc, **fields)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (exception rendered as text)."""
        return {
            "valid": self.valid,
            "error": self.error.name if self.error is not None else None,
            "exception": str(self.exception) if self.exception is not None else None,
            "header_version": self.header_version,
            "compression": self.compression,
            "schema_id": self.schema_id,
            "schema_arn": self.schema.schema_arn if self.schema else None,
        }
