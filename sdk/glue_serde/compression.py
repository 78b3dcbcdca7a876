"""
Payload compression strategies.

The envelope's compression byte selects one of two strategies:
    0 -> IDENTITY (payload stored as-is)
    5 -> DEFLATE  (zlib stream, default level)

Invariants:
    - Encoding picks the strategy from caller intent (compress=True -> DEFLATE)
    - Decoding picks the strategy from the byte in the envelope, never from
      caller input
    - DEFLATE output at the default level is byte-identical to the Java and
      Node serializers

How to change safely:
    - New strategies need a new byte value agreed with the other runtimes
    - Never change the level of DEFLATE, encoded fixtures depend on it
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

from .errors import InvalidCompressionError, SerializationError


class CompressionType(IntEnum):
    """Compression discriminator byte values."""

    IDENTITY = 0
    DEFLATE = 5


SUPPORTED_COMPRESSION = tuple(int(c) for c in CompressionType)


@dataclass(frozen=True)
class CompressionStrategy:
    """A compress/decompress pair bound to its discriminator byte."""

    type: CompressionType
    compress: Callable[[bytes], bytes]
    decompress: Callable[[bytes], bytes]

    @property
    def byte(self) -> int:
        return int(self.type)


def _identity(data: bytes) -> bytes:
    return data


def _inflate(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise SerializationError(f"Failed to inflate payload: {e}") from e


IDENTITY = CompressionStrategy(CompressionType.IDENTITY, _identity, _identity)
DEFLATE = CompressionStrategy(CompressionType.DEFLATE, zlib.compress, _inflate)

_STRATEGIES = {
    CompressionType.IDENTITY: IDENTITY,
    CompressionType.DEFLATE: DEFLATE,
}


def strategy_for_intent(compress: bool) -> CompressionStrategy:
    """Strategy used when encoding."""
    return DEFLATE if compress else IDENTITY


def strategy_for_byte(value: int) -> CompressionStrategy:
    """Strategy named by an envelope's compression byte.

    Raises:
        InvalidCompressionError: If the byte is not a known strategy
    """
    try:
        return _STRATEGIES[CompressionType(value)]
    except ValueError:
        raise InvalidCompressionError(value, SUPPORTED_COMPRESSION) from None
