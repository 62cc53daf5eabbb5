"""Vector element types, index quantization modes and the errors raised by vector code."""

from __future__ import annotations

from enum import Enum


class VectorError(Exception):
    """Base class for every error raised by vector handling."""


class InvalidVectorFormat(VectorError, ValueError):
    """Vector data could not be parsed (bad JSON, bad blob size, wrong SQL type)."""


class InvalidVectorType(VectorError, ValueError):
    """An unknown vector type, or an operation on a vector of the wrong type."""


class InvalidParameter(VectorError, ValueError):
    """A parameter is outside the range an operation accepts."""


class DimensionMismatch(VectorError, ValueError):
    """Two vectors that must have equal dimensions do not."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class UnsupportedOperation(VectorError, NotImplementedError):
    """The operation is not available for this kind of vector."""


class VectorType(str, Enum):
    """Element type of a stored vector."""

    FLOAT32 = "float32"
    INT8 = "int8"
    BIT = "bit"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, s: str) -> VectorType:
        """Parse a type name, case-insensitively, accepting the usual aliases."""
        name = s.lower()
        if name in ("float32", "float"):
            return cls.FLOAT32
        if name == "int8":
            return cls.INT8
        if name in ("bit", "binary"):
            return cls.BIT
        raise InvalidVectorType(s)

    def bytes_per_element(self) -> int:
        """Bytes per element; 0 for bit vectors, which pack eight elements per byte."""
        return _BYTES_PER_ELEMENT[self]


_BYTES_PER_ELEMENT = {
    VectorType.FLOAT32: 4,
    VectorType.INT8: 1,
    VectorType.BIT: 0,
}


class IndexQuantization(str, Enum):
    """How vectors are stored inside the HNSW index; main storage keeps full precision."""

    NONE = "none"
    INT8 = "int8"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, s: str) -> IndexQuantization:
        """Parse a quantization mode, case-insensitively."""
        name = s.lower()
        for member in cls:
            if member.value == name:
                return member
        raise InvalidParameter(
            f"Invalid index_quantization value: '{s}'. Use 'none' or 'int8'"
        )