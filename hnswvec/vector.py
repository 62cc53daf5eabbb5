"""Owned vector values: construction from JSON and blobs, arithmetic and quantization."""

from __future__ import annotations

import json
import math
import struct
from dataclasses import dataclass
from typing import Iterable, List

from hnswvec.types import (
    DimensionMismatch,
    InvalidParameter,
    InvalidVectorFormat,
    InvalidVectorType,
    UnsupportedOperation,
    VectorType,
)

_F32 = struct.Struct("<f")


def _f32(x: float) -> float:
    """Round a Python float to the nearest float32 value (overflow becomes infinity)."""
    try:
        return _F32.unpack(_F32.pack(x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)


def _pack_f32(values: Iterable[float]) -> bytes:
    return b"".join(_F32.pack(_f32(float(v))) for v in values)


def _saturate_i8(x: float) -> int:
    """Convert a float to int8 the way a saturating cast does: truncate, clamp, NaN to 0."""
    if math.isnan(x):
        return 0
    if math.isinf(x):
        return 127 if x > 0 else -128
    return max(-128, min(127, int(x)))


def _round_half_away(x: float) -> float:
    if math.isnan(x) or math.isinf(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _f32_sum(values: Iterable[float]) -> float:
    total = 0.0
    for v in values:
        total = _f32(total + v)
    return total


def _format_f32(x: float) -> str:
    """Shortest round-trip text for a float32 value, in JSON number style."""
    if math.isnan(x) or math.isinf(x):
        return "null"
    if x == 0.0:
        return "-0.0" if math.copysign(1.0, x) < 0 else "0.0"
    sign = "-" if x < 0 else ""
    ax = abs(x)
    text = f"{ax:.8e}"
    for precision in range(9):
        candidate = f"{ax:.{precision}e}"
        if _f32(float(candidate)) == ax:
            text = candidate
            break
    mantissa, exp_text = text.split("e")
    digits = mantissa.replace(".", "").rstrip("0") or "0"
    length = len(digits)
    kk = int(exp_text) + 1
    k = kk - length

    if 0 <= k and kk <= 13:
        body = digits + "0" * k + ".0"
    elif 0 < kk <= 13:
        body = digits[:kk] + "." + digits[kk:]
    elif -6 < kk <= 0:
        body = "0." + "0" * (-kk) + digits
    elif length == 1:
        body = f"{digits}e{kk - 1}"
    else:
        body = f"{digits[0]}.{digits[1:]}e{kk - 1}"
    return sign + body


@dataclass(frozen=True)
class Vector:
    """A vector of float32, int8 or bit elements held as little-endian bytes."""

    vec_type: VectorType
    dimensions: int
    data: bytes

    @classmethod
    def from_f32(cls, values: Iterable[float]) -> Vector:
        """Build a float32 vector; values are rounded to float32 precision."""
        vals = list(values)
        return cls(VectorType.FLOAT32, len(vals), _pack_f32(vals))

    @classmethod
    def from_i8(cls, values: Iterable[int]) -> Vector:
        """Build an int8 vector from signed byte values."""
        vals = list(values)
        return cls(VectorType.INT8, len(vals), bytes(int(v) & 0xFF for v in vals))

    @classmethod
    def from_json(cls, text: str, vec_type: VectorType) -> Vector:
        """Parse a JSON array of numbers into a vector of the given type."""
        try:
            parsed = json.loads(text)
        except (json.JSONDecodeError, TypeError) as exc:
            raise InvalidVectorFormat(f"Invalid JSON: {exc}") from exc
        if not isinstance(parsed, list) or any(
            isinstance(v, bool) or not isinstance(v, (int, float)) for v in parsed
        ):
            raise InvalidVectorFormat("Vector JSON must be an array of numbers")
        try:
            values = [float(v) for v in parsed]
        except OverflowError as exc:
            raise InvalidVectorFormat(f"Number out of range: {exc}") from exc

        if vec_type is VectorType.FLOAT32:
            return cls.from_f32(values)
        if vec_type is VectorType.INT8:
            return cls.from_i8(_saturate_i8(v) for v in values)
        raise UnsupportedOperation("Binary vector from JSON is not supported")

    @classmethod
    def from_blob(cls, blob: bytes, vec_type: VectorType, dimensions: int) -> Vector:
        """Wrap raw bytes as a vector of the given type and dimension count."""
        return cls(vec_type, dimensions, bytes(blob))

    def as_f32(self) -> List[float]:
        """Decode the elements of a float32 vector."""
        if self.vec_type is not VectorType.FLOAT32:
            raise InvalidVectorType("Vector is not Float32 type")
        count = len(self.data) // 4
        return list(struct.unpack(f"<{count}f", self.data[: count * 4]))

    def as_i8(self) -> List[int]:
        """Decode the elements of an int8 vector."""
        if self.vec_type is not VectorType.INT8:
            raise InvalidVectorType("Vector is not Int8 type")
        return list(struct.unpack(f"<{len(self.data)}b", self.data))

    def to_json(self) -> str:
        """Render the vector as a compact JSON array."""
        if self.vec_type is VectorType.FLOAT32:
            return "[" + ",".join(_format_f32(v) for v in self.as_f32()) + "]"
        if self.vec_type is VectorType.INT8:
            return "[" + ",".join(str(v) for v in self.as_i8()) + "]"
        raise UnsupportedOperation("Binary vector to JSON is not supported")

    def _check_compatible(self, other: Vector, verb: str) -> None:
        if self.dimensions != other.dimensions:
            raise DimensionMismatch(self.dimensions, other.dimensions)
        if self.vec_type is not other.vec_type:
            raise InvalidVectorType(f"Vector types must match for {verb}")

    def add(self, other: Vector) -> Vector:
        """Element-wise sum; int8 saturates."""
        self._check_compatible(other, "addition")
        if self.vec_type is VectorType.FLOAT32:
            return Vector.from_f32(a + b for a, b in zip(self.as_f32(), other.as_f32()))
        if self.vec_type is VectorType.INT8:
            return Vector.from_i8(
                max(-128, min(127, a + b)) for a, b in zip(self.as_i8(), other.as_i8())
            )
        raise InvalidVectorType("Cannot add binary vectors")

    def sub(self, other: Vector) -> Vector:
        """Element-wise difference; int8 saturates."""
        self._check_compatible(other, "subtraction")
        if self.vec_type is VectorType.FLOAT32:
            return Vector.from_f32(a - b for a, b in zip(self.as_f32(), other.as_f32()))
        if self.vec_type is VectorType.INT8:
            return Vector.from_i8(
                max(-128, min(127, a - b)) for a, b in zip(self.as_i8(), other.as_i8())
            )
        raise InvalidVectorType("Cannot subtract binary vectors")

    def normalize(self) -> Vector:
        """Scale a float32 vector to unit L2 length."""
        if self.vec_type is VectorType.INT8:
            raise InvalidVectorType("Cannot normalize Int8 vectors (would lose precision)")
        if self.vec_type is VectorType.BIT:
            raise InvalidVectorType("Cannot normalize binary vectors")
        vals = self.as_f32()
        magnitude = _f32(math.sqrt(_f32_sum(_f32(x * x) for x in vals)))
        if magnitude == 0.0:
            raise InvalidParameter("Cannot normalize zero vector")
        return Vector.from_f32(x / magnitude for x in vals)

    def slice(self, start: int, end: int) -> Vector:
        """Sub-vector of elements start (inclusive) to end (exclusive)."""
        if start < 0 or start >= self.dimensions or end > self.dimensions or start >= end:
            raise InvalidParameter(
                f"Invalid slice range: {start}..{end} for vector of length {self.dimensions}"
            )
        if self.vec_type is VectorType.FLOAT32:
            return Vector.from_f32(self.as_f32()[start:end])
        if self.vec_type is VectorType.INT8:
            return Vector.from_i8(self.as_i8()[start:end])
        if start % 8 or end % 8:
            raise InvalidParameter(
                "Binary vector slice must be at byte boundaries (multiples of 8)"
            )
        return Vector(VectorType.BIT, end - start, self.data[start // 8 : end // 8])

    def quantize_int8(self) -> Vector:
        """Map this vector's own [min, max] range onto [-128, 127]."""
        if self.vec_type is not VectorType.FLOAT32:
            raise InvalidVectorType("Can only quantize Float32 vectors")
        vals = self.as_f32()
        finite = [v for v in vals if not math.isnan(v)]
        min_val = min(finite, default=math.inf)
        max_val = max(finite, default=-math.inf)
        if min_val == max_val:
            return Vector.from_i8([0] * len(vals))

        value_range = _f32(max_val - min_val)

        def quantize(v: float) -> int:
            normalized = _f32(_f32(v - min_val) / value_range)
            scaled = _f32(_f32(normalized * 255.0) - 128.0)
            rounded = _round_half_away(scaled)
            if math.isnan(rounded):
                return 0
            return _saturate_i8(max(-128.0, min(127.0, rounded)))

        return Vector.from_i8(quantize(v) for v in vals)

    def quantize_int8_for_index(self) -> Vector:
        """Symmetric fixed-scale quantization: [-1, 1] maps onto [-127, 127]."""
        if self.vec_type is not VectorType.FLOAT32:
            raise InvalidVectorType("Can only quantize Float32 vectors")

        def quantize(v: float) -> int:
            if math.isnan(v):
                return 0
            clamped = max(-1.0, min(1.0, v))
            return _saturate_i8(_round_half_away(_f32(clamped * 127.0)))

        return Vector.from_i8(quantize(v) for v in self.as_f32())

    def quantize_binary(self) -> Vector:
        """One bit per element, set where the element is at or above the mean."""
        if self.vec_type is not VectorType.FLOAT32:
            raise InvalidVectorType("Can only quantize Float32 vectors to binary")
        vals = self.as_f32()
        packed = bytearray((len(vals) + 7) // 8)
        if vals:
            mean = _f32(_f32_sum(vals) / _f32(float(len(vals))))
            for i, val in enumerate(vals):
                if val >= mean:
                    packed[i // 8] |= 1 << (i % 8)
        return Vector(VectorType.BIT, len(vals), bytes(packed))