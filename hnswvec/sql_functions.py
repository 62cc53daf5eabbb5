"""SQL scalar functions for building, inspecting, comparing and quantizing vectors.

``register_all`` installs the functions on a :mod:`sqlite3` connection.
Vector arguments are accepted as JSON text or as raw little-endian blobs.
Blob results are returned as ``bytes``.
"""

from __future__ import annotations

import math
import sqlite3
from contextlib import closing
from typing import Any, Callable, Optional, Tuple

from hnswvec.types import (
    DimensionMismatch,
    InvalidParameter,
    InvalidVectorFormat,
    VectorError,
    VectorType,
)
from hnswvec.vector import Vector

VERSION = "0.1.0"

_BLOB_TYPES = (bytes, bytearray, memoryview)


def vector_from_sql(value: Any, vec_type: VectorType) -> Vector:
    """Build a vector from an SQL value: JSON text or a blob of the given element type."""
    if isinstance(value, str):
        return Vector.from_json(value, vec_type)
    if isinstance(value, _BLOB_TYPES):
        blob = bytes(value)
        if vec_type is VectorType.FLOAT32:
            if not blob or len(blob) % 4:
                raise InvalidVectorFormat(
                    "Float32 blob must be a non-zero multiple of 4 bytes, "
                    f"got {len(blob)} bytes"
                )
            dimensions = len(blob) // 4
        elif vec_type is VectorType.INT8:
            if not blob:
                raise InvalidVectorFormat("Int8 blob must not be empty")
            dimensions = len(blob)
        else:
            if not blob:
                raise InvalidVectorFormat("Bit blob must not be empty")
            dimensions = len(blob) * 8
        return Vector.from_blob(blob, vec_type, dimensions)
    raise InvalidVectorFormat("Vector must be TEXT (JSON) or BLOB")


def _any_vector(value: Any) -> Vector:
    """Parse as float32, then int8, then bit; the last failure is raised."""
    error: Optional[VectorError] = None
    for vec_type in (VectorType.FLOAT32, VectorType.INT8, VectorType.BIT):
        try:
            return vector_from_sql(value, vec_type)
        except VectorError as exc:
            error = exc
    assert error is not None
    raise error


def _float32_blob(value: Any) -> Vector:
    """Interpret a blob argument as a float32 vector without size validation."""
    if not isinstance(value, _BLOB_TYPES):
        raise InvalidVectorFormat("Vector argument must be a BLOB")
    blob = bytes(value)
    return Vector.from_blob(blob, VectorType.FLOAT32, len(blob) // 4)


def _check_dims(a: Vector, b: Vector) -> None:
    if a.dimensions != b.dimensions:
        raise DimensionMismatch(a.dimensions, b.dimensions)


def _l2(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a.as_f32(), b.as_f32())))


def _l1(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    return sum(abs(x - y) for x, y in zip(a.as_f32(), b.as_f32()))


def _cosine(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    xs, ys = a.as_f32(), b.as_f32()
    dot = sum(x * y for x, y in zip(xs, ys))
    norm = math.sqrt(sum(x * x for x in xs)) * math.sqrt(sum(y * y for y in ys))
    if norm == 0.0:
        raise InvalidParameter("Cannot compute cosine distance of a zero vector")
    return 1.0 - dot / norm


def _hamming(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    return float(sum((x ^ y).bit_count() for x, y in zip(a.data, b.data)))


def _distance_function(
    vec_type: VectorType, metric: Callable[[Vector, Vector], float]
) -> Callable[[Any, Any], float]:
    def compute(left: Any, right: Any) -> float:
        return float(metric(vector_from_sql(left, vec_type), vector_from_sql(right, vec_type)))

    return compute


def _constructor(vec_type: VectorType) -> Callable[[Any], bytes]:
    def build(value: Any) -> bytes:
        return vector_from_sql(value, vec_type).data

    return build


def _vec_slice(value: Any, start: Any, end: Any) -> bytes:
    if not isinstance(start, int) or not isinstance(end, int):
        raise InvalidParameter("vec_slice() start and end must be integers")
    return _float32_blob(value).slice(start, end).data


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _run(conn: sqlite3.Connection, sql: str) -> None:
    with closing(conn.execute(sql)):
        pass


def _rebuild_arguments(args: Tuple[Any, ...]) -> Tuple[str, str, Optional[int], Optional[int]]:
    if len(args) not in (2, 4):
        raise InvalidParameter(
            "vec_rebuild_hnsw() requires 2 or 4 arguments: table_name, column_name "
            "[, new_M, new_ef_construction]"
        )
    table_name, column_name = args[0], args[1]
    if not isinstance(table_name, str) or not isinstance(column_name, str):
        raise InvalidParameter("table_name and column_name must be text")
    if len(args) == 2:
        return table_name, column_name, None, None
    m, ef = args[2], args[3]
    if not isinstance(m, int) or not isinstance(ef, int):
        raise InvalidParameter("M and ef_construction must be integers")
    if not 2 <= m <= 100:
        raise InvalidParameter("M must be between 2 and 100")
    if not 10 <= ef <= 2000:
        raise InvalidParameter("ef_construction must be between 10 and 2000")
    return table_name, column_name, m, ef


def _rebuild_hnsw(conn: sqlite3.Connection, *args: Any) -> str:
    """Reset HNSW metadata and re-store every vector so the index is rebuilt."""
    table_name, column_name, new_m, new_ef = _rebuild_arguments(args)
    table = _quote(table_name)
    column = _quote(column_name)

    with closing(
        conn.execute(f"SELECT COUNT(*) FROM {table} WHERE {column} IS NOT NULL")
    ) as cursor:
        vector_count = int(cursor.fetchone()[0])

    updates = [
        "entry_point_rowid = -1",
        "entry_point_level = -1",
        "num_nodes = 0",
        "hnsw_version = 1",
    ]
    if new_m is not None:
        updates.append(f"m = {new_m}")
        updates.append(f"max_m0 = {new_m * 2}")
    if new_ef is not None:
        updates.append(f"ef_construction = {new_ef}")
    meta_table = _quote(f"{table_name}_{column_name}_hnsw_meta")
    _run(conn, f"UPDATE {meta_table} SET {', '.join(updates)} WHERE id = 1")

    # Clearing and restoring each vector sends it through the insert path again.
    _run(
        conn,
        f"CREATE TEMP TABLE _rebuild_temp AS SELECT rowid, {column} FROM {table} "
        f"WHERE {column} IS NOT NULL",
    )
    _run(conn, f"UPDATE {table} SET {column} = NULL WHERE {column} IS NOT NULL")
    _run(
        conn,
        f"UPDATE {table} SET {column} = (SELECT {column} FROM _rebuild_temp "
        f"WHERE _rebuild_temp.rowid = {table}.rowid) "
        "WHERE rowid IN (SELECT rowid FROM _rebuild_temp)",
    )
    _run(conn, "DROP TABLE _rebuild_temp")

    return f"Rebuilt HNSW index for {table_name}.{column_name}: {vector_count} vectors"


def register_all(conn: sqlite3.Connection) -> None:
    """Install every vector SQL function on the connection."""

    def deterministic(name: str, narg: int, func: Callable[..., Any]) -> None:
        conn.create_function(name, narg, func, deterministic=True)

    deterministic("vec_f32", 1, _constructor(VectorType.FLOAT32))
    deterministic("vec_int8", 1, _constructor(VectorType.INT8))
    deterministic("vec_bit", 1, _constructor(VectorType.BIT))

    deterministic("vec_distance_l2", 2, _distance_function(VectorType.FLOAT32, _l2))
    deterministic("vec_distance_l1", 2, _distance_function(VectorType.FLOAT32, _l1))
    deterministic("vec_distance_cosine", 2, _distance_function(VectorType.FLOAT32, _cosine))
    deterministic("vec_distance_hamming", 2, _distance_function(VectorType.BIT, _hamming))

    deterministic("vec_length", 1, lambda value: _any_vector(value).dimensions)
    deterministic("vec_type", 1, lambda value: _any_vector(value).vec_type.value)
    deterministic("vec_to_json", 1, lambda value: _any_vector(value).to_json())

    deterministic("vec_add", 2, lambda a, b: _float32_blob(a).add(_float32_blob(b)).data)
    deterministic("vec_sub", 2, lambda a, b: _float32_blob(a).sub(_float32_blob(b)).data)
    deterministic("vec_normalize", 1, lambda a: _float32_blob(a).normalize().data)
    deterministic("vec_slice", 3, _vec_slice)

    deterministic("vec_quantize_int8", 1, lambda a: _float32_blob(a).quantize_int8().data)
    deterministic(
        "vec_quantize_binary", 1, lambda a: _float32_blob(a).quantize_binary().data
    )

    deterministic("vec_version", 0, lambda: f"hnswvec {VERSION}")

    conn.create_function("vec_rebuild_hnsw", -1, lambda *args: _rebuild_hnsw(conn, *args))