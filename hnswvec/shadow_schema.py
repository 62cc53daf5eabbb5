"""Creation and removal of the shadow tables that back a vec0 table and its HNSW indexes.

A vec0 table keeps its data in ordinary tables:

* ``{table}_data`` holds every column, vectors and others, keyed by rowid;
* ``{table}_info`` holds version metadata;
* ``{table}_{column}_hnsw_meta``, ``_hnsw_nodes`` and ``_hnsw_edges`` hold the
  HNSW graph of one vector column.
"""

from __future__ import annotations

import random
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from hnswvec.types import IndexQuantization, VectorType

DEFAULT_M = 32
DEFAULT_EF_CONSTRUCTION = 400

_INFO_ROWS = (
    ("CREATE_VERSION", "0.2.0"),
    ("CREATE_VERSION_MAJOR", 0),
    ("CREATE_VERSION_MINOR", 2),
    ("CREATE_VERSION_PATCH", 0),
    ("STORAGE_SCHEMA", "unified"),
)

_SHADOW_SUFFIXES = (
    "_data",
    "_info",
    # Older chunked layout, still recognised.
    "_rowids",
    "_chunks",
    "_auxiliary",
    "_metadatachunks00",
    "_metadatachunks01",
    "_metadatachunks02",
    "_metadatachunks03",
    "_metadatatext00",
    "_metadatatext01",
    "_metadatatext02",
    "_metadatatext03",
    "_vector_chunks00",
    "_vector_chunks01",
    "_vector_chunks02",
    "_vector_chunks03",
    "_hnsw_meta",
    "_hnsw_nodes",
    "_hnsw_edges",
)


@dataclass(frozen=True)
class VectorColumnDef:
    """A vector column of the ``_data`` table."""

    name: str
    dimensions: int
    element_size: int  # 4 for float32, 1 for int8


@dataclass(frozen=True)
class DataColumnDef:
    """A non-vector column of the ``_data`` table."""

    name: str
    col_type: str  # INTEGER, TEXT, REAL or BLOB


@dataclass
class ShadowTablesConfig:
    """The columns the shadow tables are created for."""

    vector_columns: List[VectorColumnDef] = field(default_factory=list)
    data_columns: List[DataColumnDef] = field(default_factory=list)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _qualified(schema: str, name: str) -> str:
    return f"{_quote(schema)}.{_quote(name)}"


def _hnsw_table(table_name: str, column_name: str, kind: str) -> str:
    return _quote(f"{table_name}_{column_name}_hnsw_{kind}")


def _name_of(value: Union[str, Enum]) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _random_seed() -> int:
    """A random signed 64-bit seed for HNSW level generation."""
    seed = random.getrandbits(64)
    return seed - (1 << 64) if seed >= (1 << 63) else seed


def drop_shadow_tables(
    conn: sqlite3.Connection,
    schema: str,
    table_name: str,
    config: ShadowTablesConfig,
    vector_column_names: Iterable[str],
) -> None:
    """Drop every shadow table a vec0 table may own, old layouts included.

    Tables that do not exist, or cannot be dropped, are skipped.
    """
    names = [
        _qualified(schema, f"{table_name}{suffix}")
        for suffix in ("_data", "_info", "_chunks", "_rowids", "_auxiliary")
    ]
    names.extend(
        _qualified(schema, f"{table_name}_vector_chunks{i:02d}")
        for i in range(max(len(config.vector_columns), 4))
    )
    for i in range(16):
        names.append(_qualified(schema, f"{table_name}_metadatachunks{i:02d}"))
        names.append(_qualified(schema, f"{table_name}_metadatatext{i:02d}"))
    for column in vector_column_names:
        names.extend(_hnsw_table(table_name, column, kind) for kind in ("meta", "nodes", "edges"))

    for name in names:
        try:
            conn.execute(f"DROP TABLE IF EXISTS {name}")
        except sqlite3.Error:
            continue


def create_shadow_tables(
    conn: sqlite3.Connection,
    schema: str,
    table_name: str,
    config: ShadowTablesConfig,
) -> None:
    """Create the unified ``_data`` table and the ``_info`` table with version rows."""
    columns = ["rowid INTEGER PRIMARY KEY"]
    columns.extend(f"vec{i:02d} BLOB" for i in range(len(config.vector_columns)))
    columns.extend(f"col{i:02d} {col.col_type}" for i, col in enumerate(config.data_columns))
    data_table = _qualified(schema, f"{table_name}_data")
    conn.execute(f"CREATE TABLE {data_table} ({', '.join(columns)});")

    info_table = _qualified(schema, f"{table_name}_info")
    conn.execute(f"CREATE TABLE {info_table} (key TEXT PRIMARY KEY, value);")
    conn.executemany(f"INSERT INTO {info_table} (key, value) VALUES (?, ?)", _INFO_ROWS)


def _create_hnsw_tables(conn: sqlite3.Connection, table_name: str, column_name: str) -> str:
    """Create the meta, nodes and edges tables; return the quoted meta table name."""
    meta = _hnsw_table(table_name, column_name, "meta")
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {meta} ("
        "id INTEGER PRIMARY KEY CHECK (id = 1), "
        "m INTEGER NOT NULL DEFAULT 32, "
        "max_m0 INTEGER NOT NULL DEFAULT 64, "
        "ef_construction INTEGER NOT NULL DEFAULT 400, "
        "ef_search INTEGER NOT NULL DEFAULT 200, "
        "max_level INTEGER NOT NULL DEFAULT 16, "
        "level_factor REAL NOT NULL DEFAULT 0.28768207245178085, "
        "entry_point_rowid INTEGER NOT NULL DEFAULT -1, "
        "entry_point_level INTEGER NOT NULL DEFAULT -1, "
        "num_nodes INTEGER NOT NULL DEFAULT 0, "
        "dimensions INTEGER NOT NULL DEFAULT 0, "
        "element_type TEXT NOT NULL DEFAULT 'float32', "
        "distance_metric TEXT NOT NULL DEFAULT 'l2', "
        "rng_seed INTEGER NOT NULL DEFAULT 12345, "
        "hnsw_version INTEGER NOT NULL DEFAULT 1, "
        "index_quantization TEXT NOT NULL DEFAULT 'none', "
        "normalize_vectors INTEGER NOT NULL DEFAULT 1"
        ")"
    )
    nodes = _hnsw_table(table_name, column_name, "nodes")
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {nodes} ("
        "rowid INTEGER PRIMARY KEY, "
        "level INTEGER NOT NULL, "
        "vector BLOB, "
        "created_at INTEGER DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))"
        ")"
    )
    # WITHOUT ROWID clusters edges by (from_rowid, level) for neighbour lookups.
    edges = _hnsw_table(table_name, column_name, "edges")
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {edges} ("
        "from_rowid INTEGER NOT NULL, "
        "to_rowid INTEGER NOT NULL, "
        "level INTEGER NOT NULL, "
        "distance REAL NOT NULL DEFAULT 0.0, "
        "PRIMARY KEY (from_rowid, level, to_rowid)"
        ") WITHOUT ROWID"
    )
    return meta


def create_hnsw_shadow_tables(
    conn: sqlite3.Connection, table_name: str, column_name: str
) -> None:
    """Create the HNSW tables for a column with a metadata row of all defaults."""
    meta = _create_hnsw_tables(conn, table_name, column_name)
    conn.execute(f"INSERT OR IGNORE INTO {meta} (id) VALUES (1)")


def create_hnsw_shadow_tables_with_params(
    conn: sqlite3.Connection,
    table_name: str,
    column_name: str,
    dimensions: int = 0,
    element_type: Union[VectorType, str] = VectorType.FLOAT32,
    distance_metric: Union[str, Enum] = "l2",
    index_quantization: Union[IndexQuantization, str] = IndexQuantization.NONE,
    m: Optional[int] = None,
    ef_construction: Optional[int] = None,
) -> None:
    """Create the HNSW tables for a column and record its parameters.

    ``max_m0`` is twice ``m``. Vectors are normalized (and searched with L2)
    when the metric is cosine. An existing metadata row is left unchanged.
    """
    m_value = DEFAULT_M if m is None else int(m)
    ef_value = DEFAULT_EF_CONSTRUCTION if ef_construction is None else int(ef_construction)
    metric = _name_of(distance_metric)
    normalize = 1 if metric.lower() == "cosine" else 0

    meta = _create_hnsw_tables(conn, table_name, column_name)
    conn.execute(
        f"INSERT OR IGNORE INTO {meta} "
        "(id, m, max_m0, ef_construction, dimensions, element_type, distance_metric, "
        "index_quantization, rng_seed, normalize_vectors) "
        "VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            m_value,
            m_value * 2,
            ef_value,
            int(dimensions),
            _name_of(element_type),
            metric,
            _name_of(index_quantization),
            _random_seed(),
            normalize,
        ),
    )


def is_shadow_table(name: str) -> bool:
    """Whether a table name has the suffix of a vec0 shadow table."""
    return name.endswith(_SHADOW_SUFFIXES)