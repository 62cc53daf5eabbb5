# hnswvec

Vector values, SQLite shadow-table storage and scalar SQL vector functions,
built on the standard library's `sqlite3` module. It has no third-party
dependencies.

## Modules

### `hnswvec.types`

- `VectorType` — `FLOAT32`, `INT8`, `BIT`. `VectorType.parse(s)` accepts
  `float32`/`float`, `int8`, `bit`/`binary` in any case;
  `bytes_per_element()` gives 4, 1 and 0 (bit vectors pack eight elements per
  byte).
- `IndexQuantization` — `NONE`, `INT8`; `IndexQuantization.parse(s)` is
  case-insensitive.
- Errors, all subclasses of `VectorError`: `InvalidVectorFormat`,
  `InvalidVectorType`, `InvalidParameter`, `DimensionMismatch` (with
  `expected` and `actual`) and `UnsupportedOperation`. All but
  `UnsupportedOperation` are also `ValueError`s; `UnsupportedOperation` is a
  `NotImplementedError`.

### `hnswvec.vector`

`Vector` is a frozen dataclass with `vec_type`, `dimensions` and `data`
(little-endian bytes).

- Construction: `Vector.from_f32(values)`, `Vector.from_i8(values)`,
  `Vector.from_json(text, vec_type)` (float32 or int8; bit vectors raise
  `UnsupportedOperation`), `Vector.from_blob(blob, vec_type, dimensions)`.
- Decoding: `as_f32()`, `as_i8()`, `to_json()` (compact JSON, e.g.
  `[1.0,2.0,3.0]`; bit vectors raise `UnsupportedOperation`).
- Arithmetic: `add(other)` and `sub(other)` (int8 saturates),
  `normalize()` (float32 only; a zero vector raises `InvalidParameter`),
  `slice(start, end)` (end exclusive; bit vectors only at multiples of 8).
- Quantization: `quantize_int8()` maps the vector's own `[min, max]` onto
  `[-128, 127]`; `quantize_int8_for_index()` maps `[-1, 1]` onto
  `[-127, 127]` with clamping; `quantize_binary()` sets one bit per element
  that is at or above the mean.

### `hnswvec.shadow_schema`

Creates and drops the ordinary tables that hold a vector table's data:

- `create_shadow_tables(conn, schema, table_name, config)` creates
  `{table}_data` (`rowid`, `vec00`, `vec01`, ... as BLOB, then `col00`,
  `col01`, ... with their declared types) and `{table}_info` with its version
  rows (`CREATE_VERSION` = `0.2.0`, `STORAGE_SCHEMA` = `unified`, ...).
  `config` is a `ShadowTablesConfig` of `VectorColumnDef` and `DataColumnDef`
  entries.
- `create_hnsw_shadow_tables(conn, table_name, column_name)` creates
  `{table}_{column}_hnsw_meta`, `_hnsw_nodes` and `_hnsw_edges`, with a
  metadata row of defaults (M 32, max_m0 64, ef_construction 400,
  ef_search 200).
- `create_hnsw_shadow_tables_with_params(conn, table_name, column_name,
  dimensions, element_type, distance_metric, index_quantization, m,
  ef_construction)` does the same and records the given parameters, sets
  `max_m0` to twice M, stores a random `rng_seed`, and sets
  `normalize_vectors` only for the cosine metric. An existing metadata row is
  left unchanged.
- `drop_shadow_tables(conn, schema, table_name, config, vector_column_names)`
  drops every shadow table the table may own, including older chunked layouts.
- `is_shadow_table(name)` tells whether a name ends in a shadow-table suffix.

### `hnswvec.shadow_rows`

Row access to `{table}_data`: `insert_row` (insert or replace),
`read_vector`, `read_column`, `update_row` (entries given as `None` are left
unchanged), `delete_row`, `get_all_rowids` (ascending), `row_exists` and
`next_rowid` (largest rowid plus one, or 1 when empty).

### `hnswvec.sql_functions`

`register_all(conn)` installs scalar functions on a `sqlite3.Connection`.
Vector arguments may be JSON text or blobs; blob results come back as
`bytes`. `vector_from_sql(value, vec_type)` is the parser they use.

| Function | Result |
| --- | --- |
| `vec_f32(v)`, `vec_int8(v)`, `vec_bit(v)` | vector blob |
| `vec_distance_l2(a, b)` | Euclidean distance |
| `vec_distance_l1(a, b)` | Manhattan distance |
| `vec_distance_cosine(a, b)` | 1 − cosine similarity |
| `vec_distance_hamming(a, b)` | differing bits of two bit vectors |
| `vec_length(v)`, `vec_type(v)`, `vec_to_json(v)` | dimensions, type name, JSON text |
| `vec_add(a, b)`, `vec_sub(a, b)`, `vec_normalize(v)`, `vec_slice(v, start, end)` | float32 blob |
| `vec_quantize_int8(v)`, `vec_quantize_binary(v)` | int8 or bit blob |
| `vec_version()` | `hnswvec 0.1.0` |
| `vec_rebuild_hnsw(table, column [, M, ef_construction])` | summary text |

`vec_rebuild_hnsw` resets the column's `_hnsw_meta` row (optionally with a
new M in 2–100 and ef_construction in 10–2000), then sets every non-NULL
value of the column to NULL and restores it. When a function fails, `sqlite3`
raises `sqlite3.OperationalError`.

## Example

```python
import sqlite3

from hnswvec.vector import Vector
from hnswvec.shadow_schema import ShadowTablesConfig, VectorColumnDef, create_shadow_tables
from hnswvec.shadow_rows import insert_row, read_vector
from hnswvec.sql_functions import register_all

conn = sqlite3.connect(":memory:")
register_all(conn)

print(conn.execute("SELECT vec_distance_l2('[1,2,3]', '[4,5,6]')").fetchone()[0])

config = ShadowTablesConfig(
    vector_columns=[VectorColumnDef(name="embedding", dimensions=3, element_size=4)],
    data_columns=[],
)
create_shadow_tables(conn, "main", "docs", config)

v = Vector.from_f32([1.0, 2.0, 3.0])
insert_row(conn, "main", "docs", 1, [v.data], [])
assert read_vector(conn, "main", "docs", 0, 1) == v.data
```

## What it does not do

There is no `vec0` virtual table, no HNSW graph construction and no
nearest-neighbour search. The HNSW tables are created and their metadata
recorded, but nothing here fills `_hnsw_nodes` or `_hnsw_edges`. Likewise
`vec_rebuild_hnsw` only resets the metadata and rewrites the column's values;
rebuilding a graph depends on whatever handles writes to that table.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```