import sqlite3

import pytest

from hnswvec.shadow_schema import (
    DataColumnDef,
    ShadowTablesConfig,
    VectorColumnDef,
    create_hnsw_shadow_tables,
    create_hnsw_shadow_tables_with_params,
    create_shadow_tables,
    drop_shadow_tables,
    is_shadow_table,
)
from hnswvec.types import IndexQuantization, VectorType


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


def _tables(conn):
    return [
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
    ]


def _meta(conn, name, columns):
    return conn.execute(f'SELECT {columns} FROM "{name}" WHERE id = 1').fetchone()


def test_create_shadow_tables_basic(conn):
    config = ShadowTablesConfig(
        vector_columns=[VectorColumnDef("embedding", 768, 4)], data_columns=[]
    )
    create_shadow_tables(conn, "main", "test_table", config)
    tables = _tables(conn)
    assert "test_table_data" in tables
    assert "test_table_info" in tables


def test_create_shadow_tables_with_columns(conn):
    config = ShadowTablesConfig(
        vector_columns=[
            VectorColumnDef("embedding", 768, 4),
            VectorColumnDef("embedding2", 384, 4),
        ],
        data_columns=[DataColumnDef("id", "TEXT"), DataColumnDef("score", "REAL")],
    )
    create_shadow_tables(conn, "main", "test_table", config)
    (schema,) = conn.execute(
        "SELECT sql FROM sqlite_master WHERE name='test_table_data'"
    ).fetchone()
    assert "rowid INTEGER PRIMARY KEY" in schema
    assert "vec00 BLOB" in schema
    assert "vec01 BLOB" in schema
    assert "col00 TEXT" in schema
    assert "col01 REAL" in schema


def test_info_table_holds_version_rows(conn):
    create_shadow_tables(conn, "main", "t", ShadowTablesConfig())
    rows = dict(conn.execute("SELECT key, value FROM t_info"))
    assert rows == {
        "CREATE_VERSION": "0.2.0",
        "CREATE_VERSION_MAJOR": 0,
        "CREATE_VERSION_MINOR": 2,
        "CREATE_VERSION_PATCH": 0,
        "STORAGE_SCHEMA": "unified",
    }


def test_create_shadow_tables_twice_fails(conn):
    create_shadow_tables(conn, "main", "t", ShadowTablesConfig())
    with pytest.raises(sqlite3.OperationalError):
        create_shadow_tables(conn, "main", "t", ShadowTablesConfig())


def test_create_hnsw_shadow_tables(conn):
    create_hnsw_shadow_tables(conn, "test_table", "embedding")
    tables = [t for t in _tables(conn) if t.startswith("test_table_embedding_hnsw_")]
    assert sorted(tables) == [
        "test_table_embedding_hnsw_edges",
        "test_table_embedding_hnsw_meta",
        "test_table_embedding_hnsw_nodes",
    ]


def test_create_hnsw_shadow_tables_default_metadata(conn):
    create_hnsw_shadow_tables(conn, "t", "v")
    row = _meta(
        conn,
        "t_v_hnsw_meta",
        "m, max_m0, ef_construction, ef_search, entry_point_rowid, num_nodes, "
        "element_type, distance_metric, rng_seed, index_quantization, normalize_vectors",
    )
    assert row == (32, 64, 400, 200, -1, 0, "float32", "l2", 12345, "none", 1)


def test_create_hnsw_shadow_tables_idempotent(conn):
    create_hnsw_shadow_tables(conn, "t", "v")
    create_hnsw_shadow_tables(conn, "t", "v")
    (count,) = conn.execute('SELECT COUNT(*) FROM "t_v_hnsw_meta"').fetchone()
    assert count == 1


def test_meta_table_allows_only_id_one(conn):
    create_hnsw_shadow_tables(conn, "t", "v")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute('INSERT INTO "t_v_hnsw_meta" (id) VALUES (2)')


def test_edges_primary_key_rejects_duplicates(conn):
    create_hnsw_shadow_tables(conn, "t", "v")
    conn.execute(
        'INSERT INTO "t_v_hnsw_edges" (from_rowid, to_rowid, level) VALUES (1, 2, 0)'
    )
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            'INSERT INTO "t_v_hnsw_edges" (from_rowid, to_rowid, level) VALUES (1, 2, 0)'
        )
    (distance,) = conn.execute('SELECT distance FROM "t_v_hnsw_edges"').fetchone()
    assert distance == 0.0


def test_nodes_created_at_defaults_to_timestamp(conn):
    create_hnsw_shadow_tables(conn, "t", "v")
    conn.execute('INSERT INTO "t_v_hnsw_nodes" (rowid, level) VALUES (1, 0)')
    (created_at,) = conn.execute('SELECT created_at FROM "t_v_hnsw_nodes"').fetchone()
    assert isinstance(created_at, int) and created_at > 1_000_000_000


def test_with_params_custom_values(conn):
    create_hnsw_shadow_tables_with_params(
        conn, "t", "v", 128, VectorType.FLOAT32, "cosine", IndexQuantization.INT8, 16, 100
    )
    row = _meta(
        conn,
        "t_v_hnsw_meta",
        "m, max_m0, ef_construction, dimensions, element_type, distance_metric, "
        "index_quantization, normalize_vectors",
    )
    assert row == (16, 32, 100, 128, "float32", "cosine", "int8", 1)


def test_with_params_defaults_and_l2(conn):
    create_hnsw_shadow_tables_with_params(
        conn, "t", "v", 8, VectorType.INT8, "l2", IndexQuantization.NONE, None, None
    )
    row = _meta(
        conn,
        "t_v_hnsw_meta",
        "m, max_m0, ef_construction, element_type, index_quantization, normalize_vectors",
    )
    assert row == (32, 64, 400, "int8", "none", 0)


def test_with_params_keeps_existing_row(conn):
    create_hnsw_shadow_tables_with_params(
        conn, "t", "v", 4, VectorType.FLOAT32, "l2", IndexQuantization.NONE, 8, 50
    )
    create_hnsw_shadow_tables_with_params(
        conn, "t", "v", 4, VectorType.FLOAT32, "l2", IndexQuantization.NONE, 64, 200
    )
    assert _meta(conn, "t_v_hnsw_meta", "m, ef_construction") == (8, 50)


def test_drop_shadow_tables_removes_everything(conn):
    config = ShadowTablesConfig(
        vector_columns=[VectorColumnDef("embedding", 3, 4)],
        data_columns=[DataColumnDef("name", "TEXT")],
    )
    create_shadow_tables(conn, "main", "cleanup", config)
    create_hnsw_shadow_tables(conn, "cleanup", "embedding")
    conn.execute('CREATE TABLE "cleanup_vector_chunks00" (x)')
    conn.execute('CREATE TABLE "other" (x)')

    drop_shadow_tables(conn, "main", "cleanup", config, ["embedding"])

    assert _tables(conn) == ["other"]


def test_drop_shadow_tables_allows_recreate(conn):
    config = ShadowTablesConfig(vector_columns=[VectorColumnDef("e", 3, 4)])
    create_shadow_tables(conn, "main", "t", config)
    drop_shadow_tables(conn, "main", "t", config, ["e"])
    create_shadow_tables(conn, "main", "t", config)
    assert {"t_data", "t_info"} <= set(_tables(conn))


def test_is_shadow_table():
    assert is_shadow_table("test_table_data")
    assert is_shadow_table("test_table_info")
    assert is_shadow_table("test_table_embedding_hnsw_meta")
    assert is_shadow_table("test_table_embedding_hnsw_nodes")
    assert is_shadow_table("test_table_embedding_hnsw_edges")
    assert is_shadow_table("old_vector_chunks02")
    assert not is_shadow_table("test_table")
    assert not is_shadow_table("other_table")
    assert not is_shadow_table("old_vector_chunks04")