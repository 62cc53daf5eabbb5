"""Row access to the unified ``{table}_data`` shadow table.

Vector columns are stored as ``vec00``, ``vec01``, ... (BLOB) and the other
columns as ``col00``, ``col01``, ... in the order they were declared.
"""

from __future__ import annotations

import sqlite3
from typing import Any, List, Optional, Sequence


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _data_table(schema: str, table_name: str) -> str:
    return f"{_quote(schema)}.{_quote(table_name + '_data')}"


def insert_row(
    conn: sqlite3.Connection,
    schema: str,
    table_name: str,
    rowid: int,
    vectors: Sequence[bytes],
    columns: Sequence[Any],
) -> None:
    """Insert a row, replacing any row with the same rowid.

    ``vectors`` holds one blob per vector column, ``columns`` one value per
    non-vector column, both in column order.
    """
    names = ["rowid"]
    names.extend(f"vec{i:02d}" for i in range(len(vectors)))
    names.extend(f"col{i:02d}" for i in range(len(columns)))
    placeholders = ", ".join("?" for _ in names)
    params: List[Any] = [int(rowid)]
    params.extend(bytes(v) for v in vectors)
    params.extend(columns)
    conn.execute(
        f"INSERT OR REPLACE INTO {_data_table(schema, table_name)} "
        f"({', '.join(names)}) VALUES ({placeholders})",
        params,
    )


def read_vector(
    conn: sqlite3.Connection, schema: str, table_name: str, vec_idx: int, rowid: int
) -> Optional[bytes]:
    """The blob of a vector column, or None if the row is missing or the vector is NULL."""
    row = conn.execute(
        f"SELECT vec{int(vec_idx):02d} FROM {_data_table(schema, table_name)} WHERE rowid = ?",
        (int(rowid),),
    ).fetchone()
    if row is None or row[0] is None:
        return None
    return bytes(row[0])


def read_column(
    conn: sqlite3.Connection, schema: str, table_name: str, col_idx: int, rowid: int
) -> Any:
    """The value of a non-vector column, or None if the row is missing."""
    row = conn.execute(
        f"SELECT col{int(col_idx):02d} FROM {_data_table(schema, table_name)} WHERE rowid = ?",
        (int(rowid),),
    ).fetchone()
    return None if row is None else row[0]


def update_row(
    conn: sqlite3.Connection,
    schema: str,
    table_name: str,
    rowid: int,
    vectors: Sequence[Optional[bytes]],
    columns: Sequence[Any],
) -> None:
    """Update the given columns of a row; entries that are None are left unchanged."""
    assignments: List[str] = []
    params: List[Any] = []
    for i, vector in enumerate(vectors):
        if vector is not None:
            assignments.append(f"vec{i:02d} = ?")
            params.append(bytes(vector))
    for i, value in enumerate(columns):
        if value is not None:
            assignments.append(f"col{i:02d} = ?")
            params.append(value)
    if not assignments:
        return
    params.append(int(rowid))
    conn.execute(
        f"UPDATE {_data_table(schema, table_name)} SET {', '.join(assignments)} "
        "WHERE rowid = ?",
        params,
    )


def delete_row(conn: sqlite3.Connection, schema: str, table_name: str, rowid: int) -> None:
    """Delete a row; deleting a missing row does nothing."""
    conn.execute(
        f"DELETE FROM {_data_table(schema, table_name)} WHERE rowid = ?", (int(rowid),)
    )


def get_all_rowids(conn: sqlite3.Connection, schema: str, table_name: str) -> List[int]:
    """Every rowid in the table, in ascending order."""
    cursor = conn.execute(
        f"SELECT rowid FROM {_data_table(schema, table_name)} ORDER BY rowid"
    )
    return [row[0] for row in cursor]


def row_exists(conn: sqlite3.Connection, schema: str, table_name: str, rowid: int) -> bool:
    """Whether a row with this rowid exists."""
    row = conn.execute(
        f"SELECT 1 FROM {_data_table(schema, table_name)} WHERE rowid = ?", (int(rowid),)
    ).fetchone()
    return row is not None


def next_rowid(conn: sqlite3.Connection, schema: str, table_name: str) -> int:
    """One more than the largest rowid, or 1 for an empty table."""
    row = conn.execute(
        f"SELECT COALESCE(MAX(rowid), 0) + 1 FROM {_data_table(schema, table_name)}"
    ).fetchone()
    return int(row[0])