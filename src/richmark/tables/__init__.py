#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Table editing: grid layout and structural operations."""

from richmark.tables.grid import GridCell, TableMap, compute_table_map, table_column_count
from richmark.tables.operations import (
    append_column,
    append_row,
    can_merge,
    can_unmerge,
    create_table,
    delete_columns,
    delete_rows,
    insert_column,
    insert_row,
    merge_cells,
    set_column_header,
    set_row_header,
    unmerge_cell,
)

__all__ = [
    "GridCell",
    "TableMap",
    "append_column",
    "append_row",
    "can_merge",
    "can_unmerge",
    "compute_table_map",
    "create_table",
    "delete_columns",
    "delete_rows",
    "insert_column",
    "insert_row",
    "merge_cells",
    "set_column_header",
    "set_row_header",
    "table_column_count",
]
