"""Test utilities for the richmark test suite.

Helpers for locating nodes by their text, building documents through a
transaction and placing the caret, so tests can stay focused on behaviour.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from richmark.model.nodes import Node, TableCellNode, TableNode, TextNode
from richmark.model.selection import RangeSelection
from richmark.model.state import NodeReader
from richmark.tables.grid import compute_table_map


def create_test_temp_dir() -> Path:
    """Create a temporary directory for test files."""
    return Path(tempfile.mkdtemp())


def cleanup_test_dir(temp_dir: Path) -> None:
    """Clean up test directory and files."""
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


def find_text(reader: NodeReader, text: str) -> TextNode:
    """Return the first text run whose text contains ``text``."""
    for node in reader.iter_descendants():
        if isinstance(node, TextNode) and text in node.text:
            return node
    raise AssertionError(f"No text run containing {text!r}")


def find_first(reader: NodeReader, node_type: type) -> Node:
    """Return the first node of ``node_type`` in document order."""
    for node in reader.iter_descendants():
        if isinstance(node, node_type):
            return node
    raise AssertionError(f"No {node_type.__name__} in document")


def find_all(reader: NodeReader, node_type: type) -> list:
    """Return every node of ``node_type`` in document order."""
    return [node for node in reader.iter_descendants() if isinstance(node, node_type)]


def caret_in(reader: NodeReader, text: str, offset: Optional[int] = None) -> RangeSelection:
    """Return a caret inside the run containing ``text`` (at its end by default)."""
    node = find_text(reader, text)
    return RangeSelection.collapsed(node.key, len(node.text) if offset is None else offset)


def cell_at(reader: NodeReader, row: int, column: int, table_key: Optional[str] = None) -> TableCellNode:
    """Return the cell covering grid position ``(row, column)`` of a table."""
    key = table_key or find_first(reader, TableNode).key
    entry = compute_table_map(reader, key).at(row, column)
    assert entry is not None, f"No cell at ({row}, {column})"
    return reader.require_typed(entry.key, TableCellNode)


def cell_texts(reader: NodeReader, table_key: Optional[str] = None) -> list[list[str]]:
    """Return the text of every cell, row by row, in grid order of the cells' starts."""
    key = table_key or find_first(reader, TableNode).key
    return [
        [reader.text_content(cell.key) for cell in reader.get_children(row.key)] for row in reader.get_children(key)
    ]


def grid_shape(reader: NodeReader, table_key: Optional[str] = None) -> tuple[int, int]:
    """Return ``(rows, columns)`` of a table's grid."""
    key = table_key or find_first(reader, TableNode).key
    table_map = compute_table_map(reader, key)
    return table_map.row_count, table_map.column_count
