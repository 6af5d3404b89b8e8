#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/tables/operations.py
"""Structural table edits.

Every function here runs inside an open :class:`~richmark.model.state.Transaction`
and keeps the grid rectangular: each row covers the same number of grid
positions once spans are accounted for, and no two cells overlap. A function
that cannot honour that raises before touching the tree, or the caller
discards the transaction, so a rejected edit never leaves a partial change.

The ``*_at_selection`` helpers resolve their target from the transaction's
selection and are what the editor commands call.
"""

from __future__ import annotations

import logging
from typing import Optional

from richmark.constants import DEFAULT_TABLE_CELL_MIN_WIDTH
from richmark.exceptions import InvalidSelectionError, RichMarkError, TableStructureError, ValidationError
from richmark.model.nodes import HeaderState, ParagraphNode, TableCellNode, TableNode, TableRowNode
from richmark.model.selection import RangeSelection, TableSelection
from richmark.model.state import NodeReader, Transaction
from richmark.tables.grid import (
    GridCell,
    TableMap,
    cells_in_rectangle,
    compute_table_map,
    locate_cell,
    rectangle_of,
    resolve_table_cell,
    selected_cell_keys,
)

logger = logging.getLogger(__name__)


def _with_bit(state: HeaderState, bit: HeaderState, enabled: bool) -> HeaderState:
    value = int(state) | int(bit) if enabled else int(state) & ~int(bit)
    return HeaderState(value)


def create_cell(
    txn: Transaction,
    header_state: HeaderState = HeaderState.NONE,
    width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH,
) -> str:
    """Create a detached cell holding one empty paragraph and return its key."""
    paragraph = txn.create(ParagraphNode)
    return txn.create(TableCellNode, children=[paragraph.key], header_state=header_state, width=width).key


def create_table(
    txn: Transaction,
    rows: int,
    columns: int,
    width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH,
) -> str:
    """Create a detached ``rows`` x ``columns`` table of empty cells.

    Raises
    ------
    ValidationError
        If either dimension is smaller than one

    """
    if rows < 1:
        raise ValidationError(f"A table needs at least one row, got {rows}", "rows", rows)
    if columns < 1:
        raise ValidationError(f"A table needs at least one column, got {columns}", "columns", columns)
    row_keys = [
        txn.create(TableRowNode, children=[create_cell(txn, width=width) for _ in range(columns)]).key
        for _ in range(rows)
    ]
    return txn.create(TableNode, children=row_keys).key


def _cell_header(reader: NodeReader, entry: Optional[GridCell]) -> HeaderState:
    if entry is None:
        return HeaderState.NONE
    return reader.require_typed(entry.key, TableCellNode).header_state


def _position_in_row(txn: Transaction, row_key: str, start_columns: dict[str, int], column: int) -> int:
    row = txn.require_typed(row_key, TableRowNode)
    return sum(1 for cell_key in row.children if start_columns[cell_key] < column)


def insert_row(
    txn: Transaction,
    cell_key: str,
    after: bool = True,
    width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH,
) -> str:
    """Insert a row next to the row(s) covered by ``cell_key``.

    Cells spanning across the insertion boundary grow by one row instead of
    receiving a new neighbour. New cells inherit the column-header bit of the
    cell they are placed against.

    Parameters
    ----------
    txn : Transaction
        Open transaction
    cell_key : str
        Reference cell
    after : bool, default = True
        Insert below the reference cell's last row; above its first row otherwise
    width : int or None
        Width of the created cells

    Returns
    -------
    str
        Key of the new row

    """
    table_map, entry = locate_cell(txn, cell_key)
    boundary = min(entry.end_row + 1, table_map.row_count) if after else entry.start_row

    new_row = txn.create(TableRowNode)
    for column in range(table_map.column_count):
        above = table_map.at(boundary - 1, column) if boundary > 0 else None
        below = table_map.at(boundary, column)
        if above is not None and below is not None and above.key == below.key:
            if column == above.start_column:
                spanning = txn.require_typed(above.key, TableCellNode)
                txn.update(above.key, row_span=spanning.row_span + 1)
            continue
        neighbour = (above if after else below) or above or below
        inherited = bool(_cell_header(txn, neighbour) & HeaderState.COLUMN)
        header = _with_bit(HeaderState.NONE, HeaderState.COLUMN, inherited)
        txn.append(new_row.key, create_cell(txn, header, width))

    txn.insert_at(table_map.table_key, boundary, new_row.key)
    logger.debug("Inserted row at index %d of table %s", boundary, table_map.table_key)
    return new_row.key


def insert_column(
    txn: Transaction,
    cell_key: str,
    after: bool = True,
    width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH,
) -> list[str]:
    """Insert a column next to the column(s) covered by ``cell_key``.

    Returns
    -------
    list of str
        Keys of the created cells, top to bottom

    """
    table_map, entry = locate_cell(txn, cell_key)
    boundary = entry.end_column + 1 if after else entry.start_column
    start_columns = {key: cell.start_column for key, cell in table_map.cells.items()}

    created: list[str] = []
    for row_index, row_key in enumerate(table_map.row_keys):
        left = table_map.at(row_index, boundary - 1) if boundary > 0 else None
        right = table_map.at(row_index, boundary)
        if left is not None and right is not None and left.key == right.key:
            if row_index == left.start_row:
                spanning = txn.require_typed(left.key, TableCellNode)
                txn.update(left.key, col_span=spanning.col_span + 1)
            continue
        neighbour = (left if after else right) or left or right
        inherited = bool(_cell_header(txn, neighbour) & HeaderState.ROW)
        header = _with_bit(HeaderState.NONE, HeaderState.ROW, inherited)
        new_key = create_cell(txn, header, width)
        txn.insert_at(row_key, _position_in_row(txn, row_key, start_columns, boundary), new_key)
        start_columns[new_key] = boundary
        created.append(new_key)

    logger.debug("Inserted column at index %d of table %s", boundary, table_map.table_key)
    return created


def append_row(txn: Transaction, table_key: str, width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH) -> str:
    """Add a row at the bottom of a table."""
    table_map = compute_table_map(txn, table_key)
    last = table_map.at(table_map.row_count - 1, 0)
    if last is None:
        raise TableStructureError("Table has no cells to extend", table_key)
    return insert_row(txn, last.key, after=True, width=width)


def append_column(txn: Transaction, table_key: str, width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH) -> list[str]:
    """Add a column at the right edge of a table."""
    table_map = compute_table_map(txn, table_key)
    last = table_map.at(0, table_map.column_count - 1)
    if last is None:
        raise TableStructureError("Table has no cells to extend", table_key)
    return insert_column(txn, last.key, after=True, width=width)


def delete_rows(txn: Transaction, table_key: str, first: int, last: int) -> None:
    """Delete grid rows ``first`` to ``last`` (inclusive).

    Spans reaching into the range shrink; a cell that starts inside the range
    but extends below it moves to the first surviving row.

    Raises
    ------
    ValidationError
        If the range is outside the table
    TableStructureError
        If the range covers every row

    """
    table_map = compute_table_map(txn, table_key)
    if not 0 <= first <= last < table_map.row_count:
        raise ValidationError(f"Row range {first}..{last} is outside the table", "rows", (first, last))
    if first == 0 and last == table_map.row_count - 1:
        raise TableStructureError("A table must keep at least one row", table_key)

    start_columns = {key: cell.start_column for key, cell in table_map.cells.items()}
    for entry in table_map.iter_cells():
        if entry.start_row < first <= entry.end_row:
            overlap = min(entry.end_row, last) - first + 1
            txn.update(entry.key, row_span=entry.row_span - overlap)
        elif first <= entry.start_row <= last < entry.end_row:
            target_row = table_map.row_keys[last + 1]
            txn.update(entry.key, row_span=entry.end_row - last)
            txn.insert_at(target_row, _position_in_row(txn, target_row, start_columns, entry.start_column), entry.key)

    for row_key in table_map.row_keys[first : last + 1]:
        txn.remove(row_key)
    logger.debug("Deleted rows %d..%d of table %s", first, last, table_key)


def delete_columns(txn: Transaction, table_key: str, first: int, last: int) -> None:
    """Delete grid columns ``first`` to ``last`` (inclusive).

    Cells entirely inside the range are removed, cells overlapping it shrink.

    Raises
    ------
    ValidationError
        If the range is outside the table
    TableStructureError
        If the range covers every column

    """
    table_map = compute_table_map(txn, table_key)
    if not 0 <= first <= last < table_map.column_count:
        raise ValidationError(f"Column range {first}..{last} is outside the table", "columns", (first, last))
    if first == 0 and last == table_map.column_count - 1:
        raise TableStructureError("A table must keep at least one column", table_key)

    for entry in table_map.iter_cells():
        if entry.end_column < first or entry.start_column > last:
            continue
        overlap = min(entry.end_column, last) - max(entry.start_column, first) + 1
        if overlap >= entry.col_span:
            txn.remove(entry.key)
        else:
            txn.update(entry.key, col_span=entry.col_span - overlap)
    logger.debug("Deleted columns %d..%d of table %s", first, last, table_key)


def merge_cells(txn: Transaction, cell_keys: list[str]) -> str:
    """Merge cells into the top-left cell of their bounding rectangle.

    The rectangle grows until no span crosses its edge. Content of the other
    cells is appended to the target in row-major order (empty cells add
    nothing) and the other cells are removed.

    Returns
    -------
    str
        Key of the merged cell

    Raises
    ------
    InvalidSelectionError
        If fewer than two cells are given or they belong to different tables

    """
    unique_keys = list(dict.fromkeys(cell_keys))
    if len(unique_keys) < 2:
        raise InvalidSelectionError("Select at least two cells to merge")
    tables = {getattr(txn.find_ancestor(key, TableNode, include_self=False), "key", None) for key in unique_keys}
    if len(tables) != 1 or None in tables:
        raise InvalidSelectionError("Cells to merge must belong to the same table")

    table_map = compute_table_map(txn, tables.pop())  # type: ignore[arg-type]
    top, left, bottom, right = rectangle_of(table_map, unique_keys)
    entries = cells_in_rectangle(table_map, top, left, bottom, right)
    target_key = entries[0].key

    target_has_content = not txn.is_empty_block(target_key)
    for entry in entries[1:]:
        if not txn.is_empty_block(entry.key):
            if not target_has_content:
                for child in txn.get_children(target_key):
                    txn.remove(child.key)
                target_has_content = True
            txn.move_children(entry.key, target_key)
        txn.remove(entry.key)

    if not txn.require_typed(target_key, TableCellNode).children:
        txn.append(target_key, txn.create(ParagraphNode).key)
    txn.update(target_key, row_span=bottom - top + 1, col_span=right - left + 1)
    logger.debug("Merged %d cells into %s (%dx%d)", len(entries), target_key, bottom - top + 1, right - left + 1)
    return target_key


def unmerge_cell(txn: Transaction, cell_key: str) -> list[str]:
    """Split a spanning cell back into unit cells.

    The original cell keeps its content and the top-left position; every other
    covered position receives an empty cell with the same header state.

    Returns
    -------
    list of str
        Keys of the created cells in row-major order

    Raises
    ------
    InvalidSelectionError
        If the cell does not span

    """
    table_map, entry = locate_cell(txn, cell_key)
    cell = txn.require_typed(cell_key, TableCellNode)
    if not cell.is_spanning:
        raise InvalidSelectionError("Only merged cells can be unmerged")

    start_columns = {key: placed.start_column for key, placed in table_map.cells.items()}
    created: list[str] = []
    for row_index in range(entry.start_row, min(entry.end_row, table_map.row_count - 1) + 1):
        row_key = table_map.row_keys[row_index]
        for column in range(entry.start_column, entry.end_column + 1):
            if row_index == entry.start_row and column == entry.start_column:
                continue
            new_key = create_cell(txn, cell.header_state, cell.width)
            txn.insert_at(row_key, _position_in_row(txn, row_key, start_columns, column), new_key)
            start_columns[new_key] = column
            created.append(new_key)

    txn.update(cell_key, row_span=1, col_span=1)
    logger.debug("Unmerged %s into %d cells", cell_key, len(created) + 1)
    return created


def set_row_header(txn: Transaction, table_key: str, row: int, enabled: bool = True) -> None:
    """Set or clear the row-header bit on every cell covering grid row ``row``."""
    table_map = compute_table_map(txn, table_key)
    if not 0 <= row < table_map.row_count:
        raise ValidationError(f"Row {row} is outside the table", "row", row)
    for key in dict.fromkeys(entry.key for entry in table_map.grid[row] if entry is not None):
        cell = txn.require_typed(key, TableCellNode)
        txn.update(key, header_state=_with_bit(cell.header_state, HeaderState.ROW, enabled))


def set_column_header(txn: Transaction, table_key: str, column: int, enabled: bool = True) -> None:
    """Set or clear the column-header bit on every cell covering grid column ``column``."""
    table_map = compute_table_map(txn, table_key)
    if not 0 <= column < table_map.column_count:
        raise ValidationError(f"Column {column} is outside the table", "column", column)
    keys = [table_map.at(row, column) for row in range(table_map.row_count)]
    for key in dict.fromkeys(entry.key for entry in keys if entry is not None):
        cell = txn.require_typed(key, TableCellNode)
        txn.update(key, header_state=_with_bit(cell.header_state, HeaderState.COLUMN, enabled))


# ----------------------------------------------------------------------
# Selection-driven helpers
# ----------------------------------------------------------------------


def select_cell_start(txn: Transaction, cell_key: str) -> None:
    """Place a caret at the start of ``cell_key``."""
    text = txn.first_text_node(cell_key)
    if text is not None:
        txn.set_selection(RangeSelection.collapsed(text.key, 0))
        return
    cell = txn.require_typed(cell_key, TableCellNode)
    target = cell.children[0] if cell.children else cell_key
    txn.set_selection(RangeSelection.collapsed(target, 0, kind="element"))


def _selection_span(txn: Transaction) -> tuple[TableMap, int, int, int, int]:
    keys = selected_cell_keys(txn, txn.selection)
    table = txn.find_ancestor(keys[0], TableNode, include_self=False)
    if table is None:
        raise InvalidSelectionError("Selection is not inside a table")
    table_map = compute_table_map(txn, table.key)
    if isinstance(txn.selection, TableSelection):
        corners = [txn.selection.anchor_cell_key, txn.selection.focus_cell_key]
    else:
        corners = keys
    entries = [table_map.cells[key] for key in corners]
    return (
        table_map,
        min(entry.start_row for entry in entries),
        min(entry.start_column for entry in entries),
        max(entry.end_row for entry in entries),
        max(entry.end_column for entry in entries),
    )


def _reselect(txn: Transaction, table_key: str, row: int, column: int) -> None:
    table_map = compute_table_map(txn, table_key)
    entry = table_map.at(min(row, table_map.row_count - 1), min(column, table_map.column_count - 1))
    if entry is not None:
        select_cell_start(txn, entry.key)


def insert_row_at_selection(
    txn: Transaction, after: bool = True, width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH
) -> str:
    """Insert a row after (or before) the row holding the selection."""
    return insert_row(txn, resolve_table_cell(txn, txn.selection), after=after, width=width)


def insert_column_at_selection(
    txn: Transaction, after: bool = True, width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH
) -> list[str]:
    """Insert a column after (or before) the column holding the selection."""
    return insert_column(txn, resolve_table_cell(txn, txn.selection), after=after, width=width)


def delete_rows_at_selection(txn: Transaction) -> None:
    """Delete the rows covered by the selected cell(s) and move the caret to a surviving cell."""
    table_map, top, left, bottom, _ = _selection_span(txn)
    delete_rows(txn, table_map.table_key, top, bottom)
    _reselect(txn, table_map.table_key, top, left)


def delete_columns_at_selection(txn: Transaction) -> None:
    """Delete the columns covered by the selected cell(s) and move the caret to a surviving cell."""
    table_map, top, left, _, right = _selection_span(txn)
    delete_columns(txn, table_map.table_key, left, right)
    _reselect(txn, table_map.table_key, top, left)


def merge_cells_at_selection(txn: Transaction) -> str:
    """Merge the cells of a table selection and put the caret in the result."""
    if not isinstance(txn.selection, TableSelection):
        raise InvalidSelectionError("Merging needs a table selection")
    target = merge_cells(txn, selected_cell_keys(txn, txn.selection))
    select_cell_start(txn, target)
    return target


def unmerge_cell_at_selection(txn: Transaction) -> list[str]:
    """Unmerge the single selected cell."""
    if not can_unmerge(txn):
        raise InvalidSelectionError("Selection is not a single merged cell")
    return unmerge_cell(txn, resolve_table_cell(txn, txn.selection))


def toggle_row_header_at_selection(txn: Transaction) -> bool:
    """Toggle the row-header bit of the selected cell's row; returns the new state."""
    table_map, top, _, _, _ = _selection_span(txn)
    enabled = not all(
        _cell_header(txn, entry) & HeaderState.ROW for entry in table_map.grid[top] if entry is not None
    )
    set_row_header(txn, table_map.table_key, top, enabled)
    return enabled


def toggle_column_header_at_selection(txn: Transaction) -> bool:
    """Toggle the column-header bit of the selected cell's column; returns the new state."""
    table_map, _, left, _, _ = _selection_span(txn)
    entries = [table_map.at(row, left) for row in range(table_map.row_count)]
    enabled = not all(_cell_header(txn, entry) & HeaderState.COLUMN for entry in entries if entry is not None)
    set_column_header(txn, table_map.table_key, left, enabled)
    return enabled


def can_merge(reader: NodeReader) -> bool:
    """Whether the selection is a table selection spanning two or more cells."""
    selection = reader.selection
    if not isinstance(selection, TableSelection) or selection.is_single_cell():
        return False
    try:
        return len(selected_cell_keys(reader, selection)) >= 2
    except RichMarkError:
        return False


def can_unmerge(reader: NodeReader) -> bool:
    """Whether exactly one cell is selected (or a caret sits in it) and it spans."""
    selection = reader.selection
    if isinstance(selection, RangeSelection) and not selection.is_collapsed():
        return False
    if isinstance(selection, TableSelection) and not selection.is_single_cell():
        return False
    if selection is None:
        return False
    try:
        cell_key = resolve_table_cell(reader, selection)
    except RichMarkError:
        return False
    return reader.require_typed(cell_key, TableCellNode).is_spanning


__all__ = [
    "create_cell",
    "create_table",
    "insert_row",
    "insert_column",
    "append_row",
    "append_column",
    "delete_rows",
    "delete_columns",
    "merge_cells",
    "unmerge_cell",
    "set_row_header",
    "set_column_header",
    "select_cell_start",
    "insert_row_at_selection",
    "insert_column_at_selection",
    "delete_rows_at_selection",
    "delete_columns_at_selection",
    "merge_cells_at_selection",
    "unmerge_cell_at_selection",
    "toggle_row_header_at_selection",
    "toggle_column_header_at_selection",
    "can_merge",
    "can_unmerge",
]
