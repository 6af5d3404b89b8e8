#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/tables/grid.py
"""Virtual grid of a table.

Rows own only the cells that *start* in them. A cell with ``row_span`` or
``col_span`` greater than one also covers grid positions in later rows or
columns; those positions have no node of their own. :func:`compute_table_map`
lays the cells out on the grid so table operations can reason in grid
coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from richmark.exceptions import InvalidSelectionError, TableStructureError
from richmark.model.nodes import TableCellNode, TableNode, TableRowNode
from richmark.model.selection import RangeSelection, Selection, TableSelection
from richmark.model.state import NodeReader


@dataclass(frozen=True)
class GridCell:
    """Placement of a cell on the grid.

    Parameters
    ----------
    key : str
        Cell key
    start_row : int
        Grid row of the cell's top edge
    start_column : int
        Grid column of the cell's left edge
    row_span : int
        Rows covered
    col_span : int
        Columns covered

    """

    key: str
    start_row: int
    start_column: int
    row_span: int
    col_span: int

    @property
    def end_row(self) -> int:
        """Last grid row covered (inclusive)."""
        return self.start_row + self.row_span - 1

    @property
    def end_column(self) -> int:
        """Last grid column covered (inclusive)."""
        return self.start_column + self.col_span - 1


@dataclass(frozen=True)
class TableMap:
    """Grid layout of a table.

    ``grid[row][column]`` is the :class:`GridCell` covering that position, or
    None for a hole left by a ragged row.
    """

    table_key: str
    row_keys: tuple[str, ...]
    grid: tuple[tuple[Optional[GridCell], ...], ...]
    cells: dict[str, GridCell]

    @property
    def row_count(self) -> int:
        """Number of rows."""
        return len(self.grid)

    @property
    def column_count(self) -> int:
        """Width of the widest row."""
        return max((len(row) for row in self.grid), default=0)

    def at(self, row: int, column: int) -> Optional[GridCell]:
        """Return the cell covering ``(row, column)``, or None."""
        if 0 <= row < len(self.grid) and 0 <= column < len(self.grid[row]):
            return self.grid[row][column]
        return None

    def occupied_count(self, row: int) -> int:
        """Number of grid positions covered in ``row``."""
        return sum(1 for entry in self.grid[row] if entry is not None)

    def is_rectangular(self) -> bool:
        """Whether every row covers the same number of positions with no holes."""
        width = self.column_count
        return all(len(row) == width and all(entry is not None for entry in row) for row in self.grid)

    def iter_cells(self) -> Iterator[GridCell]:
        """Yield every cell once, in row-major order of their top-left corner."""
        return iter(sorted(self.cells.values(), key=lambda cell: (cell.start_row, cell.start_column)))


def compute_table_map(reader: NodeReader, table_key: str) -> TableMap:
    """Lay the cells of a table out on its grid.

    Parameters
    ----------
    reader : NodeReader
        State or transaction holding the table
    table_key : str
        Table to map

    Returns
    -------
    TableMap
        Grid layout; spans running past the last row are clipped

    Raises
    ------
    TableStructureError
        If two cells claim the same grid position

    """
    table = reader.require_typed(table_key, TableNode)
    row_keys = table.children
    grid: list[list[Optional[GridCell]]] = [[] for _ in row_keys]
    cells: dict[str, GridCell] = {}

    for row_index, row_key in enumerate(row_keys):
        row = reader.require_typed(row_key, TableRowNode)
        column = 0
        for cell_key in row.children:
            cell = reader.require_typed(cell_key, TableCellNode)
            while column < len(grid[row_index]) and grid[row_index][column] is not None:
                column += 1
            entry = GridCell(cell_key, row_index, column, cell.row_span, cell.col_span)
            cells[cell_key] = entry
            for covered_row in range(row_index, min(row_index + cell.row_span, len(row_keys))):
                line = grid[covered_row]
                for covered_column in range(column, column + cell.col_span):
                    while len(line) <= covered_column:
                        line.append(None)
                    occupant = line[covered_column]
                    if occupant is not None:
                        raise TableStructureError(
                            f"Cells '{occupant.key}' and '{cell_key}' overlap at "
                            f"row {covered_row}, column {covered_column}",
                            table_key,
                        )
                    line[covered_column] = entry
            column += cell.col_span

    width = max((len(line) for line in grid), default=0)
    for line in grid:
        line.extend([None] * (width - len(line)))
    return TableMap(table_key, tuple(row_keys), tuple(tuple(line) for line in grid), cells)


def table_column_count(reader: NodeReader, table_key: str) -> int:
    """Return the canonical column count of a table.

    This is the number of grid positions covered in the first row, which is
    the first row's cell count when it holds no spanning cells.
    """
    table_map = compute_table_map(reader, table_key)
    return table_map.occupied_count(0) if table_map.row_count else 0


def locate_cell(reader: NodeReader, cell_key: str) -> tuple[TableMap, GridCell]:
    """Return the map of the table owning ``cell_key`` and the cell's placement.

    Raises
    ------
    InvalidSelectionError
        If the cell is not inside a table

    """
    reader.require_typed(cell_key, TableCellNode)
    table = reader.find_ancestor(cell_key, TableNode, include_self=False)
    if table is None:
        raise InvalidSelectionError(f"Cell '{cell_key}' is not inside a table")
    table_map = compute_table_map(reader, table.key)
    return table_map, table_map.cells[cell_key]


def rectangle_of(table_map: TableMap, cell_keys: list[str]) -> tuple[int, int, int, int]:
    """Return the smallest rectangle covering ``cell_keys`` that no span crosses.

    Returns
    -------
    tuple of int
        ``(first_row, first_column, last_row, last_column)``, inclusive

    """
    entries = [table_map.cells[key] for key in cell_keys]
    top = min(entry.start_row for entry in entries)
    left = min(entry.start_column for entry in entries)
    bottom = max(entry.end_row for entry in entries)
    right = max(entry.end_column for entry in entries)

    changed = True
    while changed:
        changed = False
        for row in range(top, bottom + 1):
            for column in range(left, right + 1):
                entry = table_map.at(row, column)
                if entry is None:
                    continue
                new_bounds = (
                    min(top, entry.start_row),
                    min(left, entry.start_column),
                    max(bottom, entry.end_row),
                    max(right, entry.end_column),
                )
                if new_bounds != (top, left, bottom, right):
                    top, left, bottom, right = new_bounds
                    changed = True
    return top, left, bottom, right


def cells_in_rectangle(table_map: TableMap, top: int, left: int, bottom: int, right: int) -> list[GridCell]:
    """Return the distinct cells covering a rectangle, in row-major order."""
    seen: dict[str, GridCell] = {}
    for row in range(top, bottom + 1):
        for column in range(left, right + 1):
            entry = table_map.at(row, column)
            if entry is not None and entry.key not in seen:
                seen[entry.key] = entry
    return sorted(seen.values(), key=lambda entry: (entry.start_row, entry.start_column))


def resolve_table_cell(reader: NodeReader, selection: Optional[Selection]) -> str:
    """Return the key of the cell nearest to the selection anchor.

    Raises
    ------
    InvalidSelectionError
        If there is no selection or the anchor is outside a table cell

    """
    if isinstance(selection, TableSelection):
        anchor_key = selection.anchor_cell_key
    elif isinstance(selection, RangeSelection):
        anchor_key = selection.anchor.key
    else:
        raise InvalidSelectionError("No selection")
    cell = reader.find_ancestor(anchor_key, TableCellNode)
    if cell is None:
        raise InvalidSelectionError("Selection is not inside a table cell")
    return cell.key


def selected_cell_keys(reader: NodeReader, selection: Optional[Selection]) -> list[str]:
    """Return the cells covered by a table selection (or the anchor's cell).

    Raises
    ------
    InvalidSelectionError
        If the selection is not inside a table

    """
    if isinstance(selection, TableSelection):
        table_map = compute_table_map(reader, selection.table_key)
        for key in (selection.anchor_cell_key, selection.focus_cell_key):
            if key not in table_map.cells:
                raise InvalidSelectionError(f"Cell '{key}' is not part of table '{selection.table_key}'")
        top, left, bottom, right = rectangle_of(table_map, [selection.anchor_cell_key, selection.focus_cell_key])
        return [entry.key for entry in cells_in_rectangle(table_map, top, left, bottom, right)]
    return [resolve_table_cell(reader, selection)]


__all__ = [
    "GridCell",
    "TableMap",
    "compute_table_map",
    "table_column_count",
    "locate_cell",
    "rectangle_of",
    "cells_in_rectangle",
    "resolve_table_cell",
    "selected_cell_keys",
]
