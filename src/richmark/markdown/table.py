#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/table.py
"""Pipe table transformer.

Rows are written one per line as ``| a | b |``. Everything a cell holds is
rendered as Markdown, its lines are folded onto the row with the two
characters ``\\n`` and pipes are escaped. A ``| --- | --- |`` divider follows
every row holding a row-header cell; on import the divider promotes the row
before it and disappears.

Merged cells are written as the owning cell followed by ``<<`` in each
further column of its first row and ``^^`` in every position of the rows
below. On import the markers fold back into ``col_span``/``row_span`` when
they describe a rectangle, and stay as literal text otherwise.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional

from richmark.constants import (
    COLSPAN_MARKER,
    ROWSPAN_MARKER,
    TABLE_DIVIDER_CELL,
    TABLE_DIVIDER_SEGMENT_REG_EXP,
    TABLE_ROW_DIVIDER_REG_EXP,
    TABLE_ROW_REG_EXP,
)
from richmark.markdown.escape import escape_table_cell, split_table_row, unescape_table_cell
from richmark.markdown.registry import ElementTransformer
from richmark.model.nodes import HeaderState, Node, ParagraphNode, TableCellNode, TableNode, TableRowNode, TextNode
from richmark.model.state import NodeReader, Transaction
from richmark.tables.grid import compute_table_map, table_column_count

if TYPE_CHECKING:
    from richmark.markdown.parser import MarkdownParser
    from richmark.markdown.renderer import MarkdownRenderer

logger = logging.getLogger(__name__)


def is_divider_row(line: str, strict: bool = True) -> bool:
    """Whether ``line`` is a header divider such as ``| --- | :-: |``.

    Parameters
    ----------
    line : str
        Candidate line
    strict : bool, default = True
        Also require a dash in every segment, so ``| | |`` is a row of empty
        cells rather than a divider

    """
    if not TABLE_ROW_DIVIDER_REG_EXP.match(line):
        return False
    if not strict:
        return True
    row_match = TABLE_ROW_REG_EXP.match(line)
    if row_match is None:
        return False
    return all(TABLE_DIVIDER_SEGMENT_REG_EXP.match(segment) for segment in split_table_row(row_match.group(1)))


def _import_cells(txn: Transaction, line: str, parser: MarkdownParser) -> Optional[list[str]]:
    """Create one detached cell per pipe-separated segment of ``line``."""
    row_match = TABLE_ROW_REG_EXP.match(line)
    if row_match is None:
        return None
    cell_rules = parser.transformers.without(TABLE.name)
    keys: list[str] = []
    for raw in split_table_row(row_match.group(1)):
        raw = raw.strip()
        cell = txn.create(TableCellNode)
        # Escaped markers such as ``\^\^`` are literal cell text
        if parser.options.span_markers and raw in (COLSPAN_MARKER, ROWSPAN_MARKER):
            parser.span_markers[cell.key] = raw
        parser.import_markdown(txn, unescape_table_cell(raw), cell.key, transformers=cell_rules)
        keys.append(cell.key)
    return keys


def _escape_span_marker(content: str) -> str:
    """Backslash-escape cell text that would otherwise read back as a span marker."""
    if content in (COLSPAN_MARKER, ROWSPAN_MARKER):
        return "".join("\\" + char for char in content)
    return content


def _empty_cell(txn: Transaction) -> str:
    paragraph = txn.create(ParagraphNode)
    return txn.create(TableCellNode, children=[paragraph.key]).key


def _single_text(txn: Transaction, node: Optional[Node]) -> Optional[TextNode]:
    """Return the only child of a paragraph holding exactly one text run."""
    if not isinstance(node, ParagraphNode) or len(node.children) != 1:
        return None
    child = txn.get_node(node.children[0])
    return child if isinstance(child, TextNode) else None


def _replace_table_row(
    txn: Transaction, block_key: str, text_key: str, match: re.Match[str], parser: MarkdownParser
) -> bool:
    line = match.group(0)
    previous = txn.previous_sibling(block_key)

    if is_divider_row(line, parser.options.strict_table_divider):
        if isinstance(previous, TableNode) and previous.children:
            for cell in txn.get_children(previous.children[-1]):
                if isinstance(cell, TableCellNode):
                    txn.update(cell.key, header_state=cell.header_state | HeaderState.ROW)
        else:
            logger.debug("Discarding table divider without a preceding table: %r", line)
        txn.remove(block_key)
        return True

    cells = _import_cells(txn, line, parser)
    if cells is None:
        return False
    rows = [cells]

    # Pull plain paragraphs that look like rows into the same table
    sibling = previous
    text = _single_text(txn, sibling)
    while sibling is not None and text is not None:
        pulled = _import_cells(txn, text.text, parser)
        if pulled is None:
            break
        rows.insert(0, pulled)
        before = txn.previous_sibling(sibling.key)
        txn.remove(sibling.key)
        sibling = before
        text = _single_text(txn, sibling)

    column_count = max(len(row) for row in rows)
    table = txn.create(TableNode)
    for row_cells in rows:
        padding = [_empty_cell(txn) for _ in range(column_count - len(row_cells))]
        row = txn.create(TableRowNode, children=row_cells + padding)
        txn.append(table.key, row.key)

    previous = txn.previous_sibling(block_key)
    if isinstance(previous, TableNode) and table_column_count(txn, previous.key) == column_count:
        for row_key in list(txn.require_typed(table.key, TableNode).children):
            txn.append(previous.key, row_key)
        txn.remove(table.key)
        txn.remove(block_key)
    else:
        txn.replace(block_key, table.key)
    return True


def fold_span_markers(txn: Transaction, table_key: str, markers: dict[str, str]) -> int:
    """Fold ``<<``/``^^`` marker cells of a freshly imported table into spans.

    Parameters
    ----------
    txn : Transaction
        Open transaction holding the table
    table_key : str
        Table whose cells are all single grid positions
    markers : dict
        Marker text by cell key, for cells whose raw text was a marker

    Returns
    -------
    int
        Number of marker cells folded away

    """
    table = txn.require_typed(table_key, TableNode)
    rows = [list(txn.require_typed(row_key, TableRowNode).children) for row_key in table.children]
    owners: dict[tuple[int, int], str] = {}
    # start_row, start_column, row_span, col_span
    spans: dict[str, list[int]] = {}
    folded: set[str] = set()

    for row_index, cell_keys in enumerate(rows):
        for column, key in enumerate(cell_keys):
            if key in folded:
                continue
            marker = markers.get(key)
            owner: Optional[str] = None
            if marker == COLSPAN_MARKER and (row_index, column - 1) in owners:
                candidate = owners[(row_index, column - 1)]
                start_row, start_column, _, col_span = spans[candidate]
                if start_row == row_index and start_column + col_span == column:
                    spans[candidate][3] += 1
                    owner = candidate
            elif marker == ROWSPAN_MARKER and (row_index - 1, column) in owners:
                candidate = owners[(row_index - 1, column)]
                start_row, start_column, row_span, col_span = spans[candidate]
                covered = cell_keys[column : column + col_span]
                if (
                    start_column == column
                    and start_row + row_span == row_index
                    and len(covered) == col_span
                    and all(markers.get(k) == ROWSPAN_MARKER for k in covered)
                ):
                    spans[candidate][2] += 1
                    owner = candidate
                    for offset, covered_key in enumerate(covered):
                        owners[(row_index, column + offset)] = candidate
                        folded.add(covered_key)
            if owner is None:
                owners[(row_index, column)] = key
                spans[key] = [row_index, column, 1, 1]
            else:
                owners[(row_index, column)] = owner
                folded.add(key)

    for key in folded:
        txn.remove(key)
    for key, (_, _, row_span, col_span) in spans.items():
        if row_span > 1 or col_span > 1:
            txn.update(key, row_span=row_span, col_span=col_span)
    return len(folded)


def _export_table(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, TableNode):
        return None
    options = renderer.options
    table_map = compute_table_map(reader, node.key)
    lines: list[str] = []
    for row in range(table_map.row_count):
        cells: list[str] = []
        is_header_row = False
        for column in range(table_map.column_count):
            entry = table_map.at(row, column)
            if entry is None:
                cells.append("")
            elif entry.start_row == row and entry.start_column == column:
                cell = reader.require_typed(entry.key, TableCellNode)
                # Pipe tables have no syntax for header columns, only the row divider
                if cell.header_state & HeaderState.ROW:
                    is_header_row = True
                content = renderer.render_blocks(reader, entry.key, separator="\n").strip()
                cells.append(_escape_span_marker(escape_table_cell(content, options.table_pipe_escape)))
            elif options.span_markers:
                cells.append(COLSPAN_MARKER if entry.start_row == row else ROWSPAN_MARKER)
            else:
                cells.append("")
        lines.append(f"| {' | '.join(cells)} |")
        if is_header_row:
            lines.append(f"| {' | '.join([TABLE_DIVIDER_CELL] * len(cells))} |")
    return "\n".join(lines)


TABLE = ElementTransformer(
    name="table",
    node_types=(TableNode,),
    reg_exp=TABLE_ROW_REG_EXP,
    replace=_replace_table_row,
    export=_export_table,
)

__all__ = ["TABLE", "fold_span_markers", "is_divider_row"]
