#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/editor.py
"""Editing session.

:class:`Editor` owns the current :class:`~richmark.model.state.EditorState`
of one document and is the only writer of it. Edits go through
:meth:`Editor.update`, a context manager yielding a transaction:

    >>> editor = Editor(markdown="# Title")
    >>> with editor.update() as txn:
    ...     heading = txn.root.children[0]
    ...     txn.update(heading, level=2)
    >>> editor.to_markdown()
    '## Title'

On a clean exit the registered transforms run on the transaction, it is
committed, update listeners are called in registration order and the
projection listeners are scheduled through a debounce. An exception discards
the transaction and leaves the state untouched. An ``update()`` opened while
another one is active joins it.

The command methods (``toggle_block_type``, ``insert_link``, the table
commands, ...) never raise for a rejected edit. They return a
:class:`~richmark.commands.CommandResult` and log a warning instead.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional

from richmark import commands
from richmark.block_type import BlockTypeTracker
from richmark.commands import CommandResult
from richmark.debounce import Debouncer
from richmark.exceptions import InvalidSelectionError, RichMarkError
from richmark.headings import HeadingLeveler
from richmark.markdown.parser import MarkdownParser
from richmark.markdown.registry import TransformerRegistry
from richmark.markdown.renderer import MarkdownRenderer
from richmark.model.nodes import TableCellNode, TableNode, TextFormat, TextNode
from richmark.model.selection import Point, RangeSelection, TableSelection
from richmark.model.state import EditorState, Transaction
from richmark.model.validation import validate_tree
from richmark.options.editor import EditorOptions
from richmark.projections import Projections
from richmark.tables import operations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateEvent:
    """Notification sent to update listeners after a commit.

    Parameters
    ----------
    state : EditorState
        Snapshot produced by the commit
    previous_state : EditorState
        Snapshot before the commit
    dirty_keys : frozenset of str
        Keys created or changed by the transaction
    tags : frozenset of str
        Labels attached to the transaction (``"import"``, command names, ...)

    """

    state: EditorState
    previous_state: EditorState
    dirty_keys: frozenset[str]
    tags: frozenset[str]


UpdateListener = Callable[[UpdateEvent], None]
ProjectionListener = Callable[[Projections], None]
Transform = Callable[[Transaction], Any]


class Editor:
    """Single-document editing session.

    Parameters
    ----------
    options : EditorOptions or None, default = None
        Session settings
    transformers : TransformerRegistry or None, default = None
        Markdown rules used for import, export and the Markdown shortcuts
    markdown : str or None, default = None
        Initial content
    clock : callable, default time.monotonic
        Time source of the projection debounce
    loop : asyncio.AbstractEventLoop, optional
        Event loop that runs the projection debounce; without one the host
        calls :meth:`poll`

    """

    def __init__(
        self,
        options: Optional[EditorOptions] = None,
        transformers: Optional[TransformerRegistry] = None,
        markdown: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.options = options or EditorOptions()
        self.parser = MarkdownParser(
            self.options.markdown_import, transformers, image_max_width=self.options.image_max_width
        )
        self.renderer = MarkdownRenderer(self.options.markdown_export, transformers)
        self.leveler = HeadingLeveler()
        self.block_types = BlockTypeTracker()

        self._state = EditorState.empty()
        self._active: Optional[Transaction] = None
        self._update_listeners: list[UpdateListener] = []
        self._projection_listeners: list[ProjectionListener] = []
        self._transforms: list[Transform] = []
        self._debouncer = Debouncer(
            self.options.projection_debounce_seconds, self._notify_projections, clock=clock, loop=loop
        )

        if self.options.heading_shortcuts:
            self._transforms.append(self.leveler.promote)
        if self.options.auto_append_blank_line:
            self._transforms.append(commands.ensure_trailing_paragraph)
        if markdown is not None:
            self.set_markdown(markdown)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> EditorState:
        """The latest committed snapshot."""
        return self._state

    def read(self, reader: Optional[Callable[[EditorState], Any]] = None) -> Any:
        """Return the current snapshot, or ``reader(snapshot)`` when a callable is given."""
        if reader is None:
            return self._state
        return reader(self._state)

    @contextmanager
    def update(self, tags: Iterable[str] = ()) -> Iterator[Transaction]:
        """Open a transaction on the current state.

        Parameters
        ----------
        tags : iterable of str, optional
            Labels passed on to update listeners

        Yields
        ------
        Transaction
            The working copy; committed when the block exits normally

        """
        if self._active is not None:
            self._active.tags.update(tags)
            yield self._active
            return

        txn = self._state.begin(tags=tags)
        self._active = txn
        try:
            yield txn
            if txn.dirty_keys:
                for transform in list(self._transforms):
                    transform(txn)
            state = txn.commit()
            if self.options.validate_on_commit:
                validate_tree(state)
        except BaseException:
            if not txn.closed:
                txn.discard()
            raise
        finally:
            self._active = None

        previous, self._state = self._state, state
        self.block_types.update(state)
        event = UpdateEvent(state, previous, txn.dirty_keys, frozenset(txn.tags))
        for listener in list(self._update_listeners):
            listener(event)
        if self._projection_listeners:
            self._debouncer.trigger()

    # ------------------------------------------------------------------
    # Listeners and transforms
    # ------------------------------------------------------------------

    def register_update_listener(self, listener: UpdateListener) -> Callable[[], None]:
        """Call ``listener`` after every commit; returns a function removing it."""
        self._update_listeners.append(listener)
        return lambda: self._discard(self._update_listeners, listener)

    def register_projection_listener(self, listener: ProjectionListener) -> Callable[[], None]:
        """Call ``listener`` with fresh projections once edits pause; returns a function removing it."""
        self._projection_listeners.append(listener)
        return lambda: self._discard(self._projection_listeners, listener)

    def register_transform(self, transform: Transform) -> Callable[[], None]:
        """Run ``transform(txn)`` on every changing transaction before it commits."""
        self._transforms.append(transform)
        return lambda: self._discard(self._transforms, transform)

    @staticmethod
    def _discard(registry: list[Any], item: Any) -> None:
        if item in registry:
            registry.remove(item)

    def poll(self) -> bool:
        """Deliver pending projections if the quiet period has elapsed."""
        return self._debouncer.poll()

    def flush_projections(self) -> bool:
        """Deliver pending projections right away."""
        return self._debouncer.flush()

    def _notify_projections(self) -> None:
        projections = self.projections()
        for listener in list(self._projection_listeners):
            listener(projections)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def projections(self) -> Projections:
        """Compute every projection of the current state."""
        return Projections.compute(self._state, self.block_types.last_known)

    @property
    def current_block_type(self) -> str:
        """Block type under the selection (the last known one without a selection)."""
        return self.block_types.last_known

    def can_merge(self) -> bool:
        """Whether :meth:`merge_cells_at_selection` would apply."""
        return operations.can_merge(self._state)

    def can_unmerge(self) -> bool:
        """Whether :meth:`unmerge_cell_at_selection` would apply."""
        return operations.can_unmerge(self._state)

    def code_text_at_selection(self) -> Optional[str]:
        """Return the text of the code block holding the caret, for copying."""
        return commands.code_text_at_selection(self._state)

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------

    def set_markdown(self, markdown: str) -> None:
        """Replace the whole document by ``markdown``."""
        with self.update(tags={"import"}) as txn:
            self.parser.import_markdown(txn, markdown)
        logger.debug("Loaded %d characters of Markdown", len(markdown))

    def to_markdown(self, key: Optional[str] = None) -> str:
        """Export the document (or the subtree of ``key``) as Markdown."""
        return self.renderer.render(self._state, key)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_text(self, key: str, start: int, end: Optional[int] = None) -> None:
        """Select ``start``..``end`` of the text run ``key`` (a caret when ``end`` is omitted)."""
        with self.update(tags={"selection"}) as txn:
            txn.require_typed(key, TextNode)
            txn.set_selection(RangeSelection(Point(key, start), Point(key, start if end is None else end)))

    def select_node_start(self, key: str) -> None:
        """Put a caret at the start of node ``key``."""
        with self.update(tags={"selection"}) as txn:
            text = txn.first_text_node(key)
            if text is not None:
                txn.set_selection(RangeSelection.collapsed(text.key, 0))
            else:
                txn.require_node(key)
                txn.set_selection(RangeSelection.collapsed(key, 0, kind="element"))

    def select_cells(self, anchor_cell_key: str, focus_cell_key: str) -> None:
        """Select the rectangle of cells between two corner cells of one table.

        Raises
        ------
        InvalidSelectionError
            If the cells are not in the same table

        """
        with self.update(tags={"selection"}) as txn:
            txn.require_typed(anchor_cell_key, TableCellNode)
            txn.require_typed(focus_cell_key, TableCellNode)
            table = txn.find_ancestor(anchor_cell_key, TableNode)
            other = txn.find_ancestor(focus_cell_key, TableNode)
            if table is None or other is None or table.key != other.key:
                raise InvalidSelectionError("Both cells must belong to the same table")
            txn.set_selection(TableSelection(table.key, anchor_cell_key, focus_cell_key))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run_command(
        self, name: str, operation: Callable[..., Any], *args: Any, reports_change: bool = False, **kwargs: Any
    ) -> CommandResult:
        """Run ``operation(txn, *args, **kwargs)`` as one command.

        Parameters
        ----------
        name : str
            Command name, added to the transaction tags and the log
        operation : callable
            Function editing the transaction
        reports_change : bool, default False
            The operation returns False when it had nothing to do

        Returns
        -------
        CommandResult
            ``applied=False`` with the error message when the operation
            raised a :class:`~richmark.exceptions.RichMarkError`; the
            document is left as it was

        """
        nested = self._active is not None
        try:
            with self.update(tags={name}) as txn:
                savepoint = txn.savepoint() if nested else None
                try:
                    value = operation(txn, *args, **kwargs)
                except RichMarkError:
                    if savepoint is not None:
                        txn.rollback(savepoint)
                    raise
        except RichMarkError as e:
            logger.warning(f"{name} rejected: {e.message}")
            return CommandResult(False, e.message)
        if reports_change and value is False:
            return CommandResult(False, "Nothing to change")
        return CommandResult(True, value=value)

    def toggle_block_type(self, target: str) -> CommandResult:
        """Convert the selected blocks to ``target``, or back to paragraphs when it is already active."""
        return self.run_command(
            "toggle_block_type", commands.toggle_block_type, target, self.options.default_code_language
        )

    def convert_block_at_selection(self) -> CommandResult:
        """Apply the Markdown block shortcuts to the paragraph holding the caret."""
        return self.run_command(
            "convert_block", commands.convert_block_at_selection, self.parser, reports_change=True
        )

    def insert_text(self, text: str) -> CommandResult:
        """Type ``text`` at the caret."""
        return self.run_command("insert_text", commands.insert_text, text)

    def delete_backward(self) -> CommandResult:
        """Handle Backspace, demoting headings first when heading shortcuts are on."""
        leveler = self.leveler if self.options.heading_shortcuts else None
        return self.run_command("delete_backward", commands.delete_backward, leveler, reports_change=True)

    def toggle_format(self, text_format: TextFormat) -> CommandResult:
        """Toggle a character format on the selected text."""
        return self.run_command("toggle_format", commands.toggle_format, text_format, reports_change=True)

    def insert_link(self, url: str, label: Optional[str] = None) -> CommandResult:
        """Link the selection to ``url``, or insert a new link at the caret."""
        return self.run_command("insert_link", commands.insert_link, url, label)

    def remove_link_at_selection(self) -> CommandResult:
        """Unwrap the link holding the caret."""
        return self.run_command("remove_link", commands.remove_link_at_selection)

    def insert_image(self, src: str, alt_text: str = "", max_width: Optional[int] = None) -> CommandResult:
        """Insert an image at the caret, as delivered by the host's upload handler."""
        width = max_width if max_width is not None else self.options.image_max_width
        return self.run_command("insert_image", commands.insert_image, src, alt_text, width)

    def edit_link_as_markdown(self) -> CommandResult:
        """Show the link holding the caret as ``[label](url)`` text."""
        return self.run_command("edit_link", commands.edit_link_as_markdown)

    def commit_markdown_link(self) -> CommandResult:
        """Turn ``[label](url)`` text under the caret back into a link."""
        return self.run_command("commit_link", commands.commit_markdown_link, reports_change=True)

    def insert_table(self, rows: int, columns: int) -> CommandResult:
        """Insert an empty table and put the caret in its first cell."""
        return self.run_command(
            "insert_table", commands.insert_table, rows, columns, self.options.table_cell_min_width
        )

    def insert_table_row_at_selection(self, after: bool = True) -> CommandResult:
        """Insert a row after (or before) the selected cell's row."""
        return self.run_command(
            "insert_table_row",
            operations.insert_row_at_selection,
            after=after,
            width=self.options.table_cell_min_width,
        )

    def insert_table_column_at_selection(self, after: bool = True) -> CommandResult:
        """Insert a column after (or before) the selected cell's column."""
        return self.run_command(
            "insert_table_column",
            operations.insert_column_at_selection,
            after=after,
            width=self.options.table_cell_min_width,
        )

    def delete_table_row_at_selection(self) -> CommandResult:
        """Delete the rows covered by the selection."""
        return self.run_command("delete_table_row", operations.delete_rows_at_selection)

    def delete_table_column_at_selection(self) -> CommandResult:
        """Delete the columns covered by the selection."""
        return self.run_command("delete_table_column", operations.delete_columns_at_selection)

    def merge_cells_at_selection(self) -> CommandResult:
        """Merge the selected cells."""
        return self.run_command("merge_cells", operations.merge_cells_at_selection)

    def unmerge_cell_at_selection(self) -> CommandResult:
        """Split the selected merged cell back into unit cells."""
        return self.run_command("unmerge_cell", operations.unmerge_cell_at_selection)

    def toggle_row_header_at_selection(self) -> CommandResult:
        """Toggle the row-header state of the selected row; ``value`` is the new state."""
        return self.run_command("toggle_row_header", operations.toggle_row_header_at_selection)

    def toggle_column_header_at_selection(self) -> CommandResult:
        """Toggle the column-header state of the selected column; ``value`` is the new state."""
        return self.run_command("toggle_column_header", operations.toggle_column_header_at_selection)

    def append_table_row(self, table_key: str) -> CommandResult:
        """Add a row at the end of ``table_key``."""
        return self.run_command(
            "append_table_row", operations.append_row, table_key, self.options.table_cell_min_width
        )

    def append_table_column(self, table_key: str) -> CommandResult:
        """Add a column at the end of ``table_key``."""
        return self.run_command(
            "append_table_column", operations.append_column, table_key, self.options.table_cell_min_width
        )


__all__ = ["Editor", "UpdateEvent", "UpdateListener", "ProjectionListener", "Transform"]
