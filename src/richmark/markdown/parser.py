#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/parser.py
"""Markdown import.

The importer is line driven. Each line is first offered to the multi-line
rules (code fences). Otherwise it becomes a provisional paragraph holding a
single text run, the single-line rules get a chance to turn that paragraph
into a block, and whatever text is left goes through inline import.

Examples
--------
Import a document into a fresh snapshot:

    >>> from richmark.markdown import markdown_to_state
    >>> state = markdown_to_state("# Title\\n\\nSome **bold** text")
    >>> state.text_content()
    'Title\\n\\nSome bold text'

"""

from __future__ import annotations

import logging
from typing import Optional

from richmark.constants import DEFAULT_IMAGE_MAX_WIDTH
from richmark.exceptions import InvariantViolationError
from richmark.markdown.inline import InlineMarkdownParser
from richmark.markdown.registry import TransformerRegistry
from richmark.markdown.table import TABLE, fold_span_markers
from richmark.markdown.transformers import DEFAULT_TRANSFORMERS
from richmark.model.nodes import ParagraphNode, RootNode, TableCellNode, TableNode, TextNode
from richmark.model.selection import Selection
from richmark.model.state import ROOT_KEY, EditorState, Transaction
from richmark.options.markdown import MarkdownImportOptions

logger = logging.getLogger(__name__)


class MarkdownParser:
    """Import Markdown text into document nodes.

    Parameters
    ----------
    options : MarkdownImportOptions or None, default = None
        Import settings
    transformers : TransformerRegistry or None, default = None
        Rules to apply, defaults to :data:`DEFAULT_TRANSFORMERS`
    image_max_width : int, default 800
        ``max_width`` given to imported images

    """

    def __init__(
        self,
        options: Optional[MarkdownImportOptions] = None,
        transformers: Optional[TransformerRegistry] = None,
        image_max_width: int = DEFAULT_IMAGE_MAX_WIDTH,
    ) -> None:
        self.options = options or MarkdownImportOptions()
        self.transformers = transformers if transformers is not None else DEFAULT_TRANSFORMERS
        self.inline = InlineMarkdownParser(self.transformers, image_max_width=image_max_width)
        # Cells whose raw text was a span marker, by key
        self.span_markers: dict[str, str] = {}

    def parse(self, markdown: str, selection: Optional[Selection] = None) -> EditorState:
        """Import ``markdown`` into a new snapshot.

        Parameters
        ----------
        markdown : str
            Markdown text
        selection : Selection or None, default = None
            Selection stored with the snapshot

        Returns
        -------
        EditorState
            Snapshot holding the imported document

        """
        base = EditorState({ROOT_KEY: RootNode(key=ROOT_KEY)}, selection)
        txn = base.begin(tags={"import"})
        self.import_markdown(txn, markdown)
        return txn.commit()

    def import_markdown(
        self,
        txn: Transaction,
        markdown: str,
        parent_key: str = ROOT_KEY,
        transformers: Optional[TransformerRegistry] = None,
    ) -> list[str]:
        """Replace the children of ``parent_key`` with blocks parsed from ``markdown``.

        Parameters
        ----------
        txn : Transaction
            Open transaction
        markdown : str
            Markdown text
        parent_key : str, default "root"
            Root or table cell receiving the blocks
        transformers : TransformerRegistry or None, default = None
            Rules for this call; table cells use the registry without the table rule

        Returns
        -------
        list of str
            Keys of the blocks now owned by ``parent_key``

        Raises
        ------
        InvariantViolationError
            If ``parent_key`` is neither the root nor a table cell

        """
        registry = transformers if transformers is not None else self.transformers
        parent = txn.require_node(parent_key)
        if not isinstance(parent, (RootNode, TableCellNode)):
            raise InvariantViolationError(
                f"Markdown can only be imported into the root or a table cell, not {parent.type}"
            )
        for child_key in list(parent.children):
            txn.remove(child_key)

        lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        index = 0
        while index < len(lines):
            next_index = self._import_multiline(txn, lines, index, parent_key, registry)
            if next_index is not None:
                index = next_index
                continue
            self._import_line(txn, lines[index], parent_key, registry)
            index += 1

        if TABLE.name in registry:
            self.fold_spans(txn, parent_key)
        if not self.options.preserve_empty_lines:
            self._prune_empty_paragraphs(txn, parent_key)
        if not txn.require_typed(parent_key, type(parent)).children:
            txn.append(parent_key, txn.create(ParagraphNode).key)
        return list(txn.require_typed(parent_key, type(parent)).children)

    def _import_multiline(
        self, txn: Transaction, lines: list[str], start: int, parent_key: str, registry: TransformerRegistry
    ) -> Optional[int]:
        """Import a multi-line block starting at ``start`` and return the next line index."""
        for transformer in registry.multiline_transformers:
            match = transformer.reg_exp_start.match(lines[start])
            if match is None:
                continue
            end = start + 1
            while end < len(lines) and not transformer.is_end(lines[end], match):
                end += 1
            transformer.replace(txn, parent_key, lines[start + 1 : end], match, self)
            # An unclosed block runs to the end of the input
            return min(end + 1, len(lines))
        return None

    def _import_line(self, txn: Transaction, line: str, parent_key: str, registry: TransformerRegistry) -> None:
        text = txn.create(TextNode, text=line)
        paragraph = txn.create(ParagraphNode, children=[text.key])
        txn.append(parent_key, paragraph.key)
        self.import_block(txn, paragraph.key, registry)

    def import_block(
        self, txn: Transaction, paragraph_key: str, transformers: Optional[TransformerRegistry] = None
    ) -> bool:
        """Run the single-line rules and inline import on an attached paragraph.

        The paragraph must hold exactly one unformatted text run, the raw
        Markdown of one line. This is the path taken by every imported line
        and by the editor's Markdown shortcut.

        Parameters
        ----------
        txn : Transaction
            Open transaction
        paragraph_key : str
            Paragraph holding the line
        transformers : TransformerRegistry or None, default = None
            Rules to try, the parser's registry when omitted

        Returns
        -------
        bool
            Whether a block rule replaced the paragraph

        """
        registry = transformers if transformers is not None else self.transformers
        paragraph = txn.require_typed(paragraph_key, ParagraphNode)
        if len(paragraph.children) != 1:
            raise InvariantViolationError(f"Paragraph '{paragraph_key}' must hold a single text run")
        text = txn.require_typed(paragraph.children[0], TextNode)
        line = text.text

        converted = False
        for transformer in registry.element_transformers:
            match = transformer.reg_exp.match(line)
            if match is None:
                continue
            txn.update(text.key, text=line[match.end() :])
            if transformer.replace(txn, paragraph_key, text.key, match, self):
                converted = True
                break
            txn.update(text.key, text=line)

        # Rules that consume the line (tables, rules) remove the run with the paragraph
        if text.key in txn and txn.require_node(text.key).parent is not None:
            self.inline.import_text(txn, text.key)
        return converted

    def fold_spans(self, txn: Transaction, parent_key: str) -> None:
        """Fold the span markers recorded since the last call into the tables of ``parent_key``."""
        if not self.span_markers:
            return
        for child in txn.get_children(parent_key):
            if isinstance(child, TableNode):
                folded = fold_span_markers(txn, child.key, self.span_markers)
                if folded:
                    logger.debug("Folded %d span markers in table %s", folded, child.key)
        self.span_markers.clear()

    def _prune_empty_paragraphs(self, txn: Transaction, parent_key: str) -> None:
        for child in txn.get_children(parent_key):
            if isinstance(child, ParagraphNode) and not child.children:
                txn.remove(child.key)


def import_markdown(
    txn: Transaction,
    markdown: str,
    parent_key: str = ROOT_KEY,
    options: Optional[MarkdownImportOptions] = None,
    transformers: Optional[TransformerRegistry] = None,
) -> list[str]:
    """Replace the children of ``parent_key`` with blocks parsed from ``markdown``.

    Convenience wrapper around :meth:`MarkdownParser.import_markdown`.
    """
    return MarkdownParser(options, transformers).import_markdown(txn, markdown, parent_key)


def markdown_to_state(
    markdown: str,
    options: Optional[MarkdownImportOptions] = None,
    transformers: Optional[TransformerRegistry] = None,
) -> EditorState:
    """Import ``markdown`` into a new snapshot.

    Parameters
    ----------
    markdown : str
        Markdown text
    options : MarkdownImportOptions or None, default = None
        Import settings
    transformers : TransformerRegistry or None, default = None
        Rules to apply

    Returns
    -------
    EditorState
        Snapshot holding the imported document

    """
    return MarkdownParser(options, transformers).parse(markdown)


__all__ = ["MarkdownParser", "import_markdown", "markdown_to_state"]
