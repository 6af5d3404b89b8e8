#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/renderer.py
"""Markdown export.

Blocks are offered to the block rules of the registry in order and the first
rule returning a string wins; paragraphs fall through to inline export. Inline
nodes are offered to the text-match rules the same way, and text runs are
wrapped in the delimiters of the text-format rules.

Examples
--------
    >>> from richmark.markdown import markdown_to_state, state_to_markdown
    >>> state_to_markdown(markdown_to_state("*a*   **b**"))
    '*a*   **b**'

"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from richmark.markdown.escape import escape_block_start, escape_inline_code, escape_markdown_text
from richmark.markdown.registry import TransformerRegistry
from richmark.markdown.transformers import DEFAULT_TRANSFORMERS
from richmark.model.nodes import ElementNode, LineBreakNode, Node, RootNode, TableCellNode, TextFormat, TextNode
from richmark.model.state import ROOT_KEY, NodeReader
from richmark.options.markdown import MarkdownExportOptions

logger = logging.getLogger(__name__)

DEFAULT_LINE_BREAK = "<br>"


class MarkdownRenderer:
    """Export document nodes as Markdown text.

    Parameters
    ----------
    options : MarkdownExportOptions or None, default = None
        Export settings
    transformers : TransformerRegistry or None, default = None
        Rules to apply, defaults to :data:`DEFAULT_TRANSFORMERS`

    """

    def __init__(
        self,
        options: Optional[MarkdownExportOptions] = None,
        transformers: Optional[TransformerRegistry] = None,
    ) -> None:
        self.options = options or MarkdownExportOptions()
        self.transformers = transformers if transformers is not None else DEFAULT_TRANSFORMERS

    def render(self, reader: NodeReader, key: Optional[str] = None) -> str:
        """Render the subtree of ``key`` (the whole document by default).

        Parameters
        ----------
        reader : NodeReader
            Snapshot or transaction to read from
        key : str or None, default = None
            Root, cell, block or inline node to render

        Returns
        -------
        str
            Markdown text without trailing blank lines

        """
        node = reader.require_node(key or ROOT_KEY)
        if isinstance(node, (RootNode, TableCellNode)):
            output = self.render_blocks(reader, node.key)
        elif node.is_inline:
            output = self.render_inline_node(reader, node)
        else:
            output = self.render_block(reader, node.key)
        return output.rstrip("\n")

    def render_blocks(self, reader: NodeReader, parent_key: str, separator: Optional[str] = None) -> str:
        """Render every block child of ``parent_key`` joined by ``separator``."""
        if separator is None:
            separator = self.options.block_separator
        return separator.join(self.render_block(reader, child.key) for child in reader.get_children(parent_key))

    def render_block(self, reader: NodeReader, key: str) -> str:
        """Render one block through the first block rule that accepts it."""
        node = reader.require_node(key)
        for transformer in self.transformers.block_transformers:
            if isinstance(node, transformer.node_types):
                output = transformer.export(node, reader, self)
                if output is not None:
                    return output
        return self.render_inline(reader, key, at_block_start=True)

    def render_inline(
        self,
        reader: NodeReader,
        key: str,
        at_block_start: bool = False,
        line_break: str = DEFAULT_LINE_BREAK,
    ) -> str:
        """Render the inline children of ``key``.

        Parameters
        ----------
        reader : NodeReader
            Snapshot or transaction to read from
        key : str
            Element owning the inline nodes
        at_block_start : bool, default = False
            The output opens a Markdown line, so block markers in the first
            text run are escaped
        line_break : str, default "<br>"
            Text written for a line break

        """
        parts: list[str] = []
        for index, child in enumerate(self._merged_children(reader, key)):
            output = self.render_inline_node(reader, child, at_block_start and index == 0, line_break)
            # "!" right before "[label](url)" would turn the link into an image
            if parts and output.startswith("[") and self.options.escape_special:
                parts[-1] = _escape_trailing_bang(parts[-1])
            parts.append(output)
        return "".join(parts)

    def render_inline_node(
        self,
        reader: NodeReader,
        node: Node,
        at_block_start: bool = False,
        line_break: str = DEFAULT_LINE_BREAK,
    ) -> str:
        """Render a single inline node."""
        for transformer in self.transformers.text_match_transformers:
            if isinstance(node, transformer.node_types):
                output = transformer.export(node, reader, self)
                if output is not None:
                    return output
        if isinstance(node, TextNode):
            return self.format_text(node.text, node.format, at_block_start, line_break)
        if isinstance(node, LineBreakNode):
            return line_break
        if isinstance(node, ElementNode):
            return self.render_inline(reader, node.key, line_break=line_break)
        return ""

    def format_text(
        self,
        text: str,
        text_format: TextFormat,
        at_block_start: bool = False,
        line_break: str = DEFAULT_LINE_BREAK,
    ) -> str:
        """Escape a text run and wrap it in the delimiters of its formats.

        Whitespace at either end of the run is moved outside the delimiters,
        since ``** bold**`` does not parse as bold.
        """
        if "\n" in text:
            pieces = text.split("\n")
            return line_break.join(
                self.format_text(piece, text_format, at_block_start and index == 0, line_break)
                for index, piece in enumerate(pieces)
            )
        if not text:
            return ""

        if text_format & TextFormat.CODE:
            body, delimiter = escape_inline_code(text)
            core = delimiter + body + delimiter
            leading = trailing = ""
        else:
            stripped = text.strip()
            if not stripped:
                return text
            leading = text[: len(text) - len(text.lstrip())]
            trailing = text[len(text.rstrip()) :]
            core = escape_markdown_text(stripped) if self.options.escape_special else stripped

        wrappers = [
            rule
            for rule in reversed(self.transformers.text_format_transformers)
            if rule.format != TextFormat.CODE and text_format & rule.format and self._writes_format(rule.format)
        ]
        if at_block_start and not wrappers and not text_format & TextFormat.CODE and self.options.escape_special:
            core = escape_block_start(core)
        for rule in wrappers:
            core = rule.open_tag + core + rule.close_tag
        return leading + core + trailing

    def _writes_format(self, text_format: TextFormat) -> bool:
        if text_format == TextFormat.UNDERLINE:
            return self.options.underline_mode == "html"
        return True

    def _merged_children(self, reader: NodeReader, key: str) -> list[Node]:
        """Return the children of ``key`` with neighbouring same-format runs joined."""
        merged: list[Node] = []
        for child in reader.get_children(key):
            previous = merged[-1] if merged else None
            if isinstance(child, TextNode) and isinstance(previous, TextNode) and previous.format == child.format:
                merged[-1] = replace(previous, text=previous.text + child.text)
            else:
                merged.append(child)
        return merged


def _escape_trailing_bang(text: str) -> str:
    if not text.endswith("!"):
        return text
    backslashes = len(text[:-1]) - len(text[:-1].rstrip("\\"))
    if backslashes % 2:
        return text
    return text[:-1] + "\\!"


def state_to_markdown(
    reader: NodeReader,
    options: Optional[MarkdownExportOptions] = None,
    transformers: Optional[TransformerRegistry] = None,
    key: Optional[str] = None,
) -> str:
    """Export a snapshot (or one subtree of it) as Markdown.

    Parameters
    ----------
    reader : NodeReader
        Snapshot or transaction to export
    options : MarkdownExportOptions or None, default = None
        Export settings
    transformers : TransformerRegistry or None, default = None
        Rules to apply
    key : str or None, default = None
        Subtree to export, the whole document when omitted

    Returns
    -------
    str
        Markdown text

    """
    return MarkdownRenderer(options, transformers).render(reader, key)


__all__ = ["MarkdownRenderer", "state_to_markdown", "DEFAULT_LINE_BREAK"]
