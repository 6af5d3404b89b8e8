#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/options/markdown.py
"""Options controlling Markdown import and export."""

from __future__ import annotations

from dataclasses import dataclass, field

from richmark.constants import (
    DEFAULT_BLOCK_SEPARATOR,
    DEFAULT_BULLET_SYMBOL,
    DEFAULT_ESCAPE_SPECIAL,
    DEFAULT_HORIZONTAL_RULE,
    DEFAULT_LIST_INDENT_WIDTH,
    DEFAULT_SPAN_MARKERS,
    DEFAULT_STRICT_TABLE_DIVIDER,
    DEFAULT_TABLE_PIPE_ESCAPE,
    DEFAULT_UNDERLINE_MODE,
    BulletSymbol,
    UnderlineMode,
)
from richmark.options.base import CloneFrozenMixin


@dataclass(frozen=True)
class MarkdownImportOptions(CloneFrozenMixin):
    """Settings for turning Markdown text into document nodes.

    Parameters
    ----------
    strict_table_divider : bool, default True
        Require at least one dash in every segment of a header divider row.
        With False, any pipe row made of spaces, colons and dashes promotes
        the previous row, including ``| | |``.
    span_markers : bool, default True
        Fold ``<<`` and ``^^`` cells into the spans of the owning cell.
    preserve_empty_lines : bool, default False
        Keep an empty paragraph for every blank input line.
    list_indent_width : int, default 4
        Number of spaces per list nesting level.

    """

    strict_table_divider: bool = field(
        default=DEFAULT_STRICT_TABLE_DIVIDER,
        metadata={"help": "Require dashes in every header divider segment", "importance": "advanced"},
    )
    span_markers: bool = field(
        default=DEFAULT_SPAN_MARKERS,
        metadata={"help": "Interpret '<<' and '^^' table cells as merged cell continuations", "importance": "core"},
    )
    preserve_empty_lines: bool = field(
        default=False,
        metadata={"help": "Keep blank lines as empty paragraphs", "importance": "advanced"},
    )
    list_indent_width: int = field(
        default=DEFAULT_LIST_INDENT_WIDTH,
        metadata={"help": "Spaces per list nesting level", "type": int, "importance": "advanced"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges.

        Raises
        ------
        ValueError
            If ``list_indent_width`` is not positive.

        """
        self._require_positive("list_indent_width")


@dataclass(frozen=True)
class MarkdownExportOptions(CloneFrozenMixin):
    r"""Settings for turning document nodes into Markdown text.

    Parameters
    ----------
    escape_special : bool, default True
        Escape characters that would otherwise be read back as Markdown
        syntax (``\``, ``*``, ``_``, ``[``, ``]``, ``~``, ``<`` and
        block-start markers).
    table_pipe_escape : bool, default True
        Escape ``|`` inside table cells.
    span_markers : bool, default True
        Write ``<<``/``^^`` into grid positions covered by merged cells.
    list_indent_width : int, default 4
        Spaces per list nesting level.
    bullet_symbol : {"-", "*", "+"}, default "-"
        Marker for unordered and check list items.
    horizontal_rule : str, default "***"
        Text written for a horizontal rule.
    underline_mode : {"html", "ignore"}, default "html"
        ``html`` wraps underlined runs in ``<u>`` tags, ``ignore`` drops the
        formatting.
    block_separator : str, default "\n\n"
        Text placed between top-level blocks.

    """

    escape_special: bool = field(
        default=DEFAULT_ESCAPE_SPECIAL,
        metadata={"help": "Escape special Markdown characters in text", "importance": "core"},
    )
    table_pipe_escape: bool = field(
        default=DEFAULT_TABLE_PIPE_ESCAPE,
        metadata={"help": "Escape pipe characters inside table cells", "importance": "advanced"},
    )
    span_markers: bool = field(
        default=DEFAULT_SPAN_MARKERS,
        metadata={"help": "Write '<<' and '^^' for grid positions covered by merged cells", "importance": "core"},
    )
    list_indent_width: int = field(
        default=DEFAULT_LIST_INDENT_WIDTH,
        metadata={"help": "Spaces per list nesting level", "type": int, "importance": "advanced"},
    )
    bullet_symbol: BulletSymbol = field(
        default=DEFAULT_BULLET_SYMBOL,
        metadata={"help": "Marker used for bullet list items", "choices": ["-", "*", "+"], "importance": "core"},
    )
    horizontal_rule: str = field(
        default=DEFAULT_HORIZONTAL_RULE,
        metadata={"help": "Text written for horizontal rules", "importance": "advanced"},
    )
    underline_mode: UnderlineMode = field(
        default=DEFAULT_UNDERLINE_MODE,
        metadata={"help": "How to write underlined text", "choices": ["html", "ignore"], "importance": "core"},
    )
    block_separator: str = field(
        default=DEFAULT_BLOCK_SEPARATOR,
        metadata={"help": "Separator placed between top-level blocks", "importance": "advanced"},
    )

    def __post_init__(self) -> None:
        """Validate option values.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        self._require_positive("list_indent_width")
        self._require_choice("bullet_symbol", ("-", "*", "+"))
        self._require_choice("underline_mode", ("html", "ignore"))
        self._require_choice("horizontal_rule", ("---", "***", "___"))
