#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/options/editor.py
"""Options for an editing session."""

from __future__ import annotations

from dataclasses import dataclass, field

from richmark.constants import (
    DEFAULT_CODE_LANGUAGE,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_IMAGE_MAX_WIDTH,
    DEFAULT_TABLE_CELL_MIN_WIDTH,
)
from richmark.options.base import CloneFrozenMixin
from richmark.options.markdown import MarkdownExportOptions, MarkdownImportOptions


@dataclass(frozen=True)
class EditorOptions(CloneFrozenMixin):
    """Configuration for :class:`richmark.editor.Editor`.

    Parameters
    ----------
    projection_debounce_seconds : float, default 0.1
        Quiet period before projection listeners are notified.
    heading_shortcuts : bool, default True
        Run the heading leveler on every update and on backspace.
    auto_append_blank_line : bool, default False
        Keep an empty paragraph at the end of the document.
    default_code_language : str or None, default "javascript"
        Language given to code blocks created by ``toggle_block_type("code")``.
    table_cell_min_width : int, default 40
        Width assigned to cells created by table commands.
    image_max_width : int, default 800
        ``max_width`` of inserted and imported images.
    validate_on_commit : bool, default False
        Run the full structural validator after every commit.
    markdown_import : MarkdownImportOptions
        Options used by ``set_markdown`` and the Markdown shortcuts.
    markdown_export : MarkdownExportOptions
        Options used by ``to_markdown``.

    """

    projection_debounce_seconds: float = field(
        default=DEFAULT_DEBOUNCE_SECONDS,
        metadata={"help": "Quiet period in seconds before projection listeners fire", "type": float},
    )
    heading_shortcuts: bool = field(
        default=True,
        metadata={"help": "Promote headings when '#' is typed and demote them on backspace"},
    )
    auto_append_blank_line: bool = field(
        default=False,
        metadata={"help": "Keep an empty paragraph after the last block"},
    )
    default_code_language: str | None = field(
        default=DEFAULT_CODE_LANGUAGE,
        metadata={"help": "Language of code blocks created from other blocks"},
    )
    table_cell_min_width: int = field(
        default=DEFAULT_TABLE_CELL_MIN_WIDTH,
        metadata={"help": "Width of table cells created by commands", "type": int},
    )
    image_max_width: int = field(
        default=DEFAULT_IMAGE_MAX_WIDTH,
        metadata={"help": "Maximum display width of images", "type": int},
    )
    validate_on_commit: bool = field(
        default=False,
        metadata={"help": "Validate the whole tree after every transaction", "importance": "advanced"},
    )
    markdown_import: MarkdownImportOptions = field(
        default_factory=MarkdownImportOptions,
        metadata={"help": "Markdown import settings"},
    )
    markdown_export: MarkdownExportOptions = field(
        default_factory=MarkdownExportOptions,
        metadata={"help": "Markdown export settings"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        self._require_positive("projection_debounce_seconds", allow_zero=True)
        self._require_positive("table_cell_min_width")
        self._require_positive("image_max_width")
