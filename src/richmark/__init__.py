#  Copyright (c) 2025 Tom Villani, Ph.D.
"""richmark - a rich-text document core whose content round-trips through Markdown.

richmark keeps a document as a tree of immutable nodes (paragraphs, headings,
quotes, lists, code blocks, tables with merged cells, links, images and
formatted text runs) and converts it to and from Markdown with GitHub-style
pipe tables.

Key Features
------------
- Snapshot/transaction document model with structural invariants
- Ordered Markdown transformer registry shared by import and export
- Pipe-table codec with ``<<``/``^^`` span markers for merged cells
- Table editing: insert, delete, merge, unmerge and header toggles
- Heading shortcuts driven by typed ``#`` characters
- Debounced projections: heading outline, title, character count

Examples
--------
Load Markdown, edit it and export it again:

    >>> from richmark import Editor
    >>> editor = Editor(markdown="# Notes\\n\\n| a | b |\\n| --- | --- |\\n| 1 | 2 |")
    >>> editor.projections().first_heading
    'Notes'
    >>> print(editor.to_markdown())
    # Notes
    <BLANKLINE>
    | a | b |
    | --- | --- |
    | 1 | 2 |

"""

__version__ = "0.1.0"

from richmark.commands import CommandResult
from richmark.editor import Editor, UpdateEvent
from richmark.exceptions import (
    ConfigError,
    InvalidSelectionError,
    InvariantViolationError,
    RichMarkError,
    StaleNodeError,
    TableStructureError,
    TransactionError,
    ValidationError,
)
from richmark.markdown import DEFAULT_TRANSFORMERS, TransformerRegistry, markdown_to_state, state_to_markdown
from richmark.model import EditorState, Transaction
from richmark.options import EditorOptions, MarkdownExportOptions, MarkdownImportOptions
from richmark.projections import Projections

__all__ = [
    "__version__",
    "CommandResult",
    "ConfigError",
    "DEFAULT_TRANSFORMERS",
    "Editor",
    "EditorOptions",
    "EditorState",
    "InvalidSelectionError",
    "InvariantViolationError",
    "MarkdownExportOptions",
    "MarkdownImportOptions",
    "Projections",
    "RichMarkError",
    "StaleNodeError",
    "TableStructureError",
    "Transaction",
    "TransactionError",
    "TransformerRegistry",
    "UpdateEvent",
    "ValidationError",
    "markdown_to_state",
    "state_to_markdown",
]
