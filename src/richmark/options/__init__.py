#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Configuration options for richmark.

Options are frozen dataclasses: build a modified copy with
``options.create_updated(field=value)`` instead of mutating them.
"""

from __future__ import annotations

from richmark.options.base import CloneFrozenMixin
from richmark.options.editor import EditorOptions
from richmark.options.markdown import MarkdownExportOptions, MarkdownImportOptions

__all__ = [
    "CloneFrozenMixin",
    "EditorOptions",
    "MarkdownExportOptions",
    "MarkdownImportOptions",
]
