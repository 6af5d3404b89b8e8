#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Markdown codec: transformer registry, importer and exporter."""

from richmark.markdown.inline import InlineMarkdownParser
from richmark.markdown.parser import MarkdownParser, import_markdown, markdown_to_state
from richmark.markdown.registry import (
    ElementTransformer,
    MultilineElementTransformer,
    TextFormatTransformer,
    TextMatchTransformer,
    Transformer,
    TransformerRegistry,
)
from richmark.markdown.renderer import MarkdownRenderer, state_to_markdown
from richmark.markdown.table import TABLE
from richmark.markdown.transformers import DEFAULT_TRANSFORMERS

__all__ = [
    "DEFAULT_TRANSFORMERS",
    "ElementTransformer",
    "InlineMarkdownParser",
    "MarkdownParser",
    "MarkdownRenderer",
    "MultilineElementTransformer",
    "TABLE",
    "TextFormatTransformer",
    "TextMatchTransformer",
    "Transformer",
    "TransformerRegistry",
    "import_markdown",
    "markdown_to_state",
    "state_to_markdown",
]
