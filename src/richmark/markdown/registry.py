#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/registry.py
"""Transformer types and the ordered transformer registry.

A transformer is a bidirectional rule between a node pattern and Markdown
syntax. There are four kinds:

ElementTransformer
    One Markdown line <-> one block (heading, quote, list item, rule, table row).
MultilineElementTransformer
    A run of lines between a start and an end pattern <-> one block (code fence).
TextMatchTransformer
    An inline pattern <-> one inline node (image, link, autolink).
TextFormatTransformer
    A delimiter pair <-> a text format bit (bold, italic, ...).

The registry is a flat list scanned top to bottom and the first rule that
accepts a line or a node wins. The order is part of the contract: custom
rules sit before the generic ones so that, for example, ``![alt](src)`` is
taken by the image rule before the link rule can see ``[alt](src)``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional, Union

from richmark.exceptions import ValidationError
from richmark.model.nodes import Node, TextFormat
from richmark.model.state import NodeReader, Transaction

if TYPE_CHECKING:
    from richmark.markdown.inline import InlineMarkdownParser
    from richmark.markdown.parser import MarkdownParser
    from richmark.markdown.renderer import MarkdownRenderer

logger = logging.getLogger(__name__)

BlockExport = Callable[[Node, NodeReader, "MarkdownRenderer"], Optional[str]]
ElementReplace = Callable[[Transaction, str, str, "re.Match[str]", "MarkdownParser"], bool]
MultilineReplace = Callable[[Transaction, str, "list[str]", "re.Match[str]", "MarkdownParser"], str]
TextMatchReplace = Callable[[Transaction, "re.Match[str]", "InlineMarkdownParser"], "list[str]"]
InlineExport = Callable[[Node, NodeReader, "MarkdownRenderer"], Optional[str]]


@dataclass(frozen=True)
class ElementTransformer:
    """Single-line block rule.

    Parameters
    ----------
    name : str
        Unique rule name
    node_types : tuple of type
        Node classes the export function handles
    reg_exp : re.Pattern
        Line pattern; the matched prefix is stripped from the line's text run
    replace : callable
        ``replace(txn, block_key, text_key, match, parser) -> bool`` turns the
        provisional paragraph into the block; returning False passes the line
        on to the next rule
    export : callable
        ``export(node, reader, renderer) -> str or None``

    """

    name: str
    node_types: tuple[type[Node], ...]
    reg_exp: re.Pattern[str]
    replace: ElementReplace
    export: BlockExport


@dataclass(frozen=True)
class MultilineElementTransformer:
    """Block rule spanning several lines.

    ``replace(txn, parent_key, lines, start_match, parser)`` receives the
    lines between the fences and returns the key of the appended block.
    ``is_end(line, start_match)`` decides whether a line closes the block; an
    unclosed block runs to the end of the input.
    """

    name: str
    node_types: tuple[type[Node], ...]
    reg_exp_start: re.Pattern[str]
    is_end: Callable[[str, "re.Match[str]"], bool]
    replace: MultilineReplace
    export: BlockExport


@dataclass(frozen=True)
class TextMatchTransformer:
    """Inline node rule.

    ``import_reg_exp`` is searched in raw inline text before the inline
    Markdown library sees it. When it is None the rule only exports and the
    library produces the node on import.
    """

    name: str
    node_types: tuple[type[Node], ...]
    import_reg_exp: Optional[re.Pattern[str]]
    reg_exp: Optional[re.Pattern[str]]
    replace: Optional[TextMatchReplace]
    export: InlineExport


@dataclass(frozen=True)
class TextFormatTransformer:
    """Format delimiter rule.

    Parameters
    ----------
    name : str
        Unique rule name
    format : TextFormat
        Format bit the delimiters express
    open_tag : str
        Opening delimiter on export
    close_tag : str
        Closing delimiter on export
    token_type : str or None
        Inline token type of the Markdown library that carries this format

    """

    name: str
    format: TextFormat
    open_tag: str
    close_tag: str
    token_type: Optional[str] = None


Transformer = Union[ElementTransformer, MultilineElementTransformer, TextMatchTransformer, TextFormatTransformer]


class TransformerRegistry:
    """Ordered collection of transformers.

    Parameters
    ----------
    transformers : iterable of Transformer
        Rules in priority order

    Raises
    ------
    ValidationError
        If two rules share a name

    """

    def __init__(self, transformers: Iterable[Transformer]) -> None:
        self._transformers: tuple[Transformer, ...] = tuple(transformers)
        names = [transformer.name for transformer in self._transformers]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate transformer names: {', '.join(duplicates)}", "transformers", duplicates)

    def __iter__(self) -> Iterator[Transformer]:
        return iter(self._transformers)

    def __len__(self) -> int:
        return len(self._transformers)

    def __contains__(self, name: object) -> bool:
        return any(transformer.name == name for transformer in self._transformers)

    @property
    def names(self) -> list[str]:
        """Rule names in priority order."""
        return [transformer.name for transformer in self._transformers]

    def get(self, name: str) -> Transformer:
        """Return the rule called ``name``.

        Raises
        ------
        KeyError
            If no rule has that name

        """
        for transformer in self._transformers:
            if transformer.name == name:
                return transformer
        raise KeyError(name)

    @property
    def element_transformers(self) -> list[ElementTransformer]:
        """Single-line block rules in order."""
        return [t for t in self._transformers if isinstance(t, ElementTransformer)]

    @property
    def multiline_transformers(self) -> list[MultilineElementTransformer]:
        """Multi-line block rules in order."""
        return [t for t in self._transformers if isinstance(t, MultilineElementTransformer)]

    @property
    def block_transformers(self) -> list[Union[ElementTransformer, MultilineElementTransformer]]:
        """Every block rule in order, used for export."""
        return [t for t in self._transformers if isinstance(t, (ElementTransformer, MultilineElementTransformer))]

    @property
    def text_match_transformers(self) -> list[TextMatchTransformer]:
        """Inline node rules in order."""
        return [t for t in self._transformers if isinstance(t, TextMatchTransformer)]

    @property
    def text_format_transformers(self) -> list[TextFormatTransformer]:
        """Format rules, outermost delimiter first."""
        return [t for t in self._transformers if isinstance(t, TextFormatTransformer)]

    def without(self, *names: str) -> TransformerRegistry:
        """Return a registry without the named rules."""
        return TransformerRegistry(t for t in self._transformers if t.name not in names)

    def __repr__(self) -> str:
        return f"TransformerRegistry({self.names!r})"


__all__ = [
    "ElementTransformer",
    "MultilineElementTransformer",
    "TextMatchTransformer",
    "TextFormatTransformer",
    "Transformer",
    "TransformerRegistry",
]
