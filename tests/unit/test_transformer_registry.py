#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_transformer_registry.py
"""Unit tests for the transformer registry and custom rules."""

import re

import pytest
from utils import find_all, find_first

from richmark.exceptions import ValidationError
from richmark.markdown import (
    DEFAULT_TRANSFORMERS,
    ElementTransformer,
    MarkdownParser,
    MarkdownRenderer,
    MultilineElementTransformer,
    TextFormatTransformer,
    TextMatchTransformer,
    TransformerRegistry,
)
from richmark.markdown.transformers import BOLD_STAR, HEADING, QUOTE
from richmark.model import HeadingNode, ParagraphNode, QuoteNode, TextFormat, TextNode


def _callout_replace(txn, block_key, text_key, match, parser):
    quote = txn.create(QuoteNode)
    txn.replace(block_key, quote.key, move_children=True)
    return True


def _never_export(node, reader, renderer):
    return None


CALLOUT = ElementTransformer(
    name="callout",
    node_types=(QuoteNode,),
    reg_exp=re.compile(r"^!!\s"),
    replace=_callout_replace,
    export=_never_export,
)


@pytest.mark.unit
class TestRegistry:
    """Tests for TransformerRegistry."""

    def test_default_order(self):
        """Tables come first and links last."""
        names = DEFAULT_TRANSFORMERS.names
        assert names[0] == "table"
        assert names[-1] == "link"
        assert names.index("image") < names.index("link")
        assert names.index("check_list") < names.index("unordered_list")

    def test_kind_views(self):
        """Typed views keep the registry order."""
        assert all(isinstance(t, ElementTransformer) for t in DEFAULT_TRANSFORMERS.element_transformers)
        assert [t.name for t in DEFAULT_TRANSFORMERS.multiline_transformers] == ["code"]
        assert all(isinstance(t, TextMatchTransformer) for t in DEFAULT_TRANSFORMERS.text_match_transformers)
        assert DEFAULT_TRANSFORMERS.text_format_transformers[0].name == "underline"
        assert all(
            isinstance(t, (ElementTransformer, MultilineElementTransformer))
            for t in DEFAULT_TRANSFORMERS.block_transformers
        )

    def test_duplicate_names_rejected(self):
        """Rule names are unique."""
        with pytest.raises(ValidationError):
            TransformerRegistry([HEADING, QUOTE, HEADING])

    def test_lookup(self):
        """Rules are found by name."""
        assert "heading" in DEFAULT_TRANSFORMERS
        assert "nope" not in DEFAULT_TRANSFORMERS
        assert DEFAULT_TRANSFORMERS.get("bold_star") is BOLD_STAR
        with pytest.raises(KeyError):
            DEFAULT_TRANSFORMERS.get("nope")

    def test_without(self):
        """without() drops rules and leaves the original untouched."""
        smaller = DEFAULT_TRANSFORMERS.without("heading", "quote")
        assert len(smaller) == len(DEFAULT_TRANSFORMERS) - 2
        assert "heading" not in smaller
        assert "heading" in DEFAULT_TRANSFORMERS


@pytest.mark.unit
class TestCustomRules:
    """Tests for registries with custom or missing rules."""

    def test_custom_rule_runs_before_defaults(self):
        """A custom line rule placed first converts its lines."""
        registry = TransformerRegistry([CALLOUT, *DEFAULT_TRANSFORMERS])
        state = MarkdownParser(transformers=registry).parse("!! careful")
        quote = find_first(state, QuoteNode)
        assert state.text_content(quote.key) == "careful"

    def test_export_falls_through(self):
        """A rule returning None lets the next rule export the node."""
        registry = TransformerRegistry([CALLOUT, *DEFAULT_TRANSFORMERS])
        state = MarkdownParser(transformers=registry).parse("!! careful")
        assert MarkdownRenderer(transformers=registry).render(state) == "> careful"

    def test_missing_rule_leaves_text(self):
        """Without the heading rule a heading line stays a paragraph."""
        registry = DEFAULT_TRANSFORMERS.without("heading")
        state = MarkdownParser(transformers=registry).parse("# Title")
        assert not find_all(state, HeadingNode)
        assert isinstance(find_first(state, ParagraphNode), ParagraphNode)
        assert state.text_content() == "# Title"

    def test_custom_format_delimiters(self):
        """Format rules decide the delimiters written on export."""
        bold_underscore = TextFormatTransformer("bold_underscore", TextFormat.BOLD, "__", "__", token_type="strong")
        registry = TransformerRegistry(
            [bold_underscore if t.name == "bold_star" else t for t in DEFAULT_TRANSFORMERS]
        )
        state = MarkdownParser(transformers=registry).parse("**strong**")
        run = find_first(state, TextNode)
        assert run.format == TextFormat.BOLD
        assert MarkdownRenderer(transformers=registry).render(state) == "__strong__"
