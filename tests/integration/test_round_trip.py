#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/integration/test_round_trip.py
"""Round-trip tests between Markdown and the document model."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from richmark.editor import Editor
from richmark.markdown import markdown_to_state, state_to_markdown
from richmark.model import dict_to_state, node_to_dict

# Text built from characters that never form Markdown syntax
_SAFE_TEXT = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789,;", min_size=1, max_size=40)


@pytest.mark.integration
class TestRoundTrip:
    """Export is stable for canonical Markdown."""

    def test_sample_document(self, sample_markdown):
        assert state_to_markdown(markdown_to_state(sample_markdown)) == sample_markdown

    def test_sample_through_editor(self, editor, sample_markdown):
        editor.set_markdown(sample_markdown)
        assert editor.to_markdown() == sample_markdown

    def test_export_is_idempotent(self):
        """Exporting a re-import of any export gives the same text."""
        messy = "#  Spaced\n\n* star list\n+ plus\n\n| a |b|\n|:-:|--|\n"
        first = state_to_markdown(markdown_to_state(messy))
        assert state_to_markdown(markdown_to_state(first)) == first

    def test_dict_round_trip(self, sample_markdown):
        """The dictionary form rebuilds an equivalent document."""
        state = markdown_to_state(sample_markdown)
        rebuilt = dict_to_state(node_to_dict(state))
        assert state_to_markdown(rebuilt) == sample_markdown
        assert node_to_dict(rebuilt) == node_to_dict(state)


@pytest.mark.integration
@pytest.mark.fuzzing
class TestRoundTripProperties:
    """Property-based round trips."""

    @given(st.lists(_SAFE_TEXT, min_size=1, max_size=5))
    def test_paragraphs(self, paragraphs):
        markdown = "\n\n".join(paragraphs)
        assert state_to_markdown(markdown_to_state(markdown)) == markdown

    @given(st.lists(st.lists(_SAFE_TEXT, min_size=2, max_size=2), min_size=1, max_size=4))
    def test_tables(self, rows):
        markdown = "\n".join(f"| {a} | {b} |" for a, b in rows)
        assert state_to_markdown(markdown_to_state(markdown)) == markdown

    @given(_SAFE_TEXT)
    def test_typed_text_exports_verbatim(self, text):
        editor = Editor()
        paragraph = editor.state.root.children[0]
        editor.select_node_start(paragraph)
        editor.insert_text(text)
        assert editor.to_markdown() == text
