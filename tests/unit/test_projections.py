#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_projections.py
"""Unit tests for block type classification and document projections.

Tests cover:
- get_block_type for every kind of block and inline position
- BlockTypeTracker remembering the last classification
- Heading outline, document title and character count

"""

import pytest
from utils import caret_in, cell_at, find_first

from richmark.block_type import BlockTypeTracker, get_block_type
from richmark.markdown import markdown_to_state
from richmark.model import ROOT_KEY, RangeSelection, TableNode, TableSelection
from richmark.projections import Projections, first_heading, heading_outline, visible_character_count


@pytest.mark.unit
class TestBlockType:
    """Tests for get_block_type."""

    @pytest.mark.parametrize(
        "markdown,text,expected",
        [
            ("plain words", "plain", "paragraph"),
            ("## Section", "Section", "h2"),
            ("> quoted", "quoted", "quote"),
            ("- bullet item", "bullet", "bullet"),
            ("1. first item", "first", "number"),
            ("- [ ] open task", "open", "check"),
            ("```\nsource code\n```", "source", "code"),
            ("see [the docs](https://example.com)", "the docs", "link"),
            ("see <https://example.com>", "https://example.com", "autolink"),
            ("- [a link](https://example.com)", "a link", "link"),
            ("## [titled](https://example.com)", "titled", "link"),
        ],
    )
    def test_classification(self, markdown, text, expected):
        """The block around the caret decides the name."""
        state = markdown_to_state(markdown)
        assert get_block_type(state, caret_in(state, text, 0)) == expected

    def test_nested_list_reports_inner_type(self):
        """The closest list item decides the list type."""
        state = markdown_to_state("- outer\n    1. inner")
        assert get_block_type(state, caret_in(state, "inner")) == "number"

    def test_cell_paragraph(self):
        """A caret in a table cell reports the block inside the cell."""
        state = markdown_to_state("| # Title | text |")
        assert get_block_type(state, caret_in(state, "Title")) == "h1"
        assert get_block_type(state, caret_in(state, "text")) == "paragraph"

    def test_nothing_to_classify(self):
        """Without a usable selection the last known value is returned."""
        state = markdown_to_state("# Title")
        assert get_block_type(state, None, last_known="h3") == "h3"
        root_caret = RangeSelection.collapsed(ROOT_KEY, 0, kind="element")
        assert get_block_type(state, root_caret, last_known="quote") == "quote"
        missing = RangeSelection.collapsed("missing", 0)
        assert get_block_type(state, missing) == "paragraph"

    def test_table_selection_keeps_last_known(self):
        """A cell selection has no block of its own."""
        state = markdown_to_state("| a | b |")
        table = find_first(state, TableNode)
        selection = TableSelection(table.key, cell_at(state, 0, 0).key, cell_at(state, 0, 1).key)
        assert get_block_type(state, selection, last_known="h2") == "h2"

    def test_reader_selection_used_by_default(self):
        """The reader's own selection is classified when none is passed."""
        state = markdown_to_state("> quoted")
        state = state.with_selection(caret_in(state, "quoted"))
        assert get_block_type(state) == "quote"


@pytest.mark.unit
class TestBlockTypeTracker:
    """Tests for BlockTypeTracker."""

    def test_remembers_last_value(self):
        """Unclassifiable selections keep the previous answer."""
        state = markdown_to_state("## Section")
        tracker = BlockTypeTracker()
        assert tracker.last_known == "paragraph"
        assert tracker.update(state, caret_in(state, "Section")) == "h2"
        assert tracker.update(state.with_selection(None)) == "h2"
        assert tracker.last_known == "h2"


@pytest.mark.unit
class TestProjections:
    """Tests for the document projections."""

    def test_outline(self):
        """Every heading is listed in document order, including cell headings."""
        state = markdown_to_state("# One\n\ntext\n\n## Two\n\n| ### Three |")
        outline = heading_outline(state)
        assert [(entry.text, entry.level) for entry in outline] == [("One", 1), ("Two", 2), ("Three", 3)]

    def test_first_heading(self):
        """The title is the trimmed text of the first top-level heading."""
        state = markdown_to_state("intro\n\n## Real Title  \n\n# Later")
        assert first_heading(state) == "Real Title"

    def test_first_heading_ignores_cells(self):
        """Headings inside tables are not titles."""
        assert first_heading(markdown_to_state("| # In a cell |")) == "Untitled"

    def test_first_heading_default(self):
        """Documents without a heading are untitled."""
        assert first_heading(markdown_to_state("just text")) == "Untitled"
        assert first_heading(markdown_to_state("just text"), default="Draft") == "Draft"

    def test_blank_heading_is_untitled(self):
        """A heading holding only whitespace does not count as a title."""
        assert first_heading(markdown_to_state("#  ")) == "Untitled"

    def test_character_count(self):
        """Line breaks and block separators are not counted."""
        assert visible_character_count(markdown_to_state("ab\n\ncd")) == 4
        assert visible_character_count(markdown_to_state("a<br>b")) == 2
        assert visible_character_count(markdown_to_state("")) == 0

    def test_compute(self):
        """compute() gathers every projection."""
        state = markdown_to_state("# Doc\n\n> quoted")
        state = state.with_selection(caret_in(state, "quoted"))
        projections = Projections.compute(state)
        assert projections.current_block_type == "quote"
        assert projections.first_heading == "Doc"
        assert projections.visible_character_count == len("Docquoted")
        assert [entry.text for entry in projections.heading_outline] == ["Doc"]

    def test_compute_keeps_last_block_type(self):
        """Without a selection the given block type is reported."""
        state = markdown_to_state("# Doc")
        assert Projections.compute(state, "h4").current_block_type == "h4"
        assert Projections.compute(state).current_block_type == "paragraph"
