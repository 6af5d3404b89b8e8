#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_markdown_import.py
"""Unit tests for Markdown import.

Tests cover:
- Block rules: headings, quotes, lists, check lists, code fences, rules
- Inline formats, links, autolinks, images and line breaks
- Pipe tables: header dividers, row joining, span markers, escaping
- Import options and registry variations

"""

import pytest
from utils import cell_at, cell_texts, find_all, find_first, find_text, grid_shape

from richmark.exceptions import InvariantViolationError
from richmark.markdown import DEFAULT_TRANSFORMERS, MarkdownParser, markdown_to_state
from richmark.model import (
    ROOT_KEY,
    CodeBlockNode,
    EditorState,
    HeaderState,
    HeadingNode,
    HorizontalRuleNode,
    ImageNode,
    LineBreakNode,
    LinkNode,
    ListItemNode,
    ListNode,
    ParagraphNode,
    QuoteNode,
    TableNode,
    TextFormat,
    TextNode,
)
from richmark.options import MarkdownImportOptions


def _blocks(state):
    return state.get_children(ROOT_KEY)


@pytest.mark.unit
class TestBlocks:
    """Tests for block-level import."""

    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_levels(self, level):
        """One to six hashes give the matching heading level."""
        state = markdown_to_state("#" * level + " Title")
        heading = _blocks(state)[0]
        assert isinstance(heading, HeadingNode)
        assert heading.level == level
        assert state.text_content() == "Title"

    def test_seven_hashes_is_paragraph(self):
        """Seven hashes are not a heading."""
        state = markdown_to_state("####### Title")
        assert isinstance(_blocks(state)[0], ParagraphNode)

    def test_heading_needs_space(self):
        """A hash run glued to text stays a paragraph."""
        state = markdown_to_state("#hashtag")
        assert isinstance(_blocks(state)[0], ParagraphNode)

    def test_quote_lines_join(self):
        """Consecutive quote lines form one quote split by line breaks."""
        state = markdown_to_state("> first\n> second")
        blocks = _blocks(state)
        assert len(blocks) == 1
        assert isinstance(blocks[0], QuoteNode)
        children = state.get_children(blocks[0].key)
        assert [type(child) for child in children] == [TextNode, LineBreakNode, TextNode]

    def test_blank_line_separates_quotes(self):
        """A blank line ends the quote."""
        state = markdown_to_state("> first\n\n> second")
        assert len(find_all(state, QuoteNode)) == 2

    def test_bullet_list(self):
        """Consecutive bullet lines form one list."""
        state = markdown_to_state("- one\n- two\n* three")
        lists = find_all(state, ListNode)
        assert len(lists) == 1
        assert lists[0].list_type == "bullet"
        assert len(lists[0].children) == 3

    def test_ordered_list_start(self):
        """The first number becomes the list start."""
        state = markdown_to_state("3. three\n4. four")
        numbered = find_first(state, ListNode)
        assert numbered.ordered
        assert numbered.start == 3
        assert len(numbered.children) == 2

    def test_list_type_change_starts_new_list(self):
        """A numbered line after bullets opens a new list."""
        state = markdown_to_state("- bullet\n1. number")
        assert [node.list_type for node in find_all(state, ListNode)] == ["bullet", "number"]

    def test_check_list(self):
        """Check items record their checked state."""
        state = markdown_to_state("- [x] done\n- [ ] todo")
        checks = find_first(state, ListNode)
        assert checks.list_type == "check"
        items = state.get_children(checks.key)
        assert [item.checked for item in items] == [True, False]
        assert state.text_content(items[0].key) == "done"

    def test_nested_list(self):
        """Indented items nest under the previous item."""
        state = markdown_to_state("- outer\n    - inner\n- next")
        outer = _blocks(state)[0]
        assert isinstance(outer, ListNode)
        first_item = state.get_children(outer.key)[0]
        children = state.get_children(first_item.key)
        assert [type(child) for child in children] == [ParagraphNode, ListNode]
        assert state.text_content(children[1].key) == "inner"
        assert len(outer.children) == 2

    def test_nested_list_of_other_type(self):
        """A nested level may use its own list type."""
        state = markdown_to_state("- outer\n    1. inner")
        inner = find_all(state, ListNode)[1]
        assert inner.list_type == "number"
        assert isinstance(state.get_parent(inner.key), ListItemNode)

    def test_code_block(self):
        """Fenced lines become a code block with its language."""
        state = markdown_to_state("```python\ndef f():\n    return 1\n```\nafter")
        code = find_first(state, CodeBlockNode)
        assert code.language == "python"
        assert state.text_content(code.key) == "def f():\n    return 1"
        assert isinstance(_blocks(state)[1], ParagraphNode)

    def test_code_block_keeps_markdown_literal(self):
        """Lines inside a fence are not parsed."""
        state = markdown_to_state("```\n# not a heading\n**not bold**\n```")
        assert not find_all(state, HeadingNode)
        code = find_first(state, CodeBlockNode)
        assert code.language is None
        assert state.text_content(code.key) == "# not a heading\n**not bold**"

    def test_unclosed_code_block_runs_to_end(self):
        """A fence without an end swallows the rest of the input."""
        state = markdown_to_state("```\nline one\n\nline two")
        blocks = _blocks(state)
        assert len(blocks) == 1
        assert state.text_content(blocks[0].key) == "line one\n\nline two"

    def test_empty_code_block(self):
        """An empty fence gives an empty code block."""
        state = markdown_to_state("```js\n```")
        code = find_first(state, CodeBlockNode)
        assert code.children == ()

    @pytest.mark.parametrize("marker", ["***", "---", "___"])
    def test_horizontal_rule(self, marker):
        """All three rule markers are recognized."""
        state = markdown_to_state(f"above\n\n{marker}\n\nbelow")
        assert [type(block) for block in _blocks(state)] == [ParagraphNode, HorizontalRuleNode, ParagraphNode]

    def test_empty_lines_pruned(self):
        """Blank lines do not become paragraphs by default."""
        state = markdown_to_state("a\n\n\n\nb")
        assert len(_blocks(state)) == 2

    def test_preserve_empty_lines(self):
        """preserve_empty_lines keeps one paragraph per blank line."""
        state = markdown_to_state("a\n\nb", MarkdownImportOptions(preserve_empty_lines=True))
        assert len(_blocks(state)) == 3
        assert state.get_children(ROOT_KEY)[1].children == ()

    def test_empty_input(self):
        """Empty input gives one empty paragraph."""
        state = markdown_to_state("")
        blocks = _blocks(state)
        assert len(blocks) == 1
        assert isinstance(blocks[0], ParagraphNode)

    def test_windows_newlines(self):
        """CRLF input is split like LF input."""
        state = markdown_to_state("# Title\r\n\r\nbody")
        assert [type(block) for block in _blocks(state)] == [HeadingNode, ParagraphNode]


@pytest.mark.unit
class TestInline:
    """Tests for inline import."""

    def test_formats(self):
        """Each delimiter sets its format bit."""
        state = markdown_to_state("**bold** *ital* `code` ~~gone~~ <u>under</u>")
        assert find_text(state, "bold").format == TextFormat.BOLD
        assert find_text(state, "ital").format == TextFormat.ITALIC
        assert find_text(state, "code").format == TextFormat.CODE
        assert find_text(state, "gone").format == TextFormat.STRIKETHROUGH
        assert find_text(state, "under").format == TextFormat.UNDERLINE

    def test_nested_formats_combine(self):
        """Nested delimiters combine their bits."""
        state = markdown_to_state("***both***")
        assert find_text(state, "both").format == TextFormat.BOLD | TextFormat.ITALIC

    def test_adjacent_plain_runs_merge(self):
        """Escapes do not split a run of plain text."""
        state = markdown_to_state("2 \\* 3")
        paragraph = _blocks(state)[0]
        assert len(paragraph.children) == 1
        assert state.text_content() == "2 * 3"

    def test_link(self):
        """Links keep their label as child text."""
        state = markdown_to_state("see [the **docs**](https://example.com/docs)")
        link = find_first(state, LinkNode)
        assert link.url == "https://example.com/docs"
        assert not link.autolink
        assert state.text_content(link.key) == "the docs"
        assert find_text(state, "docs").format == TextFormat.BOLD

    def test_autolink(self):
        """Angle-bracket URLs become autolinks."""
        state = markdown_to_state("visit <https://example.com>")
        link = find_first(state, LinkNode)
        assert link.autolink
        assert link.url == "https://example.com"
        assert state.text_content(link.key) == "https://example.com"

    def test_image(self):
        """Images carry alt text, source and the configured width."""
        state = MarkdownParser(image_max_width=320).parse("![a cat](cat.png)")
        image = find_first(state, ImageNode)
        assert (image.alt_text, image.src, image.max_width) == ("a cat", "cat.png", 320)

    def test_escaped_bang_before_link(self):
        """``\\!`` in front of a link is a literal "!" followed by the link."""
        state = markdown_to_state("see\\![x](https://y.z)")
        assert not find_all(state, ImageNode)
        assert find_first(state, LinkNode).url == "https://y.z"
        assert state.text_content() == "see!x"

    def test_line_break_tag(self):
        """A <br> tag becomes a line break."""
        state = markdown_to_state("one<br>two")
        children = state.get_children(_blocks(state)[0].key)
        assert [type(child) for child in children] == [TextNode, LineBreakNode, TextNode]

    def test_unknown_html_kept_literal(self):
        """Tags without a rule stay as text."""
        state = markdown_to_state("a <span>b</span>")
        assert state.text_content() == "a <span>b</span>"


@pytest.mark.unit
class TestTables:
    """Tests for pipe table import."""

    def test_header_table(self):
        """The divider promotes the row above it and disappears."""
        state = markdown_to_state("| a | b |\n| --- | --- |\n| c | d |")
        table = find_first(state, TableNode)
        assert grid_shape(state) == (2, 2)
        assert cell_texts(state) == [["a", "b"], ["c", "d"]]
        assert cell_at(state, 0, 1).header_state == HeaderState.ROW
        assert cell_at(state, 1, 0).header_state == HeaderState.NONE
        assert len(_blocks(state)) == 1
        assert _blocks(state)[0].key == table.key

    def test_aligned_divider(self):
        """Alignment colons are accepted in the divider."""
        state = markdown_to_state("| a | b |\n| :-- | :-: |")
        assert cell_at(state, 0, 0).header_state == HeaderState.ROW

    def test_lone_divider_discarded(self):
        """A divider without a table above it is dropped."""
        state = markdown_to_state("| --- | --- |")
        assert not find_all(state, TableNode)
        assert state.text_content() == ""

    def test_empty_row_is_not_a_strict_divider(self):
        """With strict dividers a row of empty cells stays a row."""
        state = markdown_to_state("| a | b |\n|  |  |")
        assert grid_shape(state) == (2, 2)
        assert cell_at(state, 0, 0).header_state == HeaderState.NONE

    def test_loose_divider(self):
        """Without strict dividers an empty row promotes the header."""
        options = MarkdownImportOptions(strict_table_divider=False)
        state = markdown_to_state("| a | b |\n| | |", options)
        assert grid_shape(state) == (1, 2)
        assert cell_at(state, 0, 0).header_state == HeaderState.ROW

    def test_width_change_starts_new_table(self):
        """Rows with another column count open a new table."""
        state = markdown_to_state("| a | b |\n| c | d | e |")
        tables = find_all(state, TableNode)
        assert len(tables) == 2
        assert grid_shape(state, tables[1].key) == (1, 3)

    def test_escaped_pipe_and_newline(self):
        """Escaped pipes stay in the cell and \\n splits paragraphs."""
        state = markdown_to_state("| a \\| b | x\\ny |")
        assert cell_texts(state) == [["a | b", "x\n\ny"]]
        assert len(state.get_children(cell_at(state, 0, 1).key)) == 2

    def test_cell_inline_formats(self):
        """Cells are parsed as Markdown."""
        state = markdown_to_state("| **bold** | [l](u) |")
        assert find_text(state, "bold").format == TextFormat.BOLD
        assert find_first(state, LinkNode).url == "u"

    def test_cell_holds_list(self):
        """Block syntax inside a cell builds blocks in the cell."""
        state = markdown_to_state("| - one\\n- two |")
        cell = cell_at(state, 0, 0)
        assert isinstance(state.get_children(cell.key)[0], ListNode)

    def test_tables_do_not_nest(self):
        """A pipe row inside a cell stays literal text."""
        state = markdown_to_state("| \\| x \\| |")
        assert len(find_all(state, TableNode)) == 1
        assert cell_texts(state) == [["| x |"]]

    def test_colspan_marker(self):
        """``<<`` folds into the column span of the cell to its left."""
        state = markdown_to_state("| a | << |\n| c | d |")
        cell = cell_at(state, 0, 0)
        assert cell.col_span == 2
        assert cell_at(state, 0, 1).key == cell.key
        assert grid_shape(state) == (2, 2)

    def test_rowspan_marker(self):
        """``^^`` folds into the row span of the cell above."""
        state = markdown_to_state("| a | b |\n| ^^ | c |")
        cell = cell_at(state, 0, 0)
        assert cell.row_span == 2
        assert cell_at(state, 1, 0).key == cell.key
        assert cell_texts(state) == [["a", "b"], ["c"]]

    def test_block_span_markers(self):
        """A rectangle of markers folds into one cell."""
        state = markdown_to_state("| a | << | b |\n| ^^ | ^^ | c |")
        cell = cell_at(state, 0, 0)
        assert (cell.row_span, cell.col_span) == (2, 2)
        assert cell_at(state, 1, 1).key == cell.key
        assert grid_shape(state) == (2, 3)

    def test_unmatched_marker_stays_text(self):
        """A marker with nothing to extend remains literal."""
        state = markdown_to_state("| << | a |")
        assert cell_texts(state) == [["<<", "a"]]

    def test_escaped_markers_stay_text(self):
        """Backslash-escaped markers are literal cell text even where they could fold."""
        state = markdown_to_state("| a | b |\n| c | \\^\\^ |\n| \\<\\< | d |")
        assert cell_texts(state) == [["a", "b"], ["c", "^^"], ["<<", "d"]]
        assert grid_shape(state) == (3, 2)

    def test_span_markers_disabled(self):
        """With span markers off the markers are plain text."""
        options = MarkdownImportOptions(span_markers=False)
        state = markdown_to_state("| a | << |", options)
        assert cell_texts(state) == [["a", "<<"]]

    def test_table_rule_removed(self):
        """Without the table rule a pipe row is a paragraph."""
        state = markdown_to_state("| a | b |", transformers=DEFAULT_TRANSFORMERS.without("table"))
        assert not find_all(state, TableNode)
        assert state.text_content() == "| a | b |"


@pytest.mark.unit
class TestImportTargets:
    """Tests for importing into existing trees."""

    def test_import_into_cell(self):
        """Importing into a cell replaces its blocks."""
        state = markdown_to_state("| old |")
        cell = cell_at(state, 0, 0)
        txn = state.begin()
        keys = MarkdownParser().import_markdown(txn, "# new", cell.key)
        result = txn.commit()
        assert isinstance(result.require_node(keys[0]), HeadingNode)
        assert result.text_content(cell.key) == "new"

    def test_import_into_paragraph_rejected(self):
        """Only the root and cells accept imported blocks."""
        txn = EditorState.empty().begin()
        with pytest.raises(InvariantViolationError):
            MarkdownParser().import_markdown(txn, "text", txn.root.children[0])

    def test_import_replaces_root_children(self):
        """Importing into the root drops the previous blocks."""
        txn = markdown_to_state("old").begin()
        MarkdownParser().import_markdown(txn, "new")
        assert txn.commit().text_content() == "new"
