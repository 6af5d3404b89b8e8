#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_commands.py
"""Unit tests for the editor commands.

Tests cover:
- Block type toggling, including lists and code blocks
- Markdown block shortcuts and typing
- Backspace handling
- Character formats, links and images
- Table commands driven by the selection

"""

import logging

import pytest
from utils import cell_at, cell_texts, find_all, find_first, find_text, grid_shape

from richmark.editor import Editor
from richmark.exceptions import InvalidSelectionError
from richmark.model import (
    CodeBlockNode,
    HeadingNode,
    HorizontalRuleNode,
    ImageNode,
    LinkNode,
    ListNode,
    ParagraphNode,
    Point,
    RangeSelection,
    TableCellNode,
    TableNode,
    TextFormat,
    TextNode,
)
from richmark.options import EditorOptions


def _caret(editor, text, offset=None):
    """Put the caret inside the run containing ``text`` (at its end by default)."""
    run = find_text(editor.state, text)
    editor.select_text(run.key, len(run.text) if offset is None else offset)
    return run.key


def _empty_paragraph_caret(editor):
    paragraph = editor.state.get_children(editor.state.root.key)[-1]
    editor.select_node_start(paragraph.key)
    return paragraph.key


@pytest.mark.unit
class TestToggleBlockType:
    """Tests for Editor.toggle_block_type."""

    @pytest.mark.parametrize(
        "target,expected",
        [
            ("h2", "## hello"),
            ("quote", "> hello"),
            ("bullet", "- hello"),
            ("number", "1. hello"),
            ("check", "- [ ] hello"),
        ],
    )
    def test_convert_paragraph(self, editor, target, expected):
        editor.set_markdown("hello")
        _caret(editor, "hello", 2)
        result = editor.toggle_block_type(target)
        assert result.applied
        assert result.value == target
        assert editor.to_markdown() == expected
        assert editor.current_block_type == target

    def test_toggle_back_to_paragraph(self, editor):
        """Applying the active type again restores a paragraph."""
        editor.set_markdown("## hello")
        _caret(editor, "hello")
        result = editor.toggle_block_type("h2")
        assert result.value == "paragraph"
        assert editor.to_markdown() == "hello"

    def test_heading_level_change(self, editor):
        """A heading changes level in place."""
        editor.set_markdown("## hello")
        heading = find_first(editor.state, HeadingNode)
        _caret(editor, "hello")
        editor.toggle_block_type("h4")
        assert editor.state.require_typed(heading.key, HeadingNode).level == 4

    def test_code_block(self, editor):
        """Code blocks get the default language and lose inline formatting."""
        editor.set_markdown("**bold** text")
        _caret(editor, "text")
        assert editor.toggle_block_type("code")
        code = find_first(editor.state, CodeBlockNode)
        assert code.language == "javascript"
        assert editor.state.text_content(code.key) == "bold text"
        assert all(run.format == TextFormat.NONE for run in find_all(editor.state, TextNode))

    def test_code_language_option(self, clock):
        editor = Editor(EditorOptions(default_code_language="python"), markdown="x = 1", clock=clock)
        _caret(editor, "x = 1")
        editor.toggle_block_type("code")
        assert editor.to_markdown() == "```python\nx = 1\n```"

    def test_several_paragraphs_join_one_list(self, editor):
        """Consecutive selected blocks become items of a single list."""
        editor.set_markdown("one\n\ntwo")
        first, second = find_text(editor.state, "one"), find_text(editor.state, "two")
        editor.select_text(first.key, 0)
        with editor.update() as txn:
            txn.set_selection(RangeSelection(txn.selection.anchor, Point(second.key, 3)))
        editor.toggle_block_type("bullet")
        assert editor.to_markdown() == "- one\n- two"
        assert len(find_all(editor.state, ListNode)) == 1

    def test_retype_list(self, editor):
        """A list target on a list item changes the whole list."""
        editor.set_markdown("- a\n- b")
        _caret(editor, "a")
        editor.toggle_block_type("number")
        assert editor.to_markdown() == "1. a\n2. b"

    def test_lift_out_of_list(self, editor):
        """Toggling the active list type lifts the item out of its list."""
        editor.set_markdown("- a\n- b")
        _caret(editor, "a")
        assert editor.toggle_block_type("bullet").value == "paragraph"
        assert editor.to_markdown() == "a\n\n- b"

    def test_list_item_to_heading(self, editor):
        """Non-list targets lift the item before converting it."""
        editor.set_markdown("- a\n- b\n- c")
        _caret(editor, "b")
        editor.toggle_block_type("h1")
        assert editor.to_markdown() == "- a\n\n# b\n\n- c"

    def test_unknown_target(self, editor, caplog):
        """Unknown block types are rejected without touching the document."""
        editor.set_markdown("hello")
        _caret(editor, "hello")
        before = editor.state
        with caplog.at_level(logging.WARNING):
            result = editor.toggle_block_type("h7")
        assert not result
        assert "h7" in result.message
        assert editor.state is before
        assert "toggle_block_type rejected" in caplog.text

    def test_without_selection(self, editor):
        editor.set_markdown("hello")
        assert not editor.toggle_block_type("h1").applied


@pytest.mark.unit
class TestMarkdownShortcuts:
    """Tests for typing and Editor.convert_block_at_selection."""

    def test_typing_heading_shortcut(self, editor):
        """Typing '# ' at the start of a paragraph makes a heading."""
        _empty_paragraph_caret(editor)
        editor.insert_text("#")
        assert editor.current_block_type == "paragraph"
        editor.insert_text(" ")
        assert editor.current_block_type == "h1"
        editor.insert_text("Title")
        assert editor.to_markdown() == "# Title"

    def test_heading_shortcuts_disabled(self, clock):
        editor = Editor(EditorOptions(heading_shortcuts=False), clock=clock)
        _empty_paragraph_caret(editor)
        editor.insert_text("# Title")
        assert not find_all(editor.state, HeadingNode)

    def test_quote_shortcut(self, editor):
        _empty_paragraph_caret(editor)
        editor.insert_text("> hi")
        result = editor.convert_block_at_selection()
        assert result.applied
        assert editor.to_markdown() == "> hi"
        assert editor.current_block_type == "quote"

    def test_table_shortcut(self, editor):
        """A typed pipe row becomes a table with the caret in its first cell."""
        _empty_paragraph_caret(editor)
        editor.insert_text("| a | b |")
        assert editor.convert_block_at_selection()
        assert grid_shape(editor.state) == (1, 2)
        assert cell_texts(editor.state) == [["a", "b"]]
        selected = editor.state.find_ancestor(editor.state.selection.anchor.key, TableCellNode)
        assert selected.key == cell_at(editor.state, 0, 0).key

    def test_rule_shortcut_adds_paragraph(self, editor):
        """A rule is followed by an empty paragraph holding the caret."""
        _empty_paragraph_caret(editor)
        editor.insert_text("***")
        assert editor.convert_block_at_selection()
        blocks = editor.state.get_children(editor.state.root.key)
        assert [type(block) for block in blocks] == [HorizontalRuleNode, ParagraphNode]
        assert editor.state.selection.anchor.key == blocks[1].key

    def test_plain_text_not_converted(self, editor):
        _empty_paragraph_caret(editor)
        editor.insert_text("plain")
        result = editor.convert_block_at_selection()
        assert not result.applied
        assert result.message == "Nothing to change"

    def test_insert_line_break(self, editor):
        """A newline in typed text becomes a line break."""
        editor.set_markdown("ab")
        _caret(editor, "ab", 1)
        editor.insert_text("X\nY")
        assert editor.to_markdown() == "aX<br>Yb"
        assert editor.state.selection.anchor.offset == 1

    def test_typing_replaces_selection(self, editor):
        editor.set_markdown("hello")
        run = find_text(editor.state, "hello")
        editor.select_text(run.key, 1, 4)
        editor.insert_text("EY")
        assert editor.to_markdown() == "hEYo"


@pytest.mark.unit
class TestDeleteBackward:
    """Tests for Editor.delete_backward."""

    def test_delete_character(self, editor):
        editor.set_markdown("abc")
        _caret(editor, "abc", 2)
        assert editor.delete_backward()
        assert editor.to_markdown() == "ac"

    def test_delete_selection(self, editor):
        editor.set_markdown("hello")
        run = find_text(editor.state, "hello")
        editor.select_text(run.key, 1, 4)
        assert editor.delete_backward()
        assert editor.to_markdown() == "ho"

    def test_heading_demotes_first(self, editor):
        editor.set_markdown("## Title")
        _caret(editor, "Title", 0)
        assert editor.delete_backward()
        assert editor.to_markdown() == "# Title"

    def test_heading_without_shortcuts(self, clock):
        """Without heading shortcuts a heading becomes a paragraph."""
        editor = Editor(EditorOptions(heading_shortcuts=False), markdown="## Title", clock=clock)
        _caret(editor, "Title", 0)
        editor.delete_backward()
        assert editor.to_markdown() == "Title"

    def test_merge_paragraphs(self, editor):
        """Backspace at the start of a paragraph joins it to the previous one."""
        editor.set_markdown("one\n\ntwo")
        _caret(editor, "two", 0)
        editor.delete_backward()
        assert editor.to_markdown() == "onetwo"
        caret = editor.state.selection.anchor
        assert (editor.state.require_typed(caret.key, TextNode).text, caret.offset) == ("one", 3)

    def test_quote_becomes_paragraph(self, editor):
        editor.set_markdown("> q")
        _caret(editor, "q", 0)
        editor.delete_backward()
        assert editor.to_markdown() == "q"

    def test_list_item_lifted(self, editor):
        editor.set_markdown("- a")
        _caret(editor, "a", 0)
        editor.delete_backward()
        assert editor.to_markdown() == "a"
        assert not find_all(editor.state, ListNode)

    def test_remove_rule_before_paragraph(self, editor):
        editor.set_markdown("***\n\nafter")
        _caret(editor, "after", 0)
        editor.delete_backward()
        assert editor.to_markdown() == "after"

    def test_start_of_document(self, editor):
        """Nothing happens at the very start of the document."""
        editor.set_markdown("first")
        _caret(editor, "first", 0)
        result = editor.delete_backward()
        assert not result.applied
        assert editor.to_markdown() == "first"


@pytest.mark.unit
class TestToggleFormat:
    """Tests for Editor.toggle_format."""

    def test_toggle_on_and_off(self, editor):
        editor.set_markdown("hello world")
        run = find_text(editor.state, "hello world")
        editor.select_text(run.key, 0, 5)
        assert editor.toggle_format(TextFormat.BOLD)
        assert editor.to_markdown() == "**hello** world"
        assert editor.toggle_format(TextFormat.BOLD)
        assert editor.to_markdown() == "hello world"

    def test_partial_format_is_completed(self, editor):
        """A mixed selection gets the format everywhere."""
        editor.set_markdown("*ab*cd")
        first = find_text(editor.state, "ab")
        second = find_text(editor.state, "cd")
        editor.select_text(first.key, 0)
        with editor.update() as txn:
            txn.set_selection(RangeSelection(txn.selection.anchor, Point(second.key, 2)))
        editor.toggle_format(TextFormat.ITALIC)
        assert editor.to_markdown() == "*abcd*"

    def test_collapsed_selection_rejected(self, editor):
        editor.set_markdown("hello")
        _caret(editor, "hello", 2)
        result = editor.toggle_format(TextFormat.BOLD)
        assert not result.applied
        assert result.message


@pytest.mark.unit
class TestLinksAndImages:
    """Tests for the link and image commands."""

    def test_insert_link_at_caret(self, editor):
        editor.set_markdown("see")
        _caret(editor, "see")
        editor.insert_text(" ")
        result = editor.insert_link("https://example.com", "docs")
        assert result.applied
        assert isinstance(editor.state.get_node(result.value), LinkNode)
        assert editor.to_markdown() == "see [docs](https://example.com)"

    def test_wrap_selection(self, editor):
        editor.set_markdown("click here")
        run = find_text(editor.state, "click here")
        editor.select_text(run.key, 6, 10)
        editor.insert_link("https://example.com")
        assert editor.to_markdown() == "click [here](https://example.com)"

    def test_update_existing_link(self, editor):
        editor.set_markdown("[docs](https://old.example.com)")
        _caret(editor, "docs", 1)
        editor.insert_link("https://new.example.com")
        assert editor.to_markdown() == "[docs](https://new.example.com)"

    def test_empty_url_rejected(self, editor):
        editor.set_markdown("text")
        _caret(editor, "text")
        assert not editor.insert_link("  ").applied

    def test_remove_link(self, editor):
        editor.set_markdown("[a](https://example.com) b")
        _caret(editor, "a", 1)
        assert editor.remove_link_at_selection()
        assert editor.to_markdown() == "a b"
        assert not find_all(editor.state, LinkNode)

    def test_remove_link_outside_link(self, editor):
        editor.set_markdown("plain")
        _caret(editor, "plain")
        assert not editor.remove_link_at_selection().applied

    def test_edit_and_commit_link_source(self, editor):
        """A link can be edited as its Markdown source and turned back."""
        editor.set_markdown("[a](https://example.com) b")
        _caret(editor, "a", 1)
        assert editor.edit_link_as_markdown()
        assert not find_all(editor.state, LinkNode)
        assert find_text(editor.state, "[a](https://example.com)")
        assert editor.commit_markdown_link()
        assert editor.to_markdown() == "[a](https://example.com) b"

    def test_commit_without_link_source(self, editor):
        editor.set_markdown("plain")
        _caret(editor, "plain")
        assert not editor.commit_markdown_link().applied

    def test_insert_image(self, editor):
        editor.set_markdown("pic:")
        _caret(editor, "pic")
        editor.insert_text(" ")
        result = editor.insert_image("photo.png", "A photo")
        image = editor.state.require_typed(result.value, ImageNode)
        assert image.max_width == 800
        assert editor.to_markdown() == "pic: ![A photo](photo.png)"

    def test_link_in_code_rejected(self, editor):
        editor.set_markdown("```\ncode\n```")
        _caret(editor, "code")
        assert not editor.insert_link("https://example.com", "x").applied

    def test_code_text_at_selection(self, editor):
        editor.set_markdown("```\nprint(1)\n```\n\nafter")
        _caret(editor, "print")
        assert editor.code_text_at_selection() == "print(1)"
        _caret(editor, "after")
        assert editor.code_text_at_selection() is None


@pytest.mark.unit
class TestTableCommands:
    """Tests for the table commands."""

    def test_insert_table_replaces_empty_paragraph(self, editor):
        _empty_paragraph_caret(editor)
        result = editor.insert_table(2, 3)
        assert result.applied
        assert [type(block) for block in editor.state.get_children(editor.state.root.key)] == [TableNode]
        assert grid_shape(editor.state) == (2, 3)
        editor.insert_text("x")
        assert cell_texts(editor.state)[0] == ["x", "", ""]

    def test_insert_table_after_block(self, editor):
        editor.set_markdown("intro")
        _caret(editor, "intro")
        editor.insert_table(1, 1)
        blocks = editor.state.get_children(editor.state.root.key)
        assert [type(block) for block in blocks] == [ParagraphNode, TableNode]

    def test_rows_and_columns(self, editor):
        editor.set_markdown("| a | b |\n| c | d |")
        _caret(editor, "a")
        assert editor.insert_table_row_at_selection()
        assert grid_shape(editor.state) == (3, 2)
        assert editor.insert_table_column_at_selection(after=False)
        assert grid_shape(editor.state) == (3, 3)
        assert cell_texts(editor.state)[0] == ["", "a", "b"]

        _caret(editor, "d")
        assert editor.delete_table_row_at_selection()
        assert cell_texts(editor.state) == [["", "a", "b"], ["", "", ""]]
        _caret(editor, "a")
        assert editor.delete_table_column_at_selection()
        assert cell_texts(editor.state) == [["", "b"], ["", ""]]

    def test_append_row_and_column(self, editor):
        editor.set_markdown("| a |")
        table = find_first(editor.state, TableNode)
        assert editor.append_table_row(table.key)
        assert editor.append_table_column(table.key)
        assert grid_shape(editor.state) == (2, 2)

    def test_merge_and_unmerge(self, editor):
        editor.set_markdown("| a | b |\n| c | d |")
        assert not editor.can_merge()
        editor.select_cells(cell_at(editor.state, 0, 0).key, cell_at(editor.state, 0, 1).key)
        assert editor.can_merge()
        result = editor.merge_cells_at_selection()
        assert result.applied
        assert editor.state.require_node(result.value).col_span == 2
        assert editor.can_unmerge()
        assert editor.unmerge_cell_at_selection()
        assert grid_shape(editor.state) == (2, 2)
        assert editor.state.require_node(cell_at(editor.state, 0, 0).key).col_span == 1

    def test_merge_needs_cell_selection(self, editor):
        editor.set_markdown("| a | b |")
        _caret(editor, "a")
        assert not editor.merge_cells_at_selection().applied
        assert not editor.unmerge_cell_at_selection().applied

    def test_toggle_headers(self, editor):
        editor.set_markdown("| a | b |\n| c | d |")
        _caret(editor, "a")
        assert editor.toggle_row_header_at_selection().value is True
        assert editor.to_markdown() == "| a | b |\n| --- | --- |\n| c | d |"
        assert editor.toggle_row_header_at_selection().value is False
        assert editor.toggle_column_header_at_selection().value is True

    def test_commands_outside_table(self, editor, caplog):
        """Table commands outside a table are rejected with a warning."""
        editor.set_markdown("text")
        _caret(editor, "text")
        with caplog.at_level(logging.WARNING):
            result = editor.insert_table_row_at_selection()
        assert not result.applied
        assert "insert_table_row rejected" in caplog.text

    def test_select_cells_from_two_tables(self, editor):
        editor.set_markdown("| a |\n\nbetween\n\n| b |")
        tables = find_all(editor.state, TableNode)
        first = cell_at(editor.state, 0, 0, tables[0].key)
        second = cell_at(editor.state, 0, 0, tables[1].key)
        with pytest.raises(InvalidSelectionError):
            editor.select_cells(first.key, second.key)


@pytest.mark.unit
class TestTrailingParagraph:
    """Tests for the auto_append_blank_line transform."""

    def test_blank_line_appended(self, clock):
        editor = Editor(EditorOptions(auto_append_blank_line=True), markdown="# Title", clock=clock)
        blocks = editor.state.get_children(editor.state.root.key)
        assert isinstance(blocks[-1], ParagraphNode)
        assert editor.state.is_empty_block(blocks[-1].key)

    def test_not_duplicated(self, clock):
        editor = Editor(EditorOptions(auto_append_blank_line=True), markdown="# Title", clock=clock)
        count = len(editor.state.root.children)
        _caret(editor, "Title")
        editor.insert_text("!")
        assert len(editor.state.root.children) == count
