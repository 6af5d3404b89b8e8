#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_markdown_escape.py
"""Unit tests for the Markdown escaping helpers."""

import pytest

from richmark.markdown.escape import (
    code_fence_for,
    escape_block_start,
    escape_inline_code,
    escape_markdown_text,
    escape_table_cell,
    escape_url,
    longest_run,
    split_table_row,
    unescape_table_cell,
)


@pytest.mark.unit
class TestEscapeMarkdownText:
    """Tests for escape_markdown_text."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("plain text", "plain text"),
            ("2 * 3", "2 \\* 3"),
            ("[x]", "\\[x\\]"),
            ("a `tick`", "a \\`tick\\`"),
            ("back\\slash", "back\\\\slash"),
            ("~~no~~", "\\~\\~no\\~\\~"),
            ("<tag>", "\\<tag>"),
        ],
    )
    def test_inline_specials(self, text, expected):
        """Inline syntax characters are backslash-escaped."""
        assert escape_markdown_text(text) == expected

    def test_intraword_underscore_kept(self):
        """Underscores between word characters cannot open emphasis."""
        assert escape_markdown_text("snake_case_name") == "snake_case_name"
        assert escape_markdown_text("_lead and trail_") == "\\_lead and trail\\_"

    def test_entities_escaped(self):
        """Only ampersands that would read as an entity are escaped."""
        assert escape_markdown_text("&amp;") == "\\&amp;"
        assert escape_markdown_text("fish & chips") == "fish & chips"

    def test_block_start(self):
        """Block markers are escaped only at the start of a block."""
        assert escape_markdown_text("# title", at_block_start=True) == "\\# title"
        assert escape_markdown_text("# title") == "# title"

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("- item", "\\- item"),
            ("+ item", "\\+ item"),
            ("> quote", "\\> quote"),
            ("| cell |", "\\| cell |"),
            ("12. twelve", "12\\. twelve"),
            ("plain", "plain"),
        ],
    )
    def test_escape_block_start(self, text, expected):
        """Each block-opening marker is neutralized."""
        assert escape_block_start(text) == expected


@pytest.mark.unit
class TestInlineCode:
    """Tests for inline code and fences."""

    def test_simple_code(self):
        """Code without backticks keeps a single backtick delimiter."""
        assert escape_inline_code("x = 1") == ("x = 1", "`")

    def test_code_with_backticks(self):
        """The delimiter is longer than any backtick run inside."""
        assert escape_inline_code("a `b` c") == ("a `b` c", "``")
        assert escape_inline_code("``") == (" `` ", "```")

    def test_longest_run(self):
        """Runs are counted per character."""
        assert longest_run("a``b```c", "`") == 3
        assert longest_run("abc", "`") == 0

    def test_code_fence(self):
        """Fences have at least three backticks."""
        assert code_fence_for("print()") == "```"
        assert code_fence_for("```\nnested\n```") == "````"


@pytest.mark.unit
class TestUrlsAndTables:
    """Tests for URL and table cell escaping."""

    def test_escape_url(self):
        """Parentheses are escaped and spaces force angle brackets."""
        assert escape_url("https://example.com/a_(b)") == "https://example.com/a_\\(b\\)"
        assert escape_url("my file.png") == "<my file.png>"

    def test_table_cell_round_trip(self):
        """Pipes, backslashes and newlines survive escaping."""
        text = "a | b\nc \\ d"
        escaped = escape_table_cell(text)
        assert escaped == "a \\| b\\nc \\\\ d"
        assert "\n" not in escaped
        assert unescape_table_cell(escaped) == text

    def test_table_cell_without_pipe_escape(self):
        """Pipe escaping can be disabled."""
        assert escape_table_cell("a | b", escape_pipes=False) == "a | b"

    def test_unescape_keeps_other_escapes(self):
        """Escapes meant for the inline parser pass through."""
        assert unescape_table_cell("\\*bold\\*") == "\\*bold\\*"

    def test_split_row(self):
        """Escaped pipes do not split cells."""
        assert split_table_row(" a | b \\| c | d ") == [" a ", " b \\| c ", " d "]
        assert split_table_row("x\\\\|y") == ["x\\\\", "y"]
