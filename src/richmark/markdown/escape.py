#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/escape.py
"""Escaping helpers for the Markdown codec.

The exporter escapes text so that the importer reads it back as the same
literal characters. Table rows add one more layer on top: backslashes and
pipes inside a cell are backslash-escaped and the cell's line breaks are
written as the two characters ``\\n`` so a whole row stays on one line.
"""

from __future__ import annotations

import re

from richmark.constants import TABLE_CELL_UNESCAPE_REG_EXP

# Characters that always start or end Markdown syntax inside a line
_INLINE_SPECIAL = frozenset("\\`*[]<~")

_ENTITY_REG_EXP = re.compile(r"&(#\d+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")
_BLOCK_START_REG_EXP = re.compile(r"^(\s*)([#>+\-|=])")
_ORDERED_START_REG_EXP = re.compile(r"^(\s*\d+)([.)])")


def escape_markdown_text(text: str, at_block_start: bool = False) -> str:
    r"""Escape literal text so it is not read back as Markdown syntax.

    Parameters
    ----------
    text : str
        Literal text of a run
    at_block_start : bool, default = False
        The text opens a block line, so block markers (``#``, ``>``, ``-``,
        ``+``, ``|``, ``1.``) are escaped as well

    Returns
    -------
    str
        Escaped text

    Examples
    --------
        >>> escape_markdown_text("2 * 3 [x]")
        '2 \\* 3 \\[x\\]'
        >>> escape_markdown_text("# not a heading", at_block_start=True)
        '\\# not a heading'

    """
    if not text:
        return text

    result: list[str] = []
    for index, char in enumerate(text):
        if char in _INLINE_SPECIAL:
            result.append("\\" + char)
        elif char == "_":
            before = text[index - 1] if index > 0 else ""
            after = text[index + 1] if index + 1 < len(text) else ""
            # Intraword underscores never open emphasis
            if before.isalnum() and after.isalnum():
                result.append(char)
            else:
                result.append("\\_")
        elif char == "&" and _ENTITY_REG_EXP.match(text, index):
            result.append("\\&")
        else:
            result.append(char)
    escaped = "".join(result)

    if at_block_start:
        escaped = escape_block_start(escaped)
    return escaped


def escape_block_start(text: str) -> str:
    r"""Escape a marker that would turn the start of a line into a block.

    Examples
    --------
        >>> escape_block_start("- item")
        '\\- item'
        >>> escape_block_start("1. first")
        '1\\. first'

    """
    match = _BLOCK_START_REG_EXP.match(text)
    if match:
        return f"{match.group(1)}\\{text[match.start(2):]}"
    match = _ORDERED_START_REG_EXP.match(text)
    if match:
        return f"{match.group(1)}\\{text[match.start(2):]}"
    return text


def escape_inline_code(code: str, delimiter: str = "`") -> tuple[str, str]:
    """Escape inline code and determine the delimiter.

    Parameters
    ----------
    code : str
        Code content to escape
    delimiter : str, default = '`'
        Preferred delimiter character

    Returns
    -------
    tuple[str, str]
        (escaped_code, delimiter_to_use)

    Examples
    --------
        >>> escape_inline_code("simple code")
        ('simple code', '`')
        >>> escape_inline_code("code with ` backtick")
        ('code with ` backtick', '``')

    """
    if not code:
        return code, delimiter

    max_consecutive = longest_run(code, delimiter)
    if max_consecutive == 0:
        final_delimiter = delimiter
    else:
        final_delimiter = delimiter * (max_consecutive + 1)

    # A space on both sides is stripped by the parser, so pad code that starts
    # or ends with the delimiter or that is already padded on both sides
    if (
        code.startswith(delimiter)
        or code.endswith(delimiter)
        or (code.startswith(" ") and code.endswith(" ") and code.strip(" "))
    ):
        code = " " + code + " "

    return code, final_delimiter


def longest_run(text: str, char: str) -> int:
    """Return the length of the longest run of ``char`` in ``text``."""
    longest = 0
    current = 0
    for c in text:
        if c == char:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def code_fence_for(code: str) -> str:
    """Return a backtick fence longer than any backtick run in ``code``."""
    return "`" * max(3, longest_run(code, "`") + 1)


def escape_url(url: str) -> str:
    """Escape a link destination for ``[label](url)`` syntax.

    Destinations holding spaces are wrapped in angle brackets; parentheses
    are backslash-escaped.
    """
    escaped = url.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    if any(char.isspace() for char in url) or "<" in url or ">" in url:
        return "<" + escaped.replace("<", "\\<").replace(">", "\\>") + ">"
    return escaped


def escape_table_cell(text: str, escape_pipes: bool = True) -> str:
    r"""Fold a cell's Markdown onto one row line.

    Backslashes are doubled, pipes become ``\|`` and newlines the two
    characters ``\n``.

    Examples
    --------
        >>> escape_table_cell("Hello\nWorld")
        'Hello\\nWorld'

    """
    escaped = text.replace("\\", "\\\\")
    if escape_pipes:
        escaped = escaped.replace("|", "\\|")
    return escaped.replace("\n", "\\n")


def unescape_table_cell(text: str) -> str:
    r"""Reverse :func:`escape_table_cell`.

    ``\\`` becomes a backslash, ``\|`` a pipe and ``\n`` a newline; any other
    backslash pair is kept for the inline parser.
    """
    return TABLE_CELL_UNESCAPE_REG_EXP.sub(lambda m: "\n" if m.group(1) == "n" else m.group(1), text)


def split_table_row(row: str) -> list[str]:
    r"""Split the inside of a table row on unescaped pipes.

    Parameters
    ----------
    row : str
        Row text without the outer pipes

    Returns
    -------
    list of str
        Raw cell texts; ``\|`` is kept escaped for the inline parser and
        ``\\|`` counts as an escaped backslash followed by a separator

    Examples
    --------
        >>> split_table_row(" a | b \\| c ")
        [' a ', ' b \\| c ']

    """
    cells: list[str] = []
    current: list[str] = []
    index = 0
    while index < len(row):
        char = row[index]
        if char == "\\" and index + 1 < len(row):
            current.append(row[index : index + 2])
            index += 2
            continue
        if char == "|":
            cells.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    cells.append("".join(current))
    return cells


__all__ = [
    "escape_markdown_text",
    "escape_block_start",
    "escape_inline_code",
    "longest_run",
    "code_fence_for",
    "escape_url",
    "escape_table_cell",
    "unescape_table_cell",
    "split_table_row",
]
