#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the richmark library.

This module centralizes hardcoded values, regular expressions and default
configuration constants used across the library.

Constants are organized by category:
1. Type Definitions - Literal types and type aliases
2. Markdown Patterns - block and inline regular expressions
3. Markdown Output - export formatting defaults
4. Editor Behavior - session, table and image defaults
5. Configuration - file discovery names
"""

from __future__ import annotations

import re
from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

BlockTypeTarget = Literal["paragraph", "h1", "h2", "h3", "h4", "h5", "h6", "bullet", "number", "check", "quote", "code"]
UnderlineMode = Literal["html", "ignore"]
BulletSymbol = Literal["-", "*", "+"]

BLOCK_TYPE_TARGETS: tuple[str, ...] = (
    "paragraph",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "bullet",
    "number",
    "check",
    "quote",
    "code",
)
LIST_BLOCK_TYPES: tuple[str, ...] = ("bullet", "number", "check")

# =============================================================================
# Markdown Patterns
# =============================================================================

TABLE_ROW_REG_EXP = re.compile(r"^(?:\|)(.+)(?:\|)\s?$")
TABLE_ROW_DIVIDER_REG_EXP = re.compile(r"^(\| ?:?-*:? ?)+\|\s?$")
TABLE_DIVIDER_SEGMENT_REG_EXP = re.compile(r"^\s*:?-+:?\s*$")
TABLE_CELL_UNESCAPE_REG_EXP = re.compile(r"\\([\\|n])")

HORIZONTAL_RULE_REG_EXP = re.compile(r"^(---|\*\*\*|___)\s?$")
IMAGE_IMPORT_REG_EXP = re.compile(r"!(?:\[([^[]*)\])(?:\(([^()]+)\))")
IMAGE_REG_EXP = re.compile(r"!(?:\[([^[]*)\])(?:\(([^()]+)\))$")
CHECK_LIST_REG_EXP = re.compile(r"^(\s*)(?:-\s)?\s?(\[(\s|x)?\])\s")
HEADING_REG_EXP = re.compile(r"^(#{1,6})\s")
QUOTE_REG_EXP = re.compile(r"^>\s")
UNORDERED_LIST_REG_EXP = re.compile(r"^(\s*)[-*+]\s")
ORDERED_LIST_REG_EXP = re.compile(r"^(\s*)(\d{1,})\.\s")
CODE_START_REG_EXP = re.compile(r"^[ \t]*(`{3,})([\w+#.-]*)\s*$")
CODE_END_REG_EXP = re.compile(r"^[ \t]*(`{3,})\s*$")
LINK_REG_EXP = re.compile(r"(?:\[([^[]+)\])(?:\(([^()]+)\))$")
AUTOLINK_REG_EXP = re.compile(r"(?<!\\)<((?:https?|ftp|mailto):[^\s<>]+)>")
MARKDOWN_LINK_TEXT_REG_EXP = re.compile(r"^\[([^\]]+)\]\(([^)]+)\)$")
HEADING_SHORTCUT_REG_EXP = re.compile(r"^(#{1,6})")

# Markers written into grid positions covered by a spanning cell
COLSPAN_MARKER = "<<"
ROWSPAN_MARKER = "^^"

# =============================================================================
# Markdown Output
# =============================================================================

DEFAULT_BLOCK_SEPARATOR = "\n\n"
DEFAULT_LIST_INDENT_WIDTH = 4
DEFAULT_BULLET_SYMBOL: BulletSymbol = "-"
DEFAULT_HORIZONTAL_RULE = "***"
DEFAULT_TABLE_PIPE_ESCAPE = True
DEFAULT_ESCAPE_SPECIAL = True
DEFAULT_SPAN_MARKERS = True
DEFAULT_UNDERLINE_MODE: UnderlineMode = "html"
DEFAULT_STRICT_TABLE_DIVIDER = True
TABLE_DIVIDER_CELL = "---"
TAB_WIDTH = 4

# =============================================================================
# Editor Behavior
# =============================================================================

DEFAULT_DEBOUNCE_SECONDS = 0.1
DEFAULT_IMAGE_MAX_WIDTH = 800
DEFAULT_TABLE_CELL_MIN_WIDTH = 40
DEFAULT_CODE_LANGUAGE = "javascript"
MAX_HEADING_LEVEL = 6
MIN_HEADING_LEVEL = 1
UNTITLED_HEADING = "Untitled"
DEFAULT_BLOCK_TYPE = "paragraph"

# =============================================================================
# Configuration
# =============================================================================

CONFIG_FILENAMES = [".richmark.toml", ".richmark.yaml", ".richmark.yml", ".richmark.json"]
CONFIG_ENV_VAR = "RICHMARK_CONFIG"
