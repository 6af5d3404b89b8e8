#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/transformers.py
"""Built-in Markdown transformers and the default registry.

Each rule pairs an import side (a pattern and a ``replace`` function that
rewrites the provisional paragraph of a line) with an export side (a function
returning Markdown for a node, or None to let the next rule try).
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional

from richmark.constants import (
    AUTOLINK_REG_EXP,
    CHECK_LIST_REG_EXP,
    CODE_END_REG_EXP,
    CODE_START_REG_EXP,
    HEADING_REG_EXP,
    HORIZONTAL_RULE_REG_EXP,
    IMAGE_IMPORT_REG_EXP,
    IMAGE_REG_EXP,
    LINK_REG_EXP,
    ORDERED_LIST_REG_EXP,
    QUOTE_REG_EXP,
    TAB_WIDTH,
    UNORDERED_LIST_REG_EXP,
)
from richmark.markdown.escape import code_fence_for, escape_url
from richmark.markdown.registry import (
    ElementTransformer,
    MultilineElementTransformer,
    TextFormatTransformer,
    TextMatchTransformer,
    TransformerRegistry,
)
from richmark.markdown.table import TABLE
from richmark.model.nodes import (
    CodeBlockNode,
    HeadingNode,
    HorizontalRuleNode,
    ImageNode,
    LineBreakNode,
    LinkNode,
    ListItemNode,
    ListNode,
    Node,
    ParagraphNode,
    QuoteNode,
    TextFormat,
    TextNode,
)
from richmark.model.state import NodeReader, Transaction

if TYPE_CHECKING:
    from richmark.markdown.inline import InlineMarkdownParser
    from richmark.markdown.parser import MarkdownParser
    from richmark.markdown.renderer import MarkdownRenderer

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Block rules
# ----------------------------------------------------------------------


def _replace_horizontal_rule(
    txn: Transaction, block_key: str, text_key: str, match: re.Match[str], parser: MarkdownParser
) -> bool:
    rule = txn.create(HorizontalRuleNode)
    txn.replace(block_key, rule.key)
    return True


def _export_horizontal_rule(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, HorizontalRuleNode):
        return None
    return renderer.options.horizontal_rule


def _replace_heading(
    txn: Transaction, block_key: str, text_key: str, match: re.Match[str], parser: MarkdownParser
) -> bool:
    heading = txn.create(HeadingNode, level=len(match.group(1)))
    txn.replace(block_key, heading.key, move_children=True)
    return True


def _export_heading(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, HeadingNode):
        return None
    return "#" * node.level + " " + renderer.render_inline(reader, node.key)


def _replace_quote(
    txn: Transaction, block_key: str, text_key: str, match: re.Match[str], parser: MarkdownParser
) -> bool:
    previous = txn.previous_sibling(block_key)
    if isinstance(previous, QuoteNode):
        # Consecutive quote lines form one quote separated by line breaks
        line_break = txn.create(LineBreakNode)
        txn.append(previous.key, line_break.key)
        txn.move_children(block_key, previous.key)
        txn.remove(block_key)
        return True
    quote = txn.create(QuoteNode)
    txn.replace(block_key, quote.key, move_children=True)
    return True


def _export_quote(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, QuoteNode):
        return None
    return "> " + renderer.render_inline(reader, node.key, line_break="\n> ")


def _indent_level(indent: str, width: int) -> int:
    spaces = indent.replace("\t", " " * TAB_WIDTH)
    return len(spaces) // width


def _list_fields(list_type: str) -> dict[str, bool]:
    return {"ordered": list_type == "number", "checklist": list_type == "check"}


def _nested_list(txn: Transaction, list_key: str, depth: int, list_type: str) -> str:
    """Return the list ``depth`` levels below ``list_key`` under its last items.

    Missing levels are created inside the last item of each level.
    """
    current = list_key
    for level in range(depth):
        current_list = txn.require_typed(current, ListNode)
        if not current_list.children:
            break
        item = txn.require_typed(current_list.children[-1], ListItemNode)
        last_child = txn.get_node(item.children[-1]) if item.children else None
        is_last_level = level == depth - 1
        if isinstance(last_child, ListNode) and (not is_last_level or last_child.list_type == list_type):
            current = last_child.key
            continue
        nested = txn.create(ListNode, **_list_fields(list_type))
        txn.append(item.key, nested.key)
        current = nested.key
    return current


def _list_replace(list_type: str):
    """Build the replace function of a list rule for ``list_type``."""

    def replace(txn: Transaction, block_key: str, text_key: str, match: re.Match[str], parser: MarkdownParser) -> bool:
        depth = _indent_level(match.group(1), parser.options.list_indent_width)
        checked = match.group(3) == "x" if list_type == "check" else None
        item = txn.create(ListItemNode, checked=checked)

        previous = txn.previous_sibling(block_key)
        if isinstance(previous, ListNode) and (depth > 0 or previous.list_type == list_type):
            target = _nested_list(txn, previous.key, depth, list_type)
            target_list = txn.require_typed(target, ListNode)
            if not target_list.children and list_type == "number":
                txn.update(target, start=int(match.group(2)))
            txn.append(target, item.key)
        else:
            start = int(match.group(2)) if list_type == "number" else 1
            new_list = txn.create(ListNode, start=start, **_list_fields(list_type))
            txn.insert_before(block_key, new_list.key)
            txn.append(new_list.key, item.key)
        txn.append(item.key, block_key)
        return True

    return replace


def _list_marker(node: ListNode, item: ListItemNode, offset: int, renderer: MarkdownRenderer) -> str:
    if node.ordered:
        return f"{node.start + offset}. "
    if node.checklist:
        return f"- [{'x' if item.checked else ' '}] "
    return f"{renderer.options.bullet_symbol} "


def export_list(reader: NodeReader, list_key: str, renderer: MarkdownRenderer, depth: int = 0) -> str:
    """Render a list and its nested lists, one line per item.

    An item holding several blocks is written on its one line with the blocks
    joined by ``<br>``, so it reads back as a single paragraph with line breaks.
    """
    node = reader.require_typed(list_key, ListNode)
    indent = " " * (renderer.options.list_indent_width * depth)
    lines: list[str] = []
    for offset, item_key in enumerate(node.children):
        item = reader.require_typed(item_key, ListItemNode)
        texts: list[str] = []
        nested: list[str] = []
        for child in reader.get_children(item_key):
            if isinstance(child, ListNode):
                nested.append(export_list(reader, child.key, renderer, depth + 1))
            else:
                texts.append(renderer.render_inline(reader, child.key))
        lines.append(indent + _list_marker(node, item, offset, renderer) + "<br>".join(texts))
        lines.extend(nested)
    return "\n".join(lines)


def _list_export(list_type: str):
    """Build the export function of a list rule for ``list_type``."""

    def export(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
        if not isinstance(node, ListNode) or node.list_type != list_type:
            return None
        return export_list(reader, node.key, renderer)

    return export


def _is_code_end(line: str, start: re.Match[str]) -> bool:
    match = CODE_END_REG_EXP.match(line)
    return match is not None and len(match.group(1)) >= len(start.group(1))


def _replace_code(
    txn: Transaction, parent_key: str, lines: list[str], start: re.Match[str], parser: MarkdownParser
) -> str:
    code = txn.create(CodeBlockNode, language=start.group(2) or None)
    text = "\n".join(lines)
    if text:
        run = txn.create(TextNode, text=text)
        txn.append(code.key, run.key)
    txn.append(parent_key, code.key)
    return code.key


def _export_code(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, CodeBlockNode):
        return None
    code = reader.text_content(node.key)
    fence = code_fence_for(code)
    opening = fence + (node.language or "")
    if not code:
        return f"{opening}\n{fence}"
    return f"{opening}\n{code}\n{fence}"


# ----------------------------------------------------------------------
# Inline rules
# ----------------------------------------------------------------------


def _replace_image(txn: Transaction, match: re.Match[str], parser: InlineMarkdownParser) -> list[str]:
    image = txn.create(ImageNode, alt_text=match.group(1), src=match.group(2), max_width=parser.image_max_width)
    return [image.key]


def _export_image(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, ImageNode):
        return None
    return f"![{node.alt_text}]({node.src})"


def _replace_autolink(txn: Transaction, match: re.Match[str], parser: InlineMarkdownParser) -> list[str]:
    label = txn.create(TextNode, text=match.group(1))
    link = txn.create(LinkNode, children=[label.key], url=match.group(1), autolink=True)
    return [link.key]


def _export_autolink(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, LinkNode) or not node.autolink:
        return None
    return f"<{node.url}>"


def _export_link(node: Node, reader: NodeReader, renderer: MarkdownRenderer) -> Optional[str]:
    if not isinstance(node, LinkNode):
        return None
    return f"[{renderer.render_inline(reader, node.key)}]({escape_url(node.url)})"


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------

HORIZONTAL_RULE = ElementTransformer(
    name="horizontal_rule",
    node_types=(HorizontalRuleNode,),
    reg_exp=HORIZONTAL_RULE_REG_EXP,
    replace=_replace_horizontal_rule,
    export=_export_horizontal_rule,
)

IMAGE = TextMatchTransformer(
    name="image",
    node_types=(ImageNode,),
    import_reg_exp=IMAGE_IMPORT_REG_EXP,
    reg_exp=IMAGE_REG_EXP,
    replace=_replace_image,
    export=_export_image,
)

CHECK_LIST = ElementTransformer(
    name="check_list",
    node_types=(ListNode,),
    reg_exp=CHECK_LIST_REG_EXP,
    replace=_list_replace("check"),
    export=_list_export("check"),
)

HEADING = ElementTransformer(
    name="heading",
    node_types=(HeadingNode,),
    reg_exp=HEADING_REG_EXP,
    replace=_replace_heading,
    export=_export_heading,
)

QUOTE = ElementTransformer(
    name="quote",
    node_types=(QuoteNode,),
    reg_exp=QUOTE_REG_EXP,
    replace=_replace_quote,
    export=_export_quote,
)

UNORDERED_LIST = ElementTransformer(
    name="unordered_list",
    node_types=(ListNode,),
    reg_exp=UNORDERED_LIST_REG_EXP,
    replace=_list_replace("bullet"),
    export=_list_export("bullet"),
)

ORDERED_LIST = ElementTransformer(
    name="ordered_list",
    node_types=(ListNode,),
    reg_exp=ORDERED_LIST_REG_EXP,
    replace=_list_replace("number"),
    export=_list_export("number"),
)

CODE = MultilineElementTransformer(
    name="code",
    node_types=(CodeBlockNode,),
    reg_exp_start=CODE_START_REG_EXP,
    is_end=_is_code_end,
    replace=_replace_code,
    export=_export_code,
)

UNDERLINE = TextFormatTransformer("underline", TextFormat.UNDERLINE, "<u>", "</u>")
BOLD_STAR = TextFormatTransformer("bold_star", TextFormat.BOLD, "**", "**", token_type="strong")
ITALIC_STAR = TextFormatTransformer("italic_star", TextFormat.ITALIC, "*", "*", token_type="emphasis")
STRIKETHROUGH = TextFormatTransformer("strikethrough", TextFormat.STRIKETHROUGH, "~~", "~~", token_type="strikethrough")
INLINE_CODE = TextFormatTransformer("inline_code", TextFormat.CODE, "`", "`", token_type="codespan")

AUTOLINK = TextMatchTransformer(
    name="autolink",
    node_types=(LinkNode,),
    import_reg_exp=AUTOLINK_REG_EXP,
    reg_exp=None,
    replace=_replace_autolink,
    export=_export_autolink,
)

# Imported by the inline Markdown library
LINK = TextMatchTransformer(
    name="link",
    node_types=(LinkNode,),
    import_reg_exp=None,
    reg_exp=LINK_REG_EXP,
    replace=None,
    export=_export_link,
)

DEFAULT_TRANSFORMERS = TransformerRegistry(
    [
        TABLE,
        HORIZONTAL_RULE,
        IMAGE,
        CHECK_LIST,
        HEADING,
        QUOTE,
        UNORDERED_LIST,
        ORDERED_LIST,
        CODE,
        UNDERLINE,
        BOLD_STAR,
        ITALIC_STAR,
        STRIKETHROUGH,
        INLINE_CODE,
        AUTOLINK,
        LINK,
    ]
)

__all__ = [
    "TABLE",
    "HORIZONTAL_RULE",
    "IMAGE",
    "CHECK_LIST",
    "HEADING",
    "QUOTE",
    "UNORDERED_LIST",
    "ORDERED_LIST",
    "CODE",
    "UNDERLINE",
    "BOLD_STAR",
    "ITALIC_STAR",
    "STRIKETHROUGH",
    "INLINE_CODE",
    "AUTOLINK",
    "LINK",
    "DEFAULT_TRANSFORMERS",
    "export_list",
]
