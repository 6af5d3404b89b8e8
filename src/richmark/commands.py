#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/commands.py
"""Editing commands.

Each command is a plain function that edits an open
:class:`~richmark.model.state.Transaction`, reading its target from the
transaction's selection. Commands raise a :class:`~richmark.exceptions.RichMarkError`
subclass when the selection does not fit; :class:`richmark.editor.Editor`
turns that into a :class:`CommandResult` and discards the change.

Commands
--------
- Block types: :func:`toggle_block_type`, :func:`convert_block_at_selection`
- Inline content: :func:`insert_text`, :func:`delete_backward`,
  :func:`toggle_format`, :func:`insert_link`, :func:`remove_link_at_selection`,
  :func:`insert_image`
- Inline link editing: :func:`edit_link_as_markdown`, :func:`commit_markdown_link`
- Tables: :func:`insert_table` (the structural table edits live in
  :mod:`richmark.tables.operations`)
- Transforms: :func:`ensure_trailing_paragraph`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

from richmark.block_type import get_block_type
from richmark.constants import (
    BLOCK_TYPE_TARGETS,
    DEFAULT_CODE_LANGUAGE,
    DEFAULT_IMAGE_MAX_WIDTH,
    DEFAULT_TABLE_CELL_MIN_WIDTH,
    LIST_BLOCK_TYPES,
    MARKDOWN_LINK_TEXT_REG_EXP,
)
from richmark.exceptions import InvalidSelectionError, ValidationError
from richmark.headings import HeadingLeveler
from richmark.markdown.parser import MarkdownParser
from richmark.markdown.table import TABLE
from richmark.model.nodes import (
    CodeBlockNode,
    ElementNode,
    HeadingNode,
    HorizontalRuleNode,
    ImageNode,
    LineBreakNode,
    LinkNode,
    ListItemNode,
    ListNode,
    ParagraphNode,
    QuoteNode,
    RootNode,
    TableCellNode,
    TableNode,
    TextFormat,
    TextNode,
    can_contain,
)
from richmark.model.selection import Point, RangeSelection, TableSelection
from richmark.model.state import ROOT_KEY, NodeReader, Transaction
from richmark.tables.operations import create_table, select_cell_start

logger = logging.getLogger(__name__)

# Blocks a caret can sit in
TEXT_BLOCKS = (ParagraphNode, HeadingNode, QuoteNode, CodeBlockNode)
# Blocks that take inserted inline nodes
INLINE_CONTAINERS = (ParagraphNode, HeadingNode, QuoteNode)

_LIST_FIELDS: dict[str, dict[str, bool]] = {
    "bullet": {"ordered": False, "checklist": False},
    "number": {"ordered": True, "checklist": False},
    "check": {"ordered": False, "checklist": True},
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an editor command.

    Parameters
    ----------
    applied : bool
        Whether the command changed the document
    message : str, default ""
        Reason the command was rejected, empty on success
    value : Any, default None
        Command specific return value (new node key, header state, ...)

    """

    applied: bool
    message: str = ""
    value: Any = None

    def __bool__(self) -> bool:
        return self.applied


# ----------------------------------------------------------------------
# Selection helpers
# ----------------------------------------------------------------------


def require_range(reader: NodeReader) -> RangeSelection:
    """Return the range selection of ``reader``.

    Raises
    ------
    InvalidSelectionError
        If there is no selection or it is a table selection

    """
    selection = reader.selection
    if isinstance(selection, TableSelection):
        raise InvalidSelectionError("This command needs a text selection, not a cell selection")
    if not isinstance(selection, RangeSelection):
        raise InvalidSelectionError("No selection")
    return selection


def ordered_points(reader: NodeReader, selection: RangeSelection) -> tuple[Point, Point]:
    """Return the selection points in document order."""
    anchor, focus = selection.anchor, selection.focus
    if anchor.key == focus.key:
        return (anchor, focus) if anchor.offset <= focus.offset else (focus, anchor)
    order = {node.key: index for index, node in enumerate(reader.iter_descendants(ROOT_KEY, include_self=True))}
    if order.get(anchor.key, 0) <= order.get(focus.key, 0):
        return anchor, focus
    return focus, anchor


def _remap_selection(txn: Transaction, replaced: dict[str, str]) -> None:
    """Point a selection that referenced replaced elements at their replacements."""
    selection = txn.selection
    if not isinstance(selection, RangeSelection) or not replaced:
        return

    def remap(point: Point) -> Point:
        key = point.key
        while key in replaced:
            key = replaced[key]
        return replace(point, key=key)

    txn.set_selection(RangeSelection(remap(selection.anchor), remap(selection.focus)))


def _caret_at_end(txn: Transaction, key: str) -> None:
    """Collapse the selection at the end of the subtree of ``key``."""
    text = txn.last_text_node(key)
    if text is not None:
        txn.set_selection(RangeSelection.collapsed(text.key, len(text.text)))
        return
    holders = [node for node in txn.iter_descendants(key, include_self=True) if isinstance(node, TEXT_BLOCKS)]
    target = holders[-1] if holders else txn.require_node(key)
    size = len(target.children) if isinstance(target, ElementNode) else 0
    txn.set_selection(RangeSelection.collapsed(target.key, size, kind="element"))


def _caret_after(txn: Transaction, key: str) -> None:
    """Collapse the selection right after the inline node ``key``."""
    following = txn.next_sibling(key)
    if isinstance(following, TextNode):
        txn.set_selection(RangeSelection.collapsed(following.key, 0))
        return
    parent = txn.get_parent(key)
    if parent is not None:
        txn.set_selection(RangeSelection.collapsed(parent.key, txn.index_in_parent(key) + 1, kind="element"))


def collapse_range(txn: Transaction) -> Point:
    """Delete the selected text and return the resulting caret.

    A collapsed selection is returned unchanged.

    Raises
    ------
    InvalidSelectionError
        If the selection spans more than one text run

    """
    selection = require_range(txn)
    if selection.is_collapsed():
        return selection.anchor
    start, end = ordered_points(txn, selection)
    if start.key != end.key or start.kind != "text":
        raise InvalidSelectionError("The selection spans several nodes")
    node = txn.require_typed(start.key, TextNode)
    txn.update(node.key, text=node.text[: start.offset] + node.text[end.offset :])
    caret = Point(node.key, start.offset)
    txn.set_selection(RangeSelection(caret, caret))
    return caret


def split_selected_runs(txn: Transaction, start: Point, end: Point) -> list[str]:
    """Split text runs at both selection ends and return the selected runs.

    Parameters
    ----------
    txn : Transaction
        Open transaction
    start, end : Point
        Selection points in document order; both must be text points

    Returns
    -------
    list of str
        Keys of the text runs lying completely inside the selection, in
        document order

    """
    if start.kind != "text" or end.kind != "text":
        raise InvalidSelectionError("Select text to apply this command")
    if start.key == end.key:
        txn.split_text(start.key, end.offset)
        _, middle = txn.split_text(start.key, start.offset)
        return [middle] if middle is not None else []

    end_left, _ = txn.split_text(end.key, end.offset)
    _, start_right = txn.split_text(start.key, start.offset)
    runs: list[str] = []
    collecting = False
    for node in txn.iter_descendants(ROOT_KEY):
        if not isinstance(node, TextNode):
            continue
        if node.key == start.key and start_right is None:
            collecting = True
            continue
        if node.key == start_right:
            collecting = True
        if node.key == end.key and end_left is None:
            break
        if collecting:
            runs.append(node.key)
        if node.key == end_left:
            break
    return runs


def _anchor_block(reader: NodeReader, key: str) -> ElementNode:
    block = reader.find_ancestor(key, TEXT_BLOCKS)
    if block is None:
        raise InvalidSelectionError("Selection is not inside a text block")
    return block


def _selected_blocks(reader: NodeReader, selection: RangeSelection) -> list[ElementNode]:
    first = _anchor_block(reader, selection.anchor.key)
    last = _anchor_block(reader, selection.focus.key)
    if first.key == last.key:
        return [first]
    blocks = [node for node in reader.iter_descendants(ROOT_KEY) if isinstance(node, TEXT_BLOCKS)]
    keys = [block.key for block in blocks]
    start, stop = sorted((keys.index(first.key), keys.index(last.key)))
    return blocks[start : stop + 1]


# ----------------------------------------------------------------------
# Block types
# ----------------------------------------------------------------------


def _flatten_for_code(txn: Transaction, key: str) -> None:
    """Reduce the inline children of ``key`` to plain runs and line breaks."""
    for child in txn.get_children(key):
        if isinstance(child, LinkNode):
            for grandchild in child.children:
                txn.insert_before(child.key, grandchild)
            txn.remove(child.key)
        elif isinstance(child, ImageNode):
            txn.remove(child.key)
    for child in txn.get_children(key):
        if isinstance(child, TextNode) and child.format:
            txn.update(child.key, format=TextFormat.NONE)


def _retype_block(txn: Transaction, key: str, target: str, code_language: Optional[str]) -> str:
    """Turn the text block ``key`` into ``target`` and return the key of the result."""
    node = txn.require_node(key)
    fields: dict[str, Any] = {}
    if target == "paragraph":
        block_class: type[ElementNode] = ParagraphNode
    elif target == "quote":
        block_class = QuoteNode
    elif target == "code":
        block_class = CodeBlockNode
        fields["language"] = code_language
        _flatten_for_code(txn, key)
    else:
        level = int(target[1:])
        if isinstance(node, HeadingNode):
            if node.level != level:
                txn.update(key, level=level)
            return key
        block_class = HeadingNode
        fields["level"] = level

    if type(node) is block_class:
        return key
    new = txn.create(block_class, **fields)
    txn.replace(key, new.key, move_children=True)
    return new.key


def _retype_list(txn: Transaction, list_key: str, target: str) -> None:
    txn.update(list_key, **_LIST_FIELDS[target])
    for item in txn.get_children(list_key):
        if isinstance(item, ListItemNode):
            checked = (item.checked or False) if target == "check" else None
            if item.checked != checked:
                txn.update(item.key, checked=checked)


def _wrap_in_list(
    txn: Transaction, key: str, target: str, open_list: Optional[str], replaced: dict[str, str]
) -> str:
    """Move block ``key`` into a new list item, joining ``open_list`` when it sits right before."""
    paragraph_key = _retype_block(txn, key, "paragraph", None)
    if paragraph_key != key:
        replaced[key] = paragraph_key
    previous = txn.previous_sibling(paragraph_key)
    if open_list is not None and previous is not None and previous.key == open_list:
        list_key = open_list
    else:
        list_key = txn.create(ListNode, **_LIST_FIELDS[target]).key
        txn.insert_before(paragraph_key, list_key)
    item = txn.create(ListItemNode, checked=False if target == "check" else None)
    txn.append(list_key, item.key)
    txn.append(item.key, paragraph_key)
    return list_key


def lift_list_item(txn: Transaction, item_key: str) -> str:
    """Move a list item's paragraph out of its list, splitting the list.

    The paragraph lands right after the outermost list. The item's own
    nested lists and every item that followed it (at each nesting level,
    innermost first) are placed after the paragraph as separate lists, so
    document order is kept. Lists left empty are removed.

    Returns
    -------
    str
        Key of the lifted paragraph

    """
    levels: list[tuple[str, str]] = []
    current = item_key
    while True:
        list_node = txn.get_parent(current)
        if not isinstance(list_node, ListNode):
            raise InvalidSelectionError(f"Node '{current}' is not a list item")
        levels.append((list_node.key, current))
        owner = txn.get_parent(list_node.key)
        if not isinstance(owner, ListItemNode):
            break
        current = owner.key
    outer_list = levels[-1][0]

    item = txn.require_typed(item_key, ListItemNode)
    paragraphs = [child for child in txn.get_children(item_key) if isinstance(child, ParagraphNode)]
    paragraph_key = paragraphs[0].key if paragraphs else txn.create(ParagraphNode).key
    nested = [key for key in item.children if key != paragraph_key]

    tails: list[str] = []
    for list_key, level_item in levels:
        list_node = txn.require_typed(list_key, ListNode)
        index = list_node.children.index(level_item)
        following = list(list_node.children[index + 1 :])
        if not following:
            continue
        start = list_node.start + index + 1 if list_node.ordered else 1
        tail = txn.create(ListNode, ordered=list_node.ordered, checklist=list_node.checklist, start=start)
        txn.append(tail.key, *following)
        tails.append(tail.key)

    reference = outer_list
    for key in [paragraph_key, *nested, *tails]:
        txn.insert_after(reference, key)
        reference = key
    txn.remove(item_key)
    for list_key, _ in levels:
        if list_key in txn and not txn.require_typed(list_key, ListNode).children:
            txn.remove(list_key)
    logger.debug("Lifted list item %s out of list %s", item_key, outer_list)
    return paragraph_key


def toggle_block_type(txn: Transaction, target: str, code_language: Optional[str] = DEFAULT_CODE_LANGUAGE) -> str:
    """Convert the blocks under the selection to ``target``.

    Selecting the block type that is already active converts back to a
    paragraph. List targets wrap blocks into ``List > ListItem > Paragraph``
    or retype the list they are already in; other targets lift list items
    out of their list first.

    Parameters
    ----------
    txn : Transaction
        Open transaction
    target : str
        One of ``paragraph``, ``h1``..``h6``, ``bullet``, ``number``,
        ``check``, ``quote``, ``code``
    code_language : str or None, default "javascript"
        Language of created code blocks

    Returns
    -------
    str
        The block type that was applied

    Raises
    ------
    ValidationError
        If ``target`` is not a known block type
    InvalidSelectionError
        If the selection is missing, a cell selection, or not in a text block

    """
    if target not in BLOCK_TYPE_TARGETS:
        raise ValidationError(f"Unknown block type: {target}", "target", target)
    selection = require_range(txn)
    if get_block_type(txn, selection) == target:
        target = "paragraph"

    replaced: dict[str, str] = {}
    retyped_lists: set[str] = set()
    open_list: Optional[str] = None
    for block in _selected_blocks(txn, selection):
        item = txn.get_parent(block.key)
        if isinstance(item, ListItemNode):
            if target in LIST_BLOCK_TYPES:
                list_node = txn.require_typed(str(item.parent), ListNode)
                if list_node.key not in retyped_lists:
                    _retype_list(txn, list_node.key, target)
                    retyped_lists.add(list_node.key)
                continue
            lift_list_item(txn, item.key)

        if target in LIST_BLOCK_TYPES:
            open_list = _wrap_in_list(txn, block.key, target, open_list, replaced)
            continue
        open_list = None
        new_key = _retype_block(txn, block.key, target, code_language)
        if new_key != block.key:
            replaced[block.key] = new_key

    _remap_selection(txn, replaced)
    logger.debug("Applied block type %s", target)
    return target


def convert_block_at_selection(txn: Transaction, parser: MarkdownParser) -> bool:
    """Apply the Markdown block shortcuts to the paragraph holding the caret.

    The paragraph must consist of a single unformatted text run. Its text is
    run through the single-line import rules exactly as if it were a line of
    an imported document, so typing ``| a | b |`` rows one after the other
    builds up one table, ``> `` starts a quote and so on.

    Returns
    -------
    bool
        Whether a rule converted the paragraph

    """
    selection = require_range(txn)
    paragraph = txn.find_ancestor(selection.anchor.key, ParagraphNode)
    if paragraph is None:
        return False
    container = txn.get_parent(paragraph.key)
    if not isinstance(container, (RootNode, TableCellNode)):
        return False
    children = txn.get_children(paragraph.key)
    if len(children) != 1 or not isinstance(children[0], TextNode) or children[0].format:
        return False

    registry = parser.transformers if isinstance(container, RootNode) else parser.transformers.without(TABLE.name)
    line = children[0].text
    if not any(rule.reg_exp.match(line) for rule in registry.element_transformers):
        return False

    following = txn.next_sibling(paragraph.key)
    if not parser.import_block(txn, paragraph.key, registry):
        return False
    if TABLE.name in registry:
        parser.fold_spans(txn, container.key)

    if following is not None:
        result = txn.previous_sibling(following.key)
    else:
        siblings = txn.get_children(container.key)
        result = siblings[-1] if siblings else None
    if isinstance(result, TableNode):
        last_row = txn.get_children(result.key)[-1]
        select_cell_start(txn, txn.get_children(last_row.key)[0].key)
    elif isinstance(result, HorizontalRuleNode):
        paragraph_key = txn.create(ParagraphNode).key
        txn.insert_after(result.key, paragraph_key)
        txn.set_selection(RangeSelection.collapsed(paragraph_key, 0, kind="element"))
    elif result is not None:
        _caret_at_end(txn, result.key)
    logger.debug("Converted paragraph %s through the Markdown shortcuts", paragraph.key)
    return True


# ----------------------------------------------------------------------
# Inline content
# ----------------------------------------------------------------------


def insert_inline(txn: Transaction, node_key: str) -> None:
    """Insert the detached inline node ``node_key`` at the caret.

    Selected text is deleted first. Without a selection the node goes into a
    new paragraph at the end of the document.

    Raises
    ------
    InvalidSelectionError
        If the caret is in a code block or a place that cannot hold inline
        content

    """
    if txn.selection is None:
        paragraph = txn.create(ParagraphNode, children=[node_key])
        txn.append(ROOT_KEY, paragraph.key)
        return
    point = collapse_range(txn)
    target = txn.require_node(point.key)
    node = txn.require_node(node_key)

    if isinstance(target, TextNode):
        container = txn.get_parent(target.key)
        if isinstance(container, CodeBlockNode):
            raise InvalidSelectionError("Cannot insert inline content into a code block")
        if isinstance(container, LinkNode) and not can_contain(container, node):
            txn.insert_after(container.key, node_key)
            return
        left, right = txn.split_text(target.key, point.offset)
        if left is not None:
            txn.insert_after(left, node_key)
        else:
            txn.insert_before(right or target.key, node_key)
        return
    if isinstance(target, (RootNode, TableCellNode)):
        paragraph = txn.create(ParagraphNode, children=[node_key])
        txn.insert_at(target.key, point.offset, paragraph.key)
        return
    if isinstance(target, INLINE_CONTAINERS):
        txn.insert_at(target.key, point.offset, node_key)
        return
    raise InvalidSelectionError(f"Cannot insert inline content into a {target.type}")


def insert_text(txn: Transaction, text: str) -> str:
    r"""Type ``text`` at the caret, replacing selected text.

    ``"\n"`` inserts a line break. The new runs take the format of the run
    the caret is in.

    Returns
    -------
    str
        Key of the run holding the caret afterwards

    """
    point = collapse_range(txn)
    target = txn.require_node(point.key)
    offset = point.offset
    if not isinstance(target, TextNode):
        run = txn.create(TextNode)
        if isinstance(target, (RootNode, TableCellNode)):
            paragraph = txn.create(ParagraphNode, children=[run.key])
            txn.insert_at(target.key, point.offset, paragraph.key)
        elif isinstance(target, (*TEXT_BLOCKS, LinkNode)):
            txn.insert_at(target.key, point.offset, run.key)
        else:
            raise InvalidSelectionError(f"Cannot type into a {target.type}")
        target = run
        offset = 0

    pieces = text.split("\n")
    before, after = target.text[:offset], target.text[offset:]
    if len(pieces) == 1:
        txn.update(target.key, text=before + text + after)
        txn.set_selection(RangeSelection.collapsed(target.key, offset + len(text)))
        return target.key

    txn.update(target.key, text=before + pieces[0])
    reference = target.key
    for piece in pieces[1:]:
        line_break = txn.create(LineBreakNode)
        txn.insert_after(reference, line_break.key)
        run = txn.create(TextNode, text=piece, format=target.format)
        txn.insert_after(line_break.key, run.key)
        reference = run.key
    txn.update(reference, text=pieces[-1] + after)
    txn.set_selection(RangeSelection.collapsed(reference, len(pieces[-1])))
    return reference


def _delete_inline_before(txn: Transaction, previous: Any, point: Point) -> bool:
    if isinstance(previous, TextNode) and previous.text:
        txn.update(previous.key, text=previous.text[:-1])
        if point.kind == "element":
            txn.set_selection(RangeSelection.collapsed(previous.key, len(previous.text) - 1))
        return True
    if isinstance(previous, LinkNode):
        last = txn.last_text_node(previous.key)
        if last is not None and len(txn.text_content(previous.key)) > 1:
            txn.update(last.key, text=last.text[:-1])
            return True
    txn.remove(previous.key)
    if point.kind == "element" and point.offset > 0:
        txn.set_selection(RangeSelection.collapsed(point.key, point.offset - 1, kind="element"))
    return True


def _merge_with_previous_block(txn: Transaction, block: Optional[ElementNode]) -> bool:
    if block is None:
        return False
    owner = txn.get_parent(block.key)
    if isinstance(owner, ListItemNode):
        lift_list_item(txn, owner.key)
        return True
    if isinstance(block, (QuoteNode, HeadingNode)):
        new_key = _retype_block(txn, block.key, "paragraph", None)
        _remap_selection(txn, {block.key: new_key})
        return True
    if not isinstance(block, ParagraphNode):
        return False

    previous = txn.previous_sibling(block.key)
    if isinstance(previous, HorizontalRuleNode):
        txn.remove(previous.key)
        return True
    if not isinstance(previous, INLINE_CONTAINERS):
        return False
    last = txn.get_node(previous.children[-1]) if previous.children else None
    if isinstance(last, TextNode):
        caret = RangeSelection.collapsed(last.key, len(last.text))
    else:
        caret = RangeSelection.collapsed(previous.key, len(previous.children), kind="element")
    txn.move_children(block.key, previous.key)
    txn.remove(block.key)
    txn.set_selection(caret)
    return True


def delete_backward(txn: Transaction, leveler: Optional[HeadingLeveler] = None) -> bool:
    """Handle the Backspace key.

    Heading demotion runs first when a ``leveler`` is given. Otherwise
    selected text is deleted, or the character, line break or inline node
    before the caret, or, at the start of a block, the block is merged into
    the previous one (list items are lifted, quotes and headings become
    paragraphs).

    Returns
    -------
    bool
        Whether anything changed

    """
    if leveler is not None and leveler.demote_on_backspace(txn):
        return True
    selection = require_range(txn)
    if not selection.is_collapsed():
        collapse_range(txn)
        return True

    point = selection.anchor
    node = txn.require_node(point.key)
    if isinstance(node, TextNode):
        if point.offset > 0:
            txn.update(node.key, text=node.text[: point.offset - 1] + node.text[point.offset :])
            txn.set_selection(RangeSelection.collapsed(node.key, point.offset - 1))
            return True
        previous = txn.previous_sibling(node.key)
        block = txn.get_parent(node.key)
    elif isinstance(node, ElementNode):
        previous = txn.get_node(node.children[point.offset - 1]) if point.offset > 0 else None
        block = node
    else:
        return False

    while previous is None and isinstance(block, LinkNode):
        previous = txn.previous_sibling(block.key)
        block = txn.get_parent(block.key)
    if previous is not None and previous.is_inline:
        return _delete_inline_before(txn, previous, point)
    return _merge_with_previous_block(txn, block)


def toggle_format(txn: Transaction, text_format: TextFormat) -> bool:
    """Toggle ``text_format`` on the selected text.

    The format is removed when every selected run already has it, and added
    to all of them otherwise. Runs inside code blocks are left alone.

    Returns
    -------
    bool
        Whether any run changed

    """
    text_format = TextFormat(text_format)
    if not text_format:
        raise ValidationError("A format is required", "text_format", text_format)
    selection = require_range(txn)
    if selection.is_collapsed():
        raise InvalidSelectionError("Select text to format")
    start, end = ordered_points(txn, selection)
    runs = [
        txn.require_typed(key, TextNode)
        for key in split_selected_runs(txn, start, end)
        if not isinstance(txn.get_parent(key), CodeBlockNode)
    ]
    if not runs:
        return False

    enable = not all(run.has_format(text_format) for run in runs)
    for run in runs:
        value = int(run.format) | int(text_format) if enable else int(run.format) & ~int(text_format)
        txn.update(run.key, format=TextFormat(value))
    last = runs[-1]
    txn.set_selection(RangeSelection(Point(runs[0].key, 0), Point(last.key, len(last.text))))
    return True


# ----------------------------------------------------------------------
# Links and images
# ----------------------------------------------------------------------


def insert_link(txn: Transaction, url: str, label: Optional[str] = None) -> str:
    """Turn the selection into a link to ``url``.

    * Inside an existing link, the link's URL (and label, when given) changes.
    * A caret, or any selection when ``label`` is given, inserts a new link
      whose text is ``label`` (or the URL).
    * Otherwise the selected runs of one block are wrapped.

    Returns
    -------
    str
        Key of the link node

    """
    if not url or not url.strip():
        raise ValidationError("Link URL must not be empty", "url", url)
    selection = require_range(txn)

    existing = txn.find_ancestor(selection.anchor.key, LinkNode)
    if existing is not None:
        txn.update(existing.key, url=url, autolink=False)
        if label:
            for child_key in existing.children:
                txn.remove(child_key)
            run = txn.create(TextNode, text=label)
            txn.append(existing.key, run.key)
            txn.set_selection(RangeSelection.collapsed(run.key, len(label)))
        return existing.key
    if txn.find_ancestor(selection.anchor.key, CodeBlockNode) is not None:
        raise InvalidSelectionError("Links cannot be inserted into code blocks")

    if selection.is_collapsed() or label:
        run = txn.create(TextNode, text=label or url)
        link = txn.create(LinkNode, children=[run.key], url=url)
        insert_inline(txn, link.key)
        _caret_after(txn, link.key)
        return link.key

    start, end = ordered_points(txn, selection)
    runs = split_selected_runs(txn, start, end)
    if not runs:
        raise InvalidSelectionError("Select text to link")
    parent = txn.get_parent(runs[0])
    if not isinstance(parent, INLINE_CONTAINERS) or any(txn.require_node(key).parent != parent.key for key in runs):
        raise InvalidSelectionError("Links can only wrap text inside one block")
    first, last = parent.children.index(runs[0]), parent.children.index(runs[-1])
    wrapped = list(parent.children[first : last + 1])
    if any(not isinstance(txn.require_node(key), (TextNode, LineBreakNode)) for key in wrapped):
        raise InvalidSelectionError("Links can only wrap text")
    link = txn.create(LinkNode, url=url)
    txn.insert_before(wrapped[0], link.key)
    txn.append(link.key, *wrapped)
    _caret_after(txn, link.key)
    return link.key


def remove_link_at_selection(txn: Transaction) -> str:
    """Replace the link holding the selection by its label runs.

    Returns
    -------
    str
        Key of the removed link

    """
    selection = require_range(txn)
    link = txn.find_ancestor(selection.anchor.key, LinkNode)
    if link is None:
        raise InvalidSelectionError("Selection is not inside a link")
    for child_key in link.children:
        txn.insert_before(link.key, child_key)
    txn.remove(link.key)
    return link.key


def insert_image(
    txn: Transaction, src: str, alt_text: str = "", max_width: int = DEFAULT_IMAGE_MAX_WIDTH
) -> str:
    """Insert an image at the caret and return its key."""
    if not src:
        raise ValidationError("Image source must not be empty", "src", src)
    image = txn.create(ImageNode, src=src, alt_text=alt_text, max_width=max_width)
    insert_inline(txn, image.key)
    _caret_after(txn, image.key)
    return image.key


def edit_link_as_markdown(txn: Transaction) -> str:
    """Replace the link holding the caret by its ``[label](url)`` source text.

    Returns
    -------
    str
        Key of the text run holding the source

    """
    selection = require_range(txn)
    link = txn.find_ancestor(selection.anchor.key, LinkNode)
    if link is None:
        raise InvalidSelectionError("Selection is not inside a link")
    source = f"[{txn.text_content(link.key)}]({link.url})"
    run = txn.create(TextNode, text=source)
    txn.replace(link.key, run.key)
    txn.set_selection(RangeSelection.collapsed(run.key, len(source)))
    return run.key


def commit_markdown_link(txn: Transaction) -> bool:
    """Turn a text run reading ``[label](url)`` back into a link.

    Returns
    -------
    bool
        Whether the run under the caret held link source text

    """
    selection = require_range(txn)
    node = txn.get_node(selection.anchor.key)
    if not isinstance(node, TextNode):
        return False
    match = MARKDOWN_LINK_TEXT_REG_EXP.match(node.text)
    if match is None or isinstance(txn.get_parent(node.key), (CodeBlockNode, LinkNode)):
        return False
    label, url = match.groups()
    run = txn.create(TextNode, text=label, format=node.format)
    link = txn.create(LinkNode, children=[run.key], url=url)
    txn.replace(node.key, link.key)
    txn.set_selection(RangeSelection.collapsed(run.key, len(label)))
    return True


def code_text_at_selection(reader: NodeReader) -> Optional[str]:
    """Return the text of the code block holding the selection anchor, if any."""
    selection = reader.selection
    if not isinstance(selection, RangeSelection):
        return None
    code = reader.find_ancestor(selection.anchor.key, CodeBlockNode)
    return reader.text_content(code.key) if code is not None else None


# ----------------------------------------------------------------------
# Tables
# ----------------------------------------------------------------------


def insert_table(
    txn: Transaction, rows: int, columns: int, width: Optional[int] = DEFAULT_TABLE_CELL_MIN_WIDTH
) -> str:
    """Insert a ``rows`` x ``columns`` table at the selection.

    An empty paragraph holding the caret is replaced; otherwise the table
    goes after the top-level block holding the selection, or at the end of
    the document without a selection. The caret moves to the first cell.

    Returns
    -------
    str
        Key of the new table

    """
    table_key = create_table(txn, rows, columns, width)
    selection = txn.selection
    if isinstance(selection, TableSelection):
        anchor_key: Optional[str] = selection.anchor_cell_key
    elif isinstance(selection, RangeSelection):
        anchor_key = selection.anchor.key
    else:
        anchor_key = None
    top_key = txn.top_level_key(anchor_key) if anchor_key is not None else None

    if top_key is None:
        txn.append(ROOT_KEY, table_key)
    elif isinstance(txn.get_node(top_key), ParagraphNode) and txn.is_empty_block(top_key):
        txn.replace(top_key, table_key)
    else:
        txn.insert_after(top_key, table_key)

    first_cell = next(node for node in txn.iter_descendants(table_key) if isinstance(node, TableCellNode))
    select_cell_start(txn, first_cell.key)
    logger.debug("Inserted %dx%d table %s", rows, columns, table_key)
    return table_key


# ----------------------------------------------------------------------
# Transforms
# ----------------------------------------------------------------------


def ensure_trailing_paragraph(txn: Transaction) -> bool:
    """Append an empty paragraph unless the document already ends with one."""
    children = txn.root.children
    last = txn.get_node(children[-1]) if children else None
    if isinstance(last, ParagraphNode) and txn.is_empty_block(last.key):
        return False
    txn.append(ROOT_KEY, txn.create(ParagraphNode).key)
    return True


__all__ = [
    "CommandResult",
    "code_text_at_selection",
    "commit_markdown_link",
    "convert_block_at_selection",
    "delete_backward",
    "edit_link_as_markdown",
    "ensure_trailing_paragraph",
    "insert_image",
    "insert_inline",
    "insert_link",
    "insert_table",
    "insert_text",
    "lift_list_item",
    "remove_link_at_selection",
    "toggle_block_type",
    "toggle_format",
]
