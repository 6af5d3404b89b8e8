#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/block_type.py
"""Classify the block under the selection for toolbar state."""

from __future__ import annotations

from typing import Optional

from richmark.constants import DEFAULT_BLOCK_TYPE
from richmark.model.nodes import (
    CodeBlockNode,
    ElementNode,
    HeadingNode,
    LinkNode,
    ListItemNode,
    ListNode,
    RootNode,
    TableCellNode,
)
from richmark.model.selection import RangeSelection, Selection, TableSelection
from richmark.model.state import NodeReader


def _anchor_key(selection: Selection) -> str:
    if isinstance(selection, TableSelection):
        return selection.anchor_cell_key
    return selection.anchor.key


def get_block_type(
    reader: NodeReader,
    selection: Optional[Selection] = None,
    last_known: str = DEFAULT_BLOCK_TYPE,
) -> str:
    """Return the block type name at the selection anchor.

    Parameters
    ----------
    reader : NodeReader
        Snapshot or transaction
    selection : Selection or None, default = None
        Selection to classify; the reader's own selection when omitted
    last_known : str, default "paragraph"
        Value returned when there is nothing to classify

    Returns
    -------
    str
        ``h1``..``h6`` for headings, ``code`` inside code blocks,
        ``bullet``/``number``/``check`` inside list items, ``link`` or
        ``autolink`` on links, otherwise the element's type tag

    """
    if selection is None:
        selection = reader.selection
    if not isinstance(selection, (RangeSelection, TableSelection)):
        return last_known

    node = reader.get_node(_anchor_key(selection))
    if node is None:
        return last_known
    element = node if isinstance(node, ElementNode) else reader.get_parent(node.key)
    if element is None or isinstance(element, (RootNode, TableCellNode)):
        return last_known

    if isinstance(element, LinkNode):
        return element.type_tag
    if isinstance(element, HeadingNode):
        return element.tag
    if reader.find_ancestor(element.key, CodeBlockNode) is not None:
        return "code"
    item = reader.find_ancestor(element.key, ListItemNode)
    if item is not None:
        parent = reader.get_parent(item.key)
        if isinstance(parent, ListNode):
            return parent.list_type
    return element.type_tag


class BlockTypeTracker:
    """Remember the last classified block type between selection changes.

    Parameters
    ----------
    default : str, default "paragraph"
        Value reported before the first classification

    """

    def __init__(self, default: str = DEFAULT_BLOCK_TYPE) -> None:
        self.last_known = default

    def update(self, reader: NodeReader, selection: Optional[Selection] = None) -> str:
        """Classify the selection of ``reader`` and remember the result."""
        self.last_known = get_block_type(reader, selection, self.last_known)
        return self.last_known


__all__ = ["get_block_type", "BlockTypeTracker"]
