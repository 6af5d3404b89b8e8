#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/headings.py
"""Heading level shortcuts.

Typing ``#`` characters at the start of a block raises it to a heading (or
raises a heading's level), and Backspace at the start of a heading lowers it
again. The two directions are deliberately not symmetric: promotion strips a
whole ``#`` run, while a demotion that finds a literal ``#`` at the start of
the heading strips just that one character.

Examples
--------
    >>> leveler = HeadingLeveler()
    >>> # inside an open transaction whose selection sits in "## Title"
    >>> leveler.promote(txn)  # doctest: +SKIP
    True

"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from richmark.constants import HEADING_SHORTCUT_REG_EXP, MAX_HEADING_LEVEL, MIN_HEADING_LEVEL
from richmark.model.nodes import HeadingNode, ParagraphNode, QuoteNode, TextNode
from richmark.model.selection import Point, RangeSelection
from richmark.model.state import Transaction

logger = logging.getLogger(__name__)


class HeadingLeveler:
    """Promote and demote headings from ``#`` typing and Backspace.

    Parameters
    ----------
    max_level : int, default 6
        Highest heading level reachable by promotion

    """

    def __init__(self, max_level: int = MAX_HEADING_LEVEL) -> None:
        if not MIN_HEADING_LEVEL <= max_level <= MAX_HEADING_LEVEL:
            raise ValueError(f"max_level must be between 1 and 6, got {max_level}")
        self.max_level = max_level

    def promote(self, txn: Transaction) -> bool:
        """Apply a pending ``#`` shortcut in the block holding the selection.

        The block qualifies when it is a top-level paragraph, quote or
        heading that was touched in ``txn``, its only child is a text run
        beginning with a ``#`` run and the caret sits inside or right after
        that run. Paragraphs and quotes also need a space after the run.

        Returns
        -------
        bool
            Whether the block changed

        """
        selection = txn.selection
        if not isinstance(selection, RangeSelection) or not selection.is_collapsed():
            return False
        top_key = txn.top_level_key(selection.anchor.key)
        if top_key is None:
            return False
        block = txn.require_node(top_key)
        if not isinstance(block, (ParagraphNode, HeadingNode, QuoteNode)) or len(block.children) != 1:
            return False
        dirty = txn.dirty_keys
        if top_key not in dirty and block.children[0] not in dirty:
            return False
        text = txn.get_node(block.children[0])
        if not isinstance(text, TextNode):
            return False

        match = HEADING_SHORTCUT_REG_EXP.match(text.text)
        if match is None:
            return False
        hash_count = len(match.group(1))
        remainder = text.text[hash_count:]
        has_space = remainder.startswith(" ")
        current_level = block.level if isinstance(block, HeadingNode) else 0
        if current_level == 0 and not has_space:
            return False
        stripped = hash_count + (1 if has_space else 0)
        if selection.anchor.key != text.key or selection.anchor.offset > stripped:
            return False

        new_level = min(current_level + hash_count, self.max_level)
        if new_level == current_level:
            return False

        new_text = text.text[stripped:]
        txn.update(text.key, text=new_text)
        if isinstance(block, HeadingNode):
            txn.update(top_key, level=new_level)
            heading_key = top_key
        else:
            heading_key = txn.create(HeadingNode, level=new_level).key
            txn.replace(top_key, heading_key, move_children=True)

        txn.set_selection(
            RangeSelection(
                self._shift(selection.anchor, text.key, hash_count, len(new_text)),
                self._shift(selection.focus, text.key, hash_count, len(new_text)),
            )
        )
        logger.debug("Promoted block %s to h%d", heading_key, new_level)
        return True

    @staticmethod
    def _shift(point: Point, text_key: str, amount: int, length: int) -> Point:
        if point.key != text_key:
            return point
        return replace(point, offset=max(0, min(point.offset - amount, length)))

    def demote_on_backspace(self, txn: Transaction) -> bool:
        """Handle Backspace at offset 0 of a heading.

        * An empty level-1 heading becomes a paragraph.
        * A heading whose text starts with ``#`` loses that character and
          one level (never going below 1).
        * Any other heading loses one level, or becomes a paragraph at level 1.

        Returns
        -------
        bool
            Whether the key press was handled; False lets the default
            deletion run

        """
        selection = txn.selection
        if not isinstance(selection, RangeSelection) or not selection.is_collapsed():
            return False
        point = selection.anchor
        heading = txn.find_ancestor(point.key, HeadingNode)
        if heading is None or point.offset != 0:
            return False
        children = txn.get_children(heading.key)
        text_node: Optional[TextNode] = None
        if children:
            if len(children) != 1 or not isinstance(children[0], TextNode):
                return False
            text_node = children[0]
        if point.key not in (heading.key, text_node.key if text_node else None):
            return False

        text = text_node.text if text_node is not None else ""
        if text_node is not None and text.startswith("#"):
            txn.update(text_node.key, text=text[1:])
            if heading.level > MIN_HEADING_LEVEL:
                txn.update(heading.key, level=heading.level - 1)
        elif heading.level > MIN_HEADING_LEVEL:
            txn.update(heading.key, level=heading.level - 1)
        else:
            paragraph = txn.create(ParagraphNode)
            txn.replace(heading.key, paragraph.key, move_children=True)
            if point.key == heading.key:
                txn.set_selection(RangeSelection.collapsed(paragraph.key, 0, kind="element"))
            logger.debug("Demoted heading %s to a paragraph", heading.key)
        return True


__all__ = ["HeadingLeveler"]
