#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/projections.py
"""Read-only projections of a document snapshot.

These are the values a host UI shows next to the editor: the heading
outline, the document title taken from the first heading, the visible
character count and the block type under the caret. All of them are pure
functions of a snapshot and can be recomputed at any time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from richmark.block_type import get_block_type
from richmark.constants import DEFAULT_BLOCK_TYPE, UNTITLED_HEADING
from richmark.model.nodes import HeadingNode
from richmark.model.state import ROOT_KEY, NodeReader


@dataclass(frozen=True)
class HeadingEntry:
    """One entry of the heading outline.

    Parameters
    ----------
    key : str
        Key of the heading node
    text : str
        Plain text of the heading
    level : int
        Heading level (1-6)

    """

    key: str
    text: str
    level: int


def heading_outline(reader: NodeReader) -> list[HeadingEntry]:
    """Return every heading of the document in document order.

    Headings nested in table cells are included.
    """
    return [
        HeadingEntry(key=node.key, text=reader.text_content(node.key), level=node.level)
        for node in reader.iter_descendants(ROOT_KEY)
        if isinstance(node, HeadingNode)
    ]


def first_heading(reader: NodeReader, default: str = UNTITLED_HEADING) -> str:
    """Return the trimmed text of the first top-level heading.

    Parameters
    ----------
    reader : NodeReader
        Snapshot to inspect
    default : str, default "Untitled"
        Returned when there is no top-level heading or it is blank

    """
    for child in reader.get_children(ROOT_KEY):
        if isinstance(child, HeadingNode):
            return reader.text_content(child.key).strip() or default
    return default


def visible_character_count(reader: NodeReader) -> int:
    """Count the characters of the document text, ignoring line breaks."""
    return len(reader.text_content(ROOT_KEY).replace("\n", ""))


@dataclass(frozen=True)
class Projections:
    """Snapshot of every projection at one point in time.

    Parameters
    ----------
    current_block_type : str
        Block type under the selection anchor
    heading_outline : list of HeadingEntry
        Headings in document order
    first_heading : str
        Document title
    visible_character_count : int
        Character count without line breaks

    """

    current_block_type: str = DEFAULT_BLOCK_TYPE
    heading_outline: list[HeadingEntry] = field(default_factory=list)
    first_heading: str = UNTITLED_HEADING
    visible_character_count: int = 0

    @classmethod
    def compute(cls, reader: NodeReader, last_block_type: Optional[str] = None) -> Projections:
        """Derive every projection from ``reader``."""
        return cls(
            current_block_type=get_block_type(reader, last_known=last_block_type or DEFAULT_BLOCK_TYPE),
            heading_outline=heading_outline(reader),
            first_heading=first_heading(reader),
            visible_character_count=visible_character_count(reader),
        )


__all__ = [
    "HeadingEntry",
    "Projections",
    "first_heading",
    "heading_outline",
    "visible_character_count",
]
