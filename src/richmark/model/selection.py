#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/selection.py
"""Selection types.

A selection either spans text (``RangeSelection``, two points) or a rectangle
of table cells (``TableSelection``). Points refer to nodes by key, so a
selection taken from one snapshot stays meaningful in the next one as long as
the keys survive.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Union

PointKind = Literal["text", "element"]


@dataclass(frozen=True)
class Point:
    """Position inside a node.

    Parameters
    ----------
    key : str
        Key of a text node (``kind="text"``) or an element node
    offset : int, default = 0
        Character offset in a text node, or child index in an element
    kind : {"text", "element"}, default = "text"
        What ``offset`` counts

    """

    key: str
    offset: int = 0
    kind: PointKind = "text"

    def shifted(self, delta: int) -> Point:
        """Return a copy moved by ``delta`` characters, clamped at zero."""
        return replace(self, offset=max(self.offset + delta, 0))


@dataclass(frozen=True)
class RangeSelection:
    """Text selection between an anchor and a focus point."""

    anchor: Point
    focus: Point

    @classmethod
    def collapsed(cls, key: str, offset: int = 0, kind: PointKind = "text") -> RangeSelection:
        """Create a caret at ``offset`` of node ``key``."""
        point = Point(key, offset, kind)
        return cls(point, point)

    def is_collapsed(self) -> bool:
        """Whether anchor and focus are the same point."""
        return self.anchor == self.focus


@dataclass(frozen=True)
class TableSelection:
    """Rectangular selection of table cells between two corner cells."""

    table_key: str
    anchor_cell_key: str
    focus_cell_key: str

    def is_single_cell(self) -> bool:
        """Whether both corners are the same cell."""
        return self.anchor_cell_key == self.focus_cell_key


Selection = Union[RangeSelection, TableSelection]


def selection_keys(selection: Optional[Selection]) -> tuple[str, ...]:
    """Return every node key a selection refers to."""
    if selection is None:
        return ()
    if isinstance(selection, TableSelection):
        return (selection.table_key, selection.anchor_cell_key, selection.focus_cell_key)
    return (selection.anchor.key, selection.focus.key)


__all__ = ["Point", "PointKind", "RangeSelection", "TableSelection", "Selection", "selection_keys"]
