#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/nodes.py
"""Node classes for the editable document tree.

The document is stored as an arena: every node is an immutable dataclass
identified by a stable ``key``. Structure is expressed through keys only;
``parent`` holds the owning node's key and element nodes hold an ordered
tuple of child keys. Nodes are never mutated in place. A transaction clones
a node with :func:`dataclasses.replace` and stores the clone under the same
key (see :mod:`richmark.model.state`).

Node Hierarchy
--------------
Block nodes:
    - RootNode, ParagraphNode, HeadingNode, QuoteNode, CodeBlockNode
    - HorizontalRuleNode
    - ListNode, ListItemNode
    - TableNode, TableRowNode, TableCellNode

Inline nodes:
    - TextNode, LinkNode, ImageNode, LineBreakNode

The set of node classes is closed. Every class dispatches to a dedicated
``visit_*`` method of :class:`richmark.model.visitors.NodeVisitor`.

"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, ClassVar, Optional

from richmark.constants import DEFAULT_IMAGE_MAX_WIDTH, MAX_HEADING_LEVEL, MIN_HEADING_LEVEL
from richmark.exceptions import InvariantViolationError


class TextFormat(IntFlag):
    """Bitmask of character formats applied to a text run."""

    NONE = 0
    BOLD = 1
    ITALIC = 2
    STRIKETHROUGH = 4
    UNDERLINE = 8
    CODE = 16


class HeaderState(IntFlag):
    """Header role of a table cell."""

    NONE = 0
    ROW = 1
    COLUMN = 2
    BOTH = 3


@dataclass(frozen=True)
class Node(ABC):
    """Base class for all document nodes.

    Parameters
    ----------
    key : str
        Stable identifier, unique within a live tree
    parent : str or None, default = None
        Key of the owning node; None for the root and for detached nodes

    """

    key: str
    parent: Optional[str] = None

    type: ClassVar[str] = "node"
    is_inline: ClassVar[bool] = False

    @abstractmethod
    def accept(self, visitor: Any) -> Any:
        """Accept a visitor for processing this node.

        Parameters
        ----------
        visitor : Any
            A visitor object with visit_* methods

        Returns
        -------
        Any
            Result of the visitor's processing

        """

    @property
    def type_tag(self) -> str:
        """Type tag of this node instance."""
        return self.type


@dataclass(frozen=True)
class ElementNode(Node):
    """Base class for nodes that own children.

    Parameters
    ----------
    children : tuple of str, default = ()
        Ordered keys of the owned nodes

    """

    children: tuple[str, ...] = ()

    def accept(self, visitor: Any) -> Any:  # pragma: no cover - abstract in practice
        """Subclasses dispatch to their own visit method."""
        raise NotImplementedError(f"{type(self).__name__} does not implement accept")

    @property
    def is_empty(self) -> bool:
        """Whether the element owns no children."""
        return not self.children


@dataclass(frozen=True)
class RootNode(ElementNode):
    """Root of a document, owning the top-level blocks."""

    type: ClassVar[str] = "root"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_root``."""
        return visitor.visit_root(self)


@dataclass(frozen=True)
class ParagraphNode(ElementNode):
    """Paragraph block owning inline runs."""

    type: ClassVar[str] = "paragraph"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_paragraph``."""
        return visitor.visit_paragraph(self)


@dataclass(frozen=True)
class HeadingNode(ElementNode):
    """Heading block (h1-h6).

    Parameters
    ----------
    level : int, default = 1
        Heading level (1-6, where 1 is most important)

    """

    level: int = 1

    type: ClassVar[str] = "heading"

    def __post_init__(self) -> None:
        """Validate heading level is between 1 and 6."""
        if not MIN_HEADING_LEVEL <= self.level <= MAX_HEADING_LEVEL:
            raise InvariantViolationError(f"Heading level must be 1-6, got {self.level}")

    @property
    def tag(self) -> str:
        """HTML-style tag name such as ``h2``."""
        return f"h{self.level}"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_heading``."""
        return visitor.visit_heading(self)


@dataclass(frozen=True)
class QuoteNode(ElementNode):
    """Block quote owning inline runs; quoted lines are separated by line breaks."""

    type: ClassVar[str] = "quote"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_quote``."""
        return visitor.visit_quote(self)


@dataclass(frozen=True)
class CodeBlockNode(ElementNode):
    """Fenced code block.

    Parameters
    ----------
    language : str or None, default = None
        Language identifier written after the opening fence

    """

    language: Optional[str] = None

    type: ClassVar[str] = "code"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_code_block``."""
        return visitor.visit_code_block(self)


@dataclass(frozen=True)
class HorizontalRuleNode(Node):
    """Thematic break."""

    type: ClassVar[str] = "horizontalrule"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_horizontal_rule``."""
        return visitor.visit_horizontal_rule(self)


@dataclass(frozen=True)
class ListNode(ElementNode):
    """Ordered, unordered or check list.

    Parameters
    ----------
    ordered : bool, default = False
        Numbered list when True
    checklist : bool, default = False
        Task list; items carry a ``checked`` state
    start : int, default = 1
        First number of an ordered list

    """

    ordered: bool = False
    checklist: bool = False
    start: int = 1

    type: ClassVar[str] = "list"

    @property
    def list_type(self) -> str:
        """Block type name of the list: ``number``, ``check`` or ``bullet``."""
        if self.ordered:
            return "number"
        if self.checklist:
            return "check"
        return "bullet"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_list``."""
        return visitor.visit_list(self)


@dataclass(frozen=True)
class ListItemNode(ElementNode):
    """List item owning a paragraph followed by nested lists.

    Parameters
    ----------
    checked : bool or None, default = None
        Check state for check list items, None otherwise

    """

    checked: Optional[bool] = None

    type: ClassVar[str] = "listitem"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_list_item``."""
        return visitor.visit_list_item(self)


@dataclass(frozen=True)
class TableNode(ElementNode):
    """Table owning rows."""

    type: ClassVar[str] = "table"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_table``."""
        return visitor.visit_table(self)


@dataclass(frozen=True)
class TableRowNode(ElementNode):
    """Table row owning cells."""

    type: ClassVar[str] = "tablerow"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_table_row``."""
        return visitor.visit_table_row(self)


@dataclass(frozen=True)
class TableCellNode(ElementNode):
    """Table cell owning a sequence of blocks.

    Parameters
    ----------
    row_span : int, default = 1
        Number of grid rows the cell covers
    col_span : int, default = 1
        Number of grid columns the cell covers
    header_state : HeaderState, default = HeaderState.NONE
        Row/column header role
    width : int or None, default = None
        Minimum display width in pixels

    """

    row_span: int = 1
    col_span: int = 1
    header_state: HeaderState = HeaderState.NONE
    width: Optional[int] = None

    type: ClassVar[str] = "tablecell"

    def __post_init__(self) -> None:
        """Validate spans are positive."""
        if self.row_span < 1 or self.col_span < 1:
            raise InvariantViolationError(
                f"Cell spans must be at least 1, got row_span={self.row_span}, col_span={self.col_span}"
            )

    @property
    def is_spanning(self) -> bool:
        """Whether the cell covers more than one grid position."""
        return self.row_span > 1 or self.col_span > 1

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_table_cell``."""
        return visitor.visit_table_cell(self)


@dataclass(frozen=True)
class LinkNode(ElementNode):
    """Hyperlink owning its label runs.

    Parameters
    ----------
    url : str, default = ""
        Link target
    autolink : bool, default = False
        Written as ``<url>`` instead of ``[label](url)``

    """

    url: str = ""
    autolink: bool = False

    type: ClassVar[str] = "link"
    is_inline: ClassVar[bool] = True

    @property
    def type_tag(self) -> str:
        """``autolink`` for autolinks, ``link`` otherwise."""
        return "autolink" if self.autolink else "link"

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_link``."""
        return visitor.visit_link(self)


@dataclass(frozen=True)
class ImageNode(Node):
    """Inline image.

    Parameters
    ----------
    src : str, default = ""
        Image source URL
    alt_text : str, default = ""
        Alternative text
    max_width : int, default = 800
        Maximum display width in pixels

    """

    src: str = ""
    alt_text: str = ""
    max_width: int = DEFAULT_IMAGE_MAX_WIDTH

    type: ClassVar[str] = "image"
    is_inline: ClassVar[bool] = True

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_image``."""
        return visitor.visit_image(self)


@dataclass(frozen=True)
class TextNode(Node):
    """Run of text sharing one format.

    Parameters
    ----------
    text : str, default = ""
        Text content
    format : TextFormat, default = TextFormat.NONE
        Character formats applied to the whole run

    """

    text: str = ""
    format: TextFormat = TextFormat.NONE

    type: ClassVar[str] = "text"
    is_inline: ClassVar[bool] = True

    def has_format(self, text_format: TextFormat) -> bool:
        """Whether every bit of ``text_format`` is set on this run."""
        return (self.format & text_format) == text_format

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_text``."""
        return visitor.visit_text(self)


@dataclass(frozen=True)
class LineBreakNode(Node):
    """Hard line break inside a block."""

    type: ClassVar[str] = "linebreak"
    is_inline: ClassVar[bool] = True

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_line_break``."""
        return visitor.visit_line_break(self)


INLINE_NODE_TYPES: tuple[type[Node], ...] = (TextNode, LinkNode, ImageNode, LineBreakNode)
TEXT_BLOCK_TYPES: tuple[type[ElementNode], ...] = (ParagraphNode, HeadingNode, QuoteNode)
CELL_BLOCK_TYPES: tuple[type[Node], ...] = (
    ParagraphNode,
    HeadingNode,
    QuoteNode,
    CodeBlockNode,
    HorizontalRuleNode,
    ListNode,
)
BLOCK_NODE_TYPES: tuple[type[Node], ...] = CELL_BLOCK_TYPES + (TableNode,)

ALLOWED_CHILDREN: dict[type[ElementNode], tuple[type[Node], ...]] = {
    RootNode: BLOCK_NODE_TYPES,
    ParagraphNode: INLINE_NODE_TYPES,
    HeadingNode: INLINE_NODE_TYPES,
    QuoteNode: INLINE_NODE_TYPES,
    CodeBlockNode: (TextNode, LineBreakNode),
    ListNode: (ListItemNode,),
    ListItemNode: (ParagraphNode, ListNode),
    TableNode: (TableRowNode,),
    TableRowNode: (TableCellNode,),
    TableCellNode: CELL_BLOCK_TYPES,
    LinkNode: (TextNode, LineBreakNode),
}


def is_block(node: Node) -> bool:
    """Whether ``node`` is a block node that may sit in the root or a cell."""
    return isinstance(node, BLOCK_NODE_TYPES)


def can_contain(parent: ElementNode, child: Node) -> bool:
    """Whether ``parent`` may own ``child``.

    Parameters
    ----------
    parent : ElementNode
        Prospective owner
    child : Node
        Prospective child

    Returns
    -------
    bool
        True when the pairing is structurally valid

    """
    allowed = ALLOWED_CHILDREN.get(type(parent), ())
    return isinstance(child, allowed)


__all__ = [
    "TextFormat",
    "HeaderState",
    "Node",
    "ElementNode",
    "RootNode",
    "ParagraphNode",
    "HeadingNode",
    "QuoteNode",
    "CodeBlockNode",
    "HorizontalRuleNode",
    "ListNode",
    "ListItemNode",
    "TableNode",
    "TableRowNode",
    "TableCellNode",
    "LinkNode",
    "ImageNode",
    "TextNode",
    "LineBreakNode",
    "INLINE_NODE_TYPES",
    "TEXT_BLOCK_TYPES",
    "CELL_BLOCK_TYPES",
    "BLOCK_NODE_TYPES",
    "ALLOWED_CHILDREN",
    "is_block",
    "can_contain",
]
