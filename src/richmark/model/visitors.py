#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/visitors.py
"""Visitor pattern implementation for document traversal.

Nodes reference their children by key, so a visitor that walks the tree is
bound to a reader (an :class:`~richmark.model.state.EditorState` or an open
:class:`~richmark.model.state.Transaction`) that resolves those keys.

``NodeVisitor`` declares one abstract method per node class. Because the node
set is closed, a concrete visitor that forgets a variant cannot be
instantiated.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

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
    Node,
    ParagraphNode,
    QuoteNode,
    RootNode,
    TableCellNode,
    TableNode,
    TableRowNode,
    TextNode,
)

if TYPE_CHECKING:
    from richmark.model.state import NodeReader


class NodeVisitor(ABC):
    """Abstract base class for document node visitors.

    Examples
    --------
    Counting text runs:

        >>> class TextCounter(TraversingVisitor):
        ...     def __init__(self, reader):
        ...         super().__init__(reader)
        ...         self.count = 0
        ...     def visit_text(self, node):
        ...         self.count += 1

    """

    @abstractmethod
    def visit_root(self, node: RootNode) -> Any:
        """Visit the root node."""

    @abstractmethod
    def visit_paragraph(self, node: ParagraphNode) -> Any:
        """Visit a paragraph node."""

    @abstractmethod
    def visit_heading(self, node: HeadingNode) -> Any:
        """Visit a heading node."""

    @abstractmethod
    def visit_quote(self, node: QuoteNode) -> Any:
        """Visit a quote node."""

    @abstractmethod
    def visit_code_block(self, node: CodeBlockNode) -> Any:
        """Visit a code block node."""

    @abstractmethod
    def visit_horizontal_rule(self, node: HorizontalRuleNode) -> Any:
        """Visit a horizontal rule node."""

    @abstractmethod
    def visit_list(self, node: ListNode) -> Any:
        """Visit a list node."""

    @abstractmethod
    def visit_list_item(self, node: ListItemNode) -> Any:
        """Visit a list item node."""

    @abstractmethod
    def visit_table(self, node: TableNode) -> Any:
        """Visit a table node."""

    @abstractmethod
    def visit_table_row(self, node: TableRowNode) -> Any:
        """Visit a table row node."""

    @abstractmethod
    def visit_table_cell(self, node: TableCellNode) -> Any:
        """Visit a table cell node."""

    @abstractmethod
    def visit_link(self, node: LinkNode) -> Any:
        """Visit a link node."""

    @abstractmethod
    def visit_image(self, node: ImageNode) -> Any:
        """Visit an image node."""

    @abstractmethod
    def visit_text(self, node: TextNode) -> Any:
        """Visit a text node."""

    @abstractmethod
    def visit_line_break(self, node: LineBreakNode) -> Any:
        """Visit a line break node."""


class TraversingVisitor(NodeVisitor):
    """Visitor that walks the whole subtree in document order.

    Every ``visit_*`` method defaults to :meth:`generic_visit`, which visits
    the children of element nodes. Subclasses override only the methods they
    care about and call ``generic_visit`` to keep descending.

    Parameters
    ----------
    reader : NodeReader
        Source used to resolve child keys

    """

    def __init__(self, reader: NodeReader) -> None:
        self.reader = reader

    def generic_visit(self, node: Node) -> None:
        """Visit every child of ``node`` in order."""
        if isinstance(node, ElementNode):
            for child_key in node.children:
                self.reader.require_node(child_key).accept(self)

    def visit_root(self, node: RootNode) -> Any:
        """Descend into the top-level blocks."""
        self.generic_visit(node)

    def visit_paragraph(self, node: ParagraphNode) -> Any:
        """Descend into inline children."""
        self.generic_visit(node)

    def visit_heading(self, node: HeadingNode) -> Any:
        """Descend into inline children."""
        self.generic_visit(node)

    def visit_quote(self, node: QuoteNode) -> Any:
        """Descend into inline children."""
        self.generic_visit(node)

    def visit_code_block(self, node: CodeBlockNode) -> Any:
        """Descend into the code text."""
        self.generic_visit(node)

    def visit_horizontal_rule(self, node: HorizontalRuleNode) -> Any:
        """Leaf: nothing to do."""

    def visit_list(self, node: ListNode) -> Any:
        """Descend into list items."""
        self.generic_visit(node)

    def visit_list_item(self, node: ListItemNode) -> Any:
        """Descend into item content."""
        self.generic_visit(node)

    def visit_table(self, node: TableNode) -> Any:
        """Descend into rows."""
        self.generic_visit(node)

    def visit_table_row(self, node: TableRowNode) -> Any:
        """Descend into cells."""
        self.generic_visit(node)

    def visit_table_cell(self, node: TableCellNode) -> Any:
        """Descend into cell blocks."""
        self.generic_visit(node)

    def visit_link(self, node: LinkNode) -> Any:
        """Descend into the link label."""
        self.generic_visit(node)

    def visit_image(self, node: ImageNode) -> Any:
        """Leaf: nothing to do."""

    def visit_text(self, node: TextNode) -> Any:
        """Leaf: nothing to do."""

    def visit_line_break(self, node: LineBreakNode) -> Any:
        """Leaf: nothing to do."""


__all__ = ["NodeVisitor", "TraversingVisitor"]
