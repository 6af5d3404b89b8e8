#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/validation.py
"""Structural validation of a document tree."""

from __future__ import annotations

from richmark.exceptions import InvariantViolationError, RichMarkError
from richmark.model.nodes import (
    ElementNode,
    HorizontalRuleNode,
    ImageNode,
    LineBreakNode,
    Node,
    TableNode,
    TextNode,
    can_contain,
)
from richmark.model.state import ROOT_KEY, NodeReader
from richmark.model.visitors import TraversingVisitor
from richmark.tables.grid import compute_table_map


class ValidationVisitor(TraversingVisitor):
    """Visitor that checks every structural invariant of a tree.

    Checks performed for each element:

    - every child points back to the element as its parent,
    - each child class is allowed inside the element,
    - no node is reached twice (the tree is acyclic and keys are unique),
    - tables own at least one row and lay out as a rectangular grid.

    Heading levels and cell spans are validated when the nodes are built.

    Parameters
    ----------
    reader : NodeReader
        State or transaction to validate

    """

    def __init__(self, reader: NodeReader) -> None:
        super().__init__(reader)
        self._seen: set[str] = set()

    def generic_visit(self, node: Node) -> None:
        """Check ``node`` against its children, then descend."""
        if node.key in self._seen:
            raise InvariantViolationError(f"Node '{node.key}' is reachable twice")
        self._seen.add(node.key)
        if isinstance(node, ElementNode):
            for child_key in node.children:
                child = self.reader.get_node(child_key)
                if child is None:
                    raise InvariantViolationError(f"Node '{node.key}' references missing child '{child_key}'")
                if child.parent != node.key:
                    raise InvariantViolationError(
                        f"Node '{child_key}' has parent '{child.parent}' but is owned by '{node.key}'"
                    )
                if not can_contain(node, child):
                    raise InvariantViolationError(f"A {node.type} node cannot contain a {child.type} node")
        super().generic_visit(node)

    def visit_horizontal_rule(self, node: HorizontalRuleNode) -> None:
        """Register the leaf."""
        self.generic_visit(node)

    def visit_image(self, node: ImageNode) -> None:
        """Register the leaf."""
        self.generic_visit(node)

    def visit_text(self, node: TextNode) -> None:
        """Register the leaf."""
        self.generic_visit(node)

    def visit_line_break(self, node: LineBreakNode) -> None:
        """Register the leaf."""
        self.generic_visit(node)

    def visit_table(self, node: TableNode) -> None:
        """Check the row count and the grid shape, then descend."""
        if not node.children:
            raise InvariantViolationError(f"Table '{node.key}' has no rows")
        try:
            table_map = compute_table_map(self.reader, node.key)
        except RichMarkError as exc:
            raise InvariantViolationError(f"Table '{node.key}' is malformed: {exc}", exc) from exc
        if not table_map.is_rectangular():
            counts = [table_map.occupied_count(row) for row in range(table_map.row_count)]
            raise InvariantViolationError(f"Table '{node.key}' rows cover unequal grid cells: {counts}")
        self.generic_visit(node)


def validate_tree(reader: NodeReader) -> None:
    """Validate the whole tree of ``reader``.

    Raises
    ------
    InvariantViolationError
        On the first violated invariant

    """
    root = reader.require_node(ROOT_KEY)
    if root.parent is not None:
        raise InvariantViolationError("The root must not have a parent")
    root.accept(ValidationVisitor(reader))


__all__ = ["ValidationVisitor", "validate_tree"]
