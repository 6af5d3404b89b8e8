#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Document model: node classes, snapshots, transactions and selections.

The document is an arena of immutable nodes indexed by key. Readers work on
an :class:`EditorState` snapshot; writers open a :class:`Transaction`, edit
through its tree primitives and commit to obtain the next snapshot.
"""

from richmark.model.nodes import (
    ALLOWED_CHILDREN,
    CodeBlockNode,
    ElementNode,
    HeaderState,
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
    TextFormat,
    TextNode,
)
from richmark.model.selection import Point, RangeSelection, Selection, TableSelection
from richmark.model.serialization import dict_to_state, json_to_state, node_to_dict, state_to_json
from richmark.model.state import ROOT_KEY, EditorState, NodeReader, Savepoint, Transaction, generate_key
from richmark.model.visitors import NodeVisitor, TraversingVisitor

__all__ = [
    "ALLOWED_CHILDREN",
    "CodeBlockNode",
    "EditorState",
    "ElementNode",
    "HeaderState",
    "HeadingNode",
    "HorizontalRuleNode",
    "ImageNode",
    "LineBreakNode",
    "LinkNode",
    "ListItemNode",
    "ListNode",
    "Node",
    "NodeReader",
    "NodeVisitor",
    "ParagraphNode",
    "Point",
    "QuoteNode",
    "ROOT_KEY",
    "RangeSelection",
    "RootNode",
    "Savepoint",
    "Selection",
    "TableCellNode",
    "TableNode",
    "TableRowNode",
    "TableSelection",
    "TextFormat",
    "TextNode",
    "Transaction",
    "TraversingVisitor",
    "dict_to_state",
    "generate_key",
    "json_to_state",
    "node_to_dict",
    "state_to_json",
]
