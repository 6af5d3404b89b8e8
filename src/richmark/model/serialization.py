#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/serialization.py
"""Dictionary and JSON serialization for document trees.

The dictionary form nests children inside their parents and drops keys by
default, which makes two trees with the same shape compare equal regardless
of the keys the arena assigned. It is used for structural equivalence checks
and for the CLI ``tree`` command.

Examples
--------
    >>> from richmark.model.serialization import dict_to_state, node_to_dict
    >>> state = dict_to_state({"type": "root", "children": [
    ...     {"type": "heading", "level": 2, "children": [{"type": "text", "text": "Title"}]}
    ... ]})
    >>> node_to_dict(state)["children"][0]["level"]
    2

"""

from __future__ import annotations

import json
from dataclasses import fields
from enum import IntFlag
from typing import Any, Optional

from richmark.exceptions import InvariantViolationError, ValidationError
from richmark.model.nodes import (
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
from richmark.model.selection import Selection
from richmark.model.state import ROOT_KEY, EditorState, NodeReader, Transaction

NODE_CLASSES: dict[str, type[Node]] = {
    node_class.type: node_class
    for node_class in (
        RootNode,
        ParagraphNode,
        HeadingNode,
        QuoteNode,
        CodeBlockNode,
        HorizontalRuleNode,
        ListNode,
        ListItemNode,
        TableNode,
        TableRowNode,
        TableCellNode,
        LinkNode,
        ImageNode,
        TextNode,
        LineBreakNode,
    )
}

_STRUCTURAL_FIELDS = frozenset({"key", "parent", "children"})
_ENUM_FIELDS: dict[str, type[IntFlag]] = {"format": TextFormat, "header_state": HeaderState}


def node_to_dict(reader: NodeReader, key: str = ROOT_KEY, include_keys: bool = False) -> dict[str, Any]:
    """Convert a subtree into nested dictionaries.

    Parameters
    ----------
    reader : NodeReader
        State or transaction holding the subtree
    key : str, default = "root"
        Subtree root
    include_keys : bool, default = False
        Add each node's ``key`` to its dictionary

    Returns
    -------
    dict
        ``{"type": ..., <fields>, "children": [...]}``

    """
    node = reader.require_node(key)
    result: dict[str, Any] = {"type": node.type}
    if include_keys:
        result["key"] = node.key
    for node_field in fields(node):
        if node_field.name in _STRUCTURAL_FIELDS:
            continue
        value = getattr(node, node_field.name)
        result[node_field.name] = int(value) if isinstance(value, IntFlag) else value
    if isinstance(node, ElementNode):
        result["children"] = [node_to_dict(reader, child_key, include_keys) for child_key in node.children]
    return result


def _build_node(txn: Transaction, data: dict[str, Any]) -> str:
    node_type = data.get("type")
    node_class = NODE_CLASSES.get(str(node_type))
    if node_class is None or node_class is RootNode:
        raise ValidationError(f"Unknown or misplaced node type: {node_type!r}", "type", node_type)

    values = {name: value for name, value in data.items() if name not in _STRUCTURAL_FIELDS and name != "type"}
    for name, enum_class in _ENUM_FIELDS.items():
        if name in values:
            values[name] = enum_class(values[name])
    try:
        node = txn.create(node_class, **values)
    except TypeError as exc:
        raise ValidationError(f"Invalid fields for {node_type} node: {exc}", "fields", values, exc) from exc

    for child in data.get("children", []):
        txn.append(node.key, _build_node(txn, child))
    return node.key


def dict_to_state(data: dict[str, Any], selection: Optional[Selection] = None) -> EditorState:
    """Build a snapshot from the dictionary form of a root node.

    Parameters
    ----------
    data : dict
        Dictionary with ``type == "root"``
    selection : Selection, optional
        Selection to attach; keys are regenerated, so this is only useful
        when built with ``include_keys`` data that a caller maps itself

    Returns
    -------
    EditorState
        New snapshot

    Raises
    ------
    ValidationError
        If a node type or field is unknown
    InvariantViolationError
        If a child is placed where its parent cannot hold it

    """
    if data.get("type") != RootNode.type:
        raise ValidationError("Top-level node must be a root", "type", data.get("type"))
    txn = EditorState({ROOT_KEY: RootNode(key=ROOT_KEY)}).begin()
    try:
        for child in data.get("children", []):
            txn.append(ROOT_KEY, _build_node(txn, child))
    except InvariantViolationError:
        txn.discard()
        raise
    txn.set_selection(selection)
    return txn.commit()


def state_to_json(reader: NodeReader, key: str = ROOT_KEY, indent: int | None = None) -> str:
    """Serialize a subtree to a JSON string."""
    return json.dumps(node_to_dict(reader, key), indent=indent, ensure_ascii=False)


def json_to_state(json_str: str) -> EditorState:
    """Build a snapshot from :func:`state_to_json` output.

    Raises
    ------
    ValidationError
        If the JSON is malformed or describes an invalid tree

    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid document JSON: {exc}", "json_str", None, exc) from exc
    if not isinstance(data, dict):
        raise ValidationError("Document JSON must be an object", "json_str", type(data).__name__)
    return dict_to_state(data)


__all__ = ["NODE_CLASSES", "node_to_dict", "dict_to_state", "state_to_json", "json_to_state"]
