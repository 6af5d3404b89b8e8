#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/model/state.py
"""Immutable document snapshots and the transactions that produce them.

An :class:`EditorState` is a frozen view of the node arena plus a selection.
All edits happen inside a :class:`Transaction`, which works on a private copy
of the arena: every changed node is cloned with :func:`dataclasses.replace`
and stored back under its key. Nothing is visible to other readers until
:meth:`Transaction.commit` returns a new snapshot, so commits are
all-or-nothing and older snapshots never change.

Both classes share the read API of :class:`NodeReader`.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, NamedTuple, Optional, TypeVar

from richmark.exceptions import InvariantViolationError, StaleNodeError, TransactionError
from richmark.model.nodes import (
    ElementNode,
    HorizontalRuleNode,
    ImageNode,
    LineBreakNode,
    Node,
    ParagraphNode,
    RootNode,
    TextNode,
    can_contain,
)
from richmark.model.selection import Point, RangeSelection, Selection, TableSelection

logger = logging.getLogger(__name__)

ROOT_KEY = "root"

N = TypeVar("N", bound=Node)

_KEY_COUNTER = itertools.count(1)


def generate_key() -> str:
    """Return a process-wide unique node key."""
    return str(next(_KEY_COUNTER))


class NodeReader:
    """Read-only queries over a node arena.

    Subclasses provide ``_nodes`` (key to node) and ``selection``.
    """

    _nodes: Mapping[str, Node]

    @property
    def selection(self) -> Optional[Selection]:  # pragma: no cover - overridden
        """Current selection, if any."""
        return None

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get_node(self, key: Optional[str]) -> Optional[Node]:
        """Return the node for ``key``, or None when the key is absent."""
        if key is None:
            return None
        return self._nodes.get(key)

    def require_node(self, key: str) -> Node:
        """Return the node for ``key``.

        Raises
        ------
        StaleNodeError
            If the key is not part of the arena

        """
        node = self._nodes.get(key)
        if node is None:
            raise StaleNodeError(key)
        return node

    def require_typed(self, key: str, node_type: type[N]) -> N:
        """Return the node for ``key`` and check its class.

        Raises
        ------
        StaleNodeError
            If the key is absent
        InvariantViolationError
            If the node is not an instance of ``node_type``

        """
        node = self.require_node(key)
        if not isinstance(node, node_type):
            raise InvariantViolationError(f"Node '{key}' is a {node.type}, expected {node_type.__name__}")
        return node

    @property
    def root(self) -> RootNode:
        """The root node."""
        return self.require_typed(ROOT_KEY, RootNode)

    def get_children(self, key: str) -> list[Node]:
        """Return the child nodes of ``key`` in order (empty for leaves)."""
        node = self.require_node(key)
        if not isinstance(node, ElementNode):
            return []
        return [self._nodes[child_key] for child_key in node.children]

    def get_parent(self, key: str) -> Optional[ElementNode]:
        """Return the parent of ``key``, or None for the root and detached nodes."""
        node = self.require_node(key)
        if node.parent is None:
            return None
        parent = self._nodes.get(node.parent)
        return parent if isinstance(parent, ElementNode) else None

    def iter_ancestors(self, key: str, include_self: bool = False) -> Iterator[Node]:
        """Yield the ancestors of ``key`` walking towards the root."""
        node = self.get_node(key)
        if node is None:
            return
        if include_self:
            yield node
        while node.parent is not None:
            node = self._nodes.get(node.parent)
            if node is None:
                return
            yield node

    def find_ancestor(
        self,
        key: str,
        node_type: type[N] | tuple[type[N], ...],
        include_self: bool = True,
    ) -> Optional[N]:
        """Return the nearest ancestor of ``key`` that is a ``node_type``."""
        for node in self.iter_ancestors(key, include_self=include_self):
            if isinstance(node, node_type):
                return node  # type: ignore[return-value]
        return None

    def is_attached(self, key: str) -> bool:
        """Whether ``key`` is reachable from the root."""
        for node in self.iter_ancestors(key, include_self=True):
            if node.key == ROOT_KEY:
                return True
        return False

    def top_level_key(self, key: str) -> Optional[str]:
        """Return the key of the root child that contains ``key``."""
        previous: Optional[str] = None
        for node in self.iter_ancestors(key, include_self=True):
            if node.key == ROOT_KEY:
                return previous
            previous = node.key
        return None

    def index_in_parent(self, key: str) -> int:
        """Return the position of ``key`` among its siblings.

        Raises
        ------
        InvariantViolationError
            If the node is detached

        """
        parent = self.get_parent(key)
        if parent is None:
            raise InvariantViolationError(f"Node '{key}' has no parent")
        return parent.children.index(key)

    def previous_sibling(self, key: str) -> Optional[Node]:
        """Return the sibling right before ``key``."""
        parent = self.get_parent(key)
        if parent is None:
            return None
        index = parent.children.index(key)
        return self._nodes[parent.children[index - 1]] if index > 0 else None

    def next_sibling(self, key: str) -> Optional[Node]:
        """Return the sibling right after ``key``."""
        parent = self.get_parent(key)
        if parent is None:
            return None
        index = parent.children.index(key)
        return self._nodes[parent.children[index + 1]] if index + 1 < len(parent.children) else None

    def iter_descendants(self, key: str = ROOT_KEY, include_self: bool = False) -> Iterator[Node]:
        """Yield the subtree of ``key`` in document (pre-)order."""
        node = self.require_node(key)
        if include_self:
            yield node
        if isinstance(node, ElementNode):
            for child_key in node.children:
                yield from self.iter_descendants(child_key, include_self=True)

    def first_text_node(self, key: str) -> Optional[TextNode]:
        """Return the first text run inside ``key`` (or ``key`` itself)."""
        for node in self.iter_descendants(key, include_self=True):
            if isinstance(node, TextNode):
                return node
        return None

    def last_text_node(self, key: str) -> Optional[TextNode]:
        """Return the last text run inside ``key`` (or ``key`` itself)."""
        last: Optional[TextNode] = None
        for node in self.iter_descendants(key, include_self=True):
            if isinstance(node, TextNode):
                last = node
        return last

    def text_content(self, key: str = ROOT_KEY) -> str:
        r"""Return the plain text of a subtree.

        Text runs contribute their text, line breaks and horizontal rules a
        ``"\n"``, images nothing. Consecutive block children are separated by
        a blank line (``"\n\n"``).

        Parameters
        ----------
        key : str, default = "root"
            Subtree to extract

        Returns
        -------
        str
            Plain text of the subtree

        """
        node = self.require_node(key)
        if isinstance(node, TextNode):
            return node.text
        if isinstance(node, (LineBreakNode, HorizontalRuleNode)):
            return "\n"
        if isinstance(node, ImageNode) or not isinstance(node, ElementNode):
            return ""
        parts: list[str] = []
        last_index = len(node.children) - 1
        for index, child_key in enumerate(node.children):
            child = self._nodes[child_key]
            parts.append(self.text_content(child_key))
            if isinstance(child, ElementNode) and not child.is_inline and index != last_index:
                parts.append("\n\n")
        return "".join(parts)

    def is_empty_block(self, key: str) -> bool:
        """Whether ``key`` is an element holding no text, images or breaks."""
        node = self.get_node(key)
        if not isinstance(node, ElementNode):
            return False
        for descendant in self.iter_descendants(key):
            if isinstance(descendant, (ImageNode, LineBreakNode, HorizontalRuleNode)):
                return False
            if isinstance(descendant, TextNode) and descendant.text:
                return False
        return True


class EditorState(NodeReader):
    """Immutable snapshot of a document and its selection.

    Parameters
    ----------
    nodes : Mapping[str, Node]
        Node arena; must contain the root under ``"root"``
    selection : Selection or None, default = None
        Selection at the time of the snapshot

    """

    def __init__(self, nodes: Mapping[str, Node], selection: Optional[Selection] = None) -> None:
        self._nodes = nodes if isinstance(nodes, MappingProxyType) else MappingProxyType(dict(nodes))
        self._selection = selection

    @classmethod
    def empty(cls) -> EditorState:
        """Create a document holding a single empty paragraph."""
        paragraph_key = generate_key()
        nodes: dict[str, Node] = {
            ROOT_KEY: RootNode(key=ROOT_KEY, children=(paragraph_key,)),
            paragraph_key: ParagraphNode(key=paragraph_key, parent=ROOT_KEY),
        }
        return cls(nodes)

    @property
    def selection(self) -> Optional[Selection]:
        """Selection captured with this snapshot."""
        return self._selection

    @property
    def node_map(self) -> Mapping[str, Node]:
        """Read-only key to node mapping."""
        return self._nodes

    def with_selection(self, selection: Optional[Selection]) -> EditorState:
        """Return a snapshot sharing the same nodes with another selection."""
        return EditorState(self._nodes, selection)

    def begin(self, tags: Iterable[str] = (), key_factory: Callable[[], str] = generate_key) -> Transaction:
        """Open a transaction on top of this snapshot."""
        return Transaction(self, tags=tags, key_factory=key_factory)


class Savepoint(NamedTuple):
    """Copy of a transaction's working state."""

    nodes: dict[str, Node]
    dirty: frozenset[str]
    selection: Optional[Selection]


class Transaction(NodeReader):
    """Mutable working copy of an :class:`EditorState`.

    Parameters
    ----------
    base : EditorState
        Snapshot the transaction starts from
    tags : iterable of str, optional
        Free-form labels passed on to update listeners
    key_factory : callable, optional
        Generator of keys for created nodes

    Notes
    -----
    Structural fields (``key``, ``parent``, ``children``) are only changed by
    the tree primitives (:meth:`append`, :meth:`insert_at`, :meth:`remove`,
    ...), which keep parent and child references in agreement and reject
    pairings that :data:`~richmark.model.nodes.ALLOWED_CHILDREN` forbids.

    """

    def __init__(
        self,
        base: EditorState,
        tags: Iterable[str] = (),
        key_factory: Callable[[], str] = generate_key,
    ) -> None:
        self.base = base
        self._nodes: dict[str, Node] = dict(base.node_map)
        self._selection: Optional[Selection] = base.selection
        self._key_factory = key_factory
        self._dirty: set[str] = set()
        self._closed = False
        self.tags: set[str] = set(tags)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @property
    def selection(self) -> Optional[Selection]:
        """Selection as it will be committed."""
        return self._selection

    @property
    def dirty_keys(self) -> frozenset[str]:
        """Keys created or changed in this transaction."""
        return frozenset(self._dirty)

    @property
    def closed(self) -> bool:
        """Whether the transaction was committed or discarded."""
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionError("Transaction is already closed")

    def _put(self, node: Node) -> None:
        self._nodes[node.key] = node
        self._dirty.add(node.key)

    def _restructure(self, key: str, **changes: Any) -> Node:
        node = replace(self.require_node(key), **changes)
        self._put(node)
        return node

    def mark_dirty(self, key: str) -> None:
        """Flag ``key`` as changed without modifying it."""
        self._check_open()
        self.require_node(key)
        self._dirty.add(key)

    def set_selection(self, selection: Optional[Selection]) -> None:
        """Replace the selection that will be committed."""
        self._check_open()
        self._selection = selection

    def savepoint(self) -> Savepoint:
        """Capture the working copy so a failed step can be undone with :meth:`rollback`."""
        self._check_open()
        return Savepoint(dict(self._nodes), frozenset(self._dirty), self._selection)

    def rollback(self, savepoint: Savepoint) -> None:
        """Restore the working copy captured by :meth:`savepoint`."""
        self._check_open()
        self._nodes = dict(savepoint.nodes)
        self._dirty = set(savepoint.dirty)
        self._selection = savepoint.selection

    # ------------------------------------------------------------------
    # Node creation and updates
    # ------------------------------------------------------------------

    def create(self, node_class: type[N], children: Iterable[str] = (), **fields: Any) -> N:
        """Create a detached node and add it to the arena.

        Parameters
        ----------
        node_class : type
            Node class to instantiate
        children : iterable of str, optional
            Keys appended to the new element right away
        **fields : Any
            Non-structural field values

        Returns
        -------
        Node
            The created node (refetch it after appending children)

        """
        self._check_open()
        if {"key", "parent", "children"} & fields.keys():
            raise TransactionError("Structural fields are assigned by the transaction")
        node = node_class(key=self._key_factory(), **fields)
        self._put(node)
        child_keys = list(children)
        if child_keys:
            self.append(node.key, *child_keys)
            return self.require_typed(node.key, node_class)
        return node

    def update(self, key: str, **changes: Any) -> Node:
        """Clone ``key`` with ``changes`` applied and store the clone.

        Raises
        ------
        TransactionError
            If a structural field is passed
        StaleNodeError
            If the key is absent

        """
        self._check_open()
        if {"key", "parent", "children"} & changes.keys():
            raise TransactionError("Use the tree primitives to change structure")
        node = replace(self.require_node(key), **changes)
        self._put(node)
        return node

    # ------------------------------------------------------------------
    # Tree primitives
    # ------------------------------------------------------------------

    def _require_element(self, key: str) -> ElementNode:
        return self.require_typed(key, ElementNode)

    def _unlink(self, key: str) -> None:
        node = self.require_node(key)
        if node.parent is None:
            return
        parent = self._nodes.get(node.parent)
        if isinstance(parent, ElementNode) and key in parent.children:
            self._restructure(parent.key, children=tuple(k for k in parent.children if k != key))
        self._restructure(key, parent=None)

    def insert_at(self, parent_key: str, index: int, child_key: str) -> None:
        """Insert ``child_key`` into ``parent_key`` at ``index``.

        A child that already has a parent is moved.

        Raises
        ------
        InvariantViolationError
            If the pairing is not allowed or would create a cycle

        """
        self._check_open()
        parent = self._require_element(parent_key)
        child = self.require_node(child_key)
        if child_key == ROOT_KEY:
            raise InvariantViolationError("The root cannot be moved")
        if any(node.key == child_key for node in self.iter_ancestors(parent_key, include_self=True)):
            raise InvariantViolationError(f"Inserting '{child_key}' into '{parent_key}' would create a cycle")
        if not can_contain(parent, child):
            raise InvariantViolationError(f"A {parent.type} node cannot contain a {child.type} node")

        if child.parent == parent_key:
            if parent.children.index(child_key) < index:
                index -= 1
        self._unlink(child_key)

        parent = self._require_element(parent_key)
        children = list(parent.children)
        index = max(0, min(index, len(children)))
        children.insert(index, child_key)
        self._restructure(parent_key, children=tuple(children))
        self._restructure(child_key, parent=parent_key)

    def append(self, parent_key: str, *child_keys: str) -> None:
        """Append children at the end of ``parent_key``."""
        for child_key in child_keys:
            parent = self._require_element(parent_key)
            self.insert_at(parent_key, len(parent.children), child_key)

    def insert_before(self, reference_key: str, child_key: str) -> None:
        """Insert ``child_key`` right before ``reference_key``."""
        parent = self.get_parent(reference_key)
        if parent is None:
            raise InvariantViolationError(f"Node '{reference_key}' has no parent")
        self.insert_at(parent.key, parent.children.index(reference_key), child_key)

    def insert_after(self, reference_key: str, child_key: str) -> None:
        """Insert ``child_key`` right after ``reference_key``."""
        parent = self.get_parent(reference_key)
        if parent is None:
            raise InvariantViolationError(f"Node '{reference_key}' has no parent")
        self.insert_at(parent.key, parent.children.index(reference_key) + 1, child_key)

    def detach(self, key: str) -> None:
        """Remove ``key`` from its parent but keep it for re-insertion.

        A node that is still detached at commit time is discarded.
        """
        self._check_open()
        if key == ROOT_KEY:
            raise InvariantViolationError("The root cannot be detached")
        self._unlink(key)

    def remove(self, key: str) -> None:
        """Remove ``key`` and its whole subtree from the document."""
        self._check_open()
        if key == ROOT_KEY:
            raise InvariantViolationError("The root cannot be removed")
        subtree = [node.key for node in self.iter_descendants(key, include_self=True)]
        self._unlink(key)
        for subtree_key in subtree:
            self._nodes.pop(subtree_key, None)
            self._dirty.discard(subtree_key)

    def move_children(self, source_key: str, target_key: str, index: Optional[int] = None) -> None:
        """Move every child of ``source_key`` into ``target_key``.

        Parameters
        ----------
        source_key : str
            Element giving up its children
        target_key : str
            Element receiving them
        index : int, optional
            Insertion position in the target; appended when omitted

        """
        source = self._require_element(source_key)
        position = len(self._require_element(target_key).children) if index is None else index
        for child_key in source.children:
            self.insert_at(target_key, position, child_key)
            position += 1

    def replace(self, old_key: str, new_key: str, move_children: bool = False) -> None:
        """Put ``new_key`` where ``old_key`` is and remove ``old_key``.

        Parameters
        ----------
        old_key : str
            Node being replaced
        new_key : str
            Replacement (moved if it is attached elsewhere)
        move_children : bool, default = False
            Move the children of the old element into the new one first

        """
        if move_children:
            self.move_children(old_key, new_key)
        self.insert_before(old_key, new_key)
        self.remove(old_key)

    def split_text(self, key: str, offset: int) -> tuple[Optional[str], Optional[str]]:
        """Split a text run at ``offset``.

        Returns
        -------
        tuple of (str or None, str or None)
            Keys of the part before and after the offset; a side that would
            be empty is None and no split happens.

        """
        node = self.require_typed(key, TextNode)
        if offset <= 0:
            return None, key
        if offset >= len(node.text):
            return key, None
        self.update(key, text=node.text[:offset])
        right = self.create(TextNode, text=node.text[offset:], format=node.format)
        self.insert_after(key, right.key)
        return key, right.key

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _reachable_keys(self) -> set[str]:
        reachable: set[str] = set()
        stack = [ROOT_KEY]
        while stack:
            key = stack.pop()
            if key in reachable:
                continue
            reachable.add(key)
            node = self._nodes[key]
            if isinstance(node, ElementNode):
                stack.extend(node.children)
        return reachable

    def _clamp_point(self, point: Point) -> Optional[Point]:
        node = self._nodes.get(point.key)
        if node is None:
            return None
        if isinstance(node, TextNode):
            return replace(point, offset=max(0, min(point.offset, len(node.text))), kind="text")
        size = len(node.children) if isinstance(node, ElementNode) else 0
        return replace(point, offset=max(0, min(point.offset, size)), kind="element")

    def _normalized_selection(self) -> Optional[Selection]:
        selection = self._selection
        if isinstance(selection, TableSelection):
            keys = (selection.table_key, selection.anchor_cell_key, selection.focus_cell_key)
            return selection if all(key in self._nodes for key in keys) else None
        if isinstance(selection, RangeSelection):
            anchor = self._clamp_point(selection.anchor)
            focus = self._clamp_point(selection.focus)
            if anchor is None or focus is None:
                return None
            return RangeSelection(anchor, focus)
        return None

    def commit(self) -> EditorState:
        """Close the transaction and return the resulting snapshot.

        Nodes no longer reachable from the root are discarded, a root left
        without blocks receives an empty paragraph, and a selection pointing
        at discarded nodes is dropped.
        """
        self._check_open()
        if not self.root.children:
            paragraph = self.create(ParagraphNode)
            self.append(ROOT_KEY, paragraph.key)

        reachable = self._reachable_keys()
        for key in [key for key in self._nodes if key not in reachable]:
            del self._nodes[key]
        self._dirty &= reachable
        self._selection = self._normalized_selection()
        self._closed = True
        logger.debug("Committed transaction: %d nodes, %d dirty", len(self._nodes), len(self._dirty))
        return EditorState(MappingProxyType(self._nodes), self._selection)

    def discard(self) -> None:
        """Close the transaction without producing a snapshot."""
        self._closed = True


__all__ = ["ROOT_KEY", "NodeReader", "EditorState", "Savepoint", "Transaction", "generate_key"]
