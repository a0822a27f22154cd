# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTree node class."""

from __future__ import annotations

import weakref
from typing import Any, Iterator, Mapping, TYPE_CHECKING

from .exceptions import (
    DetachedNodeError,
    InvalidParentError,
    NodeConflictError,
    ReadOnlyTreeError,
    UndefinedPropertyError,
)

if TYPE_CHECKING:
    from .tree import Tree


def normalize_key(name: Any) -> Any:
    """Case-fold a property name. Non-string keys are returned unchanged."""
    return name.lower() if isinstance(name, str) else name


class Node:
    """A node in a FlatTree hierarchy.

    Each node has:
    - id: The node's identifier, unique within its tree
    - parent_id: The id of the parent node (None for the synthetic root)
    - properties: Ordered dict of the record fields, names case-folded
    - parent: The parent node (None for the root and unattached nodes)
    - children: Ordered child nodes, in link order
    - tree: Non-owning reference to the owning Tree, if registered

    The id- and parent-field entries of the property bag always mirror
    ``id`` and ``parent_id`` and are stored last.

    Example:
        >>> node = Node(3, 1, {'Name': 'Alice', 'id': 3})
        >>> node.id
        3
        >>> node.get('NAME')
        'Alice'
        >>> node.to_dict()
        {'name': 'Alice', 'id': 3, 'parent': 1}
    """

    __slots__ = (
        '_properties', '_parent', '_children', '_tree',
        '_id_key', '_parent_key', '_strict',
    )

    def __init__(
        self,
        id: Any,
        parent_id: Any,
        properties: Mapping[str, Any] | None = None,
        *,
        id_key: str = 'id',
        parent_key: str = 'parent',
        strict: bool = True,
    ) -> None:
        """Initialize a Node.

        Args:
            id: The node's identifier (str, int or float).
            parent_id: The identifier of the parent node.
            properties: Optional record fields. Names are case-folded; any
                id/parent entries are replaced by ``id`` and ``parent_id``.
            id_key: Name of the property mirroring the id.
            parent_key: Name of the property mirroring the parent id.
            strict: If True (default), get() raises on unknown properties,
                otherwise it returns None.
        """
        self._id_key = normalize_key(id_key)
        self._parent_key = normalize_key(parent_key)
        bag = {normalize_key(k): v for k, v in (properties or {}).items()}
        bag.pop(self._id_key, None)
        bag.pop(self._parent_key, None)
        bag[self._id_key] = id
        bag[self._parent_key] = parent_id
        self._properties: dict[Any, Any] = bag
        self._parent: Node | None = None
        self._children: list[Node] = []
        self._tree: weakref.ref[Tree] | None = None
        self._strict = strict

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        return f"Node({self.id!r}, parent={self.parent_id!r})"

    def __str__(self) -> str:
        return str(self.id)

    def __contains__(self, name: str) -> bool:
        return normalize_key(name) in self._properties

    # ==================== Identity ====================

    @property
    def id(self) -> Any:
        """The node's identifier."""
        return self._properties[self._id_key]

    @property
    def parent_id(self) -> Any:
        """The parent identifier stored in the parent-field property."""
        return self._properties[self._parent_key]

    @property
    def id_key(self) -> str:
        return self._id_key

    @property
    def parent_key(self) -> str:
        return self._parent_key

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def parent(self) -> Node | None:
        """The parent node, or None for the root and unattached nodes."""
        return self._parent

    @property
    def children(self) -> tuple[Node, ...]:
        """Direct children in link order (read-only view)."""
        return tuple(self._children)

    @property
    def tree(self) -> Tree | None:
        """The Tree whose registry holds this node, if any."""
        return self._tree() if self._tree is not None else None

    # ==================== Property Bag ====================

    def get(self, name: str) -> Any:
        """Get a property by name (case-insensitive).

        Args:
            name: Property name.

        Returns:
            The property value. For a non-strict node, None if the property
            does not exist.

        Raises:
            UndefinedPropertyError: If the node is strict and has no such
                property.
        """
        key = normalize_key(name)
        if key in self._properties:
            return self._properties[key]
        if self._strict:
            raise UndefinedPropertyError(
                f"Undefined property: {name} (Node ID: {self.id})"
            )
        return None

    def has(self, name: str) -> bool:
        """True if the node has a property with the given name."""
        return normalize_key(name) in self._properties

    def set(self, name: str, value: Any) -> None:
        """Set a property. The id and parent fields cannot be set this way.

        Raises:
            ValueError: If name is the id- or parent-field.
        """
        key = normalize_key(name)
        if key in (self._id_key, self._parent_key):
            raise ValueError(
                f"Property '{name}' is structural; use the tree's mutation API"
            )
        self._properties[key] = value

    def to_dict(self) -> dict[Any, Any]:
        """Return a copy of the full property bag, id and parent included."""
        return dict(self._properties)

    # ==================== Structure ====================

    def get_parent(self) -> Node | None:
        return self.parent

    def get_children(self) -> list[Node]:
        return list(self._children)

    def has_children(self) -> bool:
        return len(self._children) > 0

    def count_children(self) -> int:
        return len(self._children)

    def has_child(self, child_id: Any) -> bool:
        """True if a direct child has the given id."""
        return any(child.id == child_id for child in self._children)

    def get_level(self) -> int:
        """Return the distance from the root (root=0)."""
        level = 0
        node = self.parent
        while node is not None:
            level += 1
            node = node.parent
        return level

    # ==================== Siblings ====================

    def _is_same(self, other: Node) -> bool:
        return other is self or other.id == self.id

    def _position(self, nodes: list[Node]) -> int | None:
        for i, node in enumerate(nodes):
            if node is self:
                return i
        for i, node in enumerate(nodes):
            if node.id == self.id:
                return i
        return None

    def get_siblings(self) -> list[Node]:
        """Return the parent's other children, in order."""
        parent = self.parent
        if parent is None:
            return []
        return [n for n in parent._children if not self._is_same(n)]

    def get_siblings_and_self(self) -> list[Node]:
        """Return all of the parent's children, this node included."""
        parent = self.parent
        if parent is None:
            return [self]
        return list(parent._children)

    def _get_sibling(self, offset: int) -> Node | None:
        parent = self.parent
        if parent is None:
            return None
        siblings = parent._children
        pos = self._position(siblings)
        if pos is None:
            return None
        idx = pos + offset
        if 0 <= idx < len(siblings):
            return siblings[idx]
        return None

    def get_preceding_sibling(self) -> Node | None:
        """Return the previous node on the same level, or None."""
        return self._get_sibling(-1)

    def get_following_sibling(self) -> Node | None:
        """Return the next node on the same level, or None."""
        return self._get_sibling(1)

    # ==================== Descendants / Ancestors ====================

    def iter_descendants(self) -> Iterator[Node]:
        """Yield all nodes below this one in pre-order.

        The order is A, A1, A1a, A2, ..., B, B1, ... where A and B are
        children of this node: each child is immediately followed by its
        whole subtree, before the next sibling.
        """
        stack = list(reversed(self._children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node._children))

    def iter_descendants_and_self(self) -> Iterator[Node]:
        yield self
        yield from self.iter_descendants()

    def get_descendants(self) -> list[Node]:
        return list(self.iter_descendants())

    def get_descendants_and_self(self) -> list[Node]:
        return list(self.iter_descendants_and_self())

    def iter_ancestors(self) -> Iterator[Node]:
        """Yield ancestors from the parent up to and including the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def get_ancestors(self) -> list[Node]:
        """Return ancestors, nearest first.

        The list ends with the synthetic root. Drop the last element to
        get only the ancestors built from records.
        """
        return list(self.iter_ancestors())

    def get_ancestors_and_self(self) -> list[Node]:
        """Return this node followed by its ancestors.

        A node without parent (the root, an orphan) has no ancestor chain
        and returns an empty list.
        """
        if self._parent is None:
            return []
        return [self, *self.iter_ancestors()]

    # ==================== Linking (internal) ====================

    def _link_child(self, child: Node) -> None:
        self._children.append(child)
        child._parent = self
        child._properties[child._parent_key] = self.id

    def _unlink_child(self, child: Node) -> None:
        for i, node in enumerate(self._children):
            if node is child:
                del self._children[i]
                break
        child._clear_parent()

    def _clear_parent(self) -> None:
        self._parent = None
        self._properties[self._parent_key] = None

    def _check_new_child(self, child: Node) -> None:
        """Validate that child can be linked below this node.

        Raises:
            InvalidParentError: If the link would make a cycle.
            NodeConflictError: If the id is taken by a sibling or repeated
                in the child's subtree, or if child already has a parent.
        """
        if child is self or any(a is child for a in self.iter_ancestors()):
            raise InvalidParentError(
                f"Node with ID {child.id} cannot be a child of node {self.id}: "
                "it would create a cycle"
            )
        if self.has_child(child.id):
            raise NodeConflictError(
                f"Node {self.id} already has a child with ID {child.id}"
            )
        if child.parent is not None and child.parent is not self:
            raise NodeConflictError(
                f"Node with ID {child.id} is already a child of node "
                f"{child.parent.id}; detach it first"
            )
        seen = set()
        for node in child.iter_descendants_and_self():
            if node.id in seen:
                raise NodeConflictError(
                    f"ID {node.id} is used more than once in the subtree of {child.id}"
                )
            seen.add(node.id)

    # ==================== Mutation ====================

    def _check_editable(self) -> Tree | None:
        tree = self.tree
        if tree is not None and not tree.writable:
            raise ReadOnlyTreeError(
                f"Node {self.id} belongs to a read-only tree"
            )
        return tree

    def _owning_tree(self) -> Tree:
        tree = self._check_editable()
        if tree is None:
            raise DetachedNodeError(
                f"Node {self.id} must be attached to a tree before deleting it"
            )
        return tree

    def add_child(self, child: Node) -> None:
        """Append child (and the subtree it carries) to this node's children.

        When this node belongs to a tree, the child's subtree is registered
        in that tree as well. A standalone node accepts children freely, so
        a subtree can be assembled before being grafted with Tree.add_node().

        Args:
            child: The node to attach. It must not have a parent yet.

        Raises:
            NodeConflictError: If the id is already used by a sibling or by
                any node of the owning tree.
            ReadOnlyTreeError: If the owning tree is read-only.
        """
        tree = self._check_editable()
        if tree is not None:
            tree.add_child(self, child)
            return
        self._check_new_child(child)
        if child.tree is not None:
            raise DetachedNodeError(
                f"Node with ID {child.id} belongs to a tree; "
                "it cannot be added under a standalone node"
            )
        self._link_child(child)

    def delete(self) -> list[Node]:
        """Delete this node and all of its descendants from the tree.

        Returns:
            The removed nodes, this node first, then its descendants in
            pre-order. The removed subtree stays linked internally.
        """
        return self._owning_tree().delete(self)

    def delete_descendants(self) -> list[Node]:
        """Delete everything below this node; the node itself stays."""
        return self._owning_tree().delete_descendants(self)

    def delete_but_save_descendants(self) -> list[Node]:
        """Delete only this node, moving its children up to its parent."""
        return self._owning_tree().delete_but_save_descendants(self)

    def unset_child_by_id(self, child_id: Any) -> Node | None:
        """Remove the child with the given id from this node's children.

        The child's parent reference is cleared too. The tree registry is
        not touched; this is a helper for the higher-level delete
        operations and for callers repairing the structure by hand (see
        Tree.regenerate_nodes_list()).

        Returns:
            The detached child, or None if there was none with that id.
        """
        self._check_editable()
        for child in self._children:
            if child.id == child_id:
                self._unlink_child(child)
                return child
        return None

    def unset_parent(self) -> None:
        """Clear the parent reference and parent-field property.

        The parent's children list and the tree registry are left as is.
        """
        self._check_editable()
        self._clear_parent()

    def set_parent(self, node: Node | None) -> None:
        """Point the parent reference at node without touching its children."""
        self._check_editable()
        if node is None:
            self._clear_parent()
            return
        if node is self:
            raise InvalidParentError(
                f"Node with ID {self.id} cannot be its own parent"
            )
        self._parent = node
        self._properties[self._parent_key] = node.id
