# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tree - A navigable hierarchy built from flat, parent-referencing records.

This module provides the Tree class, the owner of every node of a hierarchy
built by TreeBuilder. The tree keeps a registry (id -> Node) for O(1)
lookup. Nodes hold their parent strongly and their tree weakly, so nodes
handed out by a tree stay fully navigable after the tree is gone.

Key Features:
    - **Build from rows**: any iterable of mappings, in any order
    - **O(1) lookup**: get_node_by_id() through the registry
    - **Traversal**: pre-order listing, value paths, ancestors, siblings
    - **Policies**: strict or nullable lookups, read-only or writable trees
    - **Round trip**: serialize() produces records that rebuild the same tree

Example:
    Basic usage::

        tree = Tree([
            {'id': 1, 'parent': 0, 'name': 'Europe'},
            {'id': 2, 'parent': 1, 'name': 'Italy'},
        ])
        tree.get_node_by_id(2).get_parent().get('name')  # 'Europe'
        tree.get_node_by_value_path('name', ['Europe', 'Italy'])  # Node(2)

    Writable tree::

        tree = Tree(rows, writable=True)
        node = tree.create_node(3, 1, {'name': 'France'})
        tree.get_node_by_id(1).add_child(node)
        tree.get_node_by_id(2).delete()
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Iterable, Iterator, Mapping

from .builder import TreeBuilder
from .exceptions import (
    DetachedNodeError,
    InvalidParentError,
    NodeConflictError,
    NodeNotFoundError,
    ReadOnlyTreeError,
    RootNodeError,
)
from .node import Node, normalize_key
from .options import TreeOptions
from .serializers import DefaultArraySerializer, TreeSerializer

logger = logging.getLogger(__name__)

_MISSING = object()


def _same_value(value: Any, token: Any) -> bool:
    """Type-sensitive equality: 1, 1.0 and True are all different."""
    return value is not _MISSING and type(value) is type(token) and value == token


class Tree:
    """A hierarchy of nodes built from flat records.

    Tree provides:
    - build(data): (Re)build the whole hierarchy from records
    - get_nodes() / get_root_nodes(): Pre-order and top-level listings
    - get_node_by_id(id) / get_node_by_value_path(name, tokens): Lookup
    - serialize(): Flatten back to records
    - add_node, add_child, delete, ...: Structural edits (writable trees)

    Attributes:
        options: The TreeOptions in use.

    Example:
        >>> tree = Tree(
        ...     [{'id': 'vehicle', 'parent': ''}, {'id': 'car', 'parent': 'vehicle'}],
        ...     root_id='',
        ... )
        >>> [str(n) for n in tree.get_nodes()]
        ['vehicle', 'car']
    """

    __slots__ = ('_options', '_root', '_nodes', '_serializer', '__weakref__')

    def __init__(
        self,
        data: Iterable[Any] = (),
        options: TreeOptions | Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize a Tree and build it from data.

        Args:
            data: Iterable of records (mappings from field name to value).
            options: A TreeOptions, or a mapping of option names such as
                ``{'rootId': '', 'id': 'id_node'}``.
            **kwargs: TreeOptions fields overriding options, e.g.
                ``root_id=''``, ``strict=False``, ``writable=True``.

        Raises:
            InvalidOptionError: If an option is unknown or invalid.
            InvalidDatatypeError: If data or one of its records is malformed.
            InvalidParentError: If a parent link is invalid and the default
                build warning callback is in use.

        Example:
            >>> Tree(rows)
            >>> Tree(rows, {'rootId': None, 'parent': 'parent_id'})
            >>> Tree(rows, root_id='', build_warning_callback=skip_invalid_parent)
        """
        self._options = TreeOptions.coerce(options, **kwargs)
        self._serializer: TreeSerializer | None = self._options.serializer
        self._root: Node | None = None
        self._nodes: dict[Any, Node] = {}
        self.build(data)

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        return f"Tree(root_id={self.root_id!r}, nodes={len(self._nodes) - 1})"

    def __str__(self) -> str:
        """Return an indented outline, one line per node."""
        lines = []
        for node in self.iter_nodes():
            indent = '  ' * (node.get_level() - 1)
            lines.append(f"{indent}- {node}")
        return '\n'.join(lines)

    def __len__(self) -> int:
        """Return the number of nodes reachable from the root."""
        return sum(1 for _ in self.iter_nodes())

    def __iter__(self) -> Iterator[Node]:
        """Iterate over all nodes in pre-order (see get_nodes())."""
        return self.iter_nodes()

    def __contains__(self, node_id: Any) -> bool:
        return node_id in self._nodes

    # ==================== Configuration ====================

    @property
    def options(self) -> TreeOptions:
        return self._options

    @property
    def root_id(self) -> Any:
        return self._options.root_id

    @property
    def id_key(self) -> str:
        return normalize_key(self._options.id_key)

    @property
    def parent_key(self) -> str:
        return normalize_key(self._options.parent_key)

    @property
    def strict(self) -> bool:
        return self._options.strict

    @property
    def writable(self) -> bool:
        return self._options.writable

    @property
    def root(self) -> Node:
        """The synthetic root node."""
        return self._root

    # ==================== Build ====================

    def create_node(
        self, node_id: Any, parent_id: Any, properties: Mapping[str, Any] | None = None
    ) -> Node:
        """Create a node using this tree's keys and lookup policy.

        The node is not registered; attach it with add_child() or add_node().
        """
        return Node(
            node_id, parent_id, properties,
            id_key=self.id_key, parent_key=self.parent_key, strict=self.strict,
        )

    def build(self, data: Iterable[Any]) -> None:
        """Discard the current hierarchy and build a new one from data.

        The previous nodes are replaced only if the build succeeds.

        Raises:
            InvalidDatatypeError: If data or one of its records is malformed.
            InvalidParentError: From the default build warning callback.
        """
        builder = TreeBuilder(
            root_id=self.root_id,
            id_key=self.id_key,
            parent_key=self.parent_key,
            warning_callback=self._options.build_warning_callback,
            node_factory=self.create_node,
        )
        root, registry = builder.build(data)

        for node in self._nodes.values():
            node._tree = None
        ref = weakref.ref(self)
        for node in registry.values():
            node._tree = ref
        self._root = root
        self._nodes = registry

    def rebuild_with_data(self, data: Iterable[Any]) -> None:
        """Build the tree again from data (alias of build())."""
        self.build(data)

    # ==================== Lookup ====================

    def iter_nodes(self) -> Iterator[Node]:
        """Yield all nodes reachable from the root, in pre-order."""
        return self._root.iter_descendants()

    def get_nodes(self) -> list[Node]:
        """Return a flat list of all nodes, sorted as in the hierarchy.

        The first top-level node comes first, followed by its children (and
        their children), then the second top-level node, and so on. The
        synthetic root is not included.
        """
        return list(self.iter_nodes())

    def get_root_nodes(self) -> list[Node]:
        """Return the top-level nodes, in order."""
        return self._root.get_children()

    def get_node_by_id(self, node_id: Any) -> Node | None:
        """Get a node by id.

        Args:
            node_id: The node id. The root id returns the synthetic root.

        Returns:
            The node. On a non-strict tree, None if the id is unknown.

        Raises:
            NodeNotFoundError: If the tree is strict and the id is unknown.
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            if self.strict:
                raise NodeNotFoundError(
                    f"Node with ID {node_id} does not exist"
                ) from None
            return None

    def get_node_by_value_path(self, name: str, tokens: Iterable[Any]) -> Node | None:
        """Find a node by the values of one property along its path.

        Starting at the top level, each token selects the first child whose
        property ``name`` equals the token; the next token is searched among
        that child's children. Comparison is case- and type-sensitive.

        Args:
            name: Property name (case-insensitive).
            tokens: Values along the path, top level first.

        Returns:
            The node matched by the last token, or None.

        Example:
            >>> tree.get_node_by_value_path('name', ['A', 'B', 'C'])
        """
        key = normalize_key(name)
        match = None
        candidates = self._root._children
        for token in tokens:
            match = next(
                (n for n in candidates if _same_value(n._properties.get(key, _MISSING), token)),
                None,
            )
            if match is None:
                return None
            candidates = match._children
        return match

    def is_node_exists_by_id(self, node_id: Any) -> bool:
        """True if the registry holds a node with this id."""
        return node_id in self._nodes

    has_node = is_node_exists_by_id

    # ==================== Serialization ====================

    def set_serializer(self, serializer: TreeSerializer | None = None) -> None:
        """Use serializer for serialize(); None restores the default."""
        self._serializer = serializer

    def serialize(self) -> Any:
        """Flatten the tree with the configured serializer."""
        serializer = self._serializer
        if serializer is None:
            serializer = DefaultArraySerializer()
        return serializer.serialize(self)

    # ==================== Mutation Helpers ====================

    def _require_writable(self) -> None:
        if not self.writable:
            raise ReadOnlyTreeError(
                "Tree is read-only; create it with writable=True to edit it"
            )

    def _require_attached(self, node: Node) -> None:
        if node.tree is not self or self._nodes.get(node.id) is not node:
            raise DetachedNodeError(
                f"Node {node.id} is not attached to this tree"
            )

    def _require_deletable(self, node: Node) -> None:
        self._require_writable()
        self._require_attached(node)
        if node is self._root:
            raise RootNodeError("The root node cannot be deleted")

    def _check_unregistered(self, node: Node) -> None:
        for member in node.iter_descendants_and_self():
            owner = member.tree
            if owner is not None and owner is not self:
                raise DetachedNodeError(
                    f"Node {member.id} belongs to another tree"
                )
            if member.id in self._nodes:
                raise NodeConflictError(
                    f"Node ID {member.id} is already in use. "
                    "You need to delete it before adding a new one."
                )

    def _register(self, node: Node) -> None:
        ref = weakref.ref(self)
        for member in node.iter_descendants_and_self():
            member._tree = ref
            self._nodes[member.id] = member

    def _unregister(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            del self._nodes[node.id]
            node._tree = None

    # ==================== Mutation ====================

    def add_child(self, parent: Node, child: Node) -> None:
        """Append child to parent's children and register child's subtree.

        Args:
            parent: A node of this tree.
            child: A node without parent, possibly carrying children.

        Raises:
            ReadOnlyTreeError: If the tree is read-only.
            DetachedNodeError: If parent is not in this tree, or child belongs
                to another tree.
            NodeConflictError: If any id of child's subtree is already used
                below parent or anywhere in the tree.
            InvalidParentError: If the link would create a cycle.
        """
        self._require_writable()
        self._require_attached(parent)
        parent._check_new_child(child)
        self._check_unregistered(child)

        parent._link_child(child)
        self._register(child)
        logger.debug("Added node %r under %r", child.id, parent.id)

    def add_node(self, node: Node) -> None:
        """Register node, and the subtree it carries, in this tree.

        The node is linked to its declared parent if the parent does not list
        it yet. The declared parent is ``node.parent`` when set, otherwise
        the registered node whose id is ``node.parent_id``.

        Raises:
            ReadOnlyTreeError: If the tree is read-only.
            NodeConflictError: If an id of the subtree is already registered.
            DetachedNodeError: If the declared parent is not in this tree.
            InvalidParentError: If no declared parent can be found.

        Example:
            >>> branch = tree.create_node('school', 'building')
            >>> branch.add_child(tree.create_node('primary', 'school'))
            >>> tree.add_node(branch)
        """
        self._require_writable()
        parent = node.parent
        if parent is None:
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                raise InvalidParentError(
                    f"Node with ID {node.id} points to non-existent parent "
                    f"with ID {node.parent_id}"
                )
        else:
            self._require_attached(parent)

        linked = any(c is node for c in parent._children)
        if not linked:
            parent._check_new_child(node)
        self._check_unregistered(node)

        if not linked:
            parent._link_child(node)
        self._register(node)
        logger.debug("Added node %r under %r", node.id, parent.id)

    def delete(self, node: Node) -> list[Node]:
        """Remove node and all its descendants from the tree.

        Returns:
            The removed nodes: node first, then its descendants in pre-order.
            The removed subtree keeps its internal links.

        Raises:
            ReadOnlyTreeError, DetachedNodeError, RootNodeError.
        """
        self._require_deletable(node)
        removed = node.get_descendants_and_self()
        parent = node.parent
        if parent is not None:
            parent._unlink_child(node)
        self._unregister(removed)
        logger.debug("Deleted node %r and %d descendants", node.id, len(removed) - 1)
        return removed

    def delete_descendants(self, node: Node) -> list[Node]:
        """Remove every node below node; node stays attached.

        Returns:
            The removed nodes in pre-order.
        """
        self._require_deletable(node)
        removed = node.get_descendants()
        for child in list(node._children):
            node._unlink_child(child)
        self._unregister(removed)
        logger.debug("Deleted %d descendants of node %r", len(removed), node.id)
        return removed

    def delete_but_save_descendants(self, node: Node) -> list[Node]:
        """Remove only node; its children move to node's former parent.

        The children are appended, in order, after the former parent's
        existing children and keep their own subtrees.

        Returns:
            A list holding the removed node.

        Raises:
            DetachedNodeError: Also if node has no parent to hand its
                children to (an orphan left by a permissive build).
        """
        self._require_deletable(node)
        parent = node.parent
        if parent is None:
            raise DetachedNodeError(
                f"Node {node.id} has no parent to receive its children"
            )
        children = list(node._children)
        parent._unlink_child(node)
        for child in children:
            node._unlink_child(child)
            parent._link_child(child)
        self._unregister([node])
        logger.debug(
            "Deleted node %r, moved %d children to %r", node.id, len(children), parent.id
        )
        return [node]

    def delete_nodes(self, nodes: Iterable[Node]) -> list[Node]:
        """Detach each node from its parent and remove it from the registry.

        Low-level helper: children of the given nodes are neither removed
        nor detached unless listed. All nodes are validated first.

        Returns:
            The removed nodes.
        """
        nodes = list({id(n): n for n in nodes}.values())
        for node in nodes:
            self._require_deletable(node)
        for node in nodes:
            parent = node.parent
            if parent is not None:
                parent._unlink_child(node)
        self._unregister(nodes)
        return nodes

    def regenerate_nodes_list(self) -> None:
        """Rebuild the registry from a pre-order walk starting at the root.

        Repairs the registry after edits made with the low-level helpers
        (Node.unset_child_by_id(), Node.unset_parent(), ...). Nodes no longer
        reachable from the root are dropped from the registry.
        """
        self._require_writable()
        registry = {n.id: n for n in self._root.iter_descendants_and_self()}
        for node in self._nodes.values():
            if registry.get(node.id) is not node:
                node._tree = None
        ref = weakref.ref(self)
        for node in registry.values():
            node._tree = ref
        self._nodes = registry
        logger.debug("Regenerated registry: %d nodes", len(registry) - 1)
