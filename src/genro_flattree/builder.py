# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeBuilder - Link flat, parent-referencing records into a node graph.

The builder works in two passes:

1. Every record becomes a Node stored in a fresh registry (id -> Node).
   A later record with an id already seen replaces the earlier one.
2. Nodes are grouped by parent id and linked to their parent. Because
   linking happens after all nodes exist, a record may reference a parent
   that appears later in the input.

A link that cannot be made (self reference, unknown parent, or a link that
would close a cycle) is handed to the build warning callback. The default
callback raises InvalidParentError, which aborts the whole build; nothing
built so far is exposed.

Example:
    >>> builder = TreeBuilder(root_id='')
    >>> root, registry = builder.build([
    ...     {'id': 'vehicle', 'parent': ''},
    ...     {'id': 'car', 'parent': 'vehicle'},
    ... ])
    >>> [str(n) for n in root.get_descendants()]
    ['vehicle', 'car']
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from .exceptions import InvalidDatatypeError, InvalidParentError
from .node import Node, normalize_key

logger = logging.getLogger(__name__)

WarningCallback = Callable[[Node, Any], None]
NodeFactory = Callable[[Any, Any, dict], Node]

_ID_TYPES = (str, int, float)


class TreeBuilder:
    """Build a linked, validated node graph from flat records.

    Attributes:
        root_id: Id of the synthetic root, the parent of top-level records.
        id_key: Name of the record field holding the node id.
        parent_key: Name of the record field holding the parent id.
    """

    __slots__ = (
        'root_id', 'id_key', 'parent_key',
        '_warning_callback', '_node_factory', '_registry',
    )

    def __init__(
        self,
        root_id: Any = 0,
        id_key: str = 'id',
        parent_key: str = 'parent',
        warning_callback: WarningCallback | None = None,
        node_factory: NodeFactory | None = None,
    ) -> None:
        """Initialize a TreeBuilder.

        Args:
            root_id: Id of the synthetic root node.
            id_key: Record field holding the node id (case-insensitive).
            parent_key: Record field holding the parent id (case-insensitive).
            warning_callback: Called as ``callback(node, parent_id)`` for
                every link that cannot be made. None means
                raise_invalid_parent().
            node_factory: Called as ``factory(id, parent_id, properties)``
                to create nodes. Defaults to a plain Node using the
                builder's keys.
        """
        self.root_id = root_id
        self.id_key = normalize_key(id_key)
        self.parent_key = normalize_key(parent_key)
        self._warning_callback = warning_callback
        self._node_factory = node_factory
        self._registry: dict[Any, Node] = {}

    def _create_node(self, node_id: Any, parent_id: Any, properties: dict) -> Node:
        if self._node_factory is None:
            return Node(
                node_id, parent_id, properties,
                id_key=self.id_key, parent_key=self.parent_key,
            )
        return self._node_factory(node_id, parent_id, properties)

    def _warn(self, node: Node, parent_id: Any) -> None:
        if self._warning_callback is None:
            self.raise_invalid_parent(node, parent_id)
        else:
            self._warning_callback(node, parent_id)

    # ==================== Build ====================

    def build(self, data: Iterable[Any]) -> tuple[Node, dict[Any, Node]]:
        """Create and link the nodes for data.

        Args:
            data: Iterable of records. Each record is a mapping (or an
                iterable of key/value pairs) from field name to value.

        Returns:
            Tuple of (root_node, registry), the registry mapping every id,
            root included, to its node.

        Raises:
            InvalidDatatypeError: If data is not iterable or a record is
                malformed.
            InvalidParentError: From the default warning callback.
        """
        if isinstance(data, (str, bytes, Mapping)) or not isinstance(data, Iterable):
            raise InvalidDatatypeError(
                "Data must be an iterable of records, "
                f"not {type(data).__name__}"
            )

        root = self._create_node(self.root_id, None, {})
        self._registry = registry = {self.root_id: root}
        try:
            for index, raw in enumerate(data):
                self._add_record(index, raw)
            self._link_all(root)
        finally:
            self._registry = {}

        logger.debug(
            "Built tree: %d nodes, %d top level", len(registry) - 1, root.count_children()
        )
        return root, registry

    def _add_record(self, index: int, raw: Any) -> None:
        record = self._as_record(index, raw)

        if self.id_key not in record:
            raise InvalidDatatypeError(
                f"Record #{index} has no '{self.id_key}' field"
            )
        node_id = record[self.id_key]
        parent_id = record.get(self.parent_key, self.root_id)

        if not isinstance(node_id, _ID_TYPES):
            raise InvalidDatatypeError(
                f"Record #{index}: id must be str, int or float, "
                f"not {type(node_id).__name__}"
            )
        if parent_id is not None and not isinstance(parent_id, _ID_TYPES):
            raise InvalidDatatypeError(
                f"Record #{index}: parent id must be str, int, float or None, "
                f"not {type(parent_id).__name__}"
            )

        if node_id == self.root_id:
            raise InvalidDatatypeError(
                f"Record #{index} uses the root id {self.root_id!r} as its own id"
            )
        if node_id in self._registry:
            logger.warning(
                "Duplicate node ID %r in record #%d replaces the earlier record",
                node_id, index,
            )
        self._registry[node_id] = self._create_node(node_id, parent_id, record)

    def _as_record(self, index: int, raw: Any) -> dict:
        if isinstance(raw, Mapping):
            items = raw.items()
        else:
            try:
                items = dict(raw).items()
            except (TypeError, ValueError) as e:
                raise InvalidDatatypeError(
                    f"Record #{index} must be a mapping, not {type(raw).__name__}"
                ) from e
        return {normalize_key(k): v for k, v in items}

    def _link_all(self, root: Node) -> None:
        # Group by parent id; dict order gives each id's first appearance
        children: dict[Any, list[Node]] = {}
        for node in self._registry.values():
            if node is root:
                continue
            children.setdefault(node.parent_id, []).append(node)

        for parent_id, group in children.items():
            parent = self._registry.get(parent_id)
            for child in group:
                if parent is None or parent is child or self._closes_cycle(parent, child):
                    self._warn(child, parent_id)
                else:
                    parent._link_child(child)

    @staticmethod
    def _closes_cycle(parent: Node, child: Node) -> bool:
        return any(ancestor is child for ancestor in parent.iter_ancestors())

    # ==================== Default warning policy ====================

    def raise_invalid_parent(self, node: Node, parent_id: Any) -> None:
        """Fail-fast warning callback: raise InvalidParentError.

        Raises:
            InvalidParentError: Always, with the reason the link failed.
        """
        if parent_id == node.id:
            raise InvalidParentError(
                f"Node with ID {node.id} references its own ID as parent ID"
            )
        parent = self._registry.get(parent_id)
        if parent is None:
            raise InvalidParentError(
                f"Node with ID {node.id} points to non-existent parent with ID {parent_id}"
            )
        if self._closes_cycle(parent, node):
            raise InvalidParentError(
                f"Node with ID {node.id} and parent ID {parent_id} would create a cycle"
            )
        raise InvalidParentError("Unrecognized build warning reason")
