# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tree serializers.

A serializer turns a Tree into a flat, ordered snapshot. Trees use
DefaultArraySerializer unless another one is configured (option
``serializer``, or Tree.set_serializer()).

The output of DefaultArraySerializer can be fed back to Tree with the same
options to obtain an identical tree:

    >>> data = tree.serialize()
    >>> Tree(data, tree.options).serialize() == data
    True
"""

from __future__ import annotations

from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .node import Node
    from .tree import Tree


class TreeSerializer(Protocol):
    """Strategy interface consumed by Tree.serialize()."""

    def serialize(self, tree: Tree) -> Any: ...


class FlatTreeSerializer:
    """Serialize a tree to its nodes, in pre-order."""

    def serialize(self, tree: Tree) -> list[Node]:
        return tree.get_nodes()


class DefaultArraySerializer(FlatTreeSerializer):
    """Serialize a tree to a list of property dicts, in pre-order.

    Each dict starts with the id field and the parent field, followed by the
    node's other properties in their stored order.
    """

    def serialize(self, tree: Tree) -> list[dict[Any, Any]]:
        rows = []
        for node in super().serialize(tree):
            row = {node.id_key: node.id, node.parent_key: node.parent_id}
            for key, value in node.to_dict().items():
                if key not in row:
                    row[key] = value
            rows.append(row)
        return rows

    @classmethod
    def to_list(cls, tree: Tree) -> list[dict[Any, Any]]:
        """Serialize tree with a fresh serializer instance."""
        return cls().serialize(tree)
