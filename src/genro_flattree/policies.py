# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Permissive build warning policies.

A build warning policy is any callable ``policy(node, parent_id)``. The
builder calls it for each record whose parent link cannot be made. The
fail-fast default lives on TreeBuilder (raise_invalid_parent); the
policies here skip the link instead, leaving the node orphaned: it stays
reachable through Tree.get_node_by_id() but not from the root.

Example:
    >>> tree = Tree(records, build_warning_callback=skip_invalid_parent)
    >>> collector = CollectInvalidParents()
    >>> tree = Tree(records, build_warning_callback=collector)
    >>> collector.skipped
    [('orphan', 'missing-parent')]
"""

from __future__ import annotations

import logging
from typing import Any

from .node import Node

logger = logging.getLogger(__name__)


def skip_invalid_parent(node: Node, parent_id: Any) -> None:
    """Log the invalid link and leave the node orphaned."""
    logger.warning(
        "Node with ID %r has invalid parent ID %r; leaving it orphaned",
        node.id, parent_id,
    )


class CollectInvalidParents:
    """Skip invalid links, remembering each as a (node_id, parent_id) pair."""

    __slots__ = ('skipped',)

    def __init__(self) -> None:
        self.skipped: list[tuple[Any, Any]] = []

    def __call__(self, node: Node, parent_id: Any) -> None:
        self.skipped.append((node.id, parent_id))
        skip_invalid_parent(node, parent_id)

    def __len__(self) -> int:
        return len(self.skipped)
