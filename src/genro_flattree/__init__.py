# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-FlatTree - Navigable trees from flat, parent-referencing records.

A lightweight, zero-dependency library that turns rows carrying a parent id
(categories, org charts, file listings) into an in-memory hierarchy, and
back into rows.
"""

__version__ = "0.1.0"

from .builder import TreeBuilder
from .exceptions import (
    DetachedNodeError,
    FlatTreeError,
    InvalidDatatypeError,
    InvalidOptionError,
    InvalidParentError,
    MutationError,
    NodeConflictError,
    NodeNotFoundError,
    ReadOnlyTreeError,
    RootNodeError,
    UndefinedPropertyError,
)
from .node import Node
from .options import TreeOptions
from .policies import CollectInvalidParents, skip_invalid_parent
from .serializers import DefaultArraySerializer, FlatTreeSerializer, TreeSerializer
from .tree import Tree

__all__ = [
    # Core classes
    "Tree",
    "Node",
    "TreeBuilder",
    "TreeOptions",
    # Build warning policies
    "skip_invalid_parent",
    "CollectInvalidParents",
    # Serializers
    "TreeSerializer",
    "FlatTreeSerializer",
    "DefaultArraySerializer",
    # Exceptions
    "FlatTreeError",
    "InvalidDatatypeError",
    "InvalidParentError",
    "InvalidOptionError",
    "NodeNotFoundError",
    "UndefinedPropertyError",
    "MutationError",
    "NodeConflictError",
    "DetachedNodeError",
    "RootNodeError",
    "ReadOnlyTreeError",
]
