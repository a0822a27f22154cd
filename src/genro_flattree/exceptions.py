# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTree exceptions."""

from __future__ import annotations


class FlatTreeError(Exception):
    """Base exception for FlatTree errors."""

    pass


class InvalidDatatypeError(FlatTreeError, TypeError):
    """Raised when the build input or one of its records has the wrong shape."""

    pass


class InvalidParentError(FlatTreeError, ValueError):
    """Raised when a record references itself, a missing parent or a cycle."""

    pass


class InvalidOptionError(FlatTreeError, ValueError):
    """Raised when a configuration option is unknown or has the wrong type."""

    pass


class NodeNotFoundError(FlatTreeError, KeyError):
    """Raised when a node id is not in the registry."""

    pass


class UndefinedPropertyError(FlatTreeError, KeyError):
    """Raised when a node has no property with the requested name."""

    pass


class MutationError(FlatTreeError):
    """Base exception for rejected structural edits."""

    pass


class NodeConflictError(MutationError):
    """Raised when a node id is already in use."""

    pass


class DetachedNodeError(MutationError):
    """Raised when a node does not belong to the tree being edited."""

    pass


class RootNodeError(MutationError):
    """Raised on an attempt to delete the synthetic root."""

    pass


class ReadOnlyTreeError(MutationError):
    """Raised when a mutating operation is called on a read-only tree."""

    pass
