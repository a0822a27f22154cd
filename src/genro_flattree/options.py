# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tree configuration."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .exceptions import InvalidOptionError
from .node import normalize_key

# Accepted option names (lower-cased) -> TreeOptions field
_OPTION_NAMES = {
    'rootid': 'root_id',
    'root_id': 'root_id',
    'id': 'id_key',
    'id_key': 'id_key',
    'idkey': 'id_key',
    'parent': 'parent_key',
    'parent_key': 'parent_key',
    'parentkey': 'parent_key',
    'buildwarningcallback': 'build_warning_callback',
    'build_warning_callback': 'build_warning_callback',
    'jsonserializer': 'serializer',
    'serializer': 'serializer',
    'strict': 'strict',
    'writable': 'writable',
}


@dataclass(frozen=True)
class TreeOptions:
    """Options controlling how a Tree reads records and behaves.

    Attributes:
        root_id: Id of the synthetic root; records whose parent id equals it
            are top-level nodes. Scalar or None.
        id_key: Record field holding the node id.
        parent_key: Record field holding the parent id.
        build_warning_callback: ``callback(node, parent_id)`` invoked for
            each parent link that cannot be made. None raises
            InvalidParentError.
        serializer: Object with a ``serialize(tree)`` method used by
            Tree.serialize(). None selects DefaultArraySerializer.
        strict: Lookup-failure policy. True raises on unknown ids and
            property names, False returns None.
        writable: Mutation capability. False rejects every structural edit.
    """

    root_id: Any = 0
    id_key: str = 'id'
    parent_key: str = 'parent'
    build_warning_callback: Callable[..., None] | None = None
    serializer: Any = None
    strict: bool = True
    writable: bool = False

    def __post_init__(self) -> None:
        if self.root_id is not None and not isinstance(self.root_id, (str, int, float)):
            raise InvalidOptionError('Option "root_id" must be a scalar or None')
        for name in ('id_key', 'parent_key'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise InvalidOptionError(f'Option "{name}" must be a non-empty string')
        if normalize_key(self.id_key) == normalize_key(self.parent_key):
            raise InvalidOptionError('Options "id_key" and "parent_key" must differ')
        if self.build_warning_callback is not None and not callable(self.build_warning_callback):
            raise InvalidOptionError('Option "build_warning_callback" must be a callable')
        if self.serializer is not None and not callable(getattr(self.serializer, 'serialize', None)):
            raise InvalidOptionError('Option "serializer" must have a serialize() method')
        for name in ('strict', 'writable'):
            if not isinstance(getattr(self, name), bool):
                raise InvalidOptionError(f'Option "{name}" must be a bool')

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> TreeOptions:
        """Create options from a mapping of option names.

        Names are case-insensitive and may use either the TreeOptions field
        names or the short names ``rootId``, ``id``, ``parent``,
        ``buildWarningCallback`` and ``jsonSerializer``. An empty ``id`` or
        ``parent`` keeps the default.

        Raises:
            InvalidOptionError: On unknown names or invalid values.

        Example:
            >>> TreeOptions.from_mapping({'rootId': '', 'Parent': 'parent_id'})
        """
        if not isinstance(options, Mapping):
            raise InvalidOptionError(
                f"Options must be a mapping, not {type(options).__name__}"
            )
        values: dict[str, Any] = {}
        for name, value in options.items():
            field_name = _OPTION_NAMES.get(name.lower()) if isinstance(name, str) else None
            if field_name is None:
                raise InvalidOptionError(f"Unrecognized option {name!r}")
            if field_name in ('id_key', 'parent_key') and not value:
                continue
            values[field_name] = value
        return cls(**values)

    @classmethod
    def coerce(
        cls, options: TreeOptions | Mapping[str, Any] | None = None, **overrides: Any
    ) -> TreeOptions:
        """Return a TreeOptions from options, with keyword overrides applied."""
        if options is None:
            result = cls()
        elif isinstance(options, TreeOptions):
            result = options
        else:
            result = cls.from_mapping(options)
        if overrides:
            result = result.replace(**overrides)
        return result

    def replace(self, **changes: Any) -> TreeOptions:
        """Return a copy with the given fields changed.

        Raises:
            InvalidOptionError: If a name is not a TreeOptions field.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidOptionError(f"Unrecognized option(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **changes)
