# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Shared test data."""

import pytest

from genro_flattree import Tree

VEHICLES = [
    {'id': 'vehicle', 'parent': ''},
    {'id': 'bicycle', 'parent': 'vehicle'},
    {'id': 'car', 'parent': 'vehicle'},
    {'id': 'building', 'parent': ''},
    {'id': 'school', 'parent': 'building'},
    {'id': 'library', 'parent': 'building'},
    {'id': 'primary-school', 'parent': 'school'},
]


def ids(nodes):
    """Return the ids of nodes, in order."""
    return [node.id for node in nodes]


def shape(tree):
    """Return (id, parent id, child ids) for every node, in pre-order."""
    return [(n.id, n.parent_id, ids(n.get_children())) for n in tree.get_nodes()]


@pytest.fixture
def vehicles():
    return [dict(row) for row in VEHICLES]


@pytest.fixture
def tree(vehicles):
    return Tree(vehicles, root_id='')


@pytest.fixture
def wtree(vehicles):
    return Tree(vehicles, root_id='', writable=True)
