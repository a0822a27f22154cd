# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for Tree lookup and traversal."""

import gc
import weakref

import pytest

from genro_flattree import NodeNotFoundError, Tree, UndefinedPropertyError

from conftest import VEHICLES, ids

PLACES = [
    {'id': 1, 'parent': 0, 'name': 'Europe'},
    {'id': 2, 'parent': 1, 'name': 'Italy'},
    {'id': 3, 'parent': 2, 'name': 'Rome'},
    {'id': 4, 'parent': 0, 'name': 'Asia'},
    {'id': 5, 'parent': 4, 'name': 'Italy'},
    {'id': 6, 'parent': 1, 'name': 1},
    {'id': 7, 'parent': 0},
]


class TestTreeBasic:
    """Tests for building and listing."""

    def test_root_nodes(self, tree):
        """Test top-level nodes keep input order."""
        assert ids(tree.get_root_nodes()) == ['vehicle', 'building']

    def test_get_nodes_pre_order(self, tree):
        """Test the flat listing is depth-first pre-order."""
        assert ids(tree.get_nodes()) == [
            'vehicle', 'bicycle', 'car',
            'building', 'school', 'primary-school', 'library',
        ]

    def test_len_iter_contains(self, tree):
        """Test container protocol."""
        assert len(tree) == 7
        assert ids(tree) == ids(tree.get_nodes())
        assert 'car' in tree
        assert 'plane' not in tree
        assert '' in tree

    def test_empty_tree(self):
        """Test a tree without records."""
        tree = Tree()
        assert tree.get_nodes() == []
        assert tree.get_root_nodes() == []
        assert len(tree) == 0
        assert str(tree) == ''
        assert tree.root.id == 0

    def test_root(self, tree):
        """Test the synthetic root node."""
        root = tree.root
        assert tree.get_node_by_id('') is root
        assert root.parent is None
        assert root.parent_id is None
        assert root.get_level() == 0
        assert root.get_ancestors() == []
        assert root.get_ancestors_and_self() == []

    def test_configuration_properties(self, tree):
        """Test read-only configuration accessors."""
        assert tree.root_id == ''
        assert tree.id_key == 'id'
        assert tree.parent_key == 'parent'
        assert tree.strict is True
        assert tree.writable is False

    def test_str(self, tree):
        """Test the indented outline."""
        assert str(tree) == '\n'.join([
            '- vehicle',
            '  - bicycle',
            '  - car',
            '- building',
            '  - school',
            '    - primary-school',
            '  - library',
        ])

    def test_repr(self, tree):
        """Test string representation."""
        assert repr(tree) == "Tree(root_id='', nodes=7)"

    def test_extra_properties(self):
        """Test record fields are kept, names case-folded."""
        tree = Tree([{'ID': 1, 'Parent': 0, 'Title': 'x'}])
        node = tree.get_node_by_id(1)
        assert node.get('title') == 'x'
        assert list(node.to_dict()) == ['title', 'id', 'parent']

    def test_to_dict(self, tree):
        """Test the full property bag."""
        assert tree.get_node_by_id('car').to_dict() == {'id': 'car', 'parent': 'vehicle'}


class TestLookup:
    """Tests for get_node_by_id and lookup policies."""

    def test_get_node_by_id(self, tree):
        """Test registry lookup."""
        car = tree.get_node_by_id('car')
        assert car.id == 'car'
        assert car.get_parent() is tree.get_node_by_id('vehicle')

    def test_unknown_id_strict_raises(self, tree):
        """Test strict trees raise on unknown ids."""
        with pytest.raises(NodeNotFoundError, match="plane"):
            tree.get_node_by_id('plane')
        with pytest.raises(KeyError):
            tree.get_node_by_id('plane')

    def test_unknown_id_nullable(self):
        """Test non-strict trees return None on unknown ids."""
        tree = Tree(VEHICLES, root_id='', strict=False)
        assert tree.get_node_by_id('plane') is None

    def test_property_policy_follows_tree(self):
        """Test nodes inherit the tree's lookup policy."""
        strict = Tree(VEHICLES, root_id='')
        nullable = Tree(VEHICLES, root_id='', strict=False)
        with pytest.raises(UndefinedPropertyError):
            strict.get_node_by_id('car').get('color')
        assert nullable.get_node_by_id('car').get('color') is None

    def test_is_node_exists_by_id(self, tree):
        """Test registry membership."""
        assert tree.is_node_exists_by_id('school')
        assert tree.has_node('school')
        assert not tree.is_node_exists_by_id('plane')


class TestTraversal:
    """Tests for node traversal inside a built tree."""

    def test_levels(self, tree):
        """Test distance from the root."""
        assert tree.get_node_by_id('vehicle').get_level() == 1
        assert tree.get_node_by_id('school').get_level() == 2
        assert tree.get_node_by_id('primary-school').get_level() == 3

    def test_siblings(self, tree):
        """Test siblings inside one parent."""
        school = tree.get_node_by_id('school')
        assert ids(school.get_siblings()) == ['library']
        assert ids(school.get_siblings_and_self()) == ['school', 'library']

    def test_top_level_siblings(self, tree):
        """Test top-level nodes are siblings under the root."""
        assert ids(tree.get_node_by_id('vehicle').get_siblings()) == ['building']

    def test_only_child_has_no_siblings(self, tree):
        """Test an only child."""
        node = tree.get_node_by_id('primary-school')
        assert node.get_siblings() == []
        assert node.get_siblings_and_self() == [node]

    def test_preceding_and_following(self, tree):
        """Test neighbours by position."""
        bicycle = tree.get_node_by_id('bicycle')
        car = tree.get_node_by_id('car')
        assert bicycle.get_following_sibling() is car
        assert car.get_preceding_sibling() is bicycle
        assert bicycle.get_preceding_sibling() is None
        assert car.get_following_sibling() is None
        building = tree.get_node_by_id('building')
        assert building.get_preceding_sibling() is tree.get_node_by_id('vehicle')

    def test_descendants(self, tree):
        """Test pre-order descendants."""
        building = tree.get_node_by_id('building')
        assert ids(building.get_descendants()) == ['school', 'primary-school', 'library']
        assert ids(building.get_descendants_and_self()) == [
            'building', 'school', 'primary-school', 'library',
        ]
        assert tree.get_node_by_id('car').get_descendants() == []

    def test_ancestors_include_root(self, tree):
        """Test ancestors end with the synthetic root."""
        node = tree.get_node_by_id('primary-school')
        assert ids(node.get_ancestors()) == ['school', 'building', '']
        assert node.get_ancestors()[-1] is tree.root
        assert ids(node.get_ancestors_and_self()) == [
            'primary-school', 'school', 'building', '',
        ]
        assert tree.get_node_by_id('vehicle').get_ancestors() == [tree.root]

    def test_containment_duality(self, tree):
        """Test every node is a descendant of each of its ancestors."""
        for node in tree.get_nodes():
            for ancestor in node.get_ancestors():
                assert node in ancestor.get_descendants()
                assert ancestor in node.get_ancestors()
            assert node in tree.root.get_descendants()


class TestValuePath:
    """Tests for get_node_by_value_path."""

    @pytest.fixture
    def places(self):
        return Tree(PLACES)

    def test_full_path(self, places):
        """Test a path down three levels."""
        assert places.get_node_by_value_path('name', ['Europe', 'Italy', 'Rome']).id == 3

    def test_same_value_in_other_branch(self, places):
        """Test the path disambiguates equal values."""
        assert places.get_node_by_value_path('name', ['Asia', 'Italy']).id == 5
        assert places.get_node_by_value_path('name', ['Europe', 'Italy']).id == 2

    def test_top_level_only(self, places):
        """Test the first token only matches top-level nodes."""
        assert places.get_node_by_value_path('name', ['Europe']).id == 1
        assert places.get_node_by_value_path('name', ['Italy']) is None

    def test_no_match(self, places):
        """Test a failing level returns None."""
        assert places.get_node_by_value_path('name', ['Europe', 'France']) is None
        assert places.get_node_by_value_path('name', ['Europe', 'Italy', 'Rome', 'X']) is None

    def test_empty_tokens(self, places):
        """Test no tokens means no match."""
        assert places.get_node_by_value_path('name', []) is None

    def test_case_sensitive_values(self, places):
        """Test values compare case-sensitively, names do not."""
        assert places.get_node_by_value_path('name', ['europe']) is None
        assert places.get_node_by_value_path('NAME', ['Europe']).id == 1

    def test_type_sensitive_values(self, places):
        """Test 1, 1.0 and True are different tokens."""
        assert places.get_node_by_value_path('name', ['Europe', 1]).id == 6
        assert places.get_node_by_value_path('name', ['Europe', 1.0]) is None
        assert places.get_node_by_value_path('name', ['Europe', True]) is None

    def test_unknown_property(self, places):
        """Test nodes without the property never match."""
        assert places.get_node_by_value_path('color', ['red']) is None


class TestNodeLifetime:
    """Tests for nodes used after their tree is gone."""

    def test_nodes_outlive_tree(self):
        """Test handed-out nodes keep parents and levels after collection."""
        nodes = Tree(VEHICLES, root_id='').get_nodes()
        gc.collect()
        assert [n.get_level() for n in nodes] == [1, 2, 2, 1, 2, 3, 2]
        assert [n.get_parent().id for n in nodes] == [
            '', 'vehicle', 'vehicle', '', 'building', 'school', 'building',
        ]

    def test_single_node_outlives_tree(self):
        """Test one node keeps its whole ancestor chain."""
        car = Tree(VEHICLES, root_id='').get_node_by_id('car')
        gc.collect()
        assert car.get_parent().id == car.parent_id == 'vehicle'
        assert ids(car.get_ancestors()) == ['vehicle', '']
        assert ids(car.get_siblings()) == ['bicycle']
        assert car.tree is None

    def test_tree_freed_without_cycle_collector(self):
        """Test building leaves no reference cycle holding the tree."""
        gc.disable()
        try:
            tree = Tree(VEHICLES, root_id='')
            ref = weakref.ref(tree)
            del tree
            assert ref() is None
        finally:
            gc.enable()
