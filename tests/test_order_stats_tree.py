"""Tests for the order statistics tree, run against both tree variants."""

import unittest
import random

from order_stats_tree import OrderStatsTree, Entry
from splay_tree import OrderedSplayTree
from tests.tree_checks import assert_tree_invariants


class OrderedIndexContract:
    """Behaviour every ordered index must have, whatever restructuring it does."""

    tree_class = None

    def setUp(self):
        self.tree = self.tree_class()

    def fill(self, keys):
        for key in keys:
            self.tree.insert(key, f"v{key}")

    def test_empty_tree(self):
        self.assertEqual(len(self.tree), 0)
        self.assertIsNone(self.tree.get(1))
        self.assertIsNone(self.tree.min())
        self.assertIsNone(self.tree.max())
        self.assertIsNone(self.tree.predecessor(1))
        self.assertIsNone(self.tree.successor(1))
        self.assertIsNone(self.tree.rank(1))
        self.assertIsNone(self.tree.select(0))
        self.assertEqual(self.tree.sorted_entries(), [])
        self.assertFalse(self.tree.delete(1))
        self.assertEqual(self.tree.height(), -1)

    def test_insert_reports_new_and_updated_keys(self):
        self.assertTrue(self.tree.insert(5, 'a'))
        self.assertTrue(self.tree.insert(3, 'b'))
        self.assertFalse(self.tree.insert(5, 'c'))
        self.assertEqual(len(self.tree), 2)
        self.assertEqual(self.tree.get(5), 'c')
        assert_tree_invariants(self, self.tree)

    def test_round_trip(self):
        self.fill([50, 20, 70, 10, 30, 60, 80])
        self.assertEqual(self.tree.get(30), 'v30')
        self.assertTrue(self.tree.delete(30))
        self.assertIsNone(self.tree.get(30))
        self.assertNotIn(30, self.tree)
        self.assertFalse(self.tree.delete(30))
        assert_tree_invariants(self, self.tree)

    def test_get_distinguishes_stored_none_from_absent(self):
        self.tree.insert(1, None)
        self.assertIsNone(self.tree.get(1, 'missing'))
        self.assertEqual(self.tree.get(2, 'missing'), 'missing')
        self.assertIn(1, self.tree)

    def test_min_max(self):
        self.fill([4, 9, -2, 7, 0])
        self.assertEqual(self.tree.min(), Entry(-2, 'v-2'))
        self.assertEqual(self.tree.max(), Entry(9, 'v9'))

    def test_iteration_yields_sorted_keys(self):
        keys = [8, 3, 10, 1, 6, 14, 4, 7, 13]
        self.fill(keys)
        self.assertEqual(list(self.tree), sorted(keys))
        self.assertEqual(self.tree.sorted_entries(), [Entry(k, f"v{k}") for k in sorted(keys)])

    def test_rank_select_duality(self):
        rng = random.Random(7)
        keys = rng.sample(range(1000), 200)
        self.fill(keys)
        for i in range(len(keys)):
            entry = self.tree.select(i)
            self.assertEqual(self.tree.rank(entry.key), i)
        self.assertEqual([self.tree.select(i).key for i in range(len(keys))], sorted(keys))
        self.assertIsNone(self.tree.select(-1))
        self.assertIsNone(self.tree.select(len(keys)))
        self.assertIsNone(self.tree.rank(1000))

    def test_select_rejects_non_integers(self):
        self.fill([1, 2, 3])
        with self.assertRaises(TypeError):
            self.tree.select('a')
        with self.assertRaises(TypeError):
            self.tree.select(1.5)

    def test_predecessor_successor_ordering(self):
        rng = random.Random(11)
        keys = rng.sample(range(500), 120)
        self.fill(keys)
        entries = self.tree.sorted_entries()
        for i, entry in enumerate(entries):
            expected_pred = entries[i - 1] if i > 0 else None
            expected_succ = entries[i + 1] if i < len(entries) - 1 else None
            self.assertEqual(self.tree.predecessor(entry.key), expected_pred)
            self.assertEqual(self.tree.successor(entry.key), expected_succ)
        self.assertIsNone(self.tree.predecessor(10_000))
        self.assertIsNone(self.tree.successor(-1))

    def test_two_child_deletion_keeps_order_and_sizes(self):
        self.fill([5, 3, 8, 1, 4, 7, 9])
        self.assertTrue(self.tree.delete(5))
        self.assertEqual(list(self.tree), [1, 3, 4, 7, 8, 9])
        assert_tree_invariants(self, self.tree)

    def test_delete_every_key(self):
        keys = [5, 3, 8, 1, 4, 7, 9, 2, 6]
        self.fill(keys)
        for key in keys:
            self.assertTrue(self.tree.delete(key))
            assert_tree_invariants(self, self.tree)
        self.assertIsNone(self.tree.root)

    def test_random_operations_preserve_invariants(self):
        rng = random.Random(2024)
        mirror = {}
        for step in range(2000):
            key = rng.randrange(200)
            if rng.random() < 0.6:
                created = self.tree.insert(key, step)
                self.assertEqual(created, key not in mirror)
                mirror[key] = step
            elif rng.random() < 0.5:
                self.assertEqual(self.tree.delete(key), key in mirror)
                mirror.pop(key, None)
            else:
                self.assertEqual(self.tree.get(key), mirror.get(key))
            if step % 100 == 0:
                assert_tree_invariants(self, self.tree)
        assert_tree_invariants(self, self.tree)
        self.assertEqual(self.tree.sorted_entries(), [Entry(k, v) for k, v in sorted(mirror.items())])

    def test_none_key_is_rejected(self):
        with self.assertRaises(TypeError):
            self.tree.insert(None, 'x')
        self.assertEqual(len(self.tree), 0)

    def test_incomparable_key_leaves_tree_untouched(self):
        self.fill([2, 1, 3])
        with self.assertRaises(TypeError):
            self.tree.insert('b', 'x')
        self.assertEqual(len(self.tree), 3)
        assert_tree_invariants(self, self.tree)

    def test_deep_degenerate_tree_does_not_recurse(self):
        n = 2000
        for key in range(n):
            self.tree.insert(key, key)
        self.assertEqual(len(self.tree), n)
        self.assertEqual(len(self.tree.sorted_entries()), n)
        self.assertEqual(len(self.tree.node_depths()), n)
        self.assertEqual(self.tree.rank(0), 0)
        self.assertEqual(self.tree.select(n - 1).key, n - 1)
        self.assertEqual(self.tree.get(0), 0)
        assert_tree_invariants(self, self.tree)

    def test_string_keys(self):
        self.fill(['pear', 'apple', 'fig', 'kiwi'])
        self.assertEqual(list(self.tree), ['apple', 'fig', 'kiwi', 'pear'])
        self.assertEqual(self.tree.rank('kiwi'), 2)


class TestOrderStatsTree(OrderedIndexContract, unittest.TestCase):
    tree_class = OrderStatsTree

    def test_shape_follows_insertion_order(self):
        self.fill([1, 0, 2, 3, -1])
        root = self.tree.root
        self.assertEqual(root.key, 1)
        self.assertEqual(root.left.key, 0)
        self.assertEqual(root.left.left.key, -1)
        self.assertEqual(root.right.key, 2)
        self.assertEqual(root.right.right.key, 3)
        self.assertEqual(root.size, 5)
        self.assertEqual(self.tree.height(), 2)
        self.assertEqual(self.tree.node_depths(), [2, 1, 0, 1, 2])
        self.assertEqual(self.tree.depth(3), 2)
        self.assertIsNone(self.tree.depth(42))

    def test_duplicate_insert_does_not_inflate_sizes(self):
        self.fill([5, 3, 8, 1])
        self.assertFalse(self.tree.insert(1, 'again'))
        self.assertEqual(self.tree.root.size, 4)
        self.assertEqual(self.tree.root.left.size, 2)
        assert_tree_invariants(self, self.tree)

    def test_delete_leaf(self):
        self.fill([5, 3, 8])
        self.tree.delete(3)
        self.assertIsNone(self.tree.root.left)
        self.assertEqual(self.tree.root.size, 2)

    def test_delete_node_with_one_child(self):
        self.fill([5, 3, 8, 9])
        self.tree.delete(8)
        self.assertEqual(self.tree.root.right.key, 9)
        self.assertIs(self.tree.root.right.parent, self.tree.root)
        self.assertEqual(self.tree.root.size, 3)

    def test_delete_with_deep_successor(self):
        self.fill([5, 3, 8, 1, 4, 7, 9])
        removed = self.tree.root
        self.tree.delete(5)
        root = self.tree.root
        self.assertEqual(root.key, 7)
        self.assertIsNone(root.parent)
        self.assertEqual(root.left.key, 3)
        self.assertEqual(root.right.key, 8)
        self.assertIsNone(root.right.left)
        self.assertEqual((root.size, root.left.size, root.right.size), (6, 3, 2))
        self.assertIsNone(removed.left)
        self.assertIsNone(removed.right)

    def test_delete_with_successor_as_right_child(self):
        self.fill([5, 3, 8, 1, 4])
        self.tree.delete(3)
        left = self.tree.root.left
        self.assertEqual(left.key, 4)
        self.assertEqual(left.left.key, 1)
        self.assertIs(left.left.parent, left)
        self.assertEqual(left.size, 2)
        self.assertEqual(self.tree.root.size, 4)

    def test_delete_root_with_two_children(self):
        self.fill([2, 1, 3])
        self.tree.delete(2)
        self.assertEqual(self.tree.root.key, 3)
        self.assertEqual(self.tree.root.left.key, 1)
        assert_tree_invariants(self, self.tree)

    def test_format_tree(self):
        self.fill([1, 0, 2, 3, -1])
        expected = "\n".join([
            "Tree printout",
            "Level 0:\t1: {L 0, R 2} Size: 5",
            "Level 1:\t0: {L -1} Size: 2 | 2: {R 3} Size: 2",
            "Level 2:\t-1: {} Size: 1 | 3: {} Size: 1",
        ])
        self.assertEqual(self.tree.format_tree(), expected)

    def test_format_empty_tree(self):
        self.assertEqual(self.tree.format_tree(), "Tree printout")

    def test_plain_tree_never_rotates(self):
        self.fill(range(20))
        self.tree.get(10)
        self.assertEqual(self.tree.total_rotations, 0)


class TestOrderedSplayTreeContract(OrderedIndexContract, unittest.TestCase):
    tree_class = OrderedSplayTree


if __name__ == '__main__':
    unittest.main()
