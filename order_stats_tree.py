# order_stats_tree.py
import logging
import operator
from collections import deque, namedtuple

logger = logging.getLogger(__name__)

Entry = namedtuple('Entry', ['key', 'value'])


class Node:
    """
    Represents a node in the order statistics tree.
    Each node has a key, a value, the size of the subtree rooted at it (itself included),
    left and right children, and a parent.
    """
    def __init__(self, key, value=None):
        self.key = key
        self.value = value
        self.size = 1
        self.left = None
        self.right = None
        self.parent = None

    def entry(self):
        return Entry(self.key, self.value)

    def __repr__(self):
        if self.left is not None and self.right is not None:
            children = f"{{L {self.left.key!r}, R {self.right.key!r}}}"
        elif self.left is not None:
            children = f"{{L {self.left.key!r}}}"
        elif self.right is not None:
            children = f"{{R {self.right.key!r}}}"
        else:
            children = "{}"
        return f"{self.key!r}: {children} Size: {self.size}"


def _size(node):
    return node.size if node is not None else 0


class OrderStatsTree:
    """
    Binary search tree augmented with subtree sizes.

    Supports insert, delete, get, min, max, predecessor, successor, rank and select
    in O(height) time, and the sorted list of entries in O(n) time.
    Keys must be unique and totally ordered. Queries that miss return None.

    The tree is not safe for concurrent mutation; callers sharing one between
    threads must synchronise externally.
    """
    def __init__(self):
        self.root = None
        self.total_rotations = 0  # Plain trees never rotate; kept for uniform metrics

    # ----------------------------------------------------------------------
    # Mutators
    # ----------------------------------------------------------------------

    def insert(self, key, value=None):
        """
        Inserts a key-value pair. Returns True if a new node was created and False
        if the key already existed, in which case only its value is replaced.
        """
        inserted, _ = self._insert_node(key, value)
        return inserted

    def _insert_node(self, key, value):
        """Inserts or updates, returning (created, node) so subclasses can restructure around it."""
        self._check_key(key)
        z = self.root
        p = None

        # Sizes are only committed once we know a new leaf will be attached.
        while z is not None:
            p = z
            if key < z.key:
                z = z.left
            elif key > z.key:
                z = z.right
            else:
                z.value = value
                return False, z

        z = Node(key, value)
        z.parent = p

        if p is None:  # The tree was empty
            self.root = z
        elif key < p.key:
            p.left = z
        else:
            p.right = z

        self._increment_sizes(p)
        return True, z

    def delete(self, key):
        """Deletes the node with the given key. Returns False if the key is not in the tree."""
        node = self._find_node(key)
        if node is None:
            return False

        if node.left is None or node.right is None:
            # Zero or one child: splice the child (possibly None) into the node's slot
            child = node.left if node.left is not None else node.right
            logger.debug("Deleting %r with %d child(ren).", key, 0 if child is None else 1)
            self._decrement_sizes(node.parent)
            self._transplant(node, child)
        else:
            successor = self._subtree_minimum(node.right)
            logger.debug("Deleting %r with two children, successor %r.", key, successor.key)
            if successor.parent is not node:
                # Successor's parent adopts the successor's right child, then the
                # successor takes over the deleted node's right subtree.
                self._decrement_sizes(successor.parent)
                self._transplant(successor, successor.right)
                successor.right = node.right
                successor.right.parent = successor
            else:
                self._decrement_sizes(node.parent)
            self._transplant(node, successor)
            successor.left = node.left
            successor.left.parent = successor
            self._update_size(successor)

        node.left = node.right = node.parent = None
        return True

    # ----------------------------------------------------------------------
    # Point queries
    # ----------------------------------------------------------------------

    def search(self, key):
        """Returns the value stored under key, or None if the key is absent."""
        node = self._find_node(key)
        if node is None:
            return None
        return node.value

    def get(self, key, default=None):
        """
        Returns the value stored under key, or default if the key is absent.
        Use `key in tree` to tell an absent key from a stored None value.
        """
        value = self.search(key)
        if value is None and key not in self:
            return default
        return value

    def __contains__(self, key):
        return self._find_node(key) is not None

    def __len__(self):
        return _size(self.root)

    def __iter__(self):
        for node in self._iter_nodes():
            yield node.key

    # ----------------------------------------------------------------------
    # Order queries
    # ----------------------------------------------------------------------

    def min(self):
        """Returns the entry with the smallest key, or None if the tree is empty."""
        if self.root is None:
            return None
        return self._subtree_minimum(self.root).entry()

    def max(self):
        """Returns the entry with the largest key, or None if the tree is empty."""
        if self.root is None:
            return None
        return self._subtree_maximum(self.root).entry()

    def predecessor(self, key):
        """Returns the entry immediately preceding key, or None if key is absent or smallest."""
        node = self._find_node(key)
        if node is None:
            return None
        pred = self._predecessor_node(node)
        return pred.entry() if pred is not None else None

    def successor(self, key):
        """Returns the entry immediately following key, or None if key is absent or largest."""
        node = self._find_node(key)
        if node is None:
            return None
        succ = self._successor_node(node)
        return succ.entry() if succ is not None else None

    def rank(self, key):
        """
        Returns the 0-indexed position of key in sorted order, or None if absent.

        Every ancestor reached from its right child is smaller than key, and so is
        everything in that ancestor's left subtree.
        """
        node = self._find_node(key)
        if node is None:
            return None

        rank = _size(node.left)
        while node.parent is not None:
            if node is node.parent.right:
                rank += _size(node.parent.left) + 1
            node = node.parent
        return rank

    def select(self, k):
        """Returns the entry of the k-th smallest key (0-indexed), or None if k is out of range."""
        k = operator.index(k)
        if k < 0 or k >= len(self):
            return None

        node = self.root
        while True:
            left_size = _size(node.left)
            if k == left_size:
                return node.entry()
            if k < left_size:
                node = node.left
            else:
                k -= left_size + 1
                node = node.right

    def sorted_entries(self):
        """Returns a list of all entries in ascending key order."""
        return [node.entry() for node in self._iter_nodes()]

    # ----------------------------------------------------------------------
    # Structure diagnostics
    # ----------------------------------------------------------------------

    def depth(self, key):
        """Returns the number of edges between the root and key's node, or None if absent."""
        z = self.root
        depth = 0
        while z is not None:
            if key < z.key:
                z = z.left
            elif key > z.key:
                z = z.right
            else:
                return depth
            depth += 1
        return None

    def height(self):
        """Returns the number of edges on the longest root-to-leaf path, -1 for an empty tree."""
        height = -1
        level = [self.root] if self.root is not None else []
        while level:
            height += 1
            level = [child for node in level for child in (node.left, node.right) if child is not None]
        return height

    def node_depths(self):
        """Returns the depth of every node, in ascending key order."""
        depths = []
        stack = []
        z, d = self.root, 0
        while stack or z is not None:
            while z is not None:
                stack.append((z, d))
                z, d = z.left, d + 1
            z, d = stack.pop()
            depths.append(d)
            z, d = z.right, d + 1
        return depths

    def format_tree(self):
        """Returns a level-by-level dump of parent-child relationships."""
        lines = ["Tree printout"]
        queue = deque([(0, self.root)] if self.root is not None else [])
        current_level = -1
        parts = []
        while queue:
            level, node = queue.popleft()
            if level > current_level:
                if parts:
                    lines.append(f"Level {current_level}:\t" + " | ".join(parts))
                parts = []
                current_level = level
            parts.append(repr(node))
            if node.left is not None:
                queue.append((level + 1, node.left))
            if node.right is not None:
                queue.append((level + 1, node.right))
        if parts:
            lines.append(f"Level {current_level}:\t" + " | ".join(parts))
        return "\n".join(lines)

    # ----------------------------------------------------------------------
    # Internal helpers
    # ----------------------------------------------------------------------

    @staticmethod
    def _check_key(key):
        if key is None:
            raise TypeError("Keys must be totally ordered values, got None")

    def _find_node(self, key):
        """Finds the node with the given key without restructuring the tree."""
        z = self.root
        while z is not None:
            if key < z.key:
                z = z.left
            elif key > z.key:
                z = z.right
            else:
                return z
        return None

    def _iter_nodes(self):
        """Yields nodes in order without recursion, so degenerate trees are safe."""
        stack = []
        z = self.root
        while stack or z is not None:
            while z is not None:
                stack.append(z)
                z = z.left
            z = stack.pop()
            yield z
            z = z.right

    def _transplant(self, u, v):
        """Replaces the subtree rooted at node u with the subtree rooted at node v."""
        if u.parent is None:
            self.root = v
        elif u is u.parent.left:
            u.parent.left = v
        else:
            u.parent.right = v
        if v is not None:
            v.parent = u.parent

    @staticmethod
    def _subtree_minimum(node):
        while node.left is not None:
            node = node.left
        return node

    @staticmethod
    def _subtree_maximum(node):
        while node.right is not None:
            node = node.right
        return node

    def _successor_node(self, node):
        if node.right is not None:
            return self._subtree_minimum(node.right)
        parent = node.parent
        while parent is not None and node is parent.right:
            node = parent
            parent = parent.parent
        return parent

    def _predecessor_node(self, node):
        if node.left is not None:
            return self._subtree_maximum(node.left)
        parent = node.parent
        while parent is not None and node is parent.left:
            node = parent
            parent = parent.parent
        return parent

    @staticmethod
    def _increment_sizes(node):
        while node is not None:
            node.size += 1
            node = node.parent

    @staticmethod
    def _decrement_sizes(node):
        while node is not None:
            node.size -= 1
            node = node.parent

    @staticmethod
    def _update_size(node):
        node.size = 1 + _size(node.left) + _size(node.right)
