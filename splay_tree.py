# splay_tree.py
import logging

from order_stats_tree import OrderStatsTree, _size

logger = logging.getLogger(__name__)


class OrderedSplayTree(OrderStatsTree):
    """
    Splay tree that keeps subtree sizes, so rank and select still work.

    Inserted nodes (new or updated) and nodes found by a successful search are
    pushed to the root through zig, zig-zig and zig-zag steps.
    Deletions and searches that miss do not splay.
    """

    def insert(self, key, value=None):
        """Inserts or updates a key-value pair and splays its node to the root."""
        inserted, node = self._insert_node(key, value)
        self._splay(node)
        return inserted

    def search(self, key):
        """Searches for a key and splays it to the root if found."""
        node = self._find_node(key)
        if node is None:
            return None
        self._splay(node)
        return node.value

    def _right_rotate(self, x):
        """Performs a right rotation around the given node x, promoting its left child."""
        y = x.left
        # x keeps its right subtree and y's right subtree; y and y.left leave it
        x.size -= 1 + _size(y.left)

        x.left = y.right
        if y.right is not None:
            y.right.parent = x
        y.parent = x.parent

        if x.parent is None:  # x is root
            self.root = y
        elif x is x.parent.right:
            x.parent.right = y
        else:
            x.parent.left = y

        y.right = x
        x.parent = y
        y.size = 1 + _size(y.left) + _size(y.right)
        self.total_rotations += 1

    def _left_rotate(self, x):
        """Performs a left rotation around the given node x, promoting its right child."""
        y = x.right
        x.size -= 1 + _size(y.right)

        x.right = y.left
        if y.left is not None:
            y.left.parent = x
        y.parent = x.parent

        if x.parent is None:  # x is root
            self.root = y
        elif x is x.parent.left:
            x.parent.left = y
        else:
            x.parent.right = y

        y.left = x
        x.parent = y
        y.size = 1 + _size(y.left) + _size(y.right)
        self.total_rotations += 1

    def _splay(self, x):
        """Splays the given node x to the root of the tree."""
        rotations_before = self.total_rotations
        while x.parent is not None:
            p = x.parent
            g = p.parent
            if g is None:
                # Zig step
                if x is p.left:
                    self._right_rotate(p)
                else:
                    self._left_rotate(p)
            elif x is p.left and p is g.left:
                # Zig-Zig step (left-left): parent goes up first, then x
                self._right_rotate(g)
                self._right_rotate(p)
            elif x is p.right and p is g.right:
                # Zig-Zig step (right-right)
                self._left_rotate(g)
                self._left_rotate(p)
            elif x is p.right and p is g.left:
                # Zig-Zag step (left-right): x goes up twice
                self._left_rotate(p)
                self._right_rotate(g)
            else:
                # Zig-Zag step (right-left)
                self._right_rotate(p)
                self._left_rotate(g)
        logger.debug("Splayed %r to the root in %d rotations.", x.key, self.total_rotations - rotations_before)
