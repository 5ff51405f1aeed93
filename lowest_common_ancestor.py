# lowest_common_ancestor.py


def _present_below(node, key):
    """Returns True if key is stored in the subtree rooted at node."""
    while node is not None:
        if key < node.key:
            node = node.left
        elif key > node.key:
            node = node.right
        else:
            return True
    return False


def lowest_common_ancestor(tree, key1, key2):
    """
    Finds the deepest node that is an ancestor of both keys.

    Works on any OrderStatsTree, including OrderedSplayTree, and never restructures it.

    Parameters:
        tree (OrderStatsTree): The tree to query.
        key1: First key.
        key2: Second key.

    Returns:
        Entry: Key-value pair of the lowest common ancestor, or None if either key is absent.
    """
    node = tree.root
    while node is not None:
        if key1 > node.key and key2 > node.key:
            node = node.right
        elif key1 < node.key and key2 < node.key:
            node = node.left
        else:
            break

    if node is None:
        return None

    # The split point is only an answer if both keys are really below it.
    if not _present_below(node, key1) or not _present_below(node, key2):
        return None
    return node.entry()
