import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def sample_texts():
    """Inputs covering repeats, punctuation, whitespace and non-ASCII text."""
    return [
        "aaabbcd",
        "aaaa",
        "ab",
        "Hello, world!",
        "abracadabra abracadabra\n",
        "The quick brown fox jumps over the lazy dog. " * 3,
        "line one\r\nline two\r\n\ttabbed",
        "héllo wörld ✓ ✓ ✓",
        "\U0001F600\U0001F600x",
    ]


def walk_nodes(root):
    """Yield every node of a tree, parents before children."""
    stack = [root] if root is not None else []
    while stack:
        node = stack.pop()
        yield node
        if not node.is_leaf:
            stack.extend(c for c in (node.right, node.left) if c is not None)


@pytest.fixture()
def walk_nodes_fn():
    """
    Fixture that provides the walk_nodes helper without importing conftest.
    """
    return walk_nodes


def chain_tree(depth):
    """Build a maximally deep tree: ``depth`` internal nodes in a chain.

    Leaf ``i`` hangs on the left of the i-th internal node; the last leaf
    closes the chain on the right. Symbols start at U+0100.
    """
    from huffman import HuffmanNode

    node = HuffmanNode(chr(0x100 + depth))
    for i in reversed(range(depth)):
        node = HuffmanNode(left=HuffmanNode(chr(0x100 + i)), right=node)
    return node


@pytest.fixture()
def chain_tree_fn():
    """Fixture that provides the chain_tree helper."""
    return chain_tree
