import itertools
import random

import pytest

from bitops import BitWriter
from errors import (
    EmptyInputError,
    InvalidStructureError,
    SymbolNotFoundError,
)
from huffman import (
    HuffmanCode,
    HuffmanNode,
    build_tree,
    count_frequencies,
    fixed_width_length,
)


def _code(freqs):
    h = HuffmanCode()
    h.build_from_frequencies(freqs)
    return h


def _brute_force_cost(freqs):
    """Cheapest prefix code: minimum over code lengths satisfying Kraft."""
    weights = list(freqs.values())
    n = len(weights)
    if n == 1:
        return weights[0]
    limit = n - 1
    best = None
    for lengths in itertools.product(range(1, limit + 1), repeat=n):
        if sum(1 << (limit - length) for length in lengths) > 1 << limit:
            continue
        cost = sum(w * length for w, length in zip(weights, lengths))
        if best is None or cost < best:
            best = cost
    return best


def test_count_frequencies():
    assert count_frequencies("aaabbcd") == {"a": 3, "b": 2, "c": 1, "d": 1}
    assert count_frequencies("") == {}


def test_count_frequencies_sum_matches_length(sample_texts):
    for text in sample_texts:
        freqs = count_frequencies(text)
        assert sum(freqs.values()) == len(text)
        assert set(freqs) == set(text)


def test_build_tree_empty_raises():
    with pytest.raises(EmptyInputError):
        _ = build_tree({})
    with pytest.raises(ValueError):
        _ = build_tree({})


def test_build_tree_rejects_non_positive_weight():
    with pytest.raises(ValueError):
        _ = build_tree({"a": 2, "b": 0})


def test_build_tree_shape_for_aaabbcd():
    root = build_tree({"a": 3, "b": 2, "c": 1, "d": 1})
    assert root.weight == 7
    assert root.left.symbol == "a"
    assert root.right.weight == 4
    assert root.right.left.symbol == "b"
    assert root.right.right.left.symbol == "c"
    assert root.right.right.right.symbol == "d"


def test_build_single_symbol_is_leaf():
    root = build_tree({"a": 4})
    assert root.is_leaf
    assert root.weight == 4
    assert root.left is None and root.right is None


def test_weight_invariant(sample_texts, walk_nodes_fn):
    for text in sample_texts:
        freqs = count_frequencies(text)
        for node in walk_nodes_fn(build_tree(freqs)):
            if node.is_leaf:
                assert node.weight == freqs[node.symbol]
            else:
                assert node.weight == node.left.weight + node.right.weight


def test_tie_break_orders_leaves_by_symbol():
    h = _code({"d": 1, "c": 1, "b": 1, "a": 1})
    assert h.codes == {"a": "00", "b": "01", "c": "10", "d": "11"}


def test_tie_break_prefers_leaf_over_merged_node():
    h = _code({"a": 2, "b": 1, "c": 1})
    assert h.codes == {"a": "0", "b": "10", "c": "11"}


def test_codes_for_aaabbcd():
    h = _code(count_frequencies("aaabbcd"))
    assert h.codes == {"a": "0", "b": "10", "c": "110", "d": "111"}
    assert h.code_lengths == {"a": 1, "b": 2, "c": 3, "d": 3}
    assert h.encoded_length(count_frequencies("aaabbcd")) == 13


def test_build_from_frequencies_empty():
    h = HuffmanCode()
    h.build_from_frequencies({})
    assert h.root is None
    assert h.codes == {}
    assert h.decode_table == {}
    with pytest.raises(SymbolNotFoundError):
        _ = h.encode_symbol("a")


def test_build_single_symbol_and_encode():
    h = _code({"A": 10})
    assert h.code_lengths == {"A": 1}
    assert h.encode_symbol("A") == "0"
    assert h.decode_table == {"0": "A"}


def test_encode_symbol_unknown_is_lookup_error():
    h = _code({"a": 1, "b": 2})
    with pytest.raises(LookupError) as exc:
        _ = h.encode_symbol("z")
    assert exc.value.symbol == "z"


def test_codes_are_prefix_free(sample_texts):
    for text in sample_texts:
        codes = list(_code(count_frequencies(text)).codes.values())
        for a, b in itertools.permutations(codes, 2):
            assert not b.startswith(a)


def test_decode_table_inverts_codes(sample_texts):
    for text in sample_texts:
        h = _code(count_frequencies(text))
        assert set(h.codes) == set(text)
        for symbol, code in h.codes.items():
            assert h.decode_table[code] == symbol
        assert h.symbols == sorted(set(text))


@pytest.mark.parametrize("freqs", [
    {"a": 3, "b": 2, "c": 1, "d": 1},
    {"a": 5, "b": 9, "c": 12, "d": 13, "e": 16, "f": 45},
    {"a": 1, "b": 1, "c": 1, "d": 1, "e": 1},
    {"x": 10, "y": 1},
    {"p": 1, "q": 2, "r": 4, "s": 8, "t": 16},
])
def test_encoded_length_is_optimal(freqs):
    assert _code(freqs).encoded_length(freqs) == _brute_force_cost(freqs)


def test_encoded_length_is_optimal_random_tables():
    rng = random.Random(456)
    for _ in range(20):
        n = rng.randint(1, 5)
        freqs = {chr(ord("a") + i): rng.randint(1, 30) for i in range(n)}
        assert _code(freqs).encoded_length(freqs) == _brute_force_cost(freqs)


def test_build_is_deterministic(sample_texts):
    for text in sample_texts:
        freqs = count_frequencies(text)
        h1, h2 = _code(freqs), _code(dict(reversed(list(freqs.items()))))
        assert h1.codes == h2.codes
        assert h1.save_tree() == h2.save_tree()


def test_build_from_tree_missing_child_raises():
    root = HuffmanNode(weight=2, left=HuffmanNode("a", 1), right=None)
    with pytest.raises(InvalidStructureError):
        HuffmanCode().build_from_tree(root)


def test_build_from_tree_duplicate_symbol_raises():
    root = HuffmanNode(weight=2, left=HuffmanNode("a", 1), right=HuffmanNode("a", 1))
    with pytest.raises(InvalidStructureError):
        HuffmanCode().build_from_tree(root)


def test_save_tree_layout_for_aaabbcd():
    meta = _code(count_frequencies("aaabbcd")).save_tree()
    # 5-bit width + 3 internal nodes + 4 leaves of 1 + 7 bits
    assert len(meta) == 5
    assert meta[0] >> 3 == 7


def test_tree_roundtrip_codes_stable(sample_texts):
    for text in sample_texts:
        h1 = _code(count_frequencies(text))
        meta = h1.save_tree()

        h2 = HuffmanCode()
        consumed = h2.load_tree(meta)
        assert consumed == len(meta)
        assert h1.codes == h2.codes
        assert h1.symbols == h2.symbols


def test_save_tree_empty_raises():
    with pytest.raises(EmptyInputError):
        _ = HuffmanCode().save_tree()


def test_load_tree_truncated_raises():
    meta = _code(count_frequencies("aaabbcd")).save_tree()
    with pytest.raises(InvalidStructureError):
        HuffmanCode().load_tree(meta[:-1])


def test_load_tree_zero_width_raises():
    bw = BitWriter()
    bw.write_bits(0, 5)
    with pytest.raises(InvalidStructureError):
        HuffmanCode().load_tree(bw.flush())


def test_load_tree_invalid_code_point_raises():
    bw = BitWriter()
    bw.write_bits(21, 5)
    bw.write_bit(1)
    bw.write_bits(0x1FFFFF, 21)
    with pytest.raises(InvalidStructureError):
        HuffmanCode().load_tree(bw.flush())


def test_fixed_width_length():
    assert fixed_width_length(count_frequencies("aaabbcd")) == 14
    assert fixed_width_length({}) == 0
    assert fixed_width_length({"a": 4}) == 4
    assert fixed_width_length({c: 1 for c in "abcde"}) == 15


def test_huffman_never_worse_than_fixed_width(sample_texts):
    for text in sample_texts:
        freqs = count_frequencies(text)
        assert _code(freqs).encoded_length(freqs) <= fixed_width_length(freqs)


def test_load_tree_surrogate_code_point_raises():
    bw = BitWriter()
    bw.write_bits(16, 5)
    bw.write_bit(1)
    bw.write_bits(0xD800, 16)
    with pytest.raises(InvalidStructureError):
        HuffmanCode().load_tree(bw.flush())


def test_deep_tree_builds_codes_beyond_recursion_limit(chain_tree_fn):
    h = HuffmanCode()
    h.build_from_tree(chain_tree_fn(3000))
    assert len(h.codes) == 3001
    assert h.codes[chr(0x100)] == "0"
    assert h.codes[chr(0x100 + 2999)] == "1" * 2999 + "0"
    assert h.codes[chr(0x100 + 3000)] == "1" * 3000


def test_deep_tree_save_and_load(chain_tree_fn):
    h1 = HuffmanCode()
    h1.build_from_tree(chain_tree_fn(3000))
    meta = h1.save_tree()

    h2 = HuffmanCode()
    assert h2.load_tree(meta) == len(meta)
    assert h2.codes == h1.codes


def test_deep_tree_with_repeated_leaf_raises(chain_tree_fn):
    root = chain_tree_fn(3000)
    root.left.symbol = chr(0x100 + 3000)
    with pytest.raises(InvalidStructureError):
        HuffmanCode().build_from_tree(root)
