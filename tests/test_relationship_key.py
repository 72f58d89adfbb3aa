# =============================================================================
# File: tests/test_relationship_key.py
# =============================================================================

import itertools

import pytest

from viewsync.chat.value_objects import relationship_key, relationship_members


IDS = ["alice", "bob", "Bob", "carol", "a1", "a10", "a2", "zz", "a_b", "b_c", "a", "c", "b", "x%5Fy", "x_y", "p/q", ""]


def test_key_is_commutative():
    for a, b in itertools.permutations(IDS, 2):
        assert relationship_key(a, b) == relationship_key(b, a)


def test_smaller_id_comes_first():
    assert relationship_key("bob", "alice") == "alice_bob"
    assert relationship_key("a2", "a10") == "a10_a2"


def test_distinct_pairs_get_distinct_keys():
    pairs = {frozenset(pair) for pair in itertools.combinations(IDS, 2)}
    keys = {relationship_key(*sorted(pair)) for pair in pairs}
    assert len(keys) == len(pairs)


def test_ids_with_separator_do_not_collide():
    assert relationship_key("a_b", "c") != relationship_key("a", "b_c")
    assert relationship_key("x%5Fy", "z") != relationship_key("x_y", "z")


def test_key_is_a_single_path_segment():
    for a, b in itertools.combinations(IDS, 2):
        assert "/" not in relationship_key(a, b)


def test_members_invert_key():
    for a, b in itertools.combinations(IDS, 2):
        assert relationship_members(relationship_key(a, b)) == tuple(sorted((a, b)))


@pytest.mark.parametrize("bad", ["alice", "a_b_c"])
def test_members_reject_malformed_keys(bad):
    with pytest.raises(ValueError):
        relationship_members(bad)
