"""Unit tests for inclusion proof generation and verification."""

import hashlib

import pytest

from merkletree import (
    Hasher,
    IndexOutOfRangeError,
    OddNodePolicy,
    Proof,
    ProofStep,
    Side,
    VerificationError,
    build,
    compute_root,
    generate_proof,
    verify,
    verify_leaf_hash,
    verify_or_raise,
)


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def leaf(data: bytes) -> bytes:
    return sha256(b"\x00" + data)


def node(left: bytes, right: bytes) -> bytes:
    return sha256(b"\x01" + left + right)


def make_leaves(count: int):
    return [f"item {i}".encode() for i in range(count)]


def flip_byte(data: bytes, position: int) -> bytes:
    mutated = bytearray(data)
    mutated[position] ^= 0x01
    return bytes(mutated)


def test_proof_for_power_of_two_tree() -> None:
    """The proof for "c" in a, b, c, d is d on the right, then ab on the left."""
    tree = build([b"a", b"b", b"c", b"d"])
    proof = generate_proof(tree, 2)

    assert proof.path == (
        ProofStep(sibling=leaf(b"d"), side=Side.RIGHT),
        ProofStep(sibling=node(leaf(b"a"), leaf(b"b")), side=Side.LEFT),
    )
    assert proof.leaf_index == 2
    assert proof.tree_size == 4
    assert verify(b"c", proof, tree.root)


def test_proof_for_carried_leaf() -> None:
    """A leaf carried up skips the level it had no sibling on."""
    tree = build([b"x", b"y", b"z"])
    proof = generate_proof(tree, 2)

    assert proof.path == (
        ProofStep(sibling=node(leaf(b"x"), leaf(b"y")), side=Side.LEFT),
    )
    assert verify(b"z", proof, tree.root)


def test_proof_for_duplicated_leaf() -> None:
    """Under duplicate-last, the lone node is its own right sibling."""
    tree = build([b"x", b"y", b"z"], policy=OddNodePolicy.DUPLICATE_LAST)
    proof = generate_proof(tree, 2)

    assert proof.path == (
        ProofStep(sibling=leaf(b"z"), side=Side.RIGHT),
        ProofStep(sibling=node(leaf(b"x"), leaf(b"y")), side=Side.LEFT),
    )
    assert len(proof.path) == tree.height
    assert verify(b"z", proof, tree.root)


def test_single_leaf_proof_is_empty() -> None:
    tree = build([b"only"])
    proof = generate_proof(tree, 0)

    assert proof.path == ()
    assert verify(b"only", proof, tree.root)
    assert not verify(b"other", proof, tree.root)


@pytest.mark.parametrize("policy", list(OddNodePolicy))
def test_inclusion_round_trip(policy: OddNodePolicy) -> None:
    """Every leaf of every small tree verifies against its root."""
    for count in range(1, 34):
        leaves = make_leaves(count)
        tree = build(leaves, policy=policy)
        for index, data in enumerate(leaves):
            proof = tree.get_proof(index)
            assert len(proof.path) <= tree.height
            assert verify(data, proof, tree.root), (count, index)


def test_duplicate_last_proofs_have_tree_height() -> None:
    for count in range(1, 20):
        tree = build(make_leaves(count), policy=OddNodePolicy.DUPLICATE_LAST)
        for index in range(count):
            assert len(tree.get_proof(index).path) == tree.height


def test_leaf_tamper_detection() -> None:
    """Mutating any byte of the leaf makes verification fail."""
    leaves = make_leaves(11)
    tree = build(leaves)

    for index, data in enumerate(leaves):
        proof = tree.get_proof(index)
        for position in range(len(data)):
            assert not verify(flip_byte(data, position), proof, tree.root)


def test_non_bytes_leaf_is_rejected() -> None:
    """An int is not read as that many zero bytes."""
    tree = build([b"\x00\x00\x00", b"x"])
    proof = generate_proof(tree, 0)

    assert verify(b"\x00\x00\x00", proof, tree.root)
    with pytest.raises(TypeError):
        verify(3, proof, tree.root)
    with pytest.raises(TypeError):
        verify("c", proof, tree.root)
    with pytest.raises(TypeError):
        verify_or_raise(3, proof, tree.root)


@pytest.mark.parametrize("policy", list(OddNodePolicy))
def test_path_tamper_detection(policy: OddNodePolicy) -> None:
    """Mutating any byte of any sibling digest makes verification fail."""
    leaves = make_leaves(7)
    tree = build(leaves, policy=policy)

    for index, data in enumerate(leaves):
        proof = tree.get_proof(index)
        for step_number, step in enumerate(proof.path):
            for position in range(len(step.sibling)):
                path = list(proof.path)
                path[step_number] = ProofStep(sibling=flip_byte(step.sibling, position), side=step.side)
                tampered = Proof(leaf_index=index, tree_size=tree.leaf_count, path=tuple(path))
                assert not verify(data, tampered, tree.root)


def test_swapped_side_fails() -> None:
    tree = build([b"a", b"b", b"c", b"d"])
    proof = tree.get_proof(0)
    first = proof.path[0]
    path = (ProofStep(sibling=first.sibling, side=Side.LEFT),) + proof.path[1:]
    tampered = Proof(leaf_index=0, tree_size=4, path=path)

    assert not verify(b"a", tampered, tree.root)


def test_wrong_root_fails() -> None:
    tree = build(make_leaves(4))
    other = build(make_leaves(5))

    assert not verify(b"item 0", tree.get_proof(0), other.root)


def test_malformed_digests_fail() -> None:
    tree = build(make_leaves(4))
    proof = tree.get_proof(1)

    assert not verify(b"item 1", proof, tree.root[:-1])
    assert not verify_leaf_hash(leaf(b"item 1")[:16], proof, tree.root)

    short = Proof(
        leaf_index=1,
        tree_size=4,
        path=(ProofStep(sibling=b"\x00" * 16, side=Side.LEFT),) + proof.path[1:],
    )
    assert not verify(b"item 1", short, tree.root)


def test_overlong_proof_fails() -> None:
    tree = build(make_leaves(2))
    proof = tree.get_proof(0)
    padded = Proof(
        leaf_index=0,
        tree_size=2,
        path=proof.path + (ProofStep(sibling=tree.root, side=Side.RIGHT),),
    )

    assert not verify(b"item 0", padded, node(tree.root, tree.root))


def test_wrong_hasher_fails() -> None:
    tree = build(make_leaves(4))
    proof = tree.get_proof(3)

    assert not verify(b"item 3", proof, tree.root, Hasher("sha3_256"))


def test_other_hasher_round_trip() -> None:
    hasher = Hasher("blake2b")
    leaves = make_leaves(6)
    tree = build(leaves, hasher=hasher)

    for index, data in enumerate(leaves):
        assert verify(data, tree.get_proof(index), tree.root, hasher)


def test_verify_leaf_hash_and_compute_root() -> None:
    tree = build(make_leaves(6))
    proof = tree.get_proof(4)

    assert compute_root(tree.leaf_hash(4), proof) == tree.root
    assert verify_leaf_hash(tree.leaf_hash(4), proof, tree.root)


def test_verify_or_raise() -> None:
    tree = build(make_leaves(3))
    proof = tree.get_proof(1)

    verify_or_raise(b"item 1", proof, tree.root)
    with pytest.raises(VerificationError):
        verify_or_raise(b"item 2", proof, tree.root)


@pytest.mark.parametrize("index", [-1, 4, 100, True, "1", 1.0])
def test_index_out_of_range(index) -> None:
    tree = build(make_leaves(4))

    with pytest.raises(IndexOutOfRangeError):
        generate_proof(tree, index)


def test_index_error_is_an_index_error() -> None:
    tree = build(make_leaves(2))

    with pytest.raises(IndexError):
        tree.get_proof(2)


def test_proof_outlives_tree() -> None:
    """A proof is a detached value and keeps verifying after the tree is gone."""
    tree = build(make_leaves(5))
    proof = tree.get_proof(3)
    root = tree.root
    del tree

    assert verify(b"item 3", proof, root)
