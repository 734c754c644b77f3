"""Unit tests for the proof models and their JSON form."""

import json

import pytest
from pydantic import ValidationError

from merkletree import ConsistencyProof, Proof, ProofStep, Side, build, verify, verify_consistency


def test_proof_json_round_trip() -> None:
    """A proof parsed back from JSON still verifies."""
    tree = build([b"a", b"b", b"c", b"d", b"e"])
    proof = tree.get_proof(2)

    encoded = proof.model_dump_json()
    data = json.loads(encoded)
    assert data["leaf_index"] == 2
    assert data["tree_size"] == 5
    assert data["path"][0] == {"sibling": tree.leaf_hash(3).hex(), "side": "right"}

    decoded = Proof.model_validate_json(encoded)
    assert decoded == proof
    assert verify(b"c", decoded, tree.root)


def test_consistency_proof_json_round_trip() -> None:
    leaves = [bytes([i]) for i in range(9)]
    new_tree = build(leaves)
    old_root = build(leaves[:3]).root
    proof = new_tree.get_consistency_proof(3)

    data = json.loads(proof.model_dump_json())
    assert data["hashes"] == [h.hex() for h in proof.hashes]

    decoded = ConsistencyProof.model_validate_json(proof.model_dump_json())
    assert decoded == proof
    assert verify_consistency(old_root, 3, new_tree.root, 9, decoded)


def test_python_dump_keeps_bytes() -> None:
    step = ProofStep(sibling=b"\x01" * 32, side=Side.LEFT)
    assert step.model_dump()["sibling"] == b"\x01" * 32


def test_invalid_hex_rejected() -> None:
    with pytest.raises(ValidationError):
        ProofStep.model_validate_json('{"sibling": "zz", "side": "left"}')
    with pytest.raises(ValidationError):
        ConsistencyProof.model_validate({"old_size": 1, "new_size": 2, "hashes": ["xyz"]})


def test_invalid_side_rejected() -> None:
    with pytest.raises(ValidationError):
        ProofStep(sibling=b"\x00", side="up")


def test_leaf_index_must_be_inside_tree() -> None:
    with pytest.raises(ValidationError):
        Proof(leaf_index=3, tree_size=3)
    with pytest.raises(ValidationError):
        Proof(leaf_index=-1, tree_size=3)


def test_old_size_must_not_exceed_new_size() -> None:
    with pytest.raises(ValidationError):
        ConsistencyProof(old_size=4, new_size=3)
    with pytest.raises(ValidationError):
        ConsistencyProof(old_size=0, new_size=3)


def test_proofs_are_immutable() -> None:
    proof = build([b"a", b"b"]).get_proof(0)

    with pytest.raises(ValidationError):
        proof.leaf_index = 1
    assert proof.siblings == [proof.path[0].sibling]
