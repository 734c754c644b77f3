"""
Inclusion proof generation and verification.

A proof lists, from the leaf up, the digest of the sibling at each level
and the side it sits on. Verification needs only the leaf, the proof and
the claimed root.
"""

import logging
from typing import TYPE_CHECKING, Optional

from merkletree.core.errors import IndexOutOfRangeError, VerificationError
from merkletree.core.hashing import Hasher, digests_equal, get_hasher
from merkletree.core.models import OddNodePolicy, Proof, ProofStep, Side

if TYPE_CHECKING:
    from merkletree.core.merkle import MerkleTree

logger = logging.getLogger(__name__)


def tree_height(size: int) -> int:
    """Height of a tree with ``size`` leaves, ``ceil(log2(size))``."""
    return (size - 1).bit_length()


def generate_proof(tree: 'MerkleTree', leaf_index: int) -> Proof:
    """
    Generate an inclusion proof for a leaf.

    Args:
        tree: The tree containing the leaf.
        leaf_index: The index of the leaf to prove inclusion for.

    Returns:
        The sibling path from the leaf to the root. Under ``CARRY_UP`` a
        level where the node was carried up contributes no step; under
        ``DUPLICATE_LAST`` the node itself is recorded as its right sibling.

    Raises:
        IndexOutOfRangeError: If the leaf does not exist.
    """
    if (
        isinstance(leaf_index, bool)
        or not isinstance(leaf_index, int)
        or not 0 <= leaf_index < tree.leaf_count
    ):
        raise IndexOutOfRangeError(leaf_index, tree.leaf_count)

    path = []
    index = leaf_index
    for level in tree.levels[:-1]:
        sibling = index ^ 1
        if sibling < len(level):
            side = Side.LEFT if index & 1 else Side.RIGHT
            path.append(ProofStep(sibling=level[sibling], side=side))
        elif tree.policy is OddNodePolicy.DUPLICATE_LAST:
            path.append(ProofStep(sibling=level[index], side=Side.RIGHT))
        index //= 2

    logger.debug("Generated inclusion proof for leaf %d of %d (%d steps)",
                 leaf_index, tree.leaf_count, len(path))
    return Proof(leaf_index=leaf_index, tree_size=tree.leaf_count, path=tuple(path))


def compute_root(leaf_hash: bytes, proof: Proof, hasher: Optional[Hasher] = None) -> bytes:
    """Fold a proof's path over a leaf digest and return the resulting root."""
    hasher = hasher or get_hasher()
    current = leaf_hash
    for step in proof.path:
        if step.side is Side.LEFT:
            current = hasher.hash_node(step.sibling, current)
        else:
            current = hasher.hash_node(current, step.sibling)
    return current


def verify_leaf_hash(
    leaf_hash: bytes,
    proof: Proof,
    expected_root: bytes,
    hasher: Optional[Hasher] = None,
) -> bool:
    """
    Verify an inclusion proof starting from an already hashed leaf.

    Returns:
        True if the proof recomputes ``expected_root``, False otherwise.
    """
    hasher = hasher or get_hasher()

    if not hasher.is_digest(leaf_hash) or not hasher.is_digest(expected_root):
        return False
    if len(proof.path) > tree_height(proof.tree_size):
        return False
    if not all(hasher.is_digest(step.sibling) for step in proof.path):
        return False

    computed = compute_root(leaf_hash, proof, hasher)
    if not digests_equal(computed, expected_root):
        logger.debug("Inclusion proof for leaf %d does not match root %s",
                     proof.leaf_index, bytes(expected_root).hex())
        return False
    return True


def verify(
    leaf_data: bytes,
    proof: Proof,
    expected_root: bytes,
    hasher: Optional[Hasher] = None,
) -> bool:
    """
    Verify that ``leaf_data`` is included under ``expected_root``.

    Args:
        leaf_data: The raw leaf data.
        proof: The inclusion proof for the leaf.
        expected_root: The root digest the proof should reproduce.
        hasher: The hash function the tree was built with.

    Returns:
        True if the proof is valid, False otherwise.

    Raises:
        TypeError: If ``leaf_data`` is not bytes-like.
    """
    hasher = hasher or get_hasher()
    return verify_leaf_hash(hasher.hash_leaf(leaf_data), proof, expected_root, hasher)


def verify_or_raise(
    leaf_data: bytes,
    proof: Proof,
    expected_root: bytes,
    hasher: Optional[Hasher] = None,
) -> None:
    """
    Like :func:`verify`, but raise on mismatch.

    Raises:
        VerificationError: If the proof does not reproduce ``expected_root``.
    """
    if not verify(leaf_data, proof, expected_root, hasher):
        raise VerificationError(
            f"Inclusion proof for leaf {proof.leaf_index} does not match the expected root"
        )
