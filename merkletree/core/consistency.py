"""
Consistency proofs for append-only trees.

A tree of ``old_size`` leaves is a prefix of a tree of ``new_size`` leaves
when the larger one was built by appending to the smaller one. The leaves
``[0, old_size)`` split into perfect subtrees, one for each set bit of
``old_size``, and those subtrees appear unchanged in both trees. The proof
carries their digests (unless ``old_size`` is a power of two, in which case
the single subtree is the old root itself) followed by the sibling digests
needed to climb from them to the new root.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from merkletree.core.errors import InvalidSizeError
from merkletree.core.hashing import Hasher, digests_equal, get_hasher
from merkletree.core.models import ODD_NODE_POLICY, ConsistencyProof, OddNodePolicy
from merkletree.core.proofs import tree_height

if TYPE_CHECKING:
    from merkletree.core.merkle import MerkleTree

logger = logging.getLogger(__name__)


class _ProofExhausted(Exception):
    pass


def prefix_subtrees(size: int) -> List[Tuple[int, int]]:
    """
    Positions of the perfect subtrees covering leaves ``[0, size)``.

    Returns:
        ``(level, index)`` pairs, largest subtree first.
    """
    positions = []
    start = 0
    for level in reversed(range(size.bit_length())):
        if size >> level & 1:
            positions.append((level, start >> level))
            start += 1 << level
    return positions


def _fold_subtrees(
    digests: Sequence[bytes],
    size: int,
    hasher: Hasher,
    policy: OddNodePolicy,
) -> bytes:
    """Rebuild the root of a ``size``-leaf tree from its prefix subtree digests."""
    by_level = {level: digest for (level, _), digest in zip(prefix_subtrees(size), digests)}
    tail: Optional[bytes] = None

    for level in range(tree_height(size)):
        subtree = by_level.get(level)
        if subtree is not None:
            if tail is not None:
                tail = hasher.hash_node(subtree, tail)
            elif policy is OddNodePolicy.DUPLICATE_LAST:
                tail = hasher.hash_node(subtree, subtree)
            else:
                tail = subtree
        elif tail is not None and policy is OddNodePolicy.DUPLICATE_LAST:
            tail = hasher.hash_node(tail, tail)

    if tail is None:
        return by_level[tree_height(size)]
    return tail


def _climb(
    known: Sequence[Tuple[int, int, bytes]],
    size: int,
    hasher: Hasher,
    policy: OddNodePolicy,
    sibling_at: Callable[[int, int], bytes],
) -> bytes:
    """
    Compute the root of a ``size``-leaf tree from some of its nodes.

    ``known`` holds ``(level, index, digest)`` triples. Any sibling that
    cannot be derived from them is requested from ``sibling_at``, level by
    level and left to right.
    """
    joining: Dict[int, Dict[int, bytes]] = {}
    for level, index, digest in known:
        joining.setdefault(level, {})[index] = digest

    height = tree_height(size)
    current: Dict[int, bytes] = {}
    for level in range(height):
        current.update(joining.get(level, {}))
        width = ((size - 1) >> level) + 1
        parents: Dict[int, bytes] = {}

        for index in sorted(current):
            parent = index // 2
            if parent in parents:
                continue
            digest = current[index]
            if index & 1:
                left = current.get(index - 1)
                if left is None:
                    left = sibling_at(level, index - 1)
                parents[parent] = hasher.hash_node(left, digest)
            elif index + 1 < width:
                right = current.get(index + 1)
                if right is None:
                    right = sibling_at(level, index + 1)
                parents[parent] = hasher.hash_node(digest, right)
            elif policy is OddNodePolicy.DUPLICATE_LAST:
                parents[parent] = hasher.hash_node(digest, digest)
            else:
                parents[parent] = digest

        current = parents

    current.update(joining.get(height, {}))
    return current[0]


def fold_prefix_root(tree: 'MerkleTree', size: int) -> bytes:
    """Root of the first ``size`` leaves of ``tree``, read from its levels."""
    digests = [tree.levels[level][index] for level, index in prefix_subtrees(size)]
    return _fold_subtrees(digests, size, tree.hasher, tree.policy)


def generate_consistency_proof(old_size: int, new_tree: 'MerkleTree') -> ConsistencyProof:
    """
    Generate a proof that ``new_tree`` extends its first ``old_size`` leaves.

    Args:
        old_size: The size of the earlier tree.
        new_tree: The current tree.

    Returns:
        A consistency proof; empty when ``old_size == new_tree.leaf_count``.

    Raises:
        InvalidSizeError: If ``old_size`` is not between 1 and the tree size.
    """
    new_size = new_tree.leaf_count
    if isinstance(old_size, bool) or not isinstance(old_size, int) or not 1 <= old_size <= new_size:
        raise InvalidSizeError(
            f"Size {old_size!r} is not a prefix of a tree of size {new_size}"
        )

    if old_size == new_size:
        return ConsistencyProof(old_size=old_size, new_size=new_size, hashes=())

    levels = new_tree.levels
    subtrees = [
        (level, index, levels[level][index])
        for level, index in prefix_subtrees(old_size)
    ]

    hashes: List[bytes] = []
    if len(subtrees) > 1:
        hashes.extend(digest for _, _, digest in subtrees)

    def sibling_at(level: int, index: int) -> bytes:
        digest = levels[level][index]
        hashes.append(digest)
        return digest

    _climb(subtrees, new_size, new_tree.hasher, new_tree.policy, sibling_at)

    logger.debug("Generated consistency proof %d -> %d (%d hashes)",
                 old_size, new_size, len(hashes))
    return ConsistencyProof(old_size=old_size, new_size=new_size, hashes=tuple(hashes))


def verify_consistency(
    old_root: bytes,
    old_size: int,
    new_root: bytes,
    new_size: int,
    proof: ConsistencyProof,
    hasher: Optional[Hasher] = None,
    policy: OddNodePolicy = ODD_NODE_POLICY,
) -> bool:
    """
    Verify that the tree with ``new_root`` extends the tree with ``old_root``.

    Args:
        old_root: The trusted root of the earlier tree.
        old_size: The size of the earlier tree.
        new_root: The root of the later tree.
        new_size: The size of the later tree.
        proof: The consistency proof.
        hasher: The hash function both trees were built with.
        policy: The odd-node policy both trees were built with.

    Returns:
        True if the proof is valid, False otherwise.
    """
    hasher = hasher or get_hasher()

    if not 1 <= old_size <= new_size:
        return False
    if proof.old_size != old_size or proof.new_size != new_size:
        return False
    if not hasher.is_digest(old_root) or not hasher.is_digest(new_root):
        return False
    if not all(hasher.is_digest(h) for h in proof.hashes):
        return False

    if old_size == new_size:
        return not proof.hashes and digests_equal(old_root, new_root)

    positions = prefix_subtrees(old_size)
    hashes = list(proof.hashes)
    if len(positions) == 1:
        subtree_digests = [bytes(old_root)]
    else:
        if len(hashes) < len(positions):
            return False
        subtree_digests = hashes[:len(positions)]
        hashes = hashes[len(positions):]
        if not digests_equal(_fold_subtrees(subtree_digests, old_size, hasher, policy), old_root):
            logger.debug("Consistency proof does not reproduce the old root")
            return False

    remaining: Iterator[bytes] = iter(hashes)

    def sibling_at(level: int, index: int) -> bytes:
        try:
            return next(remaining)
        except StopIteration:
            raise _ProofExhausted() from None

    known = [
        (level, index, digest)
        for (level, index), digest in zip(positions, subtree_digests)
    ]
    try:
        computed = _climb(known, new_size, hasher, policy, sibling_at)
    except _ProofExhausted:
        return False

    if next(remaining, None) is not None:
        return False

    if not digests_equal(computed, new_root):
        logger.debug("Consistency proof does not reproduce the new root")
        return False
    return True
