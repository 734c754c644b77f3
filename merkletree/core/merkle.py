"""
Merkle tree construction.

The tree is kept as an arena of levels: ``levels[0]`` holds the leaf
digests and ``levels[-1]`` holds the root. A node is addressed by its
``(level, index)`` position and the children of ``(l, i)`` are
``(l - 1, 2i)`` and ``(l - 1, 2i + 1)``, so no node keeps a reference to
another.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from merkletree.core.consistency import fold_prefix_root, generate_consistency_proof
from merkletree.core.errors import EmptyInputError, IndexOutOfRangeError, InvalidSizeError
from merkletree.core.hashing import Hasher, digests_equal, get_hasher
from merkletree.core.models import ODD_NODE_POLICY, ConsistencyProof, OddNodePolicy, Proof
from merkletree.core.proofs import generate_proof

logger = logging.getLogger(__name__)

# Minimum number of pairs in a level before it is split across worker threads
PARALLEL_THRESHOLD = 1024


@dataclass(frozen=True)
class Node:
    """A node in the Merkle tree."""
    digest: bytes
    level: int
    index: int
    left: Optional[int] = None
    right: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return self.level == 0

    @property
    def leaf_index(self) -> Optional[int]:
        """Index of the leaf this node holds, or None for internal nodes."""
        return self.index if self.level == 0 else None


def _as_bytes(leaf: object) -> bytes:
    if isinstance(leaf, (bytes, bytearray, memoryview)):
        return bytes(leaf)
    raise TypeError(f"Leaf data must be bytes, got {type(leaf).__name__}")


class MerkleTree:
    """
    An immutable binary Merkle tree over an ordered sequence of leaves.

    Leaves and internal nodes are hashed with domain separation (RFC 6962).
    A level with an odd number of nodes is handled according to the tree's
    odd-node policy: under ``CARRY_UP`` the last node is promoted unchanged,
    under ``DUPLICATE_LAST`` it is hashed with itself.
    """

    def __init__(
        self,
        leaves: Iterable[bytes],
        hasher: Optional[Hasher] = None,
        policy: OddNodePolicy = ODD_NODE_POLICY,
        workers: int = 1,
        parallel_threshold: int = PARALLEL_THRESHOLD,
    ):
        """
        Build a tree from the given leaves.

        Args:
            leaves: Ordered leaf data. Must not be empty.
            hasher: Hash function to use. Defaults to SHA-256.
            policy: How odd-sized levels are paired.
            workers: Number of threads used to hash large levels.
            parallel_threshold: Minimum pairs in a level before threads are used.

        Raises:
            EmptyInputError: If ``leaves`` is empty.
            TypeError: If a leaf is not a bytes-like object.
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.leaves: Tuple[bytes, ...] = tuple(_as_bytes(leaf) for leaf in leaves)
        if not self.leaves:
            raise EmptyInputError("Cannot build a Merkle tree from an empty sequence")

        self.hasher: Hasher = hasher or get_hasher()
        self.policy = OddNodePolicy(policy)
        self._levels = self._build_tree(workers, parallel_threshold)

        logger.debug(
            "Built Merkle tree: leaves=%d height=%d policy=%s hash=%s",
            self.leaf_count, self.height, self.policy.value, self.hasher.algorithm,
        )

    def _build_tree(self, workers: int, parallel_threshold: int) -> Tuple[Tuple[bytes, ...], ...]:
        """Hash the leaves and build every level from the leaves up."""
        nodes = [self.hasher.hash_leaf(leaf) for leaf in self.leaves]
        levels = [tuple(nodes)]

        pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        try:
            while len(nodes) > 1:
                nodes = self._pair_level(nodes, pool, workers, parallel_threshold)
                levels.append(tuple(nodes))
        finally:
            if pool is not None:
                pool.shutdown()

        return tuple(levels)

    def _pair_level(
        self,
        nodes: List[bytes],
        pool: Optional[ThreadPoolExecutor],
        workers: int,
        parallel_threshold: int,
    ) -> List[bytes]:
        """Hash adjacent pairs of one level into the next level up."""
        pair_count = len(nodes) // 2

        if pool is not None and pair_count >= parallel_threshold:
            chunk = -(-pair_count // workers)
            futures = [
                pool.submit(self._hash_pairs, nodes, start, min(start + chunk, pair_count))
                for start in range(0, pair_count, chunk)
            ]
            # Every chunk of this level must finish before the next level starts
            parents: List[bytes] = []
            for future in futures:
                parents.extend(future.result())
        else:
            parents = self._hash_pairs(nodes, 0, pair_count)

        if len(nodes) % 2:
            last = nodes[-1]
            if self.policy is OddNodePolicy.DUPLICATE_LAST:
                parents.append(self.hasher.hash_node(last, last))
            else:
                parents.append(last)

        return parents

    def _hash_pairs(self, nodes: Sequence[bytes], start: int, stop: int) -> List[bytes]:
        hash_node = self.hasher.hash_node
        return [hash_node(nodes[2 * i], nodes[2 * i + 1]) for i in range(start, stop)]

    @property
    def levels(self) -> Tuple[Tuple[bytes, ...], ...]:
        """All node digests, leaf level first."""
        return self._levels

    @property
    def root(self) -> bytes:
        """The root digest of the tree."""
        return self._levels[-1][0]

    @property
    def leaf_count(self) -> int:
        return len(self._levels[0])

    @property
    def height(self) -> int:
        """Number of levels above the leaves, ``ceil(log2(leaf_count))``."""
        return len(self._levels) - 1

    @property
    def root_node(self) -> Node:
        return self.node(self.height, 0)

    def node(self, level: int, index: int) -> Node:
        """
        Get the node at a position in the tree.

        Args:
            level: Level of the node, 0 being the leaves.
            index: Position of the node within its level, left to right.

        Returns:
            The node, with the indices of its children in the level below.
        """
        if not 0 <= level < len(self._levels):
            raise ValueError(f"Invalid level {level}: tree has levels 0..{self.height}")
        width = len(self._levels[level])
        if not 0 <= index < width:
            raise IndexError(f"Invalid index {index} for level {level} of width {width}")

        left = right = None
        if level > 0:
            below = len(self._levels[level - 1])
            left = 2 * index
            if left + 1 < below:
                right = left + 1
            elif self.policy is OddNodePolicy.DUPLICATE_LAST:
                right = left

        return Node(
            digest=self._levels[level][index],
            level=level,
            index=index,
            left=left,
            right=right,
        )

    def nodes_at_level(self, level: int) -> List[Node]:
        """Get all nodes at a level, ordered left to right."""
        if not 0 <= level < len(self._levels):
            raise ValueError(f"Invalid level {level}: tree has levels 0..{self.height}")
        return [self.node(level, index) for index in range(len(self._levels[level]))]

    def leaf_nodes(self) -> List[Node]:
        """Get the leaf nodes, ordered left to right."""
        return self.nodes_at_level(0)

    def leaf_hash(self, index: int) -> bytes:
        """Get the digest of a leaf by its index."""
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < self.leaf_count:
            raise IndexOutOfRangeError(index, self.leaf_count)
        return self._levels[0][index]

    def root_at(self, size: int) -> bytes:
        """
        Get the root the tree had when it held only its first ``size`` leaves.

        Raises:
            InvalidSizeError: If ``size`` is not between 1 and ``leaf_count``.
        """
        if isinstance(size, bool) or not isinstance(size, int) or not 1 <= size <= self.leaf_count:
            raise InvalidSizeError(f"Size {size!r} is not a prefix of a tree of size {self.leaf_count}")
        if size == self.leaf_count:
            return self.root
        return fold_prefix_root(self, size)

    def get_proof(self, leaf_index: int) -> Proof:
        """Generate an inclusion proof for a leaf."""
        return generate_proof(self, leaf_index)

    def get_consistency_proof(self, old_size: int) -> ConsistencyProof:
        """Generate a consistency proof from an earlier size of this tree."""
        return generate_consistency_proof(old_size, self)

    def diff(self, other: 'MerkleTree') -> List[int]:
        """
        Find the leaves of this tree that differ from ``other``.

        Leaves are compared by position. A leaf differs when ``other`` has a
        different digest at the same index or no leaf there at all. Subtrees
        whose digests match over the same range of leaves are skipped.

        Returns:
            The differing leaf indices of this tree, in ascending order.
        """
        if self.hasher != other.hasher:
            raise ValueError("Cannot diff trees built with different hash functions")
        if digests_equal(self.root, other.root):
            return []

        top = min(self.height, other.height)
        pending = [(top, index) for index in reversed(range(len(self._levels[top])))]
        differing: List[int] = []

        while pending:
            level, index = pending.pop()
            theirs = other._levels[level]
            if index >= len(theirs):
                first = index << level
                differing.extend(range(first, min((index + 1) << level, self.leaf_count)))
                continue

            same_span = self._span_end(level, index) == other._span_end(level, index)
            if same_span and digests_equal(self._levels[level][index], theirs[index]):
                continue

            if level == 0:
                differing.append(index)
                continue

            below = len(self._levels[level - 1])
            for child in (2 * index + 1, 2 * index):
                if child < below:
                    pending.append((level - 1, child))

        return differing

    def _span_end(self, level: int, index: int) -> int:
        """One past the last leaf covered by the node at a position."""
        return min((index + 1) << level, self.leaf_count)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MerkleTree):
            return NotImplemented
        return (
            self.policy is other.policy
            and self.hasher == other.hasher
            and self._levels == other._levels
        )

    def __repr__(self) -> str:
        return (
            f"MerkleTree(leaf_count={self.leaf_count}, root={self.root.hex()}, "
            f"policy={self.policy.value!r}, hasher={self.hasher!r})"
        )


def build(
    leaves: Iterable[bytes],
    hasher: Optional[Hasher] = None,
    policy: OddNodePolicy = ODD_NODE_POLICY,
    workers: int = 1,
) -> MerkleTree:
    """
    Build a Merkle tree over ``leaves``.

    Raises:
        EmptyInputError: If ``leaves`` is empty.
    """
    return MerkleTree(leaves, hasher=hasher, policy=policy, workers=workers)


__all__ = ["Node", "MerkleTree", "build", "PARALLEL_THRESHOLD"]
