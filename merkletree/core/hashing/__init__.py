"""
Hashing primitives for the Merkle tree.

This module provides the domain-separated leaf and node hashing used by the
builder, the proof generator and the verifiers.
"""

import hashlib
import hmac
from typing import List, Optional

# Domain separation tags for Merkle tree hashing (RFC 6962)
LEAF_NODE_PREFIX = b'\x00'  # Prefix for leaf nodes
INTERNAL_NODE_PREFIX = b'\x01'  # Prefix for internal nodes

DEFAULT_HASH_ALGORITHM = "sha256"


def supported_algorithms() -> List[str]:
    """Return the hashlib algorithm names usable as a Merkle hasher."""
    names = []
    for name in hashlib.algorithms_available:
        if name.startswith("shake"):
            continue
        try:
            hashlib.new(name)
        except ValueError:
            # Listed by OpenSSL but not loadable (legacy provider)
            continue
        names.append(name.lower())
    return sorted(set(names))


class Hasher:
    """
    A named hash function with leaf/node domain separation.

    Leaves are hashed as ``H(leaf_prefix || data)`` and internal nodes as
    ``H(node_prefix || left || right)``. The two prefixes must differ, so a
    leaf digest can never be passed off as an internal node digest.
    """

    def __init__(
        self,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
        leaf_prefix: bytes = LEAF_NODE_PREFIX,
        node_prefix: bytes = INTERNAL_NODE_PREFIX,
    ):
        """Initialize a hasher for the given hashlib algorithm name."""
        algorithm = algorithm.lower()
        if algorithm.startswith("shake"):
            raise ValueError(f"Variable-length hash algorithm not supported: {algorithm}")
        try:
            probe = hashlib.new(algorithm)
        except ValueError as e:
            raise ValueError(f"Unknown hash algorithm: {algorithm}") from e

        if not leaf_prefix or not node_prefix:
            raise ValueError("Leaf and node prefixes must not be empty")
        if leaf_prefix.startswith(node_prefix) or node_prefix.startswith(leaf_prefix):
            raise ValueError("Leaf and node prefixes must differ and neither may prefix the other")

        self.algorithm = algorithm
        self.digest_size: int = probe.digest_size
        self.leaf_prefix = bytes(leaf_prefix)
        self.node_prefix = bytes(node_prefix)

    def hash(self, data: bytes) -> bytes:
        """Hash raw bytes with no domain separation."""
        return hashlib.new(self.algorithm, data).digest()

    def hash_leaf(self, data: bytes) -> bytes:
        """Hash a leaf node with domain separation."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Leaf data must be bytes, got {type(data).__name__}")
        return self.hash(self.leaf_prefix + bytes(data))

    def hash_node(self, left: bytes, right: bytes) -> bytes:
        """Hash an internal node with domain separation."""
        return self.hash(self.node_prefix + left + right)

    def empty_root(self) -> bytes:
        """
        Sentinel digest committing to an empty sequence.

        Trees are never built from zero leaves; callers that need a
        commitment for "no items" use ``H(b"")`` as RFC 6962 does.
        """
        return self.hash(b"")

    def is_digest(self, value: Optional[bytes]) -> bool:
        """Check that a value has the shape of a digest from this hasher."""
        return isinstance(value, (bytes, bytearray)) and len(value) == self.digest_size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hasher):
            return NotImplemented
        return (
            self.algorithm == other.algorithm
            and self.leaf_prefix == other.leaf_prefix
            and self.node_prefix == other.node_prefix
        )

    def __hash__(self) -> int:
        return hash((self.algorithm, self.leaf_prefix, self.node_prefix))

    def __repr__(self) -> str:
        return f"Hasher({self.algorithm!r})"


def digests_equal(a: bytes, b: bytes) -> bool:
    """Compare two digests in constant time."""
    return hmac.compare_digest(bytes(a), bytes(b))


SHA256 = Hasher("sha256")


def get_hasher(algorithm: Optional[str] = None) -> Hasher:
    """Return a hasher for ``algorithm``, defaulting to SHA-256."""
    if algorithm is None or algorithm.lower() == SHA256.algorithm:
        return SHA256
    return Hasher(algorithm)
