"""
Exceptions raised by the Merkle tree core.

Structural misuse (empty input, bad leaf index, bad tree sizes) is reported
with these exceptions. A proof that does not recompute to the expected root
is an ordinary outcome and is reported as ``False`` by the verifiers; only
``verify_or_raise`` turns it into a ``VerificationError``.
"""


class MerkleTreeError(Exception):
    """Base class for all Merkle tree errors."""

    pass


class EmptyInputError(MerkleTreeError, ValueError):
    """Raised when a tree is built from an empty leaf sequence."""

    pass


class IndexOutOfRangeError(MerkleTreeError, IndexError):
    """Raised when a leaf index does not exist in the tree."""

    def __init__(self, index: object, leaf_count: int):
        super().__init__(f"Leaf index {index!r} out of range for tree of size {leaf_count}")
        self.index = index
        self.leaf_count = leaf_count


class InvalidSizeError(MerkleTreeError, ValueError):
    """Raised when tree sizes are not in a valid prefix relationship."""

    pass


class VerificationError(MerkleTreeError):
    """Raised by the raising verifiers when a proof does not match its root."""

    pass
