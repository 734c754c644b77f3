"""
merkletree - Binary Merkle trees with inclusion and consistency proofs.

This package builds hash trees over ordered sequences of byte strings, and
generates and verifies proofs that an item is included in a tree or that a
tree extends an earlier one.
"""

from importlib.metadata import version

# Set up version
__version__ = "1.0.1"

try:
    __version__ = version("merkletree")
except Exception:
    pass

# Core components
from merkletree.core.config import MerkleSettings
from merkletree.core.consistency import generate_consistency_proof, verify_consistency
from merkletree.core.errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidSizeError,
    MerkleTreeError,
    VerificationError,
)
from merkletree.core.hashing import SHA256, Hasher, get_hasher, supported_algorithms
from merkletree.core.merkle import MerkleTree, Node, build
from merkletree.core.models import (
    ODD_NODE_POLICY,
    ConsistencyProof,
    Digest,
    OddNodePolicy,
    Proof,
    ProofStep,
    Side,
)
from merkletree.core.proofs import (
    compute_root,
    generate_proof,
    verify,
    verify_leaf_hash,
    verify_or_raise,
)

__all__ = [
    # Building
    "build",
    "MerkleTree",
    "Node",
    "MerkleSettings",
    # Hashing
    "Hasher",
    "SHA256",
    "get_hasher",
    "supported_algorithms",
    # Proofs
    "generate_proof",
    "compute_root",
    "verify",
    "verify_leaf_hash",
    "verify_or_raise",
    "generate_consistency_proof",
    "verify_consistency",
    # Models
    "Digest",
    "Proof",
    "ProofStep",
    "Side",
    "ConsistencyProof",
    "OddNodePolicy",
    "ODD_NODE_POLICY",
    # Errors
    "MerkleTreeError",
    "EmptyInputError",
    "IndexOutOfRangeError",
    "InvalidSizeError",
    "VerificationError",
]
