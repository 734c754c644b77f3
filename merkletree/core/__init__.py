"""
Core functionality for the Merkle tree library.

This package contains the hashing primitives, the tree builder, and the
inclusion and consistency proof logic.
"""

from .consistency import generate_consistency_proof, verify_consistency
from .errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidSizeError,
    MerkleTreeError,
    VerificationError,
)
from .hashing import Hasher, get_hasher
from .merkle import MerkleTree, Node, build
from .models import ODD_NODE_POLICY, ConsistencyProof, OddNodePolicy, Proof, ProofStep, Side
from .proofs import generate_proof, verify, verify_leaf_hash, verify_or_raise

__all__ = [
    'MerkleTree', 'Node', 'build',
    'Hasher', 'get_hasher',
    'Proof', 'ProofStep', 'Side', 'ConsistencyProof', 'OddNodePolicy', 'ODD_NODE_POLICY',
    'generate_proof', 'verify', 'verify_leaf_hash', 'verify_or_raise',
    'generate_consistency_proof', 'verify_consistency',
    'MerkleTreeError', 'EmptyInputError', 'IndexOutOfRangeError', 'InvalidSizeError',
    'VerificationError',
]
