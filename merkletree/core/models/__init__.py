"""Data models for Merkle proofs and tree parameters."""

from enum import Enum
from typing import Any, List, Tuple

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

# Type aliases
Digest = bytes


class OddNodePolicy(str, Enum):
    """
    How a level with an odd number of nodes is paired.

    The two policies produce different roots for the same leaves and are not
    interoperable; the policy is part of a tree's identity.
    """
    CARRY_UP = "carry-up"
    DUPLICATE_LAST = "duplicate-last"


# The library-wide odd-node policy. CARRY_UP gives the RFC 6962 tree shape.
ODD_NODE_POLICY = OddNodePolicy.CARRY_UP


class Side(str, Enum):
    """Operand position of a sibling digest when recombining."""
    LEFT = "left"
    RIGHT = "right"


def _decode_hex(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError as e:
            raise ValueError(f"Invalid hex digest: {value!r}") from e
    return value


class ProofStep(BaseModel):
    """One step of an inclusion proof: a sibling digest and where it sits."""
    model_config = {"frozen": True}

    sibling: Digest = Field(
        ...,
        description="Digest of the sibling node at this level."
    )
    side: Side = Field(
        ...,
        description="Whether the sibling is the left or the right operand."
    )

    @field_validator('sibling', mode='before')
    @classmethod
    def decode_sibling(cls, v: Any) -> Any:
        """Accept hex-encoded digests."""
        return _decode_hex(v)

    @field_serializer('sibling', when_used='json')
    def encode_sibling(self, v: bytes) -> str:
        return v.hex()


class Proof(BaseModel):
    """
    An inclusion (audit) proof for a single leaf.

    The path runs from the leaf towards the root. A proof is a detached
    value: it holds no reference to the tree that produced it.
    """
    model_config = {"frozen": True}

    leaf_index: int = Field(
        ...,
        ge=0,
        description="Index of the proven leaf."
    )
    tree_size: int = Field(
        ...,
        ge=1,
        description="Number of leaves in the tree the proof was generated from."
    )
    path: Tuple[ProofStep, ...] = Field(
        (),
        description="Sibling digests from leaf to root."
    )

    @model_validator(mode='after')
    def check_index(self) -> 'Proof':
        """Ensure the leaf index lies inside the tree."""
        if self.leaf_index >= self.tree_size:
            raise ValueError('leaf_index must be smaller than tree_size')
        return self

    @property
    def siblings(self) -> List[Digest]:
        """The sibling digests without their sides."""
        return [step.sibling for step in self.path]


class ConsistencyProof(BaseModel):
    """A proof that a tree of ``new_size`` leaves extends one of ``old_size``."""
    model_config = {"frozen": True}

    old_size: int = Field(
        ...,
        ge=1,
        description="Number of leaves in the older tree."
    )
    new_size: int = Field(
        ...,
        ge=1,
        description="Number of leaves in the newer tree."
    )
    hashes: Tuple[Digest, ...] = Field(
        (),
        description="Subtree digests needed to rebuild both roots."
    )

    @field_validator('hashes', mode='before')
    @classmethod
    def decode_hashes(cls, v: Any) -> Any:
        """Accept hex-encoded digests."""
        if isinstance(v, (list, tuple)):
            return tuple(_decode_hex(item) for item in v)
        return v

    @field_serializer('hashes', when_used='json')
    def encode_hashes(self, v: Tuple[bytes, ...]) -> List[str]:
        return [h.hex() for h in v]

    @model_validator(mode='after')
    def check_sizes(self) -> 'ConsistencyProof':
        """Ensure the old tree is not larger than the new one."""
        if self.old_size > self.new_size:
            raise ValueError('old_size must not exceed new_size')
        return self
