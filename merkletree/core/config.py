"""Configuration for building and verifying Merkle trees."""

import os
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from merkletree.core.hashing import DEFAULT_HASH_ALGORITHM, Hasher, get_hasher
from merkletree.core.merkle import PARALLEL_THRESHOLD, MerkleTree
from merkletree.core.models import ODD_NODE_POLICY, OddNodePolicy

ENV_PREFIX = "MERKLETREE_"


class MerkleSettings(BaseModel):
    """Settings shared by the builder, the verifiers and the CLI."""

    hash_algorithm: str = Field(
        DEFAULT_HASH_ALGORITHM,
        description="hashlib name of the hash function."
    )
    odd_node_policy: OddNodePolicy = Field(
        ODD_NODE_POLICY,
        description="How levels with an odd number of nodes are paired."
    )
    workers: int = Field(
        default=1,
        ge=1,
        description="Threads used to hash large levels."
    )
    parallel_threshold: int = Field(
        default=PARALLEL_THRESHOLD,
        ge=1,
        description="Minimum pairs in a level before threads are used."
    )

    @field_validator('hash_algorithm')
    @classmethod
    def validate_hash_algorithm(cls, v: str) -> str:
        """Ensure the algorithm is a fixed-length hashlib algorithm."""
        return Hasher(v).algorithm

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'MerkleSettings':
        """Load settings from ``MERKLETREE_*`` environment variables."""
        if environ is None:
            environ = os.environ
        values = {}
        for field_name in cls.model_fields:
            key = ENV_PREFIX + field_name.upper()
            if key in environ:
                values[field_name] = environ[key]
        return cls(**values)

    def hasher(self) -> Hasher:
        """Get the configured hasher."""
        return get_hasher(self.hash_algorithm)

    def build(self, leaves: Iterable[bytes]) -> MerkleTree:
        """Build a tree with these settings applied."""
        return MerkleTree(
            leaves,
            hasher=self.hasher(),
            policy=self.odd_node_policy,
            workers=self.workers,
            parallel_threshold=self.parallel_threshold,
        )
