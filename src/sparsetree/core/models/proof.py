"""
Proof data models.

A ``MerkleProof`` is the raw output of proof generation: the queried keys
and every sibling digest a verifier cannot derive on its own. A
``CompiledMerkleProof`` is the compact instruction stream built from it.
"""

from typing import Any, Dict, List, Sequence, Tuple, Union
from pydantic import BaseModel, Field, ValidationInfo, field_validator

H256Input = Union[bytes, bytearray, str]


class ProofSibling(BaseModel):
    depth: int = Field(..., ge=1, le=256, description="Depth of the sibling node")
    path: int = Field(..., ge=0, description="Position of the sibling at its depth")
    digest: bytes = Field(..., min_length=32, max_length=32, description="Sibling digest")

    model_config = {"frozen": True}

    @field_validator("path")
    def validate_path(cls, value, info: ValidationInfo):
        """Validate the position fits in the sibling's depth."""
        depth = info.data.get("depth")
        if depth is not None and value >= 1 << depth:
            raise ValueError(f"Path {value} does not fit in depth {depth}")
        return value

    def position(self) -> Tuple[int, int]:
        return self.depth, self.path


class MerkleProof(BaseModel):
    keys: List[bytes] = Field(default_factory=list, description="Queried keys, sorted")
    siblings: List[ProofSibling] = Field(
        default_factory=list, description="Non-empty, non-shared sibling digests"
    )

    model_config = {"frozen": True}

    def compile(self, keys: Sequence[H256Input]) -> "CompiledMerkleProof":
        """Compile this proof into a compact instruction stream.

        Args:
            keys: The keys this proof was generated for, in any order

        Returns:
            CompiledMerkleProof: The compiled proof
        """
        from sparsetree.core.state_merkle.compiler import compile_proof

        return compile_proof(self, keys)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keys": [key.hex() for key in self.keys],
            "siblings": [
                {"depth": s.depth, "path": hex(s.path), "digest": s.digest.hex()}
                for s in self.siblings
            ],
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "MerkleProof":
        return cls(
            keys=[bytes.fromhex(key) for key in row["keys"]],
            siblings=[
                ProofSibling(
                    depth=s["depth"],
                    path=int(s["path"], 16),
                    digest=bytes.fromhex(s["digest"]),
                )
                for s in row["siblings"]
            ],
        )


class CompiledMerkleProof(BaseModel):
    data: bytes = Field(default=b"", description="Compiled instruction stream")

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.data)

    def to_hex(self) -> str:
        return self.data.hex()

    @classmethod
    def from_hex(cls, text: str) -> "CompiledMerkleProof":
        if text.startswith(("0x", "0X")):
            text = text[2:]
        return cls(data=bytes.fromhex(text))

    def compute_root(self, pairs: Sequence[Tuple[H256Input, H256Input]], hasher=None) -> bytes:
        """Recompute the root implied by this proof and the claimed pairs."""
        from sparsetree.core.state_merkle.verifier import compute_root

        return compute_root(self, pairs, hasher)

    def verify(
        self,
        root: H256Input,
        pairs: Sequence[Tuple[H256Input, H256Input]],
        hasher=None,
    ) -> bool:
        """Verify the claimed pairs against a root.

        Args:
            root: Claimed root digest
            pairs: Claimed (key, value) pairs
            hasher: Hasher the tree was built with (default from config)

        Returns:
            bool: True if the proof recomputes the root
        """
        from sparsetree.core.state_merkle.verifier import verify

        return verify(self, root, pairs, hasher)
