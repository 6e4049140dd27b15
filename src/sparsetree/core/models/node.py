from typing import Union
from pydantic import BaseModel, Field


class LeafNode(BaseModel):
    key: bytes = Field(..., min_length=32, max_length=32, description="256-bit key")
    value: bytes = Field(..., min_length=32, max_length=32, description="256-bit value")

    model_config = {"frozen": True}

    def digest(self, hasher) -> bytes:
        return hasher.hash_leaf(self.key, self.value)

    def to_dict(self) -> dict:
        return {"type": "leaf", "key": self.key.hex(), "value": self.value.hex()}


class BranchNode(BaseModel):
    left: bytes = Field(..., min_length=32, max_length=32, description="Left child digest")
    right: bytes = Field(..., min_length=32, max_length=32, description="Right child digest")

    model_config = {"frozen": True}

    def digest(self, hasher) -> bytes:
        return hasher.hash_branch(self.left, self.right)

    def child(self, bit: int) -> bytes:
        return self.right if bit else self.left

    def sibling(self, bit: int) -> bytes:
        return self.left if bit else self.right

    def to_dict(self) -> dict:
        return {"type": "branch", "left": self.left.hex(), "right": self.right.hex()}


Node = Union[LeafNode, BranchNode]


def node_from_dict(row: dict) -> Node:
    if row["type"] == "leaf":
        return LeafNode(key=bytes.fromhex(row["key"]), value=bytes.fromhex(row["value"]))
    if row["type"] == "branch":
        return BranchNode(left=bytes.fromhex(row["left"]), right=bytes.fromhex(row["right"]))
    raise ValueError(f"Unknown node type: {row['type']}")
