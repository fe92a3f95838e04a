"""
ContentHash value object.

Fingerprints the frozen structure of a flow snapshot so two snapshots of
the same template version can be compared without walking their steps.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Self

_CONTENT_HASH_LENGTH = 64


def canonical_json(payload: Any) -> str:
    """Serialize a JSON-like structure deterministically (sorted keys, no spaces)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


@dataclass(frozen=True)
class ContentHash:
    """SHA-256 hex digest of a canonical serialization."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("ContentHash cannot be empty")

        if len(self.value) != _CONTENT_HASH_LENGTH:
            raise ValueError("ContentHash must be 64 character hex string (SHA-256)")

        try:
            int(self.value, 16)
        except ValueError as err:
            raise ValueError("ContentHash must be valid hexadecimal string") from err

    @classmethod
    def compute(cls, content: str) -> Self:
        """
        Compute ContentHash from string content.

        Args:
            content: Text content to hash

        Returns:
            ContentHash instance with computed hash
        """
        if not content:
            raise ValueError("Cannot compute hash of empty content")

        hash_value = hashlib.sha256(content.encode("utf-8")).hexdigest()
        return cls(hash_value)

    @classmethod
    def compute_from_structure(cls, payload: Any) -> Self:
        """
        Compute ContentHash from a JSON-like structure.

        Key order does not influence the result.
        """
        return cls.compute(canonical_json(payload))
