"""Tests for ContentHash value object."""

import hashlib

import pytest

from buddyflow.domain.common.value_objects import ContentHash, canonical_json


class TestContentHash:
    def test_compute(self) -> None:
        digest = ContentHash.compute("hello")
        assert digest.value == hashlib.sha256(b"hello").hexdigest()

    def test_compute_rejects_empty_content(self) -> None:
        with pytest.raises(ValueError):
            ContentHash.compute("")

    def test_must_be_sha256_hex(self) -> None:
        with pytest.raises(ValueError):
            ContentHash("abc")
        with pytest.raises(ValueError):
            ContentHash("z" * 64)

    def test_structure_hash_ignores_key_order(self) -> None:
        first = ContentHash.compute_from_structure({"a": 1, "b": {"c": [1, 2]}})
        second = ContentHash.compute_from_structure({"b": {"c": [1, 2]}, "a": 1})
        assert first == second

    def test_structure_hash_sees_list_order(self) -> None:
        first = ContentHash.compute_from_structure({"steps": [1, 2]})
        second = ContentHash.compute_from_structure({"steps": [2, 1]})
        assert first != second

    def test_is_frozen(self) -> None:
        digest = ContentHash.compute("hello")
        with pytest.raises(AttributeError):
            digest.value = "other"  # type: ignore[misc]


class TestCanonicalJson:
    def test_sorted_and_compact(self) -> None:
        assert canonical_json({"b": 1, "a": "é"}) == '{"a":"é","b":1}'
