"""
Unit Tests for the path policy.
"""

from random import Random

import pytest

from cloudnote.core.exceptions import ValidationError
from cloudnote.services.paths import GENERATED_ALPHABET, PathPolicy


class TestIsValid:
    @pytest.mark.parametrize(
        "path",
        ["a", "abc", "My-Note_2", "x" * 20, "0123456789"],
    )
    def test_accepted(self, path_policy, path):
        assert path_policy.is_valid(path) is True

    @pytest.mark.parametrize(
        "path",
        [
            None,
            "",
            "x" * 21,
            "has space",
            "dot.ted",
            "slash/ed",
            "ünïcode",
            "semi;colon",
        ],
    )
    def test_rejected(self, path_policy, path):
        assert path_policy.is_valid(path) is False

    @pytest.mark.parametrize("path", ["admin", "api", "static"])
    def test_reserved_names_are_not_note_paths(self, path_policy, path):
        assert path_policy.is_reserved(path) is True
        assert path_policy.is_valid(path) is False

    def test_reserved_match_is_exact(self, path_policy):
        assert path_policy.is_reserved("Admin") is False
        assert path_policy.is_valid("administrator") is True


class TestValidate:
    def test_returns_path(self, path_policy):
        assert path_policy.validate("abc") == "abc"

    def test_raises_with_rule_details(self, path_policy):
        with pytest.raises(ValidationError) as exc_info:
            path_policy.validate("bad path")

        assert exc_info.value.message == "Invalid path"
        assert exc_info.value.details["path"] == "bad path"
        assert "1-20 characters" in exc_info.value.details["rule"]


class TestRandomPath:
    def test_alphabet_and_length_bounds(self, path_policy):
        rng = Random(42)
        for _ in range(200):
            path = path_policy.random_path(rng)
            assert 1 <= len(path) <= 20
            assert set(path) <= set(GENERATED_ALPHABET)

    def test_seeded_generation_is_repeatable(self, path_policy):
        assert path_policy.random_path(Random(7)) == path_policy.random_path(Random(7))

    def test_custom_bounds(self):
        policy = PathPolicy(min_length=4, max_length=4)
        assert len(policy.random_path(Random(1))) == 4

    def test_uses_system_randomness_by_default(self, path_policy):
        path = path_policy.random_path()
        assert 1 <= len(path) <= 20
        assert set(path) <= set(GENERATED_ALPHABET)


class TestFromConfig:
    def test_loads_notes_yaml(self):
        policy = PathPolicy.from_config()

        assert policy.min_length == 1
        assert policy.max_length == 20
        assert policy.reserved == frozenset({"admin", "api", "static"})
        assert policy.generation_attempts == 10
