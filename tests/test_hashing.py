"""Tests for the hashed bag-of-tokens text encoding."""

from __future__ import annotations

import math
import zlib

import pytest
from pytest_check import check

from forestkit.hashing import (
    contains_token,
    hash_text,
    hash_texts,
    hash_token,
    token_at,
    token_entropy,
    tokenize,
)


class TestHashToken:
    """Tests for hash_token."""

    def test_matches_crc32(self) -> None:
        """Token hashes are the CRC-32 of the UTF-8 bytes."""
        assert hash_token("fish") == zlib.crc32(b"fish")

    def test_is_unsigned_32_bit(self) -> None:
        """Hashes fall in [0, 2**32)."""
        for token in ["a", "zebra", "ünïcode", "12345"]:
            with check:
                assert 0 <= hash_token(token) < 2**32


class TestTokenize:
    """Tests for tokenize."""

    def test_lowercases_and_splits_on_non_word_characters(self) -> None:
        """Punctuation separates tokens and case is folded."""
        assert tokenize("Red fish, BLUE fish!") == ["red", "fish", "blue", "fish"]

    def test_empty_text_has_no_tokens(self) -> None:
        """Whitespace-only text yields no tokens."""
        assert tokenize("   ") == []


class TestHashText:
    """Tests for hash_text and hash_texts."""

    def test_produces_sorted_distinct_hashes(self) -> None:
        """Repeated tokens collapse and the tuple is sorted."""
        # Act
        tokens = hash_text("red fish blue fish")

        # Assert
        with check:
            assert len(tokens) == 3
        with check:
            assert list(tokens) == sorted(tokens)
        with check:
            assert set(tokens) == {hash_token("red"), hash_token("fish"), hash_token("blue")}

    def test_case_insensitive(self) -> None:
        """Texts differing only in case hash identically."""
        assert hash_text("Red FISH") == hash_text("red fish")

    @pytest.mark.parametrize("text", [None, "NA", "", "?"])
    def test_missing_text_is_empty_set(self, text: str | None) -> None:
        """Missing text encodes to the empty tuple.

        Args:
            text (str | None): A missing-value spelling.
        """
        assert hash_text(text) == ()

    def test_hash_texts_encodes_each_sample(self) -> None:
        """hash_texts returns one token tuple per input text."""
        # Act
        result = hash_texts(["red", "NA", "red red"])

        # Assert
        with check:
            assert len(result) == 3
        with check:
            assert result[0] == result[2] == (hash_token("red"),)
        with check:
            assert result[1] == ()


class TestTokenSelection:
    """Tests for token_at and contains_token."""

    def test_token_at_wraps_key(self) -> None:
        """The key is reduced modulo the set size."""
        # Arrange
        token_set = (1, 5, 9)

        # Act & Assert
        with check:
            assert token_at(token_set, 0) == 1
        with check:
            assert token_at(token_set, 4) == 5
        with check:
            assert token_at(token_set, 2**31 + 1) == token_set[(2**31 + 1) % 3]

    def test_token_at_empty_set_raises(self) -> None:
        """Selecting from an empty set is an error."""
        with pytest.raises(ValueError, match="empty token set"):
            token_at((), 3)

    def test_contains_token(self) -> None:
        """Membership works on sorted tuples, including the first and last entries."""
        token_set = (2, 4, 8, 16)
        with check:
            assert contains_token(token_set, 2)
        with check:
            assert contains_token(token_set, 16)
        with check:
            assert not contains_token(token_set, 5)
        with check:
            assert not contains_token(token_set, 17)
        with check:
            assert not contains_token((), 1)


class TestTokenEntropy:
    """Tests for token_entropy: summed per-token binary entropy."""

    def test_hand_computed_example(self) -> None:
        """Two tokens each present in half of the samples contribute ln 2 apiece."""
        # Arrange
        token_sets = [(1, 2), (1,), (2,), ()]

        # Act
        entropy = token_entropy(token_sets)

        # Assert
        assert entropy == pytest.approx(2 * math.log(2))

    def test_token_in_every_sample_contributes_nothing(self) -> None:
        """A token with p = 1 has zero entropy."""
        assert token_entropy([(7,), (7,), (7,)]) == pytest.approx(0.0)

    def test_uneven_frequency(self) -> None:
        """A token present in one of four samples contributes H(0.25)."""
        # Arrange
        expected = -(0.25 * math.log(0.25) + 0.75 * math.log(0.75))

        # Act
        entropy = token_entropy([(3,), (), (), ()])

        # Assert
        assert entropy == pytest.approx(expected)

    def test_no_samples(self) -> None:
        """An empty column has zero entropy."""
        assert token_entropy([]) == 0.0
