"""Tests for Feature construction, encoding and value rendering."""

from __future__ import annotations

import math

import numpy as np
import pytest
from pytest_check import check

from forestkit.exceptions import FeatureKindError, UnknownCategoryError
from forestkit.features import NAN_STRING, Feature, format_number
from forestkit.hashing import hash_token


class TestNumericFeature:
    """Tests for Feature.numeric."""

    def test_none_becomes_nan(self) -> None:
        """None entries in a list are stored as NaN."""
        # Act
        feature = Feature.numeric([1, None, 2.5], "N:x")

        # Assert
        with check:
            assert feature.kind == "numeric"
        with check:
            assert feature.values is not None and math.isnan(feature.values[1])
        with check:
            assert feature.n_samples == 3

    def test_array_input_is_copied(self) -> None:
        """Mutating the source array does not change the feature."""
        # Arrange
        source = np.array([1, 2, 3])

        # Act
        feature = Feature.numeric(source, "N:x")
        source[0] = 99

        # Assert
        with check:
            assert feature.require_values().dtype == np.float64
        with check:
            assert feature.require_values().tolist() == [1.0, 2.0, 3.0]

    def test_raw_value_rendering(self) -> None:
        """Integral numbers render without a fraction; NaN renders as 'NaN'."""
        feature = Feature.numeric([3.0, 2.5, None], "N:x")
        with check:
            assert feature.raw_value(3.0) == "3"
        with check:
            assert feature.raw_value(2.5) == "2.5"
        with check:
            assert feature.raw_value(math.nan) == NAN_STRING

    def test_has_no_categories(self) -> None:
        """Numeric features carry empty mappings."""
        feature = Feature.numeric([1.0], "N:x")
        with check:
            assert feature.n_categories == 0
        with check:
            assert feature.back_mapping == {}


class TestCategoricalFeature:
    """Tests for Feature.categorical."""

    def test_codes_follow_sorted_labels(self) -> None:
        """Distinct labels get codes 0..k-1 in sorted order; missing labels become NaN."""
        # Act
        feature = Feature.categorical(["red", "blue", "NA", "red"], "C:color")

        # Assert
        values = feature.require_values()
        with check:
            assert feature.back_mapping == {0.0: "blue", 1.0: "red"}
        with check:
            assert feature.mapping == {"blue": 0.0, "red": 1.0}
        with check:
            assert values[0] == 1.0 and values[1] == 0.0 and values[3] == 1.0
        with check:
            assert math.isnan(values[2])

    def test_mappings_are_inverse(self) -> None:
        """mapping and back_mapping are mutual inverses."""
        feature = Feature.categorical(["b", "c", "a", "c", None], "C:x")
        for label, code in feature.mapping.items():
            with check:
                assert feature.back_mapping[code] == label

    def test_all_missing(self) -> None:
        """A column with no real labels has no categories and all-NaN codes."""
        # Act
        feature = Feature.categorical(["NA", None, ""], "C:x")

        # Assert
        with check:
            assert feature.n_categories == 0
        with check:
            assert np.isnan(feature.require_values()).all()

    def test_raw_value_round_trip(self) -> None:
        """Each code renders back to its label."""
        feature = Feature.categorical(["pro", "basic"], "C:plan")
        rendered = [feature.raw_value(float(code)) for code in feature.require_values()]
        assert rendered == ["pro", "basic"]

    def test_unknown_code_raises(self) -> None:
        """A code without a label raises UnknownCategoryError."""
        # Arrange
        feature = Feature.categorical(["pro", "basic"], "C:plan")

        # Act & Assert
        with pytest.raises(UnknownCategoryError) as exc_info:
            feature.raw_value(5.0)
        with check:
            assert exc_info.value.feature_name == "C:plan"
        with check:
            assert exc_info.value.code == 5.0


class TestTextualFeature:
    """Tests for Feature.textual and the token accessors."""

    def test_stores_token_sets_only(self) -> None:
        """Textual features hold token sets and no value array."""
        # Act
        feature = Feature.textual(["red fish", "NA", "blue"], "T:notes")

        # Assert
        with check:
            assert feature.values is None
        with check:
            assert feature.n_samples == 3
        with check:
            assert feature.require_hash_sets()[1] == ()

    def test_value_access_raises(self) -> None:
        """Value-based operations reject textual features."""
        feature = Feature.textual(["red"], "T:notes")
        with pytest.raises(FeatureKindError):
            feature.require_values()
        with pytest.raises(FeatureKindError):
            feature.raw_value(0.0)

    def test_token_accessors(self) -> None:
        """token_at and has_token operate on one sample's set."""
        # Arrange
        feature = Feature.textual(["red fish", "blue"], "T:notes")
        red_fish = feature.require_hash_sets()[0]

        # Act & Assert
        with check:
            assert feature.token_at(0, 1) == red_fish[1]
        with check:
            assert feature.has_token(0, hash_token("fish"))
        with check:
            assert not feature.has_token(1, hash_token("fish"))

    def test_entropy_requires_textual(self) -> None:
        """Entropy of a numeric feature raises FeatureKindError, which is also a TypeError."""
        with pytest.raises(TypeError):
            Feature.numeric([1.0], "N:x").entropy()


class TestRenamed:
    """Tests for Feature.renamed."""

    def test_copy_is_independent(self) -> None:
        """The renamed copy shares no mutable state with the source."""
        # Arrange
        original = Feature.categorical(["a", "b"], "C:x")

        # Act
        copy = original.renamed("C:x_CONTRAST")
        copy.require_values()[0] = 1.0
        copy.mapping["z"] = 9.0

        # Assert
        with check:
            assert copy.name == "C:x_CONTRAST"
        with check:
            assert original.require_values()[0] == 0.0
        with check:
            assert "z" not in original.mapping

    def test_textual_copy_has_own_list(self) -> None:
        """Replacing an entry of the copy's token list leaves the source alone."""
        original = Feature.textual(["red", "blue"], "T:x")
        copy = original.renamed("T:y")
        copy.require_hash_sets()[0] = ()
        assert original.require_hash_sets()[0] == (hash_token("red"),)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3.0, "3"), (-0.5, "-0.5"), (0.1, "0.1"), (1e20, "100000000000000000000"), (math.inf, "inf")],
)
def test_format_number(value: float, expected: str) -> None:
    """format_number renders integral values as integers and others via repr.

    Args:
        value (float): Number to render.
        expected (str): Expected text.
    """
    assert format_number(value) == expected
