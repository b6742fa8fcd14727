"""Tests for split search over numeric, categorical and textual candidates."""

from __future__ import annotations

import numpy as np
import pytest
from pytest_check import check

from forestkit.exceptions import FeatureKindError
from forestkit.features import Feature
from forestkit.hashing import hash_token
from forestkit.sampling import NumpyRandomSource
from forestkit.splitting import (
    CategoricalSplit,
    NumericalSplit,
    TextualSplit,
    candidate_tokens,
    categorical_feature_split,
    find_split,
    numerical_feature_split,
    textual_feature_split,
)
from forestkit.table import FeatureTable

ALL_EIGHT = list(range(8))


@pytest.fixture
def step_table() -> FeatureTable:
    """A numeric target with a jump between the fourth and fifth sample.

    Returns:
        FeatureTable: Columns `N:y` (target) and `N:x` (feature 1..8).
    """
    return FeatureTable([
        Feature.numeric([1, 2, 3, 4, 10, 11, 12, 13], "N:y"),
        Feature.numeric([1, 2, 3, 4, 5, 6, 7, 8], "N:x"),
    ])


@pytest.fixture
def text_table() -> FeatureTable:
    """A numeric target that follows the word 'red' in a textual feature.

    Returns:
        FeatureTable: Columns `N:y` (target), `T:notes` and `C:color`.
    """
    return FeatureTable([
        Feature.numeric([1.0, 5.0, 1.0, 5.0], "N:y"),
        Feature.textual(["red fish", "blue fish", "red car", "green car"], "T:notes"),
        Feature.categorical(["r", "b", "r", "g"], "C:color"),
    ])


class TestNumericalFeatureSplit:
    """Tests for numerical_feature_split."""

    def test_finds_step_boundary(self, step_table: FeatureTable) -> None:
        """The split falls between 4 and 5 with the between-group variance as score.

        Args:
            step_table (FeatureTable): Table fixture.
        """
        # Act
        split = numerical_feature_split(step_table, 0, 1, 2, ALL_EIGHT)

        # Assert
        with check:
            assert split.split_value == 4.0
        with check:
            assert split.delta_impurity == pytest.approx(162.0)
        with check:
            assert split.left_indices == [0, 1, 2, 3]
        with check:
            assert split.right_indices == [4, 5, 6, 7]
        with check:
            assert split.is_admissible

    def test_result_is_ordered_by_feature_value(self, step_table: FeatureTable) -> None:
        """Both sides list samples in ascending feature order regardless of input order.

        Args:
            step_table (FeatureTable): Table fixture.
        """
        split = numerical_feature_split(step_table, 0, 1, 2, [7, 3, 0, 5, 1, 6, 2, 4])
        with check:
            assert split.left_indices == [0, 1, 2, 3]
        with check:
            assert split.right_indices == [4, 5, 6, 7]

    def test_equal_values_stay_together_and_first_maximum_wins(self) -> None:
        """Ties in the feature are never separated; of two equal scores the first boundary wins."""
        # Arrange
        table = FeatureTable([
            Feature.numeric([0, 0, 0, 10, 10, 10], "N:y"),
            Feature.numeric([1, 1, 2, 2, 3, 3], "N:x"),
        ])

        # Act
        split = numerical_feature_split(table, 0, 1, 1, list(range(6)))

        # Assert
        with check:
            assert split.split_value == 1.0
        with check:
            assert split.left_indices == [0, 1]
        with check:
            assert split.right_indices == [2, 3, 4, 5]
        with check:
            assert split.delta_impurity == pytest.approx(75.0)

    def test_missing_values_are_excluded(self) -> None:
        """Samples missing in the target or the feature appear on neither side."""
        # Arrange
        table = FeatureTable([
            Feature.numeric([1, 2, None, 4, 10, 11, 12, 13], "N:y"),
            Feature.numeric([1, 2, 3, 4, 5, None, 7, 8], "N:x"),
        ])

        # Act
        split = numerical_feature_split(table, 0, 1, 2, ALL_EIGHT)

        # Assert
        with check:
            assert sorted(split.left_indices + split.right_indices) == [0, 1, 3, 4, 6, 7]
        with check:
            assert split.split_value == 4.0

    def test_too_few_samples_is_inadmissible(self, step_table: FeatureTable) -> None:
        """Fewer than 2 * min_samples real samples gives DI 0 and the samples on the right.

        Args:
            step_table (FeatureTable): Table fixture.
        """
        # Act
        split = numerical_feature_split(step_table, 0, 1, 5, [6, 1, 3])

        # Assert
        with check:
            assert split.delta_impurity == 0.0
        with check:
            assert split.left_indices == []
        with check:
            assert split.right_indices == [6, 1, 3]
        with check:
            assert split.split_value is None
        with check:
            assert not split.is_admissible

    def test_constant_feature_is_inadmissible(self) -> None:
        """A feature with one distinct value has no boundary."""
        table = FeatureTable([Feature.numeric([1, 2, 3, 4], "N:y"), Feature.numeric([5, 5, 5, 5], "N:x")])
        split = numerical_feature_split(table, 0, 1, 1, [0, 1, 2, 3])
        with check:
            assert split.delta_impurity == 0.0
        with check:
            assert split.right_indices == [0, 1, 2, 3]

    def test_categorical_target(self) -> None:
        """A categorical target is scored with the Gini gain."""
        # Arrange
        table = FeatureTable([
            Feature.categorical(["a", "a", "a", "b", "b", "b"], "C:y"),
            Feature.numeric([1, 2, 3, 4, 5, 6], "N:x"),
        ])

        # Act
        split = numerical_feature_split(table, 0, 1, 1, list(range(6)))

        # Assert
        with check:
            assert split.split_value == 3.0
        with check:
            assert split.delta_impurity == pytest.approx(3.0)

    def test_partition_properties_on_random_data(self) -> None:
        """Sides are disjoint, cover the real samples, respect min_samples and the threshold."""
        # Arrange
        rng = np.random.default_rng(7)
        x = rng.integers(0, 20, size=200).astype(np.float64)
        y = np.where(x > 8, 3.0, 0.0) + rng.normal(scale=0.5, size=200)
        x[rng.choice(200, size=15, replace=False)] = np.nan
        y[rng.choice(200, size=15, replace=False)] = np.nan
        table = FeatureTable([Feature.numeric(y, "N:y"), Feature.numeric(x, "N:x")])
        real = set(np.flatnonzero(~np.isnan(x) & ~np.isnan(y)).tolist())

        # Act
        split = numerical_feature_split(table, 0, 1, 10, list(range(200)))

        # Assert
        left, right = split.left_indices, split.right_indices
        with check:
            assert split.delta_impurity > 0.0
        with check:
            assert set(left).isdisjoint(right)
        with check:
            assert set(left) | set(right) == real
        with check:
            assert min(len(left), len(right)) >= 10
        with check:
            assert split.split_value is not None and max(x[left]) <= split.split_value < min(x[right])

    def test_rejects_non_numeric_candidate(self, text_table: FeatureTable) -> None:
        """A categorical candidate is a kind error.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        with pytest.raises(FeatureKindError):
            numerical_feature_split(text_table, 0, 2, 1, [0, 1, 2, 3])

    def test_rejects_negative_min_samples(self, step_table: FeatureTable) -> None:
        """min_samples must be non-negative.

        Args:
            step_table (FeatureTable): Table fixture.
        """
        with pytest.raises(ValueError, match="min_samples"):
            numerical_feature_split(step_table, 0, 1, -1, ALL_EIGHT)


class TestCategoricalFeatureSplit:
    """Tests for categorical_feature_split."""

    def test_numeric_target_orders_categories_by_mean(self) -> None:
        """Categories sorted by mean target a(1) < c(5) < b(10) split as {a, c} | {b}."""
        # Arrange
        table = FeatureTable([
            Feature.numeric([1, 10, 5, 1, 10, 5], "N:y"),
            Feature.categorical(["a", "b", "c", "a", "b", "c"], "C:x"),
        ])

        # Act
        split = categorical_feature_split(table, 0, 1, 1, list(range(6)))

        # Assert
        with check:
            assert split.left_categories == {0.0, 2.0}
        with check:
            assert split.right_categories == {1.0}
        with check:
            assert split.left_indices == [0, 3, 2, 5], "Grouped by ascending code, original order within a code"
        with check:
            assert split.right_indices == [1, 4]
        with check:
            assert split.delta_impurity == pytest.approx(196.0 / 3.0)

    def test_categorical_target(self) -> None:
        """A categorical target that mirrors the feature gives a pure split."""
        # Arrange
        table = FeatureTable([
            Feature.categorical(["p", "q", "p", "q"], "C:y"),
            Feature.categorical(["x", "y", "x", "y"], "C:x"),
        ])

        # Act
        split = categorical_feature_split(table, 0, 1, 1, [3, 2, 1, 0])

        # Assert
        with check:
            assert split.left_categories == {0.0}
        with check:
            assert split.right_categories == {1.0}
        with check:
            assert split.left_indices == [2, 0]
        with check:
            assert split.right_indices == [3, 1]
        with check:
            assert split.delta_impurity == pytest.approx(2.0)

    def test_single_category_is_inadmissible(self) -> None:
        """One category cannot be split."""
        # Arrange
        table = FeatureTable([
            Feature.numeric([1, 2, 3], "N:y"),
            Feature.categorical(["a", "a", "NA"], "C:x"),
        ])

        # Act
        split = categorical_feature_split(table, 0, 1, 1, [0, 1, 2])

        # Assert
        with check:
            assert split.delta_impurity == 0.0
        with check:
            assert split.left_categories == set()
        with check:
            assert split.right_categories == set()
        with check:
            assert split.right_indices == [0, 1]

    def test_constant_target_is_inadmissible(self) -> None:
        """No partition improves impurity when the target is constant."""
        table = FeatureTable([
            Feature.numeric([4, 4, 4, 4], "N:y"),
            Feature.categorical(["a", "b", "c", "d"], "C:x"),
        ])
        split = categorical_feature_split(table, 0, 1, 1, [0, 1, 2, 3])
        assert split.delta_impurity == 0.0

    def test_categories_are_never_split(self) -> None:
        """Every sample of a category lands on the same side."""
        # Arrange
        rng = np.random.default_rng(3)
        labels = [str(c) for c in rng.integers(0, 6, size=120)]
        y = np.array([float(label) for label in labels]) + rng.normal(scale=0.2, size=120)
        table = FeatureTable([Feature.numeric(y, "N:y"), Feature.categorical(labels, "C:x")])
        codes = table.values(1)

        # Act
        split = categorical_feature_split(table, 0, 1, 5, list(range(120)))

        # Assert
        left_codes = set(codes[split.left_indices].tolist())
        right_codes = set(codes[split.right_indices].tolist())
        with check:
            assert split.delta_impurity > 0.0
        with check:
            assert left_codes == split.left_categories
        with check:
            assert right_codes == split.right_categories
        with check:
            assert left_codes.isdisjoint(right_codes)


class TestTextualFeatureSplit:
    """Tests for textual_feature_split."""

    def test_routes_samples_by_token(self, text_table: FeatureTable) -> None:
        """Samples containing 'red' go left.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        # Act
        split = textual_feature_split(text_table, 0, 1, hash_token("red"), 1, [0, 1, 2, 3])

        # Assert
        with check:
            assert split.left_indices == [0, 2]
        with check:
            assert split.right_indices == [1, 3]
        with check:
            assert split.delta_impurity == pytest.approx(16.0)
        with check:
            assert split.token == hash_token("red")

    def test_uninformative_token_scores_zero(self, text_table: FeatureTable) -> None:
        """'fish' splits the target into groups with equal means.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        split = textual_feature_split(text_table, 0, 1, hash_token("fish"), 1, [0, 1, 2, 3])
        with check:
            assert split.delta_impurity == 0.0
        with check:
            assert split.left_indices == []

    def test_small_side_discards_partition(self, text_table: FeatureTable) -> None:
        """A side below min_samples discards both partitions.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        split = textual_feature_split(text_table, 0, 1, hash_token("green"), 2, [0, 1, 2, 3])
        with check:
            assert split.delta_impurity == 0.0
        with check:
            assert split.left_indices == []
        with check:
            assert split.right_indices == [0, 1, 2, 3]

    def test_missing_target_samples_are_dropped(self) -> None:
        """Samples with a missing target are not routed."""
        # Arrange
        table = FeatureTable([
            Feature.numeric([1.0, None, 1.0, 5.0, 5.0], "N:y"),
            Feature.textual(["red", "red", "red", "blue", "NA"], "T:notes"),
        ])

        # Act
        split = textual_feature_split(table, 0, 1, hash_token("red"), 1, [0, 1, 2, 3, 4])

        # Assert
        with check:
            assert split.left_indices == [0, 2]
        with check:
            assert split.right_indices == [3, 4]

    def test_textual_target_rejected(self, text_table: FeatureTable) -> None:
        """A textual target is not supported.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        with pytest.raises(FeatureKindError):
            textual_feature_split(text_table, 1, 1, hash_token("red"), 1, [0, 1, 2, 3])


class TestFindSplit:
    """Tests for find_split dispatch."""

    def test_dispatches_on_candidate_kind(self, text_table: FeatureTable) -> None:
        """Each candidate kind gets the matching result model.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        samples = [0, 1, 2, 3]
        with check:
            assert isinstance(find_split(text_table, 0, 0, 1, samples), NumericalSplit)
        with check:
            assert isinstance(find_split(text_table, 0, 2, 1, samples), CategoricalSplit)
        with check:
            assert isinstance(find_split(text_table, 0, 1, 1, samples, token=hash_token("red")), TextualSplit)

    def test_textual_candidate_needs_token(self, text_table: FeatureTable) -> None:
        """A textual candidate without a token is rejected.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        with pytest.raises(ValueError, match="token"):
            find_split(text_table, 0, 1, 1, [0, 1, 2, 3])


class TestCandidateTokens:
    """Tests for candidate_tokens."""

    def test_tokens_come_from_node_samples(self, text_table: FeatureTable) -> None:
        """Drawn tokens belong to the selected samples and are sorted and distinct.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        # Arrange
        allowed = set(text_table.token_sets(1)[1]) | set(text_table.token_sets(1)[3])

        # Act
        tokens = candidate_tokens(text_table, 1, [1, 3], NumpyRandomSource(seed=0), 25)

        # Assert
        with check:
            assert tokens
        with check:
            assert set(tokens) <= allowed
        with check:
            assert tokens == sorted(set(tokens))

    def test_empty_token_sets_yield_nothing(self) -> None:
        """Samples without tokens contribute no candidates."""
        table = FeatureTable([Feature.numeric([1.0, 2.0], "N:y"), Feature.textual(["NA", ""], "T:notes")])
        assert candidate_tokens(table, 1, [0, 1], NumpyRandomSource(seed=0), 10) == []

    def test_no_samples(self, text_table: FeatureTable) -> None:
        """An empty node has no candidates.

        Args:
            text_table (FeatureTable): Table fixture.
        """
        assert candidate_tokens(text_table, 1, [], NumpyRandomSource(seed=0), 10) == []
