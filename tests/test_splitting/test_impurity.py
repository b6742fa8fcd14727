"""Tests for running target aggregates and delta-impurity formulas."""

from __future__ import annotations

import pytest
from pytest_check import check

from forestkit.splitting.impurity import (
    FrequencyAggregate,
    MeanAggregate,
    delta_impurity,
    delta_impurity_classification,
    delta_impurity_regression,
    new_aggregate,
)


class TestMeanAggregate:
    """Tests for MeanAggregate online updates."""

    def test_add_and_remove_track_mean(self) -> None:
        """The online mean matches the batch mean after additions and removals."""
        # Arrange
        aggregate = MeanAggregate()

        # Act & Assert
        for x in [1.0, 2.0, 3.0]:
            aggregate.add(x)
        with check:
            assert aggregate.mean == pytest.approx(2.0)
        aggregate.remove(3.0)
        with check:
            assert aggregate.mean == pytest.approx(1.5)
        with check:
            assert aggregate.count == 2

    def test_removing_last_value_resets_mean(self) -> None:
        """An emptied aggregate has mean 0."""
        aggregate = MeanAggregate()
        aggregate.add(7.0)
        aggregate.remove(7.0)
        with check:
            assert aggregate.count == 0
        with check:
            assert aggregate.mean == 0.0


class TestFrequencyAggregate:
    """Tests for FrequencyAggregate sum-of-squares bookkeeping."""

    def test_sum_of_squares_increments(self) -> None:
        """Moving from count c to c+1 adds 2c+1 to the sum of squares."""
        # Arrange
        aggregate = FrequencyAggregate()

        # Act & Assert
        aggregate.add(0.0)
        with check:
            assert aggregate.sf == 1
        aggregate.add(0.0)
        with check:
            assert aggregate.sf == 4
        aggregate.add(1.0)
        with check:
            assert aggregate.sf == 5

    def test_removal_restores_sum_of_squares(self) -> None:
        """Moving from count c to c-1 removes 2c-1."""
        # Arrange
        aggregate = new_aggregate(numeric_target=False, values=[0.0, 0.0, 1.0])

        # Act
        aggregate.remove(0.0)

        # Assert
        with check:
            assert isinstance(aggregate, FrequencyAggregate)
        with check:
            assert aggregate.sf == 2
        with check:
            assert aggregate.count == 2


class TestDeltaImpurityFormulas:
    """Tests for the closed-form delta-impurity functions."""

    def test_regression_formula(self) -> None:
        """Two groups of four with means 2.5 and 11.5 score 162."""
        assert delta_impurity_regression(2.5, 4, 11.5, 4) == pytest.approx(162.0)

    def test_classification_pure_split(self) -> None:
        """Splitting [a, a, b, b] into pure halves scores 2."""
        assert delta_impurity_classification(8, 4, 4, 2, 4, 2) == pytest.approx(2.0)

    @pytest.mark.parametrize(
        "result",
        [
            delta_impurity_regression(1.0, 0, 5.0, 3),
            delta_impurity_regression(1.0, 3, 5.0, 0),
            delta_impurity_classification(9, 3, 0, 0, 9, 3),
        ],
    )
    def test_empty_side_scores_zero(self, result: float) -> None:
        """An empty side yields zero.

        Args:
            result (float): A delta impurity computed with one side empty.
        """
        assert result == 0.0


class TestDeltaImpurityDispatch:
    """Tests for delta_impurity aggregate dispatch."""

    def test_mean_aggregates(self) -> None:
        """Mean aggregates use the regression formula."""
        left = new_aggregate(numeric_target=True, values=[1.0, 2.0, 3.0, 4.0])
        right = new_aggregate(numeric_target=True, values=[10.0, 11.0, 12.0, 13.0])
        total = new_aggregate(numeric_target=True, values=[1.0, 2.0, 3.0, 4.0, 10.0, 11.0, 12.0, 13.0])
        assert delta_impurity(left, right, total) == pytest.approx(162.0)

    def test_frequency_aggregates(self) -> None:
        """Frequency aggregates use the classification formula."""
        left = new_aggregate(numeric_target=False, values=[0.0, 0.0])
        right = new_aggregate(numeric_target=False, values=[1.0, 1.0])
        total = new_aggregate(numeric_target=False, values=[0.0, 0.0, 1.0, 1.0])
        assert delta_impurity(left, right, total) == pytest.approx(2.0)

    def test_mixed_aggregates_raise(self) -> None:
        """Aggregates of different kinds cannot be combined."""
        with pytest.raises(TypeError, match="Mismatched"):
            delta_impurity(MeanAggregate(), FrequencyAggregate(), MeanAggregate())
