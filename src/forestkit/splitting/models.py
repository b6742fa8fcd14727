"""Pydantic result models for split search."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

type SplitType = Literal["numerical", "categorical", "textual"]

# ---------------------------------------------------------------------------
# Public models
# ---------------------------------------------------------------------------


class SplitResult(BaseModel):
    """Outcome of evaluating one candidate feature at a tree node.

    A zero `delta_impurity` means no admissible split exists; in that case
    `left_indices` is empty and `right_indices` holds the node's samples that
    are real in both the target and the candidate feature.

    Attributes:
        delta_impurity (float): Impurity reduction achieved by the split.
        left_indices (list[int]): Samples routed left.
        right_indices (list[int]): Samples routed right.
    """

    delta_impurity: float = Field(
        ge=0.0,
        description="Impurity reduction achieved by the split; 0.0 when no admissible split exists.",
    )
    left_indices: list[int] = Field(description="Sample indices routed to the left child.")
    right_indices: list[int] = Field(description="Sample indices routed to the right child.")

    @property
    def is_admissible(self) -> bool:
        """bool: Whether the result describes a usable split."""
        return self.delta_impurity > 0.0 and bool(self.left_indices) and bool(self.right_indices)


class NumericalSplit(SplitResult):
    """Threshold split of a numeric feature.

    Samples with feature value `<= split_value` go left. Both index lists are
    ordered by ascending feature value.

    Attributes:
        split_type (Literal["numerical"]): Discriminator; always `"numerical"`.
        split_value (float | None): Threshold, or `None` when inadmissible.

    Examples:
        >>> split = NumericalSplit(
        ...     split_type="numerical",
        ...     delta_impurity=162.0,
        ...     left_indices=[0, 1, 2, 3],
        ...     right_indices=[4, 5, 6, 7],
        ...     split_value=4.0,
        ... )
        >>> split.is_admissible
        True
    """

    split_type: Literal["numerical"] = Field(description='Discriminator field. Always "numerical".')
    split_value: float | None = Field(default=None, description="Largest feature value routed left.")


class CategoricalSplit(SplitResult):
    """Two-way partition of the categories of a categorical feature.

    Index lists are grouped by ascending category code, keeping the node's
    sample order within a category.

    Attributes:
        split_type (Literal["categorical"]): Discriminator; always `"categorical"`.
        left_categories (set[float]): Category codes routed left.
        right_categories (set[float]): Category codes routed right.
    """

    split_type: Literal["categorical"] = Field(description='Discriminator field. Always "categorical".')
    left_categories: set[float] = Field(default_factory=set, description="Category codes routed left.")
    right_categories: set[float] = Field(default_factory=set, description="Category codes routed right.")

    @model_validator(mode="after")
    def _validate_categories_disjoint(self) -> CategoricalSplit:
        """Validate that no category is assigned to both sides.

        Returns:
            CategoricalSplit: The validated model instance.

        Raises:
            ValueError: If the two category sets intersect.
        """
        shared = self.left_categories & self.right_categories
        if shared:
            raise ValueError(f"categories assigned to both sides: {sorted(shared)}")
        return self


class TextualSplit(SplitResult):
    """Membership split of a textual feature on one token hash.

    Samples whose token set contains `token` go left.

    Attributes:
        split_type (Literal["textual"]): Discriminator; always `"textual"`.
        token (int): The token hash tested.
    """

    split_type: Literal["textual"] = Field(description='Discriminator field. Always "textual".')
    token: int = Field(ge=0, description="Token hash whose presence routes a sample left.")


# Use this alias when accepting a split of any feature kind; Pydantic will select the correct model automatically.
type Split = Annotated[
    NumericalSplit | CategoricalSplit | TextualSplit,
    Field(discriminator="split_type"),
]
