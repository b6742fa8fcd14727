"""Pydantic models describing typed input columns for a feature table."""

from __future__ import annotations

import numbers
from typing import Any

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from forestkit.features import Feature, FeatureKind


class Column(BaseModel):
    """A named, typed column supplied to `FeatureTable.from_columns`.

    Numeric columns take numbers (with `None` or `NaN` for missing values);
    categorical and textual columns take strings (with `None` or one of the
    missing-value strings such as `"NA"`).

    Attributes:
        name (str): Feature name; must be unique within the table.
        kind (FeatureKind): `"numeric"`, `"categorical"` or `"textual"`.
        values (list[Any]): One entry per sample.

    Examples:
        >>> Column(name="N:age", kind="numeric", values=[31, 45, None])
        Column(name='N:age', kind='numeric', values=[31, 45, None])
        >>> Column(name="T:notes", kind="textual", values=["red fish", "NA", "blue fish"]).kind
        'textual'
    """

    name: str = Field(min_length=1, description="Feature name, unique within a table.")
    kind: FeatureKind = Field(description='Column kind: "numeric", "categorical" or "textual".')
    values: list[Any] = Field(description="One value per sample.")

    @field_validator("values", mode="before")
    @classmethod
    def _coerce_array(cls, value: Any) -> Any:
        """Accept numpy arrays and other iterables by converting them to lists.

        Args:
            value (Any): The raw `values` input.

        Returns:
            Any: A list when the input was an array or tuple, otherwise unchanged.
        """
        if isinstance(value, np.ndarray):
            return value.tolist()
        if isinstance(value, tuple):
            return list(value)
        return value

    @model_validator(mode="after")
    def _validate_value_types(self) -> Column:
        """Validate that the element types match the column kind.

        Returns:
            Column: The validated model instance.

        Raises:
            ValueError: If a numeric column holds non-numbers, or a
                categorical/textual column holds non-strings.
        """
        if self.kind == "numeric":
            bad = [v for v in self.values if v is not None and not _is_real_number(v)]
        else:
            bad = [v for v in self.values if v is not None and not isinstance(v, str)]
        if bad:
            expected = "numbers" if self.kind == "numeric" else "strings"
            raise ValueError(f"Column '{self.name}' of kind {self.kind} expects {expected}, got {bad[:3]!r}")
        return self

    def to_feature(self) -> Feature:
        """Encode this column as a `Feature`.

        Returns:
            Feature: The encoded feature.
        """
        if self.kind == "numeric":
            return Feature.numeric(self.values, self.name)
        if self.kind == "categorical":
            return Feature.categorical(self.values, self.name)
        return Feature.textual(self.values, self.name)


def _is_real_number(value: Any) -> bool:
    # bool is a numbers.Real subclass but never a meaningful numeric feature value.
    return isinstance(value, numbers.Real) and not isinstance(value, bool)
