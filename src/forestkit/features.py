"""Typed feature columns: numeric, categorical and textual.

A `Feature` is a single tagged record; its `kind` decides which payload is
populated:

- `"numeric"`: `values` holds float64 data, `NaN` marks a missing value.
- `"categorical"`: `values` holds float64 category codes, with the
  `mapping` / `back_mapping` dictionaries translating between labels and codes.
- `"textual"`: `hash_sets` holds one sorted tuple of token hashes per sample;
  `values` is `None`.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final, Literal

import numpy as np
from sklearn.preprocessing import OrdinalEncoder

from forestkit import hashing
from forestkit.exceptions import FeatureKindError, UnknownCategoryError
from forestkit.hashing import TokenSet
from forestkit.missing import is_missing_string

type FeatureKind = Literal["numeric", "categorical", "textual"]

NAN_STRING: Final[str] = "NaN"

_VALUED_KINDS: Final[tuple[FeatureKind, ...]] = ("numeric", "categorical")


@dataclass(frozen=True, eq=False)
class Feature:
    """One named, typed column of a feature table.

    Build instances through `Feature.numeric`, `Feature.categorical` or
    `Feature.textual`; the plain constructor does no encoding.

    Attributes:
        name (str): Feature name, unique within its table.
        kind (FeatureKind): Which payload is populated.
        values (np.ndarray | None): Per-sample float64 values or category
            codes; `None` for textual features.
        hash_sets (list[TokenSet] | None): Per-sample sorted token hashes;
            `None` for non-textual features.
        mapping (dict[str, float]): Category label to code.
        back_mapping (dict[float, str]): Category code to label.

    Examples:
        >>> f = Feature.categorical(["red", "blue", "NA", "red"], "C:color")
        >>> f.back_mapping
        {0.0: 'blue', 1.0: 'red'}
        >>> f.values
        array([ 1.,  0., nan,  1.])
    """

    name: str
    kind: FeatureKind
    values: np.ndarray | None = None
    hash_sets: list[TokenSet] | None = None
    mapping: dict[str, float] = field(default_factory=dict)
    back_mapping: dict[float, str] = field(default_factory=dict)

    @classmethod
    def numeric(cls, values: Sequence[float] | np.ndarray, name: str) -> Feature:
        """Build a numeric feature.

        Args:
            values (Sequence[float] | np.ndarray): One number per sample;
                `NaN` (or `None`) marks a missing value.
            name (str): Feature name.

        Returns:
            Feature: A numeric feature owning a float64 copy of `values`.
        """
        if isinstance(values, np.ndarray):
            data = values.astype(np.float64, copy=True).reshape(-1)
        else:
            data = np.array([np.nan if v is None else v for v in values], dtype=np.float64)
        return cls(name=name, kind="numeric", values=data)

    @classmethod
    def categorical(cls, labels: Sequence[str | None], name: str) -> Feature:
        """Build a categorical feature by ordinal-encoding string labels.

        Distinct non-missing labels receive codes `0..k-1` in sorted label
        order; missing labels encode to `NaN`.

        Args:
            labels (Sequence[str | None]): One label per sample.
            name (str): Feature name.

        Returns:
            Feature: A categorical feature with populated mappings.
        """
        codes, mapping = _encode_categories(labels)
        back_mapping = {code: label for label, code in mapping.items()}
        return cls(name=name, kind="categorical", values=codes, mapping=mapping, back_mapping=back_mapping)

    @classmethod
    def textual(cls, texts: Sequence[str | None], name: str) -> Feature:
        """Build a textual feature by hashing each sample's tokens.

        Args:
            texts (Sequence[str | None]): One text per sample.
            name (str): Feature name.

        Returns:
            Feature: A textual feature with `hash_sets` populated.
        """
        return cls(name=name, kind="textual", hash_sets=hashing.hash_texts(texts))

    @property
    def is_numerical(self) -> bool:
        """bool: Whether the feature is numeric."""
        return self.kind == "numeric"

    @property
    def is_categorical(self) -> bool:
        """bool: Whether the feature is categorical."""
        return self.kind == "categorical"

    @property
    def is_textual(self) -> bool:
        """bool: Whether the feature is textual."""
        return self.kind == "textual"

    @property
    def n_samples(self) -> int:
        """int: Number of samples, from `values` or from `hash_sets` for textual features."""
        if self.hash_sets is not None:
            return len(self.hash_sets)
        return 0 if self.values is None else len(self.values)

    @property
    def n_categories(self) -> int:
        """int: Number of distinct category labels (0 unless categorical)."""
        return len(self.mapping)

    def require_values(self) -> np.ndarray:
        """Return the numeric value array, rejecting textual features.

        Returns:
            np.ndarray: The per-sample float64 values.

        Raises:
            FeatureKindError: If the feature is textual.
        """
        if self.values is None:
            raise FeatureKindError(self.name, self.kind, _VALUED_KINDS)
        return self.values

    def require_hash_sets(self) -> list[TokenSet]:
        """Return the per-sample token sets, rejecting non-textual features.

        Returns:
            list[TokenSet]: The per-sample token tuples.

        Raises:
            FeatureKindError: If the feature is not textual.
        """
        if self.hash_sets is None:
            raise FeatureKindError(self.name, self.kind, ("textual",))
        return self.hash_sets

    def token_at(self, sample_idx: int, key: int) -> int:
        """Select a token of one sample by `key mod set size` in sorted order.

        Args:
            sample_idx (int): Sample position.
            key (int): Selection key, typically a random draw.

        Returns:
            int: The selected token hash.

        Raises:
            FeatureKindError: If the feature is not textual.
            ValueError: If the sample has no tokens.
        """
        return hashing.token_at(self.require_hash_sets()[sample_idx], key)

    def has_token(self, sample_idx: int, token: int) -> bool:
        """Return whether a sample's token set contains `token`.

        Raises:
            FeatureKindError: If the feature is not textual.
        """
        return hashing.contains_token(self.require_hash_sets()[sample_idx], token)

    def entropy(self) -> float:
        """Sum of per-token binary entropies across samples.

        Returns:
            float: See `forestkit.hashing.token_entropy`.

        Raises:
            FeatureKindError: If the feature is not textual.
        """
        return hashing.token_entropy(self.require_hash_sets())

    def raw_value(self, value: float) -> str:
        """Render a stored value back to its input string form.

        Args:
            value (float): A value or category code of this feature.

        Returns:
            str: `"NaN"` for missing values, the canonical number string for
                numeric features, or the category label.

        Raises:
            FeatureKindError: If the feature is textual.
            UnknownCategoryError: If a categorical code has no label.
        """
        if self.is_textual:
            raise FeatureKindError(self.name, self.kind, _VALUED_KINDS)
        if math.isnan(value):
            return NAN_STRING
        if self.is_numerical:
            return format_number(value)
        try:
            return self.back_mapping[float(value)]
        except KeyError:
            raise UnknownCategoryError(self.name, float(value)) from None

    def renamed(self, name: str) -> Feature:
        """Return an independent copy of this feature under a new name.

        Args:
            name (str): The new name.

        Returns:
            Feature: A copy whose value array and token list are not shared
                with this feature.
        """
        return dataclasses.replace(
            self,
            name=name,
            values=None if self.values is None else self.values.copy(),
            hash_sets=None if self.hash_sets is None else list(self.hash_sets),
            mapping=dict(self.mapping),
            back_mapping=dict(self.back_mapping),
        )


def format_number(value: float) -> str:
    """Format a number canonically: integral values without a fractional part.

    Args:
        value (float): A finite or infinite float.

    Returns:
        str: `"3"` for `3.0`, `"0.25"` for `0.25`, `"inf"` for infinity.

    Examples:
        >>> format_number(3.0), format_number(-0.5)
        ('3', '-0.5')
    """
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _encode_categories(labels: Sequence[str | None]) -> tuple[np.ndarray, dict[str, float]]:
    """Ordinal-encode labels with `NaN` for missing entries.

    Args:
        labels (Sequence[str | None]): One label per sample.

    Returns:
        tuple[np.ndarray, dict[str, float]]: A 1-D float64 array of codes and
            the `{label: code}` mapping of the fitted categories.
    """
    present = np.array([not is_missing_string(label) for label in labels], dtype=bool)
    codes = np.full(len(labels), np.nan, dtype=np.float64)
    if not present.any():
        return codes, {}

    raw_column = np.array([str(label) for label, ok in zip(labels, present, strict=True) if ok], dtype=object)
    ordinal_encoder = OrdinalEncoder(dtype=np.float64)
    codes[present] = ordinal_encoder.fit_transform(raw_column.reshape(-1, 1)).ravel()
    mapping = {str(label): float(code) for code, label in enumerate(ordinal_encoder.categories_[0])}
    return codes, mapping
