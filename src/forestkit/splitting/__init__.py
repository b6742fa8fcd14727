"""Split search sub-package: result models, impurity aggregates and search."""

from __future__ import annotations

from forestkit.splitting.impurity import (
    FrequencyAggregate,
    MeanAggregate,
    delta_impurity_classification,
    delta_impurity_regression,
)
from forestkit.splitting.models import (
    CategoricalSplit,
    NumericalSplit,
    Split,
    SplitResult,
    SplitType,
    TextualSplit,
)
from forestkit.splitting.search import (
    EPS,
    candidate_tokens,
    categorical_feature_split,
    find_split,
    numerical_feature_split,
    textual_feature_split,
)

__all__ = [
    "EPS",
    "CategoricalSplit",
    "FrequencyAggregate",
    "MeanAggregate",
    "NumericalSplit",
    "Split",
    "SplitResult",
    "SplitType",
    "TextualSplit",
    "candidate_tokens",
    "categorical_feature_split",
    "delta_impurity_classification",
    "delta_impurity_regression",
    "find_split",
    "numerical_feature_split",
    "textual_feature_split",
]
