"""forestkit: a typed feature table and split-search engine for random forests."""

from loguru import logger

from forestkit.features import Feature, FeatureKind
from forestkit.logging import PACKAGE_NAME, enable_logging
from forestkit.models import Column
from forestkit.readers import RawData, read_afm, read_arff, read_table
from forestkit.sampling import BootstrapSample, NumpyRandomSource, RandomSource, bootstrap_real_samples
from forestkit.splitting import (
    CategoricalSplit,
    NumericalSplit,
    Split,
    TextualSplit,
    candidate_tokens,
    categorical_feature_split,
    find_split,
    numerical_feature_split,
    textual_feature_split,
)
from forestkit.table import FeatureTable

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the forestkit module by default

__all__ = [
    "BootstrapSample",
    "CategoricalSplit",
    "Column",
    "Feature",
    "FeatureKind",
    "FeatureTable",
    "NumericalSplit",
    "NumpyRandomSource",
    "RandomSource",
    "RawData",
    "Split",
    "TextualSplit",
    "bootstrap_real_samples",
    "candidate_tokens",
    "categorical_feature_split",
    "enable_logging",
    "find_split",
    "numerical_feature_split",
    "read_afm",
    "read_arff",
    "read_table",
    "textual_feature_split",
]
