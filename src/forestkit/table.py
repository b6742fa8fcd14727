"""The feature table: an ordered set of typed features over shared samples.

A `FeatureTable` is built once, from typed columns, from reader output, or from
a polars DataFrame. After construction its shape is fixed: feature data may be
replaced in place and contrast features may be permuted, but features are
never added or removed (contrast creation excepted).

When contrasts are enabled, the feature list is doubled: positions `[0, n)`
hold the real features and `[n, 2n)` hold shadow copies named
`<name>_CONTRAST`. `feature_count` reports `n`; contrast positions remain
addressable by index and by name.

The table does no locking; at most one mutation or split search may run
against a table at a time.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Final

import numpy as np
import polars as pl
from loguru import logger

from forestkit.exceptions import (
    DimensionMismatchError,
    DuplicateFeatureError,
    EmptyTableError,
    ParseError,
    SampleCountMismatchError,
)
from forestkit.features import Feature, FeatureKind
from forestkit.hashing import TokenSet
from forestkit.missing import (
    SampleIndices,
    as_index_array,
    count_real,
    filter_missing,
    filter_missing_pair,
    is_missing_string,
)
from forestkit.sampling import BootstrapSample, RandomSource, bootstrap_real_samples

if TYPE_CHECKING:
    from forestkit.models import Column

NOT_FOUND: Final[int] = -1
CONTRAST_SUFFIX: Final[str] = "_CONTRAST"
DEFAULT_SAMPLE_LABEL: Final[str] = "NO_SAMPLE_ID"

_NUMERIC_DTYPES: Final[frozenset[type[pl.DataType]]] = frozenset({
    pl.Int8,
    pl.Int16,
    pl.Int32,
    pl.Int64,
    pl.UInt8,
    pl.UInt16,
    pl.UInt32,
    pl.UInt64,
    pl.Float32,
    pl.Float64,
})
_CATEGORICAL_DTYPES: Final[frozenset[type[pl.DataType]]] = frozenset({pl.String, pl.Categorical, pl.Boolean})


class FeatureTable:
    """Typed features over a common set of samples.

    Attributes:
        use_contrasts (bool): Whether contrast features were created at
            construction.

    Examples:
        >>> table = FeatureTable.from_columns([
        ...     Column(name="N:age", kind="numeric", values=[31, 45, None, 27]),
        ...     Column(name="C:plan", kind="categorical", values=["basic", "pro", "pro", "NA"]),
        ... ])
        >>> table.feature_count, table.sample_count
        (2, 4)
        >>> table.raw_value(1, 0)
        'basic'
        >>> table.feature_index("N:height")
        -1
    """

    def __init__(
        self,
        features: Sequence[Feature],
        *,
        use_contrasts: bool = False,
        sample_labels: Sequence[str] | None = None,
    ) -> None:
        """Initialize the table from already-encoded features.

        Args:
            features (Sequence[Feature]): Features in table order.
            use_contrasts (bool): Create one contrast feature per real feature.
            sample_labels (Sequence[str] | None): One label per sample;
                `"NO_SAMPLE_ID"` placeholders when `None` or empty.

        Raises:
            EmptyTableError: If there are no features or no samples.
            DuplicateFeatureError: If two features share a name.
            SampleCountMismatchError: If features or labels disagree on the
                sample count.
        """
        if not features:
            raise EmptyTableError("A feature table needs at least one feature")

        names = [feature.name for feature in features]
        if len(set(names)) != len(names):
            error = DuplicateFeatureError(names)
            logger.error("Rejected feature table: {}", error)
            raise error

        n_samples = features[0].n_samples
        if n_samples == 0:
            raise EmptyTableError("A feature table needs at least one sample")
        for feature in features:
            if feature.n_samples != n_samples:
                error = SampleCountMismatchError(n_samples, feature.n_samples, feature.name)
                logger.error("Rejected feature table: {}", error)
                raise error

        if sample_labels is None or len(sample_labels) == 0:
            labels = [DEFAULT_SAMPLE_LABEL] * n_samples
        elif len(sample_labels) != n_samples:
            raise SampleCountMismatchError(n_samples, len(sample_labels))
        else:
            labels = [str(label) for label in sample_labels]

        self._features: list[Feature] = list(features)
        self._n_features = len(self._features)
        self._n_samples = n_samples
        self._sample_labels = labels
        self._name_index: dict[str, int] = {name: idx for idx, name in enumerate(names)}
        self.use_contrasts = use_contrasts

        if use_contrasts:
            self.create_contrasts()

        logger.debug(
            "Built feature table with {} features x {} samples (contrasts={})",
            self._n_features,
            self._n_samples,
            use_contrasts,
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_columns(
        cls,
        columns: Iterable[Column],
        *,
        use_contrasts: bool = False,
        sample_labels: Sequence[str] | None = None,
    ) -> FeatureTable:
        """Build a table from typed `Column` specifications.

        Args:
            columns (Iterable[Column]): Columns in table order.
            use_contrasts (bool): Create contrast features.
            sample_labels (Sequence[str] | None): Optional sample labels.

        Returns:
            FeatureTable: The constructed table.
        """
        features = [column.to_feature() for column in columns]
        return cls(features, use_contrasts=use_contrasts, sample_labels=sample_labels)

    @classmethod
    def from_raw(
        cls,
        matrix: Sequence[Sequence[str]],
        names: Sequence[str],
        kinds: Sequence[FeatureKind],
        sample_labels: Sequence[str] | None = None,
        *,
        use_contrasts: bool = False,
    ) -> FeatureTable:
        """Build a table from reader output: a feature-major string matrix.

        Args:
            matrix (Sequence[Sequence[str]]): One row of raw strings per feature.
            names (Sequence[str]): Feature names, parallel to `matrix`.
            kinds (Sequence[FeatureKind]): Feature kinds, parallel to `matrix`.
            sample_labels (Sequence[str] | None): Sample labels, or empty/`None`
                for placeholders.
            use_contrasts (bool): Create contrast features.

        Returns:
            FeatureTable: The constructed table.

        Raises:
            ParseError: If a numeric feature holds a non-numeric string.
            DimensionMismatchError: If `names` or `kinds` are not parallel
                to `matrix`.
        """
        if len(names) != len(matrix) or len(kinds) != len(matrix):
            raise DimensionMismatchError(len(matrix), min(len(names), len(kinds)))

        features: list[Feature] = []
        for raw_values, name, kind in zip(matrix, names, kinds, strict=True):
            if kind == "numeric":
                features.append(Feature.numeric(_parse_numbers(raw_values, name), name))
            elif kind == "categorical":
                features.append(Feature.categorical(raw_values, name))
            else:
                features.append(Feature.textual(raw_values, name))
        return cls(features, use_contrasts=use_contrasts, sample_labels=sample_labels)

    @classmethod
    def from_polars(
        cls,
        df: pl.DataFrame,
        *,
        textual_columns: Iterable[str] = (),
        sample_label_column: str | None = None,
        use_contrasts: bool = False,
    ) -> FeatureTable:
        """Build a table from a polars DataFrame, classifying columns by dtype.

        Integer and float columns become numeric features; String, Categorical,
        Enum and Boolean columns become categorical features, unless listed in
        `textual_columns`. Columns of any other dtype are skipped with a
        warning.

        Args:
            df (pl.DataFrame): Source data, one row per sample.
            textual_columns (Iterable[str]): String columns to hash as text.
            sample_label_column (str | None): Column holding sample labels;
                it is not turned into a feature.
            use_contrasts (bool): Create contrast features.

        Returns:
            FeatureTable: The constructed table.
        """
        textual = set(textual_columns)
        features: list[Feature] = []
        for name in df.columns:
            if name == sample_label_column:
                continue
            series = df[name]
            if name in textual:
                features.append(Feature.textual(series.cast(pl.String).to_list(), name))
            elif series.dtype in _NUMERIC_DTYPES:
                features.append(Feature.numeric(series.cast(pl.Float64).to_numpy(), name))
            elif series.dtype in _CATEGORICAL_DTYPES or isinstance(series.dtype, (pl.Categorical, pl.Enum)):
                features.append(Feature.categorical(series.cast(pl.String).to_list(), name))
            else:
                logger.warning("Skipping column '{}' with unsupported dtype {}", name, series.dtype)

        labels = None
        if sample_label_column is not None:
            labels = df[sample_label_column].cast(pl.String).fill_null(DEFAULT_SAMPLE_LABEL).to_list()
        return cls(features, use_contrasts=use_contrasts, sample_labels=labels)

    def to_polars(self, *, include_contrasts: bool = False) -> pl.DataFrame:
        """Export the table as a polars DataFrame, one row per sample.

        Numeric features become Float64 columns, categorical features String
        columns of labels, and textual features List(UInt32) columns of token
        hashes. Missing values become nulls.

        Args:
            include_contrasts (bool): Also export contrast features.

        Returns:
            pl.DataFrame: The exported data.
        """
        n_export = len(self._features) if include_contrasts else self._n_features
        columns: list[pl.Series] = []
        for feature in self._features[:n_export]:
            if feature.is_textual:
                token_lists = [list(tokens) for tokens in feature.require_hash_sets()]
                columns.append(pl.Series(feature.name, token_lists, dtype=pl.List(pl.UInt32)))
            elif feature.is_categorical:
                labels = [None if np.isnan(code) else feature.back_mapping[code] for code in feature.require_values()]
                columns.append(pl.Series(feature.name, labels, dtype=pl.String))
            else:
                columns.append(pl.Series(feature.name, feature.require_values()).fill_nan(None))
        return pl.DataFrame(columns)

    # ------------------------------------------------------------------
    # Shape and lookup
    # ------------------------------------------------------------------

    @property
    def feature_count(self) -> int:
        """int: Number of real features, excluding contrasts."""
        return self._n_features

    @property
    def sample_count(self) -> int:
        """int: Number of samples."""
        return self._n_samples

    @property
    def sample_labels(self) -> list[str]:
        """list[str]: A copy of the per-sample labels."""
        return list(self._sample_labels)

    @property
    def features(self) -> tuple[Feature, ...]:
        """tuple[Feature, ...]: All features including contrasts, in table order."""
        return tuple(self._features)

    def __repr__(self) -> str:
        """Return a short summary of the table shape.

        Returns:
            str: e.g. `FeatureTable(features=3, samples=100, contrasts=True)`.
        """
        return f"FeatureTable(features={self._n_features}, samples={self._n_samples}, contrasts={self.use_contrasts})"

    def feature_index(self, name: str) -> int:
        """Return the index of a feature by name, or `NOT_FOUND` (-1).

        Contrast features are found under their `_CONTRAST` names.
        """
        return self._name_index.get(name, NOT_FOUND)

    def feature(self, feature_idx: int) -> Feature:
        """Return the feature at an index, contrasts included."""
        return self._features[feature_idx]

    def feature_name(self, feature_idx: int) -> str:
        """Return the name of the feature at an index."""
        return self._features[feature_idx].name

    def sample_label(self, sample_idx: int) -> str:
        """Return the label of the sample at an index."""
        return self._sample_labels[sample_idx]

    def is_numerical(self, feature_idx: int) -> bool:
        """Return whether the feature at an index is numeric."""
        return self._features[feature_idx].is_numerical

    def is_categorical(self, feature_idx: int) -> bool:
        """Return whether the feature at an index is categorical."""
        return self._features[feature_idx].is_categorical

    def is_textual(self, feature_idx: int) -> bool:
        """Return whether the feature at an index is textual."""
        return self._features[feature_idx].is_textual

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def values(self, feature_idx: int, sample_indices: SampleIndices | None = None) -> np.ndarray:
        """Return a copy of a feature's numeric values or category codes.

        Args:
            feature_idx (int): Feature index.
            sample_indices (SampleIndices | None): Samples to gather; the whole
                column when `None`.

        Returns:
            np.ndarray: float64 values with `NaN` for missing entries.

        Raises:
            FeatureKindError: If the feature is textual.
        """
        data = self._features[feature_idx].require_values()
        if sample_indices is None:
            return data.copy()
        return data[as_index_array(sample_indices)]

    def raw_value(self, feature_idx: int, sample_idx: int) -> str:
        """Return the original string form of one stored value.

        Args:
            feature_idx (int): Feature index.
            sample_idx (int): Sample index.

        Returns:
            str: `"NaN"` for missing values, the canonical number string for
                numeric features, or the category label.

        Raises:
            FeatureKindError: If the feature is textual.
            UnknownCategoryError: If the stored code has no label.
        """
        feature = self._features[feature_idx]
        return feature.raw_value(float(feature.require_values()[sample_idx]))

    def raw_values(self, feature_idx: int) -> list[str]:
        """Return the original string form of a whole column.

        Raises:
            FeatureKindError: If the feature is textual.
        """
        feature = self._features[feature_idx]
        return [feature.raw_value(float(value)) for value in feature.require_values()]

    def replace_feature_data(
        self,
        feature_idx: int,
        data: Sequence[float] | Sequence[str] | np.ndarray,
        *,
        as_text: bool = False,
    ) -> None:
        """Replace a feature's data in place, keeping its name.

        Numbers produce a numeric feature; strings produce a categorical
        feature whose codes are derived from scratch, or a textual feature when
        `as_text` is set.

        Args:
            feature_idx (int): Feature index.
            data (Sequence[float] | Sequence[str] | np.ndarray): One value per sample.
            as_text (bool): Hash string data as text instead of encoding categories.

        Raises:
            DimensionMismatchError: If `data` does not have one entry per sample.
        """
        current = self._features[feature_idx]
        if len(data) != current.n_samples:
            raise DimensionMismatchError(current.n_samples, len(data))

        if _is_string_data(data):
            strings: Sequence[str] = data  # type: ignore[assignment]
            replacement = Feature.textual(strings, current.name) if as_text else Feature.categorical(strings, current.name)
        else:
            replacement = Feature.numeric(data, current.name)  # type: ignore[arg-type]
        self._features[feature_idx] = replacement
        logger.debug("Replaced data of feature '{}' as {}", current.name, replacement.kind)

    # ------------------------------------------------------------------
    # Contrasts
    # ------------------------------------------------------------------

    def create_contrasts(self) -> None:
        """Append a `_CONTRAST` copy of every feature currently in the table.

        Each call doubles the feature list again; the constructor calls this
        once when `use_contrasts` is set. A contrast name seen before is
        remapped to its newest copy, so after a second call `"x_CONTRAST"`
        resolves to the copy made by that call.

        Raises:
            DuplicateFeatureError: If a contrast name collides with a real
                feature name.
        """
        originals = list(self._features)
        contrasts = [feature.renamed(feature.name + CONTRAST_SUFFIX) for feature in originals]
        real_names = [feature.name for feature in originals[: self._n_features]]
        taken = set(real_names)
        collisions = [contrast.name for contrast in contrasts if contrast.name in taken]
        if collisions:
            raise DuplicateFeatureError(real_names + collisions)

        offset = len(originals)
        self._features.extend(contrasts)
        for idx, contrast in enumerate(contrasts, start=offset):
            self._name_index[contrast.name] = idx
        self.use_contrasts = True
        logger.debug("Created {} contrast features", len(contrasts))

    def permute_contrasts(self, random_source: RandomSource) -> None:
        """Shuffle each contrast feature's non-missing values among their positions.

        The marginal value distribution and the missing-value pattern of every
        contrast are preserved while its association with any target is broken.
        For textual contrasts the non-empty token sets are shuffled.

        Args:
            random_source (RandomSource): Source of the permutations.
        """
        all_samples = np.arange(self._n_samples)
        for feature in self._features[self._n_features :]:
            if feature.is_textual:
                hash_sets = feature.require_hash_sets()
                positions = [idx for idx, tokens in enumerate(hash_sets) if tokens]
                shuffled = [hash_sets[idx] for idx in positions]
                random_source.permute(shuffled)
                for idx, tokens in zip(positions, shuffled, strict=True):
                    hash_sets[idx] = tokens
                continue

            data = feature.require_values()
            indices, real_values = filter_missing(data, all_samples)
            random_source.permute(real_values)
            data[indices] = real_values
        logger.debug("Permuted {} contrast features", len(self._features) - self._n_features)

    # ------------------------------------------------------------------
    # Categories and text
    # ------------------------------------------------------------------

    def categories(self, feature_idx: int) -> list[str]:
        """Return the distinct labels of a categorical feature in code order.

        Returns:
            list[str]: Labels; empty for numeric and textual features.
        """
        back_mapping = self._features[feature_idx].back_mapping
        return [back_mapping[code] for code in sorted(back_mapping)]

    def category_count(self, feature_idx: int) -> int:
        """Return the number of distinct labels of a feature (0 unless categorical)."""
        return self._features[feature_idx].n_categories

    def max_category_count(self) -> int:
        """Return the largest category count among the real features."""
        return max(feature.n_categories for feature in self._features[: self._n_features])

    def feature_entropy(self, feature_idx: int) -> float:
        """Return the summed per-token entropy of a textual feature.

        Raises:
            FeatureKindError: If the feature is not textual.
        """
        return self._features[feature_idx].entropy()

    def token_at(self, feature_idx: int, sample_idx: int, key: int) -> int:
        """Select a token of one sample of a textual feature by `key mod set size`."""
        return self._features[feature_idx].token_at(sample_idx, key)

    def has_token(self, feature_idx: int, sample_idx: int, token: int) -> bool:
        """Return whether one sample of a textual feature contains `token`."""
        return self._features[feature_idx].has_token(sample_idx, token)

    def token_sets(self, feature_idx: int) -> list[TokenSet]:
        """Return the per-sample token sets of a textual feature.

        Raises:
            FeatureKindError: If the feature is not textual.
        """
        return self._features[feature_idx].require_hash_sets()

    # ------------------------------------------------------------------
    # Missing values and sampling
    # ------------------------------------------------------------------

    def real_sample_count(self, feature_idx: int, other_idx: int | None = None) -> int:
        """Count samples whose value is present in one feature, or in both of two.

        Args:
            feature_idx (int): Feature index.
            other_idx (int | None): Optional second feature index.

        Returns:
            int: Number of real samples.
        """
        data = self._features[feature_idx].require_values()
        if other_idx is None:
            return count_real(data)
        indices, _, _ = filter_missing_pair(data, self._features[other_idx].require_values(), np.arange(self._n_samples))
        return len(indices)

    def filtered_values(self, feature_idx: int, sample_indices: SampleIndices) -> tuple[np.ndarray, np.ndarray]:
        """Gather a feature at the given samples, dropping missing entries.

        Returns:
            tuple[np.ndarray, np.ndarray]: `(indices, values)` of equal length.
        """
        return filter_missing(self._features[feature_idx].require_values(), sample_indices)

    def filtered_value_pair(
        self,
        first_idx: int,
        second_idx: int,
        sample_indices: SampleIndices,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Gather two features at the given samples, dropping samples missing in either.

        Returns:
            tuple[np.ndarray, np.ndarray, np.ndarray]: `(indices, first, second)`
                of equal length.
        """
        return filter_missing_pair(
            self._features[first_idx].require_values(),
            self._features[second_idx].require_values(),
            sample_indices,
        )

    def bootstrap(
        self,
        random_source: RandomSource,
        *,
        with_replacement: bool,
        sample_fraction: float,
        target_idx: int,
    ) -> BootstrapSample:
        """Draw in-bag and out-of-bag samples among the real samples of a feature.

        See `forestkit.sampling.bootstrap_real_samples`.

        Raises:
            InvalidSampleFractionError: For an unusable `sample_fraction`.
            FeatureKindError: If the target feature is textual.
        """
        return bootstrap_real_samples(
            self._features[target_idx].require_values(),
            random_source,
            with_replacement=with_replacement,
            sample_fraction=sample_fraction,
        )


def _parse_numbers(raw_values: Sequence[str], name: str) -> list[float]:
    """Parse raw strings of a numeric feature, mapping missing strings to `NaN`.

    Raises:
        ParseError: If a non-missing string is not a number.
    """
    parsed: list[float] = []
    for raw in raw_values:
        if is_missing_string(raw):
            parsed.append(np.nan)
            continue
        try:
            parsed.append(float(raw))
        except ValueError:
            raise ParseError(f"Numeric feature '{name}' has non-numeric value {raw!r}") from None
    return parsed


def _is_string_data(data: Sequence[float] | Sequence[str] | np.ndarray) -> bool:
    if isinstance(data, np.ndarray):
        return data.dtype.kind in {"U", "S", "O"} and any(isinstance(v, str) for v in data)
    return any(isinstance(v, str) for v in data)

