"""Split search: the best binary partition of a node's samples on one feature.

Every search takes a target feature, a candidate feature, a minimum leaf size
and the node's sample indices, and returns a split result whose
`delta_impurity` is 0.0 when no admissible split exists. A split is
admissible only when both sides hold at least `min_samples` samples, so fewer
than `2 * min_samples` real samples can never be split.

Numeric and categorical candidates share one boundary scan: samples are
arranged in blocks (runs of equal feature values, or whole categories), and
the scan moves one block at a time from the right group to the left group,
updating running target aggregates and scoring each block boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import numpy as np
from loguru import logger

from forestkit.exceptions import FeatureKindError
from forestkit.hashing import contains_token
from forestkit.missing import SampleIndices, as_index_array, filter_missing, filter_missing_pair
from forestkit.splitting.impurity import delta_impurity, new_aggregate
from forestkit.splitting.models import CategoricalSplit, NumericalSplit, Split, TextualSplit

if TYPE_CHECKING:
    from forestkit.features import Feature
    from forestkit.sampling import RandomSource
    from forestkit.table import FeatureTable

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

EPS: Final[float] = 1e-12  # Categorical splits must improve impurity by more than this.
_TOKEN_KEY_RANGE: Final[int] = 2**31  # Keys drawn for token selection; reduced mod the token-set size.


# ---------------------------------------------------------------------------
# Public interface -- Split search
# ---------------------------------------------------------------------------


def numerical_feature_split(
    table: FeatureTable,
    target_idx: int,
    feature_idx: int,
    min_samples: int,
    sample_indices: SampleIndices,
) -> NumericalSplit:
    """Find the best threshold split of a numeric feature.

    Samples missing in either the target or the feature are dropped. The rest
    are stably sorted by feature value, and only boundaries between distinct
    adjacent values are scored, so equal values never end up on different
    sides. The first boundary attaining the maximum score wins.

    Args:
        table (FeatureTable): The table holding both features.
        target_idx (int): Index of the numeric or categorical target.
        feature_idx (int): Index of the numeric candidate feature.
        min_samples (int): Minimum number of samples on each side.
        sample_indices (SampleIndices): The node's samples.

    Returns:
        NumericalSplit: The best split, with both index lists in ascending
            feature-value order and `split_value` the largest value routed
            left; or a zero-score result whose `right_indices` are the real
            samples in their original order.

    Raises:
        FeatureKindError: If the feature is not numeric or the target is textual.
        ValueError: If `min_samples` is negative.
    """
    _validate_min_samples(min_samples)
    target = table.feature(target_idx)
    feature = table.feature(feature_idx)
    numeric_target = _is_numeric_target(target)
    if not feature.is_numerical:
        raise FeatureKindError(feature.name, feature.kind, ("numeric",))

    indices, target_values, feature_values = filter_missing_pair(
        target.require_values(), feature.require_values(), sample_indices
    )
    n_total = len(indices)
    if n_total < 2 * min_samples:
        return _no_numerical_split(indices)

    order = np.argsort(feature_values, kind="stable")
    sorted_features = feature_values[order]
    sorted_targets = target_values[order]
    sorted_indices = indices[order]
    block_ends = np.append(np.flatnonzero(np.diff(sorted_features)) + 1, n_total)

    best_block, best_di = _scan_block_boundaries(
        sorted_targets, block_ends, numeric_target=numeric_target, min_samples=min_samples
    )
    if best_block is None:
        return _no_numerical_split(indices)

    split_pos = int(block_ends[best_block])
    split_value = float(sorted_features[split_pos - 1])
    logger.trace(
        "Numerical split of '{}' at {} ({} | {}), DI={}",
        feature.name,
        split_value,
        split_pos,
        n_total - split_pos,
        best_di,
    )
    return NumericalSplit(
        split_type="numerical",
        delta_impurity=best_di,
        left_indices=sorted_indices[:split_pos].tolist(),
        right_indices=sorted_indices[split_pos:].tolist(),
        split_value=split_value,
    )


def categorical_feature_split(
    table: FeatureTable,
    target_idx: int,
    feature_idx: int,
    min_samples: int,
    sample_indices: SampleIndices,
) -> CategoricalSplit:
    """Find the best two-way partition of the categories of a categorical feature.

    Categories are ordered (by mean target value for a numeric target, ties
    broken by code; by ascending code for a categorical target) and the
    boundary scan runs over whole categories, so no category is ever split
    across sides. A split must improve impurity by more than `EPS`.

    Args:
        table (FeatureTable): The table holding both features.
        target_idx (int): Index of the numeric or categorical target.
        feature_idx (int): Index of the categorical candidate feature.
        min_samples (int): Minimum number of samples on each side.
        sample_indices (SampleIndices): The node's samples.

    Returns:
        CategoricalSplit: The best partition; index lists are grouped by
            ascending category code with the node's order kept within each
            category. A zero-score result has empty category sets and the real
            samples in `right_indices`.

    Raises:
        FeatureKindError: If the feature is not categorical or the target is textual.
        ValueError: If `min_samples` is negative.
    """
    _validate_min_samples(min_samples)
    target = table.feature(target_idx)
    feature = table.feature(feature_idx)
    numeric_target = _is_numeric_target(target)
    if not feature.is_categorical:
        raise FeatureKindError(feature.name, feature.kind, ("categorical",))

    indices, target_values, feature_values = filter_missing_pair(
        target.require_values(), feature.require_values(), sample_indices
    )
    n_total = len(indices)
    if n_total < 2 * min_samples:
        return _no_categorical_split(indices)

    codes, inverse, counts = np.unique(feature_values, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    if numeric_target:
        means = np.bincount(inverse, weights=target_values, minlength=len(codes)) / counts
        code_order = np.lexsort((codes, means))
    else:
        code_order = np.arange(len(codes))

    rank = np.empty(len(codes), dtype=np.int64)
    rank[code_order] = np.arange(len(codes))
    grouped_targets = target_values[np.argsort(rank[inverse], kind="stable")]
    block_ends = np.cumsum(counts[code_order])

    best_block, best_di = _scan_block_boundaries(
        grouped_targets, block_ends, numeric_target=numeric_target, min_samples=min_samples
    )
    if best_block is None or best_di <= EPS:
        return _no_categorical_split(indices)

    left_codes = codes[code_order[: best_block + 1]]
    right_codes = codes[code_order[best_block + 1 :]]
    goes_left = np.isin(feature_values, left_codes)
    logger.trace(
        "Categorical split of '{}' into {} | {} categories, DI={}",
        feature.name,
        len(left_codes),
        len(right_codes),
        best_di,
    )
    return CategoricalSplit(
        split_type="categorical",
        delta_impurity=best_di,
        left_indices=_group_by_code(indices[goes_left], feature_values[goes_left]),
        right_indices=_group_by_code(indices[~goes_left], feature_values[~goes_left]),
        left_categories={float(code) for code in left_codes},
        right_categories={float(code) for code in right_codes},
    )


def textual_feature_split(
    table: FeatureTable,
    target_idx: int,
    feature_idx: int,
    token: int,
    min_samples: int,
    sample_indices: SampleIndices,
) -> TextualSplit:
    """Split a node on the presence of one token in a textual feature.

    A single pass routes samples whose token set contains `token` to the left
    and the rest to the right, accumulating target aggregates on the way.
    Samples with a missing target are dropped first.

    Args:
        table (FeatureTable): The table holding both features.
        target_idx (int): Index of the numeric or categorical target.
        feature_idx (int): Index of the textual candidate feature.
        token (int): Token hash to test, usually chosen with `candidate_tokens`.
        min_samples (int): Minimum number of samples on each side.
        sample_indices (SampleIndices): The node's samples.

    Returns:
        TextualSplit: The membership split, or a zero-score result (both
            partitions discarded) if either side is smaller than `min_samples`.

    Raises:
        FeatureKindError: If the feature is not textual or the target is textual.
        ValueError: If `min_samples` is negative.
    """
    _validate_min_samples(min_samples)
    target = table.feature(target_idx)
    feature = table.feature(feature_idx)
    numeric_target = _is_numeric_target(target)
    hash_sets = feature.require_hash_sets()

    indices, target_values = filter_missing(target.require_values(), sample_indices)

    left = new_aggregate(numeric_target=numeric_target)
    right = new_aggregate(numeric_target=numeric_target)
    total = new_aggregate(numeric_target=numeric_target)
    left_indices: list[int] = []
    right_indices: list[int] = []
    for sample_idx, x in zip(indices.tolist(), target_values.tolist(), strict=True):
        if contains_token(hash_sets[sample_idx], token):
            left_indices.append(sample_idx)
            left.add(x)
        else:
            right_indices.append(sample_idx)
            right.add(x)
        total.add(x)

    if len(left_indices) < min_samples or len(right_indices) < min_samples:
        return _no_textual_split(indices, token)

    di = delta_impurity(left, right, total)
    if di <= 0.0:
        return _no_textual_split(indices, token)

    logger.trace("Textual split of '{}' on token {} ({} | {}), DI={}", feature.name, token, left.count, right.count, di)
    return TextualSplit(
        split_type="textual",
        delta_impurity=di,
        left_indices=left_indices,
        right_indices=right_indices,
        token=token,
    )


def find_split(
    table: FeatureTable,
    target_idx: int,
    feature_idx: int,
    min_samples: int,
    sample_indices: SampleIndices,
    *,
    token: int | None = None,
) -> Split:
    """Dispatch split search on the candidate feature's kind.

    Args:
        table (FeatureTable): The table holding both features.
        target_idx (int): Index of the target feature.
        feature_idx (int): Index of the candidate feature.
        min_samples (int): Minimum number of samples on each side.
        sample_indices (SampleIndices): The node's samples.
        token (int | None): Token to test; required for textual candidates.

    Returns:
        Split: A `NumericalSplit`, `CategoricalSplit` or `TextualSplit`.

    Raises:
        ValueError: If the candidate is textual and no `token` is given.
    """
    feature = table.feature(feature_idx)
    if feature.is_numerical:
        return numerical_feature_split(table, target_idx, feature_idx, min_samples, sample_indices)
    if feature.is_categorical:
        return categorical_feature_split(table, target_idx, feature_idx, min_samples, sample_indices)
    if token is None:
        raise ValueError(f"Textual feature '{feature.name}' needs a token to split on")
    return textual_feature_split(table, target_idx, feature_idx, token, min_samples, sample_indices)


def candidate_tokens(
    table: FeatureTable,
    feature_idx: int,
    sample_indices: SampleIndices,
    random_source: RandomSource,
    n_draws: int,
) -> list[int]:
    """Draw a pool of trial tokens for a textual feature.

    Each draw picks a random sample of the node and a random key, and selects
    that sample's token at `key mod set size`. Samples without tokens yield
    nothing, so the pool may hold fewer than `n_draws` distinct tokens.

    Args:
        table (FeatureTable): The table holding the feature.
        feature_idx (int): Index of the textual feature.
        sample_indices (SampleIndices): The node's samples.
        random_source (RandomSource): Source of the random draws.
        n_draws (int): Number of draws.

    Returns:
        list[int]: Distinct tokens, sorted ascending.
    """
    hash_sets = table.token_sets(feature_idx)
    indices = as_index_array(sample_indices)
    tokens: set[int] = set()
    if len(indices) == 0:
        return []
    for _ in range(n_draws):
        sample_idx = int(indices[random_source.uniform_integer(len(indices))])
        if not hash_sets[sample_idx]:
            continue
        tokens.add(table.token_at(feature_idx, sample_idx, random_source.uniform_integer(_TOKEN_KEY_RANGE)))
    return sorted(tokens)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _scan_block_boundaries(
    target_values: np.ndarray,
    block_ends: np.ndarray,
    *,
    numeric_target: bool,
    min_samples: int,
) -> tuple[int | None, float]:
    """Score every block boundary and return the best one.

    Args:
        target_values (np.ndarray): Target values arranged block by block.
        block_ends (np.ndarray): Exclusive end position of each block; the
            last entry equals `len(target_values)`.
        numeric_target (bool): Score with means instead of squared frequencies.
        min_samples (int): Minimum number of samples on each side.

    Returns:
        tuple[int | None, float]: Index of the last block of the best left
            group and its score, or `(None, 0.0)` when no boundary with a
            positive score satisfies `min_samples`.
    """
    targets = target_values.tolist()
    total = new_aggregate(numeric_target=numeric_target, values=targets)
    left = new_aggregate(numeric_target=numeric_target)
    right = new_aggregate(numeric_target=numeric_target, values=targets)

    best_block: int | None = None
    best_di = 0.0
    start = 0
    for block, end in enumerate(block_ends[:-1].tolist()):
        for x in targets[start:end]:
            left.add(x)
            right.remove(x)
        start = end
        if right.count < min_samples:
            break
        if left.count < min_samples:
            continue
        di = delta_impurity(left, right, total)
        if di > best_di:
            best_block, best_di = block, di
    return best_block, best_di


def _group_by_code(indices: np.ndarray, codes: np.ndarray) -> list[int]:
    """Order sample indices by ascending category code, stable within a code."""
    return indices[np.argsort(codes, kind="stable")].tolist()


def _is_numeric_target(target: Feature) -> bool:
    """Return whether the target is numeric, rejecting textual targets.

    Raises:
        FeatureKindError: If the target is textual.
    """
    if target.is_textual:
        raise FeatureKindError(target.name, target.kind, ("numeric", "categorical"))
    return target.is_numerical


def _validate_min_samples(min_samples: int) -> None:
    if min_samples < 0:
        raise ValueError(f"min_samples must be non-negative, got {min_samples}")


def _no_numerical_split(indices: np.ndarray) -> NumericalSplit:
    return NumericalSplit(split_type="numerical", delta_impurity=0.0, left_indices=[], right_indices=indices.tolist())


def _no_categorical_split(indices: np.ndarray) -> CategoricalSplit:
    return CategoricalSplit(split_type="categorical", delta_impurity=0.0, left_indices=[], right_indices=indices.tolist())


def _no_textual_split(indices: np.ndarray, token: int) -> TextualSplit:
    return TextualSplit(
        split_type="textual", delta_impurity=0.0, left_indices=[], right_indices=indices.tolist(), token=token
    )
