"""Missing-value filtering that keeps sample indices and values aligned.

Missing values are stored as `NaN` in float64 columns. Every routine here
takes a list of sample indices, looks values up at those indices, and returns
new arrays in which the indices and values stay position-for-position
aligned after the missing entries are dropped. Relative order of the retained
entries is always preserved.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

import numpy as np

MISSING: Final[float] = float("nan")

# Raw strings that encode a missing value on input.
MISSING_STRINGS: Final[frozenset[str]] = frozenset({"", "NA", "NaN", "nan", "NAN", "?", "None", "NULL", "null", "-"})

type SampleIndices = Sequence[int] | np.ndarray


def is_missing_string(raw: str | None) -> bool:
    """Return `True` if a raw input string denotes a missing value.

    Args:
        raw (str | None): The raw string, possibly `None`.

    Returns:
        bool: `True` for `None` and for any member of `MISSING_STRINGS` after
            surrounding whitespace is stripped.
    """
    return raw is None or raw.strip() in MISSING_STRINGS


def as_index_array(sample_indices: SampleIndices) -> np.ndarray:
    """Convert a sample index sequence to a 1-D int64 array.

    Args:
        sample_indices (SampleIndices): Sample positions.

    Returns:
        np.ndarray: The indices as a (possibly shared) int64 array.
    """
    return np.asarray(sample_indices, dtype=np.int64).reshape(-1)


def filter_missing(
    values: np.ndarray,
    sample_indices: SampleIndices,
) -> tuple[np.ndarray, np.ndarray]:
    """Gather one column at the given samples and drop missing entries.

    Args:
        values (np.ndarray): Full-length float64 column.
        sample_indices (SampleIndices): Sample positions to gather.

    Returns:
        tuple[np.ndarray, np.ndarray]: A 2-tuple `(indices, filtered_values)`
            of equal length, where `indices` are the input positions whose
            value is not missing, in their original relative order.

    Examples:
        >>> column = np.array([1.0, np.nan, 3.0, 4.0])
        >>> filter_missing(column, [3, 1, 0])
        (array([3, 0]), array([4., 1.]))
    """
    indices = as_index_array(sample_indices)
    gathered = values[indices]
    keep = ~np.isnan(gathered)
    return indices[keep], gathered[keep]


def filter_missing_pair(
    values_a: np.ndarray,
    values_b: np.ndarray,
    sample_indices: SampleIndices,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Gather two columns at the given samples and drop samples missing in either.

    Args:
        values_a (np.ndarray): First full-length float64 column.
        values_b (np.ndarray): Second full-length float64 column.
        sample_indices (SampleIndices): Sample positions to gather.

    Returns:
        tuple[np.ndarray, np.ndarray, np.ndarray]: A 3-tuple
            `(indices, filtered_a, filtered_b)` of equal length.
    """
    indices = as_index_array(sample_indices)
    gathered_a = values_a[indices]
    gathered_b = values_b[indices]
    keep = ~(np.isnan(gathered_a) | np.isnan(gathered_b))
    return indices[keep], gathered_a[keep], gathered_b[keep]


def count_real(values: np.ndarray, sample_indices: SampleIndices | None = None) -> int:
    """Count non-missing entries of a column, optionally restricted to some samples.

    Args:
        values (np.ndarray): Full-length float64 column.
        sample_indices (SampleIndices | None): Positions to consider; all
            samples when `None`.

    Returns:
        int: Number of non-missing values.
    """
    gathered = values if sample_indices is None else values[as_index_array(sample_indices)]
    return int(np.count_nonzero(~np.isnan(gathered)))
