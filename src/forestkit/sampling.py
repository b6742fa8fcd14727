"""Random-source capability and bootstrap sampling over real samples.

Randomness is always passed in explicitly as a `RandomSource`; nothing in
forestkit touches a process-wide generator.
"""

from __future__ import annotations

import math
from collections.abc import MutableSequence
from typing import Any, Protocol, runtime_checkable

import numpy as np
from loguru import logger
from pydantic import BaseModel, Field, model_validator

from forestkit.exceptions import InvalidSampleFractionError


@runtime_checkable
class RandomSource(Protocol):
    """Source of uniform random integers and permutations.

    Implementations must provide:
    - uniform_integer(n): a uniform draw from `[0, n)`
    - permute(sequence): a uniformly random in-place reordering
    """

    def uniform_integer(self, n: int) -> int:
        """Draw a uniform integer in `[0, n)`.

        Args:
            n (int): Exclusive upper bound, at least 1.

        Returns:
            int: The drawn integer.
        """
        ...

    def permute(self, sequence: MutableSequence[Any] | np.ndarray) -> None:
        """Shuffle `sequence` in place.

        Args:
            sequence (MutableSequence[Any] | np.ndarray): Items to reorder.
        """
        ...


class NumpyRandomSource:
    """`RandomSource` backed by a `numpy.random.Generator`.

    Examples:
        >>> source = NumpyRandomSource(seed=7)
        >>> 0 <= source.uniform_integer(10) < 10
        True
    """

    def __init__(self, seed: int | None = None, *, generator: np.random.Generator | None = None) -> None:
        """Initialize the random source.

        Args:
            seed (int | None): Seed for a fresh `default_rng`; ignored when
                `generator` is given.
            generator (np.random.Generator | None): An existing generator to draw from.
        """
        self._rng = generator if generator is not None else np.random.default_rng(seed)

    def uniform_integer(self, n: int) -> int:
        """Draw a uniform integer in `[0, n)`."""
        return int(self._rng.integers(n))

    def permute(self, sequence: MutableSequence[Any] | np.ndarray) -> None:
        """Shuffle `sequence` in place."""
        self._rng.shuffle(sequence)  # type: ignore[arg-type]


class BootstrapSample(BaseModel):
    """In-bag and out-of-bag sample indices from one bootstrap draw.

    Attributes:
        in_bag (list[int]): Drawn sample indices, sorted ascending; may
            contain duplicates when drawn with replacement.
        out_of_bag (list[int]): Real samples never drawn, sorted ascending.
    """

    in_bag: list[int] = Field(description="Drawn sample indices, sorted ascending.")
    out_of_bag: list[int] = Field(description="Real samples not drawn, sorted ascending.")

    @model_validator(mode="after")
    def _validate_sorted_and_disjoint(self) -> BootstrapSample:
        """Validate ordering and disjointness of the two index lists.

        Returns:
            BootstrapSample: The validated model instance.

        Raises:
            ValueError: If either list is unsorted or they share an index.
        """
        for label, indices in (("in_bag", self.in_bag), ("out_of_bag", self.out_of_bag)):
            if any(a > b for a, b in zip(indices, indices[1:], strict=False)):
                raise ValueError(f"{label} must be sorted ascending")
        shared = set(self.in_bag) & set(self.out_of_bag)
        if shared:
            raise ValueError(f"in_bag and out_of_bag share samples: {sorted(shared)[:5]}")
        return self


def bootstrap_real_samples(
    values: np.ndarray,
    random_source: RandomSource,
    *,
    with_replacement: bool,
    sample_fraction: float,
) -> BootstrapSample:
    """Draw a bootstrap sample from the non-missing entries of a column.

    The real set holds the `R` positions whose value is not `NaN`;
    `floor(sample_fraction * R)` of them are drawn either independently with
    replacement, or as the head of a random permutation without replacement.

    Args:
        values (np.ndarray): Full-length float64 column, usually the target.
        random_source (RandomSource): Source of randomness.
        with_replacement (bool): Draw independently (duplicates allowed)
            instead of from a permutation.
        sample_fraction (float): Fraction of real samples to draw; must be
            positive, and at most 1.0 without replacement.

    Returns:
        BootstrapSample: Sorted in-bag indices and the sorted out-of-bag
            remainder of the real set.

    Raises:
        InvalidSampleFractionError: If `sample_fraction` is not positive, or
            exceeds 1.0 without replacement.
    """
    if not sample_fraction > 0.0 or (not with_replacement and sample_fraction > 1.0):
        raise InvalidSampleFractionError(sample_fraction, with_replacement=with_replacement)

    real_indices = np.flatnonzero(~np.isnan(values))
    n_real = len(real_indices)
    n_draw = math.floor(sample_fraction * n_real)

    if with_replacement:
        drawn = np.array([real_indices[random_source.uniform_integer(n_real)] for _ in range(n_draw)], dtype=np.int64)
    else:
        order = list(range(n_real))
        random_source.permute(order)
        drawn = real_indices[np.array(order[:n_draw], dtype=np.int64)]

    in_bag = np.sort(drawn)
    out_of_bag = np.setdiff1d(real_indices, in_bag, assume_unique=False)
    logger.debug(
        "Bootstrap drew {} of {} real samples ({} out-of-bag, with_replacement={})",
        n_draw,
        n_real,
        len(out_of_bag),
        with_replacement,
    )
    return BootstrapSample(in_bag=in_bag.tolist(), out_of_bag=out_of_bag.tolist())
