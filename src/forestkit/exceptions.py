"""Custom exceptions for forestkit.

Table errors (subclass FeatureTableError, itself a ValueError):
- DuplicateFeatureError: Raised when two features share a name.
- SampleCountMismatchError: Raised when columns or sample labels disagree on
  the number of samples.
- EmptyTableError: Raised when a table would have no features or no samples.
- DimensionMismatchError: Raised when replacement data has the wrong length.
- UnknownCategoryError: Raised when a categorical code has no label.
- FeatureKindError: Raised when an operation is applied to a feature of the
  wrong kind (e.g. entropy of a numeric feature).

Other errors:
- InvalidSampleFractionError: Raised for a bootstrap fraction that cannot be
  honoured.
- ParseError: Raised by the AFM and ARFF readers on malformed input.

Split search never raises for an unusable split; it reports a zero delta
impurity instead.
"""

from __future__ import annotations


class FeatureTableError(ValueError):
    """Base class for feature table construction and mutation errors."""


class DuplicateFeatureError(FeatureTableError):
    """Raised when duplicate feature names are provided.

    Attributes:
        names (list[str]): The feature names as given.
        duplicate_names (list[str]): Names that occur more than once, each
            listed once in order of their second occurrence.

    Examples:
        >>> err = DuplicateFeatureError(names=["N:age", "N:age", "C:sex"])
        >>> err.duplicate_names
        ['N:age']
    """

    names: list[str]
    duplicate_names: list[str]

    def __init__(self, names: list[str]) -> None:
        """Initialize DuplicateFeatureError.

        Args:
            names (list[str]): The feature name list containing duplicates.
        """
        self.names = names
        seen: set[str] = set()
        self.duplicate_names = []
        for name in names:
            if name in seen and name not in self.duplicate_names:
                self.duplicate_names.append(name)
            seen.add(name)
        super().__init__(f"Duplicate feature names are not allowed: {self.duplicate_names}")


class SampleCountMismatchError(FeatureTableError):
    """Raised when a column does not have the table's sample count.

    Attributes:
        expected (int): Sample count of the table (taken from the first feature).
        actual (int): Sample count of the offending column.
        feature_name (str | None): Name of the offending feature, or `None`
            when the sample labels are at fault.
    """

    expected: int
    actual: int
    feature_name: str | None

    def __init__(self, expected: int, actual: int, feature_name: str | None = None) -> None:
        """Initialize SampleCountMismatchError.

        Args:
            expected (int): The table's sample count.
            actual (int): The offending sample count.
            feature_name (str | None): Name of the offending feature, if any.
        """
        subject = f"feature '{feature_name}'" if feature_name is not None else "sample labels"
        super().__init__(f"Expected {expected} samples but {subject} has {actual}")
        self.expected = expected
        self.actual = actual
        self.feature_name = feature_name


class EmptyTableError(FeatureTableError):
    """Raised when a feature table would contain no features or no samples."""


class DimensionMismatchError(FeatureTableError):
    """Raised when replacement feature data has the wrong number of samples.

    Attributes:
        expected (int): Current sample count of the feature.
        actual (int): Length of the replacement data.
    """

    expected: int
    actual: int

    def __init__(self, expected: int, actual: int) -> None:
        """Initialize DimensionMismatchError.

        Args:
            expected (int): Current sample count of the feature.
            actual (int): Length of the replacement data.
        """
        super().__init__(f"Data dimension mismatch: expected {expected} values, got {actual}")
        self.expected = expected
        self.actual = actual


class UnknownCategoryError(FeatureTableError, LookupError):
    """Raised when a numeric code has no entry in a categorical back-mapping.

    Attributes:
        feature_name (str): The categorical feature consulted.
        code (float): The unmapped code.
    """

    feature_name: str
    code: float

    def __init__(self, feature_name: str, code: float) -> None:
        """Initialize UnknownCategoryError.

        Args:
            feature_name (str): The categorical feature consulted.
            code (float): The unmapped code.
        """
        super().__init__(f"Feature '{feature_name}' has no category for code {code!r}")
        self.feature_name = feature_name
        self.code = code


class FeatureKindError(FeatureTableError, TypeError):
    """Raised when an operation does not support the feature's kind.

    Attributes:
        feature_name (str): The feature the operation was applied to.
        kind (str): The feature's actual kind.
        expected (tuple[str, ...]): Kinds the operation supports.
    """

    feature_name: str
    kind: str
    expected: tuple[str, ...]

    def __init__(self, feature_name: str, kind: str, expected: tuple[str, ...]) -> None:
        """Initialize FeatureKindError.

        Args:
            feature_name (str): The feature the operation was applied to.
            kind (str): The feature's actual kind.
            expected (tuple[str, ...]): Kinds the operation supports.
        """
        super().__init__(f"Feature '{feature_name}' is {kind}; expected one of {list(expected)}")
        self.feature_name = feature_name
        self.kind = kind
        self.expected = expected


class InvalidSampleFractionError(ValueError):
    """Raised when a bootstrap sample fraction cannot be honoured.

    Attributes:
        sample_fraction (float): The requested fraction.
        with_replacement (bool): Whether sampling was with replacement.
    """

    sample_fraction: float
    with_replacement: bool

    def __init__(self, sample_fraction: float, *, with_replacement: bool) -> None:
        """Initialize InvalidSampleFractionError.

        Args:
            sample_fraction (float): The requested fraction.
            with_replacement (bool): Whether sampling was with replacement.
        """
        if sample_fraction <= 0.0:
            message = f"Sample fraction must be positive, got {sample_fraction}"
        else:
            message = f"Cannot sample more than 100% without replacement (sample_fraction={sample_fraction})"
        super().__init__(message)
        self.sample_fraction = sample_fraction
        self.with_replacement = with_replacement


class ParseError(ValueError):
    """Raised when an input file cannot be parsed.

    Attributes:
        path (str | None): The file being read, if known.
        line (int | None): 1-indexed line number of the problem, if known.
    """

    path: str | None
    line: int | None

    def __init__(self, message: str, *, path: str | None = None, line: int | None = None) -> None:
        """Initialize ParseError.

        Args:
            message (str): Description of the problem.
            path (str | None): The file being read.
            line (int | None): 1-indexed line number of the problem.
        """
        super().__init__(message)
        self.path = path
        self.line = line

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Representation including message, path and line.
        """
        return f"{self.__class__.__name__}(message={str(self)!r}, path={self.path!r}, line={self.line!r})"
