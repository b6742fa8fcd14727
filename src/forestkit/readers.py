"""Readers for the AFM and ARFF data formats.

Both readers return a `RawData` tuple whose matrix is feature-major (one row
of raw strings per feature), ready for `FeatureTable.from_raw`.

AFM (annotated feature matrix) is a delimited text matrix whose first row
holds column headers and whose first column holds row headers; the
upper-left cell is ignored. Feature headers carry a type prefix: `N:`
numeric, `C:` or `B:` categorical, `T:` textual. If any column header has a
valid prefix the features are the columns, otherwise they are the rows.

ARFF files declare `@relation`, then one `@attribute <name> <type>` per
feature (`NUMERIC` or `REAL` is numeric, anything else categorical), then
`@data` followed by comma-separated samples. ARFF carries no sample labels.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final, NamedTuple

import polars as pl
from loguru import logger

from forestkit.exceptions import ParseError
from forestkit.features import FeatureKind
from forestkit.table import FeatureTable

_HEADER_KINDS: Final[dict[str, FeatureKind]] = {
    "N": "numeric",
    "C": "categorical",
    "B": "categorical",
    "T": "textual",
}
_ARFF_NUMERIC_TYPES: Final[frozenset[str]] = frozenset({"NUMERIC", "REAL"})


class RawData(NamedTuple):
    """Raw reader output, feature-major.

    Attributes:
        matrix (list[list[str]]): One row of raw strings per feature.
        names (list[str]): Feature names, parallel to `matrix`.
        kinds (list[FeatureKind]): Feature kinds, parallel to `matrix`.
        sample_labels (list[str]): One label per sample; empty when the
            format has none.
    """

    matrix: list[list[str]]
    names: list[str]
    kinds: list[FeatureKind]
    sample_labels: list[str]


def read_afm(path: str | Path, *, data_delimiter: str = "\t", header_delimiter: str = ":") -> RawData:
    """Read an AFM file, detecting whether features are stored as rows or columns.

    Args:
        path (str | Path): File to read.
        data_delimiter (str): Field separator.
        header_delimiter (str): Character separating the type prefix from the
            feature name in headers.

    Returns:
        RawData: Whitespace-trimmed raw values, feature names, kinds and
            sample labels.

    Raises:
        ParseError: If the file cannot be parsed, a row has the wrong number
            of fields, or a feature header has no known type prefix.
    """
    path = Path(path)
    _check_field_counts(path, data_delimiter)
    try:
        frame = pl.read_csv(
            path,
            separator=data_delimiter,
            has_header=False,
            infer_schema=False,
            quote_char=None,
            missing_utf8_is_empty_string=True,
        )
    except pl.exceptions.PolarsError as exc:
        raise ParseError(f"Could not read AFM file: {exc}", path=str(path)) from exc

    rows = frame.select(pl.all().str.strip_chars()).rows()

    column_headers: list[str] = list(rows[0][1:])
    row_headers: list[str] = [row[0] for row in rows[1:]]
    cells: list[list[str]] = [list(row[1:]) for row in rows[1:]]

    if any(_header_kind(header, header_delimiter) is not None for header in column_headers):
        logger.debug("AFM orientation of {}: features as columns", path)
        names, sample_labels = column_headers, row_headers
        matrix = [[row[col] for row in cells] for col in range(len(column_headers))]
    else:
        logger.debug("AFM orientation of {}: features as rows", path)
        names, sample_labels = row_headers, column_headers
        matrix = cells

    kinds: list[FeatureKind] = []
    for name in names:
        kind = _header_kind(name, header_delimiter)
        if kind is None:
            raise ParseError(f"Unknown feature type in header {name!r}", path=str(path))
        kinds.append(kind)

    logger.debug("Read {} features x {} samples from {}", len(names), len(sample_labels), path)
    return RawData(matrix=matrix, names=names, kinds=kinds, sample_labels=sample_labels)


def read_arff(path: str | Path) -> RawData:
    """Read an ARFF file.

    Args:
        path (str | Path): File to read.

    Returns:
        RawData: Whitespace-trimmed raw values, attribute names and kinds; no
            sample labels.

    Raises:
        ParseError: If `@relation` or `@data` is missing, a header line is not
            recognised, or a sample has the wrong number of fields.
    """
    path = Path(path)
    lines = path.read_text().splitlines()

    names: list[str] = []
    kinds: list[FeatureKind] = []
    has_relation = False
    data_start: int | None = None
    for line_no, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("%"):
            continue
        directive = line.upper()
        if not has_relation and directive.startswith("@RELATION"):
            has_relation = True
        elif directive.startswith("@ATTRIBUTE"):
            name, kind = _parse_arff_attribute(line, path=path, line=line_no)
            names.append(name)
            kinds.append(kind)
        elif directive.startswith("@DATA"):
            data_start = line_no
            break
        else:
            raise ParseError(f"Incorrectly formatted ARFF line {line!r}", path=str(path), line=line_no)

    if data_start is None:
        raise ParseError("Could not find the @data section", path=str(path))
    if not has_relation:
        raise ParseError("Could not find the @relation header", path=str(path))

    samples: list[list[str]] = []
    for line_no, raw_line in enumerate(lines[data_start:], start=data_start + 1):
        line = raw_line.strip()
        if not line or line.startswith("%"):
            continue
        fields = [cell.strip() for cell in line.split(",")]
        if len(fields) != len(names):
            raise ParseError(
                f"Sample has {len(fields)} fields but {len(names)} attributes were declared",
                path=str(path),
                line=line_no,
            )
        samples.append(fields)

    matrix = [[sample[col] for sample in samples] for col in range(len(names))]
    logger.debug("Read {} attributes x {} samples from {}", len(names), len(samples), path)
    return RawData(matrix=matrix, names=names, kinds=kinds, sample_labels=[])


def read_table(
    path: str | Path,
    *,
    data_delimiter: str = "\t",
    header_delimiter: str = ":",
    use_contrasts: bool = False,
) -> FeatureTable:
    """Read a data file into a `FeatureTable`, choosing the format by suffix.

    Files ending in `.arff` (any case) are read as ARFF; everything else as
    AFM. The delimiters only apply to AFM.

    Args:
        path (str | Path): File to read.
        data_delimiter (str): AFM field separator.
        header_delimiter (str): AFM type prefix separator.
        use_contrasts (bool): Create contrast features.

    Returns:
        FeatureTable: The loaded table.
    """
    path = Path(path)
    if path.suffix.lower() == ".arff":
        raw = read_arff(path)
    else:
        raw = read_afm(path, data_delimiter=data_delimiter, header_delimiter=header_delimiter)
    return FeatureTable.from_raw(raw.matrix, raw.names, raw.kinds, raw.sample_labels, use_contrasts=use_contrasts)


def _check_field_counts(path: Path, delimiter: str) -> None:
    """Require every non-empty line of a delimited file to have the same number of fields.

    Raises:
        ParseError: On the first line whose field count differs from the header's.
    """
    expected: int | None = None
    for line, text in enumerate(path.read_text().splitlines(), start=1):
        if not text:
            continue
        n_fields = text.count(delimiter) + 1
        if expected is None:
            expected = n_fields
        elif n_fields != expected:
            raise ParseError(
                f"Line {line} has {n_fields} fields, expected {expected}",
                path=str(path),
                line=line,
            )


def _header_kind(header: str, header_delimiter: str) -> FeatureKind | None:
    """Return the kind encoded by a header's type prefix, or `None` if it has none."""
    if len(header) > 1 and header[1] == header_delimiter:
        return _HEADER_KINDS.get(header[0])
    return None


def _parse_arff_attribute(text: str, *, path: Path, line: int) -> tuple[str, FeatureKind]:
    parts = text.split(maxsplit=2)
    if len(parts) < 3:
        raise ParseError(f"Attribute declaration {text!r} needs a name and a type", path=str(path), line=line)
    kind: FeatureKind = "numeric" if parts[2].strip().upper() in _ARFF_NUMERIC_TYPES else "categorical"
    return parts[1], kind
