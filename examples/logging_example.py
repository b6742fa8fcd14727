"""Demonstrates how to enable and configure logging in forestkit.

forestkit logging is disabled by default. Users opt in by calling ``enable_logging()``,
which returns a ``LoggingHandle``. The handle can be used as a context manager
(``with enable_logging(): ...``) or disabled manually via ``handle.disable()``.
When the last active handle is disabled, forestkit logging is automatically turned off.

Key concepts shown here:

- ``level``: controls the minimum log level. Table construction, contrasts,
  bootstrap draws and readers log at ``DEBUG``; every split evaluation logs at
  ``TRACE``.
- ``log_format``: ``"short"`` shows ``timestamp | level | function - message``;
  ``"full"`` adds the module and line number.
- Automatic cleanup: logging is re-disabled when the context manager exits.
"""

from forestkit import (
    Column,
    FeatureTable,
    NumpyRandomSource,
    candidate_tokens,
    enable_logging,
    find_split,
)

with enable_logging(level="TRACE", log_format="full"):
    table = FeatureTable.from_columns(
        [
            Column(name="N:spend", kind="numeric", values=[12.0, 15.5, None, 80.0, 95.0, 110.0]),
            Column(name="N:age", kind="numeric", values=[23, 31, 38, 44, 52, 61]),
            Column(name="C:plan", kind="categorical", values=["basic", "basic", "pro", "pro", "team", "NA"]),
            Column(
                name="T:notes",
                kind="textual",
                values=["new user", "trial user", "upgraded", "upgraded team", "team lead", "NA"],
            ),
        ],
        use_contrasts=True,
    )
    random_source = NumpyRandomSource(seed=0)
    table.permute_contrasts(random_source)

    target_idx = table.feature_index("N:spend")
    sample = table.bootstrap(random_source, with_replacement=False, sample_fraction=1.0, target_idx=target_idx)

    for feature_idx in range(table.feature_count):
        if feature_idx == target_idx:
            continue
        if table.is_textual(feature_idx):
            for token in candidate_tokens(table, feature_idx, sample.in_bag, random_source, 5):
                find_split(table, target_idx, feature_idx, 1, sample.in_bag, token=token)
        else:
            split = find_split(table, target_idx, feature_idx, 1, sample.in_bag)
            print(f"{table.feature_name(feature_idx)}: DI={split.delta_impurity:.2f}")

# Logging automatically disabled here
