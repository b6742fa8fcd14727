"""Hashed bag-of-tokens encoding for textual features.

Each sample's text is lowercased, split into word tokens, and every token is
hashed to an unsigned 32-bit integer. A sample is then represented by the
sorted tuple of its distinct hashes. Keeping the tuple sorted makes positional
token selection (`token_at`) reproducible across runs and platforms.
"""

from __future__ import annotations

import bisect
import math
import re
import zlib
from collections import Counter
from collections.abc import Sequence
from typing import Final

from forestkit.missing import is_missing_string

type TokenSet = tuple[int, ...]

_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"\w+")
_HASH_MASK: Final[int] = 0xFFFFFFFF


def hash_token(token: str) -> int:
    """Hash a single token to an unsigned 32-bit integer.

    Args:
        token (str): The token text.

    Returns:
        int: CRC-32 of the UTF-8 encoded token, in `[0, 2**32)`.
    """
    return zlib.crc32(token.encode("utf-8")) & _HASH_MASK


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens.

    Args:
        text (str): Raw text.

    Returns:
        list[str]: Tokens in order of appearance, duplicates included.
    """
    return _TOKEN_PATTERN.findall(text.lower())


def hash_text(text: str | None) -> TokenSet:
    """Encode one sample's text as a sorted tuple of distinct token hashes.

    Missing text (see `forestkit.missing.MISSING_STRINGS`) encodes to the
    empty tuple.

    Args:
        text (str | None): Raw text of one sample.

    Returns:
        TokenSet: Sorted distinct hashes.

    Examples:
        >>> hash_text("red fish blue fish") == tuple(sorted({hash_token("red"), hash_token("fish"), hash_token("blue")}))
        True
        >>> hash_text("NA")
        ()
    """
    if is_missing_string(text):
        return ()
    return tuple(sorted({hash_token(token) for token in tokenize(text)}))  # type: ignore[arg-type]


def hash_texts(texts: Sequence[str | None]) -> list[TokenSet]:
    """Encode every sample of a textual column.

    Args:
        texts (Sequence[str | None]): Raw text per sample.

    Returns:
        list[TokenSet]: One sorted token tuple per sample.
    """
    return [hash_text(text) for text in texts]


def token_at(token_set: TokenSet, key: int) -> int:
    """Select one token from a set by `key mod len(token_set)`.

    Args:
        token_set (TokenSet): A sorted token tuple.
        key (int): Any non-negative integer, typically a random draw.

    Returns:
        int: The token at position `key % len(token_set)`.

    Raises:
        ValueError: If the token set is empty.
    """
    if not token_set:
        raise ValueError("Cannot select a token from an empty token set")
    return token_set[key % len(token_set)]


def contains_token(token_set: TokenSet, token: int) -> bool:
    """Test membership of a token in a sorted token tuple.

    Args:
        token_set (TokenSet): A sorted token tuple.
        token (int): The token to look for.

    Returns:
        bool: `True` if `token` is in `token_set`.
    """
    position = bisect.bisect_left(token_set, token)
    return position < len(token_set) and token_set[position] == token


def token_entropy(token_sets: Sequence[TokenSet]) -> float:
    """Sum of per-token binary entropies over all observed tokens.

    For every token `t` seen in any sample, `p_t` is the fraction of samples
    whose set contains `t`, and the token contributes
    `-(p_t ln p_t + (1 - p_t) ln(1 - p_t))`. A token present in every sample
    contributes zero.

    Args:
        token_sets (Sequence[TokenSet]): One token tuple per sample.

    Returns:
        float: The summed entropy in nats; `0.0` when there are no samples.
    """
    n_samples = len(token_sets)
    if n_samples == 0:
        return 0.0

    counts: Counter[int] = Counter()
    for token_set in token_sets:
        counts.update(token_set)

    entropy = 0.0
    for count in counts.values():
        p = count / n_samples
        entropy -= _xlogx(p) + _xlogx(1.0 - p)
    return entropy


def _xlogx(x: float) -> float:
    return x * math.log(x) if x > 0.0 else 0.0
