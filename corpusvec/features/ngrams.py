"""
N-gram construction shared by the vocabulary builder and the vectorizers.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from corpusvec.errors import ConfigurationError


NgramRange = Tuple[int, int]


def check_ngram(ngram: Any) -> NgramRange:
    """Validate an ``(lo, hi)`` n-gram range and return it as a tuple of ints."""
    try:
        lo, hi = ngram
    except (TypeError, ValueError):
        raise ConfigurationError(f"ngram must be a (min, max) pair, got {ngram!r}") from None
    if isinstance(lo, bool) or isinstance(hi, bool) or not (isinstance(lo, int) and isinstance(hi, int)):
        raise ConfigurationError(f"ngram bounds must be integers, got {ngram!r}")
    if lo < 1 or hi < lo:
        raise ConfigurationError(f"ngram must satisfy 1 <= min <= max, got {ngram!r}")
    return lo, hi


def generate_ngrams(tokens: Sequence[str], ngram: NgramRange = (1, 1), sep: str = "_") -> List[str]:
    """
    Return all n-grams of ``tokens`` for n in ``ngram``, joined with ``sep``.

    Unigrams come first, then bigrams, and so on; within each order the
    n-grams follow token order.

    >>> generate_ngrams(["a", "b", "c"], (1, 2))
    ['a', 'b', 'c', 'a_b', 'b_c']
    """
    lo, hi = ngram
    if lo == 1 and hi == 1:
        return list(tokens)

    out: List[str] = []
    n_tokens = len(tokens)
    for n in range(lo, hi + 1):
        if n == 1:
            out.extend(tokens)
            continue
        for i in range(n_tokens - n + 1):
            out.append(sep.join(tokens[i:i + n]))
    return out
