"""
Token sequence -> sparse feature vector.

Two vectorizers share one interface:

- ``VocabVectorizer`` indexes terms (and n-grams) through a finalized
  ``Vocabulary``; unknown terms are dropped.
- ``HashVectorizer`` maps terms into ``hash_size`` buckets with a signed
  32-bit MurmurHash3 (scikit-learn's implementation), so it needs no
  pass over the corpus before vectorizing.

A sparse row is a ``Dict[int, float]`` of feature index -> value with no
zero entries. Vectorizers hold only immutable configuration, so the same
instance can be shipped to any number of worker processes.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sklearn.utils import murmurhash3_32

from corpusvec.errors import ConfigurationError, VocabularyNotFinalizedError
from corpusvec.features.ngrams import NgramRange, check_ngram, generate_ngrams
from corpusvec.features.vocabulary import Vocabulary


SparseRow = Dict[int, float]

DEFAULT_HASH_SIZE = 2 ** 18


class Vectorizer:
    """Common interface of the vectorizers."""

    n_features: int
    feature_names: Optional[Tuple[str, ...]]

    def transform(self, tokens: Sequence[str]) -> SparseRow:
        raise NotImplementedError

    def token_features(self, tokens: Sequence[str]) -> List[int]:
        """Feature index of each token position, -1 where the token has none."""
        raise NotImplementedError


class VocabVectorizer(Vectorizer):
    """
    Vectorize against a finalized vocabulary.

    Parameters
    ----------
    vocabulary : Vocabulary
        Output of ``VocabularyBuilder.finalize``. Its n-gram range,
        separator and stopwords decide which n-grams are looked up.

    Raises
    ------
    VocabularyNotFinalizedError
        If ``vocabulary`` is a raw builder or anything else that is not a
        finalized ``Vocabulary``.
    """

    def __init__(self, vocabulary: Vocabulary) -> None:
        if not isinstance(vocabulary, Vocabulary):
            raise VocabularyNotFinalizedError(
                f"VocabVectorizer needs a finalized Vocabulary, got {type(vocabulary).__name__}; "
                "call VocabularyBuilder.finalize() first."
            )
        self.vocabulary = vocabulary

    @property
    def n_features(self) -> int:  # type: ignore[override]
        return len(self.vocabulary)

    @property
    def feature_names(self) -> Tuple[str, ...]:  # type: ignore[override]
        return self.vocabulary.terms

    def transform(self, tokens: Sequence[str]) -> SparseRow:
        vocab = self.vocabulary
        if vocab.stopwords:
            tokens = [t for t in tokens if t not in vocab.stopwords]
        row: Dict[int, float] = {}
        for term in generate_ngrams(tokens, vocab.ngram, vocab.sep):
            idx = vocab.get(term)
            if idx is not None:
                row[idx] = row.get(idx, 0) + 1
        return row

    def token_features(self, tokens: Sequence[str]) -> List[int]:
        get = self.vocabulary.get
        return [get(t, -1) for t in tokens]

    def __repr__(self) -> str:
        return f"VocabVectorizer({self.vocabulary!r})"


class HashVectorizer(Vectorizer):
    """
    Vectorize by feature hashing.

    Parameters
    ----------
    hash_size : int
        Number of buckets; a positive power of two.
    ngram : Tuple[int, int]
        Range of n-gram orders to hash.
    sep : str
        Separator joining the tokens of an n-gram before hashing.
    signed_hash : bool
        When True a term whose hash is negative decrements its bucket
        instead of incrementing it, so collisions tend to cancel out.

    Raises
    ------
    ConfigurationError
        If ``hash_size`` is not a positive power of two or ``ngram`` is
        not a valid range.
    """

    def __init__(
        self,
        hash_size: int = DEFAULT_HASH_SIZE,
        ngram: NgramRange = (1, 1),
        sep: str = "_",
        signed_hash: bool = True,
    ) -> None:
        if (
            isinstance(hash_size, bool)
            or not isinstance(hash_size, int)
            or hash_size < 1
            or hash_size & (hash_size - 1)
        ):
            raise ConfigurationError(f"hash_size must be a positive power of two, got {hash_size!r}")
        self.hash_size = hash_size
        self.ngram = check_ngram(ngram)
        self.sep = sep
        self.signed_hash = bool(signed_hash)

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> "HashVectorizer":
        """Build from the 'hashing' config section."""
        section = section or {}
        return cls(
            hash_size=int(section.get("hash_size", DEFAULT_HASH_SIZE)),
            ngram=tuple(section.get("ngram", (1, 1))),
            sep=section.get("sep", "_"),
            signed_hash=bool(section.get("signed_hash", True)),
        )

    @property
    def n_features(self) -> int:  # type: ignore[override]
        return self.hash_size

    @property
    def feature_names(self) -> None:  # type: ignore[override]
        return None

    def bucket(self, term: str) -> Tuple[int, int]:
        """Return ``(bucket, sign)`` for a term."""
        h = int(murmurhash3_32(term, seed=0, positive=False))
        sign = -1 if (self.signed_hash and h < 0) else 1
        return abs(h) % self.hash_size, sign

    def transform(self, tokens: Sequence[str]) -> SparseRow:
        counts = Counter(generate_ngrams(tokens, self.ngram, self.sep))
        row: Dict[int, float] = {}
        for term, count in counts.items():
            idx, sign = self.bucket(term)
            row[idx] = row.get(idx, 0) + sign * count
        return {idx: value for idx, value in row.items() if value != 0}

    def token_features(self, tokens: Sequence[str]) -> List[int]:
        # Co-occurrence weights are non-negative; only the bucket is used here.
        return [self.bucket(t)[0] for t in tokens]

    def __repr__(self) -> str:
        return (
            f"HashVectorizer(hash_size={self.hash_size}, ngram={self.ngram}, "
            f"signed_hash={self.signed_hash})"
        )
