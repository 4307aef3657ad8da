"""
Vocabulary construction.

This module provides:
- a ``VocabularyBuilder`` that accumulates raw per-term counts in a single
  pass and merges with other builders
- ``PruneRules`` describing which terms survive finalization
- an immutable ``Vocabulary`` produced by ``VocabularyBuilder.finalize``
- helpers to persist and reload a finalized vocabulary as JSON

Raw counts are additive, so builders filled from disjoint chunks of a
corpus merge (in any order) into exactly the builder a sequential pass
would produce. Pruning and index assignment only ever happen on the
merged builder.
"""

from __future__ import annotations

import json
import os
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from corpusvec.errors import ConfigurationError
from corpusvec.features.ngrams import NgramRange, check_ngram, generate_ngrams
from corpusvec.utils.pipeline_utils import ensure_dir_exists, get_logger, resolve_artifacts_dir


DEFAULT_VOCAB_FILENAME = "vocabulary.json"


# ---------------------------------------------------------------------------
# Prune rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PruneRules:
    """
    Bounds applied when a builder is finalized.

    Count bounds are inclusive. ``None`` means unbounded. Proportions are
    ``doc_count / document_count`` and must lie in [0, 1].
    """

    min_count: int = 1
    max_count: Optional[int] = None
    min_doc_count: int = 1
    max_doc_count: Optional[int] = None
    min_doc_proportion: float = 0.0
    max_doc_proportion: float = 1.0
    max_vocab_size: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("min_count", "min_doc_count"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.max_count is not None and self.max_count < self.min_count:
            raise ConfigurationError(
                f"max_count ({self.max_count}) is below min_count ({self.min_count})"
            )
        if self.max_doc_count is not None and self.max_doc_count < self.min_doc_count:
            raise ConfigurationError(
                f"max_doc_count ({self.max_doc_count}) is below min_doc_count ({self.min_doc_count})"
            )
        for name in ("min_doc_proportion", "max_doc_proportion"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
        if self.max_doc_proportion < self.min_doc_proportion:
            raise ConfigurationError(
                f"max_doc_proportion ({self.max_doc_proportion}) is below "
                f"min_doc_proportion ({self.min_doc_proportion})"
            )
        if self.max_vocab_size is not None and self.max_vocab_size < 0:
            raise ConfigurationError(f"max_vocab_size must be >= 0, got {self.max_vocab_size}")

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> "PruneRules":
        """Build rules from the 'vocabulary' config section, ignoring unrelated keys."""
        section = section or {}
        fields = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in section.items() if k in fields})

    def keeps(self, term_count: int, doc_count: int, document_count: int) -> bool:
        """Whether a term with these counts passes every bound except the size cap."""
        if term_count < self.min_count:
            return False
        if self.max_count is not None and term_count > self.max_count:
            return False
        if doc_count < self.min_doc_count:
            return False
        if self.max_doc_count is not None and doc_count > self.max_doc_count:
            return False
        proportion = doc_count / document_count if document_count else 0.0
        return self.min_doc_proportion <= proportion <= self.max_doc_proportion


# ---------------------------------------------------------------------------
# Finalized vocabulary
# ---------------------------------------------------------------------------


class Vocabulary:
    """
    Immutable, indexed table of terms with their corpus statistics.

    Term ``i`` has index ``i``; terms are ordered by descending term count
    with ties broken lexically.
    """

    def __init__(
        self,
        terms: Sequence[str],
        term_counts: Sequence[int],
        doc_counts: Sequence[int],
        document_count: int,
        ngram: NgramRange = (1, 1),
        sep: str = "_",
        stopwords: Iterable[str] = (),
    ) -> None:
        if not (len(terms) == len(term_counts) == len(doc_counts)):
            raise ConfigurationError("terms, term_counts and doc_counts must have equal length")

        self._terms: Tuple[str, ...] = tuple(terms)
        self._term_counts = np.asarray(term_counts, dtype=np.int64)
        self._doc_counts = np.asarray(doc_counts, dtype=np.int64)
        self._document_count = int(document_count)
        self._ngram = check_ngram(ngram)
        self._sep = sep
        self._stopwords: FrozenSet[str] = frozenset(stopwords)
        self._index: Dict[str, int] = {t: i for i, t in enumerate(self._terms)}
        if len(self._index) != len(self._terms):
            raise ConfigurationError("Vocabulary terms must be unique")
        self._freeze()

    def _freeze(self) -> None:
        self._term_counts.setflags(write=False)
        self._doc_counts.setflags(write=False)

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._freeze()

    @property
    def terms(self) -> Tuple[str, ...]:
        return self._terms

    @property
    def term_counts(self) -> np.ndarray:
        return self._term_counts

    @property
    def doc_counts(self) -> np.ndarray:
        return self._doc_counts

    @property
    def document_count(self) -> int:
        return self._document_count

    @property
    def ngram(self) -> NgramRange:
        return self._ngram

    @property
    def sep(self) -> str:
        return self._sep

    @property
    def stopwords(self) -> FrozenSet[str]:
        return self._stopwords

    def index_of(self, term: str) -> int:
        return self._index[term]

    def get(self, term: str, default: Optional[int] = None) -> Optional[int]:
        return self._index.get(term, default)

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: object) -> bool:
        return term in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vocabulary):
            return NotImplemented
        return (
            self._terms == other._terms
            and np.array_equal(self._term_counts, other._term_counts)
            and np.array_equal(self._doc_counts, other._doc_counts)
            and self._document_count == other._document_count
            and self._ngram == other._ngram
            and self._sep == other._sep
            and self._stopwords == other._stopwords
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Vocabulary(size={len(self)}, documents={self._document_count}, "
            f"ngram={self._ngram})"
        )

    def to_frame(self) -> pd.DataFrame:
        """Return the vocabulary as a table: term, term_count, doc_count, index."""
        return pd.DataFrame(
            {
                "term": list(self._terms),
                "term_count": self._term_counts,
                "doc_count": self._doc_counts,
                "index": np.arange(len(self._terms), dtype=np.int64),
            }
        )

    def to_json(self) -> Dict[str, Any]:
        """Serialize the vocabulary to a JSON-serializable dictionary."""
        return {
            "terms": list(self._terms),
            "term_counts": self._term_counts.tolist(),
            "doc_counts": self._doc_counts.tolist(),
            "document_count": self._document_count,
            "ngram": list(self._ngram),
            "sep": self._sep,
            "stopwords": sorted(self._stopwords),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Vocabulary":
        """Construct a Vocabulary from a dictionary as produced by to_json()."""
        return cls(
            terms=data["terms"],
            term_counts=data["term_counts"],
            doc_counts=data["doc_counts"],
            document_count=data["document_count"],
            ngram=tuple(data.get("ngram", (1, 1))),
            sep=data.get("sep", "_"),
            stopwords=data.get("stopwords", ()),
        )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class VocabularyBuilder:
    """
    Single-pass accumulator of raw term statistics.

    Parameters
    ----------
    ngram : Tuple[int, int]
        Range of n-gram orders to count.
    sep : str
        Separator joining the tokens of an n-gram.
    stopwords : Iterable[str]
        Tokens dropped before n-grams are formed.
    """

    def __init__(
        self,
        ngram: NgramRange = (1, 1),
        sep: str = "_",
        stopwords: Iterable[str] = (),
    ) -> None:
        self.ngram = check_ngram(ngram)
        self.sep = sep
        self.stopwords = frozenset(stopwords)
        self.term_counts: Counter = Counter()
        self.doc_counts: Counter = Counter()
        self.document_count = 0

    def update(self, tokens: Sequence[str]) -> "VocabularyBuilder":
        """Count one document's tokens."""
        if self.stopwords:
            tokens = [t for t in tokens if t not in self.stopwords]
        terms = generate_ngrams(tokens, self.ngram, self.sep)
        self.term_counts.update(terms)
        self.doc_counts.update(set(terms))
        self.document_count += 1
        return self

    def fit(self, stream: Iterable[Tuple[str, Sequence[str]]]) -> "VocabularyBuilder":
        """Consume a ``(doc_id, tokens)`` stream."""
        for _, tokens in stream:
            self.update(tokens)
        return self

    def _check_compatible(self, other: "VocabularyBuilder") -> None:
        if not isinstance(other, VocabularyBuilder):
            raise TypeError(f"Cannot merge VocabularyBuilder with {type(other).__name__}")
        if (self.ngram, self.sep, self.stopwords) != (other.ngram, other.sep, other.stopwords):
            raise ConfigurationError(
                "Cannot merge vocabulary builders with different ngram, sep or stopwords"
            )

    def merge(self, other: "VocabularyBuilder") -> "VocabularyBuilder":
        """Return a new builder holding the summed counts of ``self`` and ``other``."""
        self._check_compatible(other)
        merged = VocabularyBuilder(self.ngram, self.sep, self.stopwords)
        merged.term_counts = self.term_counts + other.term_counts
        merged.doc_counts = self.doc_counts + other.doc_counts
        merged.document_count = self.document_count + other.document_count
        return merged

    def __len__(self) -> int:
        return len(self.term_counts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VocabularyBuilder):
            return NotImplemented
        return (
            self.ngram == other.ngram
            and self.sep == other.sep
            and self.stopwords == other.stopwords
            and self.document_count == other.document_count
            and self.term_counts == other.term_counts
            and self.doc_counts == other.doc_counts
        )

    __hash__ = None  # type: ignore[assignment]

    def finalize(self, rules: Optional[PruneRules] = None, **overrides: Any) -> Vocabulary:
        """
        Prune the raw counts and assign indices.

        Parameters
        ----------
        rules : Optional[PruneRules]
            Bounds to apply. Defaults to ``PruneRules()`` (keep everything).
        **overrides
            Individual ``PruneRules`` fields overriding ``rules``.

        Returns
        -------
        Vocabulary
            Terms passing the count, doc-count and doc-proportion bounds,
            cut to ``max_vocab_size`` by descending term count (lexical
            order breaks ties), indexed in that same order.
        """
        rules = rules or PruneRules()
        if overrides:
            rules = replace(rules, **overrides)

        kept: List[str] = [
            term
            for term, count in self.term_counts.items()
            if rules.keeps(count, self.doc_counts[term], self.document_count)
        ]
        kept.sort(key=lambda t: (-self.term_counts[t], t))
        if rules.max_vocab_size is not None:
            kept = kept[: rules.max_vocab_size]

        logger = get_logger(__name__)
        logger.info(
            "Finalized vocabulary: kept %d of %d terms from %d documents.",
            len(kept),
            len(self.term_counts),
            self.document_count,
        )

        return Vocabulary(
            terms=kept,
            term_counts=[self.term_counts[t] for t in kept],
            doc_counts=[self.doc_counts[t] for t in kept],
            document_count=self.document_count,
            ngram=self.ngram,
            sep=self.sep,
            stopwords=self.stopwords,
        )


def merge_vocabulary_builders(builders: Iterable[VocabularyBuilder]) -> VocabularyBuilder:
    """Merge builders left to right. At least one builder is required."""
    merged: Optional[VocabularyBuilder] = None
    for builder in builders:
        merged = builder if merged is None else merged.merge(builder)
    if merged is None:
        raise ConfigurationError("No vocabulary builders to merge")
    return merged


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def save_vocabulary(
    vocab: Vocabulary,
    artifacts_dir: Optional[str] = None,
    filename: str = DEFAULT_VOCAB_FILENAME,
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Save the vocabulary to a JSON file under the artifacts directory.

    Parameters
    ----------
    vocab : Vocabulary
        Vocabulary instance to save.
    artifacts_dir : Optional[str]
        Directory where the vocabulary should be stored. If None, this is
        taken from the "paths" section of ``config``.
    filename : str
        File name for the saved vocabulary.
    config : Optional[Dict[str, Any]]
        Pipeline configuration.

    Returns
    -------
    str
        Full path to the saved vocabulary file.
    """
    artifacts_dir = resolve_artifacts_dir(artifacts_dir, config)
    ensure_dir_exists(artifacts_dir)
    path = os.path.join(artifacts_dir, filename)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(vocab.to_json(), f, ensure_ascii=False, indent=2)

    return path


def load_vocabulary(
    artifacts_dir: Optional[str] = None,
    filename: str = DEFAULT_VOCAB_FILENAME,
    config: Optional[Dict[str, Any]] = None,
) -> Vocabulary:
    """
    Load a previously saved vocabulary from disk.

    Raises
    ------
    FileNotFoundError
        If the vocabulary file does not exist.
    """
    artifacts_dir = resolve_artifacts_dir(artifacts_dir, config)
    path = os.path.join(artifacts_dir, filename)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Vocabulary file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return Vocabulary.from_json(data)
