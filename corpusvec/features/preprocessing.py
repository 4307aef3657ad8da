"""
Default text normalizers and tokenizers.

The pipeline treats normalization and tokenization as two pluggable pure
functions:

- ``normalize(text) -> text``
- ``tokenize(text) -> list of tokens``

Any callables with these signatures may be used. This module provides a
small default set:

- lowercasing, punctuation/number removal, whitespace normalization
- whitespace and regular-expression tokenization
- stopword removal
- stemming (NLTK Porter / Snowball)

``build_normalizer`` and ``build_tokenizer`` assemble these from the
"preprocessing" section of config/pipeline.yaml. They return
``functools.partial`` objects over module-level functions, so the result
pickles cleanly into worker processes.
"""

from __future__ import annotations

import re
import string
from functools import lru_cache, partial
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from nltk.stem import PorterStemmer, SnowballStemmer
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS


Normalizer = Callable[[str], str]
Tokenizer = Callable[[str], List[str]]

_PUNCT_TABLE = str.maketrans({ch: " " for ch in string.punctuation})


# ---------------------------------------------------------------------------
# Basic text cleaning
# ---------------------------------------------------------------------------


def normalize_text(
    text: str,
    lowercase: bool = True,
    remove_punctuation: bool = True,
    remove_numbers: bool = False,
    strip_whitespace: bool = True,
) -> str:
    """
    Apply basic normalization to a raw text string.

    Parameters
    ----------
    text : str
        Raw input text.
    lowercase : bool
        Convert text to lowercase if True.
    remove_punctuation : bool
        Replace punctuation characters with spaces if True.
    remove_numbers : bool
        Replace digit runs with spaces if True.
    strip_whitespace : bool
        Collapse multiple spaces and strip leading/trailing spaces.

    Returns
    -------
    str
        Cleaned text string.
    """
    if lowercase:
        text = text.lower()

    if remove_punctuation:
        # Replace punctuation with space so we don't accidentally join words.
        text = text.translate(_PUNCT_TABLE)

    if remove_numbers:
        text = re.sub(r"\d+", " ", text)

    if strip_whitespace:
        text = re.sub(r"\s+", " ", text).strip()

    return text


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------


def tokenize_whitespace(text: str) -> List[str]:
    """Split on runs of whitespace."""
    if not text:
        return []
    return text.split()


def tokenize_regex(text: str, pattern: str = r"\w+") -> List[str]:
    """Return every match of ``pattern`` in order."""
    return re.findall(pattern, text)


# ---------------------------------------------------------------------------
# Stopwords and stemming
# ---------------------------------------------------------------------------


def get_stopword_set(language: str = "english") -> FrozenSet[str]:
    """
    Build a set of stopwords for the given language.

    Only English is bundled (scikit-learn's list); other languages yield
    an empty set, i.e. no stopword removal.
    """
    if (language or "english").lower() == "english":
        return frozenset(ENGLISH_STOP_WORDS)
    return frozenset()


def remove_stopwords(tokens: Iterable[str], stopword_set: Iterable[str]) -> List[str]:
    """Remove stopwords from a list of tokens."""
    if not stopword_set:
        return list(tokens)
    return [t for t in tokens if t not in stopword_set]


@lru_cache(maxsize=None)
def _build_stemmer(algorithm: str = "porter"):
    algo = (algorithm or "porter").lower()
    if algo == "snowball":
        return SnowballStemmer("english")
    return PorterStemmer()


def stem_tokens(tokens: Iterable[str], algorithm: str = "porter") -> List[str]:
    """
    Apply stemming to a list of tokens.

    Parameters
    ----------
    tokens : Iterable[str]
        Input tokens.
    algorithm : str
        Stemming algorithm ("porter" or "snowball").

    Returns
    -------
    List[str]
        Stemmed tokens.
    """
    stemmer = _build_stemmer(algorithm)
    return [stemmer.stem(t) for t in tokens]


# ---------------------------------------------------------------------------
# Config-driven assembly
# ---------------------------------------------------------------------------


def preprocess_tokens(
    text: str,
    method: str = "whitespace",
    pattern: str = r"\w+",
    stopwords: Optional[FrozenSet[str]] = None,
    stem_algorithm: Optional[str] = None,
) -> List[str]:
    """
    Tokenize ``text`` then optionally drop stopwords and stem.

    This is the function ``build_tokenizer`` binds its settings to.
    """
    if method == "regex":
        tokens = tokenize_regex(text, pattern)
    else:
        tokens = tokenize_whitespace(text)

    if stopwords:
        tokens = remove_stopwords(tokens, stopwords)

    if stem_algorithm and tokens:
        tokens = stem_tokens(tokens, algorithm=stem_algorithm)

    return tokens


def build_normalizer(cfg: Optional[Dict[str, Any]] = None) -> Normalizer:
    """
    Build a normalizer from the 'preprocessing' config section.

    Recognized keys: lowercase, remove_punctuation, remove_numbers,
    strip_whitespace.
    """
    cfg = cfg or {}
    return partial(
        normalize_text,
        lowercase=bool(cfg.get("lowercase", True)),
        remove_punctuation=bool(cfg.get("remove_punctuation", True)),
        remove_numbers=bool(cfg.get("remove_numbers", False)),
        strip_whitespace=bool(cfg.get("strip_whitespace", True)),
    )


def build_tokenizer(cfg: Optional[Dict[str, Any]] = None) -> Tokenizer:
    """
    Build a tokenizer from the 'preprocessing' config section.

    The section may contain::

        tokenize:  {method: whitespace | regex, pattern: "\\w+"}
        stopwords: {enabled: bool, language: english}
        stemming:  {enabled: bool, algorithm: porter | snowball}
    """
    cfg = cfg or {}

    tokenize_cfg = cfg.get("tokenize", {}) or {}
    method = (tokenize_cfg.get("method", "whitespace") or "whitespace").lower()
    pattern = tokenize_cfg.get("pattern", r"\w+")

    sw_cfg = cfg.get("stopwords", {}) or {}
    stopwords = None
    if bool(sw_cfg.get("enabled", False)):
        stopwords = get_stopword_set(sw_cfg.get("language", "english"))

    stem_cfg = cfg.get("stemming", {}) or {}
    stem_algorithm = None
    if bool(stem_cfg.get("enabled", False)):
        stem_algorithm = stem_cfg.get("algorithm", "porter")

    return partial(
        preprocess_tokens,
        method=method,
        pattern=pattern,
        stopwords=stopwords,
        stem_algorithm=stem_algorithm,
    )
