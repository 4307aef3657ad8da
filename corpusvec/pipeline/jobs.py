"""
Corpus-level jobs: vocabulary, document-term matrix, co-occurrence matrix.

Each job runs the full pipeline (tokenize -> count or vectorize ->
accumulate) over a ``TokenStream``:

- with ``n_chunks == 1`` in the calling process, raising errors as they are
- with ``n_chunks > 1`` through the fork-join engine, raising
  ``WorkerFailure`` for errors inside a worker

Vocabulary pruning and indexing are applied once, on the merged counts,
which is why the output does not depend on ``n_chunks``.

Typical use::

    stream = TokenStream(FileSource(paths), normalize=normalize_text)
    vocab = create_vocabulary(stream, n_chunks=4, min_count=5)
    dtm = create_dtm(stream, VocabVectorizer(vocab), n_chunks=4)
    tcm = create_tcm(stream, VocabVectorizer(vocab), window=5, n_chunks=4)
"""

from __future__ import annotations

from dataclasses import replace
from functools import partial
from typing import Any, Dict, Iterable, Optional, Union

from corpusvec.data.sources import check_n_chunks
from corpusvec.data.token_stream import TokenStream
from corpusvec.errors import VocabularyNotFinalizedError
from corpusvec.features.ngrams import NgramRange
from corpusvec.features.vectorizers import Vectorizer
from corpusvec.features.vocabulary import PruneRules, Vocabulary, VocabularyBuilder
from corpusvec.matrices.dtm import DocumentTermMatrix, DtmBuilder
from corpusvec.matrices.tcm import (
    DEFAULT_WINDOW,
    TcmBuilder,
    TermCooccurrenceMatrix,
    Weighting,
    inverse_distance,
)
from corpusvec.pipeline.engine import Task, run_fork_join, split_chunks
from corpusvec.utils.pipeline_utils import get_logger, get_section
from corpusvec.utils.progress import ProgressReporter, ensure_reporter


# ---------------------------------------------------------------------------
# Worker tasks (module-level so they pickle into worker processes)
# ---------------------------------------------------------------------------


def _count_terms_task(
    stream: TokenStream,
    ngram: NgramRange,
    sep: str,
    stopwords: frozenset,
) -> VocabularyBuilder:
    return VocabularyBuilder(ngram=ngram, sep=sep, stopwords=stopwords).fit(stream)


def _dtm_task(stream: TokenStream, vectorizer: Vectorizer) -> DtmBuilder:
    return DtmBuilder(vectorizer).fit(stream)


def _tcm_task(stream: TokenStream, prototype: TcmBuilder) -> TcmBuilder:
    builder = TcmBuilder(
        prototype.vectorizer,
        window=prototype.window,
        weighting=prototype.weights,
        symmetric=prototype.symmetric,
        binary=prototype.binary,
    )
    return builder.fit(stream)


def _merge(a: Any, b: Any) -> Any:
    return a.merge(b)


def _run(
    stream: TokenStream,
    task: Task,
    n_chunks: int,
    n_jobs: Optional[int],
    backend: str,
    reporter: Optional[ProgressReporter],
    desc: str,
) -> Any:
    n_chunks = check_n_chunks(n_chunks)
    if n_chunks == 1:
        reporter = ensure_reporter(reporter)
        reporter.start(1, desc=desc)
        try:
            result = task(stream)
            reporter.advance(1)
        finally:
            reporter.close()
        return result

    chunks = split_chunks(stream, n_chunks)
    return run_fork_join(
        chunks, task, _merge, n_jobs=n_jobs, backend=backend, reporter=reporter, desc=desc
    )


def _check_vectorizer(vectorizer: Any) -> Vectorizer:
    if isinstance(vectorizer, VocabularyBuilder):
        raise VocabularyNotFinalizedError(
            "Got raw vocabulary counts; finalize them and wrap the result in VocabVectorizer"
        )
    if not isinstance(vectorizer, Vectorizer):
        raise TypeError(f"Expected a Vectorizer, got {type(vectorizer).__name__}")
    return vectorizer


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def count_terms(
    stream: TokenStream,
    ngram: NgramRange = (1, 1),
    sep: str = "_",
    stopwords: Iterable[str] = (),
    n_chunks: int = 1,
    n_jobs: Optional[int] = None,
    backend: str = "loky",
    reporter: Optional[ProgressReporter] = None,
) -> VocabularyBuilder:
    """
    Count raw term statistics over the whole stream.

    Returns the merged, unfinalized ``VocabularyBuilder``; call
    ``finalize`` on it (once) to obtain a ``Vocabulary``.
    """
    task = partial(_count_terms_task, ngram=tuple(ngram), sep=sep, stopwords=frozenset(stopwords))
    builder = _run(stream, task, n_chunks, n_jobs, backend, reporter, desc="count_terms")

    logger = get_logger(__name__)
    logger.info(
        "Counted %d distinct terms over %d documents.", len(builder), builder.document_count
    )
    return builder


def create_vocabulary(
    stream: TokenStream,
    rules: Optional[PruneRules] = None,
    ngram: NgramRange = (1, 1),
    sep: str = "_",
    stopwords: Iterable[str] = (),
    n_chunks: int = 1,
    n_jobs: Optional[int] = None,
    backend: str = "loky",
    reporter: Optional[ProgressReporter] = None,
    **prune: Any,
) -> Vocabulary:
    """
    Count terms and finalize them into a pruned, indexed ``Vocabulary``.

    Parameters
    ----------
    stream : TokenStream
        Documents to count.
    rules : Optional[PruneRules]
        Pruning bounds; individual bounds may also be given as keyword
        arguments (``min_count=5``, ``max_doc_proportion=0.5``, ...).
    ngram, sep, stopwords
        Passed to ``VocabularyBuilder``.
    n_chunks : int
        Number of chunks; above 1 the work runs in worker processes.
    n_jobs : Optional[int]
        Worker processes (defaults to ``n_chunks``).
    backend : str
        joblib backend.
    reporter : Optional[ProgressReporter]
        Progress reporter.

    Returns
    -------
    Vocabulary
        Identical for every ``n_chunks``.
    """
    rules = rules or PruneRules()
    if prune:
        rules = replace(rules, **prune)

    builder = count_terms(
        stream,
        ngram=ngram,
        sep=sep,
        stopwords=stopwords,
        n_chunks=n_chunks,
        n_jobs=n_jobs,
        backend=backend,
        reporter=reporter,
    )
    return builder.finalize(rules)


def create_dtm(
    stream: TokenStream,
    vectorizer: Vectorizer,
    n_chunks: int = 1,
    n_jobs: Optional[int] = None,
    backend: str = "loky",
    reporter: Optional[ProgressReporter] = None,
) -> DocumentTermMatrix:
    """
    Build the document-term matrix of ``stream``.

    Rows follow document order in the stream and are labelled with the
    document ids.

    Raises
    ------
    DuplicateIdError
        If two documents share an id (possibly in different chunks).
    VocabularyNotFinalizedError
        If given raw vocabulary counts instead of a vectorizer.
    TypeError
        If given anything else that is not a ``Vectorizer``.
    """
    vectorizer = _check_vectorizer(vectorizer)
    task = partial(_dtm_task, vectorizer=vectorizer)
    builder = _run(stream, task, n_chunks, n_jobs, backend, reporter, desc="create_dtm")
    dtm = builder.build()

    logger = get_logger(__name__)
    logger.info("Built DTM with shape %s and %d non-zero entries.", dtm.shape, dtm.matrix.nnz)
    return dtm


def create_tcm(
    stream: TokenStream,
    vectorizer: Vectorizer,
    window: int = DEFAULT_WINDOW,
    weighting: Union[Weighting, str] = inverse_distance,
    symmetric: bool = False,
    binary: bool = False,
    n_chunks: int = 1,
    n_jobs: Optional[int] = None,
    backend: str = "loky",
    reporter: Optional[ProgressReporter] = None,
) -> TermCooccurrenceMatrix:
    """
    Build the term-co-occurrence matrix of ``stream``.

    See ``corpusvec.matrices.tcm`` for the meaning of ``window``,
    ``weighting``, ``symmetric`` and ``binary``. Invalid settings raise
    ``ConfigurationError`` before any document is read.
    """
    vectorizer = _check_vectorizer(vectorizer)
    prototype = TcmBuilder(
        vectorizer, window=window, weighting=weighting, symmetric=symmetric, binary=binary
    )
    task = partial(_tcm_task, prototype=prototype)
    builder = _run(stream, task, n_chunks, n_jobs, backend, reporter, desc="create_tcm")
    tcm = builder.build()

    logger = get_logger(__name__)
    logger.info(
        "Built TCM with shape %s and %d non-zero cells from %d documents.",
        tcm.shape,
        tcm.matrix.nnz,
        builder.document_count,
    )
    return tcm


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------


def parallel_options(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keyword arguments for the jobs from the 'parallel' config section."""
    section = get_section(config, "parallel")
    options: Dict[str, Any] = {"n_chunks": int(section.get("n_chunks", 1))}
    if section.get("n_jobs") is not None:
        options["n_jobs"] = int(section["n_jobs"])
    if section.get("backend"):
        options["backend"] = section["backend"]
    return options


def tcm_options(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keyword arguments for ``create_tcm`` from the 'tcm' config section."""
    section = get_section(config, "tcm")
    return {
        "window": int(section.get("skip_grams_window", DEFAULT_WINDOW)),
        "weighting": section.get("weighting", "inverse_distance"),
        "symmetric": bool(section.get("symmetric", False)),
        "binary": bool(section.get("binary", False)),
    }


def vocabulary_options(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keyword arguments for ``create_vocabulary`` from the 'vocabulary' config section."""
    section = get_section(config, "vocabulary")
    return {
        "rules": PruneRules.from_config(section),
        "ngram": tuple(section.get("ngram", (1, 1))),
        "sep": section.get("sep", "_"),
    }
