"""
Tests for the parallel (fork-join) jobs.

These tests validate that:

- vocabulary, DTM and TCM are the same for any number of chunks
- worker failures surface as WorkerFailure naming the chunk and file,
  while sequential runs raise the original error
- duplicate document ids are fatal whether they meet inside one chunk or
  across chunks
- the progress reporter is advanced once per chunk
"""

from __future__ import annotations

import numpy as np
import pytest

from corpusvec.data.sources import FileSource, InMemorySource
from corpusvec.data.token_stream import TokenStream
from corpusvec.errors import (
    ConfigurationError,
    DuplicateIdError,
    ReaderError,
    VocabularyNotFinalizedError,
    WorkerFailure,
)
from corpusvec.features.preprocessing import normalize_text
from corpusvec.features.vectorizers import HashVectorizer, VocabVectorizer
from corpusvec.features.vocabulary import VocabularyBuilder
from corpusvec.pipeline.engine import split_chunks
from corpusvec.pipeline.jobs import count_terms, create_dtm, create_tcm, create_vocabulary
from corpusvec.utils.progress import ProgressReporter


CHUNK_COUNTS = (1, 2, 4, 8)


class RecordingReporter(ProgressReporter):
    def __init__(self) -> None:
        self.total = None
        self.desc = None
        self.advanced = 0
        self.closed = False

    def start(self, total, desc=""):
        self.total = total
        self.desc = desc

    def advance(self, n=1):
        self.advanced += n

    def close(self):
        self.closed = True


def _same_dtm(a, b) -> bool:
    return a.row_ids == b.row_ids and a.shape == b.shape and (a.matrix != b.matrix).nnz == 0


# ---------------------------------------------------------------------------
# Chunk-count independence
# ---------------------------------------------------------------------------


def test_vocabulary_independent_of_chunks(corpus):
    stream = TokenStream(InMemorySource(corpus))
    reference = create_vocabulary(stream, n_chunks=1, min_count=2)
    for n_chunks in CHUNK_COUNTS[1:]:
        assert create_vocabulary(stream, n_chunks=n_chunks, n_jobs=2, min_count=2) == reference


def test_count_terms_matches_sequential_builder(corpus):
    stream = TokenStream(InMemorySource(corpus))
    merged = count_terms(stream, ngram=(1, 2), n_chunks=4, n_jobs=2)
    assert merged == VocabularyBuilder(ngram=(1, 2)).fit(stream)


def test_dtm_and_tcm_independent_of_chunks(corpus):
    stream = TokenStream(InMemorySource(corpus))
    vec = VocabVectorizer(create_vocabulary(stream))
    dtm_ref = create_dtm(stream, vec)
    tcm_ref = create_tcm(stream, vec, window=3)

    for n_chunks in CHUNK_COUNTS[1:]:
        assert _same_dtm(create_dtm(stream, vec, n_chunks=n_chunks, n_jobs=2), dtm_ref)
        tcm = create_tcm(stream, vec, window=3, n_chunks=n_chunks, n_jobs=2)
        assert tcm.feature_names == tcm_ref.feature_names
        assert np.allclose(tcm.matrix.toarray(), tcm_ref.matrix.toarray())


def test_file_source_independent_of_chunks(corpus_files):
    stream = TokenStream(FileSource(corpus_files), normalize=normalize_text)
    vocab = create_vocabulary(stream)
    vec = VocabVectorizer(vocab)
    dtm_ref = create_dtm(stream, vec)
    assert dtm_ref.shape == (40, len(vocab))
    assert dtm_ref.row_ids[0] == "part_0.txt_1"

    # More chunks than files leaves some chunks empty.
    for n_chunks in CHUNK_COUNTS[1:]:
        assert create_vocabulary(stream, n_chunks=n_chunks, n_jobs=2) == vocab
        assert _same_dtm(create_dtm(stream, vec, n_chunks=n_chunks, n_jobs=2), dtm_ref)


def test_hash_dtm_independent_of_chunks(corpus):
    stream = TokenStream(InMemorySource(corpus))
    vec = HashVectorizer(hash_size=2 ** 6)
    reference = create_dtm(stream, vec)
    assert reference.shape == (40, 64)
    assert _same_dtm(create_dtm(stream, vec, n_chunks=4, n_jobs=2), reference)


def test_split_chunks_indexes_from_zero(corpus):
    chunks = split_chunks(TokenStream(InMemorySource(corpus)), 3)
    assert [c.index for c in chunks] == [0, 1, 2]
    assert chunks[0].describe().startswith("chunk 0: memory[0:")


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_missing_file_in_worker(corpus_files, tmp_path):
    missing = str(tmp_path / "missing.txt")
    stream = TokenStream(FileSource(corpus_files + [missing]))

    with pytest.raises(WorkerFailure) as exc_info:
        count_terms(stream, n_chunks=2, n_jobs=2)
    failure = exc_info.value
    assert failure.chunk_index == 1
    assert failure.source == missing
    assert isinstance(failure.cause, ReaderError)

    with pytest.raises(ReaderError) as seq_info:
        count_terms(stream, n_chunks=1)
    assert seq_info.value.source == missing


def test_undecodable_file_in_worker(corpus_files, tmp_path):
    bad = tmp_path / "latin1.txt"
    bad.write_bytes(b"ok\n\xff\xfe broken\n")
    stream = TokenStream(FileSource(corpus_files[:1] + [str(bad)]))

    with pytest.raises(ReaderError) as seq_info:
        count_terms(stream, n_chunks=1)
    assert seq_info.value.source == str(bad)

    with pytest.raises(WorkerFailure) as exc_info:
        count_terms(stream, n_chunks=2, n_jobs=2)
    failure = exc_info.value
    assert failure.chunk_index == 1
    assert failure.source == str(bad)
    assert isinstance(failure.cause, ReaderError)


def test_duplicate_ids_within_a_chunk(example_texts):
    stream = TokenStream(InMemorySource(example_texts + ["x"], ids=["a", "a", "b", "c"]))
    vec = HashVectorizer(hash_size=16)
    with pytest.raises(WorkerFailure) as exc_info:
        create_dtm(stream, vec, n_chunks=2, n_jobs=2)
    assert exc_info.value.chunk_index == 0
    assert isinstance(exc_info.value.cause, DuplicateIdError)


def test_duplicate_ids_across_chunks(example_texts):
    stream = TokenStream(InMemorySource(example_texts + ["x"], ids=["a", "b", "a", "c"]))
    vec = HashVectorizer(hash_size=16)
    with pytest.raises(DuplicateIdError):
        create_dtm(stream, vec, n_chunks=2, n_jobs=2)
    with pytest.raises(DuplicateIdError):
        create_dtm(stream, vec, n_chunks=1)


def test_identical_basenames_across_chunks(tmp_path):
    paths = []
    for sub in ("one", "two"):
        (tmp_path / sub).mkdir()
        path = tmp_path / sub / "docs.txt"
        path.write_text("alpha beta\ngamma\n", encoding="utf-8")
        paths.append(str(path))
    vec = HashVectorizer(hash_size=16)

    with pytest.raises(DuplicateIdError):
        create_dtm(TokenStream(FileSource(paths)), vec, n_chunks=2, n_jobs=2)

    dtm = create_dtm(TokenStream(FileSource(paths, source_name=str)), vec, n_chunks=2, n_jobs=2)
    assert dtm.shape == (4, 16)


def test_jobs_reject_raw_vocabularies(example_texts):
    stream = TokenStream(InMemorySource(example_texts))
    builder = count_terms(stream)
    with pytest.raises(VocabularyNotFinalizedError):
        create_dtm(stream, builder)
    with pytest.raises(VocabularyNotFinalizedError):
        create_tcm(stream, builder)
    with pytest.raises(TypeError):
        create_dtm(stream, builder.finalize())


@pytest.mark.parametrize("bad", [0, -2, 1.5])
def test_jobs_reject_bad_chunk_counts(example_texts, bad):
    stream = TokenStream(InMemorySource(example_texts))
    with pytest.raises(ConfigurationError):
        count_terms(stream, n_chunks=bad)


def test_invalid_tcm_settings_fail_before_reading(tmp_path):
    stream = TokenStream(FileSource([str(tmp_path / "never-read.txt")]))
    with pytest.raises(ConfigurationError):
        create_tcm(stream, HashVectorizer(hash_size=16), window=0, n_chunks=2)


def test_bad_n_jobs(example_texts):
    stream = TokenStream(InMemorySource(example_texts))
    with pytest.raises(ConfigurationError):
        count_terms(stream, n_chunks=2, n_jobs=0)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def test_reporter_advanced_once_per_chunk(corpus):
    stream = TokenStream(InMemorySource(corpus))
    reporter = RecordingReporter()
    count_terms(stream, n_chunks=4, n_jobs=2, reporter=reporter)
    assert reporter.total == 4
    assert reporter.advanced == 4
    assert reporter.desc == "count_terms"
    assert reporter.closed

    sequential = RecordingReporter()
    count_terms(stream, reporter=sequential)
    assert (sequential.total, sequential.advanced, sequential.closed) == (1, 1, True)
