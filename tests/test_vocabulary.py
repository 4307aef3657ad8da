"""
Tests for vocabulary construction.

These tests validate that:

- the builder counts term and document frequencies in one pass
- merging partial builders is commutative, associative and equal to a
  sequential pass
- finalization prunes in the documented order and indexes terms by
  descending count with lexical tie-break
- finalized vocabularies export to pandas and persist to JSON
"""

from __future__ import annotations

import pickle

import pytest

from corpusvec.data.sources import InMemorySource
from corpusvec.data.token_stream import TokenStream
from corpusvec.errors import ConfigurationError
from corpusvec.features.vocabulary import (
    PruneRules,
    Vocabulary,
    VocabularyBuilder,
    load_vocabulary,
    merge_vocabulary_builders,
    save_vocabulary,
)


def _builder_for(texts, **kwargs) -> VocabularyBuilder:
    return VocabularyBuilder(**kwargs).fit(TokenStream(InMemorySource(texts)))


# ---------------------------------------------------------------------------
# Counting and merging
# ---------------------------------------------------------------------------


def test_builder_counts(example_texts):
    builder = _builder_for(example_texts + ["cat cat cat"])
    assert builder.document_count == 4
    assert builder.term_counts["cat"] == 5
    assert builder.doc_counts["cat"] == 3
    assert builder.doc_counts["the"] == 2
    assert len(builder) == 7


def test_merge_matches_sequential_pass(corpus):
    whole = _builder_for(corpus)
    a = _builder_for(corpus[:10])
    b = _builder_for(corpus[10:25])
    c = _builder_for(corpus[25:])

    assert a.merge(b).merge(c) == whole
    assert a.merge(b.merge(c)) == whole
    assert c.merge(a).merge(b) == whole
    assert merge_vocabulary_builders([a, b, c]) == whole
    # Inputs are left untouched.
    assert a == _builder_for(corpus[:10])


def test_merge_rejects_incompatible_builders(example_texts):
    unigrams = _builder_for(example_texts)
    bigrams = _builder_for(example_texts, ngram=(1, 2))
    with pytest.raises(ConfigurationError):
        unigrams.merge(bigrams)
    with pytest.raises(ConfigurationError):
        merge_vocabulary_builders([])


def test_ngrams_and_stopwords(example_texts):
    vocab = _builder_for(example_texts, ngram=(1, 2), stopwords={"the"}).finalize()
    assert "the" not in vocab
    assert "cat_sat" in vocab
    assert "and_dog" in vocab
    assert vocab.ngram == (1, 2)


def test_vocabulary_remembers_stopwords(tmp_path):
    vocab = _builder_for(["cat the sat"], ngram=(1, 2), stopwords={"the"}).finalize()
    assert set(vocab.terms) == {"cat", "sat", "cat_sat"}
    assert vocab.stopwords == frozenset({"the"})

    save_vocabulary(vocab, artifacts_dir=str(tmp_path))
    loaded = load_vocabulary(artifacts_dir=str(tmp_path))
    assert loaded.stopwords == frozenset({"the"})
    assert loaded == vocab

    plain = Vocabulary(vocab.terms, vocab.term_counts, vocab.doc_counts, 1, ngram=(1, 2))
    assert plain != vocab


def test_builder_pickles(example_texts):
    builder = _builder_for(example_texts)
    assert pickle.loads(pickle.dumps(builder)) == builder


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


def test_worked_example_vocabulary(example_texts):
    vocab = _builder_for(example_texts).finalize(min_count=1)
    assert set(vocab.terms) == {"the", "cat", "sat", "dog", "ran", "and", "played"}
    # Descending term count, lexical tie-break.
    assert vocab.terms == ("cat", "dog", "the", "and", "played", "ran", "sat")
    assert vocab.index_of("the") == 2
    assert vocab.term_counts.tolist() == [2, 2, 2, 1, 1, 1, 1]
    assert vocab.doc_counts.tolist() == [2, 2, 2, 1, 1, 1, 1]
    assert vocab.document_count == 3


def test_prune_by_counts_and_proportions(example_texts):
    builder = _builder_for(example_texts)
    assert set(builder.finalize(min_count=2).terms) == {"cat", "dog", "the"}
    assert set(builder.finalize(max_count=1).terms) == {"and", "played", "ran", "sat"}
    assert set(builder.finalize(min_doc_count=2).terms) == {"cat", "dog", "the"}
    assert set(builder.finalize(max_doc_proportion=0.5).terms) == {"and", "played", "ran", "sat"}
    assert set(builder.finalize(min_doc_proportion=0.5).terms) == {"cat", "dog", "the"}


def test_size_cap_applies_last(example_texts):
    builder = _builder_for(example_texts)
    assert builder.finalize(max_vocab_size=2).terms == ("cat", "dog")
    # Proportion filter runs before the cap.
    capped = builder.finalize(PruneRules(max_doc_proportion=0.5, max_vocab_size=2))
    assert capped.terms == ("and", "played")
    assert len(builder.finalize(max_vocab_size=0)) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_count": -1},
        {"min_count": 5, "max_count": 2},
        {"min_doc_proportion": 1.5},
        {"min_doc_proportion": 0.6, "max_doc_proportion": 0.4},
        {"max_vocab_size": -3},
    ],
)
def test_invalid_prune_rules(kwargs):
    with pytest.raises(ConfigurationError):
        PruneRules(**kwargs)


def test_prune_rules_from_config_ignores_other_keys():
    rules = PruneRules.from_config({"ngram": [1, 2], "min_count": 3, "max_vocab_size": 10})
    assert rules == PruneRules(min_count=3, max_vocab_size=10)


def test_finalization_is_independent_of_merge_order(corpus):
    parts = [_builder_for(corpus[i:i + 5]) for i in range(0, len(corpus), 5)]
    forward = merge_vocabulary_builders(parts).finalize(min_count=2, max_vocab_size=10)
    backward = merge_vocabulary_builders(reversed(parts)).finalize(min_count=2, max_vocab_size=10)
    assert forward == backward


# ---------------------------------------------------------------------------
# Finalized vocabulary
# ---------------------------------------------------------------------------


def test_vocabulary_is_read_only(example_texts):
    vocab = _builder_for(example_texts).finalize()
    with pytest.raises(ValueError):
        vocab.term_counts[0] = 100
    with pytest.raises(AttributeError):
        vocab.terms = ("x",)


def test_vocabulary_to_frame(example_texts):
    frame = _builder_for(example_texts).finalize().to_frame()
    assert list(frame.columns) == ["term", "term_count", "doc_count", "index"]
    assert frame["index"].tolist() == list(range(7))
    assert frame.loc[frame["term"] == "dog", "term_count"].item() == 2


def test_save_and_load_vocabulary(tmp_path, example_texts):
    vocab = _builder_for(example_texts, ngram=(1, 2)).finalize()
    path = save_vocabulary(vocab, artifacts_dir=str(tmp_path))
    assert path.endswith("vocabulary.json")
    assert load_vocabulary(artifacts_dir=str(tmp_path)) == vocab

    with pytest.raises(FileNotFoundError):
        load_vocabulary(artifacts_dir=str(tmp_path), filename="nope.json")


def test_vocabulary_rejects_duplicate_terms():
    with pytest.raises(ConfigurationError):
        Vocabulary(["a", "a"], [1, 1], [1, 1], document_count=1)
