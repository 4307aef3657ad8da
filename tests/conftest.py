"""
Shared fixtures for the corpusvec test suite.

Parallel tests only ship functions defined inside the corpusvec package to
worker processes, so nothing here needs to be importable by the workers.
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import List

import pytest


EXAMPLE_TEXTS = ["the cat sat", "the dog ran", "cat and dog played"]

_WORDS = [
    "alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta",
    "iota", "kappa", "lambda", "mu", "nu", "xi", "omicron", "pi",
    "rho", "sigma", "tau", "upsilon", "phi", "chi", "psi", "omega",
]

REPO_ROOT = Path(__file__).resolve().parents[1]


def make_corpus(n_docs: int = 40, seed: int = 7) -> List[str]:
    """Deterministic synthetic corpus with a skewed word distribution."""
    rng = random.Random(seed)
    weights = [1.0 / (i + 1) for i in range(len(_WORDS))]
    docs = []
    for _ in range(n_docs):
        length = rng.randint(3, 15)
        docs.append(" ".join(rng.choices(_WORDS, weights=weights, k=length)))
    return docs


@pytest.fixture
def example_texts() -> List[str]:
    return list(EXAMPLE_TEXTS)


@pytest.fixture
def corpus() -> List[str]:
    return make_corpus()


@pytest.fixture
def corpus_files(tmp_path: Path) -> List[str]:
    """Write the synthetic corpus to five files of eight lines each."""
    docs = make_corpus()
    paths = []
    for i in range(5):
        path = tmp_path / f"part_{i}.txt"
        path.write_text("\n".join(docs[i * 8:(i + 1) * 8]) + "\n", encoding="utf-8")
        paths.append(str(path))
    return paths


@pytest.fixture
def config_path() -> str:
    return str(REPO_ROOT / "config" / "pipeline.yaml")
