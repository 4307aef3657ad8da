"""
Term-co-occurrence matrix accumulation.

For every document, each pair of token positions ``i < j`` with
``j - i <= window`` adds ``weight(j - i)`` to the cell of the two tokens'
features. Tokens without a feature (out of vocabulary) add nothing but
still occupy their position.

Cell layout:

- ``symmetric=False``: only the upper triangle ``(min(a, b), max(a, b))``
- ``symmetric=True``: both ``(a, b)`` and ``(b, a)``; the diagonal once

With ``binary=True`` a single document contributes to a cell at most the
largest weight it produced there, instead of the sum.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import scipy.sparse as sp

from corpusvec.errors import ConfigurationError
from corpusvec.features.vectorizers import Vectorizer
from corpusvec.matrices.dtm import check_compatible_features


Cell = Tuple[int, int]
Weighting = Union[Callable[[int], float], Sequence[float]]

DEFAULT_WINDOW = 5


def inverse_distance(distance: int) -> float:
    return 1.0 / distance


def uniform_weight(distance: int) -> float:
    return 1.0


WEIGHTINGS: Dict[str, Callable[[int], float]] = {
    "inverse_distance": inverse_distance,
    "uniform": uniform_weight,
}


def check_window(window: int) -> int:
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise ConfigurationError(f"window must be an integer >= 1, got {window!r}")
    return window


def resolve_weights(weighting: Union[Weighting, str], window: int) -> Tuple[float, ...]:
    """
    Turn a weighting argument into one weight per distance ``1..window``.

    ``weighting`` is a callable of the distance, a sequence of exactly
    ``window`` weights, or the name of a built-in weighting.
    """
    if isinstance(weighting, str):
        if weighting not in WEIGHTINGS:
            raise ConfigurationError(
                f"Unknown weighting {weighting!r}; expected one of {sorted(WEIGHTINGS)}"
            )
        weighting = WEIGHTINGS[weighting]

    if callable(weighting):
        weights = tuple(float(weighting(d)) for d in range(1, window + 1))
    else:
        weights = tuple(float(w) for w in weighting)
        if len(weights) != window:
            raise ConfigurationError(
                f"Expected {window} weights (one per distance), got {len(weights)}"
            )

    for w in weights:
        if not math.isfinite(w) or w < 0:
            raise ConfigurationError(f"Weights must be finite and non-negative, got {w}")
    return weights


@dataclass
class TermCooccurrenceMatrix:
    """
    Sparse square co-occurrence matrix with labels.

    Attributes
    ----------
    matrix : sp.csr_matrix
        Shape ``(n_features, n_features)``.
    feature_names : Optional[Tuple[str, ...]]
        Term of each row/column (vocabulary mode) or None (hash mode).
    """

    matrix: sp.csr_matrix
    feature_names: Optional[Tuple[str, ...]] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    def to_frame(self) -> pd.DataFrame:
        if self.feature_names is not None:
            labels = list(self.feature_names)
        else:
            labels = list(range(self.matrix.shape[0]))
        return pd.DataFrame.sparse.from_spmatrix(self.matrix, index=labels, columns=labels)


class TcmBuilder:
    """
    Accumulates weighted co-occurrence cells.

    Parameters
    ----------
    vectorizer : Vectorizer
        Supplies the feature of each token position.
    window : int
        Largest positional distance counted.
    weighting : callable, sequence of floats or str
        Weight of a pair as a function of its distance. Defaults to
        ``inverse_distance``.
    symmetric : bool
        Fill both triangles instead of the upper one.
    binary : bool
        Cap each document's contribution to a cell at its largest weight.
    """

    def __init__(
        self,
        vectorizer: Vectorizer,
        window: int = DEFAULT_WINDOW,
        weighting: Union[Weighting, str] = inverse_distance,
        symmetric: bool = False,
        binary: bool = False,
    ) -> None:
        self.vectorizer = vectorizer
        self.window = check_window(window)
        self.weights = resolve_weights(weighting, self.window)
        self.symmetric = bool(symmetric)
        self.binary = bool(binary)
        self.cells: Dict[Cell, float] = {}
        self.document_count = 0

    def _settings(self) -> tuple:
        return (self.window, self.weights, self.symmetric, self.binary)

    def add(self, tokens: Sequence[str]) -> "TcmBuilder":
        """Count the co-occurrences of one document."""
        feats = self.vectorizer.token_features(tokens)
        weights = self.weights
        symmetric = self.symmetric
        doc_cells: Dict[Cell, float] = {}
        n = len(feats)

        for i in range(n):
            a = feats[i]
            if a < 0:
                continue
            for d in range(1, min(self.window, n - 1 - i) + 1):
                b = feats[i + d]
                if b < 0:
                    continue
                w = weights[d - 1]
                if symmetric and a != b:
                    keys: Tuple[Cell, ...] = ((a, b), (b, a))
                else:
                    keys = ((a, b) if a <= b else (b, a),)
                for key in keys:
                    if self.binary:
                        if w > doc_cells.get(key, 0.0):
                            doc_cells[key] = w
                    else:
                        doc_cells[key] = doc_cells.get(key, 0.0) + w

        cells = self.cells
        for key, value in doc_cells.items():
            cells[key] = cells.get(key, 0.0) + value
        self.document_count += 1
        return self

    def fit(self, stream: Iterable[Tuple[str, Sequence[str]]]) -> "TcmBuilder":
        for _, tokens in stream:
            self.add(tokens)
        return self

    def merge(self, other: "TcmBuilder") -> "TcmBuilder":
        """Return a builder whose cells are the entry-wise sum of both."""
        if not isinstance(other, TcmBuilder):
            raise TypeError(f"Cannot merge TcmBuilder with {type(other).__name__}")
        check_compatible_features(self.vectorizer, other.vectorizer)
        if self._settings() != other._settings():
            raise ConfigurationError(
                "Cannot merge co-occurrence builders with different window, weights, "
                "symmetric or binary settings"
            )

        merged = TcmBuilder(
            self.vectorizer,
            window=self.window,
            weighting=self.weights,
            symmetric=self.symmetric,
            binary=self.binary,
        )
        cells = dict(self.cells)
        for key, value in other.cells.items():
            cells[key] = cells.get(key, 0.0) + value
        merged.cells = cells
        merged.document_count = self.document_count + other.document_count
        return merged

    def build(self) -> TermCooccurrenceMatrix:
        n = self.vectorizer.n_features
        if self.cells:
            keys = np.array(list(self.cells.keys()), dtype=np.int64)
            values = np.fromiter(self.cells.values(), dtype=np.float64, count=len(self.cells))
            rows, cols = keys[:, 0], keys[:, 1]
        else:
            rows = cols = np.empty(0, dtype=np.int64)
            values = np.empty(0, dtype=np.float64)
        coo = sp.coo_matrix((values, (rows, cols)), shape=(n, n))
        return TermCooccurrenceMatrix(matrix=coo.tocsr(), feature_names=self.vectorizer.feature_names)
