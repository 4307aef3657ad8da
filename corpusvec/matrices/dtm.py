"""
Document-term matrix accumulation.

``DtmBuilder`` appends one sparse row per document, keyed by document
id, and merges with builders filled from other chunks of the same
corpus. ``build`` turns the accumulated entries into a scipy CSR matrix
wrapped with its row and column labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
import pandas as pd
import scipy.sparse as sp

from corpusvec.errors import ConfigurationError, DuplicateIdError
from corpusvec.features.vectorizers import Vectorizer


@dataclass
class DocumentTermMatrix:
    """
    Sparse document-term matrix with labels.

    Attributes
    ----------
    matrix : sp.csr_matrix
        Shape ``(n_documents, n_features)``.
    row_ids : Tuple[str, ...]
        Document id of each row, in first-appearance order.
    feature_names : Optional[Tuple[str, ...]]
        Term of each column (vocabulary mode) or None (hash mode).
    """

    matrix: sp.csr_matrix
    row_ids: Tuple[str, ...]
    feature_names: Optional[Tuple[str, ...]] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    def to_frame(self) -> pd.DataFrame:
        """Return a pandas DataFrame with sparse columns, labelled rows and columns."""
        if self.feature_names is not None:
            columns = list(self.feature_names)
        else:
            columns = list(range(self.matrix.shape[1]))
        return pd.DataFrame.sparse.from_spmatrix(
            self.matrix, index=list(self.row_ids), columns=columns
        )


def check_compatible_features(a: Vectorizer, b: Vectorizer) -> None:
    """Partial matrices only merge when they share a feature space."""
    if a.n_features != b.n_features or a.feature_names != b.feature_names:
        raise ConfigurationError("Cannot merge matrices built with different feature spaces")


class DtmBuilder:
    """
    Accumulates DTM rows.

    Parameters
    ----------
    vectorizer : Vectorizer
        Maps each document's tokens to a sparse row.
    """

    def __init__(self, vectorizer: Vectorizer) -> None:
        self.vectorizer = vectorizer
        self.row_ids: List[str] = []
        self._seen: Set[str] = set()
        self._rows: List[int] = []
        self._cols: List[int] = []
        self._values: List[float] = []

    def __len__(self) -> int:
        return len(self.row_ids)

    def add(self, doc_id: str, tokens: Sequence[str]) -> "DtmBuilder":
        """
        Append one document as a row.

        Raises
        ------
        DuplicateIdError
            If ``doc_id`` was already added.
        """
        if doc_id in self._seen:
            raise DuplicateIdError(doc_id)

        row_index = len(self.row_ids)
        self.row_ids.append(doc_id)
        self._seen.add(doc_id)

        for col, value in self.vectorizer.transform(tokens).items():
            self._rows.append(row_index)
            self._cols.append(col)
            self._values.append(value)
        return self

    def fit(self, stream: Iterable[Tuple[str, Sequence[str]]]) -> "DtmBuilder":
        for doc_id, tokens in stream:
            self.add(doc_id, tokens)
        return self

    def merge(self, other: "DtmBuilder") -> "DtmBuilder":
        """
        Return a builder with the rows of ``self`` followed by those of ``other``.

        Raises
        ------
        DuplicateIdError
            If both builders hold a row with the same document id.
        """
        if not isinstance(other, DtmBuilder):
            raise TypeError(f"Cannot merge DtmBuilder with {type(other).__name__}")
        check_compatible_features(self.vectorizer, other.vectorizer)

        for doc_id in other.row_ids:
            if doc_id in self._seen:
                raise DuplicateIdError(doc_id)

        offset = len(self.row_ids)
        merged = DtmBuilder(self.vectorizer)
        merged.row_ids = self.row_ids + other.row_ids
        merged._seen = self._seen | other._seen
        merged._rows = self._rows + [r + offset for r in other._rows]
        merged._cols = self._cols + other._cols
        merged._values = self._values + other._values
        return merged

    def build(self) -> DocumentTermMatrix:
        shape = (len(self.row_ids), self.vectorizer.n_features)
        coo = sp.coo_matrix(
            (
                np.asarray(self._values, dtype=np.int64),
                (np.asarray(self._rows, dtype=np.int64), np.asarray(self._cols, dtype=np.int64)),
            ),
            shape=shape,
        )
        return DocumentTermMatrix(
            matrix=coo.tocsr(),
            row_ids=tuple(self.row_ids),
            feature_names=self.vectorizer.feature_names,
        )
