"""
Re-weighting of a built document-term matrix.

- ``normalize_rows``: l1 / l2 row normalization
- ``tfidf_transform``: TF-IDF weighting via scikit-learn's TfidfTransformer

Both return a new ``DocumentTermMatrix`` with the original labels.
"""

from __future__ import annotations

from typing import Tuple

from sklearn.feature_extraction.text import TfidfTransformer
from sklearn.preprocessing import normalize

from corpusvec.errors import ConfigurationError
from corpusvec.matrices.dtm import DocumentTermMatrix


def normalize_rows(dtm: DocumentTermMatrix, norm: str = "l1") -> DocumentTermMatrix:
    """
    Scale each row to unit ``norm`` ("l1" or "l2"). Empty rows stay empty.
    """
    if norm not in ("l1", "l2"):
        raise ConfigurationError(f"norm must be 'l1' or 'l2', got {norm!r}")
    matrix = normalize(dtm.matrix.astype(float), norm=norm, axis=1)
    return DocumentTermMatrix(matrix=matrix.tocsr(), row_ids=dtm.row_ids, feature_names=dtm.feature_names)


def tfidf_transform(
    dtm: DocumentTermMatrix,
    norm: str = "l2",
    smooth_idf: bool = True,
    sublinear_tf: bool = False,
) -> Tuple[DocumentTermMatrix, TfidfTransformer]:
    """
    Apply TF-IDF weighting to a count DTM.

    Parameters
    ----------
    dtm : DocumentTermMatrix
        Count matrix, e.g. from ``create_dtm``.
    norm : str
        Row normalization applied after weighting ("l1", "l2").
    smooth_idf : bool
        Add one to document frequencies, as if an extra document contained
        every term once.
    sublinear_tf : bool
        Replace tf with 1 + log(tf).

    Returns
    -------
    Tuple[DocumentTermMatrix, TfidfTransformer]
        The weighted matrix and the fitted transformer, which can be
        reused on a DTM of new documents over the same feature space.
    """
    transformer = TfidfTransformer(norm=norm, use_idf=True, smooth_idf=smooth_idf, sublinear_tf=sublinear_tf)
    weighted = transformer.fit_transform(dtm.matrix)
    result = DocumentTermMatrix(matrix=weighted.tocsr(), row_ids=dtm.row_ids, feature_names=dtm.feature_names)
    return result, transformer
