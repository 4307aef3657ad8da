"""
Persist and reload built matrices (DTM or TCM) with joblib.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional, Union

import joblib

from corpusvec.matrices.dtm import DocumentTermMatrix
from corpusvec.matrices.tcm import TermCooccurrenceMatrix
from corpusvec.utils.pipeline_utils import ensure_dir_exists, resolve_artifacts_dir


MatrixResult = Union[DocumentTermMatrix, TermCooccurrenceMatrix]


def save_matrix(
    result: MatrixResult,
    filename: str,
    artifacts_dir: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Save a DTM or TCM (matrix plus labels) under the artifacts directory.

    Parameters
    ----------
    result : DocumentTermMatrix | TermCooccurrenceMatrix
        Matrix to persist.
    filename : str
        File name, e.g. "dtm.joblib".
    artifacts_dir : Optional[str]
        Target directory. If None, taken from the "paths" config section.
    config : Optional[Dict[str, Any]]
        Pipeline configuration.

    Returns
    -------
    str
        Full path to the saved file.
    """
    artifacts_dir = resolve_artifacts_dir(artifacts_dir, config)
    ensure_dir_exists(artifacts_dir)
    path = os.path.join(artifacts_dir, filename)
    joblib.dump(result, path)
    return path


def load_matrix(
    filename: str,
    artifacts_dir: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> MatrixResult:
    """
    Load a matrix saved by ``save_matrix``.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    artifacts_dir = resolve_artifacts_dir(artifacts_dir, config)
    path = os.path.join(artifacts_dir, filename)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Matrix file not found at: {path}")
    return joblib.load(path)
