"""
End-to-end vectorization of a set of text files.

This module drives the jobs from a pipeline config:

- reads the files line by line (one document per line)
- normalizes and tokenizes with the configured preprocessing
- builds a vocabulary (vocabulary mode) or uses the hashing trick
- builds the document-term matrix and, optionally, the co-occurrence matrix
- saves the vocabulary (JSON), the matrices (joblib) and a summary CSV
  under the artifacts directory

It is callable both as a library function and through
``scripts/run_vectorize.py``.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from corpusvec.data.sources import FileSource
from corpusvec.data.token_stream import TokenStream
from corpusvec.errors import ConfigurationError
from corpusvec.features.preprocessing import build_normalizer, build_tokenizer
from corpusvec.features.vectorizers import HashVectorizer, Vectorizer, VocabVectorizer
from corpusvec.features.vocabulary import save_vocabulary
from corpusvec.matrices.io import save_matrix
from corpusvec.pipeline.jobs import (
    create_dtm,
    create_tcm,
    create_vocabulary,
    parallel_options,
    tcm_options,
    vocabulary_options,
)
from corpusvec.utils.pipeline_utils import (
    DEFAULT_PIPELINE_CONFIG_PATH,
    ensure_dir_exists,
    get_logger,
    get_section,
    load_pipeline_config,
    resolve_artifacts_dir,
)
from corpusvec.utils.progress import ProgressReporter


MODES = ("vocabulary", "hash")

SUMMARY_FILENAME = "summary.csv"


def build_stream(paths: Sequence[str], config: Optional[Dict[str, Any]] = None) -> TokenStream:
    """Token stream over ``paths`` with the configured normalizer and tokenizer."""
    prep_cfg = get_section(config, "preprocessing")
    return TokenStream(
        FileSource(paths),
        normalize=build_normalizer(prep_cfg),
        tokenize=build_tokenizer(prep_cfg),
    )


def vectorize_files(
    paths: Sequence[str],
    config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
    mode: str = "vocabulary",
    with_tcm: bool = True,
    artifacts_dir: Optional[str] = None,
    reporter: Optional[ProgressReporter] = None,
) -> pd.DataFrame:
    """
    Vectorize ``paths`` and save every artifact.

    Parameters
    ----------
    paths : Sequence[str]
        Text files, one document per line.
    config_path : str
        Path to config/pipeline.yaml.
    mode : str
        "vocabulary" (vocabulary-based features) or "hash" (hashed features).
    with_tcm : bool
        Also build the term-co-occurrence matrix.
    artifacts_dir : Optional[str]
        Output directory. Defaults to ``paths.artifacts_dir`` from the config.
    reporter : Optional[ProgressReporter]
        Progress reporter shared by all jobs.

    Returns
    -------
    pd.DataFrame
        One row per saved artifact with columns
        ["artifact", "rows", "cols", "nnz", "path"].
    """
    if mode not in MODES:
        raise ConfigurationError(f"mode must be one of {MODES}, got {mode!r}")
    if not paths:
        raise ConfigurationError("No input files given")

    cfg = load_pipeline_config(config_path)
    logger = get_logger(name="vectorize", config=cfg, log_file_suffix="vectorize")

    artifacts_dir = resolve_artifacts_dir(artifacts_dir, cfg)
    ensure_dir_exists(artifacts_dir)

    par = parallel_options(cfg)
    stream = build_stream(paths, cfg)
    logger.info("Vectorizing %s in %s mode with %s.", stream.describe(), mode, par)

    records: List[Dict[str, Any]] = []
    vectorizer: Vectorizer

    if mode == "vocabulary":
        vocab = create_vocabulary(stream, reporter=reporter, **vocabulary_options(cfg), **par)
        vocab_path = save_vocabulary(vocab, artifacts_dir=artifacts_dir)
        logger.info("Saved vocabulary of %d terms to %s", len(vocab), vocab_path)
        records.append(
            {"artifact": "vocabulary", "rows": len(vocab), "cols": None, "nnz": None, "path": vocab_path}
        )
        vectorizer = VocabVectorizer(vocab)
    else:
        vectorizer = HashVectorizer.from_config(get_section(cfg, "hashing"))
        logger.info("Using %r", vectorizer)

    dtm = create_dtm(stream, vectorizer, reporter=reporter, **par)
    dtm_path = save_matrix(dtm, "dtm.joblib", artifacts_dir=artifacts_dir)
    logger.info("Saved DTM to %s", dtm_path)
    records.append(
        {"artifact": "dtm", "rows": dtm.shape[0], "cols": dtm.shape[1], "nnz": dtm.matrix.nnz, "path": dtm_path}
    )

    if with_tcm:
        tcm = create_tcm(stream, vectorizer, reporter=reporter, **tcm_options(cfg), **par)
        tcm_path = save_matrix(tcm, "tcm.joblib", artifacts_dir=artifacts_dir)
        logger.info("Saved TCM to %s", tcm_path)
        records.append(
            {"artifact": "tcm", "rows": tcm.shape[0], "cols": tcm.shape[1], "nnz": tcm.matrix.nnz, "path": tcm_path}
        )

    summary_df = pd.DataFrame(records, columns=["artifact", "rows", "cols", "nnz", "path"])
    csv_path = os.path.join(artifacts_dir, SUMMARY_FILENAME)
    summary_df.to_csv(csv_path, index=False)
    logger.info("Saved run summary to %s", csv_path)

    return summary_df
