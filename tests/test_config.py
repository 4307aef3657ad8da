"""
Tests for configuration loading, logging and the end-to-end driver.

These tests validate that:

- config/pipeline.yaml loads with its required sections
- missing files, empty files and missing sections fail loudly
- the config helpers produce the knobs the jobs accept
- vectorize_files writes every artifact and a summary CSV
- the package metadata points at the project README
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import pandas as pd
import pytest
import yaml

from corpusvec.errors import ConfigurationError
from corpusvec.features.preprocessing import build_tokenizer
from corpusvec.features.vectorizers import HashVectorizer
from corpusvec.features.vocabulary import PruneRules, load_vocabulary
from corpusvec.matrices.io import load_matrix
from corpusvec.pipeline.jobs import parallel_options, tcm_options, vocabulary_options
from corpusvec.pipeline.run import vectorize_files
from corpusvec.utils.pipeline_utils import (
    _parse_log_level,
    get_logger,
    get_section,
    load_pipeline_config,
    resolve_artifacts_dir,
)


@pytest.fixture
def pipeline_cfg(config_path):
    return load_pipeline_config(config_path)


def _write_config(tmp_path, cfg) -> str:
    path = tmp_path / "pipeline.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_pipeline_config_sections(pipeline_cfg):
    for section in ("parallel", "vocabulary", "hashing", "tcm", "preprocessing", "logging", "paths"):
        assert section in pipeline_cfg
    assert pipeline_cfg["hashing"]["hash_size"] == 2 ** 18


def test_missing_and_invalid_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_pipeline_config(str(tmp_path / "nope.yaml"))

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_pipeline_config(str(empty))

    with pytest.raises(KeyError):
        load_pipeline_config(_write_config(tmp_path, {"parallel": {}, "vocabulary": {}}))


def test_get_section_and_artifacts_dir():
    assert get_section(None, "tcm") == {}
    assert get_section({"tcm": None}, "tcm") == {}
    assert resolve_artifacts_dir("out", {"paths": {"artifacts_dir": "elsewhere"}}) == "out"
    assert resolve_artifacts_dir(None, {"paths": {"artifacts_dir": "elsewhere"}}) == "elsewhere"
    assert resolve_artifacts_dir(None, None) == "artifacts"


# ---------------------------------------------------------------------------
# Config helpers
# ---------------------------------------------------------------------------


def test_job_options_from_config(pipeline_cfg):
    assert parallel_options(pipeline_cfg) == {"n_chunks": 4, "backend": "loky"}
    assert tcm_options(pipeline_cfg) == {
        "window": 5,
        "weighting": "inverse_distance",
        "symmetric": False,
        "binary": False,
    }
    vocab_opts = vocabulary_options(pipeline_cfg)
    assert vocab_opts["rules"] == PruneRules()
    assert vocab_opts["ngram"] == (1, 1)
    assert vocab_opts["sep"] == "_"


def test_defaults_without_config():
    assert parallel_options(None) == {"n_chunks": 1}
    assert tcm_options(None)["window"] == 5


def test_factories_from_config(pipeline_cfg):
    vec = HashVectorizer.from_config(pipeline_cfg["hashing"])
    assert vec.n_features == 2 ** 18
    assert vec.signed_hash is True

    tokenize = build_tokenizer(pipeline_cfg["preprocessing"])
    assert tokenize("the cats ran") == ["the", "cats", "ran"]


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def test_parse_log_level():
    assert _parse_log_level("debug") == logging.DEBUG
    assert _parse_log_level("bogus") == logging.INFO
    assert _parse_log_level(None) == logging.INFO


def test_get_logger_writes_log_file(tmp_path):
    cfg = {
        "logging": {"level": "DEBUG", "to_file": True, "file_prefix": "unit"},
        "paths": {"logs_dir": str(tmp_path / "logs")},
    }
    logger = get_logger("corpusvec.tests.file_logger", config=cfg, log_file_suffix="case")
    logger.debug("hello")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert os.path.exists(tmp_path / "logs" / "unit_case.log")
    # A second call reuses the configured logger.
    assert get_logger("corpusvec.tests.file_logger") is logger
    assert len(logger.handlers) == 2


# ---------------------------------------------------------------------------
# End-to-end driver
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("mode", ["vocabulary", "hash"])
def test_vectorize_files(tmp_path, pipeline_cfg, corpus_files, mode):
    cfg = dict(pipeline_cfg)
    cfg["parallel"] = {"n_chunks": 2, "n_jobs": 2, "backend": "loky"}
    cfg["hashing"] = {"hash_size": 256, "ngram": [1, 1], "signed_hash": True}
    cfg["paths"] = {"artifacts_dir": str(tmp_path / "artifacts"), "logs_dir": str(tmp_path / "logs")}
    config_path = _write_config(tmp_path, cfg)

    summary = vectorize_files(corpus_files, config_path=config_path, mode=mode)

    artifacts_dir = tmp_path / "artifacts"
    saved = pd.read_csv(artifacts_dir / "summary.csv")
    assert saved["artifact"].tolist() == summary["artifact"].tolist()

    dtm = load_matrix("dtm.joblib", artifacts_dir=str(artifacts_dir))
    tcm = load_matrix("tcm.joblib", artifacts_dir=str(artifacts_dir))
    assert dtm.shape[0] == 40
    assert tcm.shape[0] == tcm.shape[1] == dtm.shape[1]

    if mode == "vocabulary":
        assert summary["artifact"].tolist() == ["vocabulary", "dtm", "tcm"]
        vocab = load_vocabulary(artifacts_dir=str(artifacts_dir))
        assert dtm.feature_names == vocab.terms
    else:
        assert summary["artifact"].tolist() == ["dtm", "tcm"]
        assert dtm.shape[1] == 256


def test_vectorize_files_rejects_bad_input(config_path, corpus_files):
    with pytest.raises(ConfigurationError):
        vectorize_files(corpus_files, config_path=config_path, mode="bogus")
    with pytest.raises(ConfigurationError):
        vectorize_files([], config_path=config_path)


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------


def test_declared_readme_is_project_documentation():
    root = Path(__file__).resolve().parents[1]
    pyproject = (root / "pyproject.toml").read_text(encoding="utf-8")
    match = re.search(r'^readme\s*=\s*"([^"]+)"', pyproject, flags=re.MULTILINE)

    assert match is not None
    readme = root / match.group(1)
    assert readme.is_file()
    assert readme.read_text(encoding="utf-8").startswith("# corpusvec")
