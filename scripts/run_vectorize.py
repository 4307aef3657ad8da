"""
Vectorize text files into a vocabulary, a DTM and a TCM.

This script is a convenience wrapper around
`corpusvec.pipeline.run.vectorize_files`, which:

- reads every input file line by line (one document per line)
- builds a vocabulary or uses hashed features
- builds the document-term and term-co-occurrence matrices in parallel
- saves all artifacts plus summary.csv under the artifacts directory

Usage (from project root):

    python -m scripts.run_vectorize data/*.txt
    # or
    python scripts/run_vectorize.py --mode hash --no-tcm data/*.txt
"""

from __future__ import annotations

import argparse

from corpusvec.pipeline.run import MODES, vectorize_files
from corpusvec.utils.pipeline_utils import (
    DEFAULT_PIPELINE_CONFIG_PATH,
    get_logger,
    load_pipeline_config,
)
from corpusvec.utils.progress import NullReporter, TqdmReporter


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Vectorize text files (one document per line)."
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="Input text files.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_PIPELINE_CONFIG_PATH,
        help=f"Path to pipeline config YAML (default: {DEFAULT_PIPELINE_CONFIG_PATH}).",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="vocabulary",
        help="Vocabulary-based or hashed features (default: vocabulary).",
    )
    parser.add_argument(
        "--no-tcm",
        action="store_true",
        help="Skip the term-co-occurrence matrix.",
    )
    parser.add_argument(
        "--artifacts-dir",
        type=str,
        default=None,
        help="Output directory (default: paths.artifacts_dir from the config).",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar per job.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    cfg = load_pipeline_config(args.config)
    logger = get_logger(
        name="run_vectorize",
        config=cfg,
        log_file_suffix="vectorize",
    )

    logger.info("=" * 80)
    logger.info("Starting vectorization of %d files.", len(args.paths))

    reporter = TqdmReporter() if args.progress else NullReporter()
    summary_df = vectorize_files(
        args.paths,
        config_path=args.config,
        mode=args.mode,
        with_tcm=not args.no_tcm,
        artifacts_dir=args.artifacts_dir,
        reporter=reporter,
    )

    logger.info("Vectorization completed. Artifacts:")
    logger.info("\n%s", summary_df)


if __name__ == "__main__":
    main()
