"""
Streaming, chunk-parallel vectorization of text corpora.

This package contains modules for:
- lazy document sources over in-memory collections and files
- pluggable normalization and tokenization
- single-pass vocabulary construction with mergeable partial counts
- vocabulary-indexed and hashing vectorizers
- document-term and term-co-occurrence matrix accumulation
- a fork-join engine that runs the pipeline over chunks in worker
  processes and merges the partial results deterministically
- shared configuration, logging and progress helpers
"""

__version__ = "0.1.0"
