"""
Feature extraction.

This subpackage includes:
- default text normalizers and tokenizers
- n-gram construction
- vocabulary builders, prune rules and finalized vocabularies
- vocabulary-indexed and hashing vectorizers
- TF-IDF and row normalization of built document-term matrices
"""
