"""
Sparse matrix accumulation.

This subpackage provides:
- document-term matrix builders and results
- term-co-occurrence matrix builders, weightings and results
- joblib persistence for built matrices
"""
