"""
Corpus-level execution.

This subpackage provides:
- the fork-join engine splitting a token stream into chunks and merging
  the partial results in chunk order
- vocabulary, DTM and TCM jobs usable sequentially or in parallel
"""
