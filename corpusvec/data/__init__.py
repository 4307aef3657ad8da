"""
Document input.

This subpackage provides:
- document sources over in-memory collections and lists of files
- the default line reader
- token streams composing a source with normalize/tokenize functions
"""
