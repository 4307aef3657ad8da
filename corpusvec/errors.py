"""
Exception types raised by the vectorization pipeline.

Every error defines ``__reduce__`` so that it survives the trip from a
worker process back to the coordinator with its attributes intact.
"""

from __future__ import annotations

from typing import Optional


class CorpusVecError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(CorpusVecError, ValueError):
    """Invalid chunk count, window, hash size, prune bound or similar."""


class ReaderError(CorpusVecError):
    """
    I/O failure or malformed reader output for a particular source.

    Parameters
    ----------
    message : str
        Human-readable description.
    source : str
        Identity of the file (or in-memory collection) being read.
    """

    def __init__(self, message: str, source: str) -> None:
        super().__init__(f"{message} [source: {source}]")
        self.message = message
        self.source = source

    def __reduce__(self):
        return (self.__class__, (self.message, self.source))


class DuplicateIdError(CorpusVecError):
    """Two documents of one corpus share the same id."""

    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Duplicate document id: {doc_id!r}")
        self.doc_id = doc_id

    def __reduce__(self):
        return (self.__class__, (self.doc_id,))


class VocabularyNotFinalizedError(CorpusVecError, RuntimeError):
    """A vocabulary vectorizer was given a raw (unfinalized) vocabulary."""


class WorkerFailure(CorpusVecError):
    """
    Failure inside a parallel worker.

    Parameters
    ----------
    chunk_index : int
        Index of the chunk whose worker failed.
    source : str
        Identity of the offending file when known, otherwise a description
        of the chunk.
    cause : BaseException
        The original exception raised in the worker.
    """

    def __init__(
        self,
        chunk_index: int,
        source: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Worker for chunk {chunk_index} failed ({source}): {detail}")
        self.chunk_index = chunk_index
        self.source = source
        self.cause = cause

    def __reduce__(self):
        return (self.__class__, (self.chunk_index, self.source, self.cause))
