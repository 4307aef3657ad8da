"""
Document sources.

A document source produces a lazy, deterministic sequence of
``Document(id, text)`` items, either from an in-memory collection or from
a list of files handed one by one to a reader function.

Readers are plain callables ``reader(path)`` returning one of:

- a mapping ``id -> text``
- a pandas Series (a non-default index supplies the ids)
- an iterable of ``(id, text)`` pairs
- an iterable of strings (ids are synthesized)

When a reader supplies no id, the document id is
``<source_name(path)>_<n>`` where ``n`` is the 1-based position of the
document within that file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from corpusvec.errors import ConfigurationError, ReaderError


Reader = Callable[[str], Any]


@dataclass(frozen=True)
class Document:
    """A single document: unique id plus raw text."""

    id: str
    text: str


def check_n_chunks(n_chunks: Any) -> int:
    """Validate a chunk count and return it as an int."""
    if isinstance(n_chunks, bool) or not isinstance(n_chunks, (int, np.integer)):
        raise ConfigurationError(f"n_chunks must be an integer, got {n_chunks!r}")
    if n_chunks < 1:
        raise ConfigurationError(f"n_chunks must be >= 1, got {n_chunks}")
    return int(n_chunks)


def _partition_bounds(n_items: int, n_chunks: int) -> List[Tuple[int, int]]:
    """Contiguous (start, stop) bounds splitting ``n_items`` into ``n_chunks`` groups."""
    parts = np.array_split(np.arange(n_items), n_chunks)
    bounds = []
    start = 0
    for part in parts:
        stop = start + len(part)
        bounds.append((start, stop))
        start = stop
    return bounds


def _has_explicit_index(series: pd.Series) -> bool:
    index = series.index
    if isinstance(index, pd.RangeIndex) and index.start == 0 and index.step == 1:
        return False
    return True


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def read_lines(path: str, encoding: str = "utf-8") -> Iterator[str]:
    """
    Default reader: yield the lines of a text file, newline stripped.

    The file is opened on first iteration and closed when the iteration
    is exhausted, fails or is closed early.
    """
    with open(path, "r", encoding=encoding) as f:
        for line in f:
            yield line.rstrip("\r\n")


def _iter_reader_output(output: Any, source: str) -> Iterator[Tuple[Optional[str], str]]:
    """
    Normalize whatever a reader returned into ``(optional id, text)`` pairs.
    """
    if isinstance(output, pd.Series):
        if _has_explicit_index(output):
            pairs = ((str(idx), text) for idx, text in output.items())
        else:
            pairs = ((None, text) for text in output.tolist())
    elif isinstance(output, Mapping):
        pairs = ((str(k), v) for k, v in output.items())
    elif isinstance(output, (str, bytes)) or not hasattr(output, "__iter__"):
        raise ReaderError(
            f"Reader returned unsupported type {type(output).__name__}", source=source
        )
    else:
        pairs = _iter_items(output, source)

    for doc_id, text in pairs:
        if not isinstance(text, str):
            raise ReaderError(
                f"Reader produced non-string text of type {type(text).__name__}",
                source=source,
            )
        yield doc_id, text


def _iter_items(items: Any, source: str) -> Iterator[Tuple[Optional[str], Any]]:
    for item in items:
        if isinstance(item, str):
            yield None, item
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            doc_id, text = item
            yield (None if doc_id is None else str(doc_id)), text
        else:
            raise ReaderError(
                f"Reader produced malformed item of type {type(item).__name__}",
                source=source,
            )


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class DocumentSource:
    """
    Base class for document sources.

    Subclasses yield each document exactly once per iteration, in a stable
    order, and can split themselves into disjoint chunks that together
    cover the corpus.
    """

    def __iter__(self) -> Iterator[Document]:
        raise NotImplementedError

    def split(self, n_chunks: int) -> List["DocumentSource"]:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class InMemorySource(DocumentSource):
    """
    Source over an in-memory collection of texts.

    Parameters
    ----------
    texts : Sequence[str] | Mapping[str, str] | pd.Series
        The documents. Mapping keys and a non-default Series index are
        used as ids when ``ids`` is not given.
    ids : Optional[Sequence]
        Explicit ids, preserved verbatim (converted to ``str``).
    name : str
        Identity used in error messages.

    Raises
    ------
    ConfigurationError
        If ``ids`` and ``texts`` differ in length.
    """

    def __init__(
        self,
        texts: Any,
        ids: Optional[Sequence[Any]] = None,
        name: str = "memory",
    ) -> None:
        implied_ids: Optional[List[str]] = None
        if isinstance(texts, pd.Series):
            if _has_explicit_index(texts):
                implied_ids = [str(i) for i in texts.index]
            texts = texts.tolist()
        elif isinstance(texts, Mapping):
            implied_ids = [str(k) for k in texts.keys()]
            texts = list(texts.values())
        else:
            texts = list(texts)

        if ids is not None:
            ids = [str(i) for i in ids]
            if len(ids) != len(texts):
                raise ConfigurationError(
                    f"Got {len(ids)} ids for {len(texts)} texts; lengths must match."
                )
        elif implied_ids is not None:
            ids = implied_ids
        else:
            ids = [str(i) for i in range(1, len(texts) + 1)]

        self.texts: List[Any] = texts
        self.ids: List[str] = ids
        self.name = name

    def __len__(self) -> int:
        return len(self.texts)

    def __iter__(self) -> Iterator[Document]:
        for doc_id, text in zip(self.ids, self.texts):
            if not isinstance(text, str):
                raise ReaderError(
                    f"Document {doc_id!r} has non-string text of type {type(text).__name__}",
                    source=self.name,
                )
            yield Document(doc_id, text)

    def split(self, n_chunks: int) -> List["InMemorySource"]:
        n_chunks = check_n_chunks(n_chunks)
        return [
            InMemorySource(
                self.texts[start:stop],
                ids=self.ids[start:stop],
                name=f"{self.name}[{start}:{stop}]",
            )
            for start, stop in _partition_bounds(len(self.texts), n_chunks)
        ]

    def describe(self) -> str:
        return self.name


class FileSource(DocumentSource):
    """
    Source over a list of files, each handed to ``reader`` lazily.

    Parameters
    ----------
    paths : Sequence[str]
        Files to read, visited in the given order.
    reader : Reader
        Callable turning a path into documents. Defaults to ``read_lines``.
    source_name : Callable[[str], str]
        Turns a path into the prefix of synthesized ids. Defaults to
        ``os.path.basename``; pass ``str`` to use the full path.
    """

    def __init__(
        self,
        paths: Sequence[Any],
        reader: Reader = read_lines,
        source_name: Callable[[str], str] = os.path.basename,
    ) -> None:
        self.paths: List[str] = [os.fspath(p) for p in paths]
        self.reader = reader
        self.source_name = source_name

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[Document]:
        for path in self.paths:
            yield from self._iter_file(path)

    def _iter_file(self, path: str) -> Iterator[Document]:
        name = self.source_name(path)
        output = None
        try:
            output = self.reader(path)
            for n, (doc_id, text) in enumerate(_iter_reader_output(output, path), start=1):
                yield Document(doc_id if doc_id is not None else f"{name}_{n}", text)
        except ReaderError:
            raise
        except Exception as exc:
            raise ReaderError(f"{type(exc).__name__}: {exc}", source=path) from exc
        finally:
            close = getattr(output, "close", None)
            if callable(close):
                close()

    def split(self, n_chunks: int) -> List["FileSource"]:
        n_chunks = check_n_chunks(n_chunks)
        return [
            FileSource(self.paths[start:stop], reader=self.reader, source_name=self.source_name)
            for start, stop in _partition_bounds(len(self.paths), n_chunks)
        ]

    def describe(self) -> str:
        if not self.paths:
            return "no files"
        if len(self.paths) == 1:
            return self.paths[0]
        return f"{len(self.paths)} files ({self.paths[0]} .. {self.paths[-1]})"
