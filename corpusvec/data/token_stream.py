"""
Lazy composition of a document source with normalize/tokenize.

Each traversal re-reads the underlying source; no document's tokens are
kept once the consumer has moved on.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from corpusvec.data.sources import DocumentSource
from corpusvec.features.preprocessing import Normalizer, Tokenizer, tokenize_whitespace


def iter_tokens(
    source: DocumentSource,
    normalize: Optional[Normalizer] = None,
    tokenize: Tokenizer = tokenize_whitespace,
) -> Iterator[Tuple[str, List[str]]]:
    """Yield ``(doc_id, tokens)`` for every document of ``source``."""
    for doc in source:
        text = normalize(doc.text) if normalize is not None else doc.text
        yield doc.id, list(tokenize(text))


class TokenStream:
    """
    Re-iterable stream of ``(doc_id, tokens)`` pairs.

    Parameters
    ----------
    source : DocumentSource
        Where documents come from.
    normalize : Optional[Normalizer]
        Text-to-text function applied before tokenizing. None skips it.
    tokenize : Tokenizer
        Text-to-tokens function.
    """

    def __init__(
        self,
        source: DocumentSource,
        normalize: Optional[Normalizer] = None,
        tokenize: Tokenizer = tokenize_whitespace,
    ) -> None:
        self.source = source
        self.normalize = normalize
        self.tokenize = tokenize

    def __iter__(self) -> Iterator[Tuple[str, List[str]]]:
        return iter_tokens(self.source, self.normalize, self.tokenize)

    def split(self, n_chunks: int) -> List["TokenStream"]:
        """One stream per chunk of the source, sharing the same functions."""
        return [
            TokenStream(part, normalize=self.normalize, tokenize=self.tokenize)
            for part in self.source.split(n_chunks)
        ]

    def describe(self) -> str:
        return self.source.describe()
