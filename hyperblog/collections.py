"""Ordered document collections for hyperblog.

Key names:
- DocumentSet: Read-only sequence of documents, newest first.
- related_of: Documents sharing a keyword with a given document.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .content import Document

DEFAULT_RELATED_COUNT = 3


def related_of(
    document: Document, documents: Iterable[Document], count: int = DEFAULT_RELATED_COUNT
) -> list[Document]:
    """Return up to ``count`` documents sharing a keyword with ``document``.

    Candidates keep the order of ``documents``; there is no relevance
    scoring, so within a DocumentSet the newest matches win. The document
    itself (matched by slug) is never included.
    """
    if count <= 0:
        return []
    related: list[Document] = []
    for candidate in documents:
        if candidate.slug == document.slug:
            continue
        if document.shares_keyword_with(candidate):
            related.append(candidate)
            if len(related) == count:
                break
    return related


class DocumentSet(Sequence[Document]):
    """Read-only sequence of Documents ordered newest first.

    Construction sorts by date descending. The sort is stable, so documents
    with equal dates keep the order they were given in.
    """

    def __init__(self, documents: Iterable[Document]):
        self._documents = tuple(sorted(documents, key=lambda d: d.date, reverse=True))

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        return self._documents[item]

    def get(self, slug: str) -> Document | None:
        for document in self._documents:
            if document.slug == slug:
                return document
        return None

    def related_to(self, document: Document, count: int = DEFAULT_RELATED_COUNT) -> list[Document]:
        return related_of(document, self._documents, count)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentSet({len(self._documents)} documents)"
