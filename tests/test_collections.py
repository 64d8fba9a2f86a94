from datetime import datetime, timezone

import pytest

from hyperblog.collections import DocumentSet, related_of
from hyperblog.content import Document


def make_doc(slug, day, keywords=()):
    return Document(
        slug=slug,
        title=slug.title(),
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        keywords=tuple(keywords),
    )


@pytest.fixture
def documents():
    return DocumentSet(
        [
            make_doc("a", 1, ["x"]),
            make_doc("b", 5, ["x", "y"]),
            make_doc("c", 3, ["y"]),
            make_doc("d", 4, ["z"]),
            make_doc("e", 2, ["x"]),
        ]
    )


def test_document_set_is_newest_first(documents):
    assert [d.slug for d in documents] == ["b", "d", "c", "e", "a"]
    assert len(documents) == 5
    assert documents[0].slug == "b"


def test_equal_dates_keep_input_order():
    docs = DocumentSet([make_doc("first", 1), make_doc("second", 1), make_doc("newer", 2)])
    assert [d.slug for d in docs] == ["newer", "first", "second"]


def test_lookup_by_slug(documents):
    assert documents.get("c").slug == "c"
    assert documents.get("missing") is None


def test_related_excludes_self_and_respects_order(documents):
    b = documents.get("b")
    related = documents.related_to(b)
    assert [d.slug for d in related] == ["c", "e", "a"]
    assert b not in related


def test_related_is_truncated(documents):
    b = documents.get("b")
    assert [d.slug for d in related_of(b, documents, 2)] == ["c", "e"]
    assert related_of(b, documents, 0) == []


def test_related_requires_keyword_overlap(documents):
    d = documents.get("d")
    assert documents.related_to(d) == []
    loner = make_doc("loner", 9)
    assert related_of(loner, documents) == []


@pytest.mark.parametrize("count", [0, 1, 2, 3, 10])
def test_related_properties_hold_for_every_document(documents, count):
    for document in documents:
        related = related_of(document, documents, count)
        assert len(related) <= count
        assert all(r.slug != document.slug for r in related)
        assert all(set(r.keywords) & set(document.keywords) for r in related)
