import time

import httpx
import pytest

from library_app import openlibrary
from library_app.openlibrary import ExternalServiceError, OpenLibraryClient, RateLimiter

ISBN = "9780132350884"

BOOKS_API_RESPONSE = {
    f"ISBN:{ISBN}": {
        "title": "Clean Code",
        "authors": [{"name": "Robert C. Martin", "url": "https://openlibrary.org/authors/OL1A"}],
        "publish_date": "August 2008",
        "publishers": [{"name": "Prentice Hall"}],
        "subjects": [{"name": "Agile software development"}, "Refactoring"],
        "cover": {"medium": "https://covers.openlibrary.org/b/id/1-M.jpg"},
        "url": "https://openlibrary.org/books/OL1M/Clean_Code",
    }
}

SEARCH_RESPONSE = {
    "numFound": 1,
    "start": 0,
    "docs": [{
        "title": "Dune",
        "author_name": ["Frank Herbert"],
        "first_publish_year": 1965,
        "isbn": ["9780441013593"],
        "cover_i": 42,
        "key": "/works/OL1W",
    }],
}


class FakeGet:
    """Stands in for httpx.get, answering by URL suffix."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        for suffix, (status, body) in self.routes.items():
            if url.endswith(suffix):
                return httpx.Response(status, json=body, request=httpx.Request("GET", url))
        return httpx.Response(404, json={}, request=httpx.Request("GET", url))


@pytest.fixture
def fake_get(monkeypatch):
    def install(routes):
        fake = FakeGet(routes)
        monkeypatch.setattr(openlibrary.httpx, "get", fake)
        return fake
    return install


def test_fetch_book_maps_payload(fake_get):
    fake = fake_get({"/api/books": (200, BOOKS_API_RESPONSE)})

    book = OpenLibraryClient().fetch_book(ISBN)

    assert book["title"] == "Clean Code"
    assert book["author"] == "Robert C. Martin"
    assert book["publishYear"] == 2008
    assert book["publisher"] == "Prentice Hall"
    assert book["subjects"] == ["Agile software development", "Refactoring"]
    assert book["cover"] == "https://covers.openlibrary.org/b/id/1-M.jpg"
    assert fake.calls[0][1]["bibkeys"] == f"ISBN:{ISBN}"


def test_fetch_book_unknown_isbn(fake_get):
    fake_get({"/api/books": (200, {})})
    assert OpenLibraryClient().fetch_book("0000000000") is None


def test_fetch_book_without_authors(fake_get):
    fake_get({"/api/books": (200, {f"ISBN:{ISBN}": {"title": "Anonymous"}})})
    book = OpenLibraryClient().fetch_book(ISBN)
    assert book["author"] == "Unknown Author"
    assert book["publishYear"] is None


def test_title_search(fake_get):
    fake_get({"/search.json": (200, SEARCH_RESPONSE)})

    result = OpenLibraryClient().search("Dune")

    assert result["total"] == 1
    hit = result["books"][0]
    assert hit["author"] == "Frank Herbert"
    assert hit["firstPublishYear"] == 1965
    assert hit["isbn"] == "9780441013593"
    assert hit["cover"] == "https://covers.openlibrary.org/b/id/42-M.jpg"


def test_title_search_without_hits(fake_get):
    fake_get({"/search.json": (200, {"docs": []})})
    assert OpenLibraryClient().search("nothing") is None


def test_author_search(fake_get):
    fake_get({
        "/search/authors.json": (200, {"docs": [{"name": "Frank Herbert", "key": "OL2A", "photos": [7]}]}),
        "/authors/OL2A/works.json": (200, {"entries": [
            {"title": "Dune", "key": "/works/OL1W", "covers": [42], "description": {"value": "Spice"}},
        ]}),
    })

    result = OpenLibraryClient().search("Herbert", "author")

    assert result["author"] == "Frank Herbert"
    assert result["books"][0]["title"] == "Dune"
    assert result["books"][0]["description"] == "Spice"


def test_author_info(fake_get):
    fake_get({
        "/search/authors.json": (200, {"docs": [{"name": "Frank Herbert", "key": "OL2A", "photos": [7]}]}),
        "/authors/OL2A/works.json": (200, {"entries": []}),
    })

    info = OpenLibraryClient().author_info("Frank Herbert")

    assert info["author"]["photoUrl"] == "https://covers.openlibrary.org/a/id/7-L.jpg"
    assert info["works"] == []


def test_not_found_is_none_other_errors_raise(fake_get):
    fake_get({"/api/books": (404, {})})
    assert OpenLibraryClient().fetch_book(ISBN) is None

    fake_get({"/api/books": (503, {})})
    with pytest.raises(ExternalServiceError, match="503"):
        OpenLibraryClient().fetch_book(ISBN)


def test_network_failure_is_a_single_attempt(monkeypatch):
    calls = []

    def failing_get(url, **kwargs):
        calls.append(url)
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(openlibrary.httpx, "get", failing_get)

    with pytest.raises(ExternalServiceError, match="unreachable"):
        OpenLibraryClient().fetch_book(ISBN)
    assert len(calls) == 1


@pytest.mark.parametrize("value, expected", [
    ("2004", 2004), ("March 2004", 2004), ("Mar 03, 2004", 2004), ("n.d.", None), (None, None),
])
def test_publish_year(value, expected):
    assert openlibrary._publish_year(value) == expected


def test_rate_limiter_blocks_within_window():
    limiter = RateLimiter(limit=2, window=60)
    assert limiter.allow()
    assert limiter.allow()
    assert not limiter.allow()
    assert limiter.retry_after == 60


def test_rate_limiter_frees_slots_after_window():
    limiter = RateLimiter(limit=1, window=0.05)
    assert limiter.allow()
    assert not limiter.allow()

    time.sleep(0.06)

    assert limiter.allow()
