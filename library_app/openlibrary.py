"""Open Library lookups used when cataloguing books by ISBN and browsing authors."""
import time
from collections import deque
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

import httpx

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

OPEN_LIBRARY_URL = "https://openlibrary.org"
COVERS_URL = "https://covers.openlibrary.org"
HEADERS = {"User-Agent": "LibraryApp/1.0 (library-app)", "Accept": "application/json"}


class ExternalServiceError(Exception):
    pass


class RateLimiter:
    """Sliding window limiter: at most `limit` calls per `window` seconds."""

    def __init__(self, limit: int, window: float = 60.0) -> None:
        self.limit = limit
        self.window = window
        self._calls: Deque[float] = deque()
        self._lock = Lock()

    def allow(self) -> bool:
        now = time.monotonic()
        with self._lock:
            while self._calls and now - self._calls[0] >= self.window:
                self._calls.popleft()
            if len(self._calls) >= self.limit:
                return False
            self._calls.append(now)
            return True

    @property
    def retry_after(self) -> int:
        return int(self.window)


def _description_text(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("value")
    return value or None


def _publish_year(publish_date: Optional[str]) -> Optional[int]:
    # "March 2004", "2004" and "Mar 03, 2004" all end with the year
    if not publish_date:
        return None
    try:
        return int(publish_date[-4:])
    except ValueError:
        return None


def _cover_url(cover_id: Optional[int], kind: str = "b", size: str = "M") -> Optional[str]:
    if not cover_id:
        return None
    return f"{COVERS_URL}/{kind}/id/{cover_id}-{size}.jpg"


class OpenLibraryClient:
    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout if timeout is not None else settings.openlibrary_timeout

    # ------------------------- Books ------------------------- #
    def fetch_book(self, isbn: str) -> Optional[Dict[str, Any]]:
        """Return catalog-ready metadata for an ISBN, or None when Open Library has no record."""
        data = self._get_json(f"{OPEN_LIBRARY_URL}/api/books",
                              params={"bibkeys": f"ISBN:{isbn}", "format": "json", "jscmd": "data"})
        book_json = (data or {}).get(f"ISBN:{isbn}")
        if not book_json:
            return None

        authors = [{"name": a.get("name"), "url": a.get("url")}
                   for a in book_json.get("authors") or [] if isinstance(a, dict) and a.get("name")]
        if not authors:
            authors = [{"name": "Unknown Author", "url": None}]

        subjects = []
        for subject in book_json.get("subjects") or []:
            subjects.append(subject if isinstance(subject, str) else subject.get("name", ""))
        publishers = book_json.get("publishers") or []
        publisher = publishers[0].get("name") if publishers and isinstance(publishers[0], dict) else None

        return {
            "title": book_json.get("title") or "Unknown Title",
            "author": ", ".join(a["name"] for a in authors),
            "authors": authors,
            "publishYear": _publish_year(book_json.get("publish_date")),
            "isbn": isbn,
            "cover": (book_json.get("cover") or {}).get("medium"),
            "description": _description_text(book_json.get("description")),
            "publisher": publisher,
            "subjects": subjects,
            "url": book_json.get("url") or f"{OPEN_LIBRARY_URL}/isbn/{isbn}",
        }

    def search(self, query: str, search_type: str = "title") -> Optional[Dict[str, Any]]:
        """Search by isbn, author or title. Returns None when nothing matches."""
        search_type = (search_type or "").lower()
        if search_type == "isbn":
            book = self.fetch_book(query)
            return {"book": book} if book else None
        if search_type == "author":
            return self._search_author_works(query)
        return self._search_titles(query)

    def _search_titles(self, query: str) -> Optional[Dict[str, Any]]:
        data = self._get_json(f"{OPEN_LIBRARY_URL}/search.json", params={"title": query, "limit": 20}) or {}
        docs = data.get("docs") or []
        if not docs:
            return None
        books = [{
            "title": doc.get("title") or "Unknown Title",
            "author": ", ".join(doc.get("author_name") or []) or "Unknown Author",
            "firstPublishYear": doc.get("first_publish_year"),
            "isbn": (doc.get("isbn") or [None])[0],
            "coverId": doc.get("cover_i"),
            "cover": _cover_url(doc.get("cover_i")),
            "key": doc.get("key"),
            "url": f"{OPEN_LIBRARY_URL}{doc.get('key', '')}",
            "languages": doc.get("language") or [],
            "publishers": doc.get("publisher") or [],
        } for doc in docs]
        return {"books": books, "total": data.get("numFound", len(books)),
                "offset": data.get("start", 0), "limit": len(books)}

    def _search_author_works(self, query: str) -> Optional[Dict[str, Any]]:
        author = self._first_author(query)
        if not author:
            return None
        works = self._author_works(author["key"], limit=20)
        if not works:
            return None
        books = [{
            "title": w["title"],
            "author": author["name"] or "Unknown Author",
            "workKey": w["key"],
            "coverId": w["coverId"],
            "cover": w["cover"],
            "firstPublishYear": w["firstPublishYear"],
            "url": f"{OPEN_LIBRARY_URL}{w['key']}",
            "description": w["description"],
        } for w in works]
        return {"author": author["name"], "books": books, "total": len(books)}

    # ------------------------- Authors ------------------------- #
    def author_info(self, name: str) -> Optional[Dict[str, Any]]:
        """Look up an author profile and up to ten of their works."""
        author = self._first_author(name)
        if not author:
            return None
        works = self._author_works(author["key"], limit=10) if author["key"] else []
        return {
            "author": author,
            "works": [{k: w[k] for k in ("title", "key", "firstPublishYear", "coverId", "cover")} for w in works],
        }

    def _first_author(self, name: str) -> Optional[Dict[str, Any]]:
        data = self._get_json(f"{OPEN_LIBRARY_URL}/search/authors.json", params={"q": name}) or {}
        docs = data.get("docs") or []
        if not docs:
            return None
        doc = docs[0]
        photos = doc.get("photos") or []
        return {
            "name": doc.get("name"),
            "key": doc.get("key"),
            "birthDate": doc.get("birth_date"),
            "topWork": doc.get("top_work"),
            "workCount": doc.get("work_count", 0),
            "photoUrl": _cover_url(photos[0], kind="a", size="L") if photos else None,
        }

    def _author_works(self, key: str, limit: int) -> List[Dict[str, Any]]:
        key = key.replace("/authors/", "")
        data = self._get_json(f"{OPEN_LIBRARY_URL}/authors/{key}/works.json", params={"limit": limit}) or {}
        works = []
        for entry in data.get("entries") or []:
            covers = entry.get("covers") or []
            works.append({
                "title": entry.get("title") or "Unknown Title",
                "key": entry.get("key"),
                "firstPublishYear": entry.get("first_publish_year"),
                "coverId": covers[0] if covers else None,
                "cover": _cover_url(covers[0]) if covers else None,
                "description": _description_text(entry.get("description")),
            })
        return works

    # ------------------------- HTTP ------------------------- #
    def _get_json(self, url: str, params: Optional[dict] = None) -> Optional[dict]:
        try:
            resp = httpx.get(url, params=params, headers=HEADERS, timeout=self.timeout)
        except httpx.RequestError as exc:
            logger.warning("Open Library request to %s failed: %s", url, exc)
            raise ExternalServiceError("Open Library unreachable") from exc
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise ExternalServiceError(f"Open Library returned {resp.status_code}")
        return resp.json()
