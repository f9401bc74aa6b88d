import re
import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Union

from .book import Author, Book
from .database import get_db_connection, initialize_database
from .logging_config import get_logger
from .openlibrary import ExternalServiceError, OpenLibraryClient

logger = get_logger(__name__)

AuthorInput = Union[str, Dict[str, Any]]

_BOOK_AUTHORS_SQL = """
    SELECT a.*, ab.is_primary
    FROM authors a
    JOIN author_books ab ON a.id = ab.author_id
    WHERE ab.book_id = ?
    ORDER BY ab.is_primary DESC, a.name
"""

__all__ = ["Library", "ExternalServiceError"]


class Library:
    """Catalog of books and authors plus each member's personal collection."""

    def __init__(self, openlibrary: Optional[OpenLibraryClient] = None) -> None:
        initialize_database()
        self.openlibrary = openlibrary or OpenLibraryClient()

    # ------------------------- Books ------------------------- #
    def list_books(self) -> List[Book]:
        conn = get_db_connection()
        try:
            rows = conn.execute("SELECT * FROM books ORDER BY title").fetchall()
            return [self._book_from_row(conn, row) for row in rows]
        finally:
            conn.close()

    def get_book(self, book_id: int) -> Optional[Book]:
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            return self._book_from_row(conn, row) if row else None
        finally:
            conn.close()

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        if not isbn:
            return None
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT * FROM books WHERE isbn = ?", (isbn.strip(),)).fetchone()
            return self._book_from_row(conn, row) if row else None
        finally:
            conn.close()

    def search_books(self, query: str) -> List[Book]:
        """Match title, description, the legacy author string or any linked author name."""
        pattern = f"%{query}%"
        conn = get_db_connection()
        try:
            rows = conn.execute(
                """
                SELECT DISTINCT b.*
                FROM books b
                LEFT JOIN author_books ab ON b.id = ab.book_id
                LEFT JOIN authors a ON ab.author_id = a.id
                WHERE b.title LIKE ? OR b.description LIKE ? OR b.author LIKE ? OR a.name LIKE ?
                ORDER BY b.title
                """,
                (pattern, pattern, pattern, pattern),
            ).fetchall()
            return [self._book_from_row(conn, row) for row in rows]
        finally:
            conn.close()

    def create_book(self, title: str, *, isbn: Optional[str] = None, publishYear: Optional[int] = None,
                    author: Optional[str] = None, cover: Optional[str] = None,
                    description: Optional[str] = None,
                    authors: Optional[Iterable[AuthorInput]] = None) -> Book:
        """Insert a book and link its authors; the first author becomes the primary one."""
        if not title or not title.strip():
            raise ValueError("Title is required")
        author_entries = self._author_entries(authors, author)
        if not author and author_entries:
            author = ", ".join(entry["name"] for entry in author_entries)

        conn = get_db_connection()
        try:
            try:
                cursor = conn.execute(
                    "INSERT INTO books (title, isbn, publishYear, author, cover, description) VALUES (?, ?, ?, ?, ?, ?)",
                    (title.strip(), isbn or None, publishYear or None, author or None, cover or None, description or None),
                )
            except sqlite3.IntegrityError as e:
                raise ValueError("Book with this ISBN already exists") from e
            book_id = cursor.lastrowid
            self._link_authors(conn, book_id, author_entries)
            conn.commit()
            logger.info("Created book %s (%s)", book_id, title)
            return self._load_book(conn, book_id)
        finally:
            conn.close()

    def create_book_from_openlibrary(self, isbn: str) -> Optional[Book]:
        """Fetch metadata by ISBN and catalog it. None when Open Library does not know the ISBN."""
        data = self.openlibrary.fetch_book(isbn)
        if not data:
            return None
        return self.create_book(
            data["title"],
            isbn=isbn,
            publishYear=data.get("publishYear"),
            author=data.get("author"),
            cover=data.get("cover"),
            description=data.get("description"),
            authors=data.get("authors"),
        )

    def update_book(self, book_id: int, title: str, *, isbn: Optional[str] = None,
                    publishYear: Optional[int] = None, author: Optional[str] = None,
                    cover: Optional[str] = None, description: Optional[str] = None,
                    authors: Optional[Iterable[AuthorInput]] = None) -> Optional[Book]:
        """Replace a book's fields. Author links are rebuilt when authors or an author string is given."""
        if not title or not title.strip():
            raise ValueError("Title is required")
        conn = get_db_connection()
        try:
            current = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if not current:
                return None
            if isbn and isbn != current["isbn"]:
                clash = conn.execute("SELECT id FROM books WHERE isbn = ? AND id != ?", (isbn, book_id)).fetchone()
                if clash:
                    raise ValueError("Book with this ISBN already exists")

            conn.execute(
                """
                UPDATE books
                SET title = ?, isbn = ?, publishYear = ?, author = ?, cover = ?, description = ?,
                    updatedAt = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (title.strip(), isbn or None, publishYear or None, author or None, cover or None,
                 description or None, book_id),
            )
            if authors is not None or author:
                conn.execute("DELETE FROM author_books WHERE book_id = ?", (book_id,))
                self._link_authors(conn, book_id, self._author_entries(authors, author))
            conn.commit()
            return self._load_book(conn, book_id)
        finally:
            conn.close()

    def delete_book(self, book_id: int) -> bool:
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------- Collections ------------------------- #
    def get_user_collection(self, user_id: int) -> List[Book]:
        conn = get_db_connection()
        try:
            rows = conn.execute(
                """
                SELECT b.* FROM books b
                JOIN user_collections uc ON b.id = uc.bookId
                WHERE uc.userId = ?
                ORDER BY uc.createdAt DESC, b.title
                """,
                (user_id,),
            ).fetchall()
            return [self._book_from_row(conn, row) for row in rows]
        finally:
            conn.close()

    def add_to_collection(self, user_id: int, book_id: int) -> None:
        conn = get_db_connection()
        try:
            conn.execute("INSERT OR IGNORE INTO user_collections (userId, bookId) VALUES (?, ?)", (user_id, book_id))
            conn.commit()
        finally:
            conn.close()

    def remove_from_collection(self, user_id: int, book_id: int) -> bool:
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM user_collections WHERE userId = ? AND bookId = ?", (user_id, book_id))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------- Authors ------------------------- #
    def list_authors(self) -> List[Author]:
        conn = get_db_connection()
        try:
            rows = conn.execute(
                """
                SELECT a.*, COUNT(ab.book_id) AS book_count
                FROM authors a
                LEFT JOIN author_books ab ON a.id = ab.author_id
                GROUP BY a.id
                ORDER BY a.name
                """
            ).fetchall()
            return [Author.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get_author(self, author_id: int) -> Optional[Author]:
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT * FROM authors WHERE id = ?", (author_id,)).fetchone()
            return Author.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def find_author_by_name(self, name: str) -> Optional[Author]:
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT * FROM authors WHERE LOWER(name) = LOWER(?)", (name.strip(),)).fetchone()
            return Author.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def get_author_books(self, author_id: int) -> List[Dict[str, Any]]:
        """Books written by an author, each flagged with whether this author is primary."""
        conn = get_db_connection()
        try:
            rows = conn.execute(
                """
                SELECT b.*, ab.is_primary
                FROM books b
                JOIN author_books ab ON b.id = ab.book_id
                WHERE ab.author_id = ?
                ORDER BY b.title
                """,
                (author_id,),
            ).fetchall()
            books = []
            for row in rows:
                data = self._book_from_row(conn, row).to_dict()
                data["is_primary"] = bool(row["is_primary"])
                books.append(data)
            return books
        finally:
            conn.close()

    def create_author(self, name: str, biography: Optional[str] = None, birth_date: Optional[str] = None,
                      photo_url: Optional[str] = None) -> Author:
        if not name or not name.strip():
            raise ValueError("Author name is required")
        if self.find_author_by_name(name):
            raise ValueError("Author already exists")
        conn = get_db_connection()
        try:
            cursor = conn.execute(
                "INSERT INTO authors (name, biography, birth_date, photo_url) VALUES (?, ?, ?, ?)",
                (name.strip(), biography or None, birth_date or None, photo_url or None),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM authors WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return Author.from_dict(dict(row))
        finally:
            conn.close()

    def update_author(self, author_id: int, name: str, biography: Optional[str] = None,
                      birth_date: Optional[str] = None, photo_url: Optional[str] = None) -> Optional[Author]:
        if not name or not name.strip():
            raise ValueError("Author name is required")
        conn = get_db_connection()
        try:
            current = conn.execute("SELECT * FROM authors WHERE id = ?", (author_id,)).fetchone()
            if not current:
                return None
            if name.strip().lower() != current["name"].lower():
                clash = conn.execute(
                    "SELECT id FROM authors WHERE LOWER(name) = LOWER(?) AND id != ?", (name.strip(), author_id)
                ).fetchone()
                if clash:
                    raise ValueError("Author with this name already exists")
            conn.execute(
                """
                UPDATE authors
                SET name = ?, biography = ?, birth_date = ?, photo_url = ?, updatedAt = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (name.strip(), biography or None, birth_date or None, photo_url or None, author_id),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM authors WHERE id = ?", (author_id,)).fetchone()
            return Author.from_dict(dict(row))
        finally:
            conn.close()

    def delete_author(self, author_id: int) -> bool:
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM authors WHERE id = ?", (author_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def link_author_to_book(self, author_id: int, book_id: int, is_primary: bool = False) -> bool:
        """Create or update an author-book link. Returns True when a new link was created."""
        conn = get_db_connection()
        try:
            if not conn.execute("SELECT id FROM authors WHERE id = ?", (author_id,)).fetchone():
                raise LookupError("Author not found")
            if not conn.execute("SELECT id FROM books WHERE id = ?", (book_id,)).fetchone():
                raise LookupError("Book not found")
            existing = conn.execute(
                "SELECT 1 FROM author_books WHERE author_id = ? AND book_id = ?", (author_id, book_id)
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE author_books SET is_primary = ? WHERE author_id = ? AND book_id = ?",
                    (1 if is_primary else 0, author_id, book_id),
                )
            else:
                conn.execute(
                    "INSERT INTO author_books (author_id, book_id, is_primary) VALUES (?, ?, ?)",
                    (author_id, book_id, 1 if is_primary else 0),
                )
            conn.commit()
            return existing is None
        finally:
            conn.close()

    def unlink_author_from_book(self, author_id: int, book_id: int) -> bool:
        conn = get_db_connection()
        try:
            cursor = conn.execute("DELETE FROM author_books WHERE author_id = ? AND book_id = ?", (author_id, book_id))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------- Helpers ------------------------- #
    @staticmethod
    def _author_entries(authors: Optional[Iterable[AuthorInput]], author: Optional[str]) -> List[Dict[str, Any]]:
        """Normalize either an explicit author list or a comma separated author string."""
        entries: List[Dict[str, Any]] = []
        if authors:
            for item in authors:
                entry = {"name": item} if isinstance(item, str) else dict(item)
                if entry.get("name") and str(entry["name"]).strip():
                    entry["name"] = str(entry["name"]).strip()
                    entries.append(entry)
        elif author:
            entries = [{"name": name.strip()} for name in re.split(r",\s*", author) if name.strip()]
        return entries

    @staticmethod
    def _link_authors(conn: sqlite3.Connection, book_id: int, entries: List[Dict[str, Any]]) -> None:
        linked = set()
        for index, entry in enumerate(entries):
            author_id = entry.get("id")
            if author_id:
                if not conn.execute("SELECT 1 FROM authors WHERE id = ?", (author_id,)).fetchone():
                    raise LookupError("Author not found")
            else:
                row = conn.execute("SELECT id FROM authors WHERE LOWER(name) = LOWER(?)", (entry["name"],)).fetchone()
                if row:
                    author_id = row["id"]
                else:
                    author_id = conn.execute("INSERT INTO authors (name) VALUES (?)", (entry["name"],)).lastrowid
            if author_id in linked:
                continue
            linked.add(author_id)
            conn.execute(
                "INSERT INTO author_books (author_id, book_id, is_primary) VALUES (?, ?, ?)",
                (author_id, book_id, 1 if index == 0 else 0),
            )

    @staticmethod
    def _book_from_row(conn: sqlite3.Connection, row: sqlite3.Row) -> Book:
        data = {key: row[key] for key in row.keys() if key != "is_primary"}
        authors = conn.execute(_BOOK_AUTHORS_SQL, (row["id"],)).fetchall()
        data["authors"] = [dict(a) for a in authors]
        return Book.from_dict(data)

    def _load_book(self, conn: sqlite3.Connection, book_id: int) -> Book:
        row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        return self._book_from_row(conn, row)
