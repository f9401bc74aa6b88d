from __future__ import annotations


class Author:
    """An author record, optionally carrying its link data for a given book."""

    def __init__(self, name: str, id: int | None = None, biography: str | None = None,
                 birth_date: str | None = None, photo_url: str | None = None,
                 createdAt: str | None = None, updatedAt: str | None = None,
                 is_primary: bool | None = None, book_count: int | None = None) -> None:
        self.id = id
        self.name = name.strip()
        self.biography = biography
        self.birth_date = birth_date
        self.photo_url = photo_url
        self.createdAt = createdAt
        self.updatedAt = updatedAt
        # Only set when loaded through author_books / aggregated queries
        self.is_primary = is_primary
        self.book_count = book_count

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.name

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "biography": self.biography,
            "birth_date": self.birth_date,
            "photo_url": self.photo_url,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }
        if self.is_primary is not None:
            data["is_primary"] = self.is_primary
        if self.book_count is not None:
            data["book_count"] = self.book_count
        return data

    @staticmethod
    def from_dict(data: dict) -> "Author":
        is_primary = data.get("is_primary")
        return Author(
            id=data.get("id"),
            name=data["name"],
            biography=data.get("biography"),
            birth_date=data.get("birth_date"),
            photo_url=data.get("photo_url"),
            createdAt=data.get("createdAt"),
            updatedAt=data.get("updatedAt"),
            is_primary=bool(is_primary) if is_primary is not None else None,
            book_count=data.get("book_count"),
        )


class Book:
    """A single book in the catalog."""

    def __init__(self, title: str, id: int | None = None, isbn: str | None = None,
                 publishYear: int | None = None, author: str | None = None,
                 cover: str | None = None, description: str | None = None,
                 createdAt: str | None = None, updatedAt: str | None = None,
                 authors: list[Author] | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.isbn = isbn.strip() if isbn else None
        self.publishYear = publishYear
        # Comma-joined author names, kept alongside the author links
        self.author = author
        self.cover = cover
        self.description = description
        self.createdAt = createdAt
        self.updatedAt = updatedAt
        self.authors = authors or []

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author or 'Unknown Author'} (ISBN: {self.isbn or '-'})"

    @property
    def primary_author(self) -> Author | None:
        for author in self.authors:
            if author.is_primary:
                return author
        return self.authors[0] if self.authors else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "isbn": self.isbn,
            "publishYear": self.publishYear,
            "author": self.author,
            "cover": self.cover,
            "description": self.description,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
            "authors": [a.to_dict() for a in self.authors],
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            isbn=data.get("isbn"),
            publishYear=data.get("publishYear"),
            author=data.get("author"),
            cover=data.get("cover"),
            description=data.get("description"),
            createdAt=data.get("createdAt"),
            updatedAt=data.get("updatedAt"),
            authors=[Author.from_dict(a) for a in data.get("authors") or []],
        )
