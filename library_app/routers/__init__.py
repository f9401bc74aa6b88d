from . import admin, auth, authors, books, reviews

__all__ = ["admin", "auth", "authors", "books", "reviews"]
