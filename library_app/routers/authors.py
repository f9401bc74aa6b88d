"""Author endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..deps import enforce_rate_limit, get_current_user, get_library, get_rate_limiter
from ..library import ExternalServiceError, Library
from ..logging_config import get_logger
from ..openlibrary import RateLimiter
from ..schemas import AuthorBookRequest, AuthorRequest
from ..user import User

logger = get_logger(__name__)

router = APIRouter()


# --- Shared with the admin area ---
def author_with_books(library: Library, author_id: int) -> dict:
    author = library.get_author(author_id)
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    return {"author": author.to_dict(), "books": library.get_author_books(author.id)}


def create_author(library: Library, payload: AuthorRequest) -> dict:
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Author name is required")
    existing = library.find_author_by_name(payload.name)
    if existing:
        raise HTTPException(status_code=409, detail={"message": "Author already exists",
                                                     "author": existing.to_dict()})
    author = library.create_author(payload.name, payload.biography, payload.birth_date, payload.photo_url)
    return {"message": "Author created successfully", "author": author.to_dict()}


def update_author(library: Library, author_id: int, payload: AuthorRequest) -> dict:
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Author name is required")
    try:
        author = library.update_author(author_id, payload.name, payload.biography, payload.birth_date,
                                       payload.photo_url)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return {"message": "Author updated successfully", "author": author.to_dict()}


def delete_author(library: Library, author_id: int) -> dict:
    if not library.delete_author(author_id):
        raise HTTPException(status_code=404, detail="Author not found")
    return {"message": "Author deleted successfully"}


# --- Public ---
@router.get("")
def list_authors(library: Library = Depends(get_library)):
    return {"authors": [a.to_dict() for a in library.list_authors()]}


@router.get("/id/{author_id}")
def get_author_by_id(author_id: int, library: Library = Depends(get_library)):
    return author_with_books(library, author_id)


@router.get("/name/{name:path}")
def get_author_by_name(name: str, library: Library = Depends(get_library)):
    author = library.find_author_by_name(name)
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    return {"author": author.to_dict(), "books": library.get_author_books(author.id)}


@router.get("/info")
def get_author_info(authorName: Optional[str] = Query(None, description="Author to look up on Open Library"),
                    library: Library = Depends(get_library),
                    limiter: RateLimiter = Depends(get_rate_limiter)):
    if not authorName:
        raise HTTPException(status_code=400, detail="Author name is required")
    enforce_rate_limit(limiter)
    try:
        info = library.openlibrary.author_info(authorName)
    except ExternalServiceError as e:
        logger.error("Open Library author lookup failed: %s", e)
        raise HTTPException(status_code=502, detail="Could not reach Open Library")
    if info is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return info


# --- Authenticated ---
@router.post("", status_code=status.HTTP_201_CREATED)
def create_author_endpoint(payload: AuthorRequest, user: User = Depends(get_current_user),
                           library: Library = Depends(get_library)):
    return create_author(library, payload)


@router.put("/{author_id}")
def update_author_endpoint(author_id: int, payload: AuthorRequest, user: User = Depends(get_current_user),
                           library: Library = Depends(get_library)):
    return update_author(library, author_id, payload)


@router.delete("/{author_id}")
def delete_author_endpoint(author_id: int, user: User = Depends(get_current_user),
                           library: Library = Depends(get_library)):
    return delete_author(library, author_id)


@router.post("/book", status_code=status.HTTP_201_CREATED)
def add_book_to_author(payload: AuthorBookRequest, response: Response, user: User = Depends(get_current_user),
                       library: Library = Depends(get_library)):
    if not payload.authorId or not payload.bookId:
        raise HTTPException(status_code=400, detail="Author ID and Book ID are required")
    try:
        created = library.link_author_to_book(payload.authorId, payload.bookId, payload.isPrimary)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not created:
        response.status_code = status.HTTP_200_OK
        return {"message": "Author-book association updated"}
    return {"message": "Author associated with book successfully"}


@router.delete("/{author_id}/book/{book_id}")
def remove_book_from_author(author_id: int, book_id: int, user: User = Depends(get_current_user),
                            library: Library = Depends(get_library)):
    if not library.unlink_author_from_book(author_id, book_id):
        raise HTTPException(status_code=404, detail="Association not found")
    return {"message": "Association removed successfully"}
