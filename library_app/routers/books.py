"""Book catalog, search and personal collection endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..deps import enforce_rate_limit, get_current_user, get_library, get_rate_limiter
from ..library import ExternalServiceError, Library
from ..logging_config import get_logger
from ..openlibrary import RateLimiter
from ..schemas import BookRequest, CollectionRequest, IsbnRequest
from ..user import User

logger = get_logger(__name__)

router = APIRouter()


# --- Shared with the admin area ---
def _author_list(payload: BookRequest) -> Optional[list]:
    if payload.authors is None:
        return None
    return [a.model_dump(exclude_none=True) for a in payload.authors]


def create_book(library: Library, payload: BookRequest, user: Optional[User], response: Response) -> dict:
    """Create a book, or hand back the catalogued copy when the ISBN is already known."""
    if not payload.title or not payload.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    existing = library.find_book_by_isbn(payload.isbn) if payload.isbn else None
    if existing:
        response.status_code = status.HTTP_200_OK
        if user:
            library.add_to_collection(user.id, existing.id)
            return {"message": "Book already exists and has been added to your collection",
                    "book": existing.to_dict()}
        return {"message": "Book already exists", "book": existing.to_dict()}

    try:
        book = library.create_book(
            payload.title,
            isbn=payload.isbn,
            publishYear=payload.publishYear,
            author=payload.author,
            cover=payload.cover,
            description=payload.description,
            authors=_author_list(payload),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    response.status_code = status.HTTP_201_CREATED
    if payload.addToCollection and user:
        library.add_to_collection(user.id, book.id)
        return {"message": "Book created successfully and added to your collection", "book": book.to_dict()}
    return {"message": "Book created successfully", "book": book.to_dict()}


def create_book_by_isbn(library: Library, limiter: RateLimiter, payload: IsbnRequest,
                        user: Optional[User], response: Response) -> dict:
    """Catalog a book from its Open Library record."""
    if not payload.isbn:
        raise HTTPException(status_code=400, detail="ISBN is required")
    enforce_rate_limit(limiter)

    existing = library.find_book_by_isbn(payload.isbn)
    if existing:
        if payload.addToCollection and user:
            library.add_to_collection(user.id, existing.id)
            response.status_code = status.HTTP_200_OK
            return {"message": "Book already exists and was added to your collection", "book": existing.to_dict()}
        raise HTTPException(status_code=400, detail="Book with this ISBN already exists in the catalog")

    try:
        book = library.create_book_from_openlibrary(payload.isbn.strip())
    except ExternalServiceError as e:
        logger.error("Open Library lookup for %s failed: %s", payload.isbn, e)
        raise HTTPException(status_code=502, detail="Could not reach Open Library")
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found with this ISBN")

    response.status_code = status.HTTP_201_CREATED
    if payload.addToCollection and user:
        library.add_to_collection(user.id, book.id)
        return {"message": "Book created successfully from ISBN and added to your collection",
                "book": book.to_dict()}
    return {"message": "Book created successfully from ISBN", "book": book.to_dict()}


def update_book(library: Library, book_id: int, payload: BookRequest) -> dict:
    if not payload.title or not payload.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        book = library.update_book(
            book_id,
            payload.title,
            isbn=payload.isbn,
            publishYear=payload.publishYear,
            author=payload.author,
            cover=payload.cover,
            description=payload.description,
            authors=_author_list(payload),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return {"message": "Book updated successfully", "book": book.to_dict()}


def delete_book(library: Library, book_id: int) -> dict:
    if not library.delete_book(book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    return {"message": "Book deleted successfully"}


def get_book(library: Library, book_id: int) -> dict:
    book = library.get_book(book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return {"book": book.to_dict()}


# --- Catalog ---
@router.get("")
def list_books(library: Library = Depends(get_library)):
    """All books, each with its authors (primary first)."""
    return {"books": [b.to_dict() for b in library.list_books()]}


@router.get("/search")
def search_books(q: Optional[str] = Query(None, description="Search query"),
                 library: Library = Depends(get_library)):
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")
    return {"books": [b.to_dict() for b in library.search_books(q)]}


@router.get("/search/openlibrary")
def search_openlibrary(
    query: Optional[str] = Query(None, description="Search text"),
    type: Optional[str] = Query("title", description="isbn | title | author"),
    library: Library = Depends(get_library),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Search Open Library without cataloguing anything."""
    if not query:
        raise HTTPException(status_code=400, detail="Search query is required")
    enforce_rate_limit(limiter)
    search_type = (type or "title").lower()
    try:
        result = library.openlibrary.search(query, search_type)
    except ExternalServiceError as e:
        logger.error("Open Library search failed: %s", e)
        raise HTTPException(status_code=502, detail="Could not reach Open Library")
    if result is None:
        messages = {
            "isbn": "Book not found with this ISBN",
            "author": "No books found for this author",
        }
        raise HTTPException(status_code=404, detail=messages.get(search_type, "No books found matching the query"))
    return result


# --- Personal collection ---
@router.get("/user/collection")
def get_user_collection(user: User = Depends(get_current_user), library: Library = Depends(get_library)):
    return {"books": [b.to_dict() for b in library.get_user_collection(user.id)]}


@router.post("/user/collection", status_code=status.HTTP_201_CREATED)
def add_to_user_collection(payload: CollectionRequest, user: User = Depends(get_current_user),
                           library: Library = Depends(get_library)):
    if not payload.bookId:
        raise HTTPException(status_code=400, detail="Book ID is required")
    if not library.get_book(payload.bookId):
        raise HTTPException(status_code=404, detail="Book not found")
    library.add_to_collection(user.id, payload.bookId)
    return {"message": "Book added to your collection successfully"}


@router.delete("/user/collection/{book_id}")
def remove_from_user_collection(book_id: int, user: User = Depends(get_current_user),
                                library: Library = Depends(get_library)):
    if not library.remove_from_collection(user.id, book_id):
        raise HTTPException(status_code=404, detail="Book not found in your collection")
    return {"message": "Book removed from your collection successfully"}


# --- Single book ---
@router.get("/{book_id}")
def get_book_by_id(book_id: int, library: Library = Depends(get_library)):
    return get_book(library, book_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_book_manually(payload: BookRequest, response: Response, user: User = Depends(get_current_user),
                         library: Library = Depends(get_library)):
    return create_book(library, payload, user, response)


@router.post("/isbn", status_code=status.HTTP_201_CREATED)
def create_book_from_isbn(payload: IsbnRequest, response: Response, user: User = Depends(get_current_user),
                          library: Library = Depends(get_library),
                          limiter: RateLimiter = Depends(get_rate_limiter)):
    return create_book_by_isbn(library, limiter, payload, user, response)


@router.put("/{book_id}")
def update_book_by_id(book_id: int, payload: BookRequest, user: User = Depends(get_current_user),
                      library: Library = Depends(get_library)):
    return update_book(library, book_id, payload)


@router.delete("/{book_id}")
def delete_book_by_id(book_id: int, user: User = Depends(get_current_user), library: Library = Depends(get_library)):
    return delete_book(library, book_id)
