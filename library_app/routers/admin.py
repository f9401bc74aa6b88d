"""Administration area. Every route requires an admin token."""
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..accounts import AccountManager
from ..deps import get_accounts, get_email_service, get_library, get_rate_limiter, get_reviews
from ..email_service import EmailService
from ..library import Library
from ..logging_config import get_logger
from ..openlibrary import RateLimiter
from ..reviews import ReviewBoard
from ..schemas import (
    AdminPasswordRequest,
    AdminUserCreateRequest,
    AdminUserUpdateRequest,
    AuthorRequest,
    BookRequest,
    IsbnRequest,
    ReviewUpdateRequest,
)
from . import authors as author_routes
from . import books as book_routes
from .reviews import update_review

logger = get_logger(__name__)

# require_admin is attached at include time
router = APIRouter()


# ------------------------- Users ------------------------- #
@router.get("/users")
def list_users(accounts: AccountManager = Depends(get_accounts)):
    return {"users": [u.to_dict() for u in accounts.list_users()]}


@router.get("/users/{user_id}")
def get_user(user_id: int, accounts: AccountManager = Depends(get_accounts),
             library: Library = Depends(get_library)):
    """A user together with their collection, ordered by title."""
    user = accounts.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    books = sorted(library.get_user_collection(user.id), key=lambda b: (b.title or "").lower())
    return {"user": {**user.to_dict(), "books": [b.to_dict() for b in books]}}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(payload: AdminUserCreateRequest, accounts: AccountManager = Depends(get_accounts),
                email_service: EmailService = Depends(get_email_service)):
    if not payload.name or not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide name, email, and password")
    try:
        user = accounts.register(payload.name, payload.email, payload.password, role=payload.role,
                                 email_verified=payload.email_verified)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    message = "User created successfully"
    if payload.sendVerificationEmail and not user.email_verified:
        email_service.send_verification_email(user.email, user.verification_token)
        message = "User created successfully. Verification email sent."
    logger.info("Admin created user %s", user.id)
    return {"message": message, "user": user.to_dict()}


@router.put("/users/{user_id}")
def update_user(user_id: int, payload: AdminUserUpdateRequest, accounts: AccountManager = Depends(get_accounts)):
    try:
        user = accounts.update_user(user_id, name=payload.name, email=payload.email, role=payload.role,
                                    email_verified=payload.email_verified)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User updated successfully", "user": user.to_dict()}


@router.delete("/users/{user_id}")
def delete_user(user_id: int, accounts: AccountManager = Depends(get_accounts)):
    if not accounts.delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User deleted successfully"}


@router.post("/users/{user_id}/change-password")
def change_user_password(user_id: int, payload: AdminPasswordRequest,
                         accounts: AccountManager = Depends(get_accounts)):
    if not payload.newPassword:
        raise HTTPException(status_code=400, detail="New password is required")
    if not accounts.set_password(user_id, payload.newPassword):
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User password changed successfully"}


# ------------------------- Books ------------------------- #
@router.get("/books")
def list_books(library: Library = Depends(get_library)):
    return {"books": [b.to_dict() for b in library.list_books()]}


@router.get("/books/{book_id}")
def get_book(book_id: int, library: Library = Depends(get_library)):
    return book_routes.get_book(library, book_id)


@router.post("/books", status_code=status.HTTP_201_CREATED)
def create_book(payload: BookRequest, response: Response, library: Library = Depends(get_library)):
    return book_routes.create_book(library, payload, None, response)


@router.post("/books/isbn", status_code=status.HTTP_201_CREATED)
def create_book_from_isbn(payload: IsbnRequest, response: Response, library: Library = Depends(get_library),
                          limiter: RateLimiter = Depends(get_rate_limiter)):
    return book_routes.create_book_by_isbn(library, limiter, payload, None, response)


@router.put("/books/{book_id}")
def update_book(book_id: int, payload: BookRequest, library: Library = Depends(get_library)):
    return book_routes.update_book(library, book_id, payload)


@router.delete("/books/{book_id}")
def delete_book(book_id: int, library: Library = Depends(get_library)):
    return book_routes.delete_book(library, book_id)


# ------------------------- Authors ------------------------- #
@router.get("/authors")
def list_authors(library: Library = Depends(get_library)):
    return {"authors": [a.to_dict() for a in library.list_authors()]}


@router.get("/authors/{author_id}")
def get_author(author_id: int, library: Library = Depends(get_library)):
    return author_routes.author_with_books(library, author_id)


@router.post("/authors", status_code=status.HTTP_201_CREATED)
def create_author(payload: AuthorRequest, library: Library = Depends(get_library)):
    return author_routes.create_author(library, payload)


@router.put("/authors/{author_id}")
def update_author(author_id: int, payload: AuthorRequest, library: Library = Depends(get_library)):
    return author_routes.update_author(library, author_id, payload)


@router.delete("/authors/{author_id}")
def delete_author(author_id: int, library: Library = Depends(get_library)):
    return author_routes.delete_author(library, author_id)


# ------------------------- Reviews ------------------------- #
@router.get("/reviews")
def list_reviews(reviews: ReviewBoard = Depends(get_reviews)):
    return [r.to_dict() for r in reviews.list_all()]


@router.get("/reviews/book/{book_id}")
def list_book_reviews(book_id: int, reviews: ReviewBoard = Depends(get_reviews)):
    return [r.to_dict() for r in reviews.list_for_book(book_id)]


@router.put("/reviews/{review_id}")
def update_any_review(review_id: int, payload: ReviewUpdateRequest, reviews: ReviewBoard = Depends(get_reviews)):
    return update_review(reviews, review_id, payload)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_any_review(review_id: int, reviews: ReviewBoard = Depends(get_reviews)):
    if not reviews.delete(review_id):
        raise HTTPException(status_code=404, detail="Review not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
