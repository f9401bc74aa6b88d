"""Client-side services: one method per REST call, envelopes unwrapped into typed models."""
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from ..logging_config import get_logger
from .http_client import ApiClient, ApiError, get_api_client
from .navigation import app_navigate
from .schemas import (
    AuthorDetail,
    AuthorInfo,
    BookInfo,
    LoginResult,
    MessageResult,
    OpenLibraryBook,
    ResetRequestResult,
    ReviewInfo,
    SignupResult,
    UserDetail,
    UserInfo,
)

logger = get_logger(__name__)


def _compact(**fields: Any) -> Dict[str, Any]:
    """Drop unset fields so partial updates only send what changed."""
    return {k: v for k, v in fields.items() if v is not None}


def _author_detail(data: Dict[str, Any]) -> AuthorDetail:
    return AuthorDetail(**data["author"], books=data.get("books") or [])


class _Service:
    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self._client = client

    @property
    def client(self) -> ApiClient:
        return self._client or get_api_client()


# ------------------------- Auth ------------------------- #
class AuthService(_Service):
    def login(self, email: str, password: str) -> LoginResult:
        """Sign in and persist the token and user for later requests."""
        result = LoginResult(**self.client.post("/api/auth/login", {"email": email, "password": password}))
        self.client.store.save_session(result.token, result.user.model_dump())
        return result

    def signup(self, name: str, email: str, password: str) -> SignupResult:
        # Accounts must verify their email before the first login
        return SignupResult(**self.client.post("/api/auth/register",
                                               {"name": name, "email": email, "password": password}))

    def logout(self) -> None:
        try:
            self.client.post("/api/auth/logout")
        except ApiError as e:
            logger.warning("Logout request failed: %s", e)
        finally:
            self.client.store.clear_session()
            app_navigate("/")

    def request_password_reset(self, email: str) -> ResetRequestResult:
        return ResetRequestResult(**self.client.post("/api/auth/request-password-reset", {"email": email}))

    def reset_password(self, token: str, new_password: str) -> MessageResult:
        return MessageResult(**self.client.post("/api/auth/reset-password",
                                                {"token": token, "newPassword": new_password}))

    def change_password(self, current_password: str, new_password: str) -> MessageResult:
        return MessageResult(**self.client.post("/api/auth/change-password",
                                                {"currentPassword": current_password, "newPassword": new_password}))

    def verify_email(self, token: str) -> MessageResult:
        return MessageResult(**self.client.get(f"/api/auth/verify-email/{token}"))

    def resend_verification(self, email: str) -> MessageResult:
        return MessageResult(**self.client.post("/api/auth/resend-verification", {"email": email}))

    def update_profile(self, name: str) -> UserInfo:
        data = self.client.put("/api/auth/update-profile", {"name": name})
        user = UserInfo(**data["user"])
        self.client.store.set("user", user.model_dump())
        return user

    def delete_account(self, password: str) -> MessageResult:
        result = MessageResult(**self.client.delete("/api/auth/delete-account", {"password": password}))
        self.client.store.clear_session()
        return result

    def is_authenticated(self) -> bool:
        return bool(self.client.store.token)

    def get_current_user(self) -> Optional[UserInfo]:
        user = self.client.store.user
        return UserInfo(**user) if user else None


# ------------------------- Books ------------------------- #
class BookService(_Service):
    def get_all_books(self) -> List[BookInfo]:
        data = self.client.get("/api/books") or {}
        return [BookInfo(**b) for b in data.get("books") or []]

    def get_book_by_id(self, book_id: int) -> Optional[BookInfo]:
        try:
            return BookInfo(**self.client.get(f"/api/books/{book_id}")["book"])
        except ApiError as e:
            logger.error("Error fetching book %s: %s", book_id, e)
            return None

    def create_book(self, title: str, *, author: Optional[str] = None, authors: Optional[Sequence[Any]] = None,
                    isbn: Optional[str] = None, publishYear: Optional[int] = None, cover: Optional[str] = None,
                    description: Optional[str] = None, add_to_collection: bool = False) -> Optional[BookInfo]:
        payload = _compact(title=title, author=author, authors=self._author_refs(authors), isbn=isbn,
                           publishYear=publishYear, cover=cover, description=description)
        payload["addToCollection"] = add_to_collection
        try:
            return BookInfo(**self.client.post("/api/books", payload)["book"])
        except ApiError as e:
            logger.error("Error creating book: %s", e)
            return None

    def create_book_by_isbn(self, isbn: str, add_to_collection: bool = False) -> BookInfo:
        data = self.client.post("/api/books/isbn", {"isbn": isbn, "addToCollection": add_to_collection})
        return BookInfo(**data["book"])

    def update_book(self, book_id: int, title: str, *, author: Optional[str] = None,
                    authors: Optional[Sequence[Any]] = None, isbn: Optional[str] = None,
                    publishYear: Optional[int] = None, cover: Optional[str] = None,
                    description: Optional[str] = None) -> Optional[BookInfo]:
        payload = _compact(title=title, author=author, authors=self._author_refs(authors), isbn=isbn,
                           publishYear=publishYear, cover=cover, description=description)
        try:
            return BookInfo(**self.client.put(f"/api/books/{book_id}", payload)["book"])
        except ApiError as e:
            logger.error("Error updating book %s: %s", book_id, e)
            return None

    def delete_book(self, book_id: int) -> bool:
        try:
            self.client.delete(f"/api/books/{book_id}")
            return True
        except ApiError as e:
            logger.error("Error deleting book %s: %s", book_id, e)
            return False

    def search_books(self, query: str) -> List[BookInfo]:
        try:
            data = self.client.get("/api/books/search", params={"q": query}) or {}
        except ApiError as e:
            logger.error("Error searching books: %s", e)
            return []
        return [BookInfo(**b) for b in data.get("books") or []]

    # --- collection ---
    def get_user_collection(self) -> List[BookInfo]:
        try:
            data = self.client.get("/api/books/user/collection") or {}
        except ApiError as e:
            logger.error("Error fetching collection: %s", e)
            return []
        return [BookInfo(**b) for b in data.get("books") or []]

    def add_to_user_collection(self, book_id: int) -> bool:
        try:
            self.client.post("/api/books/user/collection", {"bookId": book_id})
            return True
        except ApiError as e:
            logger.error("Error adding book %s to collection: %s", book_id, e)
            return False

    def remove_from_user_collection(self, book_id: int) -> bool:
        try:
            self.client.delete(f"/api/books/user/collection/{book_id}")
            return True
        except ApiError as e:
            logger.error("Error removing book %s from collection: %s", book_id, e)
            return False

    def is_book_in_user_collection(self, book_id: int) -> bool:
        return any(book.id == book_id for book in self.get_user_collection())

    def check_book_exists(self, title: str, author: Optional[str] = None, isbn: Optional[str] = None) -> bool:
        """Whether the catalog already holds this book: same ISBN, else same title and author."""
        try:
            books = self.get_all_books()
        except ApiError as e:
            logger.error("Error checking for existing book: %s", e)
            return False

        if isbn and isbn.strip():
            wanted = isbn.strip()
            if any(b.isbn and b.isbn.strip() == wanted for b in books):
                return True

        title_key = (title or "").strip().lower()
        author_key = (author or "").strip().lower()
        primary_name = author_key.split(",")[0].strip()
        for book in books:
            if book.title.strip().lower() != title_key:
                continue
            if primary_name and any(a.name.lower() == primary_name for a in book.authors):
                return True
            if primary_name and primary_name in (book.author or "").lower():
                return True
            if (book.author or "").strip().lower() == author_key:
                return True
        return False

    # --- Open Library ---
    def search_open_library(self, query: str, search_type: str = "title") -> List[OpenLibraryBook]:
        """Search Open Library through the API. An empty list means nothing matched."""
        try:
            data = self.client.get("/api/books/search/openlibrary",
                                   params={"query": query, "type": search_type}) or {}
        except ApiError as e:
            if e.status_code == 404:
                return []
            raise
        if data.get("book"):
            return [OpenLibraryBook(**data["book"])]
        return [OpenLibraryBook(**b) for b in data.get("books") or []]

    def add_book_from_open_library(self, book: OpenLibraryBook,
                                   add_to_collection: bool = False) -> Optional[BookInfo]:
        names = [a.name for a in book.authors]
        payload = {
            "title": book.title,
            "author": ", ".join(names) if names else (book.author or ""),
            "authors": [{"name": n} for n in names] or self._author_refs(book.author),
            "isbn": book.isbn or "",
            "publishYear": book.publishYear or book.firstPublishYear,
            "cover": book.cover,
            "description": book.description,
            "addToCollection": add_to_collection,
        }
        try:
            return BookInfo(**self.client.post("/api/books", payload)["book"])
        except ApiError as e:
            logger.error("Error adding Open Library book %r: %s", book.title, e)
            return None

    @staticmethod
    def _author_refs(authors: Any) -> Optional[List[Dict[str, Any]]]:
        """Accept names, dicts or AuthorInfo models, or a comma separated string."""
        if authors is None:
            return None
        if isinstance(authors, str):
            return [{"name": n.strip()} for n in authors.split(",") if n.strip()]
        refs = []
        for a in authors:
            if isinstance(a, str):
                refs.append({"name": a})
            elif isinstance(a, AuthorInfo):
                refs.append(_compact(id=a.id, name=a.name))
            else:
                refs.append(dict(a))
        return refs


# ------------------------- Authors ------------------------- #
class AuthorService(_Service):
    def get_authors(self) -> List[AuthorInfo]:
        data = self.client.get("/api/authors") or {}
        return [AuthorInfo(**a) for a in data.get("authors") or []]

    def get_author_by_id(self, author_id: int) -> AuthorDetail:
        return _author_detail(self.client.get(f"/api/authors/id/{author_id}"))

    def get_author_by_name(self, name: str) -> AuthorDetail:
        return _author_detail(self.client.get(f"/api/authors/name/{quote(name, safe='')}"))

    def create_author(self, name: str, biography: Optional[str] = None, birth_date: Optional[str] = None,
                      photo_url: Optional[str] = None) -> AuthorInfo:
        data = self.client.post("/api/authors", _compact(name=name, biography=biography, birth_date=birth_date,
                                                         photo_url=photo_url))
        return AuthorInfo(**data["author"])

    def update_author(self, author_id: int, name: str, biography: Optional[str] = None,
                      birth_date: Optional[str] = None, photo_url: Optional[str] = None) -> AuthorInfo:
        data = self.client.put(f"/api/authors/{author_id}",
                               _compact(name=name, biography=biography, birth_date=birth_date, photo_url=photo_url))
        return AuthorInfo(**data["author"])

    def delete_author(self, author_id: int) -> MessageResult:
        return MessageResult(**self.client.delete(f"/api/authors/{author_id}"))

    def add_book_to_author(self, author_id: int, book_id: int, is_primary: bool = False) -> MessageResult:
        return MessageResult(**self.client.post("/api/authors/book",
                                                {"authorId": author_id, "bookId": book_id, "isPrimary": is_primary}))

    def remove_book_from_author(self, author_id: int, book_id: int) -> MessageResult:
        return MessageResult(**self.client.delete(f"/api/authors/{author_id}/book/{book_id}"))


# ------------------------- Reviews ------------------------- #
class ReviewService(_Service):
    def get_book_reviews(self, book_id: int) -> List[ReviewInfo]:
        return [ReviewInfo(**r) for r in self.client.get(f"/api/books/{book_id}/reviews") or []]

    def create_review(self, book_id: int, rating: int, comment: str, username: str) -> ReviewInfo:
        data = self.client.post(f"/api/books/{book_id}/reviews",
                                {"rating": rating, "comment": comment, "username": username})
        return ReviewInfo(**data)

    def update_review(self, review_id: int, rating: Optional[int] = None,
                      comment: Optional[str] = None) -> ReviewInfo:
        return ReviewInfo(**self.client.put(f"/api/reviews/{review_id}", _compact(rating=rating, comment=comment)))

    def delete_review(self, review_id: int) -> None:
        self.client.delete(f"/api/reviews/{review_id}")

    @staticmethod
    def remove_review(reviews: Sequence[ReviewInfo], review_id: int) -> List[ReviewInfo]:
        """A new list without the review with ``review_id``; order of the rest is kept."""
        return [r for r in reviews if r.id != review_id]


# ------------------------- Admin ------------------------- #
class AdminService(_Service):
    # --- users ---
    def get_all_users(self) -> List[UserInfo]:
        data = self.client.get("/api/admin/users") or {}
        return [UserInfo(**u) for u in data.get("users") or []]

    def get_user_by_id(self, user_id: int) -> UserDetail:
        return UserDetail(**self.client.get(f"/api/admin/users/{user_id}")["user"])

    def create_user(self, name: str, email: str, password: str, role: str = "USER",
                    email_verified: bool = True, send_verification_email: bool = False) -> UserInfo:
        data = self.client.post("/api/admin/users", {
            "name": name,
            "email": email,
            "password": password,
            "role": role,
            "email_verified": email_verified,
            "sendVerificationEmail": send_verification_email,
        })
        return UserInfo(**data["user"])

    def update_user(self, user_id: int, *, name: Optional[str] = None, email: Optional[str] = None,
                    role: Optional[str] = None, email_verified: Optional[bool] = None) -> UserInfo:
        data = self.client.put(f"/api/admin/users/{user_id}",
                               _compact(name=name, email=email, role=role, email_verified=email_verified))
        return UserInfo(**data["user"])

    def delete_user(self, user_id: int) -> MessageResult:
        return MessageResult(**self.client.delete(f"/api/admin/users/{user_id}"))

    def change_user_password(self, user_id: int, new_password: str) -> MessageResult:
        return MessageResult(**self.client.post(f"/api/admin/users/{user_id}/change-password",
                                                {"newPassword": new_password}))

    # --- books ---
    def get_all_books(self) -> List[BookInfo]:
        data = self.client.get("/api/admin/books") or {}
        return [BookInfo(**b) for b in data.get("books") or []]

    def get_book_by_id(self, book_id: int) -> BookInfo:
        return BookInfo(**self.client.get(f"/api/admin/books/{book_id}")["book"])

    def create_book(self, book: Dict[str, Any]) -> BookInfo:
        return BookInfo(**self.client.post("/api/admin/books", book)["book"])

    def create_book_by_isbn(self, isbn: str) -> BookInfo:
        return BookInfo(**self.client.post("/api/admin/books/isbn", {"isbn": isbn})["book"])

    def update_book(self, book_id: int, book: Dict[str, Any]) -> BookInfo:
        return BookInfo(**self.client.put(f"/api/admin/books/{book_id}", book)["book"])

    def delete_book(self, book_id: int) -> MessageResult:
        return MessageResult(**self.client.delete(f"/api/admin/books/{book_id}"))

    # --- authors ---
    def get_all_authors(self) -> List[AuthorInfo]:
        data = self.client.get("/api/admin/authors") or {}
        return [AuthorInfo(**a) for a in data.get("authors") or []]

    def get_author_by_id(self, author_id: int) -> AuthorDetail:
        return _author_detail(self.client.get(f"/api/admin/authors/{author_id}"))

    def create_author(self, author: Dict[str, Any]) -> AuthorInfo:
        return AuthorInfo(**self.client.post("/api/admin/authors", author)["author"])

    def update_author(self, author_id: int, author: Dict[str, Any]) -> AuthorInfo:
        return AuthorInfo(**self.client.put(f"/api/admin/authors/{author_id}", author)["author"])

    def delete_author(self, author_id: int) -> MessageResult:
        return MessageResult(**self.client.delete(f"/api/admin/authors/{author_id}"))

    # --- reviews ---
    def get_all_reviews(self) -> List[ReviewInfo]:
        return [ReviewInfo(**r) for r in self.client.get("/api/admin/reviews") or []]

    def get_book_reviews(self, book_id: int) -> List[ReviewInfo]:
        return [ReviewInfo(**r) for r in self.client.get(f"/api/admin/reviews/book/{book_id}") or []]

    def update_review(self, review_id: int, rating: Optional[int] = None,
                      comment: Optional[str] = None) -> ReviewInfo:
        return ReviewInfo(**self.client.put(f"/api/admin/reviews/{review_id}",
                                            _compact(rating=rating, comment=comment)))

    def delete_review(self, review_id: int) -> None:
        self.client.delete(f"/api/admin/reviews/{review_id}")
