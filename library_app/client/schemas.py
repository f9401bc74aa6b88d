"""Typed response shapes returned by the client services."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    # Servers may add fields; keep them rather than failing
    model_config = ConfigDict(extra="allow")


class UserInfo(ApiModel):
    id: Optional[int] = None
    name: str
    email: str
    role: str = "USER"
    email_verified: bool = False
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


class AuthorInfo(ApiModel):
    id: Optional[int] = None
    name: str
    biography: Optional[str] = None
    birth_date: Optional[str] = None
    photo_url: Optional[str] = None
    is_primary: Optional[bool] = None
    book_count: Optional[int] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class BookInfo(ApiModel):
    id: Optional[int] = None
    title: str
    author: Optional[str] = None
    authors: List[AuthorInfo] = Field(default_factory=list)
    isbn: Optional[str] = None
    publishYear: Optional[int] = None
    cover: Optional[str] = None
    description: Optional[str] = None
    is_primary: Optional[bool] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @property
    def primary_author(self) -> Optional[AuthorInfo]:
        for author in self.authors:
            if author.is_primary:
                return author
        return self.authors[0] if self.authors else None


class AuthorDetail(AuthorInfo):
    """An author merged with the books linked to them."""
    books: List[BookInfo] = Field(default_factory=list)


class UserDetail(UserInfo):
    books: List[BookInfo] = Field(default_factory=list)


class ReviewInfo(ApiModel):
    id: Optional[int] = None
    bookId: int
    userId: Optional[int] = None
    username: str
    rating: int
    comment: str
    user_name: Optional[str] = None
    book_title: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class LoginResult(ApiModel):
    message: Optional[str] = None
    user: UserInfo
    token: str


class SignupResult(ApiModel):
    message: str
    userId: Optional[int] = None


class MessageResult(ApiModel):
    message: str = ""


class ResetRequestResult(MessageResult):
    resetToken: Optional[str] = None


class OpenLibraryAuthor(ApiModel):
    name: str
    url: Optional[str] = None


class OpenLibraryBook(ApiModel):
    """One hit from an Open Library search."""
    title: str
    author: Optional[str] = None
    authors: List[OpenLibraryAuthor] = Field(default_factory=list)
    isbn: Optional[str] = None
    publishYear: Optional[int] = None
    firstPublishYear: Optional[int] = None
    cover: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
