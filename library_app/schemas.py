"""Request bodies accepted by the REST API.

Fields are optional so handlers can answer missing input with the
API's own 400 messages rather than a generic validation error.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


# --- Auth ---
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EmailRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    newPassword: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None


class DeleteAccountRequest(BaseModel):
    password: Optional[str] = None


# --- Books & authors ---
class AuthorRef(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None


class BookRequest(BaseModel):
    title: Optional[str] = None
    isbn: Optional[str] = None
    publishYear: Optional[int] = None
    author: Optional[str] = None
    authors: Optional[List[AuthorRef]] = None
    cover: Optional[str] = None
    description: Optional[str] = None
    addToCollection: bool = False


class IsbnRequest(BaseModel):
    isbn: Optional[str] = None
    addToCollection: bool = False


class CollectionRequest(BaseModel):
    bookId: Optional[int] = None


class AuthorRequest(BaseModel):
    name: Optional[str] = None
    biography: Optional[str] = None
    birth_date: Optional[str] = None
    photo_url: Optional[str] = None


class AuthorBookRequest(BaseModel):
    authorId: Optional[int] = None
    bookId: Optional[int] = None
    isPrimary: bool = False


# --- Reviews ---
class ReviewCreateRequest(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None
    username: Optional[str] = None


class ReviewUpdateRequest(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


# --- Admin ---
class AdminUserCreateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    email_verified: bool = True
    sendVerificationEmail: bool = False


class AdminUserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    email_verified: Optional[bool] = None


class AdminPasswordRequest(BaseModel):
    newPassword: Optional[str] = Field(default=None, description="Replaces the user's password")
