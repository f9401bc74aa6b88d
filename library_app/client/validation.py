"""Form validation for the frontend.

Each form is a pydantic model whose validators carry the messages shown
next to the fields. ``validate_form`` turns a validation failure into a
``{field: message}`` dict, empty when the form is valid.
"""
import re
from datetime import date
from typing import Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d]{8,}$")
PASSWORD_RULE_MESSAGE = "Password must be at least 8 characters with at least one letter and one number"


# ------------------------- ISBN ------------------------- #
def normalize_isbn(raw: Optional[str]) -> str:
    if raw is None:
        return ""
    return re.sub(r"[^0-9Xx]", "", raw).upper()


def is_valid_isbn(isbn: Optional[str]) -> bool:
    """ISBN-10 or ISBN-13 with a correct check digit. Hyphens and spaces are ignored."""
    s = normalize_isbn(isbn)
    if len(s) == 10:
        if not s[:-1].isdigit():
            return False
        total = sum(i * int(ch) for i, ch in enumerate(s[:-1], 1))
        check = s[-1]
        if check == "X":
            check_val = 10
        elif check.isdigit():
            check_val = int(check)
        else:
            return False
        # sum(i * d_i) over all ten digits is divisible by 11
        return (total + 10 * check_val) % 11 == 0
    if len(s) == 13 and s.isdigit():
        total = sum((1 if i % 2 == 0 else 3) * int(ch) for i, ch in enumerate(s[:-1]))
        return (10 - total % 10) % 10 == int(s[-1])
    return False


# ------------------------- Shared checks ------------------------- #
def _required(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(message)
    return value.strip()


def _email(value: Optional[str]) -> str:
    value = _required(value, "Email is required")
    if not EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def _new_password(value: Optional[str]) -> str:
    if not value:
        raise ValueError("Password is required")
    if not PASSWORD_RE.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


def _confirmation(value: Optional[str], info: ValidationInfo, against: str) -> str:
    if not value:
        raise ValueError("Please confirm your password")
    # Only compare once the password itself passed validation
    if against in info.data and value != info.data[against]:
        raise ValueError("Passwords do not match")
    return value


class FormModel(BaseModel):
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=False)


# ------------------------- Forms ------------------------- #
class LoginForm(FormModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class SignupForm(FormModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _required(v, "Name is required")

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _new_password(v)

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, v, info: ValidationInfo):
        return _confirmation(v, info, "password")


class ForgotPasswordForm(FormModel):
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return _email(v)


class ResetPasswordForm(FormModel):
    password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _new_password(v)

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, v, info: ValidationInfo):
        return _confirmation(v, info, "password")


class ChangePasswordForm(FormModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator("current_password")
    @classmethod
    def check_current(cls, v):
        if not v:
            raise ValueError("Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def check_new(cls, v):
        return _new_password(v)

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, v, info: ValidationInfo):
        return _confirmation(v, info, "new_password")


class ReviewForm(FormModel):
    username: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return _required(v, "Username is required")

    @field_validator("rating")
    @classmethod
    def check_rating(cls, v):
        if v is None:
            raise ValueError("Please select a rating")
        if not 1 <= v <= 5:
            raise ValueError("Rating must be between 1 and 5")
        return v

    @field_validator("comment")
    @classmethod
    def check_comment(cls, v):
        return _required(v, "Review comment is required")


class BookForm(FormModel):
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    publishYear: Optional[int] = None
    cover: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v):
        return _required(v, "Title is required")

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v):
        if v and v.strip() and not is_valid_isbn(v):
            raise ValueError("Please enter a valid ISBN-10 or ISBN-13")
        return v

    @field_validator("publishYear")
    @classmethod
    def check_year(cls, v):
        if v is not None and not 0 < v <= date.today().year + 1:
            raise ValueError("Please enter a valid publish year")
        return v


class AuthorForm(FormModel):
    name: Optional[str] = None
    biography: Optional[str] = None
    birth_date: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _required(v, "Author name is required")


# ------------------------- Entry point ------------------------- #
def validate_form(form: Type[FormModel], data: Dict) -> Dict[str, str]:
    """Validate ``data`` against ``form`` and return the first message per field."""
    try:
        form.model_validate(data)
    except ValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "form"
            if err["type"] == "value_error" and "error" in err.get("ctx", {}):
                message = str(err["ctx"]["error"])
            else:
                message = err["msg"]
            errors.setdefault(field, message)
        return errors
    return {}
