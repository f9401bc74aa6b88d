import pytest

from library_app.client.validation import (
    BookForm,
    ChangePasswordForm,
    LoginForm,
    PASSWORD_RULE_MESSAGE,
    ReviewForm,
    SignupForm,
    is_valid_isbn,
    normalize_isbn,
    validate_form,
)


def test_valid_signup_has_no_errors():
    data = {"name": "Ada", "email": "ada@example.com", "password": "secret123", "confirm_password": "secret123"}
    assert validate_form(SignupForm, data) == {}


def test_empty_signup_reports_every_field():
    errors = validate_form(SignupForm, {})
    assert errors == {
        "name": "Name is required",
        "email": "Email is required",
        "password": "Password is required",
        "confirm_password": "Please confirm your password",
    }


@pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678", "with space1"])
def test_password_rule(password):
    errors = validate_form(SignupForm, {"name": "Ada", "email": "ada@example.com", "password": password,
                                        "confirm_password": password})
    assert errors["password"] == PASSWORD_RULE_MESSAGE


def test_password_mismatch():
    errors = validate_form(SignupForm, {"name": "Ada", "email": "ada@example.com", "password": "secret123",
                                        "confirm_password": "secret124"})
    assert errors == {"confirm_password": "Passwords do not match"}


@pytest.mark.parametrize("email", ["plain", "a@b", "a b@c.de", "@c.de"])
def test_bad_email(email):
    assert validate_form(LoginForm, {"email": email, "password": "x"}) == {
        "email": "Please enter a valid email address"}


def test_login_only_needs_a_password():
    assert validate_form(LoginForm, {"email": "a@b.co", "password": "x"}) == {}
    assert validate_form(LoginForm, {"email": "a@b.co"}) == {"password": "Password is required"}


def test_change_password_form():
    errors = validate_form(ChangePasswordForm, {"new_password": "secret123", "confirm_password": "secret123"})
    assert errors == {"current_password": "Current password is required"}


def test_review_form():
    assert validate_form(ReviewForm, {"username": "guest", "rating": 5, "comment": "Great"}) == {}
    errors = validate_form(ReviewForm, {"username": " ", "rating": 9, "comment": ""})
    assert errors == {
        "username": "Username is required",
        "rating": "Rating must be between 1 and 5",
        "comment": "Review comment is required",
    }
    assert validate_form(ReviewForm, {"username": "g", "comment": "c"}) == {"rating": "Please select a rating"}


def test_book_form():
    assert validate_form(BookForm, {"title": "Dune", "isbn": "978-0-441-01359-3"}) == {}
    errors = validate_form(BookForm, {"title": "", "isbn": "1234567890", "publishYear": 99999})
    assert set(errors) == {"title", "isbn", "publishYear"}


@pytest.mark.parametrize("isbn, valid", [
    ("0-306-40615-2", True),
    ("0306406152", True),
    ("0306406153", False),
    ("080442957X", True),
    ("9780306406157", True),
    ("9780306406158", False),
    ("12345", False),
    ("", False),
])
def test_isbn_checksums(isbn, valid):
    assert is_valid_isbn(isbn) is valid


def test_normalize_isbn():
    assert normalize_isbn(" 0-8044-2957-x ") == "080442957X"
    assert normalize_isbn(None) == ""
