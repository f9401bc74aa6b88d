"""Command line frontend for the library API."""
import subprocess
import sys
from functools import wraps
from typing import Optional

import typer
from rich.console import Console

from .client import (
    AdminService,
    ApiClient,
    ApiError,
    AuthorService,
    AuthService,
    AuthStore,
    BookService,
    ReviewService,
    admin_guard,
    register_navigate,
)
from .client.http_client import set_api_client
from .client.schemas import OpenLibraryBook
from .client.validation import (
    AuthorForm,
    BookForm,
    ChangePasswordForm,
    LoginForm,
    ResetPasswordForm,
    ReviewForm,
    SignupForm,
    validate_form,
)
from .config import settings
from .logging_config import get_logger, setup_logging
from .ui_helpers import (
    print_author_detail,
    print_authors,
    print_book_detail,
    print_books,
    print_error,
    print_form_errors,
    print_message,
    print_open_library_results,
    print_reviews,
    print_users,
    set_output_mode,
)

logger = get_logger(__name__)

console = Console()

app = typer.Typer(help="Library CLI")
books_app = typer.Typer(help="Browse and manage the catalog")
authors_app = typer.Typer(help="Browse and manage authors")
reviews_app = typer.Typer(help="Read and write book reviews")
admin_app = typer.Typer(help="Administration (ADMIN accounts only)")
app.add_typer(books_app, name="books")
app.add_typer(authors_app, name="authors")
app.add_typer(reviews_app, name="reviews")
app.add_typer(admin_app, name="admin")


def _navigate(path: str) -> None:
    if path == "/login":
        console.print("[yellow]Please log in first: library-cli login <email>[/]")
    else:
        logger.debug("Navigation to %s ignored by the CLI", path)



def handle_api_errors(func):
    """Print API failures in red and exit with status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ApiError as e:
            print_error(e.message)
            raise typer.Exit(code=1)
    return wrapper


def _check_form(form, data: dict) -> None:
    errors = validate_form(form, data)
    if errors:
        print_form_errors(errors)
        raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output format: plain | json | rich"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="API base URL (default: LIBRARY_API_URL)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Global options for the CLI."""
    setup_logging("DEBUG" if verbose else "WARNING")
    register_navigate(_navigate)
    if output:
        set_output_mode(output)
    if api_url:
        set_api_client(ApiClient(base_url=api_url))


# ------------------------- Account ------------------------- #
@app.command("login")
@handle_api_errors
def cli_login(email: str, password: str = typer.Option(..., prompt=True, hide_input=True)):
    """Log in and remember the session."""
    _check_form(LoginForm, {"email": email, "password": password})
    store = AuthStore()
    if not store.login(email, password):
        print_error(store.state.error)
        if store.state.verification_required:
            console.print("[yellow]Verify your email first, or run: library-cli resend-verification <email>[/]")
        raise typer.Exit(code=1)
    print_message(f"Logged in as {store.state.user.name}")


@app.command("logout")
def cli_logout():
    AuthStore().logout()
    print_message("Logged out")


@app.command("signup")
@handle_api_errors
def cli_signup(name: str, email: str,
               password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True)):
    """Create an account. A verification link is sent by email."""
    _check_form(SignupForm, {"name": name, "email": email, "password": password, "confirm_password": password})
    result = AuthService().signup(name, email, password)
    print_message(result.message)


@app.command("verify-email")
@handle_api_errors
def cli_verify_email(token: str):
    print_message(AuthService().verify_email(token).message)


@app.command("resend-verification")
@handle_api_errors
def cli_resend_verification(email: str):
    print_message(AuthService().resend_verification(email).message)


@app.command("forgot-password")
@handle_api_errors
def cli_forgot_password(email: str):
    result = AuthService().request_password_reset(email)
    print_message(result.message)
    if result.resetToken:
        console.print(f"[dim]Reset token: {result.resetToken}[/]")


@app.command("reset-password")
@handle_api_errors
def cli_reset_password(token: str,
                       password: str = typer.Option(..., prompt="New password", hide_input=True,
                                                    confirmation_prompt=True)):
    _check_form(ResetPasswordForm, {"password": password, "confirm_password": password})
    print_message(AuthService().reset_password(token, password).message)


@app.command("change-password")
@handle_api_errors
def cli_change_password(
    current: str = typer.Option(..., "--current", prompt="Current password", hide_input=True),
    new: str = typer.Option(..., "--new", prompt="New password", hide_input=True, confirmation_prompt=True),
):
    _check_form(ChangePasswordForm, {"current_password": current, "new_password": new, "confirm_password": new})
    print_message(AuthService().change_password(current, new).message)


@app.command("whoami")
def cli_whoami():
    user = AuthService().get_current_user()
    if not user:
        print_message("Not logged in")
        return
    print_message(f"{user.name} <{user.email}> [{user.role}]")


@app.command("profile")
@handle_api_errors
def cli_update_profile(name: str):
    """Change the display name of the logged-in account."""
    user = AuthService().update_profile(name)
    print_message(f"Profile updated: {user.name}")


@app.command("delete-account")
@handle_api_errors
def cli_delete_account(password: str = typer.Option(..., prompt=True, hide_input=True),
                       yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    if not yes and not typer.confirm("Delete your account permanently?"):
        raise typer.Abort()
    print_message(AuthService().delete_account(password).message)


# ------------------------- Books ------------------------- #
@books_app.command("list")
@handle_api_errors
def books_list():
    print_books(BookService().get_all_books())


@books_app.command("show")
def books_show(book_id: int):
    book = BookService().get_book_by_id(book_id)
    if not book:
        print_error(f"Book {book_id} not found")
        raise typer.Exit(code=1)
    print_book_detail(book)


@books_app.command("search")
def books_search(query: str):
    print_books(BookService().search_books(query), empty="No books match your search.")


@books_app.command("add")
def books_add(
    title: str,
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Comma separated author names"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    year: Optional[int] = typer.Option(None, "--year"),
    cover: Optional[str] = typer.Option(None, "--cover"),
    description: Optional[str] = typer.Option(None, "--description"),
    collect: bool = typer.Option(False, "--collect", help="Also add to my collection"),
):
    """Add a book by hand."""
    _check_form(BookForm, {"title": title, "author": author, "isbn": isbn, "publishYear": year})
    service = BookService()
    if service.check_book_exists(title, author, isbn):
        console.print("[yellow]A matching book is already in the catalog.[/]")
    book = service.create_book(title, author=author, authors=author, isbn=isbn, publishYear=year, cover=cover,
                               description=description, add_to_collection=collect)
    if not book:
        print_error("Could not add the book")
        raise typer.Exit(code=1)
    print_message(f"Added: {book.title} by {book.author or 'Unknown Author'}")


@books_app.command("add-isbn")
@handle_api_errors
def books_add_isbn(isbn: str, collect: bool = typer.Option(False, "--collect")):
    """Add a book using its Open Library record."""
    book = BookService().create_book_by_isbn(isbn, add_to_collection=collect)
    print_message(f"Added: {book.title} by {book.author or 'Unknown Author'}")


@books_app.command("edit")
def books_edit(
    book_id: int,
    title: Optional[str] = typer.Option(None, "--title"),
    author: Optional[str] = typer.Option(None, "--author", help="Comma separated author names"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    year: Optional[int] = typer.Option(None, "--year"),
    cover: Optional[str] = typer.Option(None, "--cover"),
    description: Optional[str] = typer.Option(None, "--description"),
):
    """Change some fields of a book; the others keep their current values."""
    service = BookService()
    current = service.get_book_by_id(book_id)
    if not current:
        print_error(f"Book {book_id} not found")
        raise typer.Exit(code=1)
    title = title or current.title
    _check_form(BookForm, {"title": title, "isbn": isbn, "publishYear": year})
    isbn = isbn if isbn is not None else current.isbn
    year = year if year is not None else current.publishYear
    cover = cover if cover is not None else current.cover
    description = description if description is not None else current.description
    # The update replaces the whole record, author links included
    if author is None:
        author, authors = current.author, current.authors or None
    else:
        authors = author
    book = service.update_book(book_id, title, author=author, authors=authors, isbn=isbn, publishYear=year,
                               cover=cover, description=description)
    if not book:
        print_error("Could not update the book")
        raise typer.Exit(code=1)
    print_message(f"Updated: {book.title}")


@books_app.command("delete")
def books_delete(book_id: int):
    if not BookService().delete_book(book_id):
        print_error(f"Could not delete book {book_id}")
        raise typer.Exit(code=1)
    print_message(f"Book {book_id} deleted")


@books_app.command("collection")
def books_collection():
    print_books(BookService().get_user_collection(), empty="Your collection is empty.")


@books_app.command("collect")
def books_collect(book_id: int):
    if not BookService().add_to_user_collection(book_id):
        print_error(f"Could not add book {book_id} to your collection")
        raise typer.Exit(code=1)
    print_message(f"Book {book_id} added to your collection")


@books_app.command("uncollect")
def books_uncollect(book_id: int):
    if not BookService().remove_from_user_collection(book_id):
        print_error(f"Could not remove book {book_id} from your collection")
        raise typer.Exit(code=1)
    print_message(f"Book {book_id} removed from your collection")


@books_app.command("openlibrary")
@handle_api_errors
def books_openlibrary(query: str,
                      search_type: str = typer.Option("title", "--type", "-t", help="isbn | title | author"),
                      pick: Optional[int] = typer.Option(None, "--add", help="Add the N-th result to the catalog"),
                      collect: bool = typer.Option(False, "--collect")):
    """Search Open Library, optionally adding one of the results."""
    service = BookService()
    results = service.search_open_library(query, search_type)
    if pick is None:
        print_open_library_results(results)
        return
    if not 1 <= pick <= len(results):
        print_error(f"No result number {pick}")
        raise typer.Exit(code=1)
    choice: OpenLibraryBook = results[pick - 1]
    book = service.add_book_from_open_library(choice, add_to_collection=collect)
    if not book:
        print_error("Could not add the book")
        raise typer.Exit(code=1)
    print_message(f"Added: {book.title} by {book.author or 'Unknown Author'}")


# ------------------------- Authors ------------------------- #
@authors_app.command("list")
@handle_api_errors
def authors_list():
    print_authors(AuthorService().get_authors())


@authors_app.command("show")
@handle_api_errors
def authors_show(author_id: int):
    print_author_detail(AuthorService().get_author_by_id(author_id))


@authors_app.command("find")
@handle_api_errors
def authors_find(name: str):
    print_author_detail(AuthorService().get_author_by_name(name))


@authors_app.command("add")
@handle_api_errors
def authors_add(name: str, bio: Optional[str] = typer.Option(None, "--bio"),
                born: Optional[str] = typer.Option(None, "--born"),
                photo: Optional[str] = typer.Option(None, "--photo")):
    _check_form(AuthorForm, {"name": name})
    author = AuthorService().create_author(name, bio, born, photo)
    print_message(f"Author created: {author.name} (#{author.id})")


@authors_app.command("edit")
@handle_api_errors
def authors_edit(author_id: int, name: str, bio: Optional[str] = typer.Option(None, "--bio"),
                 born: Optional[str] = typer.Option(None, "--born"),
                 photo: Optional[str] = typer.Option(None, "--photo")):
    _check_form(AuthorForm, {"name": name})
    author = AuthorService().update_author(author_id, name, bio, born, photo)
    print_message(f"Author updated: {author.name}")


@authors_app.command("delete")
@handle_api_errors
def authors_delete(author_id: int):
    print_message(AuthorService().delete_author(author_id).message)


@authors_app.command("link")
@handle_api_errors
def authors_link(author_id: int, book_id: int, primary: bool = typer.Option(False, "--primary")):
    print_message(AuthorService().add_book_to_author(author_id, book_id, primary).message)


@authors_app.command("unlink")
@handle_api_errors
def authors_unlink(author_id: int, book_id: int):
    print_message(AuthorService().remove_book_from_author(author_id, book_id).message)


# ------------------------- Reviews ------------------------- #
@reviews_app.command("list")
@handle_api_errors
def reviews_list(book_id: int):
    print_reviews(ReviewService().get_book_reviews(book_id))


@reviews_app.command("add")
@handle_api_errors
def reviews_add(book_id: int,
                rating: int = typer.Option(..., "--rating", "-r", help="1 to 5"),
                comment: str = typer.Option(..., "--comment", "-c"),
                username: Optional[str] = typer.Option(None, "--as", help="Name shown with the review")):
    current = AuthService().get_current_user()
    username = username or (current.name if current else None)
    _check_form(ReviewForm, {"username": username, "rating": rating, "comment": comment})
    review = ReviewService().create_review(book_id, rating, comment, username)
    print_message(f"Review #{review.id} posted")


@reviews_app.command("edit")
@handle_api_errors
def reviews_edit(review_id: int, rating: Optional[int] = typer.Option(None, "--rating", "-r"),
                 comment: Optional[str] = typer.Option(None, "--comment", "-c")):
    review = ReviewService().update_review(review_id, rating, comment)
    print_message(f"Review #{review.id} updated")


@reviews_app.command("delete")
@handle_api_errors
def reviews_delete(review_id: int):
    ReviewService().delete_review(review_id)
    print_message(f"Review #{review_id} deleted")


# ------------------------- Admin ------------------------- #
@admin_app.callback()
def _admin_only():
    """Every admin command needs an ADMIN session."""
    def denied():
        print_error("Admin privilege required")
        raise typer.Exit(code=1)

    admin_guard(AuthStore().state, render=lambda: None, fallback=denied)


@admin_app.command("users")
@handle_api_errors
def admin_users():
    print_users(AdminService().get_all_users())


@admin_app.command("user")
@handle_api_errors
def admin_user(user_id: int):
    user = AdminService().get_user_by_id(user_id)
    print_users([user])
    print_books(user.books, empty="No books in this user's collection.")


@admin_app.command("create-user")
@handle_api_errors
def admin_create_user(name: str, email: str,
                      password: str = typer.Option(..., prompt=True, hide_input=True),
                      role: str = typer.Option("USER", "--role"),
                      unverified: bool = typer.Option(False, "--unverified",
                                                      help="Require email verification and send the link")):
    user = AdminService().create_user(name, email, password, role=role, email_verified=not unverified,
                                      send_verification_email=unverified)
    print_message(f"User created: {user.name} (#{user.id})")


@admin_app.command("update-user")
@handle_api_errors
def admin_update_user(user_id: int, name: Optional[str] = typer.Option(None, "--name"),
                      email: Optional[str] = typer.Option(None, "--email"),
                      role: Optional[str] = typer.Option(None, "--role"),
                      verified: Optional[bool] = typer.Option(None, "--verified/--unverified")):
    user = AdminService().update_user(user_id, name=name, email=email, role=role, email_verified=verified)
    print_message(f"User updated: {user.name} [{user.role}]")


@admin_app.command("delete-user")
@handle_api_errors
def admin_delete_user(user_id: int):
    print_message(AdminService().delete_user(user_id).message)


@admin_app.command("set-password")
@handle_api_errors
def admin_set_password(user_id: int, password: str = typer.Option(..., prompt=True, hide_input=True)):
    print_message(AdminService().change_user_password(user_id, password).message)


@admin_app.command("reviews")
@handle_api_errors
def admin_reviews(book_id: Optional[int] = typer.Option(None, "--book")):
    service = AdminService()
    print_reviews(service.get_book_reviews(book_id) if book_id else service.get_all_reviews())


@admin_app.command("delete-review")
@handle_api_errors
def admin_delete_review(review_id: int):
    AdminService().delete_review(review_id)
    print_message(f"Review #{review_id} deleted")


# ------------------------- Server ------------------------- #
@app.command("serve")
def cli_serve(host: Optional[str] = typer.Option(None, "--host"),
              port: Optional[int] = typer.Option(None, "--port"),
              reload: bool = typer.Option(False, "--reload")):
    """Start the REST API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "library_app.api:create_app",
        "--factory",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        print_error("`uvicorn` was not found. Make sure it is installed in this environment.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
