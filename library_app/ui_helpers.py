import json
import os
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _dump(items: Any) -> None:
    if isinstance(items, list):
        payload = [i.model_dump() if hasattr(i, "model_dump") else i for i in items]
    else:
        payload = items.model_dump() if hasattr(items, "model_dump") else items
    print(json.dumps(payload, ensure_ascii=False, default=str))


def _table(title: str, columns: Sequence[str], rows: List[Sequence[Any]]) -> None:
    table = Table(title=title, show_lines=True, header_style="bold cyan")
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*["" if v is None else str(v) for v in row])
    _console.print(table)


def print_message(message: str) -> None:
    if get_output_mode() == "json":
        print(json.dumps({"message": message}, ensure_ascii=False))
    else:
        print(message)


def print_error(message: str) -> None:
    _console.print(f"[bold red]Error:[/] {message}")


def print_books(books: List[Any], empty: str = "No books in library.") -> None:
    """Print books according to the output mode.
    - plain: 'id. Title by Author (ISBN)' lines, or the empty message
    - json: JSON array
    - rich: Rich table
    """
    mode = get_output_mode()
    if not books:
        print(empty)
        return
    if mode == "json":
        _dump(books)
    elif mode == "rich":
        _table("📚 Books", ["ID", "Title", "Author", "ISBN", "Year"],
               [(b.id, b.title, b.author, b.isbn, b.publishYear) for b in books])
    else:
        for b in books:
            isbn = f" ({b.isbn})" if b.isbn else ""
            print(f"{b.id}. {b.title} by {b.author or 'Unknown Author'}{isbn}")


def print_book_detail(book: Any) -> None:
    mode = get_output_mode()
    if mode == "json":
        _dump(book)
        return
    authors = ", ".join(a.name for a in book.authors) or book.author or "Unknown Author"
    lines = [
        f"Title: {book.title}",
        f"Author: {authors}",
        f"ISBN: {book.isbn or '-'}",
        f"Published: {book.publishYear or '-'}",
    ]
    if book.description:
        lines.append(f"Description: {book.description}")
    if mode == "rich":
        _console.print(Panel.fit("\n".join(lines), title=f"📖 Book #{book.id}", border_style="blue"))
    else:
        print("\n".join(lines))


def print_open_library_results(results: List[Any]) -> None:
    mode = get_output_mode()
    if not results:
        print("No books found on Open Library.")
        return
    if mode == "json":
        _dump(results)
    elif mode == "rich":
        _table("🌐 Open Library", ["#", "Title", "Author", "Year", "ISBN"],
               [(i, r.title, r.author, r.publishYear or r.firstPublishYear, r.isbn)
                for i, r in enumerate(results, 1)])
    else:
        for i, r in enumerate(results, 1):
            year = r.publishYear or r.firstPublishYear
            print(f"{i}. {r.title} by {r.author or 'Unknown Author'}" + (f" ({year})" if year else ""))


def print_authors(authors: List[Any]) -> None:
    mode = get_output_mode()
    if not authors:
        print("No authors found.")
        return
    if mode == "json":
        _dump(authors)
    elif mode == "rich":
        _table("✍️ Authors", ["ID", "Name", "Books"], [(a.id, a.name, a.book_count or 0) for a in authors])
    else:
        for a in authors:
            print(f"{a.id}. {a.name} ({a.book_count or 0} books)")


def print_author_detail(author: Any) -> None:
    if get_output_mode() == "json":
        _dump(author)
        return
    print(f"Name: {author.name}")
    if author.birth_date:
        print(f"Born: {author.birth_date}")
    if author.biography:
        print(f"Biography: {author.biography}")
    print_books(author.books, empty="No books by this author.")


def print_reviews(reviews: List[Any]) -> None:
    mode = get_output_mode()
    if not reviews:
        print("No reviews yet.")
        return
    if mode == "json":
        _dump(reviews)
    elif mode == "rich":
        _table("⭐ Reviews", ["ID", "Book", "By", "Rating", "Comment"],
               [(r.id, r.book_title or r.bookId, r.user_name or r.username, "★" * r.rating, r.comment)
                for r in reviews])
    else:
        for r in reviews:
            print(f"[{r.id}] {r.user_name or r.username} rated {r.rating}/5: {r.comment}")


def print_users(users: List[Any]) -> None:
    mode = get_output_mode()
    if not users:
        print("No users found.")
        return
    if mode == "json":
        _dump(users)
    elif mode == "rich":
        _table("👥 Users", ["ID", "Name", "Email", "Role", "Verified"],
               [(u.id, u.name, u.email, u.role, "yes" if u.email_verified else "no") for u in users])
    else:
        for u in users:
            verified = "" if u.email_verified else " (unverified)"
            print(f"{u.id}. {u.name} <{u.email}> [{u.role}]{verified}")


def print_form_errors(errors: Dict[str, str]) -> None:
    for field, message in errors.items():
        _console.print(f"[red]{field}:[/] {message}")
