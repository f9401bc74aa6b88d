import httpx
import pytest

from library_app.client.http_client import ApiClient, ApiError
from library_app.client.schemas import OpenLibraryBook, ReviewInfo
from library_app.client.services import AdminService, AuthorService, AuthService, BookService, ReviewService
from library_app.client.storage import MemoryCredentialStore
from library_app.config import settings


@pytest.fixture
def logged_in(api_client, make_user):
    make_user()
    AuthService(api_client).login("reader@example.com", "secret123")
    return api_client


@pytest.fixture
def as_admin(api_client, make_user):
    make_user("Admin", "admin@example.com", "admin1234", role="ADMIN")
    AuthService(api_client).login("admin@example.com", "admin1234")
    return api_client


def test_login_persists_token_and_user(api_client, store, make_user):
    make_user()
    auth = AuthService(api_client)

    result = auth.login("reader@example.com", "secret123")

    assert store.token == result.token
    assert store.user["email"] == "reader@example.com"
    assert auth.is_authenticated()
    assert auth.get_current_user().name == "Reader"


def test_failed_login_persists_nothing(api_client, store, navigations):
    with pytest.raises(ApiError) as exc:
        AuthService(api_client).login("nobody@example.com", "secret123")
    assert exc.value.message == "Invalid credentials"
    assert store.token is None


def test_signup_does_not_log_in(api_client, store):
    result = AuthService(api_client).signup("Ada", "ada@example.com", "secret123")
    assert result.userId
    assert store.token is None


def test_logout_clears_storage_and_goes_home(logged_in, store, navigations):
    AuthService(logged_in).logout()
    assert store.token is None
    assert store.user is None
    assert navigations == ["/"]


def test_update_profile_rewrites_stored_user(logged_in, store):
    user = AuthService(logged_in).update_profile("Renamed")
    assert user.name == "Renamed"
    assert store.user["name"] == "Renamed"


def test_delete_account_clears_storage(logged_in, store):
    AuthService(logged_in).delete_account("secret123")
    assert store.token is None


def test_password_reset_round_trip(api_client, make_user, monkeypatch):
    monkeypatch.setattr(settings, "environment", "development")
    make_user()
    auth = AuthService(api_client)
    token = auth.request_password_reset("reader@example.com").resetToken
    assert auth.reset_password(token, "newpass123").message == "Password has been reset successfully"
    assert auth.login("reader@example.com", "newpass123").user.email == "reader@example.com"


def test_book_service_crud(logged_in):
    books = BookService(logged_in)

    created = books.create_book("Dune", author="Frank Herbert", isbn="9780441013593", add_to_collection=True)

    assert created.primary_author.name == "Frank Herbert"
    assert [b.title for b in books.get_all_books()] == ["Dune"]
    assert books.get_book_by_id(created.id).isbn == "9780441013593"
    assert books.is_book_in_user_collection(created.id)

    updated = books.update_book(created.id, "Dune Messiah", authors=["Frank Herbert"])
    assert updated.title == "Dune Messiah"
    assert [b.title for b in books.search_books("messiah")] == ["Dune Messiah"]

    assert books.remove_from_user_collection(created.id) is True
    assert books.get_user_collection() == []
    assert books.delete_book(created.id) is True


def test_book_service_swallows_failures(logged_in):
    books = BookService(logged_in)
    assert books.get_book_by_id(999) is None
    assert books.update_book(999, "x") is None
    assert books.delete_book(999) is False
    assert books.add_to_user_collection(999) is False
    assert books.search_books("") == []


def test_check_book_exists(logged_in):
    books = BookService(logged_in)
    books.create_book("Good Omens", authors=["Terry Pratchett", "Neil Gaiman"], isbn="0060853980")

    assert books.check_book_exists("Anything", isbn=" 0060853980 ")
    assert books.check_book_exists("good omens", "Terry Pratchett")
    assert books.check_book_exists("Good Omens", "Terry Pratchett, Neil Gaiman")
    assert not books.check_book_exists("Good Omens", "Someone Else")
    assert not books.check_book_exists("Other Book", "Terry Pratchett")


def test_add_book_from_open_library(logged_in):
    hit = OpenLibraryBook(title="Clean Code", author="Robert C. Martin", firstPublishYear=2008,
                          isbn="9780132350884")

    book = BookService(logged_in).add_book_from_open_library(hit, add_to_collection=True)

    assert book.publishYear == 2008
    assert book.authors[0].name == "Robert C. Martin"
    assert [b.id for b in BookService(logged_in).get_user_collection()] == [book.id]


def test_search_open_library(api_client, openlibrary):
    openlibrary.search.return_value = {"book": {"title": "Clean Code", "author": "Robert C. Martin",
                                                "authors": [{"name": "Robert C. Martin"}]}}
    hits = BookService(api_client).search_open_library("9780132350884", "isbn")
    assert [h.title for h in hits] == ["Clean Code"]

    openlibrary.search.return_value = None
    assert BookService(api_client).search_open_library("zzz") == []


def test_author_service(logged_in):
    authors = AuthorService(logged_in)
    created = authors.create_author("Octavia Butler", biography="SF")
    book = BookService(logged_in).create_book("Kindred")

    authors.add_book_to_author(created.id, book.id, is_primary=True)

    detail = authors.get_author_by_id(created.id)
    assert detail.name == "Octavia Butler"
    assert [b.title for b in detail.books] == ["Kindred"]
    assert authors.get_author_by_name("octavia butler").id == created.id
    assert authors.update_author(created.id, "Octavia E. Butler").name == "Octavia E. Butler"
    assert authors.remove_book_from_author(created.id, book.id).message
    authors.delete_author(created.id)
    assert authors.get_authors() == []


def test_author_conflict_propagates(logged_in):
    authors = AuthorService(logged_in)
    authors.create_author("Dup")
    with pytest.raises(ApiError) as exc:
        authors.create_author("Dup")
    assert exc.value.status_code == 409


def test_review_service(logged_in, app):
    book_id = app.state.library.create_book("Dune").id
    reviews = ReviewService(logged_in)

    first = reviews.create_review(book_id, 4, "Good", "Reader")
    second = reviews.create_review(book_id, 5, "Great", "Reader")
    assert reviews.update_review(first.id, comment="Better").comment == "Better"

    reviews.delete_review(second.id)
    assert [r.id for r in reviews.get_book_reviews(book_id)] == [first.id]


def test_remove_review_drops_only_matching_id():
    items = [ReviewInfo(id=i, bookId=1, username="u", rating=3, comment="c") for i in (1, 2, 3)]

    remaining = ReviewService.remove_review(items, 2)

    assert [r.id for r in remaining] == [1, 3]
    assert [r.id for r in items] == [1, 2, 3]


def test_admin_service(as_admin, make_user, app):
    admin = AdminService(as_admin)
    reader, _ = make_user()

    users = admin.get_all_users()
    assert {u.email for u in users} == {"admin@example.com", "reader@example.com"}

    created = admin.create_user("Staff", "staff@example.com", "staff1234")
    assert created.email_verified is True
    assert admin.update_user(created.id, role="ADMIN").role == "ADMIN"
    assert admin.change_user_password(created.id, "other1234").message
    admin.delete_user(created.id)

    book = admin.create_book({"title": "Neuromancer", "author": "William Gibson"})
    assert admin.get_book_by_id(book.id).title == "Neuromancer"
    app.state.library.add_to_collection(reader.id, book.id)
    assert [b.title for b in admin.get_user_by_id(reader.id).books] == ["Neuromancer"]

    author = admin.get_all_authors()[0]
    assert admin.get_author_by_id(author.id).books[0].title == "Neuromancer"

    app.state.reviews.create(book.id, "guest", 2, "Meh")
    review = admin.get_all_reviews()[0]
    assert review.book_title == "Neuromancer"
    assert admin.update_review(review.id, rating=3).rating == 3
    admin.delete_review(review.id)
    assert admin.get_book_reviews(book.id) == []


def test_admin_users_unwraps_envelope():
    def handler(request):
        return httpx.Response(200, json={"users": [{"id": 1, "name": "A", "email": "a@x.io", "role": "ADMIN"}]})

    client = ApiClient(base_url="http://api.test", store=MemoryCredentialStore(),
                       transport=httpx.MockTransport(handler))
    users = AdminService(client).get_all_users()
    assert [u.email for u in users] == ["a@x.io"]
    assert users[0].is_admin


def test_non_admin_gets_403(logged_in):
    with pytest.raises(ApiError) as exc:
        AdminService(logged_in).get_all_users()
    assert exc.value.status_code == 403


def test_author_name_with_reserved_characters(logged_in):
    authors = AuthorService(logged_in)
    created = authors.create_author("AC/DC? Tribute")

    assert authors.get_author_by_name("AC/DC? Tribute").id == created.id


def test_author_name_is_quoted_in_path():
    seen = []

    def handler(request):
        seen.append(request.url.raw_path)
        return httpx.Response(200, json={"author": {"id": 1, "name": "AC/DC"}, "books": []})

    client = ApiClient(base_url="http://testserver", store=MemoryCredentialStore(),
                       transport=httpx.MockTransport(handler))
    AuthorService(client).get_author_by_name("AC/DC?")

    assert seen == [b"/api/authors/name/AC%2FDC%3F"]
