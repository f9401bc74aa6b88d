from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from library_app import database
from library_app.client.http_client import ApiClient, set_api_client
from library_app.client.navigation import register_navigate
from library_app.client.storage import MemoryCredentialStore
from library_app.openlibrary import OpenLibraryClient
from library_app.security import create_access_token


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    # tmp_path is unique per test, parametrized ids included
    path = str(tmp_path / "library.db")
    monkeypatch.setattr(database, "DATABASE_FILE", path)
    return path


@pytest.fixture
def openlibrary():
    return MagicMock(spec=OpenLibraryClient)


@pytest.fixture
def lib(db_file, openlibrary):
    from library_app.library import Library
    return Library(openlibrary=openlibrary)


@pytest.fixture
def accounts(db_file):
    from library_app.accounts import AccountManager
    return AccountManager()


@pytest.fixture
def board(db_file):
    from library_app.reviews import ReviewBoard
    return ReviewBoard()


@pytest.fixture
def app(db_file, openlibrary, monkeypatch):
    from library_app.api import create_app
    application = create_app()
    application.state.library.openlibrary = openlibrary
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(app):
    """Create a verified account and return (user, auth headers)."""
    def _make(name="Reader", email="reader@example.com", password="secret123", role="USER"):
        user = app.state.accounts.register(name, email, password, role=role, email_verified=True)
        token = create_access_token(user.id, user.email, user.role)
        return user, {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def user_headers(make_user):
    return make_user()[1]


@pytest.fixture
def admin_headers(make_user):
    return make_user("Admin", "admin@example.com", "admin1234", role="ADMIN")[1]


@pytest.fixture
def navigations():
    """Record every navigation request made by client code."""
    paths = []
    register_navigate(paths.append)
    yield paths
    register_navigate(None)


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def api_client(client, store):
    """An ApiClient whose requests are served by the in-process FastAPI app."""
    def forward(request: httpx.Request) -> httpx.Response:
        headers = {k: v for k, v in request.headers.items() if k.lower() in ("authorization", "content-type")}
        url = request.url.raw_path.decode("ascii")
        resp = client.request(request.method, url, content=request.content, headers=headers)
        return httpx.Response(resp.status_code, content=resp.content,
                              headers={"content-type": resp.headers.get("content-type", "application/json")})

    api = ApiClient(base_url="http://testserver", store=store, transport=httpx.MockTransport(forward))
    set_api_client(api)
    yield api
    set_api_client(None)
    api.close()
