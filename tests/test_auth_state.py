from library_app.client.auth_state import AuthStore
from library_app.client.services import AuthService


def test_initial_state_from_storage(api_client, store):
    store.save_session("tok", {"id": 3, "name": "Ada", "email": "ada@example.com", "role": "ADMIN",
                               "email_verified": True})

    state = AuthStore(AuthService(api_client)).state

    assert state.is_authenticated is True
    assert state.is_admin
    assert state.email_verified is True


def test_login_success(api_client, make_user):
    make_user()
    auth = AuthStore(AuthService(api_client))

    assert auth.login("reader@example.com", "secret123") is True
    assert auth.state.is_authenticated is True
    assert auth.state.user.email == "reader@example.com"
    assert auth.state.error is None
    assert auth.state.is_loading is False


def test_login_failure_records_message(api_client, navigations):
    auth = AuthStore(AuthService(api_client))

    assert auth.login("nobody@example.com", "secret123") is False
    assert auth.state.error == "Invalid credentials"
    assert auth.state.is_authenticated is False


def test_unverified_login_flags_verification(api_client):
    auth = AuthStore(AuthService(api_client))
    assert auth.signup("Ada", "ada@example.com", "secret123") is True

    assert auth.login("ada@example.com", "secret123") is False
    assert auth.state.verification_required is True
    assert auth.state.error == "Email not verified"


def test_signup_failure(api_client, make_user):
    make_user()
    auth = AuthStore(AuthService(api_client))
    assert auth.signup("Again", "reader@example.com", "secret123") is False
    assert auth.state.error == "User with this email already exists"


def test_logout_resets_state(api_client, make_user, store, navigations):
    make_user()
    auth = AuthStore(AuthService(api_client))
    auth.login("reader@example.com", "secret123")

    auth.logout()

    assert auth.state.is_authenticated is False
    assert auth.state.user is None
    assert store.token is None


def test_reload_after_401(api_client, make_user, store, navigations):
    make_user()
    auth = AuthStore(AuthService(api_client))
    auth.login("reader@example.com", "secret123")
    store.set("token", "expired-token")

    assert auth.change_password("secret123", "newpass123") is False

    assert store.token is None
    assert auth.reload().is_authenticated is False
    assert navigations == ["/login"]


def test_verify_email(api_client, app):
    auth = AuthStore(AuthService(api_client))
    auth.signup("Ada", "ada@example.com", "secret123")
    token = app.state.accounts.find_by_email("ada@example.com").verification_token

    assert auth.verify_email(token) is True
    assert auth.state.email_verified is True
    assert auth.verify_email(token) is False
    assert auth.state.error == "Invalid or expired verification token"
