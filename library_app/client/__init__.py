"""Client for the library REST API: HTTP wrapper, services, auth state, guards and form validation."""
from .auth_state import AuthState, AuthStore
from .guards import admin_guard, auth_guard, guest_guard
from .http_client import ApiClient, ApiError, close_api_client, get_api_client
from .navigation import app_navigate, register_navigate
from .services import AdminService, AuthorService, AuthService, BookService, ReviewService
from .storage import FileCredentialStore, MemoryCredentialStore

__all__ = [
    "AdminService",
    "ApiClient",
    "ApiError",
    "AuthService",
    "AuthState",
    "AuthStore",
    "AuthorService",
    "BookService",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "ReviewService",
    "admin_guard",
    "app_navigate",
    "auth_guard",
    "close_api_client",
    "get_api_client",
    "guest_guard",
    "register_navigate",
]
