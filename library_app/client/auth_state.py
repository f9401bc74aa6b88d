"""Session state for the frontend, kept in sync with the credential store."""
from dataclasses import dataclass
from typing import Optional

from ..logging_config import get_logger
from .http_client import ApiError
from .schemas import UserInfo
from .services import AuthService

logger = get_logger(__name__)


@dataclass
class AuthState:
    user: Optional[UserInfo] = None
    token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None
    email_verified: bool = False
    verification_required: bool = False

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role == "ADMIN"


class AuthStore:
    """Runs auth actions through AuthService and records the outcome.

    Failures never raise; the server message (or a default) lands in
    ``state.error`` for the UI to show.
    """

    def __init__(self, service: Optional[AuthService] = None) -> None:
        self.service = service or AuthService()
        self.state = AuthState()
        self.reload()

    def reload(self) -> AuthState:
        """Re-read token and user from storage, e.g. after a 401 cleared them."""
        user = self.service.get_current_user()
        token = self.service.client.store.token
        self.state.user = user
        self.state.token = token
        self.state.is_authenticated = bool(token)
        self.state.email_verified = bool(user and user.email_verified)
        return self.state

    def clear_error(self) -> None:
        self.state.error = None

    def _fail(self, error: ApiError, default: str) -> bool:
        self.state.is_loading = False
        self.state.error = error.message or default
        logger.info("%s: %s", default, self.state.error)
        return False

    def _start(self) -> None:
        self.state.is_loading = True
        self.state.error = None

    # ------------------------- Actions ------------------------- #
    def login(self, email: str, password: str) -> bool:
        self._start()
        self.state.verification_required = False
        try:
            result = self.service.login(email, password)
        except ApiError as e:
            if isinstance(e.payload, dict) and e.payload.get("needsVerification"):
                self.state.verification_required = True
            return self._fail(e, "Login failed")
        self.state.user = result.user
        self.state.token = result.token
        self.state.is_authenticated = True
        self.state.email_verified = result.user.email_verified
        self.state.is_loading = False
        return True

    def signup(self, name: str, email: str, password: str) -> bool:
        self._start()
        try:
            self.service.signup(name, email, password)
        except ApiError as e:
            return self._fail(e, "Signup failed")
        self.state.verification_required = True
        self.state.is_loading = False
        return True

    def logout(self) -> None:
        self.service.logout()
        self.state = AuthState()

    def verify_email(self, token: str) -> bool:
        self._start()
        try:
            self.service.verify_email(token)
        except ApiError as e:
            return self._fail(e, "Email verification failed")
        self.state.email_verified = True
        self.state.verification_required = False
        self.state.is_loading = False
        return True

    def change_password(self, current_password: str, new_password: str) -> bool:
        self._start()
        try:
            self.service.change_password(current_password, new_password)
        except ApiError as e:
            return self._fail(e, "Password change failed")
        self.state.is_loading = False
        return True

    def update_profile(self, name: str) -> bool:
        self._start()
        try:
            self.state.user = self.service.update_profile(name)
        except ApiError as e:
            return self._fail(e, "Profile update failed")
        self.state.is_loading = False
        return True

    def delete_account(self, password: str) -> bool:
        self._start()
        try:
            self.service.delete_account(password)
        except ApiError as e:
            return self._fail(e, "Account deletion failed")
        self.state = AuthState()
        return True
