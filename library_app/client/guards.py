"""Route guards: decide whether a protected view renders or redirects."""
from typing import Callable, NamedTuple, Optional, TypeVar

from .auth_state import AuthState
from .navigation import app_navigate

T = TypeVar("T")


class GuardDecision(NamedTuple):
    allowed: bool
    redirect: Optional[str] = None


RENDER = GuardDecision(True)


def check_admin(state: AuthState) -> GuardDecision:
    if state.is_authenticated is not True:
        return GuardDecision(False, "/login")
    if state.user is None or state.user.role != "ADMIN":
        return GuardDecision(False, "/")
    return RENDER


def check_auth(state: AuthState) -> GuardDecision:
    if state.is_authenticated is not True:
        return GuardDecision(False, "/login")
    return RENDER


def check_guest(state: AuthState) -> GuardDecision:
    """Login and signup screens make no sense for a signed-in user."""
    if state.is_authenticated is True:
        return GuardDecision(False, "/books")
    return RENDER


def _run(decision: GuardDecision, render: Callable[[], T],
         fallback: Optional[Callable[[], T]]) -> Optional[T]:
    if decision.allowed:
        return render()
    app_navigate(decision.redirect)
    return fallback() if fallback else None


def admin_guard(state: AuthState, render: Callable[[], T], fallback: Optional[Callable[[], T]] = None) -> Optional[T]:
    return _run(check_admin(state), render, fallback)


def auth_guard(state: AuthState, render: Callable[[], T], fallback: Optional[Callable[[], T]] = None) -> Optional[T]:
    return _run(check_auth(state), render, fallback)


def guest_guard(state: AuthState, render: Callable[[], T], fallback: Optional[Callable[[], T]] = None) -> Optional[T]:
    return _run(check_guest(state), render, fallback)
