"""FastAPI dependencies for services and authentication."""
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .accounts import AccountManager
from .email_service import EmailService
from .library import Library
from .openlibrary import RateLimiter
from .reviews import ReviewBoard
from .security import decode_access_token
from .user import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_library(request: Request) -> Library:
    return request.app.state.library


def get_accounts(request: Request) -> AccountManager:
    return request.app.state.accounts


def get_reviews(request: Request) -> ReviewBoard:
    return request.app.state.reviews


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.openlibrary_limiter


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials], accounts: AccountManager) -> Optional[User]:
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None
    return accounts.get_user(payload["id"])


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    accounts: AccountManager = Depends(get_accounts),
) -> User:
    """Resolve the bearer token into the calling user, or answer 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = _resolve_user(credentials, accounts)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    accounts: AccountManager = Depends(get_accounts),
) -> Optional[User]:
    """Like get_current_user, but anonymous or bad tokens simply yield None."""
    if credentials is None:
        return None
    return _resolve_user(credentials, accounts)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Access denied: Admin privilege required")
    return user


def enforce_rate_limit(limiter: RateLimiter) -> None:
    """Called by endpoints that reach Open Library, after their own input checks."""
    if not limiter.allow():
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"message": "Rate limit exceeded. Please try again later.", "retryAfter": limiter.retry_after},
        )
