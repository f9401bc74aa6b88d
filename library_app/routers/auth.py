"""Authentication endpoints: registration, login, verification and password management."""
from fastapi import APIRouter, Depends, HTTPException, status

from ..accounts import AccountManager
from ..config import settings
from ..deps import get_accounts, get_current_user, get_email_service
from ..email_service import EmailService
from ..logging_config import get_logger
from ..schemas import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
)
from ..security import create_access_token
from ..user import User

logger = get_logger(__name__)

router = APIRouter()

RESET_REQUESTED_MESSAGE = "If your email is in our system, you will receive a password reset link"


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, accounts: AccountManager = Depends(get_accounts),
             email_service: EmailService = Depends(get_email_service)):
    """Create an account and send the verification email."""
    if not payload.name or not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide name, email, and password")
    try:
        user = accounts.register(payload.name, payload.email, payload.password, role=payload.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    email_service.send_verification_email(user.email, user.verification_token)
    return {
        "message": "User registered successfully. Please check your email to verify your account.",
        "userId": user.id,
    }


@router.post("/login")
def login(payload: LoginRequest, accounts: AccountManager = Depends(get_accounts)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Please provide email and password")
    user = accounts.authenticate(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.email_verified:
        raise HTTPException(status_code=401, detail={"message": "Email not verified", "needsVerification": True})
    token = create_access_token(user.id, user.email, user.role)
    logger.info("User %s logged in", user.id)
    return {"message": "Login successful", "user": user.to_dict(), "token": token}


@router.post("/logout")
def logout():
    # Tokens are stateless; the client drops its copy
    return {"message": "Logout successful"}


@router.get("/verify-email/{token}")
def verify_email(token: str, accounts: AccountManager = Depends(get_accounts)):
    try:
        accounts.verify_email(token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Email verified successfully"}


@router.post("/resend-verification")
def resend_verification(payload: EmailRequest, accounts: AccountManager = Depends(get_accounts),
                        email_service: EmailService = Depends(get_email_service)):
    if not payload.email:
        raise HTTPException(status_code=400, detail="Please provide an email address")
    try:
        user = accounts.renew_verification(payload.email)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    email_service.send_verification_email(user.email, user.verification_token)
    return {"message": "Verification email sent"}


@router.post("/request-password-reset")
def request_password_reset(payload: EmailRequest, accounts: AccountManager = Depends(get_accounts)):
    """Always answers the same way so callers cannot probe which emails exist."""
    if not payload.email:
        raise HTTPException(status_code=400, detail="Please provide an email address")
    result = accounts.create_reset_token(payload.email)
    body = {"message": RESET_REQUESTED_MESSAGE}
    if result:
        user, token = result
        logger.info("Password reset requested for user %s", user.id)
        if not settings.is_production:
            body["resetToken"] = token
    return body


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, accounts: AccountManager = Depends(get_accounts)):
    if not payload.token or not payload.newPassword:
        raise HTTPException(status_code=400, detail="Please provide a token and new password")
    try:
        accounts.reset_password(payload.token, payload.newPassword)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Password has been reset successfully"}


@router.post("/change-password")
def change_password(payload: ChangePasswordRequest, user: User = Depends(get_current_user),
                    accounts: AccountManager = Depends(get_accounts)):
    if not payload.currentPassword or not payload.newPassword:
        raise HTTPException(status_code=400, detail="Please provide current password and new password")
    try:
        accounts.change_password(user.id, payload.currentPassword, payload.newPassword)
    except PermissionError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Password changed successfully"}


@router.put("/update-profile")
def update_profile(payload: UpdateProfileRequest, user: User = Depends(get_current_user),
                   accounts: AccountManager = Depends(get_accounts)):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Please provide a name")
    updated = accounts.update_profile(user.id, payload.name)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "Profile updated successfully", "user": updated.to_dict()}


@router.delete("/delete-account")
def delete_account(payload: DeleteAccountRequest, user: User = Depends(get_current_user),
                   accounts: AccountManager = Depends(get_accounts)):
    if not payload.password:
        raise HTTPException(status_code=400, detail="Please provide your password to confirm deletion")
    try:
        accounts.delete_account(user.id, payload.password)
    except PermissionError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "User account deleted successfully"}
