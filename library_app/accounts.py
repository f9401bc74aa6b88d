import sqlite3
from datetime import timedelta
from typing import List, Optional, Tuple

from .config import settings
from .database import get_db_connection, initialize_database
from .logging_config import get_logger
from .security import generate_token, hash_password, is_expired, utcnow, verify_password
from .user import User, UserRole

logger = get_logger(__name__)


class AccountManager:
    """User accounts: registration, credentials, email verification and password resets."""

    def __init__(self) -> None:
        initialize_database()

    # ------------------------- Lookups ------------------------- #
    def get_user(self, user_id: int) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def find_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))

    def list_users(self) -> List[User]:
        conn = get_db_connection()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY createdAt DESC, id DESC").fetchall()
            return [User.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------- Registration ------------------------- #
    def register(self, name: str, email: str, password: str, role: Optional[str] = None,
                 email_verified: bool = False) -> User:
        """Create an account. Unverified accounts get a verification token valid for a day."""
        if role is not None and not UserRole.is_valid(role):
            raise ValueError("Invalid role specified")
        email = email.strip().lower()
        if self.find_by_email(email):
            raise ValueError("User with this email already exists")

        token, expires = (None, None) if email_verified else self._new_verification_token()
        conn = get_db_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO users (name, email, password, role, email_verified, verification_token,
                                   verification_token_expires)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (name.strip(), email, hash_password(password), role or UserRole.USER.value,
                 1 if email_verified else 0, token, expires),
            )
            conn.commit()
            user_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise ValueError("User with this email already exists") from e
        finally:
            conn.close()
        logger.info("Registered user %s <%s>", user_id, email)
        return self.get_user(user_id)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(email)
        if not user or not verify_password(password, user.password):
            return None
        return user

    def verify_email(self, token: str) -> User:
        user = self._fetch_one("SELECT * FROM users WHERE verification_token = ?", (token,))
        if not user or is_expired(user.verification_token_expires):
            raise ValueError("Invalid or expired verification token")
        self._execute(
            """
            UPDATE users SET email_verified = 1, verification_token = NULL, verification_token_expires = NULL,
                             updatedAt = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (user.id,),
        )
        return self.get_user(user.id)

    def renew_verification(self, email: str) -> User:
        user = self.find_by_email(email)
        if not user:
            raise LookupError("User not found")
        if user.email_verified:
            raise ValueError("Email is already verified")
        token, expires = self._new_verification_token()
        self._execute(
            "UPDATE users SET verification_token = ?, verification_token_expires = ? WHERE id = ?",
            (token, expires, user.id),
        )
        return self.get_user(user.id)

    # ------------------------- Passwords ------------------------- #
    def create_reset_token(self, email: str) -> Optional[Tuple[User, str]]:
        """Replace any earlier reset token for the account. None when the email is unknown."""
        user = self.find_by_email(email)
        if not user:
            return None
        token = generate_token(20)
        expires = (utcnow() + timedelta(minutes=settings.reset_token_expiry_minutes)).isoformat()
        conn = get_db_connection()
        try:
            conn.execute("DELETE FROM reset_tokens WHERE userId = ?", (user.id,))
            conn.execute("INSERT INTO reset_tokens (userId, token, expiresAt) VALUES (?, ?, ?)",
                         (user.id, token, expires))
            conn.commit()
        finally:
            conn.close()
        return user, token

    def reset_password(self, token: str, new_password: str) -> User:
        """Consume a reset token. Tokens are single use."""
        conn = get_db_connection()
        try:
            row = conn.execute("SELECT * FROM reset_tokens WHERE token = ?", (token,)).fetchone()
            if not row or is_expired(row["expiresAt"]):
                raise ValueError("Invalid or expired token")
            user_row = conn.execute("SELECT id FROM users WHERE id = ?", (row["userId"],)).fetchone()
            if not user_row:
                raise LookupError("User not found")
            conn.execute("UPDATE users SET password = ?, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                         (hash_password(new_password), row["userId"]))
            conn.execute("DELETE FROM reset_tokens WHERE userId = ?", (row["userId"],))
            conn.commit()
            user_id = row["userId"]
        finally:
            conn.close()
        return self.get_user(user_id)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not user:
            raise LookupError("User not found")
        if not verify_password(current_password, user.password):
            raise PermissionError("Current password is incorrect")
        self.set_password(user_id, new_password)

    def set_password(self, user_id: int, new_password: str) -> bool:
        return self._execute("UPDATE users SET password = ?, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                             (hash_password(new_password), user_id)) > 0

    # ------------------------- Profile & administration ------------------------- #
    def update_profile(self, user_id: int, name: str) -> Optional[User]:
        if not self._execute("UPDATE users SET name = ?, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                             (name.strip(), user_id)):
            return None
        return self.get_user(user_id)

    def update_user(self, user_id: int, *, name: Optional[str] = None, email: Optional[str] = None,
                    role: Optional[str] = None, email_verified: Optional[bool] = None) -> Optional[User]:
        """Partial update used by administrators."""
        user = self.get_user(user_id)
        if not user:
            return None
        fields, values = [], []
        if email and email.strip().lower() != user.email:
            other = self.find_by_email(email)
            if other and other.id != user_id:
                raise ValueError("Email is already in use")
        if role and not UserRole.is_valid(role):
            raise ValueError("Invalid role specified")
        if name:
            fields.append("name = ?")
            values.append(name.strip())
        if email:
            fields.append("email = ?")
            values.append(email.strip().lower())
        if role:
            fields.append("role = ?")
            values.append(role)
        if email_verified is not None:
            fields.append("email_verified = ?")
            values.append(1 if email_verified else 0)
        if not fields:
            raise ValueError("No valid fields to update")
        self._execute(f"UPDATE users SET {', '.join(fields)}, updatedAt = CURRENT_TIMESTAMP WHERE id = ?",
                      (*values, user_id))
        return self.get_user(user_id)

    def delete_account(self, user_id: int, password: str) -> None:
        user = self.get_user(user_id)
        if not user:
            raise LookupError("User not found")
        if not verify_password(password, user.password):
            raise PermissionError("Password is incorrect")
        self.delete_user(user_id)

    def delete_user(self, user_id: int) -> bool:
        return self._execute("DELETE FROM users WHERE id = ?", (user_id,)) > 0

    # ------------------------- Helpers ------------------------- #
    @staticmethod
    def _new_verification_token() -> Tuple[str, str]:
        expires = utcnow() + timedelta(hours=settings.verification_expiry_hours)
        return generate_token(32), expires.isoformat()

    @staticmethod
    def _fetch_one(sql: str, params: tuple) -> Optional[User]:
        conn = get_db_connection()
        try:
            row = conn.execute(sql, params).fetchone()
            return User.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    @staticmethod
    def _execute(sql: str, params: tuple) -> int:
        conn = get_db_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
