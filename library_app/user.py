from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"

    @classmethod
    def is_valid(cls, value: str | None) -> bool:
        return value in (cls.ADMIN.value, cls.USER.value)


class User:
    """A registered account. The password hash never leaves this object through to_dict()."""

    def __init__(self, name: str, email: str, id: int | None = None, password: str | None = None,
                 role: str = UserRole.USER.value, email_verified: bool = False,
                 verification_token: str | None = None, verification_token_expires: str | None = None,
                 createdAt: str | None = None, updatedAt: str | None = None) -> None:
        self.id = id
        self.name = name
        self.email = email
        self.password = password
        self.role = role or UserRole.USER.value
        self.email_verified = email_verified
        self.verification_token = verification_token
        self.verification_token_expires = verification_token_expires
        self.createdAt = createdAt
        self.updatedAt = updatedAt

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "email_verified": self.email_verified,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }

    @staticmethod
    def from_dict(data: dict) -> "User":
        return User(
            id=data.get("id"),
            name=data["name"],
            email=data["email"],
            password=data.get("password"),
            role=data.get("role") or UserRole.USER.value,
            email_verified=bool(data.get("email_verified")),
            verification_token=data.get("verification_token"),
            verification_token_expires=data.get("verification_token_expires"),
            createdAt=data.get("createdAt"),
            updatedAt=data.get("updatedAt"),
        )
