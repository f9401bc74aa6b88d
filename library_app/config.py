import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "3000"))
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Database settings
    db_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")

    # Security settings
    jwt_secret_key: str = os.getenv("JWT_SECRET", "your-secret-key-change-this-in-production")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    jwt_expiration_minutes: int = int(os.getenv("JWT_EXPIRATION_MINUTES", "1440"))  # 24h
    reset_token_expiry_minutes: int = int(os.getenv("RESET_TOKEN_EXPIRY_MINUTES", "60"))
    verification_expiry_hours: int = int(os.getenv("VERIFICATION_EXPIRY_HOURS", "24"))

    # Email settings
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: Optional[str] = os.getenv("SMTP_USERNAME")
    smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD")
    smtp_from_email: str = os.getenv("SMTP_FROM_EMAIL", "noreply@library.com")
    smtp_from_name: str = os.getenv("SMTP_FROM_NAME", "Library System")
    enable_email_notifications: bool = _env_flag("ENABLE_EMAIL_NOTIFICATIONS", "False")
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # External API settings
    openlibrary_timeout: float = float(os.getenv("OPENLIBRARY_TIMEOUT", "10"))
    openlibrary_rate_limit: int = int(os.getenv("OPENLIBRARY_RATE_LIMIT", "5"))  # per minute
    api_rate_limit: int = int(os.getenv("API_RATE_LIMIT", "100"))  # requests per client, 0 disables
    api_rate_window: float = float(os.getenv("API_RATE_WINDOW_SECONDS", "900"))  # 15 min

    # Client settings
    api_base_url: str = os.getenv("LIBRARY_API_URL", "http://127.0.0.1:3000")
    client_timeout: float = float(os.getenv("LIBRARY_CLIENT_TIMEOUT", "10"))
    credentials_dir: str = os.getenv("LIBRARY_CLI_HOME", str(Path.home() / ".library-cli"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
