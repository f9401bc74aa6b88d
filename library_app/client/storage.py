"""Persisted credentials (token and user) for the API client."""
import json
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import settings
from ..logging_config import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class MemoryCredentialStore:
    """Keeps credentials for the lifetime of the process."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def clear(self) -> None:
        self._data = {}
        self._save()

    # --- convenience accessors ---
    @property
    def token(self) -> Optional[str]:
        return self.get(TOKEN_KEY)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.get(USER_KEY)

    def save_session(self, token: str, user: Dict[str, Any]) -> None:
        self._data[TOKEN_KEY] = token
        self._data[USER_KEY] = user
        self._save()

    def clear_session(self) -> None:
        self._data.pop(TOKEN_KEY, None)
        self._data.pop(USER_KEY, None)
        self._save()

    def _save(self) -> None:
        pass


class FileCredentialStore(MemoryCredentialStore):
    """Credentials kept as JSON under the CLI home directory (``~/.library-cli`` by default)."""

    def __init__(self, directory: Optional[str] = None) -> None:
        self.config_dir = Path(directory or settings.credentials_dir)
        self.credentials_file = self.config_dir / "credentials.json"
        super().__init__(self._load())

    def _load(self) -> Dict[str, Any]:
        if not self.credentials_file.exists():
            return {}
        try:
            with open(self.credentials_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read credentials from %s: %s", self.credentials_file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.credentials_file, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
