# shopcore/session.py
import os
from typing import Optional

from .logger import get_logger

logger = get_logger(__name__)

TOKEN_PATH = os.getenv("TOKEN_PATH", "")


class Session:
    """
    The current credential, handed explicitly to every store and gateway.
    Stores only read it; login/logout happen outside the engine.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = (token or "").strip() or None

    @classmethod
    def from_env(cls) -> "Session":
        token = os.getenv("STOREFRONT_TOKEN", "").strip()
        if not token and TOKEN_PATH:
            token = load_token_file(TOKEN_PATH) or ""
        return cls(token)

    @property
    def token(self) -> Optional[str]:
        return self._token

    def is_authenticated(self) -> bool:
        return self._token is not None

    def login(self, token: str) -> None:
        self._token = (token or "").strip() or None

    def clear(self) -> None:
        self._token = None

    def auth_headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}


def load_token_file(path: str) -> Optional[str]:
    if not os.path.exists(path):
        logger.warning("Token file not found at %s; continuing anonymously", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip() or None
    except OSError as e:
        logger.error("Failed to read token file %s: %s", path, e)
        return None
