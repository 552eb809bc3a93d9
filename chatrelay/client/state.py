"""
CLIENT STATE
============

Everything the chat client remembers between runs, loaded once at startup and
passed explicitly into ChatClient:

  user_id - opaque correlation token ("user_" + 13 base-36 chars). Generated
            the first time it is asked for, saved immediately, reused forever.
            Not a credential: it only keys the history on the server.
  theme   - "light" or "dark"; only affects how the terminal client draws.

Stored as a small JSON file (CLIENT_STATE_FILE). A missing or unreadable file
means "nothing remembered yet", never an error.
"""

import json
import logging
import random
import string
from pathlib import Path
from typing import Optional

from config import CLIENT_STATE_FILE

logger = logging.getLogger("chatrelay")

THEMES = ("light", "dark")
USER_ID_PREFIX = "user_"
_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_user_id(length: int = 13) -> str:
    return USER_ID_PREFIX + "".join(random.choice(_ID_ALPHABET) for _ in range(length))


class ClientState:
    """Identity token and theme preference, persisted to a JSON file on every change."""

    def __init__(self, path: Path = CLIENT_STATE_FILE, user_id: Optional[str] = None, theme: str = "light"):
        self.path = Path(path)
        self._user_id = user_id
        self._theme = theme if theme in THEMES else "light"

    @classmethod
    def load(cls, path: Path = CLIENT_STATE_FILE) -> "ClientState":
        path = Path(path)
        data = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Could not read client state %s, starting fresh: %s", path, e)
                data = {}
        if not isinstance(data, dict):
            data = {}
        return cls(path, user_id=data.get("userId") or None, theme=data.get("chatTheme", "light"))

    def save(self) -> bool:
        """Write the state file. On failure the values stay in memory for this run only."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"userId": self._user_id, "chatTheme": self._theme}, f, indent=2)
        except OSError as e:
            logger.warning("Could not save client state %s, keeping it in memory: %s", self.path, e)
            return False
        return True

    # -------------------------------------------------------------------------
    # IDENTITY
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        """The persisted identity token, created and saved on first access."""
        if not self._user_id:
            self._user_id = generate_user_id()
            self.save()
            logger.info("Generated new client identity %s", self._user_id)
        return self._user_id

    # -------------------------------------------------------------------------
    # THEME
    # -------------------------------------------------------------------------

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}; expected one of {', '.join(THEMES)}")
        self._theme = theme
        self.save()

    def toggle_theme(self) -> str:
        self.set_theme("dark" if self._theme == "light" else "light")
        return self._theme
