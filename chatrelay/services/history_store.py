"""
HISTORY STORE MODULE
====================

Per-user, append-only chat history. One session per user id, created by the
first append (upsert), emptied by clear, never deleted.

BACKENDS:
  InMemoryHistoryStore - dict in process memory (development and tests).
  JsonHistoryStore     - one JSON file per user in CHATS_DATA_DIR.
  MongoHistoryStore    - one document per user in MongoDB (see mongo_store.py).
  create_history_store(backend) picks one from HISTORY_BACKEND.

CONTRACT (all backends):
  - append(user_id, user_text, bot_text): user message then bot message, stamped
    now. No deduplication; calling twice appends twice.
  - get(user_id): ordered messages, [] if the user has no session.
  - clear(user_id): empty the messages, keep the session; no-op if absent.
  - Backend failures raise StoreError.

Writes for the same user id run under that user's lock, so concurrent turns
from one user never interleave. Different users never wait on each other.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

from chatrelay.models import ChatSession, Message, utc_now
from chatrelay.services.errors import StoreError
from config import CHATS_DATA_DIR, HISTORY_BACKEND

logger = logging.getLogger("chatrelay")

# Common file name limit (ext4, xfs, apfs, ntfs).
MAX_FILE_NAME_BYTES = 255


class KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def for_key(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def new_turn_messages(user_text: str, bot_text: str) -> List[Message]:
    """The pair appended by one turn, both stamped with the append time."""
    now = utc_now()
    return [
        Message(text=user_text, is_user=True, timestamp=now),
        Message(text=bot_text, is_user=False, timestamp=now),
    ]


# ==============================================================================
# BASE CLASS
# ==============================================================================

class HistoryStore(ABC):
    """Template for the backends: public methods take the user's lock, subclasses do the I/O."""

    def __init__(self):
        self._user_locks = KeyedLocks()

    def append(self, user_id: str, user_text: str, bot_text: str) -> None:
        messages = new_turn_messages(user_text, bot_text)
        with self._user_locks.for_key(user_id):
            self._append(user_id, messages)
        logger.debug("Appended 2 messages for user %s", user_id)

    def get(self, user_id: str) -> List[Message]:
        return self._get(user_id)

    def clear(self, user_id: str) -> None:
        with self._user_locks.for_key(user_id):
            self._clear(user_id)
        logger.debug("Cleared history for user %s", user_id)

    def close(self) -> None:
        """Release backend resources. Nothing to do for local backends."""

    @abstractmethod
    def _append(self, user_id: str, messages: List[Message]) -> None: ...

    @abstractmethod
    def _get(self, user_id: str) -> List[Message]: ...

    @abstractmethod
    def _clear(self, user_id: str) -> None: ...


# ==============================================================================
# IN-MEMORY BACKEND
# ==============================================================================

class InMemoryHistoryStore(HistoryStore):
    """Sessions kept in a dict; lost on restart."""

    def __init__(self):
        super().__init__()
        self.sessions: Dict[str, ChatSession] = {}

    def _append(self, user_id: str, messages: List[Message]) -> None:
        session = self.sessions.get(user_id)
        if session is None:
            session = self.sessions[user_id] = ChatSession(user_id=user_id)
        session.messages.extend(messages)

    def _get(self, user_id: str) -> List[Message]:
        session = self.sessions.get(user_id)
        return list(session.messages) if session else []

    def _clear(self, user_id: str) -> None:
        session = self.sessions.get(user_id)
        if session is not None:
            session.messages = []


# ==============================================================================
# JSON FILE BACKEND
# ==============================================================================

class JsonHistoryStore(HistoryStore):
    """
    One file per user: <data_dir>/<quoted user id>.json holding the ChatSession.

    The user id is URL-quoted with no safe characters, so ids containing '/'
    or '..' still map to a single file inside data_dir.
    """

    def __init__(self, data_dir: Path = CHATS_DATA_DIR):
        super().__init__()
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create chat data directory {self.data_dir}: {e}") from e

    def _path_for(self, user_id: str) -> Path:
        name = f"{quote(user_id, safe='')}.json"
        # Leave room for the ".tmp" suffix used while saving.
        if len(name.encode("utf-8")) > MAX_FILE_NAME_BYTES - len(".tmp"):
            raise StoreError(f"User id too long for the JSON history backend ({len(user_id)} chars)")
        return self.data_dir / name

    def _load(self, user_id: str) -> Optional[ChatSession]:
        path = self._path_for(user_id)
        try:
            if not path.exists():
                return None
            with open(path, "r", encoding="utf-8") as f:
                return ChatSession.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read chat history file {path.name}: {e}") from e

    def _save(self, session: ChatSession) -> None:
        path = self._path_for(session.user_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(session.model_dump(mode="json", by_alias=True), f, ensure_ascii=False, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise StoreError(f"Could not write chat history file {path.name}: {e}") from e

    def _append(self, user_id: str, messages: List[Message]) -> None:
        session = self._load(user_id) or ChatSession(user_id=user_id)
        session.messages.extend(messages)
        self._save(session)

    def _get(self, user_id: str) -> List[Message]:
        session = self._load(user_id)
        return session.messages if session else []

    def _clear(self, user_id: str) -> None:
        session = self._load(user_id)
        if session is None:
            return
        session.messages = []
        self._save(session)


# ==============================================================================
# FACTORY
# ==============================================================================

def create_history_store(backend: str = HISTORY_BACKEND) -> HistoryStore:
    """Build the store named by backend ("memory", "json" or "mongo")."""
    backend = (backend or "").strip().lower()
    if backend == "memory":
        return InMemoryHistoryStore()
    if backend == "json":
        return JsonHistoryStore()
    if backend == "mongo":
        # Imported here so pymongo is only loaded when the mongo backend is used.
        from chatrelay.services.mongo_store import MongoHistoryStore
        return MongoHistoryStore()
    raise ValueError(f"Unknown HISTORY_BACKEND: {backend!r} (expected memory, json or mongo)")
