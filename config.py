"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all chat relay settings: provider credentials, model names,
  the history backend, turn defaults, logging verbosity, and the client-side
  state file.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Exposes the completion provider settings (Gemini by default, Groq optional).
  - Selects where chat history lives: memory, JSON files, or MongoDB.
  - Defines the defaults applied to blank turn requests ("Hi" / "anonymous").
  - Holds the base URL and state file used by the terminal chat client.

USAGE:
  Import what you need: `from config import LLM_PROVIDER, HISTORY_BACKEND`
  Services take these values as constructor defaults, so tests can pass their own.
"""

import os
from pathlib import Path
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    """True if the variable is set to one of 1/true/yes/on (case-insensitive)."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# ============================================================================
# COMPLETION PROVIDER
# ============================================================================
# LLM_PROVIDER picks the text-completion service: "gemini" (default) or "groq".
# Every call is a single attempt; the provider client's own retries are disabled.

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "gemini").strip().lower()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

# Groq accepts several keys: GROQ_API_KEY, GROQ_API_KEY_2, GROQ_API_KEY_3, ...
# Successive requests rotate through them one-by-one.

def _load_groq_api_keys() -> list:
    """
    Load all GROQ API keys from the environment.
    Reads GROQ_API_KEY first, then GROQ_API_KEY_2, GROQ_API_KEY_3, ... until
    a number has no value. Returns a list of non-empty key strings.
    """
    keys = []
    first = os.getenv("GROQ_API_KEY", "").strip()
    if first:
        keys.append(first)
    i = 2
    while True:
        k = os.getenv(f"GROQ_API_KEY_{i}", "").strip()
        if not k:
            break
        keys.append(k)
        i += 1
    return keys


GROQ_API_KEYS = _load_groq_api_keys()
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

# ============================================================================
# HISTORY STORE
# ============================================================================
# HISTORY_BACKEND: "mongo" (one document per user), "json" (one file per user
# under CHATS_DATA_DIR) or "memory" (lost on restart; for development).

HISTORY_BACKEND = os.getenv("HISTORY_BACKEND", "json").strip().lower()

CHATS_DATA_DIR = Path(os.getenv("CHATS_DATA_DIR", str(BASE_DIR / "database" / "chats_data")))

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "chatrelay")
MONGO_COLLECTION = os.getenv("MONGO_COLLECTION", "chats")
# How long pymongo waits for a reachable server before a write fails.
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "2000"))

# ============================================================================
# TURN DEFAULTS
# ============================================================================
DEFAULT_PROMPT = os.getenv("DEFAULT_PROMPT", "Hi")
DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "anonymous")

# Maximum length (characters) for a single prompt. Longer prompts are rejected with 422.
MAX_MESSAGE_LENGTH = 32_000

# ============================================================================
# LOGGING / DIAGNOSTICS
# ============================================================================
# RELAY_VERBOSE switches logging to DEBUG and adds the underlying error text
# ("details") to 500 responses.

RELAY_VERBOSE = _env_flag("RELAY_VERBOSE")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# ============================================================================
# SERVER
# ============================================================================
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))

# ============================================================================
# CHAT CLIENT
# ============================================================================
# The terminal client talks to API_BASE_URL and keeps its identity token and
# theme preference in CLIENT_STATE_FILE.

API_BASE_URL = os.getenv("API_BASE_URL", f"http://localhost:{PORT}").rstrip("/")
CLIENT_STATE_FILE = Path(
    os.getenv("CLIENT_STATE_FILE", str(Path.home() / ".chatrelay" / "client_state.json"))
)
