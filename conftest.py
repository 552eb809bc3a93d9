import os
import sys
from pathlib import Path

# Ensure repo root on sys.path so `config` and `chatrelay` import from anywhere in the tests tree.
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set before config.py is imported so nothing touches real keys, databases or $HOME.
os.environ.setdefault("HISTORY_BACKEND", "memory")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("CHATS_DATA_DIR", "/tmp/chatrelay-test/chats_data")
os.environ.setdefault("CLIENT_STATE_FILE", "/tmp/chatrelay-test/client_state.json")
os.environ.setdefault("RELAY_VERBOSE", "0")
