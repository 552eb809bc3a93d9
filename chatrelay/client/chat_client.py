"""
CHAT CLIENT
===========

Keeps a local transcript that mirrors the user's history on the relay server.

  load_history() - GET /history/{user_id}; replaces the transcript on success.
  send(prompt)   - appends the user message right away, POSTs /generate, then
                   appends the reply, or a bot-style error message if the turn
                   failed. The user message is never rolled back.
  clear()        - DELETE /history/{user_id} and empty the transcript.

is_loading is set while a request is in flight and blocks further sends.
Requests have no timeout and are never retried.
"""

import logging
from typing import List, Optional

import requests

from chatrelay.client.state import ClientState
from chatrelay.models import Message
from config import API_BASE_URL

logger = logging.getLogger("chatrelay")

ERROR_REPLY_TEMPLATE = "Sorry, I encountered an error: {error}. Please try again."
CLEAR_FAILED_MESSAGE = "Failed to clear chat history"


class TurnFailed(Exception):
    """The relay answered a turn with a non-200 status."""


class ChatClient:
    """
    HTTP client for one user's chat. `state` supplies the identity token;
    `session` is any requests-compatible session (defaults to requests.Session()).
    """

    def __init__(self, state: ClientState, base_url: str = API_BASE_URL, session=None):
        self.state = state
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.messages: List[Message] = []
        self.is_loading = False
        self.error: Optional[str] = None

    @property
    def user_id(self) -> str:
        return self.state.user_id

    def _history_url(self) -> str:
        return f"{self.base_url}/history/{self.user_id}"

    # -------------------------------------------------------------------------
    # HISTORY
    # -------------------------------------------------------------------------

    def load_history(self) -> bool:
        """Replace the transcript with the server's copy. Returns False if that failed."""
        self.is_loading = True
        try:
            response = self.session.get(self._history_url())
            if response.status_code != 200:
                logger.error("Failed to fetch chat history: HTTP %s", response.status_code)
                return False
            self.messages = [Message.model_validate(m) for m in response.json()]
            return True
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Failed to fetch chat history: %s", e)
            return False
        finally:
            self.is_loading = False

    def clear(self) -> bool:
        """Clear the history on the server and locally. Returns False on a network failure."""
        try:
            self.session.delete(self._history_url())
        except requests.exceptions.RequestException as e:
            logger.error("Failed to clear history on server: %s", e)
            self.error = CLEAR_FAILED_MESSAGE
            return False
        self.messages = []
        self.error = None
        return True

    # -------------------------------------------------------------------------
    # TURNS
    # -------------------------------------------------------------------------

    def send(self, prompt: str) -> Optional[Message]:
        """
        Run one turn and return the bot message appended to the transcript.

        Returns None (and does nothing) for a blank prompt or while another
        request is in flight.
        """
        if not prompt or not prompt.strip() or self.is_loading:
            return None

        self.messages.append(Message(text=prompt, is_user=True))
        self.is_loading = True
        self.error = None
        try:
            response = self.session.post(
                f"{self.base_url}/generate",
                json={"prompt": prompt, "userId": self.user_id},
            )
            if response.status_code != 200:
                raise TurnFailed(self._error_text(response))
            reply = Message(text=response.json()["text"], is_user=False)
        except (requests.exceptions.RequestException, TurnFailed, ValueError, KeyError) as e:
            logger.error("Error: %s", e)
            self.error = str(e)
            reply = Message(text=ERROR_REPLY_TEMPLATE.format(error=self.error), is_user=False)
        finally:
            self.is_loading = False

        self.messages.append(reply)
        return reply

    @staticmethod
    def _error_text(response) -> str:
        try:
            data = response.json()
        except ValueError:
            return "Server error"
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return "Server error"
