"""
RELAY SERVICE MODULE
====================

Runs one chat turn: prompt in, generated text out, both sides recorded in the
user's history. The HTTP layer (chatrelay.main) only translates requests and
errors; everything about a turn lives here.

TURN FLOW (run_turn):
  1. Blank prompt -> default prompt ("Hi"); blank user id -> "anonymous".
  2. CompletionGateway.complete(prompt). ProviderError propagates and the
     history is not touched.
  3. HistoryStore.append(user_id, prompt, text). A StoreError here is logged
     and swallowed: chat keeps working while persistence is down.
  4. Return TurnResult(text, persisted=<did step 3 succeed>).

No state is kept between requests apart from what the store holds.
"""

import logging
from typing import List, Optional

from chatrelay.models import Message, TurnResult
from chatrelay.services.completion_gateway import CompletionGateway
from chatrelay.services.errors import StoreError
from chatrelay.services.history_store import HistoryStore
from config import DEFAULT_PROMPT, DEFAULT_USER_ID

logger = logging.getLogger("chatrelay")


def _or_default(value: Optional[str], default: str) -> str:
    return value if value and value.strip() else default


class RelayService:
    """Orchestrates turns and history reads/clears for every user."""

    def __init__(
        self,
        gateway: CompletionGateway,
        history_store: HistoryStore,
        default_prompt: str = DEFAULT_PROMPT,
        default_user_id: str = DEFAULT_USER_ID,
    ):
        self.gateway = gateway
        self.history_store = history_store
        self.default_prompt = default_prompt
        self.default_user_id = default_user_id

    def run_turn(self, prompt: Optional[str], user_id: Optional[str]) -> TurnResult:
        """
        Generate a reply for prompt and record the exchange under user_id.

        Raises ProviderError if the gateway fails. Never raises StoreError.
        """
        prompt = _or_default(prompt, self.default_prompt)
        user_id = _or_default(user_id, self.default_user_id)

        logger.info("Turn for user %s (prompt %s chars)", user_id, len(prompt))
        text = self.gateway.complete(prompt)

        persisted = True
        try:
            self.history_store.append(user_id, prompt, text)
        except StoreError as e:
            persisted = False
            logger.error("History append failed for user %s; reply still returned: %s", user_id, e, exc_info=True)

        return TurnResult(text=text, user_id=user_id, persisted=persisted)

    def get_history(self, user_id: str) -> List[Message]:
        """Messages for user_id in insertion order; [] if the user never chatted."""
        return self.history_store.get(user_id)

    def clear_history(self, user_id: str) -> None:
        """Empty the user's history. Unknown users are a no-op."""
        self.history_store.clear(user_id)
        logger.info("History cleared for user %s", user_id)
