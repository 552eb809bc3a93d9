"""
COMPLETION GATEWAY MODULE
=========================

Sends one prompt to the configured text-completion provider and returns the
generated text. Used by RelayService for every POST /generate.

PROVIDERS:
  - gemini (default): ChatGoogleGenerativeAI, credential GEMINI_API_KEY.
  - groq: ChatGroq, credentials GROQ_API_KEY, GROQ_API_KEY_2, ...

ROUND-ROBIN API KEYS (groq):
  - Successive calls use the next key in the list (class-level counter, shared
    by every gateway instance).
  - A failing key is NOT retried with the next one: each call is exactly one
    attempt, and the error goes straight back to the caller.

FAILURES:
  Missing credential, unknown provider, network errors, and error payloads all
  raise ProviderError (original exception chained). Nothing is cached.
"""

import logging
import threading
from typing import Any, Callable, List, Optional, Sequence, Union

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq

from chatrelay.services.errors import ProviderError
from chatrelay.utils.masking import mask_key
from config import (
    LLM_PROVIDER,
    GEMINI_API_KEY,
    GEMINI_MODEL,
    GROQ_API_KEYS,
    GROQ_MODEL,
)

logger = logging.getLogger("chatrelay")

Prompt = Union[str, Sequence[str]]

SUPPORTED_PROVIDERS = ("gemini", "groq")


def build_chat_model(provider: str, model: str, api_key: str) -> Any:
    """Create the langchain chat model for one call. Client-side retries are disabled."""
    if provider == "gemini":
        return ChatGoogleGenerativeAI(model=model, google_api_key=api_key, max_retries=0)
    if provider == "groq":
        return ChatGroq(model=model, api_key=api_key, max_retries=0)
    raise ProviderError(f"Unknown completion provider: {provider}")


def _content_to_text(content: Any) -> str:
    """Chat models return either a string or a list of parts; flatten to plain text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


# ==============================================================================
# COMPLETION GATEWAY CLASS
# ==============================================================================

class CompletionGateway:
    """
    Thin adapter over a langchain chat model: one prompt in, one text out.
    """

    _shared_key_index = 0
    _key_lock = threading.Lock()

    def __init__(
        self,
        provider: str = LLM_PROVIDER,
        model: Optional[str] = None,
        api_keys: Optional[List[str]] = None,
        model_factory: Callable[[str, str, str], Any] = build_chat_model,
    ):
        self.provider = (provider or "").strip().lower()
        if self.provider == "groq":
            self.model = model or GROQ_MODEL
            self.api_keys = list(GROQ_API_KEYS if api_keys is None else api_keys)
        else:
            self.model = model or GEMINI_MODEL
            default_keys = [GEMINI_API_KEY] if GEMINI_API_KEY else []
            self.api_keys = list(default_keys if api_keys is None else api_keys)
        self.api_keys = [k for k in self.api_keys if k]
        self._model_factory = model_factory

        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unknown LLM_PROVIDER '%s'; every completion will fail.", self.provider)
        elif not self.api_keys:
            logger.warning("No API key configured for provider '%s'; every completion will fail.", self.provider)
        else:
            logger.info(
                "Completion gateway: provider=%s model=%s keys=%s",
                self.provider,
                self.model,
                len(self.api_keys),
            )

    def _next_api_key(self) -> str:
        """Pick the key for this call; rotates one-by-one when several are configured."""
        if len(self.api_keys) == 1:
            return self.api_keys[0]
        with CompletionGateway._key_lock:
            index = CompletionGateway._shared_key_index % len(self.api_keys)
            CompletionGateway._shared_key_index += 1
        return self.api_keys[index]

    def complete(self, prompt: Prompt) -> str:
        """
        Send prompt to the provider and return the generated text.

        A plain string is sent as-is; a sequence of strings becomes one
        multi-part human message. Raises ProviderError on any failure.
        """
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ProviderError(f"Unknown completion provider: {self.provider}")
        if not self.api_keys:
            raise ProviderError(f"API key for provider '{self.provider}' is not configured")

        api_key = self._next_api_key()
        if isinstance(prompt, str):
            payload = prompt
        else:
            payload = [HumanMessage(content=[{"type": "text", "text": part} for part in prompt])]

        logger.debug("Calling %s/%s with key %s", self.provider, self.model, mask_key(api_key))
        try:
            llm = self._model_factory(self.provider, self.model, api_key)
            response = llm.invoke(payload)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"{self.provider} completion failed: {e}") from e

        return _content_to_text(getattr(response, "content", response))
