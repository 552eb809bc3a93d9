"""
DATA MODELS MODULE
==================

Pydantic models used for API requests, responses, and stored chat history.
FastAPI uses these to validate incoming JSON and to serialize responses; the
history stores use Message and ChatSession when saving and loading documents.

Python attributes are snake_case; the JSON/stored names are camelCase
(isUser, userId, createdAt), matching what the browser front end sends.

MODELS:
  Message          - One chat message (text, isUser, timestamp).
  ChatSession      - One user's history document: userId + ordered messages.
  TurnResult       - Outcome of one relay turn (text, delivered, persisted).
  GenerateRequest  - Body of POST /generate (prompt and userId both optional).
  GenerateResponse - Body returned by POST /generate.
  ErrorResponse    - Body of every 5xx response.
  ClearResponse    - Body returned by DELETE /history/{userId}.
  HealthResponse   - Body returned by GET /health.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import MAX_MESSAGE_LENGTH


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==============================================================================
# STORED HISTORY
# ==============================================================================

class Message(BaseModel):
    """
    A single message in a conversation. Immutable once created; the store
    stamps it at append time and order of insertion defines chronology.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: str
    is_user: bool = Field(..., alias="isUser")
    timestamp: datetime = Field(default_factory=utc_now)


class ChatSession(BaseModel):
    """One history document per user id. Created by the first append, never deleted."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")


class TurnResult(BaseModel):
    """
    Outcome of one relay turn.

    delivered is True whenever a result exists (a provider failure raises instead);
    persisted is False when the history append failed and was only logged.
    """
    text: str
    user_id: str
    delivered: bool = True
    persisted: bool


# ==============================================================================
# HTTP REQUEST/RESPONSE MODELS
# ==============================================================================

class GenerateRequest(BaseModel):
    """
    Request body for POST /generate.

    Both fields are optional: a blank prompt becomes the default prompt and a
    blank userId becomes the anonymous user (see RelayService.run_turn).
    """
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)
    user_id: Optional[str] = Field(None, alias="userId")


class GenerateResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class ClearResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
