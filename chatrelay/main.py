"""
CHAT RELAY MAIN API
===================

This module defines the FastAPI application and all HTTP endpoints. A browser
(or the terminal client in chat_cli.py) sends prompts here; the relay forwards
them to the completion provider and keeps each user's history.

ENDPOINTS:
  GET    /                  - Returns API name and list of endpoints.
  GET    /health            - {"status": "ok"} (for monitoring / uptime checks).
  POST   /generate          - One chat turn: {prompt?, userId?} -> {text}.
  GET    /history/{user_id} - The user's messages, oldest first ([] if none).
  DELETE /history/{user_id} - Empty the user's history -> {success: true}.

ERRORS:
  Failures come back as {"error": "...", "details"?: "..."} with status 500;
  details is only filled in when RELAY_VERBOSE is on. A history write failing
  during /generate is NOT an error for the caller: the reply is still returned.

STARTUP:
  The lifespan function builds the completion gateway, the history store
  (HISTORY_BACKEND) and the relay service. On shutdown it closes the store.
"""

from contextlib import asynccontextmanager
import logging
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from chatrelay.models import (
    ClearResponse,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    Message,
)
from chatrelay.services.completion_gateway import CompletionGateway
from chatrelay.services.errors import ProviderError, StoreError
from chatrelay.services.history_store import create_history_store
from chatrelay.services.relay_service import RelayService
from config import HISTORY_BACKEND, HOST, LOG_LEVEL, PORT, RELAY_VERBOSE


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if RELAY_VERBOSE else getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("chatrelay")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCE
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all route handlers.
relay_service: RelayService = None


def _error_response(message: str, exc: Optional[Exception] = None, status_code: int = 500) -> JSONResponse:
    """Build the {"error", "details"?} body; details only in verbose mode."""
    body = ErrorResponse(error=message, details=str(exc) if (exc is not None and RELAY_VERBOSE) else None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _not_ready() -> JSONResponse:
    return _error_response("Relay service not initialized", status_code=503)


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the services on startup and close the history store on shutdown.

    If relay_service was already set (e.g. by a test), it is kept as-is.
    """
    global relay_service

    logger.info("=" * 60)
    logger.info("Chat relay - Starting Up...")
    logger.info("=" * 60)

    try:
        if relay_service is None:
            logger.info("Initializing completion gateway...")
            gateway = CompletionGateway()

            logger.info("Initializing history store (backend=%s)...", HISTORY_BACKEND)
            history_store = create_history_store(HISTORY_BACKEND)

            relay_service = RelayService(gateway, history_store)

        logger.info("=" * 60)
        logger.info("Service Status:")
        logger.info("    - Completion Gateway: Ready")
        logger.info("    - History Store: Ready (%s)", type(relay_service.history_store).__name__)
        logger.info("    - Relay Service: Ready")
        logger.info("Server is running on http://localhost:%s", PORT)
        logger.info("=" * 60)
    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down chat relay...")
    if relay_service:
        relay_service.history_store.close()
    logger.info("Goodbye!")


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="Chat Relay API",
    description="Relays chat prompts to a text-completion provider and keeps per-user history",
    lifespan=lifespan
)

# Allow any origin so a frontend on another port or device can call this API without CORS errors.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================================================
# API ENDPOINTS
# =========================================================================
# Handlers that touch the gateway or the store are plain `def`, so FastAPI
# runs them in its threadpool and a slow provider call doesn't block the loop.

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "Chat Relay API",
        "endpoints": {
            "/generate": "POST {prompt, userId} -> {text}",
            "/history/{user_id}": "GET the user's messages, DELETE to clear them",
            "/health": "Health check"
        }
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok")


@app.post("/generate", response_model=GenerateResponse, responses={500: {"model": ErrorResponse}})
def generate(request: Optional[GenerateRequest] = None):
    """
    One chat turn.

    REQUEST BODY (both fields optional):
    {
        "prompt": "Hello",
        "userId": "user_k3j5h2l9x0a1b"
    }

    RESPONSE:
    {
        "text": "Hi there! How can I help?"
    }
    """
    if not relay_service:
        return _not_ready()

    request = request or GenerateRequest()
    try:
        result = relay_service.run_turn(request.prompt, request.user_id)
    except ProviderError as e:
        logger.error(f"Error generating content: {e}", exc_info=True)
        return _error_response("Failed to generate content", e)

    if not result.persisted:
        logger.warning("Reply for user %s returned without being saved to history", result.user_id)
    return GenerateResponse(text=result.text)


@app.get("/history/{user_id}", response_model=List[Message], responses={500: {"model": ErrorResponse}})
def get_history(user_id: str):
    """Return the user's messages in order; [] if the user has no history."""
    if not relay_service:
        return _not_ready()

    try:
        return relay_service.get_history(user_id)
    except StoreError as e:
        logger.error(f"Error fetching chat history: {e}", exc_info=True)
        return _error_response("Failed to fetch chat history", e)


@app.delete("/history/{user_id}", response_model=ClearResponse, responses={500: {"model": ErrorResponse}})
def clear_history(user_id: str):
    """Empty the user's history (the session record itself is kept)."""
    if not relay_service:
        return _not_ready()

    try:
        relay_service.clear_history(user_id)
    except StoreError as e:
        logger.error(f"Error clearing chat history: {e}", exc_info=True)
        return _error_response("Failed to clear chat history", e)
    return ClearResponse(success=True)


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m chatrelay.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py); used if someone does python -m chatrelay.main"""
    uvicorn.run(
        "chatrelay.main:app",
        host=HOST,
        port=PORT,
        log_level="info"
    )

if __name__ == "__main__":
    run()
