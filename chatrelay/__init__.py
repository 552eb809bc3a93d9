"""
CHAT RELAY APPLICATION PACKAGE
==============================

Main Python package for the chat relay backend and its terminal client.

  from chatrelay.main import app
  from chatrelay.models import Message, GenerateRequest
  from chatrelay.services.relay_service import RelayService

FILE STRUCTURE:
  chatrelay/
    __init__.py   - This file; marks 'chatrelay' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/generate, /history, /health).
    models.py     - Pydantic models for messages, sessions, requests and responses.
    services/     - Completion gateway, history stores, and the turn relay.
    client/       - Client-side state (identity, theme) and the HTTP chat client.
    utils/        - Small helpers (credential masking).
"""
