"""
SERVICES PACKAGE
================

Business logic lives here. The API layer (chatrelay.main) calls these services;
they don't handle HTTP, only turns, provider calls, and stored history.

MODULES:
    errors             - ProviderError / StoreError
    completion_gateway - one prompt to the provider (Gemini or Groq), one text back
    history_store      - per-user message log: memory and JSON backends + factory
    mongo_store        - MongoDB backend for the history store
    relay_service      - one chat turn: gateway, then best-effort history append
"""
