"""
RUN SCRIPT - Start the chat relay server
========================================

PURPOSE:
  Single entry point to start the backend.

WHAT IT DOES:
  - Imports the FastAPI app from chatrelay.main.
  - Runs it with uvicorn on HOST (default 0.0.0.0) and PORT (default 3000).
  - Set RELOAD=1 to restart the server when Python files change (development).

USAGE:
  python run.py

  Then point the browser front end or `python chat_cli.py` at http://localhost:3000.
  API docs: http://localhost:3000/docs

NOTE:
  Before running, set GEMINI_API_KEY (or LLM_PROVIDER=groq and GROQ_API_KEY) in .env,
  and MONGO_URI if HISTORY_BACKEND=mongo.
"""

import os

import uvicorn

from config import HOST, PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "chatrelay.main:app",
        host=HOST,
        port=PORT,
        reload=os.getenv("RELOAD", "0").lower() in ("1", "true", "yes", "on"),
    )
