"""
RUN SCRIPT - Start the HF Chatbot server
========================================

PURPOSE:
  Single entry point to start the backend.

WHAT IT DOES:
  - Imports the FastAPI app from chatbot.main.
  - Runs it with uvicorn on HOST:PORT from config (0.0.0.0:3000 by default).
  - reload=True means any change to Python files will restart the server.
    Restarting drops every in-memory conversation.

USAGE:
  python run.py

  Then open http://localhost:3000 in the browser, or use the API from another app.
  API docs: http://localhost:3000/docs

NOTE:
  Before running, set HUGGINGFACE_API_KEY in .env.
"""

import uvicorn

from config import HOST, PORT

if __name__ == "__main__":
    uvicorn.run(
        "chatbot.main:app",
        host=HOST,
        port=PORT,
        reload=True
    )
