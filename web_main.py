"""
Entry point for the Mate Trainer web backend.

Development (hot-reload):
    python web_main.py

The API and WebSocket are served on :8000; a built frontend in
frontend/dist is served from the same port when present.
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "matetrainer.web.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
