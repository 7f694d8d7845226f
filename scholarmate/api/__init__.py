"""FastAPI endpoints for ScholarMate.

Endpoints:
    - GET /health: Service health status
    - POST /chat/stream: Streamed reply over Server-Sent Events
    - POST /chat/reset: Start a new chat session
    - GET /chat/messages: Current transcript
"""

from scholarmate.api.app import create_app

__all__ = ["create_app"]
