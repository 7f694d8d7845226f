"""ScholarMate - a streaming study companion backed by Gemini.

Combines FastAPI for HTTP streaming, google-genai for the model session,
NiceGUI for the chat interface, and Pydantic for data validation.

Components:
    - agent: Session lifecycle, reply streaming and transcript handling
    - api: HTTP endpoints and streaming responses
    - ui: Web interface for chat interactions
    - models: Messages, citations and request/response schemas
"""

__version__ = "0.1.0"
