"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with streaming support
    - Citation chips, one per unique source
    - Starter prompts and "New Chat" reset

Contains minimal business logic. Delegates all operations to the API.
"""
