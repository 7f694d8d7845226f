"""Integration tests for components working together as a system.

Coverage:
    - API endpoints with real HTTP requests over ASGITransport
    - Streaming, reset and transcript flows against the fake remote
    - Live Gemini round trip (when GOOGLE_API_KEY is configured)
"""
