"""Test package for ScholarMate.

Structure:
    - unit/: Individual function and class tests
    - integration/: HTTP endpoint tests through the ASGI app
    - fakes.py: Scriptable stand-in for the Gemini chat API

Leverages pytest with pytest-check for soft assertions.
"""
