"""Unit tests for individual components in isolation.

Coverage:
    - models/: Messages, citations and transcript
    - agent/: Config, session lifecycle, reply streaming and error marking
    - ui/: Pure rendering helpers

Uses the fake remote chat instead of Gemini.
"""
