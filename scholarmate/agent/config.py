"""Chat configuration with environment variable loading.

Pydantic-based configuration for the Gemini chat session.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from scholarmate.agent.prompts import SYSTEM_INSTRUCTION

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _api_key_from_env() -> str:
    return os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY", "")


class ChatConfig(BaseModel):
    """Configuration for the Gemini chat session.

    A missing API key is allowed here: the remote side rejects the call and
    the failure surfaces on the first exchange instead of at startup.

    Attributes:
        api_key: Gemini API key (GOOGLE_API_KEY, falling back to API_KEY).
        model_name: Gemini model identifier.
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = creative).
        enable_search: Whether to attach the Google Search grounding tool.
        system_instruction: Persona instruction bound to every session.
    """

    api_key: str = Field(
        default_factory=_api_key_from_env,
        description="API key for the Gemini API",
    )
    model_name: str = Field(
        default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        description="Model to use",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    enable_search: bool = Field(
        default=True,
        description="Attach Google Search so replies can cite live sources",
    )
    system_instruction: str = Field(
        default=SYSTEM_INSTRUCTION,
        min_length=1,
        description="Persona instruction for the session",
    )

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        """Strip whitespace from the API key."""
        return v.strip()

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def get_chat_config() -> ChatConfig:
    """Create chat configuration from environment.

    Logs an error once when no API key is configured, but still returns a
    usable config so the application can start.

    Returns:
        Configured ChatConfig instance.
    """
    config = ChatConfig()
    if not config.has_api_key:
        logger.error("GOOGLE_API_KEY is missing from environment variables.")
    return config
