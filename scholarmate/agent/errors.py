"""Errors raised by the chat core."""


class ChatError(Exception):
    """Base class for chat exchange failures."""

    pass


class SessionUnavailable(ChatError):
    """Raised when no remote chat session could be established."""

    pass


class StreamError(ChatError):
    """Raised when the remote call or its response stream fails.

    Fragments delivered before the failure stay valid.
    """

    pass


class SessionBusy(ChatError):
    """Raised when an exchange is started while another is still streaming."""

    pass
