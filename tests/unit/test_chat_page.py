"""Unit tests for the pure helpers of the chat page."""

import pytest_check as check

from scholarmate.models.chat import GroundingSource
from scholarmate.ui.chat_page import ChatView, markdown_to_html, source_label


class TestSourceLabel:
    """Citation chip text."""

    def test_prefers_title(self) -> None:
        assert source_label(GroundingSource(uri="https://x.test/a", title="Physics")) == "Physics"

    def test_falls_back_to_host(self) -> None:
        assert source_label(GroundingSource(uri="https://news.example.org/story")) == (
            "news.example.org"
        )


class TestMarkdownToHtml:
    """Markdown subset rendering."""

    def test_escapes_html(self) -> None:
        assert "&lt;script&gt;" in markdown_to_html("<script>")

    def test_bold_and_lists(self) -> None:
        html = markdown_to_html("**Key**\n- one\n- two\n1. first")

        check.is_in("<strong>Key</strong>", html)
        check.is_in("<li>one</li>", html)
        check.equal(html.count("<ul"), 1)
        check.equal(html.count("<ol"), 1)


class TestChatView:
    def test_add_message_defaults(self) -> None:
        view = ChatView()
        view.add_message("model", "partial", is_error=True)

        message = view.messages[0]
        check.equal(message["content"], "partial")
        check.equal(message["sources"], [])
        check.is_true(message["is_error"])
