"""NiceGUI chat interface with SSE streaming support."""

import json
import os
import re
from collections.abc import Callable
from datetime import datetime
from urllib.parse import urlparse

import httpx
from nicegui import ui

from scholarmate.agent.prompts import ERROR_EXPLANATION, FEATURES, STARTERS
from scholarmate.models.chat import GroundingMetadata, GroundingSource, dedupe_sources

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


def markdown_to_html(text: str) -> str:
    """Convert markdown to HTML for chat display.

    Supports: bold, italic, inline code, code blocks, links, lists.
    """
    # Escape HTML entities first
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    # Code blocks (```code```)
    text = re.sub(
        r"```(\w*)\n?([\s\S]*?)```",
        r'<pre class="bg-slate-800 text-slate-100 rounded-lg p-3 my-2 overflow-x-auto text-xs"><code>\2</code></pre>',
        text,
    )

    # Inline code (`code`)
    text = re.sub(
        r"`([^`]+)`",
        r'<code class="bg-slate-100 text-indigo-700 px-1.5 py-0.5 rounded text-xs">\1</code>',
        text,
    )

    # Bold (**text** or __text__)
    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"__(.+?)__", r"<strong>\1</strong>", text)

    # Italic (*text* or _text_)
    text = re.sub(r"\*([^*]+)\*", r"<em>\1</em>", text)
    text = re.sub(r"_([^_]+)_", r"<em>\1</em>", text)

    # Links [text](url)
    text = re.sub(
        r"\[([^\]]+)\]\(([^)]+)\)",
        r'<a href="\2" class="text-indigo-600 underline" target="_blank">\1</a>',
        text,
    )

    text = _wrap_list_items(text, r"^[-*]\s+", "ul", "list-disc")
    text = _wrap_list_items(text, r"^\d+\.\s+", "ol", "list-decimal")

    # Line breaks (preserve newlines as <br>)
    return text.replace("\n", "<br>")


def _wrap_list_items(text: str, marker: str, tag: str, style: str) -> str:
    """Turn consecutive lines starting with `marker` into an HTML list."""
    in_list = False
    result = []
    for line in text.split("\n"):
        stripped = line.strip()
        if re.match(marker, stripped):
            if not in_list:
                result.append(f'<{tag} class="{style} list-inside my-2 space-y-1">')
                in_list = True
            item = re.sub(marker, "", stripped)
            result.append(f"<li>{item}</li>")
        else:
            if in_list:
                result.append(f"</{tag}>")
                in_list = False
            result.append(line)
    if in_list:
        result.append(f"</{tag}>")
    return "\n".join(result)


def source_label(source: GroundingSource) -> str:
    """Display text for a citation: its title, else the host name."""
    return source.title or urlparse(source.uri).hostname or source.uri


CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<link href="https://fonts.googleapis.com/icon?family=Material+Icons" rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f8fafc; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.08);
        overflow: hidden;
    }

    .header { background: #4f46e5; }

    .message-user {
        background: #4f46e5;
        color: white;
        border-radius: 18px 4px 18px 18px;
    }

    .message-model {
        background: white;
        color: #1e293b;
        border: 1px solid #f1f5f9;
        border-radius: 4px 18px 18px 18px;
    }

    .message-error {
        background: #fef2f2;
        color: #991b1b;
        border: 1px solid #fca5a5;
    }

    .avatar-user { background: #4f46e5; }
    .avatar-model { background: white; border: 1px solid #e2e8f0; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #818cf8;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.15s; }
    .typing-dot:nth-child(3) { animation-delay: 0.3s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .input-box {
        background: #f8fafc;
        border: 1px solid #e2e8f0;
        border-radius: 12px;
        transition: border-color 0.2s;
    }
    .input-box:focus-within { border-color: #6366f1; }

    .send-btn { background: #4f46e5 !important; }

    .citation {
        background: #eef2ff;
        color: #4338ca;
        border: 1px solid #e0e7ff;
        max-width: 200px;
    }

    /* Markdown styling */
    .message-model strong { font-weight: 600; }
    .message-model em { font-style: italic; }
    .message-model pre { margin: 0.5rem 0; }
    .message-model code { font-family: 'Menlo', 'Monaco', monospace; }
    .message-model ul, .message-model ol { margin: 0.5rem 0; }
    .message-model a { color: #4f46e5; }
</style>
"""


class ChatView:
    """Client-side view of the conversation shown on the page."""

    def __init__(self) -> None:
        self.messages: list[dict] = []
        self.is_streaming: bool = False

    def add_message(
        self,
        role: str,
        content: str,
        sources: list[GroundingSource] | None = None,
        is_error: bool = False,
    ) -> None:
        self.messages.append({
            "role": role,
            "content": content,
            "sources": sources or [],
            "is_error": is_error,
            "time": datetime.now().strftime("%I:%M %p"),
        })


async def stream_chat_response(
    message: str,
    on_chunk: Callable[[str, list[GroundingSource]], None],
    on_complete: Callable[[], None],
    on_error: Callable[[str], None],
) -> None:
    """Consume SSE stream from /chat/stream endpoint."""
    async with httpx.AsyncClient(timeout=120.0) as client:
        try:
            async with client.stream(
                "POST",
                f"{API_BASE_URL}/chat/stream",
                json={"message": message},
                headers={"Accept": "text/event-stream"},
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data = json.loads(line[6:])
                    if data.get("error"):
                        on_error(data["error"])
                        return
                    sources = [GroundingSource.model_validate(s) for s in data.get("sources", [])]
                    if data.get("done"):
                        if sources:
                            on_chunk("", sources)
                        on_complete()
                        return
                    if data.get("content") or sources:
                        on_chunk(data.get("content", ""), sources)
        except httpx.HTTPStatusError as e:
            on_error(f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            on_error(f"Connection failed: {e}")


async def reset_remote_chat() -> None:
    """Ask the API to replace the chat session."""
    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            response = await client.post(f"{API_BASE_URL}/chat/reset")
            response.raise_for_status()
        except httpx.HTTPError as e:
            ui.notify(f"Could not reset chat: {e}", type="negative")


@ui.page("/")
def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    view = ChatView()

    messages_container: ui.column
    response_label: ui.html
    sources_row: ui.row
    input_field: ui.textarea
    send_btn: ui.button

    def render_avatar(is_user: bool) -> None:
        css = "avatar-user" if is_user else "avatar-model"
        icon = "person" if is_user else "smart_toy"
        color = "text-white" if is_user else "text-indigo-600"
        with ui.element("div").classes(
            f"w-8 h-8 rounded-full flex items-center justify-center {css}"
        ):
            ui.icon(icon).classes(f"{color} text-base")

    def render_sources(sources: list[GroundingSource]) -> None:
        unique = dedupe_sources(GroundingMetadata(sources=sources))
        if not unique:
            return
        with ui.column().classes("mt-3 pt-3 border-t border-slate-200 gap-2"):
            with ui.row().classes("items-center gap-1"):
                ui.icon("open_in_new").classes("text-xs text-slate-500")
                ui.label("Sources & Citations").classes("text-xs font-semibold text-slate-500")
            with ui.row().classes("flex-wrap gap-2"):
                for source in unique:
                    ui.link(source_label(source), source.uri, new_tab=True).classes(
                        "citation text-xs px-2 py-1 rounded truncate"
                    ).tooltip(source.title or source.uri)

    def render_message(msg: dict) -> None:
        is_user = msg["role"] == "user"
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-model"
        if msg["is_error"]:
            bubble += " message-error"

        with ui.row().classes(f"w-full {align} gap-3 items-start"):
            if not is_user:
                render_avatar(False)
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-5 py-3 {bubble}"):
                    if is_user:
                        content = msg["content"].replace("\n", "<br>")
                    else:
                        content = markdown_to_html(msg["content"])
                    if content:
                        ui.html(content, sanitize=False).classes("text-sm leading-relaxed")
                    if msg["is_error"]:
                        with ui.row().classes("items-center gap-2"):
                            ui.icon("error_outline").classes("text-base")
                            ui.label(ERROR_EXPLANATION).classes("text-sm")
                    if not is_user:
                        render_sources(msg["sources"])
                ui.label(msg["time"]).classes(
                    f"text-[10px] text-slate-400 {'self-end' if is_user else 'self-start'}"
                )
            if is_user:
                render_avatar(True)

    def render_welcome() -> None:
        with ui.column().classes("w-full mt-12 items-center text-center gap-2"):
            with ui.element("div").classes(
                "w-16 h-16 bg-indigo-100 rounded-2xl flex items-center justify-center mb-4"
            ):
                ui.icon("school").classes("text-indigo-600 text-3xl")
            ui.label("Hello, Student!").classes("text-2xl font-bold text-slate-800")
            ui.label(
                "I'm ScholarMate. I can help you study, research topics, or catch up "
                "on the latest news. How can I help you today?"
            ).classes("text-slate-500 max-w-md mb-8")
            with ui.grid(columns=2).classes("w-full max-w-2xl gap-4"):
                for icon, prompt in STARTERS:
                    with ui.button(on_click=lambda p=prompt: submit(p)).props(
                        "flat no-caps align=left"
                    ).classes("bg-white border border-slate-200 rounded-xl p-4"):
                        ui.icon(icon).classes("text-indigo-500 mr-3")
                        ui.label(prompt).classes("text-sm text-slate-700 font-medium")

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not view.messages:
                render_welcome()
            else:
                for msg in view.messages:
                    render_message(msg)

    def render_typing_indicator() -> ui.row:
        with ui.row().classes("w-full justify-start gap-3 items-end") as row:
            render_avatar(False)
            with ui.element("div").classes("message-model px-4 py-3"):
                with ui.row().classes("gap-1"):
                    for _ in range(3):
                        ui.element("div").classes("typing-dot")
        return row

    async def submit(text: str) -> None:
        nonlocal response_label, sources_row
        text = text.strip()
        if not text or view.is_streaming:
            return

        view.is_streaming = True
        send_btn.disable()
        input_field.disable()

        view.add_message("user", text)
        refresh_messages()

        with messages_container:
            typing_row = render_typing_indicator()

        accumulated = ""
        sources: list[GroundingSource] = []
        started = False
        msg_time = datetime.now().strftime("%I:%M %p")

        def on_chunk(content: str, chunk_sources: list[GroundingSource]) -> None:
            nonlocal accumulated, sources, started, response_label, sources_row
            if not started:
                started = True
                typing_row.delete()
                with (
                    messages_container,
                    ui.row().classes("w-full justify-start gap-3 items-start"),
                ):
                    render_avatar(False)
                    with ui.column().classes("max-w-[75%] gap-1"):
                        with ui.element("div").classes("message-model px-5 py-3"):
                            response_label = ui.html("", sanitize=False).classes(
                                "text-sm leading-relaxed"
                            )
                            sources_row = ui.row().classes("w-full")
                        ui.label(msg_time).classes("text-[10px] text-slate-400")
            accumulated += content
            response_label.set_content(markdown_to_html(accumulated))
            if chunk_sources and chunk_sources != sources:
                sources = chunk_sources
                sources_row.clear()
                with sources_row:
                    render_sources(sources)

        def finish() -> None:
            view.is_streaming = False
            send_btn.enable()
            input_field.enable()
            refresh_messages()

        def on_complete() -> None:
            view.add_message("model", accumulated, sources)
            finish()

        def on_error(error: str) -> None:
            if not started:
                typing_row.delete()
            view.add_message("model", accumulated, sources, is_error=True)
            finish()
            ui.notify(error, type="negative")

        await stream_chat_response(text, on_chunk, on_complete, on_error)

    async def send_message() -> None:
        text = input_field.value
        input_field.value = ""
        await submit(text)

    async def clear_chat() -> None:
        confirm_dialog.close()
        await reset_remote_chat()
        view.messages.clear()
        refresh_messages()

    def new_chat() -> None:
        if view.is_streaming:
            return
        confirm_dialog.open()

    with ui.dialog() as confirm_dialog, ui.card().classes("p-6 gap-4"):
        ui.label("Are you sure you want to clear the current chat history?").classes(
            "text-slate-700"
        )
        with ui.row().classes("w-full justify-end gap-2"):
            ui.button("Cancel", on_click=confirm_dialog.close).props("flat no-caps")
            ui.button("Clear", on_click=clear_chat).props("unelevated no-caps").classes(
                "send-btn text-white"
            )

    # === UI Layout ===
    with ui.left_drawer(value=True).classes("bg-white border-r border-slate-200 p-4"):
        with ui.row().classes("items-center gap-2 mb-4"):
            ui.icon("school").classes("text-indigo-600 text-2xl")
            ui.label("ScholarMate").classes("text-lg font-bold text-slate-800")
        ui.button("New Chat", icon="add_circle", on_click=new_chat).props(
            "unelevated no-caps"
        ).classes("w-full send-btn text-white rounded-xl mb-6")
        ui.label("FEATURES").classes("text-xs font-semibold text-slate-400 tracking-wider mb-2")
        for icon, label, prompt in FEATURES:
            ui.button(label, icon=icon, on_click=lambda p=prompt: submit(p)).props(
                "flat no-caps align=left"
            ).classes("w-full text-slate-600 text-sm")

    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("school").classes("text-white text-3xl")
                ui.label("ScholarMate").classes("text-lg font-semibold text-white")
            ui.button(icon="add", on_click=new_chat).props("flat round color=white")

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-slate-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        # Input
        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t"):
            with ui.element("div").classes("flex-grow input-box px-3 py-2"):
                input_field = (
                    ui.textarea(placeholder="Ask ScholarMate anything...")
                    .props("autogrow borderless dense rows=1")
                    .classes("w-full")
                    .on("keydown.enter.prevent", send_message)
                )
            send_btn = (
                ui.button(icon="send", on_click=send_message)
                .props("round unelevated")
                .classes("send-btn")
            )


def main() -> None:
    ui.run(title="ScholarMate", port=8080, reload=False)


if __name__ in {"__main__", "__mp_main__"}:
    main()
