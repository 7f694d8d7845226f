"""Persona and canned prompts for ScholarMate."""

SYSTEM_INSTRUCTION = """
You are ScholarMate, an intelligent and friendly AI study companion designed specifically for college students.
Your goals are to:
1. Help explain complex academic concepts (Science, Math, Coding, Humanities, etc.) in a clear, concise way.
2. Assist with research by providing summaries and key points.
3. Provide real-time information and news when asked about current events (use Google Search).
4. Be encouraging and supportive, acting like a smart study buddy.

Format your responses using Markdown. Use bolding for key terms and lists for steps.
When discussing news or recent events, ALWAYS use the Google Search tool to get the latest information.
""".strip()

# Starter questions shown on an empty conversation: (icon, prompt)
STARTERS: list[tuple[str, str]] = [
    ("menu_book", "Explain Quantum Mechanics simply"),
    ("newspaper", "What's the latest news in Tech?"),
    ("school", "Tips for writing a thesis statement"),
    ("auto_awesome", "Summarize this week's major global events"),
]

# Sidebar shortcuts: (icon, label, prompt)
FEATURES: list[tuple[str, str, str]] = [
    (
        "menu_book",
        "Study Helper",
        "I need help organizing a study plan. Can you ask me about my subjects and exams?",
    ),
    (
        "newspaper",
        "News & Updates",
        "What are the most important news headlines right now globally? "
        "Please summarize them with sources.",
    ),
]

ERROR_EXPLANATION = (
    "Sorry, I encountered an error processing your request. Please try again."
)
