# flowzone/assistant.py

"""
Rule-based replies for the FlowZone chat assistant.

Rules are checked in order and the first match wins, so a message that says
both "hello" and "help" gets the greeting. Keywords are plain substrings of
the lowercased message: "hi" also matches inside "this" or "within".
"""

GREETING = "Hello! I'm your FlowZone assistant. How can I help you today?"
TASK_PROMPT = "I can help you create a task. What's the title of your task?"
CALENDAR_PROMPT = (
    "I can help you manage your calendar. Would you like to view your "
    "upcoming events or schedule a new one?"
)
FOCUS_PROMPT = (
    "The Pomodoro technique can help you stay focused. Would you like me to "
    "set up a focus timer for you?"
)
HELP_REPLY = (
    "I can help you with task management, scheduling, focus techniques, and "
    "productivity tips. What would you like assistance with?"
)
DEFAULT_REPLY = (
    "I'm here to help you be more productive. You can ask me about tasks, "
    "scheduling, focus techniques, or productivity tips."
)


def generate_ai_response(message: str) -> str:
    text = (message or "").lower()

    if "hello" in text or "hi" in text:
        return GREETING
    if "task" in text and ("create" in text or "add" in text):
        return TASK_PROMPT
    if "calendar" in text or "schedule" in text:
        return CALENDAR_PROMPT
    if "timer" in text or "focus" in text:
        return FOCUS_PROMPT
    if "help" in text:
        return HELP_REPLY
    return DEFAULT_REPLY
