# client/modes.py

import datetime
from typing import Dict, NamedTuple


class Mode(NamedTuple):
    id: str
    label: str
    prompt: str


IMAGE_MODE = "image"
DEFAULT_MODE = "general"

MODES: Dict[str, Mode] = {
    m.id: m
    for m in (
        Mode("general", "General", (
            "You are a friendly AI assistant helping an IT undergraduate. "
            "Explain things simply with examples, keep answers updated, and provide practical help."
        )),
        Mode("coding", "Coding", (
            "You are a professional coding tutor helping an IT undergraduate. "
            "Explain concepts clearly with step-by-step instructions. "
            "Use modern frameworks and current best practices."
        )),
        Mode("study", "Study", (
            "You help university students understand academic subjects. "
            "Explain topics in simple English with examples, bullet points, and clear reasoning."
        )),
        Mode("cv", "CV & Jobs", (
            "You help students improve CVs, cover letters, LinkedIn profiles, and job applications. "
            "Give recruitment trends, ATS-friendly suggestions, modern skill keywords, and a professional tone."
        )),
        Mode("translation", "Translation", (
            "You are a translator and explainer. Translate between English and the language the user asks for accurately. "
            "Explain meanings simply when needed."
        )),
        Mode(IMAGE_MODE, "Image", (
            "You are an AI that helps generate images from text prompts. "
            "The actual image will be produced by a separate image model. "
            "Help the user improve prompts if needed."
        )),
    )
}


def date_line(now: datetime.date = None) -> str:
    now = now or datetime.date.today()
    return (
        f"Today's date is {now.strftime('%B %d, %Y')}. "
        "Use the most accurate and up-to-date knowledge available. "
        "If you are unsure about anything, answer honestly instead of guessing."
    )


def system_prompt(mode_id: str, now: datetime.date = None) -> str:
    """System prompt for a mode; unknown modes use the general prompt."""
    mode = MODES.get(mode_id, MODES[DEFAULT_MODE])
    return f"{mode.prompt} {date_line(now)}"
