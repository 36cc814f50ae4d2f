"""Choices offered at each wizard step."""

from .models import OTHER_STYLE

STYLES = [
    "educational",
    "storytelling",
    "tutorial",
    "product review",
    "comedy",
    "motivational",
    "news recap",
    OTHER_STYLE,
]

TONES = [
    "casual",
    "professional",
    "energetic",
    "humorous",
    "inspirational",
    "calm",
]

# Target video lengths in seconds
DURATIONS = [15, 30, 60, 90, 180]

# Display name -> short code sent to the generation service
LANGUAGE_CODES = {
    "English": "en",
    "Spanish": "es",
    "French": "fr",
    "German": "de",
    "Italian": "it",
    "Portuguese": "pt",
    "Dutch": "nl",
    "Polish": "pl",
    "Russian": "ru",
    "Turkish": "tr",
    "Arabic": "ar",
    "Hindi": "hi",
    "Indonesian": "id",
    "Vietnamese": "vi",
    "Japanese": "ja",
    "Korean": "ko",
    "Chinese": "zh",
}

LANGUAGES = list(LANGUAGE_CODES)


def language_code(name: str) -> str:
    """Map a language display name to its short code; unknown names pass through."""
    return LANGUAGE_CODES.get(name, name)
