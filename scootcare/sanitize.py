import re
from .config import MAX_MESSAGE_CHARS

def sanitize_user_text(text: str) -> str:
    sanitized = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", " ", text)
    sanitized = re.sub(r"[ \t]{2,}", " ", sanitized)
    return sanitized.strip()[:MAX_MESSAGE_CHARS]
