"""Text sanitisation and normalisation helpers shared by ingestion and embedding."""

import re
import unicodedata

# NUL plus C0 controls and DEL, keeping \t (0x09), \n (0x0A) and \r (0x0D)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_content(content: str) -> str:
    """Strip null bytes and control characters, then trim."""
    if not content:
        return ""
    return _CONTROL_CHARS.sub("", content).strip()


def normalize_text(text: str) -> str:
    """NFKC-normalise, collapse whitespace runs to a single space and trim."""
    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", unicodedata.normalize("NFKC", text)).strip()
