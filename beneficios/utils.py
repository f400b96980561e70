"""
Utility functions for text normalization, term matching, and logging.
"""
import logging
import re
import unicodedata
from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern


def init_logger(
    name: str = "beneficios",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "beneficios.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean text by collapsing whitespace, keeping case and accents."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def normalize_text(s: Optional[str]) -> str:
    """
    Canonical comparison form of any text.

    Lowercases, strips diacritics through NFD decomposition and collapses
    whitespace. Never fails; ``None`` and empty input give ``""``.
    """
    if not s:
        return ""
    decomposed = unicodedata.normalize("NFD", str(s).lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return clean_text(stripped)


@lru_cache(maxsize=4096)
def keyword_pattern(keyword: str) -> Pattern:
    """
    Compile a word-boundary pattern for a normalized keyword.

    A match only counts when flanked by non-alphanumeric characters or the
    string edges, so "bar" never fires inside "barrio".
    """
    body = re.escape(normalize_text(keyword))
    body = re.sub(r"(\\ )+", r"\\s*", body)
    return re.compile(rf"(?<![a-z0-9]){body}(?![a-z0-9])")


def contains_term(normalized_text: str, term: str) -> bool:
    """Word-boundary containment test on already normalized text."""
    if not normalized_text or not term:
        return False
    return keyword_pattern(term).search(normalized_text) is not None


def slugify(text: Optional[str], max_length: int = 50) -> str:
    """ASCII slug used in stable document identifiers."""
    decomposed = unicodedata.normalize("NFKD", clean_text(text))
    ascii_text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", ascii_text).strip("-").lower()
    return slug[:max_length]


def unique(items: Iterable[str]) -> List[str]:
    """Remove duplicates while preserving order."""
    uniq, seen = [], set()
    for it in items:
        if it not in seen:
            uniq.append(it)
            seen.add(it)
    return uniq
