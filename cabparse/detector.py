"""Dialect detection from filename extension with content sniffing fallback."""

from __future__ import annotations

import logging
import re
from pathlib import PurePath
from typing import Dict, List, Optional, Tuple

from .models import Dialect

logger = logging.getLogger(__name__)

EXTENSION_MAP: Dict[str, Dialect] = {
    ".xml": Dialect.MARKUP,
    ".cab": Dialect.LINE_A,
    ".moz": Dialect.LINE_A,
    ".cabx": Dialect.LINE_B,
    ".dat": Dialect.LINE_B,
    ".des": Dialect.LINE_B,
    ".mzb": Dialect.MODEL,
}

SUPPORTED_EXTENSIONS = tuple(EXTENSION_MAP)

_MARKUP_SIGNATURE = re.compile(r"^\s*(?:<\?xml\b|<[A-Za-z_][\w.\-]*[\s/>])")

_PREFIX_SIGNATURES: List[Tuple[re.Pattern, Dialect]] = [
    (re.compile(r"^\s*(?:CABX|DAT|DES)_\w", re.IGNORECASE | re.MULTILINE), Dialect.LINE_B),
    (re.compile(r"^\s*(?:CAB|MOZ)_\w", re.IGNORECASE | re.MULTILINE), Dialect.LINE_A),
    (re.compile(r"^\s*MZB_\w", re.IGNORECASE | re.MULTILINE), Dialect.MODEL),
]


def dialect_for_extension(filename: str) -> Optional[Dialect]:
    """Return the dialect registered for *filename*'s extension, if any."""
    return EXTENSION_MAP.get(PurePath(filename).suffix.lower())


def sniff_dialect(text: str) -> Optional[Dialect]:
    """Guess the dialect from content alone.

    A markup prolog or leading root tag wins; otherwise the earliest
    dialect-prefixed header token decides.
    """
    if _MARKUP_SIGNATURE.match(text):
        return Dialect.MARKUP

    best: Optional[Tuple[int, Dialect]] = None
    for pattern, dialect in _PREFIX_SIGNATURES:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), dialect)
    return best[1] if best else None


def detect_format(filename: str, text: str) -> Dialect:
    """Classify *text* into one of the four dialects. Never raises."""
    dialect = dialect_for_extension(filename or "")
    if dialect is not None:
        return dialect

    dialect = sniff_dialect(text or "")
    if dialect is not None:
        logger.debug("Detected %s for '%s' from content", dialect.value, filename)
        return dialect

    logger.debug("No dialect signature in '%s', falling back to markup", filename)
    return Dialect.MARKUP
