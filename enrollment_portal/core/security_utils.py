from typing import Any, Dict, Iterable
import re
import logging

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_ANGLE_RE = re.compile(r"[<>]")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_STORE_UNSAFE_RE = re.compile(r"[<>'\"$.]")

# String fields whose dots and quotes are part of the value
SANITIZE_EXEMPT_FIELDS = frozenset({"userEmail", "email", "imageUrl", "photoURL"})


def sanitize_input(value: Any) -> str:
    """Strip markup and common script vectors from form input"""
    if not value or not isinstance(value, str):
        return ""

    cleaned = _TAG_RE.sub("", value.strip())
    cleaned = _ANGLE_RE.sub("", cleaned)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    return cleaned.strip()


def sanitize_for_firestore(value: str) -> str:
    """Remove characters usable for operator or field-path injection"""
    return _STORE_UNSAFE_RE.sub("", value).strip()


def sanitize_record(data: Dict[str, Any], exempt: Iterable[str] = SANITIZE_EXEMPT_FIELDS) -> Dict[str, Any]:
    """Apply sanitize_for_firestore to every top-level string value.

    Envelope fields (leading underscore) and exempt keys pass through.
    """
    exempt = set(exempt)
    sanitized = {}
    for key, value in data.items():
        if isinstance(value, str) and key not in exempt and not key.startswith("_"):
            sanitized[key] = sanitize_for_firestore(value)
        else:
            sanitized[key] = value
    return sanitized


def sanitize_search_term(term: Any) -> str:
    """Normalize a free-text search term"""
    if not isinstance(term, str):
        return ""
    return term.strip()[:100]
