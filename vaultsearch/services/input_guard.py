"""
Input guard for free-form search queries.

Validates and normalizes a raw query before it reaches any execution path.
The guard does not log; the router records both outcomes in the audit
trail.
"""
import re
import unicodedata
from typing import Optional

from ..core.config import MAX_QUERY_LENGTH
from ..core.exceptions import InvalidQueryError, SecurityViolation
from ..domain.value_objects import SafeQuery

_ALLOWED_CONTROL = {"\t", "\n", "\r"}
# bidi embedding, override and isolate controls
_BIDI_CONTROLS = {chr(c) for c in list(range(0x202A, 0x202F)) + list(range(0x2066, 0x206A))}

_SQL_METACHARS = re.compile(r";|--|/\*|\*/|=|'\s*(?:or|and)\b|\bxp_|\bsp_")
_SQL_KEYWORDS = re.compile(
    r"\b(?:select|insert|update|delete|drop|union|alter|create|truncate|exec|execute"
    r"|pragma|attach|detach|replace)\b"
)
_SQL_STATEMENTS = re.compile(
    r"\b(?:drop\s+table|delete\s+from|insert\s+into|update\s+\w+\s+set|update\s+set"
    r"|create\s+table|alter\s+table|truncate\s+table|union\s+select)\b"
)

_INJECTION_PATTERNS = (
    re.compile(r"\b(?:ignore|disregard|forget|override)\s+(?:all\s+|any\s+)?(?:the\s+|your\s+)?"
               r"(?:previous|prior|above|earlier|system)\s+(?:instructions?|prompts?|rules?|messages?)"),
    re.compile(r"(?:^|[\s\"'(])system\s*:"),
    re.compile(r"<\|?\s*(?:system|im_start|im_end|endoftext)\s*\|?>"),
    re.compile(r"\[/?inst\]"),
    re.compile(r"<</?sys>>"),
    re.compile(r"#{2,}\s*(?:instruction|system|response)"),
    re.compile(r"\byou are now\b"),
    re.compile(r"\bact as (?:the |a )?(?:system|developer|admin)\b"),
    re.compile(r"\bnew instructions\s*:"),
)

# Allowed, but the query is not handed to the generative model
_SOFT_MARKERS = re.compile(r"[`{}<>]|\b(?:prompt|instructions?|jailbreak|roleplay|pretend)\b")


class InputGuard:
    """
    Validates raw queries and produces SafeQuery values.

    sanitize() is idempotent: sanitizing an already-sanitized query yields
    an equal SafeQuery.
    """

    def __init__(self, max_length: int = MAX_QUERY_LENGTH):
        self.max_length = max_length

    def sanitize(self, raw_query: Optional[str]) -> SafeQuery:
        """
        Validate and normalize a raw query.

        Args:
            raw_query: Query text as typed by the user

        Returns:
            SafeQuery with trimmed, whitespace-collapsed text

        Raises:
            InvalidQueryError: If the query is missing or empty
            SecurityViolation: If the query is too long, contains control
                characters, SQL injection or prompt injection patterns
        """
        if raw_query is None or not isinstance(raw_query, str):
            raise InvalidQueryError("query must be a string")

        for ch in raw_query:
            if ch in _ALLOWED_CONTROL:
                continue
            if unicodedata.category(ch) == "Cc" or ch in _BIDI_CONTROLS:
                raise SecurityViolation("control characters are not allowed")

        text = " ".join(raw_query.split())
        if not text:
            raise InvalidQueryError("query cannot be empty")
        if len(text) > self.max_length:
            raise SecurityViolation(f"query exceeds {self.max_length} characters")

        lowered = text.lower()
        if _SQL_METACHARS.search(lowered) and _SQL_KEYWORDS.search(lowered):
            raise SecurityViolation("query resembles SQL")
        for pattern in _INJECTION_PATTERNS:
            if pattern.search(lowered):
                raise SecurityViolation("query attempts to override model instructions")

        suspicious = bool(_SQL_STATEMENTS.search(lowered))
        allow_generation = not suspicious and not _SOFT_MARKERS.search(lowered)
        return SafeQuery(text=text, allow_generation=allow_generation, suspicious=suspicious)
