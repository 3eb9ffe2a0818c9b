"""
Query parsing utilities: cue detection, classification and filter building.

Everything here is pure. The router decides what to do with the result.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from ..domain.value_objects import EntityCategory, QueryType, StructuredFilter
from .entity_patterns import category_named_in, find_known_vendor, resolve_time_range

STOP_WORDS = frozenset({
    "a", "an", "and", "or", "the", "of", "to", "in", "on", "for", "at", "by",
    "with", "from", "about", "into", "is", "are", "was", "were", "be", "been",
    "i", "me", "my", "we", "our", "you", "your", "it", "its", "this", "that",
    "these", "those", "what", "which", "who", "did", "do", "does", "have", "has",
    "had", "show", "find", "get", "list", "give", "all", "any", "some", "please",
    "document", "documents", "doc", "docs", "file", "files", "much", "many",
})

_TOKEN = re.compile(r"[a-z0-9]+")

_BETWEEN_AMOUNT = re.compile(
    r"between\s+\$?\s*([\d,]+(?:\.\d+)?)\s+(?:and|to)\s+\$?\s*([\d,]+(?:\.\d+)?)"
)
_MIN_AMOUNT = re.compile(
    r"(?:above|over|more than|greater than|at least)\s*\$\s*([\d,]+(?:\.\d+)?)"
    r"|(?:above|over|more than|greater than|at least)\s+([\d,]+(?:\.\d+)?)\s*(?:dollars|usd)?\b(?!\s*(?:days|weeks|months|years))"
)
_MAX_AMOUNT = re.compile(
    r"(?:below|under|less than|lower than|at most)\s*\$\s*([\d,]+(?:\.\d+)?)"
    r"|(?:below|under|less than|lower than|at most)\s+([\d,]+(?:\.\d+)?)\s*(?:dollars|usd)?\b(?!\s*(?:days|weeks|months|years))"
)
_DOLLAR_MENTION = re.compile(r"\$\s*\d")

# Phrases that make a query answerable by a sum/average/count on their own
_STRUCTURED_AGGREGATION = (
    re.compile(r"how much\b.*\b(?:spent|spend|cost|costs|paid|pay)\b"),
    re.compile(r"\bhow many\b"),
    re.compile(r"\b(?:sum|total|average|avg|count)\s+(?:of|from|at|on|for|spent|spending)\b"),
    re.compile(r"\btotal\b.*\b(?:at|from|on|for)\s+\w+"),
)
_AGGREGATION_INTENT = re.compile(
    r"\b(?:how much|how many|total|sum|average|avg|count|spent|spend|spending)\b"
)

_ANALYTICAL = (
    re.compile(r"\bhow\b(?!\s+(?:much|many)\b)"),
    re.compile(r"\bwhy\b"),
    re.compile(r"\bcompar(?:e|ed|es|ing|ison)\b"),
    re.compile(r"\btrends?\b"),
    re.compile(r"\bexplain\b"),
    re.compile(r"\bdifference between\b"),
    re.compile(r"\brecommend"),
    re.compile(r"\bwhat should\b"),
    re.compile(r"\banaly(?:sis|ze|se)\b"),
    re.compile(r"\bpatterns?\b"),
    re.compile(r"\bhighest\b"),
    re.compile(r"\blowest\b"),
    re.compile(r"\bsummar(?:y|ize|ise)\b"),
)

_QUERY_PREPOSITION_VENDOR = re.compile(r"\b(?:at|from)\s+([a-z][\w'&]*)")
_NOT_A_VENDOR = STOP_WORDS | {"last", "this", "past", "least", "most", "home", "work"}


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric tokens without stop words or 1-char tokens."""
    return [t for t in _TOKEN.findall(text.lower()) if len(t) > 1 and t not in STOP_WORDS]


@dataclass(frozen=True)
class QueryCues:
    """What the parser recognized in a query."""
    vendor: Optional[str] = None
    known_vendor: bool = False
    category: Optional[EntityCategory] = None
    time_range: Optional[Tuple[date, date]] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    mentions_amount: bool = False
    structured_aggregation: bool = False
    aggregate: bool = False
    analytical: bool = False
    terms: Tuple[str, ...] = ()

    def strong_cues(self) -> List[str]:
        """
        Names of the strong structured cues found. A category keyword only
        counts when another strong cue is present.
        """
        cues = []
        if self.mentions_amount or self.min_amount is not None or self.max_amount is not None:
            cues.append("amount")
        if self.known_vendor:
            cues.append("vendor")
        if self.time_range:
            cues.append("date")
        if self.structured_aggregation:
            cues.append("aggregation")
        if cues and self.category:
            cues.append("category")
        return cues


def _amount(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def _first_group(match: Optional[re.Match]) -> Optional[str]:
    if not match:
        return None
    return next((g for g in match.groups() if g), None)


def parse_query_cues(query: str, today: Optional[date] = None) -> QueryCues:
    """
    Parse a sanitized query for structured cues and analytical language.

    Args:
        query: Sanitized query text
        today: Reference date for relative time ranges (defaults to today)

    Returns:
        QueryCues describing the query
    """
    today = today or date.today()
    query_lower = query.lower()

    min_amount = max_amount = None
    between = _BETWEEN_AMOUNT.search(query_lower)
    if between:
        low, high = _amount(between.group(1)), _amount(between.group(2))
        if low is not None and high is not None:
            min_amount, max_amount = min(low, high), max(low, high)
    else:
        min_amount = _amount(_first_group(_MIN_AMOUNT.search(query_lower)))
        max_amount = _amount(_first_group(_MAX_AMOUNT.search(query_lower)))

    structured_aggregation = any(p.search(query_lower) for p in _STRUCTURED_AGGREGATION)
    aggregate = bool(_AGGREGATION_INTENT.search(query_lower))

    vendor = find_known_vendor(query)
    known_vendor = vendor is not None
    if vendor is None and aggregate:
        for match in _QUERY_PREPOSITION_VENDOR.finditer(query_lower):
            candidate = match.group(1)
            if candidate not in _NOT_A_VENDOR and not candidate.isdigit():
                vendor = candidate
                break

    return QueryCues(
        vendor=vendor,
        known_vendor=known_vendor,
        category=category_named_in(query),
        time_range=resolve_time_range(query, today),
        min_amount=min_amount,
        max_amount=max_amount,
        mentions_amount=bool(_DOLLAR_MENTION.search(query_lower)),
        structured_aggregation=structured_aggregation,
        aggregate=aggregate,
        analytical=any(p.search(query_lower) for p in _ANALYTICAL),
        terms=tuple(tokenize(query)),
    )


def classify_query(cues: QueryCues) -> QueryType:
    """
    Analytical language wins, then any strong structured cue; everything
    else is a descriptive phrase for semantic ranking.
    """
    if cues.analytical:
        return QueryType.COMPLEX
    if cues.strong_cues():
        return QueryType.STRUCTURED
    return QueryType.SEMANTIC


def build_structured_filter(cues: QueryCues, limit: int, keyword_only: bool = False) -> StructuredFilter:
    """
    Turn recognized cues into a typed filter.

    Args:
        cues: Parsed cues
        limit: Maximum rows to return
        keyword_only: Match on the query's content words instead of fields

    Returns:
        StructuredFilter for the document store
    """
    if keyword_only:
        return StructuredFilter(text_terms=cues.terms, limit=limit)

    start, end = cues.time_range if cues.time_range else (None, None)
    return StructuredFilter(
        vendor=cues.vendor,
        category=cues.category,
        start_date=start,
        end_date=end,
        min_amount=cues.min_amount,
        max_amount=cues.max_amount,
        limit=limit,
        aggregate=cues.aggregate,
    )


def clean_query_for_semantic_search(query: str) -> str:
    """
    Remove amount and time phrases from a query before embedding it.

    Args:
        query: Sanitized query

    Returns:
        Cleaned query string (the original when nothing would be left)
    """
    cleaned = re.sub(
        r"(?:above|over|more than|greater than|below|under|less than|lower than|at least|at most)\s*\$?\s*[\d,]+(?:\.\d+)?",
        "",
        query,
        flags=re.IGNORECASE,
    )
    cleaned = re.sub(r"\b(?:last|this|past)\s+(?:week|month|year)\b", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\b(?:in|for|during)\s+20\d{2}\b", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or query


_FILTER_FIELD = re.compile(r"(\w+)\s*=\s*([^;]+)")


def parse_filter_spec(spec: str, limit: int) -> Optional[StructuredFilter]:
    """
    Parse a model-proposed filter such as
    "vendor=Kroger; start=2024-01-01; end=2024-12-31; aggregate=true".

    Only whitelisted keys are read and every value is converted to its typed
    field, so the result can never carry free-form query text.

    Returns:
        StructuredFilter, or None when no usable predicate was proposed
    """
    fields = {}
    for key, raw in _FILTER_FIELD.findall(spec):
        fields[key.strip().lower()] = raw.strip()

    def as_date(key: str) -> Optional[date]:
        try:
            return date.fromisoformat(fields[key]) if key in fields else None
        except ValueError:
            return None

    vendor = fields.get("vendor")
    if vendor and vendor.upper() == "NONE":
        vendor = None

    candidate = StructuredFilter(
        vendor=vendor[:64] if vendor else None,
        category=EntityCategory.parse(fields.get("category")),
        start_date=as_date("start"),
        end_date=as_date("end"),
        min_amount=_amount(fields.get("min")),
        max_amount=_amount(fields.get("max")),
        limit=limit,
        aggregate=fields.get("aggregate", "").lower() == "true",
    )
    return candidate if candidate.has_predicates() else None
