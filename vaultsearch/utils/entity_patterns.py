"""
Pattern tables shared by query classification and entity extraction.

The tables are tuning policy: vendors, category keywords, amount and date
formats. Both the query router and the reprocessing pipeline read them so a
query for "Kroger" finds documents whose vendor was extracted as "Kroger".
"""
import re
from calendar import monthrange
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from ..domain.value_objects import EntityCategory

# lowercase key -> display name
KNOWN_VENDORS: Dict[str, str] = {
    "kroger": "Kroger",
    "walmart": "Walmart",
    "target": "Target",
    "costco": "Costco",
    "amazon": "Amazon",
    "whole foods": "Whole Foods",
    "trader joe's": "Trader Joe's",
    "trader joes": "Trader Joe's",
    "trader joe": "Trader Joe's",
    "safeway": "Safeway",
    "publix": "Publix",
    "aldi": "Aldi",
    "cvs": "CVS",
    "walgreens": "Walgreens",
    "rite aid": "Rite Aid",
    "starbucks": "Starbucks",
    "mcdonald's": "McDonald's",
    "mcdonalds": "McDonald's",
    "chipotle": "Chipotle",
    "subway": "Subway",
    "shell": "Shell",
    "exxon": "Exxon",
    "chevron": "Chevron",
    "bp": "BP",
    "speedway": "Speedway",
    "home depot": "Home Depot",
    "lowe's": "Lowe's",
    "lowes": "Lowe's",
    "best buy": "Best Buy",
    "apple store": "Apple Store",
}

CATEGORY_KEYWORDS: Dict[EntityCategory, Tuple[str, ...]] = {
    EntityCategory.GROCERY: (
        "grocery", "groceries", "produce", "dairy", "meat", "bakery", "deli",
        "kroger", "walmart", "safeway", "publix", "aldi", "trader joe", "whole foods",
    ),
    EntityCategory.RESTAURANT: (
        "restaurant", "restaurants", "cafe", "diner", "pizza", "burger", "coffee",
        "starbucks", "mcdonalds", "chipotle", "subway", "tip", "server", "gratuity",
    ),
    EntityCategory.MEDICAL: (
        "medical", "doctor", "hospital", "clinic", "patient", "diagnosis",
        "treatment", "copay", "insurance",
    ),
    EntityCategory.PHARMACY: (
        "pharmacy", "rx", "prescription", "cvs", "walgreens", "rite aid",
        "medication", "drug",
    ),
    EntityCategory.UTILITIES: (
        "utility", "utilities", "electric", "water", "internet", "phone", "cable",
        "account number", "due date",
    ),
    EntityCategory.FUEL: (
        "gas", "fuel", "gasoline", "diesel", "gallon", "pump", "shell", "exxon",
        "chevron", "bp", "speedway",
    ),
    EntityCategory.ENTERTAINMENT: (
        "movie", "theater", "concert", "ticket", "admission", "entertainment",
        "netflix", "spotify",
    ),
    EntityCategory.RETAIL: (
        "store", "purchase", "item", "product", "return", "target", "amazon",
        "best buy", "home depot",
    ),
    EntityCategory.SERVICES: (
        "service", "services", "repair", "repairs", "plumber", "plumbing",
        "cleaning", "labor", "installation",
    ),
    EntityCategory.FINANCIAL: (
        "bank", "credit", "debit", "transaction", "deposit", "withdrawal",
        "balance", "statement", "fee", "interest",
    ),
    EntityCategory.TRAVEL: (
        "airline", "flight", "hotel", "rental", "travel", "booking",
        "reservation", "airport",
    ),
}

_DOLLAR_AMOUNT = re.compile(r"\$\s*(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)")
_TOTAL_LINE = re.compile(r"\btotal\b[^\d\n]{0,15}(\d+(?:,\d{3})*\.\d{2})", re.IGNORECASE)
_PREPOSITION_VENDOR = re.compile(r"\b(?:at|from)\s+([A-Z][\w'&]*(?:\s+[A-Z][\w'&]*)?)")

_DATE_MDY_LONG = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b")
_DATE_MDY_SHORT = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{2})\b")
_DATE_ISO = re.compile(r"\b(\d{4})[/-](\d{1,2})[/-](\d{1,2})\b")

_YEAR_RANGE = re.compile(r"\b(?:in|for|during)\s+(20\d{2})\b")
_MONTH_RANGE = re.compile(
    r"\b(?:in|for|during)\s+(january|february|march|april|may|june|july|august|september"
    r"|october|november|december)\s+(20\d{2})\b"
)
_MONTHS = (
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
)
_RELATIVE_RANGE = re.compile(r"\b(last|this|past)\s+(week|month|year)\b")

_KEYWORD_PATTERNS: Dict[str, re.Pattern] = {}


def _keyword_pattern(keyword: str) -> re.Pattern:
    pattern = _KEYWORD_PATTERNS.get(keyword)
    if pattern is None:
        pattern = re.compile(r"(?<![\w'])" + re.escape(keyword) + r"(?![\w'])")
        _KEYWORD_PATTERNS[keyword] = pattern
    return pattern


def contains_keyword(lower_text: str, keyword: str) -> bool:
    """Whole-word containment; `lower_text` must already be lowercase."""
    return _keyword_pattern(keyword).search(lower_text) is not None


def find_known_vendor(text: str) -> Optional[str]:
    """
    Find a known vendor name in text.

    Longer keys are tried first so "whole foods" wins over shorter overlaps.

    Returns:
        Display name of the vendor or None
    """
    lower_text = text.lower()
    for key in sorted(KNOWN_VENDORS, key=len, reverse=True):
        if contains_keyword(lower_text, key):
            return KNOWN_VENDORS[key]
    return None


def find_preposition_vendor(text: str) -> Optional[str]:
    """Capitalized name after "at"/"from", e.g. "Lunch at Joe's Diner"."""
    match = _PREPOSITION_VENDOR.search(text)
    return match.group(1).strip() if match else None


def detect_category(text: str) -> Optional[EntityCategory]:
    """
    Category with the most keyword hits; ties go to the earlier table entry.

    Returns:
        Best category, or None when no keyword matches
    """
    lower_text = text.lower()
    best: Optional[EntityCategory] = None
    best_hits = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = sum(1 for keyword in keywords if contains_keyword(lower_text, keyword))
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def category_named_in(text: str) -> Optional[EntityCategory]:
    """A category referred to by its own name ("grocery", "fuel", ...)."""
    lower_text = text.lower()
    for category in CATEGORY_KEYWORDS:
        if category == EntityCategory.OTHER:
            continue
        if contains_keyword(lower_text, category.value):
            return category
    if contains_keyword(lower_text, "groceries"):
        return EntityCategory.GROCERY
    if contains_keyword(lower_text, "restaurants"):
        return EntityCategory.RESTAURANT
    return None


def _to_float(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def extract_amounts(text: str) -> List[float]:
    """All dollar amounts in text, in order of appearance."""
    amounts = []
    for match in _DOLLAR_AMOUNT.finditer(text):
        value = _to_float(match.group(1))
        if value is not None:
            amounts.append(value)
    return amounts


def extract_total_amount(text: str) -> Optional[float]:
    """
    Best guess at a document's total: the largest dollar amount, or the
    figure on a "Total" line when no dollar sign is present.
    """
    amounts = extract_amounts(text)
    if amounts:
        return max(amounts)
    match = _TOTAL_LINE.search(text)
    return _to_float(match.group(1)) if match else None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str) -> Optional[date]:
    """
    First parseable date in text. Tries MM/DD/YYYY, then MM/DD/YY, then
    YYYY-MM-DD.
    """
    for pattern in (_DATE_MDY_LONG, _DATE_MDY_SHORT):
        for match in pattern.finditer(text):
            month, day, year = (int(g) for g in match.groups())
            if year < 100:
                year += 2000
            parsed = _safe_date(year, month, day)
            if parsed:
                return parsed
    for match in _DATE_ISO.finditer(text):
        year, month, day = (int(g) for g in match.groups())
        parsed = _safe_date(year, month, day)
        if parsed:
            return parsed
    return None


def resolve_time_range(text: str, today: date) -> Optional[Tuple[date, date]]:
    """
    Resolve a relative or year time expression to an inclusive date range.

    Args:
        text: Query text (any case)
        today: Reference date

    Returns:
        (start, end) tuple or None when the text names no time range
    """
    lower_text = text.lower()

    match = _MONTH_RANGE.search(lower_text)
    if match:
        return month_bounds(int(match.group(2)), _MONTHS.index(match.group(1)) + 1)

    match = _YEAR_RANGE.search(lower_text)
    if match:
        year = int(match.group(1))
        return date(year, 1, 1), date(year, 12, 31)

    match = _RELATIVE_RANGE.search(lower_text)
    if not match:
        return None

    which, unit = match.groups()
    if unit == "week":
        if which == "this":
            return today - timedelta(days=today.weekday()), today
        return today - timedelta(days=7), today
    if unit == "month":
        if which == "this":
            return today.replace(day=1), today
        if which == "past":
            return today - timedelta(days=30), today
        last_month_end = today.replace(day=1) - timedelta(days=1)
        return last_month_end.replace(day=1), last_month_end
    # year
    if which == "this":
        return date(today.year, 1, 1), today
    if which == "past":
        return today - timedelta(days=365), today
    return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])
