"""
Typed predicate evaluation over stored document dicts.
"""
from datetime import date
from typing import Dict, List, Optional

from ...domain.value_objects import StructuredFilter


def _as_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def document_matches(doc: Dict, criteria: StructuredFilter) -> bool:
    """
    Check a stored document against every predicate of a filter.

    Vendor matches case-insensitively as a substring; dates and amounts are
    inclusive bounds. A document lacking a constrained field never matches.
    """
    if criteria.vendor:
        vendor = doc.get("vendor") or ""
        if criteria.vendor.lower() not in vendor.lower():
            return False

    if criteria.category and doc.get("category") != criteria.category.value:
        return False

    if criteria.start_date or criteria.end_date:
        tx_date = _as_date(doc.get("transaction_date"))
        if tx_date is None:
            return False
        if criteria.start_date and tx_date < criteria.start_date:
            return False
        if criteria.end_date and tx_date > criteria.end_date:
            return False

    if criteria.min_amount is not None or criteria.max_amount is not None:
        amount = doc.get("amount")
        if amount is None:
            return False
        if criteria.min_amount is not None and amount < criteria.min_amount:
            return False
        if criteria.max_amount is not None and amount > criteria.max_amount:
            return False

    if criteria.text_terms:
        haystack = f"{doc.get('title', '')} {doc.get('extracted_text', '')}".lower()
        if not all(term.lower() in haystack for term in criteria.text_terms):
            return False

    return True


def filter_documents(docs: List[Dict], criteria: StructuredFilter) -> List[Dict]:
    """Matching documents, newest transaction first, then newest created."""
    matched = [doc for doc in docs if document_matches(doc, criteria)]
    # two stable passes: secondary key first
    matched.sort(key=lambda d: d.get("created_at") or "", reverse=True)
    matched.sort(key=lambda d: d.get("transaction_date") or "", reverse=True)
    return matched[:criteria.limit] if criteria.limit else matched
