"""
Enums and immutable value objects of the search domain.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class QueryType(str, Enum):
    """Execution strategy chosen for a query."""
    STRUCTURED = "structured"
    SEMANTIC = "semantic"
    COMPLEX = "complex"


class AuditAction(str, Enum):
    SEARCH = "search"
    VECTORIZE = "vectorize"
    REPROCESS = "reprocess"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INSTALL_MODEL = "install_model"


class AuditLogLevel(str, Enum):
    """
    Audit verbosity. An entry is recorded when its level priority is at
    least the configured level priority; COMPULSORY entries are always kept.
    """
    INFO = "info"
    VERBOSE = "verbose"
    COMPULSORY = "compulsory"

    @property
    def priority(self) -> int:
        return {"info": 1, "verbose": 2, "compulsory": 3}[self.value]

    @classmethod
    def parse(cls, value: str) -> "AuditLogLevel":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.INFO


class EntityCategory(str, Enum):
    GROCERY = "grocery"
    RESTAURANT = "restaurant"
    MEDICAL = "medical"
    PHARMACY = "pharmacy"
    UTILITIES = "utilities"
    FUEL = "fuel"
    ENTERTAINMENT = "entertainment"
    RETAIL = "retail"
    SERVICES = "services"
    TRAVEL = "travel"
    FINANCIAL = "financial"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["EntityCategory"]:
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class SafeQuery:
    """A query that passed the input guard."""
    text: str
    allow_generation: bool
    suspicious: bool = False


@dataclass(frozen=True)
class StructuredFilter:
    """
    Typed predicate over the whitelisted document fields.

    Filters are evaluated field by field by the document store; user text
    only ever appears as a bound value, never as part of a query template.
    """
    vendor: Optional[str] = None
    category: Optional[EntityCategory] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    text_terms: Tuple[str, ...] = ()
    limit: int = 100
    aggregate: bool = False

    def has_predicates(self) -> bool:
        """True when at least one field constraint is set."""
        return any((
            self.vendor,
            self.category,
            self.start_date,
            self.end_date,
            self.min_amount is not None,
            self.max_amount is not None,
            self.text_terms,
        ))
