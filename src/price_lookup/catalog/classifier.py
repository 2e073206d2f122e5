"""Decide which matching strategy a raw search string needs."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .predicates import Eq, Predicate, all_of, any_of, substring_any

NUMERIC_PATTERN = re.compile(r"^\d+(\.\d+)?$", re.ASCII)
# Heuristic: short all-letter tokens may be acronyms ("bcc"). Longer words and
# mixed tokens are plain substring queries.
INITIALS_PATTERN = re.compile(r"^[a-zA-Z]{2,6}$")


class QueryKind(str, Enum):
    NONE = "none"
    NUMERIC = "numeric"
    INITIALS_CANDIDATE = "initials_candidate"
    SINGLE_TERM = "single_term"
    MULTI_TERM = "multi_term"


@dataclass(frozen=True)
class QueryClassification:
    kind: QueryKind
    terms: List[str] = field(default_factory=list)

    @property
    def term(self) -> str:
        return self.terms[0] if self.terms else ""


def classify_query(raw: Optional[str]) -> QueryClassification:
    terms = (raw or "").strip().lower().split()
    if not terms:
        return QueryClassification(QueryKind.NONE)
    if len(terms) > 1:
        return QueryClassification(QueryKind.MULTI_TERM, terms)
    term = terms[0]
    if NUMERIC_PATTERN.match(term):
        return QueryClassification(QueryKind.NUMERIC, terms)
    if INITIALS_PATTERN.match(term):
        return QueryClassification(QueryKind.INITIALS_CANDIDATE, terms)
    return QueryClassification(QueryKind.SINGLE_TERM, terms)


def text_predicate(classification: QueryClassification) -> Optional[Predicate]:
    """Storage predicate for the text part of a query.

    The initials path has no text predicate: every filtered candidate is
    ranked in memory instead.
    """
    kind = classification.kind
    if kind in (QueryKind.NONE, QueryKind.INITIALS_CANDIDATE):
        return None
    if kind == QueryKind.MULTI_TERM:
        return all_of(substring_any(t) for t in classification.terms)
    if kind == QueryKind.NUMERIC:
        term = classification.term
        return any_of([substring_any(term), Eq("price", float(term), numeric=True)])
    return substring_any(classification.term)
