"""
Search query data model for pfind.

This module defines the name predicate applied to every visited entry. A query
holds one or more search terms and a case-sensitivity mode; an entry name
matches when it contains any of the terms.
"""

from typing import Any, Dict, List, Tuple
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class SearchQuery(BaseModel):
    """
    Substring predicate evaluated against entry names.

    Matching is case-insensitive by default: a name matches iff the lower-cased
    name contains a lower-cased term. The empty term matches every name, so the
    default query (a single empty term) matches everything.

    Attributes:
        terms: Search terms; a name matches when it contains any of them
        case_sensitive: Compare names and terms without lower-casing
    """

    model_config = ConfigDict(frozen=True)

    terms: Tuple[str, ...] = Field(("",), description="Search terms matched against entry names")
    case_sensitive: bool = Field(False, description="Whether matching is case-sensitive")

    _needles: Tuple[str, ...] = PrivateAttr(default=("",))

    @field_validator('terms', mode='before')
    @classmethod
    def validate_terms(cls, v: Any) -> Tuple[str, ...]:
        """Accept a single string or a sequence of strings."""
        if v is None:
            return ("",)
        if isinstance(v, str):
            return (v,)
        terms = tuple(v)
        if not terms:
            return ("",)
        for term in terms:
            if not isinstance(term, str):
                raise ValueError(f"Search term must be a string, got {type(term).__name__}")
        return terms

    def model_post_init(self, __context) -> None:
        """Pre-compute the normalized needles once per query."""
        if self.case_sensitive:
            self._needles = self.terms
        else:
            self._needles = tuple(term.lower() for term in self.terms)

    def matches(self, name: str) -> bool:
        """Check whether an entry name satisfies the predicate."""
        if not self.case_sensitive:
            name = name.lower()
        return any(needle in name for needle in self._needles)

    def matches_everything(self) -> bool:
        """True when the query contains the empty term."""
        return "" in self._needles

    def get_display_terms(self) -> List[str]:
        """Normalized non-empty terms, as they are compared against names."""
        return [needle for needle in self._needles if needle]

    def to_dict(self) -> Dict[str, Any]:
        """Convert the query to a dictionary representation."""
        data = self.model_dump()
        data['terms'] = list(self.terms)
        return data

    def __str__(self) -> str:
        """String representation of the search query."""
        if self.matches_everything():
            return "Query: <all entries>"
        terms = ", ".join(repr(term) for term in self.get_display_terms())
        mode = "case-sensitive" if self.case_sensitive else "case-insensitive"
        return f"Query: {terms} ({mode})"
