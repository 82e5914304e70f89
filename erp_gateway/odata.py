"""
OData query assembly.

Builds `$filter`/`$orderby`/`$top`/`$skip` URLs from inbound query parameters.
Clauses are kept as plain OData text and percent-encoded once, when the query
string is joined.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

# readable in the query string; everything else is escaped
QUERY_SAFE = "'(),"


def odata_literal(value) -> str:
    # OData string literal: embedded quotes are doubled
    return "'" + str(value).replace("'", "''") + "'"


def eq_clause(field_name: str, value) -> str:
    return f"{field_name} eq {odata_literal(value)}"


def contains_clause(field_name: str, term: str) -> str:
    return f"contains({field_name},{odata_literal(term)})"


def search_clause(term: str, fields: Sequence[str]) -> str:
    return " or ".join(contains_clause(f, term) for f in fields)


def entity_url(base_url: str, *keys) -> str:
    """base('k') or base('k1','k2') with each key percent-encoded."""
    parts = ",".join("'" + quote(str(k).replace("'", "''"), safe="") + "'" for k in keys)
    return f"{base_url}({parts})"


@dataclass
class QueryDescriptor:
    filter: Optional[str] = None
    orderby: Optional[str] = None
    top: Optional[str] = None
    skip: Optional[str] = None
    search: Optional[str] = None
    search_fields: Tuple[str, ...] = ()
    server_filters: List[str] = field(default_factory=list)
    expand: Optional[str] = None
    count: bool = False

    def with_server_filter(self, clause: str) -> "QueryDescriptor":
        self.server_filters.append(clause)
        return self


class ODataQuery:
    """Clause list plus encode-on-join."""

    def __init__(self, descriptor: QueryDescriptor):
        self.descriptor = descriptor

    def filter_expression(self) -> Optional[str]:
        d = self.descriptor
        clauses = list(d.server_filters)
        if d.filter:
            clauses.append(d.filter)
        if d.search and d.search_fields:
            clauses.append(search_clause(d.search, d.search_fields))

        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]

        # server clauses are single comparisons; caller and search text may hold `or`
        n_server = len(d.server_filters)
        return " and ".join(c if i < n_server else f"({c})" for i, c in enumerate(clauses))

    def params(self) -> List[Tuple[str, str]]:
        d = self.descriptor
        out = []
        flt = self.filter_expression()
        if flt:
            out.append(("$filter", flt))
        if d.orderby:
            out.append(("$orderby", d.orderby))
        if d.top:
            out.append(("$top", str(d.top)))
        if d.skip:
            out.append(("$skip", str(d.skip)))
        if d.expand:
            out.append(("$expand", d.expand))
        if d.count:
            out.append(("$count", "true"))
        return out

    def query_string(self) -> str:
        return "&".join(f"{name}={quote(value, safe=QUERY_SAFE)}" for name, value in self.params())


def build_odata_url(base_url: str, descriptor: Optional[QueryDescriptor] = None) -> str:
    if descriptor is None:
        return base_url
    qs = ODataQuery(descriptor).query_string()
    return f"{base_url}?{qs}" if qs else base_url
