# bibfetch/query/transformers.py
"""Render Query trees into provider query strings.

A transformer walks the tree once and asks small hooks how to spell each
node. Hooks return ``""`` to drop a node the provider cannot express in its
query string; groups skip dropped children, so the result is never malformed.
"""

import re

from bibfetch.query.combinators import And, Field, Not, Or, Query, YearRange

_NEEDS_QUOTES_RE = re.compile(r"[\s()]")


class QueryTransformer:
    """Base transformer: unfielded terms joined with AND / OR / NOT.

    Policy for constructs a provider lacks:
        - fuzzy terms are sent as exact terms unless ``supports_fuzzy`` is set;
        - year ranges are dropped from the string (providers send them as
          request parameters instead);
        - fields are dropped, leaving the bare term.
    """

    and_operator = "AND"
    or_operator = "OR"
    supports_fuzzy = False

    def transform(self, query: Query | None) -> str:
        """Render ``query``; ``None`` is the empty query and renders as ``""``."""
        if query is None:
            return ""
        return self._render(query)

    def _render(self, query: Query) -> str:
        match query:
            case Field(field=f, value=v, fuzzy=z):
                return self.render_field(f, self.render_term(v, z and self.supports_fuzzy))
            case YearRange(start=s, end=e):
                return self.render_year_range(s, e)
            case And(children=cs):
                return self.render_group(self.and_operator, [self._render(c) for c in cs])
            case Or(children=cs):
                return self.render_group(self.or_operator, [self._render(c) for c in cs])
            case Not(operand=o):
                operand = self._render(o)
                return self.render_not(operand) if operand else ""
            case _:
                raise TypeError(f"Unsupported query node: {query!r}")

    def render_term(self, value: str, fuzzy: bool) -> str:
        term = value.replace('"', "")
        if _NEEDS_QUOTES_RE.search(term):
            term = f'"{term}"'
        return f"{term}~" if fuzzy else term

    def render_field(self, field: str, term: str) -> str:
        return term

    def render_year_range(self, start: int | None, end: int | None) -> str:
        return ""

    def render_group(self, operator: str, parts: list[str]) -> str:
        parts = [p for p in parts if p]
        if not parts:
            return ""
        if len(parts) == 1:
            return parts[0]
        return "(" + f" {operator} ".join(parts) + ")"

    def render_not(self, operand: str) -> str:
        return f"NOT {operand}"


class DefaultQueryTransformer(QueryTransformer):
    """Plain boolean keyword query for providers with a single free-text box."""
