# bibfetch/query/combinators.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Query:
    """Base AST node for search queries."""

    def __and__(self, other: "Query") -> "And":
        return And(_flatten(And, self, other))

    def __or__(self, other: "Query") -> "Or":
        return Or(_flatten(Or, self, other))

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class Field(Query):
    """Field match: field=value, optionally fuzzy."""

    field: str
    value: str
    fuzzy: bool = False

    def __post_init__(self) -> None:
        value = self.value.strip()
        if not value:
            raise ValueError(f"Empty search term for field {self.field!r}")
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "field", self.field.strip().lower() or "any")


@dataclass(frozen=True)
class YearRange(Query):
    """Year range filter, bounds inclusive."""

    start: int | None = None
    end: int | None = None

    def __post_init__(self) -> None:
        if self.start is None and self.end is None:
            raise ValueError("Year range needs at least one bound")
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"Year range start {self.start} is after end {self.end}")


@dataclass(frozen=True)
class And(Query):
    """Logical AND of one or more queries, in order."""

    children: tuple[Query, ...]

    def __post_init__(self) -> None:
        _check_children(self)


@dataclass(frozen=True)
class Or(Query):
    """Logical OR of one or more queries, in order."""

    children: tuple[Query, ...]

    def __post_init__(self) -> None:
        _check_children(self)


@dataclass(frozen=True)
class Not(Query):
    """Logical NOT of a query."""

    operand: Query


def _check_children(node: "And | Or") -> None:
    children = tuple(node.children)
    if not children:
        raise ValueError(f"{type(node).__name__} needs at least one child")
    for child in children:
        if not isinstance(child, Query):
            raise TypeError(f"Not a query node: {child!r}")
    object.__setattr__(node, "children", children)


def _flatten(kind: type["And | Or"], *queries: Query) -> tuple[Query, ...]:
    children: list[Query] = []
    for q in queries:
        if isinstance(q, kind):
            children.extend(q.children)
        else:
            children.append(q)
    return tuple(children)


def extract_year_range(query: Query | None) -> tuple[int | None, int | None] | None:
    """Return the (start, end) year bounds that constrain the whole query.

    Only ranges at the root or inside (nested) AND conjunctions count; a range
    under OR or NOT does not restrict every result. Several ranges intersect,
    so an empty intersection comes back with start > end.
    """
    ranges: list[YearRange] = []
    _collect_ranges(query, ranges)
    if not ranges:
        return None

    starts = [r.start for r in ranges if r.start is not None]
    ends = [r.end for r in ranges if r.end is not None]
    return (max(starts) if starts else None, min(ends) if ends else None)


def _collect_ranges(query: Query | None, ranges: list[YearRange]) -> None:
    match query:
        case YearRange():
            ranges.append(query)
        case And(children=cs):
            for child in cs:
                _collect_ranges(child, ranges)


# Factory functions (public API)
def title(value: str) -> Field:
    return Field("title", value)


def abstract(value: str) -> Field:
    return Field("abstract", value)


def author(value: str) -> Field:
    return Field("author", value)


def keyword(value: str) -> Field:
    return Field("keyword", value)


def doi(value: str) -> Field:
    return Field("doi", value)


def fulltext(value: str) -> Field:
    return Field("fulltext", value)


def venue(value: str) -> Field:
    return Field("venue", value)


def any_field(value: str, fuzzy: bool = False) -> Field:
    return Field("any", value, fuzzy)


def year(start: int | None = None, end: int | None = None) -> YearRange:
    return YearRange(start, end)


def all_of(*queries: Query) -> And:
    return And(_flatten(And, *queries))


def any_of(*queries: Query) -> Or:
    return Or(_flatten(Or, *queries))
