# bibfetch/query/parser.py
"""Parse Lucene-style search strings into Query trees.

Supported syntax::

    transformer                      any field
    title:"attention is all"         fielded phrase
    author:hinton~                   fuzzy term
    year:2020  year:2018-2020        year (range, open ends allowed: 2018- / -2020)
    a AND b   a OR b   NOT a   -a    boolean operators (AND binds tighter)
    (a OR b) c                       grouping, adjacent clauses are ANDed
"""

import re
from dataclasses import dataclass

from bibfetch.query.combinators import And, Field, Not, Or, Query, YearRange

YEAR_FIELDS = {"year", "pubyear"}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<lparen>\()
    | (?P<rparen>\))
    | (?P<term>
        (?P<neg>-)?
        (?:(?P<field>[A-Za-z_][\w-]*):)?
        (?:"(?P<phrase>[^"]*)"|(?P<word>[^\s()"~]+))
        (?P<fuzzy>~)?
      )
    """,
    re.VERBOSE,
)
_YEAR_RE = re.compile(r"^(?P<start>\d{4})?(?P<dash>-)?(?P<end>\d{4})?$")
_OPERATORS = {"AND", "OR", "NOT"}


class QuerySyntaxError(ValueError):
    """The search string is not valid query syntax."""


@dataclass(frozen=True)
class _Token:
    kind: str  # "(", ")", "AND", "OR", "NOT", "term"
    text: str
    query: Query | None = None


def parse(text: str) -> Query:
    """Parse a search string into a Query tree.

    Raises:
        QuerySyntaxError: On empty input, unbalanced parentheses, dangling
            operators or malformed year values.
    """
    tokens = _tokenize(text)
    if not tokens:
        raise QuerySyntaxError("Empty query")
    parser = _Parser(tokens)
    query = parser.parse_or()
    if not parser.at_end():
        raise QuerySyntaxError(f"Unexpected {parser.peek().text!r} in query: {text!r}")
    return query


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise QuerySyntaxError(f"Cannot parse query at position {pos}: {text[pos:]!r}")
        pos = match.end()

        if match.group("ws"):
            continue
        if match.group("lparen"):
            tokens.append(_Token("(", "("))
            continue
        if match.group("rparen"):
            tokens.append(_Token(")", ")"))
            continue

        raw = match.group("term")
        word = match.group("word")
        field = match.group("field")
        if word in _OPERATORS and not field and not match.group("neg"):
            tokens.append(_Token(word, word))
            continue

        value = match.group("phrase") if word is None else word
        query = _make_leaf(field or "any", value, bool(match.group("fuzzy")))
        if match.group("neg"):
            query = Not(query)
        tokens.append(_Token("term", raw, query))
    return tokens


def _make_leaf(field: str, value: str, fuzzy: bool) -> Query:
    if field.lower() in YEAR_FIELDS:
        year_match = _YEAR_RE.match(value.strip())
        if year_match is None or not (year_match.group("start") or year_match.group("end")):
            raise QuerySyntaxError(f"Invalid year value: {value!r}")
        start = year_match.group("start")
        end = year_match.group("end")
        if not year_match.group("dash"):
            return YearRange(int(start), int(start))
        try:
            return YearRange(int(start) if start else None, int(end) if end else None)
        except ValueError as e:
            raise QuerySyntaxError(str(e)) from e

    if not value.strip():
        raise QuerySyntaxError(f"Empty term for field {field!r}")
    return Field(field, value, fuzzy)


class _Parser:
    """Recursive descent over the token list.

    or_expr  := and_expr ("OR" and_expr)*
    and_expr := unary (["AND"] unary)*
    unary    := "NOT" unary | primary
    primary  := "(" or_expr ")" | term
    """

    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def peek(self) -> _Token:
        return self._tokens[self._pos]

    def _next(self) -> _Token:
        if self.at_end():
            raise QuerySyntaxError("Unexpected end of query")
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def parse_or(self) -> Query:
        children = [self._parse_and()]
        while not self.at_end() and self.peek().kind == "OR":
            self._next()
            children.append(self._parse_and())
        return children[0] if len(children) == 1 else Or(tuple(children))

    def _parse_and(self) -> Query:
        children = [self._parse_unary()]
        while not self.at_end() and self.peek().kind not in ("OR", ")"):
            if self.peek().kind == "AND":
                self._next()
            children.append(self._parse_unary())
        return children[0] if len(children) == 1 else And(tuple(children))

    def _parse_unary(self) -> Query:
        if not self.at_end() and self.peek().kind == "NOT":
            self._next()
            return Not(self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> Query:
        token = self._next()
        if token.kind == "(":
            query = self.parse_or()
            if self.at_end() or self._next().kind != ")":
                raise QuerySyntaxError("Missing closing parenthesis")
            return query
        if token.kind == "term" and token.query is not None:
            return token.query
        raise QuerySyntaxError(f"Unexpected {token.text!r}")
