from bibfetch.query.combinators import (
    And,
    Field,
    Not,
    Or,
    Query,
    YearRange,
    abstract,
    all_of,
    any_field,
    any_of,
    author,
    doi,
    extract_year_range,
    fulltext,
    keyword,
    title,
    venue,
    year,
)
from bibfetch.query.parser import QuerySyntaxError, parse
from bibfetch.query.transformers import DefaultQueryTransformer, QueryTransformer

__all__ = [
    "Query",
    "Field",
    "And",
    "Or",
    "Not",
    "YearRange",
    "title",
    "abstract",
    "author",
    "keyword",
    "doi",
    "fulltext",
    "venue",
    "any_field",
    "year",
    "all_of",
    "any_of",
    "extract_year_range",
    "parse",
    "QuerySyntaxError",
    "QueryTransformer",
    "DefaultQueryTransformer",
]
