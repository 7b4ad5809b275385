# tests/test_parser.py
import pytest

from bibfetch.query.combinators import And, Field, Not, Or, YearRange
from bibfetch.query.parser import QuerySyntaxError, parse


def test_parse_bare_term():
    assert parse("transformer") == Field("any", "transformer")


def test_parse_fielded_term():
    assert parse("title:transformer") == Field("title", "transformer")


def test_parse_field_is_case_insensitive():
    assert parse("Author:Bengio") == Field("author", "Bengio")


def test_parse_phrase():
    assert parse('title:"attention is all you need"') == Field(
        "title", "attention is all you need"
    )


def test_parse_fuzzy():
    assert parse("author:hinton~") == Field("author", "hinton", fuzzy=True)


def test_parse_implicit_and():
    q = parse("neural networks")
    assert q == And((Field("any", "neural"), Field("any", "networks")))


def test_parse_and():
    q = parse("title:transformer AND author:Vaswani")
    assert isinstance(q, And)
    assert q.children == (Field("title", "transformer"), Field("author", "Vaswani"))


def test_parse_or():
    q = parse("title:BERT OR title:GPT OR title:T5")
    assert isinstance(q, Or)
    assert len(q.children) == 3


def test_parse_and_binds_tighter_than_or():
    q = parse("a AND b OR c")
    assert isinstance(q, Or)
    assert q.children[0] == And((Field("any", "a"), Field("any", "b")))
    assert q.children[1] == Field("any", "c")


def test_parse_not():
    q = parse("title:neural AND NOT author:Smith")
    assert isinstance(q, And)
    assert q.children[1] == Not(Field("author", "Smith"))


def test_parse_minus_prefix():
    q = parse("neural -author:Smith")
    assert q.children[1] == Not(Field("author", "Smith"))


def test_parse_parentheses():
    q = parse("(title:BERT OR title:GPT) AND year:2020")
    assert isinstance(q, And)
    assert isinstance(q.children[0], Or)
    assert q.children[1] == YearRange(2020, 2020)


def test_parse_year_range():
    assert parse("year:2018-2020") == YearRange(2018, 2020)


def test_parse_year_open_ends():
    assert parse("year:2018-") == YearRange(start=2018, end=None)
    assert parse("pubyear:-2020") == YearRange(start=None, end=2020)


def test_parse_lowercase_operators_are_terms():
    q = parse("cats and dogs")
    assert q == And((Field("any", "cats"), Field("any", "and"), Field("any", "dogs")))


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "(title:a",
        "title:a)",
        "a AND",
        "OR b",
        "NOT",
        "year:20x0",
        "year:-",
        "year:2020-2010",
    ],
)
def test_parse_invalid(text):
    with pytest.raises(QuerySyntaxError):
        parse(text)


def test_syntax_error_is_value_error():
    with pytest.raises(ValueError):
        parse("(")
