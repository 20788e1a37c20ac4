import pytest

from converter.domain.parsing.line_parser import DelimitedLineParser, QuoteState, parse_line


def test_parse_line_simple_fields():
    assert parse_line("a,b,c") == ["a", "b", "c"]


def test_parse_line_quoted_delimiter_is_kept():
    assert parse_line('"a,b",c') == ["a,b", "c"]


def test_parse_line_empty_middle_field():
    assert parse_line("a,,c") == ["a", "", "c"]


@pytest.mark.parametrize(
    "line",
    [
        "x",
        "x,y",
        " one , two ,three ",
        ",,,",
        "a b,c d,e  f,g",
    ],
)
def test_unquoted_line_yields_delimiter_count_plus_one_trimmed_fields(line):
    fields = parse_line(line)
    assert len(fields) == line.count(",") + 1
    assert all(field == field.strip() for field in fields)


def test_fields_are_trimmed_after_quotes_are_collected():
    assert parse_line('  " padded " , b ') == ["padded", "b"]


def test_quotes_never_appear_in_output():
    assert parse_line('"12, MG Road",Pune') == ["12, MG Road", "Pune"]
    assert parse_line('ab"cd"ef,x') == ["abcdef", "x"]


def test_unterminated_quote_consumes_rest_of_line():
    assert parse_line('a,"b,c,d') == ["a", "b,c,d"]


def test_empty_line_yields_single_empty_field():
    assert parse_line("") == [""]


def test_trailing_delimiter_yields_trailing_empty_field():
    assert parse_line("a,b,") == ["a", "b", ""]


def test_carriage_return_is_trimmed_from_last_field():
    assert parse_line("a,b\r") == ["a", "b"]


def test_custom_delimiter():
    parser = DelimitedLineParser(delimiter=";")
    assert parser.parse_line('a;"b;c";d,e') == ["a", "b;c", "d,e"]


@pytest.mark.parametrize(
    "delimiter, quote",
    [
        ("", '"'),
        (";;", '"'),
        (",", ""),
        (",", ","),
    ],
)
def test_invalid_parser_configuration_rejected(delimiter, quote):
    with pytest.raises(ValueError):
        DelimitedLineParser(delimiter=delimiter, quote=quote)


def test_quote_state_toggles():
    assert QuoteState.UNQUOTED.toggled() is QuoteState.QUOTED
    assert QuoteState.QUOTED.toggled() is QuoteState.UNQUOTED
