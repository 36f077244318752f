import pytest

from ar_forecast.ingest.tokenizer import split_csv_line


def test_plain_fields_are_trimmed():
    assert split_csv_line(" 202309 , 100 ,Residential ") == ["202309", "100", "Residential"]


def test_quoted_delimiter_is_literal():
    fields = split_csv_line('202309,250,"Revenue, Net"')
    assert fields == ["202309", "250", "Revenue, Net"]
    assert len(fields) == 3


def test_quoted_amount_with_thousands_separator():
    assert split_csv_line('202309,"1,234.50",A') == ["202309", "1,234.50", "A"]


def test_empty_fields_are_kept():
    assert split_csv_line("a,,c,") == ["a", "", "c", ""]


def test_carriage_return_and_stray_quotes_removed():
    assert split_csv_line('a,b"c\r') == ["a", "bc"]


def test_doubled_quotes_collapse():
    assert split_csv_line('"say ""hi""",x') == ["say hi", "x"]


def test_unbalanced_quote_runs_to_end_of_line():
    # The opening quote is never closed, so later delimiters stay literal.
    assert split_csv_line('202309,"open, still open, 5') == ["202309", "open, still open, 5"]


def test_custom_delimiter():
    assert split_csv_line('202309;"1;5";X', delimiter=";") == ["202309", "1;5", "X"]


def test_delimiter_must_be_single_character():
    with pytest.raises(ValueError):
        split_csv_line("a,b", delimiter=",,")
