from __future__ import annotations

import pytest

from attr_ingest.errors import EmptyInputError
from attr_ingest.parsing.delimiter import delimiter_label, detect_delimiter
from attr_ingest.parsing.tokenizer import repair_row, split_lines, tokenize, tokenize_line


@pytest.mark.parametrize(
    "line,expected",
    [
        ("SKU;Nome;Cor", ";"),
        ("SKU,Nome,Cor", ","),
        ("SKU\tNome\tCor", "\t"),
        ("SKU;Nome,Cor", ";"),  # 同数なら ; が , より優先
        ("SKU\tNome;Cor", "\t"),
        ('"a;b;c",d', ","),  # クォート内は数えない
        ("SKU", ";"),
    ],
)
def test_detect_delimiter(line: str, expected: str):
    assert detect_delimiter(line) == expected


def test_delimiter_label():
    assert delimiter_label(";") == "semicolon"
    assert delimiter_label("\t") == "tab"
    assert delimiter_label("|") == "'|'"


def test_split_lines_mixed_endings_and_blank_lines():
    lines = split_lines("a;b\r\n1;2\r\n\r\n3;4\r5;6\n")
    assert [ln for ln, _ in lines] == [1, 2, 4, 5]
    assert [text for _, text in lines] == ["a;b", "1;2", "3;4", "5;6"]


def test_tokenize_line_quotes():
    fields = tokenize_line('"x;y";"he said ""hi""";  z  ', ";")
    assert fields == ["x;y", 'he said "hi"', "z"]


def test_tokenize_line_quote_inside_field_is_literal():
    assert tokenize_line('A-1;Monitor 15" LED;x', ";") == ["A-1", 'Monitor 15" LED', "x"]
    assert tokenize_line('  "q;r"  ;s', ";") == ["q;r", "s"]


def test_tokenize_line_trailing_delimiter():
    assert tokenize_line("a;b;", ";") == ["a", "b", ""]


@pytest.mark.parametrize(
    "fields,expected",
    [
        (["1", "2", "3", "4"], ["1", "2", "3", "4"]),
        (["1", "2", "3", "4", ""], ["1", "2", "3", "4"]),
        (["1", "2", "3"], ["1", "2", "3", ""]),
        (["1", "2"], ["1", "2", "", ""]),
        (["1"], None),
        (["1", "2", "3", "4", "5"], None),
        (["1", "2", "3", "4", "", ""], None),
    ],
)
def test_repair_row_boundaries(fields, expected):
    assert repair_row(fields, 4) == expected


def test_tokenize_repairs_and_discards():
    text = "a;b;c;d\n1;2;3;4\n1;2;3;4;\n1;2;3;4;5\n1;2;3\n1;2\n1\n"
    table = tokenize(text)
    assert table.delimiter == ";"
    assert table.headers == ["a", "b", "c", "d"]
    assert table.rows == [
        ["1", "2", "3", "4"],
        ["1", "2", "3", "4"],
        ["1", "2", "3", ""],
        ["1", "2", "", ""],
    ]
    assert table.discarded_count == 2
    assert table.discarded_lines == (4, 7)
    # 全行がヘッダ幅
    assert all(len(r) == table.width for r in table.rows)


def test_tokenize_explicit_delimiter():
    table = tokenize("a,b;c\n1,2;3\n", delimiter=",")
    assert table.headers == ["a", "b;c"]
    assert table.rows == [["1", "2;3"]]


def test_tokenize_header_only():
    table = tokenize("SKU;Nome\n")
    assert table.rows == []
    assert table.discarded_count == 0


def test_tokenize_empty_raises():
    with pytest.raises(EmptyInputError):
        tokenize("  \n\r\n")
