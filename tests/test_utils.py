import string

import pytest

from saynaa.utils import (
    generate_random_text,
    read_file,
    string_to_decimal,
    string_to_hex_decimal,
)


def test_read_file_round_trip(tmp_path):
    path = tmp_path / "prog.sy"
    text = "let x = 1;\nprint x;\n"
    path.write_text(text, encoding="utf-8")
    assert read_file(path) == text
    assert read_file(str(path)) == text


def test_read_file_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "absent.sy")


def test_string_to_decimal_plain_text():
    assert string_to_decimal("abc") == list(b"abc")


def test_string_to_decimal_known_escapes():
    assert string_to_decimal(r"a\nb\tc\r\a") == list(b"a\nb\tc\r\a")


def test_string_to_decimal_unknown_escape_keeps_char():
    assert string_to_decimal(r"\q") == list(b"q")
    assert string_to_decimal("\\\\") == list(b"\\")


def test_string_to_decimal_trailing_backslash_kept():
    assert string_to_decimal("ab\\") == list(b"ab\\")


def test_string_to_decimal_non_ascii_is_utf8():
    assert string_to_decimal("é") == list("é".encode("utf-8"))


def test_hex_decimal_worked_example():
    assert string_to_hex_decimal("Hi") == "0x48, 0x69, 0x00 ; 'Hi'\n"


def test_hex_decimal_small_values_get_leading_zero():
    assert string_to_hex_decimal(r"a\n").startswith("0x61, 0x0A, ")


def test_hex_decimal_empty_string():
    assert string_to_hex_decimal("") == "0x00 ; ''\n"


@pytest.mark.parametrize("value", ["hello", "x y", r"tab\there"])
def test_hex_decimal_structure(value):
    result = string_to_hex_decimal(value)
    assert result.endswith(f"0x00 ; '{value}'\n")
    body = result[: -len(f"0x00 ; '{value}'\n")]
    assert body.count(", ") == len(string_to_decimal(value))
    assert all(part.startswith("0x") for part in body.split(", ") if part)


@pytest.mark.parametrize("length", [0, 1, 7, 50])
def test_random_text_length_and_alphabet(length):
    text = generate_random_text(length)
    assert len(text) == length
    assert set(text) <= set(string.ascii_letters + string.digits)