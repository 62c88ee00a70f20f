import pytest

from shexpand.config import Config
from shexpand.environ import list_environ
from shexpand.printf import FormatError, format_string, read_fields


def test_simple_escapes():
    assert format_string(None, "a\\tb\\n", None) == ("a\tb\n", 0)


def test_quote_escapes_are_literal():
    text, used = format_string(None, "\\\\\\'\\\"\\?", None)
    assert text == "\\'\"?"
    assert used == 0


def test_unknown_escape_is_kept():
    assert format_string(None, "\\q", None)[0] == "\\q"


def test_hex_without_digits_is_kept():
    assert format_string(None, "\\xg", None)[0] == "\\xg"


def test_nul_stops_output():
    assert format_string(None, "ab\\x00cd", None)[0] == "ab"


@pytest.mark.parametrize("ch", ["A", "z", "~", "0"])
def test_octal_escape_round_trip(ch):
    text, _ = format_string(None, "\\%03o" % ord(ch), None)
    assert text == ch


@pytest.mark.parametrize("ch", ["é", "世", "€"])
def test_unicode_escape_round_trip(ch):
    assert format_string(None, "\\u%04x" % ord(ch), None)[0] == ch
    assert format_string(None, "\\U%08x" % ord(ch), None)[0] == ch


def test_percent_without_args_is_literal():
    assert format_string(None, "%s", None) == ("%s", 0)


def test_string_directives_and_count():
    assert format_string(None, "%s-%s", ["x", "y"]) == ("x-y", 2)


def test_extra_args_not_counted():
    text, used = format_string(None, "<%s>", ["a", "b"])
    assert text == "<a>"
    assert used == 1


def test_missing_args_give_empty():
    assert format_string(None, "[%s]", []) == ("[]", 0)


def test_width_pads_left_and_right():
    right, _ = format_string(None, "%5s", ["ab"])
    left, _ = format_string(None, "%-5s", ["ab"])
    assert len(right) == 5 and right.endswith("ab") and right.strip() == "ab"
    assert len(left) == 5 and left.startswith("ab") and left.strip() == "ab"


def test_char_directive_takes_first_char():
    assert format_string(None, "%c", ["hello"]) == ("h", 1)


def test_double_percent():
    assert format_string(None, "100%%", []) == ("100%", 0)


def test_integer_base_prefix():
    assert format_string(None, "%d", ["0x10"])[0] == "16"


def test_integer_decimal_round_trip():
    for value in ["0", "7", "-42", "123456"]:
        assert format_string(None, "%d", [value])[0] == value
        assert format_string(None, "%i", [value])[0] == value


def test_invalid_integer_is_zero():
    assert format_string(None, "%d", ["abc"])[0] == "0"


def test_hex_and_octal_of_decimal_input():
    text, used = format_string(None, "%x %o", ["255", "8"])
    assert text == "%x %o" % (255, 8)
    assert used == 2


def test_invalid_format_char():
    with pytest.raises(FormatError, match="invalid format char: z"):
        format_string(None, "%z", ["a"])


def test_flag_after_width_is_invalid():
    with pytest.raises(FormatError, match="invalid format char: -"):
        format_string(None, "%5-d", ["1"])


def test_missing_format_char():
    with pytest.raises(FormatError, match="missing format char"):
        format_string(None, "abc%", [])


def test_read_fields_basic():
    assert read_fields(None, "  a b  c ", -1, False) == ["a", "b", "c"]


def test_read_fields_limit_combines_rest():
    assert read_fields(None, "  a b  c ", 2, False) == ["a", "b  c"]


def test_read_fields_single_keeps_everything():
    line = "  a b  c "
    assert read_fields(None, line, 1, False) == [line]


def test_read_fields_empty():
    assert read_fields(None, "   ", -1, False) == []
    assert read_fields(None, "", -1, False) == []


def test_read_fields_escapes():
    assert read_fields(None, "a\\ b", -1, False) == ["a b"]
    assert read_fields(None, "a\\ b", -1, True) == ["a\\", "b"]


def test_read_fields_custom_ifs():
    cfg = Config(env=list_environ("IFS=:"))
    assert read_fields(cfg, "x:y z", -1, False) == ["x", "y z"]