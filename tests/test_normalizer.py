from marksheet_ocr.parsing.normalizer import COLUMN_SEPARATOR, normalize_line, normalize_text


def test_empty_input_yields_no_lines():
    result = normalize_text("")
    assert result.lines == ()
    assert result.full_text == ""
    assert result.is_empty


def test_tabs_and_space_runs_become_column_separator():
    assert normalize_line("MATHEMATICS\t18\t\t52") == "MATHEMATICS  18  52"
    assert normalize_line("ENGLISH      20   55 PASS") == "ENGLISH  20  55 PASS"


def test_table_bars_become_column_separator():
    assert normalize_line("| TAMIL | 81 | P |") == "TAMIL  81  P"


def test_invisible_characters_and_nbsp_are_cleaned():
    line = "\ufeffReg\u200b No:\u00a021CS1042"
    assert normalize_line(line) == "Reg No: 21CS1042"


def test_short_and_blank_lines_are_dropped():
    raw = "Name: PRIYA\n\n  |  \nab\n-\nENGLISH  20  55  PASS\r\n"
    result = normalize_text(raw)
    assert result.lines == ("Name: PRIYA", "ENGLISH  20  55  PASS")
    assert result.full_text == "Name: PRIYA\nENGLISH  20  55  PASS"


def test_min_line_length_is_configurable():
    result = normalize_text("ab\nabc", min_line_length=2)
    assert result.lines == ("ab", "abc")


def test_separator_is_two_spaces():
    assert COLUMN_SEPARATOR == "  "
