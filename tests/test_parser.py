"""Lexer and parser: comments, splitting, parameter words."""

import math

from core.parser import StatementKind, parse
from utils.errors import ErrorCollector


def test_comments_and_blank_lines_are_dropped():
    statements = parse("(header)\n\n; note\nG0 X10 (rapid)\n")
    assert len(statements) == 1
    assert statements[0].source_line == 4
    assert statements[0].params['X'] == 10


def test_lowercase_and_spaces_are_normalized():
    statements = parse("g01 x 12.5 z-3")
    assert statements[0].kind == StatementKind.G
    assert statements[0].code == 1
    assert statements[0].param('X') == 12.5
    assert statements[0].param('Z') == -3


def test_multiple_commands_split_left_to_right():
    statements = parse("G01 X10 M03 S500")
    assert [s.kind for s in statements] == [StatementKind.G, StatementKind.M]
    assert statements[0].param('X') == 10
    assert not statements[0].has_param('S')
    assert statements[1].code == 3
    assert statements[1].param('S') == 500


def test_parameters_before_first_command_join_it():
    statements = parse("X40 Z-2 G01")
    assert len(statements) == 1
    assert statements[0].code == 1
    assert statements[0].param('X') == 40


def test_codeless_line_is_a_g_statement_without_code():
    statements = parse("X50 Z-40")
    assert statements[0].kind == StatementKind.G
    assert statements[0].code is None
    assert statements[0].has_axis_words()


def test_speed_and_feed_words_never_form_their_own_kind():
    assert [kind.value for kind in StatementKind] == ["G", "M", "T"]
    statements = parse("S800 F0.2 (spindle)")
    assert len(statements) == 1
    assert statements[0].kind == StatementKind.G
    assert statements[0].code is None
    assert statements[0].param('S') == 800
    assert statements[0].param('F') == 0.2


def test_tool_word_keeps_written_digits():
    statements = parse("T0101")
    assert statements[0].kind == StatementKind.T
    assert statements[0].code == 101
    assert statements[0].code_text == "0101"


def test_bare_letter_has_no_value():
    statements = parse("G28 U")
    assert 'U' in statements[0].params
    assert math.isnan(statements[0].params['U'])
    assert statements[0].param('U') is None
    assert not statements[0].has_param('U')


def test_fractional_code_stays_float():
    assert parse("G90.1")[0].code == 90.1


def test_statements_share_source_line():
    statements = parse("N10 G0 X0\nT0202 M08")
    assert [s.source_line for s in statements] == [1, 2, 2]
    assert statements[0].param('N') == 10


def test_unrecognized_characters_warn():
    collector = ErrorCollector()
    statements = parse("%\nG0 X10 #", collector)
    assert len(statements) == 1
    warnings = collector.get_warnings()
    assert [w.line_number for w in warnings] == [1, 2]
    assert not collector.has_errors()
