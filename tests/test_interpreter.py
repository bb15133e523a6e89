"""Replay semantics of the lathe interpreter."""

import math

import pytest

from core.canonical import ToolChangeRequest, WearReset
from core.geometry import MotionKind
from core.interpreter import GCodeInterpreter, interpret, tool_id_from_statement
from core.machine_state import (Coolant, ManualSpindle, PositioningMode,
                                RadiusCompensation, SpindleDirection, SpindleMode)
from core.parser import parse
from utils.errors import ErrorSeverity, ErrorType


PROGRAM = """G0 X60 Z2
G1 X40 F0.2
G1 Z-20
G2 X50 Z-25 R5
G0 X80
G28
"""


def test_replay_is_deterministic(run):
    first = run(PROGRAM)
    second = run(PROGRAM)
    assert first.state == second.state
    assert first.state.path == second.state.path


def test_path_grows_as_prefix(run):
    previous = []
    for cursor in range(len(parse(PROGRAM))):
        path = run(PROGRAM, upto=cursor).state.path
        assert path[:len(previous)] == previous
        assert len(path) >= len(previous)
        previous = path
    assert len(previous) == 7  # 5 moves + two G28 points


def test_incremental_zero_move_is_noop(run):
    state = run("G90 G01 X50 Z-10\nG91 X0 Z0").state
    assert (state.x, state.z) == (50, -10)
    assert state.positioning_mode == PositioningMode.INCREMENTAL


def test_incremental_round_trip(run):
    state = run("G0 X50 Z10\nG91\nG0 X10 Z-5\nG0 X-10 Z5").state
    assert (state.x, state.z) == (50, 10)


def test_uw_are_incremental_under_absolute(run):
    state = run("G90\nG01 X40 U5").state
    assert state.x == 45

    state = run("G90 G0 X50 Z0\nG0 U10 W-5").state
    assert (state.x, state.z) == (60, -5)


def test_g28_selective_return(run):
    state = run("G0 X40 Z-30\nG28 U0").state
    assert (state.x, state.z) == (100, -30)

    state = run("G0 X40 Z-30\nG28 W0").state
    assert (state.x, state.z) == (40, 50)


def test_bare_g28_returns_both_axes_through_current_point(run):
    state = run("G0 X40 Z-30\nG28").state
    assert (state.x, state.z) == (100, 50)
    first, second = state.path[-2:]
    assert (first.x, first.z) == (40, -30)
    assert (second.x, second.z) == (100, 50)
    assert first.motion_kind == second.motion_kind == MotionKind.RAPID
    assert first.source_line == second.source_line == 2


@pytest.mark.parametrize("text, expected", [
    ("T0101", 1),
    ("T0202", 2),
    ("T3", 3),
    ("T101", 10),
])
def test_tool_id_extraction(run, text, expected):
    assert run(text).state.active_tool == expected
    assert tool_id_from_statement(parse(text)[0]) == expected


def test_tool_zero_keeps_active_tool(run):
    assert run("T0202\nT0").state.active_tool == 2


def test_negative_tool_word_keeps_active_tool(run):
    statement = parse("T-1")[0]
    assert tool_id_from_statement(statement) == -1

    result = run("T0202\nT-1")
    assert result.state.active_tool == 2
    assert result.signal(ToolChangeRequest).tool_number == 2


def test_unsupported_code_halts_with_line(run):
    program = "G0 X10\nG1 Z-5\nM03\nS800\nG999 X1\nG0 X20"
    statements = parse(program)
    for cursor in range(4, len(statements)):
        result = run(program, upto=cursor)
        assert not result.ok
        assert result.state is None
        assert result.error.line == 5
        assert result.error.code == 999
        assert result.error.error_type == ErrorType.SYNTAX
        assert result.error.severity == ErrorSeverity.FATAL
        assert result.statement_index == 3
    assert str(run(program).error) == "Line 5: Unsupported G-code: G999 on line 5"


def test_lines_before_unsupported_code_still_fold(run):
    assert run("G0 X10\nG999", upto=0).ok


def test_g42_compensation_offsets_to_the_right(run):
    state = run("G0 X40 Z0\nG42 G1 Z-20").state
    point = state.path[-1]
    assert (point.x, point.z) == (40, -20)
    assert point.cx == pytest.approx(38.4)
    assert point.cz == pytest.approx(-20)
    assert point.compensated
    assert state.radius_compensation == RadiusCompensation.RIGHT


def test_g41_compensation_offsets_to_the_left(run):
    point = run("G0 X40 Z0\nG41 G1 Z-20").state.path[-1]
    assert point.cx == pytest.approx(41.6)
    assert point.cz == pytest.approx(-20)


def test_compensation_reference_is_nominal_point(run):
    state = run("G0 X40 Z0\nG42 G1 Z-20\nG1 Z-40").state
    point = state.path[-1]
    assert point.cx == pytest.approx(38.4)
    assert point.cz == pytest.approx(-40)


def test_zero_length_move_is_not_compensated(run):
    point = run("G0 X40 Z0\nG41\nG1 X40 Z0").state.path[-1]
    assert (point.cx, point.cz) == (point.x, point.z)
    assert not point.compensated
    assert not math.isnan(point.cx)


def test_rapid_and_zero_radius_are_not_compensated(run):
    state = run("G42\nG0 X40 Z0\nT0202\nG1 Z-20").state
    assert all(not p.compensated for p in state.path)


def test_idle_reflects_manual_spindle(tool_table, home):
    statements = parse(PROGRAM)
    result = interpret(statements, 3, tool_table=tool_table, home=home, idle=True,
                       manual_spindle=ManualSpindle(SpindleDirection.CW, 1000))
    assert result.state.spindle_direction == SpindleDirection.CW
    assert result.state.spindle_speed == 1000
    assert (result.state.x, result.state.z) == (100, 50)
    assert result.state.path == []


def test_idle_with_stopped_spindle_reports_zero_speed(tool_table, home):
    result = interpret([], 0, tool_table=tool_table, home=home, idle=True,
                       manual_spindle=ManualSpindle(SpindleDirection.STOP, 1000))
    assert result.state.spindle_speed == 0


def test_g50_sets_clamp_not_speed(run):
    state = run("G50 S2500\nG96 S200 M03").state
    assert state.max_spindle_speed == 2500
    assert state.spindle_speed == 200
    assert state.spindle_mode == SpindleMode.CSS
    assert state.spindle_direction == SpindleDirection.CW


def test_g50_clamps_speed_and_applies_axis_words(run):
    state = run("G0 X60 Z2\nG50 X200 Z300 S3000").state
    assert (state.x, state.z) == (200, 300)
    assert state.spindle_speed == 0
    assert state.max_spindle_speed == 3000
    assert len(state.path) == 1


def test_length_offset(run):
    assert run("G43 H1").state.tool_length_offset == 5.5
    assert run("G43 H3").state.tool_length_offset == 8.2
    assert run("G43 H1\nG49").state.tool_length_offset == 0


def test_length_offset_for_unknown_tool_warns(run):
    result = run("G43 H2\nG43 H9")
    assert result.ok
    assert result.state.tool_length_offset == 3.0
    assert any("H9" in w.message for w in result.warnings)


def test_g44_is_noop_by_default(run):
    assert run("G44 H2").state.tool_length_offset == 0


def test_g44_negates_offset_when_configured(tool_table, home):
    interpreter = GCodeInterpreter(tool_table, home, g44_negates_offset=True)
    result = interpreter.interpret(parse("G44 H2"), 0)
    assert result.state.tool_length_offset == -3.0


def test_canned_cycle_adds_no_path_point(run):
    state = run("G0 X60 Z2\nG71 U2 R1\nG71 P70 Q110 U0.5 W0.1 F0.3").state
    assert (state.x, state.z) == (62.5, 2.1)
    assert len(state.path) == 1
    assert state.active_cycle.code == 71
    assert state.active_cycle.words['P'] == 70
    assert state.feed_rate == 0.3


@pytest.mark.parametrize("second_line", [
    "G71 P70 Q110 U0.5 W0.1 F0.3",
    "P70 Q110 U0.5 W0.1 F0.3",
])
def test_cycle_words_move_the_same_with_or_without_code(run, second_line):
    state = run("G0 X60 Z2\nG71 U2 R1\n" + second_line).state
    assert (state.x, state.z) == (62.5, 2.1)
    assert len(state.path) == 1


def test_dwell_words_are_incremental_moves(run):
    state = run("G0 X60 Z2\nG04 U1.5").state
    assert state.x == 61.5
    assert len(state.path) == 1


def test_cut_classification(run):
    state = run("G0 X60 Z2\nG1 X40\nG32 Z-20 F1.5\nG3 X50 Z-25 R5").state
    kinds = [p.motion_kind for p in state.path]
    assert kinds == [MotionKind.RAPID, MotionKind.CUT, MotionKind.CUT, MotionKind.CUT]


def test_parameter_continuation_moves_without_path_point(run):
    state = run("G1 X40 Z0\nZ-20").state
    assert state.z == -20
    assert len(state.path) == 1


def test_axis_words_on_m_statement_move(run):
    state = run("G0 X60 Z2\nM08 X50").state
    assert state.x == 50
    assert state.coolant == Coolant.FLOOD


def test_coolant_and_spindle_codes(run):
    state = run("M03 S500\nM07\nM04\nM09\nM05").state
    assert state.spindle_direction == SpindleDirection.STOP
    assert state.spindle_speed == 500
    assert state.coolant == Coolant.OFF


def test_unknown_m_code_is_permissive(run):
    result = run("M19\nG0 X10")
    assert result.ok
    assert result.state.x == 10
    assert any("M19" in w.message for w in result.warnings)


def test_nan_parameters_are_ignored(run):
    state = run("G0 X40 Z-10\nG1 X Z-20").state
    assert state.x == 40
    assert state.z == -20


def test_tool_change_signal_only_at_cursor(run):
    program = "G0 X60\nT0202\nG0 X50"
    assert run(program, upto=0).signal(ToolChangeRequest) is None
    request = run(program, upto=1).signal(ToolChangeRequest)
    assert request.tool_number == 2
    assert request.statement_index == 1
    assert request.source_line_number == 2
    assert run(program, upto=2).signal(ToolChangeRequest) is None


def test_wear_reset_signal_names_active_tool(run):
    result = run("T0303\nM100")
    reset = result.signal(WearReset)
    assert reset.tool_number == 3
    assert result.state.active_tool == 3


def test_cursor_past_end_is_clamped(run):
    statements = parse(PROGRAM)
    assert run(PROGRAM, upto=100).state == run(PROGRAM, upto=len(statements) - 1).state


def test_negative_cursor_gives_initial_state(run):
    state = run(PROGRAM, upto=-1).state
    assert (state.x, state.z) == (100, 50)
    assert state.path == []
    assert state.active_tool == 1
