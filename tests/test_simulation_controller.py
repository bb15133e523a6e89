"""Run-mode driver: ticking, tool change gate, alarms and wear."""

import pytest

from core.machine_state import SpindleDirection
from core.simulation_controller import RunMode, SimulationController, STALLED_TICK_MS
from core.wear import Material

PROGRAM = """G0 X60 Z2
T0202
G1 X40 F0.2
M03 S500
G1 Z-20
M30"""


@pytest.fixture
def controller(config):
    controller = SimulationController(config)
    controller.load_program(PROGRAM)
    return controller


def test_load_program_starts_idle(controller):
    assert controller.mode == RunMode.IDLE
    assert controller.statement_count == 6
    assert controller.current_line == 0
    assert (controller.state.x, controller.state.z) == (100, 50)
    assert controller.state.path == []


def test_start_runs_first_statement(controller):
    assert controller.start()
    assert controller.mode == RunMode.RUNNING
    assert controller.state.x == 60
    assert controller.active_source_line() == 1


def test_tick_does_nothing_unless_running(controller):
    state = controller.tick()
    assert controller.current_line == 0
    assert state is controller.state


def test_tool_change_pauses_once(controller):
    controller.start()
    controller.tick()
    assert controller.mode == RunMode.PAUSED
    assert controller.pending_tool_change.tool_number == 2
    assert controller.last_handled_tool_line == 1

    controller.tick()
    assert controller.current_line == 1

    assert controller.confirm_tool_change()
    assert controller.mode == RunMode.RUNNING
    assert controller.pending_tool_change is None
    assert not controller.confirm_tool_change()

    # Same cursor again does not re-prompt
    controller.refresh()
    assert controller.mode == RunMode.RUNNING

    controller.tick()
    assert controller.current_line == 2
    assert controller.state.active_tool == 2


def test_start_confirms_pending_tool_change(controller):
    controller.start()
    controller.tick()
    assert controller.start()
    assert controller.mode == RunMode.RUNNING
    assert controller.pending_tool_change is None


def test_rewind_clears_tool_change_gate(controller):
    controller.start()
    controller.tick()
    controller.confirm_tool_change()
    controller.tick()
    controller.tick()

    controller.seek(0)
    assert controller.last_handled_tool_line == -1
    controller.seek(1)
    assert controller.mode == RunMode.PAUSED
    assert controller.pending_tool_change is not None


def test_program_end_returns_to_idle(controller):
    controller.start()
    controller.tick()
    controller.confirm_tool_change()
    for _ in range(4):
        controller.tick()
    assert controller.current_line == 5
    assert controller.mode == RunMode.RUNNING

    controller.tick()
    assert controller.mode == RunMode.IDLE
    assert controller.state.path == []


def test_start_at_end_rewinds(controller):
    controller.seek(5)
    controller.start()
    assert controller.current_line == 0
    assert controller.mode == RunMode.RUNNING


def test_pause_and_resume(controller):
    controller.start()
    controller.pause()
    assert controller.mode == RunMode.PAUSED
    controller.tick()
    assert controller.current_line == 0
    controller.start()
    assert controller.mode == RunMode.RUNNING


def test_alarm_freezes_until_reset(config):
    controller = SimulationController(config)
    controller.load_program("G0 X60\nG1 X40\nG05 X1\nG0 X10")
    controller.start()
    controller.tick()
    controller.tick()

    assert controller.mode == RunMode.ALARM
    assert controller.error.line == 3
    assert "G5" in controller.error.message
    assert controller.state.x == 40
    assert controller.current_line == 2

    controller.tick()
    controller.seek(3)
    controller.pause()
    assert not controller.start()
    assert controller.mode == RunMode.ALARM
    assert controller.current_line == 2

    controller.reset()
    assert controller.mode == RunMode.IDLE
    assert controller.error is None
    assert controller.current_line == 0


def test_alarm_on_first_statement_shows_initial_state(config):
    controller = SimulationController(config)
    controller.load_program("G07\nG0 X10")
    controller.start()
    assert controller.mode == RunMode.ALARM
    assert (controller.state.x, controller.state.z) == (100, 50)


def test_idle_shows_manual_spindle(controller):
    controller.set_manual_spindle(SpindleDirection.CW, 1000)
    assert controller.state.spindle_direction == SpindleDirection.CW
    assert controller.state.spindle_speed == 1000


def test_manual_spindle_ignored_while_running(controller):
    controller.start()
    controller.set_manual_spindle(SpindleDirection.CW, 1000)
    assert controller.state.spindle_direction == SpindleDirection.STOP


@pytest.mark.parametrize("override, expected", [
    (100, 500),
    (50, 1000),
    (150, 333),
    (200, 333),
    (0, STALLED_TICK_MS),
])
def test_tick_interval(controller, override, expected):
    controller.set_feed_override(override)
    assert controller.tick_interval_ms() == expected


def test_cutting_wears_active_tool(config):
    controller = SimulationController(config)
    controller.load_program("M03 S500\nG0 X40 Z0\nG1 Z-20 F0.2")
    controller.start()
    controller.tick()
    controller.tick()
    assert controller.last_wear_delta.tool_number == 1
    assert controller.tool_table.wear(1) == pytest.approx(4.0)


def test_material_changes_wear_rate(config):
    controller = SimulationController(config)
    controller.set_material(Material.WOOD)
    controller.load_program("M03 S500\nG0 X40 Z0\nG1 Z-100 F0.2")
    controller.start()
    controller.tick()
    controller.tick()
    assert controller.tool_table.wear(1) == pytest.approx(2.0)


def test_m100_resets_wear(config):
    controller = SimulationController(config)
    controller.load_program("T0101\nM03 S500\nG0 X40 Z0\nG1 Z-20\nM100")
    controller.start()
    controller.confirm_tool_change()
    for _ in range(3):
        controller.tick()
    assert controller.tool_table.wear(1) == pytest.approx(4.0)

    controller.tick()
    assert controller.tool_table.wear(1) == 0


def test_refresh_reuses_cached_replay(controller):
    controller.start()
    first = controller.refresh()
    assert controller.refresh() is first


def test_empty_program(config):
    controller = SimulationController(config)
    controller.load_program("")
    controller.start()
    controller.tick()
    assert controller.mode == RunMode.IDLE
    assert controller.current_statement() is None


def test_replay_cache_stays_bounded_while_wear_changes(config):
    controller = SimulationController(config)
    controller.load_program("M03 S500\nG0 X40 Z0\nG1 Z-20 F0.2\nG1 Z0\nG1 Z-20\nG1 Z0")
    for _ in range(4):
        controller.start()
        while controller.mode == RunMode.RUNNING:
            controller.tick()
        assert len(controller._cache) <= controller.statement_count
    assert controller.tool_table.wear(1) > 0
