"""
G-code command handlers for the lathe interpreter.
"""
import logging
from typing import Optional, Tuple
from core.parser import Statement
from core.machine_state import (MachineState, HomePosition, PositioningMode,
                                RadiusCompensation, SpindleMode, Units, CannedCycle)
from core.geometry import PathPoint, MotionKind, compensate_point
from core.tool_table import ToolTable
from utils.errors import ErrorCollector

logger = logging.getLogger(__name__)

# Codes whose statements count as cutting for wear/spark purposes
CUT_CODES = {1, 2, 3, 32, 33, 71, 72, 74, 75, 76}

# Codes that commit a visible path point
PATH_CODES = {0, 1, 2, 3, 32, 33}

CANNED_CYCLE_CODES = {70, 71, 72, 73, 74, 75, 76}


def classify_motion(statement: Statement) -> MotionKind:
    """CUT for feed/thread/cycle statements, RAPID for everything else."""
    if statement.is_g(*CUT_CODES):
        return MotionKind.CUT
    return MotionKind.RAPID


class GCodeHandlers:
    """Handles execution of G-codes against a replay's machine state."""

    def __init__(self, tool_table: ToolTable, home: HomePosition,
                 error_collector: ErrorCollector,
                 g44_negates_offset: bool = False):
        self.tool_table = tool_table
        self.home = home
        self.error_collector = error_collector
        self.g44_negates_offset = g44_negates_offset

        # Modal handlers run before the statement's axis words are applied
        self.modal_handlers = {
            20: self.handle_g20_inches,
            21: self.handle_g21_millimeters,
            40: self.handle_g40_compensation_off,
            41: self.handle_g41_compensation_left,
            42: self.handle_g42_compensation_right,
            43: self.handle_g43_length_offset,
            44: self.handle_g44_length_offset_negative,
            49: self.handle_g49_length_offset_cancel,
            50: self.handle_g50_spindle_clamp,
            90: self.handle_g90_absolute,
            91: self.handle_g91_incremental,
            96: self.handle_g96_constant_surface_speed,
            97: self.handle_g97_constant_rpm,
        }
        for code in CANNED_CYCLE_CODES:
            self.modal_handlers[code] = self.handle_canned_cycle

        # Motion handlers run after the axis words moved the position
        self.motion_handlers = {code: self.handle_linear_or_arc for code in PATH_CODES}
        self.motion_handlers[28] = self.handle_g28_return_home

    def execute_g_code(self, statement: Statement, state: MachineState):
        """Fold one G statement (or a code-less parameter line) into the state."""
        code = statement.code

        modal = self.modal_handlers.get(code)
        if modal:
            modal(statement, state)

        start = (state.x, state.z)
        self.apply_axis_words(statement, state)

        motion = self.motion_handlers.get(code)
        if motion:
            motion(statement, state, start)

    def apply_axis_words(self, statement: Statement, state: MachineState):
        """
        Move the nominal position by the statement's axis words.

        X/Z follow the positioning mode; U/W are always incremental and are
        added after X/Z on the same statement.
        """
        absolute = state.is_absolute()

        x = statement.param('X')
        if x is not None:
            state.x = x if absolute else state.x + x
        u = statement.param('U')
        if u is not None:
            state.x += u

        z = statement.param('Z')
        if z is not None:
            state.z = z if absolute else state.z + z
        w = statement.param('W')
        if w is not None:
            state.z += w

    # Motion

    def handle_linear_or_arc(self, statement: Statement, state: MachineState,
                             start: Tuple[float, float]):
        """
        G0/G1/G2/G3/G32/G33 - commit the endpoint.
        Arcs and threads are recorded by endpoint only.
        """
        kind = classify_motion(statement)
        self._append_point(statement, state, kind, start)

    def handle_g28_return_home(self, statement: Statement, state: MachineState,
                               start: Tuple[float, float]):
        """
        G28 - Return to home through the current point.
        Named axes (X/U, Z/W) return; a bare G28 returns both.
        """
        line = statement.source_line
        state.path.append(PathPoint.nominal(state.x, state.z, MotionKind.RAPID, line))

        x_named = statement.has_param('X') or statement.has_param('U')
        z_named = statement.has_param('Z') or statement.has_param('W')
        if not x_named and not z_named:
            x_named = z_named = True

        if x_named:
            state.x = self.home.x
        if z_named:
            state.z = self.home.z

        state.path.append(PathPoint.nominal(state.x, state.z, MotionKind.RAPID, line))

    def _append_point(self, statement: Statement, state: MachineState,
                      kind: MotionKind, start: Tuple[float, float]):
        line = statement.source_line
        compensation = state.radius_compensation

        if kind == MotionKind.CUT and compensation != RadiusCompensation.OFF:
            nose_radius = self.tool_table.nose_radius(state.active_tool)
            if nose_radius > 0:
                previous = state.last_point()
                prev_x, prev_z = (previous.x, previous.z) if previous else start
                cx, cz = compensate_point(prev_x, prev_z, state.x, state.z,
                                          compensation.name, nose_radius)
                state.path.append(PathPoint(state.x, state.z, kind, cx, cz,
                                            (cx, cz) != (state.x, state.z), line))
                return

        state.path.append(PathPoint.nominal(state.x, state.z, kind, line))

    # Modal groups

    def handle_g20_inches(self, statement: Statement, state: MachineState):
        """G20 - Programming in inches (recorded, no unit conversion)"""
        state.units = Units.INCHES

    def handle_g21_millimeters(self, statement: Statement, state: MachineState):
        """G21 - Programming in millimeters"""
        state.units = Units.MILLIMETERS

    def handle_g40_compensation_off(self, statement: Statement, state: MachineState):
        state.radius_compensation = RadiusCompensation.OFF

    def handle_g41_compensation_left(self, statement: Statement, state: MachineState):
        state.radius_compensation = RadiusCompensation.LEFT

    def handle_g42_compensation_right(self, statement: Statement, state: MachineState):
        state.radius_compensation = RadiusCompensation.RIGHT

    def handle_g43_length_offset(self, statement: Statement, state: MachineState):
        """
        G43 - Tool length offset
        H - tool id whose configured length offset becomes active
        """
        offset = self._lookup_length_offset(statement)
        if offset is not None:
            state.tool_length_offset = offset

    def handle_g44_length_offset_negative(self, statement: Statement, state: MachineState):
        """
        G44 - Negative tool length offset
        Only applied when the machine is configured for it; otherwise modal no-op.
        """
        if not self.g44_negates_offset:
            logger.debug("G44 on line %d accepted without effect", statement.source_line)
            return
        offset = self._lookup_length_offset(statement)
        if offset is not None:
            state.tool_length_offset = -offset

    def handle_g49_length_offset_cancel(self, statement: Statement, state: MachineState):
        state.tool_length_offset = 0.0

    def handle_g50_spindle_clamp(self, statement: Statement, state: MachineState):
        """G50 - Maximum spindle speed clamp (S is a limit, not a live speed)"""
        limit = statement.param('S')
        if limit is not None:
            state.max_spindle_speed = limit

    def handle_g90_absolute(self, statement: Statement, state: MachineState):
        state.positioning_mode = PositioningMode.ABSOLUTE

    def handle_g91_incremental(self, statement: Statement, state: MachineState):
        state.positioning_mode = PositioningMode.INCREMENTAL

    def handle_g96_constant_surface_speed(self, statement: Statement, state: MachineState):
        state.spindle_mode = SpindleMode.CSS

    def handle_g97_constant_rpm(self, statement: Statement, state: MachineState):
        state.spindle_mode = SpindleMode.RPM

    def handle_canned_cycle(self, statement: Statement, state: MachineState):
        """
        G70-G76 - Canned cycles.
        Bookkeeping only: the visible path comes from the authored P..Q profile.
        """
        words = {letter: statement.param(letter) for letter in statement.params
                 if statement.param(letter) is not None}
        state.active_cycle = CannedCycle(int(statement.code), statement.source_line, words)

    def _lookup_length_offset(self, statement: Statement) -> Optional[float]:
        h_word = statement.param('H')
        if h_word is None:
            return None
        tool_id = int(h_word)
        offset = self.tool_table.length_offset(tool_id)
        if offset is None:
            self.error_collector.add_warning(
                statement.source_line,
                f"G{statement.code} H{tool_id}: tool not in tool table"
            )
        return offset
