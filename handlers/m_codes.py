"""
M-code command handlers for the lathe interpreter.

M-codes are permissive: codes without a handler are folded as no-ops and
noted as warnings, never as errors.
"""
import logging
from core.parser import Statement
from core.machine_state import MachineState, SpindleDirection, Coolant
from utils.errors import ErrorCollector

logger = logging.getLogger(__name__)

WEAR_RESET_CODE = 100


class MCodeHandlers:
    """Handles execution of M-codes."""

    def __init__(self, error_collector: ErrorCollector):
        self.error_collector = error_collector

        self.handlers = {
            # Program control
            0: self.handle_program_stop,
            1: self.handle_program_stop,
            2: self.handle_program_end,
            30: self.handle_program_end,

            # Spindle control
            3: self.handle_m3_spindle_clockwise,
            4: self.handle_m4_spindle_counterclockwise,
            5: self.handle_m5_spindle_stop,

            # Coolant control
            7: self.handle_m7_mist_coolant_on,
            8: self.handle_m8_flood_coolant_on,
            9: self.handle_m9_coolant_off,

            # Wear reset is a driver signal; no modal change
            WEAR_RESET_CODE: self.handle_m100_wear_reset,
        }

    def execute_m_code(self, statement: Statement, state: MachineState):
        """Execute an M-code statement."""
        handler = self.handlers.get(statement.code)
        if handler:
            handler(statement, state)
            return

        if statement.code is not None:
            logger.debug("M%s on line %d has no effect", statement.code, statement.source_line)
            self.error_collector.add_warning(
                statement.source_line, f"M{statement.code} has no effect in simulation"
            )

    def handle_program_stop(self, statement: Statement, state: MachineState):
        """M0/M1 - Program stop. The trainer does not halt replay on it."""
        logger.debug("Program stop M%s at line %d", statement.code, statement.source_line)

    def handle_program_end(self, statement: Statement, state: MachineState):
        """M2/M30 - Program end. Modal state is left as programmed."""
        logger.debug("Program end M%s at line %d", statement.code, statement.source_line)

    def handle_m3_spindle_clockwise(self, statement: Statement, state: MachineState):
        state.spindle_direction = SpindleDirection.CW

    def handle_m4_spindle_counterclockwise(self, statement: Statement, state: MachineState):
        state.spindle_direction = SpindleDirection.CCW

    def handle_m5_spindle_stop(self, statement: Statement, state: MachineState):
        state.spindle_direction = SpindleDirection.STOP

    def handle_m7_mist_coolant_on(self, statement: Statement, state: MachineState):
        state.coolant = Coolant.MIST

    def handle_m8_flood_coolant_on(self, statement: Statement, state: MachineState):
        state.coolant = Coolant.FLOOD

    def handle_m9_coolant_off(self, statement: Statement, state: MachineState):
        state.coolant = Coolant.OFF

    def handle_m100_wear_reset(self, statement: Statement, state: MachineState):
        """M100 - Reset active tool wear. Acted on by the driver, not here."""
