"""
Lathe G-code interpreter.

Replays statements 0..N from a fresh modal state and folds them into a single
MachineState plus the ordered path. Nothing survives between calls: every
query is a full replay, so callers that poll should cache by cursor.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
from core.parser import Statement, StatementKind
from core.machine_state import MachineState, HomePosition, ManualSpindle
from core.canonical import DriverSignal, ToolChangeRequest, WearReset
from core.tool_table import ToolTable
from handlers.g_codes import GCodeHandlers
from handlers.m_codes import MCodeHandlers, WEAR_RESET_CODE
from utils.errors import ErrorCollector, ErrorSeverity, ErrorType, GCodeError

logger = logging.getLogger(__name__)

SUPPORTED_G_CODES = frozenset({
    0, 1, 2, 3, 4, 20, 21, 28, 32, 33, 40, 41, 42, 43, 44, 49, 50,
    70, 71, 72, 73, 74, 75, 76, 90, 91, 96, 97, 98, 99,
})


@dataclass
class InterpretResult:
    """Either a machine state or the error that halted the replay."""
    state: Optional[MachineState] = None
    error: Optional[GCodeError] = None
    signals: List[DriverSignal] = field(default_factory=list)
    warnings: List[GCodeError] = field(default_factory=list)
    statement_index: int = -1  # Last statement folded

    @property
    def ok(self) -> bool:
        return self.error is None

    def signal(self, signal_type) -> Optional[DriverSignal]:
        for signal in self.signals:
            if isinstance(signal, signal_type):
                return signal
        return None


def tool_id_from_statement(statement: Statement) -> Optional[int]:
    """
    Tool id from a compound T word: the first two digits as written.

    T0101 -> 1, T101 -> 10, T3 -> 3. A written minus sign is kept, so T-1
    yields -1 and never selects a tool. Returns None for a bare T.
    """
    if statement.code is None:
        return None
    digits = statement.code_text or str(int(statement.code))
    digits = digits.lstrip('+').split('.')[0]
    if digits in ('', '-'):
        return None
    if len(digits) >= 2:
        return int(digits[:2])
    return int(digits)


class GCodeInterpreter:
    """Folds parsed statements into machine state."""

    def __init__(self, tool_table: Optional[ToolTable] = None,
                 home: Optional[HomePosition] = None,
                 supported_g_codes: Iterable[int] = SUPPORTED_G_CODES,
                 g44_negates_offset: bool = False):
        self.tool_table = tool_table if tool_table is not None else ToolTable()
        self.home = home if home is not None else HomePosition()
        self.supported_g_codes = frozenset(supported_g_codes)
        self.g44_negates_offset = g44_negates_offset

    def interpret(self, statements: Sequence[Statement], upto_line: int,
                  idle: bool = False,
                  manual_spindle: Optional[ManualSpindle] = None) -> InterpretResult:
        """
        Replay ``statements[0..upto_line]`` inclusive.

        Args:
            statements: Parsed program.
            upto_line: Cursor, an index into ``statements``.
            idle: Machine not running; skip the fold and reflect manual controls.
            manual_spindle: Operator spindle override used in idle mode.

        Returns:
            InterpretResult with the state, or the error that halted the replay.
        """
        if idle:
            return InterpretResult(state=MachineState.idle(self.home, manual_spindle or ManualSpindle()))

        error_collector = ErrorCollector()
        g_handlers = GCodeHandlers(self.tool_table, self.home, error_collector,
                                   self.g44_negates_offset)
        m_handlers = MCodeHandlers(error_collector)

        state = MachineState.initial(self.home)
        last_index = min(upto_line, len(statements) - 1)

        for index in range(last_index + 1):
            statement = statements[index]

            error = self.validate(statement, error_collector)
            if error is not None:
                logger.warning("Replay halted at statement %d: %s", index, error)
                return InterpretResult(error=error, warnings=error_collector.get_warnings(),
                                       statement_index=index - 1)

            self._execute_statement(statement, state, g_handlers, m_handlers)

        result = InterpretResult(state=state, warnings=error_collector.get_warnings(),
                                 statement_index=last_index)
        if last_index >= 0:
            result.signals = self._signals_for(statements[last_index], last_index, state)

        logger.debug("Replayed %d statements: X%.3f Z%.3f, %d path points",
                     last_index + 1, state.x, state.z, len(state.path))
        return result

    def validate(self, statement: Statement,
                 error_collector: Optional[ErrorCollector] = None) -> Optional[GCodeError]:
        """Reject G codes outside the supported set."""
        if statement.kind != StatementKind.G or statement.code is None:
            return None
        if statement.code in self.supported_g_codes:
            return None

        message = f"Unsupported G-code: G{statement.code} on line {statement.source_line}"
        if error_collector is None:
            error_collector = ErrorCollector()
        return error_collector.add_error(
            statement.source_line, 0, 0, message,
            ErrorType.SYNTAX, ErrorSeverity.FATAL, code=statement.code
        )

    def _execute_statement(self, statement: Statement, state: MachineState,
                           g_handlers: GCodeHandlers, m_handlers: MCodeHandlers):
        """
        Fold one statement:
        1. G statements: modal code, axis words, motion
        2. Other kinds: axis words
        3. Spindle speed (S) and feed (F)
        4. Tool selection (T)
        5. M-codes
        """
        state.current_line = statement.source_line

        if statement.kind == StatementKind.G:
            g_handlers.execute_g_code(statement, state)
        else:
            g_handlers.apply_axis_words(statement, state)

        speed = statement.param('S')
        if speed is not None and not statement.is_g(50):
            state.spindle_speed = speed

        feed = statement.param('F')
        if feed is not None:
            state.feed_rate = feed

        if statement.kind == StatementKind.T:
            tool_id = tool_id_from_statement(statement)
            if tool_id is not None and tool_id > 0:
                state.active_tool = tool_id

        if statement.kind == StatementKind.M:
            m_handlers.execute_m_code(statement, state)

    def _signals_for(self, statement: Statement, index: int,
                     state: MachineState) -> List[DriverSignal]:
        signals: List[DriverSignal] = []
        if statement.kind == StatementKind.T:
            tool_id = tool_id_from_statement(statement)
            signals.append(ToolChangeRequest(index, statement.source_line,
                                             tool_id if tool_id and tool_id > 0 else state.active_tool))
        if statement.is_m(WEAR_RESET_CODE):
            signals.append(WearReset(index, statement.source_line, state.active_tool))
        return signals


def interpret(statements: Sequence[Statement], upto_line: int,
              tool_table: Optional[ToolTable] = None,
              home: Optional[HomePosition] = None,
              manual_spindle: Optional[ManualSpindle] = None,
              idle: bool = False,
              supported_g_codes: Iterable[int] = SUPPORTED_G_CODES,
              g44_negates_offset: bool = False) -> InterpretResult:
    """Functional entry point; see ``GCodeInterpreter.interpret``."""
    interpreter = GCodeInterpreter(tool_table, home, supported_g_codes, g44_negates_offset)
    return interpreter.interpret(statements, upto_line, idle=idle, manual_spindle=manual_spindle)
