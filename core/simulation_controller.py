"""
This class acts as the main controller for the simulation, bridging the GUI
and the interpreter backend.

It owns everything the interpreter deliberately does not: the run mode, the
cursor, the alarm latch, the once-per-line tool change gate, wear updates and
the per-cursor result cache.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple
from config.machine_config import ConfigManager, MachineConfig
from core.canonical import ToolChangeRequest, WearDelta, WearReset
from core.interpreter import GCodeInterpreter, InterpretResult
from core.machine_state import MachineState, ManualSpindle, SpindleDirection
from core.parser import Statement, parse
from core.tool_table import ToolTable
from core.wear import Material, WearAccumulator
from utils.errors import ErrorCollector, GCodeError

logger = logging.getLogger(__name__)

STALLED_TICK_MS = 100000
MAX_FEED_OVERRIDE = 150


class RunMode(Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    ALARM = "ALARM"


class SimulationController:
    def __init__(self, config: Optional[MachineConfig] = None,
                 tool_table: Optional[ToolTable] = None):
        self.config = config or ConfigManager.lathe()
        self.tool_table = tool_table if tool_table is not None else self.config.tool_table()
        self.home = self.config.home_position()
        self.interpreter = GCodeInterpreter(
            self.tool_table, self.home,
            self.config.g_codes, self.config.g44_negates_offset
        )
        self.wear = WearAccumulator(self.config.wear_rate,
                                    self.config.wear_flush_threshold,
                                    self.config.stock_diameter)

        self.program_text = ""
        self.statements: List[Statement] = []
        self.parse_warnings: List[GCodeError] = []

        self.mode = RunMode.IDLE
        self.current_line = 0
        self.error: Optional[GCodeError] = None
        self.manual_spindle = ManualSpindle()
        self.feed_override = 100
        self.material = Material.STEEL

        self.pending_tool_change: Optional[ToolChangeRequest] = None
        self.last_handled_tool_line = -1
        self.last_wear_delta: Optional[WearDelta] = None

        self.state = MachineState.idle(self.home, self.manual_spindle)
        self._previous_xz: Tuple[float, float] = (self.home.x, self.home.z)
        # Replays keyed by cursor, valid for one tool-table revision
        self._cache: Dict[int, InterpretResult] = {}
        self._cache_revision = self.tool_table.revision

    # Program

    def load_program(self, text: str):
        """Parse a new program and reset the machine."""
        collector = ErrorCollector()
        self.program_text = text
        self.statements = parse(text, collector)
        self.parse_warnings = collector.get_warnings()
        self._cache.clear()
        logger.info("Loaded program: %d statements", len(self.statements))
        self.reset()

    @property
    def statement_count(self) -> int:
        return len(self.statements)

    def current_statement(self) -> Optional[Statement]:
        if 0 <= self.current_line < len(self.statements):
            return self.statements[self.current_line]
        return None

    def active_source_line(self) -> Optional[int]:
        """1-based text line of the statement under the cursor."""
        statement = self.current_statement()
        return statement.source_line if statement else None

    # Run mode transitions

    def start(self) -> bool:
        """Cycle start. Ignored while in alarm."""
        if self.mode == RunMode.ALARM:
            return False
        if self.pending_tool_change is not None:
            return self.confirm_tool_change()
        if self.mode in (RunMode.IDLE, RunMode.PAUSED):
            if self.current_line >= len(self.statements) - 1:
                self.current_line = 0
            self._set_mode(RunMode.RUNNING)
            self.refresh()
        return True

    def pause(self):
        if self.mode != RunMode.ALARM:
            self._set_mode(RunMode.PAUSED)

    def reset(self):
        """Back to idle at the first statement; clears the alarm."""
        self.current_line = 0
        self.error = None
        self.pending_tool_change = None
        self.last_handled_tool_line = -1
        self.wear.reset()
        self._set_mode(RunMode.IDLE)
        self.refresh()

    def confirm_tool_change(self) -> bool:
        """Operator confirmed the tool change; resume the cycle."""
        if self.pending_tool_change is None:
            return False
        logger.info("Tool change to T%d confirmed", self.pending_tool_change.tool_number)
        self.pending_tool_change = None
        if self.mode == RunMode.PAUSED:
            self._set_mode(RunMode.RUNNING)
        return True

    def tick(self) -> MachineState:
        """Advance one statement while running."""
        if self.mode != RunMode.RUNNING:
            return self.state
        if self.current_line >= len(self.statements) - 1:
            logger.info("Program finished at statement %d", self.current_line)
            self._set_mode(RunMode.IDLE)
        else:
            self.current_line += 1
        return self.refresh()

    def seek(self, index: int) -> MachineState:
        """Move the cursor directly, e.g. when the operator steps or rewinds."""
        if self.mode == RunMode.ALARM:
            return self.state
        upper = max(len(self.statements) - 1, 0)
        self.current_line = max(0, min(index, upper))
        return self.refresh()

    # Operator inputs

    def set_manual_spindle(self, direction: SpindleDirection, speed: float):
        self.manual_spindle = ManualSpindle(direction, speed)
        if self.mode == RunMode.IDLE:
            self.refresh()

    def set_feed_override(self, percent: int):
        self.feed_override = max(0, min(MAX_FEED_OVERRIDE, int(percent)))

    def set_material(self, material: Material):
        self.material = material

    def tick_interval_ms(self) -> int:
        """Timer period for the current feed override."""
        if self.feed_override <= 0:
            return STALLED_TICK_MS
        return int(self.config.base_tick_ms * 100 / self.feed_override)

    # State

    def refresh(self) -> MachineState:
        """Recompute the displayed state for the current mode and cursor."""
        if self.mode == RunMode.ALARM:
            return self.state

        if self.current_line < self.last_handled_tool_line:
            self.pending_tool_change = None
            self.last_handled_tool_line = -1

        if self.mode == RunMode.IDLE:
            self.pending_tool_change = None
            self.last_handled_tool_line = -1
            self.state = MachineState.idle(self.home, self.manual_spindle)
            self._previous_xz = (self.home.x, self.home.z)
            return self.state

        if not self.statements:
            return self.state

        result = self._interpret(self.current_line)
        if not result.ok:
            self._raise_alarm(result)
            return self.state

        if self.mode == RunMode.RUNNING:
            self._handle_signals(result)

        self.state = result.state
        self.last_wear_delta = self.wear.update(self.tool_table, self._previous_xz,
                                                self.state, self.material)
        self._previous_xz = (self.state.x, self.state.z)
        return self.state

    def _handle_signals(self, result: InterpretResult):
        request = result.signal(ToolChangeRequest)
        if request is not None and self.last_handled_tool_line != self.current_line:
            logger.info("Tool change requested at line %d (T%d)",
                        request.source_line_number, request.tool_number)
            self.pending_tool_change = request
            self.last_handled_tool_line = self.current_line
            self._set_mode(RunMode.PAUSED)

        reset = result.signal(WearReset)
        if reset is not None:
            self.tool_table.reset_wear(reset.tool_number)
            self.wear.reset()

    def _raise_alarm(self, result: InterpretResult):
        self.error = result.error
        self._set_mode(RunMode.ALARM)
        logger.warning("ALARM: %s", result.error)

        # Show the last statement that folded cleanly
        fallback = self._interpret(result.statement_index)
        if fallback.ok:
            self.state = fallback.state
            self._previous_xz = (self.state.x, self.state.z)

    def _interpret(self, index: int) -> InterpretResult:
        if self._cache_revision != self.tool_table.revision:
            self._cache.clear()
            self._cache_revision = self.tool_table.revision
        result = self._cache.get(index)
        if result is None:
            result = self.interpreter.interpret(self.statements, index)
            self._cache[index] = result
        return result

    def _set_mode(self, mode: RunMode):
        if mode != self.mode:
            logger.info("Mode %s -> %s", self.mode.value, mode.value)
            self.mode = mode
