"""
Main G-code processor interface.
This is the primary entry point for batch use of the lathe interpreter.
"""
import logging
from typing import List, Dict, Any, Optional, Tuple
from config.machine_config import ConfigManager, MachineConfig
from core.interpreter import GCodeInterpreter
from core.geometry import PathPoint, PathTracker, MotionKind
from core.machine_state import MachineState
from core.parser import Statement, parse
from utils.errors import ErrorCollector, ErrorSeverity, GCodeError

logger = logging.getLogger(__name__)


class GCodeProcessor:
    """
    Main interface for G-code processing.
    Provides a simple API for text editors and the lathe viewport.
    """

    def __init__(self, config: Optional[MachineConfig] = None):
        self.config = config or ConfigManager.lathe()
        self.tool_table = self.config.tool_table()
        self.home = self.config.home_position()
        self.interpreter = GCodeInterpreter(self.tool_table, self.home,
                                            self.config.g_codes,
                                            self.config.g44_negates_offset)
        self.error_collector = ErrorCollector()
        # Editor validation keeps its own findings so replay diagnostics survive it
        self.syntax_collector = ErrorCollector()
        self.statements: List[Statement] = []
        self.machine_state: Optional[MachineState] = None
        self.path_tracker = PathTracker()
        self._last_processed_text = ""
        self._processing_successful = False

    def process_gcode(self, gcode_text: str, current_line: Optional[int] = None) -> bool:
        """
        Process G-code text and build the toolpath.

        Args:
            gcode_text: Raw G-code text to process
            current_line: Statement index to replay up to; the whole program if None

        Returns:
            True if processing succeeded without fatal errors
        """
        self.reset()
        self._last_processed_text = gcode_text
        self.statements = parse(gcode_text, self.error_collector)

        upto = len(self.statements) - 1 if current_line is None else current_line
        result = self.interpreter.interpret(self.statements, upto)
        self.error_collector.errors.extend(result.warnings)

        if result.ok:
            self.machine_state = result.state
        else:
            self.error_collector.errors.append(result.error)
            # Keep the geometry up to the last statement that folded cleanly
            self.machine_state = self.interpreter.interpret(
                self.statements, result.statement_index).state

        self.path_tracker = PathTracker(self.machine_state.path)
        self._processing_successful = result.ok
        logger.debug("Processed %d statements, %d path points, ok=%s",
                     len(self.statements), len(self.path_tracker.points), result.ok)
        return self._processing_successful

    def validate_syntax(self, gcode_text: str) -> bool:
        """
        Validate G-code without a full replay.
        Useful for real-time editor feedback: every statement is checked, not
        just the ones before the first failure.

        Returns:
            True if no statement would halt the replay
        """
        self.syntax_collector.clear()
        statements = parse(gcode_text, self.syntax_collector)
        for statement in statements:
            self.interpreter.validate(statement, self.syntax_collector)
        return not self.syntax_collector.has_fatal_errors()

    # Error handling methods for editor integration

    def get_errors_for_line(self, line_number: int) -> List[GCodeError]:
        """Get all errors for a specific line number."""
        return self.error_collector.get_errors_for_line(line_number)

    def get_all_errors(self) -> List[GCodeError]:
        """Get all errors from the last processing."""
        return self.error_collector.get_all_errors()

    def get_syntax_errors(self) -> List[GCodeError]:
        """Findings of the last validate_syntax call."""
        return self.syntax_collector.get_all_errors()

    def get_editor_errors(self) -> List[GCodeError]:
        """Processing errors plus any syntax findings not already reported."""
        merged = list(self.error_collector.errors)
        for error in self.syntax_collector.errors:
            if error not in merged:
                merged.append(error)
        return sorted(merged, key=lambda e: (e.line_number, e.char_start))

    def has_errors(self) -> bool:
        """Check if there are any errors (excluding warnings)."""
        return self.error_collector.has_errors()

    def has_fatal_errors(self) -> bool:
        """Check if there are any fatal errors."""
        return self.error_collector.has_fatal_errors()

    # Geometry methods for the viewport

    def get_path(self) -> List[PathPoint]:
        return list(self.path_tracker.points)

    def get_cut_points(self) -> List[PathPoint]:
        return self.path_tracker.get_points_by_kind(MotionKind.CUT)

    def get_rapid_points(self) -> List[PathPoint]:
        return self.path_tracker.get_points_by_kind(MotionKind.RAPID)

    def get_points_for_line(self, line_number: int) -> List[PathPoint]:
        """Path points committed by a given 1-based source line."""
        return self.path_tracker.get_points_for_line(line_number)

    def get_bounding_box(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """((min_x, min_z), (max_x, max_z)) over the whole path."""
        return self.path_tracker.get_bounding_box()

    # Statistics and information methods

    def get_statistics(self) -> Dict[str, Any]:
        """Path statistics plus program and error counts."""
        return {
            'program': {
                'statements': len(self.statements),
                'errors': self._count(ErrorSeverity.ERROR),
                'fatal_errors': self._count(ErrorSeverity.FATAL),
                'warnings': self._count(ErrorSeverity.WARNING),
            },
            'geometry': self.path_tracker.get_statistics((self.home.x, self.home.z)),
        }

    def _count(self, severity: ErrorSeverity) -> int:
        return sum(1 for e in self.error_collector.errors if e.severity == severity)

    def get_machine_state(self) -> Dict[str, Any]:
        """Get current machine state summary."""
        if self.machine_state is None:
            return MachineState.initial(self.home).get_state_summary()
        return self.machine_state.get_state_summary()

    def was_processing_successful(self) -> bool:
        return self._processing_successful

    def get_last_processed_text(self) -> str:
        return self._last_processed_text

    # Utility methods

    def reset(self):
        """Reset processor to initial state."""
        self.error_collector.clear()
        self.syntax_collector.clear()
        self.statements = []
        self.machine_state = None
        self.path_tracker = PathTracker()
        self._last_processed_text = ""
        self._processing_successful = False

    def get_toolpath_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the toolpath for display purposes.

        Returns:
            Dictionary with toolpath summary information
        """
        geometry = self.get_statistics()['geometry']
        (min_x, min_z), (max_x, max_z) = self.get_bounding_box()

        return {
            'total_length': geometry['total_length'],
            'rapid_length': geometry['rapid_length'],
            'cut_length': geometry['cut_length'],
            'total_points': geometry['total_points'],
            'bounding_box': {
                'min': [min_x, min_z],
                'max': [max_x, max_z],
                'size': [max_x - min_x, max_z - min_z],
            },
            'move_types': {
                'rapid': geometry['rapid_points'],
                'cut': geometry['cut_points'],
                'compensated': geometry['compensated_points'],
            },
        }


if __name__ == "__main__":
    from utils.logging_config import setup_logging

    setup_logging()
    processor = GCodeProcessor()

    test_gcode = """
G21 G90 G40  (Metric, absolute, no compensation)
T0101 G43 H1
G96 S200 M03
G0 X82 Z2    ; Approach
G71 U1.5 R0.5
G71 P10 Q20 U0.4 W0.1 F0.25
N10 G0 X40
G42 G1 Z-20
X60 Z-40
N20 G1 X82
G40 G28 U0 W0
M30
"""

    success = processor.process_gcode(test_gcode)

    print(f"Processing successful: {success}")
    print(f"Path points: {len(processor.get_path())}")

    for error in processor.get_all_errors():
        print(f"  {error}")

    summary = processor.get_toolpath_summary()
    print("\nToolpath summary:")
    print(f"  Total length: {summary['total_length']:.2f}")
    print(f"  Cut length: {summary['cut_length']:.2f}")
    print(f"  Rapid length: {summary['rapid_length']:.2f}")
    print(f"  Bounding box: {summary['bounding_box']['size']}")
