"""
Error definitions and handling for the lathe G-code interpreter.
"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional, List, Union


class ErrorType(Enum):
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    RUNTIME = "runtime"
    WARNING = "warning"


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


@dataclass
class GCodeError:
    """Represents an error in G-code processing with position information."""
    line_number: int
    char_start: int
    char_end: int
    message: str
    error_type: ErrorType
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: Optional[Union[int, float]] = None  # Offending G/M number, if any

    @property
    def line(self) -> int:
        """1-based source line, as reported to the operator."""
        return self.line_number

    @property
    def is_fatal(self) -> bool:
        return self.severity == ErrorSeverity.FATAL

    def __str__(self):
        return f"Line {self.line_number}: {self.message}"


class ErrorCollector:
    """Collects and manages errors during G-code processing."""

    def __init__(self):
        self.errors: List[GCodeError] = []

    def add_error(self, line_number: int, char_start: int, char_end: int,
                  message: str, error_type: ErrorType,
                  severity: ErrorSeverity = ErrorSeverity.ERROR,
                  code: Optional[Union[int, float]] = None) -> GCodeError:
        """Add an error to the collection and return it."""
        error = GCodeError(line_number, char_start, char_end, message,
                           error_type, severity, code)
        self.errors.append(error)
        return error

    def add_warning(self, line_number: int, message: str) -> GCodeError:
        """Shortcut for non-blocking diagnostics."""
        return self.add_error(line_number, 0, 0, message,
                              ErrorType.WARNING, ErrorSeverity.WARNING)

    def get_errors_for_line(self, line_number: int) -> List[GCodeError]:
        """Get all errors for a specific line."""
        return [error for error in self.errors if error.line_number == line_number]

    def get_warnings(self) -> List[GCodeError]:
        return [error for error in self.errors if error.severity == ErrorSeverity.WARNING]

    def has_fatal_errors(self) -> bool:
        """Check if there are any fatal errors."""
        return any(error.severity == ErrorSeverity.FATAL for error in self.errors)

    def has_errors(self) -> bool:
        """Check if there are any errors (excluding warnings)."""
        return any(error.severity in [ErrorSeverity.ERROR, ErrorSeverity.FATAL]
                   for error in self.errors)

    def clear(self):
        """Clear all errors."""
        self.errors.clear()

    def get_all_errors(self) -> List[GCodeError]:
        """Get all errors sorted by line number."""
        return sorted(self.errors, key=lambda e: (e.line_number, e.char_start))
