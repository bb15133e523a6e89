"""
Side-channel signals emitted by a replay.

These are not folded into MachineState. They tell the driver that the
statement at the cursor needs something from outside the engine: an operator
confirming a tool change, or the wear tracker zeroing a tool.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DriverSignal:
    """Base class for all driver signals."""
    statement_index: int
    source_line_number: int


@dataclass(frozen=True)
class ToolChangeRequest(DriverSignal):
    """The cursor sits on a T statement; pause for manual confirmation."""
    tool_number: int


@dataclass(frozen=True)
class WearReset(DriverSignal):
    """M100 at the cursor: zero the active tool's wear."""
    tool_number: int


@dataclass(frozen=True)
class WearDelta:
    """Wear flushed to the tool table by the accumulator."""
    tool_number: int
    increment: float
    wear_percent: float
