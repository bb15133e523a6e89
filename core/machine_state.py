"""
Machine state management for the lathe interpreter.
Tracks modal codes, position, spindle, tool and coolant during a replay.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from enum import Enum
from core.geometry import PathPoint


class SpindleDirection(Enum):
    CW = "M03"
    CCW = "M04"
    STOP = "M05"


class RadiusCompensation(Enum):
    OFF = "G40"
    LEFT = "G41"
    RIGHT = "G42"


class PositioningMode(Enum):
    ABSOLUTE = "G90"
    INCREMENTAL = "G91"


class Coolant(Enum):
    OFF = "M09"
    MIST = "M07"
    FLOOD = "M08"


class SpindleMode(Enum):
    CSS = "G96"   # Constant surface speed
    RPM = "G97"


class Units(Enum):
    INCHES = "G20"
    MILLIMETERS = "G21"


@dataclass(frozen=True)
class HomePosition:
    """Reference point for initial state and G28 returns. X is a diameter."""
    x: float = 100.0
    z: float = 50.0


@dataclass(frozen=True)
class ManualSpindle:
    """Operator spindle override, only honoured while the machine is idle."""
    direction: SpindleDirection = SpindleDirection.STOP
    speed: float = 0.0


@dataclass
class CannedCycle:
    """Modal bookkeeping for the last canned cycle seen (G70-G76)."""
    code: int
    source_line: int
    words: Dict[str, float] = field(default_factory=dict)


@dataclass
class MachineState:
    """The fold result at a given statement."""
    x: float = 100.0
    z: float = 50.0
    spindle_speed: float = 0.0
    spindle_direction: SpindleDirection = SpindleDirection.STOP
    active_tool: int = 1
    tool_length_offset: float = 0.0
    radius_compensation: RadiusCompensation = RadiusCompensation.OFF
    positioning_mode: PositioningMode = PositioningMode.ABSOLUTE
    coolant: Coolant = Coolant.OFF
    path: List[PathPoint] = field(default_factory=list)

    feed_rate: float = 0.0
    max_spindle_speed: Optional[float] = None
    spindle_mode: SpindleMode = SpindleMode.RPM
    units: Units = Units.MILLIMETERS
    active_cycle: Optional[CannedCycle] = None
    current_line: int = 0

    @classmethod
    def initial(cls, home: HomePosition) -> 'MachineState':
        """Modal defaults every replay starts from."""
        return cls(x=home.x, z=home.z)

    @classmethod
    def idle(cls, home: HomePosition, manual: ManualSpindle) -> 'MachineState':
        """State shown while not running: home, manual spindle, no path."""
        speed = manual.speed if manual.direction != SpindleDirection.STOP else 0.0
        return cls(x=home.x, z=home.z, spindle_speed=speed,
                   spindle_direction=manual.direction)

    def is_absolute(self) -> bool:
        return self.positioning_mode == PositioningMode.ABSOLUTE

    def is_spindle_running(self) -> bool:
        return self.spindle_direction != SpindleDirection.STOP

    def position(self) -> tuple:
        return self.x, self.z

    def last_point(self) -> Optional[PathPoint]:
        return self.path[-1] if self.path else None

    def is_cutting(self) -> bool:
        """Spindle on and the most recent committed move was a cut."""
        last = self.last_point()
        return self.is_spindle_running() and last is not None and last.is_cut

    def get_state_summary(self) -> Dict[str, Any]:
        """Get a summary of the current machine state for display/debugging."""
        return {
            'position': {'x': self.x, 'z': self.z},
            'modal': {
                'positioning': self.positioning_mode.value,
                'radius_compensation': self.radius_compensation.value,
                'spindle_mode': self.spindle_mode.value,
                'units': self.units.value,
            },
            'spindle_speed': self.spindle_speed,
            'spindle_direction': self.spindle_direction.name,
            'max_spindle_speed': self.max_spindle_speed,
            'feed_rate': self.feed_rate,
            'current_tool': self.active_tool,
            'tool_length_offset': self.tool_length_offset,
            'coolant': self.coolant.name,
            'active_cycle': self.active_cycle.code if self.active_cycle else None,
            'path_points': len(self.path),
            'current_line': self.current_line,
        }
