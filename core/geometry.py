"""
Toolpath geometry for the lathe interpreter.
Path points, nose-radius compensation and path statistics.

Coordinates follow lathe convention: X is a diameter, Z is a signed length.
"""
import math
from dataclasses import dataclass
from typing import List, Dict, Tuple, Any, Optional
from enum import Enum

MIN_COMPENSATION_MOVE = 1e-3


class MotionKind(Enum):
    RAPID = "rapid"
    CUT = "cut"


@dataclass(frozen=True)
class PathPoint:
    """One committed motion endpoint."""
    x: float
    z: float
    motion_kind: MotionKind
    cx: float
    cz: float
    compensated: bool = False
    source_line: int = 0

    @classmethod
    def nominal(cls, x: float, z: float, motion_kind: MotionKind,
                source_line: int = 0) -> 'PathPoint':
        return cls(x, z, motion_kind, x, z, False, source_line)

    @property
    def is_cut(self) -> bool:
        return self.motion_kind == MotionKind.CUT

    def distance_to(self, other: 'PathPoint') -> float:
        """Straight-line travel in radius space (X halved)."""
        dx = (self.x - other.x) / 2
        dz = self.z - other.z
        return math.sqrt(dx * dx + dz * dz)


def compensate_point(prev_x: float, prev_z: float, x: float, z: float,
                     side: str, nose_radius: float) -> Tuple[float, float]:
    """
    Offset the nominal endpoint by the nose radius along the travel normal.

    Args:
        prev_x, prev_z: Previous committed nominal point (X as diameter).
        x, z: Target point (X as diameter).
        side: 'LEFT' (G41) or 'RIGHT' (G42).
        nose_radius: Insert nose radius in mm.

    Returns:
        (cx, cz); the nominal point for degenerate moves.
    """
    dz = z - prev_z
    dx = (x - prev_x) / 2
    length = math.sqrt(dz * dz + dx * dx)
    if length < MIN_COMPENSATION_MOVE:
        return x, z

    tx = dx / length
    tz = dz / length
    if side == 'RIGHT':
        nx, nz = tz, -tx
    else:
        nx, nz = -tz, tx

    cz = z + nz * nose_radius
    cx = x + nx * nose_radius * 2
    return cx, cz


class PathTracker:
    """Statistics and line mapping over a committed path."""

    def __init__(self, points: Optional[List[PathPoint]] = None):
        self.points: List[PathPoint] = list(points or [])

    def get_points_for_line(self, line_number: int) -> List[PathPoint]:
        return [p for p in self.points if p.source_line == line_number]

    def get_points_by_kind(self, motion_kind: MotionKind) -> List[PathPoint]:
        return [p for p in self.points if p.motion_kind == motion_kind]

    def get_bounding_box(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """((min_x, min_z), (max_x, max_z)) over nominal and compensated points."""
        if not self.points:
            return (0.0, 0.0), (0.0, 0.0)
        xs = [p.x for p in self.points] + [p.cx for p in self.points]
        zs = [p.z for p in self.points] + [p.cz for p in self.points]
        return (min(xs), min(zs)), (max(xs), max(zs))

    def get_statistics(self, start: Optional[Tuple[float, float]] = None) -> Dict[str, Any]:
        """
        Travel lengths per motion kind.

        Each point's length is measured from the previous point; the first
        point is measured from ``start`` when given.
        """
        cut_length = 0.0
        rapid_length = 0.0
        previous = PathPoint.nominal(start[0], start[1], MotionKind.RAPID) if start else None

        for point in self.points:
            if previous is not None:
                length = point.distance_to(previous)
                if point.is_cut:
                    cut_length += length
                else:
                    rapid_length += length
            previous = point

        return {
            'total_points': len(self.points),
            'cut_points': len(self.get_points_by_kind(MotionKind.CUT)),
            'rapid_points': len(self.get_points_by_kind(MotionKind.RAPID)),
            'compensated_points': sum(1 for p in self.points if p.compensated),
            'cut_length': cut_length,
            'rapid_length': rapid_length,
            'total_length': cut_length + rapid_length,
            'lines_with_geometry': len({p.source_line for p in self.points}),
        }
