"""
Tool table: tool id -> insert geometry, offsets and wear.

The interpreter only reads from it. Wear is written through ``set_wear`` /
``reset_wear`` by the wear accumulator; every mutation bumps ``revision`` so
callers can tell a cached replay is stale.
"""
import logging
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Any

logger = logging.getLogger(__name__)


class ToolKind(Enum):
    GENERAL = "general"
    GROOVING = "grooving"
    THREADING = "threading"


@dataclass(frozen=True)
class ToolEntry:
    """Static-ish tool descriptor."""
    id: int
    name: str = ""
    kind: ToolKind = ToolKind.GENERAL
    insert_color: str = "#FFD700"  # Presentation only
    width: float = 0.0
    length_offset: float = 0.0
    nose_radius: float = 0.0
    wear_percent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolEntry':
        values = dict(data)
        values['kind'] = ToolKind(values.get('kind', ToolKind.GENERAL.value))
        return cls(**values)


def clamp_wear(value: float) -> float:
    return max(0.0, min(100.0, value))


class ToolTable:
    """Lookup of tool id -> ToolEntry."""

    def __init__(self, tools: Iterable[ToolEntry] = ()):
        self._tools: Dict[int, ToolEntry] = {}
        self.revision = 0
        for tool in tools:
            self._tools[tool.id] = tool

    def get(self, tool_id: int) -> Optional[ToolEntry]:
        return self._tools.get(tool_id)

    def __contains__(self, tool_id: int) -> bool:
        return tool_id in self._tools

    def __iter__(self) -> Iterator[ToolEntry]:
        return iter(sorted(self._tools.values(), key=lambda t: t.id))

    def __len__(self) -> int:
        return len(self._tools)

    def length_offset(self, tool_id: int) -> Optional[float]:
        tool = self.get(tool_id)
        return tool.length_offset if tool else None

    def nose_radius(self, tool_id: int) -> float:
        tool = self.get(tool_id)
        return tool.nose_radius if tool else 0.0

    def wear(self, tool_id: int) -> Optional[float]:
        tool = self.get(tool_id)
        return tool.wear_percent if tool else None

    def set_wear(self, tool_id: int, wear_percent: float) -> Optional[ToolEntry]:
        """Set a tool's wear, clamped to [0, 100]. Unknown ids are ignored."""
        tool = self.get(tool_id)
        if tool is None:
            logger.debug("Wear update for unknown tool T%d ignored", tool_id)
            return None
        updated = replace(tool, wear_percent=clamp_wear(wear_percent))
        self._tools[tool_id] = updated
        self.revision += 1
        return updated

    def reset_wear(self, tool_id: int) -> Optional[ToolEntry]:
        logger.info("Wear reset for T%d", tool_id)
        return self.set_wear(tool_id, 0.0)
