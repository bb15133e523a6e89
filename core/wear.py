"""
Tool wear accumulation.

Wear grows with distance cut times material hardness. Small increments are
buffered and flushed to the tool table once they pass a threshold so the
table is not rewritten on every tick.
"""
import logging
import math
from enum import Enum
from typing import Optional, Tuple
from core.canonical import WearDelta
from core.machine_state import MachineState
from core.tool_table import ToolTable

logger = logging.getLogger(__name__)

MIN_MOVE = 0.001


class Material(Enum):
    STEEL = "Steel"
    ALUMINUM = "Aluminum"
    WOOD = "Wood"
    CARBON_FIBER = "Carbon Fiber"
    EPOXY = "Epoxi"
    POM = "POM"


HARDNESS = {
    Material.STEEL: 1.0,
    Material.ALUMINUM: 0.5,
    Material.WOOD: 0.1,
    Material.CARBON_FIBER: 1.5,
    Material.EPOXY: 0.2,
    Material.POM: 0.2,
}


class WearAccumulator:
    """Turns successive machine states into tool wear updates."""

    def __init__(self, rate: float = 0.2, flush_threshold: float = 0.5,
                 stock_diameter: float = 80.0):
        self.rate = rate                      # % per mm travelled in steel
        self.flush_threshold = flush_threshold
        self.stock_diameter = stock_diameter
        self.pending = 0.0

    def reset(self):
        self.pending = 0.0

    def update(self, tool_table: ToolTable, previous: Tuple[float, float],
               state: MachineState, material: Material = Material.STEEL) -> Optional[WearDelta]:
        """
        Account for the move from ``previous`` (x, z) to the state's position.

        Returns:
            The flushed WearDelta, or None if nothing was written.
        """
        if not state.is_cutting():
            return None

        dx = state.x - previous[0]
        dz = state.z - previous[1]
        distance = math.sqrt(dx * dx + dz * dz)
        if distance <= MIN_MOVE or state.x > self.stock_diameter + 1:
            return None

        tool = tool_table.get(state.active_tool)
        if tool is None or tool.wear_percent >= 100:
            return None

        self.pending += distance * HARDNESS[material] * self.rate
        if self.pending <= self.flush_threshold:
            return None

        increment = self.pending
        self.pending = 0.0
        updated = tool_table.set_wear(tool.id, tool.wear_percent + increment)
        logger.debug("T%d wear +%.2f%% -> %.2f%%", tool.id, increment, updated.wear_percent)
        return WearDelta(tool.id, increment, updated.wear_percent)
