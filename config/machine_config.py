"""
Machine configuration for the lathe simulator.
Simple, clean configuration system with presets and JSON persistence.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set, Any
import json
from core.interpreter import SUPPORTED_G_CODES
from core.machine_state import HomePosition
from core.tool_table import ToolEntry, ToolKind, ToolTable

logger = logging.getLogger(__name__)


def default_tools() -> List[ToolEntry]:
    """Turret loaded for the trainer lessons."""
    return [
        ToolEntry(id=1, name="T0101 - Desbaste Ext.", kind=ToolKind.GENERAL,
                  insert_color="#FFD700", width=2.0, length_offset=5.5, nose_radius=0.8),
        ToolEntry(id=2, name="T0202 - Ranurado 3mm", kind=ToolKind.GROOVING,
                  insert_color="#00FFFF", width=3.0, length_offset=3.0, nose_radius=0.0),
        ToolEntry(id=3, name="T0303 - Roscado 60", kind=ToolKind.THREADING,
                  insert_color="#FF00FF", width=1.0, length_offset=8.2, nose_radius=0.4),
    ]


@dataclass
class MachineConfig:
    """Configuration for a CNC lathe."""
    name: str
    machine_type: str = "lathe"

    # Axes configuration
    axes: List[str] = field(default_factory=lambda: ["X", "Z"])

    # Supported codes
    g_codes: Set[int] = field(default_factory=lambda: set(SUPPORTED_G_CODES))
    m_codes: Set[int] = field(default_factory=lambda: {0, 1, 2, 3, 4, 5, 7, 8, 9, 30, 100})

    # Reference point (X as diameter)
    home_x: float = 100.0
    home_z: float = 50.0

    # Stock
    stock_diameter: float = 80.0
    stock_length: float = 150.0

    # Machine limits
    max_spindle: float = 4000.0

    # Driver timing: one statement per tick at 100 % override
    base_tick_ms: int = 500

    # Wear model
    wear_rate: float = 0.2
    wear_flush_threshold: float = 0.5

    # Features
    g44_negates_offset: bool = False

    tools: List[ToolEntry] = field(default_factory=default_tools)

    def home_position(self) -> HomePosition:
        return HomePosition(self.home_x, self.home_z)

    def tool_table(self) -> ToolTable:
        return ToolTable(self.tools)


class ConfigManager:
    """Manages machine configurations with simple presets."""

    @staticmethod
    def lathe() -> MachineConfig:
        """2-axis trainer lathe."""
        return MachineConfig(name="Trainer Lathe")

    @staticmethod
    def lathe_g44_negative() -> MachineConfig:
        """Lathe variant whose G44 applies the negated length offset."""
        config = ConfigManager.lathe()
        config.name = "Trainer Lathe (G44 negative offset)"
        config.g44_negates_offset = True
        return config

    @staticmethod
    def get_config(machine_type: str) -> MachineConfig:
        """Get configuration by type name."""
        configs = {
            "lathe": ConfigManager.lathe,
            "lathe_g44": ConfigManager.lathe_g44_negative,
        }
        return configs.get(machine_type.lower(), ConfigManager.lathe)()

    @staticmethod
    def to_dict(config: MachineConfig) -> Dict[str, Any]:
        return {
            "name": config.name,
            "machine_type": config.machine_type,
            "axes": config.axes,
            "g_codes": sorted(config.g_codes),
            "m_codes": sorted(config.m_codes),
            "home_x": config.home_x,
            "home_z": config.home_z,
            "stock_diameter": config.stock_diameter,
            "stock_length": config.stock_length,
            "max_spindle": config.max_spindle,
            "base_tick_ms": config.base_tick_ms,
            "wear_rate": config.wear_rate,
            "wear_flush_threshold": config.wear_flush_threshold,
            "g44_negates_offset": config.g44_negates_offset,
            "tools": [tool.to_dict() for tool in config.tools],
        }

    @staticmethod
    def save_config(config: MachineConfig, filepath: str):
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(ConfigManager.to_dict(config), f, indent=2)

    @staticmethod
    def load_config(filepath: str) -> MachineConfig:
        """Load configuration from JSON file, falling back to the default lathe."""
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)

            # Convert lists back to sets
            data["g_codes"] = set(data["g_codes"])
            data["m_codes"] = set(data["m_codes"])
            data["tools"] = [ToolEntry.from_dict(t) for t in data.get("tools", [])]

            return MachineConfig(**data)

        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Could not load machine config %s (%s); using defaults", filepath, e)
            return ConfigManager.lathe()

    @staticmethod
    def validate_gcode(config: MachineConfig, g_code: int) -> bool:
        """Check if G-code is supported by machine."""
        return g_code in config.g_codes

    @staticmethod
    def validate_mcode(config: MachineConfig, m_code: int) -> bool:
        """Check if M-code is known to the machine."""
        return m_code in config.m_codes

    @staticmethod
    def validate_axis(config: MachineConfig, axis: str) -> bool:
        """Check if axis is available on machine."""
        return axis.upper() in config.axes
