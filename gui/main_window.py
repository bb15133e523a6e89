"""
The main window for the lathe trainer.
Editor, 2D lathe viewport and machine controls around a SimulationController.
"""
import logging
from PySide6.QtWidgets import (QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
                               QPushButton, QFileDialog, QTextEdit, QSplitter,
                               QLabel, QComboBox, QSlider, QSpinBox)
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont
from .editor import Editor
from .viewport import Viewport
from gcode_processor import GCodeProcessor
from config.machine_config import ConfigManager
from core.machine_state import SpindleDirection
from core.simulation_controller import SimulationController, RunMode
from core.wear import Material
from utils.errors import ErrorSeverity

logger = logging.getLogger(__name__)

SAMPLE_PROGRAM = """N10 G28 U0 W0
N20 T0101
N30 G96 S200 M03
N40 G00 X60 Z2
(Roughing cycle)
N50 G71 U2 R1
N60 G71 P70 Q110 U0.5 W0.1 F0.3
(Part profile)
N70 G00 X40
N80 G01 Z-20
N90 X50
N100 Z-40
N110 X60
(End of profile)
N120 G70 P70 Q110 (Finishing cycle)
N130 G28 U0 W0
N140 M30"""

MODE_COLORS = {
    RunMode.IDLE: "#adb5bd",
    RunMode.RUNNING: "#51cf66",
    RunMode.PAUSED: "#ffd43b",
    RunMode.ALARM: "#ff6b6b",
}


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("CNC Lathe Trainer")
        self.setGeometry(100, 100, 1600, 1000)

        self.current_config = ConfigManager.lathe()
        self.controller = SimulationController(self.current_config)
        self.processor = GCodeProcessor(self.current_config)

        # Debounced re-parse while typing
        self.syntax_timer = QTimer()
        self.syntax_timer.setSingleShot(True)
        self.syntax_timer.timeout.connect(self.check_syntax)

        # Drives the controller one statement per timeout
        self.run_timer = QTimer()
        self.run_timer.timeout.connect(self.on_tick)

        self.setup_ui()
        self.connect_signals()

        self.load_sample_gcode()

    def setup_ui(self):
        """Set up the user interface."""
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)

        # File and cycle controls
        toolbar_layout = QHBoxLayout()

        self.load_button = QPushButton("Load G-Code File")
        self.save_button = QPushButton("Save G-Code")
        self.start_button = QPushButton("Cycle Start")
        self.pause_button = QPushButton("Pause")
        self.reset_button = QPushButton("Reset")
        self.tool_change_button = QPushButton("Confirm Tool Change")
        self.tool_change_button.setEnabled(False)

        self.machine_selector = QComboBox()
        self.machine_selector.addItems(["lathe", "lathe_g44"])

        self.mode_label = QLabel()
        self.mode_label.setFont(QFont("Courier", 10, QFont.Weight.Bold))

        toolbar_layout.addWidget(self.load_button)
        toolbar_layout.addWidget(self.save_button)
        toolbar_layout.addSpacing(20)
        toolbar_layout.addWidget(self.start_button)
        toolbar_layout.addWidget(self.pause_button)
        toolbar_layout.addWidget(self.reset_button)
        toolbar_layout.addWidget(self.tool_change_button)
        toolbar_layout.addStretch()
        toolbar_layout.addWidget(QLabel("Machine:"))
        toolbar_layout.addWidget(self.machine_selector)
        toolbar_layout.addWidget(self.mode_label)
        main_layout.addLayout(toolbar_layout)

        # Operator panel
        panel_layout = QHBoxLayout()

        self.feed_slider = QSlider(Qt.Horizontal)
        self.feed_slider.setRange(0, 150)
        self.feed_slider.setSingleStep(10)
        self.feed_slider.setValue(100)
        self.feed_label = QLabel("Feed 100%")

        self.material_selector = QComboBox()
        for material in Material:
            self.material_selector.addItem(material.value, material)

        self.spindle_selector = QComboBox()
        self.spindle_selector.addItem("Spindle Stop", SpindleDirection.STOP)
        self.spindle_selector.addItem("Spindle CW (M03)", SpindleDirection.CW)
        self.spindle_selector.addItem("Spindle CCW (M04)", SpindleDirection.CCW)

        self.spindle_speed = QSpinBox()
        self.spindle_speed.setRange(0, int(self.current_config.max_spindle))
        self.spindle_speed.setSingleStep(100)
        self.spindle_speed.setValue(500)
        self.spindle_speed.setSuffix(" rpm")

        panel_layout.addWidget(QLabel("Feed override:"))
        panel_layout.addWidget(self.feed_slider)
        panel_layout.addWidget(self.feed_label)
        panel_layout.addSpacing(20)
        panel_layout.addWidget(QLabel("Material:"))
        panel_layout.addWidget(self.material_selector)
        panel_layout.addSpacing(20)
        panel_layout.addWidget(self.spindle_selector)
        panel_layout.addWidget(self.spindle_speed)
        panel_layout.addStretch()
        main_layout.addLayout(panel_layout)

        # Main content area
        main_splitter = QSplitter(Qt.Vertical)
        main_layout.addWidget(main_splitter)

        workspace_splitter = QSplitter(Qt.Horizontal)

        self.editor = Editor()
        workspace_splitter.addWidget(self.editor)

        self.viewport = Viewport()
        self.viewport.set_stock(self.current_config.stock_diameter,
                                self.current_config.stock_length)
        self.viewport.reset_view()
        workspace_splitter.addWidget(self.viewport)

        info_panel = QWidget()
        info_layout = QVBoxLayout(info_panel)
        info_layout.setContentsMargins(5, 5, 5, 5)

        self.state_label = QLabel()
        self.state_label.setFont(QFont("Courier", 9))
        self.state_label.setStyleSheet("QLabel { background-color: #f0f0f0; padding: 5px; }")
        info_layout.addWidget(self.state_label)

        self.stats_label = QLabel("Toolpath:\nNo G-code processed")
        self.stats_label.setFont(QFont("Courier", 9))
        self.stats_label.setStyleSheet("QLabel { background-color: #f0f0f0; padding: 5px; }")
        info_layout.addWidget(self.stats_label)
        info_layout.addStretch()

        workspace_splitter.addWidget(info_panel)

        # Bottom pane with errors and console
        console_splitter = QSplitter(Qt.Horizontal)

        error_widget = QWidget()
        error_layout = QVBoxLayout(error_widget)
        error_layout.setContentsMargins(0, 0, 0, 0)
        error_layout.addWidget(QLabel("Errors and Warnings:"))
        self.error_console = QTextEdit()
        self.error_console.setReadOnly(True)
        self.error_console.setMaximumHeight(150)
        error_layout.addWidget(self.error_console)
        console_splitter.addWidget(error_widget)

        console_widget = QWidget()
        console_layout = QVBoxLayout(console_widget)
        console_layout.setContentsMargins(0, 0, 0, 0)
        console_layout.addWidget(QLabel("Console Output:"))
        self.console = QTextEdit()
        self.console.setReadOnly(True)
        self.console.setMaximumHeight(150)
        console_layout.addWidget(self.console)
        console_splitter.addWidget(console_widget)

        main_splitter.addWidget(workspace_splitter)
        main_splitter.addWidget(console_splitter)

        workspace_splitter.setSizes([500, 800, 250])
        console_splitter.setSizes([400, 400])
        main_splitter.setSizes([800, 200])

    def connect_signals(self):
        """Connect all signal handlers."""
        self.load_button.clicked.connect(self.load_gcode_file)
        self.save_button.clicked.connect(self.save_gcode_file)
        self.start_button.clicked.connect(self.cycle_start)
        self.pause_button.clicked.connect(self.cycle_pause)
        self.reset_button.clicked.connect(self.cycle_reset)
        self.tool_change_button.clicked.connect(self.confirm_tool_change)
        self.machine_selector.currentTextChanged.connect(self.change_machine_config)
        self.feed_slider.valueChanged.connect(self.on_feed_override_changed)
        self.material_selector.currentIndexChanged.connect(self.on_material_changed)
        self.spindle_selector.currentIndexChanged.connect(self.on_manual_spindle_changed)
        self.spindle_speed.valueChanged.connect(self.on_manual_spindle_changed)
        self.editor.selectionChangedSignal.connect(self.on_editor_selection_changed)
        self.editor.textChanged.connect(self.on_text_changed)

    def load_sample_gcode(self):
        """Load the roughing cycle lesson program."""
        self.editor.setPlainText(SAMPLE_PROGRAM)
        self.check_syntax()

    def load_gcode_file(self):
        """Load G-code from a file."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open G-Code File", "",
            "G-Code Files (*.nc *.gcode *.ngc *.txt);;All Files (*)"
        )

        if file_path:
            try:
                with open(file_path, 'r') as f:
                    content = f.read()
            except OSError as e:
                self.console.append(f"Could not open {file_path}: {e}")
                return
            self.editor.setPlainText(content)
            self.console.append(f"Loaded: {file_path}")
            self.check_syntax()

    def save_gcode_file(self):
        """Save current G-code to a file."""
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save G-Code File", "",
            "G-Code Files (*.nc);;All Files (*)"
        )

        if file_path:
            try:
                with open(file_path, 'w') as f:
                    f.write(self.editor.toPlainText())
            except OSError as e:
                self.console.append(f"Could not save {file_path}: {e}")
                return
            self.console.append(f"Saved: {file_path}")

    def change_machine_config(self, machine_type):
        """Swap machine configuration; the program is reloaded from scratch."""
        self.run_timer.stop()
        self.current_config = ConfigManager.get_config(machine_type)
        self.controller = SimulationController(self.current_config)
        self.processor = GCodeProcessor(self.current_config)
        self.viewport.set_stock(self.current_config.stock_diameter,
                                self.current_config.stock_length)
        logger.info("Machine configuration: %s", self.current_config.name)
        self.console.append(f"Switched to {self.current_config.name}")
        self.check_syntax()

    # Cycle controls

    def cycle_start(self):
        if not self.controller.start():
            self.console.append("Reset the alarm before starting")
            return
        self.run_timer.start(self.controller.tick_interval_ms())
        self.update_displays()

    def cycle_pause(self):
        self.controller.pause()
        self.update_displays()

    def cycle_reset(self):
        self.run_timer.stop()
        self.controller.reset()
        self.console.append("Machine reset")
        self.update_displays()

    def confirm_tool_change(self):
        request = self.controller.pending_tool_change
        if request and self.controller.confirm_tool_change():
            self.console.append(f"Tool T{request.tool_number:02d} mounted")
        self.update_displays()

    def on_tick(self):
        self.controller.tick()
        if self.controller.mode in (RunMode.IDLE, RunMode.ALARM):
            self.run_timer.stop()
        else:
            self.run_timer.setInterval(self.controller.tick_interval_ms())
        self.update_displays()

    # Operator panel

    def on_feed_override_changed(self, value):
        self.controller.set_feed_override(value)
        self.feed_label.setText(f"Feed {value}%")
        if self.run_timer.isActive():
            self.run_timer.setInterval(self.controller.tick_interval_ms())

    def on_material_changed(self, _index):
        self.controller.set_material(self.material_selector.currentData())

    def on_manual_spindle_changed(self, _value):
        self.controller.set_manual_spindle(self.spindle_selector.currentData(),
                                           self.spindle_speed.value())
        self.update_displays()

    # Displays

    def update_displays(self):
        """Refresh everything derived from the controller."""
        controller = self.controller
        state = controller.state

        self.mode_label.setText(controller.mode.value)
        self.mode_label.setStyleSheet(f"QLabel {{ color: {MODE_COLORS[controller.mode]}; }}")
        self.tool_change_button.setEnabled(controller.pending_tool_change is not None)

        if controller.mode == RunMode.IDLE:
            self.editor.set_executing_line(None)
        else:
            self.editor.set_executing_line(controller.active_source_line())

        if controller.error is not None:
            self.editor.highlight_error_lines([controller.error.line])

        self.viewport.set_state(state, controller.tool_table.get(state.active_tool))
        self.update_state_readout()

    def update_state_readout(self):
        controller = self.controller
        state = controller.state
        summary = state.get_state_summary()

        wear_lines = "\n".join(
            f"T{tool.id:02d} {tool.wear_percent:5.1f}%  R{tool.nose_radius:g}"
            for tool in controller.tool_table
        )
        alarm = f"\nALARM: {controller.error}" if controller.error else ""
        pending = controller.pending_tool_change
        tool_change = f"\nLoad tool T{pending.tool_number:02d}" if pending else ""

        self.state_label.setText(f"""Machine:
Mode: {controller.mode.value}{alarm}{tool_change}
Statement: {controller.current_line + 1}/{controller.statement_count}
X: {state.x:9.3f}  (dia)
Z: {state.z:9.3f}
Tool: T{state.active_tool:02d}  Offset: {state.tool_length_offset:g}
Spindle: {summary['spindle_direction']} {state.spindle_speed:g}
Comp: {summary['modal']['radius_compensation']}  {summary['modal']['positioning']}
Coolant: {summary['coolant']}
Feed: {state.feed_rate:g}

Wear ({controller.material.value}):
{wear_lines}""")

    def update_error_display(self):
        """Update the error console with current errors."""
        errors = self.processor.get_editor_errors()

        if not errors:
            self.error_console.setText("No errors found.")
            self.editor.clear_error_highlights()
            return

        error_text = []
        error_lines = set()
        for error in errors:
            severity = error.severity.value.upper()
            error_text.append(f"Line {error.line_number}: [{severity}] {error.message}")
            if error.severity != ErrorSeverity.WARNING:
                error_lines.add(error.line_number)

        self.error_console.setText("\n".join(error_text))
        self.editor.highlight_error_lines(list(error_lines))

    def update_statistics(self):
        """Whole-program toolpath summary."""
        summary = self.processor.get_toolpath_summary()
        size = summary['bounding_box']['size']

        self.stats_label.setText(f"""Toolpath:
Points: {summary['total_points']}
Cut: {summary['move_types']['cut']}  Rapid: {summary['move_types']['rapid']}
Compensated: {summary['move_types']['compensated']}
Total Length: {summary['total_length']:.2f}
Cut Length: {summary['cut_length']:.2f}
Rapid Length: {summary['rapid_length']:.2f}
Extent: X{size[0]:.1f} Z{size[1]:.1f}""")

    def on_editor_selection_changed(self, selected_lines):
        self.viewport.highlight_lines(selected_lines)

    def on_text_changed(self):
        """Restart the syntax check timer."""
        self.syntax_timer.stop()
        self.syntax_timer.start(500)

    def check_syntax(self):
        """Re-validate, reload the program and reset the machine."""
        gcode_text = self.editor.toPlainText()

        self.run_timer.stop()
        self.processor.process_gcode(gcode_text)
        self.processor.validate_syntax(gcode_text)
        self.update_error_display()
        self.update_statistics()

        self.controller.load_program(gcode_text)
        self.update_displays()
