"""
OpenGL viewport for the lathe: a 2D XZ section of stock, toolpath and tool.

Screen horizontal is Z, vertical is the radius (X / 2). The part is drawn
mirrored about the spindle axis so the section looks like a turned part.
"""
from PySide6.QtOpenGLWidgets import QOpenGLWidget
from PySide6.QtGui import QColor
from PySide6.QtCore import Qt, QPoint
from OpenGL.GL import *
from core.geometry import MotionKind

HIGHLIGHT_COLOR = (1.0, 1.0, 0.0)
RAPID_COLOR = (0.0, 0.8, 0.2)
CUT_COLOR = (0.2, 0.5, 1.0)
COMPENSATED_COLOR = (1.0, 0.5, 0.2)


class Viewport(QOpenGLWidget):
    """2D lathe viewport displaying the committed path of a machine state."""

    def __init__(self, parent=None):
        super().__init__(parent)

        self.path = []
        self.tool_position = None
        self.tool_color = (1.0, 0.84, 0.0)
        self.highlighted_lines = set()

        self.stock_diameter = 80.0
        self.stock_length = 150.0

        # Camera: view center in (z, radius) and half-height in mm
        self.center_z = -50.0
        self.center_r = 0.0
        self.half_height = 70.0
        self.last_pos = QPoint()

        # Display settings
        self.show_rapid = True
        self.show_cut = True
        self.show_compensated = True
        self.show_stock = True
        self.show_axes = True

    def set_stock(self, diameter, length):
        self.stock_diameter = diameter
        self.stock_length = length
        self.update()

    def set_state(self, state, tool=None):
        """Show a machine state's path and tool tip."""
        self.path = list(state.path) if state else []
        self.tool_position = (state.x, state.z) if state else None
        if tool is not None:
            color = QColor(tool.insert_color)
            self.tool_color = (color.redF(), color.greenF(), color.blueF())
        self.update()

    def highlight_lines(self, line_numbers):
        """Highlight path points from specific G-code lines."""
        self.highlighted_lines = set(line_numbers) if line_numbers else set()
        self.update()

    def initializeGL(self):
        glClearColor(0.1, 0.1, 0.15, 1.0)
        glEnable(GL_LINE_SMOOTH)
        glEnable(GL_BLEND)
        glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)

    def resizeGL(self, w, h):
        glViewport(0, 0, w, h)
        self._apply_projection()

    def _apply_projection(self):
        w, h = self.width(), self.height()
        aspect = w / h if h > 0 else 1.0
        half_width = self.half_height * aspect
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        glOrtho(self.center_z - half_width, self.center_z + half_width,
                self.center_r - self.half_height, self.center_r + self.half_height,
                -1.0, 1.0)

    def paintGL(self):
        glClear(GL_COLOR_BUFFER_BIT)
        self._apply_projection()
        glMatrixMode(GL_MODELVIEW)
        glLoadIdentity()

        if self.show_stock:
            self.draw_stock()
        if self.show_axes:
            self.draw_axes()
        self.draw_toolpath()
        self.draw_tool()

    def draw_stock(self):
        """Stock blank, clamped at the chuck, face at Z0."""
        r = self.stock_diameter / 2
        glColor4f(0.55, 0.57, 0.6, 0.35)
        glBegin(GL_QUADS)
        glVertex2f(-self.stock_length, -r)
        glVertex2f(0.0, -r)
        glVertex2f(0.0, r)
        glVertex2f(-self.stock_length, r)
        glEnd()

    def draw_axes(self):
        """Spindle centerline and the Z0 face."""
        glLineWidth(1.0)
        glColor3f(0.5, 0.5, 0.5)
        glLineStipple(1, 0xF0F0)
        glEnable(GL_LINE_STIPPLE)
        glBegin(GL_LINES)
        glVertex2f(-self.stock_length - 20, 0.0)
        glVertex2f(120.0, 0.0)
        glEnd()
        glDisable(GL_LINE_STIPPLE)

        glColor3f(0.0, 0.0, 1.0)
        glBegin(GL_LINES)
        glVertex2f(0.0, 0.0)
        glVertex2f(15.0, 0.0)
        glColor3f(1.0, 0.0, 0.0)
        glVertex2f(0.0, 0.0)
        glVertex2f(0.0, 15.0)
        glEnd()

    def draw_toolpath(self):
        """Draw segments between consecutive path points, mirrored about the axis."""
        for previous, point in zip(self.path, self.path[1:]):
            highlighted = point.source_line in self.highlighted_lines

            if point.motion_kind == MotionKind.RAPID:
                if self.show_rapid:
                    color = HIGHLIGHT_COLOR if highlighted else RAPID_COLOR
                    self.draw_dashed_line(previous.x, previous.z, point.x, point.z, color)
            elif self.show_cut:
                color = HIGHLIGHT_COLOR if highlighted else CUT_COLOR
                self.draw_solid_line(previous.x, previous.z, point.x, point.z, color)

            if self.show_compensated and point.compensated:
                self.draw_solid_line(previous.cx, previous.cz, point.cx, point.cz,
                                     COMPENSATED_COLOR, width=1.5)

    def draw_tool(self):
        """Insert tip as a small triangle pointing at the programmed point."""
        if self.tool_position is None:
            return
        x, z = self.tool_position
        r = x / 2
        size = 3.0
        glColor3f(*self.tool_color)
        glBegin(GL_TRIANGLES)
        glVertex2f(z, r)
        glVertex2f(z + size, r + size * 1.8)
        glVertex2f(z + size * 1.8, r + size * 0.6)
        glEnd()

    def draw_solid_line(self, x0, z0, x1, z1, color, width=2.5):
        glLineWidth(width)
        glColor3f(*color)
        glBegin(GL_LINES)
        for sign in (1, -1):
            glVertex2f(z0, sign * x0 / 2)
            glVertex2f(z1, sign * x1 / 2)
        glEnd()

    def draw_dashed_line(self, x0, z0, x1, z1, color):
        """Draw a dashed line for rapid moves (upper half only)."""
        glLineWidth(1.5)
        glColor3f(*color)
        glLineStipple(1, 0xAAAA)
        glEnable(GL_LINE_STIPPLE)
        glBegin(GL_LINES)
        glVertex2f(z0, x0 / 2)
        glVertex2f(z1, x1 / 2)
        glEnd()
        glDisable(GL_LINE_STIPPLE)

    def mousePressEvent(self, event):
        self.last_pos = event.pos()

    def mouseMoveEvent(self, event):
        """Drag to pan."""
        dx = event.pos().x() - self.last_pos.x()
        dy = event.pos().y() - self.last_pos.y()

        if event.buttons() & (Qt.LeftButton | Qt.RightButton) and self.height() > 0:
            mm_per_pixel = 2 * self.half_height / self.height()
            self.center_z -= dx * mm_per_pixel
            self.center_r += dy * mm_per_pixel

        self.last_pos = event.pos()
        self.update()

    def wheelEvent(self, event):
        """Zoom around the view center."""
        delta = event.angleDelta().y() / 120.0
        self.half_height = max(5.0, self.half_height * (0.9 ** delta))
        self.update()

    def toggle_display_option(self, option):
        if option == 'rapid':
            self.show_rapid = not self.show_rapid
        elif option == 'cut':
            self.show_cut = not self.show_cut
        elif option == 'compensated':
            self.show_compensated = not self.show_compensated
        elif option == 'stock':
            self.show_stock = not self.show_stock
        elif option == 'axes':
            self.show_axes = not self.show_axes

        self.update()

    def reset_view(self):
        """Fit stock and home position."""
        self.center_z = -self.stock_length / 3
        self.center_r = 0.0
        self.half_height = max(self.stock_diameter, 70.0)
        self.update()
