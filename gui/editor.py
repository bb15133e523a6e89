"""
G-code editor widget with lathe syntax highlighting and dark mode.
"""
from PySide6.QtWidgets import QPlainTextEdit, QWidget, QTextEdit
from PySide6.QtGui import (QColor, QTextFormat, QPainter, QFont, QSyntaxHighlighter,
                           QTextCharFormat, QPalette)
from PySide6.QtCore import Qt, QRect, Signal, QSize
import re


def _char_format(color, bold=False, italic=False):
    fmt = QTextCharFormat()
    fmt.setForeground(QColor(color))
    if bold:
        fmt.setFontWeight(QFont.Weight.Bold)
    fmt.setFontItalic(italic)
    return fmt


class LatheHighlighter(QSyntaxHighlighter):
    """Lathe G-code syntax highlighter with dark mode colors."""

    WORD_PATTERN = re.compile(r'([A-Za-z])\s*([-+]?(?:\d+\.?\d*|\.\d+))?')

    def __init__(self, document):
        super().__init__(document)

        self.rapid_format = _char_format('#ff6b6b', bold=True)    # G0
        self.cut_format = _char_format('#51cf66', bold=True)      # G1/G2/G3
        self.thread_format = _char_format('#ffd43b', bold=True)   # G32/G33/G76
        self.cycle_format = _char_format('#20c997', bold=True)    # G70-G75
        self.gcode_format = _char_format('#74c0fc')
        self.mcode_format = _char_format('#ff8cc8')
        self.tool_format = _char_format('#ffa500', bold=True)
        self.comment_format = _char_format('#6c757d', italic=True)

        self.word_formats = {
            'X': _char_format('#ff9999'),
            'U': _char_format('#ff9999'),
            'Z': _char_format('#9999ff'),
            'W': _char_format('#9999ff'),
            'F': _char_format('#ffff99'),
            'S': _char_format('#ffff99'),
            'N': _char_format('#adb5bd'),
        }
        cycle_word = _char_format('#99ffcc')
        for letter in 'PQRHDK':
            self.word_formats[letter] = cycle_word

    def _gcode_format(self, value_text):
        try:
            code = float(value_text)
        except ValueError:
            return self.gcode_format
        if code == 0:
            return self.rapid_format
        if code in (1, 2, 3):
            return self.cut_format
        if code in (32, 33, 76):
            return self.thread_format
        if 70 <= code <= 75:
            return self.cycle_format
        return self.gcode_format

    def highlightBlock(self, text):
        """Apply syntax highlighting to a block of text."""
        comment_start = len(text)
        for marker in '(;':
            index = text.find(marker)
            if index != -1:
                comment_start = min(comment_start, index)
        if comment_start < len(text):
            self.setFormat(comment_start, len(text) - comment_start, self.comment_format)

        for match in self.WORD_PATTERN.finditer(text, 0, comment_start):
            letter = match.group(1).upper()
            value_text = match.group(2) or ''
            start, length = match.start(), match.end() - match.start()

            if letter == 'G':
                self.setFormat(start, length, self._gcode_format(value_text))
            elif letter == 'M':
                self.setFormat(start, length, self.mcode_format)
            elif letter == 'T':
                self.setFormat(start, length, self.tool_format)
            elif letter in self.word_formats and value_text:
                self.setFormat(start, length, self.word_formats[letter])


class LineNumberArea(QWidget):
    """Line number area widget for the editor."""

    def __init__(self, editor):
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self):
        return QSize(self.editor.lineNumberAreaWidth(), 0)

    def paintEvent(self, event):
        self.editor.lineNumberAreaPaintEvent(event)


class Editor(QPlainTextEdit):
    """G-code editor with lathe syntax highlighting, error and execution markers."""

    selectionChangedSignal = Signal(list)

    def __init__(self, parent=None):
        super().__init__(parent)

        self.setup_dark_mode()

        self.lineNumberArea = LineNumberArea(self)

        # Tracking
        self.highlighted_lines = set()
        self.error_lines = set()
        self.executing_line = None

        self.setup_editor()

        self.highlighter = LatheHighlighter(self.document())

        self.blockCountChanged.connect(self.updateLineNumberAreaWidth)
        self.updateRequest.connect(self.updateLineNumberArea)
        self.cursorPositionChanged.connect(self.highlight_current_line)
        self.selectionChanged.connect(self.on_selection_changed)

    def setup_dark_mode(self):
        """Configure dark mode appearance."""
        palette = self.palette()
        palette.setColor(QPalette.Base, QColor('#2b2b2b'))
        palette.setColor(QPalette.Text, QColor('#f8f8f2'))
        palette.setColor(QPalette.Highlight, QColor('#44475a'))
        palette.setColor(QPalette.HighlightedText, QColor('#f8f8f2'))
        self.setPalette(palette)

    def setup_editor(self):
        """Configure the editor appearance and behavior."""
        self.setLineWrapMode(QPlainTextEdit.NoWrap)

        font = QFont("Consolas", 11)
        if not font.exactMatch():
            font = QFont("Courier New", 11)
        font.setStyleHint(QFont.StyleHint.Monospace)
        font.setFixedPitch(True)
        self.setFont(font)

        tab_width = self.fontMetrics().horizontalAdvance(' ') * 4
        self.setTabStopDistance(tab_width)

        self.updateLineNumberAreaWidth(0)

    def highlight_lines(self, lines):
        """Highlight specific lines (for path selection)."""
        self.highlighted_lines = set(lines) if lines else set()
        self.update_extra_selections()

    def highlight_error_lines(self, lines):
        """Highlight lines with errors."""
        self.error_lines = set(lines) if lines else set()
        self.update_extra_selections()

    def clear_error_highlights(self):
        self.error_lines.clear()
        self.update_extra_selections()

    def set_executing_line(self, line_number):
        """Mark the line the simulation cursor is on; None clears it."""
        if line_number == self.executing_line:
            return
        self.executing_line = line_number
        self.update_extra_selections()
        self.lineNumberArea.update()

    def _line_selection(self, line_num, color):
        block = self.document().findBlockByNumber(line_num - 1)
        if not block.isValid():
            return None
        selection = QTextEdit.ExtraSelection()
        selection.format.setBackground(QColor(color))
        selection.format.setProperty(QTextFormat.FullWidthSelection, True)
        selection.cursor = self.textCursor()
        selection.cursor.setPosition(block.position())
        selection.cursor.clearSelection()
        return selection

    def update_extra_selections(self):
        """Update all line highlighting (current line, execution, errors, path)."""
        selections = []

        if not self.isReadOnly():
            cursor = self.textCursor()
            if not cursor.hasSelection():
                selection = QTextEdit.ExtraSelection()
                selection.format.setBackground(QColor('#44475a'))
                selection.format.setProperty(QTextFormat.FullWidthSelection, True)
                selection.cursor = cursor
                selection.cursor.clearSelection()
                selections.append(selection)

        for line_num in self.highlighted_lines:
            if line_num > 0 and line_num not in self.error_lines:
                selection = self._line_selection(line_num, '#1e3a8a')  # Dark blue
                if selection:
                    selections.append(selection)

        if self.executing_line and self.executing_line not in self.error_lines:
            selection = self._line_selection(self.executing_line, '#2f5d3a')  # Dark green
            if selection:
                selections.append(selection)

        for line_num in self.error_lines:
            if line_num > 0:
                selection = self._line_selection(line_num, '#660000')  # Dark red
                if selection:
                    selections.append(selection)

        self.setExtraSelections(selections)

    def highlight_current_line(self):
        self.update_extra_selections()

    def on_selection_changed(self):
        """Emit the 1-based numbers of the selected non-empty lines."""
        cursor = self.textCursor()

        if cursor.hasSelection():
            start_block = self.document().findBlock(cursor.selectionStart())
            end_pos = cursor.selectionEnd()
            end_block = self.document().findBlock(end_pos)

            # Selection ending at the start of a line does not include it
            if end_pos == end_block.position() and end_block.previous().isValid():
                end_block = end_block.previous()

            selected_lines = []
            current_block = start_block
            while current_block.isValid() and current_block.blockNumber() <= end_block.blockNumber():
                line_text = current_block.text().strip()
                if line_text and not line_text.startswith((';', '(')):
                    selected_lines.append(current_block.blockNumber() + 1)
                if current_block == end_block:
                    break
                current_block = current_block.next()

            self.selectionChangedSignal.emit(selected_lines)
        else:
            self.selectionChangedSignal.emit([])

        self.update_extra_selections()

    # Line number area methods
    def lineNumberAreaWidth(self):
        """Calculate the width needed for line numbers."""
        digits = 1
        max_num = max(1, self.blockCount())
        while max_num >= 10:
            max_num //= 10
            digits += 1
        return 3 + self.fontMetrics().horizontalAdvance('9') * digits

    def updateLineNumberAreaWidth(self, _):
        self.setViewportMargins(self.lineNumberAreaWidth(), 0, 0, 0)

    def updateLineNumberArea(self, rect, dy):
        if dy:
            self.lineNumberArea.scroll(0, dy)
        else:
            self.lineNumberArea.update(0, rect.y(), self.lineNumberArea.width(), rect.height())

        if rect.contains(self.viewport().rect()):
            self.updateLineNumberAreaWidth(0)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        cr = self.contentsRect()
        self.lineNumberArea.setGeometry(QRect(cr.left(), cr.top(), self.lineNumberAreaWidth(), cr.height()))

    def lineNumberAreaPaintEvent(self, event):
        """Paint the line number area."""
        painter = QPainter(self.lineNumberArea)
        painter.fillRect(event.rect(), QColor('#383838'))

        block = self.firstVisibleBlock()
        blockNumber = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                number = blockNumber + 1

                if number in self.error_lines:
                    painter.setPen(QColor('#ff6b6b'))
                elif number == self.executing_line:
                    painter.setPen(QColor('#51cf66'))
                else:
                    painter.setPen(QColor('#6c757d'))

                painter.drawText(0, int(top), self.lineNumberArea.width() - 3,
                                 self.fontMetrics().height(), Qt.AlignRight, str(number))

            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            blockNumber += 1
