"""
G-code lexer for tokenizing raw lathe program text.
"""
import re
from dataclasses import dataclass
from typing import List, Optional
from utils.errors import ErrorCollector


@dataclass(frozen=True)
class Token:
    """A single letter word, e.g. ``X-12.5`` or a bare ``G``."""
    letter: str
    value: Optional[float]
    text: str          # Digits as written, e.g. "0101" for T0101
    line_number: int
    char_start: int
    char_end: int

    def __str__(self):
        return f"{self.letter}{self.text}"


@dataclass
class SourceLine:
    """The code portion of one program line, comments removed."""
    line_number: int
    raw_text: str
    code: str
    tokens: List[Token]


class GCodeLexer:
    """Tokenizes G-code text into per-line token lists."""

    # One letter followed by an optional signed decimal
    WORD_PATTERN = re.compile(r'([A-Z])([-+]?(?:\d+\.?\d*|\.\d+))?')

    COMMENT_CHARS = ('(', ';')

    def __init__(self, error_collector: Optional[ErrorCollector] = None):
        self.error_collector = error_collector

    def tokenize(self, gcode_text: str) -> List[SourceLine]:
        """Tokenize the entire program. Comment-only and blank lines are dropped."""
        lines = []
        for line_num, line in enumerate(gcode_text.split('\n'), 1):
            line = line.rstrip('\r')
            code = self.strip_comment(line)
            code = re.sub(r'\s+', '', code.upper())
            if not code:
                continue
            tokens = self._tokenize_code(code, line_num)
            if tokens:
                lines.append(SourceLine(line_num, line, code, tokens))
        return lines

    @classmethod
    def strip_comment(cls, line: str) -> str:
        """Cut the line at the first ``(`` or ``;``."""
        cut = len(line)
        for char in cls.COMMENT_CHARS:
            index = line.find(char)
            if index != -1:
                cut = min(cut, index)
        return line[:cut]

    def _tokenize_code(self, code: str, line_number: int) -> List[Token]:
        tokens = []
        pos = 0
        while pos < len(code):
            match = self.WORD_PATTERN.match(code, pos)
            if match:
                letter = match.group(1)
                text = match.group(2) or ''
                tokens.append(Token(letter, self._parse_number(text), text,
                                    line_number, match.start(), match.end()))
                pos = match.end()
                continue

            # Anything else (%, /, #, stray digits) is skipped
            if self.error_collector is not None:
                self.error_collector.add_warning(
                    line_number, f"Unrecognized character: '{code[pos]}'"
                )
            pos += 1
        return tokens

    @staticmethod
    def _parse_number(text: str) -> Optional[float]:
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
