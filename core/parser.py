"""
G-code parser for creating statements from token streams.

A single source line can hold several commands (``G01 X10 M03``); the
parser splits them strictly left to right, flushing the statement being
built whenever a second G/M/T letter shows up.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union
from core.lexer import GCodeLexer, SourceLine, Token
from utils.errors import ErrorCollector


class StatementKind(Enum):
    G = "G"
    M = "M"
    T = "T"


COMMAND_LETTERS = {'G': StatementKind.G, 'M': StatementKind.M, 'T': StatementKind.T}

AXIS_LETTERS = ('X', 'Z', 'U', 'W')


@dataclass(frozen=True)
class Statement:
    """One parsed instruction unit."""
    kind: StatementKind
    code: Optional[Union[int, float]]
    params: Mapping[str, float]
    source_line: int
    raw_text: str = ""
    code_text: str = ""

    def param(self, letter: str) -> Optional[float]:
        """Value of a parameter word, None when absent or not a number."""
        value = self.params.get(letter)
        if value is None or math.isnan(value):
            return None
        return value

    def has_param(self, letter: str) -> bool:
        return self.param(letter) is not None

    def has_axis_words(self) -> bool:
        return any(self.has_param(axis) for axis in AXIS_LETTERS)

    def is_g(self, *codes) -> bool:
        return self.kind == StatementKind.G and self.code in codes

    def is_m(self, *codes) -> bool:
        return self.kind == StatementKind.M and self.code in codes

    def __str__(self):
        head = self.kind.value if self.code is None else f"{self.kind.value}{self.code_text or self.code}"
        words = ' '.join(f"{k}{v:g}" for k, v in self.params.items())
        return f"{head} {words}".strip()


@dataclass
class _StatementBuilder:
    """Accumulator for the statement currently being built on a line."""
    source_line: int
    raw_text: str
    kind: StatementKind = StatementKind.G
    code: Optional[Union[int, float]] = None
    code_text: str = ""
    has_command: bool = False
    params: Dict[str, float] = field(default_factory=dict)

    def set_command(self, token: Token):
        self.kind = COMMAND_LETTERS[token.letter]
        self.code = _as_code(token.value)
        self.code_text = token.text.lstrip('+')
        self.has_command = True

    def add_param(self, token: Token):
        self.params[token.letter] = token.value if token.value is not None else math.nan

    def build(self) -> Statement:
        return Statement(
            kind=self.kind,
            code=self.code,
            params=MappingProxyType(dict(self.params)),
            source_line=self.source_line,
            raw_text=self.raw_text,
            code_text=self.code_text,
        )


def _as_code(value: Optional[float]) -> Optional[Union[int, float]]:
    """Integral command numbers become ints; G90.1 style values stay float."""
    if value is None:
        return None
    if value == int(value):
        return int(value)
    return value


class GCodeParser:
    """Parses lexed source lines into statements."""

    def __init__(self, error_collector: Optional[ErrorCollector] = None):
        self.error_collector = error_collector

    def parse(self, source_lines: List[SourceLine]) -> List[Statement]:
        statements = []
        for source_line in source_lines:
            statements.extend(self.parse_line(source_line))
        return statements

    def parse_line(self, source_line: SourceLine) -> List[Statement]:
        statements = []
        current: Optional[_StatementBuilder] = None

        for token in source_line.tokens:
            if current is None:
                current = _StatementBuilder(source_line.line_number, source_line.raw_text)

            if token.letter in COMMAND_LETTERS:
                if current.has_command:
                    statements.append(current.build())
                    current = _StatementBuilder(source_line.line_number, source_line.raw_text)
                current.set_command(token)
            else:
                current.add_param(token)

        if current is not None:
            statements.append(current.build())
        return statements


def parse(text: str, error_collector: Optional[ErrorCollector] = None) -> List[Statement]:
    """Turn raw program text into an ordered list of statements."""
    lexer = GCodeLexer(error_collector)
    parser = GCodeParser(error_collector)
    return parser.parse(lexer.tokenize(text))
