from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List


class Instruction(str, Enum):
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    INCREMENT = "+"
    DECREMENT = "-"
    READ = ","
    WRITE = "."
    LOOP_START = "["
    LOOP_END = "]"


_INSTRUCTIONS = {member.value: member for member in Instruction}


@dataclass(frozen=True)
class SourcePosition:
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    kind: Instruction
    position: SourcePosition


def tokenize(source: str) -> List[Token]:
    """Turn source text into instruction tokens.

    Every character outside the eight-symbol alphabet is a comment and is
    dropped. Lines and columns are 1-based. Only a line feed ends a
    line; a carriage return right before it is not counted as a column.
    """
    tokens: List[Token] = []
    for line_no, line in enumerate(source.split("\n"), start=1):
        if line.endswith("\r"):
            line = line[:-1]
        for column, char in enumerate(line, start=1):
            kind = _INSTRUCTIONS.get(char)
            if kind is not None:
                tokens.append(Token(kind, SourcePosition(line_no, column)))
    return tokens


def instructions(tokens: Iterable[Token]) -> List[Instruction]:
    return [token.kind for token in tokens]


__all__ = [
    "Instruction",
    "SourcePosition",
    "Token",
    "tokenize",
    "instructions",
]
