from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .lexer import Instruction, SourcePosition, Token, tokenize

logger = logging.getLogger(__name__)

DEFAULT_TAPE_LENGTH = 30000


class EOFPolicy(str, Enum):
    """What a read does once input is exhausted."""

    ZERO = "zero"
    UNCHANGED = "unchanged"
    ERROR = "error"


class StructureError(Exception):
    """Raised when loop brackets do not pair up."""

    description = "Unbalanced loop"

    def __init__(self, index: int, position: Optional[SourcePosition] = None) -> None:
        self.index = index
        self.position = position
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"instruction {self.index}"
        if self.position is not None:
            where += f" at {self.position}"
        return f"{self.description} ({where})"


class UnmatchedLoopEnd(StructureError):
    description = "Unopened loop: ']' without matching '['"


class UnmatchedLoopStart(StructureError):
    description = "Unclosed loop: '[' without matching ']'"

    def __init__(
        self,
        indices: Sequence[int],
        positions: Sequence[Optional[SourcePosition]] = (),
    ) -> None:
        self.indices = list(indices)
        self.positions = list(positions) or [None] * len(self.indices)
        # Report the innermost open loop.
        super().__init__(self.indices[-1], self.positions[-1])

    def _format(self) -> str:
        message = super()._format()
        if len(self.indices) > 1:
            message += f"; {len(self.indices)} loops left open at {self.indices}"
        return message


_Item = Union[Token, Instruction]


def _kind(item: _Item) -> Instruction:
    return item.kind if isinstance(item, Token) else item


def _position(item: _Item) -> Optional[SourcePosition]:
    return item.position if isinstance(item, Token) else None


def resolve_loops(items: Sequence[_Item]) -> Dict[int, int]:
    """Pair every '[' with its ']' using an explicit index stack.

    The returned mapping holds both directions: start -> end and end -> start.
    """
    pairing: Dict[int, int] = {}
    stack: List[int] = []
    for index, item in enumerate(items):
        kind = _kind(item)
        if kind is Instruction.LOOP_START:
            stack.append(index)
        elif kind is Instruction.LOOP_END:
            if not stack:
                raise UnmatchedLoopEnd(index, _position(item))
            start = stack.pop()
            pairing[start] = index
            pairing[index] = start
    if stack:
        raise UnmatchedLoopStart(stack, [_position(items[i]) for i in stack])
    logger.debug("resolved %d loop(s) over %d instruction(s)", len(pairing) // 2, len(items))
    return pairing


@dataclass(frozen=True)
class Program:
    """Validated instruction sequence with every loop bracket paired."""

    tokens: Tuple[Token, ...]
    pairing: Mapping[int, int] = field(repr=False, compare=False)

    @classmethod
    def from_tokens(cls, tokens: Sequence[Token]) -> "Program":
        frozen = tuple(tokens)
        pairing = resolve_loops(frozen)
        return cls(frozen, MappingProxyType(pairing))

    @property
    def instructions(self) -> Tuple[Instruction, ...]:
        return tuple(token.kind for token in self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[Instruction]:
        return (token.kind for token in self.tokens)

    def __getitem__(self, index: int) -> Instruction:
        return self.tokens[index].kind

    def position(self, index: int) -> Optional[SourcePosition]:
        if 0 <= index < len(self.tokens):
            return self.tokens[index].position
        return None

    def match(self, index: int) -> int:
        """Index of the bracket paired with the one at ``index``."""
        try:
            return self.pairing[index]
        except KeyError as exc:
            raise KeyError(f"No loop bracket at instruction {index}") from exc

    def loops(self) -> List[Tuple[int, int]]:
        return sorted(
            (start, end) for start, end in self.pairing.items() if start < end
        )

    @property
    def loop_count(self) -> int:
        return len(self.pairing) // 2

    @property
    def max_depth(self) -> int:
        depth = deepest = 0
        for kind in self:
            if kind is Instruction.LOOP_START:
                depth += 1
                deepest = max(deepest, depth)
            elif kind is Instruction.LOOP_END:
                depth -= 1
        return deepest

    def source_text(self) -> str:
        return "".join(kind.value for kind in self)


def parse(source: str) -> Program:
    return Program.from_tokens(tokenize(source))


__all__ = [
    "DEFAULT_TAPE_LENGTH",
    "EOFPolicy",
    "Program",
    "StructureError",
    "UnmatchedLoopEnd",
    "UnmatchedLoopStart",
    "parse",
    "resolve_loops",
]
