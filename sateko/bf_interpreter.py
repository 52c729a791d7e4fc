from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from .lexer import Instruction, SourcePosition
from .program import DEFAULT_TAPE_LENGTH, EOFPolicy, Program, parse

logger = logging.getLogger(__name__)

InputSource = Union[str, bytes, bytearray, Iterable[int], BinaryIO]


class StepLimitExceeded(RuntimeError):
    """Raised when execution exceeds the configured step budget."""


class ExecutionError(RuntimeError):
    """A program fault that halts execution at instruction ``index``."""

    description = "Execution failed"

    def __init__(self, index: int, position: Optional[SourcePosition] = None) -> None:
        self.index = index
        self.position = position
        where = f"instruction {index}"
        if position is not None:
            where += f" at {position}"
        super().__init__(f"{self.description} ({where})")


class TapeBoundsExceeded(ExecutionError):
    def __init__(
        self,
        index: int,
        pointer: int,
        tape_length: int,
        position: Optional[SourcePosition] = None,
    ) -> None:
        self.pointer = pointer
        self.tape_length = tape_length
        if pointer < 0:
            self.description = "Tried to move past tape beginning"
        else:
            self.description = f"Tried to move past end of tape ({tape_length} cells)"
        super().__init__(index, position)


class InputExhausted(ExecutionError):
    description = "Read with no input left"


def _byte_reader(input_data: Optional[InputSource]) -> Iterator[int]:
    if input_data is None:
        return iter(())
    if isinstance(input_data, str):
        return iter(input_data.encode("utf-8"))
    read = getattr(input_data, "read", None)
    if read is None:
        return iter(list(input_data))

    def _stream() -> Iterator[int]:
        while True:
            chunk = read(1)
            if not chunk:
                return
            yield chunk[0]

    return _stream()


@dataclass
class BrainfuckInterpreter:
    tape_length: int = DEFAULT_TAPE_LENGTH
    eof_policy: EOFPolicy = EOFPolicy.ZERO
    debug: bool = False

    tape: bytearray = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output_buffer: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise ValueError("tape_length must be positive")
        self.eof_policy = EOFPolicy(self.eof_policy)
        self.reset()

    def reset(self) -> None:
        self.tape = bytearray(self.tape_length)
        self.pointer = 0
        self.output_buffer = bytearray()

    def run(
        self,
        program: Union[Program, str],
        input_data: Optional[InputSource] = None,
        output: Optional[BinaryIO] = None,
        max_steps: Optional[int] = None,
    ) -> bytes:
        """Execute ``program`` to completion.

        Without ``output`` every written byte is collected and returned. With
        ``output`` each byte is written and flushed to the stream as soon as
        the program produces it, nothing is kept, and ``b""`` is returned.
        """
        if isinstance(program, str):
            program = parse(program)
        self.reset()
        input_iter = _byte_reader(input_data)
        pc = 0
        steps = 0
        written = 0
        code_length = len(program)

        while pc < code_length:
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded("Program exceeded allowed step count")
            command = program[pc]
            if command is Instruction.WRITE:
                self._write(self.tape[self.pointer], output)
                written += 1
                pc += 1
            else:
                pc = self._execute_instruction(program, pc, input_iter)
            steps += 1
            if self.debug:
                logger.debug("step=%d %s pc=%d pointer=%d", steps, command.value, pc, self.pointer)

        logger.debug("halted after %d step(s), %d byte(s) written", steps, written)
        return bytes(self.output_buffer)

    def _write(self, value: int, output: Optional[BinaryIO]) -> None:
        if output is None:
            self.output_buffer.append(value)
            return
        output.write(bytes((value,)))
        output.flush()

    def _execute_instruction(self, program: Program, pc: int, input_iter: Iterator[int]) -> int:
        command = program[pc]
        new_pc = pc + 1
        if command is Instruction.MOVE_RIGHT:
            if self.pointer + 1 >= self.tape_length:
                raise TapeBoundsExceeded(pc, self.pointer + 1, self.tape_length, program.position(pc))
            self.pointer += 1
        elif command is Instruction.MOVE_LEFT:
            if self.pointer == 0:
                raise TapeBoundsExceeded(pc, -1, self.tape_length, program.position(pc))
            self.pointer -= 1
        elif command is Instruction.INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) % 256
        elif command is Instruction.DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) % 256
        elif command is Instruction.READ:
            try:
                self.tape[self.pointer] = next(input_iter) % 256
            except StopIteration:
                if self.eof_policy is EOFPolicy.ERROR:
                    raise InputExhausted(pc, program.position(pc)) from None
                if self.eof_policy is EOFPolicy.ZERO:
                    self.tape[self.pointer] = 0
        elif command is Instruction.LOOP_START:
            if self.tape[self.pointer] == 0:
                new_pc = program.match(pc) + 1
        elif command is Instruction.LOOP_END:
            new_pc = program.match(pc)
        return new_pc


__all__ = [
    "BrainfuckInterpreter",
    "ExecutionError",
    "InputExhausted",
    "StepLimitExceeded",
    "TapeBoundsExceeded",
]
