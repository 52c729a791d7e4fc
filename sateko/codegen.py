from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, TextIO, Union

from llvmlite import ir

from .lexer import Instruction
from .program import DEFAULT_TAPE_LENGTH, EOFPolicy, Program, parse

logger = logging.getLogger(__name__)

I8 = ir.IntType(8)
I32 = ir.IntType(32)
I64 = ir.IntType(64)

EOF = -1
EXIT_TAPE_FAULT = 1
EXIT_INPUT_EXHAUSTED = 2


@dataclass(frozen=True)
class _LoopBlocks:
    cond: ir.Block
    body: ir.Block
    exit: ir.Block


class _MainEmitter:
    """Builds the module for a single program and holds its per-run state."""

    def __init__(self, module: ir.Module, program: Program, generator: "LLVMCodeGenerator") -> None:
        self.program = program
        self.tape_length = generator.tape_length
        self.eof_policy = EOFPolicy(generator.eof_policy)
        self.check_bounds = generator.check_bounds

        tape_type = ir.ArrayType(I8, self.tape_length)
        self.tape = ir.GlobalVariable(module, tape_type, name="tape")
        self.tape.linkage = "internal"
        self.tape.initializer = ir.Constant(tape_type, None)

        self.pointer = ir.GlobalVariable(module, I64, name="tape_pointer")
        self.pointer.linkage = "internal"
        self.pointer.initializer = I64(0)

        self.getchar = ir.Function(module, ir.FunctionType(I32, []), name="getchar")
        self.putchar = ir.Function(module, ir.FunctionType(I32, [I32]), name="putchar")

        self.function = ir.Function(module, ir.FunctionType(I32, []), name="main")
        self.builder = ir.IRBuilder(self.function.append_basic_block("entry"))
        self.loops: Dict[int, _LoopBlocks] = {}
        self._exit_blocks: Dict[str, ir.Block] = {}

    def emit(self) -> None:
        for index, kind in enumerate(self.program):
            if kind is Instruction.MOVE_RIGHT:
                self._move(1)
            elif kind is Instruction.MOVE_LEFT:
                self._move(-1)
            elif kind is Instruction.INCREMENT:
                self._add_to_cell(1)
            elif kind is Instruction.DECREMENT:
                self._add_to_cell(-1)
            elif kind is Instruction.READ:
                self._read()
            elif kind is Instruction.WRITE:
                self._write()
            elif kind is Instruction.LOOP_START:
                self._loop_start(index)
            elif kind is Instruction.LOOP_END:
                self._loop_end(index)
            else:
                raise ValueError(f"Unknown instruction {kind!r} at {index}")
        self.builder.ret(I32(0))

    def _new_block(self, name: str) -> ir.Block:
        # Keep blocks in program order: insert right after the current one.
        position = self.function.blocks.index(self.builder.block) + 1
        return self.function.insert_basic_block(position, name)

    def _exit_block(self, name: str, status: int) -> ir.Block:
        block = self._exit_blocks.get(name)
        if block is None:
            block = self.function.append_basic_block(name)
            ir.IRBuilder(block).ret(I32(status))
            self._exit_blocks[name] = block
        return block

    def _cell_address(self) -> ir.Instruction:
        index = self.builder.load(self.pointer, name="ptr")
        return self.builder.gep(self.tape, [I64(0), index], inbounds=True, name="cell")

    def _load_cell(self) -> ir.Instruction:
        return self.builder.load(self._cell_address(), name="value")

    def _move(self, delta: int) -> None:
        builder = self.builder
        current = builder.load(self.pointer, name="ptr")
        if delta > 0:
            moved = builder.add(current, I64(delta), name="moved")
        else:
            moved = builder.sub(current, I64(-delta), name="moved")
        if self.check_bounds:
            # Moving left of cell 0 wraps to a huge unsigned value.
            outside = builder.icmp_unsigned(">=", moved, I64(self.tape_length), name="outside")
            in_bounds = self._new_block("move.ok")
            builder.cbranch(outside, self._exit_block("tape.fault", EXIT_TAPE_FAULT), in_bounds)
            builder.position_at_end(in_bounds)
        builder.store(moved, self.pointer)

    def _add_to_cell(self, delta: int) -> None:
        builder = self.builder
        address = self._cell_address()
        value = builder.load(address, name="value")
        if delta > 0:
            updated = builder.add(value, I8(delta), name="updated")
        else:
            updated = builder.sub(value, I8(-delta), name="updated")
        builder.store(updated, address)

    def _read(self) -> None:
        builder = self.builder
        char = builder.call(self.getchar, [], name="char")
        at_eof = builder.icmp_signed("==", char, I32(EOF), name="at_eof")
        byte = builder.trunc(char, I8, name="byte")
        if self.eof_policy is EOFPolicy.ERROR:
            received = self._new_block("read.ok")
            builder.cbranch(
                at_eof,
                self._exit_block("input.exhausted", EXIT_INPUT_EXHAUSTED),
                received,
            )
            builder.position_at_end(received)
            builder.store(byte, self._cell_address())
            return
        address = self._cell_address()
        if self.eof_policy is EOFPolicy.ZERO:
            fallback = I8(0)
        else:
            fallback = builder.load(address, name="value")
        builder.store(builder.select(at_eof, fallback, byte, name="stored"), address)

    def _write(self) -> None:
        builder = self.builder
        value = self._load_cell()
        builder.call(self.putchar, [builder.zext(value, I32, name="out")])

    def _loop_start(self, index: int) -> None:
        builder = self.builder
        loop_id = len(self.loops)
        position = self.function.blocks.index(builder.block) + 1
        cond = self.function.insert_basic_block(position, f"loop{loop_id}.cond")
        body = self.function.insert_basic_block(position + 1, f"loop{loop_id}.body")
        exit_block = self.function.insert_basic_block(position + 2, f"loop{loop_id}.exit")
        self.loops[index] = _LoopBlocks(cond, body, exit_block)

        builder.branch(cond)
        builder.position_at_end(cond)
        is_zero = builder.icmp_unsigned("==", self._load_cell(), I8(0), name="is_zero")
        builder.cbranch(is_zero, exit_block, body)
        builder.position_at_end(body)

    def _loop_end(self, index: int) -> None:
        blocks = self.loops[self.program.match(index)]
        self.builder.branch(blocks.cond)
        self.builder.position_at_end(blocks.exit)


@dataclass
class LLVMCodeGenerator:
    tape_length: int = DEFAULT_TAPE_LENGTH
    eof_policy: EOFPolicy = EOFPolicy.ZERO
    check_bounds: bool = True
    module_name: str = "sateko"
    triple: str = ""
    data_layout: str = ""

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise ValueError("tape_length must be positive")
        self.eof_policy = EOFPolicy(self.eof_policy)

    def generate(self, program: Union[Program, str]) -> ir.Module:
        if isinstance(program, str):
            program = parse(program)
        module = ir.Module(name=self.module_name)
        module.triple = self.triple
        module.data_layout = self.data_layout
        emitter = _MainEmitter(module, program, self)
        emitter.emit()
        logger.debug(
            "generated module %r: %d instruction(s), %d loop(s), %d block(s)",
            self.module_name,
            len(program),
            len(emitter.loops),
            len(emitter.function.blocks),
        )
        return module

    def emit(self, program: Union[Program, str]) -> str:
        text = str(self.generate(program))
        if not text.endswith("\n"):
            text += "\n"
        return text

    def write(self, program: Union[Program, str], sink: Union[str, Path, TextIO]) -> str:
        """Emit IR for ``program`` into a file path or text stream."""
        text = self.emit(program)
        if isinstance(sink, (str, Path)):
            Path(sink).write_text(text, encoding="utf-8")
            logger.info("wrote LLVM IR to %s", sink)
        else:
            sink.write(text)
        return text


def compile_source(source: str, generator: Optional[LLVMCodeGenerator] = None) -> str:
    return (generator or LLVMCodeGenerator()).emit(parse(source))


__all__ = [
    "EXIT_INPUT_EXHAUSTED",
    "EXIT_TAPE_FAULT",
    "LLVMCodeGenerator",
    "compile_source",
]
