from .bf_interpreter import (
    BrainfuckInterpreter,
    ExecutionError,
    InputExhausted,
    StepLimitExceeded,
    TapeBoundsExceeded,
)
from .codegen import LLVMCodeGenerator, compile_source
from .lexer import Instruction, SourcePosition, Token, tokenize
from .program import (
    DEFAULT_TAPE_LENGTH,
    EOFPolicy,
    Program,
    StructureError,
    UnmatchedLoopEnd,
    UnmatchedLoopStart,
    parse,
    resolve_loops,
)

__all__ = [
    "BrainfuckInterpreter",
    "DEFAULT_TAPE_LENGTH",
    "EOFPolicy",
    "ExecutionError",
    "InputExhausted",
    "Instruction",
    "LLVMCodeGenerator",
    "Program",
    "SourcePosition",
    "StepLimitExceeded",
    "StructureError",
    "TapeBoundsExceeded",
    "Token",
    "UnmatchedLoopEnd",
    "UnmatchedLoopStart",
    "compile_source",
    "parse",
    "resolve_loops",
    "tokenize",
]
