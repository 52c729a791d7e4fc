from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field, validator

from sateko.bf_interpreter import BrainfuckInterpreter, ExecutionError, StepLimitExceeded
from sateko.codegen import LLVMCodeGenerator
from sateko.program import DEFAULT_TAPE_LENGTH, EOFPolicy, Program, StructureError, parse

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1_000_000


def _parse_or_422(code: str) -> Program:
    try:
        return parse(code)
    except StructureError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


class _MachineOptions(BaseModel):
    code: str = ""
    tape_length: int = Field(default=DEFAULT_TAPE_LENGTH, ge=1, le=1_000_000)
    eof_policy: EOFPolicy = EOFPolicy.ZERO

    @validator("eof_policy", pre=True)
    def normalize_eof_policy(cls, value):
        if isinstance(value, str):
            return value.lower()
        return value


class CompileRequest(_MachineOptions):
    check_bounds: bool = True
    module_name: str = Field(default="sateko", min_length=1)
    triple: str = ""


class CompileResponse(BaseModel):
    ir: str
    instruction_count: int
    loop_count: int


class RunRequest(_MachineOptions):
    input: str = ""
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1)


class RunResponse(BaseModel):
    output: str
    pointer: int
    error: Optional[str] = None
    error_index: Optional[int] = None
    error_position: Optional[str] = None


def create_app() -> FastAPI:
    app = FastAPI(title="sateko API", version="0.1.0")

    @app.post("/api/compile", response_model=CompileResponse)
    def compile_program(payload: CompileRequest) -> CompileResponse:
        program = _parse_or_422(payload.code)
        generator = LLVMCodeGenerator(
            tape_length=payload.tape_length,
            eof_policy=payload.eof_policy,
            check_bounds=payload.check_bounds,
            module_name=payload.module_name,
            triple=payload.triple,
        )
        return CompileResponse(
            ir=generator.emit(program),
            instruction_count=len(program),
            loop_count=program.loop_count,
        )

    @app.post("/api/run", response_model=RunResponse)
    def run_program(payload: RunRequest) -> RunResponse:
        program = _parse_or_422(payload.code)
        interpreter = BrainfuckInterpreter(
            tape_length=payload.tape_length,
            eof_policy=payload.eof_policy,
        )
        try:
            interpreter.run(program, input_data=payload.input, max_steps=payload.max_steps)
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except ExecutionError as exc:
            logger.info("program halted: %s", exc)
            # Output is returned as latin-1 so every byte maps to one character.
            return RunResponse(
                output=interpreter.output_buffer.decode("latin-1"),
                pointer=interpreter.pointer,
                error=str(exc),
                error_index=exc.index,
                error_position=str(exc.position) if exc.position is not None else None,
            )
        return RunResponse(
            output=interpreter.output_buffer.decode("latin-1"),
            pointer=interpreter.pointer,
        )

    return app


__all__ = ["create_app"]
